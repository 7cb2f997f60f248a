"""Integration tests for the WebSocket control endpoint."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.testclient import TestClient

from pyrock.core.dependencies import get_command_dispatcher
from pyrock.services.command_dispatcher import CommandDispatcher
from pyrock.services.errors import OperationResult


@pytest.fixture
def mock_manager():
    """Create mock session manager."""
    manager = MagicMock()
    manager.is_ready = MagicMock(return_value=True)
    manager.initialize = AsyncMock(return_value=True)
    return manager


@pytest.fixture
def mock_operations():
    """Create mock browser operations."""
    operations = MagicMock()
    operations.navigate = AsyncMock(
        return_value=OperationResult.ok(url="https://example.com/", status=200)
    )
    operations.click_at = AsyncMock(return_value=OperationResult.ok())
    return operations


@pytest.fixture
def ws_client(test_app, mock_manager, mock_operations):
    """Test client whose WebSocket endpoint uses mock collaborators."""
    dispatcher = CommandDispatcher(mock_manager, mock_operations)
    test_app.dependency_overrides[get_command_dispatcher] = lambda: dispatcher
    return TestClient(test_app)


class TestBrowserControlWebSocket:
    """Tests for the control channel."""

    def test_connect_sends_status(self, ws_client):
        """Test a new connection gets one status message."""
        with ws_client.websocket_connect("/") as websocket:
            message = websocket.receive_json()

        assert message == {"type": "status", "message": "Connected to PyRock", "browserReady": True}

    def test_commands_get_replies_in_order(self, ws_client, mock_operations):
        """Test each command gets exactly one reply in receipt order."""
        with ws_client.websocket_connect("/") as websocket:
            websocket.receive_json()

            websocket.send_json({"type": "navigate", "url": "https://example.com"})
            websocket.send_json({"type": "click", "x": 10, "y": 20})

            first = websocket.receive_json()
            second = websocket.receive_json()

        assert first["type"] == "navigation_success"
        assert second["type"] == "click_success"
        mock_operations.click_at.assert_awaited_once_with(10, 20)

    def test_errors_keep_connection_open(self, ws_client):
        """Test malformed and rejected messages are answered without closing."""
        with ws_client.websocket_connect("/") as websocket:
            websocket.receive_json()

            websocket.send_text("{broken")
            malformed = websocket.receive_json()

            websocket.send_json({"type": "foo"})
            unknown = websocket.receive_json()

            websocket.send_json({"type": "click"})
            missing = websocket.receive_json()

            websocket.send_json({"type": "status"})
            status = websocket.receive_json()

        assert malformed["type"] == "error"
        assert unknown == {"type": "error", "message": "Unrecognized command: foo"}
        assert missing == {"type": "error", "message": "Coordinates x, y required"}
        assert status["type"] == "status"

    def test_binary_frames_are_accepted(self, ws_client):
        """Test JSON sent as a binary frame is handled like text."""
        with ws_client.websocket_connect("/") as websocket:
            websocket.receive_json()

            websocket.send_bytes(b'{"type": "init"}')
            reply = websocket.receive_json()

        assert reply["type"] == "init_success"
