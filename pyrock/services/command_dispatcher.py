"""Maps inbound client commands to browser operations.

Each inbound message gets exactly one reply. Missing required fields and
unknown command types are rejected before any operation runs; operation
failures become the matching ``*_error`` reply.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

from pyrock.api.websocket_models import CommandType, Coordinates, MessageType, ServerMessage
from pyrock.core.logging import get_logger
from pyrock.core.metrics import websocket_messages_total
from pyrock.services.browser_operations import BrowserOperations
from pyrock.services.errors import OperationResult
from pyrock.services.session_manager import SessionManager

logger = get_logger(__name__)

__all__ = [
    "CommandDispatcher",
    "CommandError",
    "MalformedMessageError",
    "MissingFieldError",
    "UnrecognizedCommandError",
]

CommandHandler = Callable[[dict[str, Any]], Awaitable[ServerMessage]]


class CommandError(ValueError):
    """Base class for commands rejected before reaching the browser."""


class MalformedMessageError(CommandError):
    """Raised when an inbound message is not a JSON object."""


class MissingFieldError(CommandError):
    """Raised when a command lacks a required field."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class UnrecognizedCommandError(CommandError):
    """Raised when a command type is not known."""

    def __init__(self, command_type: Any):
        super().__init__(f"Unrecognized command: {command_type}")
        self.command_type = command_type


def parse_message(raw: str | bytes) -> dict[str, Any]:
    """Parse one inbound message.

    Args:
        raw: UTF-8 text (or bytes) holding a single JSON object

    Returns:
        Parsed message

    Raises:
        MalformedMessageError: If the payload is not a JSON object
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedMessageError(f"Invalid JSON message: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMessageError("Message must be a JSON object")
    return data


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


class CommandDispatcher:
    """Dispatches client commands and builds replies.

    Usage:
        dispatcher = CommandDispatcher(manager, operations)
        reply = await dispatcher.handle_message('{"type": "status"}')
        await websocket.send_json(reply)
    """

    def __init__(
        self,
        manager: SessionManager,
        operations: BrowserOperations,
        screenshot_url: str = "/screenshot.png",
    ):
        """Initialize command dispatcher.

        Args:
            manager: Session manager, used for status and explicit init
            operations: Recovery-wrapped browser operations
            screenshot_url: Public URL of the published screenshot
        """
        self.manager = manager
        self.operations = operations
        self.screenshot_url = screenshot_url
        self._handlers: dict[str, CommandHandler] = {
            CommandType.NAVIGATE: self._navigate,
            CommandType.SCREENSHOT: self._screenshot,
            CommandType.STATUS: self._status,
            CommandType.INIT: self._init,
            CommandType.CLICK: self._click,
            CommandType.TYPE: self._type,
            CommandType.KEY: self._key,
        }

    def connection_status(self) -> dict[str, Any]:
        """Status message sent when a client connects."""
        return ServerMessage(
            type=MessageType.STATUS,
            message="Connected to PyRock",
            browser_ready=self.manager.is_ready(),
        ).to_wire()

    async def handle_message(self, raw: str | bytes) -> dict[str, Any]:
        """Parse, dispatch and answer one inbound message. Never raises.

        Args:
            raw: Raw inbound message

        Returns:
            Reply ready to be sent as JSON
        """
        try:
            reply = await self.dispatch(parse_message(raw))
        except CommandError as e:
            logger.warning("command_rejected", error=str(e))
            reply = ServerMessage(type=MessageType.ERROR, message=str(e))
        except Exception as e:
            logger.error("command_processing_error", error=str(e))
            reply = ServerMessage(type=MessageType.ERROR, message=str(e) or type(e).__name__)
        return reply.to_wire()

    async def dispatch(self, data: dict[str, Any]) -> ServerMessage:
        """Route a parsed command to its handler.

        Raises:
            UnrecognizedCommandError: If ``type`` is not a known command
            MissingFieldError: If a required field is absent
        """
        command_type = data.get("type")
        handler = self._handlers.get(command_type) if isinstance(command_type, str) else None
        if handler is None:
            websocket_messages_total.labels(type="unknown").inc()
            raise UnrecognizedCommandError(command_type)

        websocket_messages_total.labels(type=command_type).inc()
        logger.debug("command_received", command_type=command_type)
        return await handler(data)

    async def _navigate(self, data: dict[str, Any]) -> ServerMessage:
        url = data.get("url")
        if _is_missing(url):
            raise MissingFieldError("url", "URL required")

        result = await self.operations.navigate(str(url))
        if result.success:
            return ServerMessage(
                type=MessageType.NAVIGATION_SUCCESS,
                message=f"Navigated to: {result.data['url']}",
                url=result.data["url"],
                status=result.data.get("status"),
            )
        return self._failure(MessageType.NAVIGATION_ERROR, "Navigation error", result, url=str(url))

    async def _screenshot(self, data: dict[str, Any]) -> ServerMessage:
        result = await self.operations.screenshot()
        if result.success:
            return ServerMessage(
                type=MessageType.SCREENSHOT_SAVED,
                message=f"Screenshot saved to {self.screenshot_url}",
                url=self.screenshot_url,
            )
        return self._failure(MessageType.SCREENSHOT_ERROR, "Error capturing screenshot", result)

    async def _status(self, data: dict[str, Any]) -> ServerMessage:
        ready = self.manager.is_ready()
        return ServerMessage(
            type=MessageType.STATUS,
            message=f"State: {'Ready' if ready else 'Not available'}",
            browser_ready=ready,
        )

    async def _init(self, data: dict[str, Any]) -> ServerMessage:
        if await self.manager.initialize():
            return ServerMessage(
                type=MessageType.INIT_SUCCESS,
                message="Browser initialized",
                browser_ready=self.manager.is_ready(),
            )
        return ServerMessage(
            type=MessageType.INIT_ERROR,
            message="Error initializing browser",
            browser_ready=False,
        )

    async def _click(self, data: dict[str, Any]) -> ServerMessage:
        x, y = data.get("x"), data.get("y")
        if x is None or y is None:
            raise MissingFieldError("x, y", "Coordinates x, y required")

        coordinates = Coordinates(x=x, y=y)
        result = await self.operations.click_at(x, y)
        if result.success:
            return ServerMessage(
                type=MessageType.CLICK_SUCCESS,
                message=f"Clicked at ({x}, {y})",
                coordinates=coordinates,
            )
        return self._failure(
            MessageType.CLICK_ERROR, "Error performing click", result, coordinates=coordinates
        )

    async def _type(self, data: dict[str, Any]) -> ServerMessage:
        text = data.get("text")
        if _is_missing(text):
            raise MissingFieldError("text", "Text required")

        result = await self.operations.type_text(text)
        if result.success:
            return ServerMessage(type=MessageType.TYPE_SUCCESS, message=f'Text typed: "{text}"', text=text)
        return self._failure(MessageType.TYPE_ERROR, "Error typing text", result, text=text)

    async def _key(self, data: dict[str, Any]) -> ServerMessage:
        key = data.get("key")
        if _is_missing(key):
            raise MissingFieldError("key", "Key required")

        result = await self.operations.press_key(key)
        if result.success:
            return ServerMessage(type=MessageType.KEY_SUCCESS, message=f"Key pressed: {key}", key=key)
        return self._failure(MessageType.KEY_ERROR, "Error pressing key", result, key=key)

    def _failure(
        self, message_type: MessageType, prefix: str, result: OperationResult, **echo: Any
    ) -> ServerMessage:
        """Build the error reply for a failed operation."""
        return ServerMessage(
            type=message_type,
            message=f"{prefix}: {result.error}",
            error_kind=result.error_kind.value if result.error_kind else None,
            **echo,
        )
