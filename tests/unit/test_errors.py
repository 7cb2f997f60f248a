"""Unit tests for operation error classification."""

from unittest.mock import MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pyrock.services.errors import (
    ErrorKind,
    InvalidURLError,
    NavigationError,
    OperationResult,
    classify_browser_error,
    is_session_invalidation_message,
)


@pytest.fixture
def connected_browser():
    browser = MagicMock()
    browser.is_connected = MagicMock(return_value=True)
    return browser


class TestClassifyBrowserError:
    """Tests for classify_browser_error."""

    @pytest.mark.parametrize(
        "message",
        [
            "Target closed",
            "Target page, context or browser has been closed",
            "Browser has been closed",
            "Protocol error (Runtime.callFunctionOn): Session closed.",
            "Frame was detached",
            "Connection closed while reading from the driver",
        ],
    )
    def test_invalidation_signatures(self, connected_browser, message):
        """Test known session-closed messages invalidate the session."""
        assert classify_browser_error(PlaywrightError(message), connected_browser) is (
            ErrorKind.SESSION_INVALIDATED
        )

    def test_timeout_invalidates(self, connected_browser):
        """Test timeouts invalidate the session."""
        error = PlaywrightTimeoutError("Timeout 30000ms exceeded.")

        assert classify_browser_error(error, connected_browser) is ErrorKind.SESSION_INVALIDATED

    def test_disconnected_browser_invalidates_any_error(self, connected_browser):
        """Test connection status wins over the message."""
        connected_browser.is_connected.return_value = False

        assert classify_browser_error(ValueError("anything"), connected_browser) is (
            ErrorKind.SESSION_INVALIDATED
        )

    def test_connection_check_failure_is_ignored(self, connected_browser):
        """Test a failing connection check falls back to the message."""
        connected_browser.is_connected.side_effect = RuntimeError("driver gone")

        assert classify_browser_error(PlaywrightError("net::ERR_NAME_NOT_RESOLVED"), connected_browser) is (
            ErrorKind.TRANSIENT
        )
        assert classify_browser_error(PlaywrightError("Target closed"), connected_browser) is (
            ErrorKind.SESSION_INVALIDATED
        )

    def test_ordinary_errors_are_transient(self, connected_browser):
        """Test unrelated failures keep the session."""
        assert classify_browser_error(PlaywrightError("net::ERR_NAME_NOT_RESOLVED"), connected_browser) is (
            ErrorKind.TRANSIENT
        )
        assert classify_browser_error(NavigationError("HTTP 500: Internal Server Error", 500)) is (
            ErrorKind.TRANSIENT
        )

    def test_signature_only_counts_for_playwright_errors(self, connected_browser):
        """Test non-Playwright exceptions are not matched on their message."""
        assert classify_browser_error(ValueError("target closed"), connected_browser) is (
            ErrorKind.TRANSIENT
        )

    def test_invalid_url_is_validation(self):
        """Test rejected input is a validation failure."""
        assert classify_browser_error(InvalidURLError("http://")) is ErrorKind.VALIDATION


class TestHelpers:
    """Tests for error helpers and result type."""

    def test_signature_match_is_case_insensitive(self):
        """Test signatures match regardless of case."""
        assert is_session_invalidation_message("TARGET CLOSED") is True
        assert is_session_invalidation_message("element not visible") is False

    def test_invalid_url_error(self):
        """Test InvalidURLError keeps the rejected URL."""
        error = InvalidURLError("not a url")

        assert str(error) == "Invalid URL: not a url"
        assert error.url == "not a url"
        assert isinstance(error, ValueError)

    def test_operation_result_ok(self):
        """Test successful results carry data and no error."""
        result = OperationResult.ok(url="https://example.com/", status=200)

        assert result.success is True
        assert result.data == {"url": "https://example.com/", "status": 200}
        assert result.error is None
        assert result.error_kind is None

    def test_operation_result_failed(self):
        """Test failed results carry error and kind."""
        result = OperationResult.failed("boom", ErrorKind.TRANSIENT, key="Enter")

        assert result.success is False
        assert result.error == "boom"
        assert result.error_kind is ErrorKind.TRANSIENT
        assert result.data == {"key": "Enter"}
