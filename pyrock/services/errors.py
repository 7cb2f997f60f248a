"""Error taxonomy and classification for browser session operations.

This module provides:
1. ErrorKind, the structured classification of operation failures
2. classify_browser_error(), deciding the ErrorKind at the Playwright boundary
3. OperationResult, the result type returned by every browser operation
4. Validation and navigation exceptions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from playwright.async_api import Browser
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pyrock.core.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "ErrorKind",
    "InvalidURLError",
    "NavigationError",
    "OperationResult",
    "SESSION_INVALIDATION_SIGNATURES",
    "classify_browser_error",
]

# Lower-cased message fragments Playwright uses when the browser, context or page is gone
SESSION_INVALIDATION_SIGNATURES = (
    "target closed",
    "target page, context or browser has been closed",
    "browser has been closed",
    "session closed",
    "protocol error",
    "detached",
    "connection closed",
)


class ErrorKind(str, Enum):
    """Classification of an operation failure."""

    SESSION_UNAVAILABLE = "session_unavailable"  # no usable session could be produced
    SESSION_INVALIDATED = "session_invalidated"  # session died mid-operation
    VALIDATION = "validation"  # caller input rejected before touching the browser
    TRANSIENT = "transient"  # ordinary failure, session still usable


class InvalidURLError(ValueError):
    """Raised when a navigation target is not a well-formed absolute URL."""

    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url}")
        self.url = url


class NavigationError(Exception):
    """Raised when navigation completes without a successful response."""

    def __init__(self, message: str, status: int | None = None):
        """Initialize navigation error.

        Args:
            message: Error message
            status: HTTP status of the response, if there was one
        """
        super().__init__(message)
        self.status = status


@dataclass
class OperationResult:
    """Result from a recovery-wrapped browser operation.

    Attributes:
        success: Whether the operation completed
        data: Operation-specific data (final URL and status, coordinates, ...)
        error: Error message if the operation failed
        error_kind: Classification of the failure
    """

    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, **data: Any) -> OperationResult:
        """Create a successful result carrying operation data."""
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str, error_kind: ErrorKind, **data: Any) -> OperationResult:
        """Create a failed result."""
        return cls(success=False, data=data, error=error, error_kind=error_kind)


def is_session_invalidation_message(message: str) -> bool:
    """Check an error message against the known session-invalidation signatures."""
    message = message.lower()
    return any(signature in message for signature in SESSION_INVALIDATION_SIGNATURES)


def classify_browser_error(exc: BaseException, browser: Browser | None = None) -> ErrorKind:
    """Classify an exception raised while driving the browser.

    Args:
        exc: Exception raised by the operation
        browser: Browser the operation ran against, used for the connection check

    Returns:
        SESSION_INVALIDATED when the session is gone, VALIDATION for rejected input,
        TRANSIENT otherwise
    """
    if isinstance(exc, InvalidURLError):
        return ErrorKind.VALIDATION

    # Navigation timeouts leave the page in an unknown state
    if isinstance(exc, PlaywrightTimeoutError):
        return ErrorKind.SESSION_INVALIDATED

    # Connection status is the most reliable signal
    if browser is not None:
        try:
            if not browser.is_connected():
                return ErrorKind.SESSION_INVALIDATED
        except Exception as e:
            logger.debug("browser_connection_check_failed", error=str(e))

    if isinstance(exc, PlaywrightError) and is_session_invalidation_message(str(exc)):
        return ErrorKind.SESSION_INVALIDATED

    return ErrorKind.TRANSIENT
