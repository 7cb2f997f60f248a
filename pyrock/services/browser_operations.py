"""Recovery-wrapped browser operations.

Every operation first makes sure a usable session exists, then runs against the
current page. Failures are classified at this boundary; a failure that shows the
session is gone requests a recovery before the failed result is returned.
Operations never raise.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from playwright.async_api import Page

from config import Settings
from pyrock.core.logging import get_logger
from pyrock.core.metrics import browser_operation_duration_seconds, browser_operations_total
from pyrock.services.errors import (
    ErrorKind,
    InvalidURLError,
    NavigationError,
    OperationResult,
    classify_browser_error,
)
from pyrock.services.session_manager import SessionManager
from pyrock.utils.files import write_atomic
from pyrock.utils.url import normalize_target_url

logger = get_logger(__name__)

__all__ = ["BrowserOperations"]

PageAction = Callable[[Page], Awaitable[dict[str, Any]]]


class BrowserOperations:
    """Navigate, click, type, press keys and capture screenshots.

    Usage:
        operations = BrowserOperations(manager, settings)
        result = await operations.navigate("example.com")
        if result.success:
            print(result.data["url"])
    """

    def __init__(self, manager: SessionManager, settings: Settings):
        """Initialize browser operations.

        Args:
            manager: Session manager providing the page
            settings: Application settings (timeouts, screenshot location)
        """
        self.manager = manager
        self.navigation_timeout = settings.navigation_timeout
        self.screenshot_path = settings.screenshot_path
        self.recovery_delay = settings.operation_retry_delay

    async def navigate(self, url: str) -> OperationResult:
        """Navigate the page to a URL.

        The URL is validated before the session is touched, so invalid input
        never triggers an initialization.

        Args:
            url: Target URL; ``https://`` is prepended when the scheme is missing

        Returns:
            OperationResult with the final URL and HTTP status on success
        """
        try:
            target_url = normalize_target_url(url)
        except InvalidURLError as e:
            logger.warning("navigation_url_invalid", url=url)
            browser_operations_total.labels(operation="navigate", outcome=ErrorKind.VALIDATION.value).inc()
            return OperationResult.failed(str(e), ErrorKind.VALIDATION, url=url)

        async def goto(page: Page) -> dict[str, Any]:
            logger.info("navigating", url=target_url)
            response = await page.goto(
                target_url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout * 1000,
            )
            if response is None:
                raise NavigationError("No response received from server")
            if not response.ok:
                raise NavigationError(
                    f"HTTP {response.status}: {response.status_text}", status=response.status
                )

            logger.info("navigation_succeeded", url=page.url, status=response.status)
            return {"url": page.url, "status": response.status}

        return await self._execute("navigate", goto, url=target_url)

    async def click_at(self, x: float, y: float) -> OperationResult:
        """Click at viewport coordinates."""

        async def click(page: Page) -> dict[str, Any]:
            await page.mouse.click(x, y)
            logger.info("click_performed", x=x, y=y)
            return {}

        return await self._execute("click", click, x=x, y=y)

    async def type_text(self, text: str) -> OperationResult:
        """Type text into the focused element."""

        async def type_(page: Page) -> dict[str, Any]:
            await page.keyboard.type(text)
            logger.info("text_typed", length=len(text))
            return {}

        return await self._execute("type", type_, text=text)

    async def press_key(self, key: str) -> OperationResult:
        """Press a named key (e.g. "Enter", "Tab", "ArrowDown")."""

        async def press(page: Page) -> dict[str, Any]:
            await page.keyboard.press(key)
            logger.info("key_pressed", key=key)
            return {}

        return await self._execute("key", press, key=key)

    async def screenshot(self) -> OperationResult:
        """Capture the viewport as PNG and publish it to the screenshot location.

        The file is replaced atomically, so readers never see a partial image.
        """

        async def capture(page: Page) -> dict[str, Any]:
            image = await page.screenshot(type="png", full_page=False)
            await asyncio.to_thread(write_atomic, self.screenshot_path, image)
            return {"path": str(self.screenshot_path), "size": len(image)}

        return await self._execute("screenshot", capture)

    async def _execute(self, operation: str, action: PageAction, **context: Any) -> OperationResult:
        """Run an action against a ready session and classify its failure.

        Args:
            operation: Operation name for logs and metrics
            action: Coroutine function receiving the current page
            **context: Data echoed in the result

        Returns:
            OperationResult
        """
        start = time.perf_counter()

        if not await self.manager.ensure_ready():
            logger.error("operation_session_unavailable", operation=operation)
            browser_operations_total.labels(
                operation=operation, outcome=ErrorKind.SESSION_UNAVAILABLE.value
            ).inc()
            return OperationResult.failed(
                "Browser session unavailable", ErrorKind.SESSION_UNAVAILABLE, **context
            )

        browser, page = self.manager.state.browser, self.manager.state.page
        try:
            data = await action(page)
        except Exception as e:
            error_kind = classify_browser_error(e, browser)
            logger.error(
                "operation_failed",
                operation=operation,
                error=str(e),
                error_kind=error_kind.value,
            )
            browser_operations_total.labels(operation=operation, outcome=error_kind.value).inc()

            if error_kind is ErrorKind.SESSION_INVALIDATED:
                self.manager.request_recovery(self.recovery_delay, reason=f"{operation}_failed")

            return OperationResult.failed(str(e), error_kind, **context)
        finally:
            browser_operation_duration_seconds.labels(operation=operation).observe(
                time.perf_counter() - start
            )

        browser_operations_total.labels(operation=operation, outcome="success").inc()
        return OperationResult.ok(**{**context, **data})
