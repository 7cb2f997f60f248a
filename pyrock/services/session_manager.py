"""Browser session lifecycle manager.

Owns the single browser/page pair and keeps it either ready or being recovered.
The command path, the health monitor, the screenshot publisher and browser
disconnect events all trigger recovery through one guard
(``SessionState.recovering``), so at most one initialization runs at a time and
concurrent triggers collapse into it.

The guard is checked and set without suspending in between; with a single event
loop that makes it race-free without a lock.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import psutil
from playwright.async_api import Browser, Page, Playwright, async_playwright

from config import Settings
from pyrock.core.browser_config import CHROMIUM_ARGS, DEFAULT_URL, VIEWPORT
from pyrock.core.logging import get_logger
from pyrock.core.metrics import (
    session_initializations_total,
    session_ready,
    session_recoveries_collapsed_total,
    session_recoveries_scheduled_total,
)
from pyrock.services.health_monitor import HealthMonitor
from pyrock.services.session_state import SessionState

if TYPE_CHECKING:
    from pyrock.services.periodic import PeriodicTask

logger = get_logger(__name__)

__all__ = ["SessionManager", "browser_process_alive", "list_pages"]


def _get_driver_pid(browser: Browser) -> int | None:
    """Get the pid of the Playwright process backing a browser.

    Args:
        browser: Browser to inspect

    Returns:
        PID if available, None otherwise
    """
    try:
        impl = getattr(browser, "_impl_obj", None)
        connection = getattr(impl, "_connection", None)
        transport = getattr(connection, "_transport", None)
        proc = getattr(transport, "_proc", None)
        if proc is None or proc.pid is None:
            return None
        return int(proc.pid)
    except Exception as e:
        logger.debug("browser_pid_extraction_failed", error=str(e))
        return None


def browser_process_alive(browser: Browser) -> bool:
    """Check that the process behind a browser has not terminated.

    Returns False only when the process is confirmed dead; an unknown pid or a
    process we may not inspect counts as alive.
    """
    pid = _get_driver_pid(browser)

    # Guard: no PID available
    if pid is None:
        return True

    try:
        process = psutil.Process(pid)
        return process.is_running() and process.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        return True


def list_pages(browser: Browser) -> list[Page]:
    """List every open page across all contexts of a browser."""
    return [page for context in browser.contexts for page in context.pages]


class SessionManager:
    """Owns the browser session and its recovery.

    Features:
    - Single-flight initialization: concurrent callers share one attempt
    - Cheap reuse of a live browser before a full relaunch
    - Deferred, cancellable recovery with a bounded number of retries
    - Session-scoped background tasks stopped on teardown and restarted on init

    Usage:
        manager = SessionManager(settings)
        await manager.initialize()
        if await manager.ensure_ready():
            await manager.state.page.title()
        await manager.shutdown()
    """

    def __init__(self, settings: Settings, state: SessionState | None = None):
        """Initialize session manager.

        Args:
            settings: Application settings with session configuration
            state: Shared session state. A fresh one is created when omitted.
        """
        self.settings = settings
        self.state = state if state is not None else SessionState()
        self.navigation_timeout = settings.navigation_timeout
        self.init_retry_delay = settings.init_retry_delay
        self.disconnect_retry_delay = settings.disconnect_retry_delay
        self.max_recovery_attempts = settings.max_recovery_attempts

        self._playwright: Playwright | None = None
        self._init_task: asyncio.Task[bool] | None = None
        self._retry_task: asyncio.Task[None] | None = None

        self.health_monitor = HealthMonitor(
            self,
            interval=settings.health_check_interval,
            probe_timeout=settings.health_probe_timeout,
            retry_delay=settings.health_retry_delay,
        )
        self._session_tasks: list[PeriodicTask] = [self.health_monitor]

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    def is_browser_alive(self, browser: Browser) -> bool:
        """Check a browser is connected and its process has not terminated."""
        try:
            if not browser.is_connected():
                return False
        except Exception:
            return False
        return browser_process_alive(browser)

    def is_ready(self) -> bool:
        """Check if the current session can accept operations immediately."""
        state = self.state
        if not state.ready or state.recovering:
            return False
        if not state.has_handles():
            return False
        try:
            if state.page.is_closed():
                return False
        except Exception:
            return False
        return self.is_browser_alive(state.browser)

    def is_initializing(self) -> bool:
        """Check if an initialization attempt is running right now."""
        return self._init_task is not None and not self._init_task.done()

    def is_retry_pending(self) -> bool:
        """Check if a deferred recovery is waiting for its backoff to elapse."""
        return self._retry_task is not None and not self._retry_task.done()

    async def ensure_ready(self) -> bool:
        """Make sure a usable session exists.

        Returns immediately when ready. Waits for an initialization that is
        already running instead of starting a second one. Fails fast while a
        deferred recovery is still in its backoff window. Otherwise performs a
        full (re)initialization.

        Returns:
            True if a usable session exists afterwards
        """
        if self.is_ready():
            return True

        if self.is_initializing():
            logger.info("session_waiting_for_initialization")
            await self.initialize()
            return self.is_ready()

        # Guard: recovery decided but its attempt has not started yet
        if self.state.recovering:
            logger.warning("session_recovery_pending", **self.get_status())
            return False

        logger.warning("session_not_ready_reinitializing")
        await self.initialize()
        return self.is_ready()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """Tear down any current session and establish a fresh one.

        Concurrent calls collapse into the attempt already in flight.

        Returns:
            True if the session is ready, False if initialization failed
        """
        if not self.is_initializing():
            self._init_task = asyncio.create_task(self._initialize())
        return await asyncio.shield(self._init_task)

    async def _initialize(self) -> bool:
        """Run one initialization attempt (called by initialize only)."""
        state = self.state
        state.recovering = True
        state.ready = False
        session_ready.set(0)

        await self._stop_session_tasks()

        try:
            reused = await self.reuse_if_alive()
            if not reused:
                await self.teardown()
                await self._launch()

            self._cancel_pending_retry()
            await self._start_session_tasks()

            state.recovery_attempts = 0
            state.initialized_at = datetime.now(UTC)
            session_initializations_total.labels(outcome="reused" if reused else "success").inc()
            session_ready.set(1)
            logger.info("session_initialized", reused=reused)

            state.ready = True
            return True

        except Exception as e:
            logger.error("session_initialization_failed", error=str(e))
            session_initializations_total.labels(outcome="failed").inc()
            await self.teardown()

            if self.is_retry_pending():
                logger.debug("session_retry_already_pending")
            elif state.recovery_attempts < self.max_recovery_attempts:
                self._schedule_retry(self.init_retry_delay, reason="initialization_failed")
            else:
                logger.error(
                    "session_recovery_attempts_exhausted",
                    recovery_attempts=state.recovery_attempts,
                    max_attempts=self.max_recovery_attempts,
                )
            return False

        finally:
            # A pending retry keeps the guard held through its backoff window
            state.recovering = self.is_retry_pending()
            if state.recovering:
                state.ready = False

    async def reuse_if_alive(self) -> bool:
        """Reuse the current browser if its process is still alive.

        Closes every page except the first, navigates the remaining page back to
        the neutral default and resets its viewport.

        Returns:
            True if the session was reused, False if a full relaunch is needed
        """
        browser = self.state.browser

        # Guard: nothing to reuse
        if browser is None:
            return False

        if not self.is_browser_alive(browser):
            logger.info("browser_not_alive_for_reuse")
            return False

        try:
            logger.info("browser_reusing_closing_extra_pages")
            pages = list_pages(browser)
            await self._close_extra_pages(pages)

            page = pages[0] if pages else await browser.new_page(viewport=VIEWPORT)
            await page.goto(
                DEFAULT_URL,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout * 1000,
            )
            await page.set_viewport_size(VIEWPORT)
        except Exception as e:
            logger.warning("browser_reuse_failed", error=str(e))
            return False

        if page is not self.state.page:
            self._watch_page(page)
        self.state.page = page

        logger.info("browser_reused", pages_closed=max(0, len(pages) - 1))
        return True

    async def _launch(self) -> None:
        """Launch a fresh browser with one page on the neutral default.

        Raises:
            Exception: Whatever Playwright raised; the partially launched
                browser is closed first.
        """
        logger.info("browser_launching")

        self._playwright = await async_playwright().start()
        browser = await self._playwright.chromium.launch(headless=True, args=CHROMIUM_ARGS)

        try:
            page = await browser.new_page(viewport=VIEWPORT)
            await page.set_viewport_size(VIEWPORT)
            await page.goto(
                DEFAULT_URL,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout * 1000,
            )
        except Exception:
            try:
                await browser.close()
            except Exception as close_error:
                logger.debug("partial_browser_close_error", error=str(close_error))
            raise

        browser.on("disconnected", self._on_disconnected)
        self._watch_page(page)

        self.state.browser = browser
        self.state.page = page

    def _watch_page(self, page: Page) -> None:
        """Subscribe to crash and error events of a page."""
        page.on("crash", self._on_page_crash)
        page.on("pageerror", self._on_page_error)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def teardown(self) -> None:
        """Close the current session and reset the state.

        Individual close errors are logged and swallowed; the state is reset
        no matter what.
        """
        await self._stop_session_tasks()

        browser = self.state.browser
        try:
            if browser is not None:
                logger.info("browser_cleanup_closing_pages")
                try:
                    browser.remove_listener("disconnected", self._on_disconnected)
                except Exception as e:
                    logger.debug("disconnect_listener_remove_error", error=str(e))

                await self._close_extra_pages(list_pages(browser))
                await browser.close()
                logger.info("browser_cleanup_completed")
        except Exception as e:
            # Handle is abandoned, not retried
            logger.warning("browser_cleanup_error", error=str(e))
        finally:
            await self._stop_playwright()
            self.state.clear()
            session_ready.set(0)

    async def _close_extra_pages(self, pages: list[Page]) -> None:
        """Close every page except the first one.

        Each ``new_page`` call opens its own context, so a context left without
        pages is closed too. The context of the kept page stays open.
        """
        kept_context = pages[0].context if pages else None
        for index, page in enumerate(pages[1:], start=1):
            context = page.context
            try:
                await page.close()
                if context is not kept_context and not context.pages:
                    await context.close()
            except Exception as e:
                logger.warning("extra_page_close_error", index=index, error=str(e))

    async def _stop_playwright(self) -> None:
        """Stop the Playwright driver if it was started."""
        playwright, self._playwright = self._playwright, None
        if playwright is None:
            return
        try:
            await playwright.stop()
        except Exception as e:
            logger.debug("playwright_stop_error", error=str(e))

    async def shutdown(self) -> None:
        """Release the session at process shutdown (best effort)."""
        logger.info("session_shutdown_starting")

        self._cancel_pending_retry()

        init_task, self._init_task = self._init_task, None
        if init_task is not None and not init_task.done():
            init_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await init_task

        await self.teardown()
        self.state.recovering = False

        logger.info("session_shutdown_completed")

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def request_recovery(self, delay: float, reason: str) -> bool:
        """Schedule a deferred re-initialization unless one is already in flight.

        Args:
            delay: Seconds to wait before initializing
            reason: Trigger name for logs and metrics

        Returns:
            True if a recovery was scheduled, False if it collapsed into an
            existing one
        """
        if self.state.recovering or self.is_initializing():
            session_recoveries_collapsed_total.labels(reason=reason).inc()
            logger.debug("session_recovery_collapsed", reason=reason)
            return False

        self.state.recovering = True
        self.state.ready = False
        session_ready.set(0)
        self._schedule_retry(delay, reason)
        return True

    def _schedule_retry(self, delay: float, reason: str) -> None:
        """Start the deferred recovery task. Caller must hold the guard."""
        session_recoveries_scheduled_total.labels(reason=reason).inc()
        logger.warning(
            "session_recovery_scheduled",
            reason=reason,
            delay_seconds=delay,
            attempt=self.state.recovery_attempts + 1,
        )
        self._retry_task = asyncio.create_task(self._run_retry(delay, reason))

    async def _run_retry(self, delay: float, reason: str) -> None:
        """Wait out the backoff, then initialize."""
        await asyncio.sleep(delay)

        # Fired; from here on this is an ordinary initialization attempt
        self._retry_task = None
        self.state.recovery_attempts += 1
        logger.info(
            "session_recovery_attempt",
            reason=reason,
            attempt=self.state.recovery_attempts,
        )
        await self.initialize()

    def _cancel_pending_retry(self) -> None:
        """Cancel a deferred recovery that has not fired yet."""
        task, self._retry_task = self._retry_task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("session_pending_recovery_cancelled")

    # ------------------------------------------------------------------
    # Browser events
    # ------------------------------------------------------------------

    def _on_disconnected(self, browser: Browser) -> None:
        """Handle the browser "disconnected" event."""
        # Guard: event from a browser we no longer own
        if browser is not self.state.browser:
            logger.debug("stale_browser_disconnect_ignored")
            return

        logger.warning("browser_disconnected")
        self.state.clear()
        session_ready.set(0)
        self.request_recovery(self.disconnect_retry_delay, reason="browser_disconnected")

    def _on_page_crash(self, page: Page) -> None:
        """Handle the page "crash" event."""
        # Guard: event from a page we no longer own
        if page is not self.state.page:
            return

        logger.error("page_crashed")
        self.request_recovery(self.disconnect_retry_delay, reason="page_crashed")

    def _on_page_error(self, error: Any) -> None:
        """Log uncaught exceptions thrown by page scripts."""
        logger.warning("page_script_error", error=str(error))

    # ------------------------------------------------------------------
    # Session-scoped background tasks
    # ------------------------------------------------------------------

    def register_session_task(self, task: PeriodicTask) -> None:
        """Register a background task that only runs while a session exists.

        Args:
            task: Task started after every successful initialization and
                stopped on every teardown
        """
        if task not in self._session_tasks:
            self._session_tasks.append(task)

    async def _start_session_tasks(self) -> None:
        for task in self._session_tasks:
            await task.start()

    async def _stop_session_tasks(self) -> None:
        for task in self._session_tasks:
            try:
                await task.stop()
            except Exception as e:
                logger.warning("session_task_stop_error", task=task.name, error=str(e))

    def get_status(self) -> dict[str, Any]:
        """Get current session status.

        Returns:
            Dict with readiness, recovery flags and state timestamps
        """
        return {
            **self.state.snapshot(),
            "browser_ready": self.is_ready(),
            "initializing": self.is_initializing(),
            "retry_pending": self.is_retry_pending(),
        }
