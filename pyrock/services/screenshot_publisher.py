"""Periodic screenshot publisher."""

from __future__ import annotations

from pyrock.core.logging import get_logger
from pyrock.core.metrics import screenshots_published_total
from pyrock.services.browser_operations import BrowserOperations
from pyrock.services.periodic import PeriodicTask
from pyrock.services.session_manager import SessionManager

logger = get_logger(__name__)

__all__ = ["ScreenshotPublisher"]


class ScreenshotPublisher(PeriodicTask):
    """Keeps the published screenshot fresh.

    Runs only while a session exists: the session manager starts it after every
    successful initialization and stops it on teardown. Ticks while the session
    is not ready are skipped; a tick never starts an initialization itself.
    """

    name = "screenshot_publisher"

    def __init__(self, manager: SessionManager, operations: BrowserOperations, interval: float = 1.0):
        """Initialize screenshot publisher.

        Args:
            manager: Session manager, checked for readiness before each capture
            operations: Operations used to capture and write the screenshot
            interval: Seconds between captures
        """
        super().__init__(interval=interval)
        self.manager = manager
        self.operations = operations

    async def run_once(self) -> bool:
        """Capture and publish one screenshot.

        Returns:
            True if a screenshot was published
        """
        # Guard: session not ready
        if not self.manager.is_ready():
            screenshots_published_total.labels(outcome="skipped").inc()
            return False

        result = await self.operations.screenshot()
        if not result.success:
            screenshots_published_total.labels(outcome="failed").inc()
            logger.warning(
                "screenshot_publish_failed",
                error=result.error,
                error_kind=result.error_kind.value if result.error_kind else None,
            )
            return False

        screenshots_published_total.labels(outcome="success").inc()
        return True
