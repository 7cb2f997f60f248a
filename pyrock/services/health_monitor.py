"""Periodic liveness probe for the browser session."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pyrock.core.browser_config import PROBE_SCRIPT
from pyrock.core.logging import get_logger
from pyrock.core.metrics import session_health_checks_total
from pyrock.services.periodic import PeriodicTask

if TYPE_CHECKING:
    from pyrock.services.session_manager import SessionManager

logger = get_logger(__name__)

__all__ = ["HealthMonitor"]


class HealthMonitor(PeriodicTask):
    """Detects sessions that died without a disconnect event.

    Every tick evaluates a trivial script in the page and checks the browser
    process. Either check failing marks the session unhealthy and requests a
    recovery. Ticks are skipped while the session is not ready or a recovery is
    already in flight.
    """

    name = "health_monitor"

    def __init__(
        self,
        manager: SessionManager,
        interval: float = 10.0,
        probe_timeout: float = 5.0,
        retry_delay: float = 1.0,
    ):
        """Initialize health monitor.

        Args:
            manager: Session manager owning the monitored session
            interval: Seconds between checks
            probe_timeout: Seconds the probe script may take
            retry_delay: Recovery delay requested when a check fails
        """
        super().__init__(interval=interval)
        self.manager = manager
        self.probe_timeout = probe_timeout
        self.retry_delay = retry_delay

    async def run_once(self) -> bool | None:
        """Run one health check.

        Returns:
            True if healthy, False if recovery was requested, None if skipped
        """
        # Guard: nothing to monitor or recovery already in flight
        if not self.manager.is_ready():
            return None

        if await self.check_health():
            self.manager.state.last_health_check_at = datetime.now(UTC)
            session_health_checks_total.labels(result="healthy").inc()
            return True

        session_health_checks_total.labels(result="unhealthy").inc()
        logger.warning("session_unhealthy_detected")
        self.manager.request_recovery(self.retry_delay, reason="health_check_failed")
        return False

    async def check_health(self) -> bool:
        """Probe the page and check the browser process."""
        state = self.manager.state
        browser, page = state.browser, state.page
        if browser is None or page is None:
            return False

        try:
            await asyncio.wait_for(page.evaluate(PROBE_SCRIPT), timeout=self.probe_timeout)
        except Exception as e:
            logger.warning("health_probe_failed", error=str(e) or type(e).__name__)
            return False

        if not self.manager.is_browser_alive(browser):
            logger.warning("browser_process_terminated")
            return False

        return True
