"""Base class for interval-driven background tasks."""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from typing import Any

from pyrock.core.logging import get_logger

logger = get_logger(__name__)

__all__ = ["PeriodicTask"]


class PeriodicTask(ABC):
    """Runs ``run_once`` every ``interval`` seconds in a background task.

    The loop sleeps first and then ticks, so a freshly started task never fires
    immediately. Exceptions from a tick are logged and never end the loop.

    Usage:
        task = MyTask(interval=10.0)
        await task.start()
        # ... task runs in background ...
        await task.stop()
    """

    name = "periodic_task"

    def __init__(self, interval: float):
        """Initialize periodic task.

        Args:
            interval: Seconds between ticks
        """
        self.interval = interval
        self._task: asyncio.Task[None] | None = None
        self._running = False

    def is_running(self) -> bool:
        """Check if the background loop is active."""
        return self._running

    async def start(self) -> None:
        """Start the background loop. Starting a running task is a no-op."""
        # Guard: already running
        if self._running:
            logger.debug(f"{self.name}_already_running")
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"{self.name}_started", interval=self.interval)

    async def stop(self) -> None:
        """Stop the background loop. Stopping a stopped task is a no-op."""
        # Guard: not running
        if not self._running:
            return

        self._running = False
        task, self._task = self._task, None

        if task is not None:
            task.cancel()
            # A tick may stop its own task; it cannot wait for itself
            if task is not asyncio.current_task():
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        logger.info(f"{self.name}_stopped")

    async def _loop(self) -> None:
        """Background loop running ticks until stopped."""
        while self._running:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"{self.name}_loop_error", error=str(e))

    @abstractmethod
    async def run_once(self) -> Any:
        """Execute a single tick.

        Raises:
            NotImplementedError: Must be implemented by subclass
        """
        raise NotImplementedError("Subclass must implement run_once()")
