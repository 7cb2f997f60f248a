"""Unit tests for PeriodicTask."""

import asyncio

import pytest

from pyrock.services.periodic import PeriodicTask


class CountingTask(PeriodicTask):
    """Task counting its ticks, optionally failing on each one."""

    name = "counting_task"

    def __init__(self, interval: float, fail: bool = False):
        super().__init__(interval=interval)
        self.ticks = 0
        self.fail = fail

    async def run_once(self) -> None:
        self.ticks += 1
        if self.fail:
            raise RuntimeError("tick failed")


class SelfStoppingTask(PeriodicTask):
    """Task that stops itself on its first tick."""

    name = "self_stopping_task"

    async def run_once(self) -> None:
        await self.stop()


class TestPeriodicTask:
    """Tests for PeriodicTask."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Test the loop ticks while running and stops cleanly."""
        task = CountingTask(interval=0.01)

        await task.start()
        assert task.is_running() is True
        await asyncio.sleep(0.05)
        await task.stop()

        assert task.is_running() is False
        assert task.ticks >= 1

    @pytest.mark.asyncio
    async def test_first_tick_waits_one_interval(self):
        """Test a freshly started task does not tick immediately."""
        task = CountingTask(interval=60.0)

        await task.start()
        await asyncio.sleep(0.01)
        await task.stop()

        assert task.ticks == 0

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self):
        """Test starting a running task keeps the existing loop."""
        task = CountingTask(interval=60.0)

        await task.start()
        loop_task = task._task
        await task.start()

        assert task._task is loop_task
        await task.stop()

    @pytest.mark.asyncio
    async def test_stop_when_not_running(self):
        """Test stopping a stopped task is a no-op."""
        task = CountingTask(interval=60.0)

        await task.stop()

        assert task.is_running() is False

    @pytest.mark.asyncio
    async def test_tick_errors_do_not_end_loop(self):
        """Test a failing tick is logged and the loop continues."""
        task = CountingTask(interval=0.01, fail=True)

        await task.start()
        await asyncio.sleep(0.06)

        assert task.is_running() is True
        assert task.ticks >= 2
        await task.stop()

    @pytest.mark.asyncio
    async def test_tick_can_stop_its_own_task(self):
        """Test a tick stopping its own task does not deadlock."""
        task = SelfStoppingTask(interval=0.01)

        await task.start()
        await asyncio.sleep(0.05)

        assert task.is_running() is False
