"""
Services - Periodic Tasks.

============================================================
RESPONSIBILITY
============================================================
Runs an async callback on a fixed interval inside the
event loop.

- One asyncio task per timer, no worker threads
- A failing tick is logged; the next tick still runs
- cancel() is the only way to stop a timer; a tick that is
  already running finishes, no further tick starts

============================================================
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Recurring timer backed by an asyncio task.

    Usage:
        timer = PeriodicTask("heartbeat", 180, service.update_heartbeat)
        timer.start()
        ...
        await timer.cancel()
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        run_immediately: bool = False,
    ):
        """
        Args:
            name: Timer name for logs
            interval: Seconds between ticks
            callback: Coroutine function run on each tick
            run_immediately: Run the first tick without waiting
        """
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")

        self.name = name
        self.interval = interval
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Event] = None
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the timer on the running event loop."""
        if self.is_running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name=f"timer:{self.name}")

    async def cancel(self) -> None:
        """Stop the timer and wait for an in-flight tick to finish."""
        if self._task is None:
            return

        self._stopping.set()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _wait(self) -> bool:
        """Sleep one interval. Returns False once the timer is stopping."""
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            return True
        return False

    async def _loop(self) -> None:
        if not self._run_immediately and not await self._wait():
            return

        while not self._stopping.is_set():
            try:
                await self._callback()
            except Exception as e:
                logger.error(f"Timer {self.name} tick failed: {e}")
            self.ticks += 1
            if not await self._wait():
                return
