"""Cancellable delayed callbacks for the step runtime."""

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Tuple


class ScheduledTask:
    """Handle for a scheduled callback."""

    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self.cancelled = False
        self.done = False

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()

    def run(self) -> None:
        if self.cancelled or self.done:
            return
        self.done = True
        self._callback()


class Scheduler:
    """Base scheduler: run ``callback`` once after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        raise NotImplementedError


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The configured loop, else the loop running the caller."""
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(callback)
        task._handle = self.loop.call_later(max(0.0, delay), task.run)
        return task


class ManualScheduler(Scheduler):
    """
    Virtual-clock scheduler.

    Nothing fires until :meth:`advance` moves the clock; callbacks then run in
    due order (ties in scheduling order). Callbacks scheduled while advancing
    fire in the same call if they fall due before the new time.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(callback)
        heapq.heappush(self._queue, (self.now + max(0.0, delay), next(self._counter), task))
        return task

    @property
    def pending(self) -> int:
        """Number of callbacks still waiting to fire."""
        return sum(1 for _, _, task in self._queue if not task.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            self.now = due
            task.run()
        self.now = target

    def run_all(self, limit: int = 1000) -> None:
        """Fire everything queued, including callbacks scheduled along the way."""
        for _ in range(limit):
            if not self._queue:
                return
            due, _, task = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            task.run()
        raise RuntimeError("Scheduler did not settle")
