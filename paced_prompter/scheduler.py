"""Timer collaborators for the playback state machine.

Both schedulers expose the same two calls:

    handle = scheduler.call_later(delay_ms, callback)
    scheduler.cancel(handle)

ManualScheduler runs on a virtual clock driven by advance(); AsyncioScheduler
hands timers to a running event loop.
"""

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable


@dataclass(order=True)
class _Timer:
    due_ms: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class ManualScheduler:
    """Deterministic virtual-time scheduler."""

    def __init__(self):
        self.now_ms = 0.0
        self._queue: list[_Timer] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self.now_ms + max(0.0, delay_ms), next(self._seq), callback)
        heapq.heappush(self._queue, timer)
        return timer

    def cancel(self, handle: _Timer) -> None:
        handle.cancelled = True

    @property
    def pending(self) -> int:
        return sum(1 for t in self._queue if not t.cancelled)

    def next_due(self) -> float | None:
        """Virtual time of the next live timer, or None when idle."""
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)
        return self._queue[0].due_ms if self._queue else None

    def advance(self, delta_ms: float) -> int:
        """Move the clock forward, firing due timers in time order.

        Timers scheduled by callbacks fire too if they fall inside the window.
        Returns the number of callbacks run.
        """
        target = self.now_ms + delta_ms
        fired = 0
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            timer = heapq.heappop(self._queue)
            self.now_ms = timer.due_ms
            timer.callback()
            fired += 1
        self.now_ms = target
        return fired

    def run_until_idle(self, limit: int = 100000) -> int:
        """Fire every pending timer, however far in the future."""
        fired = 0
        while fired < limit:
            due = self.next_due()
            if due is None:
                break
            fired += self.advance(due - self.now_ms)
        return fired


class AsyncioScheduler:
    """Real-time scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_ms) / 1000, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()
