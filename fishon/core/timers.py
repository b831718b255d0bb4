"""
Cooperative Timers
==================

Single-threaded timer queue shared by the energy scheduler and the catch
mini-game. Nothing here blocks: the owner calls poll() (or run_for() with a
manual clock) and due callbacks run one at a time, in deadline order, ties
broken by scheduling order.
"""

from __future__ import annotations

import heapq
import itertools
from typing import Callable, List, Optional, Tuple

from fishon.core.clock import ManualClock, SystemClock


class TimerHandle:
    """A scheduled one-shot or repeating callback."""

    __slots__ = ("deadline", "interval", "callback", "cancelled")

    def __init__(
        self,
        deadline: float,
        callback: Callable[[], None],
        interval: Optional[float] = None
    ):
        self.deadline = deadline
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        """Stop the timer. Safe to call more than once, and from inside callbacks."""
        self.cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else f"due={self.deadline:.3f}"
        return f"TimerHandle({state}, interval={self.interval})"


class TimerScheduler:
    """
    Heap of pending timers driven by an injectable clock.

    Repeating timers catch up: if the clock jumped past several periods, the
    callback runs once per elapsed period.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock if clock is not None else SystemClock()
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def now(self) -> float:
        return self._clock()

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (handle.deadline, next(self._seq), handle))

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once, delay seconds from now."""
        handle = TimerHandle(self.now() + max(0.0, delay), callback)
        self._push(handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback every interval seconds, first after one interval."""
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        handle = TimerHandle(self.now() + interval, callback, interval)
        self._push(handle)
        return handle

    def _next_deadline(self) -> Optional[float]:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0][0] if self._heap else None

    def _fire_next(self) -> None:
        _, _, handle = heapq.heappop(self._heap)
        if handle.repeating:
            handle.deadline += handle.interval
            self._push(handle)
        handle.callback()

    def poll(self) -> int:
        """
        Run every timer due at the current clock time.

        Returns:
            Number of callbacks run.
        """
        fired = 0
        now = self.now()
        while True:
            deadline = self._next_deadline()
            if deadline is None or deadline > now:
                return fired
            self._fire_next()
            fired += 1

    def run_for(self, seconds: float) -> int:
        """
        Advance a ManualClock by seconds, firing timers at their own deadlines.

        Callbacks observe the clock at their scheduled time rather than at the
        end of the window.

        Returns:
            Number of callbacks run.
        """
        if not isinstance(self._clock, ManualClock):
            raise TypeError("run_for() needs a ManualClock; use poll() with real time")

        target = self._clock.now + seconds
        fired = 0
        while True:
            deadline = self._next_deadline()
            if deadline is None or deadline > target:
                break
            if deadline > self._clock.now:
                self._clock.set(deadline)
            self._fire_next()
            fired += 1
        self._clock.set(target)
        return fired

    def cancel_all(self) -> None:
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()

    @property
    def pending(self) -> int:
        """Number of live timers."""
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)
