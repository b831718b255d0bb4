"""
Clocks
======

Wall-clock sources for the engine. Every time-dependent computation reads
"now" through a clock so tests and simulations can drive time by hand.
"""

from __future__ import annotations

import time


class SystemClock:
    """Epoch seconds from the system clock."""

    def __call__(self) -> float:
        return time.time()


class ManualClock:
    """
    Clock that only moves when told to.

    Used by tests and by the balance harness to fast-forward sessions.
    """

    def __init__(self, start: float = 1_700_000_000.0):
        self._now = float(start)

    def __call__(self) -> float:
        return self._now

    @property
    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move time forward and return the new time."""
        if seconds < 0:
            raise ValueError(f"Cannot move a clock backwards ({seconds}s)")
        self._now += seconds
        return self._now

    def set(self, now: float) -> None:
        if now < self._now:
            raise ValueError(f"Cannot move a clock backwards to {now}")
        self._now = float(now)
