"""
Energy Scheduler
================

Recurring tick that converts elapsed wall-clock time into energy units.
"""

from __future__ import annotations

from typing import Optional

from fishon.core.economy import EconomyStore
from fishon.core.timers import TimerHandle, TimerScheduler


class EnergyScheduler:
    """
    Periodically reconciles the store's energy with the clock.

    The scheduler itself keeps no state worth saving: its only effect is the
    energy and refill anchor it writes into the store. Each tick reads the
    store's current state, so upgrades bought mid-session take effect on the
    next tick.
    """

    def __init__(
        self,
        store: EconomyStore,
        timers: TimerScheduler,
        tick_interval: Optional[float] = None
    ):
        self._store = store
        self._timers = timers
        self._tick_interval = (
            tick_interval if tick_interval is not None
            else store.config.energy.tick_interval
        )
        self._handle: Optional[TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def start(self) -> None:
        """Begin ticking. Also reconciles immediately for time spent offline."""
        if self.running:
            return
        self.tick()
        self._handle = self._timers.call_every(self._tick_interval, self.tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def tick(self) -> int:
        """Run one reconcile step. Returns the units added."""
        return self._store.reconcile_energy(self._timers.now())

    def seconds_until_next(self) -> Optional[float]:
        """Countdown to the next unit, or None when energy is full."""
        return self._store.seconds_until_next_energy(self._timers.now())
