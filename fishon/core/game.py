"""
Fishing Session
===============

Main orchestrator combining the economy store, energy regeneration and the
catch mini-game on one timer scheduler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from fishon.core.catch_machine import CatchMachine
from fishon.core.clock import SystemClock
from fishon.core.config_loader import GameConfig, get_config
from fishon.core.economy import EconomyStore
from fishon.core.energy import EnergyScheduler
from fishon.core.fish_catalog import FishType
from fishon.core.state import CaughtFish, GameState
from fishon.core.storage import Storage
from fishon.core.timers import TimerScheduler

logger = logging.getLogger(__name__)


@dataclass
class CatchResult:
    """Outcome of one resolved attempt."""
    success: bool
    fish: FishType
    caught: Optional[CaughtFish]
    leveled_up: bool


class FishingSession:
    """
    One play session.

    Wires the pieces together:
    - EconomyStore (persistent state)
    - EnergyScheduler (regeneration tick)
    - CatchMachine (mini-game)

    A successful catch is credited to the store exactly once; a failed one
    still spends energy. The owner drives time by calling poll() (real time)
    or timers.run_for() (manual clock), and calls close() when done.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        storage: Optional[Storage] = None,
        clock: Optional[Callable[[], float]] = None,
        mode: Optional[str] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize session.

        Args:
            config: Game configuration. Uses default if None.
            storage: Save backend. In-memory if None.
            clock: Time source shared by every component. System time if None.
            mode: Catch resolution mode. Config value if None.
            seed: Random seed for loot and mini-game motion.
        """
        if config is None:
            config = get_config()
        if clock is None:
            clock = SystemClock()

        self._config = config
        self.timers = TimerScheduler(clock)
        self.store = EconomyStore(config=config, storage=storage, clock=clock, seed=seed)
        self.energy = EnergyScheduler(self.store, self.timers)
        self.catch = CatchMachine(
            self.store,
            self.timers,
            mode=mode,
            seed=None if seed is None else seed + 1
        )

        self._results: List[CatchResult] = []
        self._closed = False

        self.catch.on_success(self._handle_success)
        self.catch.on_failure(self._handle_failure)
        self._unsubscribe = self.store.on_change(self._handle_state_change)

        self.energy.start()

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def results(self) -> List[CatchResult]:
        """Resolved attempts this session, oldest first."""
        return list(self._results)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _handle_success(self, fish: FishType) -> None:
        level_before = self.store.level
        caught = self.store.apply_catch(fish)
        self._results.append(CatchResult(
            success=True,
            fish=fish,
            caught=caught,
            leveled_up=self.store.level > level_before
        ))

    def _handle_failure(self) -> None:
        fish = self.catch.fish
        self.store.consume_energy()
        if fish is not None:
            self._results.append(CatchResult(success=False, fish=fish, caught=None, leveled_up=False))

    def _handle_state_change(self, old: GameState, new: GameState) -> None:
        if old.energy != new.energy:
            self.catch.refresh_availability()

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def cast(self) -> bool:
        return self.catch.start()

    def collect_income(self) -> int:
        return self.store.collect_income()

    def purchase_upgrade(self, upgrade_id: str) -> bool:
        bought = self.store.purchase_upgrade(upgrade_id)
        if bought:
            # A bigger pool or faster recharge may pay out right away
            self.energy.tick()
        return bought

    def reset_all(self) -> None:
        self.catch.teardown()
        self.store.reset_all()
        self._results.clear()
        self.catch.refresh_availability()

    def poll(self) -> int:
        """Fire due timers against the real clock."""
        return self.timers.poll()

    def close(self) -> None:
        """Cancel every timer; state on disk is already current."""
        if self._closed:
            return
        self.catch.teardown()
        self.energy.stop()
        self._unsubscribe()
        self._closed = True
        logger.debug("Session closed")

    def __enter__(self) -> "FishingSession":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def get_info(self) -> Dict[str, Any]:
        """Flat summary for status lines and logs."""
        store = self.store
        progress = store.level_progress()
        return {
            "tokens": store.tokens,
            "level": store.level,
            "xp": store.xp,
            "xp_percentage": progress.percentage,
            "energy": store.energy,
            "max_energy": store.max_energy,
            "next_energy_in": self.energy.seconds_until_next(),
            "hourly_income": store.hourly_income,
            "pending_income": store.pending_income,
            "total_catches": store.total_catches,
            "unique_species": store.unique_species,
            "phase": self.catch.phase.value,
        }
