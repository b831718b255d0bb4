"""
Catch Resolution
================

State machine for one catch attempt at a time:

    IDLE -> CASTING -> WAITING -> ENGAGING -> SUCCESS | FAILURE -> IDLE

UNAVAILABLE replaces IDLE while the player has no energy.

ENGAGING is the live mini-game, resolved by one of two strategies:

- tracking: the fish indicator wanders on its own and the player steers a
  catcher zone. Progress rises while the zone covers the fish and falls
  otherwise; 100 wins, 0 loses.
- timed_window: the indicator sweeps back and forth and the player commits a
  single attempt, which wins if the indicator is inside the target window.

Motion and progress run on separate repeating timers. Both go through
_resolve(), which checks and sets the attempt's `resolved` flag before doing
anything, so an attempt resolves exactly once. Every timer belonging to an
attempt is cancelled on resolution and on teardown, and callbacks also check
the attempt generation so a late timer can never touch a newer attempt.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from fishon.core.config_loader import CatchConfig, CatchMode
from fishon.core.economy import EconomyStore
from fishon.core.fish_catalog import FishType
from fishon.core.timers import TimerHandle, TimerScheduler

logger = logging.getLogger(__name__)


class CatchPhase(Enum):
    IDLE = "idle"
    UNAVAILABLE = "unavailable"
    CASTING = "casting"
    WAITING = "waiting"
    ENGAGING = "engaging"
    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def is_terminal(self) -> bool:
        return self in (CatchPhase.SUCCESS, CatchPhase.FAILURE)


UP = -1
DOWN = 1


@dataclass
class CatchAttempt:
    """Mutable per-attempt state, shared by the attempt's timers."""
    generation: int
    fish: FishType
    level: int
    indicator: float
    direction: int
    catcher: float = 50.0
    progress: float = 50.0
    window_center: float = 50.0
    window_half_width: float = 0.0
    zone_radius: float = 0.0
    speed: float = 0.0
    resolved: bool = False


PhaseListener = Callable[[CatchPhase, CatchPhase], None]
SuccessListener = Callable[[FishType], None]
FailureListener = Callable[[], None]


class CatchMachine:
    """
    Catch mini-game driven by a TimerScheduler.

    The machine only reads from the store (level, luck, target bonus, energy);
    crediting the catch or spending energy on a miss is up to whoever listens
    to on_success / on_failure.
    """

    def __init__(
        self,
        store: EconomyStore,
        timers: TimerScheduler,
        config: Optional[CatchConfig] = None,
        mode: Optional[str] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize catch machine.

        Args:
            store: Economy store to read level, bonuses and energy from.
            timers: Shared timer scheduler.
            config: Catch parameters. Uses the store's config if None.
            mode: CatchMode.TRACKING or CatchMode.TIMED_WINDOW. Config value if None.
            seed: Random seed for dwell times and indicator motion.
        """
        self._store = store
        self._timers = timers
        self._cfg = config if config is not None else store.config.catch
        self._mode = mode if mode is not None else self._cfg.mode
        if self._mode not in CatchMode.ALL:
            raise ValueError(f"Unknown catch mode: {self._mode}")
        self._rng = random.Random(seed)

        self._phase = CatchPhase.IDLE
        self._attempt: Optional[CatchAttempt] = None
        self._generation = 0
        self._handles: List[TimerHandle] = []       # engaging timers
        self._dwell: Optional[TimerHandle] = None   # casting/waiting/result timer

        self._phase_listeners: List[PhaseListener] = []
        self._success_listeners: List[SuccessListener] = []
        self._failure_listeners: List[FailureListener] = []

        self.refresh_availability()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def on_phase_change(self, listener: PhaseListener) -> None:
        self._phase_listeners.append(listener)

    def on_success(self, listener: SuccessListener) -> None:
        self._success_listeners.append(listener)

    def on_failure(self, listener: FailureListener) -> None:
        self._failure_listeners.append(listener)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def phase(self) -> CatchPhase:
        return self._phase

    @property
    def attempt(self) -> Optional[CatchAttempt]:
        return self._attempt

    @property
    def fish(self) -> Optional[FishType]:
        return self._attempt.fish if self._attempt is not None else None

    @property
    def active_timers(self) -> int:
        """Live timers owned by the current attempt."""
        count = sum(1 for h in self._handles if not h.cancelled)
        if self._dwell is not None and not self._dwell.cancelled:
            count += 1
        return count

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_phase(self, phase: CatchPhase) -> None:
        old = self._phase
        if old == phase:
            return
        self._phase = phase
        logger.debug("Catch phase %s -> %s", old.value, phase.value)
        for listener in list(self._phase_listeners):
            listener(old, phase)

    def _guarded(self, generation: int, callback: Callable[[], None]) -> Callable[[], None]:
        """Wrap a timer callback so it is ignored once its attempt is stale."""
        def run() -> None:
            if generation == self._generation:
                callback()
        return run

    def _cancel_engaging_timers(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    def _cancel_dwell(self) -> None:
        if self._dwell is not None:
            self._dwell.cancel()
            self._dwell = None

    def _idle_phase(self) -> CatchPhase:
        return CatchPhase.IDLE if self._store.can_spend_energy() else CatchPhase.UNAVAILABLE

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def refresh_availability(self) -> None:
        """Move between IDLE and UNAVAILABLE to match current energy."""
        if self._phase in (CatchPhase.IDLE, CatchPhase.UNAVAILABLE):
            self._set_phase(self._idle_phase())

    def start(self) -> bool:
        """
        Cast the line.

        Returns:
            False if an attempt is already running or there is no energy.
        """
        self.refresh_availability()
        if self._phase != CatchPhase.IDLE:
            return False

        self._generation += 1
        self._set_phase(CatchPhase.CASTING)
        self._dwell = self._timers.call_later(
            self._cfg.casting_time,
            self._guarded(self._generation, self._begin_waiting)
        )
        return True

    def _begin_waiting(self) -> None:
        self._set_phase(CatchPhase.WAITING)
        wait = self._rng.uniform(self._cfg.wait_min, self._cfg.wait_max)
        self._dwell = self._timers.call_later(
            wait,
            self._guarded(self._generation, self._begin_engaging)
        )

    def _begin_engaging(self) -> None:
        self._dwell = None
        cfg = self._cfg
        level = self._store.level
        target_bonus = self._store.target_bonus
        fish = self._store.draw_loot()

        attempt = CatchAttempt(
            generation=self._generation,
            fish=fish,
            level=level,
            indicator=cfg.indicator_start,
            direction=1 if self._rng.random() > 0.5 else -1,
            catcher=(cfg.catcher_min + cfg.catcher_max) / 2.0,
            progress=cfg.progress_start,
        )
        gen = self._generation

        if self._mode == CatchMode.TRACKING:
            attempt.speed = cfg.indicator_base_speed + level * cfg.indicator_speed_per_level
            attempt.zone_radius = cfg.zone_radius * (1.0 + target_bonus / 100.0)
            self._attempt = attempt
            self._set_phase(CatchPhase.ENGAGING)
            self._handles = [
                self._timers.call_every(cfg.tick_interval, self._guarded(gen, self._move_indicator)),
                self._timers.call_every(cfg.tick_interval, self._guarded(gen, self._update_progress)),
            ]
        else:
            attempt.indicator = 0.0
            attempt.direction = 1
            attempt.speed = cfg.sweep_speed
            attempt.window_center = self._rng.uniform(cfg.window_center_min, cfg.window_center_max)
            attempt.window_half_width = (
                cfg.window_half_width * (1.0 + target_bonus / 100.0)
                + level * cfg.window_width_per_level
            )
            self._attempt = attempt
            self._set_phase(CatchPhase.ENGAGING)
            self._handles = [
                self._timers.call_every(cfg.tick_interval, self._guarded(gen, self._sweep_indicator)),
            ]

    def _move_indicator(self) -> None:
        """Erratic fish motion, reflecting at the track bounds."""
        attempt = self._attempt
        if attempt is None or attempt.resolved:
            return
        cfg = self._cfg
        if self._rng.random() < cfg.direction_flip_chance:
            attempt.direction *= -1

        position = attempt.indicator + attempt.direction * attempt.speed * (0.5 + self._rng.random())
        if position < cfg.indicator_min:
            position = cfg.indicator_min
            attempt.direction = 1
        if position > cfg.indicator_max:
            position = cfg.indicator_max
            attempt.direction = -1
        attempt.indicator = position

    def _update_progress(self) -> None:
        attempt = self._attempt
        if attempt is None or attempt.resolved:
            return
        cfg = self._cfg
        in_zone = abs(attempt.indicator - attempt.catcher) < attempt.zone_radius
        delta = cfg.progress_gain if in_zone else -cfg.progress_loss
        attempt.progress = max(0.0, min(100.0, attempt.progress + delta))

        if attempt.progress >= 100.0:
            self._resolve(True)
        elif attempt.progress <= 0.0:
            self._resolve(False)

    def _sweep_indicator(self) -> None:
        """Steady back-and-forth sweep across [0, 100]."""
        attempt = self._attempt
        if attempt is None or attempt.resolved:
            return
        position = attempt.indicator + attempt.direction * attempt.speed
        if position <= 0.0:
            position = -position
            attempt.direction = 1
        elif position >= 100.0:
            position = 200.0 - position
            attempt.direction = -1
        attempt.indicator = max(0.0, min(100.0, position))

    def _resolve(self, success: bool) -> bool:
        """Declare the outcome once. Later calls for the same attempt are ignored."""
        attempt = self._attempt
        if attempt is None or attempt.resolved:
            return False
        attempt.resolved = True
        self._cancel_engaging_timers()

        # Arm the result dwell before listeners run, so a listener error
        # cannot leave the machine parked in a terminal phase
        dwell = self._cfg.success_display_time if success else self._cfg.failure_display_time
        self._dwell = self._timers.call_later(dwell, self._guarded(self._generation, self._finish))

        if success:
            self._set_phase(CatchPhase.SUCCESS)
            for listener in list(self._success_listeners):
                listener(attempt.fish)
        else:
            self._set_phase(CatchPhase.FAILURE)
            for listener in list(self._failure_listeners):
                listener()
        return True

    def _finish(self) -> None:
        self._dwell = None
        self._attempt = None
        self._set_phase(self._idle_phase())

    # ------------------------------------------------------------------
    # Player input
    # ------------------------------------------------------------------

    def move(self, direction: Union[int, str]) -> None:
        """Nudge the catcher zone up (-1 / "up") or down (+1 / "down")."""
        attempt = self._attempt
        if self._phase != CatchPhase.ENGAGING or self._mode != CatchMode.TRACKING or attempt is None:
            return
        if isinstance(direction, str):
            direction = UP if direction == "up" else DOWN
        step = self._cfg.catcher_step * (1 if direction > 0 else -1)
        self.set_catcher(attempt.catcher + step)

    def set_catcher(self, position: float) -> None:
        """Place the catcher zone directly (pointer input)."""
        attempt = self._attempt
        if self._phase != CatchPhase.ENGAGING or self._mode != CatchMode.TRACKING or attempt is None:
            return
        attempt.catcher = max(self._cfg.catcher_min, min(self._cfg.catcher_max, float(position)))

    def in_window(self) -> bool:
        """True if the sweeping indicator is inside the target window (edges count)."""
        attempt = self._attempt
        if attempt is None or self._mode != CatchMode.TIMED_WINDOW:
            return False
        return abs(attempt.indicator - attempt.window_center) <= attempt.window_half_width

    def commit(self) -> Optional[bool]:
        """
        Take the single shot of a timed-window attempt.

        Returns:
            True on a catch, False on a miss, None if there was nothing to commit.
        """
        attempt = self._attempt
        if self._phase != CatchPhase.ENGAGING or self._mode != CatchMode.TIMED_WINDOW or attempt is None:
            return None
        success = self.in_window()
        self._resolve(success)
        return success

    def teardown(self) -> None:
        """Cancel everything in flight and return to rest."""
        self._generation += 1
        if self._attempt is not None:
            self._attempt.resolved = True
        self._cancel_engaging_timers()
        self._cancel_dwell()
        self._attempt = None
        self._set_phase(self._idle_phase())
