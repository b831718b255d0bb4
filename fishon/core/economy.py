"""
Economy Store
=============

Owns the single GameState and every operation that changes it.

Each operation reads the current state, builds a replacement and commits it
in one step; the commit persists the new state and notifies listeners.
Precondition failures (no energy, not enough tokens, nothing to collect)
are reported through return values, never exceptions.
"""

from __future__ import annotations

import json
import logging
import math
import random
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple

from fishon.core.clock import SystemClock
from fishon.core.config_loader import GameConfig, get_config
from fishon.core.fish_catalog import FishCatalog, FishType, UpgradeType, get_catalog
from fishon.core.progression import LevelProgress, level_from_xp, level_progress, upgrade_cost
from fishon.core.rng import LootTable
from fishon.core.state import (
    CaughtFish,
    GameState,
    default_state,
    make_catch_id,
    max_energy_for,
    state_from_dict,
)
from fishon.core.storage import MemoryStorage, Storage

logger = logging.getLogger(__name__)

ChangeListener = Callable[[GameState, GameState], None]
LevelUpListener = Callable[[int, int], None]


def _discard(listeners: list, listener: Callable) -> None:
    # Unsubscribing twice is a no-op
    if listener in listeners:
        listeners.remove(listener)


@dataclass(frozen=True)
class ShopOffer:
    """What the shop shows for one upgrade."""
    upgrade: UpgradeType
    level: int
    cost: Optional[int]     # None once maxed
    is_maxed: bool
    can_afford: bool


@dataclass(frozen=True)
class CollectionEntry:
    """How many of one fish type the player has caught."""
    fish: FishType
    count: int


class EconomyStore:
    """
    Persistent progression and economy state.

    Usage:
        store = EconomyStore(storage=JsonFileStorage("~/.fishon"))
        fish = store.draw_loot()
        if store.can_spend_energy():
            store.apply_catch(fish)
        store.collect_income()
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        storage: Optional[Storage] = None,
        clock: Optional[Callable[[], float]] = None,
        catalog: Optional[FishCatalog] = None,
        loot: Optional[LootTable] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the store and rehydrate saved state.

        Args:
            config: Game configuration. Uses default if None.
            storage: Key-value backend. In-memory if None.
            clock: Callable returning epoch seconds. System time if None.
            catalog: Fish catalog. Built from config if None.
            loot: Loot table for draw_loot(). Built from config if None.
            seed: Seed for loot draws and catch ids.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._catalog = catalog if catalog is not None else get_catalog(config)
        self._storage = storage if storage is not None else MemoryStorage()
        self._clock = clock if clock is not None else SystemClock()
        self._loot = loot if loot is not None else LootTable(config, self._catalog, seed)
        self._id_rng = random.Random(seed)
        self._key = config.persistence.storage_key

        self._change_listeners: List[ChangeListener] = []
        self._level_up_listeners: List[LevelUpListener] = []

        self._state: GameState = self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> GameState:
        """Read the saved blob, falling back to defaults field by field."""
        now = self._clock()
        blob = self._storage.get(self._key)
        if blob is None:
            return default_state(self._config, now)

        try:
            raw = json.loads(blob)
        except (TypeError, ValueError) as e:
            logger.warning("Saved game under %r is unreadable, starting fresh: %s", self._key, e)
            return default_state(self._config, now)

        if not isinstance(raw, dict):
            logger.warning("Saved game under %r is not an object, starting fresh", self._key)
            return default_state(self._config, now)

        return state_from_dict(raw, self._config, self._catalog, now)

    def _save(self, state: GameState) -> None:
        self._storage.set(self._key, json.dumps(state.to_dict()))

    def _commit(self, new_state: GameState) -> None:
        """Persist new_state, then make it current. A failed save changes nothing."""
        old_state = self._state
        self._save(new_state)
        self._state = new_state
        for listener in list(self._change_listeners):
            listener(old_state, new_state)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Call listener(old, new) after every committed mutation."""
        self._change_listeners.append(listener)
        return lambda: _discard(self._change_listeners, listener)

    def on_level_up(self, listener: LevelUpListener) -> Callable[[], None]:
        """Call listener(old_level, new_level) when a catch raises the level."""
        self._level_up_listeners.append(listener)
        return lambda: _discard(self._level_up_listeners, listener)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def catalog(self) -> FishCatalog:
        return self._catalog

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    @property
    def state(self) -> GameState:
        """Current state. Immutable, safe to hold on to."""
        return self._state

    def snapshot(self) -> GameState:
        return self._state

    @property
    def tokens(self) -> int:
        return self._state.tokens

    @property
    def xp(self) -> int:
        return self._state.xp

    @property
    def level(self) -> int:
        return self._state.level

    @property
    def energy(self) -> int:
        return self._state.energy

    @property
    def total_catches(self) -> int:
        return self._state.total_catches

    @property
    def caught_fishes(self) -> Tuple[CaughtFish, ...]:
        return self._state.caught_fishes

    def upgrade_level(self, upgrade_id: str) -> int:
        return self._state.upgrade_level(upgrade_id)

    def _upgrade_effect(self, upgrade_id: str) -> float:
        upgrade = self._catalog.get_upgrade(upgrade_id)
        if upgrade is None:
            return 0.0
        return self.upgrade_level(upgrade_id) * upgrade.effect

    @property
    def max_energy(self) -> int:
        """Base energy plus energyBoost levels."""
        return max_energy_for(self._config, self._state.upgrades)

    @property
    def luck_bonus(self) -> float:
        """Loot luck from luckyCharm levels."""
        return self._upgrade_effect(FishCatalog.LUCKY_CHARM)

    @property
    def target_bonus(self) -> float:
        """Percent the catch zone is widened by betterRod levels."""
        return self._upgrade_effect(FishCatalog.BETTER_ROD)

    def current_target_bonus(self) -> float:
        return self.target_bonus

    @property
    def refill_interval(self) -> float:
        """Seconds per energy unit after fastRecharge levels."""
        energy = self._config.energy
        fraction = self._upgrade_effect(FishCatalog.FAST_RECHARGE) / 100.0
        return max(energy.refill_interval * (1.0 - fraction), energy.min_refill_interval)

    @property
    def hourly_income(self) -> int:
        """Sum of hourly income over every caught fish."""
        return sum(cf.fish.hourly_income for cf in self._state.caught_fishes)

    @property
    def pending_income(self) -> int:
        """Income accrued since the last collection, as of now."""
        return self._pending_income_at(self._clock())

    def _pending_income_at(self, now: float) -> int:
        elapsed = max(0.0, now - self._state.last_income_collect_at)
        hours = elapsed / self._config.income.seconds_per_hour
        return int(math.floor(self.hourly_income * hours))

    def level_progress(self) -> LevelProgress:
        return level_progress(self._state.xp, self._config.progression.level_thresholds)

    def can_spend_energy(self) -> bool:
        return self._state.energy > 0

    def draw_loot(self) -> FishType:
        """Draw a fish using the current level and luck bonus."""
        return self._loot.draw(self._state.level, self.luck_bonus)

    def shop_offers(self) -> List[ShopOffer]:
        """Price and availability of every upgrade."""
        offers = []
        for upgrade in self._catalog.upgrades:
            level = self.upgrade_level(upgrade.id)
            is_maxed = level >= upgrade.max_level
            cost = None if is_maxed else upgrade_cost(upgrade, level)
            offers.append(ShopOffer(
                upgrade=upgrade,
                level=level,
                cost=cost,
                is_maxed=is_maxed,
                can_afford=cost is not None and self._state.tokens >= cost
            ))
        return offers

    def collection_summary(self) -> List[CollectionEntry]:
        """Catch counts per fish type, ordered by first catch."""
        counts: Dict[str, int] = {}
        fish_by_id: Dict[str, FishType] = {}
        for cf in reversed(self._state.caught_fishes):
            counts[cf.fish.id] = counts.get(cf.fish.id, 0) + 1
            fish_by_id[cf.fish.id] = cf.fish
        return [CollectionEntry(fish=fish_by_id[fid], count=n) for fid, n in counts.items()]

    @property
    def unique_species(self) -> int:
        return len({cf.fish.id for cf in self._state.caught_fishes})

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _new_catch_id(self, now: float) -> str:
        existing = {cf.id for cf in self._state.caught_fishes}
        catch_id = make_catch_id(now, self._id_rng)
        while catch_id in existing:
            catch_id = make_catch_id(now, self._id_rng)
        return catch_id

    def apply_catch(self, fish: FishType) -> CaughtFish:
        """
        Credit a successful catch.

        The caller must have checked can_spend_energy(); energy is floored at
        zero rather than validated here.
        """
        now = self._clock()
        state = self._state

        xp = state.xp + fish.xp
        level = level_from_xp(xp, self._config.progression.level_thresholds)
        caught = CaughtFish(id=self._new_catch_id(now), fish=fish, caught_at=now)

        self._commit(replace(
            state,
            tokens=state.tokens + fish.token_reward,
            xp=xp,
            level=level,
            energy=max(0, state.energy - 1),
            caught_fishes=(caught,) + state.caught_fishes,
            total_catches=state.total_catches + 1,
        ))

        if level > state.level:
            logger.info("Level up: %d -> %d", state.level, level)
            for listener in list(self._level_up_listeners):
                listener(state.level, level)
        return caught

    add_caught_fish = apply_catch

    def consume_energy(self) -> bool:
        """Spend one energy on a failed attempt. False if there was none."""
        state = self._state
        if state.energy <= 0:
            return False
        self._commit(replace(state, energy=state.energy - 1))
        return True

    def collect_income(self) -> int:
        """
        Move pending income into tokens.

        Returns:
            The amount added, or 0 when nothing was pending.
        """
        now = self._clock()
        amount = self._pending_income_at(now)
        if amount <= 0:
            return 0
        state = self._state
        self._commit(replace(
            state,
            tokens=state.tokens + amount,
            last_income_collect_at=now,
        ))
        return amount

    def purchase_upgrade(self, upgrade_id: str) -> bool:
        """Buy the next level of an upgrade if known, not maxed and affordable."""
        upgrade = self._catalog.get_upgrade(upgrade_id)
        if upgrade is None:
            return False

        state = self._state
        current_level = state.upgrade_level(upgrade_id)
        if current_level >= upgrade.max_level:
            return False

        cost = upgrade_cost(upgrade, current_level)
        if state.tokens < cost:
            return False

        upgrades = dict(state.upgrades)
        upgrades[upgrade_id] = current_level + 1
        self._commit(replace(
            state,
            tokens=state.tokens - cost,
            upgrades=upgrades,
            max_energy=max_energy_for(self._config, upgrades),
        ))
        logger.info("Purchased %s level %d for %d tokens", upgrade_id, current_level + 1, cost)
        return True

    def reconcile_energy(self, now: Optional[float] = None) -> int:
        """
        Turn elapsed time since the refill anchor into energy units.

        At full energy the anchor is left where it is. When units are added
        the anchor moves to now and any partial interval is dropped.

        Returns:
            Units added.
        """
        if now is None:
            now = self._clock()
        state = self._state
        max_energy = self.max_energy
        if state.energy >= max_energy:
            return 0

        elapsed = max(0.0, now - state.last_energy_refill_at)
        units = int(elapsed // self.refill_interval)
        if units <= 0:
            return 0

        energy = min(state.energy + units, max_energy)
        self._commit(replace(
            state,
            energy=energy,
            max_energy=max_energy,
            last_energy_refill_at=now,
        ))
        return energy - state.energy

    def seconds_until_next_energy(self, now: Optional[float] = None) -> Optional[float]:
        """Time left until the next unit, or None at full energy."""
        if now is None:
            now = self._clock()
        if self._state.energy >= self.max_energy:
            return None
        elapsed = max(0.0, now - self._state.last_energy_refill_at)
        return max(0.0, self.refill_interval - elapsed)

    def add_debug_tokens(self, amount: int) -> None:
        """Grant tokens with no gating. Development affordance."""
        if amount < 0:
            raise ValueError(f"Debug token amount must be non-negative, got {amount}")
        state = self._state
        self._commit(replace(state, tokens=state.tokens + int(amount)))

    def reset_all(self) -> None:
        """Restore defaults and delete the saved game."""
        old_state = self._state
        self._storage.delete(self._key)
        self._state = default_state(self._config, self._clock())
        logger.info("Game state reset")
        for listener in list(self._change_listeners):
            listener(old_state, self._state)
