"""
Game State
==========

The persisted player aggregate and its (de)serialization.

GameState is frozen: every mutation builds a new instance with
dataclasses.replace(), so readers never observe a half-applied update.
"""

from __future__ import annotations

import logging
import math
import random
import string
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fishon.core.config_loader import GameConfig
from fishon.core.fish_catalog import FishCatalog, FishType
from fishon.core.progression import level_from_xp

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def make_catch_id(caught_at: float, rng: Optional[random.Random] = None) -> str:
    """Catch id from the capture time in ms plus a 9-char base36 salt."""
    rng = rng or random
    salt = "".join(rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(caught_at * 1000)}-{salt}"


@dataclass(frozen=True)
class CaughtFish:
    """One successful catch. Never mutated once created."""
    id: str
    fish: FishType
    caught_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "fish_id": self.fish.id, "caught_at": self.caught_at}


@dataclass(frozen=True)
class GameState:
    """Complete persisted game state."""
    tokens: int
    xp: int
    level: int
    energy: int
    max_energy: int
    last_energy_refill_at: float
    caught_fishes: Tuple[CaughtFish, ...] = ()
    total_catches: int = 0
    upgrades: Mapping[str, int] = field(default_factory=dict)
    last_income_collect_at: float = 0.0

    def upgrade_level(self, upgrade_id: str) -> int:
        return int(self.upgrades.get(upgrade_id, 0))

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict with exactly the persisted fields."""
        return {
            "tokens": self.tokens,
            "xp": self.xp,
            "level": self.level,
            "energy": self.energy,
            "max_energy": self.max_energy,
            "last_energy_refill_at": self.last_energy_refill_at,
            "caught_fishes": [cf.to_dict() for cf in self.caught_fishes],
            "total_catches": self.total_catches,
            "upgrades": dict(self.upgrades),
            "last_income_collect_at": self.last_income_collect_at,
        }


def max_energy_for(config: GameConfig, upgrades: Mapping[str, int]) -> int:
    """Base energy plus the energyBoost bonus."""
    boost = config.get_upgrade(FishCatalog.ENERGY_BOOST)
    level = int(upgrades.get(FishCatalog.ENERGY_BOOST, 0))
    per_level = int(boost.effect) if boost is not None else 0
    return config.energy.base_energy + level * per_level


def default_state(config: GameConfig, now: Optional[float] = None) -> GameState:
    """Fresh state for a new player."""
    if now is None:
        now = time.time()
    base = config.energy.base_energy
    return GameState(
        tokens=0,
        xp=0,
        level=1,
        energy=base,
        max_energy=base,
        last_energy_refill_at=now,
        caught_fishes=(),
        total_catches=0,
        upgrades={},
        last_income_collect_at=now,
    )


def _as_int(value: Any, default: int, minimum: int = 0) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, result)


def _as_time(value: Any, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def _parse_caught(raw: Any, catalog: FishCatalog) -> Tuple[CaughtFish, ...]:
    if not isinstance(raw, list):
        return ()
    caught: List[CaughtFish] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        fish_id = entry.get("fish_id")
        # Saves written by older builds embedded the whole fish record
        if fish_id is None and isinstance(entry.get("fish"), dict):
            fish_id = entry["fish"].get("id")
        fish = catalog.get(fish_id) if isinstance(fish_id, str) else None
        if fish is None:
            logger.warning("Dropping saved catch with unknown fish id %r", fish_id)
            continue
        caught_at = _as_time(entry.get("caught_at"), 0.0)
        catch_id = entry.get("id")
        if not isinstance(catch_id, str) or not catch_id:
            catch_id = make_catch_id(caught_at)
        caught.append(CaughtFish(id=catch_id, fish=fish, caught_at=caught_at))
    return tuple(caught)


def _parse_upgrades(raw: Any, config: GameConfig) -> Dict[str, int]:
    if not isinstance(raw, dict):
        return {}
    upgrades: Dict[str, int] = {}
    for upgrade_id, level in raw.items():
        upgrade = config.get_upgrade(upgrade_id)
        if upgrade is None:
            logger.warning("Ignoring saved level for unknown upgrade %r", upgrade_id)
            continue
        upgrades[upgrade_id] = min(_as_int(level, 0), upgrade.max_level)
    return upgrades


def state_from_dict(
    raw: Mapping[str, Any],
    config: GameConfig,
    catalog: FishCatalog,
    now: Optional[float] = None
) -> GameState:
    """
    Merge a saved record onto defaults.

    Missing or malformed fields fall back to defaults one by one. The level
    and max energy are always recomputed, never trusted from the save.
    """
    defaults = default_state(config, now)

    upgrades = _parse_upgrades(raw.get("upgrades"), config)
    max_energy = max_energy_for(config, upgrades)
    xp = _as_int(raw.get("xp"), defaults.xp)
    energy = min(_as_int(raw.get("energy"), defaults.energy), max_energy)

    return GameState(
        tokens=_as_int(raw.get("tokens"), defaults.tokens),
        xp=xp,
        level=level_from_xp(xp, config.progression.level_thresholds),
        energy=energy,
        max_energy=max_energy,
        last_energy_refill_at=_as_time(
            raw.get("last_energy_refill_at"), defaults.last_energy_refill_at
        ),
        caught_fishes=_parse_caught(raw.get("caught_fishes"), catalog),
        total_catches=_as_int(raw.get("total_catches"), defaults.total_catches),
        upgrades=upgrades,
        last_income_collect_at=_as_time(
            raw.get("last_income_collect_at"), defaults.last_income_collect_at
        ),
    )
