"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Tuple, Optional

import yaml


class Rarity(IntEnum):
    """Loot tiers, ordered from most to least common."""
    COMMON = 0
    UNCOMMON = 1
    RARE = 2
    EPIC = 3
    LEGENDARY = 4

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: str) -> "Rarity":
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"Unknown rarity: {value!r}") from None


class CatchMode:
    """Resolution strategies for the catch mini-game."""
    TRACKING = "tracking"
    TIMED_WINDOW = "timed_window"

    ALL = (TRACKING, TIMED_WINDOW)


@dataclass(frozen=True)
class ProgressionConfig:
    """XP thresholds for each level."""
    level_thresholds: Tuple[int, ...]

    @property
    def max_level(self) -> int:
        return len(self.level_thresholds)


@dataclass(frozen=True)
class EnergyConfig:
    """Energy pool and regeneration parameters."""
    base_energy: int
    refill_interval: float       # Seconds per unit at fastRecharge level 0
    tick_interval: float         # Scheduler period
    min_refill_interval: float   # Lower bound after upgrades


@dataclass(frozen=True)
class IncomeConfig:
    """Passive income parameters."""
    seconds_per_hour: float


@dataclass(frozen=True)
class TierWeightConfig:
    """Weight formula for one rarity tier."""
    rarity: Rarity
    base: float
    level_coef: float
    luck_coef: float
    floor: float

    def weight(self, level: int, luck_bonus: float) -> float:
        value = self.base + level * self.level_coef + luck_bonus * self.luck_coef
        return max(value, self.floor, 0.0)


@dataclass(frozen=True)
class LootConfig:
    """Loot tier weights, in rarity order."""
    tiers: Tuple[TierWeightConfig, ...]


@dataclass(frozen=True)
class CatchConfig:
    """Timing and geometry of the catch mini-game."""
    mode: str
    casting_time: float
    wait_min: float
    wait_max: float
    success_display_time: float
    failure_display_time: float
    tick_interval: float

    indicator_start: float
    indicator_min: float
    indicator_max: float
    indicator_base_speed: float
    indicator_speed_per_level: float
    direction_flip_chance: float
    catcher_min: float
    catcher_max: float
    catcher_step: float
    zone_radius: float
    progress_start: float
    progress_gain: float
    progress_loss: float

    sweep_speed: float
    window_half_width: float
    window_width_per_level: float
    window_center_min: float
    window_center_max: float


@dataclass(frozen=True)
class PersistenceConfig:
    """Where and under which key the game state is saved."""
    storage_key: str
    save_dir: str

    @property
    def save_path(self) -> Path:
        return Path(os.path.expanduser(self.save_dir))


@dataclass(frozen=True)
class FishConfig:
    """Configuration for a single fish type."""
    id: str
    name: str
    color: str
    secondary_color: str
    token_reward: int
    xp: int
    hourly_income: int
    rarity: Rarity
    emoji: str


@dataclass(frozen=True)
class UpgradeConfig:
    """Configuration for a single purchasable upgrade."""
    id: str
    name: str
    description: str
    icon: str
    max_level: int
    base_cost: int
    cost_multiplier: float
    effect: float


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    progression: ProgressionConfig
    energy: EnergyConfig
    income: IncomeConfig
    loot: LootConfig
    catch: CatchConfig
    persistence: PersistenceConfig
    fish: Tuple[FishConfig, ...]
    upgrades: Tuple[UpgradeConfig, ...]

    def get_fish(self, fish_id: str) -> FishConfig:
        """Get fish config by ID."""
        for fish in self.fish:
            if fish.id == fish_id:
                return fish
        raise ValueError(f"Invalid fish ID: {fish_id}")

    def get_upgrade(self, upgrade_id: str) -> Optional[UpgradeConfig]:
        """Get upgrade config by ID, or None if unknown."""
        for upgrade in self.upgrades:
            if upgrade.id == upgrade_id:
                return upgrade
        return None


def _parse_fish(fish_data: dict) -> FishConfig:
    """Parse a single fish configuration from YAML."""
    return FishConfig(
        id=str(fish_data["id"]),
        name=str(fish_data["name"]),
        color=str(fish_data["color"]),
        secondary_color=str(fish_data.get("secondary_color", fish_data["color"])),
        token_reward=int(fish_data["token_reward"]),
        xp=int(fish_data["xp"]),
        hourly_income=int(fish_data.get("hourly_income", 0)),
        rarity=Rarity.parse(fish_data["rarity"]),
        emoji=str(fish_data.get("emoji", "")),
    )


def _parse_upgrade(upgrade_data: dict) -> UpgradeConfig:
    """Parse a single upgrade configuration from YAML."""
    return UpgradeConfig(
        id=str(upgrade_data["id"]),
        name=str(upgrade_data["name"]),
        description=str(upgrade_data.get("description", "")),
        icon=str(upgrade_data.get("icon", "")),
        max_level=int(upgrade_data["max_level"]),
        base_cost=int(upgrade_data["base_cost"]),
        cost_multiplier=float(upgrade_data["cost_multiplier"]),
        effect=float(upgrade_data["effect"]),
    )


def _parse_tier(tier_data: dict) -> TierWeightConfig:
    """Parse a loot tier weight formula from YAML."""
    return TierWeightConfig(
        rarity=Rarity.parse(tier_data["rarity"]),
        base=float(tier_data["base"]),
        level_coef=float(tier_data.get("level_coef", 0.0)),
        luck_coef=float(tier_data.get("luck_coef", 0.0)),
        floor=float(tier_data.get("floor", 0.0)),
    )


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    thresholds = config.progression.level_thresholds
    if not thresholds or thresholds[0] != 0:
        raise ValueError(f"level_thresholds must start at 0, got {list(thresholds)}")
    for prev, cur in zip(thresholds, thresholds[1:]):
        if cur <= prev:
            raise ValueError(f"level_thresholds must be strictly ascending, got {list(thresholds)}")

    # Loot tiers cover every rarity exactly once, in order
    tier_rarities = [tier.rarity for tier in config.loot.tiers]
    if tier_rarities != list(Rarity):
        raise ValueError(
            f"loot.tiers must list {[r.label for r in Rarity]} in order, "
            f"got {[r.label for r in tier_rarities]}"
        )

    # Fish ids unique, rewards non-negative, every tier populated
    seen = set()
    for fish in config.fish:
        if fish.id in seen:
            raise ValueError(f"Duplicate fish ID: {fish.id}")
        seen.add(fish.id)
        if fish.token_reward < 0 or fish.xp < 0 or fish.hourly_income < 0:
            raise ValueError(f"Fish {fish.id} has negative rewards")
    for rarity in Rarity:
        if not any(fish.rarity == rarity for fish in config.fish):
            raise ValueError(f"Rarity tier '{rarity.label}' has no fish")

    seen = set()
    for upgrade in config.upgrades:
        if upgrade.id in seen:
            raise ValueError(f"Duplicate upgrade ID: {upgrade.id}")
        seen.add(upgrade.id)
        if upgrade.max_level < 1:
            raise ValueError(f"Upgrade {upgrade.id} must have max_level >= 1")
        if upgrade.base_cost < 0 or upgrade.cost_multiplier <= 0:
            raise ValueError(f"Upgrade {upgrade.id} has invalid cost parameters")

    if config.energy.base_energy < 1:
        raise ValueError(f"base_energy must be >= 1, got {config.energy.base_energy}")
    if config.energy.refill_interval <= 0 or config.energy.min_refill_interval <= 0:
        raise ValueError("Energy refill intervals must be positive")
    if config.energy.tick_interval <= 0:
        raise ValueError("energy.tick_interval must be positive")

    catch = config.catch
    if catch.mode not in CatchMode.ALL:
        raise ValueError(f"catch.mode must be one of {CatchMode.ALL}, got '{catch.mode}'")
    if catch.tick_interval <= 0:
        raise ValueError("catch.tick_interval must be positive")
    if not 0 <= catch.wait_min <= catch.wait_max:
        raise ValueError(f"Invalid wait range [{catch.wait_min}, {catch.wait_max}]")
    if catch.indicator_min >= catch.indicator_max:
        raise ValueError("indicator_min must be below indicator_max")
    if catch.catcher_min >= catch.catcher_max:
        raise ValueError("catcher_min must be below catcher_max")
    if catch.window_center_min > catch.window_center_max:
        raise ValueError("window_center_min must not exceed window_center_max")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    progression = ProgressionConfig(
        level_thresholds=tuple(int(t) for t in raw["progression"]["level_thresholds"])
    )

    energy_data = raw["energy"]
    energy = EnergyConfig(
        base_energy=int(energy_data["base_energy"]),
        refill_interval=float(energy_data["refill_interval"]),
        tick_interval=float(energy_data.get("tick_interval", 1.0)),
        min_refill_interval=float(energy_data.get("min_refill_interval", 30.0))
    )

    income_data = raw.get("income", {})
    income = IncomeConfig(
        seconds_per_hour=float(income_data.get("seconds_per_hour", 3600.0))
    )

    loot = LootConfig(
        tiers=tuple(_parse_tier(t) for t in raw["loot"]["tiers"])
    )

    c = raw["catch"]
    catch = CatchConfig(
        mode=str(c.get("mode", CatchMode.TRACKING)),
        casting_time=float(c["casting_time"]),
        wait_min=float(c["wait_min"]),
        wait_max=float(c["wait_max"]),
        success_display_time=float(c["success_display_time"]),
        failure_display_time=float(c["failure_display_time"]),
        tick_interval=float(c.get("tick_interval", 0.05)),
        indicator_start=float(c.get("indicator_start", 50.0)),
        indicator_min=float(c.get("indicator_min", 10.0)),
        indicator_max=float(c.get("indicator_max", 90.0)),
        indicator_base_speed=float(c.get("indicator_base_speed", 1.5)),
        indicator_speed_per_level=float(c.get("indicator_speed_per_level", 0.1)),
        direction_flip_chance=float(c.get("direction_flip_chance", 0.05)),
        catcher_min=float(c.get("catcher_min", 5.0)),
        catcher_max=float(c.get("catcher_max", 95.0)),
        catcher_step=float(c.get("catcher_step", 8.0)),
        zone_radius=float(c.get("zone_radius", 15.0)),
        progress_start=float(c.get("progress_start", 50.0)),
        progress_gain=float(c.get("progress_gain", 1.5)),
        progress_loss=float(c.get("progress_loss", 2.0)),
        sweep_speed=float(c.get("sweep_speed", 3.0)),
        window_half_width=float(c.get("window_half_width", 8.0)),
        window_width_per_level=float(c.get("window_width_per_level", 0.3)),
        window_center_min=float(c.get("window_center_min", 25.0)),
        window_center_max=float(c.get("window_center_max", 75.0))
    )

    persistence_data = raw.get("persistence", {})
    persistence = PersistenceConfig(
        storage_key=str(persistence_data.get("storage_key", "fishon_gamestate_v2")),
        save_dir=str(persistence_data.get("save_dir", "~/.fishon"))
    )

    config = GameConfig(
        progression=progression,
        energy=energy,
        income=income,
        loot=loot,
        catch=catch,
        persistence=persistence,
        fish=tuple(_parse_fish(f) for f in raw["fish"]),
        upgrades=tuple(_parse_upgrade(u) for u in raw.get("upgrades", []))
    )

    _validate_config(config)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
