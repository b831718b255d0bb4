"""
Fish Catalog
============

Provides convenient access to fish type and upgrade definitions loaded from config.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from fishon.core.config_loader import (
    GameConfig,
    FishConfig,
    UpgradeConfig,
    Rarity,
    get_config
)


class CatalogInvariantError(RuntimeError):
    """Raised when static catalog data breaks an invariant the engine relies on."""


@dataclass(frozen=True)
class FishType:
    """
    Runtime representation of a fish type.

    Wraps FishConfig with convenience accessors. Instances are shared and
    compared by value, so a fish restored from a save equals the catalog entry.
    """
    config: FishConfig

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def color(self) -> str:
        return self.config.color

    @property
    def secondary_color(self) -> str:
        return self.config.secondary_color

    @property
    def token_reward(self) -> int:
        return self.config.token_reward

    @property
    def xp(self) -> int:
        return self.config.xp

    @property
    def hourly_income(self) -> int:
        return self.config.hourly_income

    @property
    def rarity(self) -> Rarity:
        return self.config.rarity

    @property
    def emoji(self) -> str:
        return self.config.emoji

    def __repr__(self) -> str:
        return f"FishType({self.id}: {self.rarity.label})"


@dataclass(frozen=True)
class UpgradeType:
    """Runtime representation of a purchasable upgrade."""
    config: UpgradeConfig

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def description(self) -> str:
        return self.config.description

    @property
    def icon(self) -> str:
        return self.config.icon

    @property
    def max_level(self) -> int:
        return self.config.max_level

    @property
    def base_cost(self) -> int:
        return self.config.base_cost

    @property
    def cost_multiplier(self) -> float:
        return self.config.cost_multiplier

    @property
    def effect(self) -> float:
        return self.config.effect

    def __repr__(self) -> str:
        return f"UpgradeType({self.id}, max={self.max_level})"


class FishCatalog:
    """
    Collection of all fish types and upgrades.

    Fish are grouped by rarity tier for loot draws; upgrades are looked up by id.
    """

    # Upgrade ids the engine reads effects from
    BETTER_ROD = "betterRod"
    LUCKY_CHARM = "luckyCharm"
    ENERGY_BOOST = "energyBoost"
    FAST_RECHARGE = "fastRecharge"

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize catalog from game config.

        Args:
            config: GameConfig instance. If None, loads from default location.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._fish: Tuple[FishType, ...] = tuple(FishType(f) for f in config.fish)
        self._by_id: Dict[str, FishType] = {f.id: f for f in self._fish}
        self._by_rarity: Dict[Rarity, Tuple[FishType, ...]] = {
            rarity: tuple(f for f in self._fish if f.rarity == rarity)
            for rarity in Rarity
        }
        self._upgrades: Dict[str, UpgradeType] = {
            u.id: UpgradeType(u) for u in config.upgrades
        }

    def __len__(self) -> int:
        """Total number of fish types."""
        return len(self._fish)

    def __getitem__(self, fish_id: str) -> FishType:
        """Get fish type by ID."""
        try:
            return self._by_id[fish_id]
        except KeyError:
            raise KeyError(f"Unknown fish ID: {fish_id}") from None

    def __contains__(self, fish_id: object) -> bool:
        return fish_id in self._by_id

    def __iter__(self) -> Iterator[FishType]:
        """Iterate over all fish types in catalog order."""
        return iter(self._fish)

    @property
    def all_fish(self) -> Tuple[FishType, ...]:
        return self._fish

    @property
    def upgrades(self) -> Tuple[UpgradeType, ...]:
        """All upgrades in catalog order."""
        return tuple(self._upgrades.values())

    def get(self, fish_id: str) -> Optional[FishType]:
        return self._by_id.get(fish_id)

    def by_rarity(self, rarity: Rarity) -> Tuple[FishType, ...]:
        """
        Fish in a rarity tier.

        Raises:
            CatalogInvariantError: If the tier has no members.
        """
        members = self._by_rarity.get(rarity, ())
        if not members:
            raise CatalogInvariantError(f"Rarity tier '{rarity.label}' has no fish")
        return members

    def get_upgrade(self, upgrade_id: str) -> Optional[UpgradeType]:
        """Get upgrade by ID, or None if unknown."""
        return self._upgrades.get(upgrade_id)

    def get_by_name(self, name: str) -> Optional[FishType]:
        """Get fish type by name (case-insensitive)."""
        name_lower = name.lower()
        for fish in self._fish:
            if fish.name.lower() == name_lower:
                return fish
        return None


# Module-level singleton
_cached_catalog: Optional[FishCatalog] = None


def get_catalog(config: Optional[GameConfig] = None) -> FishCatalog:
    """
    Get the fish catalog singleton.

    Args:
        config: Optional config to use. If None, uses cached or default config.

    Returns:
        FishCatalog instance.
    """
    global _cached_catalog
    if _cached_catalog is None or config is not None:
        _cached_catalog = FishCatalog(config)
    return _cached_catalog
