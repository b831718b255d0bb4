"""
RNG - Weighted Loot Table
=========================

Chooses the fish for a catch attempt. A rarity tier is drawn by cumulative
weight sampling, then a fish is picked uniformly within the tier.
"""

from __future__ import annotations

import random
from typing import Dict, Optional

from fishon.core.config_loader import GameConfig, Rarity, get_config
from fishon.core.fish_catalog import (
    CatalogInvariantError,
    FishCatalog,
    FishType,
    get_catalog
)


class LootTable:
    """
    Level- and luck-scaled loot draws.

    Tier weights come from the loot section of the config; common fish get
    rarer as level and luck grow while rare, epic and legendary fish get more
    likely. Ties on the cumulative weight resolve to the first tier in rarity
    order, which keeps draws reproducible for a given seed.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        catalog: Optional[FishCatalog] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize loot table.

        Args:
            config: Game configuration. Uses default if None.
            catalog: Fish catalog. Built from config if None.
            seed: Random seed for reproducibility. Random if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._catalog = catalog if catalog is not None else get_catalog(config)
        self._rng = random.Random(seed)

    def tier_weights(self, level: int, luck_bonus: float = 0.0) -> Dict[Rarity, float]:
        """Non-negative weight per rarity tier, in rarity order."""
        return {
            tier.rarity: tier.weight(level, luck_bonus)
            for tier in self._config.loot.tiers
        }

    def tier_probabilities(self, level: int, luck_bonus: float = 0.0) -> Dict[Rarity, float]:
        """Normalized tier weights."""
        weights = self.tier_weights(level, luck_bonus)
        total = sum(weights.values())
        return {rarity: weight / total for rarity, weight in weights.items()}

    def draw_rarity(self, level: int, luck_bonus: float = 0.0) -> Rarity:
        """Draw a rarity tier by cumulative weight."""
        weights = self.tier_weights(level, luck_bonus)
        total = sum(weights.values())
        if total <= 0:
            raise CatalogInvariantError("All loot tier weights are zero")

        r = self._rng.random() * total
        cumulative = 0.0
        last = None
        for rarity, weight in weights.items():
            if weight <= 0:
                continue
            cumulative += weight
            last = rarity
            if r <= cumulative:
                return rarity
        # Float accumulation can leave r a hair above the final sum
        return last

    def draw(self, level: int, luck_bonus: float = 0.0) -> FishType:
        """
        Draw a fish for the given level and luck bonus.

        Raises:
            CatalogInvariantError: If the drawn tier has no fish.
        """
        rarity = self.draw_rarity(level, luck_bonus)
        members = self._catalog.by_rarity(rarity)
        return members[self._rng.randrange(len(members))]

    def reset(self, seed: Optional[int] = None) -> None:
        """Reseed the underlying RNG."""
        self._rng = random.Random(seed)
