"""
Tests for weighted loot draws.
"""

import dataclasses

import pytest
from collections import Counter

from fishon.core.config_loader import Rarity, load_config
from fishon.core.fish_catalog import CatalogInvariantError, FishCatalog
from fishon.core.rng import LootTable


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def catalog(config):
    return FishCatalog(config)


class TestTierWeights:
    """Test the per-tier weight formula."""

    def test_level_one_no_luck(self, config):
        table = LootTable(config, seed=0)
        weights = table.tier_weights(1, 0)
        assert weights[Rarity.COMMON] == pytest.approx(37.0)
        assert weights[Rarity.UNCOMMON] == pytest.approx(30.0)
        assert weights[Rarity.RARE] == pytest.approx(16.5)
        assert weights[Rarity.EPIC] == pytest.approx(4.8)
        assert weights[Rarity.LEGENDARY] == pytest.approx(1.5)

    def test_common_weight_floored(self, config):
        """Common weight bottoms out at 10 for high level and luck."""
        table = LootTable(config, seed=0)
        assert table.tier_weights(10, 50)[Rarity.COMMON] == pytest.approx(10.0)

    def test_uncommon_constant(self, config):
        table = LootTable(config, seed=0)
        assert table.tier_weights(1, 0)[Rarity.UNCOMMON] == table.tier_weights(10, 50)[Rarity.UNCOMMON]

    def test_luck_shifts_toward_rare(self, config):
        """Luck lowers common odds and raises rare, epic and legendary odds."""
        table = LootTable(config, seed=0)
        plain = table.tier_probabilities(3, 0)
        lucky = table.tier_probabilities(3, 50)
        assert lucky[Rarity.COMMON] < plain[Rarity.COMMON]
        for rarity in (Rarity.RARE, Rarity.EPIC, Rarity.LEGENDARY):
            assert lucky[rarity] > plain[rarity]

    def test_weights_in_rarity_order(self, config):
        table = LootTable(config, seed=0)
        assert list(table.tier_weights(1, 0)) == list(Rarity)


class TestDraws:
    """Test fish selection."""

    def test_deterministic_with_seed(self, config, catalog):
        """Same seed should produce same sequence."""
        t1 = LootTable(config, catalog, seed=42)
        t2 = LootTable(config, catalog, seed=42)
        assert [t1.draw(3, 10).id for _ in range(50)] == [t2.draw(3, 10).id for _ in range(50)]

    def test_reset_restores_sequence(self, config, catalog):
        table = LootTable(config, catalog, seed=7)
        first = [table.draw(1).id for _ in range(20)]
        table.reset(seed=7)
        assert [table.draw(1).id for _ in range(20)] == first

    def test_only_catalog_fish(self, config, catalog):
        table = LootTable(config, catalog, seed=1)
        for _ in range(200):
            assert table.draw(5, 20).id in catalog

    def test_distribution_converges(self, config, catalog):
        """Tier frequencies over 20k draws match configured weights."""
        table = LootTable(config, catalog, seed=123)
        draws = 20_000
        counts = Counter(table.draw(4, 20).rarity for _ in range(draws))
        expected = table.tier_probabilities(4, 20)
        for rarity in Rarity:
            assert counts[rarity] / draws == pytest.approx(expected[rarity], abs=0.015)

    def test_uniform_within_tier(self, config, catalog):
        """Both common fish show up about equally often."""
        table = LootTable(config, catalog, seed=5)
        counts = Counter()
        for _ in range(10_000):
            fish = table.draw(1, 0)
            if fish.rarity == Rarity.COMMON:
                counts[fish.id] += 1
        total = sum(counts.values())
        assert set(counts) == {"goldfish", "clownfish"}
        assert counts["goldfish"] / total == pytest.approx(0.5, abs=0.03)


class TestCatalogInvariant:
    """Test the empty-tier guard."""

    def test_empty_tier_raises(self, config):
        """Drawing from a tier with no fish is a programmer error."""
        fish = tuple(f for f in config.fish if f.rarity != Rarity.LEGENDARY)
        tiers = tuple(
            dataclasses.replace(
                tier,
                base=1.0 if tier.rarity == Rarity.LEGENDARY else 0.0,
                level_coef=0.0,
                luck_coef=0.0,
                floor=0.0
            )
            for tier in config.loot.tiers
        )
        broken = dataclasses.replace(
            config,
            fish=fish,
            loot=dataclasses.replace(config.loot, tiers=tiers)
        )
        table = LootTable(broken, FishCatalog(broken), seed=0)
        with pytest.raises(CatalogInvariantError):
            table.draw(1, 0)

    def test_zero_weight_tier_never_drawn(self, config, catalog):
        """A tier with zero weight is skipped even on a zero roll."""
        tiers = tuple(
            dataclasses.replace(tier, base=0.0, level_coef=0.0, luck_coef=0.0, floor=0.0)
            if tier.rarity == Rarity.COMMON else tier
            for tier in config.loot.tiers
        )
        tweaked = dataclasses.replace(config, loot=dataclasses.replace(config.loot, tiers=tiers))
        table = LootTable(tweaked, catalog, seed=9)
        for _ in range(2_000):
            assert table.draw(1, 0).rarity != Rarity.COMMON
