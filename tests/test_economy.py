"""
Tests for the economy store: catches, income, upgrades and persistence.
"""

import json
import logging

import pytest

from fishon.core.clock import ManualClock
from fishon.core.config_loader import FishConfig, Rarity, load_config
from fishon.core.economy import EconomyStore
from fishon.core.fish_catalog import FishCatalog, FishType
from fishon.core.progression import level_from_xp
from fishon.core.storage import MemoryStorage


KEY = "fishon_gamestate_v2"


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def catalog(config):
    return FishCatalog(config)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(config, catalog, storage, clock):
    return EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog, seed=0)


def make_fish(fish_id="testfish", xp=50, token_reward=5, hourly_income=0):
    """Stand-alone fish type with chosen rewards."""
    return FishType(FishConfig(
        id=fish_id,
        name=fish_id.title(),
        color="#000000",
        secondary_color="#FFFFFF",
        token_reward=token_reward,
        xp=xp,
        hourly_income=hourly_income,
        rarity=Rarity.COMMON,
        emoji=""
    ))


class TestApplyCatch:
    """Test crediting successful catches."""

    def test_five_catches(self, store, config):
        fish = make_fish(xp=50, token_reward=5)
        for _ in range(5):
            store.apply_catch(fish)

        state = store.snapshot()
        assert state.xp == 250
        assert state.tokens == 25
        assert state.total_catches == 5
        assert state.energy == 0
        assert state.level == level_from_xp(250, config.progression.level_thresholds)
        assert len(state.caught_fishes) == 5

    def test_most_recent_first(self, store, catalog):
        store.apply_catch(catalog["goldfish"])
        store.apply_catch(catalog["tuna"])
        assert [cf.fish.id for cf in store.caught_fishes] == ["tuna", "goldfish"]

    def test_energy_floored_at_zero(self, store):
        fish = make_fish()
        for _ in range(8):
            store.apply_catch(fish)
        assert store.energy == 0
        assert not store.can_spend_energy()

    def test_catch_ids_unique(self, store, catalog):
        """Catches at the same instant still get distinct ids."""
        for _ in range(30):
            store.apply_catch(catalog["goldfish"])
        ids = [cf.id for cf in store.caught_fishes]
        assert len(set(ids)) == 30
        timestamp = str(int(store.clock() * 1000))
        for catch_id in ids:
            prefix, salt = catch_id.split("-")
            assert prefix == timestamp
            assert len(salt) == 9

    def test_alias(self, store, catalog):
        store.add_caught_fish(catalog["salmon"])
        assert store.total_catches == 1

    def test_level_up_listener(self, store):
        events = []
        store.on_level_up(lambda old, new: events.append((old, new)))
        store.apply_catch(make_fish(xp=60))
        assert events == []
        store.apply_catch(make_fish(xp=60))
        assert events == [(1, 2)]

    def test_change_listener_and_unsubscribe(self, store, catalog):
        seen = []
        unsubscribe = store.on_change(lambda old, new: seen.append((old.tokens, new.tokens)))
        store.apply_catch(catalog["goldfish"])
        assert seen == [(0, 5)]
        unsubscribe()
        store.apply_catch(catalog["goldfish"])
        assert len(seen) == 1

    def test_snapshot_is_immutable(self, store, catalog):
        before = store.snapshot()
        store.apply_catch(catalog["goldfish"])
        assert before.tokens == 0
        assert store.snapshot() is not before


class TestConsumeEnergy:
    """Test failed-attempt energy use."""

    def test_consume(self, store):
        assert store.consume_energy()
        assert store.energy == 4

    def test_consume_at_zero(self, store):
        for _ in range(5):
            store.consume_energy()
        assert store.consume_energy() is False
        assert store.energy == 0


class TestIncome:
    """Test passive income accrual and collection."""

    def test_hourly_income_sums_catches(self, store, catalog):
        store.apply_catch(catalog["goldfish"])
        store.apply_catch(catalog["tuna"])
        store.apply_catch(catalog["goldfish"])
        assert store.hourly_income == 12

    def test_pending_income_floored(self, store, catalog, clock):
        store.apply_catch(catalog["goldfish"])
        store.apply_catch(catalog["tuna"])
        clock.advance(3600 * 2.5)
        assert store.pending_income == 27

    def test_pending_stable_without_time(self, store, catalog, clock):
        """Reading pending income twice at the same time gives the same value."""
        store.apply_catch(catalog["swordfish"])
        clock.advance(5000)
        assert store.pending_income == store.pending_income

    def test_collect(self, store, catalog, clock):
        store.apply_catch(catalog["tuna"])
        tokens_before = store.tokens
        clock.advance(3600)
        assert store.collect_income() == 10
        assert store.tokens == tokens_before + 10
        assert store.pending_income == 0
        assert store.state.last_income_collect_at == clock()

    def test_collect_nothing(self, store, catalog, clock):
        """Zero pending is a no-op that keeps the anchor."""
        store.apply_catch(catalog["goldfish"])
        anchor = store.state.last_income_collect_at
        clock.advance(60)
        assert store.collect_income() == 0
        assert store.state.last_income_collect_at == anchor


class TestPurchaseUpgrade:
    """Test shop purchases."""

    def test_insufficient_tokens_leaves_state(self, store):
        store.add_debug_tokens(40)
        before = store.snapshot()
        assert store.purchase_upgrade("betterRod") is False
        assert store.snapshot() == before

    def test_purchase(self, store):
        store.add_debug_tokens(50)
        assert store.purchase_upgrade("betterRod")
        assert store.tokens == 0
        assert store.upgrade_level("betterRod") == 1
        assert store.target_bonus == 15
        assert store.current_target_bonus() == 15

    def test_energy_boost_raises_max(self, store):
        store.add_debug_tokens(75)
        assert store.purchase_upgrade("energyBoost")
        assert store.max_energy == 7
        assert store.state.max_energy == 7
        assert store.energy == 5

    def test_maxed_upgrade(self, store):
        store.add_debug_tokens(100_000)
        for _ in range(5):
            assert store.purchase_upgrade("luckyCharm")
        before = store.snapshot()
        assert store.purchase_upgrade("luckyCharm") is False
        assert store.snapshot() == before
        assert store.luck_bonus == 50

    def test_unknown_upgrade(self, store):
        store.add_debug_tokens(1000)
        assert store.purchase_upgrade("goldenHook") is False
        assert store.tokens == 1000

    def test_shop_offers(self, store):
        store.add_debug_tokens(60)
        offers = {offer.upgrade.id: offer for offer in store.shop_offers()}
        assert offers["betterRod"].cost == 50
        assert offers["betterRod"].can_afford
        assert not offers["luckyCharm"].can_afford
        assert not offers["energyBoost"].is_maxed


class TestCollection:
    """Test the per-species catch summary."""

    def test_summary_ordered_by_first_catch(self, store, catalog):
        store.apply_catch(catalog["goldfish"])
        store.apply_catch(catalog["tuna"])
        store.apply_catch(catalog["goldfish"])
        summary = [(entry.fish.id, entry.count) for entry in store.collection_summary()]
        assert summary == [("goldfish", 2), ("tuna", 1)]
        assert store.unique_species == 2


class TestDebugTokens:
    """Test the development token grant."""

    def test_add(self, store):
        store.add_debug_tokens(50)
        assert store.tokens == 50

    def test_negative_rejected(self, store):
        with pytest.raises(ValueError):
            store.add_debug_tokens(-1)
        assert store.tokens == 0


class TestPersistence:
    """Test saving and rehydrating state."""

    def test_every_mutation_persists(self, store, storage, catalog):
        store.apply_catch(catalog["goldfish"])
        saved = json.loads(storage.get(KEY))
        assert saved["tokens"] == 5
        assert saved["caught_fishes"][0]["fish_id"] == "goldfish"

    def test_roundtrip(self, store, config, catalog, storage, clock):
        store.apply_catch(catalog["angelfish"])
        store.add_debug_tokens(100)
        store.purchase_upgrade("energyBoost")
        restored = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert restored.snapshot().to_dict() == store.snapshot().to_dict()
        assert restored.caught_fishes[0].fish == catalog["angelfish"]

    def test_corrupt_blob_uses_defaults(self, config, catalog, clock, caplog):
        storage = MemoryStorage({KEY: "{not json"})
        with caplog.at_level(logging.WARNING):
            store = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert store.tokens == 0
        assert store.energy == config.energy.base_energy
        assert "unreadable" in caplog.text

    def test_non_object_blob_uses_defaults(self, config, catalog, clock):
        storage = MemoryStorage({KEY: "[1, 2, 3]"})
        store = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert store.level == 1

    def test_missing_fields_merge(self, config, catalog, clock):
        storage = MemoryStorage({KEY: json.dumps({"tokens": 42})})
        store = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert store.tokens == 42
        assert store.energy == 5
        assert store.state.last_energy_refill_at == clock()
        assert store.caught_fishes == ()

    def test_stored_level_ignored(self, config, catalog, clock):
        storage = MemoryStorage({KEY: json.dumps({"xp": 400, "level": 9})})
        store = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert store.level == 3

    def test_upgrades_and_energy_clamped(self, config, catalog, clock):
        blob = {"upgrades": {"energyBoost": 99, "ghost": 2}, "energy": 100}
        storage = MemoryStorage({KEY: json.dumps(blob)})
        store = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert store.upgrade_level("energyBoost") == 5
        assert "ghost" not in store.state.upgrades
        assert store.max_energy == 15
        assert store.energy == 15

    def test_unknown_fish_dropped(self, config, catalog, clock):
        blob = {"caught_fishes": [
            {"id": "1-aaaaaaaaa", "fish_id": "kraken", "caught_at": 1.0},
            {"id": "2-bbbbbbbbb", "fish_id": "tuna", "caught_at": 2.0},
        ]}
        storage = MemoryStorage({KEY: json.dumps(blob)})
        store = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert [cf.id for cf in store.caught_fishes] == ["2-bbbbbbbbb"]

    def test_embedded_fish_record_accepted(self, config, catalog, clock):
        """Saves that embed the full fish record still load."""
        blob = {"caught_fishes": [
            {"id": "3-ccccccccc", "fish": {"id": "salmon", "name": "Salmon"}, "caught_at": 3.0},
        ]}
        storage = MemoryStorage({KEY: json.dumps(blob)})
        store = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert store.caught_fishes[0].fish == catalog["salmon"]

    def test_bad_field_types_fall_back(self, config, catalog, clock):
        blob = {"tokens": "lots", "xp": None, "last_income_collect_at": "yesterday"}
        storage = MemoryStorage({KEY: json.dumps(blob)})
        store = EconomyStore(config=config, storage=storage, clock=clock, catalog=catalog)
        assert store.tokens == 0
        assert store.xp == 0
        assert store.state.last_income_collect_at == clock()

    def test_reset_deletes_key(self, store, storage, catalog):
        store.apply_catch(catalog["goldfish"])
        assert KEY in storage
        store.reset_all()
        assert KEY not in storage
        assert store.tokens == 0
        assert store.caught_fishes == ()
        assert store.energy == 5


class FailingStorage(MemoryStorage):
    """Storage whose writes always fail."""

    def set(self, key, value):
        raise OSError("disk full")


class TestSaveFailure:
    """Test that state only changes once it is persisted."""

    def test_failed_save_keeps_state(self, config, catalog, clock):
        store = EconomyStore(config=config, storage=FailingStorage(), clock=clock, catalog=catalog)
        seen = []
        store.on_change(lambda old, new: seen.append(new))
        before = store.snapshot()
        with pytest.raises(OSError):
            store.apply_catch(catalog["tuna"])
        assert store.snapshot() == before
        assert seen == []

    def test_unsubscribe_twice(self, store):
        unsubscribe_change = store.on_change(lambda old, new: None)
        unsubscribe_level = store.on_level_up(lambda old, new: None)
        unsubscribe_change()
        unsubscribe_change()
        unsubscribe_level()
        unsubscribe_level()
