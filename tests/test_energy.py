"""
Tests for energy regeneration.
"""

import random

import pytest

from fishon.core.clock import ManualClock
from fishon.core.config_loader import load_config
from fishon.core.economy import EconomyStore
from fishon.core.energy import EnergyScheduler
from fishon.core.storage import MemoryStorage
from fishon.core.timers import TimerScheduler


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def store(config, clock):
    return EconomyStore(config=config, storage=MemoryStorage(), clock=clock, seed=0)


@pytest.fixture
def timers(clock):
    return TimerScheduler(clock)


def drain(store):
    while store.consume_energy():
        pass


class TestReconcile:
    """Test converting elapsed time into energy units."""

    def test_one_unit_per_interval(self, store, clock):
        drain(store)
        clock.advance(599)
        assert store.reconcile_energy() == 0
        clock.advance(1)
        assert store.reconcile_energy() == 1
        assert store.energy == 1
        assert store.state.last_energy_refill_at == clock()

    def test_capped_at_max(self, store, clock):
        drain(store)
        clock.advance(10 * 3600)
        assert store.reconcile_energy() == 5
        assert store.energy == store.max_energy

    def test_partial_interval_dropped(self, store, clock):
        """The anchor jumps to now, so leftover seconds do not carry over."""
        drain(store)
        clock.advance(1500)
        assert store.reconcile_energy() == 2
        clock.advance(599)
        assert store.reconcile_energy() == 0
        clock.advance(1)
        assert store.reconcile_energy() == 1

    def test_anchor_untouched_at_max(self, store, clock):
        anchor = store.state.last_energy_refill_at
        clock.advance(5000)
        assert store.reconcile_energy() == 0
        assert store.state.last_energy_refill_at == anchor

    def test_fast_recharge(self, store, clock):
        store.add_debug_tokens(80)
        assert store.purchase_upgrade("fastRecharge")
        assert store.refill_interval == pytest.approx(480.0)
        drain(store)
        clock.advance(480)
        assert store.reconcile_energy() == 1

    def test_interval_floor_at_max_recharge(self, store, config):
        """Five levels of 20% would reach zero; the configured minimum applies."""
        store.add_debug_tokens(10_000)
        for _ in range(5):
            assert store.purchase_upgrade("fastRecharge")
        assert store.refill_interval == config.energy.min_refill_interval

    def test_seconds_until_next(self, store, clock):
        assert store.seconds_until_next_energy() is None
        drain(store)
        clock.advance(100)
        assert store.seconds_until_next_energy() == pytest.approx(500.0)

    def test_energy_stays_in_bounds(self, store, clock):
        """Random catches, misses, purchases and waits keep 0 <= energy <= max."""
        rng = random.Random(2024)
        fish = store.catalog["goldfish"]
        store.add_debug_tokens(5000)
        for _ in range(500):
            action = rng.randrange(5)
            if action == 0:
                store.apply_catch(fish)
            elif action == 1:
                store.consume_energy()
            elif action == 2:
                clock.advance(rng.uniform(0, 1500))
                store.reconcile_energy()
            elif action == 3:
                store.purchase_upgrade(rng.choice(["energyBoost", "fastRecharge"]))
            else:
                clock.advance(rng.uniform(0, 60))
            assert 0 <= store.energy <= store.max_energy


class TestEnergyScheduler:
    """Test the recurring regeneration tick."""

    def test_ticks_refill(self, store, timers):
        scheduler = EnergyScheduler(store, timers)
        drain(store)
        scheduler.start()
        assert scheduler.running
        timers.run_for(600)
        assert store.energy == 1

    def test_start_reconciles_offline_time(self, store, timers, clock):
        drain(store)
        clock.advance(1200)
        EnergyScheduler(store, timers).start()
        assert store.energy == 2

    def test_stop(self, store, timers):
        scheduler = EnergyScheduler(store, timers)
        drain(store)
        scheduler.start()
        scheduler.stop()
        assert not scheduler.running
        timers.run_for(6000)
        assert store.energy == 0
        assert timers.pending == 0

    def test_countdown(self, store, timers):
        scheduler = EnergyScheduler(store, timers)
        assert scheduler.seconds_until_next() is None
        drain(store)
        timers.run_for(60)
        assert scheduler.seconds_until_next() == pytest.approx(540.0)

    def test_upgrade_applies_next_tick(self, store, timers):
        """fastRecharge bought mid-session shortens the very next wait."""
        scheduler = EnergyScheduler(store, timers)
        drain(store)
        scheduler.start()
        store.add_debug_tokens(80)
        store.purchase_upgrade("fastRecharge")
        timers.run_for(480)
        assert store.energy == 1
