"""
Fish On Core - The game engine.

This module provides the persistent economy store, energy regeneration,
the catch mini-game state machine and the session that ties them together.

Main exports:
- FishingSession: One play session (store + energy + catch machine)
- EconomyStore: Persistent game state and every mutation on it
- CatchMachine: Catch mini-game state machine
- EnergyScheduler: Energy regeneration tick
- LootTable: Weighted fish draws
- GameConfig: Configuration loaded from game_config.yaml
"""

from fishon.core.config_loader import GameConfig, CatchMode, Rarity, load_config
from fishon.core.fish_catalog import FishType, UpgradeType, FishCatalog, CatalogInvariantError
from fishon.core.progression import LevelProgress, level_from_xp, level_progress, upgrade_cost
from fishon.core.rng import LootTable
from fishon.core.clock import ManualClock, SystemClock
from fishon.core.timers import TimerScheduler, TimerHandle
from fishon.core.state import CaughtFish, GameState
from fishon.core.storage import Storage, MemoryStorage, JsonFileStorage
from fishon.core.economy import EconomyStore, ShopOffer, CollectionEntry
from fishon.core.energy import EnergyScheduler
from fishon.core.catch_machine import CatchMachine, CatchPhase
from fishon.core.game import FishingSession, CatchResult

__all__ = [
    "GameConfig",
    "CatchMode",
    "Rarity",
    "load_config",
    "FishType",
    "UpgradeType",
    "FishCatalog",
    "CatalogInvariantError",
    "LevelProgress",
    "level_from_xp",
    "level_progress",
    "upgrade_cost",
    "LootTable",
    "ManualClock",
    "SystemClock",
    "TimerScheduler",
    "TimerHandle",
    "CaughtFish",
    "GameState",
    "Storage",
    "MemoryStorage",
    "JsonFileStorage",
    "EconomyStore",
    "ShopOffer",
    "CollectionEntry",
    "EnergyScheduler",
    "CatchMachine",
    "CatchPhase",
    "FishingSession",
    "CatchResult",
]
