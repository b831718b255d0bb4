"""
Balance Harness
===============

Fast-forwards simulated play sessions with a scripted player and reports
economy statistics, plus an empirical check of loot tier frequencies.

Usage:
    python -m fishon.evaluation.run_balance [--hours H] [--seeds N] [--skill S]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from fishon.core.catch_machine import CatchPhase
from fishon.core.clock import ManualClock
from fishon.core.config_loader import CatchMode, GameConfig, Rarity, load_config
from fishon.core.game import FishingSession
from fishon.core.rng import LootTable
from fishon.core.storage import MemoryStorage


@dataclass
class SessionResult:
    """Result for a single simulated player."""
    seed: int
    hours: float
    tokens: int
    level: int
    total_catches: int
    attempts: int
    hourly_income: int
    upgrades: Dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        return self.total_catches / self.attempts if self.attempts else 0.0


@dataclass
class BalanceSummary:
    """Summary across all simulated players."""
    mean_tokens: float
    std_tokens: float
    mean_level: float
    median_level: float
    mean_catches: float
    mean_success_rate: float
    mean_hourly_income: float
    total_time: float
    results: List[SessionResult]


class ScriptedPlayer:
    """
    Plays a session the way a diligent human would.

    Casts whenever possible, steers the catcher toward the fish with limited
    accuracy, collects income every hour and buys the cheapest affordable
    upgrade after each collection.
    """

    def __init__(self, session: FishingSession, skill: float = 0.6, seed: Optional[int] = None):
        self._session = session
        self._skill = max(0.0, min(1.0, skill))
        self._rng = np.random.default_rng(seed)
        self._last_collect = session.timers.now()

    def _steer(self) -> None:
        attempt = self._session.catch.attempt
        if attempt is None:
            return
        # Follow the fish, with error shrinking as skill grows
        error = self._rng.normal(0.0, 25.0 * (1.0 - self._skill))
        target = attempt.indicator + error
        current = attempt.catcher
        self._session.catch.set_catcher(current + (target - current) * self._skill)

    def _shoot(self) -> None:
        # Commit with a reaction chance proportional to skill
        if self._session.catch.in_window() and self._rng.random() < self._skill * 0.5:
            self._session.catch.commit()

    def _shop(self) -> None:
        offers = [o for o in self._session.store.shop_offers() if o.can_afford]
        if offers:
            cheapest = min(offers, key=lambda o: o.cost)
            self._session.purchase_upgrade(cheapest.upgrade.id)

    def play(self, hours: float) -> int:
        """
        Run the session for the given simulated time.

        Returns:
            Number of attempts started.
        """
        session = self._session
        timers = session.timers
        tick = session.config.catch.tick_interval
        end = timers.now() + hours * session.config.income.seconds_per_hour
        attempts = 0

        while timers.now() < end:
            now = timers.now()
            if now - self._last_collect >= session.config.income.seconds_per_hour:
                session.collect_income()
                self._last_collect = now
                self._shop()

            phase = session.catch.phase
            if phase == CatchPhase.IDLE:
                if session.cast():
                    attempts += 1
                timers.run_for(tick)
            elif phase == CatchPhase.UNAVAILABLE:
                wait = session.energy.seconds_until_next() or tick
                timers.run_for(min(max(wait, tick), end - now))
            elif phase == CatchPhase.ENGAGING:
                if session.catch.mode == CatchMode.TRACKING:
                    self._steer()
                else:
                    self._shoot()
                timers.run_for(tick)
            else:
                timers.run_for(tick)

        return attempts


def simulate_session(
    config: GameConfig,
    seed: int,
    hours: float,
    skill: float = 0.6,
    mode: Optional[str] = None
) -> SessionResult:
    """Simulate one player from a fresh save."""
    clock = ManualClock()
    with FishingSession(config=config, storage=MemoryStorage(), clock=clock, mode=mode, seed=seed) as session:
        attempts = ScriptedPlayer(session, skill=skill, seed=seed).play(hours)
        state = session.store.state
        return SessionResult(
            seed=seed,
            hours=hours,
            tokens=state.tokens,
            level=state.level,
            total_catches=state.total_catches,
            attempts=attempts,
            hourly_income=session.store.hourly_income,
            upgrades=dict(state.upgrades)
        )


def run_balance(
    config: Optional[GameConfig] = None,
    seeds: Optional[List[int]] = None,
    hours: float = 24.0,
    skill: float = 0.6,
    mode: Optional[str] = None,
    verbose: bool = True
) -> BalanceSummary:
    """
    Simulate one player per seed and aggregate.

    Args:
        config: Game configuration. Uses default if None.
        seeds: Seeds to simulate. range(8) if None.
        hours: Simulated hours per player.
        skill: Scripted player accuracy in [0, 1].
        mode: Catch mode override.
        verbose: If True, print progress.

    Returns:
        BalanceSummary with aggregate statistics.
    """
    if config is None:
        config = load_config()
    if seeds is None:
        seeds = list(range(8))

    if verbose:
        print(f"Simulating {len(seeds)} players for {hours:g}h each...")

    results: List[SessionResult] = []
    total_start = time.time()
    for i, seed in enumerate(seeds):
        result = simulate_session(config, seed, hours, skill=skill, mode=mode)
        results.append(result)
        if verbose:
            print(f"[{i+1}/{len(seeds)}] seed={seed} level={result.level} "
                  f"tokens={result.tokens} catches={result.total_catches}/{result.attempts}")
    total_time = time.time() - total_start

    tokens = np.array([r.tokens for r in results], dtype=np.float64)
    levels = np.array([r.level for r in results], dtype=np.float64)

    summary = BalanceSummary(
        mean_tokens=float(np.mean(tokens)),
        std_tokens=float(np.std(tokens)),
        mean_level=float(np.mean(levels)),
        median_level=float(np.median(levels)),
        mean_catches=float(np.mean([r.total_catches for r in results])),
        mean_success_rate=float(np.mean([r.success_rate for r in results])),
        mean_hourly_income=float(np.mean([r.hourly_income for r in results])),
        total_time=total_time,
        results=results
    )

    if verbose:
        print()
        print("=" * 50)
        print("BALANCE SUMMARY")
        print("=" * 50)
        print(f"Players simulated: {len(seeds)}")
        print(f"Mean tokens:       {summary.mean_tokens:.1f} (std {summary.std_tokens:.1f})")
        print(f"Mean level:        {summary.mean_level:.2f} (median {summary.median_level:.1f})")
        print(f"Mean catches:      {summary.mean_catches:.1f}")
        print(f"Success rate:      {summary.mean_success_rate:.1%}")
        print(f"Hourly income:     {summary.mean_hourly_income:.1f}")
        print(f"Total time:        {total_time:.2f}s")
        print("=" * 50)

    return summary


def loot_distribution(
    config: GameConfig,
    level: int,
    luck_bonus: float = 0.0,
    draws: int = 10_000,
    seed: Optional[int] = None
) -> Dict[str, np.ndarray]:
    """
    Empirical versus configured tier frequencies.

    Returns:
        Dict with "expected" and "observed" arrays in rarity order.
    """
    table = LootTable(config, seed=seed)
    expected = np.array(list(table.tier_probabilities(level, luck_bonus).values()))
    counts = np.zeros(len(Rarity), dtype=np.int64)
    for _ in range(draws):
        counts[table.draw(level, luck_bonus).rarity] += 1
    return {"expected": expected, "observed": counts / draws}


def save_results(summary: BalanceSummary, output_path: str) -> None:
    """Save balance results to JSON."""
    data = {
        "timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        "mean_tokens": summary.mean_tokens,
        "std_tokens": summary.std_tokens,
        "mean_level": summary.mean_level,
        "median_level": summary.median_level,
        "mean_catches": summary.mean_catches,
        "mean_success_rate": summary.mean_success_rate,
        "mean_hourly_income": summary.mean_hourly_income,
        "total_time": summary.total_time,
        "results": [
            {
                "seed": r.seed,
                "hours": r.hours,
                "tokens": r.tokens,
                "level": r.level,
                "total_catches": r.total_catches,
                "attempts": r.attempts,
                "hourly_income": r.hourly_income,
                "upgrades": r.upgrades
            }
            for r in summary.results
        ]
    }

    with open(output_path, "w") as f:
        json.dump(data, f, indent=2)

    print(f"Results saved to {output_path}")


def main():
    parser = argparse.ArgumentParser(description="Simulate Fish On economy balance")
    parser.add_argument("--config", type=str, default=None, help="Path to game_config.yaml")
    parser.add_argument("--hours", type=float, default=24.0, help="Simulated hours per player")
    parser.add_argument("--seeds", type=int, default=8, help="Number of simulated players")
    parser.add_argument("--skill", type=float, default=0.6, help="Scripted player accuracy (0-1)")
    parser.add_argument("--mode", choices=CatchMode.ALL, default=None, help="Catch mode override")
    parser.add_argument("--loot-level", type=int, default=None,
                        help="Also compare loot frequencies at this level")
    parser.add_argument("--output", type=str, default=None, help="Path to save results JSON")
    parser.add_argument("--verbose", action="store_true", help="Show engine log messages")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}")
        return 1

    summary = run_balance(
        config,
        seeds=list(range(args.seeds)),
        hours=args.hours,
        skill=args.skill,
        mode=args.mode
    )

    if args.loot_level is not None:
        dist = loot_distribution(config, args.loot_level, seed=0)
        print()
        print(f"Loot tiers at level {args.loot_level}:")
        for rarity in Rarity:
            print(f"  {rarity.label:<10} expected {dist['expected'][rarity]:6.1%}  "
                  f"observed {dist['observed'][rarity]:6.1%}")

    if args.output:
        save_results(summary, args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
