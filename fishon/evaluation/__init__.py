"""
Evaluation Package
==================

Contains the balance harness that simulates scripted players against the
economy and reports aggregate statistics.
"""

from fishon.evaluation.run_balance import run_balance, simulate_session, loot_distribution

__all__ = ["run_balance", "simulate_session", "loot_distribution"]
