"""
Progression Math
================

Pure functions for levels, XP-bar progress and upgrade pricing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from fishon.core.config_loader import get_config
from fishon.core.fish_catalog import UpgradeType


@dataclass(frozen=True)
class LevelProgress:
    """Progress through the current level's XP span."""
    current: int
    required: int
    percentage: float


def _thresholds(thresholds: Optional[Sequence[int]]) -> Sequence[int]:
    if thresholds is None:
        return get_config().progression.level_thresholds
    return thresholds


def level_from_xp(xp: int, thresholds: Optional[Sequence[int]] = None) -> int:
    """
    Level reached with the given XP.

    Returns the largest i+1 such that xp >= thresholds[i], or 1 below the
    first threshold.
    """
    thresholds = _thresholds(thresholds)
    for i in range(len(thresholds) - 1, -1, -1):
        if xp >= thresholds[i]:
            return i + 1
    return 1


def level_progress(xp: int, thresholds: Optional[Sequence[int]] = None) -> LevelProgress:
    """
    XP-bar progress within the current level.

    At the top tier the span of the last threshold step is used, so the bar
    keeps filling and saturates at 100%.
    """
    thresholds = _thresholds(thresholds)
    level = level_from_xp(xp, thresholds)

    current_threshold = thresholds[level - 1]
    if level < len(thresholds):
        required = thresholds[level] - current_threshold
    elif len(thresholds) > 1:
        required = thresholds[-1] - thresholds[-2]
    else:
        required = 1

    current = xp - current_threshold
    percentage = min(100.0, max(0.0, current / required * 100.0))
    return LevelProgress(current=current, required=required, percentage=percentage)


def upgrade_cost(upgrade: UpgradeType, current_level: int) -> int:
    """
    Price of buying the next level of an upgrade.

    Raises:
        ValueError: If the upgrade is already at max level.
    """
    if current_level < 0 or current_level >= upgrade.max_level:
        raise ValueError(
            f"No next level for {upgrade.id} at level {current_level} "
            f"(max {upgrade.max_level})"
        )
    return int(math.floor(upgrade.base_cost * upgrade.cost_multiplier ** current_level))
