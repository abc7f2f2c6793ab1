"""Level curve and computation.

Advancing from level n to n+1 costs ``n * 500`` XP, so reaching level n
takes ``500 * n * (n - 1) / 2`` XP in total. These values MUST match the
client's progress bar.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

XP_PER_LEVEL_STEP = 500


@dataclass(frozen=True)
class LevelProgress:
    level: int
    current: int
    required: int
    percentage: float


def xp_required_for_level(level: int) -> int:
    """XP needed to advance FROM ``level`` TO ``level + 1``."""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return level * XP_PER_LEVEL_STEP


def total_xp_to_reach_level(level: int) -> int:
    """Cumulative XP needed to BE at ``level`` (level 1 needs 0)."""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return XP_PER_LEVEL_STEP * level * (level - 1) // 2


def level_for_total_xp(total_xp: int) -> int:
    """Largest level whose cumulative threshold is <= ``total_xp``."""
    if total_xp < 0:
        raise ValueError(f"total_xp must be >= 0, got {total_xp}")
    # Solve 250 * n * (n - 1) <= xp for n, then correct float rounding.
    level = max(1, int((1 + math.sqrt(1 + 8 * total_xp / XP_PER_LEVEL_STEP)) / 2))
    while total_xp_to_reach_level(level + 1) <= total_xp:
        level += 1
    while level > 1 and total_xp_to_reach_level(level) > total_xp:
        level -= 1
    return level


def progress_in_current_level(total_xp: int) -> LevelProgress:
    """XP into the current level, XP the level spans, and the fraction done."""
    level = level_for_total_xp(total_xp)
    current = total_xp - total_xp_to_reach_level(level)
    required = xp_required_for_level(level)
    return LevelProgress(
        level=level,
        current=current,
        required=required,
        percentage=current / required,
    )
