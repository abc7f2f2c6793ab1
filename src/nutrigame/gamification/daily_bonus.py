"""Daily completion bonus eligibility."""

from __future__ import annotations

from collections.abc import Iterable

from nutrigame.db.models import Mission

MISSION_TYPES: tuple[str, ...] = ("breakfast", "lunch", "dinner", "snack", "workout", "hydration")
PHOTO_MISSION_TYPES: tuple[str, ...] = tuple(t for t in MISSION_TYPES if t != "hydration")

MISSION_XP = 50
HYDRATION_XP_PER_GLASS = 10
MAX_WATER_GLASSES = 5
DAILY_BONUS_XP = 100


def completed_types(missions: Iterable[Mission]) -> set[str]:
    """Mission types counted as done; hydration only with every glass logged."""
    done: set[str] = set()
    for mission in missions:
        if mission.type == "hydration":
            if (mission.water_count or 0) >= MAX_WATER_GLASSES:
                done.add(mission.type)
        else:
            done.add(mission.type)
    return done


def is_eligible_for_daily_bonus(completed: Iterable[str]) -> bool:
    return set(MISSION_TYPES).issubset(completed)
