"""Streak continuity rules.

All dates are calendar days in the user's own timezone. Only XP-earning
events advance the streak; a second completion on the same day leaves it
unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    last_completed_date: date


def should_increment(last: date | None, today: date) -> bool:
    """True when the last completion was exactly yesterday."""
    return last is not None and last == today - timedelta(days=1)


def is_already_counted_today(last: date | None, today: date) -> bool:
    return last is not None and last == today


def resulting_streak(current: int, last: date | None, today: date) -> int:
    if is_already_counted_today(last, today):
        return current
    if should_increment(last, today):
        return current + 1
    return 1


def apply_completion(
    current: int,
    longest: int,
    last: date | None,
    today: date,
) -> StreakUpdate:
    """Streak state after an XP-earning event on ``today``."""
    streak = resulting_streak(current, last, today)
    return StreakUpdate(
        current_streak=streak,
        longest_streak=max(longest, streak),
        last_completed_date=today,
    )
