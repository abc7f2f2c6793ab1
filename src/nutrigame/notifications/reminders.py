"""Reminder notifications evaluated in each user's local time.

The hourly job runs at minute 0 UTC and sends whatever reminder matches
the user's local hour; the streak warning job runs at minute 30.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nutrigame.clock import Clock, date_key
from nutrigame.db.models import Mission, User
from nutrigame.gamification.daily_bonus import DAILY_BONUS_XP, MISSION_TYPES, completed_types
from nutrigame.notifications.push import PushDispatcher, PushMessage

logger = logging.getLogger(__name__)

MEAL_REMINDERS: dict[int, tuple[str, str, str]] = {
    9: ("breakfast", "Good morning!", "Log your breakfast and earn 50 XP!"),
    13: ("lunch", "Lunch time!", "Don't forget to log your lunch!"),
    19: ("dinner", "Dinner time!", "Complete your dinner mission!"),
}
DAILY_SUMMARY_HOUR = 21
STREAK_WARNING_HOUR = 21
STREAK_WARNING_MIN_DAYS = 3


def hourly_reminder_for(
    user: User,
    local_now: datetime,
    missions: Sequence[Mission],
) -> PushMessage | None:
    """Meal reminder or daily summary due at this local hour, if any."""
    done = completed_types(missions)

    meal = MEAL_REMINDERS.get(local_now.hour)
    if meal is not None:
        mission_type, title, body = meal
        if mission_type in done:
            return None
        return PushMessage(user.device_token, title, body, {"type": f"{mission_type}_reminder"})

    if local_now.hour == DAILY_SUMMARY_HOUR:
        total = len(MISSION_TYPES)
        remaining = total - len(done)
        if remaining <= 0:
            return None
        body = f"You completed {len(done)}/{total} missions. {remaining} to go!"
        if remaining <= 2:
            body += f" You're close to the {DAILY_BONUS_XP} XP bonus!"
        return PushMessage(user.device_token, "Daily summary", body, {"type": "daily_summary"})

    return None


def streak_warning_for(
    user: User,
    local_now: datetime,
    missions: Sequence[Mission],
) -> PushMessage | None:
    if local_now.hour != STREAK_WARNING_HOUR:
        return None
    if user.current_streak < STREAK_WARNING_MIN_DAYS or missions:
        return None
    return PushMessage(
        user.device_token,
        "Your streak is at risk!",
        f"You have a {user.current_streak}-day streak. Complete a mission to keep it!",
        {"type": "streak_warning"},
    )


async def _reachable_users(db: AsyncSession) -> list[User]:
    result = await db.execute(
        select(User).where(
            User.notifications_enabled.is_(True),
            User.device_token.is_not(None),
        )
    )
    return list(result.scalars().all())


async def _missions_today(db: AsyncSession, user: User, local_now: datetime) -> list[Mission]:
    result = await db.execute(
        select(Mission).where(
            Mission.user_id == user.id,
            Mission.date == date_key(local_now.date()),
        )
    )
    return list(result.scalars().all())


async def send_hourly_reminders(
    session_factory: async_sessionmaker[AsyncSession],
    push: PushDispatcher,
    *,
    clock: Clock,
) -> int:
    """Send meal reminders and daily summaries due at each user's local hour."""
    messages: list[PushMessage] = []
    async with session_factory() as db:
        for user in await _reachable_users(db):
            local_now = clock.local_now(user.timezone)
            if local_now.hour not in MEAL_REMINDERS and local_now.hour != DAILY_SUMMARY_HOUR:
                continue
            message = hourly_reminder_for(user, local_now, await _missions_today(db, user, local_now))
            if message is not None:
                messages.append(message)

    sent = await push.send_all(messages)
    logger.info("Sent %d/%d hourly reminders", sent, len(messages))
    return sent


async def send_streak_warnings(
    session_factory: async_sessionmaker[AsyncSession],
    push: PushDispatcher,
    *,
    clock: Clock,
) -> int:
    """Warn users with a streak worth keeping who have nothing logged today."""
    messages: list[PushMessage] = []
    async with session_factory() as db:
        for user in await _reachable_users(db):
            local_now = clock.local_now(user.timezone)
            if local_now.hour != STREAK_WARNING_HOUR or user.current_streak < STREAK_WARNING_MIN_DAYS:
                continue
            message = streak_warning_for(user, local_now, await _missions_today(db, user, local_now))
            if message is not None:
                messages.append(message)

    sent = await push.send_all(messages)
    logger.info("Sent %d/%d streak warnings", sent, len(messages))
    return sent
