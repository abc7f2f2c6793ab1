"""Mission ledger: completion, hydration tracking and daily bonus.

A completion runs as one unit of work: mission insert, XP grant (total,
level, streak, ledger), ranking contribution and daily bonus either all
commit or none do. Push notifications are dispatched after commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.clock import Clock, date_key
from nutrigame.db.models import Mission, User
from nutrigame.db.transactions import flush_or_conflict, run_in_transaction
from nutrigame.errors import (
    AlreadyCompleted,
    InvalidMissionType,
    PhotoNotRequired,
    PhotoRequired,
    UserNotFound,
)
from nutrigame.gamification.daily_bonus import (
    DAILY_BONUS_XP,
    HYDRATION_XP_PER_GLASS,
    MAX_WATER_GLASSES,
    MISSION_TYPES,
    MISSION_XP,
    PHOTO_MISSION_TYPES,
    completed_types,
    is_eligible_for_daily_bonus,
)
from nutrigame.gamification.xp_service import XPGrant, grant_xp, lock_user
from nutrigame.notifications.push import (
    PushDispatcher,
    PushMessage,
    daily_bonus_push,
    level_up_push,
)
from nutrigame.ranking.service import record_xp

logger = logging.getLogger(__name__)


@dataclass
class MissionOutcome:
    mission: Mission
    xp_awarded: int
    bonus_awarded: bool
    total_xp: int
    level: int
    current_streak: int
    pushes: list[PushMessage] = field(default_factory=list)


def mission_id(user_id: str, mission_type: str, day: date) -> str:
    return f"{user_id}_{mission_type}_{date_key(day)}"


async def _load_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFound()
    return user


async def _missions_on(db: AsyncSession, user_id: str, day: date) -> list[Mission]:
    result = await db.execute(
        select(Mission)
        .where(Mission.user_id == user_id, Mission.date == date_key(day))
        .order_by(Mission.completed_at.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _award_daily_bonus(
    db: AsyncSession,
    user_id: str,
    today: date,
    now: datetime,
) -> XPGrant | None:
    """Grant the daily bonus once all six missions are done, at most once per day."""
    user = await lock_user(db, user_id)
    if user.bonus_awarded_date == today:
        return None

    done = completed_types(await _missions_on(db, user_id, today))
    if not is_eligible_for_daily_bonus(done):
        return None

    day = date_key(today)
    grant = await grant_xp(
        db,
        user_id,
        DAILY_BONUS_XP,
        source="daily_bonus",
        source_id=f"{user_id}_{day}",
        description="Daily completion bonus",
        idempotency_key=f"daily_bonus:{user_id}:{day}",
        today=today,
        now=now,
    )
    if not grant.granted:
        return None

    user.bonus_awarded_date = today
    await record_xp(db, user_id, user.squad_code, DAILY_BONUS_XP, None, now=now)
    logger.info("Daily bonus awarded to %s for %s", user_id, day)
    return grant


async def _finish(
    db: AsyncSession,
    user_id: str,
    mission: Mission,
    xp_awarded: int,
    start_level: int,
    today: date,
    now: datetime,
) -> MissionOutcome:
    bonus = await _award_daily_bonus(db, user_id, today, now)
    user = await lock_user(db, user_id)

    pushes: list[PushMessage] = []
    if bonus is not None:
        message = daily_bonus_push(user, DAILY_BONUS_XP)
        if message is not None:
            pushes.append(message)
    if user.level > start_level:
        message = level_up_push(user, user.level)
        if message is not None:
            pushes.append(message)

    return MissionOutcome(
        mission=mission,
        xp_awarded=xp_awarded,
        bonus_awarded=bonus is not None,
        total_xp=user.total_xp,
        level=user.level,
        current_streak=user.current_streak,
        pushes=pushes,
    )


async def complete_mission(
    db: AsyncSession,
    user_id: str,
    mission_type: str,
    photo_url: str | None,
    *,
    clock: Clock,
    push: PushDispatcher | None = None,
) -> MissionOutcome:
    """Record a photo mission for the user's local today and award its XP."""
    if mission_type not in MISSION_TYPES:
        raise InvalidMissionType(f"Unknown mission type: {mission_type}")
    if mission_type == "hydration":
        raise PhotoNotRequired()
    if not photo_url or not photo_url.strip():
        raise PhotoRequired()

    async def work(db: AsyncSession) -> MissionOutcome:
        user = await _load_user(db, user_id)
        now = clock.now()
        today = clock.today(user.timezone)
        start_level = user.level
        mid = mission_id(user_id, mission_type, today)

        if await db.get(Mission, mid) is not None:
            raise AlreadyCompleted()

        mission = Mission(
            id=mid,
            user_id=user_id,
            squad_code=user.squad_code,
            type=mission_type,
            photo_url=photo_url.strip(),
            xp_earned=MISSION_XP,
            completed_at=now,
            date=date_key(today),
        )
        db.add(mission)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise AlreadyCompleted() from exc

        day = date_key(today)
        await grant_xp(
            db,
            user_id,
            MISSION_XP,
            source="mission",
            source_id=mid,
            description=f"Completed {mission_type}",
            idempotency_key=f"mission:{user_id}:{mission_type}:{day}",
            today=today,
            now=now,
        )
        await record_xp(
            db, user_id, user.squad_code, MISSION_XP, mission_type, now=now, mission_date=today
        )
        return await _finish(db, user_id, mission, MISSION_XP, start_level, today, now)

    outcome = await run_in_transaction(db, work)
    logger.info("User %s completed %s (+%d XP)", user_id, mission_type, outcome.xp_awarded)
    if push is not None:
        await push.send_all(outcome.pushes)
    return outcome


async def update_hydration(
    db: AsyncSession,
    user_id: str,
    glasses: int,
    *,
    clock: Clock,
    push: PushDispatcher | None = None,
) -> MissionOutcome:
    """Set today's glass count (clamped to 0..5) and award XP for new glasses only.

    Lowering the count rewrites the record but never takes XP back.
    """
    clamped = max(0, min(MAX_WATER_GLASSES, glasses))

    async def work(db: AsyncSession) -> MissionOutcome:
        user = await _load_user(db, user_id)
        now = clock.now()
        today = clock.today(user.timezone)
        start_level = user.level
        mid = mission_id(user_id, "hydration", today)

        result = await db.execute(
            select(Mission)
            .where(Mission.id == mid)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        mission = result.scalar_one_or_none()
        if mission is None:
            previous = 0
            mission = Mission(
                id=mid,
                user_id=user_id,
                squad_code=user.squad_code,
                type="hydration",
                water_count=clamped,
                xp_earned=clamped * HYDRATION_XP_PER_GLASS,
                completed_at=now,
                date=date_key(today),
            )
            db.add(mission)
            await flush_or_conflict(db)
        else:
            previous = mission.water_count or 0
            mission.water_count = clamped
            mission.xp_earned = clamped * HYDRATION_XP_PER_GLASS
            mission.completed_at = now

        xp_delta = max(0, clamped - previous) * HYDRATION_XP_PER_GLASS
        if xp_delta > 0:
            await grant_xp(
                db,
                user_id,
                xp_delta,
                source="hydration",
                source_id=mid,
                description=f"Hydration {previous} -> {clamped} glasses",
                idempotency_key=None,
                today=today,
                now=now,
            )
            finished = "hydration" if clamped >= MAX_WATER_GLASSES else None
            await record_xp(
                db, user_id, user.squad_code, xp_delta, finished, now=now, mission_date=today
            )

        return await _finish(db, user_id, mission, xp_delta, start_level, today, now)

    outcome = await run_in_transaction(db, work)
    if push is not None:
        await push.send_all(outcome.pushes)
    return outcome


async def get_today_missions(db: AsyncSession, user_id: str, *, clock: Clock) -> list[Mission]:
    user = await _load_user(db, user_id)
    return await _missions_on(db, user_id, clock.today(user.timezone))


async def get_mission_history(db: AsyncSession, user_id: str, limit: int) -> list[Mission]:
    """Most recent photo missions first, for the profile gallery."""
    result = await db.execute(
        select(Mission)
        .where(Mission.user_id == user_id, Mission.type.in_(PHOTO_MISSION_TYPES))
        .order_by(Mission.completed_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
