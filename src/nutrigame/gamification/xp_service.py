"""XP grant service with idempotency, level recompute and streak update."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.db.models import User, XPLedger
from nutrigame.db.transactions import flush_or_conflict
from nutrigame.errors import UserNotFound
from nutrigame.gamification.levels import level_for_total_xp
from nutrigame.gamification.streaks import apply_completion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class XPGrant:
    granted: bool
    amount: int
    total_xp: int
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


async def lock_user(db: AsyncSession, user_id: str) -> User:
    """Load the user row for update, refreshing any stale identity-map copy."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFound()
    return user


async def grant_xp(
    db: AsyncSession,
    user_id: str,
    amount: int,
    source: str,
    source_id: str | None,
    description: str,
    idempotency_key: str | None,
    *,
    today: date,
    now: datetime,
) -> XPGrant:
    """Grant XP to a user inside the caller's transaction.

    1. Skip if the idempotency key was already used
    2. Atomically increment users.total_xp (takes the row lock)
    3. Recompute level from the new total
    4. Advance the streak for ``today`` (user's local day)
    5. Append to xp_ledger
    """
    if idempotency_key is not None:
        existing = await db.execute(
            select(XPLedger.id).where(XPLedger.idempotency_key == idempotency_key)
        )
        if existing.scalar_one_or_none() is not None:
            user = await lock_user(db, user_id)
            return XPGrant(False, 0, user.total_xp, user.level, user.level)

    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_xp=User.total_xp + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise UserNotFound()

    user = await lock_user(db, user_id)
    old_level = user.level
    user.level = level_for_total_xp(user.total_xp)

    streak = apply_completion(
        user.current_streak, user.longest_streak, user.last_completed_date, today
    )
    user.current_streak = streak.current_streak
    user.longest_streak = streak.longest_streak
    user.last_completed_date = streak.last_completed_date

    db.add(
        XPLedger(
            user_id=user_id,
            amount=amount,
            source=source,
            source_id=source_id,
            description=description,
            idempotency_key=idempotency_key,
            created_at=now,
        )
    )
    await flush_or_conflict(db)

    grant = XPGrant(True, amount, user.total_xp, old_level, user.level)
    if grant.leveled_up:
        logger.info("User %s leveled up %d -> %d", user_id, old_level, user.level)
    return grant
