"""User accounts: signup, profile settings and account deletion."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.clock import Clock
from nutrigame.db.models import User
from nutrigame.db.transactions import flush_or_conflict, run_in_transaction
from nutrigame.errors import UserNotFound
from nutrigame.gamification.xp_service import lock_user
from nutrigame.ranking.service import purge_user_entries
from nutrigame.squads.service import decrement_member_count

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "avatar_url", "timezone", "notifications_enabled", "device_token")


async def get_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFound()
    return user


async def create_user(
    db: AsyncSession,
    user_id: str,
    name: str,
    email: str | None = None,
    timezone: str = "UTC",
    *,
    clock: Clock,
) -> User:
    """Create the profile for an authenticated identity. Existing users are returned as is."""

    async def work(db: AsyncSession) -> tuple[User, bool]:
        existing = await db.get(User, user_id)
        if existing is not None:
            return existing, False
        user = User(
            id=user_id,
            name=name.strip(),
            email=email,
            timezone=timezone,
            total_xp=0,
            level=1,
            current_streak=0,
            longest_streak=0,
            is_coach=False,
            notifications_enabled=True,
            created_at=clock.now(),
        )
        db.add(user)
        await flush_or_conflict(db)
        return user, True

    user, created = await run_in_transaction(db, work)
    if created:
        logger.info("User created: %s", user_id)
    return user


async def update_profile(db: AsyncSession, user_id: str, **changes: object) -> User:
    """Apply profile / notification setting changes. Unknown or None values are ignored."""
    unknown = set(changes) - set(PROFILE_FIELDS)
    if unknown:
        raise TypeError(f"Unknown profile fields: {sorted(unknown)}")

    async def work(db: AsyncSession) -> User:
        user = await lock_user(db, user_id)
        for field_name, value in changes.items():
            if value is not None:
                setattr(user, field_name, value)
        return user

    return await run_in_transaction(db, work)


async def delete_user(db: AsyncSession, user_id: str) -> None:
    """Delete an account: leave its squad, purge ranking entries, drop the profile.

    Missions and XP ledger rows are kept as history.
    """

    async def work(db: AsyncSession) -> int:
        user = await lock_user(db, user_id)
        if user.squad_code is not None:
            await decrement_member_count(db, user.squad_code)
        purged = await purge_user_entries(db, user_id)
        await db.execute(delete(User).where(User.id == user_id))
        return purged

    purged = await run_in_transaction(db, work)
    logger.info("User %s deleted (%d ranking entries purged)", user_id, purged)
