"""Squad business logic.

Rules:
- One squad per user; joining or creating another squad leaves the current one
- Capacity is ``max_members`` (default 100), enforced by a conditional increment
- ``member_count`` is only ever moved by atomic increment / decrement
- Only the owner can delete a squad; deletion clears every member's squad
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.clock import Clock
from nutrigame.config import get_settings
from nutrigame.db.models import Squad, User
from nutrigame.db.transactions import flush_or_conflict, run_in_transaction
from nutrigame.errors import NotOwner, SquadFull, SquadNotFound
from nutrigame.gamification.xp_service import lock_user
from nutrigame.squads.codes import generate_unique_squad_code, normalize_squad_code

logger = logging.getLogger(__name__)


async def _fetch_squad(db: AsyncSession, code: str) -> Squad:
    result = await db.execute(
        select(Squad).where(Squad.code == code).execution_options(populate_existing=True)
    )
    squad = result.scalar_one_or_none()
    if squad is None:
        raise SquadNotFound()
    return squad


async def decrement_member_count(db: AsyncSession, code: str) -> None:
    await db.execute(
        update(Squad)
        .where(Squad.code == code, Squad.member_count > 0)
        .values(member_count=Squad.member_count - 1)
        .execution_options(synchronize_session=False)
    )


async def get_squad(db: AsyncSession, code: str) -> Squad:
    return await _fetch_squad(db, normalize_squad_code(code))


async def get_squad_members(db: AsyncSession, code: str) -> list[User]:
    squad = await get_squad(db, code)
    result = await db.execute(
        select(User).where(User.squad_code == squad.code).order_by(User.name.asc(), User.id.asc())
    )
    return list(result.scalars().all())


async def create_squad(db: AsyncSession, name: str, owner_id: str, *, clock: Clock) -> Squad:
    """Create a squad; the creator becomes its coach and only member."""
    settings = get_settings()

    async def work(db: AsyncSession) -> Squad:
        owner = await lock_user(db, owner_id)
        if owner.squad_code is not None:
            await decrement_member_count(db, owner.squad_code)

        code = await generate_unique_squad_code(db, settings.squad_code_max_attempts)
        squad = Squad(
            code=code,
            name=name.strip(),
            owner_user_id=owner_id,
            member_count=1,
            max_members=settings.squad_default_max_members,
            created_at=clock.now(),
        )
        db.add(squad)
        await flush_or_conflict(db)

        owner.squad_code = code
        owner.is_coach = True
        return squad

    squad = await run_in_transaction(db, work)
    logger.info("Squad created: %s (code=%s, owner=%s)", squad.name, squad.code, owner_id)
    return squad


async def join_squad(db: AsyncSession, user_id: str, code: str) -> Squad:
    """Join a squad by code, leaving any previous squad."""
    code = normalize_squad_code(code)

    async def work(db: AsyncSession) -> Squad:
        user = await lock_user(db, user_id)
        squad = await _fetch_squad(db, code)
        if user.squad_code == code:
            return squad

        result = await db.execute(
            update(Squad)
            .where(Squad.code == code, Squad.member_count < Squad.max_members)
            .values(member_count=Squad.member_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise SquadFull(f"This squad is full ({squad.max_members} members maximum)")

        if user.squad_code is not None:
            await decrement_member_count(db, user.squad_code)
        user.squad_code = code
        return await _fetch_squad(db, code)

    squad = await run_in_transaction(db, work)
    logger.info("User %s joined squad %s", user_id, code)
    return squad


async def leave_squad(db: AsyncSession, user_id: str) -> None:
    """Leave the current squad; no-op when the user has none."""

    async def work(db: AsyncSession) -> str | None:
        user = await lock_user(db, user_id)
        previous = user.squad_code
        if previous is None:
            return None
        await decrement_member_count(db, previous)
        user.squad_code = None
        return previous

    previous = await run_in_transaction(db, work)
    if previous is not None:
        logger.info("User %s left squad %s", user_id, previous)


async def delete_squad(db: AsyncSession, code: str, requester_id: str) -> None:
    """Delete a squad (owner only), removing every member from it first."""
    code = normalize_squad_code(code)

    async def work(db: AsyncSession) -> int:
        squad = await _fetch_squad(db, code)
        if squad.owner_user_id != requester_id:
            raise NotOwner()
        result = await db.execute(
            update(User)
            .where(User.squad_code == code)
            .values(squad_code=None)
        )
        await db.execute(delete(Squad).where(Squad.code == code))
        return result.rowcount or 0

    removed = await run_in_transaction(db, work)
    logger.info("Squad %s deleted by %s (%d members removed)", code, requester_id, removed)
