"""Weekly squad ranking aggregation.

Each squad has one ranking document per ISO week holding one entry per
contributing user. Contributions are atomic increments on ``weekly_xp``;
the first contribution of a week creates the week document and the entry.
A concurrent first contribution loses at insert time and the caller's unit
of work is retried, at which point the increment path applies.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nutrigame.clock import date_key, resolve_timezone
from nutrigame.db.models import RankingEntry, RankingEntryMission, Squad, User, WeeklyRanking
from nutrigame.db.transactions import flush_or_conflict, run_in_transaction
from nutrigame.notifications.push import PushDispatcher, PushMessage, weekly_winner_push
from nutrigame.ranking.week_utils import (
    get_next_week_start,
    get_week_boundaries,
    get_week_id,
    ranking_id,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedEntry:
    position: int
    user_id: str
    name: str
    avatar_url: str | None
    weekly_xp: int
    today_missions: frozenset[str] = field(default_factory=frozenset)


@dataclass
class RolloverReport:
    closing_week_id: str
    next_week_id: str
    processed: int = 0
    failed: list[str] = field(default_factory=list)
    winners: dict[str, str] = field(default_factory=dict)


def _ordered(stmt: Select) -> Select:
    return stmt.execution_options(populate_existing=True).order_by(
        RankingEntry.weekly_xp.desc(),
        RankingEntry.created_at.asc(),
        RankingEntry.user_id.asc(),
    )


async def ensure_week(db: AsyncSession, squad_code: str, at: datetime) -> WeeklyRanking:
    """Get or create the ranking document for the week containing ``at``."""
    week_id = get_week_id(at)
    rid = ranking_id(squad_code, week_id)
    ranking = await db.get(WeeklyRanking, rid)
    if ranking is not None:
        return ranking

    week_start, week_end = get_week_boundaries(at)
    ranking = WeeklyRanking(
        id=rid,
        squad_code=squad_code,
        week_id=week_id,
        week_start=week_start,
        week_end=week_end,
        created_at=at,
    )
    db.add(ranking)
    await flush_or_conflict(db)
    return ranking


async def record_xp(
    db: AsyncSession,
    user_id: str,
    squad_code: str | None,
    amount: int,
    mission_type: str | None,
    *,
    now: datetime,
    mission_date: date | None = None,
) -> None:
    """Add ``amount`` to the user's entry for the current week.

    ``mission_type`` (if any) is marked done on ``mission_date``, the
    user's local day (derived from ``now`` and the user's timezone when
    omitted). Runs inside the caller's transaction.
    """
    if amount < 0:
        raise ValueError(f"amount must be >= 0, got {amount}")
    if squad_code is None or (amount == 0 and mission_type is None):
        return

    rid = ranking_id(squad_code, get_week_id(now))

    result = await db.execute(
        update(RankingEntry)
        .where(RankingEntry.ranking_id == rid, RankingEntry.user_id == user_id)
        .values(weekly_xp=RankingEntry.weekly_xp + amount, last_updated=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await ensure_week(db, squad_code, now)
        user = await db.get(User, user_id)
        db.add(
            RankingEntry(
                ranking_id=rid,
                user_id=user_id,
                name=user.name if user else "",
                avatar_url=user.avatar_url if user else None,
                weekly_xp=amount,
                created_at=now,
                last_updated=now,
            )
        )
        await flush_or_conflict(db)

    if mission_type is not None:
        if mission_date is None:
            user = await db.get(User, user_id)
            mission_date = _local_today(user.timezone if user else None, now)
        day = date_key(mission_date)
        existing = await db.get(RankingEntryMission, (rid, user_id, mission_type, day))
        if existing is None:
            db.add(
                RankingEntryMission(
                    ranking_id=rid, user_id=user_id, mission_type=mission_type, mission_date=day
                )
            )
            await flush_or_conflict(db)


def _local_today(tz_name: str | None, now: datetime) -> date:
    return now.astimezone(resolve_timezone(tz_name)).date()


async def _today_missions(
    db: AsyncSession,
    rid: str,
    user_ids: list[str],
    now: datetime,
) -> dict[str, set[str]]:
    """Mission types each user completed on their own local today."""
    if not user_ids:
        return {}
    result = await db.execute(
        select(
            RankingEntryMission.user_id,
            RankingEntryMission.mission_type,
            RankingEntryMission.mission_date,
            User.timezone,
        )
        .join(User, User.id == RankingEntryMission.user_id)
        .where(
            RankingEntryMission.ranking_id == rid,
            RankingEntryMission.user_id.in_(user_ids),
        )
    )
    missions: dict[str, set[str]] = defaultdict(set)
    for uid, mission_type, day, tz_name in result.all():
        if day == date_key(_local_today(tz_name, now)):
            missions[uid].add(mission_type)
    return missions


async def get_ranking(
    db: AsyncSession,
    squad_code: str,
    limit: int,
    *,
    now: datetime,
) -> list[RankedEntry]:
    """Current week's entries by weekly XP, highest first; positions are 1-based."""
    rid = ranking_id(squad_code, get_week_id(now))
    result = await db.execute(
        _ordered(select(RankingEntry).where(RankingEntry.ranking_id == rid)).limit(limit)
    )
    entries = result.scalars().all()
    missions = await _today_missions(db, rid, [e.user_id for e in entries], now)

    return [
        RankedEntry(
            position=i,
            user_id=entry.user_id,
            name=entry.name,
            avatar_url=entry.avatar_url,
            weekly_xp=entry.weekly_xp,
            today_missions=frozenset(missions.get(entry.user_id, ())),
        )
        for i, entry in enumerate(entries, start=1)
    ]


async def get_user_position(
    db: AsyncSession,
    squad_code: str,
    user_id: str,
    *,
    now: datetime,
) -> tuple[int, int] | None:
    """(position, total entries) for the user this week, or None without an entry."""
    rid = ranking_id(squad_code, get_week_id(now))
    mine = await db.scalar(
        select(RankingEntry.weekly_xp).where(
            RankingEntry.ranking_id == rid, RankingEntry.user_id == user_id
        )
    )
    if mine is None:
        return None

    ahead = await db.scalar(
        select(func.count())
        .select_from(RankingEntry)
        .where(RankingEntry.ranking_id == rid, RankingEntry.weekly_xp > mine)
    )
    total = await db.scalar(
        select(func.count()).select_from(RankingEntry).where(RankingEntry.ranking_id == rid)
    )
    return (ahead or 0) + 1, total or 0


async def reset_today_missions(db: AsyncSession, squad_code: str, *, now: datetime) -> int:
    """Clear today-missions for every entry of the squad's current week."""
    rid = ranking_id(squad_code, get_week_id(now))
    result = await db.execute(
        delete(RankingEntryMission).where(RankingEntryMission.ranking_id == rid)
    )
    return result.rowcount or 0


async def reset_all_today_missions(db: AsyncSession, *, now: datetime) -> int:
    """Clear today-missions across every squad's current-week ranking."""
    current = select(WeeklyRanking.id).where(WeeklyRanking.week_id == get_week_id(now))
    result = await db.execute(
        delete(RankingEntryMission).where(RankingEntryMission.ranking_id.in_(current))
    )
    cleared = result.rowcount or 0
    logger.info("Cleared %d today-mission markers", cleared)
    return cleared


# Westernmost civil offset is UTC-12.
_EARLIEST_UTC_OFFSET = timedelta(hours=12)


async def prune_stale_today_missions(db: AsyncSession, *, now: datetime) -> int:
    """Delete markers dated before every timezone's current local day."""
    cutoff = date_key((now - _EARLIEST_UTC_OFFSET).date())
    result = await db.execute(
        delete(RankingEntryMission).where(RankingEntryMission.mission_date < cutoff)
    )
    pruned = result.rowcount or 0
    logger.info("Pruned %d today-mission markers older than %s", pruned, cutoff)
    return pruned


async def purge_user_entries(db: AsyncSession, user_id: str) -> int:
    """Remove every ranking entry of a user (all squads, all weeks)."""
    await db.execute(delete(RankingEntryMission).where(RankingEntryMission.user_id == user_id))
    result = await db.execute(delete(RankingEntry).where(RankingEntry.user_id == user_id))
    return result.rowcount or 0


# ---------------------------------------------------------------------------
# Weekly rollover
# ---------------------------------------------------------------------------


async def _rollover_squad(
    db: AsyncSession,
    squad_code: str,
    closing_week_id: str,
    next_week_at: datetime,
) -> tuple[PushMessage | None, str | None]:
    rid = ranking_id(squad_code, closing_week_id)
    result = await db.execute(
        _ordered(select(RankingEntry).where(RankingEntry.ranking_id == rid)).limit(1)
    )
    winner = result.scalar_one_or_none()

    message = None
    if winner is not None:
        user = await db.get(User, winner.user_id)
        if user is not None:
            message = weekly_winner_push(user, winner.weekly_xp)
        logger.info(
            "Squad %s week %s winner: %s (%d XP)",
            squad_code, closing_week_id, winner.user_id, winner.weekly_xp,
        )

    await ensure_week(db, squad_code, next_week_at)
    return message, winner.user_id if winner else None


async def rollover_weekly_rankings(
    session_factory: async_sessionmaker[AsyncSession],
    push: PushDispatcher,
    *,
    now: datetime,
) -> RolloverReport:
    """Close the current week for every squad and open the next one.

    Each squad runs in its own transaction; a failure on one squad is
    logged and does not affect the others. The closing documents are
    only read.
    """
    next_week_at = get_next_week_start(now)
    report = RolloverReport(
        closing_week_id=get_week_id(now),
        next_week_id=get_week_id(next_week_at),
    )

    async with session_factory() as db:
        codes = (await db.execute(select(Squad.code).order_by(Squad.code))).scalars().all()

    for code in codes:
        async with session_factory() as db:
            try:
                message, winner_id = await run_in_transaction(
                    db,
                    lambda s, c=code: _rollover_squad(s, c, report.closing_week_id, next_week_at),
                )
            except Exception:
                logger.exception("Weekly rollover failed for squad %s", code)
                report.failed.append(code)
                continue

        report.processed += 1
        if winner_id is not None:
            report.winners[code] = winner_id
        if message is not None:
            await push.send(message)

    logger.info(
        "Weekly rollover %s -> %s: %d squads, %d failed",
        report.closing_week_id, report.next_week_id, report.processed, len(report.failed),
    )
    return report
