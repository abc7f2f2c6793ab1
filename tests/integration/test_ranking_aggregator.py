"""Ranking aggregation: increments, ordering, positions, resets and purge."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from nutrigame.clock import FixedClock
from nutrigame.db.models import RankingEntry, RankingEntryMission, WeeklyRanking
from nutrigame.db.transactions import run_in_transaction
from nutrigame.missions.service import complete_mission
from nutrigame.ranking.service import (
    get_ranking,
    get_user_position,
    prune_stale_today_missions,
    purge_user_entries,
    record_xp,
    reset_all_today_missions,
    reset_today_missions,
)
from nutrigame.squads.service import create_squad

SQUAD = "SQUAD1"
RID = "SQUAD1_2026-10"


async def _record(factory, user_id, amount, mission_type=None, *, now, squad=SQUAD):
    async with factory() as session:
        await run_in_transaction(
            session, lambda s: record_xp(s, user_id, squad, amount, mission_type, now=now)
        )


class TestRecordXP:
    @pytest.mark.asyncio
    async def test_first_contribution_creates_week_and_entry(self, database, make_user, clock, db_session):
        await make_user("ana", "Ana", avatar_url="a.png")
        await _record(database, "ana", 50, "breakfast", now=clock.now())

        ranking = await db_session.get(WeeklyRanking, RID)
        assert ranking.week_id == "2026-10"
        assert ranking.squad_code == SQUAD

        entry = await db_session.get(RankingEntry, (RID, "ana"))
        assert entry.weekly_xp == 50
        assert entry.name == "Ana"
        assert entry.avatar_url == "a.png"

    @pytest.mark.asyncio
    async def test_increments_accumulate(self, database, make_user, clock, db_session):
        await make_user("ana")
        for amount in (50, 10, 100):
            await _record(database, "ana", amount, now=clock.now())

        entry = await db_session.get(RankingEntry, (RID, "ana"))
        assert entry.weekly_xp == 160

    @pytest.mark.asyncio
    async def test_concurrent_first_contributions_sum(self, database, make_user, clock, db_session):
        await make_user("ana")
        now = clock.now()

        await asyncio.gather(
            _record(database, "ana", 30, now=now),
            _record(database, "ana", 20, now=now),
        )

        entry = await db_session.get(RankingEntry, (RID, "ana"))
        assert entry.weekly_xp == 50

    @pytest.mark.asyncio
    async def test_mission_types_form_a_set(self, database, make_user, clock, db_session):
        await make_user("ana")
        await _record(database, "ana", 50, "breakfast", now=clock.now())
        await _record(database, "ana", 0, "breakfast", now=clock.now())
        await _record(database, "ana", 50, "lunch", now=clock.now())

        types = (await db_session.execute(select(RankingEntryMission.mission_type))).scalars().all()
        assert sorted(types) == ["breakfast", "lunch"]

    @pytest.mark.asyncio
    async def test_noop_without_squad(self, database, make_user, clock, db_session):
        await make_user("ana")
        await _record(database, "ana", 50, "breakfast", now=clock.now(), squad=None)

        assert await db_session.scalar(select(func.count()).select_from(WeeklyRanking)) == 0

    @pytest.mark.asyncio
    async def test_noop_for_zero_without_mission_type(self, database, make_user, clock, db_session):
        await make_user("ana")
        await _record(database, "ana", 0, now=clock.now())

        assert await db_session.scalar(select(func.count()).select_from(RankingEntry)) == 0

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self, db_session, make_user, clock):
        await make_user("ana")
        with pytest.raises(ValueError):
            await record_xp(db_session, "ana", SQUAD, -5, None, now=clock.now())

    @pytest.mark.asyncio
    async def test_new_week_starts_fresh(self, database, make_user, clock, db_session):
        await make_user("ana")
        await _record(database, "ana", 50, now=clock.now())
        await _record(database, "ana", 70, now=clock.now() + timedelta(days=7))

        first = await db_session.get(RankingEntry, (RID, "ana"))
        second = await db_session.get(RankingEntry, ("SQUAD1_2026-11", "ana"))
        assert first.weekly_xp == 50
        assert second.weekly_xp == 70


class TestQueries:
    async def _seed(self, database, make_user, clock):
        for user_id, xp in (("ana", 120), ("bia", 300), ("caio", 120), ("duda", 40)):
            await make_user(user_id)
            await _record(database, user_id, xp, now=clock.now())
            clock.advance(seconds=1)

    @pytest.mark.asyncio
    async def test_ranking_order_and_positions(self, database, make_user, clock, db_session):
        await self._seed(database, make_user, clock)

        entries = await get_ranking(db_session, SQUAD, 50, now=clock.now())

        assert [(e.position, e.user_id, e.weekly_xp) for e in entries] == [
            (1, "bia", 300),
            (2, "ana", 120),
            (3, "caio", 120),
            (4, "duda", 40),
        ]

    @pytest.mark.asyncio
    async def test_ranking_limit(self, database, make_user, clock, db_session):
        await self._seed(database, make_user, clock)
        entries = await get_ranking(db_session, SQUAD, 2, now=clock.now())
        assert [e.user_id for e in entries] == ["bia", "ana"]

    @pytest.mark.asyncio
    async def test_user_position_counts_strictly_greater(self, database, make_user, clock, db_session):
        await self._seed(database, make_user, clock)

        assert await get_user_position(db_session, SQUAD, "bia", now=clock.now()) == (1, 4)
        assert await get_user_position(db_session, SQUAD, "ana", now=clock.now()) == (2, 4)
        assert await get_user_position(db_session, SQUAD, "caio", now=clock.now()) == (2, 4)
        assert await get_user_position(db_session, SQUAD, "duda", now=clock.now()) == (4, 4)

    @pytest.mark.asyncio
    async def test_position_none_without_entry(self, database, make_user, clock, db_session):
        await self._seed(database, make_user, clock)
        assert await get_user_position(db_session, SQUAD, "nobody", now=clock.now()) is None

    @pytest.mark.asyncio
    async def test_empty_ranking(self, db_session, clock):
        assert await get_ranking(db_session, SQUAD, 50, now=clock.now()) == []


class TestResets:
    @pytest.mark.asyncio
    async def test_reset_today_missions_keeps_xp(self, database, make_user, clock, db_session):
        await make_user("ana")
        await _record(database, "ana", 50, "breakfast", now=clock.now())

        cleared = await run_in_transaction(
            db_session, lambda s: reset_today_missions(s, SQUAD, now=clock.now())
        )

        assert cleared == 1
        entries = await get_ranking(db_session, SQUAD, 50, now=clock.now())
        assert entries[0].today_missions == frozenset()
        assert entries[0].weekly_xp == 50

    @pytest.mark.asyncio
    async def test_reset_all_covers_every_squad_current_week_only(self, database, make_user, clock, db_session):
        await make_user("ana")
        await make_user("bia")
        last_week = clock.now() - timedelta(days=7)
        await _record(database, "ana", 50, "lunch", now=last_week)
        await _record(database, "ana", 50, "breakfast", now=clock.now())
        await _record(database, "bia", 50, "dinner", now=clock.now(), squad="SQUAD2")

        cleared = await run_in_transaction(db_session, lambda s: reset_all_today_missions(s, now=clock.now()))

        assert cleared == 2
        remaining = (await db_session.execute(select(RankingEntryMission.ranking_id))).scalars().all()
        assert remaining == ["SQUAD1_2026-09"]


class TestPurge:
    @pytest.mark.asyncio
    async def test_purge_removes_entries_everywhere(self, database, make_user, clock, db_session):
        await make_user("ana")
        await make_user("bia")
        await _record(database, "ana", 50, "breakfast", now=clock.now())
        await _record(database, "ana", 50, now=clock.now(), squad="SQUAD2")
        await _record(database, "bia", 10, now=clock.now())

        purged = await run_in_transaction(db_session, lambda s: purge_user_entries(s, "ana"))

        assert purged == 2
        remaining = (await db_session.execute(select(RankingEntry.user_id))).scalars().all()
        assert remaining == ["bia"]
        assert await db_session.scalar(select(func.count()).select_from(RankingEntryMission)) == 0


class TestLocalDayMissions:
    @pytest.mark.asyncio
    async def test_today_follows_user_local_day(self, database, db_session, make_user):
        await make_user("ana", timezone_name="America/New_York")
        evening = FixedClock(datetime(2026, 3, 5, 1, 0, tzinfo=timezone.utc))  # 03-04 20:00 local
        morning = FixedClock(datetime(2026, 3, 5, 13, 0, tzinfo=timezone.utc))  # 03-05 08:00 local
        squad = await create_squad(db_session, "Crew", "ana", clock=evening)

        await complete_mission(db_session, "ana", "dinner", "d.jpg", clock=evening)
        entries = await get_ranking(db_session, squad.code, 50, now=evening.now())
        assert entries[0].today_missions == frozenset({"dinner"})

        await complete_mission(db_session, "ana", "breakfast", "b.jpg", clock=morning)
        entries = await get_ranking(db_session, squad.code, 50, now=morning.now())
        assert entries[0].today_missions == frozenset({"breakfast"})
        assert entries[0].weekly_xp == 100

    @pytest.mark.asyncio
    async def test_same_type_on_consecutive_days(self, database, db_session, make_user, clock):
        await make_user("ana")
        tomorrow = clock.now() + timedelta(days=1)
        await _record(database, "ana", 50, "lunch", now=clock.now())
        await _record(database, "ana", 50, "lunch", now=tomorrow)

        days = (await db_session.execute(select(RankingEntryMission.mission_date))).scalars().all()
        assert sorted(days) == ["2026-03-04", "2026-03-05"]
        entries = await get_ranking(db_session, SQUAD, 50, now=tomorrow)
        assert entries[0].today_missions == frozenset({"lunch"})

    @pytest.mark.asyncio
    async def test_prune_keeps_days_still_current_somewhere(self, database, make_user, clock, db_session):
        await make_user("ana")
        await _record(database, "ana", 50, "breakfast", now=clock.now())

        midnight = datetime(2026, 3, 5, 0, 0, tzinfo=timezone.utc)
        assert await run_in_transaction(db_session, lambda s: prune_stale_today_missions(s, now=midnight)) == 0

        next_midnight = datetime(2026, 3, 6, 0, 0, tzinfo=timezone.utc)
        assert await run_in_transaction(
            db_session, lambda s: prune_stale_today_missions(s, now=next_midnight)
        ) == 1
