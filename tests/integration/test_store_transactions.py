"""Unit-of-work runner: commit, rollback and bounded retry."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from nutrigame.db.models import User
from nutrigame.db.transactions import run_in_transaction
from nutrigame.errors import AlreadyCompleted, StoreConflict, TransientStoreError


def _user(user_id: str) -> User:
    return User(
        id=user_id, name=user_id, timezone="UTC", total_xp=0, level=1,
        current_streak=0, longest_streak=0, is_coach=False, notifications_enabled=True,
    )


async def _count(db) -> int:
    return await db.scalar(select(func.count()).select_from(User))


class TestRunInTransaction:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, database, db_session):
        async def work(s):
            s.add(_user("a"))
            return "done"

        assert await run_in_transaction(db_session, work) == "done"
        async with database() as other:
            assert await _count(other) == 1

    @pytest.mark.asyncio
    async def test_domain_error_rolls_back_without_retry(self, database, db_session):
        calls = []

        async def work(s):
            calls.append(1)
            s.add(_user("a"))
            await s.flush()
            raise AlreadyCompleted()

        with pytest.raises(AlreadyCompleted):
            await run_in_transaction(db_session, work)

        assert len(calls) == 1
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_conflict_is_retried(self, database, db_session):
        calls = []

        async def work(s):
            calls.append(1)
            if len(calls) < 3:
                raise StoreConflict("lost the race")
            s.add(_user("a"))

        await run_in_transaction(db_session, work)

        assert len(calls) == 3
        assert await _count(db_session) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_surface_transient_error(self, database, db_session):
        calls = []

        async def work(s):
            calls.append(1)
            raise StoreConflict("always")

        with pytest.raises(TransientStoreError):
            await run_in_transaction(db_session, work, attempts=2)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_value_returned_after_a_retry(self, database, db_session):
        calls = []

        async def work(s):
            calls.append(1)
            if len(calls) == 1:
                raise StoreConflict("first writer won")
            return "done"

        assert await run_in_transaction(db_session, work) == "done"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_operational_error_is_retried(self, database, db_session):
        calls = []

        async def work(s):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("UPDATE users", {}, Exception("database is locked"))
            s.add(_user("a"))

        await run_in_transaction(db_session, work)

        assert len(calls) == 2
        assert await _count(db_session) == 1
