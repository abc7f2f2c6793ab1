"""Shared test fixtures.

Each test gets its own on-disk SQLite database (aiosqlite) with the schema
created from the ORM metadata, a frozen clock and a push dispatcher that
records messages instead of publishing them.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nutrigame.clock import FixedClock
from nutrigame.config import get_settings
from nutrigame.database import close_db, get_engine, get_session, get_session_factory, init_db
from nutrigame.db.base import Base
from nutrigame.db.models import User
from nutrigame.main import create_app
from nutrigame.notifications.push import PushDispatcher, PushMessage

TEST_JWT_SECRET = "test-secret-key-with-at-least-32-bytes!!"

# Wednesday of ISO week 2026-10, midday UTC.
FROZEN_NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


class RecordingPush(PushDispatcher):
    """Push dispatcher that keeps messages in memory."""

    def __init__(self) -> None:
        super().__init__(None)
        self.sent: list[PushMessage] = []

    async def send(self, message: PushMessage) -> bool:
        self.sent.append(message)
        return True

    async def ping(self) -> bool:
        return True

    def types(self) -> list[str]:
        return [m.data.get("type", "") for m in self.sent]


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("NG_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("NG_STORE_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("NG_STORE_RETRY_MIN_WAIT_SECONDS", "0.01")
    monkeypatch.setenv("NG_STORE_RETRY_MAX_WAIT_SECONDS", "0.1")
    monkeypatch.setenv("NG_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database; yields the session factory."""
    url = f"sqlite+aiosqlite:///{os.path.join(tmp_path, 'nutrigame.db')}"
    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield get_session_factory()
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test assertions."""
    async for session in get_session():
        yield session
        break


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FROZEN_NOW)


@pytest.fixture
def push() -> RecordingPush:
    return RecordingPush()


@pytest_asyncio.fixture
async def make_user(database) -> Callable[..., Awaitable[User]]:
    """Factory inserting a user row directly; returns the committed User."""

    async def _make(
        user_id: str = "user-1",
        name: str | None = None,
        *,
        timezone_name: str = "UTC",
        squad_code: str | None = None,
        device_token: str | None = None,
        **fields: object,
    ) -> User:
        async with database() as session:
            user = User(
                id=user_id,
                name=name or user_id.title(),
                timezone=timezone_name,
                squad_code=squad_code,
                device_token=device_token,
                total_xp=0,
                level=1,
                current_streak=0,
                longest_streak=0,
                is_coach=False,
                notifications_enabled=True,
                created_at=FROZEN_NOW,
            )
            for key, value in fields.items():
                setattr(user, key, value)
            session.add(user)
            await session.commit()
            return user

    return _make


def make_token(user_id: str, **claims: object) -> str:
    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest_asyncio.fixture
async def client(database, clock, push) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app wired to the test database, clock and push."""
    app = create_app()
    app.state.clock = clock
    app.state.push = push

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
