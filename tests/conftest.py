"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from padel.config import get_settings
from padel.database import close_db, get_engine, get_session_factory, init_db
from padel.db.base import Base
from padel.db.models import Match, User
from padel.levels import Level
from padel.main import create_app
from padel.matches.match_service import create_match
from padel.notifications.sinks import NotificationLog
from padel.users.service import create_user


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch):
    """Keep tests off Redis and Postgres."""
    monkeypatch.setenv("PADEL_NOTIFICATION_BACKEND", "memory")
    monkeypatch.setenv("PADEL_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str, None]:
    """Fresh SQLite file database with the full schema."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'padel.db'}"
    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield url
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: str) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service calls and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def notification_log() -> NotificationLog:
    return NotificationLog()


@pytest_asyncio.fixture
async def client(database: str, notification_log: NotificationLog) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client backed by the temporary database."""
    app = create_app()
    app.state.notification_sink = notification_log

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def future_time() -> datetime:
    return (datetime.now(timezone.utc) + timedelta(days=2)).replace(microsecond=0)


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory creating committed users."""

    async def _make(username: str, level: Level = Level.INTERMEDIATE) -> User:
        user = await create_user(
            db_session,
            username=username,
            email=f"{username}@example.com",
            first_name=username.capitalize(),
            last_name="Tester",
            declared_level=level,
        )
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_match(db_session: AsyncSession, future_time: datetime) -> Callable[..., Awaitable[Match]]:
    """Factory creating committed, waiting, proposed matches."""

    async def _make(
        creator: User,
        location: str = "Court 1",
        scheduled_at: datetime | None = None,
        level: Level = Level.INTERMEDIATE,
    ) -> Match:
        match = await create_match(
            db_session,
            creator_id=creator.id,
            location=location,
            scheduled_at=scheduled_at or future_time,
            required_level=level,
        )
        await db_session.commit()
        return match

    return _make
