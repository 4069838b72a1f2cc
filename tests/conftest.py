"""Shared test fixtures: per-test SQLite database, store, service, HTTP client."""

from __future__ import annotations

import os

# Set env vars BEFORE importing app modules (settings are cached on first use)
os.environ.setdefault("HSCAN_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["HSCAN_REDIS_URL"] = ""
os.environ["HSCAN_LOG_FORMAT"] = "console"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from hscan.config import get_settings  # noqa: E402
from hscan.database import build_engine, build_session_factory, get_session  # noqa: E402
from hscan.db import models  # noqa: E402, F401
from hscan.db.base import Base  # noqa: E402
from hscan.dependencies import get_redis_dep, get_stats_store  # noqa: E402
from hscan.gamification.leaderboard_service import LeaderboardRanker  # noqa: E402
from hscan.gamification.progression_service import ProgressionService  # noqa: E402
from hscan.gamification.stats_store import SqlStatsStore  # noqa: E402
from hscan.main import create_app  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite so concurrent sessions really contend for the lock."""
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'progression.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def store(session_factory: async_sessionmaker[AsyncSession]) -> SqlStatsStore:
    return SqlStatsStore(session_factory)


@pytest_asyncio.fixture
async def service(store: SqlStatsStore) -> ProgressionService:
    """Service with pub/sub disabled and UTC activity time."""
    return ProgressionService(store, None)


@pytest_asyncio.fixture
async def ranker(store: SqlStatsStore) -> LeaderboardRanker:
    return LeaderboardRanker(store, max_limit=100)


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app with the test database wired in."""
    app = create_app()

    async def _override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def _override_get_redis() -> AsyncGenerator[None, None]:
        yield None

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_redis_dep] = _override_get_redis
    app.dependency_overrides[get_stats_store] = lambda: SqlStatsStore(session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
