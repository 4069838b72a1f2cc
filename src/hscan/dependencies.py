"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends
from redis.asyncio import Redis

from hscan.config import Settings, get_settings
from hscan.database import get_session_factory
from hscan.gamification.leaderboard_service import LeaderboardRanker
from hscan.gamification.progression_service import ProgressionService
from hscan.gamification.stats_store import SqlStatsStore, StatsStore
from hscan.redis_client import get_redis as _get_redis


async def get_redis_dep() -> AsyncGenerator[Redis | None, None]:
    """Yield the Redis client (or None) as a FastAPI dependency."""
    yield _get_redis()


def get_stats_store() -> StatsStore:
    """SQL-backed stats store over the app's session factory."""
    return SqlStatsStore(get_session_factory())


def get_progression_service(
    store: StatsStore = Depends(get_stats_store),  # noqa: B008
    redis: Redis | None = Depends(get_redis_dep),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ProgressionService:
    return ProgressionService(
        store,
        redis,
        activity_timezone=settings.activity_timezone,
        max_update_retries=settings.max_update_retries,
    )


def get_leaderboard_ranker(
    store: StatsStore = Depends(get_stats_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> LeaderboardRanker:
    return LeaderboardRanker(store, max_limit=settings.leaderboard_max_limit)
