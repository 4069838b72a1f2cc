"""Concurrent actions for one user must not lose updates."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from hscan.gamification.progression_service import ProgressionService
from hscan.gamification.stats_store import SqlStatsStore

NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service(store: SqlStatsStore) -> ProgressionService:
    """Every committed mutation bumps the version, so allow a retry per contender mutation."""
    return ProgressionService(store, max_update_retries=50)


async def test_concurrent_scans_lose_nothing(service: ProgressionService):
    outcomes = await asyncio.gather(*(
        service.handle_scan_completed("u1", f"site-{i}", now=NOW + timedelta(minutes=i))
        for i in range(6)
    ))

    stats = await service.get_user_stats("u1")
    assert stats.total_scans == 6
    assert stats.current_streak == 1
    assert stats.points == 6 * 50 + 50

    unlocked = [a.id for o in outcomes for a in o.newly_unlocked]
    assert unlocked.count("first_steps") == 1


async def test_concurrent_first_touch_creates_one_row(store: SqlStatsStore):
    results = await asyncio.gather(*(store.initialize("u1", "Ada") for _ in range(5)))

    assert {r.user_id for r in results} == {"u1"}
    assert len(await store.list_top_by_points(10)) == 1


async def test_concurrent_awards_sum(service: ProgressionService):
    await service.award_points("u1", 0, "Start", now=NOW)
    await asyncio.gather(*(service.award_points("u1", 7, "Bonus", now=NOW) for _ in range(10)))

    stats = await service.get_user_stats("u1")
    assert stats.points == 70
    history = await service.get_points_history("u1", 100)
    assert sum(t.points for t in history) == stats.points


async def test_concurrent_duplicate_unlock(service: ProgressionService):
    await service.award_points("u1", 0, "Start", now=NOW)
    results = await asyncio.gather(*(
        service.unlock_achievement("u1", "top_ten", now=NOW) for _ in range(5)
    ))

    assert sum(len(r) for r in results) == 1
    stats = await service.get_user_stats("u1")
    assert stats.points == 300


async def test_mixed_actions_reconcile(service: ProgressionService):
    await service.handle_scan_completed("u1", "site-0", now=NOW)
    await asyncio.gather(
        service.handle_scan_completed("u1", "site-1", now=NOW + timedelta(hours=1)),
        service.handle_report_submitted("u1", "r1", now=NOW + timedelta(hours=1)),
        service.handle_report_submitted("u1", "r2", now=NOW + timedelta(hours=1)),
        service.check_rank_achievements("u1", now=NOW),
    )

    stats = await service.get_user_stats("u1")
    assert stats.total_scans == 2
    assert stats.total_reports == 2
    history = await service.get_points_history("u1", 100)
    assert sum(t.points for t in history) == stats.points
    assert {"first_steps", "data_contributor", "top_ten", "podium_finish"} <= stats.achievements_unlocked
