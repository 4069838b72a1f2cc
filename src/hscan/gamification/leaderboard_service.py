"""Leaderboard: global ranking by points.

Read-only. Ordering is points descending with ties broken by user_id
ascending, the same ordering ``StatsStore.rank_of`` counts against.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hscan.exceptions import InvalidInput
from hscan.gamification.stats_store import StatsStore

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous"


@dataclass(frozen=True)
class LeaderboardEntry:
    user_id: str
    display_name: str
    points: int
    level: int
    rank: int
    achievement_count: int
    total_scans: int


class LeaderboardRanker:
    """Builds ranked leaderboard pages from the stats store."""

    def __init__(self, store: StatsStore, max_limit: int = 100) -> None:
        self.store = store
        self.max_limit = max_limit

    async def get_leaderboard(self, limit: int = 50) -> list[LeaderboardEntry]:
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= self.max_limit:
            raise InvalidInput(f"limit must be between 1 and {self.max_limit}, got {limit!r}")

        top = await self.store.list_top_by_points(limit)
        logger.debug("Leaderboard page with %d of %d requested entries", len(top), limit)

        return [
            LeaderboardEntry(
                user_id=stats.user_id,
                display_name=stats.display_name or ANONYMOUS_NAME,
                points=stats.points,
                level=stats.level,
                rank=i + 1,
                achievement_count=len(stats.achievements_unlocked),
                total_scans=stats.total_scans,
            )
            for i, stats in enumerate(top)
        ]

    async def get_rank(self, user_id: str) -> int | None:
        """1-based position of ``user_id``, or None if they have no stats."""
        return await self.store.rank_of(user_id)
