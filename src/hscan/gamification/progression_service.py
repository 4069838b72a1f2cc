"""Progression service: points, levels, streaks and achievement unlocks.

Entry point for user actions (scan completed, report submitted). Every write
goes through ``StatsStore.apply_atomic`` so concurrent calls for the same user
never lose an increment:

* counters and points are SQL-side increments;
* the streak is written with a version check and retried on conflict;
* an unlock, its reward and its ledger entry commit together, and an
  already-unlocked id writes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from redis.asyncio import Redis

from hscan.exceptions import ConcurrentUpdate, InvalidInput, NotFound
from hscan.gamification.achievements import (
    ACHIEVEMENTS,
    DETAILED_REPORT_POINTS,
    SCAN_SITE_POINTS,
    Achievement,
)
from hscan.gamification.actions import (
    LevelReached,
    RankAchieved,
    ReportSubmitted,
    ScanCompleted,
    StreakUpdated,
    UserAction,
)
from hscan.gamification.events import publish_achievement_unlocked, publish_level_up
from hscan.gamification.stats import (
    MutationResult,
    PointsTransaction,
    StatsMutation,
    UnlockedAchievement,
    UserStats,
    as_utc,
)
from hscan.gamification.stats_store import StatsStore
from hscan.gamification.streak_service import StreakUpdate, advance_streak
from hscan.gamification.trigger_engine import evaluate, measure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanOutcome:
    points_awarded: int
    newly_unlocked: tuple[Achievement, ...]
    streak_bonus: int
    current_streak: int


@dataclass(frozen=True)
class ReportOutcome:
    points_awarded: int
    newly_unlocked: tuple[Achievement, ...]


@dataclass(frozen=True)
class RankOutcome:
    rank: int
    newly_unlocked: tuple[Achievement, ...]


@dataclass(frozen=True)
class AchievementProgress:
    achievement: Achievement
    is_unlocked: bool
    current_value: int
    target_value: int
    progress_percent: float


def _utc(now: datetime | None) -> datetime:
    return datetime.now(timezone.utc) if now is None else as_utc(now)


def _require_id(value: str, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{name} must be a non-empty string")
    return value


class ProgressionService:
    """Applies user actions to stats and unlocks achievements."""

    def __init__(
        self,
        store: StatsStore,
        redis: Redis | None = None,
        *,
        catalog: Sequence[Achievement] = ACHIEVEMENTS,
        activity_timezone: tzinfo | str = timezone.utc,
        max_update_retries: int = 10,
    ) -> None:
        self.store = store
        self.redis = redis
        self.catalog = tuple(catalog)
        self.tz = ZoneInfo(activity_timezone) if isinstance(activity_timezone, str) else activity_timezone
        self.max_update_retries = max_update_retries

    # ------------------------------------------------------------------
    # Stats helpers
    # ------------------------------------------------------------------

    async def _ensure_stats(self, user_id: str, display_name: str | None = None) -> UserStats:
        stats = await self.store.get(user_id)
        if stats is None:
            stats = await self.store.initialize(user_id, display_name)
        return stats

    async def _require_stats(self, user_id: str) -> UserStats:
        stats = await self.store.get(user_id)
        if stats is None:
            raise NotFound(f"No stats for user {user_id}")
        return stats

    async def _apply(self, user_id: str, mutation: StatsMutation) -> MutationResult:
        result = await self.store.apply_atomic(user_id, mutation)
        if result.applied and result.leveled_up:
            logger.info(
                "User %s leveled up: %d -> %d", user_id, result.before.level, result.after.level,
            )
            await publish_level_up(self.redis, user_id, result.before.level, result.after.level)
        return result

    # ------------------------------------------------------------------
    # Points and unlocks
    # ------------------------------------------------------------------

    async def award_points(
        self,
        user_id: str,
        delta: int,
        reason: str,
        related_achievement_id: str | None = None,
        *,
        now: datetime | None = None,
    ) -> list[Achievement]:
        """Add ``delta`` points with a ledger entry.

        Returns achievements unlocked by the level-up pass, if the award
        crossed a level boundary.
        """
        _require_id(user_id, "user_id")
        if isinstance(delta, bool) or not isinstance(delta, int) or delta < 0:
            raise InvalidInput(f"Points delta must be a non-negative integer, got {delta!r}")
        if not reason:
            raise InvalidInput("Points award needs a reason")

        now = _utc(now)
        await self._ensure_stats(user_id)

        entry = PointsTransaction(
            user_id=user_id,
            points=delta,
            reason=reason,
            timestamp=now,
            related_achievement_id=related_achievement_id,
        )
        result = await self._apply(
            user_id, StatsMutation(increments={"points": delta}, ledger=(entry,)),
        )

        if result.leveled_up:
            return await self._level_pass(user_id, now)
        return []

    async def _grant(self, user_id: str, achievement: Achievement, now: datetime) -> MutationResult | None:
        """Unlock one achievement and credit its reward. None if already unlocked."""
        entry = PointsTransaction(
            user_id=user_id,
            points=achievement.points,
            reason=f"Achievement unlocked: {achievement.title}",
            timestamp=now,
            related_achievement_id=achievement.id,
            idempotency_key=f"achievement:{user_id}:{achievement.id}",
        )
        result = await self._apply(user_id, StatsMutation(
            increments={"points": achievement.points},
            unlock=achievement.id,
            ledger=(entry,),
        ))
        if not result.applied:
            logger.debug("Achievement %s already unlocked for %s", achievement.id, user_id)
            return None

        logger.info("User %s unlocked %s (+%d)", user_id, achievement.id, achievement.points)
        await publish_achievement_unlocked(self.redis, user_id, achievement)
        return result

    async def _level_pass(self, user_id: str, now: datetime) -> list[Achievement]:
        """Unlock level milestones until nothing new fires.

        Each unlock can award enough points for another level, so the check
        repeats; every id unlocks at most once, so catalog size bounds it.
        """
        unlocked: list[Achievement] = []
        for _ in range(len(self.catalog)):
            stats = await self._require_stats(user_id)
            granted = []
            for achievement in evaluate(self.catalog, stats, LevelReached(level=stats.level)):
                if await self._grant(user_id, achievement, now) is not None:
                    granted.append(achievement)
            if not granted:
                break
            unlocked.extend(granted)
        return unlocked

    async def unlock_achievement(
        self,
        user_id: str,
        achievement_id: str,
        *,
        now: datetime | None = None,
    ) -> list[Achievement]:
        """Unlock a catalog achievement directly.

        Returns the achievement plus anything the level-up pass unlocked, or an
        empty list when it was already unlocked.
        """
        achievement = next((a for a in self.catalog if a.id == achievement_id), None)
        if achievement is None:
            raise InvalidInput(f"Unknown achievement: {achievement_id}")
        await self._require_stats(user_id)

        now = _utc(now)
        result = await self._grant(user_id, achievement, now)
        if result is None:
            return []
        if result.leveled_up:
            return [achievement, *await self._level_pass(user_id, now)]
        return [achievement]

    async def _unlock_for(self, user_id: str, action: UserAction, now: datetime) -> list[Achievement]:
        """Evaluate ``action`` against fresh stats and unlock whatever matches."""
        stats = await self._require_stats(user_id)
        unlocked: list[Achievement] = []
        leveled_up = False

        for achievement in evaluate(self.catalog, stats, action):
            result = await self._grant(user_id, achievement, now)
            if result is None:
                continue
            unlocked.append(achievement)
            leveled_up = leveled_up or result.leveled_up

        if leveled_up:
            unlocked.extend(await self._level_pass(user_id, now))
        return unlocked

    # ------------------------------------------------------------------
    # Action handlers
    # ------------------------------------------------------------------

    async def _record_scan(
        self, user_id: str, now: datetime, weekend: bool,
    ) -> tuple[MutationResult, StreakUpdate]:
        """Count the scan and advance the streak under a version check."""
        for attempt in range(1, self.max_update_retries + 1):
            stats = await self._require_stats(user_id)
            streak = advance_streak(
                stats.current_streak, stats.longest_streak, stats.last_scan_date, now,
            )
            # An out-of-order event never moves the last scan backwards
            last_scan = max(now, stats.last_scan_date) if stats.last_scan_date else now
            mutation = StatsMutation(
                increments={"total_scans": 1, "weekend_scans": 1 if weekend else 0},
                assignments={
                    "current_streak": streak.current_streak,
                    "longest_streak": streak.longest_streak,
                    "last_scan_date": last_scan,
                },
                expected_version=stats.version,
            )
            try:
                return await self._apply(user_id, mutation), streak
            except ConcurrentUpdate:
                logger.info("Scan for %s hit a concurrent update (attempt %d)", user_id, attempt)

        raise ConcurrentUpdate(
            f"Could not record scan for {user_id} after {self.max_update_retries} attempts"
        )

    async def handle_scan_completed(
        self,
        user_id: str,
        site_id: str,
        *,
        now: datetime | None = None,
        display_name: str | None = None,
    ) -> ScanOutcome:
        """Record a completed site scan.

        1. Count the scan and update the streak
        2. Award the base scan reward
        3. Award the streak bonus as its own transaction
        4. Unlock scan and streak achievements
        """
        _require_id(user_id, "user_id")
        _require_id(site_id, "site_id")
        now = _utc(now)
        local_time = now.astimezone(self.tz)

        await self._ensure_stats(user_id, display_name)

        _, streak = await self._record_scan(user_id, now, weekend=local_time.weekday() >= 5)
        current_streak = streak.current_streak
        streak_bonus = streak.bonus_points

        unlocked = await self.award_points(user_id, SCAN_SITE_POINTS, "Heritage site scan", now=now)
        if streak_bonus > 0:
            unlocked += await self.award_points(
                user_id, streak_bonus, f"{current_streak}-day streak bonus", now=now,
            )

        unlocked += await self._unlock_for(
            user_id, ScanCompleted(site_id=site_id, timestamp=local_time), now,
        )
        unlocked += await self._unlock_for(
            user_id, StreakUpdated(streak_count=current_streak), now,
        )

        logger.info(
            "Scan recorded for %s at %s: +%d points, streak %d, %d unlocked",
            user_id, site_id, SCAN_SITE_POINTS + streak_bonus, current_streak, len(unlocked),
        )
        return ScanOutcome(
            points_awarded=SCAN_SITE_POINTS + streak_bonus,
            newly_unlocked=tuple(unlocked),
            streak_bonus=streak_bonus,
            current_streak=current_streak,
        )

    async def handle_report_submitted(
        self,
        user_id: str,
        report_id: str,
        *,
        now: datetime | None = None,
    ) -> ReportOutcome:
        """Record a submitted conservation report. The user must already have stats."""
        _require_id(user_id, "user_id")
        _require_id(report_id, "report_id")
        now = _utc(now)

        await self._apply(user_id, StatsMutation(increments={"total_reports": 1}))

        unlocked = await self.award_points(
            user_id, DETAILED_REPORT_POINTS, "Detailed conservation report", now=now,
        )
        unlocked += await self._unlock_for(
            user_id, ReportSubmitted(report_id=report_id, timestamp=now.astimezone(self.tz)), now,
        )

        logger.info("Report %s recorded for %s: %d unlocked", report_id, user_id, len(unlocked))
        return ReportOutcome(points_awarded=DETAILED_REPORT_POINTS, newly_unlocked=tuple(unlocked))

    async def check_rank_achievements(
        self,
        user_id: str,
        *,
        now: datetime | None = None,
    ) -> RankOutcome:
        """Unlock leaderboard-position achievements for the user's current rank."""
        _require_id(user_id, "user_id")
        rank = await self.store.rank_of(user_id)
        if rank is None:
            raise NotFound(f"No stats for user {user_id}")

        unlocked = await self._unlock_for(user_id, RankAchieved(rank=rank), _utc(now))
        return RankOutcome(rank=rank, newly_unlocked=tuple(unlocked))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_user_stats(self, user_id: str) -> UserStats | None:
        return await self.store.get(user_id)

    async def get_unlocked_achievements(self, user_id: str) -> list[UnlockedAchievement]:
        return await self.store.list_unlocked(user_id)

    async def get_points_history(self, user_id: str, limit: int = 20) -> list[PointsTransaction]:
        if limit < 1:
            raise InvalidInput(f"limit must be positive, got {limit}")
        return await self.store.list_transactions(user_id, limit)

    async def get_achievement_progress(self, user_id: str) -> list[AchievementProgress]:
        """Progress toward every catalog entry. Empty for users with no stats."""
        stats = await self.store.get(user_id)
        if stats is None:
            return []

        progress = []
        for achievement in self.catalog:
            is_unlocked = achievement.id in stats.achievements_unlocked
            current, target = measure(achievement, stats)
            if is_unlocked:
                percent = 100.0
            else:
                percent = min(100.0, current / target * 100) if target > 0 else 0.0
            progress.append(AchievementProgress(
                achievement=achievement,
                is_unlocked=is_unlocked,
                current_value=current,
                target_value=target,
                progress_percent=percent,
            ))
        return progress
