"""Progression API endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from hscan.config import Settings, get_settings
from hscan.dependencies import get_leaderboard_ranker, get_progression_service
from hscan.exceptions import NotFound
from hscan.gamification.achievements import ACHIEVEMENTS, CATEGORY_INFO, Achievement
from hscan.gamification.leaderboard_service import LeaderboardRanker
from hscan.gamification.level_thresholds import (
    GROWTH_FACTOR,
    LEVEL_THRESHOLDS,
    get_next_level_points,
)
from hscan.gamification.progression_service import ProgressionService
from hscan.gamification.schemas import (
    AchievementProgressResponse,
    AchievementResponse,
    AllAchievementsResponse,
    AllLevelsResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    LevelEntry,
    LevelProgressResponse,
    PointsHistoryEntry,
    PointsHistoryResponse,
    RankCheckResponse,
    ReportResultResponse,
    ReportSubmittedRequest,
    ScanCompletedRequest,
    ScanResultResponse,
    UnlockedAchievementResponse,
    UnlockedAchievementsResponse,
    UserAchievementsResponse,
    UserStatsResponse,
)
from hscan.gamification.stats import UserStats
from hscan.gamification.streak_service import effective_streak

router = APIRouter(prefix="/api/v1", tags=["Progression"])

# Matches user_stats.user_id VARCHAR(128)
UserId = Annotated[str, Path(min_length=1, max_length=128)]


def _achievement(a: Achievement) -> AchievementResponse:
    return AchievementResponse(
        id=a.id,
        title=a.title,
        description=a.description,
        icon=a.icon,
        category=a.category,
        rarity=a.rarity,
        points=a.points,
        criteria_type=a.criteria.type,
        target=a.criteria.target,
    )


def _level_progress(stats: UserStats) -> LevelProgressResponse:
    info = get_next_level_points(stats.points)
    return LevelProgressResponse(
        level=stats.level,
        points=stats.points,
        current=info["current"],
        next=info["next"],
        progress=info["progress"],
    )


async def _stats_or_404(service: ProgressionService, user_id: str) -> UserStats:
    stats = await service.get_user_stats(user_id)
    if stats is None:
        raise NotFound(f"No stats for user {user_id}")
    return stats


# ── Public endpoints ──


@router.get("/achievements", response_model=AllAchievementsResponse)
async def list_achievements():
    """Get the full achievement catalog."""
    return AllAchievementsResponse(
        achievements=[_achievement(a) for a in ACHIEVEMENTS],
        categories=dict(CATEGORY_INFO),
    )


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get the explicit level bands."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(level=b.level, min_points=b.min_points, max_points=b.max_points)
            for b in LEVEL_THRESHOLDS
        ],
        growth_factor=GROWTH_FACTOR,
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int | None = Query(None),
    ranker: LeaderboardRanker = Depends(get_leaderboard_ranker),
    settings: Settings = Depends(get_settings),
):
    """Top users by points."""
    limit = settings.leaderboard_default_limit if limit is None else limit
    entries = await ranker.get_leaderboard(limit)
    return LeaderboardResponse(
        entries=[
            LeaderboardEntryResponse(
                rank=e.rank,
                user_id=e.user_id,
                display_name=e.display_name,
                points=e.points,
                level=e.level,
                achievement_count=e.achievement_count,
                total_scans=e.total_scans,
            )
            for e in entries
        ],
        limit=limit,
    )


# ── User actions ──


@router.post("/users/{user_id}/scans", response_model=ScanResultResponse)
async def record_scan(
    user_id: UserId,
    body: ScanCompletedRequest,
    service: ProgressionService = Depends(get_progression_service),
):
    """Record a completed heritage site scan."""
    outcome = await service.handle_scan_completed(
        user_id,
        body.site_id,
        now=body.timestamp,
        display_name=body.display_name,
    )
    return ScanResultResponse(
        points_awarded=outcome.points_awarded,
        newly_unlocked=[_achievement(a) for a in outcome.newly_unlocked],
        streak_bonus=outcome.streak_bonus,
        current_streak=outcome.current_streak,
    )


@router.post("/users/{user_id}/reports", response_model=ReportResultResponse)
async def record_report(
    user_id: UserId,
    body: ReportSubmittedRequest,
    service: ProgressionService = Depends(get_progression_service),
):
    """Record a submitted conservation report. 404 until the user has scanned."""
    outcome = await service.handle_report_submitted(user_id, body.report_id, now=body.timestamp)
    return ReportResultResponse(
        points_awarded=outcome.points_awarded,
        newly_unlocked=[_achievement(a) for a in outcome.newly_unlocked],
    )


@router.post("/users/{user_id}/rank-check", response_model=RankCheckResponse)
async def check_rank(
    user_id: UserId,
    service: ProgressionService = Depends(get_progression_service),
):
    """Unlock leaderboard-position achievements for the user's current rank."""
    outcome = await service.check_rank_achievements(user_id)
    return RankCheckResponse(
        rank=outcome.rank,
        newly_unlocked=[_achievement(a) for a in outcome.newly_unlocked],
    )


# ── User reads ──


@router.get("/users/{user_id}/stats", response_model=UserStatsResponse)
async def get_stats(
    user_id: UserId,
    service: ProgressionService = Depends(get_progression_service),
):
    """Get a user's progression stats."""
    stats = await _stats_or_404(service, user_id)
    return UserStatsResponse(
        user_id=stats.user_id,
        display_name=stats.display_name,
        points=stats.points,
        level=stats.level,
        total_scans=stats.total_scans,
        total_reports=stats.total_reports,
        weekend_scans=stats.weekend_scans,
        current_streak=stats.current_streak,
        longest_streak=stats.longest_streak,
        effective_streak=effective_streak(stats, datetime.now(timezone.utc)),
        last_scan_date=stats.last_scan_date,
        achievements_unlocked=sorted(stats.achievements_unlocked),
        level_progress=_level_progress(stats),
    )


@router.get("/users/{user_id}/level", response_model=LevelProgressResponse)
async def get_level(
    user_id: UserId,
    service: ProgressionService = Depends(get_progression_service),
):
    """Get a user's level and progress toward the next one."""
    stats = await _stats_or_404(service, user_id)
    return _level_progress(stats)


@router.get("/users/{user_id}/achievements", response_model=UserAchievementsResponse)
async def get_achievement_progress(
    user_id: UserId,
    service: ProgressionService = Depends(get_progression_service),
):
    """Progress toward every achievement. Empty for unknown users."""
    progress = await service.get_achievement_progress(user_id)
    return UserAchievementsResponse(
        achievements=[
            AchievementProgressResponse(
                achievement=_achievement(p.achievement),
                is_unlocked=p.is_unlocked,
                current_value=p.current_value,
                target_value=p.target_value,
                progress_percent=p.progress_percent,
            )
            for p in progress
        ],
        total_unlocked=sum(1 for p in progress if p.is_unlocked),
        total_available=len(ACHIEVEMENTS),
    )


@router.get("/users/{user_id}/achievements/unlocked", response_model=UnlockedAchievementsResponse)
async def get_unlocked(
    user_id: UserId,
    service: ProgressionService = Depends(get_progression_service),
):
    """Unlocked achievements, oldest first."""
    unlocked = await service.get_unlocked_achievements(user_id)
    return UnlockedAchievementsResponse(
        unlocked=[
            UnlockedAchievementResponse(achievement_id=u.achievement_id, unlocked_at=u.unlocked_at)
            for u in unlocked
        ]
    )


@router.get("/users/{user_id}/points/history", response_model=PointsHistoryResponse)
async def get_points_history(
    user_id: UserId,
    limit: int | None = Query(None, ge=1),
    service: ProgressionService = Depends(get_progression_service),
    settings: Settings = Depends(get_settings),
):
    """Points ledger, most recent first."""
    limit = settings.points_history_default_limit if limit is None else limit
    limit = min(limit, settings.points_history_max_limit)
    entries = await service.get_points_history(user_id, limit)
    return PointsHistoryResponse(
        entries=[
            PointsHistoryEntry(
                points=e.points,
                reason=e.reason,
                related_achievement_id=e.related_achievement_id,
                created_at=e.timestamp,
            )
            for e in entries
        ],
        limit=limit,
    )
