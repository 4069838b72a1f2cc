"""Pydantic request and response models for progression endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# --- Requests ---


class ScanCompletedRequest(BaseModel):
    site_id: str = Field(min_length=1, max_length=128)
    timestamp: datetime | None = None  # Defaults to server time
    display_name: str | None = Field(default=None, max_length=64)  # user_stats.display_name VARCHAR(64)


class ReportSubmittedRequest(BaseModel):
    report_id: str = Field(min_length=1, max_length=128)
    timestamp: datetime | None = None


# --- Achievements ---


class AchievementResponse(BaseModel):
    id: str
    title: str
    description: str
    icon: str
    category: str
    rarity: str
    points: int
    criteria_type: str
    target: int | None = None


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]
    categories: dict[str, dict[str, str]]


class AchievementProgressResponse(BaseModel):
    achievement: AchievementResponse
    is_unlocked: bool
    current_value: int
    target_value: int
    progress_percent: float


class UserAchievementsResponse(BaseModel):
    achievements: list[AchievementProgressResponse]
    total_unlocked: int
    total_available: int


class UnlockedAchievementResponse(BaseModel):
    achievement_id: str
    unlocked_at: datetime


class UnlockedAchievementsResponse(BaseModel):
    unlocked: list[UnlockedAchievementResponse]


# --- Actions ---


class ScanResultResponse(BaseModel):
    points_awarded: int
    newly_unlocked: list[AchievementResponse]
    streak_bonus: int
    current_streak: int


class ReportResultResponse(BaseModel):
    points_awarded: int
    newly_unlocked: list[AchievementResponse]


class RankCheckResponse(BaseModel):
    rank: int
    newly_unlocked: list[AchievementResponse]


# --- Stats ---


class LevelProgressResponse(BaseModel):
    level: int
    points: int
    current: int  # Points at which the current level starts
    next: int  # Points needed for the next level
    progress: float


class UserStatsResponse(BaseModel):
    user_id: str
    display_name: str | None = None
    points: int
    level: int
    total_scans: int
    total_reports: int
    weekend_scans: int
    current_streak: int
    longest_streak: int
    effective_streak: int = 0  # 0 once a day has been missed
    last_scan_date: datetime | None = None
    achievements_unlocked: list[str]
    level_progress: LevelProgressResponse


# --- Points ledger ---


class PointsHistoryEntry(BaseModel):
    points: int
    reason: str
    related_achievement_id: str | None = None
    created_at: datetime


class PointsHistoryResponse(BaseModel):
    entries: list[PointsHistoryEntry]
    limit: int


# --- Levels ---


class LevelEntry(BaseModel):
    level: int
    min_points: int
    max_points: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]
    growth_factor: float


# --- Leaderboard ---


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: str
    display_name: str
    points: int
    level: int
    achievement_count: int
    total_scans: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse]
    limit: int
