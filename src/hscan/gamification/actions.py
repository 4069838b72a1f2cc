"""User actions that can unlock achievements.

A closed set of variants; the trigger engine dispatches on the concrete type
and rejects anything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ScanCompleted:
    site_id: str
    # Local wall-clock time of the scan (time-of-day achievements read its hour)
    timestamp: datetime


@dataclass(frozen=True)
class ReportSubmitted:
    report_id: str
    timestamp: datetime


@dataclass(frozen=True)
class StreakUpdated:
    streak_count: int


@dataclass(frozen=True)
class RankAchieved:
    rank: int


@dataclass(frozen=True)
class LevelReached:
    """Synthetic action emitted by the level-up pass."""

    level: int


UserAction = ScanCompleted | ReportSubmitted | StreakUpdated | RankAchieved | LevelReached

ACTION_TYPES: tuple[type, ...] = (ScanCompleted, ReportSubmitted, StreakUpdated, RankAchieved, LevelReached)
