"""Achievement trigger engine: matches an action and a stats snapshot against the catalog.

Pure: no I/O, no clock. The progression service persists whatever this returns.
"""

from __future__ import annotations

from collections.abc import Iterable

from hscan.exceptions import InvalidInput
from hscan.gamification.achievements import CUSTOM_METRICS, TIME_WINDOWS, Achievement
from hscan.gamification.actions import (
    ACTION_TYPES,
    RankAchieved,
    ReportSubmitted,
    ScanCompleted,
    StreakUpdated,
    UserAction,
)
from hscan.gamification.stats import UserStats


def _target(achievement: Achievement) -> int:
    return achievement.criteria.target or 0


def _is_satisfied(achievement: Achievement, stats: UserStats, action: UserAction) -> bool:
    kind = achievement.criteria.type

    if kind == "scan_count":
        return isinstance(action, ScanCompleted) and stats.total_scans >= _target(achievement)

    if kind == "report_count":
        return isinstance(action, ReportSubmitted) and stats.total_reports >= _target(achievement)

    if kind == "streak":
        return isinstance(action, StreakUpdated) and action.streak_count >= _target(achievement)

    if kind == "rank":
        return isinstance(action, RankAchieved) and action.rank <= _target(achievement)

    if kind == "time_based":
        if not isinstance(action, ScanCompleted):
            return False
        start, end = TIME_WINDOWS[achievement.id]
        return start <= action.timestamp.hour < end

    if kind == "custom":
        # Stats-derived milestones (level, weekend scans) are checked on every action
        return getattr(stats, CUSTOM_METRICS[achievement.id]) >= _target(achievement)

    return False


def evaluate(
    catalog: Iterable[Achievement],
    stats: UserStats,
    action: UserAction,
) -> list[Achievement]:
    """Return achievements newly satisfied by ``action``, in catalog order.

    Entries already in ``stats.achievements_unlocked`` are never returned.
    """
    if not isinstance(action, ACTION_TYPES):
        raise InvalidInput(f"Unknown action type: {type(action).__name__}")

    return [
        achievement
        for achievement in catalog
        if achievement.id not in stats.achievements_unlocked
        and _is_satisfied(achievement, stats, action)
    ]


def measure(achievement: Achievement, stats: UserStats) -> tuple[int, int]:
    """Current and target value used for progress display."""
    kind = achievement.criteria.type
    unlocked = achievement.id in stats.achievements_unlocked

    if kind == "scan_count":
        return stats.total_scans, _target(achievement)
    if kind == "report_count":
        return stats.total_reports, _target(achievement)
    if kind == "streak":
        return stats.current_streak, _target(achievement)
    if kind == "custom":
        return getattr(stats, CUSTOM_METRICS[achievement.id]), _target(achievement)

    # time_based and rank are one-shot events
    return (1 if unlocked else 0), 1

