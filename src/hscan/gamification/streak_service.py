"""Streak tracking: day-over-day continuation and bonus points.

A "day" is a rolling 24-hour window measured from the previous scan, not a
calendar day in any timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from hscan.gamification.achievements import STREAK_BONUS_PER_DAY
from hscan.gamification.stats import UserStats, as_utc

DAY = timedelta(days=1)


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    bonus_points: int


def days_since(last_scan_date: datetime, now: datetime) -> int:
    """Whole 24h periods elapsed between two timestamps (floored)."""
    return (as_utc(now) - as_utc(last_scan_date)) // DAY


def advance_streak(
    current_streak: int,
    longest_streak: int,
    last_scan_date: datetime | None,
    now: datetime,
    bonus_per_day: int = STREAK_BONUS_PER_DAY,
) -> StreakUpdate:
    """Apply one scan at ``now`` to the previous streak state."""
    new_streak = 1
    bonus = 0

    if last_scan_date is not None:
        diff_days = days_since(last_scan_date, now)

        if diff_days <= 0:
            # Same day (or an out-of-order event): already counted
            new_streak = current_streak
        elif diff_days == 1:
            new_streak = current_streak + 1
            bonus = bonus_per_day * new_streak

    return StreakUpdate(
        current_streak=new_streak,
        longest_streak=max(longest_streak, new_streak),
        bonus_points=bonus,
    )


def effective_streak(stats: UserStats, now: datetime) -> int:
    """Streak as it stands at ``now``; 0 once a day has been missed.

    The stored streak only changes when the user scans, so it stays stale after
    a missed day until the next scan resets it.
    """
    if stats.last_scan_date is None:
        return 0
    if days_since(stats.last_scan_date, now) > 1:
        return 0
    return stats.current_streak
