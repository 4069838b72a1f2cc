"""Progression records handed between the store and the service."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from hscan.exceptions import InvalidInput

# Fields a mutation may increment with SQL-side arithmetic
COUNTER_FIELDS: frozenset[str] = frozenset({"points", "total_scans", "total_reports", "weekend_scans"})

# Fields a mutation may overwrite (only safe together with expected_version)
ASSIGNABLE_FIELDS: frozenset[str] = frozenset({"current_streak", "longest_streak", "last_scan_date"})


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class UserStats:
    user_id: str
    points: int = 0
    level: int = 1
    total_scans: int = 0
    total_reports: int = 0
    weekend_scans: int = 0
    achievements_unlocked: frozenset[str] = frozenset()
    current_streak: int = 0
    longest_streak: int = 0
    last_scan_date: datetime | None = None
    display_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0


@dataclass(frozen=True)
class UnlockedAchievement:
    achievement_id: str
    unlocked_at: datetime


@dataclass(frozen=True)
class PointsTransaction:
    user_id: str
    points: int
    reason: str
    timestamp: datetime
    related_achievement_id: str | None = None
    idempotency_key: str | None = None


@dataclass(frozen=True)
class StatsMutation:
    """One atomic change to a user's stats row.

    ``increments`` are applied as ``col = col + n`` so concurrent writers never
    overwrite each other. ``assignments`` overwrite columns and therefore require
    ``expected_version``. ``unlock`` makes the whole mutation conditional: when
    the achievement is already unlocked nothing is written.
    """

    increments: Mapping[str, int] = field(default_factory=dict)
    assignments: Mapping[str, Any] = field(default_factory=dict)
    expected_version: int | None = None
    unlock: str | None = None
    ledger: tuple[PointsTransaction, ...] = ()

    def __post_init__(self) -> None:
        unknown = set(self.increments) - COUNTER_FIELDS
        if unknown:
            raise InvalidInput(f"Cannot increment fields: {sorted(unknown)}")
        unknown = set(self.assignments) - ASSIGNABLE_FIELDS
        if unknown:
            raise InvalidInput(f"Cannot assign fields: {sorted(unknown)}")
        if self.assignments and self.expected_version is None:
            raise InvalidInput("Assignments require expected_version")
        # Freeze caller-supplied dicts
        object.__setattr__(self, "increments", MappingProxyType(dict(self.increments)))
        object.__setattr__(self, "assignments", MappingProxyType(dict(self.assignments)))


@dataclass(frozen=True)
class MutationResult:
    applied: bool
    before: UserStats
    after: UserStats

    @property
    def leveled_up(self) -> bool:
        return self.after.level > self.before.level
