"""Stats persistence: the store contract and its SQLAlchemy implementation.

Every mutation runs in one transaction whose first statement bumps the row's
``version``. That UPDATE takes the row write lock (PostgreSQL) and SQLite
connections already hold the database write lock from ``BEGIN IMMEDIATE``, so
everything after it in the transaction is serialized per user.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hscan.db.models import PointsLedger, UserAchievement, UserProgress
from hscan.exceptions import ConcurrentUpdate, InvalidInput, NotFound, StoreUnavailable
from hscan.gamification.level_thresholds import calculate_level
from hscan.gamification.stats import (
    MutationResult,
    PointsTransaction,
    StatsMutation,
    UnlockedAchievement,
    UserStats,
    as_utc,
)

logger = logging.getLogger(__name__)


class StatsStore(Protocol):
    """Persistence collaborator used by the progression service."""

    async def get(self, user_id: str) -> UserStats | None: ...

    async def initialize(self, user_id: str, display_name: str | None = None) -> UserStats: ...

    async def apply_atomic(self, user_id: str, mutation: StatsMutation) -> MutationResult: ...

    async def append_transaction(self, user_id: str, entry: PointsTransaction) -> None: ...

    async def list_top_by_points(self, limit: int) -> list[UserStats]: ...

    async def rank_of(self, user_id: str) -> int | None: ...

    async def list_transactions(self, user_id: str, limit: int) -> list[PointsTransaction]: ...

    async def list_unlocked(self, user_id: str) -> list[UnlockedAchievement]: ...


class _AlreadyUnlocked(Exception):
    """Internal signal: roll back a conditional unlock that is already present."""

    def __init__(self, stats: UserStats) -> None:
        super().__init__(stats.user_id)
        self.stats = stats


def _to_stats(row: UserProgress, unlocked: Sequence[str]) -> UserStats:
    return UserStats(
        user_id=row.user_id,
        display_name=row.display_name,
        points=row.points,
        level=row.level,
        total_scans=row.total_scans,
        total_reports=row.total_reports,
        weekend_scans=row.weekend_scans,
        achievements_unlocked=frozenset(unlocked),
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_scan_date=as_utc(row.last_scan_date) if row.last_scan_date else None,
        created_at=as_utc(row.created_at) if row.created_at else None,
        updated_at=as_utc(row.updated_at) if row.updated_at else None,
        version=row.version,
    )


def _ledger_row(user_id: str, entry: PointsTransaction) -> PointsLedger:
    return PointsLedger(
        user_id=user_id,
        points=entry.points,
        reason=entry.reason,
        related_achievement_id=entry.related_achievement_id,
        idempotency_key=entry.idempotency_key,
        created_at=as_utc(entry.timestamp),
    )


class SqlStatsStore:
    """StatsStore over the user_stats / user_achievements / points_ledger tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # -- reads --

    async def _load(self, db: AsyncSession, user_id: str) -> UserStats | None:
        row = (
            await db.execute(
                select(UserProgress)
                .where(UserProgress.user_id == user_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        unlocked = (
            await db.execute(
                select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
            )
        ).scalars().all()
        return _to_stats(row, unlocked)

    async def get(self, user_id: str) -> UserStats | None:
        try:
            async with self._session_factory() as db:
                return await self._load(db, user_id)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to load stats for {user_id}") from exc

    async def list_top_by_points(self, limit: int) -> list[UserStats]:
        try:
            async with self._session_factory() as db:
                rows = (
                    await db.execute(
                        select(UserProgress)
                        .order_by(UserProgress.points.desc(), UserProgress.user_id.asc())
                        .limit(limit)
                    )
                ).scalars().all()
                if not rows:
                    return []

                user_ids = [r.user_id for r in rows]
                unlocked: dict[str, list[str]] = {uid: [] for uid in user_ids}
                result = await db.execute(
                    select(UserAchievement.user_id, UserAchievement.achievement_id)
                    .where(UserAchievement.user_id.in_(user_ids))
                )
                for uid, achievement_id in result:
                    unlocked[uid].append(achievement_id)

                return [_to_stats(r, unlocked[r.user_id]) for r in rows]
        except SQLAlchemyError as exc:
            raise StoreUnavailable("Failed to load leaderboard") from exc

    async def rank_of(self, user_id: str) -> int | None:
        """1-based rank under the leaderboard ordering (points desc, user_id asc)."""
        try:
            async with self._session_factory() as db:
                points = (
                    await db.execute(
                        select(UserProgress.points).where(UserProgress.user_id == user_id)
                    )
                ).scalar_one_or_none()
                if points is None:
                    return None
                ahead = (
                    await db.execute(
                        select(func.count()).select_from(UserProgress).where(
                            or_(
                                UserProgress.points > points,
                                (UserProgress.points == points) & (UserProgress.user_id < user_id),
                            )
                        )
                    )
                ).scalar_one()
                return ahead + 1
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to rank {user_id}") from exc

    async def list_transactions(self, user_id: str, limit: int) -> list[PointsTransaction]:
        """Most recent ledger entries first."""
        try:
            async with self._session_factory() as db:
                rows = (
                    await db.execute(
                        select(PointsLedger)
                        .where(PointsLedger.user_id == user_id)
                        .order_by(PointsLedger.created_at.desc(), PointsLedger.id.desc())
                        .limit(limit)
                    )
                ).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to load points history for {user_id}") from exc

        return [
            PointsTransaction(
                user_id=r.user_id,
                points=r.points,
                reason=r.reason,
                timestamp=as_utc(r.created_at),
                related_achievement_id=r.related_achievement_id,
                idempotency_key=r.idempotency_key,
            )
            for r in rows
        ]

    async def list_unlocked(self, user_id: str) -> list[UnlockedAchievement]:
        try:
            async with self._session_factory() as db:
                rows = (
                    await db.execute(
                        select(UserAchievement)
                        .where(UserAchievement.user_id == user_id)
                        .order_by(UserAchievement.unlocked_at.asc(), UserAchievement.id.asc())
                    )
                ).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to load achievements for {user_id}") from exc

        return [
            UnlockedAchievement(achievement_id=r.achievement_id, unlocked_at=as_utc(r.unlocked_at))
            for r in rows
        ]

    # -- writes --

    async def initialize(self, user_id: str, display_name: str | None = None) -> UserStats:
        """Create the stats row if absent. Idempotent, including under races."""
        now = datetime.now(timezone.utc)
        try:
            async with self._session_factory() as db:
                try:
                    async with db.begin():
                        existing = await self._load(db, user_id)
                        if existing is not None:
                            return existing
                        db.add(UserProgress(
                            user_id=user_id,
                            display_name=display_name,
                            points=0,
                            level=1,
                            total_scans=0,
                            total_reports=0,
                            weekend_scans=0,
                            current_streak=0,
                            longest_streak=0,
                            version=0,
                            created_at=now,
                            updated_at=now,
                        ))
                except IntegrityError:
                    # Race: another task created the row first
                    logger.debug("Stats row for %s created concurrently", user_id)

                stats = await self._load(db, user_id)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to initialize stats for {user_id}") from exc

        if stats is None:
            raise StoreUnavailable(f"Stats row for {user_id} missing after initialization")
        logger.info("Initialized stats for %s", user_id)
        return stats

    async def append_transaction(self, user_id: str, entry: PointsTransaction) -> None:
        """Append a zero-delta audit entry to the ledger.

        The points total is not touched, so only entries with ``points == 0``
        are accepted. Point changes go through ``apply_atomic``, which writes
        their ledger rows in the same transaction.
        """
        if entry.points != 0:
            raise InvalidInput(f"Standalone ledger entries must carry 0 points, got {entry.points}")
        try:
            async with self._session_factory() as db:
                async with db.begin():
                    db.add(_ledger_row(user_id, entry))
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to append transaction for {user_id}") from exc

    async def apply_atomic(self, user_id: str, mutation: StatsMutation) -> MutationResult:
        """Apply ``mutation`` in a single transaction.

        Raises NotFound if the row is missing and ConcurrentUpdate if
        ``expected_version`` no longer matches.
        """
        try:
            async with self._session_factory() as db:
                try:
                    async with db.begin():
                        return await self._apply(db, user_id, mutation)
                except _AlreadyUnlocked as skip:
                    return MutationResult(applied=False, before=skip.stats, after=skip.stats)
        except IntegrityError as exc:
            # Unique ledger key or unlock row written by a concurrent duplicate
            if mutation.unlock is None:
                raise StoreUnavailable(f"Integrity error updating {user_id}") from exc
            stats = await self.get(user_id)
            if stats is None:
                raise NotFound(f"No stats for user {user_id}") from exc
            return MutationResult(applied=False, before=stats, after=stats)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to update stats for {user_id}") from exc

    async def _apply(self, db: AsyncSession, user_id: str, mutation: StatsMutation) -> MutationResult:
        now = datetime.now(timezone.utc)

        # Lock the row first; everything below sees a stable snapshot
        lock = update(UserProgress).where(UserProgress.user_id == user_id)
        if mutation.expected_version is not None:
            lock = lock.where(UserProgress.version == mutation.expected_version)
        result = await db.execute(
            lock.values(version=UserProgress.version + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            exists = (
                await db.execute(select(UserProgress.user_id).where(UserProgress.user_id == user_id))
            ).scalar_one_or_none()
            if exists is None:
                raise NotFound(f"No stats for user {user_id}")
            raise ConcurrentUpdate(f"Stats for {user_id} changed since version {mutation.expected_version}")

        locked = await self._load(db, user_id)
        if locked is None:
            raise NotFound(f"No stats for user {user_id}")
        before = replace(locked, version=locked.version - 1)

        if mutation.unlock is not None:
            if mutation.unlock in before.achievements_unlocked:
                raise _AlreadyUnlocked(before)
            db.add(UserAchievement(user_id=user_id, achievement_id=mutation.unlock, unlocked_at=now))

        values: dict = {
            name: getattr(UserProgress, name) + amount
            for name, amount in mutation.increments.items()
        }
        values.update(mutation.assignments)
        if "last_scan_date" in values and values["last_scan_date"] is not None:
            values["last_scan_date"] = as_utc(values["last_scan_date"])
        new_points = before.points + mutation.increments.get("points", 0)
        values["level"] = calculate_level(new_points)

        await db.execute(
            update(UserProgress)
            .where(UserProgress.user_id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        for entry in mutation.ledger:
            db.add(_ledger_row(user_id, entry))

        await db.flush()
        after = await self._load(db, user_id)
        if after is None:
            raise NotFound(f"No stats for user {user_id}")
        return MutationResult(applied=True, before=before, after=after)
