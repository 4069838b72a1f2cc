"""ORM models for the progression tables.

Column types stay portable between PostgreSQL (production) and SQLite (tests,
local runs): no JSONB/INET, and BIGINT keys fall back to INTEGER on SQLite so
autoincrement works.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from hscan.db.base import Base

_BigId = BigInteger().with_variant(Integer(), "sqlite")


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------


class UserProgress(Base):
    """Denormalized per-user stats row. ``version`` bumps on every mutation."""

    __tablename__ = "user_stats"
    __table_args__ = (
        Index("idx_user_stats_points", "points"),
    )

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    points: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    total_scans: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_reports: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    weekend_scans: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_scan_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class UserAchievement(Base):
    """Unlocked achievements: UNIQUE(user_id, achievement_id) keeps unlocks idempotent."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_id_achievement_id_key"),
    )

    id: Mapped[int] = mapped_column(_BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("user_stats.user_id", ondelete="CASCADE"), nullable=False
    )
    achievement_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PointsLedger(Base):
    """Immutable points transaction log."""

    __tablename__ = "points_ledger"
    __table_args__ = (
        Index("idx_points_ledger_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(_BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("user_stats.user_id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(256), nullable=False)
    related_achievement_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
