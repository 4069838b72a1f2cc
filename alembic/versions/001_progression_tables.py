"""Progression tables.

Creates user_stats, user_achievements and points_ledger for the progression
engine.

Revision ID: 001_progression_tables
Revises: None
Create Date: 2026-03-02
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_BigId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    """Create stats, unlock and ledger tables."""
    # --- User Stats (denormalized) ---
    op.create_table(
        "user_stats",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("display_name", sa.String(64), nullable=True),
        sa.Column("points", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("level", sa.Integer(), server_default="1", nullable=False),
        sa.Column("total_scans", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_reports", sa.Integer(), server_default="0", nullable=False),
        sa.Column("weekend_scans", sa.Integer(), server_default="0", nullable=False),
        sa.Column("current_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("longest_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_scan_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_user_stats_points", "user_stats", ["points"])

    # --- Unlocked Achievements ---
    op.create_table(
        "user_achievements",
        sa.Column("id", _BigId, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.String(128),
            sa.ForeignKey("user_stats.user_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("achievement_id", sa.String(64), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_id_achievement_id_key"),
    )

    # --- Points Ledger ---
    op.create_table(
        "points_ledger",
        sa.Column("id", _BigId, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.String(128),
            sa.ForeignKey("user_stats.user_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(256), nullable=False),
        sa.Column("related_achievement_id", sa.String(64), nullable=True),
        sa.Column("idempotency_key", sa.String(256), unique=True, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_points_ledger_user_created", "points_ledger", ["user_id", "created_at"])


def downgrade() -> None:
    """Drop progression tables."""
    op.drop_table("points_ledger")
    op.drop_table("user_achievements")
    op.drop_table("user_stats")
