"""tracking schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

Live metrics, per-meal statuses, immutable history and goal profiles.
Natural-key unique constraints back the insert-or-ignore writes.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    metric_kind_enum = sa.Enum("meal", "water", "exercise", "calorie", name="metric_kind_enum")
    metric_kind_enum.create(op.get_bind(), checkfirst=True)

    meal_state_enum = sa.Enum("upcoming", "completed", name="meal_state_enum")
    meal_state_enum.create(op.get_bind(), checkfirst=True)

    # --- tracked_metrics ---
    op.create_table(
        "tracked_metrics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("metric_kind", sa.Enum(
            "meal", "water", "exercise", "calorie",
            name="metric_kind_enum", create_type=False,
        ), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("current_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("target_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "metric_kind", "day", name="uq_tracked_metric_user_kind_day"),
    )
    op.create_index("ix_tracked_metrics_id", "tracked_metrics", ["id"])
    op.create_index("ix_tracked_metrics_user_id", "tracked_metrics", ["user_id"])
    op.create_index("ix_tracked_metrics_day", "tracked_metrics", ["day"])

    # --- meal_statuses ---
    op.create_table(
        "meal_statuses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("meal_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("status", sa.Enum(
            "upcoming", "completed", name="meal_state_enum", create_type=False,
        ), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "day", "meal_id", name="uq_meal_status_user_day_meal"),
    )
    op.create_index("ix_meal_statuses_id", "meal_statuses", ["id"])
    op.create_index("ix_meal_statuses_user_id", "meal_statuses", ["user_id"])
    op.create_index("ix_meal_statuses_day", "meal_statuses", ["day"])

    # --- history_snapshots (append-only) ---
    op.create_table(
        "history_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("metric_kind", sa.Enum(
            "meal", "water", "exercise", "calorie",
            name="metric_kind_enum", create_type=False,
        ), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("value", sa.Numeric(12, 2), nullable=False),
        sa.Column("target", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit", sa.String(16), nullable=False),
        sa.Column("reason", sa.String(32), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "day", "metric_kind", name="uq_history_user_day_kind"),
    )
    op.create_index("ix_history_snapshots_id", "history_snapshots", ["id"])
    op.create_index("ix_history_snapshots_user_id", "history_snapshots", ["user_id"])
    op.create_index("ix_history_snapshots_day", "history_snapshots", ["day"])

    # --- user_profiles ---
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("sex", sa.String(16), nullable=True),
        sa.Column("weight_kg", sa.Numeric(6, 2), nullable=True),
        sa.Column("height_cm", sa.Numeric(6, 2), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("activity_level", sa.String(32), nullable=True),
        sa.Column("weight_goal", sa.String(32), nullable=True),
        sa.Column("water_target_ml", sa.Integer(), nullable=True),
        sa.Column("weekly_exercise_minutes", sa.Integer(), nullable=True),
        sa.Column("calorie_target", sa.Integer(), nullable=True),
        sa.Column("meal_plan", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_profiles_id", "user_profiles", ["id"])
    op.create_index("ix_user_profiles_user_id", "user_profiles", ["user_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_user_profiles_user_id", table_name="user_profiles")
    op.drop_index("ix_user_profiles_id", table_name="user_profiles")
    op.drop_table("user_profiles")

    op.drop_index("ix_history_snapshots_day", table_name="history_snapshots")
    op.drop_index("ix_history_snapshots_user_id", table_name="history_snapshots")
    op.drop_index("ix_history_snapshots_id", table_name="history_snapshots")
    op.drop_table("history_snapshots")

    op.drop_index("ix_meal_statuses_day", table_name="meal_statuses")
    op.drop_index("ix_meal_statuses_user_id", table_name="meal_statuses")
    op.drop_index("ix_meal_statuses_id", table_name="meal_statuses")
    op.drop_table("meal_statuses")

    op.drop_index("ix_tracked_metrics_day", table_name="tracked_metrics")
    op.drop_index("ix_tracked_metrics_user_id", table_name="tracked_metrics")
    op.drop_index("ix_tracked_metrics_id", table_name="tracked_metrics")
    op.drop_table("tracked_metrics")

    sa.Enum(name="meal_state_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="metric_kind_enum").drop(op.get_bind(), checkfirst=True)
