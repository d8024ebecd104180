"""
HistorySnapshot — immutable copy of a TrackedMetric's final state.

Append-only. One row per (user_id, day, metric_kind); the unique
constraint plus insert-or-ignore makes re-archiving a no-op.

reason values:
  "day_rollover"  — written by the day boundary detector for the prior day
  "manual_reset"  — written just before a user-initiated reset zeroes the row

detail: JSON-encoded Text. For meals, the list of per-meal statuses.
"""
from datetime import datetime, date
from decimal import Decimal

from sqlalchemy import Integer, String, Numeric, Text, DateTime, Date, Enum, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vitatrack.db.base import Base
from vitatrack.models.tracked_metric import MetricKind


class HistorySnapshot(Base):
    __tablename__ = "history_snapshots"
    __table_args__ = (
        UniqueConstraint("user_id", "day", "metric_kind", name="uq_history_user_day_kind"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    metric_kind: Mapped[MetricKind] = mapped_column(
        Enum(MetricKind, name="metric_kind_enum"), nullable=False
    )
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    target: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    unit: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[str] = mapped_column(String(32), nullable=False, default="day_rollover")
    detail: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="JSON payload with kind-specific detail (meal statuses)",
    )
    archived_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
