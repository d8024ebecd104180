"""
TrackedMetric — the live, mutable progress row for one metric on one day.

Natural key: (user_id, metric_kind, day). Rows are created with an
insert-or-ignore on that key, so a day initialized twice still has one row.

target_value is copied from the user's profile when the row is created and
is never recomputed afterwards; history reflects what the goal was then.
"""
import enum
from datetime import datetime, date
from decimal import Decimal

from sqlalchemy import Integer, String, Numeric, DateTime, Date, Enum, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vitatrack.db.base import Base


class MetricKind(str, enum.Enum):
    meal = "meal"
    water = "water"
    exercise = "exercise"
    calorie = "calorie"


METRIC_UNITS: dict[MetricKind, str] = {
    MetricKind.meal: "meals",
    MetricKind.water: "ml",
    MetricKind.exercise: "min",
    MetricKind.calorie: "kcal",
}


class TrackedMetric(Base):
    __tablename__ = "tracked_metrics"
    __table_args__ = (
        UniqueConstraint("user_id", "metric_kind", "day", name="uq_tracked_metric_user_kind_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    metric_kind: Mapped[MetricKind] = mapped_column(
        Enum(MetricKind, name="metric_kind_enum"), nullable=False
    )
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    current_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    target_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    unit: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
