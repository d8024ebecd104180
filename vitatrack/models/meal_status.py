import enum
from datetime import datetime, date

from sqlalchemy import Integer, String, DateTime, Date, Enum, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vitatrack.db.base import Base


class MealState(str, enum.Enum):
    upcoming = "upcoming"
    completed = "completed"


class MealStatus(Base):
    """Per-meal completion flag for one user's day. Detail rows of the meal metric."""

    __tablename__ = "meal_statuses"
    __table_args__ = (
        UniqueConstraint("user_id", "day", "meal_id", name="uq_meal_status_user_day_meal"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    meal_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[MealState] = mapped_column(
        Enum(MealState, name="meal_state_enum"),
        nullable=False,
        default=MealState.upcoming,
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
