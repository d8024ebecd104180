"""
UserProfile — goal inputs read once per day when a user's day is initialized.

Every column is optional. Missing values fall back to defaults in
vitatrack.services.goals; an empty profile is not an error.

meal_plan: JSON-encoded list of {"id": int, "name": str}.
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Integer, String, Numeric, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from vitatrack.db.base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    # Body data for derived targets
    sex: Mapped[str | None] = mapped_column(String(16), nullable=True)
    weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    height_cm: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    activity_level: Mapped[str | None] = mapped_column(String(32), nullable=True)
    weight_goal: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Explicit goals win over derived ones
    water_target_ml: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weekly_exercise_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    calorie_target: Mapped[int | None] = mapped_column(Integer, nullable=True)
    meal_plan: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
