"""
Tracking request / response schemas.

POST /tracking/day/init              → DayInitRequest    → DayInitResponse
GET  /tracking/{kind}/today          →                     TrackedMetricResponse
POST /tracking/{kind}/delta          → DeltaRequest      → TrackedMetricResponse
PUT  /tracking/{kind}/target         → TargetRequest     → TrackedMetricResponse
POST /tracking/{kind}/reset          → DayRequest        → TrackedMetricResponse
GET  /tracking/meals/today           →                     MealProgressResponse
POST /tracking/meals/{id}/complete   → DayRequest        → MealProgressResponse
"""
from __future__ import annotations

import math
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vitatrack.core.config import settings


class DayRequest(BaseModel):
    day: Optional[date] = Field(
        default=None,
        description="The caller's current day. Must equal today in the server TIMEZONE; defaults to it.",
        examples=["2026-10-17"],
    )


class DayInitRequest(DayRequest):
    pass


class DeltaRequest(DayRequest):
    delta: float = Field(
        ge=-settings.MAX_TARGET_VALUE * settings.CAP_MULTIPLIER,
        le=settings.MAX_TARGET_VALUE * settings.CAP_MULTIPLIER,
        description="Signed adjustment. The result is clamped to [0, cap].",
        examples=[200, -250],
    )

    @field_validator("delta")
    @classmethod
    def delta_must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("delta must be a finite number")
        return v


class TargetRequest(DayRequest):
    target: float = Field(
        gt=0,
        le=settings.MAX_TARGET_VALUE,
        description="New goal for this day only.",
        examples=[2500],
    )

    @field_validator("target")
    @classmethod
    def target_must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("target must be a finite number")
        return v


class DayInitResponse(BaseModel):
    day: str
    was_reset: bool = Field(description="True when this call started the day.")
    archived_day: Optional[str] = Field(
        default=None, description="Prior day whose final values were archived."
    )


class TrackedMetricResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    metric_kind: str
    day: str
    current_value: float
    target_value: float
    cap: float = Field(description="Upper bound for current_value.")
    unit: str
    progress: float = Field(description="current_value / target_value, 0 when no target.")


class MealStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    meal_id: int
    name: str
    status: str = Field(description='"upcoming" | "completed"')
    completed_at: Optional[str] = None


class MealProgressResponse(BaseModel):
    metric: TrackedMetricResponse
    meals: list[MealStatusResponse]
