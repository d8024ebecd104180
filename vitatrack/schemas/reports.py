"""
Reporting schemas.

GET /reports/{kind}/series        → SeriesResponse
GET /reports/{kind}/success-rate  → SuccessRateResponse
GET /reports/{kind}/stats         → MetricStatsResponse
GET /reports/{kind}/adherence     → AdherenceResponse
GET /reports/{kind}/history       → HistoryListResponse
"""
from typing import Any, Optional

from pydantic import BaseModel, Field


class SeriesPointResponse(BaseModel):
    day: str
    value: float
    target: float
    recorded: bool = Field(description="False when the day had no record and was filled.")


class SeriesResponse(BaseModel):
    metric_kind: str
    window_days: int
    points: list[SeriesPointResponse] = Field(description="One per day, oldest first.")


class SuccessRateResponse(BaseModel):
    metric_kind: str
    window_days: int
    threshold: float = Field(description="Fraction of target that counts as success.")
    success_rate: float = Field(description="Percentage of window days that met the threshold. Range: 0–100.")


class MetricStatsResponse(BaseModel):
    metric_kind: str
    window_days: int
    days_recorded: int
    total_value: float
    average_value: float
    average_target: float
    days_met: int
    success_rate: float
    threshold: float


class AdherenceResponse(BaseModel):
    metric_kind: str
    window_days: int
    days_recorded: int
    completed_total: float = Field(description="Progress up to the target, summed over recorded days.")
    planned_total: float = Field(description="Targets summed over recorded days.")
    adherence_rate: float = Field(description="completed_total / planned_total as a percentage.")
    consistency_score: int = Field(ge=1, le=5)
    perfect_days: int
    current_streak: int = Field(description="Consecutive qualifying days ending today (or yesterday while today is open).")
    longest_streak: int
    last_perfect_day: Optional[str] = None
    min_adherence: float = Field(description="Fraction of target a day needs to count toward a streak.")


class HistorySnapshotResponse(BaseModel):
    id: int
    metric_kind: str
    day: str
    value: float
    target: float
    unit: str
    reason: str = Field(description='"day_rollover" | "manual_reset"')
    detail: Optional[Any] = None
    archived_at: str


class HistoryListResponse(BaseModel):
    total: int
    items: list[HistorySnapshotResponse]
