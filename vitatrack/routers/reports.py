"""
Reports router — read-only views over tracking history.

GET /reports/{kind}/series        — daily series, gaps filled
GET /reports/{kind}/success-rate  — % of days meeting target * threshold
GET /reports/{kind}/stats         — totals / averages for the window
GET /reports/{kind}/adherence     — adherence rate, perfect days and streaks
GET /reports/{kind}/history       — archived snapshots (paginated, newest first)
"""
from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vitatrack.core.config import settings
from vitatrack.db.base import get_db
from vitatrack.models.history_snapshot import HistorySnapshot
from vitatrack.models.tracked_metric import MetricKind
from vitatrack.routers.deps import get_clock, get_current_user_id
from vitatrack.schemas.reports import (
    AdherenceResponse,
    HistoryListResponse,
    HistorySnapshotResponse,
    MetricStatsResponse,
    SeriesPointResponse,
    SeriesResponse,
    SuccessRateResponse,
)
from vitatrack.services.clock import Clock
from vitatrack.services.reports import (
    get_adherence,
    get_daily_series,
    get_history,
    get_metric_stats,
    get_success_rate,
    success_threshold,
)

router = APIRouter(prefix="/reports", tags=["reports"])

WindowDays = Annotated[int, Query(
    ge=1,
    le=settings.MAX_WINDOW_DAYS,
    description="Number of days ending at `day` (inclusive).",
)]
WindowEnd = Annotated[Optional[date], Query(
    description="Last day of the window. Defaults to today.",
    examples=["2026-10-17"],
)]
Threshold = Annotated[Optional[float], Query(
    gt=0,
    le=2,
    description="Fraction of target counted as success. Defaults per metric (water 0.8, others 1.0).",
)]


# ---------------------------------------------------------------------------
# Serialization helper
# ---------------------------------------------------------------------------

def _parse_detail(raw: Optional[str]) -> Optional[Any]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return None


def _snapshot_to_response(s: HistorySnapshot) -> HistorySnapshotResponse:
    return HistorySnapshotResponse(
        id=s.id,
        metric_kind=s.metric_kind.value if hasattr(s.metric_kind, "value") else str(s.metric_kind),
        day=str(s.day),
        value=float(s.value),
        target=float(s.target),
        unit=s.unit,
        reason=s.reason,
        detail=_parse_detail(s.detail),
        archived_at=s.archived_at.isoformat() if s.archived_at else "",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/{kind}/series", response_model=SeriesResponse, summary="Daily series for charts")
def series(
    kind: MetricKind,
    window_days: WindowDays = settings.DEFAULT_WINDOW_DAYS,
    day: WindowEnd = None,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """One point per day, oldest first. Days without data appear with value 0."""
    points = get_daily_series(db, user_id, kind, window_days, day or clock.today())
    return SeriesResponse(
        metric_kind=kind.value,
        window_days=window_days,
        points=[
            SeriesPointResponse(
                day=str(p.day), value=float(p.value), target=float(p.target), recorded=p.recorded,
            )
            for p in points
        ],
    )


@router.get("/{kind}/success-rate", response_model=SuccessRateResponse, summary="Success rate")
def success_rate(
    kind: MetricKind,
    window_days: WindowDays = settings.DEFAULT_WINDOW_DAYS,
    day: WindowEnd = None,
    threshold: Threshold = None,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """An empty window yields 0, never an error."""
    limit = Decimal(str(threshold)) if threshold is not None else success_threshold(kind)
    rate = get_success_rate(db, user_id, kind, window_days, day or clock.today(), limit)
    return SuccessRateResponse(
        metric_kind=kind.value,
        window_days=window_days,
        threshold=float(limit),
        success_rate=float(rate),
    )


@router.get("/{kind}/stats", response_model=MetricStatsResponse, summary="Window statistics")
def stats(
    kind: MetricKind,
    window_days: WindowDays = settings.DEFAULT_WINDOW_DAYS,
    day: WindowEnd = None,
    threshold: Threshold = None,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    limit = Decimal(str(threshold)) if threshold is not None else None
    s = get_metric_stats(db, user_id, kind, window_days, day or clock.today(), limit)
    return MetricStatsResponse(
        metric_kind=s.kind.value,
        window_days=s.window_days,
        days_recorded=s.days_recorded,
        total_value=float(s.total_value),
        average_value=float(s.average_value),
        average_target=float(s.average_target),
        days_met=s.days_met,
        success_rate=float(s.success_rate),
        threshold=float(s.threshold),
    )


@router.get("/{kind}/adherence", response_model=AdherenceResponse, summary="Adherence and streaks")
def adherence(
    kind: MetricKind,
    window_days: WindowDays = settings.DEFAULT_WINDOW_DAYS,
    day: WindowEnd = None,
    min_adherence: Threshold = None,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """Today does not break the current streak until the day is over."""
    limit = Decimal(str(min_adherence)) if min_adherence is not None else None
    a = get_adherence(db, user_id, kind, window_days, day or clock.today(), limit)
    return AdherenceResponse(
        metric_kind=a.kind.value,
        window_days=a.window_days,
        days_recorded=a.days_recorded,
        completed_total=float(a.completed_total),
        planned_total=float(a.planned_total),
        adherence_rate=float(a.adherence_rate),
        consistency_score=a.consistency_score,
        perfect_days=a.perfect_days,
        current_streak=a.current_streak,
        longest_streak=a.longest_streak,
        last_perfect_day=str(a.last_perfect_day) if a.last_perfect_day else None,
        min_adherence=float(a.min_adherence),
    )


@router.get("/{kind}/history", response_model=HistoryListResponse, summary="Archived snapshots")
def history(
    kind: MetricKind,
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    total, items = get_history(db, user_id, kind, limit=limit, offset=offset)
    return HistoryListResponse(total=total, items=[_snapshot_to_response(s) for s in items])
