"""
Tracking router.

POST /tracking/day/init                  — start the day (archive prior, create today's rows)
GET  /tracking/meals/today               — meal metric + per-meal statuses
POST /tracking/meals/{meal_id}/complete  — mark a meal completed (idempotent)
POST /tracking/meals/{meal_id}/upcoming  — undo a completion
GET  /tracking/{kind}/today              — today's record for a metric
POST /tracking/{kind}/delta              — bounded increment / decrement
PUT  /tracking/{kind}/target             — change today's goal
POST /tracking/{kind}/reset              — archive, then zero today's progress

An explicit `day` asserts the caller's current day. It must match the
server's today; anything else (an archived day, a future day) is refused
with 409 so no write lands on the wrong record.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from vitatrack.core.errors import InvariantViolationError
from vitatrack.db.base import get_db
from vitatrack.models.meal_status import MealStatus
from vitatrack.models.tracked_metric import MetricKind, TrackedMetric
from vitatrack.routers.deps import get_clock, get_current_user_id
from vitatrack.schemas.tracking import (
    DayInitRequest,
    DayInitResponse,
    DayRequest,
    DeltaRequest,
    MealProgressResponse,
    MealStatusResponse,
    TargetRequest,
    TrackedMetricResponse,
)
from vitatrack.services.clock import Clock
from vitatrack.services.day_boundary import ensure_day_initialized
from vitatrack.services.metric_store import MealProgress, MealStore, cap_for, get_store

router = APIRouter(prefix="/tracking", tags=["tracking"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def metric_to_response(m: TrackedMetric) -> TrackedMetricResponse:
    target = float(m.target_value)
    return TrackedMetricResponse(
        id=m.id,
        metric_kind=_ev(m.metric_kind),
        day=str(m.day),
        current_value=float(m.current_value),
        target_value=target,
        cap=float(cap_for(m.target_value)),
        unit=m.unit,
        progress=round(float(m.current_value) / target, 4) if target else 0.0,
    )


def _meal_to_response(meal: MealStatus) -> MealStatusResponse:
    return MealStatusResponse(
        meal_id=meal.meal_id,
        name=meal.name,
        status=_ev(meal.status),
        completed_at=meal.completed_at.isoformat() if meal.completed_at else None,
    )


def _progress_to_response(p: MealProgress) -> MealProgressResponse:
    return MealProgressResponse(
        metric=metric_to_response(p.metric),
        meals=[_meal_to_response(m) for m in p.meals],
    )


def _meal_store() -> MealStore:
    return get_store(MetricKind.meal)


def _current_day(requested: Optional[date], clock: Clock) -> date:
    today = clock.today()
    if requested is not None and requested != today:
        raise InvariantViolationError(
            "Only the current day can be tracked.",
            {"day": str(requested), "today": str(today)},
        )
    return today


# ---------------------------------------------------------------------------
# Day boundary
# ---------------------------------------------------------------------------

@router.post(
    "/day/init",
    response_model=DayInitResponse,
    summary="Initialize the user's day",
    responses={
        200: {"description": "Day is initialized (by this call or an earlier one)."},
        409: {"description": "`day` is not the current day."},
        503: {"description": "Store unreachable; nothing was reset. Safe to retry."},
    },
)
def init_day(
    payload: Optional[DayInitRequest] = None,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """
    Idempotent. The first call of a day archives the most recent earlier
    day and creates today's records with targets from the profile.
    Later calls are a no-op with `was_reset: false`.
    """
    today = _current_day(payload.day if payload else None, clock)
    result = ensure_day_initialized(db, user_id, today)
    return DayInitResponse(
        day=str(result.day),
        was_reset=result.was_reset,
        archived_day=str(result.archived_day) if result.archived_day else None,
    )


# ---------------------------------------------------------------------------
# Meals
# ---------------------------------------------------------------------------

@router.get(
    "/meals/today",
    response_model=MealProgressResponse,
    summary="Today's meal plan and completion status",
)
def meals_today(
    day: Optional[date] = Query(default=None, description="Defaults to today.", examples=["2026-10-17"]),
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    return _progress_to_response(_meal_store().get_progress(db, user_id, _current_day(day, clock)))


@router.post(
    "/meals/{meal_id}/complete",
    response_model=MealProgressResponse,
    summary="Mark a meal completed",
    responses={404: {"description": "Meal is not in the day's plan."}},
)
def complete_meal(
    meal_id: int = Path(ge=1),
    payload: Optional[DayRequest] = None,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """Calling it again on a completed meal changes nothing, including `completed_at`."""
    today = _current_day(payload.day if payload else None, clock)
    return _progress_to_response(_meal_store().mark_complete(db, user_id, today, meal_id, now=clock.now()))


@router.post(
    "/meals/{meal_id}/upcoming",
    response_model=MealProgressResponse,
    summary="Revert a meal to upcoming",
    responses={404: {"description": "Meal is not in the day's plan."}},
)
def uncomplete_meal(
    meal_id: int = Path(ge=1),
    payload: Optional[DayRequest] = None,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    today = _current_day(payload.day if payload else None, clock)
    return _progress_to_response(_meal_store().mark_upcoming(db, user_id, today, meal_id))


# ---------------------------------------------------------------------------
# Generic metric endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/{kind}/today",
    response_model=TrackedMetricResponse,
    summary="Today's record for a metric",
)
def metric_today(
    kind: MetricKind,
    day: Optional[date] = Query(default=None, description="Defaults to today.", examples=["2026-10-17"]),
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """Initializes the day first when no record exists yet."""
    metric = get_store(kind).get_current(db, user_id, _current_day(day, clock))
    return metric_to_response(metric)


@router.post(
    "/{kind}/delta",
    response_model=TrackedMetricResponse,
    summary="Adjust today's value",
    responses={409: {"description": "Metric does not accept deltas (meals), or `day` is not the current day."}},
)
def metric_delta(
    kind: MetricKind,
    payload: DeltaRequest,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """
    Add `delta` (may be negative). The stored value never drops below 0
    nor exceeds `cap`; out-of-range results are clamped, not rejected.
    """
    metric = get_store(kind).apply_delta(db, user_id, _current_day(payload.day, clock), payload.delta)
    return metric_to_response(metric)


@router.put(
    "/{kind}/target",
    response_model=TrackedMetricResponse,
    summary="Change today's target",
)
def metric_target(
    kind: MetricKind,
    payload: TargetRequest,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """Only today's record changes. Archived days keep the goal they had."""
    metric = get_store(kind).set_target(db, user_id, _current_day(payload.day, clock), payload.target)
    return metric_to_response(metric)


@router.post(
    "/{kind}/reset",
    response_model=TrackedMetricResponse,
    summary="Reset today's progress",
)
def metric_reset(
    kind: MetricKind,
    payload: Optional[DayRequest] = None,
    user_id: str = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """Writes a `manual_reset` history snapshot before zeroing the record."""
    today = _current_day(payload.day if payload else None, clock)
    return metric_to_response(get_store(kind).reset(db, user_id, today))
