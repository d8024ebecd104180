"""
Metric stores — one per metric kind.

Each store owns today's TrackedMetric for its kind. Mutations are bounded
and committed immediately (last write wins per field):

  apply_delta  — current_value += delta, clamped to [0, target * CAP_MULTIPLIER]
                 in a single UPDATE so concurrent increments do not lose writes
  set_target   — today's target only; current_value is re-clamped to the
                 new cap in the same UPDATE; history keeps the old goal
  reset        — snapshot first (reason "manual_reset"), then zero the row

A day closed by a rollover snapshot is read-only for that kind.

The meal store derives current_value from per-meal statuses, so its
progress moves only through mark_complete / mark_upcoming.

Public API
----------
get_store(kind) -> MetricStore | MealStore
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from vitatrack.core.config import settings
from vitatrack.core.errors import InvariantViolationError, MealNotFoundError
from vitatrack.db.repository import TrackingRepository
from vitatrack.models.meal_status import MealState, MealStatus
from vitatrack.models.tracked_metric import MetricKind, TrackedMetric
from vitatrack.services import events
from vitatrack.services.archiver import ArchiveReason, archive_metric, is_final
from vitatrack.services.clock import system_clock
from vitatrack.services.day_boundary import ensure_day_initialized, metric_rows, require_user
from vitatrack.services.goals import load_targets

logger = logging.getLogger(__name__)


def _to_decimal(value, field: str) -> Decimal:
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvariantViolationError(f"{field} must be a number.", {field: str(value)}) from None
    if not d.is_finite():
        raise InvariantViolationError(f"{field} must be finite.", {field: str(value)})
    return d


def cap_for(target: Decimal) -> Decimal:
    return Decimal(target) * settings.CAP_MULTIPLIER


def max_delta() -> Decimal:
    return cap_for(Decimal(settings.MAX_TARGET_VALUE))


@dataclass
class MealProgress:
    metric: TrackedMetric
    meals: list[MealStatus]


class MetricStore:
    def __init__(self, kind: MetricKind):
        self.kind = kind

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_current(self, db: Session, user_id: str, today: date) -> TrackedMetric:
        """Today's record, initializing the day (or just this kind) if needed."""
        ensure_day_initialized(db, user_id, today)
        repo = TrackingRepository(db)
        metric = repo.get_metric(user_id, self.kind, today)
        if metric is None:
            # Day was initialized before this kind existed for the user.
            targets = load_targets(db, user_id)
            repo.insert_metrics(metric_rows(user_id, today, targets, kinds=[self.kind]))
            repo.commit("create tracked metric")
            metric = repo.get_metric(user_id, self.kind, today)
        return metric

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def apply_delta(self, db: Session, user_id: str, today: date, delta) -> TrackedMetric:
        require_user(user_id)
        delta = _to_decimal(delta, "delta")
        if abs(delta) > max_delta():
            raise InvariantViolationError(
                "delta is out of range.", {"delta": str(delta), "max": str(max_delta())}
            )
        metric = self._open_metric(db, user_id, today)
        repo = TrackingRepository(db)

        new_value = TrackedMetric.current_value + delta
        cap = TrackedMetric.target_value * settings.CAP_MULTIPLIER
        stmt = (
            update(TrackedMetric)
            .where(TrackedMetric.id == metric.id)
            .values(current_value=case(
                (new_value < 0, 0),
                (new_value > cap, cap),
                else_=new_value,
            ))
            .execution_options(synchronize_session=False)
        )
        repo.execute(stmt, "apply delta")
        repo.commit("apply delta")
        repo.refresh(metric, "reload tracked metric")

        self._publish_update(metric)
        return metric

    def set_target(self, db: Session, user_id: str, today: date, new_target) -> TrackedMetric:
        require_user(user_id)
        target = _to_decimal(new_target, "target")
        if target <= 0 or target > settings.MAX_TARGET_VALUE:
            raise InvariantViolationError(
                f"target must be greater than zero and at most {settings.MAX_TARGET_VALUE}.",
                {"target": str(target)},
            )
        metric = self._open_metric(db, user_id, today)
        repo = TrackingRepository(db)

        new_cap = cap_for(target)
        stmt = (
            update(TrackedMetric)
            .where(TrackedMetric.id == metric.id)
            .values(
                target_value=target,
                current_value=case(
                    (TrackedMetric.current_value > new_cap, new_cap),
                    else_=TrackedMetric.current_value,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        repo.execute(stmt, "set target")
        repo.commit("set target")
        repo.refresh(metric, "reload tracked metric")

        self._publish_update(metric)
        return metric

    def reset(self, db: Session, user_id: str, today: date) -> TrackedMetric:
        """User-initiated reset of today's progress. History keeps the pre-reset values."""
        require_user(user_id)
        metric = self._open_metric(db, user_id, today)
        repo = TrackingRepository(db)
        archived_value = metric.current_value

        archive_metric(db, metric, ArchiveReason.MANUAL_RESET)
        self._zero(db, metric)
        repo.commit("reset metric")
        repo.refresh(metric, "reload tracked metric")

        logger.info("Reset user=%s kind=%s day=%s", user_id, self.kind.value, today)
        events.bus.publish(events.TrackingEvent(
            event_type=events.EventType.METRIC_RESET,
            user_id=user_id,
            day=today,
            payload={"kind": self.kind.value, "archived_value": str(archived_value)},
        ))
        return metric

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _open_metric(self, db: Session, user_id: str, day: date) -> TrackedMetric:
        """Today's record for a mutation; refuses days already closed by a rollover."""
        metric = self.get_current(db, user_id, day)
        if is_final(TrackingRepository(db).snapshot_reasons(user_id, day), self.kind):
            raise InvariantViolationError(
                f"{day} is archived; only the current day can change.",
                {"day": str(day), "kind": self.kind.value},
            )
        return metric

    def _zero(self, db: Session, metric: TrackedMetric) -> None:
        metric.current_value = Decimal(0)

    def _publish_update(self, metric: TrackedMetric) -> None:
        events.bus.publish(events.TrackingEvent(
            event_type=events.EventType.METRIC_UPDATED,
            user_id=metric.user_id,
            day=metric.day,
            payload={
                "kind": self.kind.value,
                "value": str(metric.current_value),
                "target": str(metric.target_value),
                "unit": metric.unit,
            },
        ))


class MealStore(MetricStore):
    """Meal status store. current_value = completed meals, target_value = meals in plan."""

    def __init__(self):
        super().__init__(MetricKind.meal)

    def apply_delta(self, db: Session, user_id: str, today: date, delta) -> TrackedMetric:
        raise InvariantViolationError(
            "Meal progress changes only by marking meals completed or upcoming.",
            {"kind": MetricKind.meal.value},
        )

    def get_progress(self, db: Session, user_id: str, today: date) -> MealProgress:
        metric = self.get_current(db, user_id, today)
        meals = TrackingRepository(db).meals_for_day(user_id, today)
        return MealProgress(metric=metric, meals=meals)

    def mark_complete(
        self, db: Session, user_id: str, today: date, meal_id: int, now: Optional[datetime] = None
    ) -> MealProgress:
        """Idempotent: a meal already completed keeps its first completed_at."""
        return self._set_state(db, user_id, today, meal_id, MealState.completed, now)

    def mark_upcoming(self, db: Session, user_id: str, today: date, meal_id: int) -> MealProgress:
        return self._set_state(db, user_id, today, meal_id, MealState.upcoming)

    def _set_state(
        self,
        db: Session,
        user_id: str,
        today: date,
        meal_id: int,
        state: MealState,
        now: Optional[datetime] = None,
    ) -> MealProgress:
        require_user(user_id)
        metric = self._open_metric(db, user_id, today)
        repo = TrackingRepository(db)
        meal = repo.get_meal(user_id, today, meal_id)
        if meal is None:
            raise MealNotFoundError(meal_id=meal_id, day=today)

        if meal.status != state:
            meal.status = state
            if state == MealState.completed:
                meal.completed_at = now or system_clock.now()
            else:
                meal.completed_at = None
            repo.flush("update meal status")
            metric.current_value = Decimal(repo.count_completed_meals(user_id, today))
            repo.commit("update meal status")
            repo.refresh(metric, "reload tracked metric")
            self._publish_update(metric)

        return MealProgress(metric=metric, meals=repo.meals_for_day(user_id, today))

    def _zero(self, db: Session, metric: TrackedMetric) -> None:
        for meal in TrackingRepository(db).meals_for_day(metric.user_id, metric.day):
            meal.status = MealState.upcoming
            meal.completed_at = None
        metric.current_value = Decimal(0)


STORES: dict[MetricKind, MetricStore] = {
    MetricKind.meal: MealStore(),
    MetricKind.water: MetricStore(MetricKind.water),
    MetricKind.exercise: MetricStore(MetricKind.exercise),
    MetricKind.calorie: MetricStore(MetricKind.calorie),
}


def get_store(kind: MetricKind) -> MetricStore:
    return STORES[MetricKind(kind)]
