"""
Day boundary detector.

A user's "day" starts lazily: the first request that finds no tracked
metric for (user, today) archives the most recent earlier day that has
live rows, then creates today's rows with targets read from the profile.

Rules
-----
- Fast path: at least one row for today means the day is initialized.
- A failed read is never taken as "not initialized"; the error propagates.
- Archive + creation run in one transaction. If archiving fails, nothing
  for today is written and the caller may retry.
- Creation is insert-or-ignore on the natural key, so two racing requests
  end with one row per kind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from vitatrack.core.errors import UnauthenticatedError
from vitatrack.db.repository import TrackingRepository
from vitatrack.models.meal_status import MealState
from vitatrack.models.tracked_metric import METRIC_UNITS, MetricKind
from vitatrack.services import events
from vitatrack.services.archiver import ArchiveReason, archive_day
from vitatrack.services.goals import DailyTargets, load_targets

logger = logging.getLogger(__name__)


@dataclass
class DayInitResult:
    day: date
    was_reset: bool
    archived_day: Optional[date] = None


def require_user(user_id: Optional[str]) -> str:
    if not user_id or not user_id.strip():
        raise UnauthenticatedError()
    return user_id


def metric_rows(user_id: str, day: date, targets: DailyTargets, kinds=None) -> list[dict]:
    return [
        {
            "user_id": user_id,
            "metric_kind": kind,
            "day": day,
            "current_value": 0,
            "target_value": targets.for_kind(kind),
            "unit": METRIC_UNITS[kind],
        }
        for kind in (kinds or list(MetricKind))
    ]


def meal_rows(user_id: str, day: date, targets: DailyTargets) -> list[dict]:
    return [
        {
            "user_id": user_id,
            "day": day,
            "meal_id": meal.id,
            "name": meal.name,
            "status": MealState.upcoming,
        }
        for meal in targets.meals
    ]


def ensure_day_initialized(db: Session, user_id: str, today: date) -> DayInitResult:
    require_user(user_id)
    repo = TrackingRepository(db)

    if repo.day_has_metrics(user_id, today):
        return DayInitResult(day=today, was_reset=False)

    prior = repo.latest_day_before(user_id, today)
    if prior is not None:
        archive_day(db, user_id, prior, reason=ArchiveReason.DAY_ROLLOVER, commit=False)

    targets = load_targets(db, user_id)
    created = repo.insert_metrics(metric_rows(user_id, today, targets))
    repo.insert_meals(meal_rows(user_id, today, targets))
    repo.commit("initialize day")

    if created == 0:
        # Another request initialized the day between our check and insert.
        return DayInitResult(day=today, was_reset=False, archived_day=prior)

    logger.info("Day started user=%s day=%s archived=%s", user_id, today, prior)
    events.bus.publish(events.TrackingEvent(
        event_type=events.EventType.DAY_STARTED,
        user_id=user_id,
        day=today,
        payload={"archived_day": str(prior) if prior else None},
    ))
    return DayInitResult(day=today, was_reset=True, archived_day=prior)
