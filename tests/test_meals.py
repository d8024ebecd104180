"""
Tests for the meal store: per-meal status, idempotent completion and
progress derived from completed meals.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from vitatrack.core.errors import MealNotFoundError
from vitatrack.models.meal_status import MealState
from vitatrack.models.tracked_metric import MetricKind
from vitatrack.services import events
from vitatrack.services.goals import MealPlanItem, upsert_profile
from vitatrack.services.metric_store import get_store

DAY = date(2026, 7, 1)


@pytest.fixture()
def meals():
    return get_store(MetricKind.meal)


def _meal(progress, meal_id):
    return next(m for m in progress.meals if m.meal_id == meal_id)


class TestProgress:
    def test_default_plan(self, db, user_id, meals):
        p = meals.get_progress(db, user_id, DAY)
        assert [m.name for m in p.meals] == [
            "Breakfast", "Morning snack", "Lunch", "Afternoon snack", "Dinner",
        ]
        assert all(m.status == MealState.upcoming for m in p.meals)
        assert p.metric.target_value == Decimal("5")
        assert p.metric.unit == "meals"

    def test_custom_plan_from_profile(self, db, user_id, meals):
        upsert_profile(db, user_id, {"meal_plan": [
            MealPlanItem(1, "Café da manhã"),
            MealPlanItem(2, "Almoço"),
            MealPlanItem(3, "Jantar"),
        ]})
        p = meals.get_progress(db, user_id, DAY)
        assert [m.meal_id for m in p.meals] == [1, 2, 3]
        assert p.metric.target_value == Decimal("3")


class TestMarkComplete:
    def test_complete_updates_progress(self, db, user_id, meals):
        p = meals.mark_complete(db, user_id, DAY, 3)
        lunch = _meal(p, 3)
        assert lunch.status == MealState.completed
        assert lunch.completed_at is not None
        assert p.metric.current_value == Decimal("1")

        p = meals.mark_complete(db, user_id, DAY, 1)
        assert p.metric.current_value == Decimal("2")

    def test_complete_is_idempotent(self, db, user_id, meals):
        first = _meal(meals.mark_complete(db, user_id, DAY, 2), 2).completed_at

        received: list[events.TrackingEvent] = []
        unsubscribe = events.bus.subscribe(received.append)
        try:
            p = meals.mark_complete(db, user_id, DAY, 2)
        finally:
            unsubscribe()

        assert _meal(p, 2).completed_at == first
        assert p.metric.current_value == Decimal("1")
        assert received == []

    def test_completed_at_comes_from_caller(self, db, user_id, meals):
        at = datetime(2026, 7, 1, 8, 30, tzinfo=timezone.utc)
        p = meals.mark_complete(db, user_id, DAY, 1, now=at)
        assert _meal(p, 1).completed_at.replace(tzinfo=None) == at.replace(tzinfo=None)

    def test_unknown_meal(self, db, user_id, meals):
        with pytest.raises(MealNotFoundError) as exc_info:
            meals.mark_complete(db, user_id, DAY, 99)
        assert exc_info.value.details == {"meal_id": 99, "day": "2026-07-01"}


class TestMarkUpcoming:
    def test_revert_completion(self, db, user_id, meals):
        meals.mark_complete(db, user_id, DAY, 4)
        p = meals.mark_upcoming(db, user_id, DAY, 4)
        snack = _meal(p, 4)
        assert snack.status == MealState.upcoming
        assert snack.completed_at is None
        assert p.metric.current_value == 0

    def test_upcoming_meal_stays_upcoming(self, db, user_id, meals):
        p = meals.mark_upcoming(db, user_id, DAY, 5)
        assert _meal(p, 5).status == MealState.upcoming
        assert p.metric.current_value == 0


class TestMealReset:
    def test_reset_reverts_all_meals(self, db, user_id, meals):
        meals.mark_complete(db, user_id, DAY, 1)
        meals.mark_complete(db, user_id, DAY, 2)
        m = meals.reset(db, user_id, DAY)
        assert m.current_value == 0

        p = meals.get_progress(db, user_id, DAY)
        assert all(x.status == MealState.upcoming for x in p.meals)
        assert all(x.completed_at is None for x in p.meals)
