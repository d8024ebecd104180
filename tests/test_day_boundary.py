"""
Tests for lazy day initialization and history archiving.

Scenarios:
  - first request of a day creates one record per metric and the meal plan
  - a second request the same day is a no-op
  - rollover archives the last tracked day with its final values and
    starts the new day with the current profile targets
  - archiving is idempotent; a rollover replaces only a manual-reset snapshot
  - a request that loses the initialization race creates nothing extra
  - a persistence failure while archiving leaves the new day untouched
"""
from __future__ import annotations

import json
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from vitatrack.core.errors import PersistenceUnavailableError, UnauthenticatedError
from vitatrack.db.repository import TrackingRepository
from vitatrack.models.history_snapshot import HistorySnapshot
from vitatrack.models.meal_status import MealStatus
from vitatrack.models.tracked_metric import MetricKind, TrackedMetric
from vitatrack.services.archiver import ArchiveReason, archive_day
from vitatrack.services.day_boundary import ensure_day_initialized
from vitatrack.services.goals import upsert_profile
from vitatrack.services.metric_store import get_store

DAY1 = date(2026, 5, 1)
DAY2 = DAY1 + timedelta(days=1)


def _metrics(db, user_id, day):
    return db.query(TrackedMetric).filter_by(user_id=user_id, day=day).all()


def _snapshots(db, user_id, day):
    return {
        s.metric_kind: s
        for s in db.query(HistorySnapshot).filter_by(user_id=user_id, day=day).all()
    }


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

class TestInitialization:
    def test_first_call_creates_records(self, db, user_id):
        result = ensure_day_initialized(db, user_id, DAY1)
        assert result.was_reset is True
        assert result.archived_day is None

        rows = _metrics(db, user_id, DAY1)
        assert {r.metric_kind for r in rows} == set(MetricKind)
        assert all(r.current_value == 0 for r in rows)

        meals = db.query(MealStatus).filter_by(user_id=user_id, day=DAY1).all()
        assert len(meals) == 5

    def test_default_targets(self, db, user_id):
        ensure_day_initialized(db, user_id, DAY1)
        targets = {r.metric_kind: r.target_value for r in _metrics(db, user_id, DAY1)}
        assert targets[MetricKind.water] == Decimal("2000")
        assert targets[MetricKind.exercise] == Decimal("21")
        assert targets[MetricKind.calorie] == Decimal("2000")
        assert targets[MetricKind.meal] == Decimal("5")

    def test_second_call_same_day_is_noop(self, db, user_id):
        ensure_day_initialized(db, user_id, DAY1)
        again = ensure_day_initialized(db, user_id, DAY1)
        assert again.was_reset is False
        assert len(_metrics(db, user_id, DAY1)) == len(MetricKind)
        assert db.query(MealStatus).filter_by(user_id=user_id, day=DAY1).count() == 5

    def test_lost_race_does_not_duplicate_rows(self, db, user_id, monkeypatch):
        ensure_day_initialized(db, user_id, DAY1)
        monkeypatch.setattr(TrackingRepository, "day_has_metrics", lambda self, uid, day: False)

        again = ensure_day_initialized(db, user_id, DAY1)
        assert again.was_reset is False
        rows = _metrics(db, user_id, DAY1)
        assert sorted(r.metric_kind.value for r in rows) == sorted(k.value for k in MetricKind)
        assert db.query(MealStatus).filter_by(user_id=user_id, day=DAY1).count() == 5
        assert db.query(HistorySnapshot).filter_by(user_id=user_id).count() == 0

    def test_lost_race_after_rollover_keeps_snapshots(self, db, user_id, monkeypatch):
        get_store(MetricKind.water).apply_delta(db, user_id, DAY1, 400)
        ensure_day_initialized(db, user_id, DAY2)
        monkeypatch.setattr(TrackingRepository, "day_has_metrics", lambda self, uid, day: False)

        again = ensure_day_initialized(db, user_id, DAY2)
        assert again.was_reset is False
        assert len(_metrics(db, user_id, DAY2)) == len(MetricKind)
        assert db.query(MealStatus).filter_by(user_id=user_id, day=DAY2).count() == 5
        assert db.query(HistorySnapshot).filter_by(user_id=user_id).count() == len(MetricKind)
        assert _snapshots(db, user_id, DAY1)[MetricKind.water].value == Decimal("400")

    def test_blank_user_is_rejected(self, db):
        with pytest.raises(UnauthenticatedError):
            ensure_day_initialized(db, "  ", DAY1)
        with pytest.raises(UnauthenticatedError):
            ensure_day_initialized(db, None, DAY1)

    def test_users_are_isolated(self, db, user_id):
        other = user_id + "-other"
        ensure_day_initialized(db, user_id, DAY1)
        result = ensure_day_initialized(db, other, DAY1)
        assert result.was_reset is True
        assert len(_metrics(db, other, DAY1)) == len(MetricKind)


# ---------------------------------------------------------------------------
# Rollover
# ---------------------------------------------------------------------------

class TestRollover:
    def test_archives_final_values_and_starts_fresh(self, db, user_id):
        water = get_store(MetricKind.water)
        water.apply_delta(db, user_id, DAY1, 1800)
        upsert_profile(db, user_id, {"water_target_ml": 2500})

        result = ensure_day_initialized(db, user_id, DAY2)
        assert result.was_reset is True
        assert result.archived_day == DAY1

        snap = _snapshots(db, user_id, DAY1)[MetricKind.water]
        assert snap.value == Decimal("1800")
        assert snap.target == Decimal("2000")
        assert snap.unit == "ml"
        assert snap.reason == ArchiveReason.DAY_ROLLOVER

        today = water.get_current(db, user_id, DAY2)
        assert today.current_value == 0
        assert today.target_value == Decimal("2500")

    def test_every_kind_is_archived(self, db, user_id):
        ensure_day_initialized(db, user_id, DAY1)
        ensure_day_initialized(db, user_id, DAY2)
        assert set(_snapshots(db, user_id, DAY1)) == set(MetricKind)

    def test_gap_days_archive_last_tracked_day(self, db, user_id):
        ensure_day_initialized(db, user_id, DAY1)
        later = DAY1 + timedelta(days=4)
        result = ensure_day_initialized(db, user_id, later)
        assert result.archived_day == DAY1
        assert db.query(HistorySnapshot).filter_by(user_id=user_id).count() == len(MetricKind)

    def test_meal_snapshot_keeps_per_meal_detail(self, db, user_id):
        meals = get_store(MetricKind.meal)
        meals.mark_complete(db, user_id, DAY1, 1)
        ensure_day_initialized(db, user_id, DAY2)

        snap = _snapshots(db, user_id, DAY1)[MetricKind.meal]
        assert snap.value == Decimal("1")
        detail = json.loads(snap.detail)
        assert [m["meal_id"] for m in detail] == [1, 2, 3, 4, 5]
        assert detail[0]["status"] == "completed"
        assert detail[0]["completed_at"] is not None
        assert detail[1]["status"] == "upcoming"

    def test_rollover_replaces_manual_reset_snapshot(self, db, user_id):
        water = get_store(MetricKind.water)
        water.apply_delta(db, user_id, DAY1, 900)
        water.reset(db, user_id, DAY1)
        water.apply_delta(db, user_id, DAY1, 250)

        result = ensure_day_initialized(db, user_id, DAY2)
        assert result.archived_day == DAY1

        db.expire_all()
        snaps = _snapshots(db, user_id, DAY1)
        assert snaps[MetricKind.water].value == Decimal("250")
        assert snaps[MetricKind.water].reason == ArchiveReason.DAY_ROLLOVER
        assert set(snaps) == set(MetricKind)

    def test_live_rows_of_archived_day_are_kept(self, db, user_id):
        ensure_day_initialized(db, user_id, DAY1)
        ensure_day_initialized(db, user_id, DAY2)
        assert len(_metrics(db, user_id, DAY1)) == len(MetricKind)


# ---------------------------------------------------------------------------
# Archiver
# ---------------------------------------------------------------------------

class TestArchiver:
    def test_archive_is_idempotent(self, db, user_id):
        ensure_day_initialized(db, user_id, DAY1)
        first = archive_day(db, user_id, DAY1)
        second = archive_day(db, user_id, DAY1)

        assert set(first.archived) == set(MetricKind)
        assert second.archived == []
        assert set(second.skipped) == set(MetricKind)
        assert db.query(HistorySnapshot).filter_by(user_id=user_id, day=DAY1).count() == len(MetricKind)

    def test_existing_snapshot_is_never_overwritten(self, db, user_id):
        water = get_store(MetricKind.water)
        water.apply_delta(db, user_id, DAY1, 500)
        archive_day(db, user_id, DAY1)

        metric = water.get_current(db, user_id, DAY1)
        metric.current_value = Decimal("1200")
        db.commit()
        archive_day(db, user_id, DAY1)

        db.expire_all()
        assert _snapshots(db, user_id, DAY1)[MetricKind.water].value == Decimal("500")

    def test_day_without_records_archives_nothing(self, db, user_id):
        result = archive_day(db, user_id, DAY1)
        assert result.archived == []
        assert result.skipped == []


# ---------------------------------------------------------------------------
# Persistence failures
# ---------------------------------------------------------------------------

class TestPersistenceFailure:
    def test_failed_archive_creates_nothing_for_new_day(self, db, user_id, monkeypatch):
        get_store(MetricKind.water).apply_delta(db, user_id, DAY1, 900)

        def failing(self, rows, replaceable_reason):
            raise OperationalError("INSERT INTO history_snapshots", {}, Exception("connection lost"))

        monkeypatch.setattr(TrackingRepository, "_upsert_snapshots", failing)

        with pytest.raises(PersistenceUnavailableError) as exc_info:
            ensure_day_initialized(db, user_id, DAY2)
        assert exc_info.value.details["retriable"] is True

        assert _metrics(db, user_id, DAY2) == []
        assert _snapshots(db, user_id, DAY1) == {}

        # Store is back: the retry archives and starts the day.
        monkeypatch.undo()
        result = ensure_day_initialized(db, user_id, DAY2)
        assert result.was_reset is True
        assert _snapshots(db, user_id, DAY1)[MetricKind.water].value == Decimal("900")

    def test_failed_read_is_not_treated_as_empty_day(self, db, user_id, monkeypatch):
        ensure_day_initialized(db, user_id, DAY1)

        def failing(self, *args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("timeout"))

        monkeypatch.setattr(type(db), "query", failing)
        with pytest.raises(PersistenceUnavailableError):
            ensure_day_initialized(db, user_id, DAY1)
        monkeypatch.undo()

        assert len(_metrics(db, user_id, DAY1)) == len(MetricKind)
