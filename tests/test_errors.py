"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
from datetime import date

from sqlalchemy.exc import DataError, OperationalError

from vitatrack.core.errors import (
    InvariantViolationError,
    MealNotFoundError,
    PersistenceUnavailableError,
    UnauthenticatedError,
)
from vitatrack.db.repository import TrackingRepository


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_unauthenticated(self):
        err = UnauthenticatedError()
        assert err.http_status == 401
        assert err.code == "UNAUTHENTICATED"
        assert "details" not in err.to_dict()

    def test_persistence_unavailable(self):
        err = PersistenceUnavailableError("initialize day")
        assert err.http_status == 503
        assert err.code == "PERSISTENCE_UNAVAILABLE"
        assert "initialize day" in err.message
        assert err.to_dict()["details"] == {"operation": "initialize day", "retriable": True}

    def test_invariant_violation(self):
        err = InvariantViolationError("target must be greater than zero.", {"target": "0"})
        assert err.http_status == 409
        assert err.code == "INVARIANT_VIOLATION"
        assert err.to_dict()["details"]["target"] == "0"

    def test_meal_not_found(self):
        err = MealNotFoundError(meal_id=7, day=date(2026, 2, 20))
        assert err.http_status == 404
        assert err.code == "MEAL_NOT_FOUND"
        assert "2026-02-20" in err.message
        assert err.to_dict()["details"] == {"meal_id": 7, "day": "2026-02-20"}


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

class TestAuthentication:
    def test_missing_header_is_401(self, client):
        r = client.get("/tracking/water/today")
        assert r.status_code == 401
        assert r.json()["code"] == "UNAUTHENTICATED"

    def test_blank_header_is_401(self, client):
        r = client.post("/tracking/day/init", headers={"X-User-Id": "   "})
        assert r.status_code == 401

    def test_reports_require_user(self, client):
        assert client.get("/reports/water/series").status_code == 401

    def test_profile_requires_user(self, client):
        assert client.get("/profile").status_code == 401


class TestValidationErrors:
    def test_missing_delta(self, client, headers):
        r = client.post("/tracking/water/delta", json={}, headers=headers)
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        fields = [e["field"] for e in body["details"]["errors"]]
        assert "delta" in fields

    def test_non_numeric_delta(self, client, headers):
        r = client.post("/tracking/water/delta", json={"delta": "a lot"}, headers=headers)
        assert r.status_code == 422

    def test_bad_day(self, client, headers):
        r = client.post("/tracking/day/init", json={"day": "yesterday"}, headers=headers)
        assert r.status_code == 422
        assert r.json()["details"]["errors"][0]["field"] == "day"

    def test_meal_id_must_be_positive(self, client, headers):
        r = client.post("/tracking/meals/0/complete", headers=headers)
        assert r.status_code == 422


class TestPersistenceErrors:
    def test_store_failure_is_503(self, client, headers, monkeypatch):
        def failing(self, user_id, day):
            raise PersistenceUnavailableError("check day initialization")

        monkeypatch.setattr(TrackingRepository, "day_has_metrics", failing)
        r = client.post("/tracking/day/init", headers=headers)
        assert r.status_code == 503
        body = r.json()
        assert body["code"] == "PERSISTENCE_UNAVAILABLE"
        assert body["details"]["retriable"] is True

    def test_driver_error_is_translated(self, client, headers, monkeypatch):
        def failing(self, model, rows, keys):
            raise OperationalError("INSERT", {}, Exception("connection refused"))

        monkeypatch.setattr(TrackingRepository, "_insert_ignore", failing)
        r = client.get("/tracking/water/today", headers=headers)
        assert r.status_code == 503
        assert r.json()["details"]["operation"] == "create tracked metrics"

    def test_out_of_range_value_is_conflict(self, client, headers, monkeypatch):
        def failing(self, model, rows, keys):
            raise DataError("INSERT", {}, Exception("numeric field overflow"))

        monkeypatch.setattr(TrackingRepository, "_insert_ignore", failing)
        r = client.post("/tracking/day/init", headers=headers)
        assert r.status_code == 409
        body = r.json()
        assert body["code"] == "INVARIANT_VIOLATION"
        assert body["details"]["operation"] == "create tracked metrics"
