"""
TrackingRepository — the persistence port used by the tracking services.

Every call goes through `_guard`, which rolls back and translates errors:
  driver / network failure  -> PersistenceUnavailableError (retriable)
  constraint or range error -> InvariantViolationError
so callers never mistake "could not read" for "nothing there".

Row creation is insert-or-ignore on the natural key, so concurrent
initializations of the same day converge on one row instead of failing.
Rollover snapshots are the exception: they replace a manual-reset
snapshot of the same day so history ends with the day's final values.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vitatrack.core.errors import InvariantViolationError, PersistenceUnavailableError
from vitatrack.models.history_snapshot import HistorySnapshot
from vitatrack.models.meal_status import MealState, MealStatus
from vitatrack.models.tracked_metric import MetricKind, TrackedMetric
from vitatrack.models.user_profile import UserProfile

_METRIC_KEY = ["user_id", "metric_kind", "day"]
_MEAL_KEY = ["user_id", "day", "meal_id"]
_SNAPSHOT_KEY = ["user_id", "day", "metric_kind"]


class TrackingRepository:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            self.db.rollback()
            raise InvariantViolationError(
                message=f"Natural-key constraint rejected {operation}.",
                details={"operation": operation},
            ) from exc
        except DataError as exc:
            self.db.rollback()
            raise InvariantViolationError(
                message=f"Value out of range during {operation}.",
                details={"operation": operation},
            ) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceUnavailableError(operation) from exc

    # ------------------------------------------------------------------
    # Insert-or-ignore
    # ------------------------------------------------------------------

    def _insert_ignore(self, model, rows: list[dict[str, Any]], keys: list[str]) -> int:
        """Insert rows, skipping any whose natural key already exists. Returns rows written."""
        if not rows:
            return 0
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(model).values(rows).on_conflict_do_nothing(index_elements=keys)
        elif dialect == "sqlite":
            stmt = sqlite_insert(model).values(rows).on_conflict_do_nothing(index_elements=keys)
        else:
            return self._insert_ignore_rowwise(model, rows)
        result = self.db.execute(stmt)
        return result.rowcount if result.rowcount is not None else -1

    def _insert_ignore_rowwise(self, model, rows: list[dict[str, Any]]) -> int:
        written = 0
        for row in rows:
            try:
                with self.db.begin_nested():
                    self.db.add(model(**row))
                written += 1
            except IntegrityError:
                continue
        return written

    def insert_metrics(self, rows: list[dict[str, Any]]) -> int:
        with self._guard("create tracked metrics"):
            return self._insert_ignore(TrackedMetric, rows, _METRIC_KEY)

    def insert_meals(self, rows: list[dict[str, Any]]) -> int:
        with self._guard("create meal statuses"):
            return self._insert_ignore(MealStatus, rows, _MEAL_KEY)

    def insert_snapshots(self, rows: list[dict[str, Any]]) -> int:
        with self._guard("archive history snapshots"):
            return self._insert_ignore(HistorySnapshot, rows, _SNAPSHOT_KEY)

    def upsert_final_snapshots(self, rows: list[dict[str, Any]], replaceable_reason: str) -> int:
        """
        Write final-state snapshots. An existing snapshot is replaced only
        when its reason is `replaceable_reason`; any other one is kept.
        """
        with self._guard("archive history snapshots"):
            return self._upsert_snapshots(rows, replaceable_reason)

    def _upsert_snapshots(self, rows: list[dict[str, Any]], replaceable_reason: str) -> int:
        if not rows:
            return 0
        dialect = self.db.get_bind().dialect.name
        if dialect not in ("postgresql", "sqlite"):
            return self._upsert_snapshots_rowwise(rows, replaceable_reason)
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(HistorySnapshot).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=_SNAPSHOT_KEY,
            set_={
                "value": stmt.excluded.value,
                "target": stmt.excluded.target,
                "unit": stmt.excluded.unit,
                "reason": stmt.excluded.reason,
                "detail": stmt.excluded.detail,
                "archived_at": func.now(),
            },
            where=HistorySnapshot.reason == replaceable_reason,
        )
        result = self.db.execute(stmt)
        return result.rowcount if result.rowcount is not None else -1

    def _upsert_snapshots_rowwise(self, rows: list[dict[str, Any]], replaceable_reason: str) -> int:
        written = 0
        for row in rows:
            existing = (
                self.db.query(HistorySnapshot)
                .filter_by(user_id=row["user_id"], day=row["day"], metric_kind=row["metric_kind"])
                .first()
            )
            if existing is None:
                self.db.add(HistorySnapshot(**row))
            elif existing.reason == replaceable_reason:
                for name in ("value", "target", "unit", "reason", "detail"):
                    setattr(existing, name, row[name])
            else:
                continue
            written += 1
        self.db.flush()
        return written

    # ------------------------------------------------------------------
    # Live metrics
    # ------------------------------------------------------------------

    def day_has_metrics(self, user_id: str, day: date) -> bool:
        with self._guard("check day initialization"):
            return (
                self.db.query(TrackedMetric.id)
                .filter(TrackedMetric.user_id == user_id, TrackedMetric.day == day)
                .first()
                is not None
            )

    def latest_day_before(self, user_id: str, day: date) -> Optional[date]:
        with self._guard("find previous tracked day"):
            return (
                self.db.query(func.max(TrackedMetric.day))
                .filter(TrackedMetric.user_id == user_id, TrackedMetric.day < day)
                .scalar()
            )

    def metrics_for_day(self, user_id: str, day: date) -> list[TrackedMetric]:
        with self._guard("read tracked metrics"):
            return (
                self.db.query(TrackedMetric)
                .filter(TrackedMetric.user_id == user_id, TrackedMetric.day == day)
                .all()
            )

    def get_metric(self, user_id: str, kind: MetricKind, day: date) -> Optional[TrackedMetric]:
        with self._guard("read tracked metric"):
            return (
                self.db.query(TrackedMetric)
                .filter(
                    TrackedMetric.user_id == user_id,
                    TrackedMetric.metric_kind == kind,
                    TrackedMetric.day == day,
                )
                .first()
            )

    def metrics_in_window(
        self, user_id: str, kind: MetricKind, start: date, end: date
    ) -> list[TrackedMetric]:
        with self._guard("read tracked metrics window"):
            return (
                self.db.query(TrackedMetric)
                .filter(
                    TrackedMetric.user_id == user_id,
                    TrackedMetric.metric_kind == kind,
                    TrackedMetric.day >= start,
                    TrackedMetric.day <= end,
                )
                .all()
            )

    # ------------------------------------------------------------------
    # Meals
    # ------------------------------------------------------------------

    def meals_for_day(self, user_id: str, day: date) -> list[MealStatus]:
        with self._guard("read meal statuses"):
            return (
                self.db.query(MealStatus)
                .filter(MealStatus.user_id == user_id, MealStatus.day == day)
                .order_by(MealStatus.meal_id)
                .all()
            )

    def get_meal(self, user_id: str, day: date, meal_id: int) -> Optional[MealStatus]:
        with self._guard("read meal status"):
            return (
                self.db.query(MealStatus)
                .filter(
                    MealStatus.user_id == user_id,
                    MealStatus.day == day,
                    MealStatus.meal_id == meal_id,
                )
                .first()
            )

    def count_completed_meals(self, user_id: str, day: date) -> int:
        with self._guard("count completed meals"):
            return (
                self.db.query(func.count(MealStatus.id))
                .filter(
                    MealStatus.user_id == user_id,
                    MealStatus.day == day,
                    MealStatus.status == MealState.completed,
                )
                .scalar()
                or 0
            )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def snapshot_reasons(self, user_id: str, day: date) -> dict[MetricKind, str]:
        """Archive reason per metric kind already snapshotted for the day."""
        with self._guard("read history snapshots"):
            rows = (
                self.db.query(HistorySnapshot.metric_kind, HistorySnapshot.reason)
                .filter(HistorySnapshot.user_id == user_id, HistorySnapshot.day == day)
                .all()
            )
            return {MetricKind(r.metric_kind): r.reason for r in rows}

    def snapshots_in_window(
        self, user_id: str, kind: MetricKind, start: date, end: date
    ) -> list[HistorySnapshot]:
        with self._guard("read history window"):
            return (
                self.db.query(HistorySnapshot)
                .filter(
                    HistorySnapshot.user_id == user_id,
                    HistorySnapshot.metric_kind == kind,
                    HistorySnapshot.day >= start,
                    HistorySnapshot.day <= end,
                )
                .all()
            )

    def snapshots_page(
        self, user_id: str, kind: MetricKind, limit: int, offset: int
    ) -> tuple[int, list[HistorySnapshot]]:
        with self._guard("list history snapshots"):
            q = self.db.query(HistorySnapshot).filter(
                HistorySnapshot.user_id == user_id,
                HistorySnapshot.metric_kind == kind,
            )
            total = q.count()
            items = q.order_by(HistorySnapshot.day.desc()).offset(offset).limit(limit).all()
            return total, items

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._guard("read user profile"):
            return self.db.execute(
                select(UserProfile).where(UserProfile.user_id == user_id)
            ).scalar_one_or_none()

    def add(self, obj) -> None:
        self.db.add(obj)

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def execute(self, stmt, operation: str):
        with self._guard(operation):
            return self.db.execute(stmt)

    def flush(self, operation: str) -> None:
        with self._guard(operation):
            self.db.flush()

    def commit(self, operation: str) -> None:
        with self._guard(operation):
            self.db.commit()

    def refresh(self, obj, operation: str) -> None:
        with self._guard(operation):
            self.db.refresh(obj)
