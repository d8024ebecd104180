"""
History archiver.

Copies live TrackedMetric rows into HistorySnapshot rows, one per
(user_id, day, metric_kind).

  day rollover  — the day's final state. Written once; re-running leaves
                  the existing rollover snapshot untouched. It replaces a
                  manual-reset snapshot of the same day, so history always
                  ends with the values the day closed on.
  manual reset  — the state just before a user-initiated reset. Insert-or-
                  ignore: it never overwrites anything.

Public API
----------
archive_day(db, user_id, day, reason, commit)  -> ArchiveResult
archive_metric(db, metric, reason)              -> bool   (no commit)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from vitatrack.db.repository import TrackingRepository
from vitatrack.models.meal_status import MealStatus
from vitatrack.models.tracked_metric import MetricKind, TrackedMetric

logger = logging.getLogger(__name__)


class ArchiveReason:
    DAY_ROLLOVER = "day_rollover"
    MANUAL_RESET = "manual_reset"


@dataclass
class ArchiveResult:
    day: date
    archived: list[MetricKind]   # snapshots written or replaced by this call
    skipped: list[MetricKind]    # already final


def _meal_detail(meals: list[MealStatus]) -> str:
    return json.dumps([
        {
            "meal_id": m.meal_id,
            "name": m.name,
            "status": m.status.value if hasattr(m.status, "value") else str(m.status),
            "completed_at": m.completed_at.isoformat() if m.completed_at else None,
        }
        for m in meals
    ], ensure_ascii=False)


def _snapshot_row(repo: TrackingRepository, metric: TrackedMetric, reason: str) -> dict[str, Any]:
    detail = None
    if metric.metric_kind == MetricKind.meal:
        detail = _meal_detail(repo.meals_for_day(metric.user_id, metric.day))
    return {
        "user_id": metric.user_id,
        "metric_kind": metric.metric_kind,
        "day": metric.day,
        "value": metric.current_value,
        "target": metric.target_value,
        "unit": metric.unit,
        "reason": reason,
        "detail": detail,
    }


def is_final(reasons: dict[MetricKind, str], kind: MetricKind) -> bool:
    """True once the kind's day has been closed by a rollover."""
    return reasons.get(kind) == ArchiveReason.DAY_ROLLOVER


def archive_day(
    db: Session,
    user_id: str,
    day: date,
    reason: str = ArchiveReason.DAY_ROLLOVER,
    commit: bool = True,
) -> ArchiveResult:
    """
    Snapshot every live metric of `day` for the user.

    With commit=False the caller owns the transaction; the day boundary
    detector uses this so that archiving and new-day creation succeed or
    fail together. Any persistence failure propagates.
    """
    repo = TrackingRepository(db)
    metrics = repo.metrics_for_day(user_id, day)
    reasons = repo.snapshot_reasons(user_id, day)

    if reason == ArchiveReason.DAY_ROLLOVER:
        pending = [m for m in metrics if not is_final(reasons, m.metric_kind)]
        rows = [_snapshot_row(repo, m, reason) for m in pending]
        repo.upsert_final_snapshots(rows, replaceable_reason=ArchiveReason.MANUAL_RESET)
    else:
        pending = [m for m in metrics if m.metric_kind not in reasons]
        rows = [_snapshot_row(repo, m, reason) for m in pending]
        repo.insert_snapshots(rows)
    if commit:
        repo.commit("archive day")

    written = {r["metric_kind"] for r in rows}
    result = ArchiveResult(
        day=day,
        archived=[m.metric_kind for m in metrics if m.metric_kind in written],
        skipped=[m.metric_kind for m in metrics if m.metric_kind not in written],
    )
    logger.info(
        "Archived user=%s day=%s reason=%s archived=%s skipped=%s",
        user_id, day, reason, [k.value for k in result.archived], [k.value for k in result.skipped],
    )
    return result


def archive_metric(db: Session, metric: TrackedMetric, reason: str) -> bool:
    """Snapshot a single live metric. Returns False if one already existed. Does not commit."""
    repo = TrackingRepository(db)
    if metric.metric_kind in repo.snapshot_reasons(metric.user_id, metric.day):
        return False
    return repo.insert_snapshots([_snapshot_row(repo, metric, reason)]) != 0
