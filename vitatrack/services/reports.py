"""
Reporting views over tracking history. Read-only: nothing here writes,
and nothing here initializes a day.

Per-day value source
--------------------
  past days — the day_rollover HistorySnapshot for that day; otherwise
              its live TrackedMetric row, then a manual_reset snapshot
  today     — always the live TrackedMetric row

Days with neither are gaps: the series fills them with value 0 and the
default target for the kind, and they count as unmet in success rates.

Public API
----------
get_daily_series(db, user_id, kind, window_days, today)           -> list[SeriesPoint]
get_success_rate(db, user_id, kind, window_days, today, threshold) -> Decimal (0–100)
get_metric_stats(db, user_id, kind, window_days, today)           -> MetricStats
get_adherence(db, user_id, kind, window_days, today)              -> Adherence
get_history(db, user_id, kind, limit, offset)                      -> (total, snapshots)
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.orm import Session

from vitatrack.core.config import settings
from vitatrack.core.errors import InvariantViolationError
from vitatrack.db.repository import TrackingRepository
from vitatrack.models.history_snapshot import HistorySnapshot
from vitatrack.models.tracked_metric import MetricKind
from vitatrack.services.archiver import ArchiveReason
from vitatrack.services.day_boundary import require_user
from vitatrack.services.goals import default_target

_PCT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class SeriesPoint:
    day: date
    value: Decimal
    target: Decimal
    recorded: bool       # False for gap-filled days


@dataclass
class MetricStats:
    kind: MetricKind
    window_days: int
    days_recorded: int
    total_value: Decimal
    average_value: Decimal     # over recorded days
    average_target: Decimal    # over recorded days
    days_met: int
    success_rate: Decimal      # percentage of the whole window
    threshold: Decimal


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def success_threshold(kind: MetricKind) -> Decimal:
    """Fraction of the target that counts as a successful day."""
    if kind == MetricKind.water:
        return settings.WATER_SUCCESS_THRESHOLD
    return settings.DEFAULT_SUCCESS_THRESHOLD


def _window(today: date, window_days: int) -> list[date]:
    if window_days < 1:
        raise InvariantViolationError(
            "window_days must be at least 1.", {"window_days": window_days}
        )
    return [today - timedelta(days=i) for i in range(window_days - 1, -1, -1)]  # oldest → newest


def _is_met(value: Decimal, target: Decimal, threshold: Decimal) -> bool:
    return target > 0 and value >= target * threshold


def _pct(part: int, whole: int) -> Decimal:
    if whole == 0:
        return Decimal("0.00")
    return (Decimal(part) * 100 / Decimal(whole)).quantize(_PCT, rounding=ROUND_HALF_UP)


def _recorded_values(
    db: Session, user_id: str, kind: MetricKind, days: list[date], today: date
) -> dict[date, tuple[Decimal, Decimal]]:
    repo = TrackingRepository(db)
    start, end = days[0], days[-1]

    found: dict[date, tuple[Decimal, Decimal]] = {}
    final: set[date] = set()
    for snap in repo.snapshots_in_window(user_id, kind, start, end):
        if snap.day != today:
            found[snap.day] = (Decimal(snap.value), Decimal(snap.target))
            if snap.reason == ArchiveReason.DAY_ROLLOVER:
                final.add(snap.day)
    for live in repo.metrics_in_window(user_id, kind, start, end):
        # A manual-reset snapshot holds pre-reset values; the live row is newer.
        if live.day not in final:
            found[live.day] = (Decimal(live.current_value), Decimal(live.target_value))
    return found


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def get_daily_series(
    db: Session,
    user_id: str,
    kind: MetricKind,
    window_days: int,
    today: date,
) -> list[SeriesPoint]:
    """One point per day in the window, oldest first, with no gaps."""
    require_user(user_id)
    kind = MetricKind(kind)
    days = _window(today, window_days)
    recorded = _recorded_values(db, user_id, kind, days, today)
    fill_target = default_target(kind)

    series: list[SeriesPoint] = []
    for d in days:
        if d in recorded:
            value, target = recorded[d]
            series.append(SeriesPoint(day=d, value=value, target=target, recorded=True))
        else:
            series.append(SeriesPoint(day=d, value=Decimal(0), target=fill_target, recorded=False))
    return series


def get_success_rate(
    db: Session,
    user_id: str,
    kind: MetricKind,
    window_days: int,
    today: date,
    threshold: Optional[Decimal] = None,
) -> Decimal:
    """Percentage (0–100, two decimals) of window days whose value reached target * threshold."""
    kind = MetricKind(kind)
    limit = success_threshold(kind) if threshold is None else Decimal(threshold)
    series = get_daily_series(db, user_id, kind, window_days, today)
    met = sum(1 for p in series if p.recorded and _is_met(p.value, p.target, limit))
    return _pct(met, len(series))


def get_metric_stats(
    db: Session,
    user_id: str,
    kind: MetricKind,
    window_days: int,
    today: date,
    threshold: Optional[Decimal] = None,
) -> MetricStats:
    kind = MetricKind(kind)
    limit = success_threshold(kind) if threshold is None else Decimal(threshold)
    series = get_daily_series(db, user_id, kind, window_days, today)
    recorded = [p for p in series if p.recorded]

    total = sum((p.value for p in recorded), Decimal(0))
    total_target = sum((p.target for p in recorded), Decimal(0))
    n = len(recorded)
    met = sum(1 for p in recorded if _is_met(p.value, p.target, limit))

    return MetricStats(
        kind=kind,
        window_days=len(series),
        days_recorded=n,
        total_value=total,
        average_value=(total / n).quantize(_PCT, rounding=ROUND_HALF_UP) if n else Decimal("0.00"),
        average_target=(total_target / n).quantize(_PCT, rounding=ROUND_HALF_UP) if n else Decimal("0.00"),
        days_met=met,
        success_rate=_pct(met, len(series)),
        threshold=limit,
    )


def get_history(
    db: Session,
    user_id: str,
    kind: MetricKind,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[HistorySnapshot]]:
    """Return (total, page) of archived snapshots, newest day first."""
    require_user(user_id)
    return TrackingRepository(db).snapshots_page(user_id, MetricKind(kind), limit, offset)


# ---------------------------------------------------------------------------
# Adherence and streaks
# ---------------------------------------------------------------------------

@dataclass
class Adherence:
    kind: MetricKind
    window_days: int
    days_recorded: int
    completed_total: Decimal   # sum of min(value, target) over recorded days
    planned_total: Decimal     # sum of targets over recorded days
    adherence_rate: Decimal    # completed / planned, percentage
    consistency_score: int     # 1..5
    perfect_days: int          # value >= target
    current_streak: int
    longest_streak: int
    last_perfect_day: Optional[date]
    min_adherence: Decimal


def consistency_score(adherence_rate: Decimal) -> int:
    for floor, score in ((90, 5), (80, 4), (70, 3), (60, 2)):
        if adherence_rate >= floor:
            return score
    return 1


def _streaks(qualifying: list[bool]) -> tuple[int, int]:
    """(current, longest) runs of True. The last entry is today, which
    does not break the current streak while still unmet."""
    longest = run = 0
    for ok in qualifying:
        run = run + 1 if ok else 0
        longest = max(longest, run)

    current = 0
    tail = qualifying if qualifying and qualifying[-1] else qualifying[:-1]
    for ok in reversed(tail):
        if not ok:
            break
        current += 1
    return current, longest


def get_adherence(
    db: Session,
    user_id: str,
    kind: MetricKind,
    window_days: int,
    today: date,
    min_adherence: Optional[Decimal] = None,
) -> Adherence:
    """
    Plan adherence over the window. For meals this is completed / planned
    meals; for the other kinds progress above the target is not counted.
    A day extends a streak when value >= target * min_adherence
    (STREAK_MIN_ADHERENCE by default); gaps break streaks.
    """
    kind = MetricKind(kind)
    limit = settings.STREAK_MIN_ADHERENCE if min_adherence is None else Decimal(min_adherence)
    series = get_daily_series(db, user_id, kind, window_days, today)
    recorded = [p for p in series if p.recorded]

    completed = sum((min(p.value, p.target) for p in recorded), Decimal(0))
    planned = sum((p.target for p in recorded), Decimal(0))
    rate = (completed * 100 / planned).quantize(_PCT, rounding=ROUND_HALF_UP) if planned else Decimal("0.00")

    perfect = [p.day for p in recorded if _is_met(p.value, p.target, Decimal(1))]
    current, longest = _streaks([p.recorded and _is_met(p.value, p.target, limit) for p in series])

    return Adherence(
        kind=kind,
        window_days=len(series),
        days_recorded=len(recorded),
        completed_total=completed,
        planned_total=planned,
        adherence_rate=rate,
        consistency_score=consistency_score(rate),
        perfect_days=len(perfect),
        current_streak=current,
        longest_streak=longest,
        last_perfect_day=perfect[-1] if perfect else None,
        min_adherence=limit,
    )
