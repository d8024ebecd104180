"""
Clock — the single source of "today".

Day boundaries are evaluated on a date-only value in the configured zone,
never on raw timestamps, so a user near midnight UTC does not flap
between two days. Tests substitute a fixed clock through the FastAPI
dependency in vitatrack.routers.deps.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from vitatrack.core.config import settings


class Clock:
    def __init__(self, tz_name: str | None = None):
        self.tz = ZoneInfo(tz_name or settings.TIMEZONE)

    def today(self) -> date:
        return datetime.now(tz=self.tz).date()

    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


system_clock = Clock()
