"""
Tracking event bus.

Stores publish semantic events after a mutation has been committed; UI
adapters subscribe and decide how to render them. The core never formats
user-facing text.

Events
------
  metric_updated  — payload: kind, value, target, unit
  metric_reset    — payload: kind, archived_value
  day_started     — payload: archived_day (ISO date or None)

Handlers run synchronously in publish order. A failing handler is logged
and skipped: the mutation it reacts to is already durable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventType:
    METRIC_UPDATED = "metric_updated"
    METRIC_RESET   = "metric_reset"
    DAY_STARTED    = "day_started"


@dataclass
class TrackingEvent:
    event_type: str
    user_id: str
    day: date
    payload: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[TrackingEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register a handler. Returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: TrackingEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed on %s", handler, event.event_type)


def log_event(event: TrackingEvent) -> None:
    logger.info(
        "%s user=%s day=%s %s",
        event.event_type, event.user_id, event.day, event.payload,
    )


bus = EventBus()
