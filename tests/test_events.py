"""
Tests for the tracking event bus.
"""
from datetime import date

from vitatrack.models.tracked_metric import MetricKind
from vitatrack.services import events
from vitatrack.services.day_boundary import ensure_day_initialized
from vitatrack.services.metric_store import get_store

DAY = date(2026, 9, 1)


def _event(kind="water"):
    return events.TrackingEvent(
        event_type=events.EventType.METRIC_UPDATED,
        user_id="u1",
        day=DAY,
        payload={"kind": kind},
    )


class TestEventBus:
    def test_publish_in_subscription_order(self):
        bus = events.EventBus()
        seen = []
        bus.subscribe(lambda e: seen.append(("a", e.payload["kind"])))
        bus.subscribe(lambda e: seen.append(("b", e.payload["kind"])))
        bus.publish(_event())
        assert seen == [("a", "water"), ("b", "water")]

    def test_unsubscribe(self):
        bus = events.EventBus()
        seen = []
        unsubscribe = bus.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        bus.publish(_event())
        assert seen == []

    def test_failing_handler_does_not_stop_others(self):
        bus = events.EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("render failed")

        bus.subscribe(broken)
        bus.subscribe(seen.append)
        bus.publish(_event())
        assert len(seen) == 1


class TestPublishedEvents:
    def test_day_started_once(self, db, user_id):
        received = []
        unsubscribe = events.bus.subscribe(received.append)
        try:
            ensure_day_initialized(db, user_id, DAY)
            ensure_day_initialized(db, user_id, DAY)
        finally:
            unsubscribe()
        started = [e for e in received if e.event_type == events.EventType.DAY_STARTED]
        assert len(started) == 1
        assert started[0].payload == {"archived_day": None}

    def test_failing_subscriber_does_not_undo_write(self, db, user_id):
        def broken(event):
            raise RuntimeError("ui gone")

        unsubscribe = events.bus.subscribe(broken)
        try:
            m = get_store(MetricKind.water).apply_delta(db, user_id, DAY, 300)
        finally:
            unsubscribe()
        assert m.current_value == 300
