"""Tests for the studio event bus."""

from backlot.state.event_bus import EventBus, EventType, get_event_bus, reset_event_bus


class TestEventBus:
    """Test subscription, history and listener isolation."""

    def test_listener_receives_event(self):
        bus = EventBus()
        seen = []
        bus.on(EventType.PROJECT_RELEASED, seen.append)
        event = bus.emit(EventType.PROJECT_RELEASED, week=12, project_id="project-1")
        assert seen == [event]
        assert event.project_id == "project-1"
        assert event.type.domain == "project"

    def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        unsubscribe = bus.on(EventType.WEEK_ENDED, seen.append)
        unsubscribe()
        bus.emit(EventType.WEEK_ENDED, week=2)
        assert seen == []

    def test_catch_all(self):
        bus = EventBus()
        seen = []
        bus.on_any(lambda e: seen.append(e.type))
        bus.emit(EventType.CRISIS_RAISED)
        bus.emit(EventType.STUDIO_SAVED, slot="a")
        assert seen == [EventType.CRISIS_RAISED, EventType.STUDIO_SAVED]

    def test_failing_listener_is_contained(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.on(EventType.WEEK_ENDED, broken)
        bus.on(EventType.WEEK_ENDED, seen.append)
        bus.emit(EventType.WEEK_ENDED, week=3)
        assert len(seen) == 1

    def test_history_bounded_and_filtered(self):
        bus = EventBus(history_limit=3)
        for week in range(5):
            bus.emit(EventType.WEEK_ENDED, week=week)
        bus.emit(EventType.STUDIO_SAVED)
        assert [e.week for e in bus.get_history(EventType.WEEK_ENDED)] == [3, 4]
        assert len(bus.get_history()) == 3

    def test_global_bus_reset(self):
        bus = get_event_bus()
        assert get_event_bus() is bus
        reset_event_bus()
        assert get_event_bus() is not bus
