"""
Synchronous event bus for studio state changes.

Systems publish what happened; presenters and tests listen. Listeners run
inline during emit(), so a handler sees state exactly as the emitting
system left it.

Usage:
    bus = get_event_bus()
    unsubscribe = bus.on(EventType.PROJECT_RELEASED, show_reveal)
    bus.emit(EventType.PROJECT_RELEASED, week=12, project_id=project.id)
    unsubscribe()
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100


class EventType(Enum):
    WEEK_ENDED = "week.ended"

    CRISIS_RAISED = "crisis.raised"
    CRISIS_RESOLVED = "crisis.resolved"
    DECISION_QUEUED = "decision.queued"
    DECISION_RESOLVED = "decision.resolved"

    PROJECT_PHASE_CHANGED = "project.phase_changed"
    PROJECT_RELEASED = "project.released"

    NEGOTIATION_RESOLVED = "negotiation.resolved"

    IP_RIGHTS_ACQUIRED = "ip.rights_acquired"
    IP_CONTRACT_BREACHED = "ip.contract_breached"

    STUDIO_BANKRUPT = "studio.bankrupt"
    STUDIO_SAVED = "studio.saved"
    STUDIO_LOADED = "studio.loaded"

    @property
    def domain(self) -> str:
        """The part before the dot: week, crisis, project, ..."""
        return self.value.split(".", 1)[0]


@dataclass(frozen=True)
class StudioEvent:
    """One published change, stamped with the studio week it happened in."""

    type: EventType
    week: int = 0
    data: dict = field(default_factory=dict)

    @property
    def project_id(self) -> str | None:
        return self.data.get("project_id")

    def __str__(self) -> str:
        return f"week {self.week} {self.type.value} {self.data}"


Listener = Callable[[StudioEvent], None]


class EventBus:
    """Per-type and catch-all listeners plus a bounded history."""

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        self._listeners: dict[EventType, list[Listener]] = {}
        self._catch_all: list[Listener] = []
        self._history: deque[StudioEvent] = deque(maxlen=history_limit)

    def on(self, event_type: EventType, listener: Listener) -> Callable[[], None]:
        """Subscribe to one event type. Returns a function that unsubscribes."""
        listeners = self._listeners.setdefault(event_type, [])
        if listener not in listeners:
            listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def on_any(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to every event type."""
        if listener not in self._catch_all:
            self._catch_all.append(listener)

        def unsubscribe() -> None:
            if listener in self._catch_all:
                self._catch_all.remove(listener)

        return unsubscribe

    def emit(self, event_type: EventType, week: int = 0, **data) -> StudioEvent:
        event = StudioEvent(type=event_type, week=week, data=data)
        self._history.append(event)
        logger.debug(str(event))

        for listener in [*self._listeners.get(event_type, ()), *self._catch_all]:
            try:
                listener(event)
            except Exception:
                # Listener errors are logged and never reach the emitter
                logger.exception(f"Listener failed on {event_type.value}")
        return event

    def get_history(self, event_type: EventType | None = None) -> list[StudioEvent]:
        """Oldest first, optionally filtered by type."""
        return [e for e in self._history if event_type is None or e.type == event_type]

    def clear(self) -> None:
        self._listeners.clear()
        self._catch_all.clear()
        self._history.clear()


_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Process-wide bus, created on first use."""
    global _bus
    if _bus is None:
        _bus = EventBus()
    return _bus


def reset_event_bus() -> None:
    global _bus
    if _bus is not None:
        _bus.clear()
    _bus = None
