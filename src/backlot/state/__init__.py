"""State management for Backlot."""

from .schema import (
    ActionResult,
    DecisionItem,
    CrisisEvent,
    EffectBundle,
    MovieProject,
    StoryFlags,
    StudioState,
    Talent,
    WeekSummary,
)
from .event_bus import EventBus, EventType, StudioEvent, get_event_bus, reset_event_bus
from .store import JsonStudioStore, MemoryStudioStore, StudioStore

__all__ = [
    "ActionResult",
    "DecisionItem",
    "CrisisEvent",
    "EffectBundle",
    "MovieProject",
    "StoryFlags",
    "StudioState",
    "Talent",
    "WeekSummary",
    "EventBus",
    "EventType",
    "StudioEvent",
    "get_event_bus",
    "reset_event_bus",
    "JsonStudioStore",
    "MemoryStudioStore",
    "StudioStore",
]
