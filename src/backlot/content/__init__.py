"""Authored content for Backlot."""

from .event_deck import ArcRequirement, EventTemplate, get_event_deck, load_deck

__all__ = ["ArcRequirement", "EventTemplate", "get_event_deck", "load_deck"]
