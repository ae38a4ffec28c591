"""
Event deck loading.

Templates are authored in event_deck.yaml beside this module and
validated into EventTemplate models on load. A custom deck can be
loaded from any path with the same layout (tests use this).
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from ..state.schema import (
    ArcStatus,
    DecisionCategory,
    DecisionItem,
    EffectBundle,
    EventScope,
    ProjectPhase,
)

logger = logging.getLogger(__name__)

DECK_PATH = Path(__file__).with_name("event_deck.yaml")


class ArcRequirement(BaseModel):
    """Matches when the arc exists and every given field agrees."""
    id: str
    status: ArcStatus | None = None
    min_stage: int | None = None
    max_stage: int | None = None


class EventTemplate(BaseModel):
    id: str
    category: DecisionCategory
    scope: EventScope = EventScope.STUDIO
    target_phases: list[ProjectPhase] = Field(default_factory=list)
    requires_flag: str | None = None
    blocks_flag: str | None = None
    requires_arc: ArcRequirement | None = None
    blocks_arc: ArcRequirement | None = None
    title: str
    decision_title: str
    body: str
    cooldown_weeks: int = 4
    base_weight: float = 1.0
    min_week: int = 1
    arc_id: str | None = None
    weeks_until_expiry: int = 2
    on_expire_clear_flag: str | None = None
    options: list[dict] = Field(default_factory=list)

    def build_decision(self, project_id: str | None, project_title: str | None) -> DecisionItem:
        """Materialise a fresh decision; option ids are new on every draw."""
        subject = project_title or "the studio"
        return DecisionItem(
            project_id=project_id,
            title=self.decision_title.format(project=subject),
            body=self.body.format(project=subject),
            category=self.category,
            weeks_until_expiry=self.weeks_until_expiry,
            options=[EffectBundle(**option) for option in self.options],
            arc_id=self.arc_id,
            template_id=self.id,
            on_expire_clear_flag=self.on_expire_clear_flag,
        )


def load_deck(path: Path | str) -> list[EventTemplate]:
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or []
    deck = [EventTemplate.model_validate(item) for item in raw]
    logger.debug(f"Loaded {len(deck)} event templates from {path}")
    return deck


@lru_cache(maxsize=1)
def _default_deck() -> tuple[EventTemplate, ...]:
    return tuple(load_deck(DECK_PATH))


def get_event_deck() -> list[EventTemplate]:
    """The bundled deck. Templates are shared; do not mutate them."""
    return list(_default_deck())
