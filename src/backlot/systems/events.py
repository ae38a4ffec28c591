"""
Event and decision scheduler for Backlot.

Each week, while the decision queue has room, one template is drawn from
the event deck by weighted random choice. Templates are filtered by
minimum week, cooldown, story flags, arc gates and duplicate titles, then
weighted by:
- base weight
- candidate project count (project scope)
- low cash (finance) and low heat (marketing)
- open crises (operations, damped)
- arc outcome category bias
- rival arc pressure on the template's arc
- repetition of the same category in the last one or two draws

Resolving a decision applies its option through apply_effect_bundle(),
the single routine shared with crisis resolution.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Protocol

from ..constants import (
    ARC_FAILED_EFFECTS,
    ARC_LABELS,
    ARC_RESOLVED_EFFECTS,
    LOW_CASH_FINANCE_THRESHOLD,
    LOW_HEAT_MARKETING_THRESHOLD,
    MAX_DECISION_QUEUE,
    MAX_PROJECT_WEEKS_AHEAD,
    DISTRIBUTION_LEVERAGE_STEP,
    RECENT_CATEGORY_MEMORY,
    SPECIALIZATION_PROFILES,
    clamp,
)
from ..state.event_bus import EventType
from ..state.schema import (
    ArcStatus,
    ChronicleType,
    DecisionCategory,
    DecisionItem,
    EffectBundle,
    EventScope,
    Impact,
    MovieProject,
    ProjectPhase,
    RivalInteractionKind,
    StoryArcState,
    StudioSpecialization,
)

if TYPE_CHECKING:
    from ..content.event_deck import ArcRequirement, EventTemplate
    from ..state.event_bus import EventBus
    from ..state.schema import StudioState
    from .finance import FinanceSystem
    from .rivals import RivalSystem

logger = logging.getLogger(__name__)

COUNTERPLAY_PREFIX = "Counterplay:"


# -----------------------------------------------------------------------------
# Arc outcome modifiers
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ArcOutcomeModifiers:
    """Studio-wide levers earned (or lost) by finished story arcs."""
    talent_leverage: float = 0.0
    distribution_leverage: float = 0.0
    burn_multiplier: float = 1.0
    hype_decay_step: float = 2.0
    release_heat_momentum: float = 0.0
    category_bias: dict[DecisionCategory, float] = field(default_factory=dict)


def compute_arc_outcome_modifiers(
    story_arcs: dict[str, StoryArcState],
    executive_network_level: int = 0,
    specialization: StudioSpecialization = StudioSpecialization.BALANCED,
    distribution_department_level: int = 0,
) -> ArcOutcomeModifiers:
    talent = 0.0
    distribution = 0.0
    burn = 1.0
    decay = 2.0
    momentum = 0.0
    bias: dict[DecisionCategory, float] = {}

    for arc_id, arc in story_arcs.items():
        if arc.status == ArcStatus.RESOLVED:
            effects = ARC_RESOLVED_EFFECTS.get(arc_id)
        elif arc.status == ArcStatus.FAILED:
            effects = ARC_FAILED_EFFECTS.get(arc_id)
        else:
            continue
        if not effects:
            continue
        talent += effects.get("talent", 0)
        distribution += effects.get("distribution", 0)
        burn *= effects.get("burn", 1)
        decay += effects.get("decay", 0)
        momentum += effects.get("momentum", 0)
        for category, amount in effects.get("bias", {}).items():
            bias[category] = bias.get(category, 0) + amount

    distribution += executive_network_level * 0.01
    talent += executive_network_level * 0.012

    distribution += SPECIALIZATION_PROFILES[specialization][4]
    distribution += distribution_department_level * DISTRIBUTION_LEVERAGE_STEP
    if specialization == StudioSpecialization.BLOCKBUSTER:
        decay = max(0.8, decay - 0.2)
    elif specialization == StudioSpecialization.PRESTIGE:
        momentum += 0.6

    return ArcOutcomeModifiers(
        talent_leverage=clamp(talent, -0.2, 0.2),
        distribution_leverage=clamp(distribution, -0.12, 0.12),
        burn_multiplier=clamp(burn, 0.85, 1.2),
        hype_decay_step=clamp(decay, 0.8, 3.2),
        release_heat_momentum=clamp(momentum, -3, 3),
        category_bias=bias,
    )


# -----------------------------------------------------------------------------
# Effect bundles
# -----------------------------------------------------------------------------

class EffectHost(Protocol):
    state: StudioState

    @property
    def finance(self) -> FinanceSystem: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...


def apply_effect_bundle(host: EffectHost, option: EffectBundle, project: MovieProject | None) -> None:
    """
    Apply one option to its target.

    Project fields change only when a project is given; cash, reputation
    and story flags are studio-wide. Arc mutation is left to the caller,
    which knows which arc (if any) the option belongs to.
    """
    state = host.state
    if project is not None:
        project.script_quality = clamp(project.script_quality + option.script_quality_delta, 0, 10)
        project.hype_score = clamp(project.hype_score + option.hype_delta, 0, 100)
        if option.release_week_shift and project.release_week:
            project.release_week = int(
                clamp(
                    project.release_week + option.release_week_shift,
                    state.current_week + 1,
                    state.current_week + MAX_PROJECT_WEEKS_AHEAD,
                )
            )
        if option.schedule_delta:
            project.scheduled_weeks_remaining = max(
                0, project.scheduled_weeks_remaining + option.schedule_delta
            )
        if option.marketing_delta:
            project.marketing_budget = max(0, project.marketing_budget + option.marketing_delta)
        if option.overrun_risk_delta:
            project.budget.overrun_risk = clamp(
                project.budget.overrun_risk + option.overrun_risk_delta, 0.05, 0.75
            )

    host.finance.adjust_cash(option.cash_delta)
    if option.studio_heat_delta:
        host.adjust_reputation(option.studio_heat_delta, "all")
    if option.critics_delta:
        host.adjust_reputation(option.critics_delta, "critics")
    if option.talent_rep_delta:
        host.adjust_reputation(option.talent_rep_delta, "talent")
    if option.distributor_rep_delta:
        host.adjust_reputation(option.distributor_rep_delta, "distributor")
    if option.audience_delta:
        host.adjust_reputation(option.audience_delta, "audience")

    if option.set_flag:
        state.story_flags.set(option.set_flag)
    if option.clear_flag:
        state.story_flags.clear(option.clear_flag)


# -----------------------------------------------------------------------------
# Scheduler
# -----------------------------------------------------------------------------

class EventHost(Protocol):
    """What the scheduler needs from the studio."""

    state: StudioState
    bus: EventBus
    event_rng: Callable[[], float]
    event_deck: list[EventTemplate]
    last_event_week: dict[str, int]

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def rivals(self) -> RivalSystem: ...

    @property
    def studio_heat(self) -> int: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...

    def arc_outcome_modifiers(self) -> ArcOutcomeModifiers: ...

    def add_chronicle_entry(
        self, type: ChronicleType, headline: str, detail: str | None = None, impact: Impact = Impact.NEUTRAL
    ) -> None: ...


class EventSystem:
    """
    Weighted decision draws, decision resolution, flags and arcs.

    Usage:
        manager.events.generate_decisions(events)
        manager.events.resolve_decision(decision_id, option_id)
    """

    def __init__(self, manager: EventHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    # -------------------------------------------------------------------------
    # Flags and arcs
    # -------------------------------------------------------------------------

    def matches_arc(self, requirement: ArcRequirement) -> bool:
        arc = self._state.story_arcs.get(requirement.id)
        if arc is None:
            return False
        if requirement.status is not None and arc.status != requirement.status:
            return False
        if requirement.min_stage is not None and arc.stage < requirement.min_stage:
            return False
        if requirement.max_stage is not None and arc.stage > requirement.max_stage:
            return False
        return True

    def ensure_arc(self, arc_id: str) -> StoryArcState:
        arcs = self._state.story_arcs
        if arc_id not in arcs:
            arcs[arc_id] = StoryArcState(last_updated_week=self._state.current_week)
        return arcs[arc_id]

    def apply_arc_mutation(self, arc_id: str, option: EffectBundle) -> None:
        arc = self.ensure_arc(arc_id)
        if option.set_arc_stage is not None:
            arc.stage = max(0, option.set_arc_stage)
        if option.advance_arc_by is not None:
            arc.stage = max(0, arc.stage + option.advance_arc_by)
        if option.resolve_arc:
            arc.status = ArcStatus.RESOLVED
        elif option.fail_arc:
            arc.status = ArcStatus.FAILED
        else:
            arc.status = ArcStatus.ACTIVE
        arc.last_updated_week = self._state.current_week

    # -------------------------------------------------------------------------
    # Expiry
    # -------------------------------------------------------------------------

    def tick_expiry(self, events: list[str]) -> None:
        """Age the queue; expired items peel one layer off their flag."""
        state = self._state
        for item in state.decision_queue:
            item.weeks_until_expiry -= 1
        expired = [item for item in state.decision_queue if item.weeks_until_expiry < 0]
        if not expired:
            return
        for item in expired:
            if item.on_expire_clear_flag:
                state.story_flags.decrement(item.on_expire_clear_flag)
        state.decision_queue = [item for item in state.decision_queue if item.weeks_until_expiry >= 0]
        events.append(f"{len(expired)} decision item(s) expired.")
        self.manager.adjust_reputation(-len(expired), "all")

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def project_candidates(self, template: EventTemplate) -> list[MovieProject]:
        if template.scope != EventScope.PROJECT:
            return []
        projects = self._state.active_projects
        if not template.target_phases:
            return [p for p in projects if p.phase != ProjectPhase.RELEASED]
        return [p for p in projects if p.phase in template.target_phases]

    @staticmethod
    def template_arc_id(template: EventTemplate) -> str | None:
        if template.requires_arc is not None:
            return template.requires_arc.id
        if template.blocks_arc is not None:
            return template.blocks_arc.id
        return None

    def is_eligible(self, template: EventTemplate, queued_titles: set[str], queued_templates: set[str]) -> bool:
        state = self._state
        if state.current_week < template.min_week:
            return False
        if template.id in queued_templates or template.decision_title in queued_titles:
            return False
        if template.requires_flag and not state.story_flags.is_set(template.requires_flag):
            return False
        if template.blocks_flag and state.story_flags.is_set(template.blocks_flag):
            return False
        if template.requires_arc is not None and not self.matches_arc(template.requires_arc):
            return False
        if template.blocks_arc is not None and self.matches_arc(template.blocks_arc):
            return False
        last = self.manager.last_event_week.get(template.id)
        if last is not None and state.current_week - last < template.cooldown_weeks:
            return False
        return True

    def weight(self, template: EventTemplate) -> float:
        state = self._state
        weight = template.base_weight
        candidates = self.project_candidates(template)
        if template.scope == EventScope.PROJECT:
            if not candidates:
                return 0.0
            weight += min(1.3, len(candidates) * 0.32)

        if template.category == DecisionCategory.FINANCE and state.cash < LOW_CASH_FINANCE_THRESHOLD:
            weight += 0.45
        if template.category == DecisionCategory.MARKETING and self.manager.studio_heat < LOW_HEAT_MARKETING_THRESHOLD:
            weight += 0.35
        if template.category == DecisionCategory.OPERATIONS and state.pending_crises:
            weight *= 0.75
        weight += self.manager.arc_outcome_modifiers().category_bias.get(template.category, 0)

        arc_id = self.template_arc_id(template)
        if arc_id:
            weight += self.manager.rivals.arc_pressure(arc_id)

        recent = state.recent_decision_categories
        if recent and recent[0] == template.category:
            weight *= 0.7
            if len(recent) > 1 and recent[1] == template.category:
                weight *= 0.55
        return weight

    def pick_template(self) -> EventTemplate | None:
        state = self._state
        queued_titles = {item.title for item in state.decision_queue}
        queued_templates = {item.template_id for item in state.decision_queue if item.template_id}

        weighted: list[tuple[EventTemplate, float]] = []
        for template in self.manager.event_deck:
            if not self.is_eligible(template, queued_titles, queued_templates):
                continue
            weight = self.weight(template)
            if weight > 0:
                weighted.append((template, weight))
        if not weighted:
            return None

        roll = self.manager.event_rng() * sum(w for _, w in weighted)
        for template, weight in weighted:
            roll -= weight
            if roll <= 0:
                return template
        return weighted[-1][0]

    def choose_project(self, template: EventTemplate) -> MovieProject | None:
        """Sample among the three highest-hype candidates."""
        candidates = self.project_candidates(template)
        if not candidates:
            return None
        ranked = sorted(candidates, key=lambda p: p.hype_score, reverse=True)[:3]
        index = math.floor(self.manager.event_rng() * len(ranked))
        return ranked[min(index, len(ranked) - 1)]

    def generate_decisions(self, events: list[str]) -> None:
        state = self._state
        if len(state.decision_queue) >= MAX_DECISION_QUEUE:
            return
        template = self.pick_template()
        if template is None:
            return

        project = self.choose_project(template)
        if template.scope == EventScope.PROJECT and project is None:
            return
        decision = template.build_decision(
            project.id if project else None,
            project.title if project else state.studio_name,
        )
        self.queue_decision(decision)
        self.manager.last_event_week[template.id] = state.current_week
        state.recent_decision_categories.insert(0, template.category)
        del state.recent_decision_categories[RECENT_CATEGORY_MEMORY:]
        events.append(f"New event: {template.title}.")
        logger.debug(f"Drew event {template.id} for week {state.current_week}")

    def queue_decision(self, decision: DecisionItem) -> None:
        self._state.decision_queue.append(decision)
        self.manager.bus.emit(
            EventType.DECISION_QUEUED,
            week=self._state.current_week,
            decision_id=decision.id,
            title=decision.title,
            category=decision.category.value,
        )

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def resolve_decision(self, decision_id: str, option_id: str) -> None:
        """Apply the chosen option. Unknown ids are ignored."""
        state = self._state
        decision = next((d for d in state.decision_queue if d.id == decision_id), None)
        if decision is None:
            return
        option = next((o for o in decision.options if o.id == option_id), None)
        if option is None:
            return

        project = state.get_project(decision.project_id) if decision.project_id else None
        apply_effect_bundle(self.manager, option, project)
        self.manager.finance.evaluate_bankruptcy()

        if decision.arc_id:
            self.apply_arc_mutation(decision.arc_id, option)
            if option.resolve_arc or option.fail_arc:
                label = ARC_LABELS.get(decision.arc_id, decision.arc_id)
                self.manager.add_chronicle_entry(
                    ChronicleType.ARC_RESOLUTION,
                    f"{label}: {'resolved' if option.resolve_arc else 'failed'}",
                    detail=f'"{option.label}"',
                    impact=Impact.POSITIVE if option.resolve_arc else Impact.NEGATIVE,
                )
        self.apply_rival_memory(decision, option)
        state.decision_queue = [d for d in state.decision_queue if d.id != decision_id]
        self.manager.bus.emit(
            EventType.DECISION_RESOLVED,
            week=state.current_week,
            decision_id=decision.id,
            option_id=option.id,
        )

    @staticmethod
    def counterplay_kind(title: str) -> RivalInteractionKind:
        if "Awards" in title:
            return RivalInteractionKind.PRESTIGE_PRESSURE
        if "Streaming" in title or "Output Deal" in title:
            return RivalInteractionKind.STREAMING_PRESSURE
        if "Guerrilla" in title:
            return RivalInteractionKind.GUERRILLA_PRESSURE
        if "Tentpole" in title:
            return RivalInteractionKind.RELEASE_COLLISION
        return RivalInteractionKind.COUNTERPLAY_ESCALATION

    def apply_rival_memory(self, decision: DecisionItem, option: EffectBundle) -> None:
        """Counterplay answers shape how the named rival sees the studio."""
        if not decision.title.startswith(COUNTERPLAY_PREFIX):
            return
        rival = next((r for r in self._state.rivals if r.name in decision.title), None)
        if rival is None:
            return

        kind = self.counterplay_kind(decision.title)
        rivals = self.manager.rivals
        if option.cash_delta < 0 or option.hype_delta > 0:
            rivals.record_interaction(
                rival, kind, 3, 1,
                f"Escalated counterplay response: {option.label}.", decision.project_id,
            )
        elif "accept" in option.label.lower():
            rivals.record_interaction(
                rival, kind, -2, -1,
                f"Accepted rival pressure option: {option.label}.", decision.project_id,
            )
        else:
            rivals.record_interaction(
                rival, kind, -1, 0,
                f"Lower-intensity response selected: {option.label}.", decision.project_id,
            )
