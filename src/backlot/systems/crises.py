"""
Crisis generator for Backlot.

Projects in pre-production, production and post-production roll each
week against a phase threshold lifted by their overrun risk. A hit
draws one incident from the phase's template pool. Rival studios push
their own crises (talent poach, release collision) through push().

Crises are blocking: the week cannot end while any is open.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Callable, Protocol

from ..state.event_bus import EventType
from ..state.schema import (
    CrisisEvent,
    CrisisKind,
    EffectBundle,
    MovieProject,
    ProductionStatus,
    ProjectPhase,
    Severity,
)
from .events import apply_effect_bundle

if TYPE_CHECKING:
    from ..state.event_bus import EventBus
    from ..state.schema import StudioState
    from .finance import FinanceSystem
    from .talent import TalentSystem

logger = logging.getLogger(__name__)

CRISIS_THRESHOLDS: dict[ProjectPhase, float] = {
    ProjectPhase.PRE_PRODUCTION: 0.08,
    ProjectPhase.PRODUCTION: 0.16,
    ProjectPhase.POST_PRODUCTION: 0.10,
}
OVERRUN_RISK_WEIGHT = 0.2

# title, body, severity, (label, preview, cash, schedule, hype) x 2
CrisisTemplate = tuple[str, str, Severity, tuple[tuple[str, str, int, int, int], ...]]

CRISIS_TEMPLATES: dict[ProjectPhase, list[CrisisTemplate]] = {
    ProjectPhase.PRE_PRODUCTION: [
        (
            "Location Permit Pulled",
            "The city revoked permits for the main location. Prep is slipping.",
            Severity.ORANGE,
            (
                ("Hire Permit Counsel", "-$260K now and prep stays on pace.", -260_000, 0, 0),
                ("Scout New Locations", "Cheaper, but prep loses a week.", -80_000, 1, -1),
            ),
        ),
        (
            "Department Heads Threaten to Walk",
            "A key department wants revised contracts before the schedule locks.",
            Severity.ORANGE,
            (
                ("Approve the Raise", "-$220K now with no delay.", -220_000, 0, 0),
                ("Renegotiate Slowly", "Saves cash, costs a prep week and some confidence.", -40_000, 1, -2),
            ),
        ),
    ],
    ProjectPhase.PRODUCTION: [
        (
            "Lead Actor Double-Booked",
            "A hard scheduling conflict threatens next week's shoot.",
            Severity.ORANGE,
            (
                ("Pay Overtime", "-$450K now and the schedule holds.", -450_000, 0, 0),
                ("Push One Week", "Saves cash, but the shoot slips and the trades notice.", -50_000, 1, -3),
            ),
        ),
        (
            "Practical Set Fails Inspection",
            "A major practical set failed its safety check ahead of the shoot.",
            Severity.ORANGE,
            (
                ("Rebuild Now", "-$380K now to protect the schedule.", -380_000, 0, 0),
                ("Write Around It", "Saves cash, loses a week and some excitement.", -90_000, 1, -2),
            ),
        ),
        (
            "Second Unit Accident",
            "An accident on the second unit halted action coverage pending review.",
            Severity.RED,
            (
                ("Bring In a Replacement Unit", "-$520K now to keep momentum.", -520_000, 0, -1),
                ("Pause for Safety Review", "Cheaper today, but two shooting weeks are lost.", -120_000, 2, -3),
            ),
        ),
    ],
    ProjectPhase.POST_PRODUCTION: [
        (
            "VFX House Overbooked",
            "The lead effects vendor gave your slot to a bigger competitor.",
            Severity.ORANGE,
            (
                ("Buy Priority", "-$300K now to lock the delivery date.", -300_000, 0, 0),
                ("Accept a Later Delivery", "Smaller bill, but post slips a week.", -70_000, 1, -2),
            ),
        ),
        (
            "Scoring Sessions Run Long",
            "Orchestral recording is running past its booked stage time.",
            Severity.YELLOW,
            (
                ("Extend the Sessions", "-$180K now and the score keeps its polish.", -180_000, 0, 1),
                ("Trim the Arrangement", "Saves cash, loses some polish and buzz.", -40_000, 0, -2),
            ),
        ),
    ],
}


class CrisisHost(Protocol):
    """What the crisis generator needs from the studio."""

    state: StudioState
    bus: EventBus
    crisis_rng: Callable[[], float]

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def talent(self) -> TalentSystem: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...


class CrisisSystem:
    """Operational crisis rolls and crisis resolution."""

    def __init__(self, manager: CrisisHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    @property
    def can_end_week(self) -> bool:
        return not self._state.pending_crises

    def push(self, crisis: CrisisEvent) -> None:
        self._state.pending_crises.append(crisis)
        self.manager.bus.emit(
            EventType.CRISIS_RAISED,
            week=self._state.current_week,
            crisis_id=crisis.id,
            project_id=crisis.project_id,
            kind=crisis.kind.value,
            severity=crisis.severity.value,
        )

    def build_operational_crisis(self, project: MovieProject) -> CrisisEvent:
        pool = CRISIS_TEMPLATES[project.phase]
        index = min(len(pool) - 1, math.floor(self.manager.crisis_rng() * len(pool)))
        title, body, severity, options = pool[index]
        # Overruns turn a scheduling conflict on set into a red alert
        if project.phase == ProjectPhase.PRODUCTION and index == 0 and project.production_status == ProductionStatus.AT_RISK:
            severity = Severity.RED
        return CrisisEvent(
            project_id=project.id,
            kind=CrisisKind.PRODUCTION,
            title=f"{project.title}: {title}",
            severity=severity,
            body=f"{project.title} is hit. {body}",
            options=[
                EffectBundle(
                    label=label,
                    preview=preview,
                    cash_delta=cash,
                    schedule_delta=schedule,
                    hype_delta=hype,
                )
                for label, preview, cash, schedule, hype in options
            ],
        )

    def roll(self, events: list[str]) -> None:
        generated = 0
        for project in self._state.active_projects:
            threshold = CRISIS_THRESHOLDS.get(project.phase)
            if threshold is None:
                continue
            if self.manager.crisis_rng() > threshold + project.budget.overrun_risk * OVERRUN_RISK_WEIGHT:
                continue
            self.push(self.build_operational_crisis(project))
            project.production_status = ProductionStatus.IN_CRISIS
            generated += 1
        if generated:
            events.append(f"{generated} crisis event(s) triggered.")
            logger.debug(f"{generated} crises raised in week {self._state.current_week}")

    def resolve(self, crisis_id: str, option_id: str) -> None:
        """Apply the chosen option. Unknown ids are ignored."""
        state = self._state
        crisis = next((c for c in state.pending_crises if c.id == crisis_id), None)
        if crisis is None:
            return
        option = next((o for o in crisis.options if o.id == option_id), None)
        if option is None:
            return

        project = state.get_project(crisis.project_id)
        if project is not None and crisis.kind == CrisisKind.TALENT_POACHED:
            self.manager.talent.resolve_talent_poach(project, option)
        elif project is not None and crisis.kind == CrisisKind.RELEASE_CONFLICT:
            apply_effect_bundle(self.manager, option, project)
        elif project is not None:
            apply_effect_bundle(self.manager, option, project)
            project.budget.actual_spend += max(0, -option.cash_delta)
            project.production_status = ProductionStatus.ON_TRACK
        else:
            self.manager.finance.adjust_cash(option.cash_delta)

        self.manager.finance.evaluate_bankruptcy()
        state.pending_crises = [c for c in state.pending_crises if c.id != crisis_id]
        self.manager.bus.emit(
            EventType.CRISIS_RESOLVED,
            week=state.current_week,
            crisis_id=crisis.id,
            option_id=option.id,
        )
