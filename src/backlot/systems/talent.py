"""
Talent system for Backlot.

Owns the talent roster side of the studio: relationship memory, the
multi-round negotiation protocol, quick-close attempts, deal memos and
the weekly resolution of open negotiations.

Acceptance chance is built from:
- a base chance
- relationship (trust/loyalty), studio talent reputation, arc leverage
  and executive network bonuses
- star/craft, ego and agent-tier penalties
- a decayed grudge score and a refusal-risk penalty
- the fit of the offered terms against what the talent's reps demand,
  minus round fatigue and a hold-line penalty
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from ..constants import (
    AGENT_DIFFICULTY,
    GRUDGE_CHANCE_DIVISOR,
    GRUDGE_DECAY_PER_WEEK,
    HOSTILE_TRUST_THRESHOLD,
    LOCKOUT_GRUDGE_THRESHOLD,
    LOCKOUT_RECENT_NEGATIVE_THRESHOLD,
    LOCKOUT_WEEKS_MAX,
    LOCKOUT_WEEKS_MIN,
    MAX_NEGOTIATION_ROUNDS,
    RECENT_MEMORY_WINDOW_WEEKS,
    TALENT_HISTORY_MAX,
    clamp,
    round_half_up,
)
from ..state.event_bus import EventType
from ..state.schema import (
    ActionResult,
    Availability,
    EffectBundle,
    MovieProject,
    NegotiationAction,
    OptionKind,
    PlayerNegotiation,
    ProjectPhase,
    RefusalRisk,
    RelationshipMemory,
    Talent,
    TalentInteraction,
    TalentInteractionKind,
    TalentRole,
    TrustLevel,
)

if TYPE_CHECKING:
    from ..state.event_bus import EventBus
    from ..state.schema import StudioState
    from .events import ArcOutcomeModifiers
    from .finance import FinanceSystem

logger = logging.getLogger(__name__)


class TalentHost(Protocol):
    """What the talent system needs from the studio."""

    state: StudioState
    bus: EventBus
    negotiation_rng: Callable[[], float]

    @property
    def finance(self) -> FinanceSystem: ...

    def arc_outcome_modifiers(self) -> ArcOutcomeModifiers: ...


@dataclass(frozen=True)
class NegotiationTerms:
    salary_multiplier: float
    backend_points: float
    perks_budget: float


@dataclass(frozen=True)
class NegotiationEvaluation:
    chance: float
    salary_fit: float
    backend_fit: float
    perks_fit: float
    terms_score: float
    demand: NegotiationTerms


@dataclass(frozen=True)
class GrudgeMetrics:
    score: int
    recent_negative_count: int
    recent_positive_count: int


@dataclass(frozen=True)
class NegotiationOutlook:
    grudge_score: int
    recent_negative_count: int
    refusal_risk: RefusalRisk
    blocked: bool
    lockout_weeks: int
    lockout_until_week: int | None
    reason: str | None


@dataclass(frozen=True)
class NegotiationSnapshot:
    salary_multiplier: float
    backend_points: float
    perks_budget: float
    rounds: int
    hold_line_count: int
    chance: float
    signal: str
    pressure_point: str
    rounds_remaining: int
    demand_salary_multiplier: float
    demand_backend_points: float
    demand_perks_budget: float


# Extra grudge weight by interaction kind
GRUDGE_KIND_PENALTY: dict[TalentInteractionKind, float] = {
    TalentInteractionKind.PROJECT_ABANDONED: 5,
    TalentInteractionKind.QUICK_CLOSE_FAILED: 3,
    TalentInteractionKind.NEGOTIATION_DECLINED: 2,
    TalentInteractionKind.DEAL_STALLED: 2,
    TalentInteractionKind.COUNTER_POACH_LOST: 2,
}


def _k(amount: float) -> int:
    return round_half_up(amount / 1000)


class TalentSystem:
    """
    Manages talent relationships and deal-making.

    Every talent is in exactly one availability state, and at most one
    player negotiation references a talent at a time.
    """

    def __init__(self, manager: TalentHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    # ─────────────────────────────────────────────────────────────────────
    # Relationship memory
    # ─────────────────────────────────────────────────────────────────────

    def memory_for(self, talent: Talent) -> RelationshipMemory:
        if talent.relationship_memory is None:
            talent.relationship_memory = RelationshipMemory(
                trust=round_half_up(clamp(35 + talent.studio_relationship * 45, 0, 100)),
                loyalty=round_half_up(clamp(30 + talent.studio_relationship * 40, 0, 100)),
            )
        return talent.relationship_memory

    def sync_relationship(self, talent: Talent) -> None:
        memory = self.memory_for(talent)
        talent.studio_relationship = clamp((memory.trust * 0.62 + memory.loyalty * 0.38) / 100, 0, 1)

    def trust_level(self, talent: Talent) -> TrustLevel:
        trust = self.memory_for(talent).trust
        if trust < 25:
            return TrustLevel.HOSTILE
        if trust < 45:
            return TrustLevel.WARY
        if trust < 65:
            return TrustLevel.NEUTRAL
        if trust < 82:
            return TrustLevel.ALIGNED
        return TrustLevel.LOYAL

    def record_interaction(
        self,
        talent: Talent,
        kind: TalentInteractionKind,
        trust_delta: float,
        loyalty_delta: float,
        note: str,
        project_id: str | None = None,
    ) -> None:
        memory = self.memory_for(talent)
        memory.trust = int(clamp(round_half_up(memory.trust + trust_delta), 0, 100))
        memory.loyalty = int(clamp(round_half_up(memory.loyalty + loyalty_delta), 0, 100))
        memory.interaction_history.append(
            TalentInteraction(
                week=self._state.current_week,
                kind=kind,
                trust_delta=round_half_up(trust_delta),
                loyalty_delta=round_half_up(loyalty_delta),
                note=note,
                project_id=project_id,
            )
        )
        if len(memory.interaction_history) > TALENT_HISTORY_MAX:
            memory.interaction_history = memory.interaction_history[-TALENT_HISTORY_MAX:]
        self.sync_relationship(talent)

    def grudge_metrics(self, talent: Talent) -> GrudgeMetrics:
        """Negative history decayed geometrically by age in weeks."""
        memory = self.memory_for(talent)
        week = self._state.current_week
        raw = 0.0
        recent_negative = 0
        recent_positive = 0

        for entry in memory.interaction_history:
            age = max(0, week - entry.week)
            decay = GRUDGE_DECAY_PER_WEEK ** age
            trust_impact = max(0, -entry.trust_delta * 1.2)
            loyalty_impact = max(0, -entry.loyalty_delta * 0.9)
            impact = (trust_impact + loyalty_impact + GRUDGE_KIND_PENALTY.get(entry.kind, 0)) * decay
            raw += impact

            if age <= RECENT_MEMORY_WINDOW_WEEKS:
                if impact >= 1.5:
                    recent_negative += 1
                if entry.trust_delta > 0 or entry.loyalty_delta > 0:
                    recent_positive += 1

        trust_penalty = max(0, (40 - memory.trust) * 0.25)
        score = int(clamp(round_half_up(raw + trust_penalty), 0, 100))
        return GrudgeMetrics(score, recent_negative, recent_positive)

    def negotiation_outlook(self, talent: Talent) -> NegotiationOutlook:
        memory = self.memory_for(talent)
        metrics = self.grudge_metrics(talent)
        level = self.trust_level(talent)

        risk = RefusalRisk.LOW
        if metrics.score >= 20 or metrics.recent_negative_count >= 2 or level == TrustLevel.WARY:
            risk = RefusalRisk.ELEVATED
        if metrics.score >= 30 or level == TrustLevel.HOSTILE or metrics.recent_negative_count >= 4:
            risk = RefusalRisk.CRITICAL

        hostile_block = (
            memory.trust <= HOSTILE_TRUST_THRESHOLD
            and metrics.score >= LOCKOUT_GRUDGE_THRESHOLD
        )
        fresh_grudge_block = (
            metrics.recent_negative_count >= LOCKOUT_RECENT_NEGATIVE_THRESHOLD
            and metrics.recent_positive_count == 0
            and metrics.score >= LOCKOUT_GRUDGE_THRESHOLD
        )

        lockout_weeks = 0
        reason = None
        if hostile_block or fresh_grudge_block:
            weeks = LOCKOUT_WEEKS_MIN
            if memory.trust <= HOSTILE_TRUST_THRESHOLD:
                weeks += 1
            if metrics.score >= 28:
                weeks += 1
            if metrics.recent_negative_count >= 4:
                weeks += 1
            lockout_weeks = int(clamp(weeks, LOCKOUT_WEEKS_MIN, LOCKOUT_WEEKS_MAX))
            reason = (
                "Relationship is hostile after recent negotiations."
                if hostile_block
                else "Recent negotiation pattern triggered a cooling-off period."
            )

        return NegotiationOutlook(
            grudge_score=metrics.score,
            recent_negative_count=metrics.recent_negative_count,
            refusal_risk=risk,
            blocked=lockout_weeks > 0,
            lockout_weeks=lockout_weeks,
            lockout_until_week=self._state.current_week + lockout_weeks if lockout_weeks else None,
            reason=reason,
        )

    def can_open_negotiation(self, talent: Talent) -> tuple[bool, int, str | None]:
        """(ok, lockout weeks, reason)"""
        outlook = self.negotiation_outlook(talent)
        if not outlook.blocked:
            return True, 0, None
        return False, outlook.lockout_weeks, outlook.reason

    # ─────────────────────────────────────────────────────────────────────
    # Availability
    # ─────────────────────────────────────────────────────────────────────

    def set_negotiation_cooldown(self, talent: Talent, weeks: int) -> None:
        talent.availability = Availability.UNAVAILABLE
        talent.unavailable_until_week = self._state.current_week + max(1, round_half_up(weeks))
        talent.attached_project_id = None

    def update_availability(self) -> None:
        """Return talent whose unavailable window has passed."""
        week = self._state.current_week
        for talent in self._state.talent_pool:
            if talent.availability != Availability.UNAVAILABLE:
                continue
            if not talent.unavailable_until_week or week < talent.unavailable_until_week:
                continue
            talent.availability = Availability.AVAILABLE
            talent.unavailable_until_week = None
            for rival in self._state.rivals:
                if talent.id in rival.locked_talent_ids:
                    rival.locked_talent_ids.remove(talent.id)

    def release_talent(self, project: MovieProject, context: str) -> None:
        """Free everyone attached to a project that is done with them."""
        for talent in self._state.talent_pool:
            if talent.attached_project_id != project.id:
                continue
            talent.availability = Availability.AVAILABLE
            talent.attached_project_id = None
            talent.unavailable_until_week = None
            if context == "abandoned":
                self.record_interaction(
                    talent, TalentInteractionKind.PROJECT_ABANDONED, -9, -11,
                    f"Studio abandoned {project.title}.", project.id,
                )
            else:
                self.record_interaction(
                    talent, TalentInteractionKind.PROJECT_RELEASED, 2, 3,
                    f"{project.title} moved into release.", project.id,
                )

    # ─────────────────────────────────────────────────────────────────────
    # Terms and evaluation
    # ─────────────────────────────────────────────────────────────────────

    def find_negotiation(self, talent_id: str, project_id: str | None = None) -> PlayerNegotiation | None:
        for negotiation in self._state.player_negotiations:
            if negotiation.talent_id == talent_id and (project_id is None or negotiation.project_id == project_id):
                return negotiation
        return None

    @staticmethod
    def default_terms(talent: Talent) -> NegotiationTerms:
        return NegotiationTerms(1.0, talent.salary.backend_points, talent.salary.perks_cost)

    @staticmethod
    def quick_close_terms(talent: Talent) -> NegotiationTerms:
        return NegotiationTerms(
            1.06,
            talent.salary.backend_points + 0.6,
            talent.salary.perks_cost * 1.15,
        )

    @staticmethod
    def read_terms(negotiation: PlayerNegotiation) -> NegotiationTerms:
        return NegotiationTerms(
            clamp(negotiation.offer_salary_multiplier, 0.8, 1.6),
            clamp(negotiation.offer_backend_points, 0, 12),
            max(0, negotiation.offer_perks_budget),
        )

    @staticmethod
    def demanded_terms(talent: Talent) -> NegotiationTerms:
        agent_push = (AGENT_DIFFICULTY[talent.agent_tier] - 1) * 0.18
        star_push = max(0, talent.star_power - 5) * 0.045
        craft_push = max(0, talent.craft_score - 5) * 0.02
        return NegotiationTerms(
            clamp(1 + agent_push + star_push + craft_push, 1, 1.58),
            clamp(talent.salary.backend_points + star_push * 5 + agent_push * 4 + 0.2, 0.5, 11),
            talent.salary.perks_cost * (1 + talent.ego_level * 0.08 + agent_push),
        )

    @staticmethod
    def deal_memo_cost(talent: Talent, terms: NegotiationTerms) -> float:
        return talent.salary.base * 0.08 * terms.salary_multiplier + terms.perks_budget * 0.2

    def quick_close_fee(self, talent: Talent, terms: NegotiationTerms) -> float:
        return clamp(self.deal_memo_cost(talent, terms) * 0.2, 25_000, 240_000)

    def deal_chance(self, talent: Talent, base: float) -> float:
        memory = self.memory_for(talent)
        outlook = self.negotiation_outlook(talent)
        self.sync_relationship(talent)

        trust_boost = (memory.trust - 50) / 260
        loyalty_boost = (memory.loyalty - 50) / 320
        relationship_boost = clamp(
            (talent.studio_relationship - 0.5) * 0.16 + trust_boost + loyalty_boost, -0.16, 0.2
        )
        heat_boost = clamp((self._state.reputation.talent - 10) / 260, -0.08, 0.16)
        arc_leverage = self.manager.arc_outcome_modifiers().talent_leverage
        executive_boost = self._state.executive_network_level * 0.015

        reputation_penalty = clamp((talent.star_power - 5) * 0.015 + (talent.craft_score - 5) * 0.01, 0, 0.16)
        ego_penalty = clamp((talent.ego_level - 5) * 0.018, -0.04, 0.16)
        agent_penalty = clamp((AGENT_DIFFICULTY[talent.agent_tier] - 1) * 0.2, 0, 0.12)
        grudge_penalty = clamp(outlook.grudge_score / GRUDGE_CHANCE_DIVISOR, 0, 0.2)
        refusal_penalty = {
            RefusalRisk.CRITICAL: 0.04,
            RefusalRisk.ELEVATED: 0.02,
        }.get(outlook.refusal_risk, 0)

        return clamp(
            base + relationship_boost + heat_boost + arc_leverage + executive_boost
            - reputation_penalty - ego_penalty - agent_penalty - grudge_penalty - refusal_penalty,
            0.08,
            0.95,
        )

    def evaluate(
        self,
        negotiation: PlayerNegotiation,
        talent: Talent,
        base_chance: float = 0.7,
    ) -> NegotiationEvaluation:
        """Score the offered package against the reps' demand."""
        terms = self.read_terms(negotiation)
        demand = self.demanded_terms(talent)
        salary_fit = clamp(terms.salary_multiplier / max(0.01, demand.salary_multiplier), 0, 1.25)
        backend_fit = clamp(terms.backend_points / max(0.01, demand.backend_points), 0, 1.25)
        perks_fit = clamp(terms.perks_budget / max(1, demand.perks_budget), 0, 1.25)
        terms_score = salary_fit * 0.5 + backend_fit * 0.25 + perks_fit * 0.25

        terms_boost = (terms_score - 0.72) * 0.34
        fatigue_penalty = max(0, negotiation.rounds - 1) * 0.055
        hardline_penalty = negotiation.hold_line_count * 0.05
        chance = clamp(
            self.deal_chance(talent, base_chance) + terms_boost - fatigue_penalty - hardline_penalty,
            0.05,
            0.97,
        )
        return NegotiationEvaluation(chance, salary_fit, backend_fit, perks_fit, terms_score, demand)

    def negotiation_chance(self, talent_id: str, project_id: str | None = None) -> float | None:
        talent = self._state.get_talent(talent_id)
        if talent is None:
            return None
        negotiation = self.find_negotiation(talent_id, project_id)
        if negotiation is None:
            return self.deal_chance(talent, 0.7)
        return self.evaluate(negotiation, talent).chance

    def _quick_close_offer(self, talent: Talent, project_id: str = "") -> PlayerNegotiation:
        terms = self.quick_close_terms(talent)
        return PlayerNegotiation(
            talent_id=talent.id,
            project_id=project_id,
            opened_week=self._state.current_week,
            rounds=1,
            offer_salary_multiplier=terms.salary_multiplier,
            offer_backend_points=terms.backend_points,
            offer_perks_budget=terms.perks_budget,
        )

    def quick_close_chance(self, talent_id: str) -> float | None:
        talent = self._state.get_talent(talent_id)
        if talent is None:
            return None
        return self.evaluate(self._quick_close_offer(talent), talent, 0.72).chance

    @staticmethod
    def pressure_point(evaluation: NegotiationEvaluation) -> str:
        if evaluation.salary_fit <= evaluation.backend_fit and evaluation.salary_fit <= evaluation.perks_fit:
            return "salary"
        if evaluation.backend_fit <= evaluation.salary_fit and evaluation.backend_fit <= evaluation.perks_fit:
            return "backend"
        return "perks"

    def compose_preview(self, name: str, evaluation: NegotiationEvaluation, hold_line_count: int) -> str:
        if hold_line_count >= 2:
            return f"{name}'s reps are signaling standoff risk after repeated hardline rounds."
        point = self.pressure_point(evaluation)
        if point == "salary":
            return f"{name}'s reps say salary is the primary gap in the package."
        if point == "backend":
            return f"{name}'s reps are pushing hardest on backend participation."
        return f"{name}'s reps want stronger perks and support terms."

    @staticmethod
    def compose_signal(name: str, evaluation: NegotiationEvaluation, accepted: bool, hold_line_count: int) -> str:
        if accepted:
            if evaluation.salary_fit < 0.95:
                return f"{name} accepted, but flagged salary as the thin part of the deal."
            if evaluation.backend_fit < 0.9:
                return f"{name} accepted, with notes that backend points were below preferred terms."
            if evaluation.perks_fit < 0.9:
                return f"{name} accepted after prioritizing schedule and perks concessions."
            return f"{name} accepted terms with strong alignment across the package."

        if hold_line_count >= 2:
            return f"{name} declined after repeated hardline rounds. Reps called the package static."
        if evaluation.salary_fit < 0.9:
            return f"{name} declined: salary floor not met."
        if evaluation.backend_fit < 0.85:
            return f"{name} declined: backend participation came in light."
        if evaluation.perks_fit < 0.8:
            return f"{name} declined: package support and perks were below ask."
        return f"{name} declined final terms after mixed signals from reps."

    def snapshot(self, project_id: str, talent_id: str) -> NegotiationSnapshot | None:
        talent = self._state.get_talent(talent_id)
        negotiation = self.find_negotiation(talent_id, project_id)
        if talent is None or negotiation is None:
            return None
        evaluation = self.evaluate(negotiation, talent)
        signal = negotiation.last_response or self.compose_preview(
            talent.name, evaluation, negotiation.hold_line_count
        )
        return NegotiationSnapshot(
            salary_multiplier=negotiation.offer_salary_multiplier,
            backend_points=negotiation.offer_backend_points,
            perks_budget=negotiation.offer_perks_budget,
            rounds=negotiation.rounds,
            hold_line_count=negotiation.hold_line_count,
            chance=evaluation.chance,
            signal=signal,
            pressure_point=self.pressure_point(evaluation),
            rounds_remaining=max(0, MAX_NEGOTIATION_ROUNDS - negotiation.rounds),
            demand_salary_multiplier=evaluation.demand.salary_multiplier,
            demand_backend_points=evaluation.demand.backend_points,
            demand_perks_budget=evaluation.demand.perks_budget,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Deal memo
    # ─────────────────────────────────────────────────────────────────────

    def finalize_attachment(
        self,
        project: MovieProject,
        talent: Talent,
        terms: NegotiationTerms | None = None,
    ) -> bool:
        """
        Charge the deal-memo retainer and attach the talent.

        Returns False, leaving the talent available, if cash cannot
        cover the retainer at this moment.
        """
        terms = terms or self.default_terms(talent)
        retainer = self.deal_memo_cost(talent, terms)
        if self._state.cash < retainer:
            talent.availability = Availability.AVAILABLE
            self.record_interaction(
                talent, TalentInteractionKind.DEAL_STALLED, -5, -4,
                f"Deal memo for {project.title} failed due to insufficient retainer cash.",
                project.id,
            )
            return False

        self.manager.finance.adjust_cash(-retainer)
        project.budget.actual_spend += retainer * 0.35
        project.studio_revenue_share = clamp(
            project.studio_revenue_share - terms.backend_points * 0.004, 0.35, 0.8
        )
        talent.availability = Availability.ATTACHED
        talent.unavailable_until_week = None
        talent.attached_project_id = project.id
        if talent.role == TalentRole.DIRECTOR:
            project.director_id = talent.id
        elif talent.role in (TalentRole.LEAD_ACTOR, TalentRole.SUPPORTING_ACTOR):
            if talent.id not in project.cast_ids:
                project.cast_ids.append(talent.id)
        project.hype_score = clamp(project.hype_score + talent.star_power * 0.8, 0, 100)
        self.record_interaction(
            talent, TalentInteractionKind.DEAL_SIGNED, 5, 6,
            f"Signed onto {project.title}.", project.id,
        )
        logger.info(f"{talent.name} attached to {project.title}")
        return True

    # ─────────────────────────────────────────────────────────────────────
    # Player actions
    # ─────────────────────────────────────────────────────────────────────

    def _unavailable_message(self, talent: Talent) -> str:
        returns = f" (returns week {talent.unavailable_until_week})" if talent.unavailable_until_week else ""
        return f"{talent.name} is unavailable{returns}."

    def start_negotiation(self, project_id: str, talent_id: str) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return ActionResult(success=False, message="Project not found.")
        if project.phase != ProjectPhase.DEVELOPMENT:
            return ActionResult(
                success=False,
                message="Talent negotiations can only be opened for development projects.",
            )
        talent = self._state.get_talent(talent_id)
        if talent is None:
            return ActionResult(success=False, message="Talent not found.")
        if talent.availability != Availability.AVAILABLE:
            return ActionResult(success=False, message=self._unavailable_message(talent))
        if self.find_negotiation(talent_id) is not None:
            return ActionResult(success=False, message=f"{talent.name} is already in negotiation.")
        ok, weeks, reason = self.can_open_negotiation(talent)
        if not ok:
            return ActionResult(
                success=False,
                message=f"{talent.name} will not take meetings for {weeks} week(s). {reason}",
            )

        talent.availability = Availability.IN_NEGOTIATION
        negotiation = PlayerNegotiation(
            talent_id=talent_id,
            project_id=project_id,
            opened_week=self._state.current_week,
            offer_salary_multiplier=1.0,
            offer_backend_points=talent.salary.backend_points,
            offer_perks_budget=talent.salary.perks_cost,
            last_computed_chance=self.deal_chance(talent, 0.7),
            last_response="Initial offer package sent.",
        )
        self._state.player_negotiations.append(negotiation)
        self.record_interaction(
            talent, TalentInteractionKind.NEGOTIATION_OPENED, 1, 0,
            f"Opened negotiations for {project.title}.", project_id,
        )
        chance = self.evaluate(negotiation, talent).chance
        return ActionResult(
            success=True,
            message=(
                f"Opened negotiation with {talent.name}. Package starts at salary 1.00x, "
                f"backend {talent.salary.backend_points:.1f}, perks {_k(talent.salary.perks_cost)}K. "
                f"Close chance {round_half_up(chance * 100)}% at next End Turn."
            ),
            project_id=project_id,
        )

    def adjust_negotiation(self, project_id: str, talent_id: str, action: NegotiationAction) -> ActionResult:
        talent = self._state.get_talent(talent_id)
        if talent is None:
            return ActionResult(success=False, message="Talent not found.")
        project = self._state.get_project(project_id)
        if project is None:
            return ActionResult(success=False, message="Project not found.")
        negotiation = self.find_negotiation(talent_id, project_id)
        if negotiation is None:
            return ActionResult(success=False, message="No open negotiation for this project and talent.")
        if talent.availability != Availability.IN_NEGOTIATION:
            return ActionResult(success=False, message=f"{talent.name} is not currently in negotiation.")
        if project.phase != ProjectPhase.DEVELOPMENT:
            return ActionResult(success=False, message="Negotiation can only be adjusted during development.")
        if negotiation.rounds >= MAX_NEGOTIATION_ROUNDS:
            return ActionResult(
                success=False,
                message=f"Negotiation with {talent.name} is out of rounds. Resolve it at End Turn.",
            )

        if action == NegotiationAction.SWEETEN_SALARY:
            negotiation.offer_salary_multiplier = clamp(negotiation.offer_salary_multiplier + 0.06, 1, 1.5)
            negotiation.hold_line_count = max(0, negotiation.hold_line_count - 1)
            self.record_interaction(
                talent, TalentInteractionKind.NEGOTIATION_SWEETENED, 1, 0,
                f"Improved salary terms on {project.title}.", project_id,
            )
        elif action == NegotiationAction.SWEETEN_BACKEND:
            negotiation.offer_backend_points = clamp(negotiation.offer_backend_points + 0.5, 0, 10)
            negotiation.hold_line_count = max(0, negotiation.hold_line_count - 1)
            self.record_interaction(
                talent, TalentInteractionKind.NEGOTIATION_SWEETENED, 1, 1,
                f"Improved backend terms on {project.title}.", project_id,
            )
        elif action == NegotiationAction.SWEETEN_PERKS:
            perks = talent.salary.perks_cost
            negotiation.offer_perks_budget = min(
                perks * 3,
                max(perks * 0.4, round_half_up(negotiation.offer_perks_budget + 60_000)),
            )
            negotiation.hold_line_count = max(0, negotiation.hold_line_count - 1)
            self.record_interaction(
                talent, TalentInteractionKind.NEGOTIATION_SWEETENED, 1, 0,
                f"Expanded support/perks package on {project.title}.", project_id,
            )
        else:
            negotiation.hold_line_count += 1
            self.record_interaction(
                talent, TalentInteractionKind.NEGOTIATION_HARDLINE, -2, -1,
                f"Held firm on current package for {project.title}.", project_id,
            )

        negotiation.rounds += 1
        evaluation = self.evaluate(negotiation, talent)
        negotiation.last_computed_chance = evaluation.chance
        negotiation.last_response = self.compose_preview(talent.name, evaluation, negotiation.hold_line_count)
        return ActionResult(
            success=True,
            message=(
                f"{talent.name} negotiation round {negotiation.rounds}: {negotiation.last_response} "
                f"Close chance {round_half_up(evaluation.chance * 100)}%."
            ),
            project_id=project_id,
        )

    def quick_close(self, project_id: str, talent_id: str) -> ActionResult:
        """One-shot attachment attempt at richer terms for a separate fee."""
        project = self._state.get_project(project_id)
        if project is None:
            return ActionResult(success=False, message="Project not found.")
        if project.phase != ProjectPhase.DEVELOPMENT:
            return ActionResult(
                success=False,
                message="Talent attachments can only be closed for development projects.",
            )
        talent = self._state.get_talent(talent_id)
        if talent is None:
            return ActionResult(success=False, message="Talent not found.")
        if talent.availability != Availability.AVAILABLE:
            return ActionResult(success=False, message=self._unavailable_message(talent))

        terms = self.quick_close_terms(talent)
        chance = self.evaluate(self._quick_close_offer(talent, project_id), talent, 0.72).chance
        retainer = self.deal_memo_cost(talent, terms)
        fee = self.quick_close_fee(talent, terms)
        if self._state.cash < retainer + fee:
            return ActionResult(
                success=False,
                message="Insufficient funds for quick-close attempt and deal memo retainer.",
            )

        self.manager.finance.adjust_cash(-fee)
        if self.manager.negotiation_rng() > chance:
            self.set_negotiation_cooldown(talent, 1)
            self.record_interaction(
                talent, TalentInteractionKind.QUICK_CLOSE_FAILED, -3, -2,
                f"Quick-close attempt failed for {project.title}.", project_id,
            )
            return ActionResult(
                success=False,
                message=(
                    f"{talent.name}'s reps declined quick-close terms. "
                    f"Attempt cost {_k(fee)}K burned. Re-open next week."
                ),
            )
        if not self.finalize_attachment(project, talent, terms):
            return ActionResult(
                success=False,
                message=f"Deal memo failed for {talent.name}; cash is below retainer.",
            )
        self.record_interaction(
            talent, TalentInteractionKind.QUICK_CLOSE_SUCCESS, 2, 2,
            f"Quick-close landed for {project.title}.", project_id,
        )
        return ActionResult(
            success=True,
            message=f"{talent.name} attached to {project.title}.",
            project_id=project_id,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Weekly pass
    # ─────────────────────────────────────────────────────────────────────

    def process_player_negotiations(self, events: list[str]) -> None:
        """Resolve negotiations that have been open for at least a week."""
        state = self._state
        resolved: set[str] = set()

        for negotiation in list(state.player_negotiations):
            if state.current_week - negotiation.opened_week < 1:
                continue
            talent = state.get_talent(negotiation.talent_id)
            project = state.get_project(negotiation.project_id)

            if talent is None or project is None:
                if talent is not None and talent.availability == Availability.IN_NEGOTIATION:
                    talent.availability = Availability.AVAILABLE
                resolved.add(negotiation.talent_id)
                continue
            if talent.availability != Availability.IN_NEGOTIATION:
                resolved.add(negotiation.talent_id)
                continue
            if project.phase != ProjectPhase.DEVELOPMENT:
                talent.availability = Availability.AVAILABLE
                events.append(
                    f"Negotiation window closed for {talent.name}; {project.title} moved out of development."
                )
                self.record_interaction(
                    talent, TalentInteractionKind.NEGOTIATION_DECLINED, -1, -2,
                    f"Negotiation closed when {project.title} moved out of development.",
                    project.id,
                )
                resolved.add(negotiation.talent_id)
                self._emit_resolution(talent, project, "cancelled")
                continue

            evaluation = self.evaluate(negotiation, talent)
            negotiation.last_computed_chance = evaluation.chance
            if self.manager.negotiation_rng() <= evaluation.chance:
                # Accepted on the roll; the retainer can still fail to clear
                if self.finalize_attachment(project, talent, self.read_terms(negotiation)):
                    events.append(
                        self.compose_signal(talent.name, evaluation, True, negotiation.hold_line_count)
                    )
                    self._emit_resolution(talent, project, "accepted")
                else:
                    self.set_negotiation_cooldown(talent, 1)
                    events.append(
                        f"{talent.name} accepted in principle, but retainer cash came up short and the deal stalled."
                    )
                    self._emit_resolution(talent, project, "stalled")
            else:
                talent.availability = Availability.AVAILABLE
                self.record_interaction(
                    talent, TalentInteractionKind.NEGOTIATION_DECLINED, -3, -2,
                    f"Declined final terms for {project.title}.", project.id,
                )
                events.append(
                    self.compose_signal(talent.name, evaluation, False, negotiation.hold_line_count)
                )
                self._emit_resolution(talent, project, "declined")
            resolved.add(negotiation.talent_id)

        if resolved:
            state.player_negotiations = [
                n for n in state.player_negotiations if n.talent_id not in resolved
            ]

    def _emit_resolution(self, talent: Talent, project: MovieProject, outcome: str) -> None:
        self.manager.bus.emit(
            EventType.NEGOTIATION_RESOLVED,
            week=self._state.current_week,
            talent_id=talent.id,
            project_id=project.id,
            outcome=outcome,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Rival poach crisis
    # ─────────────────────────────────────────────────────────────────────

    def resolve_talent_poach(self, project: MovieProject, option: EffectBundle) -> None:
        talent = self._state.get_talent(option.talent_id)
        if talent is None:
            return
        rival = self._state.get_rival(option.rival_studio_id)

        if option.kind == OptionKind.TALENT_COUNTER:
            premium = option.premium_multiplier or 1.25
            cost = talent.salary.base * 0.2 * premium
            retainer = self.deal_memo_cost(talent, self.default_terms(talent))
            chance = clamp(
                0.55 + self._state.reputation.talent / 210 + talent.studio_relationship * 0.2,
                0.15,
                0.95,
            )
            if self._state.cash >= cost + retainer and self.manager.negotiation_rng() <= chance:
                self.manager.finance.adjust_cash(-cost)
                if rival is not None and talent.id in rival.locked_talent_ids:
                    rival.locked_talent_ids.remove(talent.id)
                self.finalize_attachment(project, talent)
                self.record_interaction(
                    talent, TalentInteractionKind.COUNTER_POACH_WON, 4, 7,
                    f"Countered rival pressure and re-secured {talent.name} for {project.title}.",
                    project.id,
                )
            else:
                self.record_interaction(
                    talent, TalentInteractionKind.COUNTER_POACH_LOST, -4, -6,
                    f"Counter-offer failed while trying to secure {project.title}.",
                    project.id,
                )
        elif option.kind == OptionKind.TALENT_WALK:
            project.hype_score = clamp(project.hype_score - 2, 0, 100)
            self.record_interaction(
                talent, TalentInteractionKind.COUNTER_POACH_LOST, -2, -3,
                f"Let poach pressure stand on {project.title}.", project.id,
            )

        self._state.player_negotiations = [
            n for n in self._state.player_negotiations if n.talent_id != talent.id
        ]
