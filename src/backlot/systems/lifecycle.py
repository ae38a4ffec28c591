"""
Project lifecycle for Backlot.

Owns the six-phase pipeline and everything that gates it:

    development -> pre_production -> production -> post_production
        -> distribution -> released

Transitions are one-directional and never skip a phase. Each failed
transition comes back as an ActionResult with the blocking reason.

Also owns the distribution offer stack (accept, one counter, walk away),
release-week scheduling and the point-in-time box-office projection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from ..constants import (
    DEFAULT_RELEASE_LEAD_WEEKS,
    EXCLUSIVE_PARTNER_GUARANTEE_BONUS,
    EXCLUSIVE_PARTNER_SHARE_BONUS,
    MAX_PROJECT_WEEKS_AHEAD,
    MIN_GREENLIGHT_SCRIPT_QUALITY,
    PHASE_ENTRY_WEEKS,
    PHASE_LABELS,
    SPECIALIZATION_PROFILES,
    clamp,
    round_half_up,
)
from ..formulas import (
    projected_critical_score,
    projected_opening_range,
    projected_roi,
    release_run_weeks,
)
from ..state.event_bus import EventType
from ..state.schema import (
    ActionResult,
    DistributionOffer,
    Genre,
    MovieProject,
    ProductionStatus,
    ProjectPhase,
    ReleaseWindow,
    TalentRole,
)

if TYPE_CHECKING:
    from ..state.event_bus import EventBus
    from ..state.schema import StudioState
    from .events import ArcOutcomeModifiers
    from .finance import FinanceSystem
    from .franchise import FranchiseSystem
    from .market import MarketSystem
    from .studio import StudioSystem
    from .talent import TalentSystem

logger = logging.getLogger(__name__)

CRISIS_CRITICAL_PENALTY = 8
DEFAULT_DIRECTOR_CRAFT = 6.0
DEFAULT_LEAD_CRAFT = 6.0
DEFAULT_LEAD_STAR_POWER = 5.5
CALENDAR_PRESSURE_FLOOR = 0.45

PLAYER_WINDOWS = (ReleaseWindow.WIDE_THEATRICAL, ReleaseWindow.LIMITED_THEATRICAL)

# partner, window, MG factor, hype-scaled, P&A share of ceiling, base share, opening override
OFFER_TABLE: list[tuple[str, ReleaseWindow, float, bool, float, float, float]] = [
    ("Tallgrass Pictures", ReleaseWindow.WIDE_THEATRICAL, 1.2, True, 0.12, 0.54, 1.15),
    ("Lantern Row Distribution", ReleaseWindow.LIMITED_THEATRICAL, 1.08, False, 0.08, 0.61, 0.94),
    ("Northstar Media", ReleaseWindow.WIDE_THEATRICAL, 1.32, False, 0.10, 0.58, 1.03),
]


@dataclass(frozen=True)
class Projection:
    """Forecast for one project at one release week."""
    critical: float
    opening_low: float
    opening_high: float
    roi: float


class LifecycleHost(Protocol):
    """What the lifecycle needs from the studio."""

    state: StudioState
    bus: EventBus
    negotiation_rng: Callable[[], float]

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def talent(self) -> TalentSystem: ...

    @property
    def franchise(self) -> FranchiseSystem: ...

    @property
    def market(self) -> MarketSystem: ...

    @property
    def studio(self) -> StudioSystem: ...

    def arc_outcome_modifiers(self) -> ArcOutcomeModifiers: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...


class LifecycleSystem:
    """
    Phase gates, distribution and projections.

    Usage:
        result = manager.lifecycle.advance_phase(project_id)
        if not result.success:
            show(result.message)
    """

    def __init__(self, manager: LifecycleHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    # -------------------------------------------------------------------------
    # Phase transitions
    # -------------------------------------------------------------------------

    def advance_phase(self, project_id: str) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return ActionResult(success=False, message="Project not found.")

        handler = {
            ProjectPhase.DEVELOPMENT: self._to_pre_production,
            ProjectPhase.PRE_PRODUCTION: self._to_production,
            ProjectPhase.PRODUCTION: self._to_post_production,
            ProjectPhase.POST_PRODUCTION: self._to_distribution,
            ProjectPhase.DISTRIBUTION: self._to_released,
        }.get(project.phase)
        if handler is None:
            return ActionResult(success=False, message="Project is already released.")

        previous = project.phase
        reason = handler(project)
        if reason is not None:
            return ActionResult(success=False, message=reason, project_id=project.id)

        logger.info(f"{project.title}: {previous.value} -> {project.phase.value}")
        self.manager.bus.emit(
            EventType.PROJECT_PHASE_CHANGED,
            week=self._state.current_week,
            project_id=project.id,
            from_phase=previous.value,
            to_phase=project.phase.value,
        )
        if project.phase == ProjectPhase.RELEASED:
            self.manager.bus.emit(
                EventType.PROJECT_RELEASED,
                week=self._state.current_week,
                project_id=project.id,
                opening=project.opening_weekend_gross,
            )
            message = f"{project.title} released. Opening weekend posted."
        else:
            message = f"{project.title} moved to {PHASE_LABELS[project.phase]}."
        return ActionResult(success=True, message=message, project_id=project.id)

    def _to_pre_production(self, project: MovieProject) -> str | None:
        if not project.director_id:
            return "Attach a director before moving to pre-production."
        if not project.cast_ids:
            return "Attach at least one cast lead before moving forward."
        if project.script_quality < MIN_GREENLIGHT_SCRIPT_QUALITY:
            return "Script quality is too low to greenlight."
        project.phase = ProjectPhase.PRE_PRODUCTION
        project.scheduled_weeks_remaining = PHASE_ENTRY_WEEKS[ProjectPhase.PRE_PRODUCTION]
        return None

    def _to_production(self, project: MovieProject) -> str | None:
        if project.scheduled_weeks_remaining > 0:
            return "Finish pre-production weeks before principal photography."
        project.phase = ProjectPhase.PRODUCTION
        project.scheduled_weeks_remaining = PHASE_ENTRY_WEEKS[ProjectPhase.PRODUCTION]
        project.production_status = ProductionStatus.ON_TRACK
        return None

    def _to_post_production(self, project: MovieProject) -> str | None:
        if project.scheduled_weeks_remaining > 0:
            return "Production schedule still has remaining weeks."
        if any(c.project_id == project.id for c in self._state.pending_crises):
            return "Resolve project crises before moving to post."
        project.phase = ProjectPhase.POST_PRODUCTION
        project.scheduled_weeks_remaining = PHASE_ENTRY_WEEKS[ProjectPhase.POST_PRODUCTION]
        project.production_status = ProductionStatus.ON_TRACK
        return None

    def _to_distribution(self, project: MovieProject) -> str | None:
        if project.scheduled_weeks_remaining > 0:
            return "Editorial timeline still in progress."
        if project.marketing_budget <= 0:
            return "Allocate marketing spend before entering distribution."
        project.phase = ProjectPhase.DISTRIBUTION
        project.release_window = None
        project.release_week = self._state.current_week + DEFAULT_RELEASE_LEAD_WEEKS
        project.scheduled_weeks_remaining = PHASE_ENTRY_WEEKS[ProjectPhase.DISTRIBUTION]
        self.generate_offers(project.id)
        return None

    def _to_released(self, project: MovieProject) -> str | None:
        if project.scheduled_weeks_remaining > 0:
            return "Distribution setup is still underway."
        if project.release_window is None:
            return "Select a distribution deal first."
        if project.release_week and self._state.current_week < project.release_week:
            return (
                f"{project.title} is scheduled for week {project.release_week}. "
                "End Turn to reach release."
            )

        projection = self.projection(project)
        audience_delta = self.manager.franchise.projection_modifiers(project).audience_delta
        project.phase = ProjectPhase.RELEASED
        project.critical_score = projection.critical
        project.audience_score = clamp(projection.critical + 4 + audience_delta, 0, 100)
        project.opening_weekend_gross = projection.opening_high
        project.weekly_gross_history = [projection.opening_high]
        project.final_box_office = projection.opening_high
        project.release_weeks_remaining = release_run_weeks(
            project.critical_score, project.audience_score
        )
        project.release_resolved = False
        project.projected_roi = projection.roi
        self._state.pending_release_reveals.append(project.id)
        self.manager.talent.release_talent(project, "released")
        return None

    # -------------------------------------------------------------------------
    # Release scheduling
    # -------------------------------------------------------------------------

    def clamp_release_week(self, week: float) -> int:
        current = self._state.current_week
        return int(clamp(round_half_up(week), current + 1, current + MAX_PROJECT_WEEKS_AHEAD))

    def set_release_week(self, project_id: str, week: int) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return ActionResult(success=False, message="Project not found.")
        if project.phase != ProjectPhase.DISTRIBUTION:
            return ActionResult(success=False, message="Project is not in distribution.")
        project.release_week = self.clamp_release_week(week)
        return ActionResult(
            success=True,
            message=f"{project.title} release moved to week {project.release_week}.",
            project_id=project.id,
        )

    # -------------------------------------------------------------------------
    # Distribution offers
    # -------------------------------------------------------------------------

    def offers_for(self, project_id: str) -> list[DistributionOffer]:
        return [o for o in self._state.distribution_offers if o.project_id == project_id]

    def generate_offers(self, project_id: str) -> None:
        """Replace the project's offer stack with three theatrical offers."""
        project = self._state.get_project(project_id)
        if project is None:
            return
        state = self._state
        state.distribution_offers = [o for o in state.distribution_offers if o.project_id != project_id]

        leverage = self.manager.arc_outcome_modifiers().distribution_leverage
        base = project.budget.ceiling * 0.2
        hype_factor = 1 + project.hype_score / 200
        share_lift = leverage * 0.22
        exclusive = self.manager.studio.active_exclusive_partner()
        for partner, window, factor, hype_scaled, p_and_a, share, override in OFFER_TABLE:
            guarantee = base * factor * (1 + leverage)
            if hype_scaled:
                guarantee *= hype_factor
            bonus_share = 0.0
            if partner == exclusive:
                guarantee *= 1 + EXCLUSIVE_PARTNER_GUARANTEE_BONUS
                bonus_share = EXCLUSIVE_PARTNER_SHARE_BONUS
            state.distribution_offers.append(
                DistributionOffer(
                    project_id=project_id,
                    partner=partner,
                    release_window=window,
                    minimum_guarantee=guarantee,
                    p_and_a_commitment=project.budget.ceiling * p_and_a,
                    revenue_share_to_studio=clamp(share + share_lift + bonus_share, 0.45, 0.7),
                    projected_opening_override=override,
                )
            )

    def tick_distribution_windows(self, events: list[str]) -> None:
        """Refill offers for distribution projects that still have no window."""
        for project in self._state.active_projects:
            if project.phase != ProjectPhase.DISTRIBUTION or project.release_window is not None:
                continue
            if not self.offers_for(project.id):
                self.generate_offers(project.id)
                events.append(f"New distribution offers received for {project.title}.")

    def _find_offer(self, project_id: str, offer_id: str) -> DistributionOffer | None:
        for offer in self._state.distribution_offers:
            if offer.id == offer_id and offer.project_id == project_id:
                return offer
        return None

    def accept_offer(self, project_id: str, offer_id: str) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return ActionResult(success=False, message="Project not found.")
        if project.phase != ProjectPhase.DISTRIBUTION:
            return ActionResult(success=False, message="Project is not in distribution phase.")
        offer = self._find_offer(project_id, offer_id)
        if offer is None:
            return ActionResult(success=False, message="Offer not found.")
        if offer.release_window not in PLAYER_WINDOWS:
            return ActionResult(
                success=False,
                message="Player studio can only accept theatrical distribution windows.",
            )

        project.release_window = offer.release_window
        project.distribution_partner = offer.partner
        project.studio_revenue_share = min(offer.revenue_share_to_studio, project.studio_revenue_share)
        if project.release_week is None:
            project.release_week = self._state.current_week + DEFAULT_RELEASE_LEAD_WEEKS
        project.marketing_budget += offer.p_and_a_commitment
        project.hype_score = clamp(project.hype_score + 6, 0, 100)
        self.manager.finance.adjust_cash(offer.minimum_guarantee)
        self._state.distribution_offers = [
            o for o in self._state.distribution_offers if o.project_id != project_id
        ]
        return ActionResult(
            success=True,
            message=f"Accepted {offer.partner} offer.",
            project_id=project_id,
        )

    def counter_offer(self, project_id: str, offer_id: str) -> ActionResult:
        """One counter per offer; the second attempt always fails."""
        offer = self._find_offer(project_id, offer_id)
        if offer is None:
            return ActionResult(success=False, message="Offer not found.")
        if offer.counter_attempts >= 1:
            return ActionResult(
                success=False,
                message=f"{offer.partner} will not entertain another counter.",
            )

        offer.counter_attempts += 1
        chance = clamp(0.53 + self._state.reputation.distributor / 220, 0.25, 0.9)
        if self.manager.negotiation_rng() > chance:
            return ActionResult(success=False, message=f"{offer.partner} declined the counter.")

        offer.minimum_guarantee *= 1.1
        offer.revenue_share_to_studio = clamp(offer.revenue_share_to_studio + 0.025, 0.45, 0.7)
        return ActionResult(
            success=True,
            message=f"{offer.partner} improved terms after counter.",
            project_id=project_id,
        )

    def walk_away(self, project_id: str) -> ActionResult:
        before = len(self._state.distribution_offers)
        self._state.distribution_offers = [
            o for o in self._state.distribution_offers if o.project_id != project_id
        ]
        removed = before - len(self._state.distribution_offers)
        self.manager.adjust_reputation(-2, "distributor")
        return ActionResult(
            success=True,
            message=(
                f"Walked away from {removed} offer(s). Distributor rep -2. "
                "Fresh offers can regenerate next End Turn if no window is selected."
            ),
            project_id=project_id,
        )

    # -------------------------------------------------------------------------
    # Projection
    # -------------------------------------------------------------------------

    def calendar_pressure(self, release_week: int, genre: Genre) -> float:
        """Opening multiplier lost to rival films within a week of ours."""
        pressure = 1.0
        for rival in self._state.rivals:
            for film in rival.upcoming_releases:
                if abs(film.release_week - release_week) > 1:
                    continue
                pressure -= 0.12 if film.estimated_budget > 100_000_000 else 0.05
                pressure -= 0.08 if film.genre == genre else 0.02
        return max(CALENDAR_PRESSURE_FLOOR, pressure)

    def _lead_actor(self, project: MovieProject):
        for talent in self._state.talent_pool:
            if talent.id in project.cast_ids and talent.role == TalentRole.LEAD_ACTOR:
                return talent
        return None

    def build_projection(self, project: MovieProject, release_week: int) -> Projection:
        director = self._state.get_talent(project.director_id)
        lead = self._lead_actor(project)
        modifiers = self.manager.franchise.projection_modifiers(project)
        opening_bias, critical_bias, _, _, _ = SPECIALIZATION_PROFILES[self._state.studio_specialization]

        base_critical = projected_critical_score(
            script_quality=project.script_quality,
            director_craft=director.craft_score if director else DEFAULT_DIRECTOR_CRAFT,
            lead_actor_craft=lead.craft_score if lead else DEFAULT_LEAD_CRAFT,
            production_spend=project.budget.actual_spend,
            concept_strength=project.concept_strength,
            editorial_score=project.editorial_score,
            crisis_penalty=(
                CRISIS_CRITICAL_PENALTY
                if project.production_status == ProductionStatus.IN_CRISIS
                else 0
            ),
        )
        critical = clamp(base_critical + modifiers.critical_delta + critical_bias, 0, 100)

        opening = projected_opening_range(
            genre=project.genre,
            hype_score=project.hype_score,
            star_power=lead.star_power if lead else DEFAULT_LEAD_STAR_POWER,
            marketing_budget=project.marketing_budget,
            total_budget=project.budget.ceiling,
            seasonal_multiplier=self.manager.market.genre_demand(project.genre),
        )
        multiplier = (
            self.calendar_pressure(release_week, project.genre) * modifiers.opening_multiplier * opening_bias
        )
        audience = clamp(critical + 4 + modifiers.audience_delta, 0, 100)
        roi = projected_roi(
            opening_weekend=opening.midpoint * multiplier,
            critical_score=critical,
            audience_score=audience,
            genre=project.genre,
            total_cost=project.budget.ceiling + project.marketing_budget,
        )
        return Projection(
            critical=critical,
            opening_low=opening.low * multiplier,
            opening_high=opening.high * multiplier,
            roi=clamp(roi * modifiers.roi_multiplier, 0.4, 4.5),
        )

    def projection(self, project: MovieProject) -> Projection:
        week = project.release_week or self._state.current_week + DEFAULT_RELEASE_LEAD_WEEKS
        return self.build_projection(project, week)

    def projection_for(self, project_id: str) -> Projection | None:
        project = self._state.get_project(project_id)
        if project is None:
            return None
        return self.projection(project)

    def projection_at_week(self, project_id: str, release_week: int) -> Projection | None:
        project = self._state.get_project(project_id)
        if project is None:
            return None
        return self.build_projection(project, self.clamp_release_week(release_week))

    def refresh_projections(self) -> None:
        for project in self._state.active_projects:
            if project.phase == ProjectPhase.RELEASED:
                continue
            project.projected_roi = self.projection(project).roi
