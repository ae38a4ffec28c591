"""
Franchise model for Backlot.

A franchise track groups a released root film and its sequels. Momentum
rises with well-received entries; fatigue accumulates with every release
and with weak audience response. Both feed sequel eligibility, the seed
values of a new sequel, and the projection modifiers of in-flight
entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from ..constants import (
    FRANCHISE_BRAND_RESET_BASE_COST,
    FRANCHISE_HIATUS_BASE_COST,
    FRANCHISE_HIATUS_BUFFER_WEEKS,
    FRANCHISE_LEGACY_CASTING_BASE_COST,
    FRANCHISE_OP_COST_STEP,
    FRANCHISE_OP_MAX_USES,
    INITIAL_BUDGET_BY_GENRE,
    clamp,
    round_half_up,
)
from ..state.schema import (
    ActionResult,
    FranchiseOperation,
    FranchiseStrategy,
    FranchiseTrack,
    Genre,
    MovieProject,
    ProjectBudget,
    ProjectPhase,
)

if TYPE_CHECKING:
    from ..state.schema import StudioState
    from .finance import FinanceSystem
    from .ip import IpSystem

logger = logging.getLogger(__name__)

STRATEGY_COST: dict[FranchiseStrategy, int] = {
    FranchiseStrategy.SAFE: 90_000,
    FranchiseStrategy.BALANCED: 0,
    FranchiseStrategy.REINVENTION: 220_000,
}

# opening multiplier bonus, critical delta, audience delta
STRATEGY_BONUS: dict[FranchiseStrategy, tuple[float, float, float]] = {
    FranchiseStrategy.SAFE: (0.08, -2, 5),
    FranchiseStrategy.REINVENTION: (-0.05, 4, -2),
}

# base cost, use counter on the track
FRANCHISE_OPERATIONS: dict[FranchiseOperation, tuple[int, str]] = {
    FranchiseOperation.BRAND_RESET: (FRANCHISE_BRAND_RESET_BASE_COST, "brand_reset_count"),
    FranchiseOperation.LEGACY_CASTING: (FRANCHISE_LEGACY_CASTING_BASE_COST, "legacy_casting_campaign_count"),
    FranchiseOperation.HIATUS_PLANNING: (FRANCHISE_HIATUS_BASE_COST, "hiatus_plan_count"),
}

_ROMAN = [
    (10, "X"), (9, "IX"), (8, "VIII"), (7, "VII"), (6, "VI"),
    (5, "V"), (4, "IV"), (3, "III"), (2, "II"), (1, "I"),
]


def roman_numeral(value: int) -> str:
    remaining = max(1, int(value))
    out = ""
    for amount, glyph in _ROMAN:
        while remaining >= amount:
            out += glyph
            remaining -= amount
    return out or "I"


def _round1(value: float) -> float:
    return round_half_up(value * 10) / 10


def derive_momentum(base: MovieProject, prior_fatigue: float) -> float:
    audience = base.audience_score if base.audience_score is not None else 50
    critics = base.critical_score if base.critical_score is not None else 50
    return clamp(
        46
        + (audience - 50) * 0.55
        + (critics - 50) * 0.28
        + (base.projected_roi - 1) * 18
        - prior_fatigue * 0.18,
        10,
        95,
    )


def derive_fatigue(base: MovieProject, prior_fatigue: float, prior_releases: int) -> float:
    audience = base.audience_score if base.audience_score is not None else 50
    return clamp(
        prior_fatigue * 0.62
        + max(0, prior_releases - 1) * 11
        + max(0, 58 - audience) * 0.35
        + base.controversy * 0.12,
        0,
        88,
    )


def derive_carryover_hype(base: MovieProject, momentum: float, fatigue: float) -> float:
    audience = base.audience_score if base.audience_score is not None else 50
    return clamp(
        base.hype_score * 0.55 + audience * 0.18 + momentum * 0.22 - fatigue * 0.24,
        8,
        78,
    )


def sequel_upfront_cost(genre: Genre) -> int:
    return round_half_up(INITIAL_BUDGET_BY_GENRE[genre] * 0.035 + 220_000)


@dataclass(frozen=True)
class SequelEligibility:
    project_id: str
    franchise_id: str | None
    next_episode: int
    projected_momentum: float
    projected_fatigue: float
    upfront_cost: int
    carryover_hype: float
    eligible: bool
    reason: str | None = None


@dataclass(frozen=True)
class SequelCandidate:
    title: str
    genre: Genre
    eligibility: SequelEligibility


@dataclass(frozen=True)
class FranchiseModifiers:
    """How a franchise shifts one entry's projection."""
    momentum: float = 50
    fatigue: float = 0
    strategy: FranchiseStrategy = FranchiseStrategy.NONE
    returning_director: bool = False
    returning_cast_count: int = 0
    opening_multiplier: float = 1.0
    critical_delta: float = 0
    audience_delta: float = 0
    roi_multiplier: float = 1.0


@dataclass(frozen=True)
class FranchiseStatus:
    franchise_id: str
    name: str
    momentum: float
    fatigue: float
    entries: int
    released_entries: int
    active_project_id: str | None
    last_release_week: int | None
    weeks_since_release: int | None


class FranchiseHost(Protocol):
    state: StudioState

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def ip(self) -> IpSystem: ...


class FranchiseSystem:
    """Sequel eligibility, sequel spawn, strategy and projection modifiers."""

    def __init__(self, manager: FranchiseHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    # -------------------------------------------------------------------------
    # Tracks
    # -------------------------------------------------------------------------

    def _ensure_track(self, base: MovieProject) -> FranchiseTrack:
        existing = self._state.get_franchise(base.franchise_id)
        if existing is not None:
            return existing

        track = FranchiseTrack(
            name=base.title,
            genre=base.genre,
            root_project_id=base.id,
            project_ids=[base.id],
            released_project_ids=[base.id],
            momentum=derive_momentum(base, 8),
            fatigue=derive_fatigue(base, 8, 1),
            last_release_week=base.release_week or self._state.current_week,
        )
        base.franchise_id = track.id
        base.franchise_episode = base.franchise_episode or 1
        base.sequel_to_project_id = None
        self._state.franchises.append(track)
        return track

    def _max_episode(self, track: FranchiseTrack) -> int:
        highest = 1
        for project_id in track.project_ids:
            project = self._state.get_project(project_id)
            if project is not None and project.franchise_episode:
                highest = max(highest, project.franchise_episode)
        return highest

    def status(self, franchise_id: str) -> FranchiseStatus | None:
        track = self._state.get_franchise(franchise_id)
        if track is None:
            return None
        since = None
        if track.last_release_week is not None:
            since = max(0, self._state.current_week - track.last_release_week)
        return FranchiseStatus(
            franchise_id=track.id,
            name=track.name,
            momentum=track.momentum,
            fatigue=track.fatigue,
            entries=len(track.project_ids),
            released_entries=len(track.released_project_ids),
            active_project_id=track.active_project_id,
            last_release_week=track.last_release_week,
            weeks_since_release=since,
        )

    # -------------------------------------------------------------------------
    # Sequels
    # -------------------------------------------------------------------------

    def sequel_eligibility(self, project_id: str) -> SequelEligibility | None:
        base = self._state.get_project(project_id)
        if base is None:
            return None

        cost = sequel_upfront_cost(base.genre)
        if base.phase != ProjectPhase.RELEASED or not base.release_resolved:
            return SequelEligibility(
                project_id=base.id,
                franchise_id=base.franchise_id,
                next_episode=2,
                projected_momentum=40,
                projected_fatigue=12,
                upfront_cost=cost,
                carryover_hype=12,
                eligible=False,
                reason="Only fully resolved released projects can spawn sequels.",
            )

        track = self._state.get_franchise(base.franchise_id)
        prior_releases = max(1, len(track.released_project_ids) if track else 1)
        prior_fatigue = track.fatigue if track else 8
        momentum = derive_momentum(base, prior_fatigue)
        fatigue = derive_fatigue(base, prior_fatigue, prior_releases)
        eligibility = dict(
            project_id=base.id,
            franchise_id=track.id if track else None,
            next_episode=self._max_episode(track) + 1 if track else 2,
            projected_momentum=momentum,
            projected_fatigue=fatigue,
            upfront_cost=cost,
            carryover_hype=derive_carryover_hype(base, momentum, fatigue),
        )

        if track is not None:
            in_flight = next(
                (
                    p for p in self._state.active_projects
                    if p.franchise_id == track.id and p.phase != ProjectPhase.RELEASED
                ),
                None,
            )
            if in_flight is not None:
                return SequelEligibility(
                    **eligibility,
                    eligible=False,
                    reason=f"Finish {in_flight.title} before opening another sequel.",
                )

        if self._state.cash < cost:
            return SequelEligibility(
                **eligibility,
                eligible=False,
                reason=f"Need ${round_half_up(cost / 1000)}K cash to open sequel development.",
            )
        return SequelEligibility(**eligibility, eligible=True)

    def sequel_candidates(self) -> list[SequelCandidate]:
        """Released projects, eligible first, then by projected momentum."""
        candidates = []
        for project in self._state.active_projects:
            if project.phase != ProjectPhase.RELEASED:
                continue
            eligibility = self.sequel_eligibility(project.id)
            if eligibility is not None:
                candidates.append(SequelCandidate(project.title, project.genre, eligibility))
        candidates.sort(key=lambda c: (not c.eligibility.eligible, -c.eligibility.projected_momentum))
        return candidates

    def start_sequel(self, base_project_id: str) -> ActionResult:
        base = self._state.get_project(base_project_id)
        if base is None:
            return ActionResult(success=False, message="Base project not found.")
        eligibility = self.sequel_eligibility(base_project_id)
        if eligibility is None:
            return ActionResult(success=False, message="Unable to evaluate sequel eligibility.")
        if not eligibility.eligible:
            return ActionResult(success=False, message=eligibility.reason or "Sequel not available.")
        blocking = self.manager.ip.blocking_commitment(exclude_ip_id=base.adapted_from_ip_id)
        if blocking is not None:
            return ActionResult(
                success=False,
                message=(
                    f"Contract lock: open the next {blocking.name} installment "
                    "before starting other sequel lines."
                ),
            )

        track = self._state.get_franchise(eligibility.franchise_id) or self._ensure_track(base)
        episode = eligibility.next_episode
        momentum = eligibility.projected_momentum
        fatigue = eligibility.projected_fatigue

        budget_multiplier = clamp(0.9 + momentum / 180 - fatigue / 260, 0.75, 1.25)
        ceiling = round_half_up(INITIAL_BUDGET_BY_GENRE[base.genre] * budget_multiplier)
        base_critical = base.critical_score if base.critical_score is not None else 60

        self.manager.finance.adjust_cash(-eligibility.upfront_cost)

        sequel = MovieProject(
            title=f"{track.name} {roman_numeral(episode)}",
            genre=base.genre,
            budget=ProjectBudget(
                ceiling=ceiling,
                above_the_line=ceiling * 0.3,
                below_the_line=ceiling * 0.5,
                post_production=ceiling * 0.15,
                contingency=ceiling * 0.1,
                overrun_risk=clamp(base.budget.overrun_risk * 0.92 + 0.04, 0.12, 0.62),
                actual_spend=eligibility.upfront_cost,
            ),
            script_quality=clamp(
                base.script_quality * 0.72 + base_critical * 0.028 - fatigue * 0.01 + 0.45,
                5.5,
                8.8,
            ),
            concept_strength=clamp(base.concept_strength * 0.86 + 0.75 - fatigue * 0.008, 5.2, 9.1),
            hype_score=eligibility.carryover_hype,
            projected_roi=clamp(base.projected_roi * (1.02 - fatigue * 0.003), 0.75, 2.8),
            prestige=int(clamp(round_half_up(base.prestige * 0.84 + 8 - fatigue * 0.08), 0, 100)),
            commercial_appeal=int(
                clamp(round_half_up(base.commercial_appeal * 0.9 + momentum * 0.18), 0, 100)
            ),
            originality=int(
                clamp(round_half_up(base.originality * 0.82 - max(0, episode - 2) * 3), 0, 100)
            ),
            controversy=int(clamp(round_half_up(base.controversy * 0.9), 0, 100)),
            franchise_id=track.id,
            franchise_episode=episode,
            sequel_to_project_id=base.id,
            franchise_carryover_hype=eligibility.carryover_hype,
            franchise_strategy=FranchiseStrategy.BALANCED,
            adapted_from_ip_id=base.adapted_from_ip_id,
        )
        self._state.active_projects.append(sequel)

        for project_id in (base.id, sequel.id):
            if project_id not in track.project_ids:
                track.project_ids.append(project_id)
        if base.id not in track.released_project_ids:
            track.released_project_ids.append(base.id)
        track.active_project_id = sequel.id
        track.momentum = clamp(_round1(track.momentum * 0.5 + momentum * 0.5), 8, 95)
        track.fatigue = clamp(_round1(track.fatigue * 0.45 + fatigue * 0.55 + 6), 0, 92)
        track.last_release_week = base.release_week or self._state.current_week

        logger.info(f"Sequel {sequel.title} opened from {base.title}")
        return ActionResult(
            success=True,
            message=(
                f"Sequel greenlit: {sequel.title}. Development opened for "
                f"${round_half_up(eligibility.upfront_cost / 1000)}K."
            ),
            project_id=sequel.id,
        )

    # -------------------------------------------------------------------------
    # Strategy
    # -------------------------------------------------------------------------

    def set_strategy(self, project_id: str, strategy: FranchiseStrategy) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return ActionResult(success=False, message="Project not found.")
        if not project.is_sequel:
            return ActionResult(success=False, message="Franchise strategy only applies to sequel projects.")
        if project.phase not in (ProjectPhase.DEVELOPMENT, ProjectPhase.PRE_PRODUCTION):
            return ActionResult(
                success=False,
                message="Franchise strategy can only be set during development or pre-production.",
            )
        if strategy == FranchiseStrategy.NONE:
            return ActionResult(success=False, message="Choose safe, balanced or reinvention.")

        current = project.franchise_strategy
        if current == FranchiseStrategy.NONE:
            current = FranchiseStrategy.BALANCED
        if current == strategy:
            return ActionResult(
                success=True,
                message=f"{project.title} is already set to {strategy.value}.",
                project_id=project.id,
            )
        if current != FranchiseStrategy.BALANCED:
            return ActionResult(
                success=False,
                message=f"Franchise strategy is locked after first commitment ({current.value}).",
            )

        cost = STRATEGY_COST[strategy]
        if cost > 0 and self._state.cash < cost:
            return ActionResult(
                success=False,
                message=(
                    f"Insufficient cash to set {strategy.value} strategy "
                    f"({round_half_up(cost / 1000)}K needed)."
                ),
            )
        self.manager.finance.adjust_cash(-cost)

        if strategy == FranchiseStrategy.SAFE:
            project.commercial_appeal = int(clamp(project.commercial_appeal + 6, 0, 100))
            project.originality = int(clamp(project.originality - 4, 0, 100))
            project.hype_score = clamp(project.hype_score + 3, 0, 100)
            project.controversy = int(clamp(project.controversy - 2, 0, 100))
            message = f"Set {project.title} to Safe Continuation. Familiar beats prioritized."
        else:
            project.script_quality = clamp(project.script_quality + 0.4, 0, 10)
            project.originality = int(clamp(project.originality + 10, 0, 100))
            project.prestige = int(clamp(project.prestige + 6, 0, 100))
            project.commercial_appeal = int(clamp(project.commercial_appeal - 4, 0, 100))
            project.controversy = int(clamp(project.controversy + 3, 0, 100))
            message = f"Set {project.title} to Reinvention. Risky creative reset greenlit."

        project.franchise_strategy = strategy
        self.manager.finance.evaluate_bankruptcy()
        return ActionResult(success=True, message=message, project_id=project.id)

    # -------------------------------------------------------------------------
    # Franchise operations
    # -------------------------------------------------------------------------

    def _op_target(self, project_id: str) -> tuple[MovieProject, FranchiseTrack] | ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return ActionResult(success=False, message="Project not found.")
        if not project.is_sequel:
            return ActionResult(success=False, message="Franchise operations only apply to sequel projects.")
        if project.phase not in (ProjectPhase.DEVELOPMENT, ProjectPhase.PRE_PRODUCTION):
            return ActionResult(
                success=False,
                message="Franchise operations are only available during development or pre-production.",
            )
        track = self._state.get_franchise(project.franchise_id)
        if track is None:
            return ActionResult(success=False, message="Franchise track not found.")
        return project, track

    def operation_cost(self, track: FranchiseTrack, operation: FranchiseOperation) -> int:
        base, counter = FRANCHISE_OPERATIONS[operation]
        uses = getattr(track, counter)
        return round_half_up(base * (1 + uses * FRANCHISE_OP_COST_STEP))

    def run_operation(self, project_id: str, operation: FranchiseOperation) -> ActionResult:
        """
        Spend on a franchise-level intervention for an in-flight sequel.

        Each operation can run a limited number of times per track, and
        each repeat costs more than the last.
        """
        target = self._op_target(project_id)
        if isinstance(target, ActionResult):
            return target
        project, track = target
        _, counter = FRANCHISE_OPERATIONS[operation]
        label = operation.value.replace("_", " ")
        if getattr(track, counter) >= FRANCHISE_OP_MAX_USES:
            return ActionResult(success=False, message=f"{track.name} has used every {label} it can.")
        cost = self.operation_cost(track, operation)
        if self._state.cash < cost:
            return ActionResult(
                success=False,
                message=f"Insufficient cash for {label} ({round_half_up(cost / 1000)}K needed).",
            )
        self.manager.finance.adjust_cash(-cost)
        setattr(track, counter, getattr(track, counter) + 1)

        if operation == FranchiseOperation.BRAND_RESET:
            track.fatigue = clamp(_round1(track.fatigue - 12), 0, 92)
            project.originality = int(clamp(project.originality + 8, 0, 100))
            project.hype_score = clamp(project.hype_score - 2, 0, 100)
            message = f"{track.name} brand reset. Fatigue eased and {project.title} gets a fresher angle."
        elif operation == FranchiseOperation.LEGACY_CASTING:
            track.momentum = clamp(_round1(track.momentum + 6), 8, 95)
            project.hype_score = clamp(project.hype_score + 5, 0, 100)
            project.commercial_appeal = int(clamp(project.commercial_appeal + 3, 0, 100))
            message = f"Legacy casting campaign for {project.title}. Franchise momentum and hype up."
        else:
            track.cadence_buffer_weeks += FRANCHISE_HIATUS_BUFFER_WEEKS
            track.fatigue = clamp(_round1(track.fatigue - 6), 0, 92)
            project.hype_score = clamp(project.hype_score - 1, 0, 100)
            message = (
                f"{track.name} hiatus planned. {FRANCHISE_HIATUS_BUFFER_WEEKS} weeks of cadence "
                "buffer added before the next entry."
            )

        self.manager.finance.evaluate_bankruptcy()
        logger.info(f"{label} on {track.name} (use {getattr(track, counter)})")
        return ActionResult(success=True, message=message, project_id=project.id)

    # -------------------------------------------------------------------------
    # Projection modifiers
    # -------------------------------------------------------------------------

    def projection_modifiers(self, project: MovieProject) -> FranchiseModifiers:
        if not project.franchise_id:
            return FranchiseModifiers()

        strategy = project.franchise_strategy
        if strategy == FranchiseStrategy.NONE:
            strategy = FranchiseStrategy.BALANCED
        track = self._state.get_franchise(project.franchise_id)
        momentum = track.momentum if track else 50
        fatigue = track.fatigue if track else 8
        if track is not None:
            fatigue = max(0, fatigue - track.cadence_buffer_weeks * 0.5)

        predecessor = self._state.get_project(project.sequel_to_project_id)
        returning_director = bool(
            project.director_id and predecessor and project.director_id == predecessor.director_id
        )
        returning_cast = (
            sum(1 for cid in project.cast_ids if cid in predecessor.cast_ids) if predecessor else 0
        )
        capped_cast = min(2, returning_cast)
        open_bonus, crit_bonus, aud_bonus = STRATEGY_BONUS.get(strategy, (0, 0, 0))

        return FranchiseModifiers(
            momentum=momentum,
            fatigue=fatigue,
            strategy=strategy,
            returning_director=returning_director,
            returning_cast_count=returning_cast,
            opening_multiplier=clamp(
                1
                + (momentum - 50) * 0.006
                - fatigue * 0.0045
                + open_bonus
                + (0.06 if returning_director else 0)
                + capped_cast * 0.03,
                0.62,
                1.45,
            ),
            critical_delta=clamp(
                (momentum - 50) * 0.08
                - fatigue * 0.06
                + crit_bonus
                + (1.5 if returning_director else 0)
                + capped_cast * 0.7,
                -16,
                18,
            ),
            audience_delta=clamp(
                (momentum - 50) * 0.09
                - fatigue * 0.07
                + aud_bonus
                + (2 if returning_director else 0)
                + capped_cast * 1,
                -20,
                20,
            ),
            roi_multiplier=clamp(1 + (momentum - 50) * 0.004 - fatigue * 0.003, 0.7, 1.25),
        )

    # -------------------------------------------------------------------------
    # Release bookkeeping
    # -------------------------------------------------------------------------

    def mark_release(self, project: MovieProject) -> None:
        """Fold a finished theatrical run into its franchise track."""
        track = self._state.get_franchise(project.franchise_id)
        if track is None:
            return
        if project.id not in track.project_ids:
            track.project_ids.append(project.id)
        if project.id not in track.released_project_ids:
            track.released_project_ids.append(project.id)
        if track.active_project_id == project.id:
            track.active_project_id = None
        track.last_release_week = self._state.current_week
        track.cadence_buffer_weeks = 0

        audience = project.audience_score if project.audience_score is not None else 50
        critics = project.critical_score if project.critical_score is not None else 50
        track.momentum = clamp(
            _round1(track.momentum * 0.4 + audience * 0.42 + critics * 0.18), 8, 95
        )
        track.fatigue = clamp(
            _round1(
                track.fatigue * 0.68
                + 9
                + max(0, 60 - audience) * 0.25
                + project.controversy * 0.08
            ),
            0,
            92,
        )

    def remove_project(self, project: MovieProject) -> None:
        """Detach an abandoned project; drop the track once it is empty."""
        track = self._state.get_franchise(project.franchise_id)
        if track is None:
            return
        track.project_ids = [pid for pid in track.project_ids if pid != project.id]
        track.released_project_ids = [pid for pid in track.released_project_ids if pid != project.id]
        if track.active_project_id == project.id:
            track.active_project_id = None
        if track.root_project_id == project.id and track.project_ids:
            track.root_project_id = track.project_ids[0]
        if not track.project_ids:
            self._state.franchises = [f for f in self._state.franchises if f.id != track.id]
