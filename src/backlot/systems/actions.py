"""
Optional in-phase project actions.

Each action spends cash for a bounded effect on one project and carries
its own phase, cap and cash preconditions. Nothing here advances the
pipeline; phase gates live in the lifecycle.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Protocol

from ..constants import (
    ABANDON_WRITE_DOWN,
    DEVELOPMENT_GREENLIGHT_FEE_CUT,
    DEVELOPMENT_SPRINT_BONUS,
    FESTIVAL_RESOLUTION_WEEKS,
    FESTIVAL_SUBMISSION_COST,
    GREENLIGHT_APPROVAL_FEE,
    GREENLIGHT_FEE_FLOOR,
    MARKETING_TEAM_BUDGET_PER_LEVEL,
    MARKETING_TEAM_HYPE_PER_LEVEL,
    MIN_GREENLIGHT_SCRIPT_QUALITY,
    OPTIONAL_ACTION_COST,
    OPTIONAL_ACTION_HYPE_BOOST,
    OPTIONAL_ACTION_MARKETING_BOOST,
    POLISH_PASS_COST,
    POLISH_PASS_EDITORIAL_BOOST,
    POLISH_PASS_MAX_EDITORIAL,
    POLISH_PASS_MAX_USES,
    RESHOOT_COST,
    RESHOOT_SCHEDULE_WEEKS,
    REWRITE_QUALITY_CAP,
    SCRIPT_SPRINT_COST,
    SCRIPT_SPRINT_MAX_QUALITY,
    SCRIPT_SPRINT_QUALITY_BOOST,
    TEST_SCREENING_COST,
    TRACKING_ADVANCE_SHARE,
    clamp,
)
from ..state.schema import (
    ActionResult,
    Availability,
    DepartmentTrack,
    FestivalStatus,
    Genre,
    MovieProject,
    ProjectPhase,
)

if TYPE_CHECKING:
    from ..state.schema import StudioState
    from .finance import FinanceSystem
    from .franchise import FranchiseSystem
    from .lifecycle import LifecycleSystem
    from .talent import TalentSystem

logger = logging.getLogger(__name__)

NOT_FOUND = ActionResult(success=False, message="Project not found.")


def pick_festival_target(project: MovieProject) -> str:
    prestige_bias = project.prestige + project.script_quality * 4 + project.originality * 0.18
    if prestige_bias >= 78:
        return "Cannes"
    if project.genre in (Genre.DOCUMENTARY, Genre.DRAMA):
        return "Sundance"
    return "Toronto"


class ActionHost(Protocol):
    """What project actions need from the studio."""

    state: StudioState
    event_rng: Callable[[], float]

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def talent(self) -> TalentSystem: ...

    @property
    def franchise(self) -> FranchiseSystem: ...

    @property
    def lifecycle(self) -> LifecycleSystem: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...


class ProjectActionSystem:
    """
    Greenlight, screenings, reshoots, polish, marketing and festivals.

    Every method returns an ActionResult; a failed precondition leaves
    cash and the project untouched.
    """

    def __init__(self, manager: ActionHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    def _spend(self, amount: float) -> None:
        self.manager.finance.adjust_cash(-amount)
        self.manager.finance.evaluate_bankruptcy()

    def _marketing_gains(self) -> tuple[float, float]:
        bonus_levels = max(0, self._state.marketing_team_level - 1)
        hype = OPTIONAL_ACTION_HYPE_BOOST + bonus_levels * MARKETING_TEAM_HYPE_PER_LEVEL
        marketing = OPTIONAL_ACTION_MARKETING_BOOST + bonus_levels * MARKETING_TEAM_BUDGET_PER_LEVEL
        return hype, marketing

    def _development_level(self) -> int:
        return self._state.department_levels.get(DepartmentTrack.DEVELOPMENT, 0)

    def greenlight_fee(self) -> int:
        cut = self._development_level() * DEVELOPMENT_GREENLIGHT_FEE_CUT
        return max(GREENLIGHT_FEE_FLOOR, GREENLIGHT_APPROVAL_FEE - cut)

    # -------------------------------------------------------------------------
    # Development
    # -------------------------------------------------------------------------

    def greenlight_review(self, project_id: str, approve: bool) -> ActionResult:
        """Approve the project (fee, ceiling lock) or send it back for a rewrite."""
        project = self._state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase != ProjectPhase.DEVELOPMENT:
            return ActionResult(success=False, message="Greenlight review is only available during development.")
        if (
            not project.director_id
            or not project.cast_ids
            or project.script_quality < MIN_GREENLIGHT_SCRIPT_QUALITY
        ):
            return ActionResult(success=False, message="Project is not ready for a greenlight review yet.")

        if not approve:
            project.greenlight_approved = False
            project.sent_back_for_rewrite_count += 1
            project.script_quality = clamp(project.script_quality + 0.2, 0, REWRITE_QUALITY_CAP)
            project.hype_score = clamp(project.hype_score - 1, 0, 100)
            return ActionResult(
                success=True,
                message=f"{project.title} sent back for rewrite. Script +0.2, hype -1.",
                project_id=project.id,
            )

        fee = self.greenlight_fee()
        if self._state.cash < fee:
            return ActionResult(
                success=False,
                message=f"Insufficient cash for greenlight approval (${round(fee / 1000)}K needed).",
            )
        project.greenlight_approved = True
        project.greenlight_week = self._state.current_week
        project.greenlight_fee_paid += fee
        project.greenlight_locked_ceiling = project.budget.ceiling
        self._spend(fee)
        logger.info(f"{project.title} greenlit in week {self._state.current_week}")
        return ActionResult(
            success=True,
            message=f"{project.title} greenlit. Approval fee paid and budget ceiling locked.",
            project_id=project.id,
        )

    def script_sprint(self, project_id: str) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase != ProjectPhase.DEVELOPMENT:
            return ActionResult(success=False, message="Script sprint is only available during development.")
        if project.script_quality >= SCRIPT_SPRINT_MAX_QUALITY:
            return ActionResult(
                success=False,
                message=f"{project.title} is already at max sprint quality ({SCRIPT_SPRINT_MAX_QUALITY}).",
            )
        if self._state.cash < SCRIPT_SPRINT_COST:
            return ActionResult(success=False, message="Insufficient cash for script sprint ($100K needed).")
        self._spend(SCRIPT_SPRINT_COST)
        project.script_quality = clamp(
            project.script_quality + SCRIPT_SPRINT_QUALITY_BOOST + self._development_level() * DEVELOPMENT_SPRINT_BONUS,
            0,
            SCRIPT_SPRINT_MAX_QUALITY,
        )
        return ActionResult(
            success=True,
            message=f"Script sprint on {project.title}. Script quality now {project.script_quality:.1f}.",
            project_id=project.id,
        )

    # -------------------------------------------------------------------------
    # Post-production
    # -------------------------------------------------------------------------

    def polish_pass(self, project_id: str) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase != ProjectPhase.POST_PRODUCTION:
            return ActionResult(success=False, message="Polish pass is only available during post-production.")
        if project.polish_pass_count >= POLISH_PASS_MAX_USES or project.editorial_score >= POLISH_PASS_MAX_EDITORIAL:
            return ActionResult(success=False, message=f"{project.title} has no polish passes remaining.")
        if self._state.cash < POLISH_PASS_COST:
            return ActionResult(success=False, message="Insufficient cash for polish pass ($120K needed).")
        self._spend(POLISH_PASS_COST)
        project.polish_pass_count = min(POLISH_PASS_MAX_USES, project.polish_pass_count + 1)
        project.editorial_score = clamp(
            project.editorial_score + POLISH_PASS_EDITORIAL_BOOST, 0, POLISH_PASS_MAX_EDITORIAL
        )
        return ActionResult(
            success=True,
            message=f"Polish pass on {project.title}. Editorial score now {project.editorial_score:.1f}.",
            project_id=project.id,
        )

    def test_screening(self, project_id: str) -> ActionResult:
        """Sample the critics range around the current projection."""
        state = self._state
        project = state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase not in (ProjectPhase.POST_PRODUCTION, ProjectPhase.DISTRIBUTION):
            return ActionResult(
                success=False,
                message="Test screenings are only available in post-production or distribution.",
            )
        if state.cash < TEST_SCREENING_COST:
            return ActionResult(success=False, message="Insufficient cash for test screening.")

        projection = self.manager.lifecycle.projection(project)
        confidence = clamp(0.58 + state.marketing_team_level * 0.08, 0.6, 0.9)
        offset = (self.manager.event_rng() - 0.5) * (1 - confidence) * 18
        center = clamp(projection.critical + offset, 20, 95)
        spread = 7 + (1 - confidence) * 6
        low = clamp(center - spread, 10, 98)
        high = clamp(center + spread, 12, 99)
        if center >= 74:
            sentiment = "strong"
        elif center >= 58:
            sentiment = "mixed"
        else:
            sentiment = "weak"

        self._spend(TEST_SCREENING_COST)
        project.test_screening_completed = True
        project.test_screening_week = state.current_week
        project.test_screening_critical_low = low
        project.test_screening_critical_high = high
        project.test_screening_sentiment = sentiment
        return ActionResult(
            success=True,
            message=(
                f"{project.title} test screening complete. "
                f"Critics look {low:.0f}-{high:.0f} with {sentiment} audience sentiment."
            ),
            project_id=project.id,
        )

    def reshoots(self, project_id: str) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase != ProjectPhase.POST_PRODUCTION:
            return ActionResult(success=False, message="Reshoots are only available during post-production.")
        if not project.test_screening_completed:
            return ActionResult(success=False, message="Run a test screening first to justify reshoots.")
        if self._state.cash < RESHOOT_COST:
            return ActionResult(success=False, message="Insufficient cash for reshoots.")
        self._spend(RESHOOT_COST)
        project.script_quality = clamp(project.script_quality + 0.25, 0, 10)
        project.editorial_score = clamp(project.editorial_score + 0.4, 0, 10)
        project.scheduled_weeks_remaining += RESHOOT_SCHEDULE_WEEKS
        project.reshoot_count += 1
        return ActionResult(
            success=True,
            message=f"{project.title} reshoots approved. +1 week schedule, quality and editorial improved.",
            project_id=project.id,
        )

    def submit_festival(self, project_id: str) -> ActionResult:
        state = self._state
        project = state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase not in (ProjectPhase.POST_PRODUCTION, ProjectPhase.DISTRIBUTION):
            return ActionResult(
                success=False,
                message="Festival submissions are only available in post-production or distribution.",
            )
        if (
            project.festival_status == FestivalStatus.SUBMITTED
            and project.festival_resolution_week
            and state.current_week < project.festival_resolution_week
        ):
            return ActionResult(success=False, message=f"{project.title} already has a pending festival submission.")
        if project.festival_status in (FestivalStatus.SELECTED, FestivalStatus.BUZZED):
            return ActionResult(success=False, message=f"{project.title} already has a completed festival run.")
        if state.cash < FESTIVAL_SUBMISSION_COST:
            return ActionResult(
                success=False,
                message=(
                    "Insufficient cash for festival submission "
                    f"(${round(FESTIVAL_SUBMISSION_COST / 1000)}K needed)."
                ),
            )

        target = pick_festival_target(project)
        self._spend(FESTIVAL_SUBMISSION_COST)
        project.festival_status = FestivalStatus.SUBMITTED
        project.festival_target = target
        project.festival_submission_week = state.current_week
        project.festival_resolution_week = state.current_week + FESTIVAL_RESOLUTION_WEEKS
        project.hype_score = clamp(project.hype_score + 1, 0, 100)
        return ActionResult(
            success=True,
            message=(
                f"{project.title} submitted to {target}. "
                f"Results expected around week {project.festival_resolution_week}."
            ),
            project_id=project.id,
        )

    # -------------------------------------------------------------------------
    # Distribution
    # -------------------------------------------------------------------------

    def tracking_leverage(self, project_id: str) -> ActionResult:
        """Borrow against opening-weekend tracking. Settled when the run closes."""
        state = self._state
        project = state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase != ProjectPhase.DISTRIBUTION:
            return ActionResult(success=False, message="Tracking leverage is only available in distribution.")
        if project.tracking_leverage_amount > 0:
            return ActionResult(success=False, message="Tracking leverage already used on this project.")

        projection = self.manager.lifecycle.projection(project)
        confidence = clamp(0.57 + state.marketing_team_level * 0.075, 0.6, 0.9)
        projected_opening = projection.opening_high * (0.86 + confidence * 0.24)
        advance = round(projected_opening * project.studio_revenue_share * TRACKING_ADVANCE_SHARE)
        if advance <= 0:
            return ActionResult(success=False, message="Tracking confidence is too low for leverage this week.")

        project.tracking_projected_opening = projected_opening
        project.tracking_confidence = confidence
        project.tracking_leverage_amount = advance
        project.tracking_settled = False
        self.manager.finance.adjust_cash(advance)
        return ActionResult(
            success=True,
            message=f"Leveraged {project.title} tracking for ${round(advance / 1000)}K in early cash.",
            project_id=project.id,
        )

    # -------------------------------------------------------------------------
    # Marketing
    # -------------------------------------------------------------------------

    def marketing_push(self, project_id: str) -> ActionResult:
        project = self._state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase in (ProjectPhase.DISTRIBUTION, ProjectPhase.RELEASED):
            return ActionResult(success=False, message="Marketing push not available after distribution begins.")
        if self._state.cash < OPTIONAL_ACTION_COST:
            return ActionResult(success=False, message="Insufficient cash for marketing push ($180K needed).")
        hype, marketing = self._marketing_gains()
        project.hype_score = clamp(project.hype_score + hype, 0, 100)
        project.marketing_budget += marketing
        self._spend(OPTIONAL_ACTION_COST)
        return ActionResult(
            success=True,
            message=f"Marketing push on {project.title}. Hype +{round(hype)}, marketing +${round(marketing / 1000)}K.",
            project_id=project.id,
        )

    def optional_action(self) -> ActionResult:
        """Run a campaign on the least-marketed unreleased project."""
        candidates = [p for p in self._state.active_projects if p.phase != ProjectPhase.RELEASED]
        if not candidates:
            return ActionResult(success=False, message="No active project available for optional action.")
        project = min(candidates, key=lambda p: (p.marketing_budget, -p.hype_score))
        if self._state.cash < OPTIONAL_ACTION_COST:
            return ActionResult(success=False, message="Insufficient cash for optional campaign action.")
        hype, marketing = self._marketing_gains()
        project.hype_score = clamp(project.hype_score + hype, 0, 100)
        project.marketing_budget += marketing
        self._spend(OPTIONAL_ACTION_COST)
        return ActionResult(
            success=True,
            message=(
                f"Optional campaign executed on {project.title}. "
                f"Hype +{round(hype)} and marketing +${round(marketing / 1000)}K."
            ),
            project_id=project.id,
        )

    # -------------------------------------------------------------------------
    # Abandonment
    # -------------------------------------------------------------------------

    def abandon(self, project_id: str) -> ActionResult:
        """Drop a project and purge it from every queue."""
        state = self._state
        project = state.get_project(project_id)
        if project is None:
            return NOT_FOUND
        if project.phase == ProjectPhase.RELEASED:
            return ActionResult(success=False, message="Released projects cannot be abandoned.")

        write_down = round(project.budget.actual_spend * ABANDON_WRITE_DOWN)
        self.manager.finance.adjust_cash(-write_down)
        self.manager.adjust_reputation(-4, "talent")
        self.manager.finance.evaluate_bankruptcy()
        self.manager.talent.release_talent(project, "abandoned")
        self.manager.franchise.remove_project(project)

        state.active_projects = [p for p in state.active_projects if p.id != project_id]
        state.distribution_offers = [o for o in state.distribution_offers if o.project_id != project_id]
        state.pending_crises = [c for c in state.pending_crises if c.project_id != project_id]
        state.decision_queue = [d for d in state.decision_queue if d.project_id != project_id]
        for negotiation in [n for n in state.player_negotiations if n.project_id == project_id]:
            talent = state.get_talent(negotiation.talent_id)
            if talent is not None:
                talent.availability = Availability.AVAILABLE
        state.player_negotiations = [n for n in state.player_negotiations if n.project_id != project_id]
        state.pending_release_reveals = [pid for pid in state.pending_release_reveals if pid != project_id]
        logger.info(f"{project.title} abandoned with a {write_down:,} write-down")
        return ActionResult(
            success=True,
            message=f"{project.title} abandoned. ${round(write_down / 1000)}K write-down charged. Talent rep -4.",
        )
