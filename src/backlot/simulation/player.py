"""Scripted autopilot that plays a studio through the public operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..state.schema import (
    Availability,
    EffectBundle,
    FestivalStatus,
    Genre,
    NegotiationAction,
    ProjectPhase,
    TalentRole,
)
from ..systems.lifecycle import PLAYER_WINDOWS

if TYPE_CHECKING:
    from ..state.manager import StudioManager
    from ..state.schema import MovieProject, Talent


# Spending appetite per persona. Cash thresholds are in dollars.
POLICIES = {
    "balanced": {
        "name": "Balanced",
        "pipeline_cash": 12_000_000,
        "acquire_reserve": 10_000_000,
        "min_pitch_score": 66,
        "min_pitch_roi": 1.18,
        "sprint_cash": 9_000_000,
        "festival_cash": 12_000_000,
        "optional_cash": 35_000_000,
    },
    "cautious": {
        "name": "Cautious",
        "pipeline_cash": 20_000_000,
        "acquire_reserve": 16_000_000,
        "min_pitch_score": 72,
        "min_pitch_roi": 1.3,
        "sprint_cash": 14_000_000,
        "festival_cash": 20_000_000,
        "optional_cash": 45_000_000,
    },
    "aggressive": {
        "name": "Aggressive",
        "pipeline_cash": 8_000_000,
        "acquire_reserve": 5_000_000,
        "min_pitch_score": 58,
        "min_pitch_roi": 1.05,
        "sprint_cash": 5_000_000,
        "festival_cash": 8_000_000,
        "optional_cash": 25_000_000,
    },
}

NEGOTIATION_MOVES = {
    "salary": NegotiationAction.SWEETEN_SALARY,
    "backend": NegotiationAction.SWEETEN_BACKEND,
    "perks": NegotiationAction.SWEETEN_PERKS,
}


def score_decision_option(option: EffectBundle, cash: float) -> float:
    """Weigh an option's effects, leaning on cash as the studio runs dry."""
    cash_weight = 2.8 if cash < 4_000_000 else 1.6 if cash < 10_000_000 else 0.55
    projected = cash + option.cash_delta
    survival_penalty = 12 if projected < 1_000_000 else 5.5 if projected < 3_000_000 else 0
    return (
        (option.cash_delta / 160_000) * cash_weight
        + option.hype_delta * 0.6
        + option.script_quality_delta * 0.95
        + option.studio_heat_delta * 0.5
        + option.critics_delta * 0.55
        + option.talent_rep_delta * 0.35
        + option.distributor_rep_delta * 0.3
        + option.audience_delta * 0.35
        + (option.marketing_delta / 220_000) * 0.45
        - option.overrun_risk_delta * 3.4
        - survival_penalty
    )


def score_crisis_option(option: EffectBundle, cash: float) -> float:
    if cash < 2_000_000:
        return option.cash_delta
    return option.hype_delta * 0.6 + option.cash_delta / 150_000 - option.schedule_delta * 0.2


class AutopilotPlayer:
    """Plays one studio turn at a time with a fixed policy."""

    def __init__(self, manager: StudioManager, persona: str = "balanced"):
        """
        Args:
            manager: Studio to drive
            persona: One of: balanced, cautious, aggressive
        """
        self.manager = manager
        self.persona_name = persona
        self.policy = POLICIES.get(persona, POLICIES["balanced"])
        self.actions_taken = 0

    # -------------------------------------------------------------------------
    # Queues
    # -------------------------------------------------------------------------

    def resolve_crises(self) -> None:
        m = self.manager
        for crisis in list(m.state.pending_crises):
            chosen = max(crisis.options, key=lambda o: score_crisis_option(o, m.state.cash), default=None)
            if chosen is not None:
                m.resolve_crisis(crisis.id, chosen.id)
                self.actions_taken += 1

    def resolve_decisions(self) -> None:
        m = self.manager
        for decision in list(m.state.decision_queue):
            chosen = max(decision.options, key=lambda o: score_decision_option(o, m.state.cash), default=None)
            if chosen is not None:
                m.resolve_decision(decision.id, chosen.id)
                self.actions_taken += 1

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    def pick_talent(self, role: TalentRole, genre: Genre) -> Talent | None:
        available = [
            t for t in self.manager.state.talent_pool
            if t.role == role and t.availability == Availability.AVAILABLE
        ]
        if not available:
            return None

        def value(t: Talent) -> float:
            fit = t.genre_fit.get(genre, 0.5)
            return fit * 1.8 + t.craft_score * 0.42 + t.star_power * 0.22 - t.salary.base / 1_100_000

        return max(available, key=value)

    def work_negotiations(self) -> None:
        m = self.manager
        for negotiation in list(m.state.player_negotiations):
            snapshot = m.talent.snapshot(negotiation.project_id, negotiation.talent_id)
            if snapshot is None or snapshot.rounds >= 2:
                continue
            action = NEGOTIATION_MOVES.get(snapshot.pressure_point, NegotiationAction.SWEETEN_PERKS)
            m.adjust_talent_negotiation(negotiation.project_id, negotiation.talent_id, action)

    def _develop(self, project: MovieProject) -> None:
        m = self.manager
        cash = m.state.cash
        projection = m.get_projection(project.id)
        if projection and projection.roi < 0.88 and project.script_quality < 6.8 and cash < 6_000_000:
            m.abandon_project(project.id)
            return

        if project.script_quality < 7.1 and cash > self.policy["sprint_cash"]:
            m.actions.script_sprint(project.id)

        if not project.director_id:
            director = self.pick_talent(TalentRole.DIRECTOR, project.genre)
            if director:
                m.negotiate_and_attach_talent(project.id, director.id)
        if not project.cast_ids:
            lead = self.pick_talent(TalentRole.LEAD_ACTOR, project.genre)
            if lead:
                m.negotiate_and_attach_talent(project.id, lead.id)

        if (
            not project.greenlight_approved
            and project.director_id
            and project.cast_ids
            and project.script_quality >= 6
            and m.state.cash > 1_000_000
        ):
            m.actions.greenlight_review(project.id, True)
        m.advance_project_phase(project.id)

    def _finish(self, project: MovieProject) -> None:
        m = self.manager
        if project.editorial_score < 7.5 and m.state.cash > 10_000_000:
            m.actions.polish_pass(project.id)
        if project.marketing_budget <= 0 and m.state.cash > 1_500_000:
            m.actions.marketing_push(project.id)
        if (
            project.festival_status in (FestivalStatus.NONE, FestivalStatus.SNUBBED)
            and m.state.cash > self.policy["festival_cash"]
            and project.prestige >= 64
        ):
            m.actions.submit_festival(project.id)
        m.advance_project_phase(project.id)

    def _distribute(self, project: MovieProject) -> None:
        m = self.manager
        if not project.release_week:
            m.set_release_week(project.id, m.state.current_week + 1)
        offers = [o for o in m.lifecycle.offers_for(project.id) if o.release_window in PLAYER_WINDOWS]
        if project.release_window is None and offers:
            best = max(
                offers,
                key=lambda o: (
                    o.minimum_guarantee * 0.0000014
                    + o.revenue_share_to_studio * 95
                    + o.p_and_a_commitment * 0.0000002
                ),
            )
            m.accept_distribution_offer(project.id, best.id)
        if project.release_week and m.state.current_week >= project.release_week:
            m.advance_project_phase(project.id)

    def operate_projects(self) -> None:
        self.work_negotiations()
        for project in list(self.manager.state.active_projects):
            if project.phase == ProjectPhase.RELEASED:
                continue
            if project.phase == ProjectPhase.DEVELOPMENT:
                self._develop(project)
            elif project.phase == ProjectPhase.POST_PRODUCTION:
                self._finish(project)
            elif project.phase == ProjectPhase.DISTRIBUTION:
                self._distribute(project)
            else:
                self.manager.advance_project_phase(project.id)

    def invest_in_pipeline(self) -> None:
        """Buy the best-scoring script when the slate and cash allow it."""
        m = self.manager
        state = m.state
        unreleased = [p for p in state.active_projects if p.phase != ProjectPhase.RELEASED]
        staffing_short = not any(
            t.role == TalentRole.DIRECTOR and t.availability == Availability.AVAILABLE for t in state.talent_pool
        ) or not any(
            t.role == TalentRole.LEAD_ACTOR and t.availability == Availability.AVAILABLE for t in state.talent_pool
        )
        max_pipeline = 2 if state.cash >= self.policy["pipeline_cash"] else 1
        if len(unreleased) >= max_pipeline:
            return
        if staffing_short and any(p.phase == ProjectPhase.DEVELOPMENT for p in unreleased):
            return

        ranked = []
        for pitch in state.script_market:
            evaluation = m.evaluate_script_pitch(pitch.id)
            if evaluation is not None:
                ranked.append((evaluation.score, pitch, evaluation))
        if not ranked:
            return
        _, pitch, evaluation = max(ranked, key=lambda row: row[0])

        if evaluation.score < self.policy["min_pitch_score"]:
            return
        if evaluation.expected_roi < self.policy["min_pitch_roi"]:
            return
        if pitch.asking_price / max(1, state.cash) > 0.05:
            return
        if state.cash < pitch.asking_price + self.policy["acquire_reserve"]:
            return
        m.acquire_script(pitch.id)

    # -------------------------------------------------------------------------
    # Turn
    # -------------------------------------------------------------------------

    def play_turn(self, turn_index: int = 0) -> None:
        """Clear the queues and work the slate; does not end the week."""
        self.resolve_crises()
        self.resolve_decisions()
        self.operate_projects()
        self.invest_in_pipeline()
        if self.manager.state.cash > self.policy["optional_cash"] and turn_index % 16 == 0:
            self.manager.actions.optional_action()
