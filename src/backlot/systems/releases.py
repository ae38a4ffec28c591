"""
Release runs, festivals and awards.

Once a film is released it earns a decaying weekly gross until its run
ends. Closing a run settles the books: reputation swing, tracking
clawback, merchandise tail, franchise bookkeeping, a release report,
milestones and a chronicle entry, after which rivals get to respond.

Festival submissions resolve here a few weeks after submission, and the
awards season runs once a year over the films released in the window.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Protocol

from ..constants import (
    AWARDS_ELIGIBILITY_WEEKS,
    AWARDS_HISTORY_MAX,
    AWARDS_SEASON_WEEKS,
    AWARDS_SHOW_NAME,
    AWARDS_YEARS_MAX,
    CONTROVERSY_PENALTY_SCALE,
    FESTIVAL_MAX_BUZZ,
    MERCHANDISE_GENRES,
    MERCHANDISE_MIN_AUDIENCE,
    MERCHANDISE_WEEKS,
    MILESTONE_LABELS,
    MILESTONES_MAX,
    RELEASE_REPORTS_MAX,
    SPECIALIZATION_PROFILES,
    TRACKING_ADVANCE_SHARE,
    clamp,
    release_outcome_from_roi,
)
from ..formulas import (
    awards_score,
    heat_delta_from_release,
    next_weekly_gross,
    nomination_probability,
    reputation_deltas_from_release,
    win_probability,
)
from ..state.schema import (
    ArcStatus,
    AwardsProjectResult,
    AwardsSeasonRecord,
    ChronicleType,
    FestivalStatus,
    Impact,
    MilestoneId,
    MilestoneRecord,
    MovieProject,
    ProjectPhase,
    ReleaseReport,
    RivalInteractionKind,
    RivalPersonality,
    RivalStudio,
    TalentRole,
)

if TYPE_CHECKING:
    from ..state.schema import StudioState
    from .events import ArcOutcomeModifiers
    from .finance import FinanceSystem
    from .franchise import FranchiseSystem
    from .ip import IpSystem
    from .lifecycle import LifecycleSystem
    from .market import MarketSystem
    from .rivals import RivalSystem

logger = logging.getLogger(__name__)

FESTIVAL_FALLBACK = "the festival circuit"


def _signed(value: float) -> str:
    rounded = round(value)
    return f"+{rounded}" if rounded >= 0 else str(rounded)


class ReleaseHost(Protocol):
    """What the release system needs from the studio."""

    state: StudioState
    event_rng: Callable[[], float]
    rival_rng: Callable[[], float]

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def franchise(self) -> FranchiseSystem: ...

    @property
    def ip(self) -> IpSystem: ...

    @property
    def lifecycle(self) -> LifecycleSystem: ...

    @property
    def market(self) -> MarketSystem: ...

    @property
    def rivals(self) -> RivalSystem: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...

    def arc_outcome_modifiers(self) -> ArcOutcomeModifiers: ...

    def add_chronicle_entry(
        self, type: ChronicleType, headline: str, detail: str | None = None, impact: Impact = Impact.NEUTRAL
    ) -> None: ...


class ReleaseSystem:
    """
    Box-office runs and everything that settles when they close.

    Usage:
        manager.releases.tick_released_films(events)
        manager.releases.process_awards(events)
    """

    def __init__(self, manager: ReleaseHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    def _prestige_rival(self) -> RivalStudio | None:
        return next(
            (r for r in self._state.rivals if r.personality == RivalPersonality.PRESTIGE_HUNTER),
            None,
        )

    # -------------------------------------------------------------------------
    # Theatrical runs
    # -------------------------------------------------------------------------

    def tick_released_films(self, events: list[str]) -> None:
        modifiers = self.manager.arc_outcome_modifiers()
        for project in list(self._state.active_projects):
            if project.phase != ProjectPhase.RELEASED:
                continue
            if project.release_resolved:
                self.tick_merchandise(project, events)
                continue
            if not project.final_box_office or not project.opening_weekend_gross:
                continue

            if project.release_weeks_remaining > 0:
                previous = project.weekly_gross_history[-1] if project.weekly_gross_history else project.opening_weekend_gross
                weekly = next_weekly_gross(previous, project.release_weeks_remaining)
                project.weekly_gross_history.append(weekly)
                project.final_box_office += weekly
                self.manager.finance.adjust_cash(weekly * project.studio_revenue_share)
                project.release_weeks_remaining -= 1

            if project.release_weeks_remaining <= 0:
                self.close_run(project, modifiers.release_heat_momentum, events)

    def close_run(self, project: MovieProject, heat_momentum: float, events: list[str]) -> None:
        state = self._state
        total_cost = project.budget.ceiling + project.marketing_budget
        project.projected_roi = project.final_box_office * project.studio_revenue_share / max(1, total_cost)

        critical = project.critical_score if project.critical_score is not None else 50
        penalty = project.controversy * CONTROVERSY_PENALTY_SCALE
        heat_delta = heat_delta_from_release(
            current_heat=self.manager.studio_heat,
            critical_score=critical,
            roi=project.projected_roi,
            controversy_penalty=penalty,
        )
        deltas = reputation_deltas_from_release(
            critical_score=critical,
            roi=project.projected_roi,
            controversy_penalty=penalty,
        )
        critics_delta = deltas.critics + heat_momentum
        audience_delta = deltas.audience + heat_momentum
        self.manager.adjust_reputation(critics_delta, "critics")
        self.manager.adjust_reputation(audience_delta, "audience")
        project.release_resolved = True

        self.settle_tracking(project, events)
        self.start_merchandise(project, events)
        self.manager.franchise.mark_release(project)
        self.manager.ip.record_release(project, events)
        events.append(
            f"{project.title} completed theatrical run. "
            f"Critics {_signed(critics_delta)}, Audience {_signed(audience_delta)}."
        )

        report = self.build_report(project, heat_delta)
        state.release_reports.insert(0, report)
        del state.release_reports[RELEASE_REPORTS_MAX:]
        state.pending_final_release_reveals.append(project.id)
        self.check_milestones(report, events)

        roi = project.projected_roi
        score = f"{project.critical_score:.0f}" if project.critical_score is not None else "?"
        if roi >= 2:
            impact = Impact.POSITIVE
        elif roi < 1:
            impact = Impact.NEGATIVE
        else:
            impact = Impact.NEUTRAL
        self.manager.add_chronicle_entry(
            ChronicleType.FILM_RELEASE,
            f"{project.title} closed at ${project.final_box_office / 1_000_000:.1f}M domestic",
            detail=f"ROI {roi:.1f}x · Score {score} · Heat {_signed(heat_delta)}",
            impact=impact,
        )
        logger.info(f"{project.title} closed its run at {project.final_box_office:,.0f} (ROI {roi:.2f})")
        self.manager.rivals.release_responses(project, events)

    # -------------------------------------------------------------------------
    # Reports and milestones
    # -------------------------------------------------------------------------

    def breakdown(self, project: MovieProject) -> dict[str, float]:
        """Signed contribution of each driver to the release outcome."""
        state = self._state
        director = state.get_talent(project.director_id)
        lead = next(
            (
                t for t in (state.get_talent(tid) for tid in project.cast_ids)
                if t is not None and t.role == TalentRole.LEAD_ACTOR
            ),
            None,
        )
        cycle = self.manager.market.genre_demand(project.genre)
        pressure = self.manager.lifecycle.calendar_pressure(
            project.release_week or state.current_week, project.genre
        )
        marketing_ratio = project.marketing_budget / max(1, project.budget.ceiling)
        values = {
            "script": clamp((project.script_quality - 5.5) * 7, -18, 18),
            "direction": clamp(((director.craft_score if director else 6) - 6) * 5, -14, 16),
            "star_power": clamp(((lead.star_power if lead else 5.5) - 5.5) * 6, -14, 18),
            "marketing": clamp((marketing_ratio - 0.1) * 80 + project.hype_score * 0.09, -12, 20),
            "timing": clamp((cycle - 1) * 55 + pressure * 8 - 8, -14, 16),
            "genre_cycle": clamp((cycle - 1) * 100, -16, 16),
        }
        return {key: round(value) for key, value in values.items()}

    def build_report(self, project: MovieProject, heat_delta: float = 0.0) -> ReleaseReport:
        total_budget = round(project.budget.ceiling + project.marketing_budget)
        total_gross = round(project.final_box_office or 0)
        studio_net = round(total_gross * project.studio_revenue_share)
        roi = studio_net / max(1, total_budget)
        previous_best = max((r.opening_weekend for r in self._state.release_reports), default=0)
        return ReleaseReport(
            project_id=project.id,
            title=project.title,
            week_resolved=self._state.current_week,
            total_budget=total_budget,
            total_gross=total_gross,
            studio_net=studio_net,
            profit=studio_net - total_budget,
            roi=roi,
            opening_weekend=round(project.opening_weekend_gross or 0),
            critics=round(project.critical_score or 0),
            audience=round(project.audience_score or 0),
            outcome=release_outcome_from_roi(roi),
            was_record_opening=(project.opening_weekend_gross or 0) > previous_best,
            heat_delta=heat_delta,
            breakdown=self.breakdown(project),
        )

    def latest_report(self, project_id: str) -> ReleaseReport | None:
        return next((r for r in self._state.release_reports if r.project_id == project_id), None)

    def _unlock(self, milestone: MilestoneId, value: float, events: list[str]) -> None:
        state = self._state
        if any(m.id == milestone for m in state.milestones):
            return
        title, description = MILESTONE_LABELS[milestone]
        state.milestones.insert(
            0,
            MilestoneRecord(
                id=milestone,
                title=title,
                description=description,
                unlocked_week=state.current_week,
                value=value,
            ),
        )
        del state.milestones[MILESTONES_MAX:]
        events.append(f"Milestone unlocked: {title}.")

    def check_milestones(self, report: ReleaseReport, events: list[str]) -> None:
        reports = self._state.release_reports
        lifetime_gross = sum(r.total_gross for r in reports)
        if report.roi >= 1.5:
            self._unlock(MilestoneId.FIRST_HIT, report.roi, events)
        if report.roi >= 3:
            self._unlock(MilestoneId.FIRST_BLOCKBUSTER, report.roi, events)
        if report.total_gross >= 100_000_000:
            self._unlock(MilestoneId.BOX_OFFICE_100M, report.total_gross, events)
        if lifetime_gross >= 1_000_000_000:
            self._unlock(MilestoneId.LIFETIME_REVENUE_1B, lifetime_gross, events)
        if report.total_gross >= max(r.total_gross for r in reports):
            self._unlock(MilestoneId.HIGHEST_GROSSING_FILM, report.total_gross, events)
        if report.total_gross <= min(r.total_gross for r in reports):
            self._unlock(MilestoneId.LOWEST_GROSSING_FILM, report.total_gross, events)

    # -------------------------------------------------------------------------
    # Tails and settlements
    # -------------------------------------------------------------------------

    def start_merchandise(self, project: MovieProject, events: list[str]) -> None:
        if project.genre not in MERCHANDISE_GENRES:
            return
        audience = project.audience_score if project.audience_score is not None else 50
        if audience < MERCHANDISE_MIN_AUDIENCE:
            return
        weekly = round((project.final_box_office or 0) * 0.022 * (project.commercial_appeal / 100) / MERCHANDISE_WEEKS)
        if weekly <= 0:
            return
        project.merchandise_weekly_revenue = weekly
        project.merchandise_weeks_remaining = MERCHANDISE_WEEKS
        events.append(
            f"{project.title} opened a {MERCHANDISE_WEEKS}-week merchandise tail ({round(weekly / 1000)}K/week)."
        )

    def tick_merchandise(self, project: MovieProject, events: list[str]) -> None:
        if project.merchandise_weeks_remaining <= 0:
            return
        weekly = round(project.merchandise_weekly_revenue)
        if weekly <= 0:
            project.merchandise_weeks_remaining = 0
            return
        self.manager.finance.adjust_cash(weekly)
        project.merchandise_weeks_remaining = max(0, project.merchandise_weeks_remaining - 1)
        if project.merchandise_weeks_remaining == 0:
            events.append(f"{project.title} merchandise tail concluded.")

    def settle_tracking(self, project: MovieProject, events: list[str]) -> None:
        """Claw back any tracking advance the opening failed to cover."""
        leverage = round(project.tracking_leverage_amount)
        if leverage <= 0 or project.tracking_settled:
            return
        realized = round((project.opening_weekend_gross or 0) * project.studio_revenue_share * TRACKING_ADVANCE_SHARE)
        clawback = max(0, leverage - realized)
        if clawback > 0:
            self.manager.finance.adjust_cash(-clawback)
            events.append(f"{project.title} tracking leverage missed. Clawback {round(clawback / 1000)}K.")
        else:
            events.append(f"{project.title} tracking leverage cleared with no clawback.")
        project.tracking_settled = True

    # -------------------------------------------------------------------------
    # Release reveals
    # -------------------------------------------------------------------------

    def next_release_reveal(self) -> MovieProject | None:
        state = self._state
        queue = state.pending_final_release_reveals or state.pending_release_reveals
        if not queue:
            return None
        return state.get_project(queue[0])

    def is_final_reveal(self, project_id: str) -> bool:
        return project_id in self._state.pending_final_release_reveals

    def dismiss_reveal(self, project_id: str) -> None:
        state = self._state
        state.pending_release_reveals = [pid for pid in state.pending_release_reveals if pid != project_id]
        state.pending_final_release_reveals = [
            pid for pid in state.pending_final_release_reveals if pid != project_id
        ]

    # -------------------------------------------------------------------------
    # Festivals
    # -------------------------------------------------------------------------

    def resolve_festivals(self, events: list[str]) -> None:
        state = self._state
        roll = self.manager.event_rng
        for project in state.active_projects:
            if project.festival_status != FestivalStatus.SUBMITTED:
                continue
            if not project.festival_resolution_week or state.current_week < project.festival_resolution_week:
                continue

            anchor = project.critical_score
            if anchor is None:
                anchor = self.manager.lifecycle.projection(project).critical
            cycle_boost = (self.manager.market.genre_demand(project.genre) - 1) * 12
            score = clamp(
                anchor * 0.48
                + project.script_quality * 2.8
                + project.prestige * 0.2
                + project.originality * 0.18
                + project.festival_buzz * 0.12
                + cycle_boost
                - project.controversy * 0.15,
                0,
                100,
            )
            target = project.festival_target or FESTIVAL_FALLBACK

            if roll() <= clamp(0.16 + score / 132, 0.08, 0.9):
                buzzed = roll() <= clamp(0.15 + score / 170, 0.05, 0.78)
                gain = 12 + round(roll() * 6) if buzzed else 6 + round(roll() * 4)
                project.festival_status = FestivalStatus.BUZZED if buzzed else FestivalStatus.SELECTED
                project.festival_buzz = clamp(project.festival_buzz + gain, 0, FESTIVAL_MAX_BUZZ)
                project.hype_score = clamp(project.hype_score + (6 if buzzed else 3), 0, 100)
                self.manager.adjust_reputation(4 if buzzed else 2, "critics")
                self.manager.adjust_reputation(2 if buzzed else 1, "audience")
                state.story_flags.set("festival_selected")
                if buzzed:
                    state.story_flags.set("awards_campaign")
                rival = self._prestige_rival()
                if rival is not None:
                    self.manager.rivals.record_interaction(
                        rival, RivalInteractionKind.PRESTIGE_PRESSURE, 3 if buzzed else 2, 2,
                        f"{project.title} drew {'major' if buzzed else 'solid'} festival traction at {target}.",
                        project.id,
                    )
                self.manager.add_chronicle_entry(
                    ChronicleType.FESTIVAL_OUTCOME,
                    f"{project.title} {'broke out' if buzzed else 'screened'} at {target}",
                    impact=Impact.POSITIVE if buzzed else Impact.NEUTRAL,
                )
                events.append(
                    f"{project.title} {'broke out' if buzzed else 'landed'} at {target} "
                    f"({project.festival_status.value}). Critics {'+4' if buzzed else '+2'}."
                )
            else:
                project.festival_status = FestivalStatus.SNUBBED
                project.festival_buzz = max(0, project.festival_buzz - 2)
                project.hype_score = clamp(project.hype_score - 2, 0, 100)
                self.manager.adjust_reputation(-1, "critics")
                events.append(f"{project.title} was passed over at {target}. Critics -1.")

            project.festival_resolution_week = None

    # -------------------------------------------------------------------------
    # Awards
    # -------------------------------------------------------------------------

    def _festival_boost(self, project: MovieProject, baseline: float) -> float:
        if project.festival_status == FestivalStatus.BUZZED:
            return 8 + project.festival_buzz * 0.08
        if project.festival_status == FestivalStatus.SELECTED:
            return 4 + project.festival_buzz * 0.05
        if project.festival_status == FestivalStatus.SNUBBED:
            return -2
        return baseline

    def _arc_boost(self) -> float:
        arc = self._state.story_arcs.get("awards-circuit")
        if arc is None:
            return 0.0
        if arc.status == ArcStatus.RESOLVED:
            return 6.0
        if arc.status == ArcStatus.FAILED:
            return -5.0
        return arc.stage * 1.5

    def _score_entry(self, project: MovieProject, campaign: float, baseline: float) -> AwardsProjectResult:
        roll = self.manager.rival_rng
        score = awards_score(
            critical_score=project.critical_score if project.critical_score is not None else 50,
            script_quality=project.script_quality,
            concept_strength=project.concept_strength,
            prestige=project.prestige,
            controversy=project.controversy,
            campaign_boost=campaign,
            festival_boost=self._festival_boost(project, baseline),
            critics_reputation=self._state.reputation.critics,
        )
        chance = nomination_probability(score)
        rolls = int(clamp(1 + score // 28, 1, 4))
        nominations = sum(1 for _ in range(rolls) if roll() <= chance)
        if nominations == 0 and score >= 82 and roll() < 0.35:
            nominations = 1

        wins = 0
        if nominations:
            win_chance = win_probability(score, nominations, project.controversy)
            if roll() <= win_chance:
                wins += 1
            if nominations >= 3 and roll() <= win_chance * 0.35:
                wins += 1

        project.awards_nominations += nominations
        project.awards_wins += wins
        return AwardsProjectResult(
            project_id=project.id, title=project.title, nominations=nominations, wins=wins, score=score,
        )

    def process_awards(self, events: list[str]) -> None:
        """Run the annual awards show on week 52, 104, ..."""
        state = self._state
        week = state.current_week
        if week < AWARDS_SEASON_WEEKS or (week - AWARDS_SEASON_WEEKS) % AWARDS_SEASON_WEEKS != 0:
            return
        year = (week - 1) // AWARDS_SEASON_WEEKS + 1
        if year in state.awards_seasons_processed:
            return

        window_start = week - AWARDS_ELIGIBILITY_WEEKS
        eligible = [
            p for p in state.active_projects
            if p.phase == ProjectPhase.RELEASED
            and p.release_resolved
            and window_start <= (p.release_week or 0) <= week
            and p.critical_score is not None
        ]
        if not eligible:
            state.awards_seasons_processed.append(year)
            events.append(f"Awards season year {year}: no eligible player releases this cycle.")
            return

        campaign = (
            (8 if state.story_flags.is_set("awards_campaign") else 0)
            + self._arc_boost()
            + SPECIALIZATION_PROFILES[state.studio_specialization][3]
        )
        baseline = 4 if state.story_flags.is_set("festival_selected") else 0
        results = [self._score_entry(p, campaign, baseline) for p in eligible]
        results.sort(key=lambda r: r.score, reverse=True)

        nominations = sum(r.nominations for r in results)
        wins = sum(r.wins for r in results)
        leader = next((r for r in results if r.wins > 0), results[0])

        critics = nominations * 1.1 + wins * 3.8
        talent = nominations * 0.7 + wins * 1.6
        distributor = nominations * 0.4 + wins * 1.2
        audience = wins * 1.0
        if nominations == 0:
            critics -= 1
            talent -= 1
        self.manager.adjust_reputation(round(critics), "critics")
        self.manager.adjust_reputation(round(talent), "talent")
        self.manager.adjust_reputation(round(distributor), "distributor")
        self.manager.adjust_reputation(round(audience), "audience")

        rival = self._prestige_rival()
        if rival is not None:
            self.manager.rivals.record_interaction(
                rival, RivalInteractionKind.PRESTIGE_PRESSURE,
                2 if wins else 1, 3 if wins else 1,
                f"Converted awards momentum with {leader.title}." if wins
                else "Stayed in awards contention without major wins.",
                leader.project_id,
            )

        if wins:
            headline = (
                f"Awards season year {year}: {leader.title} led with "
                f"{leader.wins} win(s) and {leader.nominations} nomination(s)."
            )
        else:
            headline = (
                f"Awards season year {year}: {leader.title} led nominations "
                f"({leader.nominations}) but no major wins landed."
            )
        state.awards_history.insert(
            0,
            AwardsSeasonRecord(year=year, week=week, show_name=AWARDS_SHOW_NAME, headline=headline, results=results),
        )
        del state.awards_history[AWARDS_HISTORY_MAX:]
        state.awards_seasons_processed.append(year)
        del state.awards_seasons_processed[:-AWARDS_YEARS_MAX]
        if nominations or wins:
            self.manager.add_chronicle_entry(
                ChronicleType.AWARDS_OUTCOME,
                headline,
                impact=Impact.POSITIVE if wins else Impact.NEUTRAL,
            )
        events.append(f"{headline} Reputation: Critics {_signed(critics)}, Talent {_signed(talent)}.")
        logger.info(f"Awards year {year}: {nominations} nominations, {wins} wins")
