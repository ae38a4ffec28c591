"""Tests for phase gates, distribution offers and projections."""

import pytest

from backlot.constants import PHASE_ORDER
from backlot.state.event_bus import EventType
from backlot.state.schema import Availability, ProjectPhase, ReleaseWindow, RivalFilm, TalentRole

from conftest import project_named


def attach_crew(manager, project):
    """Quick-close a director and a lead onto a development project."""
    for role in (TalentRole.DIRECTOR, TalentRole.LEAD_ACTOR):
        talent = next(
            t for t in manager.state.talent_pool
            if t.role == role and t.availability == Availability.AVAILABLE
        )
        result = manager.negotiate_and_attach_talent(project.id, talent.id)
        assert result.success, result.message


def into_distribution(manager, project):
    """Walk a project to distribution, clearing schedule weeks by hand."""
    if project.phase == ProjectPhase.DEVELOPMENT:
        attach_crew(manager, project)
    while project.phase != ProjectPhase.DISTRIBUTION:
        project.scheduled_weeks_remaining = 0
        if project.phase == ProjectPhase.POST_PRODUCTION and project.marketing_budget <= 0:
            manager.actions.marketing_push(project.id)
        result = manager.advance_project_phase(project.id)
        assert result.success, result.message


class TestDevelopmentGate:
    """Test what it takes to leave development."""

    def test_needs_director(self, manager):
        project = project_named(manager, "Blue Ember")
        result = manager.advance_project_phase(project.id)
        assert not result.success
        assert result.message == "Attach a director before moving to pre-production."
        assert project.phase == ProjectPhase.DEVELOPMENT

    def test_needs_cast(self, manager):
        project = project_named(manager, "Blue Ember")
        project.director_id = manager.state.talent_pool[0].id
        result = manager.advance_project_phase(project.id)
        assert result.message == "Attach at least one cast lead before moving forward."

    def test_needs_script(self, manager):
        project = project_named(manager, "Blue Ember")
        project.director_id = manager.state.talent_pool[0].id
        project.cast_ids = [manager.state.talent_pool[-1].id]
        project.script_quality = 5.9
        result = manager.advance_project_phase(project.id)
        assert result.message == "Script quality is too low to greenlight."

    def test_unknown_project(self, manager):
        result = manager.advance_project_phase("project-missing")
        assert not result.success
        assert result.message == "Project not found."


class TestFullPipeline:
    """Test a project walking every phase in order."""

    def test_phases_advance_one_step_at_a_time(self, make_manager):
        """Every transition moves exactly one phase forward."""
        manager = make_manager(negotiation=0.0)
        project = project_named(manager, "Blue Ember")
        attach_crew(manager, project)

        assert manager.advance_project_phase(project.id).success
        assert project.phase == ProjectPhase.PRE_PRODUCTION
        assert project.scheduled_weeks_remaining == 8

        blocked = manager.advance_project_phase(project.id)
        assert not blocked.success
        assert project.phase == ProjectPhase.PRE_PRODUCTION

        into_distribution(manager, project)
        assert project.release_week == manager.state.current_week + 4
        assert len(manager.lifecycle.offers_for(project.id)) == 3

        changes = manager.bus.get_history(EventType.PROJECT_PHASE_CHANGED)
        for change in changes:
            before = PHASE_ORDER.index(ProjectPhase(change.data["from_phase"]))
            after = PHASE_ORDER.index(ProjectPhase(change.data["to_phase"]))
            assert after == before + 1

    def test_post_needs_marketing(self, make_manager):
        manager = make_manager(negotiation=0.0)
        project = project_named(manager, "Blue Ember")
        attach_crew(manager, project)
        for _ in range(3):
            project.scheduled_weeks_remaining = 0
            assert manager.advance_project_phase(project.id).success
        assert project.phase == ProjectPhase.POST_PRODUCTION

        project.scheduled_weeks_remaining = 0
        result = manager.advance_project_phase(project.id)
        assert result.message == "Allocate marketing spend before entering distribution."

    def test_release_requires_deal_and_date(self, make_manager):
        """Release waits for setup weeks, a deal and the release week."""
        manager = make_manager(negotiation=0.0)
        project = project_named(manager, "Blue Ember")
        into_distribution(manager, project)

        assert manager.advance_project_phase(project.id).message == "Distribution setup is still underway."
        project.scheduled_weeks_remaining = 0
        assert manager.advance_project_phase(project.id).message == "Select a distribution deal first."

        offer = manager.lifecycle.offers_for(project.id)[0]
        assert manager.accept_distribution_offer(project.id, offer.id).success
        early = manager.advance_project_phase(project.id)
        assert not early.success
        assert f"scheduled for week {project.release_week}" in early.message

        manager.state.current_week = project.release_week
        released = manager.advance_project_phase(project.id)
        assert released.success
        assert project.phase == ProjectPhase.RELEASED
        assert project.opening_weekend_gross > 0
        assert project.release_weeks_remaining >= 4
        assert project.id in manager.state.pending_release_reveals
        director = manager.state.get_talent(project.director_id)
        assert director.availability == Availability.AVAILABLE

    def test_released_is_terminal(self, manager):
        project = project_named(manager, "Night Ledger")
        project.phase = ProjectPhase.RELEASED
        result = manager.advance_project_phase(project.id)
        assert not result.success
        assert result.message == "Project is already released."


class TestDistributionOffers:
    """Test accepting, countering and walking away from offers."""

    @pytest.fixture
    def distribution(self, make_manager):
        manager = make_manager(negotiation=0.0)
        project = project_named(manager, "Night Ledger")
        project.phase = ProjectPhase.POST_PRODUCTION
        project.scheduled_weeks_remaining = 0
        assert manager.advance_project_phase(project.id).success
        return manager, project

    def test_three_theatrical_offers(self, distribution):
        manager, project = distribution
        offers = manager.lifecycle.offers_for(project.id)
        assert [o.partner for o in offers] == [
            "Tallgrass Pictures", "Lantern Row Distribution", "Northstar Media",
        ]
        assert {o.release_window for o in offers} <= {
            ReleaseWindow.WIDE_THEATRICAL, ReleaseWindow.LIMITED_THEATRICAL,
        }

    def test_accept_pays_guarantee(self, distribution):
        manager, project = distribution
        offer = manager.lifecycle.offers_for(project.id)[1]
        cash = manager.state.cash
        marketing = project.marketing_budget
        result = manager.accept_distribution_offer(project.id, offer.id)
        assert result.success
        assert manager.state.cash == pytest.approx(cash + offer.minimum_guarantee, abs=1)
        assert project.marketing_budget == pytest.approx(marketing + offer.p_and_a_commitment)
        assert project.release_window == ReleaseWindow.LIMITED_THEATRICAL
        assert project.distribution_partner == "Lantern Row Distribution"
        assert manager.lifecycle.offers_for(project.id) == []

    def test_counter_only_once(self, distribution):
        """The second counter on the same offer always fails."""
        manager, project = distribution
        offer = manager.lifecycle.offers_for(project.id)[0]
        guarantee = offer.minimum_guarantee
        first = manager.counter_distribution_offer(project.id, offer.id)
        assert first.success
        assert offer.minimum_guarantee == pytest.approx(guarantee * 1.1)

        second = manager.counter_distribution_offer(project.id, offer.id)
        assert not second.success
        assert second.message == f"{offer.partner} will not entertain another counter."

    def test_declined_counter_still_counts(self, distribution):
        manager, project = distribution
        manager.negotiation_rng = lambda: 0.99
        offer = manager.lifecycle.offers_for(project.id)[0]
        result = manager.counter_distribution_offer(project.id, offer.id)
        assert not result.success
        assert offer.counter_attempts == 1

    def test_walk_away_costs_reputation(self, distribution):
        manager, project = distribution
        before = manager.state.reputation.distributor
        result = manager.walk_away_distribution(project.id)
        assert result.success
        assert manager.lifecycle.offers_for(project.id) == []
        assert manager.state.reputation.distributor == before - 2

        events = []
        manager.lifecycle.tick_distribution_windows(events)
        assert len(manager.lifecycle.offers_for(project.id)) == 3

    def test_accept_outside_distribution(self, manager):
        project = project_named(manager, "Blue Ember")
        result = manager.accept_distribution_offer(project.id, "deal-missing")
        assert result.message == "Project is not in distribution phase."


class TestReleaseScheduling:
    """Test release week moves and projections."""

    def test_release_week_clamped(self, make_manager):
        manager = make_manager()
        project = project_named(manager, "Night Ledger")
        project.phase = ProjectPhase.DISTRIBUTION
        manager.set_release_week(project.id, 999)
        assert project.release_week == manager.state.current_week + 52
        manager.set_release_week(project.id, -5)
        assert project.release_week == manager.state.current_week + 1

    def test_release_week_needs_distribution(self, manager):
        project = project_named(manager, "Blue Ember")
        assert not manager.set_release_week(project.id, 10).success

    def test_projection_in_bounds(self, manager):
        projection = manager.get_projection(project_named(manager, "Night Ledger").id)
        assert 0 <= projection.critical <= 100
        assert projection.opening_low <= projection.opening_high
        assert 0.4 <= projection.roi <= 4.5

    def test_rival_films_crowd_the_calendar(self, manager):
        """A rival opening the same week lowers calendar pressure."""
        project = project_named(manager, "Night Ledger")
        week = 20
        for rival in manager.state.rivals:
            rival.upcoming_releases = []
        clear = manager.lifecycle.calendar_pressure(week, project.genre)
        manager.state.rivals[0].upcoming_releases.append(
            RivalFilm(title="Crowd", genre=project.genre, release_week=week,
                      estimated_budget=150_000_000, hype_score=70)
        )
        crowded = manager.lifecycle.calendar_pressure(week, project.genre)
        assert clear == 1.0
        assert crowded == pytest.approx(1.0 - 0.12 - 0.08)

    def test_projection_at_other_week(self, manager):
        project = project_named(manager, "Night Ledger")
        projection = manager.lifecycle.projection_at_week(project.id, 30)
        assert projection.opening_low <= projection.opening_high
        assert manager.lifecycle.projection_at_week("project-missing", 30) is None
