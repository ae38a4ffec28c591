"""Tests for talent negotiation, quick closes and relationship memory."""

import pytest

from backlot.constants import MAX_NEGOTIATION_ROUNDS
from backlot.state.schema import (
    Availability,
    NegotiationAction,
    PlayerNegotiation,
    ProjectPhase,
    TalentInteractionKind,
    TalentRole,
)

from conftest import project_named


def first_available(manager, role=TalentRole.DIRECTOR):
    return next(
        t for t in manager.state.talent_pool
        if t.role == role and t.availability == Availability.AVAILABLE
    )


def mid_chance_talent(manager):
    """The director whose base close chance sits closest to a coin flip."""
    directors = [t for t in manager.state.talent_pool if t.role == TalentRole.DIRECTOR]
    return min(directors, key=lambda t: abs(manager.talent.deal_chance(t, 0.7) - 0.5))


class TestStartNegotiation:
    """Test opening a negotiation."""

    def test_opens_and_locks_talent(self, manager):
        project = project_named(manager, "Blue Ember")
        talent = first_available(manager)
        result = manager.start_talent_negotiation(project.id, talent.id)
        assert result.success
        assert talent.availability == Availability.IN_NEGOTIATION
        assert len(manager.state.player_negotiations) == 1
        assert "Close chance" in result.message

    def test_one_negotiation_per_talent(self, manager):
        """A talent already at the table cannot be approached again."""
        project = project_named(manager, "Blue Ember")
        talent = first_available(manager)
        manager.start_talent_negotiation(project.id, talent.id)
        again = manager.start_talent_negotiation(project.id, talent.id)
        assert not again.success
        assert len(manager.state.player_negotiations) == 1

    def test_development_only(self, manager):
        project = project_named(manager, "Night Ledger")
        result = manager.start_talent_negotiation(project.id, first_available(manager).id)
        assert result.message == "Talent negotiations can only be opened for development projects."

    def test_unavailable_talent(self, manager):
        project = project_named(manager, "Blue Ember")
        talent = first_available(manager)
        talent.availability = Availability.UNAVAILABLE
        talent.unavailable_until_week = 4
        result = manager.start_talent_negotiation(project.id, talent.id)
        assert result.message == f"{talent.name} is unavailable (returns week 4)."


class TestAdjustNegotiation:
    """Test sweetening and holding firm."""

    @pytest.fixture
    def open_deal(self, manager):
        project = project_named(manager, "Blue Ember")
        talent = mid_chance_talent(manager)
        assert manager.start_talent_negotiation(project.id, talent.id).success
        return manager, project, talent

    def test_sweeten_salary(self, open_deal):
        manager, project, talent = open_deal
        result = manager.adjust_talent_negotiation(project.id, talent.id, NegotiationAction.SWEETEN_SALARY)
        assert result.success
        negotiation = manager.talent.find_negotiation(talent.id, project.id)
        assert negotiation.offer_salary_multiplier == pytest.approx(1.06)
        assert negotiation.rounds == 1

    def test_hold_firm_counts(self, open_deal):
        manager, project, talent = open_deal
        manager.adjust_talent_negotiation(project.id, talent.id, NegotiationAction.HOLD_FIRM)
        negotiation = manager.talent.find_negotiation(talent.id, project.id)
        assert negotiation.hold_line_count == 1
        history = talent.relationship_memory.interaction_history
        assert history[-1].kind == TalentInteractionKind.NEGOTIATION_HARDLINE

    def test_rounds_are_capped(self, open_deal):
        manager, project, talent = open_deal
        for _ in range(MAX_NEGOTIATION_ROUNDS):
            assert manager.adjust_talent_negotiation(
                project.id, talent.id, NegotiationAction.SWEETEN_PERKS
            ).success
        over = manager.adjust_talent_negotiation(project.id, talent.id, NegotiationAction.SWEETEN_PERKS)
        assert not over.success
        assert "out of rounds" in over.message


class TestCloseChance:
    """Test how terms move the close chance, all else equal."""

    def draft(self, talent, **terms):
        fields = dict(
            talent_id=talent.id,
            project_id="project-draft",
            opened_week=1,
            offer_salary_multiplier=1.0,
            offer_backend_points=talent.salary.backend_points,
            offer_perks_budget=talent.salary.perks_cost,
        )
        fields.update(terms)
        return PlayerNegotiation(**fields)

    def test_richer_salary_never_lowers_chance(self, manager):
        talent = mid_chance_talent(manager)
        base = manager.talent.evaluate(self.draft(talent), talent).chance
        richer = manager.talent.evaluate(self.draft(talent, offer_salary_multiplier=1.2), talent).chance
        assert richer >= base

    def test_holding_firm_lowers_chance(self, manager):
        talent = mid_chance_talent(manager)
        chances = [
            manager.talent.evaluate(self.draft(talent, hold_line_count=n), talent).chance
            for n in range(3)
        ]
        assert chances[0] > chances[1] > chances[2]

    def test_chance_bounds(self, manager):
        talent = mid_chance_talent(manager)
        chance = manager.talent.evaluate(self.draft(talent, hold_line_count=40), talent).chance
        assert chance == pytest.approx(0.05)


class TestWeeklyResolution:
    """Test negotiations resolving at the end of a week."""

    def open(self, manager):
        project = project_named(manager, "Blue Ember")
        talent = first_available(manager)
        manager.start_talent_negotiation(project.id, talent.id)
        return project, talent

    def test_waits_a_week(self, make_manager):
        manager = make_manager(negotiation=0.0)
        project, talent = self.open(manager)
        manager.talent.process_player_negotiations([])
        assert talent.availability == Availability.IN_NEGOTIATION

    def test_accepted_attaches(self, make_manager):
        manager = make_manager(negotiation=0.0)
        project, talent = self.open(manager)
        manager.state.current_week += 1
        events = []
        manager.talent.process_player_negotiations(events)
        assert project.director_id == talent.id
        assert talent.availability == Availability.ATTACHED
        assert manager.state.player_negotiations == []
        assert events

    def test_declined_frees_talent(self, make_manager):
        manager = make_manager(negotiation=0.99)
        project, talent = self.open(manager)
        manager.state.current_week += 1
        manager.talent.process_player_negotiations([])
        assert project.director_id is None
        assert talent.availability == Availability.AVAILABLE
        assert manager.state.player_negotiations == []

    def test_accepted_but_retainer_short(self, make_manager):
        """A yes on the roll still stalls when cash cannot cover the retainer."""
        manager = make_manager(negotiation=0.0)
        project, talent = self.open(manager)
        manager.state.current_week += 1
        manager.state.cash = 0
        events = []
        manager.talent.process_player_negotiations(events)
        assert project.director_id is None
        assert talent.availability == Availability.UNAVAILABLE
        assert talent.unavailable_until_week == manager.state.current_week + 1
        assert any("retainer cash came up short" in e for e in events)
        assert manager.state.player_negotiations == []

    def test_project_left_development(self, make_manager):
        manager = make_manager(negotiation=0.0)
        project, talent = self.open(manager)
        manager.state.current_week += 1
        project.phase = ProjectPhase.PRE_PRODUCTION
        events = []
        manager.talent.process_player_negotiations(events)
        assert talent.availability == Availability.AVAILABLE
        assert any("Negotiation window closed" in e for e in events)


class TestQuickClose:
    """Test the one-shot quick close."""

    def test_success_charges_fee_and_retainer(self, make_manager):
        manager = make_manager(negotiation=0.0)
        project = project_named(manager, "Blue Ember")
        talent = first_available(manager)
        cash = manager.state.cash
        result = manager.negotiate_and_attach_talent(project.id, talent.id)
        assert result.success
        assert project.director_id == talent.id
        assert manager.state.cash < cash

    def test_failure_burns_fee_and_cools_off(self, make_manager):
        manager = make_manager(negotiation=0.99)
        project = project_named(manager, "Blue Ember")
        talent = first_available(manager)
        cash = manager.state.cash
        result = manager.negotiate_and_attach_talent(project.id, talent.id)
        assert not result.success
        assert "declined quick-close terms" in result.message
        assert 25_000 <= cash - manager.state.cash <= 240_000
        assert talent.availability == Availability.UNAVAILABLE

    def test_needs_cash(self, manager):
        manager.state.cash = 1_000
        project = project_named(manager, "Blue Ember")
        result = manager.negotiate_and_attach_talent(project.id, first_available(manager).id)
        assert result.message == "Insufficient funds for quick-close attempt and deal memo retainer."


class TestAvailability:
    """Test cooldown expiry and release of attached talent."""

    def test_cooldown_expires(self, manager):
        talent = first_available(manager)
        manager.talent.set_negotiation_cooldown(talent, 2)
        manager.state.current_week += 2
        manager.talent.update_availability()
        assert talent.availability == Availability.AVAILABLE
        assert talent.unavailable_until_week is None

    def test_abandon_sours_relationship(self, make_manager):
        manager = make_manager(negotiation=0.0)
        project = project_named(manager, "Blue Ember")
        talent = first_available(manager)
        manager.negotiate_and_attach_talent(project.id, talent.id)
        trust = talent.relationship_memory.trust
        manager.abandon_project(project.id)
        assert talent.availability == Availability.AVAILABLE
        assert talent.relationship_memory.trust < trust
        assert manager.talent.grudge_metrics(talent).score > 0


class TestChanceQueries:
    """Test read-only chance lookups for the talent screen."""

    def test_unknown_talent(self, manager):
        assert manager.talent.negotiation_chance("talent-missing") is None
        assert manager.talent.quick_close_chance("talent-missing") is None

    def test_chance_without_negotiation(self, manager):
        talent = mid_chance_talent(manager)
        assert manager.talent.negotiation_chance(talent.id) == manager.talent.deal_chance(talent, 0.7)

    def test_chance_tracks_open_negotiation(self, manager):
        talent = first_available(manager)
        project = project_named(manager, "Blue Ember")
        manager.start_talent_negotiation(project.id, talent.id)
        negotiation = manager.talent.find_negotiation(talent.id)
        expected = manager.talent.evaluate(negotiation, talent).chance
        assert manager.talent.negotiation_chance(talent.id, project.id) == expected

    def test_quick_close_chance_bounded(self, manager):
        talent = first_available(manager)
        assert 0.05 <= manager.talent.quick_close_chance(talent.id) <= 0.97
