"""Tests for the weekly pipeline, turns and auto-advance."""

from backlot.state.event_bus import EventType
from backlot.state.schema import ProjectPhase, StudioTier
from backlot.systems.turns import AutoAdvanceReason

from conftest import open_crisis, project_named


class TestEndWeek:
    """Test a single simulated week."""

    def test_week_advances(self, manager):
        summary = manager.end_week()
        assert manager.state.current_week == 2
        assert summary.week == 2
        assert summary.events
        assert summary.cash_delta < 0
        assert not summary.has_pending_crises

    def test_burn_reported(self, manager):
        burn = manager.estimate_weekly_burn()
        summary = manager.end_week()
        assert summary.events[0] == f"Production burn applied: -${round(burn / 1000)}K"

    def test_week_ended_event(self, manager):
        manager.end_week()
        ended = manager.bus.get_history(EventType.WEEK_ENDED)
        assert ended[-1].week == 2

    def test_first_session_completes(self, manager):
        for _ in range(5):
            manager.end_week()
        assert manager.state.first_session_complete

    def test_hype_decays(self, manager):
        project = project_named(manager, "Blue Ember")
        manager.end_week()
        assert project.hype_score < 18

    def test_tier_change_is_chronicled(self, manager):
        """Heat 30 and one release lifts an indie to the next tier."""
        rep = manager.state.reputation
        rep.critics = rep.talent = rep.distributor = rep.audience = 30
        project_named(manager, "Night Ledger").phase = ProjectPhase.RELEASED
        manager.end_week()
        assert manager.state.last_tier == StudioTier.ESTABLISHED_INDIE
        assert manager.state.chronicle[0].headline == "Promoted to Established Indie"


class TestEndTurn:
    """Test multi-week turns."""

    def test_two_week_turn(self, manager):
        manager.set_turn_length_weeks(2)
        summary = manager.end_turn()
        assert manager.state.current_week == 3
        assert summary.week == 3

    def test_one_week_turn(self, manager):
        manager.end_turn()
        assert manager.state.current_week == 2

    def test_turn_pauses_on_crisis(self, make_manager):
        """A crisis in the first week stops the second from running."""
        manager = make_manager(crisis=0.0)
        manager.set_turn_length_weeks(2)
        summary = manager.end_turn()
        assert manager.state.current_week == 2
        assert summary.events[-1] == "Turn paused: resolve crisis before advancing further."
        assert summary.has_pending_crises


class TestAdvanceUntilDecision:
    """Test auto-advance stop reasons."""

    def test_blocked_by_crisis(self, manager):
        open_crisis(manager)
        result = manager.advance_until_decision(10)
        assert not result.success
        assert result.reason == AutoAdvanceReason.BLOCKED
        assert result.advanced_weeks == 0
        assert result.message == "Resolve active crises before auto-advancing."
        assert manager.state.current_week == 1

    def test_bankrupt_refuses(self, manager):
        manager.state.cash = 0
        manager.finance.evaluate_bankruptcy()
        result = manager.advance_until_decision(10)
        assert not result.success
        assert result.reason == AutoAdvanceReason.BANKRUPT

    def test_limit_reached(self, make_manager):
        manager = make_manager(event_deck=[])
        result = manager.advance_until_decision(3)
        assert result.success
        assert result.reason == AutoAdvanceReason.LIMIT
        assert result.advanced_weeks == 3
        assert manager.state.current_week == 4

    def test_limit_clamped(self, make_manager):
        manager = make_manager(event_deck=[])
        result = manager.advance_until_decision(0)
        assert result.advanced_weeks == 1

    def test_stops_on_new_decision(self, manager):
        """The bundled deck has an early development event for Blue Ember."""
        result = manager.advance_until_decision(10)
        assert result.reason == AutoAdvanceReason.DECISION
        assert result.advanced_weeks == 1
        assert len(manager.state.decision_queue) == 2

    def test_stops_on_crisis(self, make_manager):
        manager = make_manager(crisis=0.0, event_deck=[])
        result = manager.advance_until_decision(10)
        assert result.reason == AutoAdvanceReason.CRISIS
        assert result.advanced_weeks == 1
