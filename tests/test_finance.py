"""Tests for the cash ledger, weekly burn and bankruptcy."""

import pytest

from backlot.state.event_bus import EventType
from backlot.state.schema import ProjectPhase
from backlot.systems.finance import BANKRUPTCY_EVENT


class TestLedger:
    """Test cash movements and the lifetime ledger."""

    def test_revenue_and_expense_tracked(self, manager):
        """Every movement lands in the lifetime ledger."""
        manager.finance.adjust_cash(1_000_000)
        manager.finance.adjust_cash(-250_000)
        state = manager.state
        assert state.cash == 50_750_000
        assert state.lifetime_revenue == 1_000_000
        assert state.lifetime_expenses == 250_000
        assert state.lifetime_profit == 750_000

    def test_cash_rounds_half_up(self, manager):
        """Balances are whole dollars."""
        manager.finance.adjust_cash(0.5)
        assert manager.state.cash == 50_000_001

    def test_zero_and_non_finite_ignored(self, manager):
        """Zero and NaN deltas do nothing."""
        manager.finance.adjust_cash(0)
        manager.finance.adjust_cash(float("nan"))
        assert manager.state.cash == 50_000_000
        assert manager.state.lifetime_expenses == 0


class TestWeeklyBurn:
    """Test the per-phase burn."""

    def test_estimate_matches_applied(self, manager):
        """The estimate is exactly what the week charges."""
        estimate = manager.estimate_weekly_burn()
        cash_before = manager.state.cash
        applied = manager.finance.apply_weekly_burn()
        assert applied == pytest.approx(estimate)
        assert manager.state.cash == pytest.approx(cash_before - estimate, abs=1)

    def test_burn_uses_phase_multiplier(self, manager):
        """Starting slate burns production and development rates."""
        # Night Ledger: 24M production at 1.5%; Blue Ember: 12M development at 0.5%
        assert manager.estimate_weekly_burn() == pytest.approx(24_000_000 * 0.015 + 12_000_000 * 0.005)

    def test_released_projects_do_not_burn(self, manager):
        """A released film costs nothing per week."""
        for project in manager.state.active_projects:
            project.phase = ProjectPhase.RELEASED
        assert manager.estimate_weekly_burn() == 0

    def test_burn_ticks_schedule(self, manager):
        """Each burned week takes a week off the schedule."""
        project = manager.state.active_projects[0]
        remaining = project.scheduled_weeks_remaining
        manager.finance.apply_weekly_burn()
        assert project.scheduled_weeks_remaining == remaining - 1


class TestBankruptcy:
    """Test the one-way bankruptcy declaration."""

    def test_positive_cash_is_solvent(self, manager):
        assert manager.finance.evaluate_bankruptcy() is False
        assert not manager.state.is_bankrupt

    def test_declared_at_zero(self, manager):
        """Cash at or below zero declares bankruptcy once."""
        events = []
        manager.state.cash = -120_000
        assert manager.finance.evaluate_bankruptcy(events) is True
        state = manager.state
        assert state.is_bankrupt
        assert state.cash == 0
        assert "week 1" in state.bankruptcy_reason
        assert BANKRUPTCY_EVENT in events

    def test_declaration_is_one_way(self, manager):
        """Bankruptcy is never cleared, even by new cash."""
        manager.state.cash = 0
        manager.finance.evaluate_bankruptcy()
        manager.finance.adjust_cash(10_000_000)
        assert manager.finance.evaluate_bankruptcy() is False
        assert manager.state.is_bankrupt

    def test_emits_event(self, manager):
        """Bankruptcy is published on the bus."""
        manager.state.cash = 0
        manager.finance.evaluate_bankruptcy()
        assert manager.bus.get_history(EventType.STUDIO_BANKRUPT)
