"""Tests for studio specialization, departments and the exclusive partner."""

import pytest

from backlot.state.schema import DepartmentTrack, StudioSpecialization
from backlot.state.manager import StudioManager
from backlot.systems.events import compute_arc_outcome_modifiers
from backlot.systems.studio import studio_burn_factor

from conftest import project_named


class TestSpecialization:
    """Test committing to and pivoting the studio identity."""

    def test_first_commitment_is_free(self, manager):
        cash = manager.state.cash
        result = manager.set_studio_specialization(StudioSpecialization.BLOCKBUSTER)
        assert result.success
        assert result.message == "Studio identity set to blockbuster."
        assert manager.state.cash == cash
        assert manager.state.specialization_committed_week == manager.state.current_week

    def test_already_active(self, manager):
        result = manager.set_studio_specialization(StudioSpecialization.BALANCED)
        assert not result.success
        assert result.message == "Balanced specialization is already active."

    def test_pivot_costs_cash_and_confidence(self, manager):
        manager.set_studio_specialization(StudioSpecialization.INDIE)
        cash = manager.state.cash
        talent = manager.state.reputation.talent
        distributor = manager.state.reputation.distributor
        result = manager.set_studio_specialization(StudioSpecialization.PRESTIGE)
        assert result.success
        assert result.message.startswith("Studio identity pivoted to prestige.")
        assert manager.state.cash == cash - 650_000
        assert manager.state.reputation.talent == talent - 1
        assert manager.state.reputation.distributor == distributor - 1

    def test_pivot_needs_cash(self, manager):
        manager.set_studio_specialization(StudioSpecialization.INDIE)
        manager.state.cash = 100_000
        result = manager.set_studio_specialization(StudioSpecialization.PRESTIGE)
        assert result.message == "Insufficient cash to pivot specialization (650K)."
        assert manager.state.studio_specialization == StudioSpecialization.INDIE

    def test_prestige_shifts_projection(self, manager):
        project = project_named(manager, "Night Ledger")
        before = manager.get_projection(project.id)
        manager.set_studio_specialization(StudioSpecialization.PRESTIGE)
        after = manager.get_projection(project.id)
        assert after.critical == pytest.approx(before.critical + 4)
        assert after.opening_high == pytest.approx(before.opening_high * 0.93)

    def test_blockbuster_arc_modifiers(self):
        modifiers = compute_arc_outcome_modifiers({}, 0, StudioSpecialization.BLOCKBUSTER)
        assert modifiers.distribution_leverage == pytest.approx(0.025)
        assert modifiers.hype_decay_step == pytest.approx(1.8)

    def test_prestige_release_momentum(self):
        modifiers = compute_arc_outcome_modifiers({}, specialization=StudioSpecialization.PRESTIGE)
        assert modifiers.release_heat_momentum == pytest.approx(0.6)


class TestDepartments:
    """Test department investment and its effects."""

    def test_invest(self, manager):
        cash = manager.state.cash
        result = manager.invest_department(DepartmentTrack.DEVELOPMENT)
        assert result.success
        assert result.message == "Development department upgraded to level 1."
        assert manager.state.department_levels[DepartmentTrack.DEVELOPMENT] == 1
        assert manager.state.cash == cash - 420_000
        assert manager.studio.department_upgrade_cost(DepartmentTrack.DEVELOPMENT) == 840_000

    def test_maxed(self, manager):
        manager.state.department_levels[DepartmentTrack.PRODUCTION] = 4
        result = manager.invest_department(DepartmentTrack.PRODUCTION)
        assert not result.success
        assert result.message == "Production department is already maxed."

    def test_needs_cash(self, manager):
        manager.state.cash = 50_000
        result = manager.invest_department(DepartmentTrack.DISTRIBUTION)
        assert result.message == "Insufficient cash to invest in Distribution department (420K)."

    def test_development_trims_greenlight_fee(self, manager):
        assert manager.actions.greenlight_fee() == 250_000
        manager.state.department_levels[DepartmentTrack.DEVELOPMENT] = 4
        assert manager.actions.greenlight_fee() == 190_000

    def test_production_trims_burn(self, manager):
        burn = manager.estimate_weekly_burn()
        manager.state.department_levels[DepartmentTrack.PRODUCTION] = 4
        assert manager.estimate_weekly_burn() == pytest.approx(burn * 0.88)

    def test_burn_factor_stacks_with_identity(self, manager):
        manager.state.studio_specialization = StudioSpecialization.INDIE
        manager.state.department_levels[DepartmentTrack.PRODUCTION] = 2
        assert studio_burn_factor(manager.state) == pytest.approx(0.92 * 0.94)

    def test_distribution_adds_leverage(self):
        modifiers = compute_arc_outcome_modifiers({}, distribution_department_level=2)
        assert modifiers.distribution_leverage == pytest.approx(0.03)

    def test_levels_survive_snapshot(self, manager):
        manager.invest_department(DepartmentTrack.DISTRIBUTION)
        manager.set_studio_specialization(StudioSpecialization.INDIE)
        restored = StudioManager.state_from_snapshot(manager.to_snapshot())
        assert restored.department_levels[DepartmentTrack.DISTRIBUTION] == 1
        assert restored.studio_specialization == StudioSpecialization.INDIE


class TestExclusivePartner:
    """Test the half-year exclusive distribution deal."""

    def test_unknown_partner(self, manager):
        result = manager.sign_exclusive_distribution_partner("Nobody Films")
        assert result.message == "Unknown distribution partner."

    def test_sign(self, manager):
        cash = manager.state.cash
        week = manager.state.current_week
        result = manager.sign_exclusive_distribution_partner("Northstar Media")
        assert result.success
        assert result.message == (
            f"Signed exclusive distribution alignment with Northstar Media through week {week + 26}."
        )
        assert manager.state.cash == cash - 480_000
        assert manager.active_exclusive_partner() == "Northstar Media"

    def test_already_active(self, manager):
        manager.sign_exclusive_distribution_partner("Northstar Media")
        result = manager.sign_exclusive_distribution_partner("Northstar Media")
        assert not result.success
        assert result.message == "Northstar Media partnership is already active."

    def test_switching_dents_distributors(self, manager):
        manager.sign_exclusive_distribution_partner("Northstar Media")
        distributor = manager.state.reputation.distributor
        result = manager.sign_exclusive_distribution_partner("Tallgrass Pictures")
        assert result.success
        assert manager.state.reputation.distributor == distributor - 1

    def test_lapses(self, manager):
        manager.sign_exclusive_distribution_partner("Northstar Media")
        manager.state.current_week += 27
        assert manager.active_exclusive_partner() is None
        assert manager.state.exclusive_distribution_partner is None

    def test_partner_offer_improves(self, manager):
        project = project_named(manager, "Night Ledger")

        def northstar():
            manager.lifecycle.generate_offers(project.id)
            return next(o for o in manager.lifecycle.offers_for(project.id) if o.partner == "Northstar Media")

        before = northstar()
        manager.sign_exclusive_distribution_partner("Northstar Media")
        after = northstar()
        assert after.minimum_guarantee == pytest.approx(before.minimum_guarantee * 1.1)
        assert after.revenue_share_to_studio == pytest.approx(before.revenue_share_to_studio + 0.02)
