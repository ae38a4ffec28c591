"""Tests for the IP marketplace, adaptations and major-IP contracts."""

import pytest

from backlot.constants import INITIAL_BUDGET_BY_GENRE
from backlot.state.schema import Genre, Impact, IpKind, OwnedIp, ProjectPhase

from conftest import project_named


def listing(name: str, **overrides) -> OwnedIp:
    fields = dict(
        name=name,
        kind=IpKind.BOOK,
        genre=Genre.DRAMA,
        acquisition_cost=300_000,
        quality_bonus=0.6,
        hype_bonus=6,
        prestige_bonus=9,
        commercial_bonus=4,
        expires_week=10,
    )
    fields.update(overrides)
    return OwnedIp(**fields)


@pytest.fixture
def major(manager):
    """Titan Guard Legacy rights bought with a three-release contract."""
    manager.state.reputation.distributor = 60
    ip = manager.refresh_ip_marketplace(force_major=True)
    manager.acquire_ip_rights(ip.id)
    return manager, ip


class TestMarketplace:
    """Test listing and aging out rights options."""

    def test_opening_listing(self, manager):
        [ip] = manager.state.owned_ips
        assert ip.name == "Vanta County"
        assert ip.kind == IpKind.BOOK
        assert ip.genre == Genre.DRAMA
        assert ip.acquisition_cost == 450_000
        assert ip.expires_week == 10
        assert not ip.major

    def test_duplicate_draw_skipped(self, manager):
        assert manager.refresh_ip_marketplace() is None
        assert len(manager.state.owned_ips) == 1

    def test_forced_major(self, manager):
        ip = manager.refresh_ip_marketplace(force_major=True)
        assert ip.name == "Titan Guard Legacy"
        assert ip.major
        assert ip.acquisition_cost == 6_000_000
        assert ip.expires_week == 8
        assert manager.state.owned_ips[0] is ip

    def test_lapsed_options_dropped(self, manager):
        manager.state.current_week = 11
        ip = manager.refresh_ip_marketplace()
        assert [i.id for i in manager.state.owned_ips] == [ip.id]
        assert ip.expires_week == 21

    def test_list_capped_without_dropping_owned_rights(self, manager):
        owned = listing("Kept Rights", owned=True)
        manager.state.owned_ips = [listing(f"Listing {i}") for i in range(11)] + [owned]
        manager.refresh_ip_marketplace()
        assert len(manager.state.owned_ips) == 12
        assert manager.state.owned_ips[0].name == "Vanta County"
        assert owned in manager.state.owned_ips

    def test_refreshed_during_week(self, manager):
        manager.state.owned_ips = []
        manager.state.current_week = 5
        summary = manager.end_week()
        assert "IP market: Vanta County rights are now in play." in summary.events

    def test_refreshed_on_script_buy(self, manager):
        manager.state.owned_ips = []
        manager.state.current_week = 7
        manager.acquire_script(manager.state.script_market[0].id)
        assert [ip.name for ip in manager.state.owned_ips] == ["Vanta County"]


class TestRights:
    """Test buying rights options."""

    def test_acquire(self, manager):
        ip = manager.state.owned_ips[0]
        cash = manager.state.cash
        result = manager.acquire_ip_rights(ip.id)
        assert result.success
        assert result.message == "Vanta County rights secured."
        assert ip.owned
        assert manager.state.cash == cash - 450_000

    def test_not_found(self, manager):
        assert manager.acquire_ip_rights("ip_missing").message == "IP opportunity not found."

    def test_expired(self, manager):
        manager.state.current_week = 11
        result = manager.acquire_ip_rights(manager.state.owned_ips[0].id)
        assert result.message == "IP option has expired."

    def test_already_owned(self, manager):
        ip = manager.state.owned_ips[0]
        manager.acquire_ip_rights(ip.id)
        assert manager.acquire_ip_rights(ip.id).message == "Rights are already under your control."

    def test_needs_cash(self, manager):
        manager.state.cash = 100_000
        result = manager.acquire_ip_rights(manager.state.owned_ips[0].id)
        assert result.message == "Insufficient cash to acquire IP rights."

    def test_major_needs_distributor_standing(self, manager):
        ip = manager.refresh_ip_marketplace(force_major=True)
        result = manager.acquire_ip_rights(ip.id)
        assert not result.success
        assert result.message == "Major IP requires stronger distributor reputation (55+)."

    def test_major_contract_terms(self, major):
        manager, ip = major
        assert ip.owned
        assert ip.required_releases == 3
        assert ip.remaining_releases == 3
        assert ip.deadline_week == 208


class TestAdaptation:
    """Test opening projects from owned rights."""

    def test_needs_rights(self, manager):
        result = manager.develop_project_from_ip(manager.state.owned_ips[0].id)
        assert result.message == "Acquire rights first."

    def test_develop(self, manager):
        ip = manager.state.owned_ips[0]
        manager.acquire_ip_rights(ip.id)
        result = manager.develop_project_from_ip(ip.id)
        assert result.success
        assert result.message == "Vanta County: Adaptation entered development from Vanta County."
        project = manager.state.get_project(result.project_id)
        assert project.phase == ProjectPhase.DEVELOPMENT
        assert project.genre == Genre.DRAMA
        assert project.adapted_from_ip_id == ip.id
        assert project.budget.ceiling == round(INITIAL_BUDGET_BY_GENRE[Genre.DRAMA] * 1.05)
        assert project.budget.actual_spend == 180_000
        assert project.script_quality == pytest.approx(6.7)
        assert project.hype_score == pytest.approx(14)
        assert project.prestige == 49
        assert ip.used_project_id == project.id

    def test_only_once(self, manager):
        ip = manager.state.owned_ips[0]
        manager.acquire_ip_rights(ip.id)
        manager.develop_project_from_ip(ip.id)
        assert manager.develop_project_from_ip(ip.id).message == "This IP is already in development."

    def test_capacity(self, manager):
        ip = manager.state.owned_ips[0]
        manager.acquire_ip_rights(ip.id)
        manager.state.studio_capacity_upgrades = -1
        result = manager.develop_project_from_ip(ip.id)
        assert result.message == "Studio capacity reached (2/2). Upgrade capacity before adding projects."


class TestMajorContracts:
    """Test release contracts attached to major IP."""

    def test_blocks_unrelated_scripts(self, major):
        manager, _ = major
        result = manager.acquire_script(manager.state.script_market[0].id)
        assert not result.success
        assert result.message == (
            "Contract lock: launch the next Titan Guard Legacy installment before acquiring unrelated scripts."
        )

    def test_blocks_unrelated_adaptations(self, major):
        manager, _ = major
        book = next(ip for ip in manager.state.owned_ips if ip.name == "Vanta County")
        manager.acquire_ip_rights(book.id)
        result = manager.develop_project_from_ip(book.id)
        assert result.message == (
            "Contract lock: launch the next Titan Guard Legacy installment before opening unrelated adaptations."
        )

    def test_blocks_other_sequels(self, major):
        manager, _ = major
        base = project_named(manager, "Night Ledger")
        base.phase = ProjectPhase.RELEASED
        base.release_resolved = True
        result = manager.start_sequel(base.id)
        assert result.message == (
            "Contract lock: open the next Titan Guard Legacy installment before starting other sequel lines."
        )

    def test_installment_in_flight_lifts_lock(self, major):
        manager, ip = major
        result = manager.develop_project_from_ip(ip.id)
        assert result.success
        project = manager.state.get_project(result.project_id)
        assert project.budget.ceiling == round(INITIAL_BUDGET_BY_GENRE[Genre.ACTION] * 1.3)
        [commitment] = manager.major_ip_commitments()
        assert commitment.has_active_installment
        assert not commitment.is_blocking
        assert manager.ip.blocking_commitment() is None

    def test_release_progress(self, major):
        manager, ip = major
        project = manager.state.get_project(manager.develop_project_from_ip(ip.id).project_id)
        project.release_resolved = True
        events = []
        manager.ip.record_release(project, events)
        assert ip.remaining_releases == 2
        assert events == [
            "Titan Guard Legacy contract progress: 1/3 delivered. 2 release(s) remain by week 208."
        ]
        assert manager.ip.blocking_commitment().ip_id == ip.id

    def test_deadline_warning(self, major):
        manager, ip = major
        project = manager.state.get_project(manager.develop_project_from_ip(ip.id).project_id)
        manager.state.current_week = 190
        events = []
        manager.ip.record_release(project, events)
        assert events[-1] == "Titan Guard Legacy contract deadline is 18 week(s) away."

    def test_fulfilled(self, major):
        manager, ip = major
        project = manager.state.get_project(manager.develop_project_from_ip(ip.id).project_id)
        ip.remaining_releases = 1
        events = []
        manager.ip.record_release(project, events)
        assert events == ["Titan Guard Legacy contract fulfilled (3/3 releases delivered)."]
        assert manager.state.chronicle[0].headline == "Titan Guard Legacy contract fulfilled"
        assert manager.state.chronicle[0].impact == Impact.POSITIVE

    def test_sequel_carries_contract(self, major):
        manager, ip = major
        project = manager.state.get_project(manager.develop_project_from_ip(ip.id).project_id)
        project.phase = ProjectPhase.RELEASED
        project.release_resolved = True
        project.release_week = 1
        result = manager.start_sequel(project.id)
        assert result.success
        assert manager.state.get_project(result.project_id).adapted_from_ip_id == ip.id

    def test_breach(self, major):
        manager, ip = major
        rep = manager.state.reputation
        rep.talent = 40
        rep.audience = 40
        cash = manager.state.cash
        manager.state.current_week = 209
        events = []
        manager.ip.evaluate_breaches(events)
        assert ip.breached
        assert ip.remaining_releases == 0
        assert manager.state.cash == cash - 1_400_000
        assert (rep.distributor, rep.talent, rep.audience) == (52, 35, 37)
        assert events == [
            "Titan Guard Legacy major-IP contract breached (0/3 delivered). "
            "Penalty 1,400,000 and reputation damage applied."
        ]
        assert manager.state.chronicle[0].impact == Impact.NEGATIVE
        assert manager.ip.blocking_commitment() is None

    def test_breach_checked_at_week_end(self, major):
        manager, ip = major
        manager.state.current_week = 208
        summary = manager.end_week()
        assert ip.breached
        assert any("major-IP contract breached" in event for event in summary.events)
