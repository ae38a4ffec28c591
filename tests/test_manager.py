"""Tests for studio settings, upgrades and derived values."""

import pytest

from backlot.state.event_bus import EventType
from backlot.state.schema import ChronicleType, ProjectPhase, StudioTier

from conftest import project_named


class TestSettings:
    """Test turn length and studio naming."""

    @pytest.mark.parametrize("weeks", [1, 2])
    def test_valid_turn_length(self, manager, weeks):
        assert manager.set_turn_length_weeks(weeks).success
        assert manager.state.turn_length_weeks == weeks

    @pytest.mark.parametrize("weeks", [0, 3, 7])
    def test_invalid_turn_length(self, manager, weeks):
        result = manager.set_turn_length_weeks(weeks)
        assert not result.success
        assert result.message == "Turn length must be 1 or 2 weeks."
        assert manager.state.turn_length_weeks == 1

    def test_rename(self, manager):
        result = manager.set_studio_name("  Harbor Lights  ")
        assert result.message == "Studio renamed to Harbor Lights."
        assert manager.state.studio_name == "Harbor Lights"

    def test_name_too_short(self, manager):
        result = manager.set_studio_name(" X ")
        assert result.message == "Studio name must be at least 2 characters."
        assert manager.state.studio_name == "Backlot Pictures"

    def test_name_truncated(self, manager):
        manager.set_studio_name("A" * 40)
        assert manager.state.studio_name == "A" * 32


class TestUpgrades:
    """Test executive, marketing and capacity upgrades."""

    def test_executive_network_steps(self, manager):
        assert manager.poach_executive_team().success
        assert manager.poach_executive_team().success
        assert manager.state.executive_network_level == 2
        assert manager.state.cash == 50_000_000 - 900_000 - 1_800_000
        assert manager.state.reputation.talent == 14

    def test_executive_network_max(self, manager):
        manager.state.executive_network_level = 3
        assert manager.poach_executive_team().message == "Executive network is already maxed."

    def test_executive_network_funds(self, manager):
        manager.state.cash = 100_000
        result = manager.poach_executive_team()
        assert result.message == "Insufficient cash for executive poach (900K)."

    def test_marketing_team(self, manager):
        result = manager.upgrade_marketing_team()
        assert result.message == "Marketing team upgraded to level 2."
        assert manager.state.cash == 50_000_000 - 600_000

    def test_marketing_team_max(self, manager):
        manager.state.marketing_team_level = 5
        assert manager.upgrade_marketing_team().message == "Marketing team is already maxed."

    def test_capacity(self, manager):
        limit = manager.project_capacity_limit
        result = manager.upgrade_studio_capacity()
        assert result.success
        assert manager.project_capacity_limit == limit + 1
        assert manager.state.cash == 50_000_000 - 2_100_000
        manager.upgrade_studio_capacity()
        assert manager.state.cash == 50_000_000 - 2_100_000 - 3_000_000


class TestDerivedValues:
    """Test heat, tier, capacity and legacy score."""

    def test_starting_values(self, manager):
        assert manager.studio_heat == 12
        assert manager.tier == StudioTier.INDIE_STUDIO
        assert manager.project_capacity_limit == 3
        assert manager.project_capacity_used == 2

    def test_released_projects_free_capacity(self, manager):
        project_named(manager, "Night Ledger").phase = ProjectPhase.RELEASED
        assert manager.project_capacity_used == 1

    def test_legacy_score_bounded(self, manager):
        assert 0 <= manager.legacy_score <= 100
        manager.state.cash = 10_000_000_000
        rich = manager.legacy_score
        manager.state.cash = 0
        assert manager.legacy_score < rich


class TestSharedMutations:
    """Test reputation and chronicle helpers."""

    def test_reputation_clamped(self, manager):
        manager.adjust_reputation(200, "critics")
        manager.adjust_reputation(-50)
        rep = manager.state.reputation
        assert rep.critics == 50
        assert rep.talent == 0

    def test_chronicle_newest_first(self, manager):
        manager.add_chronicle_entry(ChronicleType.FILM_RELEASE, "First")
        manager.add_chronicle_entry(ChronicleType.FILM_RELEASE, "Second")
        assert [c.headline for c in manager.state.chronicle[:2]] == ["Second", "First"]

    def test_save_emits_event(self, manager):
        manager.save("slot")
        saved = manager.bus.get_history(EventType.STUDIO_SAVED)
        assert saved[-1].data["slot"] == "slot"
