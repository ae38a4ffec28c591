"""Tests for the script market and genre cycles."""

import pytest

from backlot.constants import GENRE_DEMAND_RANGE, GENRES, SCRIPT_MARKET_TARGET
from backlot.state.schema import ProjectPhase
from backlot.state.seeds import SEED_PITCHES


def pitch_named(manager, title):
    return next(p for p in manager.state.script_market if p.title == title)


class TestAcquireScript:
    """Test buying pitches into development."""

    def test_acquire_creates_project(self, manager):
        pitch = pitch_named(manager, "Glass Harbor")
        result = manager.acquire_script(pitch.id)
        assert result.success
        assert result.message == 'Acquired "Glass Harbor".'
        project = manager.state.get_project(result.project_id)
        assert project.phase == ProjectPhase.DEVELOPMENT
        assert project.budget.actual_spend == 360_000
        assert project.script_quality == pytest.approx(7.8)
        assert manager.state.cash == 50_000_000 - 360_000
        assert pitch.id not in [p.id for p in manager.state.script_market]

    def test_capacity_limit(self, manager):
        """An indie studio runs three projects at most."""
        manager.acquire_script(pitch_named(manager, "Glass Harbor").id)
        result = manager.acquire_script(pitch_named(manager, "Murmur Theory").id)
        assert not result.success
        assert result.message == "Studio capacity reached (3/3). Upgrade capacity before adding projects."

    def test_capacity_upgrade_makes_room(self, manager):
        manager.acquire_script(pitch_named(manager, "Glass Harbor").id)
        assert manager.upgrade_studio_capacity().success
        assert manager.acquire_script(pitch_named(manager, "Murmur Theory").id).success

    def test_insufficient_funds(self, manager):
        manager.state.cash = 100_000
        result = manager.acquire_script(pitch_named(manager, "Glass Harbor").id)
        assert result.message == "Insufficient funds for script acquisition."

    def test_unknown_script(self, manager):
        assert manager.acquire_script("script-missing").message == "Script not found."

    def test_pass_removes_pitch(self, manager):
        pitch = pitch_named(manager, "Last Train Sunday")
        manager.pass_script(pitch.id)
        assert pitch.id not in [p.id for p in manager.state.script_market]


class TestMarketTicks:
    """Test expiry and refill."""

    def test_refill_to_target(self, manager):
        events = []
        manager.market.refill(events)
        market = manager.state.script_market
        assert len(market) == SCRIPT_MARKET_TARGET
        assert events == ["1 new script offer(s) entered the market."]

    def test_refill_repitches_seed_scripts(self, manager):
        """An empty market is rebuilt from the seed scripts, unique titles first."""
        manager.state.script_market = []
        manager.market.refill([])
        market = manager.state.script_market
        seed_titles = {pitch["title"] for pitch in SEED_PITCHES}
        assert [p.title for p in market] == [
            "Murmur Theory",
            "Last Train Sunday",
            "Glass Harbor",
            "Murmur Theory",
        ]
        assert {p.title for p in market[:3]} == seed_titles
        murmur = market[0]
        assert murmur.asking_price == round(520_000 * 1.02)
        assert murmur.script_quality == pytest.approx(7.1)
        assert murmur.expires_in_weeks == 5
        assert len({p.id for p in market}) == len(market)

    def test_refill_ignores_slate_titles(self, manager):
        """A title on the slate can still come back as a fresh pitch."""
        manager.state.active_projects[1].title = "Murmur Theory"
        manager.state.script_market = []
        manager.market.refill([])
        assert "Murmur Theory" in {p.title for p in manager.state.script_market}

    def test_full_market_untouched(self, manager):
        manager.market.refill([])
        before = [p.id for p in manager.state.script_market]
        events = []
        manager.market.refill(events)
        assert [p.id for p in manager.state.script_market] == before
        assert events == []

    def test_pitches_expire(self, manager):
        events = []
        for _ in range(3):
            manager.market.tick_expiry(events)
        titles = [p.title for p in manager.state.script_market]
        assert "Glass Harbor" not in titles
        assert "Murmur Theory" in titles
        assert "2 script offer(s) expired from market." in events


class TestPitchEvaluation:
    """Test the acquisition advisor."""

    def test_evaluation_fields(self, manager):
        evaluation = manager.evaluate_script_pitch(pitch_named(manager, "Glass Harbor").id)
        assert 0 <= evaluation.score <= 100
        assert evaluation.recommendation in ("strong_buy", "conditional", "pass")
        assert evaluation.risk_label in ("low", "medium", "high")
        assert 0 <= evaluation.fit_score <= 1

    def test_unknown_pitch(self, manager):
        assert manager.evaluate_script_pitch("script-missing") is None

    def test_price_raises_risk(self, manager):
        pitch = pitch_named(manager, "Glass Harbor")
        manager.state.cash = 1_000_000
        assert manager.evaluate_script_pitch(pitch.id).risk_label == "high"


class TestGenreCycles:
    """Test demand drift and shocks."""

    def test_demand_stays_in_range(self, manager):
        low, high = GENRE_DEMAND_RANGE
        for week in range(1, 60):
            manager.state.current_week = week
            manager.market.tick_genre_cycles([])
        for genre in GENRES:
            assert low <= manager.market.genre_demand(genre) <= high

    def test_snapshot_hottest_first(self, manager):
        snapshot = manager.market.genre_snapshot()
        assert len(snapshot) == len(GENRES)
        demands = [row.demand for row in snapshot]
        assert demands == sorted(demands, reverse=True)

    def test_shock_marks_one_genre(self, manager):
        events = []
        manager.market.trigger_shock(events)
        shocked = [row for row in manager.market.genre_snapshot() if row.shock_direction]
        assert len(shocked) == 1
        assert shocked[0].shock_direction == "slump"
        assert shocked[0].shock_weeks_remaining > 0
        assert events[0].startswith("Genre shock:")
