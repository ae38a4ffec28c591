"""Tests for the autopilot and seeded batch runs."""

import pytest

from backlot.simulation import AutopilotPlayer, BatchStats, RunMetrics, run_batch, simulate_run
from backlot.simulation.player import score_crisis_option, score_decision_option
from backlot.state.schema import DistributionOffer, EffectBundle, ProjectPhase, ReleaseWindow
from backlot.systems.lifecycle import PLAYER_WINDOWS

from conftest import project_named


class TestScoring:
    """Test how the autopilot weighs options."""

    def test_cash_matters_more_when_poor(self):
        option = EffectBundle(label="Take", cash_delta=160_000)
        assert score_decision_option(option, 5_000_000) > score_decision_option(option, 50_000_000)

    def test_survival_penalty(self):
        option = EffectBundle(label="Spend", cash_delta=-500_000)
        assert score_decision_option(option, 1_200_000) < -12

    def test_crisis_prefers_cash_when_broke(self):
        cheap = EffectBundle(label="Cheap", cash_delta=-10_000, hype_delta=-5)
        costly = EffectBundle(label="Costly", cash_delta=-900_000, hype_delta=5)
        assert score_crisis_option(cheap, 1_000_000) > score_crisis_option(costly, 1_000_000)


class TestAutopilot:
    """Test one autopilot turn against a fixed-roll studio."""

    def test_unknown_persona_falls_back(self, manager):
        player = AutopilotPlayer(manager, "reckless")
        assert player.policy["name"] == "Balanced"

    def test_turn_resolves_open_decision(self, manager):
        opening = manager.state.decision_queue[0].id
        player = AutopilotPlayer(manager)
        player.play_turn()
        assert opening not in [d.id for d in manager.state.decision_queue]
        assert player.actions_taken >= 1

    def test_streaming_offer_never_stalls_distribution(self, manager):
        """A rich streaming bid on top of the stack is skipped for a theatrical deal."""
        project = project_named(manager, "Night Ledger")
        project.phase = ProjectPhase.DISTRIBUTION
        project.release_week = manager.state.current_week + 3
        manager.lifecycle.generate_offers(project.id)
        manager.state.distribution_offers.append(
            DistributionOffer(
                project_id=project.id,
                partner="Lumen Stream+",
                release_window=ReleaseWindow.STREAMING_EXCLUSIVE,
                minimum_guarantee=project.budget.ceiling * 0.46,
                p_and_a_commitment=project.budget.ceiling * 0.055,
                revenue_share_to_studio=0.68,
                projected_opening_override=0.72,
            )
        )
        AutopilotPlayer(manager).play_turn()
        assert project.release_window in PLAYER_WINDOWS
        assert project.distribution_partner != "Lumen Stream+"


class TestSimulateRun:
    """Test a short seeded run."""

    def test_run_metrics(self):
        metrics = simulate_run(seed=7, weeks=20)
        assert isinstance(metrics, RunMetrics)
        assert metrics.seed == 7
        assert 1 <= metrics.weeks_played <= 20
        assert metrics.released_films >= 0
        assert metrics.max_pending_crises >= 0

    def test_same_seed_same_run(self):
        first = simulate_run(seed=11, weeks=12, persona="cautious")
        second = simulate_run(seed=11, weeks=12, persona="cautious")
        assert first == second


class TestRunBatch:
    """Test batch aggregation."""

    def test_batch_summary(self):
        stats = run_batch(runs=2, weeks=20)
        assert [r.seed for r in stats.runs] == [10_000, 10_137]
        summary = stats.to_dict()
        assert summary["runs"] == 2
        assert 0 <= summary["bankrupt_rate"] <= 1
        assert summary["cash_min"] <= summary["cash_median"] <= summary["cash_max"]

    def test_empty_batch(self):
        stats = BatchStats()
        assert stats.bankrupt_rate == 0
        assert stats.to_dict()["cash_mean"] == 0

    def test_rates(self):
        stats = BatchStats(
            runs=[
                RunMetrics(seed=1, weeks_played=10, bankrupt=True, final_cash=0, final_heat=10, released_films=0),
                RunMetrics(seed=2, weeks_played=10, bankrupt=False, final_cash=4_000_000, final_heat=20, released_films=2),
            ]
        )
        assert stats.bankrupt_rate == 0.5
        assert stats.cash_median == pytest.approx(2_000_000)
        assert stats.released_mean == 1


class TestLongRunBalance:
    """Ten-year autopilot batch stays inside the economy envelope."""

    def test_ten_year_batch_envelope(self):
        stats = run_batch(runs=24, weeks=520)
        assert [r.seed for r in stats.runs[:3]] == [10_000, 10_137, 10_274]
        assert stats.bankrupt_rate < 0.94
        assert stats.cash_max < 220_000_000
        assert stats.released_mean >= 10
        assert stats.nominations_mean > 10
        assert stats.max_pending_crises < 7
