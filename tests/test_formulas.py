"""Tests for the pure projection formulas."""

import pytest

from backlot.formulas import (
    heat_delta_from_release,
    next_weekly_gross,
    nomination_probability,
    projected_critical_score,
    projected_opening_range,
    projected_roi,
    release_run_weeks,
    reputation_deltas_from_release,
    win_probability,
)
from backlot.state.schema import Genre


def critical(**overrides):
    inputs = dict(
        script_quality=7.0,
        director_craft=7.0,
        lead_actor_craft=7.0,
        production_spend=20_000_000,
        concept_strength=7.0,
        editorial_score=6.0,
    )
    inputs.update(overrides)
    return projected_critical_score(**inputs)


class TestCriticalScore:
    """Test the weighted critical score."""

    def test_stays_in_range(self):
        """Extreme inputs are clamped to 0-100."""
        assert critical(script_quality=10, director_craft=10, lead_actor_craft=10,
                        production_spend=10**10, concept_strength=10, editorial_score=10) <= 100
        assert critical(crisis_penalty=500) == 0

    def test_script_quality_raises_score(self):
        """Better scripts review better, all else equal."""
        assert critical(script_quality=8.5) > critical(script_quality=6.0)

    def test_production_value_saturates(self):
        """Extra spend adds less the more is already spent."""
        low = critical(production_spend=10_000_000) - critical(production_spend=0)
        high = critical(production_spend=110_000_000) - critical(production_spend=100_000_000)
        assert low > high > 0

    def test_penalties_subtract(self):
        """Crisis and chemistry penalties come straight off the score."""
        base = critical()
        assert critical(crisis_penalty=8) == pytest.approx(base - 8)
        assert critical(chemistry_penalty=3) == pytest.approx(base - 3)


class TestOpeningRange:
    """Test opening weekend ranges."""

    def test_range_brackets_midpoint(self):
        """Low and high sit 20% either side of the midpoint."""
        opening = projected_opening_range(Genre.HORROR, 50, 6, 2_000_000, 12_000_000)
        assert opening.low == pytest.approx(opening.midpoint * 0.8)
        assert opening.high == pytest.approx(opening.midpoint * 1.2)

    def test_hype_increases_opening(self):
        """Hype is monotonic in the midpoint."""
        cold = projected_opening_range(Genre.ACTION, 10, 6, 0, 40_000_000)
        hot = projected_opening_range(Genre.ACTION, 90, 6, 0, 40_000_000)
        assert hot.midpoint > cold.midpoint

    def test_genre_baseline(self):
        """Action opens bigger than documentary on the same inputs."""
        action = projected_opening_range(Genre.ACTION, 40, 5, 0, 10_000_000)
        doc = projected_opening_range(Genre.DOCUMENTARY, 40, 5, 0, 10_000_000)
        assert action.midpoint > doc.midpoint


class TestRoi:
    """Test ROI projection."""

    def test_zero_cost_is_safe(self):
        """A zero cost does not divide by zero."""
        assert projected_roi(1_000_000, 60, 60, Genre.DRAMA, 0) > 0

    def test_reviews_lengthen_legs(self):
        """Better reviews mean more total gross for the same opening."""
        weak = projected_roi(10_000_000, 30, 30, Genre.COMEDY, 20_000_000)
        strong = projected_roi(10_000_000, 90, 90, Genre.COMEDY, 20_000_000)
        assert strong > weak


class TestReleaseReputation:
    """Test reputation and heat swings from a finished run."""

    def test_acclaimed_hit(self):
        """High scores and a big ROI lift both pillars."""
        deltas = reputation_deltas_from_release(critical_score=92, roi=3.5)
        assert deltas.critics == 15
        assert deltas.audience == 12

    def test_flop(self):
        """Poor reviews and a loss cut both pillars."""
        deltas = reputation_deltas_from_release(critical_score=35, roi=0.6)
        assert deltas.critics == -10
        assert deltas.audience == -8

    def test_awards_and_controversy(self):
        """Awards add to critics; controversy is split between pillars."""
        deltas = reputation_deltas_from_release(
            critical_score=60, roi=1.5, awards_nominations=2, awards_wins=1, controversy_penalty=10
        )
        assert deltas.critics == 2 * 3 + 8 - 5
        assert deltas.audience == -5

    def test_heat_delta_bands(self):
        """Strong reviews, a big return and awards stack; controversy subtracts."""
        assert heat_delta_from_release(50, 92, 3.5) == 27
        assert heat_delta_from_release(50, 85, 2.5, awards_nominations=1, awards_wins=1) == 8 + 6 + 3 + 8
        assert heat_delta_from_release(50, 35, 0.6, controversy_penalty=2) == -20

    def test_heat_delta_keeps_heat_in_range(self):
        """Heat never leaves 0-100."""
        assert 99 + heat_delta_from_release(99, 95, 4) <= 100
        assert 1 + heat_delta_from_release(1, 20, 0.2) >= 0


class TestAwardsProbabilities:
    """Test nomination and win odds."""

    def test_nomination_bounds(self):
        assert nomination_probability(0) == pytest.approx(0.02)
        assert nomination_probability(200) == pytest.approx(0.92)

    def test_win_bounds(self):
        assert win_probability(0, 0, 100) == pytest.approx(0.03)
        assert win_probability(200, 5, 0) == pytest.approx(0.7)


class TestTheatricalRun:
    """Test run length and weekly decay."""

    @pytest.mark.parametrize(
        "critics,audience,weeks",
        [(90, 90, 8), (70, 72, 6), (55, 56, 5), (30, 40, 4)],
    )
    def test_run_weeks(self, critics, audience, weeks):
        """Run length follows average quality."""
        assert release_run_weeks(critics, audience) == weeks

    def test_weekly_gross_decays(self):
        """Each week earns less than the last."""
        assert next_weekly_gross(10_000_000, 3) < 10_000_000

    def test_weekly_gross_floor(self):
        """Weekly gross never drops below $250K."""
        assert next_weekly_gross(100_000, 1) == 250_000
