"""
Pure numeric formulas for the studio simulation.

No state lives here: every function maps inputs to a number (or a small
result record) so projections can be recomputed at any week without
touching the studio.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .constants import clamp
from .state.schema import Genre


GENRE_BASELINE_OPENING: dict[Genre, float] = {
    Genre.ACTION: 28_000_000,
    Genre.DRAMA: 9_000_000,
    Genre.COMEDY: 14_000_000,
    Genre.HORROR: 12_000_000,
    Genre.THRILLER: 13_500_000,
    Genre.SCI_FI: 21_000_000,
    Genre.ANIMATION: 24_000_000,
    Genre.DOCUMENTARY: 2_500_000,
}

INTERNATIONAL_FACTOR: dict[Genre, float] = {
    Genre.ACTION: 2.4,
    Genre.DRAMA: 1.2,
    Genre.COMEDY: 1.4,
    Genre.HORROR: 1.6,
    Genre.THRILLER: 1.5,
    Genre.SCI_FI: 2.2,
    Genre.ANIMATION: 2.8,
    Genre.DOCUMENTARY: 0.8,
}

# Share of worldwide gross that reaches the studio
NET_REVENUE_SHARE = 0.52


@dataclass(frozen=True)
class OpeningRange:
    low: float
    midpoint: float
    high: float


@dataclass(frozen=True)
class ReputationDeltas:
    critics: float
    audience: float


def projected_critical_score(
    script_quality: float,
    director_craft: float,
    lead_actor_craft: float,
    production_spend: float,
    concept_strength: float,
    editorial_score: float,
    crisis_penalty: float = 0.0,
    chemistry_penalty: float = 0.0,
) -> float:
    """Critical score on a 0-100 scale.

    Production value saturates with spend: 1 - exp(-spend / 30M).
    """
    production_value = 1 - math.exp(-production_spend / 30_000_000)
    base = (
        (script_quality / 10) * 0.35
        + (director_craft / 10) * 0.25
        + (lead_actor_craft / 10) * 0.15
        + production_value * 0.1
        + (concept_strength / 10) * 0.1
        + (editorial_score / 10) * 0.05
    )
    score = base * 100 - crisis_penalty - chemistry_penalty
    return clamp(score, 0, 100)


def projected_opening_range(
    genre: Genre,
    hype_score: float,
    star_power: float,
    marketing_budget: float,
    total_budget: float,
    seasonal_multiplier: float = 1.0,
    screens_multiplier: float = 1.0,
) -> OpeningRange:
    hype_multiplier = 0.6 + (clamp(hype_score, 0, 100) / 100) * 0.8
    star_multiplier = 0.7 + (clamp(star_power, 0, 10) / 10) * 0.6
    marketing_efficiency = 1 + (marketing_budget / max(1, total_budget)) * 0.4

    midpoint = (
        GENRE_BASELINE_OPENING[genre]
        * hype_multiplier
        * star_multiplier
        * marketing_efficiency
        * seasonal_multiplier
        * screens_multiplier
    )
    return OpeningRange(low=midpoint * 0.8, midpoint=midpoint, high=midpoint * 1.2)


def projected_roi(
    opening_weekend: float,
    critical_score: float,
    audience_score: float,
    genre: Genre,
    total_cost: float,
) -> float:
    leg_multiplier = (
        2.1
        + (clamp(critical_score, 0, 100) / 100) * 0.9
        + (clamp(audience_score, 0, 100) / 100) * 0.8
    )
    domestic = opening_weekend * leg_multiplier
    international = domestic * INTERNATIONAL_FACTOR[genre]
    net_revenue = (domestic + international) * NET_REVENUE_SHARE
    return net_revenue / max(1, total_cost)


def reputation_deltas_from_release(
    critical_score: float,
    roi: float,
    awards_nominations: int = 0,
    awards_wins: int = 0,
    controversy_penalty: float = 0.0,
) -> ReputationDeltas:
    """Split a release's reputation swing into critics and audience pillars."""
    critics = 0.0
    if critical_score > 90:
        critics += 15
    elif critical_score > 80:
        critics += 8
    elif critical_score < 40:
        critics -= 10
    critics += awards_nominations * 3 + awards_wins * 8

    audience = 0.0
    if roi > 3:
        audience += 12
    elif roi > 2:
        audience += 6
    elif roi < 1:
        audience -= 8

    critics -= controversy_penalty / 2
    audience -= controversy_penalty / 2
    return ReputationDeltas(critics=critics, audience=audience)


def heat_delta_from_release(
    current_heat: float,
    critical_score: float,
    roi: float,
    awards_nominations: int = 0,
    awards_wins: int = 0,
    controversy_penalty: float = 0.0,
) -> float:
    """Change in studio heat from one closed run, bounded so heat stays within 0-100."""
    delta = 0.0
    if critical_score > 90:
        delta += 15
    elif critical_score > 80:
        delta += 8
    elif critical_score < 40:
        delta -= 10

    if roi > 3:
        delta += 12
    elif roi > 2:
        delta += 6
    elif roi < 1:
        delta -= 8

    delta += awards_nominations * 3 + awards_wins * 8
    delta -= controversy_penalty
    return clamp(current_heat + delta, 0, 100) - current_heat


def awards_score(
    critical_score: float,
    script_quality: float,
    concept_strength: float,
    prestige: float,
    controversy: float,
    campaign_boost: float,
    festival_boost: float,
    critics_reputation: float,
) -> float:
    return clamp(
        critical_score * 0.55
        + script_quality * 2.2
        + concept_strength * 1.2
        + prestige * 0.18
        - controversy * 0.12
        + campaign_boost
        + festival_boost
        + (critics_reputation - 50) * 0.08,
        0,
        100,
    )


def nomination_probability(score: float) -> float:
    return clamp((score - 45) / 55, 0.02, 0.92)


def win_probability(score: float, nominations: int, controversy: float) -> float:
    return clamp(
        0.08 + (score - 60) / 100 + nominations * 0.04 - controversy / 400,
        0.03,
        0.7,
    )


def release_run_weeks(critical_score: float, audience_score: float) -> int:
    quality = (critical_score + audience_score) / 2
    if quality >= 85:
        return 8
    if quality >= 70:
        return 6
    if quality >= 55:
        return 5
    return 4


def next_weekly_gross(previous: float, weeks_remaining: int) -> float:
    """Decay the prior week's gross, never below a $250K floor."""
    return max(250_000, previous * (0.62 + weeks_remaining * 0.015))
