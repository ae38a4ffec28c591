"""
Starting content for a new studio run.

The talent pool is generated deterministically from a world seed so two
studios started with the same seed face the same roster.
"""

from __future__ import annotations

import math
from typing import Callable

from ..constants import (
    DEFAULT_STUDIO_NAME,
    INITIAL_GENRE_CYCLES,
    STARTING_CASH,
    STARTING_REPUTATION,
)
from .schema import (
    AgentTier,
    DecisionCategory,
    DecisionItem,
    EffectBundle,
    Genre,
    GenreCycleState,
    MovieProject,
    ProjectBudget,
    ProjectPhase,
    RelationshipMemory,
    ReputationPillars,
    RivalMemory,
    RivalPersonality,
    RivalStudio,
    ScriptPitch,
    StudioState,
    Talent,
    TalentRole,
    TalentSalary,
)


FIRST_NAMES = [
    "Ada", "Bram", "Cass", "Dara", "Eli", "Fen", "Greer", "Hollis",
    "Isa", "Jules", "Kit", "Lark", "Mika", "Noor", "Ode", "Pax",
    "Remy", "Sasha", "Tam", "Uma", "Vesper", "Wren", "Yael", "Zuri",
]

LAST_NAMES = [
    "Ashby", "Brandt", "Corwin", "Draper", "Everly", "Fane", "Gould", "Hayward",
    "Imre", "Judd", "Kessler", "Lyle", "Mercer", "Nolan", "Orr", "Penrose",
    "Quarry", "Royce", "Sable", "Tolliver",
]

DIRECTOR_POOL_SIZE = 60
LEAD_ACTOR_POOL_SIZE = 200

Rng = Callable[[], float]


# -----------------------------------------------------------------------------
# Randomness
# -----------------------------------------------------------------------------

def seeded_rng(seed: int) -> Rng:
    """
    Linear congruential generator returning floats in [0, 1).

    state = state * 1664525 + 1013904223 (mod 2**32); a zero seed starts at 1.
    """
    state = (int(seed) % 2**32) or 1

    def next_value() -> float:
        nonlocal state
        state = (state * 1_664_525 + 1_013_904_223) % 2**32
        return state / 2**32

    return next_value


def seeded_unit(seed: float, salt: float) -> float:
    """Stable pseudo-random value in [0, 1) for a (seed, salt) pair."""
    x = math.sin(seed * 12.9898 + salt * 78.233) * 43_758.545_312_3
    return x - math.floor(x)


def _round_to(value: float, decimals: int) -> float:
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def _round_money(value: float) -> float:
    return math.floor(value / 10_000 + 0.5) * 10_000


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# -----------------------------------------------------------------------------
# Talent
# -----------------------------------------------------------------------------

def initial_relationship(studio_relationship: float) -> RelationshipMemory:
    return RelationshipMemory(
        trust=math.floor(_clamp(35 + studio_relationship * 45, 0, 100) + 0.5),
        loyalty=math.floor(_clamp(30 + studio_relationship * 40, 0, 100) + 0.5),
    )


def _name_pool(world_seed: int) -> list[str]:
    names = [f"{first} {last}" for first in FIRST_NAMES for last in LAST_NAMES]
    if world_seed == 0:
        return names
    rng = seeded_rng(world_seed)
    for i in range(len(names) - 1, 0, -1):
        j = math.floor(rng() * (i + 1))
        names[i], names[j] = names[j], names[i]
    return names


def _talent_name(index: int, pool: list[str]) -> str:
    if index < len(pool):
        return pool[index]
    return f"{pool[index % len(pool)]} {index // len(pool) + 2}"


def _distinct_genres(index: int, offset: int) -> list[Genre]:
    genres = list(Genre)
    total = len(genres)
    starts = [
        (index + offset) % total,
        (index * 3 + 1 + offset) % total,
        (index * 5 + 2 + offset) % total,
        (index * 7 + 3 + offset) % total,
    ]
    picks: list[Genre] = []
    for start in starts:
        for step in range(total):
            genre = genres[(start + step) % total]
            if genre not in picks:
                picks.append(genre)
                break
    return picks


def _genre_fit(index: int, role: TalentRole, world_seed: int) -> dict[Genre, float]:
    salt = (world_seed % 97) * 0.07
    primary, secondary, tertiary, wildcard = _distinct_genres(index, world_seed % len(Genre))
    director = role == TalentRole.DIRECTOR
    return {
        primary: _round_to(_clamp((0.8 if director else 0.76) + seeded_unit(index, 31 + salt) * 0.2, 0.72, 0.98), 2),
        secondary: _round_to(_clamp((0.67 if director else 0.64) + seeded_unit(index, 32 + salt) * 0.18, 0.55, 0.9), 2),
        tertiary: _round_to(_clamp((0.56 if director else 0.54) + seeded_unit(index, 33 + salt) * 0.16, 0.45, 0.82), 2),
        wildcard: _round_to(_clamp(0.42 + seeded_unit(index, 34 + salt) * 0.22, 0.35, 0.75), 2),
    }


def _agent_tier(star_power: float, reputation: int, index: int, world_seed: int) -> AgentTier:
    salt = (world_seed % 83) * 0.09
    score = star_power * 6 + reputation * 0.52 + seeded_unit(index, 44 + salt) * 10
    if score >= 105:
        return AgentTier.AEA
    if score >= 94:
        return AgentTier.WMA
    if score >= 84:
        return AgentTier.TCA
    return AgentTier.INDEPENDENT


def build_talent(index: int, role: TalentRole, world_seed: int, pool: list[str]) -> Talent:
    salt = (world_seed % 251) * 0.11
    director = role == TalentRole.DIRECTOR
    lead = role == TalentRole.LEAD_ACTOR

    star = _round_to(_clamp(4.1 + seeded_unit(index, 11 + salt) * 5.7 + (0.35 if director else 0), 3.8, 9.9), 1)
    craft = _round_to(_clamp(4.6 + seeded_unit(index, 12 + salt) * 5.1 + (0.85 if director else 0), 4, 9.9), 1)
    ego = _round_to(_clamp(2 + seeded_unit(index, 13 + salt) * 7.4 + (0.45 if lead else 0), 1.8, 9.8), 1)
    reputation = math.floor(_clamp(45 + seeded_unit(index, 14 + salt) * 46 + (3 if director else 0), 40, 96) + 0.5)
    relationship = _round_to(_clamp(0.05 + seeded_unit(index, 15 + salt) * 0.57, 0.02, 0.75), 2)

    if director:
        base = _round_money(550_000 + craft * 220_000 + star * 95_000 + seeded_unit(index, 16 + salt) * 500_000)
    else:
        base = _round_money(650_000 + star * 260_000 + craft * 110_000 + seeded_unit(index, 16 + salt) * 650_000)
    backend = _round_to(_clamp(0.6 + star * 0.28 + craft * 0.12 + seeded_unit(index, 17 + salt) * 0.9, 0.5, 5.5), 1)
    perks = _round_money(50_000 + ego * 55_000 + star * 22_000 + seeded_unit(index, 18 + salt) * 120_000)

    return Talent(
        name=_talent_name(index, pool),
        role=role,
        star_power=star,
        craft_score=craft,
        genre_fit=_genre_fit(index, role, world_seed),
        ego_level=ego,
        salary=TalentSalary(base=base, backend_points=backend, perks_cost=perks),
        agent_tier=_agent_tier(star, reputation, index, world_seed),
        reputation=reputation,
        studio_relationship=relationship,
        relationship_memory=initial_relationship(relationship),
    )


def create_talent_pool(world_seed: int = 0) -> list[Talent]:
    """60 directors followed by 200 lead actors."""
    seed = max(0, math.floor(abs(world_seed))) if math.isfinite(world_seed) else 0
    pool = _name_pool(seed)
    roster: list[Talent] = []
    index = 0
    for _ in range(DIRECTOR_POOL_SIZE):
        roster.append(build_talent(index, TalentRole.DIRECTOR, seed, pool))
        index += 1
    for _ in range(LEAD_ACTOR_POOL_SIZE):
        roster.append(build_talent(index, TalentRole.LEAD_ACTOR, seed, pool))
        index += 1
    return roster


# -----------------------------------------------------------------------------
# Projects, scripts, decisions
# -----------------------------------------------------------------------------

def create_seed_projects() -> list[MovieProject]:
    return [
        MovieProject(
            title="Night Ledger",
            genre=Genre.THRILLER,
            phase=ProjectPhase.PRODUCTION,
            budget=ProjectBudget(
                ceiling=24_000_000,
                above_the_line=7_800_000,
                below_the_line=11_400_000,
                post_production=3_200_000,
                contingency=1_600_000,
                overrun_risk=0.38,
                actual_spend=9_500_000,
            ),
            script_quality=7.4,
            concept_strength=7.1,
            scheduled_weeks_remaining=12,
            hype_score=33,
            marketing_budget=2_000_000,
            projected_roi=1.52,
            prestige=42,
            commercial_appeal=68,
            originality=57,
            controversy=28,
            greenlight_approved=True,
        ),
        MovieProject(
            title="Blue Ember",
            genre=Genre.DRAMA,
            phase=ProjectPhase.DEVELOPMENT,
            budget=ProjectBudget(
                ceiling=12_000_000,
                above_the_line=3_800_000,
                below_the_line=5_400_000,
                post_production=1_700_000,
                contingency=1_100_000,
                overrun_risk=0.26,
                actual_spend=500_000,
            ),
            script_quality=8.1,
            concept_strength=6.8,
            scheduled_weeks_remaining=18,
            hype_score=18,
            projected_roi=1.18,
            prestige=72,
            commercial_appeal=37,
            originality=64,
            controversy=14,
        ),
    ]


def create_opening_decision(lead_project: MovieProject) -> DecisionItem:
    return DecisionItem(
        project_id=lead_project.id,
        title=f"First Call: Script Doctor on {lead_project.title}",
        body=(
            f"{lead_project.title} is already shooting with a script at "
            f"{lead_project.script_quality:.1f}. A script doctor can turn around a "
            "two-week pass for $360K, lifting the page count that critics notice. "
            "Unanswered decisions lapse as weeks go by."
        ),
        category=DecisionCategory.CREATIVE,
        source="opening",
        weeks_until_expiry=3,
        options=[
            EffectBundle(
                label="Fund the Sprint",
                preview="Script quality +0.8, a little early buzz.",
                cash_delta=-360_000,
                script_quality_delta=0.8,
                hype_delta=2,
                critics_delta=1,
            ),
            EffectBundle(
                label="Pass for Now",
                preview="Keep the $360K. Quality stays where it is.",
                hype_delta=-1,
            ),
        ],
    )


SEED_PITCHES: list[dict] = [
    {
        "title": "Glass Harbor", "genre": Genre.THRILLER, "asking_price": 360_000,
        "script_quality": 7.8, "concept_strength": 7.2, "expires_in_weeks": 2,
        "logline": "A dockside auditor finds her late father's name in a smuggling ring's books.",
    },
    {
        "title": "Murmur Theory", "genre": Genre.SCI_FI, "asking_price": 520_000,
        "script_quality": 7.1, "concept_strength": 8.4, "expires_in_weeks": 3,
        "logline": "A linguist learns that certain spoken phrases bend the room around her.",
    },
    {
        "title": "Last Train Sunday", "genre": Genre.DRAMA, "asking_price": 220_000,
        "script_quality": 8.3, "concept_strength": 6.4, "expires_in_weeks": 2,
        "logline": "Three siblings get one weekend to decide whether to sell the family cinema.",
    },
]


def create_seed_script_market() -> list[ScriptPitch]:
    return [ScriptPitch(**pitch) for pitch in SEED_PITCHES]


# -----------------------------------------------------------------------------
# Rivals and market
# -----------------------------------------------------------------------------

def initial_rival_memory(personality: RivalPersonality) -> RivalMemory:
    if personality == RivalPersonality.BLOCKBUSTER_FACTORY:
        hostility = 58
    elif personality == RivalPersonality.SCRAPPY_UPSTART:
        hostility = 55
    else:
        hostility = 50
    if personality == RivalPersonality.PRESTIGE_HUNTER:
        respect = 60
    elif personality == RivalPersonality.GENRE_SPECIALIST:
        respect = 56
    else:
        respect = 52
    return RivalMemory(hostility=hostility, respect=respect, retaliation_bias=50, cooperation_bias=45)


SEED_RIVALS: list[tuple[str, RivalPersonality, float]] = [
    ("Meridian Pictures", RivalPersonality.PRESTIGE_HUNTER, 61),
    ("Apex Global", RivalPersonality.BLOCKBUSTER_FACTORY, 74),
    ("Neon Slate", RivalPersonality.GENRE_SPECIALIST, 56),
    ("Harbor Road", RivalPersonality.STREAMING_FIRST, 52),
    ("Freehold Films", RivalPersonality.SCRAPPY_UPSTART, 41),
]


def create_seed_rivals() -> list[RivalStudio]:
    return [
        RivalStudio(
            name=name,
            personality=personality,
            studio_heat=heat,
            memory=initial_rival_memory(personality),
        )
        for name, personality, heat in SEED_RIVALS
    ]


def create_initial_genre_cycles() -> dict[Genre, GenreCycleState]:
    return {
        genre: GenreCycleState(demand=demand, momentum=momentum)
        for genre, (demand, momentum) in INITIAL_GENRE_CYCLES.items()
    }


def create_initial_state(world_seed: int = 0) -> StudioState:
    """A fresh studio: two projects, three pitches, five rivals, one decision."""
    projects = create_seed_projects()
    return StudioState(
        studio_name=DEFAULT_STUDIO_NAME,
        cash=STARTING_CASH,
        reputation=ReputationPillars(
            critics=STARTING_REPUTATION,
            talent=STARTING_REPUTATION,
            distributor=STARTING_REPUTATION,
            audience=STARTING_REPUTATION,
        ),
        active_projects=projects,
        talent_pool=create_talent_pool(world_seed),
        script_market=create_seed_script_market(),
        decision_queue=[create_opening_decision(projects[0])],
        rivals=create_seed_rivals(),
        genre_cycles=create_initial_genre_cycles(),
    )
