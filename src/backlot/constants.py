"""
Balance tables for the studio simulation.

Every tunable number the engine consumes lives here so weekly passes
read as rules rather than magic values.
"""

from __future__ import annotations

import math

from .state.schema import (
    AgentTier,
    DecisionCategory,
    DepartmentTrack,
    Genre,
    IpKind,
    MilestoneId,
    ProjectPhase,
    ReleaseOutcome,
    RivalPersonality,
    StudioSpecialization,
    StudioTier,
)


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def round_half_up(value: float) -> int:
    """Round x.5 away from zero on the positive side, like a ledger would."""
    return math.floor(value + 0.5)


# -----------------------------------------------------------------------------
# Studio
# -----------------------------------------------------------------------------

STARTING_CASH = 50_000_000
STARTING_REPUTATION = 12
DEFAULT_STUDIO_NAME = "Backlot Pictures"
STUDIO_NAME_MIN = 2
STUDIO_NAME_MAX = 32
TURN_LENGTH_CHOICES = (1, 2)

LOW_CASH_WARNING_THRESHOLD = 1_000_000
FIRST_SESSION_COMPLETE_WEEK = 5

# (studio heat, released films) needed to hold each tier
STUDIO_TIER_REQUIREMENTS: dict[StudioTier, tuple[int, int]] = {
    StudioTier.INDIE_STUDIO: (0, 0),
    StudioTier.ESTABLISHED_INDIE: (25, 1),
    StudioTier.MID_TIER: (45, 3),
    StudioTier.MAJOR_STUDIO: (65, 6),
    StudioTier.GLOBAL_POWERHOUSE: (80, 10),
}

TIER_ORDER: list[StudioTier] = list(STUDIO_TIER_REQUIREMENTS)

TIER_LABELS: dict[StudioTier, str] = {
    StudioTier.INDIE_STUDIO: "Indie Studio",
    StudioTier.ESTABLISHED_INDIE: "Established Indie",
    StudioTier.MID_TIER: "Mid-Tier Studio",
    StudioTier.MAJOR_STUDIO: "Major Studio",
    StudioTier.GLOBAL_POWERHOUSE: "Global Powerhouse",
}

TIER_PROJECT_CAPACITY: dict[StudioTier, int] = {
    StudioTier.INDIE_STUDIO: 3,
    StudioTier.ESTABLISHED_INDIE: 4,
    StudioTier.MID_TIER: 6,
    StudioTier.MAJOR_STUDIO: 8,
    StudioTier.GLOBAL_POWERHOUSE: 10,
}

CAPACITY_UPGRADE_BASE_COST = 1_200_000
CAPACITY_UPGRADE_STEP_COST = 900_000

EXECUTIVE_NETWORK_MAX = 3
EXECUTIVE_POACH_STEP_COST = 900_000
MARKETING_TEAM_MAX = 5
MARKETING_TEAM_STEP_COST = 300_000
MARKETING_TEAM_HYPE_PER_LEVEL = 1
MARKETING_TEAM_BUDGET_PER_LEVEL = 40_000

AUTO_ADVANCE_DEFAULT_WEEKS = 26
AUTO_ADVANCE_MAX_WEEKS = 52

# opening multiplier, critical delta, burn multiplier, awards boost, distribution leverage
SPECIALIZATION_PROFILES: dict[StudioSpecialization, tuple[float, float, float, float, float]] = {
    StudioSpecialization.BALANCED: (1.0, 0, 1.0, 0, 0),
    StudioSpecialization.BLOCKBUSTER: (1.09, -3, 1.03, -4, 0.025),
    StudioSpecialization.PRESTIGE: (0.93, 4, 1.01, 6, 0.005),
    StudioSpecialization.INDIE: (0.95, 1, 0.92, 2, -0.005),
}
SPECIALIZATION_PIVOT_COST = 650_000

DEPARTMENT_MAX_LEVEL = 4
DEPARTMENT_STEP_COST = 420_000
DEPARTMENT_LABELS: dict[DepartmentTrack, str] = {
    DepartmentTrack.DEVELOPMENT: "Development",
    DepartmentTrack.PRODUCTION: "Production",
    DepartmentTrack.DISTRIBUTION: "Distribution",
}
# Per development level
DEVELOPMENT_GREENLIGHT_FEE_CUT = 15_000
DEVELOPMENT_SPRINT_BONUS = 0.08
GREENLIGHT_FEE_FLOOR = 120_000
# Per production level, bounded
PRODUCTION_BURN_CUT = 0.03
PRODUCTION_EFFICIENCY_RANGE = (0.82, 1.05)
# Per distribution level
DISTRIBUTION_LEVERAGE_STEP = 0.015

EXCLUSIVE_PARTNER_COST = 480_000
EXCLUSIVE_PARTNER_WEEKS = 26
EXCLUSIVE_PARTNER_GUARANTEE_BONUS = 0.1
EXCLUSIVE_PARTNER_SHARE_BONUS = 0.02

# -----------------------------------------------------------------------------
# Projects
# -----------------------------------------------------------------------------

GENRES: list[Genre] = list(Genre)

PHASE_ORDER: list[ProjectPhase] = list(ProjectPhase)

PHASE_LABELS: dict[ProjectPhase, str] = {
    ProjectPhase.DEVELOPMENT: "Development",
    ProjectPhase.PRE_PRODUCTION: "Pre-Production",
    ProjectPhase.PRODUCTION: "Production",
    ProjectPhase.POST_PRODUCTION: "Post-Production",
    ProjectPhase.DISTRIBUTION: "Distribution",
    ProjectPhase.RELEASED: "Released",
}

INITIAL_BUDGET_BY_GENRE: dict[Genre, int] = {
    Genre.ACTION: 28_000_000,
    Genre.SCI_FI: 32_000_000,
    Genre.ANIMATION: 36_000_000,
    Genre.HORROR: 14_000_000,
    Genre.DOCUMENTARY: 6_000_000,
    Genre.DRAMA: 18_000_000,
    Genre.COMEDY: 18_000_000,
    Genre.THRILLER: 18_000_000,
}

PHASE_BURN_MULTIPLIER: dict[ProjectPhase, float] = {
    ProjectPhase.DEVELOPMENT: 0.005,
    ProjectPhase.PRE_PRODUCTION: 0.008,
    ProjectPhase.PRODUCTION: 0.015,
    ProjectPhase.POST_PRODUCTION: 0.009,
    ProjectPhase.DISTRIBUTION: 0.0035,
    ProjectPhase.RELEASED: 0.0,
}

# Weeks scheduled on entering each phase
PHASE_ENTRY_WEEKS: dict[ProjectPhase, int] = {
    ProjectPhase.PRE_PRODUCTION: 8,
    ProjectPhase.PRODUCTION: 14,
    ProjectPhase.POST_PRODUCTION: 6,
    ProjectPhase.DISTRIBUTION: 3,
}

MIN_GREENLIGHT_SCRIPT_QUALITY = 6.0
MAX_PROJECT_WEEKS_AHEAD = 52
DEFAULT_RELEASE_LEAD_WEEKS = 4

COMMERCIAL_APPEAL_BASE: dict[Genre, int] = {
    Genre.ACTION: 68,
    Genre.SCI_FI: 62,
    Genre.ANIMATION: 60,
    Genre.DRAMA: 32,
    Genre.DOCUMENTARY: 18,
}
COMMERCIAL_APPEAL_DEFAULT = 48

CONTROVERSY_BASE: dict[Genre, int] = {
    Genre.HORROR: 35,
    Genre.THRILLER: 28,
    Genre.ACTION: 22,
}
CONTROVERSY_DEFAULT = 15
# Controversy (0-100) scaled into the release penalty points
CONTROVERSY_PENALTY_SCALE = 0.1

# Optional action economy
OPTIONAL_ACTION_COST = 180_000
OPTIONAL_ACTION_HYPE_BOOST = 5
OPTIONAL_ACTION_MARKETING_BOOST = 180_000
SCRIPT_SPRINT_COST = 100_000
SCRIPT_SPRINT_QUALITY_BOOST = 0.5
SCRIPT_SPRINT_MAX_QUALITY = 8.5
POLISH_PASS_COST = 120_000
POLISH_PASS_EDITORIAL_BOOST = 2.0
POLISH_PASS_MAX_EDITORIAL = 9.0
POLISH_PASS_MAX_USES = 2
GREENLIGHT_APPROVAL_FEE = 250_000
REWRITE_QUALITY_CAP = 9.5
TEST_SCREENING_COST = 140_000
RESHOOT_COST = 450_000
RESHOOT_SCHEDULE_WEEKS = 1
TRACKING_ADVANCE_SHARE = 0.65
ABANDON_WRITE_DOWN = 0.2

FESTIVAL_SUBMISSION_COST = 150_000
FESTIVAL_RESOLUTION_WEEKS = 3
FESTIVAL_MAX_BUZZ = 40

LOW_HEAT_MARKETING_THRESHOLD = 25
LOW_CASH_FINANCE_THRESHOLD = 25_000_000

# -----------------------------------------------------------------------------
# Queues and memory
# -----------------------------------------------------------------------------

MAX_DECISION_QUEUE = 4
MAX_COUNTERPLAY_QUEUE = 5
RECENT_CATEGORY_MEMORY = 5
SCRIPT_MARKET_TARGET = 4
SCRIPT_MARKET_MAX_ADDS = 12
SCRIPT_PRICE_FLOOR = 300_000
TALENT_HISTORY_MAX = 10
RIVAL_HISTORY_MAX = 12
NEWS_LOG_MAX = 60
RIVAL_SLATE_MAX = 10
RELEASE_REPORTS_MAX = 60
MILESTONES_MAX = 30
AWARDS_HISTORY_MAX = 24
AWARDS_YEARS_MAX = 20

# -----------------------------------------------------------------------------
# Talent
# -----------------------------------------------------------------------------

AGENT_DIFFICULTY: dict[AgentTier, float] = {
    AgentTier.INDEPENDENT: 1.0,
    AgentTier.TCA: 1.2,
    AgentTier.WMA: 1.3,
    AgentTier.AEA: 1.4,
}

MAX_NEGOTIATION_ROUNDS = 4
GRUDGE_DECAY_PER_WEEK = 0.85
RECENT_MEMORY_WINDOW_WEEKS = 6
HOSTILE_TRUST_THRESHOLD = 25
LOCKOUT_GRUDGE_THRESHOLD = 22
LOCKOUT_RECENT_NEGATIVE_THRESHOLD = 3
LOCKOUT_WEEKS_MIN = 2
LOCKOUT_WEEKS_MAX = 5
GRUDGE_CHANCE_DIVISOR = 150

# -----------------------------------------------------------------------------
# Market
# -----------------------------------------------------------------------------

GENRE_DEMAND_RANGE = (0.75, 1.3)
GENRE_MOMENTUM_LIMIT = 0.03
GENRE_DEMAND_DRIFT = 0.02
GENRE_MOMENTUM_DRIFT = 0.004
GENRE_NUDGE_INTERVAL = 9
GENRE_SHOCK_INTERVAL = 13
GENRE_REPORT_INTERVAL = 12
GENRE_SHOCK_DURATION_WEEKS = (4, 8)
GENRE_SHOCK_STRENGTH = (0.015, 0.04)

GENRE_SHOCK_LIBRARY: dict[Genre, dict[str, list[str]]] = {
    Genre.ACTION: {
        "surge": ["Global action revival", "Practical stunt renaissance"],
        "slump": ["Superhero fatigue wave", "Action sequel burnout"],
    },
    Genre.DRAMA: {
        "surge": ["Awards-season drama appetite", "Character-story comeback"],
        "slump": ["Prestige-drama cooling cycle", "Audience patience dip for slow burns"],
    },
    Genre.COMEDY: {
        "surge": ["Comedy rebound on social platforms", "Crowd-pleaser comeback"],
        "slump": ["Comedy oversupply", "Audience comedy fatigue"],
    },
    Genre.HORROR: {
        "surge": ["Horror revival trend", "Midnight-screening boom"],
        "slump": ["Horror formula fatigue", "Jump-scare burnout"],
    },
    Genre.THRILLER: {
        "surge": ["Streaming thriller spillover", "Conspiracy-thriller surge"],
        "slump": ["Twist-thriller fatigue", "Thriller saturation"],
    },
    Genre.SCI_FI: {
        "surge": ["Speculative fiction boom", "Sci-fi spectacle upswing"],
        "slump": ["Sci-fi VFX fatigue", "High-concept confusion backlash"],
    },
    Genre.ANIMATION: {
        "surge": ["Family animation rebound", "Animated feature boom"],
        "slump": ["Animated franchise fatigue", "Crowded family slate"],
    },
    Genre.DOCUMENTARY: {
        "surge": ["Doc prestige wave", "True-story urgency spike"],
        "slump": ["Documentary attention dip", "Issue-doc fatigue"],
    },
}

INITIAL_GENRE_CYCLES: dict[Genre, tuple[float, float]] = {
    Genre.ACTION: (1.02, 0.004),
    Genre.DRAMA: (0.98, 0.002),
    Genre.COMEDY: (1.0, 0.001),
    Genre.HORROR: (1.04, 0.003),
    Genre.THRILLER: (1.01, 0.002),
    Genre.SCI_FI: (1.03, 0.003),
    Genre.ANIMATION: (0.99, 0.001),
    Genre.DOCUMENTARY: (0.95, 0.001),
}

MERCHANDISE_GENRES = {Genre.ACTION, Genre.ANIMATION, Genre.SCI_FI, Genre.COMEDY}
MERCHANDISE_MIN_AUDIENCE = 58
MERCHANDISE_WEEKS = 6

AWARDS_SEASON_WEEKS = 52
AWARDS_ELIGIBILITY_WEEKS = 52
AWARDS_SHOW_NAME = "Global Film Honors"

# -----------------------------------------------------------------------------
# Narrative arcs
# -----------------------------------------------------------------------------

ARC_LABELS: dict[str, str] = {
    "financier-control": "Investor Pressure",
    "leak-piracy": "Leak Fallout",
    "awards-circuit": "Awards Run",
    "talent-meltdown": "Volatile Star Cycle",
    "exhibitor-war": "Theater Access Battle",
    "franchise-pivot": "Universe Gamble",
}

# Contribution of a finished arc to the studio-wide modifiers
ARC_RESOLVED_EFFECTS: dict[str, dict] = {
    "awards-circuit": {"talent": 0.05, "momentum": 1, "bias": {DecisionCategory.MARKETING: 0.2}},
    "exhibitor-war": {"distribution": 0.05, "bias": {DecisionCategory.FINANCE: 0.12}},
    "financier-control": {"distribution": 0.02, "burn": 0.98},
    "leak-piracy": {"decay": -0.2, "distribution": 0.02},
    "talent-meltdown": {"talent": 0.04, "bias": {DecisionCategory.TALENT: 0.15}},
    "franchise-pivot": {"distribution": 0.03, "burn": 1.02, "bias": {DecisionCategory.FINANCE: 0.1}},
}

ARC_FAILED_EFFECTS: dict[str, dict] = {
    "awards-circuit": {"talent": -0.04, "momentum": -1},
    "exhibitor-war": {"distribution": -0.05, "decay": 0.2},
    "financier-control": {"burn": 1.04, "talent": -0.03},
    "leak-piracy": {"decay": 0.35, "distribution": -0.03},
    "talent-meltdown": {"talent": -0.08, "bias": {DecisionCategory.TALENT: 0.08}},
    "franchise-pivot": {"burn": 0.99, "distribution": -0.02},
}

# -----------------------------------------------------------------------------
# Rivals
# -----------------------------------------------------------------------------

RIVAL_HEAT_BIAS: dict[RivalPersonality, float] = {
    RivalPersonality.BLOCKBUSTER_FACTORY: 0.8,
    RivalPersonality.PRESTIGE_HUNTER: 0.5,
    RivalPersonality.GENRE_SPECIALIST: 0.2,
    RivalPersonality.STREAMING_FIRST: -0.2,
    RivalPersonality.SCRAPPY_UPSTART: 0.0,
}

RIVAL_PROFILES: dict[RivalPersonality, dict] = {
    RivalPersonality.BLOCKBUSTER_FACTORY: {
        "arc_pressure": {"exhibitor-war": 0.6, "franchise-pivot": 0.5, "leak-piracy": 0.2},
        "talent_poach_chance": 0.32,
        "calendar_move_chance": 0.4,
        "conflict_push": 0.5,
        "signature_move_chance": 0.22,
        "budget_scale": 1.4,
        "hype_scale": 1.25,
    },
    RivalPersonality.PRESTIGE_HUNTER: {
        "arc_pressure": {"awards-circuit": 0.6, "financier-control": 0.2, "talent-meltdown": 0.2},
        "talent_poach_chance": 0.28,
        "calendar_move_chance": 0.24,
        "conflict_push": 0.2,
        "signature_move_chance": 0.2,
        "budget_scale": 0.9,
        "hype_scale": 1.05,
    },
    RivalPersonality.GENRE_SPECIALIST: {
        "arc_pressure": {"talent-meltdown": 0.45, "leak-piracy": 0.25},
        "talent_poach_chance": 0.38,
        "calendar_move_chance": 0.3,
        "conflict_push": 0.28,
        "signature_move_chance": 0.18,
        "budget_scale": 1.05,
        "hype_scale": 1.1,
    },
    RivalPersonality.STREAMING_FIRST: {
        "arc_pressure": {"exhibitor-war": 0.3, "financier-control": 0.35, "franchise-pivot": 0.2},
        "talent_poach_chance": 0.24,
        "calendar_move_chance": 0.18,
        "conflict_push": 0.18,
        "signature_move_chance": 0.24,
        "budget_scale": 0.85,
        "hype_scale": 0.95,
    },
    RivalPersonality.SCRAPPY_UPSTART: {
        "arc_pressure": {"talent-meltdown": 0.3, "leak-piracy": 0.3, "financier-control": 0.25},
        "talent_poach_chance": 0.3,
        "calendar_move_chance": 0.26,
        "conflict_push": 0.3,
        "signature_move_chance": 0.2,
        "budget_scale": 0.8,
        "hype_scale": 1.15,
    },
}

# -----------------------------------------------------------------------------
# Milestones
# -----------------------------------------------------------------------------

MILESTONE_LABELS: dict[MilestoneId, tuple[str, str]] = {
    MilestoneId.FIRST_HIT: ("First Hit", "Release your first film with at least 1.5x ROI."),
    MilestoneId.FIRST_BLOCKBUSTER: ("First Blockbuster", "Release your first film with at least 3.0x ROI."),
    MilestoneId.BOX_OFFICE_100M: ("$100M Club", "Push a single title past $100M final gross."),
    MilestoneId.LIFETIME_REVENUE_1B: ("$1B Lifetime Revenue", "Reach $1B cumulative box office across all releases."),
    MilestoneId.HIGHEST_GROSSING_FILM: ("New House Record", "Set a new highest-grossing film record."),
    MilestoneId.LOWEST_GROSSING_FILM: ("Rough Landing", "Set a new lowest-grossing film record."),
}


def release_outcome_from_roi(roi: float) -> ReleaseOutcome:
    if roi >= 3:
        return ReleaseOutcome.BLOCKBUSTER
    if roi >= 1:
        return ReleaseOutcome.HIT
    return ReleaseOutcome.FLOP

# -----------------------------------------------------------------------------
# IP marketplace
# -----------------------------------------------------------------------------

IP_TEMPLATES: dict[IpKind, dict] = {
    IpKind.BOOK: {
        "quality_bonus": 0.6, "hype_bonus": 6, "prestige_bonus": 9, "commercial_bonus": 4,
        "genre": Genre.DRAMA, "names": ["The Ash Archive", "Vanta County", "Glass Orchard"],
        "major": False, "cost_range": (280_000, 620_000),
    },
    IpKind.GAME: {
        "quality_bonus": 0.3, "hype_bonus": 10, "prestige_bonus": 2, "commercial_bonus": 10,
        "genre": Genre.ACTION, "names": ["Apex Frontier", "Iron District", "Null Protocol"],
        "major": False, "cost_range": (450_000, 980_000),
    },
    IpKind.COMIC: {
        "quality_bonus": 0.4, "hype_bonus": 8, "prestige_bonus": 4, "commercial_bonus": 8,
        "genre": Genre.SCI_FI, "names": ["Solar Ashes", "The Last Orbit", "Zero Testament"],
        "major": False, "cost_range": (380_000, 840_000),
    },
    IpKind.SUPERHERO: {
        "quality_bonus": 0.7, "hype_bonus": 14, "prestige_bonus": 5, "commercial_bonus": 16,
        "genre": Genre.ACTION, "names": ["Vanguard Prime Universe", "Titan Guard Legacy", "Nightshield Protocol"],
        "major": True, "cost_range": (4_000_000, 8_000_000),
    },
}
# Weighted draw; superhero is forced on the half-year refresh
IP_DRAW_POOL: list[IpKind] = [
    IpKind.BOOK, IpKind.GAME, IpKind.COMIC,
    IpKind.BOOK, IpKind.GAME, IpKind.COMIC,
    IpKind.SUPERHERO,
]
IP_MARKET_MAX = 12
IP_OPTION_WEEKS = 10
MAJOR_IP_OPTION_WEEKS = 8
IP_REFRESH_INTERVAL = 6
IP_MAJOR_REFRESH_INTERVAL = 26
IP_SCRIPT_REFRESH_INTERVAL = 7
MAJOR_IP_MIN_DISTRIBUTOR_REP = 55

MAJOR_IP_REQUIRED_RELEASES = 3
MAJOR_IP_DEADLINE_WEEKS = 208
MAJOR_IP_WARNING_WEEKS = 26
MAJOR_IP_BREACH_CASH_PENALTY = 1_400_000
# distributor, talent, audience
MAJOR_IP_BREACH_REPUTATION = (-8, -5, -3)

# -----------------------------------------------------------------------------
# Franchise operations
# -----------------------------------------------------------------------------

FRANCHISE_BRAND_RESET_BASE_COST = 260_000
FRANCHISE_LEGACY_CASTING_BASE_COST = 320_000
FRANCHISE_HIATUS_BASE_COST = 180_000
# Each repeat on the same track costs this much more than the last
FRANCHISE_OP_COST_STEP = 0.5
FRANCHISE_OP_MAX_USES = 3
FRANCHISE_HIATUS_BUFFER_WEEKS = 8
