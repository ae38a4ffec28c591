"""
Pydantic models for Backlot studio state.

All state is versioned for save compatibility.
Designed to serialize to JSON: enums carry plain strings and no record
holds a runtime handle, so a snapshot round-trips through a dict.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar
from uuid import uuid4

from pydantic import BaseModel, Field


def generate_id() -> str:
    return str(uuid4())[:8]


def prefixed_id(kind: str) -> str:
    return f"{kind}-{generate_id()}"


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class Genre(str, Enum):
    ACTION = "action"
    DRAMA = "drama"
    COMEDY = "comedy"
    HORROR = "horror"
    THRILLER = "thriller"
    SCI_FI = "sci_fi"
    ANIMATION = "animation"
    DOCUMENTARY = "documentary"


class ProjectPhase(str, Enum):
    """Pipeline stage. Order of declaration is the only legal order."""
    DEVELOPMENT = "development"
    PRE_PRODUCTION = "pre_production"
    PRODUCTION = "production"
    POST_PRODUCTION = "post_production"
    DISTRIBUTION = "distribution"
    RELEASED = "released"


class ProductionStatus(str, Enum):
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"        # Spend has passed the budget ceiling
    IN_CRISIS = "in_crisis"    # A crisis is open against the project


class FestivalStatus(str, Enum):
    NONE = "none"
    SUBMITTED = "submitted"
    SELECTED = "selected"
    BUZZED = "buzzed"
    SNUBBED = "snubbed"


class ReleaseWindow(str, Enum):
    WIDE_THEATRICAL = "wide_theatrical"
    LIMITED_THEATRICAL = "limited_theatrical"
    STREAMING_EXCLUSIVE = "streaming_exclusive"


class TalentRole(str, Enum):
    DIRECTOR = "director"
    LEAD_ACTOR = "lead_actor"
    SUPPORTING_ACTOR = "supporting_actor"
    CINEMATOGRAPHER = "cinematographer"
    COMPOSER = "composer"


class AgentTier(str, Enum):
    INDEPENDENT = "independent"
    TCA = "tca"
    WMA = "wma"
    AEA = "aea"


class Availability(str, Enum):
    AVAILABLE = "available"
    IN_NEGOTIATION = "in_negotiation"
    ATTACHED = "attached"
    UNAVAILABLE = "unavailable"


class TrustLevel(str, Enum):
    HOSTILE = "hostile"
    WARY = "wary"
    NEUTRAL = "neutral"
    ALIGNED = "aligned"
    LOYAL = "loyal"


class RefusalRisk(str, Enum):
    LOW = "low"
    ELEVATED = "elevated"
    CRITICAL = "critical"


class TalentInteractionKind(str, Enum):
    NEGOTIATION_OPENED = "negotiation_opened"
    NEGOTIATION_SWEETENED = "negotiation_sweetened"
    NEGOTIATION_HARDLINE = "negotiation_hardline"
    NEGOTIATION_DECLINED = "negotiation_declined"
    QUICK_CLOSE_FAILED = "quick_close_failed"
    QUICK_CLOSE_SUCCESS = "quick_close_success"
    DEAL_SIGNED = "deal_signed"
    DEAL_STALLED = "deal_stalled"
    PROJECT_ABANDONED = "project_abandoned"
    PROJECT_RELEASED = "project_released"
    COUNTER_POACH_WON = "counter_poach_won"
    COUNTER_POACH_LOST = "counter_poach_lost"


class RivalPersonality(str, Enum):
    BLOCKBUSTER_FACTORY = "blockbuster_factory"
    PRESTIGE_HUNTER = "prestige_hunter"
    GENRE_SPECIALIST = "genre_specialist"
    STREAMING_FIRST = "streaming_first"
    SCRAPPY_UPSTART = "scrappy_upstart"


class RivalStance(str, Enum):
    HOSTILE = "hostile"
    COMPETITIVE = "competitive"
    NEUTRAL = "neutral"
    RESPECTFUL = "respectful"


class RivalInteractionKind(str, Enum):
    TALENT_POACH = "talent_poach"
    RELEASE_COLLISION = "release_collision"
    PRESTIGE_PRESSURE = "prestige_pressure"
    STREAMING_PRESSURE = "streaming_pressure"
    GUERRILLA_PRESSURE = "guerrilla_pressure"
    TALENT_LOCK = "talent_lock"
    COUNTERPLAY_ESCALATION = "counterplay_escalation"
    FESTIVAL_RIVALRY = "festival_rivalry"
    AWARDS_RIVALRY = "awards_rivalry"
    RELEASE_RETALIATION = "release_retaliation"


class CrisisKind(str, Enum):
    PRODUCTION = "production"
    TALENT_POACHED = "talent_poached"
    RELEASE_CONFLICT = "release_conflict"


class Severity(str, Enum):
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"


class OptionKind(str, Enum):
    STANDARD = "standard"
    TALENT_COUNTER = "talent_counter"
    TALENT_WALK = "talent_walk"
    RELEASE_HOLD = "release_hold"
    RELEASE_SHIFT = "release_shift"


class DecisionCategory(str, Enum):
    CREATIVE = "creative"
    MARKETING = "marketing"
    OPERATIONS = "operations"
    FINANCE = "finance"
    TALENT = "talent"


class EventScope(str, Enum):
    STUDIO = "studio"
    PROJECT = "project"


class ArcStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    FAILED = "failed"


class StudioTier(str, Enum):
    INDIE_STUDIO = "indie_studio"
    ESTABLISHED_INDIE = "established_indie"
    MID_TIER = "mid_tier"
    MAJOR_STUDIO = "major_studio"
    GLOBAL_POWERHOUSE = "global_powerhouse"


class FranchiseStrategy(str, Enum):
    NONE = "none"
    SAFE = "safe"
    BALANCED = "balanced"
    REINVENTION = "reinvention"


class FranchiseOperation(str, Enum):
    BRAND_RESET = "brand_reset"
    LEGACY_CASTING = "legacy_casting"
    HIATUS_PLANNING = "hiatus_planning"


class StudioSpecialization(str, Enum):
    BALANCED = "balanced"
    BLOCKBUSTER = "blockbuster"
    PRESTIGE = "prestige"
    INDIE = "indie"


class DepartmentTrack(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    DISTRIBUTION = "distribution"


class IpKind(str, Enum):
    BOOK = "book"
    GAME = "game"
    COMIC = "comic"
    SUPERHERO = "superhero"


class NegotiationAction(str, Enum):
    SWEETEN_SALARY = "sweeten_salary"
    SWEETEN_BACKEND = "sweeten_backend"
    SWEETEN_PERKS = "sweeten_perks"
    HOLD_FIRM = "hold_firm"


class ChronicleType(str, Enum):
    FILM_RELEASE = "film_release"
    ARC_RESOLUTION = "arc_resolution"
    TIER_CHANGE = "tier_change"
    AWARDS_OUTCOME = "awards_outcome"
    FESTIVAL_OUTCOME = "festival_outcome"


class Impact(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class MilestoneId(str, Enum):
    FIRST_HIT = "first_hit"
    FIRST_BLOCKBUSTER = "first_blockbuster"
    BOX_OFFICE_100M = "box_office_100m"
    LIFETIME_REVENUE_1B = "lifetime_revenue_1b"
    HIGHEST_GROSSING_FILM = "highest_grossing_film"
    LOWEST_GROSSING_FILM = "lowest_grossing_film"


class ReleaseOutcome(str, Enum):
    BLOCKBUSTER = "blockbuster"
    HIT = "hit"
    FLOP = "flop"


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------

class ActionResult(BaseModel):
    """Outcome of any mutating engine call. Domain failures never raise."""
    success: bool
    message: str
    project_id: str | None = None


class WeekSummary(BaseModel):
    week: int
    cash_delta: float
    events: list[str] = Field(default_factory=list)
    has_pending_crises: bool = False
    decision_queue_count: int = 0


# -----------------------------------------------------------------------------
# Projects
# -----------------------------------------------------------------------------

class ProjectBudget(BaseModel):
    ceiling: float
    above_the_line: float = 0
    below_the_line: float = 0
    post_production: float = 0
    contingency: float = 0
    overrun_risk: float = 0.28
    actual_spend: float = 0


class MovieProject(BaseModel):
    """A film moving through the pipeline.

    Release fields stay empty until the project reaches distribution and
    release; talent is held by id only.
    """
    id: str = Field(default_factory=lambda: prefixed_id("project"))
    title: str
    genre: Genre
    phase: ProjectPhase = ProjectPhase.DEVELOPMENT
    budget: ProjectBudget
    script_quality: float
    concept_strength: float
    editorial_score: float = 5.0
    prestige: int = 50
    commercial_appeal: int = 50
    originality: int = 50
    controversy: int = 15
    hype_score: float = 8.0
    marketing_budget: float = 0
    production_status: ProductionStatus = ProductionStatus.ON_TRACK
    scheduled_weeks_remaining: int = 6

    director_id: str | None = None
    cast_ids: list[str] = Field(default_factory=list)

    # Development gates and optional actions
    greenlight_approved: bool = False
    greenlight_week: int | None = None
    greenlight_fee_paid: float = 0
    greenlight_locked_ceiling: float | None = None
    sent_back_for_rewrite_count: int = 0
    polish_pass_count: int = 0
    test_screening_completed: bool = False
    test_screening_week: int | None = None
    test_screening_critical_low: float | None = None
    test_screening_critical_high: float | None = None
    test_screening_sentiment: str | None = None
    reshoot_count: int = 0
    tracking_projected_opening: float | None = None
    tracking_confidence: float | None = None
    tracking_leverage_amount: float = 0
    tracking_settled: bool = False

    # Festival circuit
    festival_status: FestivalStatus = FestivalStatus.NONE
    festival_target: str | None = None
    festival_submission_week: int | None = None
    festival_resolution_week: int | None = None
    festival_buzz: float = 0

    # Distribution
    release_window: ReleaseWindow | None = None
    release_week: int | None = None
    distribution_partner: str | None = None
    studio_revenue_share: float = 0.52
    projected_roi: float = 1.0

    # Release outcomes
    opening_weekend_gross: float | None = None
    weekly_gross_history: list[float] = Field(default_factory=list)
    release_weeks_remaining: int = 0
    release_resolved: bool = False
    final_box_office: float | None = None
    critical_score: float | None = None
    audience_score: float | None = None
    awards_nominations: int = 0
    awards_wins: int = 0
    merchandise_weeks_remaining: int = 0
    merchandise_weekly_revenue: float = 0

    # Franchise linkage
    franchise_id: str | None = None
    franchise_episode: int | None = None
    sequel_to_project_id: str | None = None
    franchise_strategy: FranchiseStrategy = FranchiseStrategy.NONE
    franchise_carryover_hype: float | None = None
    adapted_from_ip_id: str | None = None

    @property
    def is_sequel(self) -> bool:
        return self.franchise_id is not None and (self.franchise_episode or 1) > 1


class ScriptPitch(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("script"))
    title: str
    genre: Genre
    asking_price: float
    script_quality: float
    concept_strength: float
    logline: str = ""
    expires_in_weeks: int = 3


class DistributionOffer(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("deal"))
    project_id: str
    partner: str
    release_window: ReleaseWindow
    minimum_guarantee: float
    p_and_a_commitment: float
    revenue_share_to_studio: float
    projected_opening_override: float = 1.0
    counter_attempts: int = 0


# -----------------------------------------------------------------------------
# Talent
# -----------------------------------------------------------------------------

class TalentSalary(BaseModel):
    base: float
    backend_points: float
    perks_cost: float


class TalentInteraction(BaseModel):
    week: int
    kind: TalentInteractionKind
    trust_delta: int
    loyalty_delta: int
    note: str
    project_id: str | None = None


class RelationshipMemory(BaseModel):
    trust: int
    loyalty: int
    interaction_history: list[TalentInteraction] = Field(default_factory=list)


class Talent(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("talent"))
    name: str
    role: TalentRole
    star_power: float
    craft_score: float
    genre_fit: dict[Genre, float] = Field(default_factory=dict)
    ego_level: float
    salary: TalentSalary
    agent_tier: AgentTier = AgentTier.INDEPENDENT
    availability: Availability = Availability.AVAILABLE
    unavailable_until_week: int | None = None
    attached_project_id: str | None = None
    reputation: int = 60
    studio_relationship: float = 0.3
    relationship_memory: RelationshipMemory | None = None


class PlayerNegotiation(BaseModel):
    """An open offer to one talent for one project."""
    talent_id: str
    project_id: str
    opened_week: int
    rounds: int = 0
    hold_line_count: int = 0
    offer_salary_multiplier: float = 1.0
    offer_backend_points: float = 0
    offer_perks_budget: float = 0
    last_computed_chance: float = 0
    last_response: str = ""


# -----------------------------------------------------------------------------
# Crises and decisions
# -----------------------------------------------------------------------------

class EffectBundle(BaseModel):
    """One selectable option on a crisis or decision.

    Every delta is optional and defaults to "no change"; a single routine
    applies the whole bundle to its target.
    """
    id: str = Field(default_factory=lambda: prefixed_id("opt"))
    label: str
    preview: str = ""
    cash_delta: float = 0
    schedule_delta: int = 0
    hype_delta: float = 0
    script_quality_delta: float = 0
    studio_heat_delta: float = 0
    critics_delta: float = 0
    talent_rep_delta: float = 0
    distributor_rep_delta: float = 0
    audience_delta: float = 0
    release_week_shift: int = 0
    marketing_delta: float = 0
    overrun_risk_delta: float = 0
    set_flag: str | None = None
    clear_flag: str | None = None
    set_arc_stage: int | None = None
    advance_arc_by: int | None = None
    resolve_arc: bool = False
    fail_arc: bool = False

    # Crisis-only routing
    kind: OptionKind = OptionKind.STANDARD
    talent_id: str | None = None
    rival_studio_id: str | None = None
    premium_multiplier: float | None = None


class CrisisEvent(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("crisis"))
    project_id: str
    kind: CrisisKind = CrisisKind.PRODUCTION
    title: str
    severity: Severity = Severity.ORANGE
    body: str
    options: list[EffectBundle]


class DecisionItem(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("decision"))
    project_id: str | None = None
    title: str
    body: str
    category: DecisionCategory = DecisionCategory.OPERATIONS
    source: str = "event"
    weeks_until_expiry: int = 2
    options: list[EffectBundle]
    arc_id: str | None = None
    template_id: str | None = None
    on_expire_clear_flag: str | None = None


# -----------------------------------------------------------------------------
# Narrative state
# -----------------------------------------------------------------------------

class StoryFlags(BaseModel):
    """Counted narrative flags.

    Absent or zero means unset. A counter can be stacked by repeated
    triggers and peeled back one layer at a time on expiry.
    """
    counts: dict[str, int] = Field(default_factory=dict)

    def is_set(self, flag: str) -> bool:
        return self.counts.get(flag, 0) > 0

    def count(self, flag: str) -> int:
        return self.counts.get(flag, 0)

    def set(self, flag: str) -> int:
        self.counts[flag] = self.counts.get(flag, 0) + 1
        return self.counts[flag]

    def clear(self, flag: str) -> None:
        self.counts.pop(flag, None)

    def decrement(self, flag: str) -> int:
        current = self.counts.get(flag, 0)
        if current <= 1:
            self.counts.pop(flag, None)
            return 0
        self.counts[flag] = current - 1
        return current - 1


class StoryArcState(BaseModel):
    stage: int = 0
    status: ArcStatus = ArcStatus.ACTIVE
    last_updated_week: int = 0


class GenreCycleState(BaseModel):
    demand: float = 1.0
    momentum: float = 0.0
    shock_direction: str | None = None     # "surge" or "slump"
    shock_strength: float | None = None
    shock_label: str | None = None
    shock_until_week: int | None = None


# -----------------------------------------------------------------------------
# Rivals
# -----------------------------------------------------------------------------

class RivalFilm(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("r-film"))
    title: str
    genre: Genre
    release_week: int
    release_window: ReleaseWindow = ReleaseWindow.WIDE_THEATRICAL
    estimated_budget: float
    hype_score: float


class RivalInteraction(BaseModel):
    week: int
    kind: RivalInteractionKind
    hostility_delta: int
    respect_delta: int
    note: str
    project_id: str | None = None


class RivalMemory(BaseModel):
    hostility: float
    respect: float
    retaliation_bias: float = 50
    cooperation_bias: float = 45
    interaction_history: list[RivalInteraction] = Field(default_factory=list)


class RivalStudio(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("rival"))
    name: str
    personality: RivalPersonality
    studio_heat: float
    locked_talent_ids: list[str] = Field(default_factory=list)
    upcoming_releases: list[RivalFilm] = Field(default_factory=list)
    memory: RivalMemory | None = None


class IndustryNewsItem(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("news"))
    week: int
    studio_name: str
    headline: str
    heat_delta: float


# -----------------------------------------------------------------------------
# Franchise, history and records
# -----------------------------------------------------------------------------

class FranchiseTrack(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("franchise"))
    name: str
    genre: Genre
    root_project_id: str
    project_ids: list[str] = Field(default_factory=list)
    released_project_ids: list[str] = Field(default_factory=list)
    active_project_id: str | None = None
    momentum: float = 50
    fatigue: float = 0
    last_release_week: int | None = None
    cadence_buffer_weeks: int = 0
    brand_reset_count: int = 0
    legacy_casting_campaign_count: int = 0
    hiatus_plan_count: int = 0


class OwnedIp(BaseModel):
    """An IP option on the marketplace, and the rights contract once bought."""
    id: str = Field(default_factory=lambda: prefixed_id("ip"))
    name: str
    kind: IpKind
    genre: Genre
    acquisition_cost: float
    quality_bonus: float
    hype_bonus: float
    prestige_bonus: float
    commercial_bonus: float
    expires_week: int
    used_project_id: str | None = None
    major: bool = False
    owned: bool = False
    # Major-IP release contract
    required_releases: int = 0
    remaining_releases: int = 0
    deadline_week: int | None = None
    breached: bool = False


class ReleaseReport(BaseModel):
    project_id: str
    title: str
    week_resolved: int
    total_budget: float
    total_gross: float
    studio_net: float
    profit: float
    roi: float
    opening_weekend: float
    critics: float
    audience: float
    outcome: ReleaseOutcome
    was_record_opening: bool = False
    heat_delta: float = 0.0
    breakdown: dict[str, float] = Field(default_factory=dict)


class MilestoneRecord(BaseModel):
    id: MilestoneId
    title: str
    description: str
    unlocked_week: int
    value: float | None = None


class ChronicleEntry(BaseModel):
    id: str = Field(default_factory=lambda: prefixed_id("chronicle"))
    week: int
    type: ChronicleType
    headline: str
    detail: str | None = None
    impact: Impact = Impact.NEUTRAL


class AwardsProjectResult(BaseModel):
    project_id: str
    title: str
    nominations: int
    wins: int
    score: float


class AwardsSeasonRecord(BaseModel):
    year: int
    week: int
    show_name: str
    headline: str
    results: list[AwardsProjectResult] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Root
# -----------------------------------------------------------------------------

class ReputationPillars(BaseModel):
    critics: float = 12
    talent: float = 12
    distributor: float = 12
    audience: float = 12

    PILLARS: ClassVar[tuple[str, ...]] = ("critics", "talent", "distributor", "audience")


class StudioState(BaseModel):
    """Serialisable root of a studio run.

    Derived values (heat, tier, capacity, legacy score) are computed by
    the manager and never stored.
    """
    SCHEMA_VERSION: ClassVar[int] = 1

    studio_name: str = "Backlot Pictures"
    cash: float = 50_000_000
    reputation: ReputationPillars = Field(default_factory=ReputationPillars)
    current_week: int = 1
    turn_length_weeks: int = 1

    active_projects: list[MovieProject] = Field(default_factory=list)
    talent_pool: list[Talent] = Field(default_factory=list)
    script_market: list[ScriptPitch] = Field(default_factory=list)
    pending_crises: list[CrisisEvent] = Field(default_factory=list)
    decision_queue: list[DecisionItem] = Field(default_factory=list)
    distribution_offers: list[DistributionOffer] = Field(default_factory=list)
    player_negotiations: list[PlayerNegotiation] = Field(default_factory=list)
    rivals: list[RivalStudio] = Field(default_factory=list)
    industry_news_log: list[IndustryNewsItem] = Field(default_factory=list)

    story_flags: StoryFlags = Field(default_factory=StoryFlags)
    story_arcs: dict[str, StoryArcState] = Field(default_factory=dict)
    recent_decision_categories: list[DecisionCategory] = Field(default_factory=list)
    genre_cycles: dict[Genre, GenreCycleState] = Field(default_factory=dict)

    franchises: list[FranchiseTrack] = Field(default_factory=list)
    release_reports: list[ReleaseReport] = Field(default_factory=list)
    milestones: list[MilestoneRecord] = Field(default_factory=list)
    chronicle: list[ChronicleEntry] = Field(default_factory=list)
    awards_history: list[AwardsSeasonRecord] = Field(default_factory=list)
    awards_seasons_processed: list[int] = Field(default_factory=list)
    pending_release_reveals: list[str] = Field(default_factory=list)
    pending_final_release_reveals: list[str] = Field(default_factory=list)

    lifetime_revenue: float = 0
    lifetime_expenses: float = 0
    lifetime_profit: float = 0
    is_bankrupt: bool = False
    bankruptcy_reason: str | None = None
    consecutive_low_cash_weeks: int = 0
    first_session_complete: bool = False

    executive_network_level: int = 0
    marketing_team_level: int = 1
    studio_capacity_upgrades: int = 0
    last_tier: StudioTier = StudioTier.INDIE_STUDIO

    studio_specialization: StudioSpecialization = StudioSpecialization.BALANCED
    specialization_committed_week: int | None = None
    department_levels: dict[DepartmentTrack, int] = Field(
        default_factory=lambda: {track: 0 for track in DepartmentTrack}
    )
    exclusive_distribution_partner: str | None = None
    exclusive_partner_until_week: int | None = None
    owned_ips: list[OwnedIp] = Field(default_factory=list)

    def get_project(self, project_id: str | None) -> MovieProject | None:
        if not project_id:
            return None
        for project in self.active_projects:
            if project.id == project_id:
                return project
        return None

    def get_talent(self, talent_id: str | None) -> Talent | None:
        if not talent_id:
            return None
        for talent in self.talent_pool:
            if talent.id == talent_id:
                return talent
        return None

    def get_rival(self, rival_id: str | None) -> RivalStudio | None:
        if not rival_id:
            return None
        for rival in self.rivals:
            if rival.id == rival_id:
                return rival
        return None

    def get_franchise(self, franchise_id: str | None) -> FranchiseTrack | None:
        if not franchise_id:
            return None
        for franchise in self.franchises:
            if franchise.id == franchise_id:
                return franchise
        return None

    def get_ip(self, ip_id: str | None) -> OwnedIp | None:
        if not ip_id:
            return None
        for ip in self.owned_ips:
            if ip.id == ip_id:
                return ip
        return None

    def released_count(self) -> int:
        return sum(1 for p in self.active_projects if p.phase == ProjectPhase.RELEASED)
