"""
Studio simulation root.

StudioManager owns the StudioState, the four injected random sources,
the event bus, the event deck and the template cooldown index. Game
rules live in the systems; each one is built lazily around the manager
and reaches back into it only through the members its host Protocol
declares.

Usage:
    manager = StudioManager(crisis_rng=lambda: 0.95)
    summary = manager.end_week()

    manager.save("slot-1")
    restored = StudioManager.load_from(manager.store, "slot-1")
"""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from pydantic import ValidationError

from ..constants import (
    AUTO_ADVANCE_DEFAULT_WEEKS,
    CAPACITY_UPGRADE_BASE_COST,
    CAPACITY_UPGRADE_STEP_COST,
    EXECUTIVE_NETWORK_MAX,
    EXECUTIVE_POACH_STEP_COST,
    MARKETING_TEAM_MAX,
    MARKETING_TEAM_STEP_COST,
    STUDIO_NAME_MAX,
    STUDIO_NAME_MIN,
    STUDIO_TIER_REQUIREMENTS,
    TIER_ORDER,
    TIER_PROJECT_CAPACITY,
    TURN_LENGTH_CHOICES,
    clamp,
    round_half_up,
)
from .event_bus import EventBus, EventType, get_event_bus
from .schema import (
    ActionResult,
    ChronicleEntry,
    ChronicleType,
    DepartmentTrack,
    FranchiseOperation,
    FranchiseStrategy,
    Impact,
    NegotiationAction,
    OwnedIp,
    ProjectPhase,
    StudioState,
    StudioSpecialization,
    StudioTier,
    WeekSummary,
)
from .seeds import create_initial_state
from .store import (
    COOLDOWN_PAIRS_KEY,
    LEGACY_COOLDOWN_KEY,
    JsonStudioStore,
    MemoryStudioStore,
    StudioStore,
    build_cooldown_index,
    build_envelope,
    load_envelope,
    sanitize_state,
)

if TYPE_CHECKING:
    from ..content.event_deck import EventTemplate
    from ..systems.actions import ProjectActionSystem
    from ..systems.crises import CrisisSystem
    from ..systems.events import ArcOutcomeModifiers, EventSystem
    from ..systems.finance import FinanceSystem
    from ..systems.ip import IpSystem, MajorIpCommitment
    from ..systems.franchise import FranchiseSystem
    from ..systems.lifecycle import LifecycleSystem, Projection
    from ..systems.market import MarketSystem, PitchEvaluation
    from ..systems.releases import ReleaseSystem
    from ..systems.rivals import RivalSystem
    from ..systems.studio import StudioSystem
    from ..systems.talent import TalentSystem
    from ..systems.turns import AutoAdvanceResult, TurnOrchestrator

logger = logging.getLogger(__name__)

Rng = Callable[[], float]

CHRONICLE_MAX = 100


def _default_rng() -> Rng:
    return random.Random().random


class StudioManager:
    """
    Owns one studio run and exposes the engine's public operations.

    Every mutating operation returns an ActionResult; the only exception
    raised is CrisisGateError from end_week()/end_turn().

    Storage is delegated to a StudioStore implementation:
    - JsonStudioStore for the CLI (file-based)
    - MemoryStudioStore for testing (in-memory)
    """

    def __init__(
        self,
        state: StudioState | None = None,
        *,
        crisis_rng: Rng | None = None,
        event_rng: Rng | None = None,
        negotiation_rng: Rng | None = None,
        rival_rng: Rng | None = None,
        store: StudioStore | Path | str | None = None,
        bus: EventBus | None = None,
        event_deck: list[EventTemplate] | None = None,
        world_seed: int = 0,
    ):
        self.state = state or create_initial_state(world_seed)
        self.crisis_rng = crisis_rng or _default_rng()
        self.event_rng = event_rng or _default_rng()
        self.negotiation_rng = negotiation_rng or _default_rng()
        self.rival_rng = rival_rng or _default_rng()
        self.bus = bus or get_event_bus()

        if isinstance(store, (Path, str)):
            self.store: StudioStore = JsonStudioStore(store)
        else:
            self.store = store or MemoryStudioStore()

        if event_deck is None:
            from ..content.event_deck import get_event_deck
            event_deck = get_event_deck()
        self.event_deck = event_deck

        # Template or title -> week it last fired. Rebuilt from pairs on load.
        self.last_event_week: dict[str, int] = {}

        # Game systems (lazily initialized)
        self._finance: FinanceSystem | None = None
        self._talent: TalentSystem | None = None
        self._lifecycle: LifecycleSystem | None = None
        self._actions: ProjectActionSystem | None = None
        self._franchise: FranchiseSystem | None = None
        self._crises: CrisisSystem | None = None
        self._events: EventSystem | None = None
        self._rivals: RivalSystem | None = None
        self._market: MarketSystem | None = None
        self._releases: ReleaseSystem | None = None
        self._studio: StudioSystem | None = None
        self._ip: IpSystem | None = None
        self._turns: TurnOrchestrator | None = None

        if state is None:
            self.ip.refresh_marketplace()

    # -------------------------------------------------------------------------
    # Systems
    # -------------------------------------------------------------------------

    @property
    def finance(self) -> FinanceSystem:
        if self._finance is None:
            from ..systems.finance import FinanceSystem
            self._finance = FinanceSystem(self)
        return self._finance

    @property
    def talent(self) -> TalentSystem:
        if self._talent is None:
            from ..systems.talent import TalentSystem
            self._talent = TalentSystem(self)
        return self._talent

    @property
    def lifecycle(self) -> LifecycleSystem:
        if self._lifecycle is None:
            from ..systems.lifecycle import LifecycleSystem
            self._lifecycle = LifecycleSystem(self)
        return self._lifecycle

    @property
    def actions(self) -> ProjectActionSystem:
        if self._actions is None:
            from ..systems.actions import ProjectActionSystem
            self._actions = ProjectActionSystem(self)
        return self._actions

    @property
    def franchise(self) -> FranchiseSystem:
        if self._franchise is None:
            from ..systems.franchise import FranchiseSystem
            self._franchise = FranchiseSystem(self)
        return self._franchise

    @property
    def crises(self) -> CrisisSystem:
        if self._crises is None:
            from ..systems.crises import CrisisSystem
            self._crises = CrisisSystem(self)
        return self._crises

    @property
    def events(self) -> EventSystem:
        if self._events is None:
            from ..systems.events import EventSystem
            self._events = EventSystem(self)
        return self._events

    @property
    def rivals(self) -> RivalSystem:
        if self._rivals is None:
            from ..systems.rivals import RivalSystem
            self._rivals = RivalSystem(self)
        return self._rivals

    @property
    def market(self) -> MarketSystem:
        if self._market is None:
            from ..systems.market import MarketSystem
            self._market = MarketSystem(self)
        return self._market

    @property
    def releases(self) -> ReleaseSystem:
        if self._releases is None:
            from ..systems.releases import ReleaseSystem
            self._releases = ReleaseSystem(self)
        return self._releases

    @property
    def studio(self) -> StudioSystem:
        if self._studio is None:
            from ..systems.studio import StudioSystem
            self._studio = StudioSystem(self)
        return self._studio

    @property
    def ip(self) -> IpSystem:
        if self._ip is None:
            from ..systems.ip import IpSystem
            self._ip = IpSystem(self)
        return self._ip

    @property
    def turns(self) -> TurnOrchestrator:
        if self._turns is None:
            from ..systems.turns import TurnOrchestrator
            self._turns = TurnOrchestrator(self)
        return self._turns

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def studio_heat(self) -> int:
        rep = self.state.reputation
        return round_half_up((rep.critics + rep.talent + rep.distributor + rep.audience) / 4)

    @property
    def tier(self) -> StudioTier:
        heat = self.studio_heat
        released = self.state.released_count()
        for tier in reversed(TIER_ORDER):
            need_heat, need_released = STUDIO_TIER_REQUIREMENTS[tier]
            if heat >= need_heat and released >= need_released:
                return tier
        return StudioTier.INDIE_STUDIO

    @property
    def project_capacity_limit(self) -> int:
        return TIER_PROJECT_CAPACITY[self.tier] + self.state.studio_capacity_upgrades

    @property
    def project_capacity_used(self) -> int:
        return sum(1 for p in self.state.active_projects if p.phase != ProjectPhase.RELEASED)

    @property
    def legacy_score(self) -> int:
        cash_score = clamp(self.state.cash / 50_000_000 * 20, 0, 20)
        film_score = min(self.state.released_count() * 4, 30)
        return int(clamp(round_half_up(self.studio_heat * 0.5 + cash_score + film_score), 0, 100))

    @property
    def can_end_week(self) -> bool:
        return self.crises.can_end_week

    def arc_outcome_modifiers(self) -> ArcOutcomeModifiers:
        from ..systems.events import compute_arc_outcome_modifiers
        state = self.state
        return compute_arc_outcome_modifiers(
            state.story_arcs,
            state.executive_network_level,
            state.studio_specialization,
            state.department_levels.get(DepartmentTrack.DISTRIBUTION, 0),
        )

    # -------------------------------------------------------------------------
    # Shared mutations
    # -------------------------------------------------------------------------

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None:
        """Move one reputation pillar, or all four, clamped to 0-100."""
        rep = self.state.reputation
        names = rep.PILLARS if pillar == "all" else (pillar,)
        for name in names:
            setattr(rep, name, clamp(getattr(rep, name) + delta, 0, 100))

    def add_chronicle_entry(
        self,
        type: ChronicleType,
        headline: str,
        detail: str | None = None,
        impact: Impact = Impact.NEUTRAL,
    ) -> None:
        chronicle = self.state.chronicle
        chronicle.insert(
            0,
            ChronicleEntry(
                week=self.state.current_week,
                type=type,
                headline=headline,
                detail=detail,
                impact=impact,
            ),
        )
        del chronicle[CHRONICLE_MAX:]

    # -------------------------------------------------------------------------
    # Week loop
    # -------------------------------------------------------------------------

    def end_week(self) -> WeekSummary:
        return self.turns.end_week()

    def end_turn(self) -> WeekSummary:
        return self.turns.end_turn()

    def advance_until_decision(self, max_weeks: int = AUTO_ADVANCE_DEFAULT_WEEKS) -> AutoAdvanceResult:
        return self.turns.advance_until_decision(max_weeks)

    def estimate_weekly_burn(self) -> float:
        return self.finance.estimate_weekly_burn()

    def resolve_crisis(self, crisis_id: str, option_id: str) -> None:
        self.crises.resolve(crisis_id, option_id)

    def resolve_decision(self, decision_id: str, option_id: str) -> None:
        self.events.resolve_decision(decision_id, option_id)

    # -------------------------------------------------------------------------
    # Scripts and projects
    # -------------------------------------------------------------------------

    def acquire_script(self, script_id: str) -> ActionResult:
        return self.market.acquire_script(script_id)

    def pass_script(self, script_id: str) -> None:
        self.market.pass_script(script_id)

    def evaluate_script_pitch(self, script_id: str) -> PitchEvaluation | None:
        return self.market.evaluate_script_pitch(script_id)

    def advance_project_phase(self, project_id: str) -> ActionResult:
        return self.lifecycle.advance_phase(project_id)

    def set_release_week(self, project_id: str, week: int) -> ActionResult:
        return self.lifecycle.set_release_week(project_id, week)

    def get_projection(self, project_id: str) -> Projection | None:
        return self.lifecycle.projection_for(project_id)

    def abandon_project(self, project_id: str) -> ActionResult:
        return self.actions.abandon(project_id)

    # -------------------------------------------------------------------------
    # Talent
    # -------------------------------------------------------------------------

    def start_talent_negotiation(self, project_id: str, talent_id: str) -> ActionResult:
        return self.talent.start_negotiation(project_id, talent_id)

    def adjust_talent_negotiation(
        self, project_id: str, talent_id: str, action: NegotiationAction
    ) -> ActionResult:
        return self.talent.adjust_negotiation(project_id, talent_id, action)

    def negotiate_and_attach_talent(self, project_id: str, talent_id: str) -> ActionResult:
        """One-shot quick close."""
        return self.talent.quick_close(project_id, talent_id)

    # -------------------------------------------------------------------------
    # Distribution and franchises
    # -------------------------------------------------------------------------

    def accept_distribution_offer(self, project_id: str, offer_id: str) -> ActionResult:
        return self.lifecycle.accept_offer(project_id, offer_id)

    def counter_distribution_offer(self, project_id: str, offer_id: str) -> ActionResult:
        return self.lifecycle.counter_offer(project_id, offer_id)

    def walk_away_distribution(self, project_id: str) -> ActionResult:
        return self.lifecycle.walk_away(project_id)

    def start_sequel(self, base_project_id: str) -> ActionResult:
        return self.franchise.start_sequel(base_project_id)

    def set_franchise_strategy(self, project_id: str, strategy: FranchiseStrategy) -> ActionResult:
        return self.franchise.set_strategy(project_id, strategy)

    def run_franchise_brand_reset(self, project_id: str) -> ActionResult:
        return self.franchise.run_operation(project_id, FranchiseOperation.BRAND_RESET)

    def run_franchise_legacy_casting(self, project_id: str) -> ActionResult:
        return self.franchise.run_operation(project_id, FranchiseOperation.LEGACY_CASTING)

    def run_franchise_hiatus_planning(self, project_id: str) -> ActionResult:
        return self.franchise.run_operation(project_id, FranchiseOperation.HIATUS_PLANNING)

    # -------------------------------------------------------------------------
    # IP rights
    # -------------------------------------------------------------------------

    def refresh_ip_marketplace(self, force_major: bool = False) -> OwnedIp | None:
        return self.ip.refresh_marketplace(force_major)

    def acquire_ip_rights(self, ip_id: str) -> ActionResult:
        return self.ip.acquire_rights(ip_id)

    def develop_project_from_ip(self, ip_id: str) -> ActionResult:
        return self.ip.develop_project(ip_id)

    def major_ip_commitments(self) -> list[MajorIpCommitment]:
        return self.ip.major_commitments()

    # -------------------------------------------------------------------------
    # Studio settings and upgrades
    # -------------------------------------------------------------------------

    def set_turn_length_weeks(self, weeks: int) -> ActionResult:
        normalized = round(weeks)
        if normalized not in TURN_LENGTH_CHOICES:
            low, high = TURN_LENGTH_CHOICES
            return ActionResult(success=False, message=f"Turn length must be {low} or {high} weeks.")
        self.state.turn_length_weeks = normalized
        return ActionResult(
            success=True,
            message=f"Turn length set to {normalized} week{'' if normalized == 1 else 's'}.",
        )

    def set_studio_name(self, name: str) -> ActionResult:
        trimmed = name.strip()
        if len(trimmed) < STUDIO_NAME_MIN:
            return ActionResult(success=False, message="Studio name must be at least 2 characters.")
        sanitized = trimmed[:STUDIO_NAME_MAX]
        self.state.studio_name = sanitized
        return ActionResult(success=True, message=f"Studio renamed to {sanitized}.")

    def poach_executive_team(self) -> ActionResult:
        state = self.state
        if state.executive_network_level >= EXECUTIVE_NETWORK_MAX:
            return ActionResult(success=False, message="Executive network is already maxed.")
        level = state.executive_network_level + 1
        cost = EXECUTIVE_POACH_STEP_COST * level
        if state.cash < cost:
            return ActionResult(success=False, message=f"Insufficient cash for executive poach ({round(cost / 1000)}K).")
        self.finance.adjust_cash(-cost)
        state.executive_network_level = level
        self.adjust_reputation(1, "talent")
        self.finance.evaluate_bankruptcy()
        return ActionResult(success=True, message=f"Executive network upgraded to level {level}.")

    def upgrade_marketing_team(self) -> ActionResult:
        state = self.state
        if state.marketing_team_level >= MARKETING_TEAM_MAX:
            return ActionResult(success=False, message="Marketing team is already maxed.")
        level = state.marketing_team_level + 1
        cost = MARKETING_TEAM_STEP_COST * level
        if state.cash < cost:
            return ActionResult(
                success=False, message=f"Insufficient cash to upgrade marketing team ({round(cost / 1000)}K)."
            )
        self.finance.adjust_cash(-cost)
        state.marketing_team_level = level
        self.finance.evaluate_bankruptcy()
        return ActionResult(success=True, message=f"Marketing team upgraded to level {level}.")

    def set_studio_specialization(self, specialization: StudioSpecialization) -> ActionResult:
        return self.studio.set_specialization(specialization)

    def invest_department(self, track: DepartmentTrack) -> ActionResult:
        return self.studio.invest_department(track)

    def sign_exclusive_distribution_partner(self, partner: str) -> ActionResult:
        return self.studio.sign_exclusive_partner(partner)

    def active_exclusive_partner(self) -> str | None:
        return self.studio.active_exclusive_partner()

    def upgrade_studio_capacity(self) -> ActionResult:
        state = self.state
        level = state.studio_capacity_upgrades + 1
        cost = CAPACITY_UPGRADE_BASE_COST + level * CAPACITY_UPGRADE_STEP_COST
        if state.cash < cost:
            return ActionResult(
                success=False, message=f"Insufficient cash for facility expansion ({round(cost / 1000)}K needed)."
            )
        self.finance.adjust_cash(-cost)
        state.studio_capacity_upgrades = level
        self.finance.evaluate_bankruptcy()
        return ActionResult(
            success=True,
            message=f"Studio capacity expanded. Active slot cap is now {self.project_capacity_limit}.",
        )

    # -------------------------------------------------------------------------
    # Snapshots and persistence
    # -------------------------------------------------------------------------

    def to_snapshot(self) -> dict:
        """Plain-dict state; the cooldown index travels as ordered pairs."""
        snapshot = self.state.model_dump(mode="json")
        snapshot[COOLDOWN_PAIRS_KEY] = [[key, week] for key, week in self.last_event_week.items()]
        return snapshot

    @staticmethod
    def state_from_snapshot(snapshot: dict) -> StudioState:
        fields = {k: v for k, v in snapshot.items() if k not in (COOLDOWN_PAIRS_KEY, LEGACY_COOLDOWN_KEY)}
        return sanitize_state(StudioState.model_validate(fields))

    @classmethod
    def from_snapshot(cls, snapshot: dict, **kwargs) -> StudioManager:
        manager = cls(cls.state_from_snapshot(snapshot), **kwargs)
        manager.last_event_week = build_cooldown_index(snapshot)
        return manager

    def save(self, slot: str = "autosave") -> None:
        self.store.save(slot, build_envelope(self.to_snapshot()))
        logger.info(f"Saved {self.state.studio_name} at week {self.state.current_week} to slot {slot}")
        self.bus.emit(EventType.STUDIO_SAVED, week=self.state.current_week, slot=slot)

    def load(self, slot: str = "autosave") -> bool:
        """Replace the current run with a saved one. False if the slot is unusable."""
        envelope = self.store.load(slot)
        if envelope is None:
            logger.warning(f"No save found in slot {slot}")
            return False
        snapshot = load_envelope(envelope)
        if snapshot is None:
            return False
        try:
            state = self.state_from_snapshot(snapshot)
        except ValidationError as e:
            logger.warning(f"Save in slot {slot} does not match the studio schema: {e}")
            return False
        self.state = state
        self.last_event_week = build_cooldown_index(snapshot)
        logger.info(f"Loaded {self.state.studio_name} at week {self.state.current_week} from slot {slot}")
        self.bus.emit(EventType.STUDIO_LOADED, week=self.state.current_week, slot=slot)
        return True

    @classmethod
    def load_from(cls, store: StudioStore, slot: str = "autosave", **kwargs) -> StudioManager | None:
        """Build a fresh manager around a saved run."""
        manager = cls(store=store, **kwargs)
        if not manager.load(slot):
            return None
        return manager
