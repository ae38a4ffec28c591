"""
Week scheduler for Backlot.

Sequences one simulated week in a fixed order and reports it as a
WeekSummary. The orchestrator delegates every pass to its subsystem; it
owns only the ordering, the crisis gate and the before/after bookkeeping.

    burn -> hype decay -> genre cycles -> festivals -> talent availability
    -> decision/script expiry -> script refill -> IP listings
    -> distribution windows
    -> crises -> rival talent -> negotiations -> decisions
    -> released films -> rival heat -> rival calendar -> signature moves
    -> memory reversion -> projections -> week += 1 -> awards
    -> major-IP deadlines -> low cash -> tier -> bankruptcy

The crisis gate is the one hard failure in the engine: ending a week while
any crisis is pending raises CrisisGateError instead of returning a result.

Usage:
    turns = TurnOrchestrator(manager)
    summary = turns.end_week()
    result = turns.advance_until_decision(26)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from ..constants import (
    AUTO_ADVANCE_DEFAULT_WEEKS,
    AUTO_ADVANCE_MAX_WEEKS,
    FIRST_SESSION_COMPLETE_WEEK,
    IP_MAJOR_REFRESH_INTERVAL,
    IP_REFRESH_INTERVAL,
    LOW_CASH_WARNING_THRESHOLD,
    TIER_LABELS,
    TIER_ORDER,
    clamp,
)
from ..state.event_bus import EventType
from ..state.schema import ChronicleType, Impact, StudioTier, WeekSummary

if TYPE_CHECKING:
    from ..state.event_bus import EventBus
    from ..state.schema import StudioState
    from .crises import CrisisSystem
    from .events import ArcOutcomeModifiers, EventSystem
    from .finance import FinanceSystem
    from .ip import IpSystem
    from .lifecycle import LifecycleSystem
    from .market import MarketSystem
    from .releases import ReleaseSystem
    from .rivals import RivalSystem
    from .talent import TalentSystem

logger = logging.getLogger(__name__)

STABLE_WEEK = "Stable week. No major surprises."
TURN_PAUSED = "Turn paused: resolve crisis before advancing further."


class TurnError(Exception):
    """Error during week processing."""
    pass


class CrisisGateError(TurnError):
    """The week was ended while crises were still pending."""
    def __init__(self, pending: int = 0):
        self.pending = pending
        super().__init__("Resolve all crises before ending the week.")


class AutoAdvanceReason(str, Enum):
    """Why an auto-advance stopped."""
    DECISION = "decision"
    CRISIS = "crisis"
    RELEASE = "release"
    LIMIT = "limit"
    BLOCKED = "blocked"
    BANKRUPT = "bankrupt"


@dataclass
class AutoAdvanceResult:
    success: bool
    advanced_weeks: int
    reason: AutoAdvanceReason
    message: str


class TurnHost(Protocol):
    """Everything a week touches."""

    state: StudioState
    bus: EventBus

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def talent(self) -> TalentSystem: ...

    @property
    def lifecycle(self) -> LifecycleSystem: ...

    @property
    def crises(self) -> CrisisSystem: ...

    @property
    def events(self) -> EventSystem: ...

    @property
    def rivals(self) -> RivalSystem: ...

    @property
    def market(self) -> MarketSystem: ...

    @property
    def releases(self) -> ReleaseSystem: ...

    @property
    def ip(self) -> IpSystem: ...

    @property
    def tier(self) -> StudioTier: ...

    def arc_outcome_modifiers(self) -> ArcOutcomeModifiers: ...

    def add_chronicle_entry(
        self, type: ChronicleType, headline: str, detail: str | None = None, impact: Impact = Impact.NEUTRAL
    ) -> None: ...


class TurnOrchestrator:
    """
    Sequences the weekly pipeline. Delegates, never resolves.

    NOT responsible for:
    - Any game rule (each subsystem owns its own)
    - Persistence (StudioManager.save)
    """

    def __init__(self, manager: TurnHost):
        self.manager = manager
        self.last_summary: WeekSummary | None = None

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    @property
    def can_end_week(self) -> bool:
        return self.manager.crises.can_end_week

    def _check_gate(self) -> None:
        if not self.can_end_week:
            raise CrisisGateError(len(self._state.pending_crises))

    # -------------------------------------------------------------------------
    # Single week
    # -------------------------------------------------------------------------

    def apply_hype_decay(self) -> None:
        step = clamp(self.manager.arc_outcome_modifiers().hype_decay_step, 0.8, 3.2)
        for project in self._state.active_projects:
            project.hype_score = clamp(project.hype_score - step, 0, 100)

    def end_week(self) -> WeekSummary:
        """
        Advance the simulation exactly one week.

        Raises:
            CrisisGateError: if any crisis is unresolved.
        """
        self._check_gate()
        m = self.manager
        state = self._state
        cash_before = state.cash
        events: list[str] = []

        burn = m.finance.apply_weekly_burn()
        if burn > 0:
            events.append(f"Production burn applied: -${round(burn / 1000)}K")

        self.apply_hype_decay()
        m.market.tick_genre_cycles(events)
        m.releases.resolve_festivals(events)
        m.talent.update_availability()
        m.events.tick_expiry(events)
        m.market.tick_expiry(events)
        m.market.refill(events)
        if (state.current_week + 1) % IP_REFRESH_INTERVAL == 0:
            m.ip.refresh_marketplace((state.current_week + 1) % IP_MAJOR_REFRESH_INTERVAL == 0, events)
        m.lifecycle.tick_distribution_windows(events)
        m.crises.roll(events)
        m.rivals.process_talent_acquisitions(events)
        m.talent.process_player_negotiations(events)
        m.events.generate_decisions(events)
        m.releases.tick_released_films(events)
        m.rivals.tick_heat(events)
        m.rivals.process_calendar_moves(events)
        m.rivals.process_signature_moves(events)
        m.rivals.apply_memory_reversion()
        m.lifecycle.refresh_projections()

        state.current_week += 1
        m.releases.process_awards(events)
        m.ip.evaluate_breaches(events)

        if state.cash < LOW_CASH_WARNING_THRESHOLD:
            state.consecutive_low_cash_weeks += 1
        else:
            state.consecutive_low_cash_weeks = 0

        if not state.first_session_complete and state.current_week > FIRST_SESSION_COMPLETE_WEEK:
            state.first_session_complete = True

        self._record_tier_change()
        m.finance.evaluate_bankruptcy(events)

        summary = WeekSummary(
            week=state.current_week,
            cash_delta=state.cash - cash_before,
            events=events or [STABLE_WEEK],
            has_pending_crises=bool(state.pending_crises),
            decision_queue_count=len(state.decision_queue),
        )
        self.last_summary = summary
        logger.debug(f"Week {state.current_week} closed with {len(events)} events, cash delta {summary.cash_delta:,.0f}")
        m.bus.emit(
            EventType.WEEK_ENDED,
            week=state.current_week,
            cash_delta=summary.cash_delta,
            event_count=len(events),
        )
        return summary

    def _record_tier_change(self) -> None:
        state = self._state
        tier = self.manager.tier
        previous = state.last_tier
        if tier == previous:
            return
        promoted = TIER_ORDER.index(tier) > TIER_ORDER.index(previous)
        state.last_tier = tier
        self.manager.add_chronicle_entry(
            ChronicleType.TIER_CHANGE,
            f"{'Promoted to' if promoted else 'Dropped to'} {TIER_LABELS[tier]}",
            impact=Impact.POSITIVE if promoted else Impact.NEGATIVE,
        )
        logger.info(f"Studio tier changed from {previous.value} to {tier.value}")

    # -------------------------------------------------------------------------
    # Multi-week
    # -------------------------------------------------------------------------

    def end_turn(self) -> WeekSummary:
        """Advance turn_length_weeks weeks, pausing early on a crisis."""
        self._check_gate()
        state = self._state
        cash_before = state.cash
        combined: list[str] = []

        for _ in range(state.turn_length_weeks):
            if not self.can_end_week:
                combined.append(TURN_PAUSED)
                break
            combined.extend(self.end_week().events)

        summary = WeekSummary(
            week=state.current_week,
            cash_delta=state.cash - cash_before,
            events=combined or [STABLE_WEEK],
            has_pending_crises=bool(state.pending_crises),
            decision_queue_count=len(state.decision_queue),
        )
        self.last_summary = summary
        return summary

    def _reveal_count(self) -> int:
        state = self._state
        return len(state.pending_release_reveals) + len(state.pending_final_release_reveals)

    def advance_until_decision(self, max_weeks: int = AUTO_ADVANCE_DEFAULT_WEEKS) -> AutoAdvanceResult:
        """
        Keep ending weeks until something needs the player.

        Stops on a new decision, a crisis, a new release reveal, bankruptcy
        or the week limit (clamped to 1..52). Never raises.
        """
        state = self._state
        if not self.can_end_week:
            return AutoAdvanceResult(
                False, 0, AutoAdvanceReason.BLOCKED, "Resolve active crises before auto-advancing."
            )
        if state.is_bankrupt:
            return AutoAdvanceResult(
                False, 0, AutoAdvanceReason.BANKRUPT, state.bankruptcy_reason or "Studio is bankrupt."
            )

        decision_start = len(state.decision_queue)
        reveal_start = self._reveal_count()
        week_start = state.current_week
        limit = max(1, min(AUTO_ADVANCE_MAX_WEEKS, round(max_weeks)))

        for _ in range(limit):
            if not self.can_end_week or state.is_bankrupt:
                break
            self.end_week()
            advanced = state.current_week - week_start
            if len(state.decision_queue) > decision_start:
                return AutoAdvanceResult(
                    True, advanced, AutoAdvanceReason.DECISION,
                    f"Auto-advanced {advanced} week(s) until a new decision arrived.",
                )
            if not self.can_end_week:
                return AutoAdvanceResult(
                    True, advanced, AutoAdvanceReason.CRISIS,
                    f"Auto-advanced {advanced} week(s) and paused for a crisis.",
                )
            if self._reveal_count() > reveal_start:
                return AutoAdvanceResult(
                    True, advanced, AutoAdvanceReason.RELEASE,
                    f"Auto-advanced {advanced} week(s) until a release update.",
                )
            if state.is_bankrupt:
                return AutoAdvanceResult(
                    True, advanced, AutoAdvanceReason.BANKRUPT,
                    state.bankruptcy_reason or "Studio is bankrupt.",
                )

        advanced = state.current_week - week_start
        return AutoAdvanceResult(
            True, advanced, AutoAdvanceReason.LIMIT,
            f"Auto-advanced {advanced} week(s) with no new blocker.",
        )
