"""
Finance ledger for Backlot.

Every cash movement goes through adjust_cash() so the lifetime revenue,
expense and profit ledger stays consistent with the balance. Weekly burn
and the bankruptcy check also live here.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Protocol

from ..constants import PHASE_BURN_MULTIPLIER, round_half_up
from ..state.event_bus import EventType
from ..state.schema import MovieProject, ProductionStatus, ProjectPhase
from .studio import studio_burn_factor

if TYPE_CHECKING:
    from ..state.event_bus import EventBus
    from ..state.schema import StudioState
    from .events import ArcOutcomeModifiers

logger = logging.getLogger(__name__)

BANKRUPTCY_EVENT = "Bankruptcy declared. The studio has run out of operating cash."


class FinanceHost(Protocol):
    """What the ledger needs from the studio."""

    state: StudioState
    bus: EventBus

    def arc_outcome_modifiers(self) -> ArcOutcomeModifiers: ...


class FinanceSystem:
    """Cash, burn and bankruptcy."""

    def __init__(self, manager: FinanceHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def adjust_cash(self, delta: float) -> None:
        """Move cash and record the movement in the lifetime ledger."""
        if not delta or not math.isfinite(delta):
            return
        state = self._state
        if delta > 0:
            state.lifetime_revenue += round_half_up(delta)
        else:
            state.lifetime_expenses += round_half_up(abs(delta))
        state.lifetime_profit = state.lifetime_revenue - state.lifetime_expenses
        state.cash = round_half_up(state.cash + delta)
        if state.is_bankrupt:
            state.cash = max(0, state.cash)

    def evaluate_bankruptcy(self, events: list[str] | None = None) -> bool:
        """
        Declare bankruptcy when cash has run out.

        One-way: once declared it is never cleared. Returns True only on
        the call that made the declaration.
        """
        state = self._state
        if state.is_bankrupt or state.cash > 0:
            return False

        rounded = round_half_up(state.cash)
        state.is_bankrupt = True
        state.cash = max(0, rounded)
        state.bankruptcy_reason = (
            f"Bankruptcy declared at week {state.current_week} with cash ${rounded:,}."
        )
        if events is not None:
            events.append(BANKRUPTCY_EVENT)
        logger.info(state.bankruptcy_reason)
        self.manager.bus.emit(
            EventType.STUDIO_BANKRUPT,
            week=state.current_week,
            reason=state.bankruptcy_reason,
        )
        return True

    # -------------------------------------------------------------------------
    # Burn
    # -------------------------------------------------------------------------

    def project_burn(self, project: MovieProject, burn_multiplier: float | None = None) -> float:
        if project.phase == ProjectPhase.RELEASED:
            return 0.0
        if burn_multiplier is None:
            burn_multiplier = self._burn_multiplier()
        return project.budget.ceiling * PHASE_BURN_MULTIPLIER[project.phase] * burn_multiplier

    def _burn_multiplier(self) -> float:
        return self.manager.arc_outcome_modifiers().burn_multiplier * studio_burn_factor(self._state)

    def estimate_weekly_burn(self) -> float:
        """What apply_weekly_burn() would charge if the week ended now."""
        multiplier = self._burn_multiplier()
        return sum(self.project_burn(p, multiplier) for p in self._state.active_projects)

    def apply_weekly_burn(self) -> float:
        multiplier = self._burn_multiplier()
        total = 0.0
        for project in self._state.active_projects:
            if project.phase == ProjectPhase.RELEASED:
                continue
            burn = self.project_burn(project, multiplier)
            project.budget.actual_spend += burn
            project.scheduled_weeks_remaining = max(0, project.scheduled_weeks_remaining - 1)
            if project.budget.actual_spend > project.budget.ceiling:
                project.production_status = ProductionStatus.AT_RISK
            elif project.production_status != ProductionStatus.IN_CRISIS:
                project.production_status = ProductionStatus.ON_TRACK
            total += burn

        self.adjust_cash(-total)
        logger.debug(f"Weekly burn {total:,.0f} across {len(self._state.active_projects)} projects")
        return total
