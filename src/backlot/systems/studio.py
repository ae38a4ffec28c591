"""
Studio identity for Backlot.

Three long-lived studio choices sit outside any single project:

- specialization (balanced, blockbuster, prestige, indie) biases opening,
  critical reception, burn, awards campaigns and distribution leverage
- department investment (development, production, distribution) buys
  permanent levels that trim greenlight fees, burn and offer terms
- an exclusive distribution partner improves that partner's offers for
  half a year
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from ..constants import (
    DEPARTMENT_LABELS,
    DEPARTMENT_MAX_LEVEL,
    DEPARTMENT_STEP_COST,
    EXCLUSIVE_PARTNER_COST,
    EXCLUSIVE_PARTNER_WEEKS,
    PRODUCTION_BURN_CUT,
    PRODUCTION_EFFICIENCY_RANGE,
    SPECIALIZATION_PIVOT_COST,
    SPECIALIZATION_PROFILES,
    clamp,
)
from ..state.schema import ActionResult, DepartmentTrack, StudioSpecialization

if TYPE_CHECKING:
    from ..state.schema import StudioState
    from .finance import FinanceSystem

logger = logging.getLogger(__name__)


def studio_burn_factor(state: StudioState) -> float:
    """Specialization burn bias times production department efficiency."""
    _, _, burn, _, _ = SPECIALIZATION_PROFILES[state.studio_specialization]
    production = state.department_levels.get(DepartmentTrack.PRODUCTION, 0)
    low, high = PRODUCTION_EFFICIENCY_RANGE
    return burn * clamp(1 - production * PRODUCTION_BURN_CUT, low, high)


def _thousands(amount: int) -> str:
    return f"{round(amount / 1000)}K"


class StudioHost(Protocol):
    state: StudioState

    @property
    def finance(self) -> FinanceSystem: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...


class StudioSystem:
    """Specialization, departments and the exclusive partner."""

    def __init__(self, manager: StudioHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    # -------------------------------------------------------------------------
    # Specialization
    # -------------------------------------------------------------------------

    def set_specialization(self, specialization: StudioSpecialization) -> ActionResult:
        """
        Commit the studio to an identity.

        The first commitment is free. Every later pivot costs cash and
        dents talent and distributor confidence.
        """
        state = self._state
        label = specialization.value
        if state.studio_specialization == specialization:
            return ActionResult(success=False, message=f"{label.title()} specialization is already active.")

        cost = 0 if state.specialization_committed_week is None else SPECIALIZATION_PIVOT_COST
        if cost > 0 and state.cash < cost:
            return ActionResult(
                success=False, message=f"Insufficient cash to pivot specialization ({_thousands(cost)})."
            )

        if cost > 0:
            self.manager.finance.adjust_cash(-cost)
            self.manager.adjust_reputation(-1, "talent")
            self.manager.adjust_reputation(-1, "distributor")
        state.studio_specialization = specialization
        state.specialization_committed_week = state.current_week
        self.manager.finance.evaluate_bankruptcy()
        logger.info(f"Specialization set to {label} in week {state.current_week}")

        if cost > 0:
            message = (
                f"Studio identity pivoted to {label}. "
                "Repositioning cost paid and partner confidence dipped."
            )
        else:
            message = f"Studio identity set to {label}."
        return ActionResult(success=True, message=message)

    # -------------------------------------------------------------------------
    # Departments
    # -------------------------------------------------------------------------

    def department_level(self, track: DepartmentTrack) -> int:
        return self._state.department_levels.get(track, 0)

    def department_upgrade_cost(self, track: DepartmentTrack) -> int:
        return DEPARTMENT_STEP_COST * (self.department_level(track) + 1)

    def invest_department(self, track: DepartmentTrack) -> ActionResult:
        state = self._state
        label = DEPARTMENT_LABELS[track]
        level = self.department_level(track)
        if level >= DEPARTMENT_MAX_LEVEL:
            return ActionResult(success=False, message=f"{label} department is already maxed.")
        cost = self.department_upgrade_cost(track)
        if state.cash < cost:
            return ActionResult(
                success=False, message=f"Insufficient cash to invest in {label} department ({_thousands(cost)})."
            )
        self.manager.finance.adjust_cash(-cost)
        state.department_levels[track] = level + 1
        self.manager.finance.evaluate_bankruptcy()
        return ActionResult(success=True, message=f"{label} department upgraded to level {level + 1}.")

    # -------------------------------------------------------------------------
    # Exclusive distribution partner
    # -------------------------------------------------------------------------

    def active_exclusive_partner(self) -> str | None:
        """The current partner; an expired deal is cleared on read."""
        state = self._state
        partner = state.exclusive_distribution_partner
        until = state.exclusive_partner_until_week
        if partner is None or until is None:
            return None
        if state.current_week > until:
            state.exclusive_distribution_partner = None
            state.exclusive_partner_until_week = None
            return None
        return partner

    def sign_exclusive_partner(self, partner: str) -> ActionResult:
        from .lifecycle import OFFER_TABLE

        state = self._state
        if partner not in {row[0] for row in OFFER_TABLE}:
            return ActionResult(success=False, message="Unknown distribution partner.")
        current = self.active_exclusive_partner()
        if current == partner:
            return ActionResult(success=False, message=f"{partner} partnership is already active.")
        if state.cash < EXCLUSIVE_PARTNER_COST:
            return ActionResult(success=False, message="Insufficient cash for exclusive partnership.")

        self.manager.finance.adjust_cash(-EXCLUSIVE_PARTNER_COST)
        if current is not None:
            self.manager.adjust_reputation(-1, "distributor")
        state.exclusive_distribution_partner = partner
        state.exclusive_partner_until_week = state.current_week + EXCLUSIVE_PARTNER_WEEKS
        self.manager.finance.evaluate_bankruptcy()
        logger.info(f"Exclusive distribution deal with {partner} until week {state.exclusive_partner_until_week}")
        return ActionResult(
            success=True,
            message=(
                f"Signed exclusive distribution alignment with {partner} "
                f"through week {state.exclusive_partner_until_week}."
            ),
        )
