"""
IP marketplace and major-IP contracts.

Books, games and comics come up as time-limited rights options. Buying
the rights lets the studio open an adaptation project seeded from the
property's bonuses. Superhero properties are major IPs: their rights come
with a release contract (a number of installments by a deadline week),
and while a contract is owed the studio may not open unrelated work.
Missing the deadline is a breach with a cash penalty and reputation
damage.

Usage:
    manager.ip.refresh_marketplace(events=events)
    result = manager.ip.acquire_rights(ip_id)
    result = manager.ip.develop_project(ip_id)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from ..constants import (
    INITIAL_BUDGET_BY_GENRE,
    IP_DRAW_POOL,
    IP_MARKET_MAX,
    IP_OPTION_WEEKS,
    IP_TEMPLATES,
    MAJOR_IP_BREACH_CASH_PENALTY,
    MAJOR_IP_BREACH_REPUTATION,
    MAJOR_IP_DEADLINE_WEEKS,
    MAJOR_IP_MIN_DISTRIBUTOR_REP,
    MAJOR_IP_OPTION_WEEKS,
    MAJOR_IP_REQUIRED_RELEASES,
    MAJOR_IP_WARNING_WEEKS,
    clamp,
)
from ..state.event_bus import EventType
from ..state.schema import (
    ActionResult,
    ChronicleType,
    Impact,
    IpKind,
    MovieProject,
    OwnedIp,
    ProjectBudget,
)

if TYPE_CHECKING:
    from ..state.event_bus import EventBus
    from ..state.schema import StudioState
    from .finance import FinanceSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MajorIpCommitment:
    ip_id: str
    name: str
    remaining_releases: int
    required_releases: int
    deadline_week: int | None
    breached: bool
    has_active_installment: bool
    is_blocking: bool


class IpHost(Protocol):
    state: StudioState
    bus: EventBus
    event_rng: Callable[[], float]

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def project_capacity_used(self) -> int: ...

    @property
    def project_capacity_limit(self) -> int: ...

    def adjust_reputation(self, delta: float, pillar: str = "all") -> None: ...

    def add_chronicle_entry(
        self, type: ChronicleType, headline: str, detail: str | None = None, impact: Impact = Impact.NEUTRAL
    ) -> None: ...


class IpSystem:
    """Rights options, adaptations and release contracts."""

    def __init__(self, manager: IpHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    def _pick(self, items: list):
        return items[min(len(items) - 1, math.floor(self.manager.event_rng() * len(items)))]

    # -------------------------------------------------------------------------
    # Marketplace
    # -------------------------------------------------------------------------

    def marketplace(self) -> list[OwnedIp]:
        """Options still open to bid on."""
        week = self._state.current_week
        return [ip for ip in self._state.owned_ips if not ip.owned and ip.expires_week >= week]

    def owned(self) -> list[OwnedIp]:
        return [ip for ip in self._state.owned_ips if ip.owned]

    def refresh_marketplace(self, force_major: bool = False, events: list[str] | None = None) -> OwnedIp | None:
        """Age out lapsed options and list one new property. None if the draw duplicated a listing."""
        state = self._state
        week = state.current_week
        state.owned_ips = [
            ip for ip in state.owned_ips
            if ip.owned or ip.used_project_id or ip.expires_week >= week
        ]

        kind = self._pick([IpKind.SUPERHERO] if force_major else IP_DRAW_POOL)
        template = IP_TEMPLATES[kind]
        low, high = template["cost_range"]
        cost = round(low + self.manager.event_rng() * (high - low))
        name = self._pick(template["names"])
        if any(ip.name == name and ip.used_project_id is None for ip in state.owned_ips):
            return None

        listing = OwnedIp(
            name=name,
            kind=kind,
            genre=template["genre"],
            acquisition_cost=cost,
            quality_bonus=template["quality_bonus"],
            hype_bonus=template["hype_bonus"],
            prestige_bonus=template["prestige_bonus"],
            commercial_bonus=template["commercial_bonus"],
            major=template["major"],
            expires_week=week + (MAJOR_IP_OPTION_WEEKS if template["major"] else IP_OPTION_WEEKS),
        )
        state.owned_ips.insert(0, listing)
        self._trim_listings()
        if events is not None:
            events.append(f"IP market: {name} rights are now in play.")
        return listing

    def _trim_listings(self) -> None:
        # Owned rights are never dropped to make room
        state = self._state
        overflow = len(state.owned_ips) - IP_MARKET_MAX
        for ip in reversed(list(state.owned_ips)):
            if overflow <= 0:
                break
            if not ip.owned and ip.used_project_id is None:
                state.owned_ips.remove(ip)
                overflow -= 1

    # -------------------------------------------------------------------------
    # Rights and adaptations
    # -------------------------------------------------------------------------

    def acquire_rights(self, ip_id: str) -> ActionResult:
        state = self._state
        ip = state.get_ip(ip_id)
        if ip is None:
            return ActionResult(success=False, message="IP opportunity not found.")
        if ip.used_project_id:
            return ActionResult(success=False, message="IP already adapted.")
        if ip.expires_week < state.current_week:
            return ActionResult(success=False, message="IP option has expired.")
        if ip.owned:
            return ActionResult(success=False, message="Rights are already under your control.")
        if ip.major and state.reputation.distributor < MAJOR_IP_MIN_DISTRIBUTOR_REP:
            return ActionResult(
                success=False,
                message=f"Major IP requires stronger distributor reputation ({MAJOR_IP_MIN_DISTRIBUTOR_REP}+).",
            )
        if state.cash < ip.acquisition_cost:
            return ActionResult(success=False, message="Insufficient cash to acquire IP rights.")

        self.manager.finance.adjust_cash(-ip.acquisition_cost)
        ip.owned = True
        message = f"{ip.name} rights secured."
        if ip.major:
            ip.required_releases = MAJOR_IP_REQUIRED_RELEASES
            ip.remaining_releases = MAJOR_IP_REQUIRED_RELEASES
            ip.deadline_week = state.current_week + MAJOR_IP_DEADLINE_WEEKS
            ip.expires_week = ip.deadline_week
            message = (
                f"{ip.name} rights secured. Contract requires {ip.required_releases} "
                f"releases by week {ip.deadline_week}."
            )
        self.manager.finance.evaluate_bankruptcy()
        logger.info(f"Acquired {ip.kind.value} rights to {ip.name} for {ip.acquisition_cost:,.0f}")
        self.manager.bus.emit(EventType.IP_RIGHTS_ACQUIRED, week=state.current_week, ip_id=ip.id, major=ip.major)
        return ActionResult(success=True, message=message)

    def develop_project(self, ip_id: str) -> ActionResult:
        state = self._state
        ip = state.get_ip(ip_id)
        if ip is None:
            return ActionResult(success=False, message="IP not found.")
        if ip.expires_week < state.current_week:
            return ActionResult(success=False, message="IP rights window has expired.")
        if ip.used_project_id:
            return ActionResult(success=False, message="This IP is already in development.")
        if not ip.owned:
            return ActionResult(success=False, message="Acquire rights first.")
        blocking = self.blocking_commitment(exclude_ip_id=ip.id)
        if blocking is not None:
            return ActionResult(
                success=False,
                message=(
                    f"Contract lock: launch the next {blocking.name} installment "
                    "before opening unrelated adaptations."
                ),
            )
        used = self.manager.project_capacity_used
        limit = self.manager.project_capacity_limit
        if used >= limit:
            return ActionResult(
                success=False,
                message=f"Studio capacity reached ({used}/{limit}). Upgrade capacity before adding projects.",
            )

        project = self.project_from_ip(ip)
        state.active_projects.append(project)
        ip.used_project_id = project.id
        logger.info(f"{project.title} opened from {ip.name}")
        return ActionResult(
            success=True,
            message=f"{project.title} entered development from {ip.name}.",
            project_id=project.id,
        )

    @staticmethod
    def project_from_ip(ip: OwnedIp) -> MovieProject:
        ceiling = round(INITIAL_BUDGET_BY_GENRE[ip.genre] * (1.3 if ip.major else 1.05))
        return MovieProject(
            title=f"{ip.name}: Adaptation",
            genre=ip.genre,
            budget=ProjectBudget(
                ceiling=ceiling,
                above_the_line=ceiling * 0.3,
                below_the_line=ceiling * 0.5,
                post_production=ceiling * 0.15,
                contingency=ceiling * 0.1,
                overrun_risk=0.27,
                actual_spend=round(ip.acquisition_cost * 0.4),
            ),
            script_quality=clamp(6.1 + ip.quality_bonus, 0, 9.2),
            concept_strength=clamp(6.4 + ip.commercial_bonus * 0.12, 0, 9.5),
            hype_score=clamp(8 + ip.hype_bonus, 0, 100),
            scheduled_weeks_remaining=6,
            prestige=int(clamp(40 + ip.prestige_bonus, 0, 100)),
            commercial_appeal=int(clamp(45 + ip.commercial_bonus, 0, 100)),
            originality=int(clamp(round(38 + ip.quality_bonus * 5), 0, 100)),
            controversy=10,
            adapted_from_ip_id=ip.id,
        )

    # -------------------------------------------------------------------------
    # Major-IP contracts
    # -------------------------------------------------------------------------

    def _has_active_installment(self, ip: OwnedIp) -> bool:
        return any(
            p.adapted_from_ip_id == ip.id and not p.release_resolved
            for p in self._state.active_projects
        )

    def major_commitments(self) -> list[MajorIpCommitment]:
        """Owned major IPs, soonest deadline first."""
        contracts = [ip for ip in self._state.owned_ips if ip.major and ip.owned and ip.required_releases > 0]
        contracts.sort(key=lambda ip: ip.deadline_week if ip.deadline_week is not None else math.inf)
        commitments = []
        for ip in contracts:
            active = self._has_active_installment(ip)
            commitments.append(
                MajorIpCommitment(
                    ip_id=ip.id,
                    name=ip.name,
                    remaining_releases=ip.remaining_releases,
                    required_releases=ip.required_releases,
                    deadline_week=ip.deadline_week,
                    breached=ip.breached,
                    has_active_installment=active,
                    is_blocking=not ip.breached and ip.remaining_releases > 0 and not active,
                )
            )
        return commitments

    def blocking_commitment(self, exclude_ip_id: str | None = None) -> MajorIpCommitment | None:
        return next(
            (c for c in self.major_commitments() if c.is_blocking and c.ip_id != exclude_ip_id),
            None,
        )

    def record_release(self, project: MovieProject, events: list[str]) -> None:
        """Count a closed run against its major-IP contract."""
        state = self._state
        ip = state.get_ip(project.adapted_from_ip_id)
        if ip is None or not ip.major or ip.breached or ip.remaining_releases <= 0:
            return
        ip.remaining_releases -= 1
        delivered = ip.required_releases - ip.remaining_releases
        if ip.remaining_releases == 0:
            events.append(
                f"{ip.name} contract fulfilled ({delivered}/{ip.required_releases} releases delivered)."
            )
            self.manager.add_chronicle_entry(
                ChronicleType.ARC_RESOLUTION,
                f"{ip.name} contract fulfilled",
                detail=f"{delivered} of {ip.required_releases} releases delivered",
                impact=Impact.POSITIVE,
            )
            return

        events.append(
            f"{ip.name} contract progress: {delivered}/{ip.required_releases} delivered. "
            f"{ip.remaining_releases} release(s) remain by week {ip.deadline_week}."
        )
        weeks_left = (ip.deadline_week or state.current_week) - state.current_week
        if weeks_left <= MAJOR_IP_WARNING_WEEKS:
            events.append(f"{ip.name} contract deadline is {max(0, weeks_left)} week(s) away.")

    def evaluate_breaches(self, events: list[str]) -> None:
        state = self._state
        for ip in state.owned_ips:
            if not ip.major or not ip.owned or ip.breached or ip.remaining_releases <= 0:
                continue
            if ip.deadline_week is None or state.current_week <= ip.deadline_week:
                continue

            delivered = ip.required_releases - ip.remaining_releases
            ip.breached = True
            ip.remaining_releases = 0
            self.manager.finance.adjust_cash(-MAJOR_IP_BREACH_CASH_PENALTY)
            distributor, talent, audience = MAJOR_IP_BREACH_REPUTATION
            self.manager.adjust_reputation(distributor, "distributor")
            self.manager.adjust_reputation(talent, "talent")
            self.manager.adjust_reputation(audience, "audience")
            events.append(
                f"{ip.name} major-IP contract breached ({delivered}/{ip.required_releases} delivered). "
                f"Penalty {MAJOR_IP_BREACH_CASH_PENALTY:,} and reputation damage applied."
            )
            self.manager.add_chronicle_entry(
                ChronicleType.ARC_RESOLUTION,
                f"{ip.name} contract default",
                detail=f"{delivered} of {ip.required_releases} releases delivered",
                impact=Impact.NEGATIVE,
            )
            logger.warning(f"{ip.name} contract breached at week {state.current_week}")
            self.manager.bus.emit(EventType.IP_CONTRACT_BREACHED, week=state.current_week, ip_id=ip.id)
