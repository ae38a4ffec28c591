"""
Script market and genre demand cycles.

The script market holds a handful of pitches that age out week by week
and is topped back up by re-pitching the seed scripts. Genre demand drifts
each week under momentum, with periodic nudges and surge/slump shocks;
the demand multiplier feeds every opening projection.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from ..constants import (
    COMMERCIAL_APPEAL_BASE,
    COMMERCIAL_APPEAL_DEFAULT,
    CONTROVERSY_BASE,
    CONTROVERSY_DEFAULT,
    GENRE_DEMAND_DRIFT,
    GENRE_DEMAND_RANGE,
    GENRE_MOMENTUM_DRIFT,
    GENRE_MOMENTUM_LIMIT,
    GENRE_NUDGE_INTERVAL,
    GENRE_REPORT_INTERVAL,
    GENRE_SHOCK_DURATION_WEEKS,
    GENRE_SHOCK_INTERVAL,
    GENRE_SHOCK_LIBRARY,
    GENRE_SHOCK_STRENGTH,
    GENRES,
    INITIAL_BUDGET_BY_GENRE,
    IP_SCRIPT_REFRESH_INTERVAL,
    SCRIPT_MARKET_MAX_ADDS,
    SCRIPT_MARKET_TARGET,
    SCRIPT_PRICE_FLOOR,
    clamp,
)
from ..formulas import projected_critical_score, projected_opening_range, projected_roi
from ..state.schema import (
    ActionResult,
    Availability,
    Genre,
    GenreCycleState,
    MovieProject,
    ProjectBudget,
    ScriptPitch,
    TalentRole,
)
from ..state.seeds import SEED_PITCHES

if TYPE_CHECKING:
    from ..state.schema import StudioState
    from .finance import FinanceSystem
    from .ip import IpSystem

logger = logging.getLogger(__name__)

PRESTIGE_GENRES = {Genre.DRAMA, Genre.DOCUMENTARY}
DEFAULT_GENRE_FIT = 0.6


@dataclass(frozen=True)
class PitchEvaluation:
    score: float
    recommendation: str       # strong_buy, conditional or pass
    expected_roi: float
    fit_score: float
    risk_label: str           # low, medium or high


@dataclass(frozen=True)
class GenreSnapshot:
    genre: Genre
    demand: float
    momentum: float
    shock_label: str | None
    shock_direction: str | None
    shock_weeks_remaining: int


class MarketHost(Protocol):
    """What the market needs from the studio."""

    state: StudioState
    event_rng: Callable[[], float]

    @property
    def finance(self) -> FinanceSystem: ...

    @property
    def ip(self) -> IpSystem: ...

    @property
    def project_capacity_used(self) -> int: ...

    @property
    def project_capacity_limit(self) -> int: ...


def project_from_pitch(pitch: ScriptPitch) -> MovieProject:
    """A development project built from an acquired pitch."""
    ceiling = INITIAL_BUDGET_BY_GENRE[pitch.genre]
    return MovieProject(
        title=pitch.title,
        genre=pitch.genre,
        budget=ProjectBudget(
            ceiling=ceiling,
            above_the_line=ceiling * 0.3,
            below_the_line=ceiling * 0.5,
            post_production=ceiling * 0.15,
            contingency=ceiling * 0.1,
            overrun_risk=0.28,
            actual_spend=pitch.asking_price,
        ),
        script_quality=pitch.script_quality,
        concept_strength=pitch.concept_strength,
        hype_score=8,
        scheduled_weeks_remaining=6,
        prestige=int(clamp(round(pitch.script_quality * 7 + (18 if pitch.genre in PRESTIGE_GENRES else 0)), 0, 100)),
        commercial_appeal=int(clamp(
            round(COMMERCIAL_APPEAL_BASE.get(pitch.genre, COMMERCIAL_APPEAL_DEFAULT) + pitch.concept_strength * 3),
            0,
            100,
        )),
        originality=int(clamp(round(pitch.concept_strength * 8 + 10), 0, 100)),
        controversy=CONTROVERSY_BASE.get(pitch.genre, CONTROVERSY_DEFAULT),
    )


class MarketSystem:
    """
    Script pitches and genre demand.

    Usage:
        result = manager.market.acquire_script(script_id)
        manager.market.genre_demand(Genre.HORROR)
    """

    def __init__(self, manager: MarketHost):
        self.manager = manager

    @property
    def _state(self) -> StudioState:
        return self.manager.state

    def _roll(self) -> float:
        return self.manager.event_rng()

    # -------------------------------------------------------------------------
    # Scripts
    # -------------------------------------------------------------------------

    def get_pitch(self, script_id: str) -> ScriptPitch | None:
        return next((p for p in self._state.script_market if p.id == script_id), None)

    def acquire_script(self, script_id: str) -> ActionResult:
        state = self._state
        pitch = self.get_pitch(script_id)
        if pitch is None:
            return ActionResult(success=False, message="Script not found.")
        blocking = self.manager.ip.blocking_commitment()
        if blocking is not None:
            return ActionResult(
                success=False,
                message=(
                    f"Contract lock: launch the next {blocking.name} installment "
                    "before acquiring unrelated scripts."
                ),
            )
        used = self.manager.project_capacity_used
        limit = self.manager.project_capacity_limit
        if used >= limit:
            return ActionResult(
                success=False,
                message=(
                    f"Studio capacity reached ({used}/{limit}). "
                    "Upgrade capacity before adding projects."
                ),
            )
        if state.cash < pitch.asking_price:
            return ActionResult(success=False, message="Insufficient funds for script acquisition.")

        self.manager.finance.adjust_cash(-pitch.asking_price)
        state.script_market = [p for p in state.script_market if p.id != script_id]
        project = project_from_pitch(pitch)
        state.active_projects.append(project)
        logger.info(f"Acquired script {pitch.title} for {pitch.asking_price:,.0f}")
        if state.current_week % IP_SCRIPT_REFRESH_INTERVAL == 0:
            self.manager.ip.refresh_marketplace()
        return ActionResult(success=True, message=f'Acquired "{pitch.title}".', project_id=project.id)

    def pass_script(self, script_id: str) -> None:
        self._state.script_market = [p for p in self._state.script_market if p.id != script_id]

    def tick_expiry(self, events: list[str]) -> None:
        state = self._state
        for pitch in state.script_market:
            pitch.expires_in_weeks -= 1
        expired = [p for p in state.script_market if p.expires_in_weeks < 0]
        if expired:
            state.script_market = [p for p in state.script_market if p.expires_in_weeks >= 0]
            events.append(f"{len(expired)} script offer(s) expired from market.")

    def refill(self, events: list[str]) -> None:
        """Top the market back up to its target size with re-pitched seed scripts."""
        state = self._state
        if len(state.script_market) >= SCRIPT_MARKET_TARGET:
            return

        taken = {p.title for p in state.script_market}
        added = 0
        while len(state.script_market) < SCRIPT_MARKET_TARGET and added < SCRIPT_MARKET_MAX_ADDS:
            pool = [entry for entry in SEED_PITCHES if entry["title"] not in taken] or SEED_PITCHES
            source = pool[min(len(pool) - 1, math.floor(self._roll() * len(pool)))]
            quality_jitter = (self._roll() - 0.5) * 0.6
            concept_jitter = (self._roll() - 0.5) * 0.6
            price_multiplier = 0.88 + self._roll() * 0.28
            pitch = ScriptPitch(
                title=source["title"],
                genre=source["genre"],
                logline=source.get("logline", ""),
                asking_price=max(SCRIPT_PRICE_FLOOR, round(source["asking_price"] * price_multiplier)),
                script_quality=clamp(source["script_quality"] + quality_jitter, 1, 10),
                concept_strength=clamp(source["concept_strength"] + concept_jitter, 1, 10),
                expires_in_weeks=3 + math.floor(self._roll() * 4),
            )
            state.script_market.append(pitch)
            taken.add(pitch.title)
            added += 1

        if added:
            events.append(f"{added} new script offer(s) entered the market.")

    def evaluate_script_pitch(self, script_id: str) -> PitchEvaluation | None:
        pitch = self.get_pitch(script_id)
        if pitch is None:
            return None
        state = self._state
        budget = INITIAL_BUDGET_BY_GENRE[pitch.genre]

        available = [t for t in state.talent_pool if t.availability == Availability.AVAILABLE]
        directors = [t for t in available if t.role == TalentRole.DIRECTOR]
        leads = [t for t in available if t.role == TalentRole.LEAD_ACTOR]
        director = max(directors, key=lambda t: t.craft_score) if directors else None
        lead = max(leads, key=lambda t: t.star_power) if leads else None
        director_fit = director.genre_fit.get(pitch.genre, DEFAULT_GENRE_FIT) if director else DEFAULT_GENRE_FIT
        lead_fit = lead.genre_fit.get(pitch.genre, DEFAULT_GENRE_FIT) if lead else DEFAULT_GENRE_FIT
        fit = clamp((director_fit + lead_fit) / 2, 0, 1)

        critical = projected_critical_score(
            script_quality=pitch.script_quality,
            director_craft=director.craft_score if director else 6,
            lead_actor_craft=lead.craft_score if lead else 6,
            production_spend=budget * 0.8,
            concept_strength=pitch.concept_strength,
            editorial_score=5,
        )
        opening = projected_opening_range(
            genre=pitch.genre,
            hype_score=12,
            star_power=lead.star_power if lead else 5.5,
            marketing_budget=budget * 0.12,
            total_budget=budget,
            seasonal_multiplier=self.genre_demand(pitch.genre),
        )
        roi = projected_roi(
            opening_weekend=opening.midpoint,
            critical_score=critical,
            audience_score=clamp(critical + 4, 0, 100),
            genre=pitch.genre,
            total_cost=budget * 1.12,
        )

        affordability = pitch.asking_price / max(1, state.cash)
        score = clamp(
            critical / 100 * 40
            + clamp(roi / 2.4, 0, 1) * 35
            + fit * 20
            + (1 - clamp(affordability, 0, 1)) * 5,
            0,
            100,
        )
        if score >= 70:
            recommendation = "strong_buy"
        elif score >= 55:
            recommendation = "conditional"
        else:
            recommendation = "pass"
        if affordability > 0.15 or roi < 1:
            risk = "high"
        elif affordability > 0.08 or roi < 1.4:
            risk = "medium"
        else:
            risk = "low"
        return PitchEvaluation(score, recommendation, roi, fit, risk)

    # -------------------------------------------------------------------------
    # Genre cycles
    # -------------------------------------------------------------------------

    def _cycle(self, genre: Genre) -> GenreCycleState:
        cycles = self._state.genre_cycles
        if genre not in cycles:
            cycles[genre] = GenreCycleState()
        return cycles[genre]

    def genre_demand(self, genre: Genre) -> float:
        cycle = self._state.genre_cycles.get(genre)
        return cycle.demand if cycle else 1.0

    def genre_snapshot(self) -> list[GenreSnapshot]:
        """Every genre, hottest first."""
        week = self._state.current_week
        rows = []
        for genre in GENRES:
            cycle = self._state.genre_cycles.get(genre) or GenreCycleState()
            rows.append(
                GenreSnapshot(
                    genre=genre,
                    demand=cycle.demand,
                    momentum=cycle.momentum,
                    shock_label=cycle.shock_label,
                    shock_direction=cycle.shock_direction,
                    shock_weeks_remaining=max(0, (cycle.shock_until_week or week) - week),
                )
            )
        return sorted(rows, key=lambda row: row.demand, reverse=True)

    def tick_genre_cycles(self, events: list[str]) -> None:
        week = self._state.current_week
        low, high = GENRE_DEMAND_RANGE
        for genre in GENRES:
            cycle = self._cycle(genre)
            shocked = cycle.shock_until_week is not None and week <= cycle.shock_until_week
            direction = -1 if cycle.shock_direction == "slump" else 1
            shock = (cycle.shock_strength or 0) * direction if shocked else 0
            drift = (self._roll() - 0.5) * GENRE_DEMAND_DRIFT

            cycle.demand = clamp(cycle.demand + cycle.momentum + drift + shock * 0.55, low, high)
            cycle.momentum = clamp(
                cycle.momentum * 0.88 + (self._roll() - 0.5) * GENRE_MOMENTUM_DRIFT + shock * 0.2,
                -GENRE_MOMENTUM_LIMIT,
                GENRE_MOMENTUM_LIMIT,
            )
            if cycle.shock_until_week is not None and week > cycle.shock_until_week:
                cycle.shock_label = None
                cycle.shock_direction = None
                cycle.shock_strength = None
                cycle.shock_until_week = None

        if week % GENRE_NUDGE_INTERVAL == 0:
            genre = GENRES[min(len(GENRES) - 1, math.floor(self._roll() * len(GENRES)))]
            sign = 1 if self._roll() > 0.5 else -1
            cycle = self._cycle(genre)
            cycle.momentum = clamp(
                cycle.momentum + sign * (0.01 + self._roll() * 0.015),
                -GENRE_MOMENTUM_LIMIT,
                GENRE_MOMENTUM_LIMIT,
            )

        if week % GENRE_SHOCK_INTERVAL == 0:
            self.trigger_shock(events)

        if week % GENRE_REPORT_INTERVAL == 0:
            snapshot = self.genre_snapshot()
            hottest, coolest = snapshot[0], snapshot[-1]
            if hottest.genre != coolest.genre:
                events.append(
                    f"Genre cycle shift: {hottest.genre.value} heating ({round((hottest.demand - 1) * 100)}%), "
                    f"{coolest.genre.value} cooling ({round((coolest.demand - 1) * 100)}%)."
                )
        logger.debug(f"Genre cycles ticked for week {week}")

    def trigger_shock(self, events: list[str]) -> None:
        week = self._state.current_week
        ranked = [
            row for row in self.genre_snapshot()
            if self._cycle(row.genre).shock_until_week is None or week > self._cycle(row.genre).shock_until_week
        ]
        if not ranked:
            return

        band = max(2, math.ceil(len(ranked) / 3))
        slump = self._roll() < 0.58
        pool = ranked[:band] if slump else ranked[-band:]
        picked = pool[min(len(pool) - 1, math.floor(self._roll() * len(pool)))]
        direction = "slump" if slump else "surge"

        shortest, longest = GENRE_SHOCK_DURATION_WEEKS
        duration = shortest + math.floor(self._roll() * (longest - shortest + 1))
        weakest, strongest = GENRE_SHOCK_STRENGTH
        strength = weakest + self._roll() * (strongest - weakest)
        labels = GENRE_SHOCK_LIBRARY[picked.genre][direction]
        label = labels[min(len(labels) - 1, math.floor(self._roll() * len(labels)))]

        cycle = self._cycle(picked.genre)
        cycle.shock_label = label
        cycle.shock_direction = direction
        cycle.shock_strength = strength
        cycle.shock_until_week = week + duration
        events.append(
            f"Genre shock: {picked.genre.value} {direction} ({label}) over roughly {duration} weeks."
        )
        logger.info(f"Genre shock {direction} on {picked.genre.value} for {duration} weeks")
