"""Monte Carlo batch runner for long studio runs."""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field

from ..state.event_bus import EventBus
from ..state.manager import StudioManager
from ..state.schema import ProjectPhase
from ..state.seeds import seeded_rng
from .player import AutopilotPlayer

logger = logging.getLogger(__name__)

SEED_STRIDE = 137
TEN_YEARS = 520


@dataclass
class RunMetrics:
    """Outcome of one seeded run."""

    seed: int
    weeks_played: int
    bankrupt: bool
    final_cash: float
    final_heat: int
    released_films: int
    awards_nominations: int = 0
    awards_wins: int = 0
    avg_pending_crises: float = 0.0
    max_pending_crises: int = 0


@dataclass
class BatchStats:
    """Aggregate over a batch of runs."""

    runs: list[RunMetrics] = field(default_factory=list)

    @property
    def bankrupt_rate(self) -> float:
        if not self.runs:
            return 0.0
        return sum(1 for r in self.runs if r.bankrupt) / len(self.runs)

    @property
    def cash_mean(self) -> float:
        return statistics.fmean(r.final_cash for r in self.runs) if self.runs else 0.0

    @property
    def cash_median(self) -> float:
        return statistics.median(r.final_cash for r in self.runs) if self.runs else 0.0

    @property
    def released_mean(self) -> float:
        return statistics.fmean(r.released_films for r in self.runs) if self.runs else 0.0

    @property
    def nominations_mean(self) -> float:
        return statistics.fmean(r.awards_nominations for r in self.runs) if self.runs else 0.0

    @property
    def wins_mean(self) -> float:
        return statistics.fmean(r.awards_wins for r in self.runs) if self.runs else 0.0

    @property
    def cash_max(self) -> float:
        return max((r.final_cash for r in self.runs), default=0)

    @property
    def max_pending_crises(self) -> int:
        return max((r.max_pending_crises for r in self.runs), default=0)

    @property
    def heat_mean(self) -> float:
        return statistics.fmean(r.final_heat for r in self.runs) if self.runs else 0.0

    def to_dict(self) -> dict:
        return {
            "runs": len(self.runs),
            "bankrupt_rate": round(self.bankrupt_rate, 3),
            "cash_mean": round(self.cash_mean),
            "cash_median": round(self.cash_median),
            "cash_min": round(min((r.final_cash for r in self.runs), default=0)),
            "cash_max": round(self.cash_max),
            "heat_mean": round(self.heat_mean, 2),
            "released_mean": round(self.released_mean, 2),
            "released_min": min((r.released_films for r in self.runs), default=0),
            "nominations_mean": round(self.nominations_mean, 2),
            "wins_mean": round(self.wins_mean, 2),
            "avg_pending_crises_mean": round(
                statistics.fmean(r.avg_pending_crises for r in self.runs) if self.runs else 0.0, 2
            ),
            "max_pending_crises": self.max_pending_crises,
        }


def simulate_run(seed: int, weeks: int = TEN_YEARS, persona: str = "balanced") -> RunMetrics:
    """
    Play one studio for up to `weeks` one-week turns.

    All four random sources share a single seeded generator, and each run
    gets a private event bus so batch runs never touch the global one.
    """
    rng = seeded_rng(seed)
    manager = StudioManager(
        crisis_rng=rng,
        event_rng=rng,
        negotiation_rng=rng,
        rival_rng=rng,
        bus=EventBus(),
    )
    manager.set_turn_length_weeks(1)
    player = AutopilotPlayer(manager, persona)

    pending_total = 0
    pending_max = 0
    played = 0
    for turn in range(weeks):
        if manager.state.is_bankrupt:
            break
        player.play_turn(turn)
        summary = manager.end_turn()
        played += 1
        pending = len(manager.state.pending_crises)
        pending_total += pending
        pending_max = max(pending_max, pending)
        if summary.has_pending_crises:
            player.resolve_crises()

    projects = manager.state.active_projects
    metrics = RunMetrics(
        seed=seed,
        weeks_played=played,
        bankrupt=manager.state.is_bankrupt,
        final_cash=round(manager.state.cash),
        final_heat=manager.studio_heat,
        released_films=sum(1 for p in projects if p.phase == ProjectPhase.RELEASED),
        awards_nominations=sum(p.awards_nominations for p in projects),
        awards_wins=sum(p.awards_wins for p in projects),
        avg_pending_crises=pending_total / max(1, played),
        max_pending_crises=pending_max,
    )
    logger.debug(f"Run {seed}: {played} weeks, cash {metrics.final_cash:,.0f}, bankrupt={metrics.bankrupt}")
    return metrics


def run_batch(
    runs: int,
    weeks: int = TEN_YEARS,
    base_seed: int = 10_000,
    persona: str = "balanced",
) -> BatchStats:
    """Run `runs` seeded studios; run i uses seed base_seed + i * 137."""
    stats = BatchStats()
    for i in range(runs):
        stats.runs.append(simulate_run(base_seed + i * SEED_STRIDE, weeks, persona))
    logger.info(
        f"Batch of {runs} x {weeks} weeks: bankrupt rate {stats.bankrupt_rate:.2f}, "
        f"median cash {stats.cash_median:,.0f}"
    )
    return stats
