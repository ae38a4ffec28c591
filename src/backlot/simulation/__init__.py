"""Simulation module for scripted long-run play and balance checks."""

from .player import AutopilotPlayer, POLICIES
from .runner import BatchStats, RunMetrics, run_batch, simulate_run

__all__ = [
    "AutopilotPlayer",
    "POLICIES",
    "BatchStats",
    "RunMetrics",
    "run_batch",
    "simulate_run",
]
