"""
Simulation subsystems for Backlot.

Each system is constructed with the studio manager and works on its
state; none of them holds state of its own beyond caches.
"""

from .finance import FinanceSystem
from .talent import TalentSystem
from .lifecycle import LifecycleSystem, Projection
from .actions import ProjectActionSystem
from .franchise import FranchiseSystem
from .crises import CrisisSystem
from .events import ArcOutcomeModifiers, EventSystem, apply_effect_bundle, compute_arc_outcome_modifiers
from .rivals import LeaderboardEntry, RivalSystem
from .market import GenreSnapshot, MarketSystem, PitchEvaluation
from .releases import ReleaseSystem
from .studio import StudioSystem, studio_burn_factor
from .ip import IpSystem, MajorIpCommitment
from .turns import AutoAdvanceReason, AutoAdvanceResult, CrisisGateError, TurnError, TurnOrchestrator

__all__ = [
    "FinanceSystem",
    "TalentSystem",
    "LifecycleSystem",
    "Projection",
    "ProjectActionSystem",
    "FranchiseSystem",
    "CrisisSystem",
    "EventSystem",
    "ArcOutcomeModifiers",
    "apply_effect_bundle",
    "compute_arc_outcome_modifiers",
    "RivalSystem",
    "LeaderboardEntry",
    "MarketSystem",
    "PitchEvaluation",
    "GenreSnapshot",
    "ReleaseSystem",
    "StudioSystem",
    "studio_burn_factor",
    "IpSystem",
    "MajorIpCommitment",
    # Week scheduling
    "TurnOrchestrator",
    "TurnError",
    "CrisisGateError",
    "AutoAdvanceReason",
    "AutoAdvanceResult",
]
