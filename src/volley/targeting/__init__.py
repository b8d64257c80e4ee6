"""Targeting — threat scoring, acquisition, intercept, multi-lock, firing.

Provides the fire-control pipeline: weighted danger scoring of candidate
enemies, ranked target locking, quadratic intercept prediction with a
linear fallback, greedy distribution of multishot volleys across locks,
parallel barrel offsets, and the cooldown-gated firing decision.
"""

from volley.targeting.config import (
    CombatConfig,
    DangerWeights,
    ImpactWeights,
    MultiLockTuning,
    PredictionTuning,
    TargetingConfig,
    UpdateIntervals,
)
from volley.targeting.threat import (
    ImpactThreat,
    ThreatBreakdown,
    ThreatEvaluator,
)
from volley.targeting.intercept import (
    InterceptSolution,
    InterceptSolver,
)
from volley.targeting.origin import (
    FireOriginCalculator,
    angular_spread,
)
from volley.targeting.assignment import (
    LockAssignment,
    LockAssignmentPlanner,
    LockSet,
    RankedCandidate,
)
from volley.targeting.acquisition import (
    AcquisitionResult,
    TargetAcquisition,
)
from volley.targeting.controller import (
    FireController,
    FireState,
    Volley,
)
from volley.targeting.providers import (
    EnemyProvider,
    EnemyRegistry,
    PlayerProvider,
    StaticPlayer,
)
from volley.targeting.engine import FireControlEngine

__all__ = [
    "AcquisitionResult",
    "CombatConfig",
    "DangerWeights",
    "EnemyProvider",
    "EnemyRegistry",
    "FireControlEngine",
    "FireController",
    "FireOriginCalculator",
    "FireState",
    "ImpactThreat",
    "ImpactWeights",
    "InterceptSolution",
    "InterceptSolver",
    "LockAssignment",
    "LockAssignmentPlanner",
    "LockSet",
    "MultiLockTuning",
    "PlayerProvider",
    "PredictionTuning",
    "RankedCandidate",
    "StaticPlayer",
    "TargetAcquisition",
    "TargetingConfig",
    "ThreatBreakdown",
    "ThreatEvaluator",
    "UpdateIntervals",
    "Volley",
    "angular_spread",
]
