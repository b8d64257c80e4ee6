"""Multi-lock shot distribution.

Distributes a fixed number of simultaneous shots across a ranked target
list. The algorithm is a greedy heuristic, not a global optimum:

1. every top-ranked candidate (up to the shot count) gets one shot,
2. leftover shots go one at a time to the candidate with the highest
   stacking priority that still wants more shots,
3. anything still left piles onto the top-ranked candidate.

Its iteration order and tie-breaks are part of gameplay balance and must
stay as they are.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from volley.core.types import EnemySnapshot, PlayerSnapshot
from volley.targeting.config import PredictionTuning
from volley.targeting.intercept import InterceptSolver
from volley.targeting.origin import FireOriginCalculator
from volley.targeting.threat import ThreatBreakdown

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class RankedCandidate:
    """An in-range enemy with its ranking score."""

    enemy: EnemySnapshot
    score: float
    distance: float
    priority_index: int = 0

    @property
    def enemy_id(self) -> str:
        return self.enemy.enemy_id


@dataclass(eq=False)
class LockAssignment:
    """One shot of a volley bound to one target."""

    enemy_id: str
    predicted_aim: np.ndarray
    fire_origin: np.ndarray
    fire_offset: np.ndarray | None = None
    duplicate_index: int = 0
    duplicate_count: int = 1
    priority_index: int = 0
    score: float = 0.0
    dynamic: bool = False

    @property
    def aim_point(self) -> np.ndarray:
        """Predicted aim shifted by the barrel offset."""
        if self.fire_offset is None:
            return self.predicted_aim
        return self.predicted_aim + self.fire_offset

    def to_dict(self) -> dict:
        return {
            "enemy_id": self.enemy_id,
            "predicted_aim": [round(float(v), 2) for v in self.predicted_aim],
            "fire_origin": [round(float(v), 2) for v in self.fire_origin],
            "duplicate_index": self.duplicate_index,
            "duplicate_count": self.duplicate_count,
            "priority_index": self.priority_index,
            "score": round(self.score, 3),
        }


@dataclass
class LockSet:
    """Ordered per-shot assignments; the first one is the primary lock."""

    assignments: list[LockAssignment] = field(default_factory=list)

    @property
    def current_target(self) -> str | None:
        return self.assignments[0].enemy_id if self.assignments else None

    @property
    def primary(self) -> LockAssignment | None:
        return self.assignments[0] if self.assignments else None

    @property
    def targets(self) -> list[str]:
        """Distinct locked enemy ids in priority order."""
        seen: dict[str, None] = {}
        for a in self.assignments:
            seen.setdefault(a.enemy_id, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self.assignments)

    def __bool__(self) -> bool:
        return bool(self.assignments)

    def to_dict(self) -> dict:
        return {
            "current_target": self.current_target,
            "targets": self.targets,
            "assignments": [a.to_dict() for a in self.assignments],
        }


@dataclass
class _ShotPlan:
    candidate: RankedCandidate
    recommended: int
    urgency: float
    assigned: int = 0

    @property
    def remaining(self) -> int:
        return self.recommended - self.assigned


class LockAssignmentPlanner:
    """Greedy distribution of shots over ranked candidates."""

    def __init__(
        self,
        solver: InterceptSolver | None = None,
        origin_calculator: FireOriginCalculator | None = None,
    ):
        self._solver = solver or InterceptSolver()
        self._origin = origin_calculator or FireOriginCalculator()

    def distribute(
        self,
        ranked: list[RankedCandidate],
        threat_cache: dict[str, ThreatBreakdown],
        desired_shot_count: int,
        stack_multiplier: float = 1.35,
    ) -> list[tuple[RankedCandidate, int]]:
        """Shot count per candidate, in rank order, omitting zero counts."""
        if desired_shot_count <= 0 or not ranked:
            return []

        plans: list[_ShotPlan] = []
        for cand in ranked:
            breakdown = threat_cache.get(cand.enemy_id)
            if breakdown is not None:
                recommended = min(breakdown.impact.recommended_shots, desired_shot_count)
                urgency = breakdown.impact.urgency
            else:
                recommended = 1
                urgency = cand.score
            plans.append(_ShotPlan(cand, recommended, urgency))

        remaining = desired_shot_count

        # Baseline: one shot per top candidate
        for plan in plans[:min(len(plans), desired_shot_count)]:
            plan.assigned = 1
            remaining -= 1

        # Greedy stacking
        while remaining > 0:
            best: _ShotPlan | None = None
            best_priority = -math.inf
            for plan in plans:
                left = plan.remaining
                if left <= 0:
                    continue
                priority = (
                    plan.urgency * (1.0 + stack_multiplier * 0.5 + left)
                    + plan.candidate.score * 0.01
                )
                if best is None or priority > best_priority:
                    best = plan
                    best_priority = priority
            if best is None:
                break
            best.assigned += 1
            remaining -= 1

        # Overflow onto the top-ranked candidate
        if remaining > 0:
            plans[0].assigned += remaining

        return [(p.candidate, p.assigned) for p in plans if p.assigned > 0]

    def plan(
        self,
        player: PlayerSnapshot,
        ranked: list[RankedCandidate],
        threat_cache: dict[str, ThreatBreakdown],
        desired_shot_count: int,
        targeting_range: float,
        stack_multiplier: float = 1.35,
        dynamic: bool = False,
        tuning: PredictionTuning | None = None,
        lead_time: float | None = None,
    ) -> list[LockAssignment]:
        """Flat per-shot assignment list of length exactly *desired_shot_count*."""
        tuning = tuning or PredictionTuning()
        valid = [
            c for c in ranked
            if not c.enemy.destroyed
            and c.enemy.is_finite
            and c.enemy.distance_to(player.position) <= targeting_range
        ]
        counts = self.distribute(valid, threat_cache, desired_shot_count, stack_multiplier)

        assignments: list[LockAssignment] = []
        for cand, count in counts:
            enemy = cand.enemy
            solution = self._solver.predict(
                player.position, player.velocity,
                enemy.position, enemy.velocity,
                player.stats.projectile_speed, tuning,
                dynamic=dynamic, lead_time=lead_time,
            )
            for dup in range(count):
                origin, _aim, off = self._origin.apply(
                    player.position, solution.aim_point, dup, count, enemy.radius,
                )
                assignments.append(LockAssignment(
                    enemy_id=enemy.enemy_id,
                    predicted_aim=solution.aim_point,
                    fire_origin=origin,
                    fire_offset=off,
                    duplicate_index=dup,
                    duplicate_count=count,
                    priority_index=cand.priority_index,
                    score=cand.score,
                    dynamic=solution.dynamic,
                ))

        assignments.sort(key=lambda a: a.priority_index)
        if len(assignments) > desired_shot_count:
            logger.debug(
                "Truncating %d assignments to %d shots",
                len(assignments), desired_shot_count,
            )
        return assignments[:desired_shot_count]
