"""Target acquisition — scan, score, rank, lock.

Runs on the slower re-acquisition cadence. Each refresh rebuilds the
threat cache and lock set from scratch; nothing is patched incrementally.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from volley.core.types import CapabilityTier, EnemySnapshot, PlayerSnapshot
from volley.targeting.assignment import LockAssignmentPlanner, LockSet, RankedCandidate
from volley.targeting.config import TargetingConfig
from volley.targeting.threat import ThreatBreakdown, ThreatEvaluator

logger = logging.getLogger(__name__)


@dataclass
class AcquisitionResult:
    """Outcome of one refresh pass."""

    lock_set: LockSet = field(default_factory=LockSet)
    threat_cache: dict[str, ThreatBreakdown] = field(default_factory=dict)
    ranked: list[RankedCandidate] = field(default_factory=list)
    primary_changed: bool = False

    @property
    def current_target(self) -> str | None:
        return self.lock_set.current_target


def rank_candidates(candidates: list[RankedCandidate]) -> list[RankedCandidate]:
    """Stable sort: highest score first, nearer first on equal score.

    Assigns ``priority_index`` to reflect the final order.
    """
    ordered = sorted(candidates, key=lambda c: (-c.score, c.distance))
    for i, cand in enumerate(ordered):
        cand.priority_index = i
    return ordered


def desired_lock_count(tier: CapabilityTier, multi_lock_targets: int, multishot: int) -> int:
    """Number of simultaneous locks for the current tier and weapon stats."""
    if tier.multi_lock:
        return max(1, min(multi_lock_targets, multishot))
    return 1


def is_valid_target(
    enemy: EnemySnapshot | None,
    player: PlayerSnapshot,
    targeting_range: float,
) -> bool:
    """Exists, not destroyed, finite, and within targeting range."""
    if enemy is None or enemy.destroyed or not enemy.is_finite:
        return False
    return enemy.distance_to(player.position) <= targeting_range


class TargetAcquisition:
    """Maintains the lock set and threat cache across refreshes."""

    def __init__(
        self,
        evaluator: ThreatEvaluator | None = None,
        planner: LockAssignmentPlanner | None = None,
    ):
        self._evaluator = evaluator or ThreatEvaluator()
        self._planner = planner or LockAssignmentPlanner()
        self._result = AcquisitionResult()

    @property
    def lock_set(self) -> LockSet:
        return self._result.lock_set

    @property
    def threat_cache(self) -> dict[str, ThreatBreakdown]:
        return self._result.threat_cache

    @property
    def current_target(self) -> str | None:
        return self._result.current_target

    @property
    def last_result(self) -> AcquisitionResult:
        return self._result

    def scan(
        self,
        player: PlayerSnapshot,
        enemies: Iterable[EnemySnapshot],
        config: TargetingConfig,
        tier: CapabilityTier,
    ) -> tuple[list[RankedCandidate], dict[str, ThreatBreakdown]]:
        """Score every in-range candidate and return them ranked."""
        targeting_range = config.combat.targeting_range
        candidates: list[RankedCandidate] = []
        cache: dict[str, ThreatBreakdown] = {}

        for enemy in enemies:
            if enemy is None or enemy.destroyed:
                continue
            if not enemy.is_finite:
                logger.debug("Skipping non-finite candidate %s", enemy.enemy_id)
                continue
            distance = enemy.distance_to(player.position)
            if not math.isfinite(distance) or distance > targeting_range:
                continue

            if tier.danger_scoring:
                breakdown = self._evaluator.score(
                    enemy, player, distance, config.weights, targeting_range,
                )
                cache[enemy.enemy_id] = breakdown
                score = breakdown.total
            else:
                score = -distance

            candidates.append(RankedCandidate(enemy=enemy, score=score, distance=distance))

        return rank_candidates(candidates), cache

    def refresh(
        self,
        player: PlayerSnapshot,
        enemies: Iterable[EnemySnapshot],
        config: TargetingConfig,
        tier: CapabilityTier,
        multi_lock_targets: int | None = None,
    ) -> AcquisitionResult:
        """Rebuild locks from a fresh scan.

        ``primary_changed`` on the result is True only when the primary
        target identity differs from the previous refresh.
        """
        previous = self._result.current_target
        ranked, cache = self.scan(player, enemies, config, tier)

        if not ranked:
            self._result = AcquisitionResult(primary_changed=previous is not None)
            return self._result

        if multi_lock_targets is None:
            multi_lock_targets = config.multi_lock.base_target_count
        desired = desired_lock_count(tier, multi_lock_targets, player.stats.multishot)
        lead_time = config.prediction.linear_lead_time(tier)
        assignments = self._planner.plan(
            player,
            ranked,
            cache,
            desired,
            config.combat.targeting_range,
            stack_multiplier=config.weights.impact.stack_multiplier,
            dynamic=tier.dynamic_prediction,
            tuning=config.prediction,
            lead_time=lead_time,
        )
        lock_set = LockSet(assignments=assignments)
        self._result = AcquisitionResult(
            lock_set=lock_set,
            threat_cache=cache,
            ranked=ranked,
            primary_changed=lock_set.current_target != previous,
        )
        return self._result

    def clear(self) -> bool:
        """Drop all locks. Returns True if a primary target was held."""
        had_target = self._result.current_target is not None
        self._result = AcquisitionResult()
        return had_target
