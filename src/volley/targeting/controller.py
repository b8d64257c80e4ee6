"""Cooldown-gated firing decision.

State machine::

    IDLE --target--> CHARGING --cooldown elapsed--> FIRING --> IDLE/CHARGING

``FIRING`` is reported for the frame in which a volley was emitted. A
frame without a valid primary target fires nothing and nothing is queued
for later.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from volley.core.events import ShotFired
from volley.core.types import CapabilityTier, EnemySnapshot, PlayerSnapshot
from volley.targeting.acquisition import is_valid_target
from volley.targeting.assignment import LockAssignment, LockSet
from volley.targeting.config import PredictionTuning
from volley.targeting.intercept import InterceptSolution, InterceptSolver
from volley.targeting.origin import FireOriginCalculator, angular_spread

logger = logging.getLogger(__name__)

MIN_SHOOT_COOLDOWN = 0.1


class FireState(enum.Enum):
    IDLE = "idle"
    CHARGING = "charging"
    FIRING = "firing"


@dataclass
class Volley:
    """Everything fired in one fire event."""

    shots: list[ShotFired] = field(default_factory=list)
    damage: float = 0.0
    primary_target_id: str | None = None
    lock_count: int = 0
    dynamic_prediction_used: bool = False

    @property
    def origins(self) -> list[np.ndarray]:
        return [s.origin for s in self.shots]

    @property
    def aim_points(self) -> list[np.ndarray]:
        return [s.aim_point for s in self.shots]


class FireController:
    """Counts down the shoot cooldown and builds volleys."""

    def __init__(
        self,
        shoot_cooldown: float = 0.3,
        spread_step: float = 0.3,
        solver: InterceptSolver | None = None,
        origin_calculator: FireOriginCalculator | None = None,
    ):
        self._shoot_cooldown = max(0.0, shoot_cooldown)
        self._spread_step = spread_step
        self._solver = solver or InterceptSolver()
        self._origin = origin_calculator or FireOriginCalculator()
        self._time_since_shot = 0.0
        self._state = FireState.IDLE

    @property
    def state(self) -> FireState:
        return self._state

    @property
    def shoot_cooldown(self) -> float:
        return self._shoot_cooldown

    @property
    def time_since_shot(self) -> float:
        return self._time_since_shot

    def set_shoot_cooldown(self, cooldown: float) -> None:
        self._shoot_cooldown = max(MIN_SHOOT_COOLDOWN, cooldown)

    def reset(self) -> None:
        self._time_since_shot = 0.0
        self._state = FireState.IDLE

    def update(
        self,
        dt: float,
        player: PlayerSnapshot,
        lock_set: LockSet,
        resolve_enemy: Callable[[str], EnemySnapshot | None],
        tier: CapabilityTier,
        targeting_range: float,
        tuning: PredictionTuning,
        cooldown_multiplier: float = 1.0,
    ) -> Volley | None:
        """Advance the cooldown by *dt* and fire if allowed."""
        self._time_since_shot += dt

        primary_id = lock_set.current_target
        primary = resolve_enemy(primary_id) if primary_id is not None else None
        if not is_valid_target(primary, player, targeting_range):
            self._state = FireState.IDLE
            return None

        if self._time_since_shot < self._shoot_cooldown * cooldown_multiplier:
            self._state = FireState.CHARGING
            return None

        if tier.multi_lock and lock_set.assignments:
            volley = self._multi_lock_volley(
                player, lock_set, resolve_enemy, tier, targeting_range, tuning,
            )
        else:
            volley = self._single_lock_volley(player, primary, lock_set, tier, tuning)

        if volley is None or not volley.shots:
            self._state = FireState.IDLE
            return None

        self._time_since_shot = 0.0
        self._state = FireState.FIRING
        return volley

    def _predict(
        self,
        player: PlayerSnapshot,
        enemy: EnemySnapshot,
        tier: CapabilityTier,
        tuning: PredictionTuning,
    ) -> InterceptSolution:
        return self._solver.predict(
            player.position, player.velocity,
            enemy.position, enemy.velocity,
            player.stats.projectile_speed, tuning,
            dynamic=tier.dynamic_prediction,
            lead_time=tuning.linear_lead_time(tier),
        )

    def _single_lock_volley(
        self,
        player: PlayerSnapshot,
        primary: EnemySnapshot,
        lock_set: LockSet,
        tier: CapabilityTier,
        tuning: PredictionTuning,
    ) -> Volley:
        """All shots at the primary, fanned angularly when multishot > 1."""
        solution = self._predict(player, primary, tier, tuning)
        total = max(1, int(player.stats.multishot))
        shots = []
        for i in range(total):
            aim = solution.aim_point
            if total > 1:
                aim = angular_spread(player.position, aim, i, total, self._spread_step)
            shots.append(ShotFired(
                origin=player.position.copy(),
                aim_point=aim,
                damage=player.stats.damage,
                target_id=primary.enemy_id,
            ))
        return Volley(
            shots=shots,
            damage=player.stats.damage,
            primary_target_id=primary.enemy_id,
            lock_count=len(lock_set),
            dynamic_prediction_used=solution.dynamic,
        )

    def _multi_lock_volley(
        self,
        player: PlayerSnapshot,
        lock_set: LockSet,
        resolve_enemy: Callable[[str], EnemySnapshot | None],
        tier: CapabilityTier,
        targeting_range: float,
        tuning: PredictionTuning,
    ) -> Volley | None:
        """One shot per assignment, parallel barrels for stacked targets."""
        live: list[tuple[LockAssignment, EnemySnapshot]] = []
        for assignment in lock_set.assignments:
            enemy = resolve_enemy(assignment.enemy_id)
            if is_valid_target(enemy, player, targeting_range):
                live.append((assignment, enemy))
        if not live:
            return None

        solutions: dict[str, InterceptSolution] = {}
        total = max(1, int(player.stats.multishot))
        shots = []
        for i in range(total):
            assignment, enemy = live[min(i, len(live) - 1)]
            solution = solutions.get(enemy.enemy_id)
            if solution is None:
                solution = self._predict(player, enemy, tier, tuning)
                solutions[enemy.enemy_id] = solution

            offset = assignment.fire_offset
            if offset is None:
                offset = self._origin.offset(
                    player.position, solution.aim_point,
                    assignment.duplicate_index, assignment.duplicate_count,
                    enemy.radius,
                )
            shots.append(ShotFired(
                origin=player.position + offset,
                aim_point=solution.aim_point + offset,
                damage=player.stats.damage,
                target_id=enemy.enemy_id,
            ))

        return Volley(
            shots=shots,
            damage=player.stats.damage,
            primary_target_id=lock_set.current_target,
            lock_count=len(lock_set),
            dynamic_prediction_used=any(s.dynamic for s in solutions.values()),
        )
