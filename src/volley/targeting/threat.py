"""Danger scoring — variant, reward, direction, speed, size, distance, impact.

Scores are comparative rather than normalized: the total is the plain sum
of the weighted components. Each component is forced finite before
summation so a malformed weight can never push a NaN into the ranking.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from volley.core.types import EnemySnapshot, PlayerSnapshot
from volley.targeting.config import DangerWeights, ImpactWeights

_REL_SPEED_EPS = 1e-4


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _ratio(value: float, weight: float) -> float:
    if weight == 0 or not math.isfinite(weight):
        return 0.0
    return value / weight


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ImpactThreat:
    """How soon and how dangerously an enemy will reach the player."""

    distance_component: float = 0.0
    time_component: float = 0.0
    hp_component: float = 0.0
    time_to_impact: float = float("inf")
    projected_distance: float = float("inf")
    hp_ratio: float = 0.0
    urgency: float = 0.0
    recommended_shots: int = 1

    @property
    def total(self) -> float:
        return self.distance_component + self.time_component + self.hp_component

    def to_dict(self) -> dict:
        return {
            "distance": round(self.distance_component, 3),
            "time": round(self.time_component, 3),
            "hp": round(self.hp_component, 3),
            "time_to_impact": (
                round(self.time_to_impact, 3) if math.isfinite(self.time_to_impact) else None
            ),
            "projected_distance": round(self.projected_distance, 1),
            "urgency": round(self.urgency, 3),
            "recommended_shots": self.recommended_shots,
            "total": round(self.total, 3),
        }


@dataclass
class ThreatBreakdown:
    """Per-candidate scoring result, rebuilt every refresh."""

    enemy_id: str
    variant: float = 0.0
    reward: float = 0.0
    direction: float = 0.0
    speed: float = 0.0
    size: float = 0.0
    distance: float = 0.0
    impact: ImpactThreat = field(default_factory=ImpactThreat)
    total: float = 0.0

    def to_dict(self) -> dict:
        return {
            "enemy_id": self.enemy_id,
            "variant": round(self.variant, 3),
            "reward": round(self.reward, 3),
            "direction": round(self.direction, 3),
            "speed": round(self.speed, 3),
            "size": round(self.size, 3),
            "distance": round(self.distance, 3),
            "impact": self.impact.to_dict(),
            "total": round(self.total, 3),
        }


class ThreatEvaluator:
    """Pure danger-score calculator; holds no state between calls."""

    def score(
        self,
        enemy: EnemySnapshot,
        player: PlayerSnapshot,
        distance: float,
        weights: DangerWeights,
        targeting_range: float,
    ) -> ThreatBreakdown:
        """Full breakdown for one candidate."""
        variant = _finite(self.variant_weight(enemy, weights))
        reward = _finite(self.reward_score(enemy, weights))
        direction = _finite(self.direction_score(enemy, player, weights))
        speed = _finite(self.speed_score(enemy, weights))
        size = _finite(float(weights.size.get(enemy.size.value, 0.0)))
        dist = _finite(self.distance_score(distance, targeting_range, weights))
        impact = self.impact_threat(enemy, player, weights.impact)

        total = variant + reward + direction + speed + size + dist + _finite(impact.total)
        return ThreatBreakdown(
            enemy_id=enemy.enemy_id,
            variant=variant,
            reward=reward,
            direction=direction,
            speed=speed,
            size=size,
            distance=dist,
            impact=impact,
            total=_finite(total),
        )

    @staticmethod
    def variant_weight(enemy: EnemySnapshot, weights: DangerWeights) -> float:
        if enemy.variant in weights.variant_overrides:
            return float(weights.variant_overrides[enemy.variant])
        if enemy.behavior in weights.behavior:
            return float(weights.behavior[enemy.behavior])
        return float(weights.behavior.get("default", 0.0))

    @staticmethod
    def estimate_reward(enemy: EnemySnapshot, weights: DangerWeights) -> float:
        """XP-equivalent value from size and variant multipliers."""
        size_factor = weights.reward_size_factors.get(enemy.size.value, 1.0)
        variant_factor = weights.reward_variant_multipliers.get(enemy.variant, 1.0)
        return weights.reward_base_value * size_factor * variant_factor

    @classmethod
    def reward_score(cls, enemy: EnemySnapshot, weights: DangerWeights) -> float:
        if weights.reward_normalization <= 0:
            return 0.0
        normalized = cls.estimate_reward(enemy, weights) / weights.reward_normalization
        return _clamp(normalized, 0.0, 1.0) * weights.reward

    @staticmethod
    def direction_score(
        enemy: EnemySnapshot,
        player: PlayerSnapshot,
        weights: DangerWeights,
    ) -> float:
        """Reward enemies heading toward the player.

        Stationary enemies get ``-|direction_bias|`` so they rank slightly
        below anything drifting at the player.
        """
        speed = enemy.speed
        if speed <= 0:
            return -abs(weights.direction_bias)

        to_player = player.position - enemy.position
        to_player_norm = float(np.hypot(to_player[0], to_player[1]))
        alignment = 0.0
        if to_player_norm > 0:
            alignment = float(np.dot(enemy.velocity, to_player)) / (speed * to_player_norm)
        return (alignment - weights.direction_bias) * weights.direction

    @staticmethod
    def speed_score(enemy: EnemySnapshot, weights: DangerWeights) -> float:
        if weights.speed_reference <= 0:
            return 0.0
        return min(1.0, enemy.speed / weights.speed_reference) * weights.speed

    @staticmethod
    def distance_score(distance: float, targeting_range: float, weights: DangerWeights) -> float:
        if not math.isfinite(distance) or distance < 0 or targeting_range <= 0:
            ratio = 1.0
        else:
            ratio = _clamp(distance / targeting_range, 0.0, 1.0)
        return (1.0 - ratio) * weights.distance

    @staticmethod
    def impact_threat(
        enemy: EnemySnapshot,
        player: PlayerSnapshot,
        weights: ImpactWeights,
    ) -> ImpactThreat:
        """Relative-motion projection of when and how close the enemy gets."""
        rel_pos = enemy.position - player.position
        rel_vel = enemy.velocity - player.velocity
        distance = float(np.hypot(rel_pos[0], rel_pos[1]))
        rel_speed_sq = float(np.dot(rel_vel, rel_vel))

        time_to_impact = float("inf")
        if rel_speed_sq > _REL_SPEED_EPS:
            t = -float(np.dot(rel_pos, rel_vel)) / rel_speed_sq
            if t > 0:
                time_to_impact = t
            elif distance <= enemy.radius + player.radius:
                time_to_impact = 0.0

        time_norm = weights.time_normalization
        if time_norm > 0:
            clamped_t = _clamp(time_to_impact, 0.0, time_norm)
            time_component = (1.0 - clamped_t / time_norm) * weights.time_weight
        else:
            time_component = 0.0

        if math.isfinite(time_to_impact):
            projected = rel_pos + rel_vel * time_to_impact
            projected_distance = float(np.hypot(projected[0], projected[1]))
        else:
            projected_distance = distance

        dist_norm = max(2.0 * player.radius, weights.distance_normalization)
        if dist_norm > 0:
            dist_ratio = _clamp(projected_distance / dist_norm, 0.0, 1.0)
        else:
            dist_ratio = 1.0
        distance_component = (1.0 - dist_ratio) * weights.distance_weight

        hp_ratio = 0.0
        if weights.hp_normalization > 0:
            hp_ratio = _clamp(enemy.health / weights.hp_normalization, 0.0, 1.0)
        hp_component = hp_ratio * weights.hp_weight

        distance_component = _finite(distance_component)
        time_component = _finite(time_component)
        hp_component = _finite(hp_component)

        urgency = (
            weights.urgency_distance * _ratio(distance_component, weights.distance_weight)
            + weights.urgency_time * _ratio(time_component, weights.time_weight)
        ) * (1.0 + weights.hp_urgency_multiplier * hp_ratio)
        urgency = _finite(urgency)

        return ImpactThreat(
            distance_component=distance_component,
            time_component=time_component,
            hp_component=hp_component,
            time_to_impact=time_to_impact,
            projected_distance=projected_distance,
            hp_ratio=hp_ratio,
            urgency=urgency,
            recommended_shots=recommend_shots(urgency, hp_ratio, weights),
        )


def recommend_shots(urgency: float, hp_ratio: float, weights: ImpactWeights) -> int:
    """How many simultaneous shots this target deserves, in [1, max_recommended]."""
    raw = 1.0 + urgency * weights.stack_multiplier + weights.stack_base * hp_ratio
    floor = weights.min_stack_score * hp_ratio
    if raw < floor:
        raw = floor
    if math.isnan(raw) or raw == -math.inf:
        return 1
    if raw == math.inf:
        return weights.max_recommended
    return int(_clamp(round_half_up(raw), 1, weights.max_recommended))
