"""Targeting configuration: danger weights, prediction tuning, tiers.

Every section is a frozen dataclass. Upgrades never patch a live tree;
they merge a partial override onto the plain-dict form with OmegaConf and
rebuild the whole section.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from omegaconf import OmegaConf

from volley.core.types import CapabilityTier

logger = logging.getLogger(__name__)


def _default_behavior() -> dict[str, float]:
    return {"parasite": 240.0, "volatile": 200.0, "default": 140.0}


def _default_variant_overrides() -> dict[str, float]:
    return {
        "parasite": 240.0,
        "volatile": 200.0,
        "gold": 170.0,
        "crystal": 160.0,
        "denseCore": 150.0,
        "iron": 140.0,
        "common": 120.0,
    }


def _default_size_weights() -> dict[str, float]:
    return {"large": 3.0, "medium": 2.0, "small": 1.0}


def _default_reward_variant_multipliers() -> dict[str, float]:
    # Orb multipliers per variant (stats factor x rarity bonus)
    return {
        "common": 1.0,
        "iron": 2.53,
        "denseCore": 2.93,
        "gold": 4.90,
        "volatile": 5.46,
        "parasite": 8.10,
        "crystal": 4.73,
    }


def to_plain(cfg: Any) -> Any:
    """Convert an OmegaConf node to plain containers; pass others through."""
    if OmegaConf.is_config(cfg):
        return OmegaConf.to_container(cfg, resolve=True)
    return cfg


def merge_tree(base: dict, override: dict | None) -> dict:
    """Deep-merge *override* onto *base* and return a new plain dict."""
    if not override:
        return dict(base)
    merged = OmegaConf.merge(OmegaConf.create(base), OmegaConf.create(to_plain(override)))
    return OmegaConf.to_container(merged, resolve=True)


def _float_map(raw: Any, default: dict[str, float]) -> dict[str, float]:
    if raw is None:
        return dict(default)
    return {str(k): float(v) for k, v in dict(raw).items()}


@dataclass(frozen=True)
class ImpactWeights:
    """Weights for the impact-threat sub-score."""

    distance_weight: float = 18.0
    distance_normalization: float = 150.0
    time_weight: float = 12.0
    time_normalization: float = 1.25
    hp_weight: float = 8.0
    hp_normalization: float = 180.0
    urgency_distance: float = 12.0
    urgency_time: float = 10.0
    hp_urgency_multiplier: float = 1.1
    stack_multiplier: float = 1.35
    stack_base: float = 0.4
    min_stack_score: float = 0.15
    max_recommended: int = 4

    def __post_init__(self):
        if self.max_recommended < 1:
            raise ValueError(f"max_recommended must be >= 1, got {self.max_recommended}")

    @classmethod
    def from_dict(cls, cfg: dict | None) -> ImpactWeights:
        cfg = dict(cfg or {})
        d = cls()
        return cls(
            distance_weight=float(cfg.get("distance_weight", d.distance_weight)),
            distance_normalization=float(
                cfg.get("distance_normalization", d.distance_normalization)
            ),
            time_weight=float(cfg.get("time_weight", d.time_weight)),
            time_normalization=float(cfg.get("time_normalization", d.time_normalization)),
            hp_weight=float(cfg.get("hp_weight", d.hp_weight)),
            hp_normalization=float(cfg.get("hp_normalization", d.hp_normalization)),
            urgency_distance=float(cfg.get("urgency_distance", d.urgency_distance)),
            urgency_time=float(cfg.get("urgency_time", d.urgency_time)),
            hp_urgency_multiplier=float(
                cfg.get("hp_urgency_multiplier", d.hp_urgency_multiplier)
            ),
            stack_multiplier=float(cfg.get("stack_multiplier", d.stack_multiplier)),
            stack_base=float(cfg.get("stack_base", d.stack_base)),
            min_stack_score=float(cfg.get("min_stack_score", d.min_stack_score)),
            max_recommended=int(cfg.get("max_recommended", d.max_recommended)),
        )


@dataclass(frozen=True)
class DangerWeights:
    """Immutable weight tree for threat scoring."""

    behavior: dict[str, float] = field(default_factory=_default_behavior)
    variant_overrides: dict[str, float] = field(default_factory=_default_variant_overrides)
    reward: float = 30.0
    reward_normalization: float = 20.0
    reward_base_value: float = 5.0
    reward_size_factors: dict[str, float] = field(default_factory=_default_size_weights)
    reward_variant_multipliers: dict[str, float] = field(
        default_factory=_default_reward_variant_multipliers,
    )
    direction: float = 6.0
    direction_bias: float = 0.12
    speed: float = 4.0
    speed_reference: float = 180.0
    size: dict[str, float] = field(default_factory=_default_size_weights)
    distance: float = 0.75
    impact: ImpactWeights = field(default_factory=ImpactWeights)

    @classmethod
    def from_dict(cls, cfg: dict | None) -> DangerWeights:
        cfg = dict(to_plain(cfg) or {})
        d = cls()
        return cls(
            behavior=_float_map(cfg.get("behavior"), d.behavior),
            variant_overrides=_float_map(cfg.get("variant_overrides"), d.variant_overrides),
            reward=float(cfg.get("reward", d.reward)),
            reward_normalization=float(cfg.get("reward_normalization", d.reward_normalization)),
            reward_base_value=float(cfg.get("reward_base_value", d.reward_base_value)),
            reward_size_factors=_float_map(
                cfg.get("reward_size_factors"), d.reward_size_factors,
            ),
            reward_variant_multipliers=_float_map(
                cfg.get("reward_variant_multipliers"), d.reward_variant_multipliers,
            ),
            direction=float(cfg.get("direction", d.direction)),
            direction_bias=float(cfg.get("direction_bias", d.direction_bias)),
            speed=float(cfg.get("speed", d.speed)),
            speed_reference=float(cfg.get("speed_reference", d.speed_reference)),
            size=_float_map(cfg.get("size"), d.size),
            distance=float(cfg.get("distance", d.distance)),
            impact=ImpactWeights.from_dict(cfg.get("impact")),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def with_override(self, override: dict | None) -> DangerWeights:
        """Return a new tree with *override* deep-merged on top."""
        return DangerWeights.from_dict(merge_tree(self.to_dict(), override))


@dataclass(frozen=True)
class PredictionTuning:
    """Lead-time bounds for intercept prediction (seconds)."""

    min_lead_time: float = 0.05
    max_lead_time: float = 1.1
    fallback_lead_time: float = 0.35
    base_lead_time: float = 0.5

    def __post_init__(self):
        if self.min_lead_time > self.max_lead_time:
            raise ValueError(
                f"min_lead_time {self.min_lead_time} exceeds max_lead_time {self.max_lead_time}"
            )

    @classmethod
    def from_dict(cls, cfg: dict | None) -> PredictionTuning:
        cfg = dict(to_plain(cfg) or {})
        d = cls()
        return cls(
            min_lead_time=float(cfg.get("min_lead_time", d.min_lead_time)),
            max_lead_time=float(cfg.get("max_lead_time", d.max_lead_time)),
            fallback_lead_time=float(cfg.get("fallback_lead_time", d.fallback_lead_time)),
            base_lead_time=float(cfg.get("base_lead_time", d.base_lead_time)),
        )

    def linear_lead_time(self, tier: CapabilityTier) -> float:
        """Lead used for straight-line extrapolation at *tier*."""
        return self.fallback_lead_time if tier.danger_scoring else self.base_lead_time

    def to_dict(self) -> dict:
        return asdict(self)

    def with_override(self, override: dict | None) -> PredictionTuning:
        return PredictionTuning.from_dict(merge_tree(self.to_dict(), override))


@dataclass(frozen=True)
class UpdateIntervals:
    """Re-acquisition cadence per capability tier (seconds)."""

    base: float = 0.15
    adaptive: float = 0.14
    dynamic: float = 0.12
    multi_lock: float = 0.1

    def for_tier(self, tier: CapabilityTier) -> float:
        if tier >= CapabilityTier.MULTI_LOCK:
            return self.multi_lock
        if tier >= CapabilityTier.DYNAMIC:
            return self.dynamic
        if tier >= CapabilityTier.ADAPTIVE:
            return self.adaptive
        return self.base

    @classmethod
    def from_dict(cls, cfg: dict | None) -> UpdateIntervals:
        cfg = dict(to_plain(cfg) or {})
        d = cls()
        return cls(
            base=float(cfg.get("base", d.base)),
            adaptive=float(cfg.get("adaptive", d.adaptive)),
            dynamic=float(cfg.get("dynamic", d.dynamic)),
            multi_lock=float(cfg.get("multi_lock", d.multi_lock)),
        )


@dataclass(frozen=True)
class MultiLockTuning:
    """Multi-lock battery parameters."""

    base_target_count: int = 4
    cooldown_multiplier: float = 0.92
    parallel_spacing: float = 14.0
    parallel_radius_multiplier: float = 0.55

    @classmethod
    def from_dict(cls, cfg: dict | None) -> MultiLockTuning:
        cfg = dict(to_plain(cfg) or {})
        d = cls()
        return cls(
            base_target_count=int(cfg.get("base_target_count", d.base_target_count)),
            cooldown_multiplier=float(cfg.get("cooldown_multiplier", d.cooldown_multiplier)),
            parallel_spacing=float(cfg.get("parallel_spacing", d.parallel_spacing)),
            parallel_radius_multiplier=float(
                cfg.get("parallel_radius_multiplier", d.parallel_radius_multiplier)
            ),
        )


@dataclass(frozen=True)
class CombatConfig:
    """Base weapon timing and geometry."""

    shoot_cooldown: float = 0.3
    targeting_range: float = 400.0
    multishot_spread_step: float = 0.3
    projectile_speed: float = 450.0

    @classmethod
    def from_dict(cls, cfg: dict | None) -> CombatConfig:
        cfg = dict(to_plain(cfg) or {})
        d = cls()
        return cls(
            shoot_cooldown=max(0.0, float(cfg.get("shoot_cooldown", d.shoot_cooldown))),
            targeting_range=max(0.0, float(cfg.get("targeting_range", d.targeting_range))),
            multishot_spread_step=float(
                cfg.get("multishot_spread_step", d.multishot_spread_step)
            ),
            projectile_speed=float(cfg.get("projectile_speed", d.projectile_speed)),
        )


@dataclass(frozen=True)
class TargetingConfig:
    """Complete fire-control configuration."""

    tier: CapabilityTier = CapabilityTier.BASIC
    combat: CombatConfig = field(default_factory=CombatConfig)
    weights: DangerWeights = field(default_factory=DangerWeights)
    prediction: PredictionTuning = field(default_factory=PredictionTuning)
    update_intervals: UpdateIntervals = field(default_factory=UpdateIntervals)
    multi_lock: MultiLockTuning = field(default_factory=MultiLockTuning)

    @classmethod
    def from_omegaconf(cls, cfg: Any) -> TargetingConfig:
        """Build from an OmegaConf node or plain dict.

        Accepts either the ``volley`` root (with ``combat`` and
        ``targeting`` children) or a ``targeting`` section that carries
        its own ``combat`` block.
        """
        if cfg is None:
            return cls()

        cfg = to_plain(cfg)
        if not isinstance(cfg, dict):
            cfg = dict(cfg)

        targeting = cfg.get("targeting", cfg) or {}
        combat = cfg.get("combat", targeting.get("combat"))

        try:
            tier = CapabilityTier.coerce(targeting.get("tier", 0))
        except (KeyError, ValueError):
            logger.warning("Unknown capability tier %r, using BASIC", targeting.get("tier"))
            tier = CapabilityTier.BASIC

        return cls(
            tier=tier,
            combat=CombatConfig.from_dict(combat),
            weights=DangerWeights.from_dict(targeting.get("danger_weights")),
            prediction=PredictionTuning.from_dict(targeting.get("dynamic_prediction")),
            update_intervals=UpdateIntervals.from_dict(targeting.get("update_intervals")),
            multi_lock=MultiLockTuning.from_dict(targeting.get("multi_lock")),
        )
