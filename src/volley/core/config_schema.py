"""Pydantic schema for VOLLEY configuration validation.

Mirrors the YAML structure in config/default.yaml. Used when
``validate=True`` is passed to ``VolleyConfig.load()``.
"""

from __future__ import annotations

import math
from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator

# ---------------------------------------------------------------------------
# Leaf / shared models
# ---------------------------------------------------------------------------


class SystemConfig(BaseModel):
    name: str = "VOLLEY"
    version: str = "0.1.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    validate_config: bool = False
    log_file: str | None = None
    log_json: bool = False


class CombatSchema(BaseModel):
    shoot_cooldown: float = Field(default=0.3, ge=0, allow_inf_nan=False)
    targeting_range: float = Field(default=400.0, gt=0, allow_inf_nan=False)
    multishot_spread_step: float = Field(default=0.3, allow_inf_nan=False)
    projectile_speed: float = Field(default=450.0, gt=0, allow_inf_nan=False)


class ImpactSchema(BaseModel):
    distance_weight: float = Field(default=18.0, allow_inf_nan=False)
    distance_normalization: float = Field(default=150.0, gt=0, allow_inf_nan=False)
    time_weight: float = Field(default=12.0, allow_inf_nan=False)
    time_normalization: float = Field(default=1.25, gt=0, allow_inf_nan=False)
    hp_weight: float = Field(default=8.0, allow_inf_nan=False)
    hp_normalization: float = Field(default=180.0, gt=0, allow_inf_nan=False)
    urgency_distance: float = Field(default=12.0, allow_inf_nan=False)
    urgency_time: float = Field(default=10.0, allow_inf_nan=False)
    hp_urgency_multiplier: float = Field(default=1.1, allow_inf_nan=False)
    stack_multiplier: float = Field(default=1.35, allow_inf_nan=False)
    stack_base: float = Field(default=0.4, allow_inf_nan=False)
    min_stack_score: float = Field(default=0.15, allow_inf_nan=False)
    max_recommended: int = Field(default=4, ge=1)


class DangerWeightsSchema(BaseModel):
    behavior: dict[str, float] = Field(
        default_factory=lambda: {"parasite": 240.0, "volatile": 200.0, "default": 140.0},
    )
    variant_overrides: dict[str, float] = Field(default_factory=dict)
    reward: float = Field(default=30.0, allow_inf_nan=False)
    reward_normalization: float = Field(default=20.0, gt=0, allow_inf_nan=False)
    reward_base_value: float = Field(default=5.0, ge=0, allow_inf_nan=False)
    reward_size_factors: dict[str, float] = Field(default_factory=dict)
    reward_variant_multipliers: dict[str, float] = Field(default_factory=dict)
    direction: float = Field(default=6.0, allow_inf_nan=False)
    direction_bias: float = Field(default=0.12, allow_inf_nan=False)
    speed: float = Field(default=4.0, allow_inf_nan=False)
    speed_reference: float = Field(default=180.0, gt=0, allow_inf_nan=False)
    size: dict[str, float] = Field(default_factory=dict)
    distance: float = Field(default=0.75, allow_inf_nan=False)
    impact: ImpactSchema = Field(default_factory=ImpactSchema)

    @model_validator(mode="after")
    def _finite_tables(self) -> DangerWeightsSchema:
        for table_name in (
            "behavior", "variant_overrides", "reward_size_factors",
            "reward_variant_multipliers", "size",
        ):
            for key, value in getattr(self, table_name).items():
                if not math.isfinite(value):
                    raise ValueError(f"{table_name}.{key} must be finite, got {value}")
        return self


class DynamicPredictionSchema(BaseModel):
    min_lead_time: float = Field(default=0.05, ge=0, allow_inf_nan=False)
    max_lead_time: float = Field(default=1.1, gt=0, allow_inf_nan=False)
    fallback_lead_time: float = Field(default=0.35, ge=0, allow_inf_nan=False)
    base_lead_time: float = Field(default=0.5, ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _ordered(self) -> DynamicPredictionSchema:
        if self.min_lead_time > self.max_lead_time:
            raise ValueError("min_lead_time must not exceed max_lead_time")
        return self


class UpdateIntervalsSchema(BaseModel):
    base: float = Field(default=0.15, gt=0)
    adaptive: float = Field(default=0.14, gt=0)
    dynamic: float = Field(default=0.12, gt=0)
    multi_lock: float = Field(default=0.1, gt=0)


class MultiLockSchema(BaseModel):
    base_target_count: int = Field(default=4, ge=1)
    cooldown_multiplier: float = Field(default=0.92, gt=0, allow_inf_nan=False)
    parallel_spacing: float = Field(default=14.0, ge=0, allow_inf_nan=False)
    parallel_radius_multiplier: float = Field(default=0.55, ge=0, allow_inf_nan=False)


class TargetingSchema(BaseModel):
    tier: int | Literal["basic", "adaptive", "dynamic", "multi_lock"] = 0
    danger_weights: DangerWeightsSchema = Field(default_factory=DangerWeightsSchema)
    dynamic_prediction: DynamicPredictionSchema = Field(default_factory=DynamicPredictionSchema)
    update_intervals: UpdateIntervalsSchema = Field(default_factory=UpdateIntervalsSchema)
    multi_lock: MultiLockSchema = Field(default_factory=MultiLockSchema)

    @model_validator(mode="after")
    def _tier_range(self) -> TargetingSchema:
        if isinstance(self.tier, int) and not 0 <= self.tier <= 3:
            raise ValueError(f"tier must be within 0..3, got {self.tier}")
        return self


class ScenarioPlayer(BaseModel):
    position: list[float] = Field(default_factory=lambda: [0.0, 0.0])
    velocity: list[float] = Field(default_factory=lambda: [0.0, 0.0])
    damage: float = 25.0
    multishot: int = Field(default=1, ge=0)
    projectile_speed: Annotated[float, Field(gt=0)] | None = None
    shield_radius: float = Field(default=20.0, ge=0)


class ScenarioEnemy(BaseModel):
    id: str
    position: list[float]
    velocity: list[float] = Field(default_factory=lambda: [0.0, 0.0])
    radius: float = Field(default=20.0, ge=0)
    health: float = Field(default=100.0, ge=0)
    max_health: float | None = None
    size: Literal["small", "medium", "large"] = "medium"
    variant: str = "common"
    behavior: str = "default"


class ScenarioSchema(BaseModel):
    player: ScenarioPlayer = Field(default_factory=ScenarioPlayer)
    enemies: list[ScenarioEnemy] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Top-level schema
# ---------------------------------------------------------------------------


class VolleySection(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    combat: CombatSchema = Field(default_factory=CombatSchema)
    targeting: TargetingSchema = Field(default_factory=TargetingSchema)
    scenario: ScenarioSchema = Field(default_factory=ScenarioSchema)


class VolleyConfigSchema(BaseModel):
    volley: VolleySection = Field(default_factory=VolleySection)


def validate_config(cfg_dict: dict) -> VolleyConfigSchema:
    """Validate a raw config dict (e.g. from OmegaConf) against the schema.

    Raises ``pydantic.ValidationError`` on invalid config.
    """
    return VolleyConfigSchema.model_validate(cfg_dict)
