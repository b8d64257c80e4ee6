"""Core data types shared by the fire-control engine."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field, replace

import numpy as np

DEFAULT_PROJECTILE_SPEED = 450.0


class SizeClass(enum.Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class CapabilityTier(enum.IntEnum):
    """Ordered targeting capability levels.

    Each tier includes everything below it:
    BASIC aims at the nearest enemy, ADAPTIVE ranks by danger score,
    DYNAMIC adds quadratic intercept prediction, MULTI_LOCK coordinates
    several independently aimed cannons.
    """

    BASIC = 0
    ADAPTIVE = 1
    DYNAMIC = 2
    MULTI_LOCK = 3

    @property
    def danger_scoring(self) -> bool:
        return self >= CapabilityTier.ADAPTIVE

    @property
    def dynamic_prediction(self) -> bool:
        return self >= CapabilityTier.DYNAMIC

    @property
    def multi_lock(self) -> bool:
        return self >= CapabilityTier.MULTI_LOCK

    @classmethod
    def coerce(cls, value: CapabilityTier | int | str) -> CapabilityTier:
        """Accept an enum, an int level or a (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            try:
                level = int(key)
            except ValueError:
                return cls[key]
        else:
            level = int(value)
        return cls(max(min(level, cls.MULTI_LOCK), cls.BASIC))


def as_vec2(value) -> np.ndarray:
    """Coerce an (x, y) pair into a float64 array."""
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.shape[0] < 2:
        raise ValueError(f"Expected a 2D vector, got {value!r}")
    return arr[:2].copy()


@dataclass(frozen=True, eq=False)
class EnemySnapshot:
    """Read-only view of a hostile entity at scoring time."""

    enemy_id: str
    position: np.ndarray
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))
    radius: float = 0.0
    health: float = 0.0
    max_health: float = 0.0
    size: SizeClass = SizeClass.MEDIUM
    variant: str = "common"
    behavior: str = "default"
    destroyed: bool = False

    def __post_init__(self):
        object.__setattr__(self, "enemy_id", str(self.enemy_id))
        object.__setattr__(self, "position", as_vec2(self.position))
        object.__setattr__(self, "velocity", as_vec2(self.velocity))
        object.__setattr__(self, "radius", float(self.radius))
        object.__setattr__(self, "health", float(self.health))
        object.__setattr__(self, "max_health", float(self.max_health))
        if not isinstance(self.size, SizeClass):
            object.__setattr__(self, "size", SizeClass(str(self.size).lower()))

    @property
    def is_finite(self) -> bool:
        """True when every kinematic and health field is a finite number."""
        return bool(
            np.all(np.isfinite(self.position))
            and np.all(np.isfinite(self.velocity))
            and math.isfinite(self.radius)
            and math.isfinite(self.health)
        )

    @property
    def speed(self) -> float:
        return float(np.hypot(self.velocity[0], self.velocity[1]))

    def distance_to(self, point: np.ndarray) -> float:
        return float(np.hypot(self.position[0] - point[0], self.position[1] - point[1]))

    @classmethod
    def from_config(cls, cfg: dict) -> EnemySnapshot:
        """Parse an enemy from a scenario config dict."""
        health = float(cfg.get("health", 100.0))
        return cls(
            enemy_id=cfg["id"],
            position=cfg.get("position", [0.0, 0.0]),
            velocity=cfg.get("velocity", [0.0, 0.0]),
            radius=float(cfg.get("radius", 20.0)),
            health=health,
            max_health=float(cfg.get("max_health", health)),
            size=SizeClass(cfg.get("size", "medium")),
            variant=cfg.get("variant", "common"),
            behavior=cfg.get("behavior", "default"),
        )

    def to_dict(self) -> dict:
        return {
            "enemy_id": self.enemy_id,
            "position": self.position.tolist(),
            "velocity": self.velocity.tolist(),
            "radius": self.radius,
            "health": self.health,
            "max_health": self.max_health,
            "size": self.size.value,
            "variant": self.variant,
            "behavior": self.behavior,
            "destroyed": self.destroyed,
        }


@dataclass(frozen=True)
class PlayerStats:
    """Weapon stats bundle read from the player each tick.

    ``projectile_speed=None`` means the weapon has no speed of its own and
    the engine's configured ``combat.projectile_speed`` applies.
    """

    damage: float = 25.0
    multishot: int = 1
    projectile_speed: float | None = None
    shield_radius: float = 20.0


@dataclass(frozen=True, eq=False)
class PlayerSnapshot:
    """Read-only view of the player, refreshed once per engine tick."""

    position: np.ndarray
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))
    radius: float = 20.0
    stats: PlayerStats = field(default_factory=PlayerStats)

    def __post_init__(self):
        object.__setattr__(self, "position", as_vec2(self.position))
        object.__setattr__(self, "velocity", as_vec2(self.velocity))
        object.__setattr__(self, "radius", float(self.radius))
        if self.stats.projectile_speed is None:
            object.__setattr__(
                self, "stats", replace(self.stats, projectile_speed=DEFAULT_PROJECTILE_SPEED),
            )
