"""Shared pytest fixtures for VOLLEY tests."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from omegaconf import OmegaConf

from volley.core.types import EnemySnapshot, PlayerSnapshot, PlayerStats
from volley.targeting.config import TargetingConfig


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def config_path(project_root: Path) -> Path:
    return project_root / "config" / "default.yaml"


@pytest.fixture
def default_config(config_path: Path):
    return OmegaConf.load(config_path)


@pytest.fixture
def player() -> PlayerSnapshot:
    """Stationary player at the origin with a single cannon."""
    return PlayerSnapshot(position=np.zeros(2), velocity=np.zeros(2), radius=20.0)


@pytest.fixture
def make_player():
    """Factory for players with custom weapon stats."""

    def _make(x: float = 0.0, y: float = 0.0, vx: float = 0.0, vy: float = 0.0, **stats):
        player_stats = PlayerStats(**stats)
        return PlayerSnapshot(
            position=np.array([x, y]),
            velocity=np.array([vx, vy]),
            radius=player_stats.shield_radius,
            stats=player_stats,
        )

    return _make


@pytest.fixture
def make_enemy():
    """Factory for enemy snapshots with sensible defaults."""

    def _make(
        enemy_id: str = "E1",
        x: float = 100.0,
        y: float = 0.0,
        vx: float = 0.0,
        vy: float = 0.0,
        **overrides,
    ) -> EnemySnapshot:
        defaults = dict(
            enemy_id=enemy_id,
            position=np.array([x, y]),
            velocity=np.array([vx, vy]),
            radius=10.0,
            health=90.0,
            max_health=90.0,
            size="medium",
            variant="common",
            behavior="default",
        )
        defaults.update(overrides)
        return EnemySnapshot(**defaults)

    return _make


@pytest.fixture
def targeting_config() -> TargetingConfig:
    return TargetingConfig()
