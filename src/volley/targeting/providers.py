"""Read interfaces the engine consumes, plus in-memory implementations.

The game owns the player and the enemy population; the engine only reads
snapshots through these protocols once per tick.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import replace
from typing import Protocol, runtime_checkable

import numpy as np

from volley.core.types import EnemySnapshot, PlayerSnapshot, PlayerStats, as_vec2


@runtime_checkable
class PlayerProvider(Protocol):
    """Source of player kinematics and weapon stats."""

    def position(self) -> np.ndarray:
        ...

    def velocity(self) -> np.ndarray:
        ...

    def stats(self) -> PlayerStats:
        ...


@runtime_checkable
class EnemyProvider(Protocol):
    """Source of enemy snapshots.

    ``get_enemy`` is a stable-handle lookup used for the cheap per-frame
    validity check of the primary lock; it returns None once the enemy
    no longer exists.
    """

    def active_enemies_near(self, point: np.ndarray, radius: float) -> Iterable[EnemySnapshot]:
        ...

    def get_enemy(self, enemy_id: str) -> EnemySnapshot | None:
        ...


def snapshot_player(
    provider: PlayerProvider,
    projectile_speed: float | None = None,
) -> PlayerSnapshot:
    """Freeze the provider's current state into a PlayerSnapshot.

    *projectile_speed* fills in for stats that leave the speed unset.
    """
    stats = provider.stats()
    if stats.projectile_speed is None and projectile_speed is not None:
        stats = replace(stats, projectile_speed=float(projectile_speed))
    return PlayerSnapshot(
        position=provider.position(),
        velocity=provider.velocity(),
        radius=stats.shield_radius,
        stats=stats,
    )


class StaticPlayer:
    """Mutable player state the game (or a test) writes into."""

    def __init__(
        self,
        position=(0.0, 0.0),
        velocity=(0.0, 0.0),
        stats: PlayerStats | None = None,
    ):
        self._position = as_vec2(position)
        self._velocity = as_vec2(velocity)
        self._stats = stats or PlayerStats()

    def position(self) -> np.ndarray:
        return self._position.copy()

    def velocity(self) -> np.ndarray:
        return self._velocity.copy()

    def stats(self) -> PlayerStats:
        return self._stats

    def move_to(self, position, velocity=None) -> None:
        self._position = as_vec2(position)
        if velocity is not None:
            self._velocity = as_vec2(velocity)

    def set_stats(self, **changes) -> None:
        self._stats = replace(self._stats, **changes)


class EnemyRegistry:
    """Dict-backed enemy population keyed by stable enemy id.

    Without a spatial index ``active_enemies_near`` filters the full list
    by distance.
    """

    def __init__(self, enemies: Iterable[EnemySnapshot] = ()):
        self._enemies: dict[str, EnemySnapshot] = {}
        for e in enemies:
            self.upsert(e)

    def upsert(self, enemy: EnemySnapshot) -> None:
        self._enemies[enemy.enemy_id] = enemy

    def remove(self, enemy_id: str) -> None:
        self._enemies.pop(enemy_id, None)

    def destroy(self, enemy_id: str) -> None:
        enemy = self._enemies.get(enemy_id)
        if enemy is not None:
            self._enemies[enemy_id] = replace(enemy, destroyed=True)

    def get_enemy(self, enemy_id: str) -> EnemySnapshot | None:
        return self._enemies.get(enemy_id)

    def active_enemies_near(self, point: np.ndarray, radius: float) -> Iterator[EnemySnapshot]:
        for enemy in list(self._enemies.values()):
            if enemy.destroyed:
                continue
            if not enemy.is_finite or enemy.distance_to(point) <= radius:
                # Non-finite entries are passed through; acquisition skips them.
                yield enemy

    def advance(self, dt: float) -> None:
        """Straight-line motion for scripted scenarios."""
        for enemy_id, enemy in list(self._enemies.items()):
            if enemy.destroyed:
                continue
            self._enemies[enemy_id] = replace(
                enemy, position=enemy.position + enemy.velocity * dt,
            )

    def __len__(self) -> int:
        return len(self._enemies)

    def __iter__(self) -> Iterator[EnemySnapshot]:
        return iter(list(self._enemies.values()))
