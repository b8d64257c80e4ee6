"""Fire-origin geometry — parallel barrel offsets and angular fan spread.

Shots stacked on one target are shifted sideways along the perpendicular
of the aim line so they travel as parallel tracers. The same offset is
applied to the origin and the aim point. The single-lock multishot
pattern instead fans shots out angularly around the aim point.
"""

from __future__ import annotations

import math

import numpy as np

_CENTER_EPS = 1e-4


class FireOriginCalculator:
    """Computes perpendicular offsets for duplicate shots on one target."""

    def __init__(self, spacing: float = 14.0, radius_multiplier: float = 0.55):
        self.spacing = spacing
        self.radius_multiplier = radius_multiplier

    def offset(
        self,
        player_pos: np.ndarray,
        aim_point: np.ndarray,
        duplicate_index: int,
        duplicate_count: int,
        target_radius: float = 0.0,
        spacing: float | None = None,
        radius_multiplier: float | None = None,
    ) -> np.ndarray:
        """Sideways offset for shot *duplicate_index* of *duplicate_count*.

        Index 0 and ``count - 1`` mirror each other about the aim line.
        """
        if duplicate_count <= 1:
            return np.zeros(2)

        spacing = self.spacing if spacing is None else spacing
        radius_multiplier = self.radius_multiplier if radius_multiplier is None else radius_multiplier

        direction = np.asarray(aim_point, dtype=float) - np.asarray(player_pos, dtype=float)
        distance = float(np.hypot(direction[0], direction[1]))
        if distance <= 0 or not math.isfinite(distance):
            return np.zeros(2)

        slot_center = (duplicate_count - 1) / 2.0
        offset_index = duplicate_index - slot_center
        if abs(offset_index) < _CENTER_EPS:
            return np.zeros(2)

        limit = max(spacing, target_radius * radius_multiplier)
        magnitude = max(-limit, min(limit, offset_index * spacing))

        ux, uy = direction / distance
        perpendicular = np.array([-uy, ux])
        return perpendicular * magnitude

    def apply(
        self,
        player_pos: np.ndarray,
        aim_point: np.ndarray,
        duplicate_index: int,
        duplicate_count: int,
        target_radius: float = 0.0,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return ``(origin, aim, offset)`` with the offset applied to both ends."""
        off = self.offset(player_pos, aim_point, duplicate_index, duplicate_count, target_radius)
        origin = np.asarray(player_pos, dtype=float) + off
        aim = np.asarray(aim_point, dtype=float) + off
        return origin, aim, off


def angular_spread(
    player_pos: np.ndarray,
    aim_point: np.ndarray,
    shot_index: int,
    total_shots: int,
    spread_step: float,
) -> np.ndarray:
    """Rotate the aim point about the player for a fan-shaped volley.

    Shot angles are ``(index - (total - 1) / 2) * spread_step`` radians
    off the aim line, keeping the original range.
    """
    aim = np.asarray(aim_point, dtype=float)
    direction = aim - np.asarray(player_pos, dtype=float)
    distance = float(np.hypot(direction[0], direction[1]))
    if distance == 0 or total_shots <= 1:
        return aim.copy()

    spread_angle = (shot_index - (total_shots - 1) / 2.0) * spread_step
    angle = math.atan2(direction[1], direction[0]) + spread_angle
    return np.asarray(player_pos, dtype=float) + np.array(
        [math.cos(angle) * distance, math.sin(angle) * distance],
    )
