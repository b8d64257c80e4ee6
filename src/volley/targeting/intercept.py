"""Lead prediction — linear extrapolation and quadratic intercept.

A projectile fired from the player at speed ``s`` meets an enemy at
relative position ``D`` moving with velocity ``V`` after time ``T`` when

    |D + V * T| = s * T

Squaring both sides gives

    (|V|^2 - s^2) * T^2 + 2 * dot(D, V) * T + |D|^2 = 0

The smallest strictly positive root, clamped into the configured lead
window, gives the aim point ``enemy + V * T``. Shots are fired in the
player's frame, so only the enemy velocity enters the equation.

No solution is an ordinary outcome; callers fall back to the linear
prediction.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from volley.targeting.config import PredictionTuning

_DEGENERATE_EPS = 1e-4


@dataclass
class InterceptSolution:
    """Aim point plus how it was obtained."""

    aim_point: np.ndarray
    lead_time: float
    dynamic: bool = False

    def to_dict(self) -> dict:
        return {
            "aim_point": self.aim_point.tolist(),
            "lead_time": round(self.lead_time, 4),
            "dynamic": self.dynamic,
        }


class InterceptSolver:
    """Stateless intercept predictor."""

    @staticmethod
    def solve_intercept_time(
        player_pos: np.ndarray,
        enemy_pos: np.ndarray,
        enemy_vel: np.ndarray,
        projectile_speed: float,
    ) -> float | None:
        """Raw smallest positive intercept time, or None."""
        if not math.isfinite(projectile_speed) or projectile_speed <= 0:
            return None

        rel = np.asarray(enemy_pos, dtype=float) - np.asarray(player_pos, dtype=float)
        v = np.asarray(enemy_vel, dtype=float)

        a = float(np.dot(v, v)) - projectile_speed * projectile_speed
        b = 2.0 * float(np.dot(rel, v))
        c = float(np.dot(rel, rel))

        if abs(a) < _DEGENERATE_EPS:
            if abs(b) < _DEGENERATE_EPS:
                return None
            t = -c / b
        else:
            discriminant = b * b - 4.0 * a * c
            if discriminant < 0:
                return None
            sqrt_disc = math.sqrt(discriminant)
            roots = ((-b - sqrt_disc) / (2.0 * a), (-b + sqrt_disc) / (2.0 * a))
            positive = [r for r in roots if r > 0]
            if not positive:
                return None
            t = min(positive)

        if not math.isfinite(t) or t <= 0:
            return None
        return t

    def dynamic_intercept(
        self,
        player_pos: np.ndarray,
        enemy_pos: np.ndarray,
        enemy_vel: np.ndarray,
        projectile_speed: float,
        tuning: PredictionTuning,
    ) -> InterceptSolution | None:
        """Quadratic intercept with the lead time clamped to the tuning window."""
        t = self.solve_intercept_time(player_pos, enemy_pos, enemy_vel, projectile_speed)
        if t is None:
            return None
        t = max(tuning.min_lead_time, min(tuning.max_lead_time, t))
        aim = np.asarray(enemy_pos, dtype=float) + np.asarray(enemy_vel, dtype=float) * t
        return InterceptSolution(aim_point=aim, lead_time=t, dynamic=True)

    @staticmethod
    def linear(
        enemy_pos: np.ndarray,
        enemy_vel: np.ndarray,
        lead_time: float,
    ) -> InterceptSolution:
        aim = np.asarray(enemy_pos, dtype=float) + np.asarray(enemy_vel, dtype=float) * lead_time
        return InterceptSolution(aim_point=aim, lead_time=lead_time, dynamic=False)

    def predict(
        self,
        player_pos: np.ndarray,
        player_vel: np.ndarray,
        enemy_pos: np.ndarray,
        enemy_vel: np.ndarray,
        projectile_speed: float,
        tuning: PredictionTuning,
        dynamic: bool = True,
        lead_time: float | None = None,
    ) -> InterceptSolution:
        """Best available aim point.

        ``player_vel`` is accepted for interface symmetry; shots inherit
        the player frame so it does not enter the intercept equation.
        ``lead_time`` overrides the linear fallback lead.
        """
        if dynamic:
            solution = self.dynamic_intercept(
                player_pos, enemy_pos, enemy_vel, projectile_speed, tuning,
            )
            if solution is not None:
                return solution
        fallback = tuning.fallback_lead_time if lead_time is None else lead_time
        return self.linear(enemy_pos, enemy_vel, fallback)
