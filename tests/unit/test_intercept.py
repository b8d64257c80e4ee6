"""Tests for quadratic intercept and linear lead prediction."""

from __future__ import annotations

import numpy as np
import pytest

from volley.targeting.config import PredictionTuning
from volley.targeting.intercept import InterceptSolver

ORIGIN = np.zeros(2)


@pytest.fixture
def solver() -> InterceptSolver:
    return InterceptSolver()


@pytest.fixture
def tuning() -> PredictionTuning:
    return PredictionTuning()


class TestSolveInterceptTime:
    def test_round_trip(self, solver):
        enemy_pos = np.array([100.0, 0.0])
        enemy_vel = np.array([-50.0, 0.0])
        t = solver.solve_intercept_time(ORIGIN, enemy_pos, enemy_vel, 200.0)
        assert t == pytest.approx(0.4)

        enemy_at_t = enemy_pos + enemy_vel * t
        direction = enemy_at_t / np.linalg.norm(enemy_at_t)
        projectile_at_t = ORIGIN + direction * 200.0 * t
        np.testing.assert_allclose(projectile_at_t, enemy_at_t, atol=1e-9)

    def test_stationary_enemy_aims_at_position(self, solver):
        t = solver.solve_intercept_time(ORIGIN, np.array([100.0, 0.0]), np.zeros(2), 450.0)
        assert t == pytest.approx(100.0 / 450.0)

    def test_negative_discriminant(self, solver):
        # Enemy crossing faster than the projectile can close
        t = solver.solve_intercept_time(
            ORIGIN, np.array([100.0, 0.0]), np.array([0.0, 300.0]), 200.0,
        )
        assert t is None

    def test_both_roots_negative(self, solver):
        t = solver.solve_intercept_time(
            ORIGIN, np.array([100.0, 0.0]), np.array([500.0, 0.0]), 200.0,
        )
        assert t is None

    def test_equal_speeds_linear_case(self, solver):
        # |v| == projectile speed -> a == 0, t = -c / b
        t = solver.solve_intercept_time(
            ORIGIN, np.array([100.0, 0.0]), np.array([-200.0, 0.0]), 200.0,
        )
        assert t == pytest.approx(0.25)

    def test_equal_speeds_no_closing_term(self, solver):
        t = solver.solve_intercept_time(
            ORIGIN, np.array([100.0, 0.0]), np.array([0.0, 200.0]), 200.0,
        )
        assert t is None

    @pytest.mark.parametrize("speed", [0.0, -10.0, float("nan"), float("inf")])
    def test_invalid_projectile_speed(self, solver, speed):
        assert solver.solve_intercept_time(
            ORIGIN, np.array([100.0, 0.0]), np.zeros(2), speed,
        ) is None


class TestDynamicIntercept:
    def test_aim_point(self, solver, tuning):
        sol = solver.dynamic_intercept(
            ORIGIN, np.array([100.0, 0.0]), np.array([-50.0, 0.0]), 200.0, tuning,
        )
        assert sol is not None
        assert sol.dynamic is True
        np.testing.assert_allclose(sol.aim_point, [80.0, 0.0])

    def test_clamped_to_max_lead(self, solver, tuning):
        sol = solver.dynamic_intercept(
            ORIGIN, np.array([1000.0, 0.0]), np.array([0.0, 10.0]), 200.0, tuning,
        )
        assert sol.lead_time == pytest.approx(1.1)
        np.testing.assert_allclose(sol.aim_point, [1000.0, 11.0])

    def test_clamped_to_min_lead(self, solver, tuning):
        sol = solver.dynamic_intercept(
            ORIGIN, np.array([1.0, 0.0]), np.array([0.0, 10.0]), 200.0, tuning,
        )
        assert sol.lead_time == pytest.approx(0.05)

    def test_no_solution(self, solver, tuning):
        assert solver.dynamic_intercept(
            ORIGIN, np.array([100.0, 0.0]), np.array([500.0, 0.0]), 200.0, tuning,
        ) is None


class TestPredict:
    def test_linear_uses_fallback_lead(self, solver, tuning):
        sol = solver.predict(
            ORIGIN, ORIGIN, np.array([100.0, 0.0]), np.array([-50.0, 0.0]), 200.0, tuning,
            dynamic=False,
        )
        assert sol.dynamic is False
        np.testing.assert_allclose(sol.aim_point, [82.5, 0.0])

    def test_linear_lead_override(self, solver, tuning):
        sol = solver.predict(
            ORIGIN, ORIGIN, np.array([100.0, 0.0]), np.array([-50.0, 0.0]), 200.0, tuning,
            dynamic=False, lead_time=0.5,
        )
        np.testing.assert_allclose(sol.aim_point, [75.0, 0.0])

    def test_dynamic_falls_back_to_linear(self, solver, tuning):
        sol = solver.predict(
            ORIGIN, ORIGIN, np.array([100.0, 0.0]), np.array([500.0, 0.0]), 200.0, tuning,
        )
        assert sol.dynamic is False
        np.testing.assert_allclose(sol.aim_point, [275.0, 0.0])

    def test_zero_velocity_hits_current_position(self, solver, tuning):
        enemy_pos = np.array([120.0, -40.0])
        for dynamic in (True, False):
            sol = solver.predict(
                ORIGIN, ORIGIN, enemy_pos, np.zeros(2), 450.0, tuning, dynamic=dynamic,
            )
            np.testing.assert_allclose(sol.aim_point, enemy_pos)

    def test_player_velocity_ignored(self, solver, tuning):
        a = solver.predict(
            ORIGIN, np.array([300.0, 0.0]), np.array([100.0, 0.0]), np.array([-50.0, 0.0]),
            200.0, tuning,
        )
        b = solver.predict(
            ORIGIN, ORIGIN, np.array([100.0, 0.0]), np.array([-50.0, 0.0]), 200.0, tuning,
        )
        np.testing.assert_allclose(a.aim_point, b.aim_point)

    def test_to_dict(self, solver, tuning):
        sol = solver.predict(
            ORIGIN, ORIGIN, np.array([100.0, 0.0]), np.array([-50.0, 0.0]), 200.0, tuning,
        )
        d = sol.to_dict()
        assert d["aim_point"] == pytest.approx([80.0, 0.0])
        assert d["lead_time"] == pytest.approx(0.4)
        assert d["dynamic"] is True
