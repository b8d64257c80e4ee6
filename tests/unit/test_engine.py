"""Tests for the per-frame fire-control engine."""

from __future__ import annotations

import numpy as np
import pytest

from volley.core.events import ShotFired, TargetLocked, TargetLost, UpgradeApplied, WeaponFired
from volley.core.types import CapabilityTier, EnemySnapshot, PlayerStats
from volley.targeting.config import CombatConfig, TargetingConfig
from volley.targeting.controller import FireState
from volley.targeting.engine import MIN_TARGETING_RANGE, FireControlEngine
from volley.targeting.intercept import InterceptSolver
from volley.targeting.providers import EnemyRegistry, StaticPlayer

FRAME = 1.0 / 60.0


@pytest.fixture
def player_provider() -> StaticPlayer:
    return StaticPlayer(position=(0.0, 0.0), stats=PlayerStats(multishot=1))


@pytest.fixture
def registry(make_enemy) -> EnemyRegistry:
    return EnemyRegistry([make_enemy("A", x=100.0), make_enemy("B", x=250.0)])


@pytest.fixture
def engine(player_provider, registry) -> FireControlEngine:
    return FireControlEngine(player_provider, registry)


def _names(events) -> list[str]:
    return [e.name for e in events]


class TestConstruction:
    def test_missing_player_provider(self, registry):
        with pytest.raises(ValueError):
            FireControlEngine(None, registry)

    def test_missing_enemy_provider(self, player_provider):
        with pytest.raises(ValueError):
            FireControlEngine(player_provider, None)

    def test_defaults(self, engine):
        assert engine.tier is CapabilityTier.BASIC
        assert engine.fire_state is FireState.IDLE
        assert engine.current_target is None
        assert engine.target_update_interval == pytest.approx(0.15)
        assert engine.shoot_cooldown == pytest.approx(0.3)

    def test_from_config(self, default_config, player_provider, registry):
        engine = FireControlEngine.from_config(default_config.volley, player_provider, registry)
        assert engine.tier is CapabilityTier.BASIC
        assert engine.config.combat.targeting_range == 400.0
        assert engine.config.weights.variant_overrides["gold"] == 170.0


class TestTick:
    def test_first_tick_locks_and_charges(self, engine):
        shots = engine.tick(FRAME)
        assert shots == []
        events = engine.events.drain()
        assert _names(events) == ["target-locked"]
        assert events[0].enemy_id == "A"
        assert events[0].lock_count == 1
        assert engine.fire_state is FireState.CHARGING

    def test_fires_after_cooldown(self, engine):
        shots = engine.tick(0.3)
        assert len(shots) == 1
        events = engine.events.drain()
        assert _names(events) == ["target-locked", "shot-fired", "weapon-fired"]
        fired = events[-1]
        assert isinstance(fired, WeaponFired)
        assert fired.primary_target_id == "A"
        assert fired.shot_count == 1
        assert fired.damage == 25.0
        assert fired.dynamic_prediction_used is False
        assert isinstance(events[1], ShotFired)
        np.testing.assert_allclose(fired.aim_points[0], [100.0, 0.0])

    def test_lock_not_republished_when_unchanged(self, engine):
        engine.tick(FRAME)
        engine.events.drain()
        for _ in range(30):
            engine.tick(FRAME)
        assert "target-locked" not in _names(engine.events.drain())

    def test_fire_rate(self, engine):
        fired = 0
        for _ in range(60):
            engine.tick(FRAME)
            fired += sum(isinstance(e, WeaponFired) for e in engine.events.drain())
        # One second at a 0.3 s cooldown
        assert fired == 3

    def test_destroyed_primary_publishes_target_lost_once(self, engine, registry):
        engine.tick(FRAME)
        engine.events.drain()
        registry.destroy("A")
        engine.tick(FRAME)
        events = engine.events.drain()
        assert _names(events) == ["target-lost"]
        assert engine.current_target is None

        # The next refresh picks up B without another target-lost
        for _ in range(12):
            engine.tick(FRAME)
        events = engine.events.drain()
        assert "target-lost" not in _names(events)
        locked = [e for e in events if isinstance(e, TargetLocked)]
        assert [e.enemy_id for e in locked] == ["B"]

    def test_primary_out_of_range(self, engine, player_provider):
        engine.tick(FRAME)
        engine.events.drain()
        player_provider.move_to((-400.0, 0.0))
        engine.tick(FRAME)
        assert isinstance(engine.events.drain()[0], TargetLost)

    def test_no_enemies(self, player_provider):
        engine = FireControlEngine(player_provider, EnemyRegistry())
        assert engine.tick(1.0) == []
        assert len(engine.events) == 0
        assert engine.fire_state is FireState.IDLE

    def test_refresh_cadence(self, engine, registry, make_enemy):
        engine.tick(FRAME)
        engine.events.drain()
        # A closer, far deadlier enemy appears; ranked in only on the next refresh
        registry.upsert(make_enemy("P", x=50.0, variant="parasite", behavior="parasite"))
        engine.tick(FRAME)
        assert engine.current_target == "A"


class TestUpgrades:
    def test_multi_lock_upgrade(self, engine, player_provider):
        player_provider.set_stats(multishot=4)
        engine.apply_upgrade(UpgradeApplied(tier=3))
        assert engine.tier is CapabilityTier.MULTI_LOCK
        assert engine.target_update_interval == pytest.approx(0.1)
        assert engine.shoot_cooldown == pytest.approx(0.3 * 0.92)

        shots = engine.tick(0.3)
        assert len(engine.lock_set) == 4
        assert len(shots) == 4
        fired = engine.events.drain()[-1]
        assert fired.lock_count == 4

    def test_weights_override_merges(self, engine):
        engine.apply_upgrade(UpgradeApplied(weights_override={"variant_overrides": {"gold": 500}}))
        weights = engine.config.weights
        assert weights.variant_overrides["gold"] == 500.0
        assert weights.variant_overrides["common"] == 120.0
        assert weights.impact.max_recommended == 4

    def test_reset_weights(self, engine):
        engine.apply_upgrade(UpgradeApplied(weights_override={"distance": 9.0}))
        engine.apply_upgrade(UpgradeApplied(reset_weights=True))
        assert engine.config.weights.distance == pytest.approx(0.75)

    def test_prediction_and_multi_lock_overrides(self, engine):
        engine.apply_upgrade(UpgradeApplied(
            prediction_override={"max_lead_time": 2.0},
            multi_lock_targets=2,
            cooldown_multiplier=0.8,
        ))
        assert engine.config.prediction.max_lead_time == 2.0
        assert engine.config.prediction.min_lead_time == pytest.approx(0.05)
        assert engine.config.multi_lock.base_target_count == 2
        assert engine.config.multi_lock.cooldown_multiplier == 0.8

    def test_upgrade_forces_refresh(self, engine, registry, make_enemy):
        engine.tick(FRAME)
        engine.events.drain()
        registry.upsert(make_enemy("P", x=50.0, variant="parasite", behavior="parasite"))
        engine.apply_upgrade(UpgradeApplied(tier=1))
        engine.tick(FRAME)
        assert engine.current_target == "P"

    def test_handle_event(self, engine):
        engine.handle_event(UpgradeApplied(tier="dynamic"))
        assert engine.tier is CapabilityTier.DYNAMIC
        engine.handle_event(object())
        assert engine.tier is CapabilityTier.DYNAMIC

    def test_unknown_tier_name_keeps_current(self, engine):
        engine.apply_upgrade(UpgradeApplied(tier="adaptive"))
        engine.handle_event(UpgradeApplied(tier="turbo", multi_lock_targets=2))
        assert engine.tier is CapabilityTier.ADAPTIVE
        assert engine.config.multi_lock.base_target_count == 2

    def test_digit_string_tier_clamped(self, engine):
        engine.apply_upgrade(UpgradeApplied(tier="7"))
        assert engine.tier is CapabilityTier.MULTI_LOCK


class TestProjectileSpeed:
    """The configured combat speed applies when the weapon has none."""

    def _aim(self, config, stats=None):
        player = StaticPlayer(position=(0.0, 0.0), stats=stats or PlayerStats())
        registry = EnemyRegistry([
            EnemySnapshot("E", position=[200.0, 0.0], velocity=[0.0, 80.0], radius=10.0),
        ])
        engine = FireControlEngine(player, registry, config=config)
        engine.refresh()
        return engine.lock_set.assignments[0].predicted_aim

    def _config(self, speed):
        return TargetingConfig(
            tier=CapabilityTier.DYNAMIC, combat=CombatConfig(projectile_speed=speed),
        )

    def test_combat_speed_changes_aim(self):
        slow = self._aim(self._config(100.0))
        fast = self._aim(self._config(2000.0))
        assert slow[1] > fast[1]

    @pytest.mark.parametrize("speed", [300.0, 2000.0])
    def test_aim_matches_intercept_at_combat_speed(self, speed):
        config = self._config(speed)
        expected = InterceptSolver().predict(
            np.zeros(2), np.zeros(2), np.array([200.0, 0.0]), np.array([0.0, 80.0]),
            speed, config.prediction,
        )
        np.testing.assert_allclose(self._aim(config), expected.aim_point)

    def test_weapon_speed_overrides_combat(self):
        own = self._aim(self._config(2000.0), PlayerStats(projectile_speed=300.0))
        configured = self._aim(self._config(300.0))
        np.testing.assert_allclose(own, configured)

    def test_from_config_uses_combat_key(self, default_config):
        default_config.volley.targeting.tier = 2
        default_config.volley.combat.projectile_speed = 900.0
        player = StaticPlayer(position=(0.0, 0.0))
        registry = EnemyRegistry([
            EnemySnapshot("E", position=[200.0, 0.0], velocity=[0.0, 80.0], radius=10.0),
        ])
        engine = FireControlEngine.from_config(default_config.volley, player, registry)
        engine.refresh()
        expected = InterceptSolver().predict(
            np.zeros(2), np.zeros(2), np.array([200.0, 0.0]), np.array([0.0, 80.0]),
            900.0, engine.config.prediction,
        )
        np.testing.assert_allclose(engine.lock_set.assignments[0].predicted_aim, expected.aim_point)


class TestSettersAndReset:
    def test_targeting_range_floor(self, engine):
        engine.set_targeting_range(10.0)
        assert engine.config.combat.targeting_range == MIN_TARGETING_RANGE
        engine.set_targeting_range(600.0)
        assert engine.config.combat.targeting_range == 600.0

    def test_shoot_cooldown_floor(self, engine):
        engine.set_shoot_cooldown(0.01)
        assert engine.shoot_cooldown == pytest.approx(0.1)

    def test_reset(self, engine):
        engine.tick(0.3)
        engine.reset()
        assert engine.current_target is None
        assert len(engine.lock_set) == 0
        assert engine.threat_cache == {}
        assert len(engine.events) == 0
        assert engine.fire_state is FireState.IDLE
        assert engine.status()["frame"] == 0

    def test_status(self, engine):
        engine.tick(FRAME)
        status = engine.status()
        assert status["tier"] == "BASIC"
        assert status["fire_state"] == "charging"
        assert status["lock_set"]["current_target"] == "A"

    def test_explicit_config(self, player_provider, registry):
        config = TargetingConfig(tier=CapabilityTier.ADAPTIVE)
        engine = FireControlEngine(player_provider, registry, config=config)
        engine.tick(FRAME)
        assert set(engine.threat_cache) == {"A", "B"}
