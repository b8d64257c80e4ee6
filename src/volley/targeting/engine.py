"""Fire-control engine — top-level per-frame orchestrator.

Ties together: acquisition + threat scoring + intercept + assignment +
origin offsets + firing. One ``tick(dt)`` per frame; re-acquisition runs
inside the same tick whenever its timer expires.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from volley.core.events import (
    EventQueue,
    ShotFired,
    TargetLocked,
    TargetLost,
    UpgradeApplied,
    WeaponFired,
)
from volley.core.types import CapabilityTier, PlayerSnapshot
from volley.targeting.acquisition import AcquisitionResult, TargetAcquisition, is_valid_target
from volley.targeting.assignment import LockAssignmentPlanner, LockSet
from volley.targeting.config import TargetingConfig
from volley.targeting.controller import FireController, FireState, Volley
from volley.targeting.intercept import InterceptSolver
from volley.targeting.origin import FireOriginCalculator
from volley.targeting.providers import EnemyProvider, PlayerProvider, snapshot_player
from volley.targeting.threat import ThreatBreakdown, ThreatEvaluator

logger = logging.getLogger(__name__)

MIN_TARGETING_RANGE = 50.0


class FireControlEngine:
    """Owns the lock set, threat cache, cooldown and outbound events."""

    def __init__(
        self,
        player_provider: PlayerProvider,
        enemy_provider: EnemyProvider,
        config: TargetingConfig | None = None,
        events: EventQueue | None = None,
    ):
        if player_provider is None:
            raise ValueError("FireControlEngine requires a player provider")
        if enemy_provider is None:
            raise ValueError("FireControlEngine requires an enemy provider")

        self._player_provider = player_provider
        self._enemy_provider = enemy_provider
        self._base_config = config or TargetingConfig()
        self._config = self._base_config
        self._events = events or EventQueue()

        solver = InterceptSolver()
        origin = FireOriginCalculator(
            spacing=self._config.multi_lock.parallel_spacing,
            radius_multiplier=self._config.multi_lock.parallel_radius_multiplier,
        )
        self._acquisition = TargetAcquisition(
            evaluator=ThreatEvaluator(),
            planner=LockAssignmentPlanner(solver=solver, origin_calculator=origin),
        )
        self._controller = FireController(
            shoot_cooldown=self._config.combat.shoot_cooldown,
            spread_step=self._config.combat.multishot_spread_step,
            solver=solver,
            origin_calculator=origin,
        )
        self._refresh_timer = 0.0
        self._frame = 0

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def config(self) -> TargetingConfig:
        return self._config

    @property
    def tier(self) -> CapabilityTier:
        return self._config.tier

    @property
    def events(self) -> EventQueue:
        return self._events

    @property
    def lock_set(self) -> LockSet:
        return self._acquisition.lock_set

    @property
    def threat_cache(self) -> dict[str, ThreatBreakdown]:
        return self._acquisition.threat_cache

    @property
    def current_target(self) -> str | None:
        return self._acquisition.current_target

    @property
    def fire_state(self) -> FireState:
        return self._controller.state

    @property
    def target_update_interval(self) -> float:
        return self._config.update_intervals.for_tier(self.tier)

    @property
    def shoot_cooldown(self) -> float:
        """Effective cooldown including the multi-lock multiplier."""
        return self._controller.shoot_cooldown * self._cooldown_multiplier()

    def _cooldown_multiplier(self) -> float:
        if self.tier.multi_lock:
            return self._config.multi_lock.cooldown_multiplier
        return 1.0

    # ------------------------------------------------------------------
    # Per-frame update
    # ------------------------------------------------------------------

    def tick(self, dt: float) -> list[ShotFired]:
        """Advance one frame. Returns the shots fired this frame."""
        self._frame += 1
        player = snapshot_player(self._player_provider, self._config.combat.projectile_speed)

        self._refresh_timer -= dt
        if self._refresh_timer <= 0:
            self.refresh(player)
            self._refresh_timer = self.target_update_interval

        self._check_primary(player)

        volley = self._controller.update(
            dt,
            player,
            self.lock_set,
            self._enemy_provider.get_enemy,
            self.tier,
            self._config.combat.targeting_range,
            self._config.prediction,
            cooldown_multiplier=self._cooldown_multiplier(),
        )
        if volley is None:
            return []
        self._publish_volley(volley)
        return volley.shots

    def refresh(self, player: PlayerSnapshot | None = None) -> AcquisitionResult:
        """Run a re-acquisition pass immediately."""
        if player is None:
            player = snapshot_player(self._player_provider, self._config.combat.projectile_speed)
        enemies = self._enemy_provider.active_enemies_near(
            player.position, self._config.combat.targeting_range,
        )
        result = self._acquisition.refresh(
            player,
            enemies,
            self._config,
            self.tier,
            multi_lock_targets=self._config.multi_lock.base_target_count,
        )
        if result.primary_changed:
            self._publish_lock_change()
        return result

    def _check_primary(self, player: PlayerSnapshot) -> None:
        """Cheap per-frame validity check of the primary lock only."""
        primary_id = self.current_target
        if primary_id is None:
            return
        enemy = self._enemy_provider.get_enemy(primary_id)
        if not is_valid_target(enemy, player, self._config.combat.targeting_range):
            logger.debug("Primary target %s no longer valid", primary_id)
            self._acquisition.clear()
            self._events.publish(TargetLost())

    def _publish_lock_change(self) -> None:
        lock_set = self.lock_set
        primary = lock_set.primary
        if primary is None:
            logger.info("Target lost")
            self._events.publish(TargetLost())
            return
        logger.info(
            "Target locked: %s (score=%.2f, locks=%d)",
            primary.enemy_id, primary.score, len(lock_set),
        )
        self._events.publish(TargetLocked(
            enemy_id=primary.enemy_id,
            score=primary.score,
            lock_count=len(lock_set),
        ))

    def _publish_volley(self, volley: Volley) -> None:
        for shot in volley.shots:
            self._events.publish(shot)
        self._events.publish(WeaponFired(
            origins=volley.origins,
            aim_points=volley.aim_points,
            damage=volley.damage,
            primary_target_id=volley.primary_target_id,
            lock_count=volley.lock_count,
            dynamic_prediction_used=volley.dynamic_prediction_used,
        ))

    # ------------------------------------------------------------------
    # Configuration changes
    # ------------------------------------------------------------------

    def apply_upgrade(self, upgrade: UpgradeApplied) -> None:
        """Swap in new weights/tuning/tier wholesale and force a refresh."""
        cfg = self._config
        weights = self._base_config.weights if upgrade.reset_weights else cfg.weights
        weights = weights.with_override(upgrade.weights_override)
        prediction = cfg.prediction.with_override(upgrade.prediction_override)

        multi_lock = cfg.multi_lock
        if upgrade.multi_lock_targets is not None:
            multi_lock = replace(multi_lock, base_target_count=max(1, int(upgrade.multi_lock_targets)))
        if upgrade.cooldown_multiplier is not None:
            multi_lock = replace(multi_lock, cooldown_multiplier=float(upgrade.cooldown_multiplier))

        tier = cfg.tier
        if upgrade.tier is not None:
            try:
                tier = CapabilityTier.coerce(upgrade.tier)
            except (KeyError, ValueError):
                logger.warning("Unknown capability tier %r in upgrade, keeping %s", upgrade.tier, tier.name)

        self._config = replace(
            cfg,
            tier=tier,
            weights=weights,
            prediction=prediction,
            multi_lock=multi_lock,
        )
        self._refresh_timer = 0.0
        logger.info(
            "Upgrade applied: tier=%s locks=%d interval=%.2fs",
            tier.name, multi_lock.base_target_count, self.target_update_interval,
        )

    def handle_event(self, event: Any) -> None:
        """Dispatch inbound events; only upgrades are understood."""
        if isinstance(event, UpgradeApplied):
            self.apply_upgrade(event)
        else:
            logger.debug("Ignoring event %r", event)

    def set_shoot_cooldown(self, cooldown: float) -> None:
        self._controller.set_shoot_cooldown(cooldown)

    def set_targeting_range(self, targeting_range: float) -> None:
        combat = replace(
            self._config.combat,
            targeting_range=max(MIN_TARGETING_RANGE, float(targeting_range)),
        )
        self._config = replace(self._config, combat=combat)

    def reset(self) -> None:
        """Drop locks, cooldown progress and pending events."""
        self._acquisition.clear()
        self._controller.reset()
        self._events.clear()
        self._refresh_timer = 0.0
        self._frame = 0
        logger.info("Fire control reset")

    def status(self) -> dict:
        return {
            "frame": self._frame,
            "tier": self.tier.name,
            "fire_state": self.fire_state.value,
            "lock_set": self.lock_set.to_dict(),
            "shoot_cooldown": round(self.shoot_cooldown, 3),
            "target_update_interval": self.target_update_interval,
        }

    @classmethod
    def from_config(
        cls,
        cfg: Any,
        player_provider: PlayerProvider,
        enemy_provider: EnemyProvider,
    ) -> FireControlEngine:
        """Build from an OmegaConf node or plain dict."""
        return cls(
            player_provider=player_provider,
            enemy_provider=enemy_provider,
            config=TargetingConfig.from_omegaconf(cfg),
        )
