"""Tests for the configuration system."""

import pytest
from omegaconf import DictConfig

from volley.core.config import VolleyConfig
from volley.core.types import CapabilityTier
from volley.targeting.config import (
    DangerWeights,
    ImpactWeights,
    PredictionTuning,
    TargetingConfig,
    UpdateIntervals,
    merge_tree,
)


class TestVolleyConfig:
    def test_load_default(self, config_path):
        config = VolleyConfig(config_path)
        cfg = config.load()
        assert isinstance(cfg, DictConfig)
        assert cfg.volley.system.name == "VOLLEY"

    def test_load_missing_file(self, tmp_path):
        config = VolleyConfig(tmp_path / "nonexistent.yaml")
        with pytest.raises(FileNotFoundError):
            config.load()

    def test_override(self, config_path):
        config = VolleyConfig(config_path)
        config.load()
        config.override("volley.targeting.tier", 3)
        assert config.cfg.volley.targeting.tier == 3

    def test_override_before_load(self, config_path):
        config = VolleyConfig(config_path)
        with pytest.raises(RuntimeError):
            config.override("volley.targeting.tier", 3)

    def test_cfg_before_load(self, config_path):
        with pytest.raises(RuntimeError):
            VolleyConfig(config_path).cfg

    def test_overlay_merges(self, config_path, tmp_path):
        overlay = tmp_path / "hard.yaml"
        overlay.write_text(
            "volley:\n"
            "  targeting:\n"
            "    tier: 2\n"
            "    danger_weights:\n"
            "      distance: 2.5\n"
        )
        cfg = VolleyConfig(config_path).load(overlay)
        assert cfg.volley.targeting.tier == 2
        assert cfg.volley.targeting.danger_weights.distance == 2.5
        assert cfg.volley.targeting.danger_weights.reward == 30

    def test_missing_overlay(self, config_path, tmp_path):
        with pytest.raises(FileNotFoundError):
            VolleyConfig(config_path).load(tmp_path / "nope.yaml")

    def test_override_dotlist(self, config_path):
        config = VolleyConfig(config_path)
        config.load()
        config.override_dotlist([
            "volley.combat.targeting_range=500",
            "volley.targeting.multi_lock.parallel_spacing=20",
        ])
        assert config.cfg.volley.combat.targeting_range == 500
        assert config.cfg.volley.targeting.multi_lock.parallel_spacing == 20
        assert config.cfg.volley.combat.projectile_speed == 450.0

    def test_override_dotlist_before_load(self, config_path):
        with pytest.raises(RuntimeError):
            VolleyConfig(config_path).override_dotlist(["volley.targeting.tier=1"])

    def test_non_mapping_yaml_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            VolleyConfig(path).load()

    def test_validate_default(self, config_path):
        VolleyConfig(config_path).load(validate=True)

    def test_combat_defaults(self, config_path):
        cfg = VolleyConfig(config_path).load()
        combat = cfg.volley.combat
        assert combat.shoot_cooldown == 0.3
        assert combat.targeting_range == 400.0
        assert combat.projectile_speed == 450.0


class TestTargetingConfig:
    def test_from_volley_root(self, default_config):
        tc = TargetingConfig.from_omegaconf(default_config.volley)
        assert tc.tier is CapabilityTier.BASIC
        assert tc.combat.multishot_spread_step == 0.3
        assert tc.weights.behavior["parasite"] == 240.0
        assert tc.weights.reward_variant_multipliers["parasite"] == pytest.approx(8.10)
        assert tc.weights.impact.stack_multiplier == pytest.approx(1.35)
        assert tc.prediction.fallback_lead_time == pytest.approx(0.35)
        assert tc.update_intervals.multi_lock == pytest.approx(0.1)
        assert tc.multi_lock.parallel_spacing == 14.0

    def test_yaml_matches_dataclass_defaults(self, default_config):
        tc = TargetingConfig.from_omegaconf(default_config.volley)
        assert tc == TargetingConfig()

    def test_targeting_section_with_own_combat(self):
        tc = TargetingConfig.from_omegaconf({
            "tier": "multi_lock",
            "combat": {"targeting_range": 250.0},
        })
        assert tc.tier is CapabilityTier.MULTI_LOCK
        assert tc.combat.targeting_range == 250.0

    def test_unknown_tier_falls_back(self):
        tc = TargetingConfig.from_omegaconf({"targeting": {"tier": "turbo"}})
        assert tc.tier is CapabilityTier.BASIC

    def test_out_of_range_tier_clamped(self):
        tc = TargetingConfig.from_omegaconf({"targeting": {"tier": 7}})
        assert tc.tier is CapabilityTier.MULTI_LOCK

    def test_none_gives_defaults(self):
        assert TargetingConfig.from_omegaconf(None) == TargetingConfig()


class TestSections:
    def test_with_override_is_non_destructive(self):
        base = DangerWeights()
        changed = base.with_override({"size": {"large": 10}})
        assert changed.size == {"large": 10.0, "medium": 2.0, "small": 1.0}
        assert base.size["large"] == 3.0

    def test_with_override_empty(self):
        base = DangerWeights()
        assert base.with_override(None) == base

    def test_prediction_bounds_validated(self):
        with pytest.raises(ValueError):
            PredictionTuning(min_lead_time=2.0, max_lead_time=1.0)

    def test_max_recommended_validated(self):
        with pytest.raises(ValueError):
            ImpactWeights(max_recommended=0)

    @pytest.mark.parametrize("tier,expected", [
        (CapabilityTier.BASIC, 0.15),
        (CapabilityTier.ADAPTIVE, 0.14),
        (CapabilityTier.DYNAMIC, 0.12),
        (CapabilityTier.MULTI_LOCK, 0.1),
    ])
    def test_update_interval_per_tier(self, tier, expected):
        assert UpdateIntervals().for_tier(tier) == pytest.approx(expected)

    def test_linear_lead_time(self):
        tuning = PredictionTuning()
        assert tuning.linear_lead_time(CapabilityTier.BASIC) == 0.5
        assert tuning.linear_lead_time(CapabilityTier.DYNAMIC) == 0.35

    def test_merge_tree(self):
        merged = merge_tree({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}})
        assert merged == {"a": {"b": 1, "c": 3}}
