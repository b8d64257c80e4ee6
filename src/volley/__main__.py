"""VOLLEY CLI entry point.

Runs the configured scenario through the fire-control engine: enemies
move in straight lines, the engine ticks at a fixed step, and every
emitted event is logged.

Usage:
    python -m volley                              # Default config, tier from config
    python -m volley --tier 3 --steps 120         # Multi-lock, two seconds at 60 Hz
    python -m volley --config custom.yaml --json  # JSON log lines
"""

from __future__ import annotations

import argparse
import sys

from omegaconf import OmegaConf

from volley.core.config import VolleyConfig
from volley.core.events import ShotFired
from volley.core.types import EnemySnapshot, PlayerStats
from volley.targeting.engine import FireControlEngine
from volley.targeting.providers import EnemyRegistry, StaticPlayer
from volley.utils.logging import bind_frame, clear_frame, get_logger, setup_logging


def build_scenario(scenario: dict) -> tuple[StaticPlayer, EnemyRegistry]:
    """Create providers from the ``volley.scenario`` config section."""
    player_cfg = scenario.get("player", {}) or {}
    player = StaticPlayer(
        position=player_cfg.get("position", [0.0, 0.0]),
        velocity=player_cfg.get("velocity", [0.0, 0.0]),
        stats=PlayerStats(
            damage=float(player_cfg.get("damage", 25.0)),
            multishot=int(player_cfg.get("multishot", 1)),
            projectile_speed=(
                float(player_cfg["projectile_speed"])
                if player_cfg.get("projectile_speed") is not None
                else None
            ),
            shield_radius=float(player_cfg.get("shield_radius", 20.0)),
        ),
    )
    enemies = EnemyRegistry(
        EnemySnapshot.from_config(e) for e in (scenario.get("enemies") or [])
    )
    return player, enemies


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="volley",
        description="VOLLEY - fire-control engine scenario runner",
    )
    parser.add_argument(
        "--config",
        "-c",
        default="config/default.yaml",
        help="Path to configuration YAML file (default: config/default.yaml)",
    )
    parser.add_argument("--steps", type=int, default=90, help="Frames to simulate")
    parser.add_argument("--dt", type=float, default=1.0 / 60.0, help="Frame step (seconds)")
    parser.add_argument(
        "--tier",
        default=None,
        help="Override capability tier (0-3 or basic/adaptive/dynamic/multi_lock)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level",
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON log lines")
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a config key, e.g. volley.combat.targeting_range=500 (repeatable)",
    )
    args = parser.parse_args()

    config = VolleyConfig(args.config)
    try:
        config.load()
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.tier is not None:
        config.override("volley.targeting.tier", args.tier)
    config.override_dotlist(args.set)
    cfg = config.cfg

    system = cfg.volley.get("system", {})
    setup_logging(
        level=args.log_level or system.get("log_level", "INFO"),
        log_file=system.get("log_file"),
        log_json=args.json or bool(system.get("log_json", False)),
    )
    log = get_logger("volley.cli")

    player, enemies = build_scenario(OmegaConf.to_container(cfg.volley.scenario, resolve=True))
    engine = FireControlEngine.from_config(cfg.volley, player, enemies)
    log.info("scenario_start", tier=engine.tier.name, enemies=len(enemies), steps=args.steps)

    volleys = 0
    shots = 0
    for frame in range(args.steps):
        bind_frame(frame, frame * args.dt)
        enemies.advance(args.dt)
        engine.tick(args.dt)
        for event in engine.events.drain():
            if isinstance(event, ShotFired):
                shots += 1
                continue
            if event.name == "weapon-fired":
                volleys += 1
            log.info(event.name, **{k: v for k, v in event.to_dict().items() if k != "event"})
    clear_frame()

    log.info("scenario_end", volleys=volleys, shots=shots, targets=engine.lock_set.targets)
    return 0


if __name__ == "__main__":
    sys.exit(main())
