"""Outbound event queue for fire-control notifications.

The engine appends typed events during ``tick``; collaborators (audio,
VFX, bullet spawning, HUD) drain the queue afterwards or subscribe for
immediate delivery.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetLocked:
    enemy_id: str
    score: float
    lock_count: int

    name = "target-locked"

    def to_dict(self) -> dict:
        return {
            "event": self.name,
            "enemy_id": self.enemy_id,
            "score": round(self.score, 3),
            "lock_count": self.lock_count,
        }


@dataclass(frozen=True)
class TargetLost:
    name = "target-lost"

    def to_dict(self) -> dict:
        return {"event": self.name}


@dataclass(frozen=True, eq=False)
class ShotFired:
    """One projectile to spawn."""

    origin: np.ndarray
    aim_point: np.ndarray
    damage: float
    target_id: str | None = None

    name = "shot-fired"

    def to_dict(self) -> dict:
        return {
            "event": self.name,
            "origin": [round(float(v), 2) for v in self.origin],
            "aim_point": [round(float(v), 2) for v in self.aim_point],
            "damage": self.damage,
            "target_id": self.target_id,
        }


@dataclass(frozen=True, eq=False)
class WeaponFired:
    """One volley; emitted once per fire event."""

    origins: list[np.ndarray]
    aim_points: list[np.ndarray]
    damage: float
    primary_target_id: str | None
    lock_count: int
    dynamic_prediction_used: bool = False

    name = "weapon-fired"

    @property
    def shot_count(self) -> int:
        return len(self.origins)

    def to_dict(self) -> dict:
        return {
            "event": self.name,
            "shots": self.shot_count,
            "damage": self.damage,
            "primary_target_id": self.primary_target_id,
            "lock_count": self.lock_count,
            "dynamic_prediction_used": self.dynamic_prediction_used,
        }


@dataclass(frozen=True)
class UpgradeApplied:
    """Inbound capability/weight change.

    Any field left as ``None`` keeps its current value. ``weights_override``
    and ``prediction_override`` are partial trees merged onto the current
    configuration.
    """

    tier: int | str | None = None
    weights_override: dict[str, Any] = field(default_factory=dict)
    prediction_override: dict[str, Any] = field(default_factory=dict)
    multi_lock_targets: int | None = None
    cooldown_multiplier: float | None = None
    reset_weights: bool = False

    name = "upgrade-applied"


class EventQueue:
    """FIFO of outbound events with optional synchronous subscribers.

    Subscribers are keyed by event name and invoked at ``publish`` time.
    A failing subscriber is logged and does not stop delivery to the rest
    or the queueing of the event.
    """

    def __init__(self, maxlen: int | None = None):
        self._events: deque = deque(maxlen=maxlen)
        self._subscribers: dict[str, list[Callable]] = defaultdict(list)

    def subscribe(self, event: str, callback: Callable[[Any], Any]) -> None:
        self._subscribers[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable[[Any], Any]) -> None:
        if callback in self._subscribers[event]:
            self._subscribers[event].remove(callback)

    def publish(self, event: Any) -> None:
        self._events.append(event)
        for callback in list(self._subscribers.get(event.name, [])):
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber error on '%s'", event.name)

    def drain(self) -> list:
        """Remove and return every queued event in emission order."""
        events = list(self._events)
        self._events.clear()
        return events

    def peek(self) -> list:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
