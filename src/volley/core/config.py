"""Hierarchical YAML configuration using OmegaConf."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from omegaconf import DictConfig, OmegaConf


def _read_yaml(path: Path, what: str) -> DictConfig:
    if not path.is_file():
        raise FileNotFoundError(f"{what} not found: {path}")
    loaded = OmegaConf.load(path)
    if not isinstance(loaded, DictConfig):
        raise ValueError(f"{what} must be a YAML mapping: {path}")
    return loaded


class VolleyConfig:
    """Base YAML file, optional overlays, then dot-path overrides.

    Overlays are whole YAML files merged in order (a harder weight table,
    a different scenario). Overrides are single keys, usually from the
    CLI, applied after loading.
    """

    def __init__(self, config_path: str | Path = "config/default.yaml"):
        self._config_path = Path(config_path)
        self._config: DictConfig | None = None

    def load(self, *overlays: str | Path, validate: bool = False) -> DictConfig:
        """Read the base file and merge *overlays* on top.

        Validation against the Pydantic schema runs when *validate* is set
        or when ``volley.system.validate_config`` is true in the merged
        result; a bad value raises ``pydantic.ValidationError``.
        """
        merged = _read_yaml(self._config_path, "Config")
        for overlay in overlays:
            merged = OmegaConf.merge(merged, _read_yaml(Path(overlay), "Config overlay"))

        if validate or OmegaConf.select(merged, "volley.system.validate_config", default=False):
            from volley.core.config_schema import validate_config

            validate_config(OmegaConf.to_container(merged, resolve=True))

        self._config = merged
        return merged

    def override(self, dotpath: str, value: Any) -> None:
        """Set one key, e.g. ``override("volley.targeting.tier", 3)``."""
        OmegaConf.update(self._loaded(), dotpath, value)

    def override_dotlist(self, items: Iterable[str]) -> None:
        """Apply ``key=value`` strings such as ``volley.combat.targeting_range=500``."""
        items = list(items)
        if items:
            self._config = OmegaConf.merge(self._loaded(), OmegaConf.from_dotlist(items))

    @property
    def cfg(self) -> DictConfig:
        return self._loaded()

    def _loaded(self) -> DictConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded yet. Call load() first.")
        return self._config
