"""structlog wiring for VOLLEY.

Engine modules log through plain ``logging.getLogger(__name__)``; the CLI
and scenario runners use :func:`get_logger` for key/value events. Both
paths end in the same ``ProcessorFormatter`` attached to the ``volley``
logger, so console, JSON and file output share one processor chain.

Simulation context (frame index, sim clock) is carried in contextvars via
:func:`bind_frame` and merged into every line logged while it is bound.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import numpy as np
import structlog

ROOT_LOGGER = "volley"


def _plain_numbers(_logger: Any, _method: str, event_dict: dict) -> dict:
    """Turn numpy values into builtins so every renderer can print them."""
    for key, value in event_dict.items():
        if isinstance(value, np.ndarray):
            event_dict[key] = np.round(value, 3).tolist()
        elif isinstance(value, np.generic):
            event_dict[key] = value.item()
    return event_dict


def _pre_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S.%f"),
        _plain_numbers,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _open_handlers(log_file: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_json: bool = False,
) -> None:
    """Route all ``volley.*`` logging through structlog.

    Safe to call repeatedly; handlers from a previous call are replaced.

    Args:
        level: Level name. Unknown names fall back to INFO.
        log_file: Also write to this file (parent dirs are created).
        log_json: One JSON object per line instead of console formatting.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    final = (
        structlog.processors.JSONRenderer()
        if log_json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, final],
    )

    root = logging.getLogger(ROOT_LOGGER)
    for old in root.handlers[:]:
        root.removeHandler(old)
        old.close()
    for handler in _open_handlers(log_file):
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(numeric_level)
    root.propagate = False


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger for key/value events under *name*."""
    return structlog.get_logger(name)


def bind_frame(frame: int, sim_time: float) -> None:
    """Tag subsequent log lines with the current simulation frame."""
    structlog.contextvars.bind_contextvars(frame=frame, sim_time=round(sim_time, 4))


def clear_frame() -> None:
    structlog.contextvars.unbind_contextvars("frame", "sim_time")
