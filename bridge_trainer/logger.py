"""Logging helpers for the bridge trainer."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "BRIDGE_TRAINER_LOG_LEVEL"

_LOGGERS: dict[str, logging.Logger] = {}


def _level_from_env() -> int:
    raw = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if raw == "":
        return logging.INFO
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str = "bridge_trainer") -> logging.Logger:
    """Return a cached logger with a single stream handler."""
    if name in _LOGGERS:
        return _LOGGERS[name]

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(_level_from_env())
    logger.propagate = False

    _LOGGERS[name] = logger
    return logger


def reset_logger(name: str) -> None:
    """Drop a cached logger and close its handlers (used by tests)."""
    existing = _LOGGERS.pop(name, None)
    if existing is not None:
        for handler in list(existing.handlers):
            existing.removeHandler(handler)
            handler.close()
