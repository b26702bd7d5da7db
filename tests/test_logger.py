from __future__ import annotations

import logging

import pytest

from bridge_trainer.logger import LOG_LEVEL_ENV, get_logger, reset_logger


def test_logger_is_cached_with_a_single_handler() -> None:
    name = "bridge_trainer.test_cached"
    try:
        first = get_logger(name)
        second = get_logger(name)
        assert first is second
        assert len(first.handlers) == 1
        assert first.propagate is False
    finally:
        reset_logger(name)


@pytest.mark.parametrize(("raw", "level"), [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("nonsense", logging.INFO)])
def test_level_comes_from_environment(monkeypatch: pytest.MonkeyPatch, raw: str, level: int) -> None:
    name = f"bridge_trainer.test_level_{raw}"
    monkeypatch.setenv(LOG_LEVEL_ENV, raw)
    try:
        assert get_logger(name).level == level
    finally:
        reset_logger(name)
    assert logging.getLogger(name).handlers == []
