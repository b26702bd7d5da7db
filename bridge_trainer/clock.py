from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source for drills, timers and animations.

    Nothing in the drill engine reads wall-clock time directly; tests drive a
    fake clock forward instead of sleeping.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


def ms_to_s(ms: int | float) -> float:
    return float(ms) / 1000.0
