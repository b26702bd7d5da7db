from __future__ import annotations

from dataclasses import dataclass

import pytest

from bridge_trainer.timers import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_timers_fire_in_due_order_with_ties_by_schedule_order() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[str] = []

    timers.schedule(2.0, lambda: fired.append("late"))
    timers.schedule(1.0, lambda: fired.append("first"))
    timers.schedule(1.0, lambda: fired.append("second"))

    clock.advance(0.5)
    assert timers.update() == 0
    clock.advance(2.0)
    assert timers.update() == 3
    assert fired == ["first", "second", "late"]
    assert timers.pending() == []


def test_callback_scheduled_timers_fire_in_same_update_when_due() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[str] = []

    def chain() -> None:
        fired.append("a")
        timers.schedule(0.0, lambda: fired.append("b"))
        timers.schedule(5.0, lambda: fired.append("c"))

    timers.schedule(1.0, chain)
    clock.advance(1.0)
    assert timers.update() == 2
    assert fired == ["a", "b"]
    assert len(timers.pending()) == 1


def test_cancel_by_handle_tag_and_all() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[int] = []

    h1 = timers.schedule(1.0, lambda: fired.append(1), tag="run-1")
    timers.schedule(1.0, lambda: fired.append(2), tag="run-1")
    timers.schedule(1.0, lambda: fired.append(3), tag="other")
    timers.schedule(1.0, lambda: fired.append(4))

    assert timers.cancel(h1) is True
    assert timers.cancel(h1) is False
    assert timers.cancel_tag("run-1") == 1
    assert [h.tag for h in timers.pending("other")] == ["other"]

    clock.advance(1.0)
    timers.update()
    assert fired == [3, 4]
    assert timers.cancel_all() == 0


def test_negative_delay_rejected() -> None:
    timers = TimerQueue(FakeClock())
    with pytest.raises(ValueError):
        timers.schedule(-0.1, lambda: None)
