from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .clock import Clock


@dataclass(frozen=True, slots=True)
class TimerHandle:
    timer_id: int
    due_at_s: float
    tag: str | None


@dataclass(slots=True)
class _Pending:
    handle: TimerHandle
    callback: Callable[[], None] = field(compare=False)


class TimerQueue:
    """One-shot timers polled from the frame loop.

    Callbacks run inside update(), never from another thread. A callback may
    schedule further timers; any that are already due fire in the same update.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._pending: dict[int, _Pending] = {}
        self._next_id = 1

    def schedule(self, delay_s: float, callback: Callable[[], None], *, tag: str | None = None) -> TimerHandle:
        if delay_s < 0.0:
            raise ValueError("delay_s must be >= 0")
        handle = TimerHandle(
            timer_id=self._next_id,
            due_at_s=self._clock.now() + float(delay_s),
            tag=tag,
        )
        self._next_id += 1
        self._pending[handle.timer_id] = _Pending(handle=handle, callback=callback)
        return handle

    def cancel(self, handle: TimerHandle) -> bool:
        return self._pending.pop(handle.timer_id, None) is not None

    def cancel_tag(self, tag: str) -> int:
        doomed = [tid for tid, p in self._pending.items() if p.handle.tag == tag]
        for tid in doomed:
            del self._pending[tid]
        return len(doomed)

    def cancel_all(self) -> int:
        count = len(self._pending)
        self._pending.clear()
        return count

    def pending(self, tag: str | None = None) -> list[TimerHandle]:
        handles = [p.handle for p in self._pending.values() if tag is None or p.handle.tag == tag]
        return sorted(handles, key=lambda h: (h.due_at_s, h.timer_id))

    def update(self) -> int:
        """Fire every due timer. Returns the number fired."""
        fired = 0
        while True:
            now = self._clock.now()
            due = [p for p in self._pending.values() if p.handle.due_at_s <= now]
            if not due:
                return fired
            nxt = min(due, key=lambda p: (p.handle.due_at_s, p.handle.timer_id))
            del self._pending[nxt.handle.timer_id]
            nxt.callback()
            fired += 1
