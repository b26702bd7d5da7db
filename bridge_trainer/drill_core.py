"""Bridge emergency-drill engine.

A drill run is one of three explicit states:

- ``NotStarted``: no scenario selected (or the last one was reset).
- ``Running``: checklist and action log are live.
- ``Completed``: every checklist item is done; the run is frozen.

State objects are immutable. Transitions build a new state and the engine
swaps it in, so the checklist, the log and the completion flag can never
disagree with each other.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import assert_never

from .clock import Clock
from .logger import get_logger
from .scenarios import (
    AlarmEvent,
    ChecklistItem,
    LightingEvent,
    Scenario,
    ScenarioEvent,
    Scene,
    ShipMovementEvent,
    SoundEvent,
    VisualEvent,
)
from .timers import TimerQueue

log = get_logger(__name__)


class RunStatus(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class ActionLogEntry:
    timestamp_s: float
    action: str
    scene: Scene
    correct: bool
    expected_order: int | None
    actual_order: int


@dataclass(frozen=True, slots=True)
class ShipLogEntry:
    timestamp_s: float
    text: str


@dataclass(frozen=True, slots=True)
class NotStarted:
    @property
    def status(self) -> RunStatus:
        return RunStatus.NOT_STARTED


@dataclass(frozen=True, slots=True)
class Running:
    run_id: int
    scenario: Scenario
    started_at_s: float
    checklist: tuple[ChecklistItem, ...]
    log: tuple[ActionLogEntry, ...] = ()

    @property
    def status(self) -> RunStatus:
        return RunStatus.RUNNING

    @property
    def all_items_complete(self) -> bool:
        return all(item.completed for item in self.checklist)


@dataclass(frozen=True, slots=True)
class Completed:
    run_id: int
    scenario: Scenario
    started_at_s: float
    completed_at_s: float
    checklist: tuple[ChecklistItem, ...]
    log: tuple[ActionLogEntry, ...]

    def __post_init__(self) -> None:
        if not all(item.completed for item in self.checklist):
            raise ValueError("a completed run requires every checklist item to be complete")

    @property
    def status(self) -> RunStatus:
        return RunStatus.COMPLETED


DrillState = NotStarted | Running | Completed


def start_run(scenario: Scenario, *, run_id: int, now_s: float) -> Running:
    return Running(
        run_id=run_id,
        scenario=scenario,
        started_at_s=float(now_s),
        checklist=scenario.fresh_checklist(),
    )


def record_action(
    state: Running,
    *,
    action: str,
    match_key: str,
    scene: Scene,
    now_s: float,
) -> tuple[Running, ActionLogEntry]:
    """Append one action to the log and tick off the matching checklist item."""

    matched: ChecklistItem | None = None
    for item in state.checklist:
        if item.match_key == match_key and not item.completed:
            matched = item
            break

    entry = ActionLogEntry(
        timestamp_s=float(now_s),
        action=str(action),
        scene=scene,
        correct=matched is not None,
        expected_order=None if matched is None else matched.order,
        actual_order=len(state.log) + 1,
    )

    checklist = state.checklist
    if matched is not None:
        checklist = tuple(
            replace(item, completed=True, completed_at_s=float(now_s)) if item is matched else item
            for item in state.checklist
        )

    return replace(state, checklist=checklist, log=state.log + (entry,)), entry


def complete_run(state: Running, *, now_s: float) -> Completed:
    return Completed(
        run_id=state.run_id,
        scenario=state.scenario,
        started_at_s=state.started_at_s,
        completed_at_s=float(now_s),
        checklist=state.checklist,
        log=state.log,
    )


@dataclass(slots=True)
class BridgeEffects:
    """Audio/visual state driven by scenario events and bridge controls."""

    alarm_active: bool = False
    lights_level: float = 1.0
    active_effects: list[str] = field(default_factory=list)
    heading_offset_deg: float = 0.0
    pending_cues: list[str] = field(default_factory=list)

    @property
    def darkness(self) -> float:
        return 1.0 - self.lights_level

    def drain_cues(self) -> list[str]:
        cues = list(self.pending_cues)
        self.pending_cues.clear()
        return cues

    def reset(self) -> None:
        self.alarm_active = False
        self.lights_level = 1.0
        self.active_effects.clear()
        self.heading_offset_deg = 0.0
        self.pending_cues.clear()


class DrillEngine:
    """Runs one scenario at a time against the injected clock and timers."""

    def __init__(
        self,
        *,
        clock: Clock,
        timers: TimerQueue,
        scene_provider: Callable[[], Scene] | None = None,
    ) -> None:
        self._clock = clock
        self._timers = timers
        self._scene_provider = scene_provider or (lambda: Scene.CENTER)

        self._state: DrillState = NotStarted()
        self._effects = BridgeEffects()
        self._ship_log: list[ShipLogEntry] = []
        self._next_run_id = 1

    @property
    def state(self) -> DrillState:
        return self._state

    @property
    def status(self) -> RunStatus:
        return self._state.status

    @property
    def effects(self) -> BridgeEffects:
        return self._effects

    @property
    def scenario(self) -> Scenario | None:
        if isinstance(self._state, NotStarted):
            return None
        return self._state.scenario

    @property
    def checklist(self) -> tuple[ChecklistItem, ...]:
        if isinstance(self._state, NotStarted):
            return ()
        return self._state.checklist

    @property
    def action_log(self) -> tuple[ActionLogEntry, ...]:
        if isinstance(self._state, NotStarted):
            return ()
        return self._state.log

    @property
    def started_at_s(self) -> float | None:
        if isinstance(self._state, NotStarted):
            return None
        return self._state.started_at_s

    @property
    def is_complete(self) -> bool:
        return isinstance(self._state, Completed)

    @property
    def ship_log(self) -> list[ShipLogEntry]:
        return list(self._ship_log)

    def time_remaining_s(self) -> float | None:
        if not isinstance(self._state, Running):
            return None
        limit = self._state.scenario.time_limit_s
        if limit is None:
            return None
        return max(0.0, limit - (self._clock.now() - self._state.started_at_s))

    def start_scenario(self, scenario: Scenario) -> None:
        self._abandon_current_run()

        run_id = self._next_run_id
        self._next_run_id += 1
        self._state = start_run(scenario, run_id=run_id, now_s=self._clock.now())
        log.info("drill started: %s (run %d)", scenario.name, run_id)

        tag = self._timer_tag(run_id)
        for event in scenario.events:
            if event.is_immediate:
                self.execute_event(event)
            else:
                self._timers.schedule(event.delay_s, self._deferred(event), tag=tag)

    def reset(self) -> None:
        self._abandon_current_run()
        self._state = NotStarted()

    def execute_event(self, event: ScenarioEvent) -> None:
        fx = self._effects
        if isinstance(event, AlarmEvent):
            fx.alarm_active = bool(event.active)
        elif isinstance(event, LightingEvent):
            fx.lights_level = float(event.level)
        elif isinstance(event, VisualEvent):
            if event.effect not in fx.active_effects:
                fx.active_effects.append(event.effect)
        elif isinstance(event, SoundEvent):
            fx.pending_cues.append(event.cue)
        elif isinstance(event, ShipMovementEvent):
            fx.heading_offset_deg = float(event.heading_offset_deg)
        else:
            assert_never(event)
        log.debug("event %s (%s) executed", event.event_id, event.kind)

    def silence_alarm(self) -> None:
        self._effects.alarm_active = False

    def add_ship_log(self, text: str) -> ShipLogEntry:
        entry = ShipLogEntry(timestamp_s=self._clock.now(), text=str(text))
        self._ship_log.append(entry)
        return entry

    def log_action(self, action: str, match_key: str) -> ActionLogEntry | None:
        """Record a bridge action. Returns None when no drill is running."""

        if not isinstance(self._state, Running):
            log.debug("action %r ignored: no drill running", match_key)
            return None

        self._state, entry = record_action(
            self._state,
            action=action,
            match_key=match_key,
            scene=self._scene_provider(),
            now_s=self._clock.now(),
        )
        if self._state.all_items_complete:
            self.complete_scenario()
        return entry

    def complete_scenario(self) -> bool:
        state = self._state
        if not isinstance(state, Running) or not state.all_items_complete:
            return False

        now = self._clock.now()
        self._timers.cancel_tag(self._timer_tag(state.run_id))
        self._state = complete_run(state, now_s=now)
        self._effects.alarm_active = False
        self.add_ship_log(f"{state.scenario.name} drill completed.")
        log.info("drill completed: %s (run %d)", state.scenario.name, state.run_id)
        return True

    def _abandon_current_run(self) -> None:
        state = self._state
        if not isinstance(state, NotStarted):
            cancelled = self._timers.cancel_tag(self._timer_tag(state.run_id))
            if isinstance(state, Running):
                log.info("drill abandoned: %s (%d pending events cancelled)", state.scenario.name, cancelled)
        self._effects.reset()

    def _deferred(self, event: ScenarioEvent) -> Callable[[], None]:
        def fire() -> None:
            self.execute_event(event)

        return fire

    @staticmethod
    def _timer_tag(run_id: int) -> str:
        return f"drill-run-{run_id}"
