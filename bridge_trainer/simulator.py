"""Bridge simulator session: drill engine plus the bridge view state.

One BridgeSimulator owns every timer it starts. close() cancels all of them,
so nothing fires into a screen that has already gone away.
"""

from __future__ import annotations

from dataclasses import dataclass

from .clock import Clock
from .drill_core import ActionLogEntry, DrillEngine, RunStatus, ShipLogEntry
from .logger import get_logger
from .presentation import (
    BRIDGE_HOTSPOTS,
    LOOKOUT_MATCH_KEYS,
    SILENCE_ALARM_KEY,
    Hotspot,
    LookoutController,
    SceneController,
    hit_test,
)
from .results import DrillPerformance, calculate_performance
from .scenarios import SCENARIO_LIBRARY, SCENE_LABELS, ChecklistItem, Scenario, Scene
from .timers import TimerQueue

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SimulatorConfig:
    alarm_interval_s: float = 0.7
    fade_out_s: float = 0.25
    fade_in_s: float = 0.25
    lookout_exit_s: float = 0.6
    lookout_settle_s: float = 0.6
    chatter_cooldown_s: float = 6.0
    chatter_enabled: bool = True

    def __post_init__(self) -> None:
        if self.alarm_interval_s <= 0.0:
            raise ValueError("alarm_interval_s must be > 0")
        if self.fade_out_s < 0.0 or self.fade_in_s < 0.0:
            raise ValueError("fade durations must be >= 0")
        if self.lookout_exit_s < 0.0 or self.lookout_settle_s < 0.0:
            raise ValueError("lookout timings must be >= 0")
        if self.chatter_cooldown_s < 0.0:
            raise ValueError("chatter_cooldown_s must be >= 0")


@dataclass(frozen=True, slots=True)
class SimulatorSnapshot:
    """View model for the bridge screen (pure data)."""

    scene: Scene
    scene_label: str
    fade_alpha: float
    lookout_position: Scene
    lookout_offset: float
    lookout_transitioning: bool

    status: RunStatus
    scenario_name: str | None
    checklist: tuple[ChecklistItem, ...]
    action_log: tuple[ActionLogEntry, ...]
    time_remaining_s: float | None

    alarm_active: bool
    darkness: float
    active_effects: tuple[str, ...]
    heading_offset_deg: float

    hotspots: tuple[Hotspot, ...]
    ship_log: tuple[ShipLogEntry, ...]


class BridgeSimulator:
    def __init__(
        self,
        *,
        clock: Clock,
        config: SimulatorConfig | None = None,
        scenarios: tuple[Scenario, ...] = SCENARIO_LIBRARY,
        hotspots: tuple[Hotspot, ...] = BRIDGE_HOTSPOTS,
    ) -> None:
        cfg = config or SimulatorConfig()
        self._clock = clock
        self._cfg = cfg
        self._scenarios = scenarios
        self._hotspots = hotspots

        self._timers = TimerQueue(clock)
        self._scenes = SceneController(
            clock=clock,
            timers=self._timers,
            fade_out_s=cfg.fade_out_s,
            fade_in_s=cfg.fade_in_s,
        )
        self._lookout = LookoutController(
            clock=clock,
            timers=self._timers,
            exit_s=cfg.lookout_exit_s,
            settle_s=cfg.lookout_settle_s,
            on_arrival=self._lookout_arrived,
        )
        self._engine = DrillEngine(
            clock=clock,
            timers=self._timers,
            scene_provider=lambda: self._scenes.scene,
        )

    @property
    def config(self) -> SimulatorConfig:
        return self._cfg

    @property
    def scenarios(self) -> tuple[Scenario, ...]:
        return self._scenarios

    @property
    def engine(self) -> DrillEngine:
        return self._engine

    @property
    def timers(self) -> TimerQueue:
        return self._timers

    @property
    def scene(self) -> Scene:
        return self._scenes.scene

    @property
    def lookout(self) -> LookoutController:
        return self._lookout

    def select_scenario(self, scenario_id: str) -> bool:
        for scenario in self._scenarios:
            if scenario.scenario_id == scenario_id:
                self._reset_view()
                self._engine.start_scenario(scenario)
                return True
        log.warning("unknown scenario %r", scenario_id)
        return False

    def reset(self) -> None:
        self._engine.reset()
        self._reset_view()

    def update(self) -> None:
        self._timers.update()

    def change_scene(self, scene: Scene) -> bool:
        return self._scenes.change_scene(scene)

    def click(self, x: float, y: float) -> Hotspot | None:
        """Hit-test a normalized click on the current scene and act on it."""
        if self._scenes.fading:
            return None
        spot = hit_test(self._hotspots, self._scenes.scene, x, y)
        if spot is not None:
            self._activate(spot)
        return spot

    def press_hotspot(self, hotspot_id: str) -> ActionLogEntry | None:
        for spot in self._hotspots:
            if spot.hotspot_id == hotspot_id and spot.scene is self._scenes.scene:
                return self._activate(spot)
        return None

    def silence_alarm(self) -> bool:
        """Silence the sounding alarm from the alarm panel on the center bridge."""
        if self._scenes.scene is not Scene.CENTER or not self._engine.effects.alarm_active:
            return False
        self._engine.silence_alarm()
        self._engine.log_action("Silenced the alarm", SILENCE_ALARM_KEY)
        return True

    def move_lookout(self, position: Scene) -> bool:
        if not self._lookout.move_to(position):
            return False
        key = LOOKOUT_MATCH_KEYS.get(position)
        if key is not None and self._engine.status is RunStatus.RUNNING:
            self._engine.log_action(f"Posted the lookout on the {SCENE_LABELS[position]}", key)
        return True

    def results(self) -> DrillPerformance | None:
        scenario = self._engine.scenario
        started = self._engine.started_at_s
        if scenario is None or started is None:
            return None
        return calculate_performance(scenario, started, self._engine.action_log, self._engine.checklist)

    def drain_sound_cues(self) -> list[str]:
        return self._engine.effects.drain_cues()

    def snapshot(self) -> SimulatorSnapshot:
        fx = self._engine.effects
        scenario = self._engine.scenario
        scene = self._scenes.scene
        return SimulatorSnapshot(
            scene=scene,
            scene_label=SCENE_LABELS[scene],
            fade_alpha=self._scenes.fade_alpha(),
            lookout_position=self._lookout.position,
            lookout_offset=self._lookout.offset(),
            lookout_transitioning=self._lookout.transitioning,
            status=self._engine.status,
            scenario_name=None if scenario is None else scenario.name,
            checklist=self._engine.checklist,
            action_log=self._engine.action_log,
            time_remaining_s=self._engine.time_remaining_s(),
            alarm_active=fx.alarm_active,
            darkness=fx.darkness,
            active_effects=tuple(fx.active_effects),
            heading_offset_deg=fx.heading_offset_deg,
            hotspots=tuple(s for s in self._hotspots if s.scene is scene),
            ship_log=tuple(self._engine.ship_log),
        )

    def close(self) -> None:
        self._engine.reset()
        cancelled = self._timers.cancel_all()
        if cancelled:
            log.debug("simulator closed, %d timers cancelled", cancelled)

    def _reset_view(self) -> None:
        self._scenes.reset()
        self._lookout.reset()

    def _activate(self, spot: Hotspot) -> ActionLogEntry | None:
        if spot.match_key is None:
            return None
        return self._engine.log_action(spot.label, spot.match_key)

    def _lookout_arrived(self, position: Scene) -> None:
        self._engine.add_ship_log(f"Lookout at {SCENE_LABELS[position]}.")
