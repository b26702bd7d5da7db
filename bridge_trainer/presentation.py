"""Scene, lookout and hotspot state for the bridge view.

This is cosmetic state with timing attached. Rendering lives in app.py; the
controllers here only track phases so the UI and tests agree on them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock
from .scenarios import Scene
from .timers import TimerQueue

# Left-to-right order as seen facing forward from the bridge.
_SCENE_ORDER: dict[Scene, int] = {Scene.PORT: -1, Scene.CENTER: 0, Scene.STARBOARD: 1}

SCENE_FADE_TAG = "scene-fade"
LOOKOUT_TAG = "lookout-move"


class FadePhase(StrEnum):
    IDLE = "idle"
    FADE_OUT = "fade_out"
    FADE_IN = "fade_in"


class LookoutPhase(StrEnum):
    IDLE = "idle"
    EXITING = "exiting"
    ENTERING = "entering"


def _progress(clock: Clock, started_at_s: float, duration_s: float) -> float:
    if duration_s <= 0.0:
        return 1.0
    return max(0.0, min(1.0, (clock.now() - started_at_s) / duration_s))


class SceneController:
    """Camera position with a fade-out / swap / fade-in transition."""

    def __init__(
        self,
        *,
        clock: Clock,
        timers: TimerQueue,
        fade_out_s: float,
        fade_in_s: float,
        initial: Scene = Scene.CENTER,
    ) -> None:
        if fade_out_s < 0.0 or fade_in_s < 0.0:
            raise ValueError("fade durations must be >= 0")
        self._clock = clock
        self._timers = timers
        self._fade_out_s = float(fade_out_s)
        self._fade_in_s = float(fade_in_s)

        self._initial = initial
        self._scene = initial
        self._target: Scene | None = None
        self._phase = FadePhase.IDLE
        self._phase_started_at_s = clock.now()

    @property
    def scene(self) -> Scene:
        return self._scene

    @property
    def phase(self) -> FadePhase:
        return self._phase

    @property
    def fading(self) -> bool:
        return self._phase is not FadePhase.IDLE

    def fade_alpha(self) -> float:
        """Black overlay opacity in [0, 1]."""
        if self._phase is FadePhase.FADE_OUT:
            return _progress(self._clock, self._phase_started_at_s, self._fade_out_s)
        if self._phase is FadePhase.FADE_IN:
            return 1.0 - _progress(self._clock, self._phase_started_at_s, self._fade_in_s)
        return 0.0

    def change_scene(self, scene: Scene) -> bool:
        if self.fading or scene is self._scene:
            return False
        self._target = scene
        self._enter(FadePhase.FADE_OUT)
        self._timers.schedule(self._fade_out_s, self._swap, tag=SCENE_FADE_TAG)
        return True

    def reset(self) -> None:
        """Drop any fade in progress and return to the starting position."""
        self._timers.cancel_tag(SCENE_FADE_TAG)
        self._scene = self._initial
        self._target = None
        self._enter(FadePhase.IDLE)

    def _swap(self) -> None:
        assert self._target is not None
        self._scene = self._target
        self._target = None
        self._enter(FadePhase.FADE_IN)
        self._timers.schedule(self._fade_in_s, self._finish, tag=SCENE_FADE_TAG)

    def _finish(self) -> None:
        self._enter(FadePhase.IDLE)

    def _enter(self, phase: FadePhase) -> None:
        self._phase = phase
        self._phase_started_at_s = self._clock.now()


class LookoutController:
    """Lookout crew member walking between bridge stations.

    The figure walks off in the direction of travel, then walks back on from
    the opposite edge at the new station. Moves are refused mid-walk.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        timers: TimerQueue,
        exit_s: float,
        settle_s: float,
        initial: Scene = Scene.CENTER,
        on_arrival: Callable[[Scene], None] | None = None,
    ) -> None:
        if exit_s < 0.0 or settle_s < 0.0:
            raise ValueError("lookout timings must be >= 0")
        self._clock = clock
        self._timers = timers
        self._exit_s = float(exit_s)
        self._settle_s = float(settle_s)
        self._on_arrival = on_arrival

        self._initial = initial
        self._position = initial
        self._target: Scene | None = None
        self._direction = 0
        self._phase = LookoutPhase.IDLE
        self._phase_started_at_s = clock.now()

    @property
    def position(self) -> Scene:
        return self._position

    @property
    def phase(self) -> LookoutPhase:
        return self._phase

    @property
    def transitioning(self) -> bool:
        return self._phase is not LookoutPhase.IDLE

    @property
    def direction(self) -> int:
        """-1 walking towards port, +1 towards starboard, 0 when idle."""
        return self._direction if self.transitioning else 0

    def offset(self) -> float:
        """Horizontal offset from the station, in station widths."""
        if self._phase is LookoutPhase.EXITING:
            return self._direction * _progress(self._clock, self._phase_started_at_s, self._exit_s)
        if self._phase is LookoutPhase.ENTERING:
            remaining = 1.0 - _progress(self._clock, self._phase_started_at_s, self._settle_s)
            return -self._direction * remaining
        return 0.0

    def move_to(self, position: Scene) -> bool:
        if self.transitioning or position is self._position:
            return False
        self._target = position
        self._direction = 1 if _SCENE_ORDER[position] > _SCENE_ORDER[self._position] else -1
        self._enter(LookoutPhase.EXITING)
        self._timers.schedule(self._exit_s, self._arrive, tag=LOOKOUT_TAG)
        return True

    def reset(self) -> None:
        self._timers.cancel_tag(LOOKOUT_TAG)
        self._position = self._initial
        self._target = None
        self._direction = 0
        self._enter(LookoutPhase.IDLE)

    def _arrive(self) -> None:
        assert self._target is not None
        self._position = self._target
        self._target = None
        self._enter(LookoutPhase.ENTERING)
        self._timers.schedule(self._settle_s, self._settle, tag=LOOKOUT_TAG)
        if self._on_arrival is not None:
            self._on_arrival(self._position)

    def _settle(self) -> None:
        self._enter(LookoutPhase.IDLE)

    def _enter(self, phase: LookoutPhase) -> None:
        self._phase = phase
        self._phase_started_at_s = self._clock.now()


@dataclass(frozen=True, slots=True)
class Hotspot:
    hotspot_id: str
    scene: Scene
    x: float  # normalized [0, 1] rect
    y: float
    w: float
    h: float
    label: str
    match_key: str | None  # None = opens UI only, never logged

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.w and self.y <= y <= self.y + self.h


BRIDGE_HOTSPOTS: tuple[Hotspot, ...] = (
    Hotspot("alarm_panel", Scene.CENTER, 0.04, 0.56, 0.12, 0.14, "General Alarm", "sound_general_alarm"),
    Hotspot("helm", Scene.CENTER, 0.44, 0.70, 0.12, 0.20, "Helm", "helm_hard_over"),
    Hotspot("gps", Scene.CENTER, 0.18, 0.56, 0.10, 0.12, "GPS (MOB)", "press_mob"),
    Hotspot("telephone", Scene.CENTER, 0.30, 0.56, 0.09, 0.12, "Master's Phone", "call_master"),
    Hotspot("vhf", Scene.CENTER, 0.60, 0.56, 0.10, 0.12, "VHF Radio", "vhf_broadcast"),
    Hotspot("telegraph", Scene.CENTER, 0.58, 0.72, 0.10, 0.16, "Engine Telegraph", "stop_engines"),
    Hotspot("ventilation", Scene.CENTER, 0.72, 0.56, 0.10, 0.12, "Ventilation", "close_ventilation"),
    Hotspot("steering_panel", Scene.CENTER, 0.30, 0.72, 0.12, 0.14, "Steering Pumps", "steering_changeover"),
    Hotspot("nuc_lights", Scene.CENTER, 0.84, 0.56, 0.12, 0.12, "NUC Lights", "nuc_lights"),
    Hotspot("nav_lights", Scene.CENTER, 0.84, 0.70, 0.12, 0.12, "Nav Lights", "nav_lights"),
    Hotspot("radar", Scene.CENTER, 0.16, 0.72, 0.12, 0.16, "Radar", "radar_plot"),
    Hotspot("whistle", Scene.CENTER, 0.72, 0.72, 0.10, 0.12, "Whistle", "fog_signal"),
    Hotspot("logbook", Scene.CENTER, 0.04, 0.74, 0.10, 0.10, "Logbook", None),
    Hotspot("lifebuoy_port", Scene.PORT, 0.62, 0.58, 0.14, 0.20, "Lifebuoy", "release_lifebuoy"),
    Hotspot("rescue_boat", Scene.STARBOARD, 0.20, 0.56, 0.22, 0.22, "Rescue Boat", "prepare_rescue_boat"),
)

LOOKOUT_MATCH_KEYS: dict[Scene, str] = {
    Scene.PORT: "lookout_port",
    Scene.STARBOARD: "lookout_starboard",
}
SILENCE_ALARM_KEY = "silence_alarm"


def hit_test(hotspots: Iterable[Hotspot], scene: Scene, x: float, y: float) -> Hotspot | None:
    """Return the topmost (last listed) hotspot under (x, y) in ``scene``."""
    found: Hotspot | None = None
    for spot in hotspots:
        if spot.scene is scene and spot.contains(x, y):
            found = spot
    return found
