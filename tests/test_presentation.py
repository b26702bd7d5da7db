from __future__ import annotations

from dataclasses import dataclass

import pytest

from bridge_trainer.presentation import (
    BRIDGE_HOTSPOTS,
    FadePhase,
    Hotspot,
    LookoutController,
    LookoutPhase,
    SceneController,
    hit_test,
)
from bridge_trainer.scenarios import SCENARIO_LIBRARY, Scene
from bridge_trainer.timers import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_scene_fade_swaps_at_midpoint() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    scenes = SceneController(clock=clock, timers=timers, fade_out_s=0.25, fade_in_s=0.25)

    assert scenes.change_scene(Scene.CENTER) is False
    assert scenes.change_scene(Scene.PORT) is True
    assert scenes.phase is FadePhase.FADE_OUT

    clock.advance(0.125)
    timers.update()
    assert scenes.scene is Scene.CENTER
    assert scenes.fade_alpha() == pytest.approx(0.5)
    assert scenes.change_scene(Scene.STARBOARD) is False

    clock.advance(0.125)
    timers.update()
    assert scenes.scene is Scene.PORT
    assert scenes.phase is FadePhase.FADE_IN
    assert scenes.fade_alpha() == pytest.approx(1.0)

    clock.advance(0.25)
    timers.update()
    assert scenes.phase is FadePhase.IDLE
    assert scenes.fade_alpha() == 0.0
    assert scenes.change_scene(Scene.STARBOARD) is True


def test_lookout_walks_off_then_on_from_the_other_side() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    arrivals: list[Scene] = []
    lookout = LookoutController(
        clock=clock,
        timers=timers,
        exit_s=0.6,
        settle_s=0.6,
        on_arrival=arrivals.append,
    )

    assert lookout.move_to(Scene.CENTER) is False
    assert lookout.move_to(Scene.STARBOARD) is True
    assert lookout.direction == 1
    assert lookout.move_to(Scene.PORT) is False

    clock.advance(0.3)
    timers.update()
    assert lookout.offset() == pytest.approx(0.5)

    clock.advance(0.3)
    timers.update()
    assert lookout.position is Scene.STARBOARD
    assert lookout.phase is LookoutPhase.ENTERING
    assert lookout.offset() == pytest.approx(-1.0)
    assert arrivals == [Scene.STARBOARD]

    clock.advance(0.6)
    timers.update()
    assert lookout.transitioning is False
    assert lookout.offset() == 0.0
    assert lookout.direction == 0

    assert lookout.move_to(Scene.PORT) is True
    assert lookout.direction == -1


def test_hit_test_picks_topmost_in_current_scene() -> None:
    spots = (
        Hotspot("under", Scene.CENTER, 0.0, 0.0, 0.5, 0.5, "Under", "a"),
        Hotspot("over", Scene.CENTER, 0.1, 0.1, 0.2, 0.2, "Over", "b"),
        Hotspot("wing", Scene.PORT, 0.0, 0.0, 1.0, 1.0, "Wing", "c"),
    )
    assert hit_test(spots, Scene.CENTER, 0.15, 0.15).hotspot_id == "over"
    assert hit_test(spots, Scene.CENTER, 0.4, 0.4).hotspot_id == "under"
    assert hit_test(spots, Scene.CENTER, 0.9, 0.9) is None
    assert hit_test(spots, Scene.PORT, 0.15, 0.15).hotspot_id == "wing"


def test_every_checklist_key_is_reachable_from_the_bridge() -> None:
    reachable = {s.match_key for s in BRIDGE_HOTSPOTS if s.match_key is not None}
    reachable |= {"silence_alarm", "lookout_port", "lookout_starboard"}
    for scenario in SCENARIO_LIBRARY:
        for item in scenario.checklist:
            assert item.match_key in reachable, (scenario.scenario_id, item.match_key)


def test_hotspots_stay_on_screen() -> None:
    for spot in BRIDGE_HOTSPOTS:
        assert 0.0 <= spot.x and spot.x + spot.w <= 1.0
        assert 0.0 <= spot.y and spot.y + spot.h <= 1.0


def test_controllers_reset_to_their_starting_position() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    scenes = SceneController(clock=clock, timers=timers, fade_out_s=0.25, fade_in_s=0.25)
    lookout = LookoutController(clock=clock, timers=timers, exit_s=0.6, settle_s=0.6)

    scenes.change_scene(Scene.PORT)
    lookout.move_to(Scene.PORT)
    clock.advance(0.3)
    timers.update()
    assert scenes.scene is Scene.PORT

    scenes.reset()
    lookout.reset()
    assert scenes.scene is Scene.CENTER and scenes.phase is FadePhase.IDLE
    assert lookout.position is Scene.CENTER and lookout.phase is LookoutPhase.IDLE
    assert timers.pending() == []
    assert lookout.move_to(Scene.PORT) is True
