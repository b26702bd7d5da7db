from __future__ import annotations

from dataclasses import dataclass

import pytest

from bridge_trainer.drill_core import RunStatus
from bridge_trainer.scenarios import Scene
from bridge_trainer.simulator import BridgeSimulator, SimulatorConfig


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _step(clock: FakeClock, sim: BridgeSimulator, seconds: float) -> None:
    # Advance in frame-sized steps like the UI loop does.
    frames = int(round(seconds * 60.0))
    for _ in range(frames):
        clock.advance(1.0 / 60.0)
        sim.update()


def _goto(clock: FakeClock, sim: BridgeSimulator, scene: Scene) -> None:
    assert sim.change_scene(scene) is True
    _step(clock, sim, 0.6)
    assert sim.scene is scene
    assert sim.snapshot().fade_alpha == 0.0


def test_man_overboard_played_through_the_bridge_controls() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    assert sim.select_scenario("man_overboard") is True

    snap = sim.snapshot()
    assert snap.status is RunStatus.RUNNING
    assert snap.alarm_active is True
    assert snap.scene is Scene.CENTER
    assert sim.drain_sound_cues() == ["shout_man_overboard"]

    _goto(clock, sim, Scene.PORT)
    spot = sim.click(0.69, 0.68)
    assert spot is not None and spot.hotspot_id == "lifebuoy_port"

    _goto(clock, sim, Scene.CENTER)
    sim.click(0.10, 0.63)  # general alarm
    sim.click(0.50, 0.80)  # helm
    assert sim.move_lookout(Scene.PORT) is True
    sim.click(0.23, 0.62)  # GPS MOB
    sim.click(0.345, 0.62)  # Master's phone
    sim.click(0.65, 0.62)  # VHF
    _step(clock, sim, 1.5)

    _goto(clock, sim, Scene.STARBOARD)
    assert sim.press_hotspot("helm") is None
    entry = sim.press_hotspot("rescue_boat")
    assert entry is not None and entry.correct

    snap = sim.snapshot()
    assert snap.status is RunStatus.COMPLETED
    assert snap.alarm_active is False
    assert snap.time_remaining_s is None
    assert all(e.correct for e in snap.action_log)
    assert [e.scene for e in snap.action_log][0] is Scene.PORT

    perf = sim.results()
    assert perf is not None
    assert perf.score == 100.0
    assert perf.correct_order is True
    assert perf.grade == "A"

    texts = [e.text for e in snap.ship_log]
    assert "Lookout at Port Wing." in texts
    assert texts[-1] == "Man Overboard drill completed."

    sim.close()
    assert sim.timers.pending() == []


def test_clicks_during_a_fade_are_ignored() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    sim.select_scenario("man_overboard")

    assert sim.change_scene(Scene.PORT) is True
    assert sim.click(0.50, 0.80) is None
    assert sim.snapshot().action_log == ()


def test_logbook_hotspot_is_found_but_never_logged() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    sim.select_scenario("steering_failure")

    spot = sim.click(0.08, 0.78)
    assert spot is not None and spot.hotspot_id == "logbook"
    assert sim.snapshot().action_log == ()


def test_silence_alarm_logs_and_clears_the_alarm() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    assert sim.silence_alarm() is False

    sim.select_scenario("engine_room_fire")
    assert sim.silence_alarm() is True
    snap = sim.snapshot()
    assert snap.alarm_active is False
    assert snap.checklist[0].completed is True
    assert snap.action_log[0].expected_order == 1
    assert sim.silence_alarm() is False


def test_delayed_effects_reach_the_snapshot_and_die_with_the_run() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    sim.select_scenario("restricted_visibility")
    assert "fog" in sim.snapshot().active_effects

    _step(clock, sim, 2.0)
    assert sim.snapshot().darkness == pytest.approx(0.65)

    sim.reset()
    _step(clock, sim, 5.0)
    snap = sim.snapshot()
    assert snap.status is RunStatus.NOT_STARTED
    assert snap.darkness == 0.0
    assert sim.drain_sound_cues() == []


def test_free_roam_moves_lookout_without_logging() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    assert sim.select_scenario("no_such_drill") is False

    assert sim.move_lookout(Scene.STARBOARD) is True
    assert sim.move_lookout(Scene.PORT) is False
    _step(clock, sim, 1.5)
    assert sim.lookout.position is Scene.STARBOARD
    assert sim.snapshot().action_log == ()
    assert sim.results() is None


def test_snapshot_only_lists_hotspots_for_the_current_scene() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    assert [s.scenario_id for s in sim.scenarios][0] == "man_overboard"
    assert {s.scene for s in sim.snapshot().hotspots} == {Scene.CENTER}
    _goto(clock, sim, Scene.STARBOARD)
    assert [s.hotspot_id for s in sim.snapshot().hotspots] == ["rescue_boat"]


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        SimulatorConfig(alarm_interval_s=0.0)
    with pytest.raises(ValueError):
        SimulatorConfig(fade_out_s=-1.0)
    with pytest.raises(ValueError):
        SimulatorConfig(chatter_cooldown_s=-0.5)


def test_new_run_returns_lookout_and_camera_to_center() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    sim.select_scenario("man_overboard")
    assert sim.move_lookout(Scene.PORT) is True
    _goto(clock, sim, Scene.STARBOARD)
    _step(clock, sim, 2.0)
    assert sim.lookout.position is Scene.PORT

    assert sim.select_scenario("man_overboard") is True
    assert sim.scene is Scene.CENTER
    assert sim.lookout.position is Scene.CENTER
    assert sim.move_lookout(Scene.PORT) is True
    orders = [e.expected_order for e in sim.snapshot().action_log]
    assert orders == [4]


def test_reset_mid_transition_cancels_view_timers() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    sim.select_scenario("restricted_visibility")
    assert sim.change_scene(Scene.PORT) is True
    assert sim.move_lookout(Scene.STARBOARD) is True

    sim.reset()
    snap = sim.snapshot()
    assert snap.scene is Scene.CENTER
    assert snap.fade_alpha == 0.0
    assert snap.lookout_transitioning is False
    assert sim.timers.pending() == []

    _step(clock, sim, 2.0)
    assert sim.scene is Scene.CENTER
    assert sim.lookout.position is Scene.CENTER


def test_alarm_can_only_be_silenced_from_the_center_bridge() -> None:
    clock = FakeClock()
    sim = BridgeSimulator(clock=clock)
    sim.select_scenario("engine_room_fire")

    _goto(clock, sim, Scene.PORT)
    assert sim.silence_alarm() is False
    assert sim.snapshot().alarm_active is True
    assert sim.snapshot().action_log == ()

    _goto(clock, sim, Scene.CENTER)
    assert sim.silence_alarm() is True
