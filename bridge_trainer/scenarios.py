"""Authored bridge emergency drills.

Scenarios are static templates. A drill run copies the checklist out of the
template and never mutates the template itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .clock import ms_to_s


class Scene(StrEnum):
    PORT = "port"
    CENTER = "center"
    STARBOARD = "starboard"


SCENE_LABELS: dict[Scene, str] = {
    Scene.PORT: "Port Wing",
    Scene.CENTER: "Center Bridge",
    Scene.STARBOARD: "Starboard Wing",
}


class EventKind(StrEnum):
    ALARM = "alarm"
    VISUAL = "visual"
    SHIP_MOVEMENT = "ship_movement"
    LIGHTING = "lighting"
    SOUND = "sound"


@dataclass(frozen=True, slots=True, kw_only=True)
class _EventBase:
    event_id: str
    delay_ms: int | None = None  # None = fire at scenario start

    def __post_init__(self) -> None:
        if self.delay_ms is not None and self.delay_ms < 0:
            raise ValueError(f"event {self.event_id!r}: delay_ms must be >= 0")

    @property
    def is_immediate(self) -> bool:
        return self.delay_ms is None

    @property
    def delay_s(self) -> float:
        return 0.0 if self.delay_ms is None else ms_to_s(self.delay_ms)


@dataclass(frozen=True, slots=True, kw_only=True)
class AlarmEvent(_EventBase):
    active: bool

    @property
    def kind(self) -> EventKind:
        return EventKind.ALARM


@dataclass(frozen=True, slots=True, kw_only=True)
class LightingEvent(_EventBase):
    level: float  # 1.0 = full daylight, 0.0 = dark

    def __post_init__(self) -> None:
        super(LightingEvent, self).__post_init__()
        if not (0.0 <= self.level <= 1.0):
            raise ValueError(f"event {self.event_id!r}: lighting level must be in [0.0, 1.0]")

    @property
    def kind(self) -> EventKind:
        return EventKind.LIGHTING


@dataclass(frozen=True, slots=True, kw_only=True)
class VisualEvent(_EventBase):
    effect: str

    @property
    def kind(self) -> EventKind:
        return EventKind.VISUAL


@dataclass(frozen=True, slots=True, kw_only=True)
class SoundEvent(_EventBase):
    cue: str

    @property
    def kind(self) -> EventKind:
        return EventKind.SOUND


@dataclass(frozen=True, slots=True, kw_only=True)
class ShipMovementEvent(_EventBase):
    heading_offset_deg: float = 0.0

    @property
    def kind(self) -> EventKind:
        return EventKind.SHIP_MOVEMENT


ScenarioEvent = AlarmEvent | LightingEvent | VisualEvent | SoundEvent | ShipMovementEvent


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    item_id: str
    action: str
    scene: Scene
    match_key: str
    order: int  # 1-based
    completed: bool = False
    completed_at_s: float | None = None


@dataclass(frozen=True, slots=True)
class Scenario:
    scenario_id: str
    name: str
    description: str
    events: tuple[ScenarioEvent, ...] = ()
    checklist: tuple[ChecklistItem, ...] = ()
    time_limit_s: float | None = None
    briefing: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        orders = sorted(item.order for item in self.checklist)
        if orders != list(range(1, len(self.checklist) + 1)):
            raise ValueError(f"scenario {self.scenario_id!r}: checklist orders must be 1..n")
        keys = [item.match_key for item in self.checklist]
        if len(set(keys)) != len(keys):
            raise ValueError(f"scenario {self.scenario_id!r}: checklist match keys must be unique")
        ids = [item.item_id for item in self.checklist]
        if len(set(ids)) != len(ids):
            raise ValueError(f"scenario {self.scenario_id!r}: checklist ids must be unique")
        event_ids = [event.event_id for event in self.events]
        if len(set(event_ids)) != len(event_ids):
            raise ValueError(f"scenario {self.scenario_id!r}: event ids must be unique")
        if self.time_limit_s is not None and self.time_limit_s <= 0:
            raise ValueError(f"scenario {self.scenario_id!r}: time_limit_s must be > 0")

    def fresh_checklist(self) -> tuple[ChecklistItem, ...]:
        """Checklist copy for a new run, ordered and all incomplete."""
        ordered = sorted(self.checklist, key=lambda item: item.order)
        return tuple(
            ChecklistItem(
                item_id=item.item_id,
                action=item.action,
                scene=item.scene,
                match_key=item.match_key,
                order=item.order,
            )
            for item in ordered
        )


def _item(order: int, match_key: str, scene: Scene, action: str) -> ChecklistItem:
    return ChecklistItem(
        item_id=f"step_{order}",
        action=action,
        scene=scene,
        match_key=match_key,
        order=order,
    )


MAN_OVERBOARD = Scenario(
    scenario_id="man_overboard",
    name="Man Overboard",
    description="A crew member has fallen over the port side. Recover the casualty.",
    briefing=(
        "Lookout reports: 'Man overboard, port side!'",
        "Mark the casualty, raise the alarm and start the recovery turn.",
    ),
    time_limit_s=300.0,
    events=(
        AlarmEvent(event_id="mob_alarm", active=True),
        VisualEvent(event_id="mob_casualty", effect="person_in_water"),
        SoundEvent(event_id="mob_shout", cue="shout_man_overboard"),
        ShipMovementEvent(event_id="mob_drift", delay_ms=4000, heading_offset_deg=-5.0),
        VisualEvent(event_id="mob_smoke", delay_ms=6000, effect="smoke_float"),
    ),
    checklist=(
        _item(1, "release_lifebuoy", Scene.PORT, "Release the bridge-wing lifebuoy with light and smoke signal"),
        _item(2, "sound_general_alarm", Scene.CENTER, "Sound the general alarm"),
        _item(3, "helm_hard_over", Scene.CENTER, "Put the helm hard over towards the casualty side"),
        _item(4, "lookout_port", Scene.PORT, "Post the lookout on the port wing to keep the casualty in sight"),
        _item(5, "press_mob", Scene.CENTER, "Press MOB on the GPS to mark the position"),
        _item(6, "call_master", Scene.CENTER, "Inform the Master"),
        _item(7, "vhf_broadcast", Scene.CENTER, "Broadcast an urgency message on VHF channel 16"),
        _item(8, "prepare_rescue_boat", Scene.STARBOARD, "Muster the crew and prepare the rescue boat"),
    ),
)

ENGINE_ROOM_FIRE = Scenario(
    scenario_id="engine_room_fire",
    name="Fire in Engine Room",
    description="The fire detection panel reports smoke in the engine room.",
    briefing=(
        "Fire panel alarm: zone 4, engine room.",
        "Acknowledge, muster the crew and starve the fire of air.",
    ),
    time_limit_s=240.0,
    events=(
        AlarmEvent(event_id="fire_alarm", active=True),
        VisualEvent(event_id="fire_panel", effect="fire_panel_zone_4"),
        VisualEvent(event_id="fire_smoke", delay_ms=3000, effect="smoke_aft"),
        LightingEvent(event_id="fire_power_dip", delay_ms=8000, level=0.6),
    ),
    checklist=(
        _item(1, "silence_alarm", Scene.CENTER, "Silence the fire alarm and identify the zone"),
        _item(2, "sound_general_alarm", Scene.CENTER, "Sound the general alarm"),
        _item(3, "stop_engines", Scene.CENTER, "Stop the main engine on the telegraph"),
        _item(4, "close_ventilation", Scene.CENTER, "Shut down engine room ventilation and fire dampers"),
        _item(5, "call_master", Scene.CENTER, "Inform the Master"),
        _item(6, "vhf_broadcast", Scene.CENTER, "Broadcast a PAN-PAN message on VHF channel 16"),
    ),
)

STEERING_FAILURE = Scenario(
    scenario_id="steering_failure",
    name="Steering Gear Failure",
    description="The rudder stops answering the helm while underway.",
    briefing=(
        "Steering gear failure alarm. The ship is swinging to starboard.",
        "Regain control and warn other traffic.",
    ),
    events=(
        AlarmEvent(event_id="steering_alarm", active=True),
        VisualEvent(event_id="rudder_fault", effect="rudder_indicator_fault"),
        ShipMovementEvent(event_id="steering_swing", delay_ms=2000, heading_offset_deg=15.0),
        SoundEvent(event_id="steering_whistle", delay_ms=5000, cue="distant_whistle"),
    ),
    checklist=(
        _item(1, "silence_alarm", Scene.CENTER, "Silence the steering gear alarm"),
        _item(2, "steering_changeover", Scene.CENTER, "Change over to the standby steering pump"),
        _item(3, "stop_engines", Scene.CENTER, "Reduce speed on the telegraph"),
        _item(4, "nuc_lights", Scene.CENTER, "Display not-under-command lights"),
        _item(5, "call_master", Scene.CENTER, "Inform the Master"),
    ),
)

RESTRICTED_VISIBILITY = Scenario(
    scenario_id="restricted_visibility",
    name="Restricted Visibility",
    description="Fog closes in quickly. Comply with COLREGS rule 19.",
    briefing=(
        "Visibility is dropping below two cables.",
        "Set up the bridge for navigation in restricted visibility.",
    ),
    time_limit_s=180.0,
    events=(
        VisualEvent(event_id="fog_bank", effect="fog"),
        LightingEvent(event_id="fog_dim", delay_ms=1500, level=0.35),
        SoundEvent(event_id="fog_horn", delay_ms=5000, cue="distant_fog_horn"),
    ),
    checklist=(
        _item(1, "radar_plot", Scene.CENTER, "Switch the radar to short range and plot targets"),
        _item(2, "fog_signal", Scene.CENTER, "Start the fog signal: one prolonged blast every two minutes"),
        _item(3, "nav_lights", Scene.CENTER, "Switch on the navigation lights"),
        _item(4, "lookout_starboard", Scene.STARBOARD, "Post the lookout on the starboard wing"),
        _item(5, "call_master", Scene.CENTER, "Inform the Master"),
    ),
)

SCENARIO_LIBRARY: tuple[Scenario, ...] = (
    MAN_OVERBOARD,
    ENGINE_ROOM_FIRE,
    STEERING_FAILURE,
    RESTRICTED_VISIBILITY,
)


def get_scenario(scenario_id: str) -> Scenario | None:
    """Look up a scenario by id."""
    for scenario in SCENARIO_LIBRARY:
        if scenario.scenario_id == scenario_id:
            return scenario
    return None
