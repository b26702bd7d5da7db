"""Pygame UI shell for the bridge trainer.

Screens:
- Bridge Simulator (emergency drills on a three-position bridge)
- Morse Receiver Quiz (signal lamp reading)
- Module Quiz (marking a content-store training module)
- COLREGS Whiteboard (laying out vessel light diagrams)

Timing, scoring and drill state live in bridge_trainer/* core modules; this
file only draws and routes input.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from pathlib import Path
from typing import Protocol

import pygame

from .audio import AudioSession
from .clock import Clock, RealClock
from .colregs import SHIP_H, SHIP_W, Aspect, ShipDiagram, ShipLength, ShipStatus, ShipType, Whiteboard
from .drill_core import RunStatus
from .logger import get_logger
from .morse import MorsePhase, MorseReceiverEngine
from .quiz import SAMPLE_MODULE, QuestionType, QuizResult, TrainingModule, grade_quiz, module_from_dict
from .results import format_performance
from .scenarios import SCENARIO_LIBRARY, Scene
from .simulator import BridgeSimulator, SimulatorConfig, SimulatorSnapshot

log = get_logger(__name__)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

NAVY = (3, 18, 40)
PANEL = (8, 30, 60)
CYAN = (0, 217, 255)
TEXT_MAIN = (235, 245, 255)
TEXT_MUTED = (170, 190, 215)
ALARM_RED = (220, 30, 30)

SHIP_IMAGES_DIR = Path(__file__).resolve().parents[1] / "assets" / "shipimages"


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def top(self) -> Screen | None:
        return self._screens[-1] if self._screens else None

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # The root screen stays; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _fit_label(font: pygame.font.Font, label: str, max_width: int) -> str:
    if max_width <= 0:
        return ""
    if font.size(label)[0] <= max_width:
        return label
    clipped = label
    while clipped and font.size(f"{clipped}...")[0] > max_width:
        clipped = clipped[:-1]
    return f"{clipped}..." if clipped else "..."


def _draw_lines(
    surface: pygame.Surface,
    font: pygame.font.Font,
    lines: list[str],
    *,
    x: int,
    y: int,
    color: tuple[int, int, int] = TEXT_MAIN,
    gap: int = 4,
) -> int:
    for line in lines:
        img = font.render(line, True, color)
        surface.blit(img, (x, y))
        y += img.get_height() + gap
    return y


def _draw_button(
    surface: pygame.Surface,
    font: pygame.font.Font,
    rect: pygame.Rect,
    label: str,
    *,
    active: bool = False,
    fill: tuple[int, int, int] | None = None,
) -> None:
    bg = fill if fill is not None else ((0, 90, 120) if active else (0, 40, 60))
    pygame.draw.rect(surface, bg, rect, border_radius=5)
    pygame.draw.rect(surface, TEXT_MAIN if active else CYAN, rect, 2, border_radius=5)
    text = font.render(_fit_label(font, label, rect.w - 10), True, TEXT_MAIN)
    surface.blit(text, text.get_rect(center=rect.center))


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill(NAVY)

        margin = max(10, min(26, w // 34))
        frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
        pygame.draw.rect(surface, PANEL, frame)
        pygame.draw.rect(surface, CYAN, frame, 2)

        header_h = max(34, min(52, h // 8))
        header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
        pygame.draw.rect(surface, (14, 46, 86), header)
        title = self._title_font.render(self._title, True, TEXT_MAIN)
        surface.blit(title, title.get_rect(center=(frame.centerx, header.centery)))

        item_count = max(1, len(self._items))
        row_h = max(30, min(44, (frame.h - header_h - 80) // item_count))
        y = header.bottom + 20
        for idx, item in enumerate(self._items):
            row = pygame.Rect(frame.x + 24, y, frame.w - 48, row_h - 6)
            selected = idx == self._selected
            pygame.draw.rect(surface, (230, 245, 255) if selected else (10, 40, 76), row)
            color = (10, 30, 60) if selected else TEXT_MAIN
            label = _fit_label(self._item_font, item.label, row.w - 20)
            text = self._item_font.render(label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h

        footer = "Enter/Space: Select  |  Esc/Backspace: Back"
        foot = self._hint_font.render(footer, True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class BridgeSimulatorScreen:
    """Three-position bridge with hotspots, lookout and drill checklist."""

    _LOOKOUT_KEYS = {pygame.K_1: Scene.PORT, pygame.K_2: Scene.CENTER, pygame.K_3: Scene.STARBOARD}

    def __init__(
        self,
        app: App,
        *,
        clock: Clock,
        scenario_id: str | None,
        config: SimulatorConfig | None = None,
    ) -> None:
        self._app = app
        self._clock = clock
        self._sim = BridgeSimulator(clock=clock, config=config)
        self._audio = AudioSession(
            alarm_interval_s=self._sim.config.alarm_interval_s,
            chatter_cooldown_s=self._sim.config.chatter_cooldown_s,
        )
        self._audio.start()
        self._audio.set_chatter(self._sim.config.chatter_enabled, now_s=clock.now())
        self._chatter_on = self._sim.config.chatter_enabled

        self._show_checklist = True
        self._show_results = False
        self._show_logbook = False
        self._buttons: dict[str, pygame.Rect] = {}

        self._small_font = pygame.font.Font(None, 22)
        self._label_font = pygame.font.Font(None, 34)
        self._big_font = pygame.font.Font(None, 44)

        if scenario_id is not None:
            self._sim.select_scenario(scenario_id)

    @property
    def simulator(self) -> BridgeSimulator:
        return self._sim

    def close(self) -> None:
        self._audio.stop()
        self._sim.close()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            self._handle_key(event.key)
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self._handle_click(event.pos)

    def _handle_key(self, key: int) -> None:
        scenes = (Scene.PORT, Scene.CENTER, Scene.STARBOARD)
        if key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self.close()
            self._app.pop()
        elif key == pygame.K_LEFT:
            idx = scenes.index(self._sim.scene)
            if idx > 0:
                self._sim.change_scene(scenes[idx - 1])
        elif key == pygame.K_RIGHT:
            idx = scenes.index(self._sim.scene)
            if idx < len(scenes) - 1:
                self._sim.change_scene(scenes[idx + 1])
        elif key in self._LOOKOUT_KEYS:
            self._sim.move_lookout(self._LOOKOUT_KEYS[key])
        elif key == pygame.K_a:
            self._sim.silence_alarm()
        elif key == pygame.K_r:
            self._show_results = not self._show_results
        elif key == pygame.K_TAB:
            self._show_checklist = not self._show_checklist
        elif key == pygame.K_l:
            self._show_logbook = not self._show_logbook
        elif key == pygame.K_c:
            self._chatter_on = not self._chatter_on
            self._audio.set_chatter(self._chatter_on, now_s=self._clock.now())

    def _handle_click(self, pos: tuple[int, int]) -> None:
        for name, rect in self._buttons.items():
            if rect.collidepoint(pos):
                self._press_button(name)
                return
        if self._show_results or self._show_logbook:
            return
        w, h = self._app_surface_size()
        spot = self._sim.click(pos[0] / float(w), pos[1] / float(h))
        if spot is not None and spot.match_key is None:
            self._show_logbook = not self._show_logbook

    def _press_button(self, name: str) -> None:
        if name.startswith("scene:"):
            self._sim.change_scene(Scene(name.split(":", 1)[1]))
        elif name.startswith("lookout:"):
            self._sim.move_lookout(Scene(name.split(":", 1)[1]))
        elif name == "silence":
            self._sim.silence_alarm()
        elif name == "results":
            self._show_results = not self._show_results

    def _app_surface_size(self) -> tuple[int, int]:
        surface = pygame.display.get_surface()
        if surface is None:
            return WINDOW_SIZE
        return surface.get_size()

    def render(self, surface: pygame.Surface) -> None:
        self._sim.update()
        snap = self._sim.snapshot()
        self._audio.sync(
            now_s=self._clock.now(),
            alarm_active=snap.alarm_active,
            cues=self._sim.drain_sound_cues(),
        )

        w, h = surface.get_size()
        self._draw_seascape(surface, snap)
        self._draw_console(surface, snap)
        self._draw_lookout(surface, snap)

        if snap.darkness > 0.0:
            shade = pygame.Surface((w, h), pygame.SRCALPHA)
            shade.fill((0, 0, 10, int(220 * snap.darkness)))
            surface.blit(shade, (0, 0))

        if snap.alarm_active and snap.scene is Scene.CENTER:
            pulse = (pygame.time.get_ticks() % 1000) / 1000.0
            alpha = int(140 * (1.0 - abs(pulse - 0.5) * 2.0))
            flash = pygame.Surface((w, h), pygame.SRCALPHA)
            flash.fill((255, 0, 0, alpha))
            surface.blit(flash, (0, 0))

        label = self._label_font.render(snap.scene_label, True, CYAN)
        surface.blit(label, label.get_rect(midtop=(w // 2, 12)))

        self._layout_buttons(w, h, snap)
        self._draw_buttons(surface, snap)

        if self._show_checklist and snap.status is not RunStatus.NOT_STARTED:
            self._draw_checklist(surface, snap)
        if self._show_logbook:
            self._draw_logbook(surface, snap)
        if snap.status is RunStatus.COMPLETED and not self._show_results:
            banner = self._big_font.render("DRILL COMPLETE  (R for results)", True, (120, 255, 160))
            surface.blit(banner, banner.get_rect(center=(w // 2, h // 3)))
        if self._show_results:
            self._draw_results(surface)

        if snap.fade_alpha > 0.0:
            fade = pygame.Surface((w, h), pygame.SRCALPHA)
            fade.fill((0, 0, 0, int(255 * snap.fade_alpha)))
            surface.blit(fade, (0, 0))

    def _draw_seascape(self, surface: pygame.Surface, snap: SimulatorSnapshot) -> None:
        w, h = surface.get_size()
        horizon = int(h * 0.42)
        surface.fill((120, 170, 210), pygame.Rect(0, 0, w, horizon))
        surface.fill((18, 60, 100), pygame.Rect(0, horizon, w, h - horizon))

        # Horizon ship drifts with the camera and with scripted heading changes.
        base = {Scene.PORT: 0.60, Scene.CENTER: 0.50, Scene.STARBOARD: 0.40}[snap.scene]
        ship_x = int(w * (base - snap.heading_offset_deg / 180.0))
        pygame.draw.polygon(
            surface,
            (40, 40, 50),
            [(ship_x - 30, horizon - 2), (ship_x + 30, horizon - 2), (ship_x + 22, horizon + 6), (ship_x - 22, horizon + 6)],
        )
        pygame.draw.rect(surface, (60, 60, 70), pygame.Rect(ship_x - 6, horizon - 14, 12, 12))

        if "fog" in snap.active_effects:
            fog = pygame.Surface((w, h), pygame.SRCALPHA)
            fog.fill((210, 215, 220, 150))
            surface.blit(fog, (0, 0))
        if "person_in_water" in snap.active_effects and snap.scene is Scene.PORT:
            pygame.draw.circle(surface, (250, 140, 40), (int(w * 0.3), int(h * 0.5)), 6)
        if "smoke_float" in snap.active_effects:
            pygame.draw.circle(surface, (240, 160, 60), (int(w * 0.34), int(h * 0.48)), 10)

    def _draw_console(self, surface: pygame.Surface, snap: SimulatorSnapshot) -> None:
        w, h = surface.get_size()
        console = pygame.Rect(0, int(h * 0.52), w, h - int(h * 0.52))
        pygame.draw.rect(surface, (32, 36, 44), console)
        pygame.draw.line(surface, (90, 100, 120), console.topleft, console.topright, 3)

        for spot in snap.hotspots:
            rect = pygame.Rect(int(spot.x * w), int(spot.y * h), int(spot.w * w), int(spot.h * h))
            pygame.draw.rect(surface, (52, 60, 74), rect, border_radius=4)
            pygame.draw.rect(surface, CYAN, rect, 1, border_radius=4)
            text = self._small_font.render(_fit_label(self._small_font, spot.label, rect.w - 6), True, TEXT_MAIN)
            surface.blit(text, text.get_rect(center=rect.center))

    def _draw_lookout(self, surface: pygame.Surface, snap: SimulatorSnapshot) -> None:
        if snap.lookout_position is not snap.scene:
            return
        w, h = surface.get_size()
        station_x = w * 0.5
        x = int(station_x + snap.lookout_offset * w * 0.6)
        y = int(h * 0.46)
        pygame.draw.circle(surface, (230, 200, 170), (x, y - 28), 9)
        pygame.draw.rect(surface, (240, 120, 20), pygame.Rect(x - 9, y - 18, 18, 30))

    def _layout_buttons(self, w: int, h: int, snap: SimulatorSnapshot) -> None:
        self._buttons = {}
        bw, bh, gap = 150, 34, 12
        total = bw * 3 + gap * 2
        x0 = (w - total) // 2
        y = h - bh - 12
        for idx, scene in enumerate((Scene.PORT, Scene.CENTER, Scene.STARBOARD)):
            self._buttons[f"scene:{scene.value}"] = pygame.Rect(x0 + idx * (bw + gap), y, bw, bh)

        lw = 80
        for idx, scene in enumerate((Scene.PORT, Scene.CENTER, Scene.STARBOARD)):
            self._buttons[f"lookout:{scene.value}"] = pygame.Rect(8 + idx * (lw + 6), 8, lw, 28)

        if snap.alarm_active and snap.scene is Scene.CENTER:
            self._buttons["silence"] = pygame.Rect(w // 2 - 110, 52, 220, 40)
        if snap.status is not RunStatus.NOT_STARTED:
            self._buttons["results"] = pygame.Rect(w - 128, 8, 120, 28)

    def _draw_buttons(self, surface: pygame.Surface, snap: SimulatorSnapshot) -> None:
        labels = {Scene.PORT: "< Port Wing", Scene.CENTER: "Center", Scene.STARBOARD: "Starboard Wing >"}
        short = {Scene.PORT: "LO Port", Scene.CENTER: "LO Ctr", Scene.STARBOARD: "LO Stbd"}
        for name, rect in self._buttons.items():
            if name.startswith("scene:"):
                scene = Scene(name.split(":", 1)[1])
                _draw_button(surface, self._small_font, rect, labels[scene], active=scene is snap.scene)
            elif name.startswith("lookout:"):
                scene = Scene(name.split(":", 1)[1])
                active = scene is snap.lookout_position
                fill = (50, 50, 50) if snap.lookout_transitioning else None
                _draw_button(surface, self._small_font, rect, short[scene], active=active, fill=fill)
            elif name == "silence":
                _draw_button(surface, self._small_font, rect, "SILENCE ALARM", fill=ALARM_RED)
            elif name == "results":
                _draw_button(surface, self._small_font, rect, "Results", active=self._show_results)

    def _draw_checklist(self, surface: pygame.Surface, snap: SimulatorSnapshot) -> None:
        w, h = surface.get_size()
        panel = pygame.Rect(8, 44, int(w * 0.36), int(h * 0.46))
        overlay = pygame.Surface(panel.size, pygame.SRCALPHA)
        overlay.fill((0, 20, 40, 200))
        surface.blit(overlay, panel.topleft)
        pygame.draw.rect(surface, CYAN, panel, 1)

        title = snap.scenario_name or ""
        if snap.time_remaining_s is not None:
            m, s = divmod(int(snap.time_remaining_s), 60)
            title = f"{title}  {m:d}:{s:02d}"
        y = _draw_lines(surface, self._small_font, [title], x=panel.x + 8, y=panel.y + 6, color=CYAN)
        for item in snap.checklist:
            mark = "[x]" if item.completed else "[ ]"
            line = _fit_label(self._small_font, f"{mark} {item.order}. {item.action}", panel.w - 16)
            color = (140, 230, 160) if item.completed else TEXT_MAIN
            y = _draw_lines(surface, self._small_font, [line], x=panel.x + 8, y=y, color=color, gap=2)

    def _draw_logbook(self, surface: pygame.Surface, snap: SimulatorSnapshot) -> None:
        w, h = surface.get_size()
        panel = pygame.Rect(w // 4, h // 6, w // 2, h // 2)
        pygame.draw.rect(surface, (236, 228, 200), panel)
        pygame.draw.rect(surface, (90, 70, 40), panel, 2)
        lines = ["Ship's Log", ""]
        for entry in snap.ship_log[-10:]:
            lines.append(entry.text)
        if len(lines) == 2:
            lines.append("(no entries)")
        _draw_lines(surface, self._small_font, lines, x=panel.x + 12, y=panel.y + 10, color=(40, 30, 20))

    def _draw_results(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        panel = pygame.Rect(w // 5, h // 8, (w * 3) // 5, (h * 3) // 5)
        pygame.draw.rect(surface, PANEL, panel)
        pygame.draw.rect(surface, CYAN, panel, 2)
        perf = self._sim.results()
        if perf is None:
            lines = ["No drill selected."]
        else:
            lines = format_performance(perf).splitlines()
            lines.append("")
            for entry in self._sim.engine.action_log[-6:]:
                mark = "ok" if entry.correct else "--"
                lines.append(f"{entry.actual_order:>2}. {mark} {entry.action}")
        _draw_lines(surface, self._small_font, lines, x=panel.x + 16, y=panel.y + 12)


class MorseQuizScreen:
    def __init__(self, app: App, *, engine: MorseReceiverEngine) -> None:
        self._app = app
        self._engine = engine
        self._audio = AudioSession()
        self._sound_on = False
        self._review_index = 0
        self._font = pygame.font.Font(None, 30)
        self._small_font = pygame.font.Font(None, 24)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        phase = self._engine.phase
        if event.key == pygame.K_ESCAPE:
            self._audio.stop()
            self._app.pop()
            return
        if event.key == pygame.K_F2:
            self._sound_on = not self._sound_on
            if self._sound_on:
                self._audio.start()
            else:
                self._audio.set_tone(False)
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if phase is MorsePhase.INSTRUCTIONS:
                self._engine.start()
            elif phase is MorsePhase.RESULTS:
                self._engine.restart(seed=_new_seed())
            return
        if phase is MorsePhase.FINAL_COUNTDOWN:
            if event.key == pygame.K_LEFT:
                self._review_index = max(0, self._review_index - 1)
                return
            if event.key == pygame.K_RIGHT:
                self._review_index = min(len(self._engine.questions) - 1, self._review_index + 1)
                return
        ch = getattr(event, "unicode", "")
        if not ch or not ch.isalnum():
            return
        if phase is MorsePhase.PLAYING:
            idx = self._engine.current_index()
            if idx is not None:
                self._engine.set_answer(idx, ch)
        elif phase is MorsePhase.FINAL_COUNTDOWN:
            self._engine.set_answer(self._review_index, ch)

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        snap = self._engine.snapshot()
        if self._sound_on:
            self._audio.set_tone(snap.lamp_on)

        w, h = surface.get_size()
        surface.fill(NAVY)
        lamp_center = (w // 2, int(h * 0.30))
        pygame.draw.circle(surface, (10, 10, 10), lamp_center, 70)
        if snap.lamp_on:
            pygame.draw.circle(surface, (255, 250, 210), lamp_center, 60)
        else:
            pygame.draw.circle(surface, (50, 50, 40), lamp_center, 60)

        _draw_lines(surface, self._font, snap.prompt.splitlines(), x=40, y=20)

        if snap.phase is not MorsePhase.INSTRUCTIONS:
            box_w = max(24, (w - 80) // max(1, len(snap.answers)))
            y = int(h * 0.62)
            for idx, ans in enumerate(snap.answers):
                rect = pygame.Rect(40 + idx * box_w, y, box_w - 4, 40)
                highlight = idx == snap.current_index or (
                    snap.phase is MorsePhase.FINAL_COUNTDOWN and idx == self._review_index
                )
                pygame.draw.rect(surface, (30, 60, 100) if highlight else PANEL, rect)
                pygame.draw.rect(surface, CYAN, rect, 1)
                if ans:
                    txt = self._font.render(ans, True, TEXT_MAIN)
                    surface.blit(txt, txt.get_rect(center=rect.center))
                if snap.phase is MorsePhase.RESULTS:
                    expected = self._engine.questions[idx]
                    color = (120, 230, 140) if ans == expected else (240, 110, 110)
                    exp = self._small_font.render(expected, True, color)
                    surface.blit(exp, exp.get_rect(midtop=(rect.centerx, rect.bottom + 4)))

        hint = "F2: sound on/off  |  Esc: back"
        surface.blit(self._small_font.render(hint, True, TEXT_MUTED), (40, h - 30))


class ModuleQuizScreen:
    """One quiz question at a time; number keys pick options, Enter confirms."""

    def __init__(self, app: App, *, module: TrainingModule) -> None:
        self._app = app
        self._module = module
        self._questions = module.quiz_questions()
        self._answers: dict[str, int | tuple[int, ...] | str | None] = {}
        self._index = 0
        self._selected: set[int] = set()
        self._text = ""
        self._result: QuizResult | None = None
        self._font = pygame.font.Font(None, 32)
        self._small_font = pygame.font.Font(None, 24)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self._app.pop()
            return
        if self._result is not None or not self._questions:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self._app.pop()
            return

        q = self._questions[self._index]
        if q.qtype is QuestionType.TEXT_INPUT:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self._answer(self._text)
            elif event.key == pygame.K_BACKSPACE:
                self._text = self._text[:-1]
            elif getattr(event, "unicode", "") and event.unicode.isprintable():
                self._text += event.unicode
            return

        choice = _choice_from_key(event.key)
        if q.qtype is QuestionType.MULTI_SELECT:
            if choice is not None and choice < len(q.options):
                self._selected ^= {choice}
            elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER) and self._selected:
                self._answer(tuple(sorted(self._selected)))
            return
        if choice is not None and choice < len(q.options):
            self._answer(choice)

    def _answer(self, value: int | tuple[int, ...] | str) -> None:
        q = self._questions[self._index]
        self._answers[q.question_id] = value
        self._selected = set()
        self._text = ""
        self._index += 1
        if self._index >= len(self._questions):
            self._result = grade_quiz(self._questions, self._answers)
            log.info("module quiz %s: %d/%d", self._module.module_id, self._result.correct, self._result.total)

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill(NAVY)
        y = _draw_lines(surface, self._font, [self._module.title], x=40, y=24, color=CYAN)
        y += 12

        if not self._questions:
            _draw_lines(surface, self._font, ["This module has no quiz.", "Press Enter to go back."], x=40, y=y)
            return
        if self._result is not None:
            lines = [f"Score: {self._result.correct}/{self._result.total}", ""]
            for q, ok in zip(self._questions, self._result.per_question):
                lines.append(f"{'ok' if ok else '--'}  {_fit_label(self._small_font, q.question, w - 140)}")
            lines += ["", "Press Enter to return."]
            _draw_lines(surface, self._small_font, lines, x=40, y=y)
            return

        q = self._questions[self._index]
        lines = [f"Question {self._index + 1} of {len(self._questions)}", q.question, ""]
        if q.qtype is QuestionType.TEXT_INPUT:
            lines.append(f"> {self._text}_")
        else:
            for idx, opt in enumerate(q.options):
                mark = "[x]" if idx in self._selected else "   "
                lines.append(f"{idx + 1}. {mark} {opt}" if q.qtype is QuestionType.MULTI_SELECT else f"{idx + 1}. {opt}")
            if q.qtype is QuestionType.MULTI_SELECT:
                lines += ["", "Toggle with number keys, Enter to confirm."]
        _draw_lines(surface, self._font, lines, x=40, y=y)


_FILTER_FIELDS: tuple[tuple[str, str, tuple[StrEnum, ...]], ...] = (
    ("ship_type", "Type", tuple(ShipType)),
    ("length", "Length", tuple(ShipLength)),
    ("status", "Status", tuple(ShipStatus)),
    ("aspect", "Aspect", tuple(Aspect)),
)


def _cycle(current: StrEnum | None, values: tuple[StrEnum, ...]) -> StrEnum | None:
    # None ("all") -> first value -> ... -> last value -> None
    if current is None:
        return values[0]
    idx = values.index(current)
    return values[idx + 1] if idx + 1 < len(values) else None


class ColregsBoardScreen:
    """Whiteboard for laying out vessel light diagrams.

    Click a library entry and release over the board to drop it. Drag placed
    diagrams about; double-click one to take it off. N toggles day/night,
    C clears the board.
    """

    _PANEL_W = 230

    def __init__(self, app: App, *, clock: Clock, images_dir: Path = SHIP_IMAGES_DIR) -> None:
        self._app = app
        self._clock = clock
        self._board = Whiteboard()
        self._images_dir = images_dir
        self._images: dict[str, pygame.Surface | None] = {}
        self._held: ShipDiagram | None = None
        self._buttons: dict[str, pygame.Rect] = {}
        self._gallery: list[tuple[pygame.Rect, ShipDiagram]] = []
        self._board_rect = pygame.Rect(self._PANEL_W, 0, WINDOW_SIZE[0] - self._PANEL_W, WINDOW_SIZE[1])
        self._font = pygame.font.Font(None, 24)
        self._small_font = pygame.font.Font(None, 20)

    @property
    def board(self) -> Whiteboard:
        return self._board

    @property
    def gallery(self) -> tuple[tuple[pygame.Rect, ShipDiagram], ...]:
        """Library entries as laid out by the last render."""
        return tuple(self._gallery)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            if event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
                self._app.pop()
            elif event.key == pygame.K_n:
                self._board.toggle_night()
            elif event.key == pygame.K_c:
                self._board.clear()
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self._mouse_down(event.pos)
        elif event.type == pygame.MOUSEMOTION:
            if self._board.dragging is not None:
                bx, by = self._to_board(event.pos)
                self._board.drag_to(bx, by)
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self._mouse_up(event.pos)

    def _mouse_down(self, pos: tuple[int, int]) -> None:
        for name, rect in self._buttons.items():
            if rect.collidepoint(pos):
                self._press_button(name)
                return
        for rect, ship in self._gallery:
            if rect.collidepoint(pos):
                self._held = ship
                return
        if self._board_rect.collidepoint(pos):
            bx, by = self._to_board(pos)
            self._board.press(bx, by, now_s=self._clock.now())

    def _mouse_up(self, pos: tuple[int, int]) -> None:
        held, self._held = self._held, None
        if held is not None and self._board_rect.collidepoint(pos):
            bx, by = self._to_board(pos)
            self._board.place(held, bx, by)
        self._board.release()

    def _press_button(self, name: str) -> None:
        if name == "night":
            self._board.toggle_night()
        elif name == "clear":
            self._board.clear()
        elif name.startswith("filter:"):
            field = name.split(":", 1)[1]
            values = next(v for f, _, v in _FILTER_FIELDS if f == field)
            flt = self._board.filter
            self._board.set_filter(replace(flt, **{field: _cycle(getattr(flt, field), values)}))

    def _to_board(self, pos: tuple[int, int]) -> tuple[float, float]:
        return float(pos[0] - self._board_rect.x), float(pos[1] - self._board_rect.y)

    def _image(self, name: str) -> pygame.Surface | None:
        if name in self._images:
            return self._images[name]
        path = self._images_dir / name
        img: pygame.Surface | None = None
        if path.is_file():
            try:
                img = pygame.image.load(str(path))
            except pygame.error as exc:
                log.warning("could not load %s: %s", path, exc)
        self._images[name] = img
        return img

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        night = self._board.night
        self._board_rect = pygame.Rect(self._PANEL_W, 0, max(1, w - self._PANEL_W), h)

        sea = self._image("sea_night.png" if night else "sea_day.png")
        if sea is not None:
            surface.blit(pygame.transform.scale(sea, self._board_rect.size), self._board_rect.topleft)
        else:
            surface.fill((4, 10, 26) if night else (28, 92, 140), self._board_rect)

        prev_clip = surface.get_clip()
        surface.set_clip(self._board_rect)
        for placed in self._board.placed:
            rect = pygame.Rect(
                self._board_rect.x + int(placed.x),
                self._board_rect.y + int(placed.y),
                SHIP_W,
                SHIP_H,
            )
            self._draw_ship(surface, rect, placed.ship, night=night)
            if self._board.dragging == placed:
                pygame.draw.rect(surface, CYAN, rect, 2)
        surface.set_clip(prev_clip)

        self._draw_panel(surface, h)

        if self._held is not None:
            mx, my = pygame.mouse.get_pos()
            ghost = pygame.Rect(0, 0, SHIP_W // 2, SHIP_H // 2)
            ghost.center = (mx, my)
            self._draw_ship(surface, ghost, self._held, night=night)

    def _draw_panel(self, surface: pygame.Surface, h: int) -> None:
        panel = pygame.Rect(0, 0, self._PANEL_W, h)
        pygame.draw.rect(surface, PANEL, panel)
        pygame.draw.line(surface, CYAN, panel.topright, panel.bottomright, 2)

        self._buttons = {}
        y = _draw_lines(surface, self._font, ["Ship Library"], x=10, y=8, color=CYAN)
        flt = self._board.filter
        for field, label, _ in _FILTER_FIELDS:
            value = getattr(flt, field)
            rect = pygame.Rect(10, y, self._PANEL_W - 20, 24)
            self._buttons[f"filter:{field}"] = rect
            _draw_button(surface, self._small_font, rect, f"{label}: {value or 'all'}", active=value is not None)
            y += 28

        self._gallery = []
        thumb_h = 36
        for ship in self._board.library():
            if y + thumb_h > h - 80:
                break
            rect = pygame.Rect(10, y + 4, self._PANEL_W - 20, thumb_h)
            pygame.draw.rect(surface, (10, 40, 76), rect, border_radius=4)
            self._draw_ship(surface, pygame.Rect(rect.x + 2, rect.y + 2, 96, thumb_h - 4), ship, night=self._board.night)
            name = self._small_font.render(_fit_label(self._small_font, ship.name, rect.w - 106), True, TEXT_MAIN)
            surface.blit(name, (rect.x + 102, rect.centery - name.get_height() // 2))
            self._gallery.append((rect, ship))
            y += thumb_h + 4
        if not self._gallery:
            _draw_lines(surface, self._small_font, ["No ships match."], x=12, y=y + 6, color=TEXT_MUTED)

        self._buttons["night"] = pygame.Rect(10, h - 70, self._PANEL_W - 20, 26)
        self._buttons["clear"] = pygame.Rect(10, h - 38, self._PANEL_W - 20, 26)
        _draw_button(surface, self._small_font, self._buttons["night"], "Night (N)" if not self._board.night else "Day (N)")
        _draw_button(surface, self._small_font, self._buttons["clear"], "Clear Board (C)")

    def _draw_ship(self, surface: pygame.Surface, rect: pygame.Rect, ship: ShipDiagram, *, night: bool) -> None:
        img = self._image(ship.image(night=night))
        if img is not None:
            surface.blit(pygame.transform.scale(img, rect.size), rect.topleft)
            return

        hull = (30, 32, 38) if night else (200, 204, 210)
        cx, cy = rect.center
        if ship.aspect in (Aspect.PORT, Aspect.STARBOARD):
            bow_right = ship.aspect is Aspect.STARBOARD
            tip = rect.right - 4 if bow_right else rect.left + 4
            back = rect.left + 8 if bow_right else rect.right - 8
            pygame.draw.polygon(
                surface,
                hull,
                [(back, cy - rect.h // 6), (tip, cy), (back, cy + rect.h // 4)],
            )
        else:
            pygame.draw.ellipse(surface, hull, pygame.Rect(cx - rect.w // 6, cy - rect.h // 4, rect.w // 3, rect.h // 2))

        r = max(2, rect.h // 14)
        white, red, green = (255, 255, 230), (240, 40, 40), (40, 230, 90)
        mast_y = rect.y + rect.h // 4
        if ship.aspect is not Aspect.STERN:
            pygame.draw.circle(surface, white, (cx, mast_y), r)
            if ship.length is ShipLength.OVER_50:
                # Second masthead light, aft and higher.
                dx = 0 if ship.aspect is Aspect.BOW else (-rect.w // 6 if ship.aspect is Aspect.STARBOARD else rect.w // 6)
                pygame.draw.circle(surface, white, (cx + dx, mast_y - r * 2), r)
        if ship.aspect in (Aspect.STARBOARD, Aspect.BOW):
            pygame.draw.circle(surface, green, (cx - r * 3 if ship.aspect is Aspect.BOW else cx, cy), r)
        if ship.aspect in (Aspect.PORT, Aspect.BOW):
            pygame.draw.circle(surface, red, (cx + r * 3 if ship.aspect is Aspect.BOW else cx, cy), r)
        if ship.aspect is Aspect.STERN:
            pygame.draw.circle(surface, white, (cx, cy), r)


def _choice_from_key(key: int) -> int | None:
    keys = (pygame.K_1, pygame.K_2, pygame.K_3, pygame.K_4, pygame.K_5, pygame.K_6)
    if key in keys:
        return keys.index(key)
    return None


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("Bridge Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    real_clock = RealClock()

    def open_drill(scenario_id: str | None) -> Callable[[], None]:
        def _open() -> None:
            app.push(BridgeSimulatorScreen(app, clock=real_clock, scenario_id=scenario_id))

        return _open

    def open_morse() -> None:
        app.push(MorseQuizScreen(app, engine=MorseReceiverEngine(clock=real_clock, seed=_new_seed())))

    def open_module_quiz() -> None:
        app.push(ModuleQuizScreen(app, module=module_from_dict(SAMPLE_MODULE)))

    def open_whiteboard() -> None:
        app.push(ColregsBoardScreen(app, clock=real_clock))

    drill_items = [MenuItem(s.name, open_drill(s.scenario_id)) for s in SCENARIO_LIBRARY]
    drill_items.append(MenuItem("Free Roam", open_drill(None)))
    drill_items.append(MenuItem("Back", app.pop))
    drills_menu = MenuScreen(app, "Emergency Drills", drill_items)

    main_items = [
        MenuItem("Bridge Simulator", lambda: app.push(drills_menu)),
        MenuItem("Morse Receiver Quiz", open_morse),
        MenuItem("Module Quiz: COLREGS Lights", open_module_quiz),
        MenuItem("COLREGS Whiteboard", open_whiteboard),
        MenuItem("Quit", app.quit),
    ]

    app.push(MenuScreen(app, "Bridge Trainer", main_items, is_root=True))
    log.info("bridge trainer started")

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        top = app.top
        if isinstance(top, BridgeSimulatorScreen):
            top.close()
        pygame.quit()

    return 0
