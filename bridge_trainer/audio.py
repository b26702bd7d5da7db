"""Bridge audio: synthesized alarm and Morse tones, sound cues, radio chatter.

Timing decisions (when to re-trigger the alarm, when the next chatter clip is
due) are plain Python so they can be tested without a mixer. AudioSession is
the only part that talks to pygame.
"""

from __future__ import annotations

import math
import os
import random
from array import array
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

import pygame

from .logger import get_logger

log = get_logger(__name__)

SAMPLE_RATE = 22050
_AMP = 32767

DISABLE_AUDIO_ENV = "BRIDGE_TRAINER_DISABLE_AUDIO"
ASSETS_DIR = Path(__file__).resolve().parents[1] / "assets" / "audio"

ALARM_VOLUME = 0.6
MORSE_TONE_HZ = 600.0

# Fallback tones for cues with no audio file: (frequency_hz, duration_s, gain)
_CUE_FALLBACK_TONES: dict[str, tuple[float, float, float]] = {
    "shout_man_overboard": (520.0, 0.35, 0.30),
    "distant_fog_horn": (180.0, 1.60, 0.40),
    "distant_whistle": (260.0, 1.00, 0.35),
}
_DEFAULT_CUE_TONE = (440.0, 0.25, 0.28)


def _clip(sample: float) -> int:
    return int(max(-1.0, min(1.0, sample)) * _AMP)


def render_tone_pcm(
    frequency_hz: float,
    duration_s: float,
    *,
    gain: float,
    ramp_s: float = 0.005,
    sample_rate: int = SAMPLE_RATE,
) -> array[int]:
    """Sine tone with linear attack/release ramps, as signed 16-bit mono."""
    sample_count = max(1, int(sample_rate * duration_s))
    fade_n = max(1, int(sample_rate * ramp_s))
    out = array("h")
    for idx in range(sample_count):
        envelope = 1.0
        if idx < fade_n:
            envelope = idx / float(fade_n)
        tail = sample_count - idx - 1
        if tail < fade_n:
            envelope = min(envelope, tail / float(fade_n))
        phase = (2.0 * math.pi * float(frequency_hz) * idx) / float(sample_rate)
        out.append(_clip(math.sin(phase) * gain * max(0.0, envelope)))
    return out


def render_alarm_pcm(*, volume: float = ALARM_VOLUME, sample_rate: int = SAMPLE_RATE) -> array[int]:
    """One 0.5 s ship-alarm burst.

    Square 700->840 Hz plus sine 800->820 Hz (sweep over 0.25 s, then held),
    40 ms attack, linear decay to silence at 0.45 s, 5 Hz tremolo.
    """
    duration_s = 0.5
    sample_count = int(sample_rate * duration_s)
    out = array("h")
    phase_a = 0.0
    phase_b = 0.0
    dt = 1.0 / float(sample_rate)
    for idx in range(sample_count):
        t = idx * dt
        sweep = min(1.0, t / 0.25)
        freq_a = 700.0 + (140.0 * sweep)
        freq_b = 800.0 + (20.0 * sweep)
        phase_a += 2.0 * math.pi * freq_a * dt
        phase_b += 2.0 * math.pi * freq_b * dt

        if t < 0.04:
            envelope = t / 0.04
        elif t < 0.45:
            envelope = 1.0 - ((t - 0.04) / 0.41)
        else:
            envelope = 0.0
        tremolo = 1.0 + 0.25 * math.sin(2.0 * math.pi * 5.0 * t)

        square = 1.0 if math.sin(phase_a) >= 0.0 else -1.0
        mixed = (0.5 * square) + (0.5 * math.sin(phase_b))
        out.append(_clip(mixed * volume * envelope * tremolo * 0.5))
    return out


class AlarmToneLoop:
    """Decides when to re-trigger the alarm burst while the alarm is active."""

    def __init__(self, *, interval_s: float) -> None:
        if interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")
        self._interval_s = float(interval_s)
        self._next_at_s: float | None = None

    @property
    def running(self) -> bool:
        return self._next_at_s is not None

    def update(self, *, now_s: float, active: bool) -> bool:
        """Return True when a burst should start now."""
        if not active:
            self._next_at_s = None
            return False
        if self._next_at_s is None or now_s >= self._next_at_s:
            self._next_at_s = now_s + self._interval_s
            return True
        return False


class ClipPlayer(Protocol):
    def play(self, clip: str) -> bool: ...
    def busy(self) -> bool: ...
    def stop(self) -> None: ...


class RadioChatter:
    """Ambient VHF chatter: one clip, a cooldown, another random clip.

    A clip that fails to play counts as finished, so the next attempt simply
    comes one cooldown later.
    """

    def __init__(
        self,
        *,
        clips: Sequence[str],
        cooldown_s: float,
        player: ClipPlayer,
        rng: random.Random | None = None,
    ) -> None:
        if cooldown_s < 0.0:
            raise ValueError("cooldown_s must be >= 0")
        self._clips = tuple(clips)
        self._cooldown_s = float(cooldown_s)
        self._player = player
        self._rng = rng or random.Random()

        self._enabled = False
        self._playing = False
        self._next_at_s: float | None = None
        self._last_clip: str | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def next_at_s(self) -> float | None:
        return self._next_at_s

    @property
    def last_clip(self) -> str | None:
        return self._last_clip

    def set_enabled(self, enabled: bool, *, now_s: float) -> None:
        if enabled == self._enabled:
            return
        self._enabled = enabled
        if enabled:
            self._next_at_s = now_s + self._cooldown_s
            return
        self._next_at_s = None
        if self._playing:
            self._player.stop()
        self._playing = False

    def update(self, *, now_s: float) -> None:
        if not self._enabled or not self._clips:
            return

        if self._playing:
            if self._player.busy():
                return
            self._playing = False
            self._next_at_s = now_s + self._cooldown_s
            return

        if self._next_at_s is None or now_s < self._next_at_s:
            return

        clip = self._rng.choice(self._clips)
        self._last_clip = clip
        if self._player.play(clip):
            self._playing = True
            self._next_at_s = None
        else:
            log.debug("chatter clip %s failed to play", clip)
            self._next_at_s = now_s + self._cooldown_s


class _ChannelClipPlayer:
    def __init__(self, channel: pygame.mixer.Channel) -> None:
        self._channel = channel
        self._cache: dict[str, pygame.mixer.Sound] = {}

    def play(self, clip: str) -> bool:
        try:
            sound = self._cache.get(clip)
            if sound is None:
                sound = pygame.mixer.Sound(clip)
                self._cache[clip] = sound
            self._channel.play(sound)
        except (pygame.error, FileNotFoundError) as exc:
            log.debug("cannot play %s: %s", clip, exc)
            return False
        return True

    def busy(self) -> bool:
        return bool(self._channel.get_busy())

    def stop(self) -> None:
        self._channel.stop()


def _audio_disabled() -> bool:
    return os.environ.get(DISABLE_AUDIO_ENV, "0") == "1"


def _list_chatter_clips(assets_dir: Path) -> list[str]:
    chatter_dir = assets_dir / "chatter"
    if not chatter_dir.is_dir():
        return []
    return sorted(str(p) for p in chatter_dir.iterdir() if p.suffix.lower() in (".wav", ".ogg"))


class AudioSession:
    """Owns the mixer channels for one screen; start() on enter, stop() on exit.

    If the mixer cannot be opened the session stays unavailable and every
    call becomes a no-op.
    """

    def __init__(
        self,
        *,
        alarm_interval_s: float = 0.7,
        chatter_cooldown_s: float = 6.0,
        assets_dir: Path = ASSETS_DIR,
    ) -> None:
        self._assets_dir = assets_dir
        self._alarm_loop = AlarmToneLoop(interval_s=alarm_interval_s)
        self._chatter_cooldown_s = float(chatter_cooldown_s)
        self._available = False

        self._alarm_sound: pygame.mixer.Sound | None = None
        self._tone_sound: pygame.mixer.Sound | None = None
        self._cue_cache: dict[str, pygame.mixer.Sound] = {}

        self._alarm_channel: pygame.mixer.Channel | None = None
        self._cue_channel: pygame.mixer.Channel | None = None
        self._tone_channel: pygame.mixer.Channel | None = None
        self._chatter: RadioChatter | None = None
        self._tone_on = False

    @property
    def available(self) -> bool:
        return self._available

    @property
    def chatter(self) -> RadioChatter | None:
        return self._chatter

    def start(self) -> None:
        if self._available:
            return
        if _audio_disabled():
            log.info("audio disabled by %s", DISABLE_AUDIO_ENV)
            return
        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1, buffer=512)
            pygame.mixer.set_num_channels(max(8, int(pygame.mixer.get_num_channels())))

            self._alarm_sound = pygame.mixer.Sound(buffer=render_alarm_pcm().tobytes())
            self._tone_sound = pygame.mixer.Sound(
                buffer=render_tone_pcm(MORSE_TONE_HZ, 1.0, gain=0.30).tobytes()
            )
            self._alarm_channel = pygame.mixer.Channel(0)
            self._cue_channel = pygame.mixer.Channel(1)
            self._tone_channel = pygame.mixer.Channel(2)
            self._chatter = RadioChatter(
                clips=_list_chatter_clips(self._assets_dir),
                cooldown_s=self._chatter_cooldown_s,
                player=_ChannelClipPlayer(pygame.mixer.Channel(3)),
            )
            self._available = True
        except pygame.error as exc:
            log.warning("audio unavailable: %s", exc)
            self._available = False

    def sync(self, *, now_s: float, alarm_active: bool, cues: Sequence[str] = ()) -> None:
        if not self._available:
            return
        assert self._alarm_channel is not None
        assert self._alarm_sound is not None

        if self._alarm_loop.update(now_s=now_s, active=alarm_active):
            self._alarm_channel.play(self._alarm_sound)
        elif not alarm_active and self._alarm_channel.get_busy():
            self._alarm_channel.stop()

        for cue in cues:
            self.play_cue(cue)

        if self._chatter is not None:
            self._chatter.update(now_s=now_s)

    def set_chatter(self, enabled: bool, *, now_s: float) -> None:
        if self._chatter is not None:
            self._chatter.set_enabled(enabled, now_s=now_s)

    def set_tone(self, on: bool) -> None:
        """Continuous Morse tone on/off."""
        if not self._available or on == self._tone_on:
            return
        assert self._tone_channel is not None
        assert self._tone_sound is not None
        self._tone_on = on
        if on:
            self._tone_channel.play(self._tone_sound, loops=-1)
        else:
            self._tone_channel.stop()

    def play_cue(self, cue: str) -> None:
        if not self._available:
            return
        assert self._cue_channel is not None
        sound = self._cue_cache.get(cue)
        if sound is None:
            sound = self._load_cue(cue)
            self._cue_cache[cue] = sound
        self._cue_channel.play(sound)

    def stop(self) -> None:
        self._alarm_loop.update(now_s=0.0, active=False)
        self._tone_on = False
        if not self._available:
            return
        if self._chatter is not None:
            self._chatter.set_enabled(False, now_s=0.0)
        for channel in (self._alarm_channel, self._cue_channel, self._tone_channel):
            if channel is not None:
                channel.stop()

    def _load_cue(self, cue: str) -> pygame.mixer.Sound:
        for suffix in (".wav", ".ogg"):
            path = self._assets_dir / "cues" / f"{cue}{suffix}"
            if path.exists():
                try:
                    return pygame.mixer.Sound(str(path))
                except pygame.error as exc:
                    log.warning("cannot load cue %s: %s", path, exc)
        freq, duration, gain = _CUE_FALLBACK_TONES.get(cue, _DEFAULT_CUE_TONE)
        return pygame.mixer.Sound(buffer=render_tone_pcm(freq, duration, gain=gain, ramp_s=0.02).tobytes())
