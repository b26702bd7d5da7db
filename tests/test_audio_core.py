from __future__ import annotations

import os
import random
from dataclasses import dataclass, field

import pytest

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from bridge_trainer.audio import (
    DISABLE_AUDIO_ENV,
    SAMPLE_RATE,
    AlarmToneLoop,
    AudioSession,
    RadioChatter,
    render_alarm_pcm,
    render_tone_pcm,
)


@dataclass
class FakePlayer:
    fail: bool = False
    is_busy: bool = False
    played: list[str] = field(default_factory=list)
    stops: int = 0

    def play(self, clip: str) -> bool:
        self.played.append(clip)
        if self.fail:
            return False
        self.is_busy = True
        return True

    def busy(self) -> bool:
        return self.is_busy

    def stop(self) -> None:
        self.stops += 1
        self.is_busy = False


def test_alarm_loop_retriggers_on_interval_while_active() -> None:
    loop = AlarmToneLoop(interval_s=0.7)
    triggers = [t for t in (0.0, 0.3, 0.7, 1.0, 1.4, 2.0) if loop.update(now_s=t, active=True)]
    assert triggers == [0.0, 0.7, 1.4]
    assert loop.running

    assert loop.update(now_s=2.1, active=False) is False
    assert not loop.running
    # Re-arming starts a fresh burst immediately.
    assert loop.update(now_s=2.2, active=True) is True


def test_alarm_loop_rejects_bad_interval() -> None:
    with pytest.raises(ValueError):
        AlarmToneLoop(interval_s=0.0)


def test_chatter_waits_a_cooldown_plays_then_waits_again() -> None:
    player = FakePlayer()
    chatter = RadioChatter(clips=["a.ogg", "b.ogg"], cooldown_s=6.0, player=player, rng=random.Random(3))

    chatter.update(now_s=0.0)
    assert player.played == []

    chatter.set_enabled(True, now_s=0.0)
    chatter.update(now_s=5.9)
    assert player.played == []
    chatter.update(now_s=6.0)
    assert len(player.played) == 1
    assert chatter.playing
    assert chatter.last_clip in ("a.ogg", "b.ogg")

    chatter.update(now_s=8.0)
    assert len(player.played) == 1

    player.is_busy = False
    chatter.update(now_s=9.0)
    assert not chatter.playing
    assert chatter.next_at_s == pytest.approx(15.0)
    chatter.update(now_s=15.0)
    assert len(player.played) == 2


def test_chatter_failed_clip_reschedules_after_cooldown() -> None:
    player = FakePlayer(fail=True)
    chatter = RadioChatter(clips=["missing.ogg"], cooldown_s=2.0, player=player)
    chatter.set_enabled(True, now_s=0.0)

    chatter.update(now_s=2.0)
    assert player.played == ["missing.ogg"]
    assert not chatter.playing
    assert chatter.next_at_s == pytest.approx(4.0)


def test_disabling_chatter_stops_playback_and_cancels_next_slot() -> None:
    player = FakePlayer()
    chatter = RadioChatter(clips=["a.ogg"], cooldown_s=1.0, player=player)
    chatter.set_enabled(True, now_s=0.0)
    chatter.update(now_s=1.0)
    assert chatter.playing

    chatter.set_enabled(False, now_s=1.5)
    assert player.stops == 1
    assert not chatter.playing
    assert chatter.next_at_s is None
    chatter.update(now_s=10.0)
    assert player.played == ["a.ogg"]


def test_chatter_without_clips_does_nothing() -> None:
    player = FakePlayer()
    chatter = RadioChatter(clips=[], cooldown_s=0.0, player=player)
    chatter.set_enabled(True, now_s=0.0)
    chatter.update(now_s=100.0)
    assert player.played == []


def test_pcm_lengths_and_ramps() -> None:
    alarm = render_alarm_pcm()
    assert alarm.typecode == "h"
    assert len(alarm) == SAMPLE_RATE // 2
    # Decayed to silence by 0.45 s.
    assert all(s == 0 for s in alarm[int(SAMPLE_RATE * 0.46):])

    tone = render_tone_pcm(600.0, 0.1, gain=0.3)
    assert len(tone) == int(SAMPLE_RATE * 0.1)
    assert tone[0] == 0
    assert max(abs(s) for s in tone) <= int(0.3 * 32767)


def test_audio_session_disabled_by_env_is_a_no_op(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(DISABLE_AUDIO_ENV, "1")
    session = AudioSession()
    session.start()
    assert session.available is False
    assert session.chatter is None

    session.sync(now_s=0.0, alarm_active=True, cues=["distant_fog_horn"])
    session.set_chatter(True, now_s=0.0)
    session.set_tone(True)
    session.play_cue("distant_whistle")
    session.stop()
