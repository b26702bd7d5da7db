"""Morse code receiver quiz.

Twenty characters are flashed on a signal lamp. The cadet types each one
while the next is pending. After the last character there is a short review
countdown, then the quiz is marked. 18/20 passes.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock
from .logger import get_logger

log = get_logger(__name__)

MORSE_CODE: dict[str, str] = {
    "A": ".-", "B": "-...", "C": "-.-.", "D": "-..", "E": ".", "F": "..-.",
    "G": "--.", "H": "....", "I": "..", "J": ".---", "K": "-.-", "L": ".-..",
    "M": "--", "N": "-.", "O": "---", "P": ".--.", "Q": "--.-", "R": ".-.",
    "S": "...", "T": "-", "U": "..-", "V": "...-", "W": ".--", "X": "-..-",
    "Y": "-.--", "Z": "--..",
    "0": "-----", "1": ".----", "2": "..---", "3": "...--", "4": "....-",
    "5": ".....", "6": "-....", "7": "--...", "8": "---..", "9": "----.",
}

ALL_CHARS: tuple[str, ...] = tuple(MORSE_CODE)


@dataclass(frozen=True, slots=True)
class MorseReceiverConfig:
    question_count: int = 20
    dot_s: float = 0.3  # dash = 3 dots, symbol gap = 1 dot, letter gap = 3 dots
    answer_gap_s: float = 5.0
    final_countdown_s: float = 5.0
    pass_mark: int = 18

    def __post_init__(self) -> None:
        if self.question_count <= 0:
            raise ValueError("question_count must be > 0")
        if self.dot_s <= 0.0:
            raise ValueError("dot_s must be > 0")
        if self.answer_gap_s < 0.0 or self.final_countdown_s < 0.0:
            raise ValueError("gaps must be >= 0")
        if not (0 <= self.pass_mark <= self.question_count):
            raise ValueError("pass_mark must be within [0, question_count]")

    @property
    def dash_s(self) -> float:
        return self.dot_s * 3.0

    @property
    def symbol_gap_s(self) -> float:
        return self.dot_s

    @property
    def letter_gap_s(self) -> float:
        return self.dot_s * 3.0


class MorsePhase(StrEnum):
    INSTRUCTIONS = "instructions"
    PLAYING = "playing"
    FINAL_COUNTDOWN = "final_countdown"
    RESULTS = "results"


@dataclass(frozen=True, slots=True)
class MorseSignal:
    index: int
    char: str
    code: str
    starts_at_s: float  # relative to quiz start
    lamp_intervals: tuple[tuple[float, float], ...]
    ends_at_s: float  # start of the answer gap


@dataclass(frozen=True, slots=True)
class MorseSnapshot:
    phase: MorsePhase
    prompt: str
    current_index: int | None
    lamp_on: bool
    answers: tuple[str, ...]
    countdown_s: float | None
    score: int | None
    passed: bool | None


def encode(text: str) -> str:
    """Space-separated Morse for the supported characters, others dropped."""
    return " ".join(MORSE_CODE[ch] for ch in text.upper() if ch in MORSE_CODE)


def build_timeline(chars: tuple[str, ...], cfg: MorseReceiverConfig) -> tuple[tuple[MorseSignal, ...], float]:
    """Lay out every lamp flash. Returns (signals, total playing seconds)."""
    t = 0.0
    signals: list[MorseSignal] = []
    for idx, ch in enumerate(chars):
        code = MORSE_CODE[ch]
        start = t
        intervals: list[tuple[float, float]] = []
        for symbol in code:
            dur = cfg.dot_s if symbol == "." else cfg.dash_s
            intervals.append((t, t + dur))
            t += dur + cfg.symbol_gap_s
        t += cfg.letter_gap_s
        signals.append(
            MorseSignal(
                index=idx,
                char=ch,
                code=code,
                starts_at_s=start,
                lamp_intervals=tuple(intervals),
                ends_at_s=t,
            )
        )
        t += cfg.answer_gap_s
    return tuple(signals), t


class MorseReceiverEngine:
    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: MorseReceiverConfig | None = None,
    ) -> None:
        self._clock = clock
        self._cfg = config or MorseReceiverConfig()
        self._seed = int(seed)
        self._new_questions(self._seed)

    @property
    def phase(self) -> MorsePhase:
        return self._phase

    @property
    def questions(self) -> tuple[str, ...]:
        return self._questions

    @property
    def signals(self) -> tuple[MorseSignal, ...]:
        return self._signals

    def restart(self, *, seed: int) -> None:
        self._new_questions(int(seed))

    def start(self) -> None:
        if self._phase is not MorsePhase.INSTRUCTIONS:
            return
        self._phase = MorsePhase.PLAYING
        self._started_at_s = self._clock.now()
        log.info("morse quiz started (%d characters)", len(self._questions))

    def update(self) -> None:
        if self._phase is MorsePhase.PLAYING and self._elapsed() >= self._playing_s:
            self._phase = MorsePhase.FINAL_COUNTDOWN
        if self._phase is MorsePhase.FINAL_COUNTDOWN:
            if self._elapsed() >= self._playing_s + self._cfg.final_countdown_s:
                self._submit()

    def current_index(self) -> int | None:
        if self._phase is not MorsePhase.PLAYING:
            return None
        elapsed = self._elapsed()
        current: int | None = None
        for sig in self._signals:
            if sig.starts_at_s <= elapsed:
                current = sig.index
            else:
                break
        return current

    def lamp_on(self) -> bool:
        if self._phase is not MorsePhase.PLAYING:
            return False
        idx = self.current_index()
        if idx is None:
            return False
        elapsed = self._elapsed()
        return any(a <= elapsed < b for a, b in self._signals[idx].lamp_intervals)

    def countdown_s(self) -> float | None:
        if self._phase is not MorsePhase.FINAL_COUNTDOWN:
            return None
        end = self._playing_s + self._cfg.final_countdown_s
        return max(0.0, end - self._elapsed())

    def set_answer(self, index: int, raw: str) -> bool:
        """Answer (or clear, with "") a character that has already been sent."""
        if self._phase not in (MorsePhase.PLAYING, MorsePhase.FINAL_COUNTDOWN):
            return False
        if not (0 <= index < len(self._questions)):
            return False
        if self._phase is MorsePhase.PLAYING:
            current = self.current_index()
            if current is None or index > current:
                return False
        value = str(raw).strip().upper()[:1]
        if value != "" and value not in MORSE_CODE:
            return False
        self._answers[index] = value
        return True

    def answers(self) -> tuple[str, ...]:
        return tuple(self._answers)

    def score(self) -> int | None:
        return self._score

    def passed(self) -> bool | None:
        if self._score is None:
            return None
        return self._score >= self._cfg.pass_mark

    def snapshot(self) -> MorseSnapshot:
        return MorseSnapshot(
            phase=self._phase,
            prompt=self.current_prompt(),
            current_index=self.current_index(),
            lamp_on=self.lamp_on(),
            answers=self.answers(),
            countdown_s=self.countdown_s(),
            score=self._score,
            passed=self.passed(),
        )

    def current_prompt(self) -> str:
        total = len(self._questions)
        if self._phase is MorsePhase.INSTRUCTIONS:
            return "\n".join(
                [
                    "Morse Code Receiver Quiz",
                    "",
                    f"- {total} signals are flashed on the lamp",
                    f"- {self._cfg.answer_gap_s:.0f} s gap after each character",
                    "- Type each character as you read it",
                    f"- {self._cfg.final_countdown_s:.0f} s review after the last signal",
                    f"- {self._cfg.pass_mark}/{total} to pass",
                    "",
                    "Press Enter to start.",
                ]
            )
        if self._phase is MorsePhase.PLAYING:
            idx = self.current_index()
            shown = 0 if idx is None else idx + 1
            return f"Signal {shown} of {total}"
        if self._phase is MorsePhase.FINAL_COUNTDOWN:
            rem = self.countdown_s() or 0.0
            return f"Review your answers: {rem:.0f} s"
        verdict = "PASS" if self.passed() else "FAIL"
        return f"Score: {self._score}/{total}  {verdict}\nPress Enter to try again."

    def _submit(self) -> None:
        self._score = sum(1 for q, a in zip(self._questions, self._answers) if q == a)
        self._phase = MorsePhase.RESULTS
        log.info("morse quiz marked: %d/%d", self._score, len(self._questions))

    def _elapsed(self) -> float:
        assert self._started_at_s is not None
        return self._clock.now() - self._started_at_s

    def _new_questions(self, seed: int) -> None:
        rng = random.Random(seed)
        self._seed = seed
        self._questions = tuple(rng.choice(ALL_CHARS) for _ in range(self._cfg.question_count))
        self._signals, self._playing_s = build_timeline(self._questions, self._cfg)
        self._answers = [""] * len(self._questions)
        self._phase = MorsePhase.INSTRUCTIONS
        self._started_at_s: float | None = None
        self._score: int | None = None
