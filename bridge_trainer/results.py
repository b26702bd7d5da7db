from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .drill_core import ActionLogEntry
from .scenarios import ChecklistItem, Scenario


@dataclass(frozen=True, slots=True)
class DrillPerformance:
    """In-memory summary of one drill run. Nothing here is persisted."""

    scenario_id: str
    scenario_name: str
    total_time_s: float
    correct_order: bool
    completed_actions: int
    total_actions: int
    score: float
    wrong_actions: int
    within_time_limit: bool

    @property
    def grade(self) -> str:
        if self.score >= 90:
            return "A"
        if self.score >= 80:
            return "B"
        if self.score >= 70:
            return "C"
        if self.score >= 60:
            return "D"
        return "F"


def calculate_performance(
    scenario: Scenario,
    started_at_s: float,
    action_log: Sequence[ActionLogEntry],
    checklist: Sequence[ChecklistItem],
) -> DrillPerformance:
    """Score a run from its action log and checklist.

    Completion and ordering are reported separately: a run that ticks off
    every item out of sequence still scores 100 but has ``correct_order``
    False.
    """

    total_time_s = 0.0
    if action_log:
        total_time_s = max(0.0, float(action_log[-1].timestamp_s) - float(started_at_s))

    correct_order = all(
        entry.expected_order == entry.actual_order
        for entry in action_log
        if entry.expected_order is not None
    )

    total = len(checklist)
    completed = sum(1 for item in checklist if item.completed)
    score = 0.0 if total == 0 else 100.0 * completed / total

    limit = scenario.time_limit_s
    within_limit = limit is None or total_time_s <= limit

    return DrillPerformance(
        scenario_id=scenario.scenario_id,
        scenario_name=scenario.name,
        total_time_s=total_time_s,
        correct_order=correct_order,
        completed_actions=completed,
        total_actions=total,
        score=score,
        wrong_actions=sum(1 for entry in action_log if not entry.correct),
        within_time_limit=within_limit,
    )


def format_performance(perf: DrillPerformance) -> str:
    minutes, seconds = divmod(int(round(perf.total_time_s)), 60)
    return "\n".join(
        [
            f"{perf.scenario_name}: Results",
            "",
            f"Time:       {minutes:d}:{seconds:02d}",
            f"Completed:  {perf.completed_actions}/{perf.total_actions}",
            f"Score:      {perf.score:.0f}%  ({perf.grade})",
            f"Sequence:   {'correct' if perf.correct_order else 'out of order'}",
            f"Wrong:      {perf.wrong_actions}",
            f"Time limit: {'met' if perf.within_time_limit else 'exceeded'}",
        ]
    )
