from __future__ import annotations

import pytest

from bridge_trainer.drill_core import ActionLogEntry
from bridge_trainer.results import DrillPerformance, calculate_performance, format_performance
from bridge_trainer.scenarios import ChecklistItem, Scenario, Scene


def _scenario(n: int, *, limit: float | None = None) -> Scenario:
    return Scenario(
        scenario_id="test",
        name="Test Drill",
        description="",
        time_limit_s=limit,
        checklist=tuple(ChecklistItem(f"i{k}", f"A{k}", Scene.CENTER, f"k{k}", k) for k in range(1, n + 1)),
    )


def _entry(t: float, actual: int, expected: int | None) -> ActionLogEntry:
    return ActionLogEntry(
        timestamp_s=t,
        action="x",
        scene=Scene.CENTER,
        correct=expected is not None,
        expected_order=expected,
        actual_order=actual,
    )


def _checklist(n: int, done: int) -> tuple[ChecklistItem, ...]:
    return tuple(
        ChecklistItem(f"i{k}", f"A{k}", Scene.CENTER, f"k{k}", k, completed=k <= done) for k in range(1, n + 1)
    )


@pytest.mark.parametrize(("total", "done"), [(8, 0), (8, 3), (3, 1), (7, 7), (6, 5)])
def test_score_is_completed_fraction(total: int, done: int) -> None:
    perf = calculate_performance(_scenario(total), 0.0, [], _checklist(total, done))
    assert perf.score == 100.0 * done / total
    assert perf.completed_actions == done
    assert perf.total_actions == total


def test_empty_checklist_scores_zero_and_empty_log_takes_no_time() -> None:
    perf = calculate_performance(_scenario(0), 5.0, [], ())
    assert perf.score == 0.0
    assert perf.total_time_s == 0.0
    assert perf.correct_order is True


def test_correct_order_ignores_unmatched_entries() -> None:
    log = [_entry(1.0, 1, 1), _entry(2.0, 2, None), _entry(3.0, 3, 2)]
    perf = calculate_performance(_scenario(2), 0.0, log, _checklist(2, 2))
    # Entry 3 expected 2: out of sequence because of the stray action.
    assert perf.correct_order is False
    assert perf.wrong_actions == 1

    clean = [_entry(1.0, 1, 1), _entry(2.0, 2, 2), _entry(3.0, 3, None)]
    assert calculate_performance(_scenario(2), 0.0, clean, _checklist(2, 2)).correct_order is True


def test_total_time_and_time_limit() -> None:
    log = [_entry(12.0, 1, 1), _entry(70.0, 2, 2)]
    perf = calculate_performance(_scenario(2, limit=60.0), 10.0, log, _checklist(2, 2))
    assert perf.total_time_s == pytest.approx(60.0)
    assert perf.within_time_limit is True

    late = calculate_performance(_scenario(2, limit=30.0), 10.0, log, _checklist(2, 2))
    assert late.within_time_limit is False


@pytest.mark.parametrize(
    ("score", "grade"),
    [(100.0, "A"), (90.0, "A"), (87.5, "B"), (75.0, "C"), (62.5, "D"), (50.0, "F")],
)
def test_grade_boundaries(score: float, grade: str) -> None:
    perf = DrillPerformance("s", "S", 0.0, True, 0, 0, score, 0, True)
    assert perf.grade == grade


def test_format_performance_lists_the_headline_numbers() -> None:
    perf = DrillPerformance("s", "Man Overboard", 125.0, False, 8, 8, 100.0, 2, True)
    text = format_performance(perf)
    assert text.splitlines()[0] == "Man Overboard: Results"
    assert "2:05" in text
    assert "8/8" in text
    assert "100%  (A)" in text
    assert "out of order" in text
