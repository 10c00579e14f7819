"""Tests for the scoring engine."""

from dataclasses import dataclass
from typing import Any

import pytest

from practice_exam.core.app_exceptions import BadInputError
from practice_exam.services.scoring import (
    FLAT,
    FlatMarking,
    Outcome,
    WeightedMarking,
    answer_correctness,
    classify,
    marking_from_config,
    options_match,
    percent_of,
    score_attempt,
)


@dataclass
class Row:
    question_index: int
    question_json: Any


def snapshot(*answers: Any, **extra: Any) -> list[Row]:
    return [Row(i, {"question": f"Q{i}", "options": [], "correct_answer": a, **extra}) for i, a in enumerate(answers)]


def test_two_right_one_wrong_two_blank():
    rows = snapshot("A", "B", "C", "D", "A")
    result = score_attempt({0: "A", 1: "B", 2: "D"}, rows)

    assert (result.correct, result.wrong, result.unattempted) == (2, 1, 2)
    assert result.total == 5
    assert result.percent == 40
    assert result.score == 2.0
    assert result.max_score == 5.0


def test_empty_snapshot_scores_zero():
    result = score_attempt({}, [])
    assert (result.correct, result.wrong, result.unattempted, result.percent) == (0, 0, 0, 0)


def test_all_correct_is_100():
    rows = snapshot("A", "B")
    assert score_attempt({0: "A", 1: "B"}, rows).percent == 100


def test_answers_outside_snapshot_ignored():
    rows = snapshot("A", "B")
    result = score_attempt({0: "A", 7: "B", -1: "C"}, rows)
    assert (result.correct, result.wrong, result.unattempted) == (1, 0, 1)


def test_blank_selection_is_unattempted():
    rows = snapshot("A")
    assert score_attempt({0: "   "}, rows).unattempted == 1


def test_missing_correct_answer_counts_as_wrong():
    rows = snapshot(None)
    assert classify("A", rows[0].question_json) is Outcome.WRONG


@pytest.mark.parametrize(
    "selected,correct,expected",
    [
        (1, "1", True),
        ("1.0", 1, True),
        (" B ", "B", True),
        ("b", "B", False),
        ("2", "1", False),
        ("0.50", "0.5", True),
        (0.5, ".5", True),
        ("1e1", "10", True),
        ("01", 1, True),
        ("0.5", "0.05", False),
        ("nan", "NaN", False),
        ("Infinity", "inf", False),
        (None, "A", False),
    ],
)
def test_options_match(selected, correct, expected):
    assert options_match(selected, correct) is expected


def test_answer_correctness_none_without_selection():
    assert answer_correctness(None, "A") is None
    assert answer_correctness("", "A") is None
    assert answer_correctness("A", None) is None
    assert answer_correctness("A", "A") is True


@pytest.mark.parametrize("correct,total,expected", [(1, 3, 33), (2, 3, 67), (1, 8, 13), (0, 5, 0), (5, 0, 0)])
def test_percent_rounds_half_up(correct, total, expected):
    assert percent_of(correct, total) == expected


def test_weighted_marking_with_negative_marks():
    rows = snapshot("A", "B", "C")
    scheme = WeightedMarking(marks=4.0, negative_marks=1.0)
    result = score_attempt({0: "A", 1: "C"}, rows, scheme)

    assert result.score == 3.0
    assert result.max_score == 12.0
    assert result.percent == 33


def test_weighted_marking_uses_question_marks():
    rows = [
        Row(0, {"correct_answer": "A", "marks": 2, "negative_marks": 0.5}),
        Row(1, {"correct_answer": "A", "marks": 3}),
    ]
    result = score_attempt({0: "B", 1: "A"}, rows, WeightedMarking())
    assert result.score == 2.5
    assert result.max_score == 5.0


def test_marking_from_config():
    assert marking_from_config(None) is FLAT
    assert isinstance(marking_from_config({"kind": "flat"}), FlatMarking)
    assert marking_from_config({"kind": "weighted", "marks": 2, "negative_marks": -1}) == WeightedMarking(2.0, 1.0)
    with pytest.raises(BadInputError):
        marking_from_config({"kind": "bonus"})


def test_malformed_snapshot_row_rejected():
    with pytest.raises(BadInputError):
        score_attempt({}, [Row(0, "not a dict")])
