"""Property-based tests for scoring invariants."""

from dataclasses import dataclass
from typing import Any

from hypothesis import given, settings, strategies as st

from practice_exam.services.scoring import WeightedMarking, percent_of, score_attempt

OPTIONS = ["A", "B", "C", "D"]


@dataclass
class Row:
    question_index: int
    question_json: Any


snapshots = st.lists(st.sampled_from(OPTIONS), min_size=0, max_size=60).map(
    lambda answers: [Row(i, {"correct_answer": a}) for i, a in enumerate(answers)]
)
answer_maps = st.dictionaries(
    keys=st.integers(min_value=-5, max_value=80),
    values=st.one_of(st.none(), st.just(""), st.sampled_from(OPTIONS)),
    max_size=80,
)


@settings(max_examples=200, deadline=None)
@given(rows=snapshots, answers=answer_maps)
def test_counts_partition_the_snapshot(rows, answers) -> None:
    """
    Property: every question is exactly one of correct, wrong, unattempted.

    Invariants:
    - correct + wrong + unattempted == len(snapshot)
    - 0 <= percent <= 100
    """
    result = score_attempt(answers, rows)

    assert result.correct + result.wrong + result.unattempted == len(rows)
    assert 0 <= result.percent <= 100
    assert min(result.correct, result.wrong, result.unattempted) >= 0


@settings(max_examples=200, deadline=None)
@given(rows=snapshots)
def test_all_correct_scores_full_marks(rows) -> None:
    answers = {row.question_index: row.question_json["correct_answer"] for row in rows}
    result = score_attempt(answers, rows)

    assert result.percent == (100 if rows else 0)
    assert result.score == result.max_score


@settings(max_examples=200, deadline=None)
@given(
    rows=snapshots,
    answers=answer_maps,
    marks=st.floats(min_value=0.25, max_value=10, allow_nan=False),
    negative=st.floats(min_value=0, max_value=5, allow_nan=False),
)
def test_weighted_score_bounded(rows, answers, marks, negative) -> None:
    """Property: -negative * N <= score <= max_score."""
    result = score_attempt(answers, rows, WeightedMarking(marks=marks, negative_marks=negative))

    assert result.score <= result.max_score + 1e-3
    assert result.score >= -negative * len(rows) - 1e-3


@given(correct=st.integers(min_value=0, max_value=500), extra=st.integers(min_value=0, max_value=500))
def test_percent_monotonic_in_correct(correct, extra) -> None:
    total = correct + extra
    assert percent_of(correct, total) <= percent_of(min(correct + 1, total), total)
