"""Scoring engine for submitted attempts.

Pure functions over the frozen question snapshot and the caller's answer
map. Nothing here touches the database; the attempt engine reads rows,
calls :func:`score_attempt` once and writes the result back.

Two marking schemes share the same pass over the questions:

- flat: one mark per correct answer (the default for papers)
- weighted: per-question marks with optional negative marking, taken from
  the question payload when present, else from the paper's defaults
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence

from practice_exam.core.app_exceptions import BadInputError


class Outcome(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"
    UNATTEMPTED = "unattempted"


@dataclass(frozen=True)
class ScoreResult:
    correct: int
    wrong: int
    unattempted: int
    total: int
    percent: int
    score: float
    max_score: float


class SnapshotRow(Protocol):
    question_index: int
    question_json: Any


# ---------------------------------------------------------------------------
# Marking schemes
# ---------------------------------------------------------------------------


class MarkingScheme(Protocol):
    def award(self, question: Mapping[str, Any], outcome: Outcome) -> float: ...

    def max_marks(self, question: Mapping[str, Any]) -> float: ...

    def to_config(self) -> dict[str, Any]: ...


class FlatMarking:
    """One mark per correct answer, nothing subtracted."""

    def award(self, question: Mapping[str, Any], outcome: Outcome) -> float:
        return 1.0 if outcome is Outcome.CORRECT else 0.0

    def max_marks(self, question: Mapping[str, Any]) -> float:
        return 1.0

    def to_config(self) -> dict[str, Any]:
        return {"kind": "flat"}


@dataclass(frozen=True)
class WeightedMarking:
    """Per-question marks; wrong answers lose ``negative_marks``."""

    marks: float = 1.0
    negative_marks: float = 0.0

    def _question_marks(self, question: Mapping[str, Any]) -> tuple[float, float]:
        marks = question.get("marks")
        negative = question.get("negative_marks")
        try:
            marks = float(marks) if marks is not None else self.marks
            negative = float(negative) if negative is not None else self.negative_marks
        except (TypeError, ValueError) as e:
            raise BadInputError("Stored question marks are malformed.") from e
        return marks, abs(negative)

    def award(self, question: Mapping[str, Any], outcome: Outcome) -> float:
        marks, negative = self._question_marks(question)
        if outcome is Outcome.CORRECT:
            return marks
        if outcome is Outcome.WRONG:
            return -negative
        return 0.0

    def max_marks(self, question: Mapping[str, Any]) -> float:
        return self._question_marks(question)[0]

    def to_config(self) -> dict[str, Any]:
        return {"kind": "weighted", "marks": self.marks, "negative_marks": self.negative_marks}


FLAT = FlatMarking()


def marking_from_config(config: Mapping[str, Any] | None) -> MarkingScheme:
    """Rebuild a marking scheme from a stored ``marking_json``."""
    if not config or config.get("kind", "flat") == "flat":
        return FLAT
    if config.get("kind") == "weighted":
        try:
            return WeightedMarking(
                marks=float(config.get("marks", 1.0)),
                negative_marks=abs(float(config.get("negative_marks", 0.0))),
            )
        except (TypeError, ValueError) as e:
            raise BadInputError("Stored marking scheme is malformed.") from e
    raise BadInputError(f"Unknown marking scheme: {config.get('kind')!r}")


# ---------------------------------------------------------------------------
# Comparison helpers
# ---------------------------------------------------------------------------


def _normalize(value: Any) -> str:
    """Stripped text; finite numerics are reduced to one canonical form."""
    text = str(value).strip()
    try:
        number = Decimal(text)
    except InvalidOperation:
        return text
    if not number.is_finite():
        return text
    # "1", "1.0" and "1e0" share a form, as do "0.5" and "0.50"
    return str(number.normalize())


def options_match(selected: Any, correct: Any) -> bool:
    """Permissive equality: ``1``, ``"1"`` and ``"1.0"`` match, as do ``"0.5"`` and ``"0.50"``."""
    if selected is None or correct is None:
        return False
    return _normalize(selected) == _normalize(correct)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def correct_answer_of(question: Mapping[str, Any]) -> Any:
    for key in ("correct_answer", "correctAnswer", "answer"):
        value = question.get(key)
        if value is not None:
            return value
    return None


def answer_correctness(selected: Any, correct_answer: Any) -> bool | None:
    """Per-answer correctness; None without a selection or an answer on record."""
    if _is_blank(selected) or _is_blank(correct_answer):
        return None
    return options_match(selected, correct_answer)


def question_payload(row: SnapshotRow) -> Mapping[str, Any]:
    payload = row.question_json
    if not isinstance(payload, Mapping):
        raise BadInputError(f"Stored question {row.question_index} is malformed.")
    return payload


def classify(selected: Any, question: Mapping[str, Any]) -> Outcome:
    if _is_blank(selected):
        return Outcome.UNATTEMPTED
    if options_match(selected, correct_answer_of(question)):
        return Outcome.CORRECT
    return Outcome.WRONG


def percent_of(correct: int, total: int) -> int:
    """round(correct / total * 100) with halves rounded up; 0 for an empty paper."""
    if total <= 0:
        return 0
    return int(math.floor(correct * 100 / total + 0.5))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def score_attempt(
    answers: Mapping[int, Any],
    snapshot: Sequence[SnapshotRow],
    scheme: MarkingScheme = FLAT,
) -> ScoreResult:
    """
    Score an answer map (question index -> selected option) against a snapshot.

    Answers for indexes outside the snapshot are ignored, so
    ``correct + wrong + unattempted == len(snapshot)`` always holds.
    """
    correct = wrong = 0
    score = max_score = 0.0

    for row in snapshot:
        question = question_payload(row)
        outcome = classify(answers.get(row.question_index), question)
        if outcome is Outcome.CORRECT:
            correct += 1
        elif outcome is Outcome.WRONG:
            wrong += 1
        score += scheme.award(question, outcome)
        max_score += scheme.max_marks(question)

    total = len(snapshot)
    return ScoreResult(
        correct=correct,
        wrong=wrong,
        unattempted=total - correct - wrong,
        total=total,
        percent=percent_of(correct, total),
        score=round(score, 4),
        max_score=round(max_score, 4),
    )
