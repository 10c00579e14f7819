"""Factories for exam test data."""

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from practice_exam.common.clock import utcnow
from practice_exam.core.dependencies import CurrentUser
from practice_exam.core.security import create_access_token
from practice_exam.models.exam import (
    AttemptStatus,
    ExamAttempt,
    ExamPaper,
    ExamQuestionSnapshot,
    SourceKind,
)
from practice_exam.services.snapshot import normalize_question


def make_user(user_id: str = "student-1", is_paid: bool = False) -> CurrentUser:
    token = create_access_token(user_id, is_paid=is_paid)
    return CurrentUser(id=user_id, is_paid=is_paid, token=token)


def auth_headers(user: CurrentUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {user.token}"}


def make_items(count: int, answer: str = "A") -> list[dict[str, Any]]:
    """Question-source items; every question's correct answer is ``answer``."""
    return [
        {
            "questionText": f"Question {i + 1}?",
            "answerText": answer,
            "explanation": f"Because {answer} (question {i + 1}).",
            "options": ["A", "B", "C", "D"],
        }
        for i in range(count)
    ]


class FakeQuizSource:
    """Stand-in for ``fetch_quiz_questions`` that records its calls."""

    def __init__(self, items: list[dict[str, Any]] | None = None, error: Exception | None = None):
        self.items = items if items is not None else make_items(5)
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, **kwargs: Any) -> list[dict[str, Any]]:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return list(self.items)


def create_paper(
    db: Session,
    user_id: str,
    title: str = "Algebra mock",
    source_id: str = "abc",
    question_count: int = 5,
    time_limit_minutes: int = 10,
    marking: dict[str, Any] | None = None,
) -> ExamPaper:
    now = utcnow()
    paper = ExamPaper(
        user_id=user_id,
        title=title,
        source_kind=SourceKind.QUIZ,
        source_id=source_id,
        question_count=question_count,
        time_limit_minutes=time_limit_minutes,
        shuffle_questions=True,
        marking_json=marking or {"kind": "flat"},
        created_at=now,
        updated_at=now,
    )
    db.add(paper)
    db.commit()
    db.refresh(paper)
    return paper


def create_snapshot(db: Session, paper: ExamPaper, items: list[dict[str, Any]]) -> list[ExamQuestionSnapshot]:
    rows = [
        ExamQuestionSnapshot(
            paper_id=paper.id,
            user_id=paper.user_id,
            question_index=index,
            question_json=normalize_question(item),
        )
        for index, item in enumerate(items)
    ]
    db.add_all(rows)
    db.commit()
    return rows


def create_attempt(
    db: Session,
    user_id: str,
    paper: ExamPaper | None = None,
    started_at: datetime | None = None,
    status: AttemptStatus = AttemptStatus.IN_PROGRESS,
    percent: int | None = None,
    total_questions: int = 5,
    time_limit_minutes: int = 10,
) -> ExamAttempt:
    attempt = ExamAttempt(
        user_id=user_id,
        paper_id=paper.id if paper else None,
        snapshot_paper_id=paper.id if paper else 0,
        marking_json=paper.marking_json if paper else {"kind": "flat"},
        started_at=started_at or utcnow(),
        status=status,
        time_limit_minutes=time_limit_minutes,
        total_questions=total_questions,
        percent=percent,
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    return attempt
