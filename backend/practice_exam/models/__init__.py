"""Database models."""

# Import all models here so Alembic and create_all can see them
from practice_exam.models.exam import (
    AttemptStatus,
    ExamAnswer,
    ExamAttempt,
    ExamPaper,
    ExamQuestionSnapshot,
    SourceKind,
)

__all__ = [
    "AttemptStatus",
    "ExamAnswer",
    "ExamAttempt",
    "ExamPaper",
    "ExamQuestionSnapshot",
    "SourceKind",
]
