"""Exam paper, question snapshot, attempt and answer models."""

from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from practice_exam.db.base import Base


class SourceKind(str, PyEnum):
    """Which question-source collection a paper draws from."""

    QUIZ = "quiz"
    TOPIC = "topic"
    SUBJECT = "subject"
    PLATFORM = "platform"
    ROADMAP = "roadmap"


class AttemptStatus(str, PyEnum):
    """Attempt lifecycle status. SUBMITTED and EXPIRED are terminal."""

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    EXPIRED = "expired"


class ExamPaper(Base):
    """A user-configured exam definition referencing the question source."""

    __tablename__ = "exam_papers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)

    title = Column(String(255), nullable=False)

    # Source reference, decided once at creation
    source_kind = Column(
        Enum(SourceKind, name="exam_source_kind", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SourceKind.QUIZ,
    )
    source_id = Column(String(255), nullable=False)

    question_count = Column(Integer, nullable=False)
    time_limit_minutes = Column(Integer, nullable=False)
    difficulty = Column(String(50), nullable=True)
    shuffle_questions = Column(Boolean, nullable=False, default=True)
    marking_json = Column(JSON, nullable=False, default=lambda: {"kind": "flat"})  # {"kind": "flat"|"weighted", ...}

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_exam_papers_user_updated", "user_id", "updated_at"),
        # Paper ids are never reused; orphaned snapshots stay keyed by them
        {"sqlite_autoincrement": True},
    )


class ExamQuestionSnapshot(Base):
    """One frozen question of a paper as materialized for one user.

    Rows for a (paper, user) pair are written once in a single batch and
    never updated; every attempt of that paper by that user reads them.
    They are keyed by paper id without a foreign key so they outlive a
    deleted paper.
    """

    __tablename__ = "exam_question_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    paper_id = Column(Integer, nullable=False)
    user_id = Column(String(255), nullable=False)

    question_index = Column(Integer, nullable=False)  # 0-based, source order
    question_json = Column(JSON, nullable=False)  # {question, options, correct_answer, explanation}

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("paper_id", "user_id", "question_index", name="uq_exam_snapshot_question"),
        Index("ix_exam_snapshots_paper_user", "paper_id", "user_id"),
    )


class ExamAttempt(Base):
    """One timed run of a paper by a user."""

    __tablename__ = "exam_attempts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    paper_id = Column(Integer, ForeignKey("exam_papers.id", ondelete="SET NULL"), nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        Enum(AttemptStatus, name="exam_attempt_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AttemptStatus.IN_PROGRESS,
    )

    # Copied from the paper at start; the paper may be deleted later
    snapshot_paper_id = Column(Integer, nullable=False)  # snapshot key, survives paper deletion
    time_limit_minutes = Column(Integer, nullable=False)
    marking_json = Column(JSON, nullable=False, default=lambda: {"kind": "flat"})
    total_questions = Column(Integer, nullable=False)

    # Scoring (computed at submit)
    correct_count = Column(Integer, nullable=True)
    wrong_count = Column(Integer, nullable=True)
    unattempted_count = Column(Integer, nullable=True)
    percent = Column(Integer, nullable=True)  # 0..100
    score = Column(Float, nullable=True)  # marks awarded under the paper's marking scheme
    max_score = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    answers = relationship("ExamAnswer", back_populates="attempt", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_exam_attempts_user_started", "user_id", "started_at"),
        Index("ix_exam_attempts_status", "status"),
    )


class ExamAnswer(Base):
    """The caller's answer state for one question of an attempt."""

    __tablename__ = "exam_answers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(Integer, ForeignKey("exam_attempts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(255), nullable=False)

    question_index = Column(Integer, nullable=False)
    selected_option = Column(String(1000), nullable=True)
    is_flagged = Column(Boolean, nullable=False, default=False)
    is_correct = Column(Boolean, nullable=True)  # written at submission

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    attempt = relationship("ExamAttempt", back_populates="answers")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_index", name="uq_exam_answer_question"),
        Index("ix_exam_answers_attempt_user", "attempt_id", "user_id"),
    )
