"""Exam paper CRUD, scoped to the owning user."""

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from practice_exam.common.clock import utcnow
from practice_exam.core.dependencies import CurrentUser
from practice_exam.core.logging import get_logger
from practice_exam.models.exam import ExamAttempt, ExamPaper
from practice_exam.schemas.exam import PaperCreate
from practice_exam.services import quota
from practice_exam.services.snapshot import get_owned_paper

logger = get_logger(__name__)


def create_paper(db: Session, user: CurrentUser, data: PaperCreate) -> ExamPaper:
    """Create a paper after the free-tier paper quota check."""
    quota.enforce_paper_limit(db, user.id, user.is_paid)

    now = utcnow()
    paper = ExamPaper(
        user_id=user.id,
        title=data.title,
        source_kind=data.source_ref.kind,
        source_id=data.source_ref.id,
        question_count=data.question_count,
        time_limit_minutes=data.time_limit_minutes,
        difficulty=data.difficulty,
        shuffle_questions=data.shuffle_questions,
        marking_json=data.marking.to_scheme().to_config(),
        created_at=now,
        updated_at=now,
    )
    db.add(paper)
    db.commit()
    db.refresh(paper)

    logger.info(
        "paper_created",
        extra={"event": "paper_created", "user_id": user.id, "paper_id": paper.id},
    )
    return paper


def list_papers(db: Session, user: CurrentUser) -> list[ExamPaper]:
    stmt = (
        select(ExamPaper)
        .where(ExamPaper.user_id == user.id)
        .order_by(ExamPaper.updated_at.desc(), ExamPaper.created_at.desc(), ExamPaper.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def get_paper(db: Session, user: CurrentUser, paper_id: int) -> ExamPaper:
    return get_owned_paper(db, user.id, paper_id)


def delete_paper(db: Session, user: CurrentUser, paper_id: int) -> ExamPaper:
    """
    Delete a paper.

    Attempts are history and survive; they lose their paper reference but
    keep reading the frozen snapshot, so in-progress attempts can still be
    submitted and finished ones reviewed.
    """
    paper = get_owned_paper(db, user.id, paper_id)

    db.execute(
        update(ExamAttempt)
        .where(ExamAttempt.paper_id == paper_id, ExamAttempt.user_id == user.id)
        .values(paper_id=None)
    )
    db.delete(paper)
    db.commit()

    logger.info(
        "paper_deleted",
        extra={"event": "paper_deleted", "user_id": user.id, "paper_id": paper_id},
    )
    return paper
