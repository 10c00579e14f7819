"""Snapshot materializer: freeze a paper's questions once per (paper, user)."""

import asyncio
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from practice_exam.common.clock import utcnow
from practice_exam.core.app_exceptions import BadInputError, NotFoundError
from practice_exam.core.config import settings
from practice_exam.core.logging import get_logger
from practice_exam.core.snapshot_lock import snapshot_lock
from practice_exam.integrations import quiz_source
from practice_exam.models.exam import ExamPaper, ExamQuestionSnapshot
from practice_exam.services.source_ref import SourceRef

logger = get_logger(__name__)

# Lock losers poll for the winner's rows this often
_WAIT_INTERVAL_SECONDS = 0.25


def load_snapshot(db: Session, user_id: str, paper_id: int) -> list[ExamQuestionSnapshot]:
    """Existing snapshot rows for (paper, user), ordered by question index."""
    stmt = (
        select(ExamQuestionSnapshot)
        .where(
            ExamQuestionSnapshot.paper_id == paper_id,
            ExamQuestionSnapshot.user_id == user_id,
        )
        .order_by(ExamQuestionSnapshot.question_index)
    )
    return list(db.execute(stmt).scalars().all())


def get_owned_paper(db: Session, user_id: str, paper_id: int) -> ExamPaper:
    stmt = select(ExamPaper).where(ExamPaper.id == paper_id, ExamPaper.user_id == user_id)
    paper = db.execute(stmt).scalar_one_or_none()
    if not paper:
        raise NotFoundError("Exam paper not found.")
    return paper


def normalize_question(item: Any) -> dict[str, Any]:
    """
    Canonical snapshot payload for one source item.

    Options come from ``options``, falling back to ``choices``; marks are
    carried only when the source supplies them.
    """
    if not isinstance(item, dict):
        raise BadInputError("Quiz API returned a malformed question.")

    options = item.get("options")
    if options is None:
        options = item.get("choices")
    if options is None:
        options = []
    if not isinstance(options, list):
        raise BadInputError("Quiz API returned malformed options.")

    question = {
        "question": item.get("questionText") or "",
        "options": options,
        "correct_answer": item.get("answerText"),
        "explanation": item.get("explanation"),
    }
    for key, source_key in (("marks", "marks"), ("negative_marks", "negativeMarks")):
        if item.get(source_key) is not None:
            question[key] = item[source_key]
    return question


async def _wait_for_winner(db: Session, user_id: str, paper_id: int) -> list[ExamQuestionSnapshot]:
    """Poll for a concurrent materializer's rows until the lock TTL runs out."""
    attempts = int(settings.SNAPSHOT_LOCK_TTL_SECONDS / _WAIT_INTERVAL_SECONDS)
    for _ in range(attempts):
        await asyncio.sleep(_WAIT_INTERVAL_SECONDS)
        db.rollback()  # end the read transaction so new rows are visible
        rows = load_snapshot(db, user_id, paper_id)
        if rows:
            return rows
    return []


async def _materialize(db: Session, user_id: str, paper_id: int, token: str) -> list[ExamQuestionSnapshot]:
    paper = get_owned_paper(db, user_id, paper_id)

    items = await quiz_source.fetch_quiz_questions(
        token=token,
        source=SourceRef.from_paper(paper),
        limit=paper.question_count,
        difficulty=paper.difficulty,
        shuffle=paper.shuffle_questions,
    )
    if not items:
        raise BadInputError("Quiz API returned no questions.")

    created_at = utcnow()
    rows = [
        ExamQuestionSnapshot(
            paper_id=paper_id,
            user_id=user_id,
            question_index=index,
            question_json=normalize_question(item),
            created_at=created_at,
        )
        for index, item in enumerate(items)
    ]

    try:
        db.add_all(rows)
        db.commit()
    except IntegrityError:
        # Another request stored the set first; its rows are the snapshot.
        db.rollback()
        existing = load_snapshot(db, user_id, paper_id)
        if not existing:
            raise
        logger.info(
            "snapshot_race_lost",
            extra={"event": "snapshot_race_lost", "user_id": user_id, "paper_id": paper_id},
        )
        return existing

    logger.info(
        "snapshot_materialized",
        extra={
            "event": "snapshot_materialized",
            "user_id": user_id,
            "paper_id": paper_id,
            "question_count": len(rows),
        },
    )
    return load_snapshot(db, user_id, paper_id)


async def ensure_snapshot(db: Session, user_id: str, paper_id: int, token: str) -> list[ExamQuestionSnapshot]:
    """
    Return the frozen question set for (paper, user), creating it on first use.

    Idempotent: once rows exist they are returned unchanged for the lifetime
    of the paper. Creation fetches from the question source and writes all
    rows in one commit, so readers see either no rows or the full set.

    Raises:
        NotFoundError: paper missing or owned by someone else
        BadInputError: the source returned no (or malformed) questions
        ServiceUnavailableError: the source call failed
    """
    existing = load_snapshot(db, user_id, paper_id)
    if existing:
        return existing

    with snapshot_lock(user_id, paper_id) as acquired:
        if not acquired:
            rows = await _wait_for_winner(db, user_id, paper_id)
            if rows:
                return rows
        else:
            # Re-check under the lock; a previous holder may have just finished.
            db.rollback()
            rows = load_snapshot(db, user_id, paper_id)
            if rows:
                return rows
        return await _materialize(db, user_id, paper_id, token)
