"""Attempt engine: start, answer, submit and read back exam attempts."""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from practice_exam.common.clock import ensure_utc, utcnow
from practice_exam.core.app_exceptions import (
    BadInputError,
    ConflictError,
    NotFoundError,
)
from practice_exam.core.config import settings
from practice_exam.core.dependencies import CurrentUser, require_paid
from practice_exam.core.logging import get_logger
from practice_exam.models.exam import (
    AttemptStatus,
    ExamAnswer,
    ExamAttempt,
    ExamPaper,
    ExamQuestionSnapshot,
)
from practice_exam.services import quota
from practice_exam.services.scoring import (
    ScoreResult,
    answer_correctness,
    correct_answer_of,
    marking_from_config,
    question_payload,
    score_attempt,
)
from practice_exam.services.snapshot import ensure_snapshot, get_owned_paper, load_snapshot

logger = get_logger(__name__)

TERMINAL_STATUSES = frozenset({AttemptStatus.SUBMITTED, AttemptStatus.EXPIRED})


def get_owned_attempt(db: Session, user_id: str, attempt_id: int) -> ExamAttempt:
    stmt = select(ExamAttempt).where(ExamAttempt.id == attempt_id, ExamAttempt.user_id == user_id)
    attempt = db.execute(stmt).scalar_one_or_none()
    if not attempt:
        raise NotFoundError("Attempt not found.")
    return attempt


def load_answers(db: Session, user_id: str, attempt_id: int) -> list[ExamAnswer]:
    stmt = (
        select(ExamAnswer)
        .where(ExamAnswer.attempt_id == attempt_id, ExamAnswer.user_id == user_id)
        .order_by(ExamAnswer.question_index)
    )
    return list(db.execute(stmt).scalars().all())


def attempt_deadline(attempt: ExamAttempt) -> datetime:
    return ensure_utc(attempt.started_at) + timedelta(minutes=attempt.time_limit_minutes)


def is_past_deadline(attempt: ExamAttempt, now: datetime | None = None) -> bool:
    grace = timedelta(seconds=settings.ANSWER_GRACE_SECONDS)
    return (now or utcnow()) > attempt_deadline(attempt) + grace


# ---------------------------------------------------------------------------
# Start
# ---------------------------------------------------------------------------


async def start_attempt(db: Session, user: CurrentUser, paper_id: int) -> ExamAttempt:
    """
    Start a new attempt of a paper.

    Order matters: quota first (cheap), then ownership, then the snapshot
    (which may call the question source), then the attempt row.
    """
    quota.enforce_daily_attempt_limit(db, user.id, user.is_paid)

    paper = get_owned_paper(db, user.id, paper_id)
    time_limit_minutes = paper.time_limit_minutes
    marking = dict(paper.marking_json or {"kind": "flat"})

    snapshot = await ensure_snapshot(db, user.id, paper_id, user.token)

    attempt = ExamAttempt(
        user_id=user.id,
        paper_id=paper_id,
        snapshot_paper_id=paper_id,
        started_at=utcnow(),
        status=AttemptStatus.IN_PROGRESS,
        time_limit_minutes=time_limit_minutes,
        marking_json=marking,
        total_questions=len(snapshot),
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)

    logger.info(
        "attempt_started",
        extra={
            "event": "attempt_started",
            "user_id": user.id,
            "paper_id": paper_id,
            "attempt_id": attempt.id,
            "total_questions": attempt.total_questions,
        },
    )
    return attempt


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------


async def save_answer(
    db: Session,
    user: CurrentUser,
    attempt_id: int,
    question_index: int,
    selected_option: str | None = None,
    is_flagged: bool | None = None,
) -> ExamAnswer:
    """
    Upsert the answer row for (attempt, question index).

    Omitted fields keep their stored values. Saves are only accepted while
    the attempt is in progress and inside its time limit (plus grace); an
    overdue attempt is finalized as expired before the save is rejected.

    Raises:
        NotFoundError: attempt missing or not owned
        BadInputError: question index outside the attempt
        ConflictError: attempt already finalized, or time is up
    """
    attempt = get_owned_attempt(db, user.id, attempt_id)

    if attempt.status in TERMINAL_STATUSES:
        raise ConflictError(
            "Attempt is no longer in progress.",
            code="ATTEMPT_NOT_IN_PROGRESS",
            details={"status": AttemptStatus(attempt.status).value},
        )

    if is_past_deadline(attempt):
        await finalize_attempt(db, attempt, expired=True)
        raise ConflictError(
            "Time is up for this attempt.",
            code="ATTEMPT_NOT_IN_PROGRESS",
            details={"status": AttemptStatus.EXPIRED.value, "expired_now": True},
        )

    if not 0 <= question_index < attempt.total_questions:
        raise BadInputError(
            "Question index is outside this attempt.",
            details={"question_index": question_index, "total_questions": attempt.total_questions},
        )

    stmt = select(ExamAnswer).where(
        ExamAnswer.attempt_id == attempt_id,
        ExamAnswer.user_id == user.id,
        ExamAnswer.question_index == question_index,
    )
    answer = db.execute(stmt).scalar_one_or_none()

    if answer is None:
        answer = ExamAnswer(
            attempt_id=attempt_id,
            user_id=user.id,
            question_index=question_index,
            selected_option=selected_option,
            is_flagged=bool(is_flagged),
        )
        db.add(answer)
    else:
        if selected_option is not None:
            answer.selected_option = selected_option
        if is_flagged is not None:
            answer.is_flagged = is_flagged
        answer.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(answer)
        return answer
    except IntegrityError:
        db.rollback()
        # Concurrent first save of the same question: apply onto the stored row.
        existing = db.execute(stmt).scalar_one_or_none()
        if existing is None:
            raise
        if selected_option is not None:
            existing.selected_option = selected_option
        if is_flagged is not None:
            existing.is_flagged = is_flagged
        existing.updated_at = utcnow()
        db.commit()
        db.refresh(existing)
        return existing


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


async def finalize_attempt(db: Session, attempt: ExamAttempt, expired: bool = False) -> ScoreResult:
    """
    Score an in-progress attempt and move it to its terminal status.

    The status update is conditional on ``in_progress`` so that concurrent
    submits (manual + timer, two tabs) produce exactly one winner; losers
    get ConflictError and nothing is overwritten.
    """
    snapshot = load_snapshot(db, attempt.user_id, attempt.snapshot_paper_id)
    answers = load_answers(db, attempt.user_id, attempt.id)

    scheme = marking_from_config(attempt.marking_json)
    result = score_attempt(
        {a.question_index: a.selected_option for a in answers},
        snapshot,
        scheme,
    )

    status = AttemptStatus.EXPIRED if expired else AttemptStatus.SUBMITTED
    submitted_at = utcnow()
    outcome = db.execute(
        update(ExamAttempt)
        .where(
            ExamAttempt.id == attempt.id,
            ExamAttempt.status == AttemptStatus.IN_PROGRESS,
        )
        .values(
            status=status,
            submitted_at=submitted_at,
            correct_count=result.correct,
            wrong_count=result.wrong,
            unattempted_count=result.unattempted,
            percent=result.percent,
            score=result.score,
            max_score=result.max_score,
        )
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount != 1:
        db.rollback()
        raise ConflictError(
            "Attempt has already been submitted.",
            code="ATTEMPT_ALREADY_FINALIZED",
        )

    # Back-fill per-answer correctness from the same snapshot
    correct_by_index = {row.question_index: correct_answer_of(question_payload(row)) for row in snapshot}
    for answer in answers:
        answer.is_correct = answer_correctness(
            answer.selected_option, correct_by_index.get(answer.question_index)
        )

    db.commit()
    db.refresh(attempt)

    logger.info(
        "attempt_finalized",
        extra={
            "event": "attempt_finalized",
            "user_id": attempt.user_id,
            "attempt_id": attempt.id,
            "status": status.value,
            "correct": result.correct,
            "wrong": result.wrong,
            "unattempted": result.unattempted,
            "percent": result.percent,
        },
    )
    return result


async def submit_attempt(
    db: Session,
    user: CurrentUser,
    attempt_id: int,
    expired: bool = False,
) -> ExamAttempt:
    """
    Submit an attempt (manually, or as expired when the timer ran out).

    Re-submitting a submitted or expired attempt is rejected.
    """
    attempt = get_owned_attempt(db, user.id, attempt_id)
    if attempt.status in TERMINAL_STATUSES:
        raise ConflictError(
            "Attempt has already been submitted.",
            code="ATTEMPT_ALREADY_FINALIZED",
            details={"status": AttemptStatus(attempt.status).value},
        )

    await finalize_attempt(db, attempt, expired=expired)
    return attempt


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def get_attempt(db: Session, user: CurrentUser, attempt_id: int) -> tuple[ExamAttempt, ExamPaper | None]:
    attempt = get_owned_attempt(db, user.id, attempt_id)
    paper = None
    if attempt.paper_id is not None:
        paper = db.execute(
            select(ExamPaper).where(ExamPaper.id == attempt.paper_id, ExamPaper.user_id == user.id)
        ).scalar_one_or_none()
    return attempt, paper


def list_attempts(
    db: Session,
    user: CurrentUser,
    limit: int = 20,
    start: datetime | None = None,
    now: datetime | None = None,
) -> tuple[list[ExamAttempt], datetime | None]:
    """Newest-first attempt history inside the caller's history window."""
    window_start = quota.resolve_history_window(
        user.is_paid, ensure_utc(start), quota.FreeTierLimits.from_settings(), now
    )

    stmt = select(ExamAttempt).where(ExamAttempt.user_id == user.id)
    if window_start is not None:
        stmt = stmt.where(ExamAttempt.started_at >= window_start)
    stmt = stmt.order_by(ExamAttempt.started_at.desc(), ExamAttempt.id.desc()).limit(limit)

    return list(db.execute(stmt).scalars().all()), window_start


def _public_question(payload: dict[str, Any]) -> dict[str, Any]:
    return {"question": payload.get("question", ""), "options": payload.get("options", [])}


def get_attempt_questions(db: Session, user: CurrentUser, attempt_id: int) -> tuple[ExamAttempt, list[dict[str, Any]]]:
    """Player view: questions without answers or explanations, plus saved state."""
    attempt = get_owned_attempt(db, user.id, attempt_id)
    snapshot: list[ExamQuestionSnapshot] = load_snapshot(db, user.id, attempt.snapshot_paper_id)
    answers = {a.question_index: a for a in load_answers(db, user.id, attempt.id)}

    items = []
    for row in snapshot:
        answer = answers.get(row.question_index)
        items.append(
            {
                "question_index": row.question_index,
                "question": _public_question(dict(question_payload(row))),
                "selected_option": answer.selected_option if answer else None,
                "is_flagged": answer.is_flagged if answer else False,
            }
        )
    return attempt, items


def get_attempt_review(
    db: Session,
    user: CurrentUser,
    attempt_id: int,
    include_explanations: bool = False,
) -> tuple[ExamAttempt, list[dict[str, Any]]]:
    """
    Scored review of a finalized attempt.

    Explanations are a paid feature; without them the explanation field is
    stripped from every question.
    """
    if include_explanations:
        require_paid(user)

    attempt = get_owned_attempt(db, user.id, attempt_id)
    if attempt.status not in TERMINAL_STATUSES:
        raise ConflictError(
            "Review is available after the attempt is submitted.",
            code="ATTEMPT_IN_PROGRESS",
        )

    snapshot = load_snapshot(db, user.id, attempt.snapshot_paper_id)
    answers = {a.question_index: a for a in load_answers(db, user.id, attempt.id)}

    review = []
    for row in snapshot:
        question = dict(question_payload(row))
        if not include_explanations:
            question.pop("explanation", None)
        answer = answers.get(row.question_index)
        review.append(
            {
                "question_index": row.question_index,
                "question": question,
                "selected_option": answer.selected_option if answer else None,
                "is_flagged": answer.is_flagged if answer else False,
                "is_correct": answer.is_correct if answer else None,
            }
        )
    return attempt, review
