"""Exam attempt endpoints: start, answer, submit, history and review."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from practice_exam.core.app_exceptions import ConflictError
from practice_exam.core.dependencies import CurrentUser, get_current_user, get_db
from practice_exam.schemas.exam import (
    AnswerEnvelope,
    AnswerOut,
    AnswerSave,
    AttemptEnvelope,
    AttemptListOut,
    AttemptOut,
    AttemptQuestionItem,
    AttemptQuestionsOut,
    AttemptReviewOut,
    AttemptStart,
    AttemptSubmit,
    AttemptWithPaperOut,
    PaperOut,
    ReviewItem,
)
from practice_exam.services import activity, attempt_engine

router = APIRouter()


@router.post("", response_model=AttemptEnvelope, status_code=status.HTTP_201_CREATED)
async def start_attempt(
    payload: AttemptStart,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
):
    """
    Start an attempt of a paper.

    The first attempt of a paper freezes its questions; later attempts
    reuse the same frozen set.
    """
    attempt = await attempt_engine.start_attempt(db, current_user, payload.paper_id)
    return AttemptEnvelope(attempt=AttemptOut.model_validate(attempt))


@router.put("/{attempt_id}/answers/{question_index}", response_model=AnswerEnvelope)
async def save_answer(
    attempt_id: int,
    question_index: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    payload: Annotated[AnswerSave, Body()] = AnswerSave(),
):
    try:
        answer = await attempt_engine.save_answer(
            db,
            current_user,
            attempt_id,
            question_index,
            selected_option=payload.selected_option,
            is_flagged=payload.is_flagged,
        )
    except ConflictError as e:
        # A save past the deadline finalized the attempt as expired
        if (e.details or {}).get("expired_now"):
            attempt = attempt_engine.get_owned_attempt(db, current_user.id, attempt_id)
            await activity.report_attempt_finalized(db, attempt)
        raise
    return AnswerEnvelope(answer=AnswerOut.model_validate(answer))


@router.post("/{attempt_id}/submit", response_model=AttemptEnvelope)
async def submit_attempt(
    attempt_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    payload: Annotated[AttemptSubmit, Body()] = AttemptSubmit(),
):
    """
    Submit an attempt and score it.

    `expired=true` is sent by the client timer when time runs out.
    Submitting an already submitted or expired attempt returns 409.
    """
    attempt = await attempt_engine.submit_attempt(db, current_user, attempt_id, expired=payload.expired)
    await activity.report_attempt_finalized(db, attempt)
    return AttemptEnvelope(attempt=AttemptOut.model_validate(attempt))


@router.get("", response_model=AttemptListOut)
async def list_attempts(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    limit: int = Query(20, ge=1, le=200),
    start: datetime | None = Query(None),
):
    """Attempt history, newest first. Free users only see a recent window."""
    attempts, window_start = attempt_engine.list_attempts(db, current_user, limit=limit, start=start)
    return AttemptListOut(
        attempts=[AttemptOut.model_validate(a) for a in attempts],
        window_start=window_start,
    )


@router.get("/{attempt_id}", response_model=AttemptWithPaperOut)
async def get_attempt(
    attempt_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
):
    attempt, paper = attempt_engine.get_attempt(db, current_user, attempt_id)
    return AttemptWithPaperOut(
        attempt=AttemptOut.model_validate(attempt),
        paper=PaperOut.model_validate(paper) if paper else None,
    )


@router.get("/{attempt_id}/questions", response_model=AttemptQuestionsOut)
async def get_attempt_questions(
    attempt_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
):
    """Questions for the exam player, without answers or explanations."""
    attempt, items = attempt_engine.get_attempt_questions(db, current_user, attempt_id)
    return AttemptQuestionsOut(
        attempt=AttemptOut.model_validate(attempt),
        questions=[AttemptQuestionItem(**item) for item in items],
    )


@router.get("/{attempt_id}/review", response_model=AttemptReviewOut)
async def get_attempt_review(
    attempt_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    include_explanations: bool = Query(False, alias="includeExplanations"),
):
    attempt, review = attempt_engine.get_attempt_review(
        db, current_user, attempt_id, include_explanations=include_explanations
    )
    return AttemptReviewOut(
        attempt=AttemptOut.model_validate(attempt),
        review=[ReviewItem(**item) for item in review],
    )
