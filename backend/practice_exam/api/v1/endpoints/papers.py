"""Exam paper endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from practice_exam.core.dependencies import CurrentUser, get_current_user, get_db
from practice_exam.schemas.exam import PaperCreate, PaperEnvelope, PaperListOut, PaperOut
from practice_exam.services import activity, paper_service

router = APIRouter()


@router.post("", response_model=PaperEnvelope, status_code=status.HTTP_201_CREATED)
async def create_paper(
    payload: PaperCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
):
    """
    Create an exam paper.

    Free users are limited to a fixed number of papers (402 beyond it).
    """
    paper = paper_service.create_paper(db, current_user, payload)
    await activity.push_exam_summary(db, current_user.id, activity.PAPER_CREATED)
    return PaperEnvelope(paper=PaperOut.model_validate(paper))


@router.get("", response_model=PaperListOut)
async def list_papers(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
):
    papers = paper_service.list_papers(db, current_user)
    return PaperListOut(papers=[PaperOut.model_validate(p) for p in papers])


@router.get("/{paper_id}", response_model=PaperEnvelope)
async def get_paper(
    paper_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
):
    paper = paper_service.get_paper(db, current_user, paper_id)
    return PaperEnvelope(paper=PaperOut.model_validate(paper))


@router.delete("/{paper_id}", response_model=PaperEnvelope)
async def delete_paper(
    paper_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
):
    """Delete a paper and its snapshots; past attempts are kept."""
    paper = paper_service.delete_paper(db, current_user, paper_id)
    await activity.push_exam_summary(db, current_user.id, activity.PAPER_DELETED)
    return PaperEnvelope(paper=PaperOut.model_validate(paper))
