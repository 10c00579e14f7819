"""Dashboard summary endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from practice_exam.core.dependencies import CurrentUser, get_current_user, get_db
from practice_exam.schemas.dashboard import ExamDashboardSummaryV1
from practice_exam.services.dashboard import build_summary

router = APIRouter()


@router.get("/summary", response_model=ExamDashboardSummaryV1)
async def get_dashboard_summary(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
):
    """The same summary that is pushed to the dashboard after each change."""
    return build_summary(db, current_user.id)
