"""Dashboard summary: a read-only projection over papers and attempts."""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from practice_exam.common.clock import start_of_day, to_iso, utcnow
from practice_exam.models.exam import ExamAttempt, ExamPaper
from practice_exam.schemas.dashboard import (
    DashboardActivity,
    DashboardPerformance,
    DashboardTotals,
    ExamDashboardSummaryV1,
)

WEEK_DAYS = 7


def _count(db: Session, stmt) -> int:
    return int(db.execute(stmt).scalar() or 0)


def build_summary(db: Session, user_id: str, now: datetime | None = None) -> ExamDashboardSummaryV1:
    """
    Summarize a user's papers and attempts.

    "This week" runs from local midnight six days ago to now. Average and
    best percent only consider attempts that have been scored.
    """
    now = now or utcnow()
    generated_at = to_iso(now)
    week_start = start_of_day(now, days_back=WEEK_DAYS - 1)

    papers = _count(db, select(func.count()).select_from(ExamPaper).where(ExamPaper.user_id == user_id))
    attempts = _count(db, select(func.count()).select_from(ExamAttempt).where(ExamAttempt.user_id == user_id))
    attempts_week = _count(
        db,
        select(func.count())
        .select_from(ExamAttempt)
        .where(ExamAttempt.user_id == user_id, ExamAttempt.started_at >= week_start),
    )

    percents = [
        int(value)
        for value in db.execute(
            select(ExamAttempt.percent).where(
                ExamAttempt.user_id == user_id,
                ExamAttempt.started_at >= week_start,
                ExamAttempt.percent.is_not(None),
            )
        ).scalars()
    ]
    avg_percent = int(sum(percents) / len(percents) + 0.5) if percents else 0
    best_percent = max(percents) if percents else 0

    last_started = db.execute(
        select(func.max(ExamAttempt.started_at)).where(ExamAttempt.user_id == user_id)
    ).scalar()
    last_attempt_at = to_iso(last_started)

    return ExamDashboardSummaryV1(
        generated_at=generated_at,
        totals=DashboardTotals(papers=papers, attempts=attempts, attempts_this_week=attempts_week),
        performance=DashboardPerformance(
            avg_percent_this_week=avg_percent,
            best_percent_this_week=best_percent,
        ),
        activity=DashboardActivity(
            last_attempt_at=last_attempt_at,
            last_activity_at=last_attempt_at or generated_at,
        ),
    )