"""Dashboard summary payload (version 1)."""

from typing import Literal

from practice_exam.schemas.base import CamelModel


class DashboardTotals(CamelModel):
    papers: int
    attempts: int
    attempts_this_week: int


class DashboardPerformance(CamelModel):
    avg_percent_this_week: int
    best_percent_this_week: int


class DashboardActivity(CamelModel):
    last_attempt_at: str | None
    last_activity_at: str


class ExamDashboardSummaryV1(CamelModel):
    version: Literal[1] = 1
    generated_at: str
    totals: DashboardTotals
    performance: DashboardPerformance
    activity: DashboardActivity
