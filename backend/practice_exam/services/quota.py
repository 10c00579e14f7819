"""Free/paid tier quota policy.

The decision functions are pure: callers read the relevant counts from the
store and pass them in. Counting happens outside any lock, so two
concurrent requests from the same free user can both observe count M-1 and
both pass; a one-over overshoot is accepted.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from practice_exam.common.clock import start_of_day, utcnow
from practice_exam.core.app_exceptions import PaymentRequiredError
from practice_exam.core.config import settings
from practice_exam.models.exam import ExamAttempt, ExamPaper


class QuotaDecision(str, Enum):
    ALLOWED = "allowed"
    MUST_UPGRADE = "must_upgrade"


@dataclass(frozen=True)
class FreeTierLimits:
    max_papers: int
    max_attempts_per_day: int
    history_days: int

    @classmethod
    def from_settings(cls) -> "FreeTierLimits":
        return cls(
            max_papers=settings.FREE_MAX_PAPERS,
            max_attempts_per_day=settings.FREE_MAX_ATTEMPTS_PER_DAY,
            history_days=settings.FREE_HISTORY_DAYS,
        )


def _gate(count: int, limit: int, is_paid: bool) -> QuotaDecision:
    if count >= limit and not is_paid:
        return QuotaDecision.MUST_UPGRADE
    return QuotaDecision.ALLOWED


def check_paper_creation(paper_count: int, is_paid: bool, limits: FreeTierLimits) -> QuotaDecision:
    """Free users may own at most ``limits.max_papers`` papers."""
    return _gate(paper_count, limits.max_papers, is_paid)


def check_daily_attempt(attempts_today: int, is_paid: bool, limits: FreeTierLimits) -> QuotaDecision:
    """Free users may start at most ``limits.max_attempts_per_day`` attempts per local day."""
    return _gate(attempts_today, limits.max_attempts_per_day, is_paid)


def resolve_history_window(
    is_paid: bool,
    requested_start: datetime | None,
    limits: FreeTierLimits,
    now: datetime | None = None,
) -> datetime | None:
    """
    Lower bound for history listings.

    Paid callers get exactly what they asked for (None = unbounded). Free
    callers are always clamped to local midnight of today - (history_days - 1),
    whatever they requested.
    """
    if is_paid:
        return requested_start
    return start_of_day(now, days_back=limits.history_days - 1)


def require_allowed(decision: QuotaDecision, message: str) -> None:
    if decision is QuotaDecision.MUST_UPGRADE:
        raise PaymentRequiredError(message)


# ---------------------------------------------------------------------------
# Count readers
# ---------------------------------------------------------------------------


def count_papers(db: Session, user_id: str) -> int:
    stmt = select(func.count()).select_from(ExamPaper).where(ExamPaper.user_id == user_id)
    return int(db.execute(stmt).scalar() or 0)


def count_attempts_today(db: Session, user_id: str, now: datetime | None = None) -> int:
    now = now or utcnow()
    day_start = start_of_day(now)
    next_day_start = start_of_day(now, days_back=-1)
    stmt = (
        select(func.count())
        .select_from(ExamAttempt)
        .where(
            ExamAttempt.user_id == user_id,
            ExamAttempt.started_at >= day_start,
            ExamAttempt.started_at < next_day_start,
        )
    )
    return int(db.execute(stmt).scalar() or 0)


def enforce_paper_limit(db: Session, user_id: str, is_paid: bool, limits: FreeTierLimits | None = None) -> None:
    limits = limits or FreeTierLimits.from_settings()
    decision = check_paper_creation(count_papers(db, user_id), is_paid, limits)
    require_allowed(decision, "Free plan paper limit reached. Upgrade to create more papers.")


def enforce_daily_attempt_limit(
    db: Session,
    user_id: str,
    is_paid: bool,
    limits: FreeTierLimits | None = None,
    now: datetime | None = None,
) -> None:
    limits = limits or FreeTierLimits.from_settings()
    decision = check_daily_attempt(count_attempts_today(db, user_id, now), is_paid, limits)
    require_allowed(decision, "Free plan daily attempt limit reached. Upgrade for unlimited attempts.")
