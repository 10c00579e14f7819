"""Fire-and-forget pushes to the dashboard and parent-notification sinks.

Pushes report on mutations that have already been committed. Delivery
problems are swallowed here, logged only in dev, and never reach the caller.
"""

from typing import Any

from sqlalchemy.orm import Session

from practice_exam.core.config import settings
from practice_exam.core.logging import get_logger
from practice_exam.integrations.webhooks import post_webhook
from practice_exam.models.exam import AttemptStatus, ExamAttempt
from practice_exam.services.dashboard import build_summary

logger = get_logger(__name__)

PAPER_CREATED = "paper.created"
PAPER_DELETED = "paper.deleted"
EXAM_SUBMITTED = "exam.submitted"
EXAM_EXPIRED = "exam.expired"


def _report_failure(event: str, user_id: str, event_type: str, exc: Exception) -> None:
    if settings.ENV == "dev":
        logger.warning(
            event,
            extra={"event": event, "user_id": user_id, "event_type": event_type, "error": str(exc)},
        )


async def push_exam_summary(db: Session, user_id: str, event_type: str) -> None:
    """Recompute the dashboard summary and push it."""
    try:
        if not settings.DASHBOARD_WEBHOOK_URL:
            return
        summary = build_summary(db, user_id)
        payload: dict[str, Any] = {
            "appId": settings.APP_KEY,
            "userId": user_id,
            "eventType": event_type,
            "summaryVersion": summary.version,
            "summary": summary.model_dump(mode="json", by_alias=True),
        }
        await post_webhook(settings.DASHBOARD_WEBHOOK_URL, payload, secret=settings.DASHBOARD_WEBHOOK_SECRET)
    except Exception as e:
        _report_failure("push_exam_summary_failed", user_id, event_type, e)


async def notify_parent(user_id: str, event_type: str, title: str, url: str) -> None:
    try:
        if not settings.PARENT_NOTIFICATION_URL:
            return
        payload = {"userId": user_id, "eventType": event_type, "title": title, "url": url}
        await post_webhook(settings.PARENT_NOTIFICATION_URL, payload, secret=settings.DASHBOARD_WEBHOOK_SECRET)
    except Exception as e:
        _report_failure("notify_parent_failed", user_id, event_type, e)


async def report_attempt_finalized(db: Session, attempt: ExamAttempt) -> None:
    """Parent notification plus dashboard push for a submitted/expired attempt."""
    expired = attempt.status == AttemptStatus.EXPIRED
    await notify_parent(
        user_id=attempt.user_id,
        event_type="exam_submitted",
        title="Exam time is up" if expired else "Exam submitted",
        url=f"/results/{attempt.id}",
    )
    await push_exam_summary(db, attempt.user_id, EXAM_EXPIRED if expired else EXAM_SUBMITTED)
