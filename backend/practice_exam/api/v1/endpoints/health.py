"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from practice_exam.core.config import settings
from practice_exam.core.errors import get_request_id
from practice_exam.core.snapshot_lock import redis_ping
from practice_exam.db.session import get_db

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ReadinessCheck(BaseModel):
    status: Literal["ok", "degraded", "down"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    status: Literal["ok", "degraded", "down"]
    checks: dict[str, ReadinessCheck]
    request_id: str


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check() -> HealthResponse:
    """Liveness: the process is up."""
    return HealthResponse(status="ok")


@router.get("/ready", response_model=ReadinessResponse, status_code=status.HTTP_200_OK)
async def readiness_check(
    request: Request,
    db: Session = Depends(get_db),
) -> ReadinessResponse:
    """Readiness: database reachable, Redis reachable when enabled."""
    checks: dict[str, ReadinessCheck] = {}
    overall_status: Literal["ok", "degraded", "down"] = "ok"

    try:
        db.execute(text("SELECT 1"))
        checks["db"] = ReadinessCheck(status="ok")
    except SQLAlchemyError as e:
        checks["db"] = ReadinessCheck(status="down", message=str(e))
        overall_status = "down"

    if not settings.REDIS_ENABLED:
        checks["redis"] = ReadinessCheck(status="ok", message="Not enabled")
    elif redis_ping():
        checks["redis"] = ReadinessCheck(status="ok")
    elif settings.REDIS_REQUIRED:
        checks["redis"] = ReadinessCheck(status="down", message="Redis unavailable")
        overall_status = "down"
    else:
        # Snapshot locking falls back to the unique constraint
        checks["redis"] = ReadinessCheck(status="degraded", message="Redis unavailable")
        if overall_status == "ok":
            overall_status = "degraded"

    return ReadinessResponse(status=overall_status, checks=checks, request_id=get_request_id(request))
