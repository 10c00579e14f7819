"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from practice_exam.api.v1.endpoints import attempts, dashboard, health, papers

api_router = APIRouter()

api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(papers.router, prefix="/papers", tags=["Papers"])
api_router.include_router(attempts.router, prefix="/attempts", tags=["Attempts"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
