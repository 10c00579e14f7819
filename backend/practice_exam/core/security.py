"""Bearer token handling (JWT issued by the identity/billing provider)."""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import jwt

from practice_exam.core.config import settings
from practice_exam.core.logging import get_logger

logger = get_logger(__name__)


def create_access_token(user_id: str, is_paid: bool = False, expires_minutes: int | None = None) -> str:
    """Create a JWT access token (used by tests and local tooling)."""
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET must be set")

    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": str(user_id),
        "is_paid": bool(is_paid),
        "iat": now,
        "exp": expire,
        "jti": str(uuid4()),
        "type": "access",
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def verify_access_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT access token."""
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET must be set")

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError:
        raise jwt.InvalidTokenError("Token has expired") from None

    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Token is not an access token")
    if not payload.get("sub"):
        raise jwt.InvalidTokenError("Token has no subject")
    return payload
