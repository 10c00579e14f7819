"""FastAPI dependencies for authentication and tier checks."""

from dataclasses import dataclass
from typing import Annotated

import jwt
from fastapi import Header

from practice_exam.core.app_exceptions import PaymentRequiredError, UnauthenticatedError
from practice_exam.core.security import verify_access_token
from practice_exam.db.session import get_db  # noqa: F401  (re-exported for endpoints)


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity supplied by the auth/billing context."""

    id: str
    is_paid: bool
    token: str  # forwarded to the question source


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """Dependency to get the current caller from the bearer token."""
    if not authorization:
        raise UnauthenticatedError("Sign in required")

    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid authorization scheme")
    except ValueError:
        raise UnauthenticatedError(
            "Invalid authorization header format. Expected: Bearer <token>"
        ) from None

    try:
        payload = verify_access_token(token)
    except (jwt.InvalidTokenError, ValueError) as e:
        raise UnauthenticatedError(f"Invalid or expired token: {e}") from e

    return CurrentUser(id=str(payload["sub"]), is_paid=bool(payload.get("is_paid", False)), token=token)


def require_paid(user: CurrentUser) -> CurrentUser:
    """Raise PaymentRequired unless the caller holds the paid tier."""
    if not user.is_paid:
        raise PaymentRequiredError("Pro access required")
    return user