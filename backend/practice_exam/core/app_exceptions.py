"""Application-specific exceptions for consistent error handling.

Every failure the exam core reports to a caller is one of the typed
subclasses below. They are HTTPExceptions so FastAPI routes them through
the shared handler in ``practice_exam.core.errors``; service code raises
them directly and never retries.
"""

from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Application error with standardized error code."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_code = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | list[Any] | None = None,
        status_code: int | None = None,
    ):
        self.code = code or self.default_code
        self.message = message
        self.details = details
        super().__init__(
            status_code=status_code or self.default_status,
            detail={
                "code": self.code,
                "message": message,
                "details": details,
            },
        )


class UnauthenticatedError(AppError):
    """No usable caller identity."""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"


class PaymentRequiredError(AppError):
    """A quota or paid-only feature gate failed."""

    default_status = status.HTTP_402_PAYMENT_REQUIRED
    default_code = "PAYMENT_REQUIRED"


class NotFoundError(AppError):
    """Row absent, or owned by somebody else."""

    default_status = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class BadInputError(AppError):
    default_status = status.HTTP_400_BAD_REQUEST
    default_code = "BAD_REQUEST"


class ConflictError(AppError):
    """The attempt is not in a state that allows the operation."""

    default_status = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class ServiceUnavailableError(AppError):
    """An upstream collaborator (question source) failed."""

    default_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "SERVICE_UNAVAILABLE"
