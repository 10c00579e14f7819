"""JSON logging for the exam service.

Every record is one JSON object with the service, env and, inside a
request, the request id set by ``RequestIDMiddleware``. Domain fields
(``event``, ``user_id``, ``paper_id``, ``attempt_id``) come from ``extra``.
"""

import contextvars
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

from practice_exam.core.config import settings

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)

# Bearer tokens are forwarded to the question source; never log them
REDACTED_KEYS = ("token", "authorization", "secret", "password")


class ExamJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = (
            datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        )
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = settings.APP_KEY
        log_record["env"] = settings.ENV

        request_id = request_id_var.get()
        if request_id and "request_id" not in log_record:
            log_record["request_id"] = request_id

        for key in list(log_record):
            if any(part in key.lower() for part in REDACTED_KEYS):
                log_record[key] = "[REDACTED]"


def setup_logging() -> None:
    """Configure application logging."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ExamJsonFormatter("%(message)s"))
    root_logger.addHandler(handler)

    # Request logs come from RequestIDMiddleware; question-source calls log their own failures
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def bind_request_id(request_id: str) -> contextvars.Token:
    return request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    request_id_var.reset(token)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
