"""Request ID middleware."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from practice_exam.core.logging import bind_request_id, get_logger, reset_request_id

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign (or propagate) a request ID and log request start and completion.

    The id is bound for the request so every log line written while
    handling it carries ``request_id``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        context_token = bind_request_id(request_id)

        start_time = time.monotonic()
        fields = {"method": request.method, "path": request.url.path}
        logger.info("request_started", extra={"event": "request_started", **fields})

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                extra={
                    "event": "request_failed",
                    **fields,
                    "latency_ms": int((time.monotonic() - start_time) * 1000),
                    "error": str(e),
                },
                exc_info=True,
            )
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "request_completed",
                extra={
                    "event": "request_completed",
                    **fields,
                    "status_code": response.status_code,
                    "latency_ms": int((time.monotonic() - start_time) * 1000),
                },
            )
            return response
        finally:
            # Keep the id from leaking into the next request on this task
            reset_request_id(context_token)
