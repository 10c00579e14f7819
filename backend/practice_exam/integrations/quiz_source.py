"""HTTP client for the external quiz question source."""

from __future__ import annotations

from typing import Any

import httpx

from practice_exam.core.app_exceptions import ServiceUnavailableError
from practice_exam.core.config import settings
from practice_exam.core.logging import get_logger
from practice_exam.services.source_ref import SourceRef

logger = get_logger(__name__)

QUESTIONS_PATH = "/api/flashnote/questions"


def build_query(
    source: SourceRef,
    limit: int,
    difficulty: str | None = None,
    shuffle: bool = True,
) -> dict[str, str | int]:
    params: dict[str, str | int] = {**source.query_params(), "limit": limit}
    if difficulty:
        params["difficulty"] = difficulty
    params["shuffle"] = "true" if shuffle else "false"
    return params


async def fetch_quiz_questions(
    token: str,
    source: SourceRef,
    limit: int,
    difficulty: str | None = None,
    shuffle: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[dict[str, Any]]:
    """
    GET the question list for a source reference.

    Returns the raw ``items`` list; a body without ``items`` yields an empty
    list, which the snapshot materializer rejects as "no questions".
    Transport failures, non-2xx responses, non-JSON bodies and a non-list
    ``items`` raise ServiceUnavailableError.
    """
    base = settings.QUIZ_API_BASE_URL.rstrip("/")
    params = build_query(source, limit, difficulty, shuffle)
    headers = {"Content-Type": "application/json", "Authorization": f"Bearer {token}"}

    try:
        async with httpx.AsyncClient(
            base_url=base,
            timeout=settings.QUIZ_API_TIMEOUT_SECONDS,
            transport=transport,
        ) as client:
            resp = await client.get(QUESTIONS_PATH, params=params, headers=headers)
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPStatusError as e:
        logger.warning(
            "quiz_api_error",
            extra={"event": "quiz_api_error", "status_code": e.response.status_code, "source": str(source)},
        )
        raise ServiceUnavailableError("Quiz API unavailable.") from e
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(
            "quiz_api_unreachable",
            extra={"event": "quiz_api_unreachable", "error": str(e), "source": str(source)},
        )
        raise ServiceUnavailableError("Quiz API unavailable.") from e

    items = data.get("items") if isinstance(data, dict) else None
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ServiceUnavailableError("Quiz API returned an invalid response.")
    return items
