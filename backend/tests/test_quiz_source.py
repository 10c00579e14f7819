"""Tests for the question-source HTTP client."""

import httpx
import pytest

from practice_exam.core.app_exceptions import ServiceUnavailableError
from practice_exam.integrations.quiz_source import QUESTIONS_PATH, build_query, fetch_quiz_questions
from practice_exam.models.exam import SourceKind
from practice_exam.services.source_ref import SourceRef
from tests.helpers.factories import make_items


def test_build_query():
    params = build_query(SourceRef(SourceKind.TOPIC, "42"), 10, difficulty="hard", shuffle=False)
    assert params == {"topicId": "42", "limit": 10, "difficulty": "hard", "shuffle": "false"}


def test_build_query_omits_blank_difficulty():
    params = build_query(SourceRef(SourceKind.QUIZ, "abc"), 5)
    assert "difficulty" not in params
    assert params["shuffle"] == "true"


@pytest.mark.asyncio
async def test_fetch_sends_token_and_query():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"items": make_items(3)})

    items = await fetch_quiz_questions(
        "tok-123",
        SourceRef(SourceKind.QUIZ, "abc"),
        5,
        transport=httpx.MockTransport(handler),
    )

    assert len(items) == 3
    request = seen[0]
    assert request.url.path == QUESTIONS_PATH
    assert request.url.params["quizId"] == "abc"
    assert request.url.params["limit"] == "5"
    assert request.headers["Authorization"] == "Bearer tok-123"


@pytest.mark.asyncio
async def test_missing_items_is_empty_list():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    assert await fetch_quiz_questions("t", SourceRef(SourceKind.QUIZ, "abc"), 5, transport=transport) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(401),
        httpx.Response(200, content=b"<html>not json</html>"),
        httpx.Response(200, json={"items": "nope"}),
    ],
)
async def test_bad_responses_are_service_unavailable(response):
    transport = httpx.MockTransport(lambda request: response)
    with pytest.raises(ServiceUnavailableError) as exc_info:
        await fetch_quiz_questions("t", SourceRef(SourceKind.QUIZ, "abc"), 5, transport=transport)
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_transport_error_is_service_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ServiceUnavailableError, match="Quiz API unavailable"):
        await fetch_quiz_questions("t", SourceRef(SourceKind.QUIZ, "abc"), 5, transport=httpx.MockTransport(handler))
