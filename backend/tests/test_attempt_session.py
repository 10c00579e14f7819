"""Tests for the player-side attempt session."""

import json

import httpx
import pytest

from practice_exam.client.api_client import ExamApiClient, ExamApiError
from practice_exam.client.attempt_session import AttemptSession
from practice_exam.client.timer import TimerState

ATTEMPT = {"id": 7, "timeLimitMinutes": 1, "status": "in_progress", "totalQuestions": 5}


class FakeExamServer:
    """In-memory stand-in for the exam API."""

    def __init__(self, *submit_statuses: int):
        self.requests: list[httpx.Request] = []
        # Replies to successive submits; the last one repeats
        self.submit_statuses = list(submit_statuses) or [200]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/v1/attempts":
            return httpx.Response(201, json={"attempt": ATTEMPT})
        if request.method == "PUT" and "/answers/" in path:
            body = json.loads(request.content or b"{}")
            index = int(path.rsplit("/", 1)[1])
            return httpx.Response(
                200,
                json={"answer": {"questionIndex": index, "selectedOption": body.get("selectedOption"), "isFlagged": body.get("isFlagged", False)}},
            )
        if request.method == "POST" and path.endswith("/submit"):
            status_code = self.submit_statuses.pop(0) if len(self.submit_statuses) > 1 else self.submit_statuses[0]
            if status_code == 409:
                return httpx.Response(
                    409,
                    json={"error_code": "ATTEMPT_ALREADY_FINALIZED", "message": "Attempt has already been submitted."},
                )
            if status_code != 200:
                return httpx.Response(
                    status_code,
                    json={"error_code": "SERVICE_UNAVAILABLE", "message": "Service temporarily unavailable."},
                )
            expired = json.loads(request.content)["expired"]
            status = "expired" if expired else "submitted"
            return httpx.Response(200, json={"attempt": {**ATTEMPT, "status": status, "percent": 40}})
        return httpx.Response(404, json={"error_code": "NOT_FOUND", "message": "no route"})

    def submits(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/submit")]


class ManualScheduler:
    def __call__(self, callback, interval):
        return self

    def cancel(self):
        pass


@pytest.fixture
def server():
    return FakeExamServer()


@pytest.fixture
def api(server):
    return ExamApiClient("http://exam.test", "tok", transport=httpx.MockTransport(server))


@pytest.mark.asyncio
async def test_answers_and_flags_are_saved(api, server):
    session = await AttemptSession.begin(api, paper_id=3, scheduler=ManualScheduler())
    async with session:
        await session.select_answer(0, "B")
        await session.toggle_flag(0)
        await session.toggle_flag(1)
        await session.toggle_flag(1)

    puts = [json.loads(r.content) for r in server.requests if r.method == "PUT"]
    assert puts[0] == {"selectedOption": "B", "isFlagged": False}
    assert puts[1] == {"selectedOption": "B", "isFlagged": True}
    assert puts[3] == {"isFlagged": False}
    assert session.answers == {0: "B"}
    assert session.flags == {0}
    assert server.requests[0].headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_expiry_submits_once(api, server):
    async with AttemptSession(api, dict(ATTEMPT), scheduler=ManualScheduler()) as session:
        for _ in range(60):
            await session.timer.tick()

        assert session.timer.state == TimerState.EXPIRED
        assert await session.submit() is None
        await session.select_answer(0, "A")

    assert server.submits() == [{"expired": True}]
    assert session.attempt["status"] == "expired"
    assert not any(r.method == "PUT" for r in server.requests)


@pytest.mark.asyncio
async def test_manual_submit_stops_timer(api, server):
    async with AttemptSession(api, dict(ATTEMPT), scheduler=ManualScheduler()) as session:
        attempt = await session.submit()
        for _ in range(60):
            await session.timer.tick()

    assert attempt["status"] == "submitted"
    assert session.timer.state == TimerState.SUBMITTED
    assert server.submits() == [{"expired": False}]


@pytest.mark.asyncio
async def test_submit_error_is_recorded():
    server = FakeExamServer(409)
    api = ExamApiClient("http://exam.test", "tok", transport=httpx.MockTransport(server))
    async with AttemptSession(api, dict(ATTEMPT), scheduler=ManualScheduler()) as session:
        assert await session.submit() is None
    assert session.error == "Attempt has already been submitted."
    assert session.submitted


@pytest.mark.asyncio
async def test_api_client_raises_envelope_errors(api):
    with pytest.raises(ExamApiError) as exc_info:
        await api.get_review(99)
    assert exc_info.value.status_code == 404
    assert exc_info.value.code == "NOT_FOUND"


@pytest.mark.asyncio
async def test_failed_submit_can_be_retried():
    server = FakeExamServer(503, 200)
    api = ExamApiClient("http://exam.test", "tok", transport=httpx.MockTransport(server))
    async with AttemptSession(api, dict(ATTEMPT), scheduler=ManualScheduler()) as session:
        assert await session.submit() is None
        assert session.error == "Service temporarily unavailable."
        assert not session.submitted
        assert session.timer.state == TimerState.RUNNING

        attempt = await session.submit()

    assert attempt["status"] == "submitted"
    assert session.submitted
    assert session.error is None
    assert session.timer.state == TimerState.SUBMITTED
    assert server.submits() == [{"expired": False}, {"expired": False}]


@pytest.mark.asyncio
async def test_failed_expiry_submit_is_retried_as_expired():
    server = FakeExamServer(503, 200)
    api = ExamApiClient("http://exam.test", "tok", transport=httpx.MockTransport(server))
    async with AttemptSession(api, dict(ATTEMPT), scheduler=ManualScheduler()) as session:
        for _ in range(60):
            await session.timer.tick()
        assert session.timer.state == TimerState.EXPIRED
        assert not session.submitted

        attempt = await session.submit()

    assert attempt["status"] == "expired"
    assert server.submits() == [{"expired": True}, {"expired": True}]
