"""Async HTTP client for the exam API, used by the exam player."""

from __future__ import annotations

from typing import Any

import httpx

from practice_exam.core.config import settings


class ExamApiError(Exception):
    """Non-2xx response from the exam API, carrying the error envelope."""

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


class ExamApiClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + settings.API_PREFIX,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> ExamApiClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        resp = await self._client.request(method, path, **kwargs)
        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            raise ExamApiError(
                resp.status_code,
                body.get("error_code", "HTTP_ERROR"),
                body.get("message", resp.reason_phrase),
                body.get("details"),
            )
        return resp.json()

    # Papers

    async def create_paper(self, **fields: Any) -> dict[str, Any]:
        """Fields use the API's camelCase names (sourceRef, questionCount, ...)."""
        data = await self._request("POST", "/papers", json=fields)
        return data["paper"]

    async def list_papers(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/papers")
        return data["papers"]

    async def delete_paper(self, paper_id: int) -> dict[str, Any]:
        data = await self._request("DELETE", f"/papers/{paper_id}")
        return data["paper"]

    # Attempts

    async def start_attempt(self, paper_id: int) -> dict[str, Any]:
        data = await self._request("POST", "/attempts", json={"paperId": paper_id})
        return data["attempt"]

    async def get_attempt_questions(self, attempt_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/attempts/{attempt_id}/questions")

    async def save_answer(
        self,
        attempt_id: int,
        question_index: int,
        selected_option: str | None = None,
        is_flagged: bool | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if selected_option is not None:
            body["selectedOption"] = selected_option
        if is_flagged is not None:
            body["isFlagged"] = is_flagged
        data = await self._request("PUT", f"/attempts/{attempt_id}/answers/{question_index}", json=body)
        return data["answer"]

    async def submit_attempt(self, attempt_id: int, expired: bool = False) -> dict[str, Any]:
        data = await self._request("POST", f"/attempts/{attempt_id}/submit", json={"expired": expired})
        return data["attempt"]

    async def list_attempts(self, limit: int = 20, start: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"limit": limit}
        if start:
            params["start"] = start
        return await self._request("GET", "/attempts", params=params)

    async def get_review(self, attempt_id: int, include_explanations: bool = False) -> dict[str, Any]:
        params = {"includeExplanations": "true" if include_explanations else "false"}
        return await self._request("GET", f"/attempts/{attempt_id}/review", params=params)

    async def dashboard_summary(self) -> dict[str, Any]:
        return await self._request("GET", "/dashboard/summary")
