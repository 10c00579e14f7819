"""Client-side state of one running attempt: answers, flags, timer, submit."""

from __future__ import annotations

from typing import Any

from practice_exam.client.api_client import ExamApiClient, ExamApiError
from practice_exam.client.timer import AttemptTimer, Scheduler, TimerState
from practice_exam.core.logging import get_logger

logger = get_logger(__name__)

ALREADY_FINALIZED = "ATTEMPT_ALREADY_FINALIZED"


class AttemptSession:
    """
    Drives one attempt from the player side.

    Every selection or flag change is saved immediately. The attempt is
    submitted at most once, either by the user or when the timer expires;
    once the server has accepted it, later submits stay local.
    """

    def __init__(
        self,
        api: ExamApiClient,
        attempt: dict[str, Any],
        scheduler: Scheduler | None = None,
    ) -> None:
        self.api = api
        self.attempt = attempt
        self.answers: dict[int, str] = {}
        self.flags: set[int] = set()
        self.error: str | None = None
        self._submitted = False
        self._in_flight = False
        self.timer = AttemptTimer(
            attempt["timeLimitMinutes"],
            on_expire=self._on_expire,
            scheduler=scheduler,
        )

    @classmethod
    async def begin(cls, api: ExamApiClient, paper_id: int, scheduler: Scheduler | None = None) -> AttemptSession:
        attempt = await api.start_attempt(paper_id)
        return cls(api, attempt, scheduler=scheduler)

    @property
    def attempt_id(self) -> int:
        return self.attempt["id"]

    @property
    def submitted(self) -> bool:
        return self._submitted

    async def __aenter__(self) -> AttemptSession:
        self.timer.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.timer.close()

    async def select_answer(self, question_index: int, option: str) -> None:
        self.answers[question_index] = option
        await self._save(question_index, option, question_index in self.flags)

    async def toggle_flag(self, question_index: int) -> None:
        if question_index in self.flags:
            self.flags.discard(question_index)
        else:
            self.flags.add(question_index)
        await self._save(question_index, self.answers.get(question_index), question_index in self.flags)

    async def submit(self) -> dict[str, Any] | None:
        """
        Submit the attempt. Returns the scored attempt, or None when it was
        already submitted or the call failed.

        A failed submit leaves the session open so it can be retried; after
        the timer ran out the retry is still sent as expired.
        """
        if self._submitted or self._in_flight:
            return None
        return await self._submit(expired=self.timer.state == TimerState.EXPIRED)

    async def _on_expire(self) -> None:
        if not self._submitted and not self._in_flight:
            await self._submit(expired=True)

    async def _submit(self, expired: bool) -> dict[str, Any] | None:
        self._in_flight = True
        try:
            self.attempt = await self.api.submit_attempt(self.attempt_id, expired=expired)
        except ExamApiError as e:
            self.error = e.message
            logger.warning(
                "attempt_submit_failed",
                extra={"event": "attempt_submit_failed", "attempt_id": self.attempt_id, "code": e.code},
            )
            # The server already holds a final result
            if e.code == ALREADY_FINALIZED:
                self._finish(expired)
            return None
        finally:
            self._in_flight = False
        self.error = None
        self._finish(expired)
        return self.attempt

    def _finish(self, expired: bool) -> None:
        self._submitted = True
        if not expired:
            self.timer.mark_submitted()

    async def _save(self, question_index: int, option: str | None, flagged: bool) -> None:
        if self._submitted or self.timer.is_terminal:
            return
        try:
            await self.api.save_answer(self.attempt_id, question_index, selected_option=option, is_flagged=flagged)
        except ExamApiError as e:
            self.error = e.message
