"""Countdown timer for an exam attempt, driven by a one-second periodic callback."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Protocol

from practice_exam.core.logging import get_logger

logger = get_logger(__name__)

TICK_SECONDS = 1.0


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"
    SUBMITTED = "submitted"


TERMINAL_TIMER_STATES = frozenset({TimerState.EXPIRED, TimerState.SUBMITTED})


class CancelHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[Callable[[], Awaitable[None]], float], CancelHandle]


class PeriodicTask:
    """An asyncio task that awaits ``callback`` every ``interval`` seconds until cancelled."""

    def __init__(self, callback: Callable[[], Awaitable[None]], interval: float) -> None:
        self._callback = callback
        self._interval = interval
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self._interval)
            if self._stopped:
                break
            await self._callback()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def cancel(self) -> None:
        self._stopped = True
        # Cancelling from inside the callback would abort the callback itself;
        # the loop exits on the flag instead.
        if self._task is not asyncio.current_task():
            self._task.cancel()


def asyncio_scheduler(callback: Callable[[], Awaitable[None]], interval: float) -> PeriodicTask:
    return PeriodicTask(callback, interval)


class AttemptTimer:
    """
    Client-side countdown for an in-progress attempt.

    ``on_expire`` is awaited exactly once, on the tick that brings the
    remaining time to zero. Expired and submitted are terminal: every
    operation is ignored afterwards. Use as an async context manager to
    guarantee the periodic callback is cancelled.
    """

    def __init__(
        self,
        time_limit_minutes: int,
        on_expire: Callable[[], Awaitable[None]],
        scheduler: Scheduler | None = None,
        remaining_seconds: int | None = None,
        interval: float = TICK_SECONDS,
    ) -> None:
        self.time_limit_minutes = time_limit_minutes
        self.remaining_seconds = remaining_seconds
        self.state = TimerState.IDLE
        self._on_expire = on_expire
        self._scheduler: Scheduler = scheduler or asyncio_scheduler
        self._interval = interval
        self._handle: CancelHandle | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_TIMER_STATES

    @property
    def is_scheduled(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self.is_terminal or self.state == TimerState.RUNNING:
            return
        if self.remaining_seconds is None:
            self.remaining_seconds = self.time_limit_minutes * 60
        if self.remaining_seconds <= 0:
            self.state = TimerState.EXPIRED
            return
        self.state = TimerState.RUNNING
        self._schedule()

    def pause(self) -> None:
        if self.state != TimerState.RUNNING:
            return
        self.state = TimerState.PAUSED
        self._cancel()

    def resume(self) -> None:
        if self.state != TimerState.PAUSED:
            return
        self.state = TimerState.RUNNING
        self._schedule()

    async def tick(self) -> None:
        if self.state != TimerState.RUNNING:
            return
        self.remaining_seconds -= 1
        if self.remaining_seconds > 0:
            return
        self.remaining_seconds = 0
        self.state = TimerState.EXPIRED
        self._cancel()
        logger.info("attempt_timer_expired", extra={"event": "attempt_timer_expired"})
        await self._on_expire()

    def mark_submitted(self) -> None:
        if self.is_terminal:
            return
        self.state = TimerState.SUBMITTED
        self._cancel()

    def close(self) -> None:
        self._cancel()

    async def __aenter__(self) -> AttemptTimer:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _schedule(self) -> None:
        self._cancel()
        self._handle = self._scheduler(self.tick, self._interval)

    def _cancel(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()
