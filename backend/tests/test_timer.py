"""Tests for the client-side attempt timer."""

import asyncio

import pytest

from practice_exam.client.timer import AttemptTimer, TimerState


class FakeHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records scheduled callbacks instead of running them."""

    def __init__(self):
        self.handles: list[FakeHandle] = []

    def __call__(self, callback, interval):
        handle = FakeHandle()
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]


class ExpiryRecorder:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def on_expire():
    return ExpiryRecorder()


@pytest.mark.asyncio
async def test_sixty_ticks_expire_exactly_once(scheduler, on_expire):
    timer = AttemptTimer(1, on_expire, scheduler=scheduler)
    timer.start()
    assert timer.state == TimerState.RUNNING
    assert timer.remaining_seconds == 60

    for _ in range(59):
        await timer.tick()
    assert timer.state == TimerState.RUNNING
    assert on_expire.calls == 0

    await timer.tick()
    assert timer.state == TimerState.EXPIRED
    assert timer.remaining_seconds == 0
    assert on_expire.calls == 1
    assert scheduler.active == []

    for _ in range(5):
        await timer.tick()
    assert on_expire.calls == 1


@pytest.mark.asyncio
async def test_tick_ignored_unless_running(scheduler, on_expire):
    timer = AttemptTimer(1, on_expire, scheduler=scheduler)
    await timer.tick()
    assert timer.remaining_seconds is None

    timer.start()
    timer.pause()
    await timer.tick()
    assert timer.remaining_seconds == 60


def test_start_while_running_is_noop(scheduler, on_expire):
    timer = AttemptTimer(5, on_expire, scheduler=scheduler)
    timer.start()
    timer.start()
    assert len(scheduler.handles) == 1


def test_start_with_no_time_left_expires_without_scheduling(scheduler, on_expire):
    timer = AttemptTimer(5, on_expire, scheduler=scheduler, remaining_seconds=0)
    timer.start()
    assert timer.state == TimerState.EXPIRED
    assert scheduler.handles == []


@pytest.mark.asyncio
async def test_pause_and_resume_keep_remaining(scheduler, on_expire):
    timer = AttemptTimer(1, on_expire, scheduler=scheduler)
    timer.start()
    for _ in range(10):
        await timer.tick()

    timer.pause()
    assert timer.state == TimerState.PAUSED
    assert scheduler.active == []

    timer.pause()
    timer.resume()
    assert timer.state == TimerState.RUNNING
    assert timer.remaining_seconds == 50
    assert len(scheduler.active) == 1


def test_resume_only_from_paused(scheduler, on_expire):
    timer = AttemptTimer(1, on_expire, scheduler=scheduler)
    timer.resume()
    assert timer.state == TimerState.IDLE
    assert scheduler.handles == []


@pytest.mark.asyncio
async def test_submitted_is_terminal(scheduler, on_expire):
    timer = AttemptTimer(1, on_expire, scheduler=scheduler)
    timer.start()
    timer.mark_submitted()

    assert timer.state == TimerState.SUBMITTED
    assert scheduler.active == []

    timer.start()
    timer.resume()
    await timer.tick()
    assert timer.state == TimerState.SUBMITTED
    assert len(scheduler.handles) == 1
    assert on_expire.calls == 0


@pytest.mark.asyncio
async def test_context_manager_cancels_callback(scheduler, on_expire):
    async with AttemptTimer(1, on_expire, scheduler=scheduler) as timer:
        timer.start()
        assert len(scheduler.active) == 1
    assert scheduler.active == []


@pytest.mark.asyncio
async def test_asyncio_scheduler_drives_expiry():
    expired = asyncio.Event()
    calls = []

    async def on_expire():
        calls.append(1)
        await asyncio.sleep(0)
        expired.set()

    async with AttemptTimer(1, on_expire, remaining_seconds=3, interval=0.01) as timer:
        timer.start()
        await asyncio.wait_for(expired.wait(), timeout=2)
        await asyncio.sleep(0.05)

    assert timer.state == TimerState.EXPIRED
    assert calls == [1]
    assert not timer.is_scheduled
