"""Tests for APSchedulerAdapter — one-shot and interval timers on a real scheduler."""

import asyncio
from datetime import timedelta

import pytest

from taskpulse.tasks.timers import APSchedulerAdapter, Scheduler


@pytest.fixture
async def adapter():
    sched = APSchedulerAdapter(timezone="UTC")
    sched.start()
    yield sched
    sched.shutdown()


def _recorder():
    fired = asyncio.Event()
    calls: list[int] = []

    async def callback() -> None:
        calls.append(1)
        fired.set()

    return callback, fired, calls


def test_adapter_satisfies_protocol() -> None:
    assert isinstance(APSchedulerAdapter(timezone="UTC"), Scheduler)


# -- Lifecycle -----------------------------------------------------------------


async def test_start_and_shutdown() -> None:
    sched = APSchedulerAdapter(timezone="UTC")
    assert sched.running is False
    sched.start()
    assert sched.running is True
    sched.shutdown()
    assert sched.running is False


async def test_shutdown_when_not_running() -> None:
    # Should not raise
    APSchedulerAdapter(timezone="UTC").shutdown()


# -- after ---------------------------------------------------------------------


async def test_after_runs_callback(adapter: APSchedulerAdapter) -> None:
    callback, fired, calls = _recorder()
    adapter.after(timedelta(milliseconds=50), callback)

    await asyncio.wait_for(fired.wait(), timeout=5)
    assert calls == [1]


async def test_after_with_negative_delay_runs_immediately(adapter: APSchedulerAdapter) -> None:
    callback, fired, _ = _recorder()
    adapter.after(timedelta(seconds=-10), callback)

    await asyncio.wait_for(fired.wait(), timeout=5)


async def test_cancelled_timer_does_not_fire(adapter: APSchedulerAdapter) -> None:
    callback, _, calls = _recorder()
    handle = adapter.after(timedelta(milliseconds=200), callback)

    assert adapter.cancel(handle) is True
    await asyncio.sleep(0.4)
    assert calls == []


async def test_cancel_twice_returns_false(adapter: APSchedulerAdapter) -> None:
    callback, _, _ = _recorder()
    handle = adapter.after(timedelta(hours=1), callback)

    assert adapter.cancel(handle) is True
    assert adapter.cancel(handle) is False


async def test_cancel_unknown_handle(adapter: APSchedulerAdapter) -> None:
    assert adapter.cancel("nonexistent") is False


async def test_failing_callback_is_contained(adapter: APSchedulerAdapter) -> None:
    async def boom() -> None:
        raise RuntimeError("boom")

    callback, fired, _ = _recorder()
    adapter.after(timedelta(milliseconds=20), boom)
    adapter.after(timedelta(milliseconds=60), callback)

    await asyncio.wait_for(fired.wait(), timeout=5)


# -- every ---------------------------------------------------------------------


async def test_every_repeats_until_cancelled(adapter: APSchedulerAdapter) -> None:
    calls: list[int] = []
    twice = asyncio.Event()

    async def tick() -> None:
        calls.append(1)
        if len(calls) >= 2:
            twice.set()

    handle = adapter.every(timedelta(milliseconds=100), tick)
    await asyncio.wait_for(twice.wait(), timeout=5)
    assert adapter.cancel(handle) is True

    seen = len(calls)
    await asyncio.sleep(0.3)
    assert len(calls) == seen


async def test_every_rejects_non_positive_interval(adapter: APSchedulerAdapter) -> None:
    callback, _, _ = _recorder()
    with pytest.raises(ValueError):
        adapter.every(timedelta(0), callback)
