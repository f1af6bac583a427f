"""Shared test fixtures."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from taskpulse.notifications.channels import Severity
from taskpulse.tasks.engine import LifecycleEngine
from taskpulse.tasks.store import TaskStore
from taskpulse.tasks.timers import TimerCallback

START = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)


@dataclass
class _Job:
    run_at: datetime
    seq: int
    callback: TimerCallback
    interval: timedelta | None = None


class ManualScheduler:
    """Scheduler with a virtual clock; time only moves when ``advance`` is awaited."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start
        self.running = False
        self._jobs: dict[str, _Job] = {}
        self._seq = itertools.count()

    def clock(self) -> datetime:
        return self.now

    def after(self, delay: timedelta, callback: TimerCallback) -> str:
        seq = next(self._seq)
        handle = f"job-{seq}"
        self._jobs[handle] = _Job(self.now + max(delay, timedelta(0)), seq, callback)
        return handle

    def every(self, interval: timedelta, callback: TimerCallback) -> str:
        seq = next(self._seq)
        handle = f"job-{seq}"
        self._jobs[handle] = _Job(self.now + interval, seq, callback, interval)
        return handle

    def cancel(self, handle: str) -> bool:
        return self._jobs.pop(handle, None) is not None

    def start(self) -> None:
        self.running = True

    def shutdown(self) -> None:
        self.running = False

    @property
    def pending(self) -> int:
        return len(self._jobs)

    def one_shot_times(self) -> list[datetime]:
        return sorted(job.run_at for job in self._jobs.values() if job.interval is None)

    async def advance(self, delta: timedelta) -> None:
        """Move the clock forward, running every job that falls due on the way."""
        target = self.now + delta
        while True:
            due = [(job.run_at, job.seq, handle) for handle, job in self._jobs.items()]
            due = [item for item in due if item[0] <= target]
            if not due:
                break
            run_at, _, handle = min(due)
            job = self._jobs[handle]
            self.now = max(self.now, run_at)
            if job.interval is None:
                del self._jobs[handle]
            else:
                job.run_at = run_at + job.interval
            await job.callback()
        self.now = target


class RecordingNotifier:
    """Notifier that remembers everything it was asked to show."""

    def __init__(self) -> None:
        self.announced: list[tuple[str, Severity]] = []
        self.os_notifications: list[tuple[str, str]] = []

    async def announce(self, message: str, severity: Severity = Severity.INFO) -> bool:
        self.announced.append((message, severity))
        return True

    async def notify_os(self, title: str, body: str) -> bool:
        self.os_notifications.append((title, body))
        return True

    def messages(self, severity: Severity | None = None) -> list[str]:
        return [m for m, s in self.announced if severity is None or s is severity]


@pytest.fixture
def tasks_path(tmp_path: Path) -> Path:
    return tmp_path / "tasks.json"


@pytest.fixture
def store(tasks_path: Path) -> TaskStore:
    """A TaskStore backed by a temp file."""
    return TaskStore(path=tasks_path)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def engine(
    store: TaskStore, scheduler: ManualScheduler, notifier: RecordingNotifier
) -> LifecycleEngine:
    return LifecycleEngine(
        store,
        scheduler,
        notifier,
        clock=scheduler.clock,
        sweep_interval=timedelta(seconds=60),
        reminder_lead=timedelta(hours=1),
        missed_grace=timedelta(hours=1),
    )
