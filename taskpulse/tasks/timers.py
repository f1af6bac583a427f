"""Timer scheduling — the port the lifecycle engine uses to run callbacks later.

The engine depends only on the ``Scheduler`` protocol. Production code uses
``APSchedulerAdapter``; tests use a manual virtual-clock implementation so
that time can be advanced without waiting.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from taskpulse.config import settings

logger = logging.getLogger(__name__)

# Callback signature: async () -> None
TimerCallback = Callable[[], Awaitable[None]]
JobHandle = str


@runtime_checkable
class Scheduler(Protocol):
    """Protocol that all timer backends must satisfy."""

    def after(self, delay: timedelta, callback: TimerCallback) -> JobHandle:
        """Run *callback* once, no sooner than *delay* from now."""
        ...

    def every(self, interval: timedelta, callback: TimerCallback) -> JobHandle:
        """Run *callback* repeatedly, once per *interval*."""
        ...

    def cancel(self, handle: JobHandle) -> bool:
        """Cancel a pending callback. Returns False if it already ran or is unknown."""
        ...

    def start(self) -> None: ...

    def shutdown(self) -> None: ...


def make_job_id() -> JobHandle:
    """Generate a new job handle."""
    return uuid.uuid4().hex


class APSchedulerAdapter:
    """Scheduler backed by APScheduler's AsyncIOScheduler.

    Callbacks run as coroutines on the event loop the scheduler was started
    in. Jobs added before ``start()`` are held until the scheduler starts.

    Args:
        timezone: IANA timezone string (default from settings).
    """

    def __init__(self, timezone: str | None = None) -> None:
        self._timezone = timezone or settings.scheduler_timezone
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Start dispatching jobs. Must be called with an event loop running."""
        if self._running:
            return
        self._scheduler.start()
        self._running = True
        logger.info(
            "Timer scheduler started with %d pending job(s) (tz=%s)",
            len(self._scheduler.get_jobs()),
            self._timezone,
        )

    def shutdown(self) -> None:
        """Shut down the scheduler without waiting for running jobs."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Timer scheduler stopped")

    # -- Jobs ------------------------------------------------------------------

    def after(self, delay: timedelta, callback: TimerCallback) -> JobHandle:
        job_id = make_job_id()
        run_date = datetime.now(UTC) + max(delay, timedelta(0))
        self._scheduler.add_job(
            self._run,
            trigger=DateTrigger(run_date=run_date, timezone=self._timezone),
            id=job_id,
            args=[job_id, callback],
            misfire_grace_time=None,
        )
        logger.debug("Timer %s set for %s", job_id, run_date.isoformat())
        return job_id

    def every(self, interval: timedelta, callback: TimerCallback) -> JobHandle:
        if interval <= timedelta(0):
            msg = f"Interval must be positive, got {interval}"
            raise ValueError(msg)
        job_id = make_job_id()
        self._scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(
                seconds=interval.total_seconds(), timezone=self._timezone
            ),
            id=job_id,
            args=[job_id, callback],
            coalesce=True,
            max_instances=1,
            misfire_grace_time=None,
        )
        logger.debug("Interval %s set every %s", job_id, interval)
        return job_id

    def cancel(self, handle: JobHandle) -> bool:
        try:
            self._scheduler.remove_job(handle)
        except JobLookupError:
            logger.debug("Job %s not found in scheduler (may already have run)", handle)
            return False
        logger.debug("Cancelled job %s", handle)
        return True

    # -- Internal --------------------------------------------------------------

    async def _run(self, job_id: str, callback: TimerCallback) -> None:
        """Callback invoked by APScheduler. Errors stop here, not in the scheduler."""
        try:
            await callback()
        except Exception:
            logger.exception("Timer callback failed (job=%s)", job_id)
