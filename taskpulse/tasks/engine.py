"""LifecycleEngine — task status state machine driven by user actions and timers."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta
from functools import partial
from typing import TYPE_CHECKING, Any

from taskpulse.config import settings
from taskpulse.notifications.channels import Severity
from taskpulse.tasks import rules
from taskpulse.tasks.errors import PersistenceError, TaskNotFoundError, TaskValidationError
from taskpulse.tasks.events import (
    EventBus,
    ReminderDue,
    StatusChanged,
    TaskCreated,
    TaskDeleted,
    TasksReloaded,
)
from taskpulse.tasks.models import Task, TaskStatus, utcnow

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from taskpulse.notifications.channels import Notifier
    from taskpulse.tasks.store import TaskStore
    from taskpulse.tasks.timers import JobHandle, Scheduler

logger = logging.getLogger(__name__)

_DUE = "due"
_REMINDER = "reminder"


class LifecycleEngine:
    """Owns task status transitions and the timers that drive them.

    Per-task timers (due → ongoing, and the "due in 1 hour" reminder) are
    derived from each task's due date whenever the collection is loaded and
    are never persisted. A periodic sweep re-evaluates every task from the
    current clock as a backstop for timers that were missed.

    Args:
        store: TaskStore that owns the collection.
        scheduler: Timer backend.
        notifier: Where user-facing messages go.
        events: EventBus for lifecycle events (a new one by default).
        clock: Returns the current aware UTC time.
        sweep_interval: How often the sweep runs (default from settings).
        reminder_lead: How long before the due date the reminder fires.
        missed_grace: How long a task may stay ongoing past its due date.
    """

    def __init__(
        self,
        store: TaskStore,
        scheduler: Scheduler,
        notifier: Notifier,
        *,
        events: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
        sweep_interval: timedelta | None = None,
        reminder_lead: timedelta | None = None,
        missed_grace: timedelta | None = None,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._notifier = notifier
        self._events = events or EventBus()
        self._clock = clock
        self._sweep_interval = (
            sweep_interval if sweep_interval is not None else settings.sweep_interval
        )
        self._reminder_lead = (
            reminder_lead if reminder_lead is not None else settings.reminder_lead
        )
        self._missed_grace = missed_grace if missed_grace is not None else settings.missed_grace
        self._timers: dict[str, dict[str, JobHandle]] = {}
        self._sweep_handle: JobHandle | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def events(self) -> EventBus:
        return self._events

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Load tasks, arm their timers, start the sweep and the scheduler."""
        tasks = await self.reload()
        self._sweep_handle = self._scheduler.every(
            self._sweep_interval, partial(self._guarded, "check task statuses", self.sweep)
        )
        self._scheduler.start()
        self._running = True
        logger.info(
            "Lifecycle engine started with %d task(s), %d timer(s), sweep every %s",
            len(tasks),
            self.pending_timer_count,
            self._sweep_interval,
        )

    async def stop(self) -> None:
        """Cancel all timers and shut the scheduler down."""
        if not self._running:
            return
        if self._sweep_handle is not None:
            self._scheduler.cancel(self._sweep_handle)
            self._sweep_handle = None
        self._cancel_all_timers()
        self._scheduler.shutdown()
        self._running = False
        logger.info("Lifecycle engine stopped")

    async def reload(self) -> list[Task]:
        """Re-read the collection from disk and re-derive every timer.

        Runs a sweep immediately so tasks that fell due while nothing was
        running are caught up.
        """
        self._cancel_all_timers()
        tasks = self._store.load()
        if self._store.load_warning:
            await self._announce(self._store.load_warning, Severity.WARNING)
        for task in tasks:
            self._arm(task)
        logger.info("Reloaded %d task(s), %d timer(s)", len(tasks), self.pending_timer_count)
        await self._events.publish(TasksReloaded(tuple(tasks)))
        await self.sweep()
        return self._store.list()

    # -- Queries ---------------------------------------------------------------

    def list_tasks(self) -> list[Task]:
        """All tasks in presentation order (priority, then due date)."""
        return sorted(self._store.list(), key=rules.sort_key)

    def get_task(self, task_id: str) -> Task:
        return self._require(task_id)

    @property
    def pending_timer_count(self) -> int:
        return sum(len(handles) for handles in self._timers.values())

    def has_timer(self, task_id: str, kind: str = _DUE) -> bool:
        return kind in self._timers.get(task_id, {})

    # -- User actions ----------------------------------------------------------

    async def create_task(
        self,
        title: Any,
        priority: Any,
        due_date: Any,
        description: Any = None,
    ) -> Task:
        """Validate and add a new upcoming task, then arm its timers.

        Raises TaskValidationError (nothing is stored) or PersistenceError.
        """
        try:
            task = rules.build_task(
                title=title,
                description=description,
                priority=priority,
                due_date=due_date,
                now=self._clock(),
            )
        except TaskValidationError as exc:
            logger.info("Rejected new task: %s", exc)
            await self._announce(str(exc), Severity.ERROR)
            raise

        await self._persist(self._store.upsert, task)
        self._arm(task)
        logger.info(
            "Created task %s '%s' (priority=%s, due=%s)",
            task.id,
            task.title,
            task.priority,
            task.due_date.isoformat(),
        )
        await self._events.publish(TaskCreated(replace(task)))
        await self._announce("Task created successfully!", Severity.SUCCESS)
        return task

    async def complete_task(self, task_id: str) -> Task:
        """Mark a task completed, whatever its current status."""
        task = await self._set_status(self._require(task_id), TaskStatus.COMPLETED)
        await self._announce("Task completed!", Severity.SUCCESS)
        return task

    async def move_task(self, task_id: str, target: TaskStatus | str) -> Task:
        """Move a task to any bucket (drag and drop).

        Raises TaskValidationError for an unknown bucket, without changing anything.
        """
        status = rules.parse_status(target)
        return await self._set_status(self._require(task_id), status)

    async def delete_task(self, task_id: str) -> Task:
        """Remove a task permanently and cancel its timers."""
        self._require(task_id)
        removed = await self._persist(self._store.remove, task_id)
        self._cancel_timers(task_id)
        logger.info("Deleted task %s '%s'", task_id, removed.title)
        await self._events.publish(TaskDeleted(task_id))
        await self._announce("Task deleted.", Severity.SUCCESS)
        return removed

    async def edit_task(
        self,
        task_id: str,
        *,
        title: Any = None,
        description: Any = None,
        priority: Any = None,
        due_date: Any = None,
    ) -> Task:
        """Replace a task with an edited copy that gets a new id.

        Omitted fields keep their current values. The new fields are validated
        like a new task (so the due date must still be in the future) before
        the old task is removed; on any failure the original task is untouched.
        """
        old = self._require(task_id)
        try:
            new = rules.build_task(
                title=old.title if title is None else title,
                description=old.description if description is None else description,
                priority=old.priority if priority is None else priority,
                due_date=old.due_date if due_date is None else due_date,
                now=self._clock(),
            )
        except TaskValidationError as exc:
            logger.info("Rejected edit of task %s: %s", task_id, exc)
            await self._announce(str(exc), Severity.ERROR)
            raise

        await self._persist(self._store.upsert, new)
        try:
            await self._persist(self._store.remove, task_id)
        except PersistenceError:
            try:
                self._store.remove(new.id)
            except PersistenceError:
                logger.exception("Could not roll back edited copy %s of %s", new.id, task_id)
                self._arm(new)
            raise
        self._cancel_timers(task_id)
        self._arm(new)
        logger.info("Edited task %s -> %s '%s'", task_id, new.id, new.title)
        await self._events.publish(TaskDeleted(task_id))
        await self._events.publish(TaskCreated(replace(new)))
        await self._announce("Task updated.", Severity.INFO)
        return new

    # -- Sweep -----------------------------------------------------------------

    async def sweep(self) -> int:
        """Re-evaluate every task against the clock. Returns the number of transitions."""
        now = self._clock()
        applied = 0
        failed = 0
        for task_id in [task.id for task in self._store.list()]:
            # Listeners and notifiers run between steps; re-read so a task
            # deleted or moved meanwhile is not overwritten.
            while (current := self._store.get(task_id)) is not None:
                steps = rules.sweep_transitions(current, now, self._missed_grace)
                if not steps:
                    break
                try:
                    await self._set_status(current, steps[0], automatic=True)
                except PersistenceError:
                    failed += 1
                    break
                applied += 1
        if applied:
            logger.info("Sweep applied %d transition(s)", applied)
        if failed:
            await self._announce(
                f"Could not save status changes for {failed} task(s).", Severity.ERROR
            )
        return applied

    # -- Timer callbacks -------------------------------------------------------

    async def _on_due(self, task_id: str) -> None:
        self._forget_timer(task_id, _DUE)
        task = self._store.get(task_id)
        if task is None:
            logger.debug("Due timer fired for deleted task %s", task_id)
            return
        if not rules.is_due(task, self._clock()):
            logger.debug("Due timer for task %s is stale (status=%s)", task_id, task.status)
            return
        await self._set_status(task, TaskStatus.ONGOING, automatic=True)

    async def _on_reminder(self, task_id: str) -> None:
        self._forget_timer(task_id, _REMINDER)
        task = self._store.get(task_id)
        if task is None or task.status is not TaskStatus.UPCOMING:
            logger.debug("Reminder for task %s skipped", task_id)
            return
        logger.info("Reminder due for task %s '%s'", task.id, task.title)
        await self._events.publish(ReminderDue(replace(task)))
        await self._announce(f'Task "{task.title}" is due in 1 hour!', Severity.WARNING)
        await self._notify_os(f"Task reminder: {task.title}", "This task is due in 1 hour.")

    async def _guarded(self, what: str, func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        """Run a timer callback; errors are logged and announced, never raised."""
        try:
            await func(*args)
        except Exception:
            logger.exception("Failed to %s", what)
            await self._announce(f"Failed to {what}. Check logs for details.", Severity.ERROR)

    # -- Internal --------------------------------------------------------------

    def _require(self, task_id: str) -> Task:
        task = self._store.get(task_id)
        if task is None:
            logger.warning("Task not found: %s", task_id)
            raise TaskNotFoundError(task_id)
        return task

    async def _set_status(
        self, task: Task, status: TaskStatus, *, automatic: bool = False
    ) -> Task:
        """Apply a transition, persist it, then notify. Re-applying is a no-op."""
        previous = task.status
        if previous is status:
            return task

        updated = replace(task, status=status)
        await self._persist(self._store.upsert, updated)
        self._cancel_timers(task.id)
        if status is TaskStatus.UPCOMING:
            self._arm(updated)
        logger.info(
            "Task %s '%s': %s -> %s (%s)",
            task.id,
            task.title,
            previous,
            status,
            "auto" if automatic else "manual",
        )
        await self._events.publish(StatusChanged(replace(updated), previous, status, automatic))

        if automatic and status is TaskStatus.ONGOING:
            await self._announce(f'Task "{task.title}" is now active!', Severity.WARNING)
            await self._notify_os(
                f"Task started: {task.title}", "Your task is now active and needs attention."
            )
        elif automatic and status is TaskStatus.MISSED:
            await self._announce(f'Task "{task.title}" has been missed!', Severity.ERROR)
        return updated

    async def _persist(self, operation: Callable[..., Any], *args: Any) -> Any:
        try:
            return operation(*args)
        except PersistenceError:
            await self._announce("Failed to save tasks.", Severity.ERROR)
            raise

    def _arm(self, task: Task) -> None:
        """Set the due timer and, if there is time, the reminder for an upcoming task."""
        if task.status is not TaskStatus.UPCOMING:
            return
        now = self._clock()
        delay = task.due_date - now
        if delay <= timedelta(0):
            # Already due; the sweep handles it.
            return
        handles = self._timers.setdefault(task.id, {})
        handles[_DUE] = self._scheduler.after(
            delay, partial(self._guarded, "start task", self._on_due, task.id)
        )
        reminder = rules.reminder_delay(task, now, self._reminder_lead)
        if reminder is not None:
            handles[_REMINDER] = self._scheduler.after(
                reminder, partial(self._guarded, "send reminder", self._on_reminder, task.id)
            )

    def _cancel_timers(self, task_id: str) -> None:
        for kind, handle in self._timers.pop(task_id, {}).items():
            self._scheduler.cancel(handle)
            logger.debug("Cancelled %s timer for task %s", kind, task_id)

    def _cancel_all_timers(self) -> None:
        for task_id in list(self._timers):
            self._cancel_timers(task_id)

    def _forget_timer(self, task_id: str, kind: str) -> None:
        handles = self._timers.get(task_id)
        if handles is None:
            return
        handles.pop(kind, None)
        if not handles:
            del self._timers[task_id]

    async def _announce(self, message: str, severity: Severity) -> None:
        try:
            await self._notifier.announce(message, severity)
        except Exception:
            logger.exception("Notifier failed to announce: %s", message)

    async def _notify_os(self, title: str, body: str) -> None:
        try:
            await self._notifier.notify_os(title, body)
        except Exception:
            logger.exception("Notifier failed to send OS notification: %s", title)
