"""Lifecycle rules: task validation, automatic transitions and ordering.

Everything here is a pure function of a task (or raw fields) and the
current time, so the engine and the HTTP facade share one set of rules.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from taskpulse.tasks.errors import TaskValidationError
from taskpulse.tasks.models import Priority, Task, TaskStatus, make_task_id, parse_timestamp

MISSING_FIELDS_MESSAGE = "Please fill in all required fields."
PAST_DUE_MESSAGE = "Due date cannot be in the past."


# -- Field validation ----------------------------------------------------------


def parse_title(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise TaskValidationError(MISSING_FIELDS_MESSAGE)
    return raw.strip()


def parse_description(raw: Any) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        msg = "Description must be text."
        raise TaskValidationError(msg)
    return raw.strip()


def parse_priority(raw: Any) -> Priority:
    if raw is None or raw == "":
        raise TaskValidationError(MISSING_FIELDS_MESSAGE)
    try:
        return Priority(str(raw).lower())
    except ValueError:
        msg = f"Unknown priority: {raw!r}"
        raise TaskValidationError(msg) from None


def parse_status(raw: Any) -> TaskStatus:
    try:
        return TaskStatus(str(raw).lower())
    except ValueError:
        msg = f"Unknown status: {raw!r}"
        raise TaskValidationError(msg) from None


def parse_due_date(raw: Any) -> datetime:
    if raw is None or raw == "":
        raise TaskValidationError(MISSING_FIELDS_MESSAGE)
    try:
        return parse_timestamp(raw)
    except (TypeError, ValueError):
        msg = f"Invalid due date: {raw!r}"
        raise TaskValidationError(msg) from None


def build_task(
    *,
    title: Any,
    priority: Any,
    due_date: Any,
    now: datetime,
    description: Any = None,
) -> Task:
    """Validate raw fields and return a new ``upcoming`` task.

    Raises TaskValidationError if the title is blank, the priority is
    unknown, or the due date is missing, unparsable, or not after *now*.
    """
    clean_title = parse_title(title)
    clean_priority = parse_priority(priority)
    due = parse_due_date(due_date)
    if due <= now:
        raise TaskValidationError(PAST_DUE_MESSAGE)
    return Task(
        id=make_task_id(),
        title=clean_title,
        description=parse_description(description),
        priority=clean_priority,
        due_date=due,
        status=TaskStatus.UPCOMING,
        created_at=now,
    )


# -- Automatic transitions -----------------------------------------------------


def is_due(task: Task, now: datetime) -> bool:
    """True when an upcoming task should become ongoing."""
    return task.status is TaskStatus.UPCOMING and now >= task.due_date


def sweep_transitions(task: Task, now: datetime, grace: timedelta) -> list[TaskStatus]:
    """Return the statuses a sweep moves *task* through, in order.

    Rules apply one after another to the same task, so an upcoming task that
    is already past the grace window goes ``ongoing`` then ``missed``.
    """
    steps: list[TaskStatus] = []
    status = task.status
    if status is TaskStatus.UPCOMING and now >= task.due_date:
        status = TaskStatus.ONGOING
        steps.append(status)
    if status is TaskStatus.ONGOING and now - task.due_date > grace:
        steps.append(TaskStatus.MISSED)
    return steps


def reminder_delay(task: Task, now: datetime, lead: timedelta) -> timedelta | None:
    """Delay until the "due soon" reminder, or None if none should be set.

    A reminder is only set when more than *lead* remains before the due date.
    """
    if task.status is not TaskStatus.UPCOMING:
        return None
    remaining = task.due_date - now
    if remaining <= lead:
        return None
    return remaining - lead


# -- Ordering ------------------------------------------------------------------


def sort_key(task: Task) -> tuple[int, datetime]:
    """Presentation order: priority (high first), then earliest due date."""
    return (task.priority.rank, task.due_date)
