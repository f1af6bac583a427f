"""Board helpers for views: bucket grouping and "time left" labels."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from taskpulse.tasks.models import Task, TaskStatus
from taskpulse.tasks.rules import sort_key

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime


class Urgency(StrEnum):
    SAFE = "success"
    SOON = "warning"
    URGENT = "danger"


@dataclass(frozen=True)
class TimeLeft:
    label: str
    urgency: Urgency


def bucket_tasks(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    """Group tasks by status, each bucket sorted by priority then due date."""
    buckets: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
    for task in sorted(tasks, key=sort_key):
        buckets[task.status].append(task)
    return buckets


def time_left(task: Task, now: datetime) -> TimeLeft:
    """Human-readable time until due, e.g. ``Time left: 1d 3h 20m``."""
    remaining = task.due_date - now
    if remaining <= timedelta(0):
        return TimeLeft("Overdue!", Urgency.URGENT)

    total_minutes = int(remaining.total_seconds()) // 60
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)

    parts: list[str] = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0 or days > 0:
        parts.append(f"{hours}h")
    parts.append(f"{minutes}m")

    if remaining < timedelta(hours=1):
        urgency = Urgency.URGENT
    elif remaining < timedelta(days=1):
        urgency = Urgency.SOON
    else:
        urgency = Urgency.SAFE
    return TimeLeft("Time left: " + " ".join(parts), urgency)


def summarize(tasks: Iterable[Task]) -> str:
    """One-line bucket counts, e.g. ``upcoming=2 ongoing=1 completed=0 missed=0``."""
    buckets = bucket_tasks(tasks)
    return " ".join(f"{status}={len(items)}" for status, items in buckets.items())
