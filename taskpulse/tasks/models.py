"""Task data model."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """Lifecycle status. Each status is also the bucket a task is shown in."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    MISSED = "missed"


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank: high sorts first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def parse_timestamp(raw: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are interpreted in the host's local time.
    Raises ValueError on unparsable input.
    """
    if isinstance(raw, datetime):
        value = raw
    else:
        if not isinstance(raw, str) or not raw.strip():
            msg = f"Invalid timestamp: {raw!r}"
            raise ValueError(msg)
        value = datetime.fromisoformat(raw.strip())
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    text = value.astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


@dataclass
class Task:
    """A single user task.

    Attributes:
        id: Unique identifier (UUID hex), never reused.
        title: Short, non-empty title.
        priority: ``high``, ``medium`` or ``low``.
        due_date: When the task becomes active (aware UTC).
        status: Current lifecycle status.
        created_at: Creation time (aware UTC).
        description: Optional free text.
    """

    id: str
    title: str
    priority: Priority
    due_date: datetime
    status: TaskStatus = TaskStatus.UPCOMING
    created_at: datetime = field(default_factory=utcnow)
    description: str = ""

    # -- Serialization ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape used on disk and over HTTP."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "dueDate": format_timestamp(self.due_date),
            "status": self.status.value,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Deserialize from the JSON shape. Raises ValueError/KeyError on bad data."""
        task_id = data["id"]
        title = data["title"]
        if not isinstance(task_id, str) or not task_id:
            msg = f"Invalid task id: {task_id!r}"
            raise ValueError(msg)
        if not isinstance(title, str):
            msg = f"Invalid title for task {task_id}"
            raise ValueError(msg)
        return cls(
            id=task_id,
            title=title,
            description=str(data.get("description") or ""),
            priority=Priority(data["priority"]),
            due_date=parse_timestamp(data["dueDate"]),
            status=TaskStatus(data.get("status") or TaskStatus.UPCOMING),
            created_at=parse_timestamp(data["createdAt"]),
        )


def make_task_id() -> str:
    """Generate a new task ID."""
    return uuid.uuid4().hex
