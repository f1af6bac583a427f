"""TaskFacade — request-level CRUD over the task file.

Each call re-reads the file, applies one change and saves, so the facade
holds no state of its own. It does not touch timers; after a successful
change it awaits ``on_change`` so an in-process engine can reload.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from taskpulse.tasks import rules
from taskpulse.tasks.errors import TaskNotFoundError, TaskValidationError
from taskpulse.tasks.models import Task, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from taskpulse.tasks.store import TaskStore

logger = logging.getLogger(__name__)

ChangeHook = Callable[[], Awaitable[Any]]


class TaskFacade:
    """CRUD operations used by the HTTP API.

    Args:
        store: TaskStore for the shared task file.
        clock: Returns the current aware UTC time.
        on_change: Awaited after every successful create/update/delete.
    """

    def __init__(
        self,
        store: TaskStore,
        *,
        clock: Callable[[], datetime] = utcnow,
        on_change: ChangeHook | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._on_change = on_change

    async def list_tasks(self) -> list[Task]:
        """Return every stored task, in file order."""
        return self._store.load()

    async def create_task(self, fields: dict[str, Any]) -> Task:
        """Validate *fields* like the engine does and append a new task."""
        task = rules.build_task(
            title=fields.get("title"),
            description=fields.get("description"),
            priority=fields.get("priority"),
            due_date=fields.get("dueDate"),
            now=self._clock(),
        )
        self._store.load()
        self._store.upsert(task)
        logger.info("API created task %s '%s'", task.id, task.title)
        await self._changed()
        return task

    async def update_task(self, task_id: str, fields: dict[str, Any]) -> Task:
        """Merge *fields* into an existing task.

        ``title``, ``description``, ``priority``, ``dueDate`` and ``status``
        may be changed; ``id`` and ``createdAt`` are ignored. The due date is
        not checked against the clock.
        """
        self._store.load()
        task = self._store.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = rules.parse_title(fields["title"])
        if "description" in fields:
            changes["description"] = rules.parse_description(fields["description"])
        if "priority" in fields:
            changes["priority"] = rules.parse_priority(fields["priority"])
        if "dueDate" in fields:
            changes["due_date"] = rules.parse_due_date(fields["dueDate"])
        if "status" in fields:
            changes["status"] = rules.parse_status(fields["status"])

        updated = replace(task, **changes)
        self._store.upsert(updated)
        logger.info("API updated task %s (%s)", task_id, ", ".join(changes) or "no changes")
        await self._changed()
        return updated

    async def delete_task(self, task_id: str) -> Task:
        self._store.load()
        removed = self._store.remove(task_id)
        if removed is None:
            raise TaskNotFoundError(task_id)
        logger.info("API deleted task %s", task_id)
        await self._changed()
        return removed

    async def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            await self._on_change()
        except Exception:
            logger.exception("Change hook failed after API update")


def parse_body(payload: Any) -> dict[str, Any]:
    """Require a JSON object body."""
    if not isinstance(payload, dict):
        msg = "Request body must be a JSON object."
        raise TaskValidationError(msg)
    return payload
