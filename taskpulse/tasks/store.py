"""TaskStore — in-memory task collection persisted to a JSON file."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path

from taskpulse.config import settings
from taskpulse.tasks.errors import CorruptDataError, PersistenceError
from taskpulse.tasks.models import Task

logger = logging.getLogger(__name__)


class TaskStore:
    """Owns the canonical task collection.

    Tasks are kept in insertion order. Every mutating call writes the whole
    collection back to disk before returning. Pass an explicit *path* for
    test isolation (e.g. ``tmp_path / "tasks.json"``).
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path or settings.tasks_file)
        self._tasks: dict[str, Task] = {}
        self.load_warning: str | None = None

    @property
    def path(self) -> Path:
        return self._path

    # -- Persistence -----------------------------------------------------------

    def load(self) -> list[Task]:
        """Replace the in-memory collection with the file's contents.

        A missing file yields an empty collection. A corrupt file is moved
        aside, reported through ``load_warning`` and treated as empty.
        Raises PersistenceError if the file exists but cannot be read.
        """
        self.load_warning = None
        try:
            tasks = self._read()
        except CorruptDataError as exc:
            backup = self._quarantine()
            self.load_warning = f"Stored tasks were unreadable and have been reset ({exc})"
            logger.warning(
                "Corrupt task file %s treated as empty (backup=%s): %s",
                self._path,
                backup,
                exc,
            )
            tasks = []
        self._tasks = {task.id: task for task in tasks}
        logger.debug("Loaded %d task(s) from %s", len(self._tasks), self._path)
        return self.list()

    def save(self) -> None:
        """Atomically overwrite the task file with the in-memory collection."""
        payload = json.dumps([t.to_dict() for t in self._tasks.values()], indent=2)
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            logger.exception("Failed to save tasks to %s", self._path)
            msg = f"Failed to write {self._path}: {exc}"
            raise PersistenceError(msg) from exc
        logger.debug("Saved %d task(s) to %s", len(self._tasks), self._path)

    def _read(self) -> list[Task]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            msg = f"Failed to read {self._path}: {exc}"
            raise PersistenceError(msg) from exc
        except UnicodeDecodeError as exc:
            msg = f"invalid UTF-8: {exc}"
            raise CorruptDataError(msg) from exc

        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = f"invalid JSON: {exc}"
            raise CorruptDataError(msg) from exc
        if not isinstance(data, list):
            msg = f"expected a list of tasks, got {type(data).__name__}"
            raise CorruptDataError(msg)

        tasks: list[Task] = []
        seen: set[str] = set()
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                msg = f"record {index} is not an object"
                raise CorruptDataError(msg)
            try:
                task = Task.from_dict(item)
            except (KeyError, TypeError, ValueError) as exc:
                msg = f"record {index} is invalid: {exc!r}"
                raise CorruptDataError(msg) from exc
            if task.id in seen:
                msg = f"duplicate task id {task.id}"
                raise CorruptDataError(msg)
            seen.add(task.id)
            tasks.append(task)
        return tasks

    def _quarantine(self) -> Path | None:
        """Move a corrupt file aside so the next save does not destroy it."""
        backup = self._path.with_name(self._path.name + ".corrupt")
        try:
            os.replace(self._path, backup)
        except OSError:
            logger.exception("Could not move corrupt task file %s aside", self._path)
            return None
        return backup

    # -- Collection ------------------------------------------------------------

    def list(self) -> list[Task]:
        """Return all tasks in insertion order."""
        return list(self._tasks.values())

    def get(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        return self._tasks.get(task_id)

    def upsert(self, task: Task) -> Task:
        """Insert or replace a task, then save. Returns the same task object.

        If the save fails the in-memory collection is rolled back and
        PersistenceError is raised.
        """
        snapshot = dict(self._tasks)
        self._tasks[task.id] = task
        self._commit(snapshot)
        return task

    def remove(self, task_id: str) -> Task | None:
        """Remove a task and save. Returns the removed task, or None if absent."""
        if task_id not in self._tasks:
            return None
        snapshot = dict(self._tasks)
        task = self._tasks.pop(task_id)
        self._commit(snapshot)
        return task

    def _commit(self, snapshot: dict[str, Task]) -> None:
        try:
            self.save()
        except PersistenceError:
            self._tasks = snapshot
            raise

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks
