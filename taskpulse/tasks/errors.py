"""Task lifecycle error types."""


class TaskError(Exception):
    """Base class for task lifecycle errors."""


class TaskValidationError(TaskError):
    """Task fields are missing or invalid. Nothing was mutated."""


class TaskNotFoundError(TaskError):
    """An operation referenced a task id that is not in the collection."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class PersistenceError(TaskError):
    """Reading or writing the task file failed.

    ``TaskStore.upsert``/``remove`` roll the in-memory collection back
    before raising, so callers can simply retry the operation.
    """


class CorruptDataError(TaskError):
    """The task file exists but could not be parsed into tasks."""
