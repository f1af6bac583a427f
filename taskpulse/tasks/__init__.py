"""Task lifecycle — models, persistence, timers, rules and the engine."""

from taskpulse.tasks.engine import LifecycleEngine
from taskpulse.tasks.errors import (
    CorruptDataError,
    PersistenceError,
    TaskError,
    TaskNotFoundError,
    TaskValidationError,
)
from taskpulse.tasks.events import (
    EventBus,
    ReminderDue,
    StatusChanged,
    TaskCreated,
    TaskDeleted,
    TasksReloaded,
)
from taskpulse.tasks.models import Priority, Task, TaskStatus
from taskpulse.tasks.store import TaskStore
from taskpulse.tasks.timers import APSchedulerAdapter, Scheduler

__all__ = [
    "APSchedulerAdapter",
    "CorruptDataError",
    "EventBus",
    "LifecycleEngine",
    "PersistenceError",
    "Priority",
    "ReminderDue",
    "Scheduler",
    "StatusChanged",
    "Task",
    "TaskCreated",
    "TaskDeleted",
    "TaskError",
    "TaskNotFoundError",
    "TaskStatus",
    "TaskStore",
    "TaskValidationError",
    "TasksReloaded",
]
