"""Lifecycle events and the listener registry the engine publishes to."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from taskpulse.tasks.models import Task, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskCreated:
    task: Task


@dataclass(frozen=True)
class StatusChanged:
    """A task moved between buckets.

    Attributes:
        automatic: True when the change came from a timer or the sweep,
            False when a user asked for it.
    """

    task: Task
    previous: TaskStatus
    current: TaskStatus
    automatic: bool


@dataclass(frozen=True)
class ReminderDue:
    task: Task


@dataclass(frozen=True)
class TaskDeleted:
    task_id: str


@dataclass(frozen=True)
class TasksReloaded:
    """The collection was (re)loaded from disk; views should redraw everything."""

    tasks: tuple[Task, ...]


LifecycleEvent = TaskCreated | StatusChanged | ReminderDue | TaskDeleted | TasksReloaded

# Listener signature: (event) -> None, sync or async
Listener = Callable[[LifecycleEvent], Awaitable[None] | None]


class EventBus:
    """Registry of lifecycle listeners.

    Usage::

        bus = EventBus()

        @bus.subscribe
        async def redraw(event: LifecycleEvent) -> None:
            ...
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Listener:
        """Register a listener. Usable as a decorator."""
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener) -> bool:
        """Remove a listener. Returns False if it was not registered."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    @property
    def listeners(self) -> list[Listener]:
        return list(self._listeners)

    async def publish(self, event: LifecycleEvent) -> None:
        """Deliver *event* to every listener. A failing listener is logged and skipped."""
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Lifecycle listener %r failed on %s", listener, type(event).__name__
                )
