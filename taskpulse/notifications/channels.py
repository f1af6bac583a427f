"""Notifier protocols — interfaces for user-facing notification delivery."""

from enum import StrEnum
from typing import Protocol, runtime_checkable


class Severity(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@runtime_checkable
class Notifier(Protocol):
    """What the lifecycle engine needs from the notification layer."""

    async def announce(self, message: str, severity: Severity = Severity.INFO) -> bool:
        """Show an in-app message. Returns True if anything displayed it."""
        ...

    async def notify_os(self, title: str, body: str) -> bool:
        """Best-effort desktop notification. Returns False when skipped."""
        ...


@runtime_checkable
class NotificationChannel(Notifier, Protocol):
    """Protocol that all notification channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'log', 'desktop')."""
        ...
