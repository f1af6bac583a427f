"""Logging implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging

from taskpulse.notifications.channels import Severity

logger = logging.getLogger(__name__)

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class LogChannel:
    """Writes in-app messages to the log (the headless stand-in for toasts)."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logger

    @property
    def name(self) -> str:
        return "log"

    async def announce(self, message: str, severity: Severity = Severity.INFO) -> bool:
        self._logger.log(_LEVELS.get(severity, logging.INFO), "[%s] %s", severity, message)
        return True

    async def notify_os(self, title: str, body: str) -> bool:
        """The log is not a desktop; OS notifications are skipped."""
        return False
