"""Desktop implementation of the NotificationChannel protocol.

Shells out to ``notify-send`` (libnotify). When the command is absent (headless hosts,
containers) every call is a silent no-op.
"""

from __future__ import annotations

import asyncio
import logging
import shutil

from taskpulse.notifications.channels import Severity

logger = logging.getLogger(__name__)

_NOTIFY_TIMEOUT_SECONDS = 5


class DesktopChannel:
    """Sends OS-level notifications via ``notify-send``."""

    def __init__(self, command: str = "notify-send", app_name: str = "taskpulse") -> None:
        self._executable = shutil.which(command)
        self._app_name = app_name
        if self._executable is None:
            logger.debug("%s not found, desktop notifications disabled", command)

    @property
    def name(self) -> str:
        return "desktop"

    @property
    def available(self) -> bool:
        return self._executable is not None

    async def announce(self, message: str, severity: Severity = Severity.INFO) -> bool:
        """In-app messages are not shown on the desktop."""
        return False

    async def notify_os(self, title: str, body: str) -> bool:
        """Show a desktop notification. Returns False when skipped or failed."""
        if self._executable is None:
            return False
        try:
            proc = await asyncio.create_subprocess_exec(
                self._executable,
                "--app-name",
                self._app_name,
                title,
                body,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError:
            logger.warning("Desktop notification failed: %s", title)
            return False
        try:
            returncode = await asyncio.wait_for(proc.wait(), _NOTIFY_TIMEOUT_SECONDS)
        except TimeoutError:
            proc.kill()
            logger.warning("notify-send timed out for: %s", title)
            return False
        if returncode != 0:
            logger.warning("notify-send exited with %d for: %s", returncode, title)
            return False
        return True
