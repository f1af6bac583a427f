"""NotificationRouter — fans notifications out to every registered channel."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskpulse.notifications.channels import Severity

if TYPE_CHECKING:
    from taskpulse.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Implements the Notifier protocol on top of any number of channels.

    A channel that fails or raises is logged and skipped; delivery is
    reported as successful if at least one channel accepted the message.
    """

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}

    def register_channel(self, channel: NotificationChannel) -> None:
        """Register a notification channel. Raises ValueError on duplicate name."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel

    def get_channel(self, name: str) -> NotificationChannel | None:
        """Look up a channel by name."""
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        """Return names of all registered channels."""
        return list(self._channels.keys())

    async def announce(self, message: str, severity: Severity = Severity.INFO) -> bool:
        """Send an in-app message to every channel."""
        if not self._channels:
            logger.warning("No channels registered for announce: %s", message)
            return False
        delivered = False
        for channel in self._channels.values():
            try:
                delivered = await channel.announce(message, severity) or delivered
            except Exception:
                logger.exception("Channel %s failed to announce", channel.name)
        return delivered

    async def notify_os(self, title: str, body: str) -> bool:
        """Send a desktop notification through every channel that supports it."""
        delivered = False
        for channel in self._channels.values():
            try:
                delivered = await channel.notify_os(title, body) or delivered
            except Exception:
                logger.exception("Channel %s failed to send OS notification", channel.name)
        return delivered
