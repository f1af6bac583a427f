"""Notification abstraction layer."""

from taskpulse.notifications.channels import NotificationChannel, Notifier, Severity
from taskpulse.notifications.desktop_channel import DesktopChannel
from taskpulse.notifications.log_channel import LogChannel
from taskpulse.notifications.router import NotificationRouter

__all__ = [
    "DesktopChannel",
    "LogChannel",
    "NotificationChannel",
    "NotificationRouter",
    "Notifier",
    "Severity",
]
