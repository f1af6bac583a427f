"""Application wiring: store, notifications, engine and API server."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskpulse.api.facade import TaskFacade
from taskpulse.api.server import ApiServer
from taskpulse.config import settings
from taskpulse.notifications.desktop_channel import DesktopChannel
from taskpulse.notifications.log_channel import LogChannel
from taskpulse.notifications.router import NotificationRouter
from taskpulse.tasks.board import summarize
from taskpulse.tasks.engine import LifecycleEngine
from taskpulse.tasks.store import TaskStore
from taskpulse.tasks.timers import APSchedulerAdapter

if TYPE_CHECKING:
    from pathlib import Path

    from taskpulse.tasks.events import LifecycleEvent
    from taskpulse.tasks.timers import Scheduler

logger = logging.getLogger(__name__)


def _init_notifications() -> NotificationRouter:
    """Register notification channels."""
    router = NotificationRouter()
    router.register_channel(LogChannel())
    if settings.desktop_notifications:
        desktop = DesktopChannel()
        if desktop.available:
            router.register_channel(desktop)
        else:
            logger.warning("DESKTOP_NOTIFICATIONS is set but notify-send is not installed")
    logger.info("Notifications initialized: channels=%s", router.list_channels())
    return router


class TaskPulseApp:
    """Owns every long-lived component and their start/stop order.

    Args:
        tasks_file: Path of the JSON task file (default from settings).
        api_enabled: Whether to serve the HTTP API (default from settings).
        port: API port override.
        scheduler: Timer backend override (APScheduler by default).
    """

    def __init__(
        self,
        tasks_file: Path | None = None,
        *,
        api_enabled: bool | None = None,
        port: int | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.store = TaskStore(tasks_file)
        self.notifier = _init_notifications()
        self.engine = LifecycleEngine(
            self.store,
            scheduler or APSchedulerAdapter(),
            self.notifier,
        )
        self.engine.events.subscribe(self._log_board)

        enabled = settings.api_enabled if api_enabled is None else api_enabled
        self.api: ApiServer | None = None
        if enabled:
            facade = TaskFacade(self.store, on_change=self.engine.reload)
            self.api = ApiServer(facade, port=port)

    async def start(self) -> None:
        """Start the engine, then the API server."""
        await self.engine.start()
        if self.api is not None:
            await self.api.start()
        logger.info("taskpulse running (tasks file: %s)", self.store.path)

    async def stop(self) -> None:
        """Stop the API server, then the engine."""
        if self.api is not None:
            await self.api.stop()
        await self.engine.stop()

    def _log_board(self, event: LifecycleEvent) -> None:
        """Debug view of the board after every lifecycle event."""
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s -> board: %s", type(event).__name__, summarize(self.store.list()))
