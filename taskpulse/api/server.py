"""Lightweight async HTTP server exposing the task collection.

Runs alongside the lifecycle engine in the same asyncio event loop.
Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop.
"""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from taskpulse.api.facade import TaskFacade, parse_body
from taskpulse.config import settings
from taskpulse.tasks.errors import PersistenceError, TaskNotFoundError, TaskValidationError

logger = logging.getLogger(__name__)

FACADE_KEY = web.AppKey("facade", TaskFacade)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        msg = "Request body must be valid JSON."
        raise TaskValidationError(msg) from None
    return parse_body(payload)


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


async def _list_tasks(request: web.Request) -> web.Response:
    """GET /api/tasks — every stored task."""
    facade = request.app[FACADE_KEY]
    try:
        tasks = await facade.list_tasks()
    except PersistenceError:
        logger.exception("API list failed")
        return _error("Failed to read tasks", 500)
    return web.json_response([task.to_dict() for task in tasks])


async def _create_task(request: web.Request) -> web.Response:
    """POST /api/tasks — create a task from its fields."""
    facade = request.app[FACADE_KEY]
    try:
        fields = await _read_json(request)
        task = await facade.create_task(fields)
    except TaskValidationError as exc:
        logger.info("API create rejected: %s", exc)
        return _error(str(exc), 400)
    except PersistenceError:
        logger.exception("API create failed")
        return _error("Failed to create task", 500)
    return web.json_response(task.to_dict(), status=201)


async def _update_task(request: web.Request) -> web.Response:
    """PUT /api/tasks/{task_id} — merge fields into a task."""
    facade = request.app[FACADE_KEY]
    task_id = request.match_info["task_id"]
    try:
        fields = await _read_json(request)
        task = await facade.update_task(task_id, fields)
    except TaskNotFoundError:
        return _error("Task not found", 404)
    except TaskValidationError as exc:
        logger.info("API update of %s rejected: %s", task_id, exc)
        return _error(str(exc), 400)
    except PersistenceError:
        logger.exception("API update of %s failed", task_id)
        return _error("Failed to update task", 500)
    return web.json_response(task.to_dict())


async def _delete_task(request: web.Request) -> web.Response:
    """DELETE /api/tasks/{task_id} — remove a task."""
    facade = request.app[FACADE_KEY]
    task_id = request.match_info["task_id"]
    try:
        await facade.delete_task(task_id)
    except TaskNotFoundError:
        return _error("Task not found", 404)
    except PersistenceError:
        logger.exception("API delete of %s failed", task_id)
        return _error("Failed to delete task", 500)
    return web.Response(status=204)


def create_web_app(facade: TaskFacade) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[FACADE_KEY] = facade
    app.router.add_get("/health", _health)
    app.router.add_get("/api/tasks", _list_tasks)
    app.router.add_post("/api/tasks", _create_task)
    app.router.add_put("/api/tasks/{task_id}", _update_task)
    app.router.add_delete("/api/tasks/{task_id}", _delete_task)
    return app


class ApiServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        facade: TaskFacade,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self._facade = facade
        self.host = host or settings.api_host
        self.port = port if port is not None else settings.api_port
        self._runner: web.AppRunner | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Start listening for API requests."""
        app = create_web_app(self._facade)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("API server listening on http://%s:%d/api/tasks", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("API server stopped")
