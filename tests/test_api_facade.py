"""Tests for TaskFacade — request-level CRUD over the task file."""

from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from conftest import START

from taskpulse.api.facade import TaskFacade, parse_body
from taskpulse.tasks.errors import TaskNotFoundError, TaskValidationError
from taskpulse.tasks.models import Priority, TaskStatus, format_timestamp
from taskpulse.tasks.store import TaskStore


@pytest.fixture
def on_change() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def facade(store: TaskStore, on_change: AsyncMock) -> TaskFacade:
    return TaskFacade(store, clock=lambda: START, on_change=on_change)


def _fields(**overrides) -> dict:
    fields = {
        "title": "Write report",
        "description": "Q2",
        "priority": "high",
        "dueDate": format_timestamp(START + timedelta(hours=2)),
    }
    fields.update(overrides)
    return fields


# -- create ------------------------------------------------------------------


async def test_create_persists_and_notifies(
    facade: TaskFacade, tasks_path: Path, on_change: AsyncMock
) -> None:
    task = await facade.create_task(_fields())

    assert task.status is TaskStatus.UPCOMING
    assert task.priority is Priority.HIGH
    assert task.created_at == START
    assert [t.id for t in TaskStore(path=tasks_path).load()] == [task.id]
    on_change.assert_awaited_once()


async def test_create_ignores_client_status_and_id(facade: TaskFacade) -> None:
    task = await facade.create_task(_fields(status="completed", id="mine"))
    assert task.status is TaskStatus.UPCOMING
    assert task.id != "mine"


async def test_create_rejects_past_due(facade: TaskFacade, on_change: AsyncMock) -> None:
    with pytest.raises(TaskValidationError):
        await facade.create_task(_fields(dueDate=format_timestamp(START - timedelta(hours=1))))
    on_change.assert_not_awaited()


async def test_create_picks_up_tasks_written_elsewhere(
    facade: TaskFacade, tasks_path: Path
) -> None:
    other = TaskStore(path=tasks_path)
    await TaskFacade(other, clock=lambda: START).create_task(_fields(title="from elsewhere"))

    await facade.create_task(_fields(title="mine"))

    titles = [t.title for t in await facade.list_tasks()]
    assert titles == ["from elsewhere", "mine"]


# -- update ------------------------------------------------------------------


async def test_update_merges_allowed_fields(facade: TaskFacade, on_change: AsyncMock) -> None:
    task = await facade.create_task(_fields())
    on_change.reset_mock()

    updated = await facade.update_task(
        task.id,
        {"title": "Renamed", "status": "completed", "id": "hijack", "createdAt": "2000-01-01Z"},
    )

    assert updated.id == task.id
    assert updated.title == "Renamed"
    assert updated.status is TaskStatus.COMPLETED
    assert updated.created_at == task.created_at
    assert updated.description == "Q2"
    on_change.assert_awaited_once()


async def test_update_allows_past_due_date(facade: TaskFacade) -> None:
    task = await facade.create_task(_fields())
    past = START - timedelta(days=1)

    updated = await facade.update_task(task.id, {"dueDate": format_timestamp(past)})
    assert updated.due_date == past


async def test_update_invalid_field_changes_nothing(facade: TaskFacade, store: TaskStore) -> None:
    task = await facade.create_task(_fields())

    with pytest.raises(TaskValidationError):
        await facade.update_task(task.id, {"title": "ok", "priority": "urgent"})

    assert store.load()[0].title == "Write report"


async def test_update_unknown_id(facade: TaskFacade) -> None:
    with pytest.raises(TaskNotFoundError):
        await facade.update_task("missing", {"title": "x"})


# -- delete ------------------------------------------------------------------


async def test_delete(facade: TaskFacade, on_change: AsyncMock) -> None:
    task = await facade.create_task(_fields())
    on_change.reset_mock()

    removed = await facade.delete_task(task.id)

    assert removed.id == task.id
    assert await facade.list_tasks() == []
    on_change.assert_awaited_once()


async def test_delete_unknown_id(facade: TaskFacade, on_change: AsyncMock) -> None:
    with pytest.raises(TaskNotFoundError):
        await facade.delete_task("missing")
    on_change.assert_not_awaited()


# -- Hooks & helpers ---------------------------------------------------------


async def test_failing_change_hook_does_not_fail_request(store: TaskStore) -> None:
    facade = TaskFacade(
        store, clock=lambda: START, on_change=AsyncMock(side_effect=RuntimeError("boom"))
    )
    task = await facade.create_task(_fields())
    assert store.get(task.id) is not None


async def test_no_change_hook(store: TaskStore) -> None:
    facade = TaskFacade(store, clock=lambda: START)
    await facade.create_task(_fields())


@pytest.mark.parametrize("payload", [None, [], "text", 3])
def test_parse_body_requires_object(payload) -> None:
    with pytest.raises(TaskValidationError):
        parse_body(payload)
