# tests/test_batch.py

import pytest

from core.models import ValidationError
from core.repository import TASKS_COLLECTION
from services.batch_service import BatchOperator

from .helpers import task_data, utc


class ExplodingRepository:
    """Любое обращение к хранилищу - ошибка теста"""

    async def update_many_owned(self, *args, **kwargs):
        raise AssertionError("store must not be touched")


async def _create(task_service, user_id: str, count: int, day: int = 10):
    tasks = []
    for i in range(count):
        deadline = f"2024-01-{day:02d}T{10 + i:02d}:00:00Z"
        tasks.append(await task_service.create_task(user_id, task_data(f"{user_id} #{i}", deadline)))
    return tasks


@pytest.mark.asyncio
async def test_batch_delete_skips_foreign_tasks(task_service, batch_operator) -> None:
    own = await _create(task_service, "alice", 3)
    foreign = await _create(task_service, "bob", 2)

    modified = await batch_operator.batch_operation(
        "alice", [t.task_id for t in own + foreign], "delete"
    )

    assert modified == 3
    assert await task_service.list_tasks("alice") == []
    assert len(await task_service.list_tasks("bob")) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("task_ids, operation", [
    ([], "delete"),
    (None, "delete"),
    ("abc", "delete"),
    (["a"], None),
    (["a"], ""),
    (["a"], "explode"),
])
async def test_batch_validates_before_store_access(task_ids, operation) -> None:
    operator = BatchOperator(ExplodingRepository())

    with pytest.raises(ValidationError):
        await operator.batch_operation("alice", task_ids, operation)


@pytest.mark.asyncio
async def test_batch_archive_counts_only_changed(task_service, batch_operator) -> None:
    tasks = await _create(task_service, "alice", 2)
    ids = [t.task_id for t in tasks]

    assert await batch_operator.batch_operation("alice", ids, "archive") == 2
    assert await batch_operator.batch_operation("alice", ids, "archive") == 0

    archived = await task_service.get_task_by_id(ids[0], "alice")
    assert archived.status == "archived"
    assert archived.archived_at is not None


@pytest.mark.asyncio
async def test_batch_update_applies_patch_without_collision_check(task_service, batch_operator) -> None:
    tasks = await _create(task_service, "alice", 2)

    modified = await batch_operator.batch_operation(
        "alice", [t.task_id for t in tasks], "update",
        updates={"deadline": "2024-03-01T12:00:00Z", "priority": "high", "tags": ["q1"]}
    )

    assert modified == 2
    for task in await task_service.list_tasks("alice"):
        assert task.deadline == utc(2024, 3, 1, 12)
        assert task.priority == "high"
        assert task.tags == ["q1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("updates", [{"status": "done"}, {"user_id": "bob"}, {"is_deleted": True}])
async def test_batch_update_rejects_protected_fields(task_service, batch_operator, updates) -> None:
    tasks = await _create(task_service, "alice", 1)

    with pytest.raises(ValidationError):
        await batch_operator.batch_operation("alice", [tasks[0].task_id], "update", updates=updates)

    assert (await task_service.get_task_by_id(tasks[0].task_id, "alice")).status == "pending"


@pytest.mark.asyncio
async def test_batch_update_with_empty_patch_is_noop(task_service, batch_operator, store) -> None:
    tasks = await _create(task_service, "alice", 1)
    writes_before = store.stats.writes

    assert await batch_operator.batch_operation("alice", [tasks[0].task_id], "update", updates={}) == 0
    assert await batch_operator.batch_operation("alice", [tasks[0].task_id], "update") == 0
    assert store.stats.writes == writes_before


@pytest.mark.asyncio
async def test_batch_move_sets_project_and_workspace(task_service, batch_operator, store) -> None:
    tasks = await _create(task_service, "alice", 2)

    modified = await batch_operator.batch_operation(
        "alice", [t.task_id for t in tasks], "move", project_id="p-1", workspace_id="w-1"
    )

    assert modified == 2
    documents = await store.find_many(TASKS_COLLECTION, {"project_id": "p-1", "workspace_id": "w-1"})
    assert len(documents) == 2


@pytest.mark.asyncio
async def test_batch_does_not_touch_deleted_tasks(task_service, batch_operator) -> None:
    tasks = await _create(task_service, "alice", 2)
    await task_service.delete_task(tasks[0].task_id, "alice")

    modified = await batch_operator.batch_operation(
        "alice", [t.task_id for t in tasks], "move", project_id="p-2"
    )

    assert modified == 1
