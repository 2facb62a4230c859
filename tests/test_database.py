# tests/test_database.py

import shutil

import pytest

from core.database import (
    MemoryDocumentStore, JsonFileDocumentStore, DuplicateKeyError, StoreCorruptionError,
    StoreError, matches, apply_update, create_store
)
from core.repository import TaskRepository, StatsRepository
from services.gamification import GamificationTracker
from services.task_service import TaskService

from .helpers import task_data, utc

DOCUMENT = {
    "_id": "t1",
    "user_id": "alice",
    "title": "Fix a.b parser",
    "tags": ["work", "urgent"],
    "deadline": utc(2024, 1, 10, 10, 30),
    "is_deleted": False,
}


@pytest.mark.parametrize("query, expected", [
    ({"user_id": "alice"}, True),
    ({"user_id": "bob"}, False),
    ({"tags": "work"}, True),
    ({"tags": {"$in": ["home", "urgent"]}}, True),
    ({"is_deleted": {"$ne": True}}, True),
    ({"archived_at": {"$ne": True}}, True),
    ({"deadline": {"$gte": utc(2024, 1, 10, 10, 30), "$lt": utc(2024, 1, 10, 10, 31)}}, True),
    ({"deadline": {"$lt": utc(2024, 1, 10)}}, False),
    ({"title": {"$regex": "A\\.B", "$options": "i"}}, True),
    ({"$or": [{"user_id": "bob"}, {"tags": "work"}]}, True),
])
def test_matches(query, expected) -> None:
    assert matches(DOCUMENT, query) is expected


def test_matches_rejects_unknown_operator() -> None:
    with pytest.raises(StoreError):
        matches(DOCUMENT, {"user_id": {"$where": "1"}})


def test_apply_update_reports_changes() -> None:
    document = {"status": "pending", "time_spent": 5, "subtasks": []}

    assert apply_update(document, {"$set": {"status": "done"}, "$inc": {"time_spent": 10},
                                   "$push": {"subtasks": "t2"}}) is True
    assert document == {"status": "done", "time_spent": 15, "subtasks": ["t2"]}
    assert apply_update(document, {"$set": {"status": "done"}}) is False


@pytest.mark.asyncio
async def test_insert_duplicate_id_is_rejected() -> None:
    store = MemoryDocumentStore()
    await store.insert_one("tasks", {"_id": "t1", "title": "First"})

    with pytest.raises(DuplicateKeyError):
        await store.insert_one("tasks", {"_id": "t1", "title": "Second"})


@pytest.mark.asyncio
async def test_returned_documents_are_copies() -> None:
    store = MemoryDocumentStore()
    await store.insert_one("tasks", {"_id": "t1", "tags": ["a"]})

    found = await store.find_one("tasks", {"_id": "t1"})
    found["tags"].append("b")

    assert (await store.find_one("tasks", {"_id": "t1"}))["tags"] == ["a"]


@pytest.mark.asyncio
async def test_update_many_counts_only_modified() -> None:
    store = MemoryDocumentStore()
    await store.insert_one("tasks", {"_id": "t1", "user_id": "alice", "status": "pending"})
    await store.insert_one("tasks", {"_id": "t2", "user_id": "alice", "status": "archived"})
    await store.insert_one("tasks", {"_id": "t3", "user_id": "bob", "status": "pending"})

    modified = await store.update_many("tasks", {"user_id": "alice"}, {"$set": {"status": "archived"}})

    assert modified == 1
    assert await store.count("tasks", {"status": "archived"}) == 2


@pytest.mark.asyncio
async def test_find_one_and_update_upsert() -> None:
    store = MemoryDocumentStore()

    assert await store.find_one_and_update("stats", {"user_id": "alice"}, {"$inc": {"n": 1}}) is None

    created = await store.find_one_and_update("stats", {"user_id": "alice"}, {"$inc": {"n": 1}}, upsert=True)
    updated = await store.find_one_and_update("stats", {"user_id": "alice"}, {"$inc": {"n": 1}})

    assert created["n"] == 1
    assert updated["n"] == 2
    assert updated["_id"] == created["_id"]


@pytest.mark.asyncio
async def test_json_store_persists_between_instances(tmp_path) -> None:
    data_file = tmp_path / "store.json"
    store = JsonFileDocumentStore(data_file)
    await store.initialize()
    await store.insert_one("tasks", {"_id": "t1", "deadline": utc(2024, 1, 10, 10, 30)})
    await store.close()

    reopened = JsonFileDocumentStore(data_file)
    await reopened.initialize()
    document = await reopened.find_one("tasks", {"_id": "t1"})

    assert document["deadline"] == utc(2024, 1, 10, 10, 30)
    assert not data_file.with_suffix(".tmp").exists()
    await reopened.close()


@pytest.mark.asyncio
async def test_json_store_rejects_corrupted_file(tmp_path) -> None:
    data_file = tmp_path / "store.json"
    data_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreCorruptionError):
        await JsonFileDocumentStore(data_file).initialize()


@pytest.mark.asyncio
async def test_failed_save_rolls_back_every_mutation(tmp_path) -> None:
    data_dir = tmp_path / "db"
    store = JsonFileDocumentStore(data_dir / "store.json")
    await store.initialize()
    await store.insert_one("tasks", {"_id": "t1", "user_id": "alice", "status": "pending"})

    shutil.rmtree(data_dir)

    with pytest.raises(StoreError):
        await store.insert_one("tasks", {"_id": "t2", "user_id": "alice", "status": "pending"})
    with pytest.raises(StoreError):
        await store.find_one_and_update("tasks", {"_id": "t1"}, {"$set": {"status": "done"}})
    with pytest.raises(StoreError):
        await store.update_many("tasks", {"user_id": "alice"}, {"$push": {"tags": "x"}})
    with pytest.raises(StoreError):
        await store.find_one_and_update("stats", {"user_id": "alice"}, {"$inc": {"n": 1}}, upsert=True)

    assert await store.find_many("tasks") == [{"_id": "t1", "user_id": "alice", "status": "pending"}]
    assert await store.count("stats") == 0

    data_dir.mkdir()
    await store.insert_one("tasks", {"_id": "t2", "user_id": "alice", "status": "pending"})
    await store.close()

    reopened = JsonFileDocumentStore(data_dir / "store.json")
    await reopened.initialize()
    assert sorted(d["_id"] for d in await reopened.find_many("tasks")) == ["t1", "t2"]


@pytest.mark.asyncio
async def test_failed_create_can_be_retried(tmp_path) -> None:
    data_dir = tmp_path / "db"
    store = JsonFileDocumentStore(data_dir / "store.json")
    await store.initialize()
    stats_repository = StatsRepository(store)
    task_service = TaskService(TaskRepository(store), GamificationTracker(stats_repository))

    shutil.rmtree(data_dir)
    with pytest.raises(StoreError):
        await task_service.create_task("alice", task_data())

    assert await task_service.list_tasks("alice") == []

    data_dir.mkdir()
    task = await task_service.create_task("alice", task_data())
    assert [t.task_id for t in await task_service.list_tasks("alice")] == [task.task_id]


class FailingStore:
    """Хранилище, которое ломается на чтении"""

    def __init__(self):
        self.calls = 0

    async def find_one(self, collection, query):
        self.calls += 1
        raise RuntimeError("connection reset")


@pytest.mark.asyncio
async def test_repository_wraps_unexpected_errors_without_retry() -> None:
    store = FailingStore()
    repository = TaskRepository(store)

    with pytest.raises(StoreError) as excinfo:
        await repository.get_active("t1", "alice")

    assert store.calls == 1
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert "connection reset" in str(excinfo.value)


def test_create_store_unknown_backend() -> None:
    with pytest.raises(StoreError):
        create_store("redis")
