# tests/conftest.py

import pytest

from core.database import MemoryDocumentStore
from core.repository import TaskRepository, StatsRepository
from services.batch_service import BatchOperator
from services.gamification import GamificationTracker
from services.task_service import TaskService
from services.views_service import ViewsService

@pytest.fixture()
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()

@pytest.fixture()
def task_repository(store: MemoryDocumentStore) -> TaskRepository:
    return TaskRepository(store)

@pytest.fixture()
def stats_repository(store: MemoryDocumentStore) -> StatsRepository:
    return StatsRepository(store)

@pytest.fixture()
def tracker(stats_repository: StatsRepository) -> GamificationTracker:
    return GamificationTracker(stats_repository, timezone="UTC")

@pytest.fixture()
def task_service(task_repository: TaskRepository, tracker: GamificationTracker) -> TaskService:
    return TaskService(task_repository, tracker, timezone="UTC")

@pytest.fixture()
def batch_operator(task_repository: TaskRepository) -> BatchOperator:
    return BatchOperator(task_repository, timezone="UTC")

@pytest.fixture()
def views_service(task_service: TaskService) -> ViewsService:
    return ViewsService(task_service, timezone="UTC")

