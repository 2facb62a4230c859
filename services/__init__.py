# services/__init__.py

"""
Модуль сервисов ContraVault

Правила задач, массовые операции, геймификация, представления и помодоро.
"""

import logging

from core.database import MemoryDocumentStore
from core.repository import TaskRepository, StatsRepository

from .gamification import GamificationTracker
from .task_service import TaskService
from .batch_service import BatchOperator
from .views_service import ViewsService
from .timer_service import FocusTimerService

logger = logging.getLogger(__name__)

class ServiceManager:
    """
    Сборка всех сервисов вокруг одного хранилища

    Обеспечивает:
    - Инициализацию в порядке зависимостей
    - Явную передачу хранилища каждому сервису
    - Корректное закрытие таймеров и хранилища
    """

    def __init__(self, store: MemoryDocumentStore, timezone: str = "UTC",
                 work_minutes: int = 25, break_minutes: int = 5):
        self.store = store
        self.timezone = timezone

        task_repository = TaskRepository(store)
        stats_repository = StatsRepository(store)

        self.tracker = GamificationTracker(stats_repository, timezone=timezone)
        self.task_service = TaskService(task_repository, self.tracker, timezone=timezone)
        self.batch_operator = BatchOperator(task_repository, timezone=timezone)
        self.views_service = ViewsService(self.task_service, timezone=timezone)
        self.timer_service = FocusTimerService(
            self.tracker, self.task_service,
            work_minutes=work_minutes, break_minutes=break_minutes
        )
        self.initialized = False

    async def initialize(self) -> None:
        logger.info("🔧 Инициализация сервисов ContraVault...")
        await self.store.initialize()
        self.initialized = True
        logger.info("✅ Все сервисы инициализированы успешно!")

    async def health_check(self) -> dict:
        """Проверка состояния всех сервисов"""
        store_health = await self.store.health_check()
        return {
            "status": "healthy" if self.initialized and store_health.get("initialized") else "error",
            "services": {
                "store": store_health,
                "timers": {"active": len(self.timer_service.active_timers)},
            }
        }

    async def close(self) -> None:
        """Закрытие всех сервисов"""
        logger.info("🛑 Закрытие сервисов...")
        # В обратном порядке инициализации
        await self.timer_service.shutdown()
        await self.store.close()
        self.initialized = False
        logger.info("✅ Все сервисы закрыты")

__all__ = [
    'ServiceManager',
    'TaskService',
    'BatchOperator',
    'GamificationTracker',
    'ViewsService',
    'FocusTimerService',
]
