# services/gamification.py

import logging
from datetime import date, datetime
from typing import List, Optional

from core.achievements import AchievementRegistry
from core.models import Task, UserStats, Achievement
from core.repository import StatsRepository
from utils.datetime_utils import local_today, now_utc, days_between

logger = logging.getLogger(__name__)

class GamificationTracker:
    """Серии, счётчики и достижения пользователя

    Единственный компонент, который меняет UserStats.
    """

    def __init__(self, stats_repository: StatsRepository, timezone: str = "UTC",
                 registry: Optional[AchievementRegistry] = None):
        self.stats_repository = stats_repository
        self.timezone = timezone
        self.registry = registry or AchievementRegistry()
        logger.info("✅ GamificationTracker инициализирован")

    async def get_user_stats(self, user_id: str) -> UserStats:
        """Статистика пользователя (создаётся при первом обращении)"""
        return await self.stats_repository.get_or_create(user_id)

    async def record_task_created(self, user_id: str) -> UserStats:
        stats = await self.stats_repository.get_or_create(user_id)
        stats.total_tasks_created += 1
        return await self.stats_repository.save(stats)

    async def record_task_completed(self, user_id: str, task: Task,
                                    today: Optional[date] = None,
                                    now: Optional[datetime] = None) -> List[Achievement]:
        """Обработка перехода pending → done. Возвращает новые достижения"""
        stats = await self.stats_repository.get_or_create(user_id)

        now = now or now_utc()
        today = today or local_today(self.timezone, now)

        stats.current_streak = next_streak(stats.last_activity_date, stats.current_streak, today)
        stats.longest_streak = max(stats.longest_streak, stats.current_streak)
        stats.total_tasks_completed += 1
        stats.last_activity_date = today

        unlocked = self.registry.evaluate(stats, now)
        stats.achievements.extend(unlocked)

        await self.stats_repository.save(stats)
        logger.info(
            f"✅ Задача {task.task_id} выполнена пользователем {user_id} "
            f"(streak: {stats.current_streak}, всего: {stats.total_tasks_completed})"
        )
        return unlocked

    async def record_focus_session(self, user_id: str, minutes: int) -> UserStats:
        stats = await self.stats_repository.get_or_create(user_id)
        stats.total_pomodoros += 1
        stats.total_focus_minutes += minutes
        logger.info(f"🍅 Помодоро пользователя {user_id}: +{minutes} мин")
        return await self.stats_repository.save(stats)

def next_streak(last_activity: Optional[date], current_streak: int, today: date) -> int:
    """Новая серия по разнице календарных дней"""
    if last_activity is None:
        return 1

    diff = days_between(last_activity, today)
    if diff == 0:
        return current_streak
    if diff == 1:
        return current_streak + 1
    # Пропуск дня (или часы пошли назад) сбрасывает серию
    return 1

__all__ = ['GamificationTracker', 'next_streak']
