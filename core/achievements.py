#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - Achievement Catalogue
Каталог достижений и проверка разблокировки

Версия: 1.0.0
Дата: 2025-11-02
"""

from datetime import datetime
from typing import Dict, List, Tuple
from dataclasses import dataclass
from abc import ABC, abstractmethod
import logging

from core.models import Achievement, AchievementType, UserStats

logger = logging.getLogger(__name__)

# ===== DATA CLASSES =====

@dataclass(frozen=True)
class AchievementDefinition:
    """Определение достижения"""
    achievement_type: str
    value: int
    title: str
    description: str
    icon: str

    @property
    def key(self) -> Tuple[str, int]:
        return (self.achievement_type, self.value)

    def to_dict(self) -> Dict[str, object]:
        return {
            'type': self.achievement_type,
            'value': self.value,
            'title': self.title,
            'description': self.description,
            'icon': self.icon,
        }

# ===== CHECKERS =====

class AchievementChecker(ABC):
    """Базовый класс для проверки достижений"""

    @abstractmethod
    def check(self, stats: UserStats) -> bool:
        pass

class StreakChecker(AchievementChecker):
    """Серия ровно в target дней"""

    def __init__(self, target_streak: int):
        self.target_streak = target_streak

    def check(self, stats: UserStats) -> bool:
        # Точное равенство, а не >=
        return stats.current_streak == self.target_streak

class MilestoneChecker(AchievementChecker):
    """Ровно target выполненных задач"""

    def __init__(self, target_count: int):
        self.target_count = target_count

    def check(self, stats: UserStats) -> bool:
        return stats.total_tasks_completed == self.target_count

# ===== REGISTRY =====

class AchievementRegistry:
    """Реестр всех достижений"""

    def __init__(self):
        self._definitions: List[AchievementDefinition] = []
        self._checkers: Dict[Tuple[str, int], AchievementChecker] = {}
        self._load_default_achievements()

    def register_achievement(self, definition: AchievementDefinition, checker: AchievementChecker) -> None:
        """Регистрация достижения"""
        self._definitions.append(definition)
        self._checkers[definition.key] = checker

    def get_all_achievements(self) -> List[AchievementDefinition]:
        return list(self._definitions)

    def _load_default_achievements(self) -> None:
        streak = AchievementType.STREAK.value
        milestone = AchievementType.MILESTONE.value

        self.register_achievement(
            AchievementDefinition(streak, 7, "Неделя в строю", "7 дней подряд с выполненными задачами", "🔥"),
            StreakChecker(7)
        )
        self.register_achievement(
            AchievementDefinition(streak, 30, "Месяц дисциплины", "30 дней подряд с выполненными задачами", "🏆"),
            StreakChecker(30)
        )
        self.register_achievement(
            AchievementDefinition(milestone, 100, "Сотня", "100 выполненных задач", "💯"),
            MilestoneChecker(100)
        )

    def evaluate(self, stats: UserStats, unlocked_at: datetime) -> List[Achievement]:
        """Новые достижения для stats; уже полученные не повторяются"""
        unlocked = []
        for definition in self._definitions:
            if stats.has_achievement(definition.achievement_type, definition.value):
                continue
            if self._checkers[definition.key].check(stats):
                unlocked.append(Achievement(
                    user_id=stats.user_id,
                    type=definition.achievement_type,
                    value=definition.value,
                    unlocked_at=unlocked_at,
                ))
                logger.info(f"🏆 Пользователь {stats.user_id} получил достижение: {definition.title}")
        return unlocked

__all__ = ['AchievementDefinition', 'AchievementChecker', 'StreakChecker', 'MilestoneChecker',
           'AchievementRegistry']
