"""
Сервис помодоро-таймеров
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Any

from core.models import TaskNotFoundError, ValidationError
from services.gamification import GamificationTracker
from services.task_service import TaskService
from utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

class FocusPhase(Enum):
    WORK = "work"
    BREAK = "break"

@dataclass
class FocusSession:
    """Текущая сессия пользователя"""
    user_id: str
    work_minutes: int
    break_minutes: int
    task_id: Optional[str] = None
    phase: str = FocusPhase.WORK.value
    started_at: datetime = field(default_factory=now_utc)
    phase_ends_at: Optional[datetime] = None
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'task_id': self.task_id,
            'phase': self.phase,
            'work_minutes': self.work_minutes,
            'break_minutes': self.break_minutes,
            'started_at': self.started_at.isoformat(),
            'phase_ends_at': self.phase_ends_at.isoformat() if self.phase_ends_at else None,
            'completed': self.completed,
        }

class FocusTimerService:
    """Помодоро: работа, затем перерыв. Один таймер на пользователя"""

    def __init__(self, tracker: GamificationTracker, task_service: TaskService,
                 work_minutes: int = 25, break_minutes: int = 5,
                 seconds_per_minute: float = 60.0):
        self.tracker = tracker
        self.task_service = task_service
        self.work_minutes = work_minutes
        self.break_minutes = break_minutes
        self.seconds_per_minute = seconds_per_minute
        self.active_timers: Dict[str, asyncio.Task] = {}
        self.sessions: Dict[str, FocusSession] = {}

    async def start_session(self, user_id: str, task_id: Optional[str] = None,
                            minutes: Optional[int] = None) -> FocusSession:
        """Запуск помодоро; предыдущая сессия пользователя останавливается"""
        if minutes is not None and (isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0):
            raise ValidationError("minutes должен быть положительным целым числом")
        if task_id:
            await self.task_service.get_task_by_id(task_id, user_id)

        await self.stop_session(user_id)

        work = minutes or self.work_minutes
        session = FocusSession(user_id=user_id, work_minutes=work,
                               break_minutes=self.break_minutes, task_id=task_id)
        session.phase_ends_at = session.started_at + timedelta(minutes=work)

        self.sessions[user_id] = session
        self.active_timers[user_id] = asyncio.create_task(self._timer_worker(session))

        logger.info(f"⏰ Запущен помодоро для пользователя {user_id} ({work} мин)")
        return session

    async def stop_session(self, user_id: str) -> bool:
        """Остановка таймера пользователя"""
        timer = self.active_timers.pop(user_id, None)
        self.sessions.pop(user_id, None)
        if timer is None:
            return False

        timer.cancel()
        try:
            await timer
        except asyncio.CancelledError:
            pass
        logger.info(f"⏹️ Остановлен таймер для пользователя {user_id}")
        return True

    def get_session(self, user_id: str) -> Optional[FocusSession]:
        timer = self.active_timers.get(user_id)
        if timer is None or timer.done():
            return None
        return self.sessions.get(user_id)

    async def complete_session(self, session: FocusSession) -> None:
        """Учёт завершённого рабочего интервала"""
        await self.tracker.record_focus_session(session.user_id, session.work_minutes)

        if session.task_id:
            try:
                await self.task_service.add_time_spent(session.task_id, session.user_id, session.work_minutes)
            except TaskNotFoundError:
                logger.warning(f"⚠️ Задача {session.task_id} удалена во время помодоро")

        session.completed = True

    async def _timer_worker(self, session: FocusSession) -> None:
        """Рабочий процесс таймера"""
        try:
            await asyncio.sleep(session.work_minutes * self.seconds_per_minute)
            await self.complete_session(session)

            session.phase = FocusPhase.BREAK.value
            session.phase_ends_at = now_utc() + timedelta(minutes=session.break_minutes)
            logger.info(f"☕ Перерыв {session.break_minutes} мин для пользователя {session.user_id}")

            await asyncio.sleep(session.break_minutes * self.seconds_per_minute)
        except asyncio.CancelledError:
            logger.debug(f"⏹️ Таймер пользователя {session.user_id} отменен")
            raise
        except Exception:
            logger.exception(f"❌ Ошибка в таймере пользователя {session.user_id}")
        finally:
            # Новая сессия могла заменить эту
            if self.sessions.get(session.user_id) is session:
                self.sessions.pop(session.user_id, None)
                self.active_timers.pop(session.user_id, None)

    async def shutdown(self) -> None:
        """Очистка всех активных таймеров при остановке"""
        for user_id in list(self.active_timers.keys()):
            await self.stop_session(user_id)
        logger.info("🧹 Все таймеры очищены")

__all__ = ['FocusTimerService', 'FocusSession', 'FocusPhase']
