# services/task_service.py

import logging
from datetime import datetime
from typing import Dict, List, Optional, Any

from core.models import (
    Task, TaskFilter, TaskStatus, TaskPriority, ValidationError, InvalidStatusTransitionError,
    DeadlineConflictError, TaskNotFoundError, validate_text, validate_enum_value,
    validate_deadline, validate_minutes, is_transition_allowed, sort_tasks
)
from core.repository import TaskRepository
from services.gamification import GamificationTracker
from utils.datetime_utils import minute_window, now_utc
from utils.validators import missing_fields

logger = logging.getLogger(__name__)

# ===== КОНСТАНТЫ =====

REQUIRED_FIELDS = ('title', 'description', 'deadline', 'priority')

# Расширенные атрибуты, которые можно передать при создании
EXTENDED_FIELDS = (
    'tags', 'project_id', 'workspace_id', 'parent_task_id', 'estimated_time',
    'context', 'location', 'recurrence', 'snoozed_until'
)

# Поля, которые меняет update_task
UPDATABLE_FIELDS = ('title', 'description', 'deadline', 'priority')

def validate_task_input(data: Dict[str, Any], timezone: Optional[str] = None) -> Dict[str, Any]:
    """Проверка обязательных полей новой задачи"""
    missing = missing_fields(data, REQUIRED_FIELDS)
    if missing:
        raise ValidationError(f"Отсутствуют обязательные поля: {', '.join(missing)}")

    return {
        'title': validate_text(data['title'], field_name="title"),
        'description': validate_text(data['description'], field_name="description"),
        'deadline': validate_deadline(data['deadline'], timezone),
        'priority': validate_enum_value(data['priority'], TaskPriority, "priority"),
    }

class TaskService:
    """Правила задач: уникальность дедлайна, сортировка, статусы, мягкое удаление"""

    def __init__(self, repository: TaskRepository, tracker: GamificationTracker,
                 timezone: str = "UTC"):
        self.repository = repository
        self.tracker = tracker
        self.timezone = timezone
        logger.info("✅ TaskService инициализирован")

    # ===== ПРОВЕРКИ =====

    async def ensure_deadline_free(self, user_id: str, deadline: datetime,
                                   exclude_task_id: Optional[str] = None) -> None:
        """DeadlineConflictError, если на эту минуту уже есть активная задача"""
        start, end = minute_window(deadline)
        if await self.repository.exists_in_window(user_id, start, end, exclude_task_id):
            logger.info(f"⚠️ Конфликт дедлайна {start.isoformat()} для пользователя {user_id}")
            raise DeadlineConflictError(deadline, self.timezone)

    # ===== СОЗДАНИЕ =====

    async def create_task(self, user_id: str, data: Dict[str, Any]) -> Task:
        """Создание задачи"""
        fields = validate_task_input(data, self.timezone)
        extended = {k: data[k] for k in EXTENDED_FIELDS if data.get(k) is not None}
        if 'snoozed_until' in extended:
            extended['snoozed_until'] = validate_deadline(extended['snoozed_until'], self.timezone)

        parent_id = extended.get('parent_task_id')
        if parent_id and await self.repository.get_active(parent_id, user_id) is None:
            raise TaskNotFoundError(parent_id)

        await self.ensure_deadline_free(user_id, fields['deadline'])

        task = Task.create(user_id=user_id, **fields, **extended)
        await self.repository.insert(task)

        if parent_id:
            await self.repository.add_subtask(parent_id, user_id, task.task_id)

        logger.info(f"✅ Создана задача {task.task_id} для пользователя {user_id}: {task.title}")
        await self._notify_created(user_id)
        return task

    # ===== ЧТЕНИЕ =====

    async def get_task_by_id(self, task_id: str, user_id: str) -> Task:
        task = await self.repository.get_active(task_id, user_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_tasks(self, user_id: str) -> List[Task]:
        """Все активные задачи пользователя в порядке сортировки"""
        return sort_tasks(await self.repository.find_active(user_id))

    async def get_filtered_tasks(self, user_id: str, task_filter: TaskFilter) -> List[Task]:
        if task_filter.is_empty:
            return await self.list_tasks(user_id)
        tasks = sort_tasks(await self.repository.find_filtered(user_id, task_filter))
        logger.debug(f"🔍 Найдено {len(tasks)} задач для пользователя {user_id}")
        return tasks

    async def get_subtasks(self, task_id: str, user_id: str) -> List[Task]:
        await self.get_task_by_id(task_id, user_id)
        return sort_tasks(await self.repository.find_active(user_id, parent_task_id=task_id))

    # ===== ИЗМЕНЕНИЕ =====

    async def update_task(self, task_id: str, user_id: str, updates: Dict[str, Any]) -> Task:
        """Частичное обновление title/description/deadline/priority"""
        unknown = [k for k in updates if k not in UPDATABLE_FIELDS]
        if unknown:
            raise ValidationError(f"Эти поля нельзя изменить: {', '.join(sorted(unknown))}")

        task = await self.get_task_by_id(task_id, user_id)

        fields: Dict[str, Any] = {}
        if updates.get('title') is not None:
            fields['title'] = validate_text(updates['title'], field_name="title")
        if updates.get('description') is not None:
            fields['description'] = validate_text(updates['description'], field_name="description")
        if updates.get('priority') is not None:
            fields['priority'] = validate_enum_value(updates['priority'], TaskPriority, "priority")
        if updates.get('deadline') is not None:
            fields['deadline'] = validate_deadline(updates['deadline'], self.timezone)
            await self.ensure_deadline_free(user_id, fields['deadline'], exclude_task_id=task_id)

        if not fields:
            return task

        updated = await self.repository.update_fields(task_id, user_id, fields)
        if updated is None:
            raise TaskNotFoundError(task_id)

        logger.info(f"✅ Задача {task_id} обновлена для пользователя {user_id}")
        return updated

    async def update_status(self, task_id: str, user_id: str, new_status: Any) -> Task:
        """Смена статуса по таблице переходов"""
        new_status = validate_enum_value(new_status, TaskStatus, "status")
        task = await self.get_task_by_id(task_id, user_id)

        if task.status == new_status:
            return task
        if not is_transition_allowed(task.status, new_status):
            raise InvalidStatusTransitionError(task.status, new_status)

        fields: Dict[str, Any] = {'status': new_status}
        if new_status == TaskStatus.ARCHIVED.value:
            fields['archived_at'] = now_utc()

        # Compare-and-set: запись проходит, только если статус не успел смениться
        updated = await self.repository.update_fields(task_id, user_id, fields, expected_status=task.status)
        if updated is None:
            current = await self.get_task_by_id(task_id, user_id)
            if current.status == new_status:
                return current
            raise InvalidStatusTransitionError(current.status, new_status)

        logger.info(f"🔄 Задача {task_id}: {task.status} → {new_status}")

        if task.status == TaskStatus.PENDING.value and new_status == TaskStatus.DONE.value:
            await self._notify_completed(user_id, updated)

        return updated

    async def delete_task(self, task_id: str, user_id: str) -> bool:
        """Мягкое удаление"""
        deleted = await self.repository.soft_delete(task_id, user_id)
        if deleted:
            logger.info(f"🗑️ Задача {task_id} удалена для пользователя {user_id}")
        return deleted

    async def snooze_task(self, task_id: str, user_id: str, until: Any) -> bool:
        snoozed_until = validate_deadline(until, self.timezone)
        updated = await self.repository.update_fields(task_id, user_id, {'snoozed_until': snoozed_until})
        if updated is not None:
            logger.info(f"😴 Задача {task_id} отложена до {snoozed_until.isoformat()}")
        return updated is not None

    async def add_time_spent(self, task_id: str, user_id: str, minutes: int) -> Task:
        minutes = validate_minutes(minutes, "minutes")
        if not minutes:
            raise ValidationError("minutes должен быть больше нуля")
        updated = await self.repository.add_time_spent(task_id, user_id, minutes)
        if updated is None:
            raise TaskNotFoundError(task_id)
        return updated

    # ===== ГЕЙМИФИКАЦИЯ =====

    async def _notify_created(self, user_id: str) -> None:
        try:
            await self.tracker.record_task_created(user_id)
        except Exception:
            logger.exception(f"❌ Ошибка учёта создания задачи для пользователя {user_id}")

    async def _notify_completed(self, user_id: str, task: Task) -> None:
        try:
            await self.tracker.record_task_completed(user_id, task)
        except Exception:
            logger.exception(f"❌ Ошибка учёта выполнения задачи {task.task_id} для пользователя {user_id}")

__all__ = ['TaskService', 'validate_task_input', 'REQUIRED_FIELDS', 'UPDATABLE_FIELDS']
