# services/batch_service.py

import logging
from enum import Enum
from typing import Dict, List, Optional, Any

from core.models import (
    TaskStatus, TaskPriority, ValidationError, validate_text, validate_enum_value,
    validate_deadline, validate_minutes
)
from core.repository import TaskRepository
from utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

class BatchOperation(Enum):
    """Массовые операции"""
    DELETE = "delete"
    ARCHIVE = "archive"
    UPDATE = "update"
    MOVE = "move"

# Поля, которые пользователь может менять массово
BATCH_UPDATABLE_FIELDS = (
    'title', 'description', 'deadline', 'priority', 'tags', 'project_id',
    'workspace_id', 'context', 'location', 'estimated_time', 'snoozed_until'
)

class BatchOperator:
    """Одна массовая мутация по задачам пользователя

    Чужие и удалённые ID молча исключаются. Уникальность дедлайна
    при массовом update не проверяется.
    """

    def __init__(self, repository: TaskRepository, timezone: str = "UTC"):
        self.repository = repository
        self.timezone = timezone

    async def batch_operation(self, user_id: str, task_ids: Any, operation: Any,
                              updates: Optional[Dict[str, Any]] = None,
                              project_id: Optional[str] = None,
                              workspace_id: Optional[str] = None) -> int:
        """Возвращает число задач, изменённых хранилищем"""
        if not isinstance(task_ids, list) or not task_ids:
            raise ValidationError("task_ids должен быть непустым списком")
        if not all(isinstance(t, str) and t for t in task_ids):
            raise ValidationError("task_ids должен содержать строковые ID")
        if not operation:
            raise ValidationError("operation обязателен")
        operation = validate_enum_value(operation, BatchOperation, "operation")

        fields = self._build_fields(operation, updates, project_id, workspace_id)
        if not fields:
            logger.debug(f"Пустая операция {operation} для пользователя {user_id}")
            return 0

        conditions: Dict[str, Any] = {}
        if operation == BatchOperation.ARCHIVE.value:
            # Уже архивные задачи не трогаем
            conditions['status'] = {'$ne': TaskStatus.ARCHIVED.value}

        modified = await self.repository.update_many_owned(user_id, task_ids, fields, **conditions)
        logger.info(f"📦 Batch {operation}: изменено {modified} из {len(task_ids)} задач пользователя {user_id}")
        return modified

    def _build_fields(self, operation: str, updates: Optional[Dict[str, Any]],
                      project_id: Optional[str], workspace_id: Optional[str]) -> Dict[str, Any]:
        now = now_utc()

        if operation == BatchOperation.DELETE.value:
            return {'is_deleted': True, 'deleted_at': now, 'updated_at': now}

        if operation == BatchOperation.ARCHIVE.value:
            return {'status': TaskStatus.ARCHIVED.value, 'archived_at': now, 'updated_at': now}

        if operation == BatchOperation.MOVE.value:
            fields: Dict[str, Any] = {}
            if project_id:
                fields['project_id'] = project_id
            if workspace_id:
                fields['workspace_id'] = workspace_id
            if fields:
                fields['updated_at'] = now
            return fields

        # update
        if not updates:
            return {}
        fields = self._validate_patch(updates)
        fields['updated_at'] = now
        return fields

    def _validate_patch(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        rejected = [k for k in updates if k not in BATCH_UPDATABLE_FIELDS]
        if rejected:
            raise ValidationError(f"Эти поля нельзя изменить массово: {', '.join(sorted(rejected))}")

        patch = dict(updates)
        if 'title' in patch:
            patch['title'] = validate_text(patch['title'], field_name="title")
        if 'description' in patch:
            patch['description'] = validate_text(patch['description'], field_name="description")
        if 'priority' in patch:
            patch['priority'] = validate_enum_value(patch['priority'], TaskPriority, "priority")
        if 'deadline' in patch:
            patch['deadline'] = validate_deadline(patch['deadline'], self.timezone)
        if patch.get('snoozed_until') is not None:
            patch['snoozed_until'] = validate_deadline(patch['snoozed_until'], self.timezone)
        if 'estimated_time' in patch:
            patch['estimated_time'] = validate_minutes(patch['estimated_time'], "estimated_time")
        if 'tags' in patch:
            if not isinstance(patch['tags'], list):
                raise ValidationError("tags должен быть списком")
            patch['tags'] = [t.strip() for t in patch['tags'] if isinstance(t, str) and t.strip()]
        return patch

__all__ = ['BatchOperator', 'BatchOperation', 'BATCH_UPDATABLE_FIELDS']
