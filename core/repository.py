#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - Repositories
Преобразование Task / UserStats в документы хранилища и обратно

Версия: 1.0.0
Дата: 2025-11-02
"""

import re
from datetime import datetime
from typing import Dict, List, Optional, Any, Iterable
import logging

from core.database import MemoryDocumentStore, StoreError, DuplicateKeyError
from core.models import Task, UserStats, TaskFilter
from utils.decorators import reraise_as
from utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

TASKS_COLLECTION = "tasks"
STATS_COLLECTION = "user_stats"

def active_owned(user_id: str, **conditions: Any) -> Dict[str, Any]:
    """Фильтр: задача пользователя, не удалена"""
    query: Dict[str, Any] = {'user_id': user_id, 'is_deleted': {'$ne': True}}
    query.update(conditions)
    return query

class TaskRepository:
    """Хранение задач"""

    def __init__(self, store: MemoryDocumentStore):
        self.store = store

    @staticmethod
    def _to_task(document: Optional[Dict[str, Any]]) -> Optional[Task]:
        if document is None:
            return None
        return Task.from_dict(document)

    @reraise_as(StoreError, "Failed to insert task")
    async def insert(self, task: Task) -> Task:
        document = task.to_dict()
        document['_id'] = task.task_id
        await self.store.insert_one(TASKS_COLLECTION, document)
        return task

    @reraise_as(StoreError, "Failed to load task")
    async def get_active(self, task_id: str, user_id: str) -> Optional[Task]:
        document = await self.store.find_one(TASKS_COLLECTION, active_owned(user_id, task_id=task_id))
        return self._to_task(document)

    @reraise_as(StoreError, "Failed to list tasks")
    async def find_active(self, user_id: str, **conditions: Any) -> List[Task]:
        documents = await self.store.find_many(TASKS_COLLECTION, active_owned(user_id, **conditions))
        return [Task.from_dict(d) for d in documents]

    @reraise_as(StoreError, "Failed to filter tasks")
    async def find_filtered(self, user_id: str, task_filter: TaskFilter) -> List[Task]:
        documents = await self.store.find_many(TASKS_COLLECTION, build_filter_query(user_id, task_filter))
        return [Task.from_dict(d) for d in documents]

    @reraise_as(StoreError, "Failed to check deadline")
    async def exists_in_window(self, user_id: str, start: datetime, end: datetime,
                               exclude_task_id: Optional[str] = None) -> bool:
        """Есть ли активная задача с дедлайном в [start, end)"""
        conditions: Dict[str, Any] = {'deadline': {'$gte': start, '$lt': end}}
        if exclude_task_id:
            conditions['task_id'] = {'$ne': exclude_task_id}
        return await self.store.count(TASKS_COLLECTION, active_owned(user_id, **conditions)) > 0

    @reraise_as(StoreError, "Failed to update task")
    async def update_fields(self, task_id: str, user_id: str, fields: Dict[str, Any],
                            expected_status: Optional[str] = None) -> Optional[Task]:
        """Обновить поля активной задачи; expected_status делает запись compare-and-set"""
        conditions: Dict[str, Any] = {'task_id': task_id}
        if expected_status is not None:
            conditions['status'] = expected_status

        fields = dict(fields)
        fields.setdefault('updated_at', now_utc())
        document = await self.store.find_one_and_update(
            TASKS_COLLECTION, active_owned(user_id, **conditions), {'$set': fields}
        )
        return self._to_task(document)

    @reraise_as(StoreError, "Failed to link subtask")
    async def add_subtask(self, parent_id: str, user_id: str, child_id: str) -> Optional[Task]:
        document = await self.store.find_one_and_update(
            TASKS_COLLECTION,
            active_owned(user_id, task_id=parent_id),
            {'$push': {'subtasks': child_id}, '$set': {'updated_at': now_utc()}}
        )
        return self._to_task(document)

    @reraise_as(StoreError, "Failed to add time spent")
    async def add_time_spent(self, task_id: str, user_id: str, minutes: int) -> Optional[Task]:
        document = await self.store.find_one_and_update(
            TASKS_COLLECTION,
            active_owned(user_id, task_id=task_id),
            {'$inc': {'time_spent': minutes}, '$set': {'updated_at': now_utc()}}
        )
        return self._to_task(document)

    @reraise_as(StoreError, "Failed to delete task")
    async def soft_delete(self, task_id: str, user_id: str) -> bool:
        now = now_utc()
        document = await self.store.find_one_and_update(
            TASKS_COLLECTION,
            active_owned(user_id, task_id=task_id),
            {'$set': {'is_deleted': True, 'deleted_at': now, 'updated_at': now}}
        )
        return document is not None

    @reraise_as(StoreError, "Batch update failed")
    async def update_many_owned(self, user_id: str, task_ids: Iterable[str], fields: Dict[str, Any],
                                **conditions: Any) -> int:
        """Одна массовая мутация по активным задачам пользователя из task_ids"""
        query = active_owned(user_id, task_id={'$in': list(task_ids)}, **conditions)
        return await self.store.update_many(TASKS_COLLECTION, query, {'$set': fields})

class StatsRepository:
    """Хранение статистики пользователей"""

    def __init__(self, store: MemoryDocumentStore):
        self.store = store

    @reraise_as(StoreError, "Failed to load stats")
    async def get_or_create(self, user_id: str) -> UserStats:
        """Загрузить статистику или лениво создать пустую"""
        document = await self.store.find_one(STATS_COLLECTION, {'_id': user_id})
        if document is not None:
            return UserStats.from_dict(document)

        stats = UserStats(user_id=user_id)
        new_document = stats.to_dict()
        new_document['_id'] = user_id
        try:
            await self.store.insert_one(STATS_COLLECTION, new_document)
            logger.info(f"📊 Создана статистика пользователя {user_id}")
        except DuplicateKeyError:
            # Параллельный запрос успел создать запись
            document = await self.store.find_one(STATS_COLLECTION, {'_id': user_id})
            return UserStats.from_dict(document)
        return stats

    @reraise_as(StoreError, "Failed to save stats")
    async def save(self, stats: UserStats) -> UserStats:
        await self.store.find_one_and_update(
            STATS_COLLECTION, {'_id': stats.user_id}, {'$set': stats.to_dict()}, upsert=True
        )
        return stats

def build_filter_query(user_id: str, task_filter: TaskFilter) -> Dict[str, Any]:
    """TaskFilter -> фильтр хранилища"""
    query = active_owned(user_id)

    if task_filter.tags:
        query['tags'] = {'$in': task_filter.tags}
    if task_filter.priorities:
        query['priority'] = {'$in': task_filter.priorities}
    if task_filter.statuses:
        query['status'] = {'$in': task_filter.statuses}
    if task_filter.project_id:
        query['project_id'] = task_filter.project_id
    if task_filter.workspace_id:
        query['workspace_id'] = task_filter.workspace_id
    if task_filter.context:
        query['context'] = task_filter.context

    deadline: Dict[str, Any] = {}
    if task_filter.start is not None:
        deadline['$gte'] = task_filter.start
    if task_filter.end is not None:
        deadline['$lte'] = task_filter.end
    if deadline:
        query['deadline'] = deadline

    if task_filter.search:
        # Поиск буквальный, без интерпретации regex-символов
        pattern = re.escape(task_filter.search.strip())
        query['$or'] = [
            {'title': {'$regex': pattern, '$options': 'i'}},
            {'description': {'$regex': pattern, '$options': 'i'}},
        ]

    return query

__all__ = ['TaskRepository', 'StatsRepository', 'build_filter_query', 'active_owned',
           'TASKS_COLLECTION', 'STATS_COLLECTION']
