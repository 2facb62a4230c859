# services/views_service.py

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Any

from core.models import Task, TaskStatus, TaskPriority, ValidationError, PRIORITY_RANK
from services.task_service import TaskService
from utils.datetime_utils import local_date, local_today, now_utc

logger = logging.getLogger(__name__)

VIEWS = ('list', 'kanban', 'calendar', 'timeline', 'matrix')

KANBAN_COLUMNS = (TaskStatus.PENDING.value, TaskStatus.DONE.value, TaskStatus.NOT_NEEDED.value)

TIMELINE_BUCKETS = ('overdue', 'today', 'tomorrow', 'this_week', 'later')

MATRIX_QUADRANTS = ('urgent_important', 'not_urgent_important', 'urgent_not_important', 'not_urgent_not_important')

URGENT_WINDOW = timedelta(hours=24)
WEEK_WINDOW = timedelta(days=7)

def _pending(tasks: List[Task]) -> List[Task]:
    return [t for t in tasks if t.status == TaskStatus.PENDING.value]

class ViewsService:
    """Представления списка задач

    Все группы строятся из list_tasks, поэтому порядок внутри
    каждой группы совпадает с общей сортировкой.
    """

    def __init__(self, task_service: TaskService, timezone: str = "UTC"):
        self.task_service = task_service
        self.timezone = timezone

    async def get_view(self, user_id: str, view: str, now: Optional[datetime] = None) -> Any:
        if view not in VIEWS:
            raise ValidationError(f"view должен быть одним из: {list(VIEWS)}")

        tasks = await self.task_service.list_tasks(user_id)
        if view == 'list':
            return tasks
        if view == 'kanban':
            return self.kanban(tasks)
        if view == 'calendar':
            return self.calendar(tasks)
        if view == 'timeline':
            return self.timeline(tasks, now)
        return self.matrix(tasks, now)

    def kanban(self, tasks: List[Task]) -> Dict[str, List[Task]]:
        columns: Dict[str, List[Task]] = {status: [] for status in KANBAN_COLUMNS}
        for task in tasks:
            if task.status in columns:
                columns[task.status].append(task)
        return columns

    def calendar(self, tasks: List[Task]) -> Dict[str, Dict[str, Any]]:
        """Незавершённые задачи по локальной дате дедлайна"""
        days: Dict[str, Dict[str, Any]] = {}
        for task in _pending(tasks):
            key = local_date(task.deadline, self.timezone).isoformat()
            day = days.setdefault(key, {'tasks': [], 'top_priority': task.priority})
            day['tasks'].append(task)
            if PRIORITY_RANK[task.priority] > PRIORITY_RANK[day['top_priority']]:
                day['top_priority'] = task.priority
        return dict(sorted(days.items()))

    def timeline(self, tasks: List[Task], now: Optional[datetime] = None) -> Dict[str, List[Task]]:
        now = now or now_utc()
        today = local_today(self.timezone, now)
        tomorrow = today + timedelta(days=1)
        week_end = now + WEEK_WINDOW

        buckets: Dict[str, List[Task]] = {name: [] for name in TIMELINE_BUCKETS}
        for task in _pending(tasks):
            day = local_date(task.deadline, self.timezone)
            if task.deadline < now and day != today:
                buckets['overdue'].append(task)
            elif day == today:
                buckets['today'].append(task)
            elif day == tomorrow:
                buckets['tomorrow'].append(task)
            elif task.deadline <= week_end:
                buckets['this_week'].append(task)
            else:
                buckets['later'].append(task)
        return buckets

    def matrix(self, tasks: List[Task], now: Optional[datetime] = None) -> Dict[str, List[Task]]:
        """Матрица Эйзенхауэра: важно = high, срочно = дедлайн в ближайшие 24 часа"""
        urgent_until = (now or now_utc()) + URGENT_WINDOW

        quadrants: Dict[str, List[Task]] = {name: [] for name in MATRIX_QUADRANTS}
        for task in _pending(tasks):
            important = task.priority == TaskPriority.HIGH.value
            urgent = task.deadline <= urgent_until
            key = f"{'urgent' if urgent else 'not_urgent'}_{'important' if important else 'not_important'}"
            quadrants[key].append(task)
        return quadrants

    async def summary(self, user_id: str) -> Dict[str, Any]:
        """Сводка для дашборда"""
        tasks = await self.task_service.list_tasks(user_id)

        by_priority = {p.value: 0 for p in TaskPriority}
        for task in _pending(tasks):
            by_priority[task.priority] += 1

        by_status = {s.value: 0 for s in TaskStatus}
        for task in tasks:
            by_status[task.status] += 1

        return {
            'total': len(tasks),
            'pending_by_priority': by_priority,
            'by_status': by_status,
        }

__all__ = ['ViewsService', 'VIEWS', 'KANBAN_COLUMNS', 'TIMELINE_BUCKETS', 'MATRIX_QUADRANTS']
