#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - Core Data Models
Модели задач и статистики с валидацией на границе

Версия: 1.0.0
Дата: 2025-11-02
"""

import uuid
from datetime import datetime, date
from typing import Dict, List, Optional, Any, Set, Iterable
from dataclasses import dataclass, field, asdict
from enum import Enum
import logging

from utils.datetime_utils import now_utc, parse_deadline, format_deadline

logger = logging.getLogger(__name__)

# ===== ENUMS =====

class TaskStatus(Enum):
    """Статусы задач"""
    PENDING = "pending"
    DONE = "done"
    NOT_NEEDED = "not_needed"
    ARCHIVED = "archived"

class TaskPriority(Enum):
    """Приоритеты задач"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class RecurrencePattern(Enum):
    """Шаблоны повторения"""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"

class AchievementType(Enum):
    """Типы достижений"""
    STREAK = "streak"
    MILESTONE = "milestone"

# Ранг приоритета для сортировки: чем больше, тем выше в списке
PRIORITY_RANK: Dict[str, int] = {
    TaskPriority.HIGH.value: 2,
    TaskPriority.MEDIUM.value: 1,
    TaskPriority.LOW.value: 0,
}

# Явная таблица переходов статусов
_ACTIVE_STATUSES = {TaskStatus.PENDING.value, TaskStatus.DONE.value, TaskStatus.NOT_NEEDED.value}

STATUS_TRANSITIONS: Dict[str, Set[str]] = {
    TaskStatus.PENDING.value: {TaskStatus.DONE.value, TaskStatus.NOT_NEEDED.value, TaskStatus.ARCHIVED.value},
    TaskStatus.DONE.value: {TaskStatus.PENDING.value, TaskStatus.ARCHIVED.value},
    TaskStatus.NOT_NEEDED.value: {TaskStatus.PENDING.value, TaskStatus.ARCHIVED.value},
    TaskStatus.ARCHIVED.value: set(),
}

# ===== EXCEPTIONS =====

class ValidationError(Exception):
    """Ошибка валидации данных"""
    pass

class InvalidStatusTransitionError(ValidationError):
    """Переход статуса отсутствует в таблице переходов"""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Недопустимый переход статуса: {current} → {requested}")

class DeadlineConflictError(Exception):
    """На эту минуту у пользователя уже есть активная задача"""

    def __init__(self, deadline: datetime, tz_name: Optional[str] = None):
        self.deadline = deadline
        when = format_deadline(deadline, tz_name)
        super().__init__(
            f"Задача на {when} уже существует. Выберите другую дату или время."
        )

class TaskNotFoundError(Exception):
    """Нет активной задачи с таким ID у этого пользователя"""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Задача не найдена: {task_id}")

# ===== VALIDATION HELPERS =====

def validate_text(text: Any, min_length: int = 1, field_name: str = "text") -> str:
    """Валидация текстовых полей"""
    if not isinstance(text, str):
        raise ValidationError(f"{field_name} должен быть строкой")

    text = text.strip()
    if len(text) < min_length:
        raise ValidationError(f"{field_name} не может быть пустым")

    return text

def validate_enum_value(value: Any, enum_class: type, field_name: str = "value") -> str:
    """Валидация значений enum"""
    if isinstance(value, enum_class):
        return value.value
    try:
        enum_class(value)
        return value
    except ValueError:
        valid_values = [e.value for e in enum_class]
        raise ValidationError(f"{field_name} должен быть одним из: {valid_values}")

def validate_deadline(value: Any, tz_name: Optional[str] = None) -> datetime:
    """Дедлайн -> UTC datetime"""
    try:
        return parse_deadline(value, tz_name)
    except (TypeError, ValueError):
        raise ValidationError(f"Неверный формат дедлайна: {value!r}")

def validate_minutes(value: Any, field_name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} должен быть неотрицательным целым числом")
    return value

def _parse_optional_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return parse_deadline(value)

# ===== NESTED RECORDS =====

@dataclass
class Recurrence:
    """Описание повторения задачи"""
    pattern: str = RecurrencePattern.NONE.value
    interval: Optional[int] = None
    end_date: Optional[datetime] = None
    count: Optional[int] = None

    def __post_init__(self):
        self.pattern = validate_enum_value(self.pattern, RecurrencePattern, "recurrence.pattern")
        self.end_date = _parse_optional_datetime(self.end_date)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recurrence":
        return cls(
            pattern=data.get("pattern", RecurrencePattern.NONE.value),
            interval=data.get("interval"),
            end_date=data.get("end_date"),
            count=data.get("count"),
        )

@dataclass
class Comment:
    """Комментарий к задаче"""
    comment_id: str
    user_id: str
    content: str
    created_at: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        return cls(**data)

@dataclass
class Attachment:
    """Вложение задачи"""
    attachment_id: str
    filename: str
    url: str
    size: int
    mime_type: str
    uploaded_at: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        return cls(**data)

# ===== CORE MODELS =====

@dataclass
class Task:
    """Задача пользователя"""
    task_id: str
    user_id: str
    title: str
    description: str
    deadline: datetime
    priority: str = TaskPriority.MEDIUM.value
    status: str = TaskStatus.PENDING.value
    is_deleted: bool = False
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)
    deleted_at: Optional[datetime] = None

    # Расширенные атрибуты
    tags: List[str] = field(default_factory=list)
    project_id: Optional[str] = None
    workspace_id: Optional[str] = None
    parent_task_id: Optional[str] = None
    subtasks: List[str] = field(default_factory=list)
    estimated_time: Optional[int] = None  # в минутах
    time_spent: int = 0  # в минутах
    context: Optional[str] = None
    location: Optional[str] = None
    recurrence: Optional[Recurrence] = None
    comments: List[Comment] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    snoozed_until: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    def __post_init__(self):
        """Валидация после создания объекта"""
        if not self.user_id:
            raise ValidationError("user_id обязателен")

        self.title = validate_text(self.title, field_name="title")
        if not isinstance(self.description, str):
            raise ValidationError("description должен быть строкой")

        self.deadline = validate_deadline(self.deadline)
        self.priority = validate_enum_value(self.priority, TaskPriority, "priority")
        self.status = validate_enum_value(self.status, TaskStatus, "status")
        self.estimated_time = validate_minutes(self.estimated_time, "estimated_time")
        self.time_spent = validate_minutes(self.time_spent, "time_spent") or 0

        if not isinstance(self.tags, list):
            raise ValidationError("tags должен быть списком")
        self.tags = [t.strip() for t in self.tags if isinstance(t, str) and t.strip()]
        if isinstance(self.recurrence, dict):
            self.recurrence = Recurrence.from_dict(self.recurrence)

    # ===== SERIALIZATION =====

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация в документ хранилища"""
        return {
            "task_id": self.task_id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline,
            "priority": self.priority,
            "status": self.status,
            "is_deleted": self.is_deleted,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "deleted_at": self.deleted_at,
            "tags": list(self.tags),
            "project_id": self.project_id,
            "workspace_id": self.workspace_id,
            "parent_task_id": self.parent_task_id,
            "subtasks": list(self.subtasks),
            "estimated_time": self.estimated_time,
            "time_spent": self.time_spent,
            "context": self.context,
            "location": self.location,
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
            "comments": [c.to_dict() for c in self.comments],
            "attachments": [a.to_dict() for a in self.attachments],
            "snoozed_until": self.snoozed_until,
            "archived_at": self.archived_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Десериализация из документа хранилища"""
        try:
            return cls(
                task_id=data["task_id"],
                user_id=data["user_id"],
                title=data["title"],
                description=data.get("description", ""),
                deadline=data["deadline"],
                priority=data.get("priority", TaskPriority.MEDIUM.value),
                status=data.get("status", TaskStatus.PENDING.value),
                is_deleted=bool(data.get("is_deleted", False)),
                created_at=data.get("created_at") or now_utc(),
                updated_at=data.get("updated_at") or now_utc(),
                deleted_at=data.get("deleted_at"),
                tags=data.get("tags") or [],
                project_id=data.get("project_id"),
                workspace_id=data.get("workspace_id"),
                parent_task_id=data.get("parent_task_id"),
                subtasks=data.get("subtasks") or [],
                estimated_time=data.get("estimated_time"),
                time_spent=data.get("time_spent") or 0,
                context=data.get("context"),
                location=data.get("location"),
                recurrence=Recurrence.from_dict(data["recurrence"]) if data.get("recurrence") else None,
                comments=[Comment.from_dict(c) for c in data.get("comments") or []],
                attachments=[Attachment.from_dict(a) for a in data.get("attachments") or []],
                snoozed_until=data.get("snoozed_until"),
                archived_at=data.get("archived_at"),
            )
        except KeyError as e:
            logger.error(f"Ошибка десериализации задачи: нет поля {e}")
            raise ValidationError(f"Не удалось загрузить задачу: нет поля {e}")

    @classmethod
    def create(cls, user_id: str, title: str, description: str, deadline: Any,
               priority: str, **extended: Any) -> "Task":
        """Создание новой задачи: статус pending, не удалена, свежие метки времени"""
        now = now_utc()
        return cls(
            task_id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            description=description,
            deadline=deadline,
            priority=priority,
            status=TaskStatus.PENDING.value,
            is_deleted=False,
            created_at=now,
            updated_at=now,
            **extended
        )

@dataclass(frozen=True)
class Achievement:
    """Разблокированное достижение (неизменяемое)"""
    user_id: str
    type: str
    value: int
    unlocked_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Achievement":
        return cls(
            user_id=data["user_id"],
            type=data["type"],
            value=int(data["value"]),
            unlocked_at=data["unlocked_at"],
        )

@dataclass
class UserStats:
    """Статистика пользователя для геймификации"""
    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    total_tasks_completed: int = 0
    total_tasks_created: int = 0
    last_activity_date: Optional[date] = None
    achievements: List[Achievement] = field(default_factory=list)
    total_pomodoros: int = 0
    total_focus_minutes: int = 0

    def __post_init__(self):
        """Валидация после создания объекта"""
        self.current_streak = max(0, self.current_streak)
        self.longest_streak = max(0, self.longest_streak)
        self.total_tasks_completed = max(0, self.total_tasks_completed)
        self.total_tasks_created = max(0, self.total_tasks_created)
        self.total_pomodoros = max(0, self.total_pomodoros)
        self.total_focus_minutes = max(0, self.total_focus_minutes)

        if isinstance(self.last_activity_date, datetime):
            self.last_activity_date = self.last_activity_date.date()
        elif isinstance(self.last_activity_date, str):
            self.last_activity_date = date.fromisoformat(self.last_activity_date)

    def has_achievement(self, achievement_type: str, value: int) -> bool:
        """Проверить наличие достижения"""
        return any(a.type == achievement_type and a.value == value for a in self.achievements)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "total_tasks_completed": self.total_tasks_completed,
            "total_tasks_created": self.total_tasks_created,
            # Дата без времени хранится строкой YYYY-MM-DD
            "last_activity_date": self.last_activity_date.isoformat() if self.last_activity_date else None,
            "achievements": [a.to_dict() for a in self.achievements],
            "total_pomodoros": self.total_pomodoros,
            "total_focus_minutes": self.total_focus_minutes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserStats":
        return cls(
            user_id=data["user_id"],
            current_streak=data.get("current_streak", 0),
            longest_streak=data.get("longest_streak", 0),
            total_tasks_completed=data.get("total_tasks_completed", 0),
            total_tasks_created=data.get("total_tasks_created", 0),
            last_activity_date=data.get("last_activity_date"),
            achievements=[Achievement.from_dict(a) for a in data.get("achievements") or []],
            total_pomodoros=data.get("total_pomodoros", 0),
            total_focus_minutes=data.get("total_focus_minutes", 0),
        )

@dataclass
class TaskFilter:
    """Фильтры списка задач"""
    tags: List[str] = field(default_factory=list)
    priorities: List[str] = field(default_factory=list)
    statuses: List[str] = field(default_factory=list)
    project_id: Optional[str] = None
    workspace_id: Optional[str] = None
    context: Optional[str] = None
    search: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        self.priorities = [validate_enum_value(p, TaskPriority, "priority") for p in self.priorities]
        self.statuses = [validate_enum_value(s, TaskStatus, "status") for s in self.statuses]
        if self.start is not None:
            self.start = validate_deadline(self.start)
        if self.end is not None:
            self.end = validate_deadline(self.end)

    @property
    def is_empty(self) -> bool:
        return not any([
            self.tags, self.priorities, self.statuses, self.project_id,
            self.workspace_id, self.context, self.search, self.start, self.end
        ])

# ===== SORTING & TRANSITIONS =====

def task_sort_key(task: Task):
    """Приоритет по убыванию, затем дедлайн по возрастанию"""
    return (-PRIORITY_RANK[task.priority], task.deadline)

def sort_tasks(tasks: Iterable[Task]) -> List[Task]:
    """Единый закон сортировки для всех представлений"""
    return sorted(tasks, key=task_sort_key)

def is_transition_allowed(current: str, requested: str) -> bool:
    return requested in STATUS_TRANSITIONS.get(current, set())

# ===== EXPORT =====

__all__ = [
    # Enums
    'TaskStatus', 'TaskPriority', 'RecurrencePattern', 'AchievementType',

    # Exceptions
    'ValidationError', 'InvalidStatusTransitionError', 'DeadlineConflictError', 'TaskNotFoundError',

    # Validation functions
    'validate_text', 'validate_enum_value', 'validate_deadline', 'validate_minutes',

    # Models
    'Recurrence', 'Comment', 'Attachment', 'Task', 'Achievement', 'UserStats', 'TaskFilter',

    # Rules
    'PRIORITY_RANK', 'STATUS_TRANSITIONS', 'task_sort_key', 'sort_tasks', 'is_transition_allowed'
]
