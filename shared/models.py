from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime, date

from core.models import Task, UserStats

# Все поля запросов необязательны: обязательность проверяет сервис,
# чтобы ответ был 400 с понятным сообщением, а не 422.

# Модели для API ответов
class ApiResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None

class HealthCheck(BaseModel):
    status: str
    service: str
    version: str
    timestamp: float
    data: Dict[str, Any] = {}

# Вложенные модели задачи
class RecurrenceModel(BaseModel):
    pattern: str = "none"
    interval: Optional[int] = None
    end_date: Optional[datetime] = None
    count: Optional[int] = None

class CommentModel(BaseModel):
    comment_id: str
    user_id: str
    content: str
    created_at: datetime

class AttachmentModel(BaseModel):
    attachment_id: str
    filename: str
    url: str
    size: int
    mime_type: str
    uploaded_at: datetime

class TaskResponse(BaseModel):
    task_id: str
    user_id: str
    title: str
    description: str
    deadline: datetime
    priority: str
    status: str
    created_at: datetime
    updated_at: datetime
    tags: List[str] = []
    project_id: Optional[str] = None
    workspace_id: Optional[str] = None
    parent_task_id: Optional[str] = None
    subtasks: List[str] = []
    estimated_time: Optional[int] = None
    time_spent: int = 0
    context: Optional[str] = None
    location: Optional[str] = None
    recurrence: Optional[RecurrenceModel] = None
    comments: List[CommentModel] = []
    attachments: List[AttachmentModel] = []
    snoozed_until: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        data = task.to_dict()
        # Служебные поля мягкого удаления наружу не отдаются
        data.pop('is_deleted', None)
        data.pop('deleted_at', None)
        return cls(**data)

class AchievementModel(BaseModel):
    type: str
    value: int
    unlocked_at: datetime

class UserStatsResponse(BaseModel):
    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    total_tasks_completed: int = 0
    total_tasks_created: int = 0
    last_activity_date: Optional[date] = None
    achievements: List[AchievementModel] = []
    total_pomodoros: int = 0
    total_focus_minutes: int = 0

    @classmethod
    def from_stats(cls, stats: UserStats) -> "UserStatsResponse":
        return cls(
            user_id=stats.user_id,
            current_streak=stats.current_streak,
            longest_streak=stats.longest_streak,
            total_tasks_completed=stats.total_tasks_completed,
            total_tasks_created=stats.total_tasks_created,
            last_activity_date=stats.last_activity_date,
            achievements=[AchievementModel(type=a.type, value=a.value, unlocked_at=a.unlocked_at)
                          for a in stats.achievements],
            total_pomodoros=stats.total_pomodoros,
            total_focus_minutes=stats.total_focus_minutes,
        )

# Модели для создания/обновления
class CreateTaskRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[str] = None
    priority: Optional[str] = None
    tags: Optional[List[str]] = None
    project_id: Optional[str] = None
    workspace_id: Optional[str] = None
    parent_task_id: Optional[str] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    context: Optional[str] = None
    location: Optional[str] = None
    recurrence: Optional[RecurrenceModel] = None
    snoozed_until: Optional[str] = None

class UpdateTaskRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[str] = None
    priority: Optional[str] = None

class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None

class BatchOperationRequest(BaseModel):
    task_ids: Optional[List[str]] = None
    operation: Optional[str] = None
    updates: Optional[Dict[str, Any]] = None
    project_id: Optional[str] = None
    workspace_id: Optional[str] = None

class SnoozeRequest(BaseModel):
    until: Optional[str] = None

class FocusStartRequest(BaseModel):
    task_id: Optional[str] = None
    minutes: Optional[int] = None
