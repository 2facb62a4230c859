from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional, Any

from core.models import Task, TaskFilter, TaskNotFoundError
from services import TaskService, BatchOperator, ViewsService
from shared.models import (
    ApiResponse, TaskResponse, CreateTaskRequest, UpdateTaskRequest,
    StatusUpdateRequest, BatchOperationRequest, SnoozeRequest
)
from ..dependencies import require_auth, get_task_service, get_batch_operator, get_views_service

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

def _serialize(value: Any) -> Any:
    """Задачи внутри представлений -> TaskResponse"""
    if isinstance(value, Task):
        return TaskResponse.from_task(value)
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value

@router.get("", response_model=ApiResponse)
async def list_tasks(
    user_id: str = Depends(require_auth),
    task_service: TaskService = Depends(get_task_service),
    tags: Optional[List[str]] = Query(None),
    priority: Optional[List[str]] = Query(None),
    status_: Optional[List[str]] = Query(None, alias="status"),
    project_id: Optional[str] = Query(None),
    workspace_id: Optional[str] = Query(None),
    context: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None)
):
    """
    Активные задачи пользователя, отсортированные по приоритету и дедлайну
    """
    task_filter = TaskFilter(
        tags=tags or [],
        priorities=priority or [],
        statuses=status_ or [],
        project_id=project_id,
        workspace_id=workspace_id,
        context=context,
        search=search,
        start=start,
        end=end,
    )
    tasks = await task_service.get_filtered_tasks(user_id, task_filter)
    return ApiResponse(success=True, data=_serialize(tasks))

@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    request: CreateTaskRequest,
    user_id: str = Depends(require_auth),
    task_service: TaskService = Depends(get_task_service)
):
    task = await task_service.create_task(user_id, request.model_dump(exclude_none=True))
    return ApiResponse(success=True, data=_serialize(task))

@router.get("/views/{view}", response_model=ApiResponse)
async def get_view(
    view: str,
    user_id: str = Depends(require_auth),
    views_service: ViewsService = Depends(get_views_service)
):
    """
    Представления: list, kanban, calendar, timeline, matrix
    """
    result = await views_service.get_view(user_id, view)
    return ApiResponse(success=True, data=_serialize(result))

@router.post("/batch", response_model=ApiResponse)
async def batch_operation(
    request: BatchOperationRequest,
    user_id: str = Depends(require_auth),
    batch_operator: BatchOperator = Depends(get_batch_operator)
):
    modified = await batch_operator.batch_operation(
        user_id,
        request.task_ids,
        request.operation,
        updates=request.updates,
        project_id=request.project_id,
        workspace_id=request.workspace_id,
    )
    return ApiResponse(success=True, data={"modified_count": modified})

@router.get("/{task_id}", response_model=ApiResponse)
async def get_task(
    task_id: str,
    user_id: str = Depends(require_auth),
    task_service: TaskService = Depends(get_task_service)
):
    task = await task_service.get_task_by_id(task_id, user_id)
    return ApiResponse(success=True, data=_serialize(task))

@router.put("/{task_id}", response_model=ApiResponse)
async def update_task(
    task_id: str,
    request: UpdateTaskRequest,
    user_id: str = Depends(require_auth),
    task_service: TaskService = Depends(get_task_service)
):
    task = await task_service.update_task(task_id, user_id, request.model_dump(exclude_none=True))
    return ApiResponse(success=True, data=_serialize(task))

@router.patch("/{task_id}", response_model=ApiResponse)
async def update_status(
    task_id: str,
    request: StatusUpdateRequest,
    user_id: str = Depends(require_auth),
    task_service: TaskService = Depends(get_task_service)
):
    """
    Смена статуса по таблице переходов
    """
    task = await task_service.update_status(task_id, user_id, request.status)
    return ApiResponse(success=True, data=_serialize(task))

@router.delete("/{task_id}", response_model=ApiResponse)
async def delete_task(
    task_id: str,
    user_id: str = Depends(require_auth),
    task_service: TaskService = Depends(get_task_service)
):
    if not await task_service.delete_task(task_id, user_id):
        raise TaskNotFoundError(task_id)
    return ApiResponse(success=True, data={"task_id": task_id})

@router.get("/{task_id}/subtasks", response_model=ApiResponse)
async def get_subtasks(
    task_id: str,
    user_id: str = Depends(require_auth),
    task_service: TaskService = Depends(get_task_service)
):
    subtasks = await task_service.get_subtasks(task_id, user_id)
    return ApiResponse(success=True, data=_serialize(subtasks))

@router.post("/{task_id}/snooze", response_model=ApiResponse)
async def snooze_task(
    task_id: str,
    request: SnoozeRequest,
    user_id: str = Depends(require_auth),
    task_service: TaskService = Depends(get_task_service)
):
    if not await task_service.snooze_task(task_id, user_id, request.until):
        raise TaskNotFoundError(task_id)
    task = await task_service.get_task_by_id(task_id, user_id)
    return ApiResponse(success=True, data=_serialize(task))
