from fastapi import APIRouter, Depends

from services import FocusTimerService
from shared.models import ApiResponse, FocusStartRequest
from ..dependencies import require_auth, get_timer_service

router = APIRouter(prefix="/api/focus", tags=["focus"])

@router.get("", response_model=ApiResponse)
async def get_focus_session(
    user_id: str = Depends(require_auth),
    timer_service: FocusTimerService = Depends(get_timer_service)
):
    session = timer_service.get_session(user_id)
    return ApiResponse(success=True, data=session.to_dict() if session else None)

@router.post("", response_model=ApiResponse)
async def start_focus_session(
    request: FocusStartRequest,
    user_id: str = Depends(require_auth),
    timer_service: FocusTimerService = Depends(get_timer_service)
):
    """
    Запуск помодоро (предыдущая сессия останавливается)
    """
    session = await timer_service.start_session(user_id, task_id=request.task_id, minutes=request.minutes)
    return ApiResponse(success=True, data=session.to_dict())

@router.post("/stop", response_model=ApiResponse)
async def stop_focus_session(
    user_id: str = Depends(require_auth),
    timer_service: FocusTimerService = Depends(get_timer_service)
):
    stopped = await timer_service.stop_session(user_id)
    return ApiResponse(success=True, data={"stopped": stopped})
