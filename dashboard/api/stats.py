from fastapi import APIRouter, Depends

from services import GamificationTracker, ViewsService
from shared.models import ApiResponse, UserStatsResponse
from ..dependencies import require_auth, get_tracker, get_views_service

router = APIRouter(prefix="/api/stats", tags=["statistics"])

@router.get("", response_model=ApiResponse)
async def get_user_stats(
    user_id: str = Depends(require_auth),
    tracker: GamificationTracker = Depends(get_tracker)
):
    """
    Серии, счётчики и достижения пользователя
    """
    stats = await tracker.get_user_stats(user_id)
    catalogue = [
        {**definition.to_dict(), "unlocked": stats.has_achievement(definition.achievement_type, definition.value)}
        for definition in tracker.registry.get_all_achievements()
    ]
    return ApiResponse(success=True, data={
        "stats": UserStatsResponse.from_stats(stats),
        "achievements_catalogue": catalogue,
    })

@router.get("/summary", response_model=ApiResponse)
async def get_summary(
    user_id: str = Depends(require_auth),
    views_service: ViewsService = Depends(get_views_service)
):
    """
    Сводка для главной страницы: незавершённые по приоритетам и все по статусам
    """
    return ApiResponse(success=True, data=await views_service.summary(user_id))
