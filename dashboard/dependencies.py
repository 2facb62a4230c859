#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - API Dependencies
Идентификация пользователя и доступ к сервисам из FastAPI

Версия: 1.0.0
Дата: 2025-11-02
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from dashboard.config import DashboardSettings
from services import (
    ServiceManager, TaskService, BatchOperator, GamificationTracker,
    ViewsService, FocusTimerService
)

logger = logging.getLogger(__name__)

# ===== СЕРВИСЫ =====

def get_app_settings(request: Request) -> DashboardSettings:
    return request.app.state.settings

def get_service_manager(request: Request) -> ServiceManager:
    return request.app.state.services

def get_task_service(manager: ServiceManager = Depends(get_service_manager)) -> TaskService:
    return manager.task_service

def get_batch_operator(manager: ServiceManager = Depends(get_service_manager)) -> BatchOperator:
    return manager.batch_operator

def get_tracker(manager: ServiceManager = Depends(get_service_manager)) -> GamificationTracker:
    return manager.tracker

def get_views_service(manager: ServiceManager = Depends(get_service_manager)) -> ViewsService:
    return manager.views_service

def get_timer_service(manager: ServiceManager = Depends(get_service_manager)) -> FocusTimerService:
    return manager.timer_service

# ===== АВТОРИЗАЦИЯ =====

security = HTTPBearer(auto_error=False)

def resolve_identity(settings: DashboardSettings,
                     credentials: Optional[HTTPAuthorizationCredentials],
                     user_header: Optional[str]) -> Optional[str]:
    """Непрозрачный ID пользователя или None"""
    if credentials and credentials.credentials:
        user_id = settings.API_TOKENS.get(credentials.credentials)
        if user_id:
            return user_id
        logger.warning("⚠️ Неизвестный токен доступа")
        return None

    if settings.TRUST_USER_HEADER and user_header and user_header.strip():
        return user_header.strip()

    return None

async def get_current_user(
    settings: DashboardSettings = Depends(get_app_settings),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_user_id: Optional[str] = Header(default=None)
) -> Optional[str]:
    """Получить текущего пользователя"""
    return resolve_identity(settings, credentials, x_user_id)

async def require_auth(current_user: Optional[str] = Depends(get_current_user)) -> str:
    """Требовать авторизации"""
    if not current_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Требуется авторизация"
        )
    return current_user

# ===== УТИЛИТЫ =====

def get_client_ip(request: Request) -> str:
    """Получить IP адрес клиента"""
    # Проверяем заголовки прокси
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"

def log_request(request: Request, response_time: float, status_code: int) -> None:
    """Логирование запроса"""
    logger.info(
        f"{request.method} {request.url.path} "
        f"- {status_code} - {response_time:.3f}s "
        f"- {get_client_ip(request)}"
    )
