#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - FastAPI Application
HTTP API задач, статистики и помодоро

Версия: 1.0.0
Дата: 2025-11-02
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.database import MemoryDocumentStore, StoreError, create_store
from core.models import ValidationError, DeadlineConflictError, TaskNotFoundError
from services import ServiceManager
from shared.models import ApiResponse, HealthCheck
from utils.logger import setup_logger
from dashboard.config import DashboardSettings, get_settings
from dashboard.dependencies import get_service_manager, log_request
from dashboard.api import tasks, stats, focus

logger = logging.getLogger(__name__)

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(success=False, error=message).model_dump()
    )

def register_exception_handlers(app: FastAPI) -> None:
    """Виды ошибок -> HTTP статусы"""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', []))}: {err.get('msg')}" for err in exc.errors()
        )
        return _error(400, f"Некорректный запрос: {details}")

    @app.exception_handler(DeadlineConflictError)
    async def deadline_conflict_handler(request: Request, exc: DeadlineConflictError):
        return _error(409, str(exc))

    @app.exception_handler(TaskNotFoundError)
    async def not_found_handler(request: Request, exc: TaskNotFoundError):
        return _error(404, "Задача не найдена")

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error(f"❌ Ошибка хранилища на {request.method} {request.url.path}: {exc}")
        return _error(500, "Внутренняя ошибка сервера")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Обработчик HTTP исключений"""
        return _error(exc.status_code, str(exc.detail))

def create_app(settings: Optional[DashboardSettings] = None,
               store: Optional[MemoryDocumentStore] = None) -> FastAPI:
    """Фабрика для создания приложения"""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Управление жизненным циклом приложения"""
        if not settings.is_testing:
            setup_logger(str(settings.log_file), settings.LOG_LEVEL)

        logger.info(f"🚀 Запуск {settings.APP_NAME} ({settings.ENVIRONMENT})...")
        app.state.start_time = time.time()

        backend = store or create_store(
            settings.STORAGE_BACKEND, settings.DATA_DIR, settings.SAVE_INTERVAL_SECONDS
        )
        services = ServiceManager(
            backend,
            timezone=settings.TIMEZONE,
            work_minutes=settings.POMODORO_WORK_MINUTES,
            break_minutes=settings.POMODORO_BREAK_MINUTES,
        )
        await services.initialize()
        app.state.services = services
        logger.info("✅ API готов к работе")

        yield

        logger.info("🛑 Остановка API...")
        await services.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Личный менеджер задач: дедлайны, представления, серии и помодоро",
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        openapi_url="/api/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.start_time = time.time()

    # ===== MIDDLEWARE =====

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=settings.ALLOW_CREDENTIALS,
        allow_methods=settings.ALLOWED_METHODS,
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Middleware для логирования запросов"""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        log_request(request, process_time, response.status_code)
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response

    register_exception_handlers(app)

    # ===== МАРШРУТЫ =====

    app.include_router(tasks.router)
    app.include_router(stats.router)
    app.include_router(focus.router)

    @app.get("/health", response_model=HealthCheck)
    async def health_check(services: ServiceManager = Depends(get_service_manager)):
        """Health check для мониторинга"""
        health = await services.health_check()
        return HealthCheck(
            status=health["status"],
            service="contravault",
            version=settings.VERSION,
            timestamp=time.time(),
            data={
                "uptime_seconds": time.time() - app.state.start_time,
                "environment": settings.ENVIRONMENT,
                **health["services"],
            }
        )

    return app
