#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - API Configuration
Настройки API-сервиса для разных сред

Версия: 1.0.0
Дата: 2025-11-02
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Dict, List, Any

import pytz
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

class DashboardSettings(BaseSettings):
    """Настройки API ContraVault"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===== ОСНОВНЫЕ НАСТРОЙКИ =====

    APP_NAME: str = Field(
        default="ContraVault",
        description="Название приложения"
    )

    VERSION: str = Field(
        default="1.0.0",
        description="Версия API"
    )

    ENVIRONMENT: str = Field(
        default="development",
        description="Среда выполнения (development/production/testing)"
    )

    DEBUG: bool = Field(
        default=True,
        description="Режим отладки"
    )

    # ===== СЕТЕВЫЕ НАСТРОЙКИ =====

    HOST: str = Field(
        default="0.0.0.0",
        description="Хост для запуска API"
    )

    PORT: int = Field(
        default=8000,
        description="Порт для запуска API"
    )

    # ===== CORS НАСТРОЙКИ =====

    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=["*"],
        description="Разрешенные источники для CORS"
    )

    ALLOWED_METHODS: Annotated[List[str], NoDecode] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        description="Разрешенные HTTP методы"
    )

    ALLOW_CREDENTIALS: bool = Field(
        default=True,
        description="Разрешить передачу авторизационных заголовков"
    )

    # ===== ХРАНИЛИЩЕ =====

    STORAGE_BACKEND: str = Field(
        default="memory",
        description="Бэкенд хранилища (memory/json)"
    )

    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Директория с данными"
    )

    SAVE_INTERVAL_SECONDS: int = Field(
        default=0,
        description="Период сброса JSON-файла; 0 - после каждой записи"
    )

    # ===== ВРЕМЯ И ПОМОДОРО =====

    TIMEZONE: str = Field(
        default="UTC",
        description="Часовой пояс для календарных дней и наивных дат"
    )

    POMODORO_WORK_MINUTES: int = Field(
        default=25,
        description="Длительность рабочего интервала"
    )

    POMODORO_BREAK_MINUTES: int = Field(
        default=5,
        description="Длительность перерыва"
    )

    # ===== АУТЕНТИФИКАЦИЯ =====

    API_TOKENS: Annotated[Dict[str, str], NoDecode] = Field(
        default_factory=dict,
        description="Токены доступа: token:user_id через запятую"
    )

    TRUST_USER_HEADER: bool = Field(
        default=False,
        description="Доверять заголовку X-User-ID (только для разработки)"
    )

    # ===== ЛОГИРОВАНИЕ =====

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Уровень логирования (DEBUG/INFO/WARNING/ERROR/CRITICAL)"
    )

    LOGS_DIR: Path = Field(
        default=Path("logs"),
        description="Директория логов"
    )

    # ===== ВАЛИДАТОРЫ =====

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v):
        """Валидация среды выполнения"""
        allowed_envs = ['development', 'production', 'testing', 'staging']
        if v.lower() not in allowed_envs:
            raise ValueError(f"ENVIRONMENT must be one of {allowed_envs}")
        return v.lower()

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Валидация уровня логирования"""
        allowed_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @field_validator('PORT')
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    @field_validator('STORAGE_BACKEND')
    @classmethod
    def validate_storage_backend(cls, v):
        if v.lower() not in ('memory', 'json'):
            raise ValueError("STORAGE_BACKEND must be 'memory' or 'json'")
        return v.lower()

    @field_validator('TIMEZONE')
    @classmethod
    def validate_timezone(cls, v):
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown TIMEZONE: {v}")
        return v

    @field_validator('POMODORO_WORK_MINUTES', 'POMODORO_BREAK_MINUTES')
    @classmethod
    def validate_minutes(cls, v):
        if v <= 0:
            raise ValueError("Pomodoro durations must be positive")
        return v

    @field_validator('ALLOWED_ORIGINS', 'ALLOWED_METHODS', mode='before')
    @classmethod
    def validate_csv_list(cls, v):
        """Строку из окружения разделяем по запятой"""
        if isinstance(v, str):
            return [item.strip() for item in v.split(',') if item.strip()]
        return v

    @field_validator('API_TOKENS', mode='before')
    @classmethod
    def validate_api_tokens(cls, v: Any):
        """Формат окружения: token1:user1,token2:user2"""
        if isinstance(v, str):
            tokens = {}
            for pair in v.split(','):
                if not pair.strip():
                    continue
                token, sep, user_id = pair.strip().partition(':')
                if not sep or not token or not user_id:
                    raise ValueError("API_TOKENS must be comma-separated token:user_id pairs")
                tokens[token] = user_id
            return tokens
        return v

    @model_validator(mode='after')
    def validate_production_settings(self):
        """Валидация настроек для продакшена"""
        if self.ENVIRONMENT == 'production':
            # В продакшене отключаем DEBUG и доверие заголовку
            self.DEBUG = False
            self.TRUST_USER_HEADER = False
        return self

    # ===== МЕТОДЫ КОНФИГУРАЦИИ =====

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_testing(self) -> bool:
        return self.ENVIRONMENT == "testing"

    @property
    def log_file(self) -> Path:
        return self.LOGS_DIR / "contravault.log"

@lru_cache()
def get_settings() -> DashboardSettings:
    """Настройки из окружения, читаются один раз"""
    return DashboardSettings()
