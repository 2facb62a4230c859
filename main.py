#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - Точка входа
Запуск HTTP API через uvicorn

Версия: 1.0.0
Дата: 2025-11-02
"""

import argparse
import logging

import uvicorn

from dashboard.config import get_settings
from utils.logger import setup_logger

logger = logging.getLogger(__name__)

def run_api(host: str, port: int, reload: bool = False) -> None:
    """Запуск API"""
    settings = get_settings()
    setup_logger(str(settings.log_file), settings.LOG_LEVEL)

    logger.info(f"🌐 Запуск {settings.APP_NAME} на http://{host}:{port}")
    logger.info(f"💾 Хранилище: {settings.STORAGE_BACKEND} ({settings.DATA_DIR})")
    logger.info(f"🕐 Часовой пояс: {settings.TIMEZONE}")

    try:
        uvicorn.run(
            "dashboard.app:create_app",
            factory=True,
            host=host,
            port=port,
            reload=reload,
            log_level="debug" if settings.DEBUG else "info",
            access_log=False,
            server_header=False
        )
    except KeyboardInterrupt:
        logger.info("👋 API остановлен")

def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(description='Запуск ContraVault API')
    parser.add_argument('--host', default=settings.HOST, help='Host для запуска')
    parser.add_argument('--port', type=int, default=settings.PORT, help='Port для запуска')
    parser.add_argument('--reload', action='store_true', help='Автоперезагрузка')
    args = parser.parse_args()

    run_api(args.host, args.port, reload=args.reload)

if __name__ == "__main__":
    main()
