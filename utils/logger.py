import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(log_file: Optional[str] = "logs/contravault.log", level: str = "INFO",
                 max_bytes: int = 10_000_000, backup_count: int = 5,
                 fmt: str = LOG_FORMAT):
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Повторный вызов не должен дублировать обработчики
    for handler in list(logger.handlers):
        if getattr(handler, "_contravault", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(fmt, datefmt=LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console._contravault = True
    logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(exist_ok=True, parents=True)
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        handler.setFormatter(formatter)
        handler._contravault = True
        logger.addHandler(handler)

    # Отключаем избыточные логи
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
    return logger
