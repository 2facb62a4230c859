# tests/helpers.py

from datetime import datetime
from typing import Any, Dict

import pytz


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0,
        second: int = 0, microsecond: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=pytz.utc)


def task_data(title: str = "Write report", deadline: Any = "2024-01-10T10:30:00Z",
              priority: str = "medium", **extra: Any) -> Dict[str, Any]:
    """Минимальный валидный ввод для create_task"""
    data = {
        "title": title,
        "description": f"{title} description",
        "deadline": deadline,
        "priority": priority,
    }
    data.update(extra)
    return data
