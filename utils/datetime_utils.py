from datetime import datetime, date, timedelta
from typing import Optional, Tuple, Union

import pytz

DEFAULT_TIMEZONE = "UTC"

def get_timezone(tz_name: Optional[str] = None):
    return pytz.timezone(tz_name or DEFAULT_TIMEZONE)

def now_utc() -> datetime:
    return datetime.now(pytz.utc)

def to_utc(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    """Наивное время считается локальным для tz_name"""
    if dt.tzinfo is None:
        dt = get_timezone(tz_name).localize(dt)
    return dt.astimezone(pytz.utc)

def truncate_to_millis(dt: datetime) -> datetime:
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)

def parse_deadline(value: Union[str, datetime], tz_name: Optional[str] = None) -> datetime:
    """Дедлайн из ISO-строки или datetime -> UTC с точностью до миллисекунд"""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    else:
        raise ValueError(f"Неверный формат даты: {value!r}")
    return truncate_to_millis(to_utc(dt, tz_name))

def truncate_to_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)

def minute_window(dt: datetime) -> Tuple[datetime, datetime]:
    """Полуинтервал [начало минуты, начало следующей минуты)"""
    start = truncate_to_minute(dt)
    return start, start + timedelta(minutes=1)

def local_date(dt: datetime, tz_name: Optional[str] = None) -> date:
    return to_utc(dt).astimezone(get_timezone(tz_name)).date()

def local_today(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> date:
    return local_date(now or now_utc(), tz_name)

def format_deadline(dt: datetime, tz_name: Optional[str] = None, fmt: str = "%Y-%m-%d %H:%M") -> str:
    return to_utc(dt).astimezone(get_timezone(tz_name)).strftime(fmt)

def days_between(earlier: date, later: date) -> int:
    return (later - earlier).days
