# tests/test_datetime_utils.py

from datetime import date, datetime

import pytest

from utils.datetime_utils import (
    parse_deadline, minute_window, local_date, format_deadline, days_between
)

from .helpers import utc


def test_parse_deadline_normalizes_to_utc_millis() -> None:
    parsed = parse_deadline("2024-01-10T13:30:05.123456+03:00")

    assert parsed == utc(2024, 1, 10, 10, 30, 5, 123000)
    assert parsed.utcoffset().total_seconds() == 0


def test_parse_naive_deadline_uses_timezone() -> None:
    assert parse_deadline("2024-07-01T09:00:00", "Europe/Moscow") == utc(2024, 7, 1, 6)
    assert parse_deadline(datetime(2024, 7, 1, 9, 0)) == utc(2024, 7, 1, 9)


@pytest.mark.parametrize("value", ["", "   ", "tomorrow", None, 42])
def test_parse_deadline_rejects_garbage(value) -> None:
    with pytest.raises((ValueError, TypeError)):
        parse_deadline(value)


def test_minute_window_is_half_open() -> None:
    start, end = minute_window(utc(2024, 1, 10, 10, 30, 59, 999000))

    assert start == utc(2024, 1, 10, 10, 30)
    assert end == utc(2024, 1, 10, 10, 31)


def test_local_date_and_format_follow_timezone() -> None:
    late = utc(2024, 1, 10, 22, 30)

    assert local_date(late, "UTC") == date(2024, 1, 10)
    assert local_date(late, "Asia/Tokyo") == date(2024, 1, 11)
    assert format_deadline(late, "Asia/Tokyo") == "2024-01-11 07:30"


def test_days_between() -> None:
    assert days_between(date(2024, 2, 28), date(2024, 3, 1)) == 2
