# src/grand_prix/core/clock.py

"""Wall-clock helpers.

All timestamps are integer milliseconds since the epoch. Calendar logic
(day keys, week window) uses the process-local timezone, not UTC.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import date, datetime, timedelta

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


def _local(ts_ms: int) -> datetime:
    return datetime.fromtimestamp(ts_ms / 1000)


def _to_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def day_key(ts_ms: int) -> str:
    """Local calendar date of `ts_ms` as YYYY-MM-DD."""
    return _local(ts_ms).strftime("%Y-%m-%d")


def parse_day_key(key: str) -> date | None:
    try:
        return date.fromisoformat(key)
    except (TypeError, ValueError):
        return None


def day_start_ms(day: date) -> int:
    return _to_ms(datetime(day.year, day.month, day.day))


def week_window(ts_ms: int) -> tuple[int, int]:
    """
    Return (monday_start, saturday_end) in ms for the week containing `ts_ms`.

    Monday 00:00:00.000 through Saturday 23:59:59.999, local time.
    A Sunday belongs to the week that started six days earlier.
    """
    today = _local(ts_ms).date()
    monday = today - timedelta(days=today.weekday())
    saturday = monday + timedelta(days=5)
    start = datetime(monday.year, monday.month, monday.day)
    end = datetime(saturday.year, saturday.month, saturday.day, 23, 59, 59, 999000)
    return _to_ms(start), _to_ms(end)


def format_duration(ms: int | float | None) -> str:
    """Format milliseconds as mm:ss, or hh:mm:ss from one hour up."""
    if ms is None or ms != ms or ms < 0:
        return "00:00"
    total_seconds = int(ms // 1000)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def greeting_for(ts_ms: int) -> str:
    hour = _local(ts_ms).hour
    if hour < 12:
        return "Good morning"
    if hour < 18:
        return "Good afternoon"
    return "Good evening"
