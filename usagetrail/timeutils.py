"""Time utilities for day windows and duration formatting."""

import time
from datetime import datetime, timedelta
from typing import Optional

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


def now_ms() -> int:
    """Get current UTC milliseconds timestamp."""
    return int(time.time() * 1000)


def _local(ts_ms: int) -> datetime:
    return datetime.fromtimestamp(ts_ms / 1000).astimezone()


def _to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def start_of_day_ms(ts_ms: Optional[int] = None) -> int:
    """Local midnight of the day containing ``ts_ms`` (now by default)."""
    if ts_ms is None:
        ts_ms = now_ms()
    dt = _local(ts_ms).replace(hour=0, minute=0, second=0, microsecond=0)
    return _to_ms(dt)


def end_of_day_ms(ts_ms: Optional[int] = None) -> int:
    """Last millisecond of the local day containing ``ts_ms``."""
    if ts_ms is None:
        ts_ms = now_ms()
    dt = _local(ts_ms).replace(hour=23, minute=59, second=59, microsecond=999000)
    return _to_ms(dt)


def start_of_day_days_ago(days_ago: int, ts_ms: Optional[int] = None) -> int:
    """Local midnight ``days_ago`` calendar days before the day of ``ts_ms``."""
    if ts_ms is None:
        ts_ms = now_ms()
    dt = _local(ts_ms).replace(hour=0, minute=0, second=0, microsecond=0)
    dt = (dt - timedelta(days=days_ago)).replace(tzinfo=None).astimezone()
    return _to_ms(dt)


def iter_days(start_day_ms: int, number_of_days: int) -> list[tuple[int, int]]:
    """Consecutive half-open 24h windows starting at ``start_day_ms``."""
    return [
        (start_day_ms + i * DAY_MS, start_day_ms + (i + 1) * DAY_MS)
        for i in range(max(0, number_of_days))
    ]


def parse_day(value: str) -> int:
    """Parse ``YYYY-MM-DD`` into the local midnight of that day."""
    dt = datetime.strptime(value, "%Y-%m-%d").astimezone()
    return _to_ms(dt)


def format_duration(duration_ms: int) -> str:
    """Format a duration as ``1h 5m``, ``3m 12s`` or ``45s``."""
    hours = duration_ms // HOUR_MS
    minutes = (duration_ms // MINUTE_MS) % 60
    seconds = (duration_ms // SECOND_MS) % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_duration_short(duration_ms: int) -> str:
    """Format a duration for compact display (``1.5h``, ``12m``, ``30s``)."""
    hours = duration_ms / HOUR_MS
    minutes = duration_ms / MINUTE_MS

    if hours >= 1:
        return f"{hours:.1f}h"
    if minutes >= 1:
        return f"{round(minutes)}m"
    return f"{round(duration_ms / SECOND_MS)}s"


def format_date(ts_ms: int) -> str:
    return _local(ts_ms).strftime("%b %d, %Y")


def format_time(ts_ms: int) -> str:
    return _local(ts_ms).strftime("%H:%M")


def format_datetime(ts_ms: int) -> str:
    return _local(ts_ms).strftime("%b %d, %Y %H:%M")


def ms_to_seconds(ms: int) -> float:
    return ms / SECOND_MS


def ms_to_minutes(ms: int) -> float:
    return ms / MINUTE_MS


def ms_to_hours(ms: int) -> float:
    return ms / HOUR_MS


def calculate_session_gap(first_end_ms: int, second_start_ms: int) -> int:
    """Idle gap between two sessions, never negative."""
    return max(0, second_start_ms - first_end_ms)
