"""Tests for day windows and duration formatting."""

from datetime import datetime

from usagetrail.timeutils import (
    DAY_MS,
    HOUR_MS,
    MINUTE_MS,
    calculate_session_gap,
    end_of_day_ms,
    format_duration,
    format_duration_short,
    iter_days,
    ms_to_hours,
    ms_to_minutes,
    ms_to_seconds,
    parse_day,
    start_of_day_days_ago,
    start_of_day_ms,
)


def local_fields(ts_ms):
    dt = datetime.fromtimestamp(ts_ms / 1000)
    return dt.hour, dt.minute, dt.second, dt.microsecond


def test_start_of_day_is_local_midnight(fake_clock):
    start = start_of_day_ms(fake_clock())
    assert local_fields(start) == (0, 0, 0, 0)
    assert start <= fake_clock() < start + 25 * HOUR_MS


def test_end_of_day(fake_clock):
    end = end_of_day_ms(fake_clock())
    assert local_fields(end) == (23, 59, 59, 999000)
    assert end >= fake_clock()


def test_start_of_day_days_ago(fake_clock):
    today = start_of_day_ms(fake_clock())
    assert start_of_day_days_ago(0, fake_clock()) == today
    yesterday = start_of_day_days_ago(1, fake_clock())
    assert local_fields(yesterday) == (0, 0, 0, 0)
    assert 23 * HOUR_MS <= today - yesterday <= 25 * HOUR_MS


def test_parse_day():
    ts = parse_day("2024-03-05")
    dt = datetime.fromtimestamp(ts / 1000)
    assert (dt.year, dt.month, dt.day) == (2024, 3, 5)
    assert local_fields(ts) == (0, 0, 0, 0)


def test_iter_days():
    assert iter_days(0, 2) == [(0, DAY_MS), (DAY_MS, 2 * DAY_MS)]
    assert iter_days(0, 0) == []


def test_format_duration():
    assert format_duration(HOUR_MS + 5 * MINUTE_MS + 30_000) == "1h 5m"
    assert format_duration(3 * MINUTE_MS + 12_000) == "3m 12s"
    assert format_duration(45_000) == "45s"
    assert format_duration(0) == "0s"


def test_format_duration_short():
    assert format_duration_short(90 * MINUTE_MS) == "1.5h"
    assert format_duration_short(12 * MINUTE_MS) == "12m"
    assert format_duration_short(30_000) == "30s"


def test_conversions():
    assert ms_to_seconds(1500) == 1.5
    assert ms_to_minutes(90_000) == 1.5
    assert ms_to_hours(5_400_000) == 1.5


def test_session_gap():
    assert calculate_session_gap(1000, 4000) == 3000
    assert calculate_session_gap(4000, 1000) == 0
