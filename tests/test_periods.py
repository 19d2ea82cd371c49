"""Reporting window resolution."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytest

from fulfillment.core.errors import InvalidRange, ValidationError
from fulfillment.services.periods import Period, Window, resolve_window

NOW = datetime(2024, 3, 31, 15, 30, tzinfo=timezone.utc)


def test_today_covers_the_whole_calendar_day():
    window = resolve_window("today", now=NOW)
    assert window.start == datetime(2024, 3, 31, tzinfo=timezone.utc)
    assert window.end.date() == date(2024, 3, 31)
    assert window.end.time() == time.max


@pytest.mark.parametrize(
    "period,first_day",
    [
        (Period.WEEK, date(2024, 3, 24)),
        (Period.MONTH, date(2024, 2, 29)),
        (Period.YEAR, date(2023, 3, 31)),
    ],
)
def test_rolling_windows_end_today(period, first_day):
    window = resolve_window(period, now=NOW)
    assert window.start.date() == first_day
    assert window.end.date() == NOW.date()


def test_custom_range_includes_both_end_dates():
    window = resolve_window("custom", start=date(2024, 1, 1), end=date(2024, 1, 1))
    assert window.start.date() == window.end.date() == date(2024, 1, 1)
    assert window.length > timedelta(hours=23)


def test_custom_range_end_before_start_fails_fast():
    with pytest.raises(InvalidRange):
        resolve_window("custom", start=date(2024, 1, 1), end=date(2023, 12, 31))


@pytest.mark.parametrize("start,end", [(None, date(2024, 1, 1)), (date(2024, 1, 1), None), (None, None)])
def test_custom_range_needs_both_bounds(start, end):
    with pytest.raises(InvalidRange):
        resolve_window("custom", start=start, end=end)


def test_unknown_period():
    with pytest.raises(ValidationError, match="Unknown period"):
        resolve_window("fortnight", now=NOW)


def test_business_timezone_shifts_day_bounds():
    window = resolve_window("today", now=NOW, tz_name="Asia/Dubai")
    assert window.start.utcoffset() == timedelta(hours=4)
    assert window.start.astimezone(timezone.utc) == datetime(2024, 3, 30, 20, tzinfo=timezone.utc)


def test_preceding_window_has_same_length_and_touches_start():
    window = Window(
        start=datetime(2024, 3, 1, tzinfo=timezone.utc),
        end=datetime(2024, 3, 10, 23, 59, 59, 999999, tzinfo=timezone.utc),
    )
    previous = window.preceding()
    assert previous.length == window.length
    assert previous.end == window.start - timedelta(microseconds=1)
    assert previous.start == datetime(2024, 2, 20, tzinfo=timezone.utc)
