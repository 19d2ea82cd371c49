"""Reporting windows: named periods, custom ranges and comparison windows."""

from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from fulfillment.core.errors import InvalidRange, ValidationError


class Period(str, enum.Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Window:
    """Closed interval ``[start, end]`` of timezone-aware datetimes."""

    start: datetime
    end: datetime

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def preceding(self) -> Window:
        """The window of identical length that ends just before this one starts."""
        previous_end = self.start - timedelta(microseconds=1)
        return Window(start=previous_end - self.length, end=previous_end)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops the offset on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_period(value: str | Period) -> Period:
    try:
        return Period(value)
    except ValueError:
        allowed = ", ".join(p.value for p in Period)
        raise ValidationError(f"Unknown period '{value}'. Expected one of: {allowed}")


def _shift_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _day_bounds(first: date, last: date, tz: ZoneInfo) -> Window:
    return Window(
        start=datetime.combine(first, time.min, tzinfo=tz),
        end=datetime.combine(last, time.max, tzinfo=tz),
    )


def resolve_window(
    period: str | Period,
    *,
    start: date | None = None,
    end: date | None = None,
    now: datetime | None = None,
    tz_name: str = "UTC",
) -> Window:
    """Resolve a named period (rolling, ending today) or a custom date range.

    Custom ranges include both end dates. A missing bound or an end before the
    start raises ``InvalidRange``.
    """
    period = parse_period(period)
    tz = ZoneInfo(tz_name)

    if period is Period.CUSTOM:
        if start is None or end is None:
            raise InvalidRange("A custom period needs both a start and an end date.")
        if end < start:
            raise InvalidRange(
                f"Invalid range: end date {end.isoformat()} is before start date {start.isoformat()}."
            )
        return _day_bounds(start, end, tz)

    current = (now or datetime.now(timezone.utc)).astimezone(tz)
    today = current.date()

    if period is Period.TODAY:
        first = today
    elif period is Period.WEEK:
        first = today - timedelta(days=7)
    elif period is Period.MONTH:
        first = _shift_months(today, -1)
    else:
        first = _shift_months(today, -12)

    return _day_bounds(first, today, tz)
