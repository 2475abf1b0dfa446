from __future__ import annotations

import datetime as dt

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from .timeline_models import TimeWindow, ViewSpec

ONE_DAY = dt.timedelta(days=1)
DERIVED_GRANULARITIES = ("day", "week", "month", "quarter")


def resolve_window(view: ViewSpec, now: dt.datetime) -> TimeWindow:
    """
    Compute the visible [start, end) range for a view.

    day/week/month/quarter track `now` and ignore the view's reference range.
    Any other granularity (including "year") returns the reference range
    verbatim.
    """

    if view.granularity == "day":
        start = midnight(now)
        return TimeWindow(start, start + ONE_DAY)
    if view.granularity == "week":
        start = week_start(now)
        return TimeWindow(start, start + dt.timedelta(days=7))
    if view.granularity == "month":
        start = midnight(now).replace(day=1)
        return TimeWindow(start, start + relativedelta(months=1))
    if view.granularity == "quarter":
        first_month = (now.month - 1) // 3 * 3 + 1
        start = midnight(now).replace(month=first_month, day=1)
        return TimeWindow(start, start + relativedelta(months=3))
    return TimeWindow(view.reference_start, view.reference_end)


def midnight(value: dt.datetime) -> dt.datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(value: dt.datetime) -> dt.datetime:
    """Midnight of the Monday on or before `value`; weeks always start on Monday."""
    return midnight(value) - dt.timedelta(days=value.weekday())


def as_instant(value: dt.date | dt.datetime) -> dt.datetime:
    """Promote a date to midnight; datetimes pass through unchanged."""
    if isinstance(value, dt.datetime):
        return value
    return dt.datetime(value.year, value.month, value.day)


def naive_local(value: dt.datetime) -> dt.datetime:
    """Convert aware timestamps to local wall-clock time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_instant(value: str) -> dt.datetime:
    """Parse an ISO 8601 date or timestamp into a naive local instant; raises ValueError."""
    return naive_local(isoparse(value))


def days_between(start: dt.datetime, end: dt.datetime) -> int:
    """Whole days separating two instants, partial days rounded up; order-insensitive."""
    delta = abs(end - start)
    return delta.days + (1 if delta.seconds or delta.microseconds else 0)


def window_days(window: TimeWindow) -> int:
    return days_between(window.start, window.end)


def pixels_per_day(container_width: float, total_days: int) -> float:
    """Horizontal scale; day counts below one are clamped to one."""
    return container_width / max(total_days, 1)
