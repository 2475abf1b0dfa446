from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Iterator

from dateutil.relativedelta import relativedelta

from .timeline_models import HeaderTick, TimeWindow, ViewSpec
from .timeline_window import pixels_per_day, window_days

# Fixed English abbreviations so labels do not depend on the process locale.
WEEKDAY_ABBR = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class HeaderSequence:
    """
    Finite, restartable sequence of header ticks.

    Ticks are computed on iteration; every `iter()` starts from the first
    tick again.
    """

    granularity: str
    window: TimeWindow
    container_width: float

    def __iter__(self) -> Iterator[HeaderTick]:
        days = window_days(self.window)
        count = self._tick_count(days)
        if count == 0:
            return
        if self.granularity == "day":
            yield from self._hours(count)
        elif self.granularity == "week":
            yield from self._days(count, pixels_per_day(self.container_width, days), _weekday_label)
        elif self.granularity == "month":
            yield from self._weeks(count)
        elif self.granularity == "quarter":
            yield from self._months(count)
        else:
            yield from self._days(count, pixels_per_day(self.container_width, days), _month_day_label)

    def __len__(self) -> int:
        return self._tick_count(window_days(self.window))

    def _tick_count(self, days: int) -> int:
        if self.granularity == "day":
            return 24
        if self.granularity == "week":
            return 7
        if self.granularity == "month":
            return math.ceil(days / 7)
        if self.granularity == "quarter":
            return 3
        return days

    def _hours(self, count: int) -> Iterator[HeaderTick]:
        width = self.container_width / count
        for hour in range(count):
            yield HeaderTick(
                instant=self.window.start + dt.timedelta(hours=hour),
                label=f"{hour}:00",
                x=hour * width,
                width=width,
            )

    def _days(self, count: int, width: float, label) -> Iterator[HeaderTick]:
        for index in range(count):
            instant = self.window.start + dt.timedelta(days=index)
            yield HeaderTick(instant=instant, label=label(instant), x=index * width, width=width)

    def _weeks(self, count: int) -> Iterator[HeaderTick]:
        width = self.container_width / count
        for index in range(count):
            yield HeaderTick(
                instant=self.window.start + dt.timedelta(days=index * 7),
                label=f"Week {index + 1}",
                x=index * width,
                width=width,
            )

    def _months(self, count: int) -> Iterator[HeaderTick]:
        width = self.container_width / count
        for index in range(count):
            instant = self.window.start + relativedelta(months=index)
            yield HeaderTick(
                instant=instant,
                label=MONTH_ABBR[instant.month - 1],
                x=index * width,
                width=width,
            )


def generate_headers(view: ViewSpec, window: TimeWindow, container_width: float) -> HeaderSequence:
    """Header ticks for `view` laid across `container_width` pixels of `window`."""
    return HeaderSequence(view.granularity, window, container_width)


def is_weekend(instant: dt.datetime) -> bool:
    return instant.weekday() >= 5


def _weekday_label(instant: dt.datetime) -> str:
    return f"{WEEKDAY_ABBR[instant.weekday()]} {instant.day}"


def _month_day_label(instant: dt.datetime) -> str:
    return f"{MONTH_ABBR[instant.month - 1]} {instant.day}"
