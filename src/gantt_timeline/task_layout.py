from __future__ import annotations

import datetime as dt
import math

from .timeline_models import Task, TaskBarGeometry
from .timeline_window import days_between

HOURS_PER_DAY = 8
OPEN_ENDED_DAYS = 7
MIN_BAR_WIDTH = 50.0
ROW_HEIGHT = 60.0
ROW_GUTTER = 10.0


def effective_end(task: Task) -> dt.datetime:
    """
    End instant used for layout.

    Open-ended tasks get ceil(estimated_hours / 8) days when an estimate
    exists and a flat week otherwise.
    """

    if task.end is not None:
        return task.end
    if task.estimated_hours:
        days = math.ceil(task.estimated_hours / HOURS_PER_DAY)
    else:
        days = OPEN_ENDED_DAYS
    return task.start + dt.timedelta(days=days)


def position_task(
    task: Task,
    window_start: dt.datetime,
    window_end: dt.datetime,
    pixels_per_day: float,
    row_index: int,
    row_height: float = ROW_HEIGHT,
) -> TaskBarGeometry | None:
    """
    Compute the bar for `task`, or None when it lies wholly outside the window.

    Both window bounds are inclusive for the visibility test. The bar is
    clipped to the window and never narrower than MIN_BAR_WIDTH. An end
    before the start is not rejected here.
    """

    end = effective_end(task)
    if end < window_start or task.start > window_end:
        return None

    clipped_start = max(task.start, window_start)
    clipped_end = min(end, window_end)

    x = days_between(window_start, clipped_start) * pixels_per_day
    width = max(days_between(clipped_start, clipped_end) * pixels_per_day, MIN_BAR_WIDTH)

    return TaskBarGeometry(
        task=task,
        x=x,
        width=width,
        y=row_index * row_height,
        height=row_height - ROW_GUTTER,
    )
