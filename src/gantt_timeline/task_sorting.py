from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable

from .hours import logged_hours
from .timeline_models import Task


def sort_tasks_by_date(tasks: Iterable[Task], ascending: bool = True) -> list[Task]:
    """
    Order tasks by end date, placing open-ended tasks after dated ones.

    Open-ended tasks compare on their start date; ties fall back to the
    start date. Descending order reverses every comparison, so open-ended
    tasks come first.
    """

    sign = 1 if ascending else -1

    def compare(a: Task, b: Task) -> int:
        if a.end is not None and b.end is None:
            return -sign
        if a.end is None and b.end is not None:
            return sign
        a_key = a.end if a.end is not None else a.start
        b_key = b.end if b.end is not None else b.start
        if a_key != b_key:
            return sign * (-1 if a_key < b_key else 1)
        if a.start != b.start:
            return sign * (-1 if a.start < b.start else 1)
        return 0

    return sorted(tasks, key=cmp_to_key(compare))


def sort_tasks_by_start_date(tasks: Iterable[Task], ascending: bool = True) -> list[Task]:
    return _stable_sort(tasks, key=lambda task: task.start, ascending=ascending)


def sort_tasks_by_hours(tasks: Iterable[Task], ascending: bool = True) -> list[Task]:
    """Order tasks by total logged hours."""
    return _stable_sort(tasks, key=logged_hours, ascending=ascending)


def _stable_sort(tasks: Iterable[Task], key, ascending: bool) -> list[Task]:
    # reverse=True keeps equal keys in input order, matching an ascending stable sort.
    return sorted(tasks, key=key, reverse=not ascending)
