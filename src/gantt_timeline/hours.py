from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from typing import Iterable

from .task_layout import effective_end
from .timeline_models import Project, Task

SUMMARY_COLOR = "#f97316"


@dataclass(frozen=True)
class AssigneeSummary:
    """Total logged hours of one assignee across every project."""

    assignee: str
    total_hours: float
    tasks: tuple[Task, ...]


def logged_hours(task: Task) -> float:
    return sum(entry.hours for entry in task.time_entries)


def progress_fraction(task: Task) -> float | None:
    """Logged over estimated hours capped at 1.0; None when there is nothing to show."""
    if not task.estimated_hours or task.estimated_hours <= 0 or not task.time_entries:
        return None
    return min(logged_hours(task) / task.estimated_hours, 1.0)


def hours_label(task: Task) -> str:
    label = f"{_format_hours(logged_hours(task))}h"
    if task.estimated_hours:
        label += f" / {_format_hours(task.estimated_hours)}h"
    return label


def date_range_label(task: Task) -> str:
    start = task.start.strftime("%Y-%m-%d %H:%M")
    if task.end is None:
        return f"{start} - No end date"
    return f"{start} - {task.end.strftime('%Y-%m-%d %H:%M')}"


def bar_tooltip(task: Task) -> str:
    tooltip = f"{task.name} - {hours_label(task)}"
    if task.end is None:
        tooltip += " (No end date)"
    return tooltip


def aggregate_hours_by_assignee(projects: Iterable[Project]) -> list[AssigneeSummary]:
    """
    Group tasks by assignee and sum their logged hours.

    Assignees are trimmed; tasks without one are ignored. The result is
    ordered by total hours, highest first.
    """

    grouped: dict[str, list[Task]] = {}
    for project in projects:
        for task in project.tasks:
            assignee = (task.assignee or "").strip()
            if not assignee:
                continue
            grouped.setdefault(assignee, []).append(task)

    summaries = [
        AssigneeSummary(
            assignee=assignee,
            total_hours=sum(logged_hours(task) for task in tasks),
            tasks=tuple(tasks),
        )
        for assignee, tasks in grouped.items()
    ]
    return sorted(summaries, key=lambda summary: summary.total_hours, reverse=True)


def summary_projects(projects: Iterable[Project], now: dt.datetime) -> list[Project]:
    """
    Build one synthetic project per assignee holding a single summary task.

    The summary task spans the assignee's earliest start to latest effective
    end; `now` is only used when an assignee has no tasks.
    """

    result: list[Project] = []
    for index, summary in enumerate(aggregate_hours_by_assignee(projects)):
        starts = [task.start for task in summary.tasks]
        ends = [effective_end(task) for task in summary.tasks]
        earliest = min(starts, default=now)
        latest = max(ends, default=now)

        slug = re.sub(r"\s+", "-", summary.assignee.lower())
        project_id = f"summary-{slug}-{index}"
        count = len(summary.tasks)
        total = _format_hours(summary.total_hours)
        task = Task(
            id=f"{project_id}-task",
            name=f"Total Hours: {total}h",
            description=(
                f"Summary of all hours worked by {summary.assignee} across "
                f"{count} task{'' if count == 1 else 's'}."
            ),
            start=earliest,
            end=latest,
            estimated_hours=summary.total_hours,
            status="completed",
            color=SUMMARY_COLOR,
            assignee=summary.assignee,
        )
        result.append(
            Project(
                id=project_id,
                name=f"Hours Summary: {summary.assignee}",
                description=f"Total hours: {total}h. This is an auto-generated summary project.",
                tasks=(task,),
                color=SUMMARY_COLOR,
            )
        )
    return result


def _format_hours(value: float) -> str:
    return f"{value:g}"
