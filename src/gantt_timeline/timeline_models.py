from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal


Granularity = Literal["day", "week", "month", "quarter", "year"]
"""View granularities: hour, day, week and month ticks, then the caller-supplied range."""

TaskStatus = Literal["not-started", "in-progress", "completed", "on-hold"]

DrawKind = Literal["rect", "text"]

BandKind = Literal["weekend", "vacation"]


@dataclass(frozen=True)
class TimeWindow:
    """Visible [start, end) range of the timeline axis."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class ViewSpec:
    """
    Requested timeline view.

    The reference range is only used when the granularity is not one of
    day/week/month/quarter; those derive their window from the clock.
    """

    granularity: Granularity | str
    reference_start: datetime
    reference_end: datetime


@dataclass(frozen=True)
class TimeEntry:
    """Hours logged against a task on a given day."""

    date: date
    hours: float
    notes: str | None = None


@dataclass(frozen=True)
class Task:
    """Read-only task as supplied by the persistence collaborator."""

    id: str
    name: str
    start: datetime
    end: datetime | None = None
    estimated_hours: float | None = None
    status: TaskStatus = "not-started"
    color: str | None = None
    assignee: str | None = None
    description: str | None = None
    time_entries: tuple[TimeEntry, ...] = ()


@dataclass(frozen=True)
class Project:
    """Named group of tasks; projects are flattened in order for layout."""

    id: str
    name: str
    tasks: tuple[Task, ...] = ()
    color: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class VacationRange:
    """Approved absence of one user covering whole days from start to end inclusive."""

    user_email: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class TaskBarGeometry:
    """Pixel rectangle of one visible task bar."""

    task: Task
    x: float
    width: float
    y: float
    height: float


@dataclass(frozen=True)
class HeaderTick:
    """One labelled division of the header axis."""

    instant: datetime
    label: str
    x: float
    width: float


@dataclass(frozen=True)
class Band:
    """Full-height background band (weekend or vacation); never interactive."""

    kind: BandKind
    x: float
    width: float
    label: str | None = None


@dataclass(frozen=True)
class ChartLayout:
    """
    Result of one layout pass.

    All geometry lives in the same pixel space: x grows right from the
    window start, y grows down from the first task row.
    """

    window: TimeWindow
    width: float
    pixels_per_day: float
    headers: tuple[HeaderTick, ...] = ()
    bars: tuple[TaskBarGeometry, ...] = ()
    bands: tuple[Band, ...] = ()
    tasks: tuple[Task, ...] = ()
    row_height: float = 60.0

    @property
    def is_empty(self) -> bool:
        """True when no tasks were supplied; renderers show the placeholder."""
        return not self.tasks

    @property
    def height(self) -> float:
        """Total height of the task rows."""
        return len(self.tasks) * self.row_height


@dataclass(frozen=True)
class DrawCommand:
    """
    Render-agnostic primitive produced from a layout.

    Lower layers are drawn first. Only interactive commands should receive
    pointer events; they carry the task id to forward on click.
    """

    kind: DrawKind
    layer: int
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    fill: str | None = None
    alpha: float = 1.0
    label: str | None = None
    task_id: str | None = None
    interactive: bool = False
    role: str = ""
    tooltip: str | None = None
    surface: str = "body"
