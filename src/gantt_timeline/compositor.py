from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Iterable

from .headers import generate_headers, is_weekend
from .hours import bar_tooltip, progress_fraction
from .task_layout import ROW_HEIGHT, position_task
from .timeline_models import (
    Band,
    ChartLayout,
    DrawCommand,
    HeaderTick,
    Project,
    Task,
    TaskBarGeometry,
    TimeWindow,
    VacationRange,
    ViewSpec,
)
from .timeline_window import ONE_DAY, days_between, midnight, pixels_per_day, resolve_window, window_days

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1000.0
DEFAULT_TASK_COLOR = "#f97316"
WEEKEND_COLOR = "#f9fafb"
VACATION_COLOR = "#3b82f6"
VACATION_ALPHA = 0.2
PROGRESS_COLOR = "#ffffff"
PROGRESS_ALPHA = 0.3
LABEL_PAD = 6.0
HEADER_HEIGHT = 30.0
EMPTY_MESSAGE = "No tasks available. Create a project and add tasks to see them here."

LayoutListener = Callable[[ChartLayout], None]


def flatten_projects(projects: Iterable[Project]) -> tuple[Task, ...]:
    """All tasks of all projects, in project order then task order."""
    return tuple(task for project in projects for task in project.tasks)


def compose_chart(
    tasks: Iterable[Task],
    view: ViewSpec,
    container_width: float,
    now: dt.datetime,
    vacations: Iterable[VacationRange] = (),
    row_height: float = ROW_HEIGHT,
) -> ChartLayout:
    """
    Run one full layout pass: window, scale, headers, bars and background bands.

    Each task owns the row at its input position, whether or not it is
    visible, so rows never shift when tasks scroll out of the window.
    """

    task_list = tuple(tasks)
    window = resolve_window(view, now)
    days = window_days(window)
    scale = pixels_per_day(container_width, days)
    logger.debug(
        "Layout %s window %s..%s: %d days, %.2f px/day, %d tasks",
        view.granularity,
        window.start,
        window.end,
        days,
        scale,
        len(task_list),
    )

    if not task_list:
        return ChartLayout(window=window, width=container_width, pixels_per_day=scale, row_height=row_height)

    headers = tuple(generate_headers(view, window, container_width))

    bars: list[TaskBarGeometry] = []
    for row_index, task in enumerate(task_list):
        bar = position_task(task, window.start, window.end, scale, row_index, row_height)
        if bar is None:
            logger.debug("Task %s lies outside the window", task.id)
            continue
        bars.append(bar)

    bands = weekend_bands(headers) + vacation_bands(vacations, window, scale)

    return ChartLayout(
        window=window,
        width=container_width,
        pixels_per_day=scale,
        headers=headers,
        bars=tuple(bars),
        bands=bands,
        tasks=task_list,
        row_height=row_height,
    )


def weekend_bands(headers: Iterable[HeaderTick]) -> tuple[Band, ...]:
    """One band under every header tick that starts on a Saturday or Sunday."""
    return tuple(Band(kind="weekend", x=tick.x, width=tick.width) for tick in headers if is_weekend(tick.instant))


def clip_vacation(vacation: VacationRange, window: TimeWindow) -> tuple[dt.datetime, dt.datetime] | None:
    """
    Whole-day cover of a vacation clipped to the window, or None without overlap.

    A vacation runs from midnight of its first day to midnight after its last day.
    """

    start = midnight(vacation.start)
    end = midnight(vacation.end) + ONE_DAY
    if start > window.end or end < window.start:
        return None
    return max(start, window.start), min(end, window.end)


def vacation_bands(
    vacations: Iterable[VacationRange], window: TimeWindow, scale: float
) -> tuple[Band, ...]:
    bands: list[Band] = []
    for vacation in vacations:
        clipped = clip_vacation(vacation, window)
        if clipped is None:
            continue
        start, end = clipped
        if end <= start:
            continue
        bands.append(
            Band(
                kind="vacation",
                x=days_between(window.start, start) * scale,
                width=days_between(start, end) * scale,
                label=(
                    f"Vacation: {vacation.user_email} "
                    f"({vacation.start:%Y-%m-%d} - {vacation.end:%Y-%m-%d})"
                ),
            )
        )
    return tuple(bands)


def hit_test(layout: ChartLayout, x: float, y: float) -> Task | None:
    """Task whose bar contains the point; background bands never match."""
    for bar in reversed(layout.bars):
        if bar.x <= x < bar.x + bar.width and bar.y <= y < bar.y + bar.height:
            return bar.task
    return None


def to_draw_commands(layout: ChartLayout) -> tuple[DrawCommand, ...]:
    """
    Map a layout to ordered draw primitives.

    Header commands live on the "header" surface, everything else on the
    "body" surface whose height is the number of task rows times the row height.
    """

    if layout.is_empty:
        return (
            DrawCommand(
                kind="text",
                layer=0,
                x=layout.width / 2,
                y=layout.row_height / 2,
                label=EMPTY_MESSAGE,
                role="placeholder",
            ),
        )

    commands: list[DrawCommand] = []
    for tick in layout.headers:
        weekend = is_weekend(tick.instant)
        commands.append(
            DrawCommand(
                kind="rect",
                layer=0,
                x=tick.x,
                y=0.0,
                width=tick.width,
                height=HEADER_HEIGHT,
                fill=WEEKEND_COLOR if weekend else None,
                role="header-cell weekend" if weekend else "header-cell",
                surface="header",
            )
        )
        commands.append(
            DrawCommand(
                kind="text",
                layer=1,
                x=tick.x + tick.width / 2,
                y=HEADER_HEIGHT / 2,
                label=tick.label,
                role="header-label",
                surface="header",
            )
        )

    for band in layout.bands:
        weekend = band.kind == "weekend"
        commands.append(
            DrawCommand(
                kind="rect",
                layer=0,
                x=band.x,
                y=0.0,
                width=band.width,
                height=layout.height,
                fill=WEEKEND_COLOR if weekend else VACATION_COLOR,
                alpha=1.0 if weekend else VACATION_ALPHA,
                role=f"{band.kind}-background",
                tooltip=band.label,
            )
        )

    for bar in layout.bars:
        task = bar.task
        commands.append(
            DrawCommand(
                kind="rect",
                layer=1,
                x=bar.x,
                y=bar.y,
                width=bar.width,
                height=bar.height,
                fill=task.color or DEFAULT_TASK_COLOR,
                task_id=task.id,
                interactive=True,
                role=f"task-bar status-{task.status}",
                tooltip=bar_tooltip(task),
            )
        )
        fraction = progress_fraction(task)
        if fraction is not None:
            commands.append(
                DrawCommand(
                    kind="rect",
                    layer=2,
                    x=bar.x,
                    y=bar.y,
                    width=bar.width * fraction,
                    height=bar.height,
                    fill=PROGRESS_COLOR,
                    alpha=PROGRESS_ALPHA,
                    task_id=task.id,
                    role="task-progress",
                )
            )
        commands.append(
            DrawCommand(
                kind="text",
                layer=2,
                x=bar.x + LABEL_PAD,
                y=bar.y + bar.height / 2,
                label=task.name,
                task_id=task.id,
                role="task-bar-label",
            )
        )

    return tuple(sorted(commands, key=lambda command: (command.surface != "header", command.layer)))


class TimelineSession:
    """
    Host-side driver that re-runs the layout whenever its inputs change.

    The session keeps only its inputs and the most recent layout, which is
    replaced wholesale on every pass. Listeners receive each new layout;
    `click` forwards the id of the task under the pointer.
    """

    def __init__(
        self,
        view: ViewSpec,
        tasks: Iterable[Task] = (),
        vacations: Iterable[VacationRange] = (),
        width: float = DEFAULT_WIDTH,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
        row_height: float = ROW_HEIGHT,
        on_task_click: Callable[[str], None] | None = None,
    ) -> None:
        self._view = view
        self._tasks = tuple(tasks)
        self._vacations = tuple(vacations)
        self._width = width
        self._clock = clock
        self._row_height = row_height
        self._on_task_click = on_task_click
        self._listeners: list[LayoutListener] = []
        self.layout = self._compose()

    @property
    def width(self) -> float:
        return self._width

    def subscribe(self, listener: LayoutListener) -> Callable[[], None]:
        """Register a listener; the returned callable unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def resize(self, width: float) -> ChartLayout:
        """Report a new measured container width; unchanged widths do nothing."""
        if width == self._width:
            return self.layout
        logger.debug("Container resized %s -> %s px", self._width, width)
        self._width = width
        return self._relayout()

    def set_view(self, view: ViewSpec) -> ChartLayout:
        self._view = view
        return self._relayout()

    def set_tasks(self, tasks: Iterable[Task]) -> ChartLayout:
        self._tasks = tuple(tasks)
        return self._relayout()

    def set_projects(self, projects: Iterable[Project]) -> ChartLayout:
        return self.set_tasks(flatten_projects(projects))

    def set_vacations(self, vacations: Iterable[VacationRange]) -> ChartLayout:
        self._vacations = tuple(vacations)
        return self._relayout()

    def refresh(self) -> ChartLayout:
        """Re-run the layout against the current clock."""
        return self._relayout()

    def click(self, x: float, y: float) -> str | None:
        task = hit_test(self.layout, x, y)
        if task is None:
            return None
        if self._on_task_click is not None:
            self._on_task_click(task.id)
        return task.id

    def _compose(self) -> ChartLayout:
        return compose_chart(
            self._tasks,
            self._view,
            self._width,
            self._clock(),
            vacations=self._vacations,
            row_height=self._row_height,
        )

    def _relayout(self) -> ChartLayout:
        self.layout = self._compose()
        for listener in list(self._listeners):
            listener(self.layout)
        return self.layout
