from __future__ import annotations

import logging
from importlib import metadata
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from .compositor import HEADER_HEIGHT, to_draw_commands
from .hours import date_range_label, hours_label
from .timeline_models import ChartLayout, DrawCommand, Task

logger = logging.getLogger(__name__)

DPI = 100
SIDEBAR_WIDTH = 220.0
SIDEBAR_PAD = 8.0
TITLE_HEIGHT = 36.0
FOOTER_HEIGHT = 20.0
FONT_SCALE = 1.0
TITLE_FONT = 14 * FONT_SCALE
LABEL_FONT = 9 * FONT_SCALE
DETAIL_FONT = 7 * FONT_SCALE
FOOTER_FONT = 7 * FONT_SCALE
TICK_FONT = 8 * FONT_SCALE
GRID_COLOR = "#e5e7eb"
TEXT_COLOR = "#111827"
MUTED_COLOR = "#6b7280"


def render_chart(layout: ChartLayout, out_path: str, title: str = "") -> None:
    """
    Render a layout to an SVG file at `out_path`.

    - Header strip above the rows, task sidebar to the left of the timeline.
    - Background bands under bars; bars carry `task-<id>` SVG ids for click wiring.
    - Empty layouts render the placeholder message only.
    """

    commands = to_draw_commands(layout)
    body_height = max(layout.height, layout.row_height)
    top = -(HEADER_HEIGHT + TITLE_HEIGHT)
    bottom = body_height + FOOTER_HEIGHT
    total_width = SIDEBAR_WIDTH + layout.width

    fig = plt.figure(figsize=(total_width / DPI, (bottom - top) / DPI), dpi=DPI)
    # One axis spanning the whole figure, one data unit per pixel, y growing down.
    ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
    ax.set_xlim(-SIDEBAR_WIDTH, layout.width)
    ax.set_ylim(bottom, top)
    ax.axis("off")

    ax.text(
        layout.width / 2,
        top + TITLE_HEIGHT / 2,
        title,
        ha="center",
        va="center",
        fontsize=TITLE_FONT,
        color=TEXT_COLOR,
    )
    ax.text(
        layout.width - SIDEBAR_PAD,
        bottom - FOOTER_HEIGHT / 2,
        f"gantt-timeline v{_tool_version()}",
        ha="right",
        va="center",
        fontsize=FOOTER_FONT,
        color=MUTED_COLOR,
        alpha=0.8,
    )

    if layout.is_empty:
        logger.debug("Rendering empty-chart placeholder")
    else:
        _draw_grid(ax, layout, body_height)
        _draw_sidebar(ax, layout.tasks, layout.row_height)

    bar_patches: dict[str, Rectangle] = {}
    for command in commands:
        y_offset = -HEADER_HEIGHT if command.surface == "header" else 0.0
        if command.kind == "rect":
            patch = _draw_rect(ax, command, y_offset)
            if command.interactive and command.task_id is not None:
                bar_patches[command.task_id] = patch
        elif command.kind == "text":
            _draw_text(ax, command, y_offset, bar_patches.get(command.task_id or ""))
        else:
            raise ValueError(f"Unsupported draw command kind: {command.kind}")

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, format="svg")
    plt.close(fig)
    logger.debug("Wrote %d draw commands to %s", len(commands), out_path)


def _draw_rect(ax: plt.Axes, command: DrawCommand, y_offset: float) -> Rectangle:
    patch = Rectangle(
        (command.x, command.y + y_offset),
        command.width,
        command.height,
        facecolor=command.fill or "none",
        edgecolor=GRID_COLOR if command.surface == "header" else "none",
        linewidth=0.5,
        alpha=command.alpha,
        zorder=command.layer,
    )
    if command.interactive and command.task_id is not None:
        patch.set_gid(f"task-{command.task_id}")
    ax.add_patch(patch)
    return patch


def _draw_text(ax: plt.Axes, command: DrawCommand, y_offset: float, clip: Rectangle | None) -> None:
    centered = command.role in ("header-label", "placeholder")
    text = ax.text(
        command.x,
        command.y + y_offset,
        command.label or "",
        ha="center" if centered else "left",
        va="center",
        fontsize=TICK_FONT if command.surface == "header" else LABEL_FONT,
        color="#ffffff" if command.role == "task-bar-label" else TEXT_COLOR,
        zorder=command.layer + 0.5,
    )
    if clip is not None:
        text.set_clip_path(clip)


def _draw_grid(ax: plt.Axes, layout: ChartLayout, body_height: float) -> None:
    for index in range(len(layout.tasks) + 1):
        y = index * layout.row_height
        ax.plot([-SIDEBAR_WIDTH, layout.width], [y, y], color=GRID_COLOR, linewidth=0.5, zorder=0)
    for tick in layout.headers:
        ax.plot([tick.x, tick.x], [-HEADER_HEIGHT, body_height], color=GRID_COLOR, linewidth=0.5, zorder=0)
    ax.plot([0, 0], [-HEADER_HEIGHT, body_height], color=MUTED_COLOR, linewidth=0.8, zorder=0)


def _draw_sidebar(ax: plt.Axes, tasks: tuple[Task, ...], row_height: float) -> None:
    ax.text(
        -SIDEBAR_WIDTH + SIDEBAR_PAD,
        -HEADER_HEIGHT / 2,
        "Tasks",
        ha="left",
        va="center",
        fontsize=LABEL_FONT,
        fontweight="bold",
        color=TEXT_COLOR,
    )
    for index, task in enumerate(tasks):
        y = index * row_height
        x = -SIDEBAR_WIDTH + SIDEBAR_PAD
        ax.text(x, y + row_height * 0.22, task.name, ha="left", va="center", fontsize=LABEL_FONT, color=TEXT_COLOR)
        detail = hours_label(task)
        if task.assignee:
            detail += f"  {task.assignee}"
        ax.text(x, y + row_height * 0.5, detail, ha="left", va="center", fontsize=DETAIL_FONT, color=MUTED_COLOR)
        ax.text(
            x,
            y + row_height * 0.76,
            date_range_label(task),
            ha="left",
            va="center",
            fontsize=DETAIL_FONT,
            color=MUTED_COLOR,
            fontstyle="italic" if task.end is None else "normal",
        )


def _tool_version() -> str:
    try:
        return metadata.version("gantt-timeline")
    except metadata.PackageNotFoundError:
        return "0.0.0"
