from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
import webbrowser
from dataclasses import replace
from pathlib import Path
from typing import get_args

import yaml

from .compositor import compose_chart, flatten_projects
from .hours import summary_projects
from .parse_chart import ChartDocument, ChartValidationError, load_chart
from .render_chart import render_chart
from .task_sorting import sort_tasks_by_date, sort_tasks_by_hours, sort_tasks_by_start_date
from .timeline_models import Granularity, ViewSpec
from .timeline_window import DERIVED_GRANULARITIES, parse_instant

SORTERS = {
    "date": sort_tasks_by_date,
    "start": sort_tasks_by_start_date,
    "hours": sort_tasks_by_hours,
}


def _parse_now(value: str) -> dt.datetime:
    try:
        return parse_instant(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid instant '{value}', expected ISO format") from exc


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid width '{value}'") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"width must be positive, got {value}")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gantt-timeline",
        description="Gantt timeline renderer",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("chart", help="Path to chart YAML")
    parser.add_argument("--out", default="output/timeline.svg", help="Output SVG path")
    parser.add_argument(
        "--view",
        choices=list(get_args(Granularity)),
        help="Override the document's view granularity",
    )
    parser.add_argument("--width", type=_positive_float, help="Override the container width in pixels")
    parser.add_argument("--now", type=_parse_now, help="Reference instant (ISO); defaults to the current time")
    parser.add_argument("--sort", choices=["none", *SORTERS], default="none", help="Task row order")
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Render per-assignee hour summaries instead of the projects",
    )
    parser.add_argument("--title", help="Chart title; defaults to the chart file name")
    parser.add_argument(
        "--open",
        dest="open_output",
        action="store_true",
        default=False,
        help="Best-effort open the output file after rendering",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log layout details")
    return parser


def _apply_overrides(document: ChartDocument, args: argparse.Namespace) -> ChartDocument:
    if args.view:
        if args.view not in DERIVED_GRANULARITIES and not document.has_reference_range:
            raise ChartValidationError(
                f"--view {args.view} requires chart.reference_start and chart.reference_end in the document"
            )
        document = replace(
            document,
            view=ViewSpec(args.view, document.view.reference_start, document.view.reference_end),
        )
    if args.width:
        document = replace(document, width=args.width)
    return document


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    chart_path = Path(args.chart)

    try:
        document = _apply_overrides(load_chart(str(chart_path)), args)
    except (yaml.YAMLError, ChartValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: chart file not found: {chart_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading chart: {exc}", file=sys.stderr)
        return 1

    now = args.now or dt.datetime.now()
    projects = document.projects
    if args.summary:
        projects = tuple(summary_projects(projects, now))
    tasks = flatten_projects(projects)
    if args.sort != "none":
        tasks = tuple(SORTERS[args.sort](tasks))

    layout = compose_chart(
        tasks,
        document.view,
        document.width,
        now,
        vacations=document.vacations,
        row_height=document.row_height,
    )

    try:
        render_chart(layout, out_path=args.out, title=args.title or chart_path.stem)
    except Exception as exc:
        print(f"Unexpected error while rendering: {exc}", file=sys.stderr)
        return 1

    if args.open_output:
        try:
            webbrowser.open(Path(args.out).resolve().as_uri())
        except webbrowser.Error:
            logging.getLogger(__name__).warning("Could not open %s", args.out)

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
