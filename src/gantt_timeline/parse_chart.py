from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from typing import Any

import yaml

from .compositor import DEFAULT_WIDTH, flatten_projects
from .task_layout import ROW_HEIGHT
from .timeline_models import Project, Task, TimeEntry, VacationRange, ViewSpec
from .timeline_window import DERIVED_GRANULARITIES, as_instant, naive_local, parse_instant

logger = logging.getLogger(__name__)

TASK_STATUSES = ("not-started", "in-progress", "completed", "on-hold")
VACATION_STATUSES = ("pending", "approved", "rejected")


class ChartValidationError(Exception):
    """Raised when a chart document is malformed (wrong types, unknown keys, missing fields)."""


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like projects[0].tasks[1]."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


@dataclass(frozen=True)
class ChartDocument:
    """Everything needed for a layout pass except the clock."""

    view: ViewSpec
    width: float = DEFAULT_WIDTH
    row_height: float = ROW_HEIGHT
    projects: tuple[Project, ...] = ()
    vacations: tuple[VacationRange, ...] = ()
    has_reference_range: bool = False

    @property
    def tasks(self) -> tuple[Task, ...]:
        return flatten_projects(self.projects)


def load_chart(path: str) -> ChartDocument:
    """Load a chart document from a YAML file at the given path."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    return parse_chart(raw)


def parse_chart(data: Any) -> ChartDocument:
    """Validate an already-decoded YAML document."""

    path = _Path()
    if not isinstance(data, dict):
        raise ChartValidationError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, {"chart", "projects", "vacations"}, path)

    chart_raw = data.get("chart")
    if not isinstance(chart_raw, dict):
        raise ChartValidationError(f"{path}: missing required mapping 'chart'")
    view, width, row_height = _parse_chart_options(chart_raw, path.child("chart"))
    has_reference_range = "reference_start" in chart_raw and "reference_end" in chart_raw

    projects_raw = data.get("projects", [])
    if projects_raw is None:
        projects_raw = []
    if not isinstance(projects_raw, list):
        raise ChartValidationError(f"{path}.projects: expected list")
    task_ids: set[str] = set()
    projects = tuple(
        _parse_project(project_raw, path.child(f"projects[{idx}]"), task_ids)
        for idx, project_raw in enumerate(projects_raw)
    )

    vacations_raw = data.get("vacations", [])
    if vacations_raw is None:
        vacations_raw = []
    if not isinstance(vacations_raw, list):
        raise ChartValidationError(f"{path}.vacations: expected list")
    vacations: list[VacationRange] = []
    for idx, vacation_raw in enumerate(vacations_raw):
        vacation = _parse_vacation(vacation_raw, path.child(f"vacations[{idx}]"))
        if vacation is not None:
            vacations.append(vacation)

    return ChartDocument(
        view=view,
        width=width,
        row_height=row_height,
        projects=projects,
        vacations=tuple(vacations),
        has_reference_range=has_reference_range,
    )


def _parse_chart_options(data: dict[str, Any], path: _Path) -> tuple[ViewSpec, float, float]:
    _assert_allowed_keys(data, {"view", "reference_start", "reference_end", "width", "row_height"}, path)
    granularity = _require_str(data, "view", path)

    today = _dt.datetime.combine(_dt.date.today(), _dt.time())
    reference_start = today
    reference_end = today
    if "reference_start" in data:
        reference_start = _parse_value_instant(data["reference_start"], path.child("reference_start"))
    if "reference_end" in data:
        reference_end = _parse_value_instant(data["reference_end"], path.child("reference_end"))
    if granularity not in DERIVED_GRANULARITIES and not (
        "reference_start" in data and "reference_end" in data
    ):
        raise ChartValidationError(f"{path}: view '{granularity}' requires reference_start and reference_end")
    if reference_end < reference_start:
        raise ChartValidationError(f"{path}.reference_end: must not precede reference_start")

    width = _optional_positive_number(data, "width", path, DEFAULT_WIDTH)
    row_height = _optional_positive_number(data, "row_height", path, ROW_HEIGHT)
    return ViewSpec(granularity, reference_start, reference_end), width, row_height


def _parse_project(data: Any, path: _Path, task_ids: set[str]) -> Project:
    if not isinstance(data, dict):
        raise ChartValidationError(f"{path}: expected mapping for project")

    _assert_allowed_keys(data, {"id", "name", "description", "color", "tasks"}, path)
    project_id = _require_str(data, "id", path)
    name = _require_str(data, "name", path)
    description = _optional_str(data, "description", path)
    color = _optional_str(data, "color", path)

    tasks_raw = data.get("tasks", [])
    if tasks_raw is None:
        tasks_raw = []
    if not isinstance(tasks_raw, list):
        raise ChartValidationError(f"{path}.tasks: expected list")

    tasks = tuple(
        _parse_task(task_raw, path.child(f"tasks[{idx}]"), task_ids, color)
        for idx, task_raw in enumerate(tasks_raw)
    )
    return Project(id=project_id, name=name, tasks=tasks, color=color, description=description)


def _parse_task(data: Any, path: _Path, task_ids: set[str], project_color: str | None) -> Task:
    if not isinstance(data, dict):
        raise ChartValidationError(f"{path}: expected mapping for task")

    _assert_allowed_keys(
        data,
        {
            "id",
            "name",
            "description",
            "start",
            "end",
            "estimated_hours",
            "status",
            "color",
            "assignee",
            "time_entries",
        },
        path,
    )
    task_id = _require_str(data, "id", path)
    if task_id in task_ids:
        raise ChartValidationError(f"{path.child('id')}: duplicate task id '{task_id}'")
    task_ids.add(task_id)

    start = _parse_value_instant(_require_value(data, "start", path), path.child("start"))
    end = None
    if data.get("end") is not None:
        end = _parse_value_instant(data["end"], path.child("end"))

    estimated_hours = None
    if data.get("estimated_hours") is not None:
        estimated_hours = _number(data["estimated_hours"], path.child("estimated_hours"))
        if estimated_hours < 0:
            raise ChartValidationError(f"{path}.estimated_hours: must not be negative")

    status = data.get("status", "not-started")
    if status not in TASK_STATUSES:
        raise ChartValidationError(f"{path}.status: expected one of {list(TASK_STATUSES)}")

    entries_raw = data.get("time_entries", [])
    if entries_raw is None:
        entries_raw = []
    if not isinstance(entries_raw, list):
        raise ChartValidationError(f"{path}.time_entries: expected list")
    entries = tuple(
        _parse_time_entry(entry_raw, path.child(f"time_entries[{idx}]"))
        for idx, entry_raw in enumerate(entries_raw)
    )

    return Task(
        id=task_id,
        name=_require_str(data, "name", path),
        description=_optional_str(data, "description", path),
        start=start,
        end=end,
        estimated_hours=estimated_hours,
        status=status,
        color=_optional_str(data, "color", path) or project_color,
        assignee=_optional_str(data, "assignee", path),
        time_entries=entries,
    )


def _parse_time_entry(data: Any, path: _Path) -> TimeEntry:
    if not isinstance(data, dict):
        raise ChartValidationError(f"{path}: expected mapping for time entry")
    _assert_allowed_keys(data, {"date", "hours", "notes"}, path)
    entry_date = _parse_value_instant(_require_value(data, "date", path), path.child("date")).date()
    hours = _number(_require_value(data, "hours", path), path.child("hours"))
    if hours < 0:
        raise ChartValidationError(f"{path}.hours: must not be negative")
    return TimeEntry(date=entry_date, hours=hours, notes=_optional_str(data, "notes", path))


def _parse_vacation(data: Any, path: _Path) -> VacationRange | None:
    """Parse one vacation; anything not approved is dropped."""

    if not isinstance(data, dict):
        raise ChartValidationError(f"{path}: expected mapping for vacation")
    _assert_allowed_keys(data, {"user_email", "start", "end", "status", "notes"}, path)
    user_email = _require_str(data, "user_email", path)
    start = _parse_value_instant(_require_value(data, "start", path), path.child("start"))
    end = _parse_value_instant(_require_value(data, "end", path), path.child("end"))
    status = data.get("status", "approved")
    if status not in VACATION_STATUSES:
        raise ChartValidationError(f"{path}.status: expected one of {list(VACATION_STATUSES)}")
    if status != "approved":
        logger.info("Skipping %s vacation of %s", status, user_email)
        return None
    return VacationRange(user_email=user_email, start=start, end=end)


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise ChartValidationError(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise ChartValidationError(f"{path.child(key)}: expected non-empty string")
    return value


def _optional_str(data: dict[str, Any], key: str, path: _Path) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ChartValidationError(f"{path.child(key)}: expected string")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise ChartValidationError(f"{path}: missing required field '{key}'")
    return data[key]


def _number(value: Any, path: _Path) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ChartValidationError(f"{path}: expected number")
    return float(value)


def _optional_positive_number(data: dict[str, Any], key: str, path: _Path, default: float) -> float:
    if data.get(key) is None:
        return default
    value = _number(data[key], path.child(key))
    if value <= 0:
        raise ChartValidationError(f"{path.child(key)}: must be positive")
    return value


def _parse_value_instant(value: Any, path: _Path) -> _dt.datetime:
    # safe_load already turns unquoted ISO dates and timestamps into date/datetime.
    if isinstance(value, (_dt.date, _dt.datetime)):
        return naive_local(as_instant(value))
    if not isinstance(value, str):
        raise ChartValidationError(f"{path}: expected YYYY-MM-DD or ISO timestamp")
    try:
        return parse_instant(value)
    except ValueError as exc:
        raise ChartValidationError(f"{path}: expected YYYY-MM-DD or ISO timestamp") from exc
