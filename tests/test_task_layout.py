import datetime as dt

import pytest

from gantt_timeline.task_layout import MIN_BAR_WIDTH, effective_end, position_task
from gantt_timeline.timeline_models import Task

WINDOW_START = dt.datetime(2024, 7, 1)
WINDOW_END = dt.datetime(2024, 8, 1)
PPD = 1000 / 31


def _task(start, end=None, estimated_hours=None, task_id="T"):
    return Task(id=task_id, name=task_id, start=start, end=end, estimated_hours=estimated_hours)


def test_effective_end_uses_explicit_end():
    end = dt.datetime(2024, 7, 3, 17)

    assert effective_end(_task(dt.datetime(2024, 7, 1), end=end, estimated_hours=80)) == end


@pytest.mark.parametrize(
    "estimated_hours, days",
    [(None, 7), (0, 7), (1, 1), (8, 1), (9, 2), (16, 2), (24, 3)],
)
def test_effective_end_for_open_ended_tasks(estimated_hours, days):
    start = dt.datetime(2024, 7, 10, 9)

    assert effective_end(_task(start, estimated_hours=estimated_hours)) == start + dt.timedelta(days=days)


def test_task_starting_at_window_end_is_visible():
    bar = position_task(_task(WINDOW_END, end=WINDOW_END + dt.timedelta(days=2)), WINDOW_START, WINDOW_END, PPD, 0)

    assert bar is not None
    assert bar.x == pytest.approx(1000.0)
    assert bar.width == MIN_BAR_WIDTH


def test_task_ending_at_window_start_is_visible():
    task = _task(WINDOW_START - dt.timedelta(days=3), end=WINDOW_START)

    assert position_task(task, WINDOW_START, WINDOW_END, PPD, 0) is not None


def test_task_ending_before_window_is_absent():
    task = _task(WINDOW_START - dt.timedelta(days=3), end=WINDOW_START - dt.timedelta(seconds=1))

    assert position_task(task, WINDOW_START, WINDOW_END, PPD, 0) is None


def test_task_starting_after_window_is_absent():
    task = _task(WINDOW_END + dt.timedelta(seconds=1))

    assert position_task(task, WINDOW_START, WINDOW_END, PPD, 0) is None


def test_open_ended_task_visibility_uses_synthesized_end():
    task = _task(WINDOW_START - dt.timedelta(days=2), estimated_hours=24)

    bar = position_task(task, WINDOW_START, WINDOW_END, PPD, 0)

    assert bar is not None
    assert bar.x == 0
    assert bar.width == MIN_BAR_WIDTH  # one visible day at ~32 px


@pytest.mark.parametrize("ppd", [1.0, 10.0, 32.0, 49.99])
def test_short_tasks_get_minimum_width(ppd):
    task = _task(dt.datetime(2024, 7, 5), estimated_hours=1)

    assert position_task(task, WINDOW_START, WINDOW_END, ppd, 0).width == MIN_BAR_WIDTH


def test_bar_is_clipped_to_window():
    task = _task(WINDOW_START - dt.timedelta(days=10), end=WINDOW_END + dt.timedelta(days=10))

    bar = position_task(task, WINDOW_START, WINDOW_END, PPD, 0)

    assert bar.x == 0
    assert bar.width == pytest.approx(31 * PPD)


def test_july_scenario():
    task = _task(dt.datetime(2024, 7, 10), estimated_hours=24)

    bar = position_task(task, WINDOW_START, WINDOW_END, PPD, 0)

    assert effective_end(task) == dt.datetime(2024, 7, 13)
    assert PPD == pytest.approx(32.26, abs=0.01)
    assert bar.x == pytest.approx(290.3, abs=0.1)
    assert bar.width == pytest.approx(96.8, abs=0.1)


def test_vertical_geometry_follows_row():
    bar = position_task(_task(dt.datetime(2024, 7, 2)), WINDOW_START, WINDOW_END, PPD, 3)

    assert bar.y == 180
    assert bar.height == 50

    bar = position_task(_task(dt.datetime(2024, 7, 2)), WINDOW_START, WINDOW_END, PPD, 2, row_height=40)

    assert bar.y == 80
    assert bar.height == 30


def test_end_before_start_is_laid_out_without_error():
    task = _task(dt.datetime(2024, 7, 10), end=dt.datetime(2024, 7, 9))

    bar = position_task(task, WINDOW_START, WINDOW_END, PPD, 0)

    assert bar is not None
    assert bar.width >= MIN_BAR_WIDTH


def test_partial_days_round_up():
    task = _task(dt.datetime(2024, 7, 1, 12), end=dt.datetime(2024, 7, 4, 13))

    bar = position_task(task, WINDOW_START, WINDOW_END, 100.0, 0)

    assert bar.x == 100.0
    assert bar.width == 400.0
