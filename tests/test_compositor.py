import datetime as dt

import pytest

from gantt_timeline.compositor import (
    EMPTY_MESSAGE,
    TimelineSession,
    clip_vacation,
    compose_chart,
    flatten_projects,
    hit_test,
    to_draw_commands,
)
from gantt_timeline.timeline_models import Project, Task, TimeEntry, TimeWindow, VacationRange, ViewSpec

NOW = dt.datetime(2024, 7, 17, 15, 30)
MONTH = ViewSpec("month", NOW, NOW)
WEEK = ViewSpec("week", NOW, NOW)
PPD = 1000 / 31


def _task(task_id, start, end=None, **kwargs):
    return Task(id=task_id, name=task_id.upper(), start=start, end=end, **kwargs)


def _vacation(start, end, email="ana@example.com"):
    return VacationRange(user_email=email, start=start, end=end)


def test_empty_task_set_is_placeholder_state():
    layout = compose_chart([], MONTH, 1000, NOW)

    assert layout.is_empty
    assert layout.bars == ()
    assert layout.headers == ()
    commands = to_draw_commands(layout)
    assert len(commands) == 1
    assert commands[0].role == "placeholder"
    assert commands[0].label == EMPTY_MESSAGE


def test_rows_follow_input_order_and_invisible_tasks_keep_their_row():
    tasks = [
        _task("a", dt.datetime(2024, 7, 20), end=dt.datetime(2024, 7, 25)),
        _task("b", dt.datetime(2024, 9, 1)),
        _task("c", dt.datetime(2024, 7, 2), end=dt.datetime(2024, 7, 4)),
    ]

    layout = compose_chart(tasks, MONTH, 1000, NOW)

    assert [bar.task.id for bar in layout.bars] == ["a", "c"]
    assert [bar.y for bar in layout.bars] == [0, 120]
    assert layout.height == 180
    assert layout.pixels_per_day == pytest.approx(PPD)


def test_overlapping_tasks_are_not_packed_into_shared_rows():
    tasks = [
        _task("a", dt.datetime(2024, 7, 1), end=dt.datetime(2024, 7, 3)),
        _task("b", dt.datetime(2024, 7, 20), end=dt.datetime(2024, 7, 22)),
    ]

    layout = compose_chart(tasks, MONTH, 1000, NOW)

    assert [bar.y for bar in layout.bars] == [0, 60]


def test_flatten_projects_preserves_order():
    first = Project(id="p1", name="P1", tasks=(_task("a", NOW), _task("b", NOW)))
    second = Project(id="p2", name="P2", tasks=(_task("c", NOW),))

    assert [task.id for task in flatten_projects([first, second])] == ["a", "b", "c"]


def test_weekend_bands_follow_weekend_ticks():
    layout = compose_chart([_task("a", NOW)], WEEK, 700, NOW)

    weekends = [band for band in layout.bands if band.kind == "weekend"]
    assert [(band.x, band.width) for band in weekends] == [(500.0, 100.0), (600.0, 100.0)]


def test_vacation_inside_window():
    vacation = _vacation(dt.datetime(2024, 7, 10), dt.datetime(2024, 7, 12))

    layout = compose_chart([_task("a", NOW)], MONTH, 1000, NOW, vacations=[vacation])

    (band,) = [band for band in layout.bands if band.kind == "vacation"]
    assert band.x == pytest.approx(9 * PPD)
    assert band.width == pytest.approx(3 * PPD)
    assert band.label == "Vacation: ana@example.com (2024-07-10 - 2024-07-12)"


def test_vacation_is_clipped_to_window_start():
    vacation = _vacation(dt.datetime(2024, 6, 25), dt.datetime(2024, 7, 2))

    layout = compose_chart([_task("a", NOW)], MONTH, 1000, NOW, vacations=[vacation])

    (band,) = [band for band in layout.bands if band.kind == "vacation"]
    assert band.x == 0
    assert band.width == pytest.approx(2 * PPD)


def test_vacation_on_last_day_ends_at_window_end():
    window = TimeWindow(dt.datetime(2024, 7, 1), dt.datetime(2024, 8, 1))

    clipped = clip_vacation(_vacation(dt.datetime(2024, 7, 31, 9), dt.datetime(2024, 8, 3)), window)

    assert clipped == (dt.datetime(2024, 7, 31), dt.datetime(2024, 8, 1))


def test_vacation_outside_window_is_dropped():
    vacations = [
        _vacation(dt.datetime(2024, 8, 5), dt.datetime(2024, 8, 9)),
        _vacation(dt.datetime(2024, 6, 1), dt.datetime(2024, 6, 29)),
        _vacation(dt.datetime(2024, 8, 1), dt.datetime(2024, 8, 2)),
    ]

    layout = compose_chart([_task("a", NOW)], MONTH, 1000, NOW, vacations=vacations)

    assert [band for band in layout.bands if band.kind == "vacation"] == []


def test_draw_commands_layering():
    task = _task(
        "a",
        dt.datetime(2024, 7, 15),
        end=dt.datetime(2024, 7, 17),
        estimated_hours=10,
        color="#123456",
        time_entries=(TimeEntry(date=dt.date(2024, 7, 15), hours=4),),
    )
    vacation = _vacation(dt.datetime(2024, 7, 16), dt.datetime(2024, 7, 16))

    commands = to_draw_commands(compose_chart([task], WEEK, 700, NOW, vacations=[vacation]))

    header = [command for command in commands if command.surface == "header"]
    body = [command for command in commands if command.surface == "body"]
    assert commands[: len(header)] == tuple(header)
    assert len(header) == 14
    assert [command.layer for command in body] == sorted(command.layer for command in body)

    backgrounds = [command for command in body if command.role.endswith("-background")]
    assert {command.role for command in backgrounds} == {"weekend-background", "vacation-background"}
    assert not any(command.interactive for command in backgrounds)

    (bar,) = [command for command in body if command.interactive]
    assert bar.task_id == "a"
    assert bar.fill == "#123456"
    assert bar.role == "task-bar status-not-started"
    assert bar.tooltip == "A - 4h / 10h"
    assert (bar.x, bar.width) == (0.0, 200.0)

    (progress,) = [command for command in body if command.role == "task-progress"]
    assert progress.width == pytest.approx(80.0)
    assert not progress.interactive


def test_default_bar_color():
    commands = to_draw_commands(compose_chart([_task("a", NOW)], WEEK, 700, NOW))

    (bar,) = [command for command in commands if command.interactive]
    assert bar.fill == "#f97316"
    assert bar.tooltip == "A - 0h (No end date)"


def test_hit_test_ignores_background():
    layout = compose_chart([_task("a", dt.datetime(2024, 7, 15), end=dt.datetime(2024, 7, 17))], WEEK, 700, NOW)

    assert hit_test(layout, 150, 25).id == "a"
    assert hit_test(layout, 550, 25) is None
    assert hit_test(layout, 150, 55) is None


class _FixedClock:
    def __init__(self, now):
        self.now = now
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.now


def test_session_relayouts_on_resize_only_when_width_changes():
    clock = _FixedClock(NOW)
    session = TimelineSession(MONTH, tasks=[_task("a", NOW)], width=1000, clock=clock)
    seen = []
    session.subscribe(seen.append)

    session.resize(1000)
    assert seen == []

    layout = session.resize(500)
    assert seen == [layout]
    assert session.layout is layout
    assert layout.width == 500
    assert layout.pixels_per_day == pytest.approx(500 / 31)
    assert clock.calls == 2


def test_session_relayouts_on_task_and_view_changes():
    session = TimelineSession(MONTH, width=1000, clock=_FixedClock(NOW))
    seen = []
    unsubscribe = session.subscribe(seen.append)
    assert session.layout.is_empty

    session.set_tasks([_task("a", NOW)])
    session.set_view(WEEK)
    assert len(seen) == 2
    assert seen[-1].window.start == dt.datetime(2024, 7, 15)
    assert not seen[-1].is_empty

    unsubscribe()
    session.set_vacations([_vacation(NOW, NOW)])
    assert len(seen) == 2


def test_session_tracks_the_clock():
    clock = _FixedClock(NOW)
    session = TimelineSession(MONTH, tasks=[_task("a", NOW)], clock=clock)

    clock.now = dt.datetime(2024, 8, 2)
    layout = session.refresh()

    assert layout.window.start == dt.datetime(2024, 8, 1)


def test_session_forwards_clicks():
    clicked = []
    session = TimelineSession(
        WEEK,
        tasks=[_task("a", dt.datetime(2024, 7, 15), end=dt.datetime(2024, 7, 17))],
        width=700,
        clock=_FixedClock(NOW),
        on_task_click=clicked.append,
    )

    assert session.click(10, 10) == "a"
    assert session.click(650, 10) is None
    assert clicked == ["a"]
