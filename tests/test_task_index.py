# tests/test_task_index.py

from __future__ import annotations

import logging

import pytest

from daily_flow.tasks.dates import LocalNow
from daily_flow.tasks.task_index import (
    build_today_view,
    group_by_owner,
    sort_for_display,
    tasks_due_on,
)
from daily_flow.tasks.task_models import Category, Frequency, Task


def _task(task_id: int, priority: int = 0, category: str | None = None, owner_id: int = 1, **kw) -> Task:
    return Task(id=task_id, owner_id=owner_id, text=f"t{task_id}", priority=priority, category=category, **kw)


def test_sort_by_priority_is_stable() -> None:
    tasks = [_task(1, 2), _task(2, 0), _task(3, 2), _task(4, 0), _task(5, 1)]
    assert [t.id for t in sort_for_display(tasks)] == [2, 4, 5, 1, 3]


def test_sort_tolerates_gaps_and_negative_priorities() -> None:
    tasks = [_task(1, 100), _task(2, -3), _task(3, 7)]
    assert [t.id for t in sort_for_display(tasks)] == [2, 3, 1]


def test_group_by_category_then_priority_uncategorised_last() -> None:
    tasks = [
        _task(1, 0, None),
        _task(2, 1, "work"),
        _task(3, 0, "home"),
        _task(4, 0, "work"),
        _task(5, 1, "home"),
        _task(6, 1, "home"),
    ]
    ordered = sort_for_display(tasks, group_by_category=True)
    assert [t.id for t in ordered] == [3, 5, 6, 4, 2, 1]


def test_group_by_owner_keeps_order() -> None:
    tasks = [_task(1, owner_id=7), _task(2, owner_id=8), _task(3, owner_id=7)]
    grouped = group_by_owner(tasks)
    assert [t.id for t in grouped[7]] == [1, 3]
    assert [t.id for t in grouped[8]] == [2]


def test_tasks_due_on_logs_broken_descriptors(caplog: pytest.LogCaptureFixture) -> None:
    good = _task(1, days=frozenset({3}))
    broken = _task(2, frequency=Frequency.EVERY_OTHER_DAY, start_date=None)
    not_today = _task(3, days=frozenset({4}))

    with caplog.at_level(logging.WARNING, logger="daily_flow.tasks.task_index"):
        due = tasks_due_on([good, broken, not_today], "2024-01-17", 3)

    assert [t.id for t in due] == [1]
    messages = [r.getMessage() for r in caplog.records]
    assert any("Task 2" in m and "startDate" in m for m in messages)
    assert not any("Task 3" in m for m in messages)


def test_build_today_view() -> None:
    today = LocalNow(date="2024-01-17", weekday=3, time="08:00")
    tasks = [
        _task(1, 1, "work", days=frozenset({3})),
        _task(2, 0, "gone", days=frozenset({3}), completed_dates=frozenset({"2024-01-17"})),
        _task(3, 0, None, days=frozenset({4})),
    ]
    view = build_today_view(tasks, today, [Category("work", "#ff0000")])

    assert [i.task.id for i in view] == [2, 1]
    assert view[0].done is True
    assert view[0].color is None  # orphan category
    assert view[1].done is False
    assert view[1].color == "#ff0000"


def test_build_today_view_hidden_categories_is_flat_and_colourless() -> None:
    today = LocalNow(date="2024-01-17", weekday=3, time="08:00")
    tasks = [
        _task(1, 1, "work"),
        _task(2, 0, None),
        _task(3, 0, "work"),
    ]
    view = build_today_view(
        tasks,
        today,
        [Category("work", "#ff0000")],
        group_by_category=True,
        hide_categories=True,
    )

    assert [i.task.id for i in view] == [2, 3, 1]
    assert all(i.color is None for i in view)
