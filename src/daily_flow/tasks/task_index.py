# tasks/task_index.py

from __future__ import annotations

"""
Read-path view over a user's tasks.

Filtering uses the recurrence evaluator; ordering is:
- priority ascending, or
- category name (uncategorised last), then priority, when grouping is on.

`sorted` is stable, so ties keep the input (insertion) order.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .dates import LocalNow
from .recurrence import is_completed_on, is_due_on, recurrence_problem
from .task_models import Category, Task

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TodayItem:
    task: Task
    done: bool
    color: str | None = None


def _priority_key(task: Task) -> int:
    return task.priority


def _category_key(task: Task) -> tuple[int, str, int]:
    if task.category:
        return (0, task.category, task.priority)
    return (1, "", task.priority)


def sort_for_display(tasks: Iterable[Task], *, group_by_category: bool = False) -> list[Task]:
    key = _category_key if group_by_category else _priority_key
    return sorted(tasks, key=key)


def group_by_owner(tasks: Iterable[Task]) -> dict[int, list[Task]]:
    """Owner id -> that owner's tasks, both in first-seen order."""
    out: dict[int, list[Task]] = {}
    for t in tasks:
        out.setdefault(t.owner_id, []).append(t)
    return out


def tasks_due_on(tasks: Iterable[Task], local_date: str, weekday: int) -> list[Task]:
    """Due tasks in input order. Tasks with a broken recurrence are logged and skipped."""
    due: list[Task] = []
    for t in tasks:
        if is_due_on(t, local_date, weekday):
            due.append(t)
            continue
        problem = recurrence_problem(t)
        if problem:
            logger.warning("Task %s owner=%s is never due: %s", t.id, t.owner_id, problem)
    return due


def build_today_view(
    tasks: Iterable[Task],
    today: LocalNow,
    categories: Iterable[Category] = (),
    *,
    group_by_category: bool = False,
    hide_categories: bool = False,
) -> list[TodayItem]:
    if hide_categories:
        group_by_category = False
        categories = ()
    colors = {c.name: c.color for c in categories}
    due = tasks_due_on(tasks, today.date, today.weekday)
    return [
        TodayItem(
            task=t,
            done=is_completed_on(t, today.date),
            color=colors.get(t.category) if t.category else None,
        )
        for t in sort_for_display(due, group_by_category=group_by_category)
    ]
