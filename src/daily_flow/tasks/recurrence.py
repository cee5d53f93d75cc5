# tasks/recurrence.py

from __future__ import annotations

from .dates import day_difference, parse_date
from .task_models import Frequency, Task


def is_due_on(task: Task, local_date: str, weekday: int) -> bool:
    """
    Decide whether `task` is due on the user's local calendar date.

    - one-off: due only on task.date (exact string match)
    - weekly: due when weekday is one of task.days
    - daily: due every day
    - everyOtherDay: due on start_date and every second day after it

    Malformed descriptors are never due. Pure: the task is not touched.
    """
    if not task.recurring:
        return bool(task.date) and task.date == local_date

    if task.frequency == Frequency.EVERY_OTHER_DAY:
        diff = day_difference(task.start_date, local_date)
        if diff is None:
            return False
        return diff >= 0 and diff % 2 == 0

    if task.frequency == Frequency.DAILY:
        return True

    return weekday in task.days


def recurrence_problem(task: Task) -> str | None:
    """Human-readable reason why `task` can never be due, or None."""
    if not task.recurring:
        if not task.date:
            return "one-off task without a date"
        if parse_date(task.date) is None:
            return f"one-off task with malformed date {task.date!r}"
        return None

    if task.frequency == Frequency.EVERY_OTHER_DAY:
        if not task.start_date:
            return "everyOtherDay task without a startDate"
        if parse_date(task.start_date) is None:
            return f"everyOtherDay task with malformed startDate {task.start_date!r}"
        return None

    if task.frequency == Frequency.WEEKLY and not task.days:
        return "weekly task without days"
    return None


def is_completed_on(task: Task, local_date: str) -> bool:
    return local_date in task.completed_dates
