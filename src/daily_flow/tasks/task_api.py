# src/daily_flow/tasks/task_api.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from .dates import LocalNow, local_now
from .task_index import TodayItem, build_today_view
from .task_models import ALL_DAYS, EVERY_OTHER_DAYS, Frequency, User
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def _user_today(store: TaskStore, user_id: int, now: datetime | None) -> tuple[LocalNow, User]:
    user = store.get_user(user_id)
    if user is None:
        raise ValueError(f"unknown user: {user_id}")
    return local_now(user.timezone, now), user


def list_today_tasks(
    store: TaskStore,
    user_id: int,
    *,
    now: datetime | None = None,
    group_by_category: bool = False,
) -> list[TodayItem]:
    """
    Tasks due today for the user, in display order.

    "Today" is the user's local date in their stored timezone, not the server's.
    A user who hides categories gets a flat, colourless list.
    """
    today, user = _user_today(store, user_id, now)
    tasks = store.list_tasks_for_user(user_id)
    return build_today_view(
        tasks,
        today,
        user.categories,
        group_by_category=group_by_category,
        hide_categories=user.settings.hide_categories,
    )


def toggle_today(store: TaskStore, user_id: int, task_id: int, *, now: datetime | None = None) -> bool:
    """
    Flip the completion mark of a task for the user's local today.
    Returns the new state (True = done).
    """
    task = store.get_task(task_id)
    if task is None or task.owner_id != user_id:
        raise ValueError(f"unknown task: {task_id}")

    today, _ = _user_today(store, user_id, now)
    completed = today.date not in task.completed_dates
    store.set_completed(task_id, today.date, completed)
    logger.info("Task %s user=%s done=%s on %s", task_id, user_id, completed, today.date)
    return completed


def create_task(
    store: TaskStore,
    user_id: int,
    *,
    text: str,
    days: Iterable[int] | None = None,
    every_other_day: bool | None = None,
    start_date: str | None = None,
    category: str | None = None,
    category_color: str | None = None,
    alert_time: str | None = None,
    alert_mode: str = "both",
    now: datetime | None = None,
) -> int:
    """
    Convenience helper mirroring the task form.

    - with neither days nor every_other_day given, the user's repeat default
      applies (every day, or every other day)
    - every_other_day anchors the cadence on start_date, or on the user's local
      today when no start date is given; its display days default to Sun/Tue/Thu/Sat
    - a new category name with a colour is saved to the user's category list
    - giving alert_time turns alerts on
    """
    today, user = _user_today(store, user_id, now)

    if days is None and every_other_day is None:
        if user.settings.default_repeat_every_other_day:
            every_other_day = True
        elif user.settings.default_repeat_every_day:
            days = ALL_DAYS

    frequency = Frequency.WEEKLY
    if every_other_day:
        frequency = Frequency.EVERY_OTHER_DAY
        if days is None:
            days = EVERY_OTHER_DAYS
        if start_date is None:
            start_date = today.date

    if category and category_color:
        store.upsert_category(user_id, category, category_color)

    return store.add_task(
        owner_id=user_id,
        text=text,
        recurring=True,
        frequency=frequency,
        days=days,
        start_date=start_date,
        category=category,
        alert_enabled=alert_time is not None,
        alert_time=alert_time,
        alert_mode=alert_mode,
    )


def schedule_once(
    store: TaskStore,
    user_id: int,
    *,
    text: str,
    date: str,
    alert_time: str | None = None,
) -> int:
    """One-off task bound to a single local date."""
    return store.add_task(
        owner_id=user_id,
        text=text,
        recurring=False,
        date=date,
        alert_enabled=alert_time is not None,
        alert_time=alert_time,
    )
