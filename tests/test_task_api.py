# tests/test_task_api.py

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from daily_flow.tasks.task_api import create_task, list_today_tasks, schedule_once, toggle_today
from daily_flow.tasks.task_models import ALL_DAYS, EVERY_OTHER_DAYS, Frequency
from daily_flow.tasks.task_store import TaskStore

# Wednesday 20:00 UTC is already Thursday morning in Tokyo.
WED_2000_UTC = datetime(2024, 1, 17, 20, 0, tzinfo=UTC)


def test_today_uses_the_users_timezone(store: TaskStore) -> None:
    tokyo = store.add_user("tokyo@example.com", timezone="Asia/Tokyo")
    utc = store.add_user("utc@example.com")
    for user_id in (tokyo, utc):
        store.add_task(owner_id=user_id, text="wednesday", days=[3])
        store.add_task(owner_id=user_id, text="thursday", days=[4])

    assert [i.task.text for i in list_today_tasks(store, tokyo, now=WED_2000_UTC)] == ["thursday"]
    assert [i.task.text for i in list_today_tasks(store, utc, now=WED_2000_UTC)] == ["wednesday"]


def test_today_is_ordered_and_grouped(store: TaskStore, ny_user: int) -> None:
    store.upsert_category(ny_user, "work", "#123456")
    store.add_task(owner_id=ny_user, text="c", priority=2)
    store.add_task(owner_id=ny_user, text="a", priority=0, category="work")
    store.add_task(owner_id=ny_user, text="b", priority=1)
    store.add_task(owner_id=ny_user, text="d", priority=3, category="work")

    flat = list_today_tasks(store, ny_user, now=WED_2000_UTC)
    assert [i.task.text for i in flat] == ["a", "b", "c", "d"]

    grouped = list_today_tasks(store, ny_user, now=WED_2000_UTC, group_by_category=True)
    assert [i.task.text for i in grouped] == ["a", "d", "b", "c"]
    assert grouped[0].color == "#123456"


def test_toggle_today_marks_local_date(store: TaskStore) -> None:
    tokyo = store.add_user("tokyo@example.com", timezone="Asia/Tokyo")
    task_id = store.add_task(owner_id=tokyo, text="journal")

    assert toggle_today(store, tokyo, task_id, now=WED_2000_UTC) is True
    assert store.get_task(task_id).completed_dates == frozenset({"2024-01-18"})  # type: ignore[union-attr]
    (item,) = list_today_tasks(store, tokyo, now=WED_2000_UTC)
    assert item.done is True

    assert toggle_today(store, tokyo, task_id, now=WED_2000_UTC) is False
    assert store.get_task(task_id).completed_dates == frozenset()  # type: ignore[union-attr]


def test_toggle_today_rejects_foreign_task(store: TaskStore, ny_user: int) -> None:
    other = store.add_user("other@example.com")
    task_id = store.add_task(owner_id=other, text="not yours")
    with pytest.raises(ValueError):
        toggle_today(store, ny_user, task_id, now=WED_2000_UTC)


def test_create_every_other_day_anchors_on_local_today(store: TaskStore) -> None:
    tokyo = store.add_user("tokyo@example.com", timezone="Asia/Tokyo")
    task_id = create_task(store, tokyo, text="run", every_other_day=True, now=WED_2000_UTC)

    task = store.get_task(task_id)
    assert task is not None
    assert task.frequency == Frequency.EVERY_OTHER_DAY
    assert task.start_date == "2024-01-18"

    assert [i.task.id for i in list_today_tasks(store, tokyo, now=WED_2000_UTC)] == [task_id]
    next_day = datetime(2024, 1, 18, 20, 0, tzinfo=UTC)
    assert list_today_tasks(store, tokyo, now=next_day) == []


def test_create_task_saves_new_category_and_alert(store: TaskStore, ny_user: int) -> None:
    task_id = create_task(
        store,
        ny_user,
        text="standup",
        days=[1, 2, 3, 4, 5],
        category="work",
        category_color="#abcdef",
        alert_time="9:15",
    )
    task = store.get_task(task_id)
    assert task is not None
    assert task.alert_enabled is True
    assert task.alert_time == "09:15"
    assert [c.name for c in store.list_categories(ny_user)] == ["work"]


def test_schedule_once(store: TaskStore, ny_user: int) -> None:
    task_id = schedule_once(store, ny_user, text="dentist", date="2024-01-17")
    wed = datetime(2024, 1, 17, 15, 0, tzinfo=UTC)
    thu = datetime(2024, 1, 18, 15, 0, tzinfo=UTC)
    assert [i.task.id for i in list_today_tasks(store, ny_user, now=wed)] == [task_id]
    assert list_today_tasks(store, ny_user, now=thu) == []


def test_unknown_user(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        list_today_tasks(store, 404)


def test_every_other_day_defaults_to_alternate_display_days(store: TaskStore, ny_user: int) -> None:
    task = store.get_task(create_task(store, ny_user, text="swim", every_other_day=True, now=WED_2000_UTC))
    assert task is not None
    assert task.days == EVERY_OTHER_DAYS

    chosen = store.get_task(
        create_task(store, ny_user, text="lift", every_other_day=True, days=[1, 3], now=WED_2000_UTC)
    )
    assert chosen is not None
    assert chosen.days == frozenset({1, 3})


def test_repeat_every_other_day_setting_applies_to_new_tasks(store: TaskStore, ny_user: int) -> None:
    store.update_user_settings(ny_user, default_repeat_every_other_day=True)

    task = store.get_task(create_task(store, ny_user, text="run", now=WED_2000_UTC))
    assert task is not None
    assert task.frequency == Frequency.EVERY_OTHER_DAY
    assert task.days == EVERY_OTHER_DAYS
    assert task.start_date == "2024-01-17"

    explicit = store.get_task(create_task(store, ny_user, text="yoga", days=[2], now=WED_2000_UTC))
    assert explicit is not None
    assert explicit.frequency == Frequency.WEEKLY
    assert explicit.days == frozenset({2})

    opted_out = store.get_task(create_task(store, ny_user, text="read", every_other_day=False, now=WED_2000_UTC))
    assert opted_out is not None
    assert opted_out.frequency == Frequency.WEEKLY


def test_repeat_every_day_setting_applies_to_new_tasks(store: TaskStore, ny_user: int) -> None:
    store.update_user_settings(ny_user, default_repeat_every_day=True)

    task = store.get_task(create_task(store, ny_user, text="water", now=WED_2000_UTC))
    assert task is not None
    assert task.frequency == Frequency.WEEKLY
    assert task.days == ALL_DAYS


def test_hidden_categories_turn_grouping_off(store: TaskStore, ny_user: int) -> None:
    store.upsert_category(ny_user, "work", "#123456")
    store.add_task(owner_id=ny_user, text="b", priority=1)
    store.add_task(owner_id=ny_user, text="a", priority=0, category="work")
    store.add_task(owner_id=ny_user, text="c", priority=2, category="work")
    store.update_user_settings(ny_user, hide_categories=True)

    items = list_today_tasks(store, ny_user, now=WED_2000_UTC, group_by_category=True)
    assert [i.task.text for i in items] == ["a", "b", "c"]
    assert all(i.color is None for i in items)
