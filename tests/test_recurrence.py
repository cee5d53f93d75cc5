# tests/test_recurrence.py

from __future__ import annotations

import dataclasses
from itertools import combinations

from daily_flow.tasks.dates import add_days, local_now, parse_date, weekday_index
from daily_flow.tasks.recurrence import is_completed_on, is_due_on, recurrence_problem
from daily_flow.tasks.task_models import Frequency, Task

from .conftest import WEDNESDAY_1300_UTC


def _weekly(days) -> Task:
    return Task(id=1, owner_id=1, text="stretch", frequency=Frequency.WEEKLY, days=frozenset(days))


def _every_other(start: str | None) -> Task:
    return Task(id=2, owner_id=1, text="water plants", frequency=Frequency.EVERY_OTHER_DAY, start_date=start)


def _on(day: str) -> tuple[str, int]:
    d = parse_date(day)
    assert d is not None
    return day, weekday_index(d)


def test_weekly_due_iff_weekday_in_days_for_every_subset() -> None:
    for size in range(8):
        for subset in combinations(range(7), size):
            task = _weekly(subset)
            for weekday in range(7):
                assert is_due_on(task, "2024-01-17", weekday) is (weekday in subset)


def test_weekly_ignores_duplicates_and_order() -> None:
    a = _weekly([5, 1, 3, 1])
    b = _weekly([1, 3, 5])
    assert a.days == b.days
    assert [is_due_on(a, "2024-01-17", w) for w in range(7)] == [
        is_due_on(b, "2024-01-17", w) for w in range(7)
    ]


def test_scenario_mon_wed_fri() -> None:
    task = Task(id=1, owner_id=1, text="gym", recurring=True, frequency=Frequency.WEEKLY, days=frozenset({1, 3, 5}))
    assert is_due_on(task, *_on("2024-01-17"))  # Wednesday
    assert not is_due_on(task, *_on("2024-01-18"))  # Thursday


def test_every_other_day_cadence() -> None:
    task = _every_other("2024-01-01")
    assert is_due_on(task, *_on("2024-01-01"))
    assert not is_due_on(task, *_on("2024-01-02"))
    assert is_due_on(task, *_on("2024-01-03"))
    assert not is_due_on(task, *_on("2023-12-31"))
    assert not is_due_on(task, *_on("2023-12-30"))


def test_every_other_day_holds_across_months_and_years() -> None:
    start = "2023-12-30"
    task = _every_other(start)
    for n in range(0, 120):
        day = add_days(start, n)
        assert is_due_on(task, *_on(day)) is (n % 2 == 0), day


def test_every_other_day_ignores_days_field() -> None:
    task = dataclasses.replace(_every_other("2024-01-01"), days=frozenset({0, 2, 4, 6}))
    # 2024-01-03 is a Wednesday (3), not in days, but still due by cadence.
    assert is_due_on(task, *_on("2024-01-03"))


def test_every_other_day_without_start_is_never_due() -> None:
    task = _every_other(None)
    assert not any(is_due_on(task, add_days("2024-01-01", n), 0) for n in range(7))
    assert recurrence_problem(task) is not None


def test_every_other_day_with_malformed_start_is_never_due() -> None:
    task = _every_other("01/01/2024")
    assert not is_due_on(task, *_on("2024-01-01"))
    assert "malformed" in (recurrence_problem(task) or "")


def test_one_off_due_only_on_its_date() -> None:
    task = Task(id=3, owner_id=1, text="dentist", recurring=False, date="2024-01-17")
    due = [add_days("2024-01-10", n) for n in range(14) if is_due_on(task, *_on(add_days("2024-01-10", n)))]
    assert due == ["2024-01-17"]


def test_one_off_without_date_is_never_due() -> None:
    task = Task(id=3, owner_id=1, text="dentist", recurring=False, date=None)
    assert not is_due_on(task, "2024-01-17", 3)
    assert recurrence_problem(task) == "one-off task without a date"


def test_unknown_frequency_behaves_as_weekly() -> None:
    task = dataclasses.replace(_weekly({3}), frequency=Frequency.from_db("fortnightly"))
    assert task.frequency == Frequency.WEEKLY
    assert is_due_on(task, "2024-01-17", 3)
    assert not is_due_on(task, "2024-01-18", 4)


def test_daily_is_always_due() -> None:
    task = dataclasses.replace(_weekly(set()), frequency=Frequency.DAILY)
    assert all(is_due_on(task, "2024-01-17", w) for w in range(7))
    assert recurrence_problem(task) is None


def test_evaluation_is_pure_and_repeatable() -> None:
    task = _every_other("2024-01-01")
    before = dataclasses.asdict(task)
    results = {is_due_on(task, "2024-01-05", 5) for _ in range(5)}
    assert results == {True}
    assert dataclasses.asdict(task) == before


def test_due_today_from_local_now() -> None:
    today = local_now("America/New_York", WEDNESDAY_1300_UTC)
    assert is_due_on(_weekly({3}), today.date, today.weekday)


def test_is_completed_on() -> None:
    task = dataclasses.replace(_weekly({3}), completed_dates=frozenset({"2024-01-17"}))
    assert is_completed_on(task, "2024-01-17")
    assert not is_completed_on(task, "2024-01-24")
