# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from daily_flow.tasks.dates import resolve_timezone
from daily_flow.tasks.task_store import TaskStore

# Wednesday 2024-01-17, 13:00 UTC == 08:00 in New York (EST, UTC-5).
WEDNESDAY_1300_UTC = datetime(2024, 1, 17, 13, 0, 5, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _fresh_timezone_cache():
    resolve_timezone.cache_clear()
    yield
    resolve_timezone.cache_clear()


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="Daily Flow",
        log_level="INFO",
        data_dir=tmp_path / "data",
        db_path=tmp_path / "data" / "daily_flow.sqlite3",
        vapid_private_key=None,
        vapid_subject="mailto:test@example.com",
        push_ttl_seconds=60,
        push_timeout_seconds=1.0,
        notification_title="Daily Flow",
        notification_url="/",
        scheduler_enabled=True,
    )


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def ny_user(store: TaskStore) -> int:
    return store.add_user("ny@example.com", timezone="America/New_York")
