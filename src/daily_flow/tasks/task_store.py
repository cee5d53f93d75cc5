# tasks/task_store.py

from __future__ import annotations

import contextlib
import dataclasses
import json
import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .dates import is_valid_timezone, normalize_alert_time, parse_date
from .task_models import ALL_DAYS, AlertMode, Category, Frequency, Subscription, Task, User, UserSettings

logger = logging.getLogger(__name__)

_TASK_FIELDS = frozenset(
    {
        "text",
        "recurring",
        "frequency",
        "days",
        "start_date",
        "date",
        "completed_dates",
        "priority",
        "category",
        "alert_enabled",
        "alert_time",
        "alert_mode",
    }
)


def _clean_days(days: Iterable[int] | None) -> frozenset[int]:
    if days is None:
        return ALL_DAYS
    out: set[int] = set()
    for d in days:
        if isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6:
            raise ValueError(f"weekday out of range: {d!r}")
        out.add(d)
    return frozenset(out)


def _validate_task(task: Task) -> Task:
    """Check the recurrence descriptor and normalise alert_time. Raises ValueError."""
    text = (task.text or "").strip()
    if not text:
        raise ValueError("text is required")

    if task.date is not None and parse_date(task.date) is None:
        raise ValueError(f"invalid date: {task.date!r}")
    if task.start_date is not None and parse_date(task.start_date) is None:
        raise ValueError(f"invalid start_date: {task.start_date!r}")

    if not task.recurring:
        if task.date is None:
            raise ValueError("date is required for a one-off task")
    elif task.frequency == Frequency.EVERY_OTHER_DAY:
        if task.start_date is None:
            raise ValueError("start_date is required for an everyOtherDay task")
    elif task.frequency == Frequency.WEEKLY and not task.days:
        raise ValueError("days must not be empty for a weekly task")

    alert_time = task.alert_time
    if alert_time is not None:
        alert_time = normalize_alert_time(alert_time)
        if alert_time is None:
            raise ValueError(f"invalid alert_time: {task.alert_time!r}")
    if task.alert_enabled and alert_time is None:
        raise ValueError("alert_time is required when alerts are enabled")

    category = (task.category or "").strip() or None
    return dataclasses.replace(task, text=text, alert_time=alert_time, category=category)


class TaskStore:
    """
    SQLite store for users, categories, tasks and push subscriptions.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    List-valued task fields (days, completed_dates) are stored as JSON text.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "daily_flow.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    timezone TEXT NOT NULL DEFAULT 'UTC',
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    color TEXT NOT NULL,
                    UNIQUE(user_id, name)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner_id INTEGER NOT NULL,
                    text TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    endpoint TEXT NOT NULL,
                    p256dh TEXT NOT NULL,
                    auth TEXT NOT NULL,
                    user_agent TEXT,
                    created_at REAL NOT NULL,
                    UNIQUE(user_id, endpoint)
                )
                """
            )

            # Migrations (safe): add missing columns.
            cols: dict[str, set[str]] = {}
            for table in ("users", "tasks"):
                cur.execute(f"PRAGMA table_info({table})")
                cols[table] = {row["name"] for row in cur.fetchall()}

            def add_col(table: str, name: str, decl: str) -> None:
                if name in cols[table]:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s.%s", table, name)

            add_col("users", "default_repeat_every_day", "INTEGER NOT NULL DEFAULT 0")
            add_col("users", "default_repeat_every_other_day", "INTEGER NOT NULL DEFAULT 0")
            add_col("users", "hide_categories", "INTEGER NOT NULL DEFAULT 0")

            add_col("tasks", "recurring", "INTEGER NOT NULL DEFAULT 1")
            add_col("tasks", "frequency", "TEXT NOT NULL DEFAULT 'weekly'")
            add_col("tasks", "days", "TEXT NOT NULL DEFAULT '[0,1,2,3,4,5,6]'")
            add_col("tasks", "start_date", "TEXT")
            add_col("tasks", "date", "TEXT")
            add_col("tasks", "completed_dates", "TEXT NOT NULL DEFAULT '[]'")
            add_col("tasks", "priority", "INTEGER NOT NULL DEFAULT 0")
            add_col("tasks", "category", "TEXT")
            add_col("tasks", "alert_enabled", "INTEGER NOT NULL DEFAULT 0")
            add_col("tasks", "alert_time", "TEXT")
            add_col("tasks", "alert_mode", "TEXT NOT NULL DEFAULT 'both'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner ON tasks(owner_id)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_alert "
                "ON tasks(owner_id, alert_enabled, alert_time)"
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_subscriptions_user ON subscriptions(user_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _list_to_str(values: Iterable[Any]) -> str:
        return json.dumps(sorted(values))

    @staticmethod
    def _str_to_days(s: str | None) -> frozenset[int]:
        if not s:
            return frozenset()
        try:
            val = json.loads(s)
        except json.JSONDecodeError:
            return frozenset()
        if not isinstance(val, list):
            return frozenset()
        return frozenset(d for d in val if isinstance(d, int) and 0 <= d <= 6)

    @staticmethod
    def _str_to_dates(s: str | None) -> frozenset[str]:
        if not s:
            return frozenset()
        try:
            val = json.loads(s)
        except json.JSONDecodeError:
            return frozenset()
        if not isinstance(val, list):
            return frozenset()
        return frozenset(d for d in val if isinstance(d, str) and parse_date(d) is not None)

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            owner_id=int(row["owner_id"]),
            text=str(row["text"] or ""),
            recurring=bool(row["recurring"]),
            frequency=Frequency.from_db(row["frequency"]),
            days=self._str_to_days(row["days"]),
            start_date=row["start_date"],
            date=row["date"],
            completed_dates=self._str_to_dates(row["completed_dates"]),
            priority=int(row["priority"] or 0),
            category=row["category"],
            alert_enabled=bool(row["alert_enabled"]),
            alert_time=row["alert_time"],
            alert_mode=AlertMode.from_db(row["alert_mode"]),
            created_at=float(row["created_at"] or 0.0),
        )

    @staticmethod
    def _row_to_subscription(row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            endpoint=str(row["endpoint"]),
            p256dh=str(row["p256dh"]),
            auth=str(row["auth"]),
            user_agent=row["user_agent"],
            created_at=float(row["created_at"] or 0.0),
        )

    def _write_task(self, conn: sqlite3.Connection, task: Task) -> None:
        conn.execute(
            """
            UPDATE tasks
            SET text = ?, recurring = ?, frequency = ?, days = ?,
                start_date = ?, date = ?, completed_dates = ?, priority = ?,
                category = ?, alert_enabled = ?, alert_time = ?, alert_mode = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                task.text,
                int(task.recurring),
                task.frequency.value,
                self._list_to_str(task.days),
                task.start_date,
                task.date,
                self._list_to_str(task.completed_dates),
                int(task.priority),
                task.category,
                int(task.alert_enabled),
                task.alert_time,
                task.alert_mode.value,
                time.time(),
                int(task.id),
            ),
        )

    # ---- users ----

    def add_user(self, email: str, timezone: str = "UTC") -> int:
        if not email or not email.strip():
            raise ValueError("email is required")
        if not is_valid_timezone(timezone):
            raise ValueError(f"unknown timezone: {timezone!r}")

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO users(email, timezone, created_at) VALUES (?, ?, ?)",
                (email.strip().lower(), timezone.strip(), time.time()),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for users insert")
            logger.debug("User added id=%s tz=%s", rowid, timezone)
            return int(rowid)
        finally:
            conn.close()

    def get_user(self, user_id: int) -> User | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM users WHERE id = ?", (int(user_id),))
            row = cur.fetchone()
            if row is None:
                return None
            cur.execute(
                "SELECT name, color FROM categories WHERE user_id = ? ORDER BY id ASC",
                (int(user_id),),
            )
            cats = tuple(Category(name=r["name"], color=r["color"]) for r in cur.fetchall())
            return User(
                id=int(row["id"]),
                email=str(row["email"]),
                timezone=str(row["timezone"] or "UTC"),
                categories=cats,
                settings=self._row_to_settings(row),
            )
        finally:
            conn.close()

    @staticmethod
    def _row_to_settings(row: sqlite3.Row) -> UserSettings:
        return UserSettings(
            default_repeat_every_day=bool(row["default_repeat_every_day"]),
            default_repeat_every_other_day=bool(row["default_repeat_every_other_day"]),
            hide_categories=bool(row["hide_categories"]),
        )

    def update_user_settings(
        self,
        user_id: int,
        *,
        default_repeat_every_day: bool | None = None,
        default_repeat_every_other_day: bool | None = None,
        hide_categories: bool | None = None,
    ) -> UserSettings:
        """
        Change the given settings; None leaves a setting as it is.

        Turning one repeat default on turns the other off. Asking for both at
        once is a ValueError.
        """
        if default_repeat_every_day and default_repeat_every_other_day:
            raise ValueError("default repeat every day and every other day are mutually exclusive")

        user = self.get_user(user_id)
        if user is None:
            raise ValueError(f"unknown user: {user_id}")

        current = user.settings
        if default_repeat_every_day:
            default_repeat_every_other_day = False
        if default_repeat_every_other_day:
            default_repeat_every_day = False

        settings = UserSettings(
            default_repeat_every_day=(
                current.default_repeat_every_day if default_repeat_every_day is None else bool(default_repeat_every_day)
            ),
            default_repeat_every_other_day=(
                current.default_repeat_every_other_day
                if default_repeat_every_other_day is None
                else bool(default_repeat_every_other_day)
            ),
            hide_categories=current.hide_categories if hide_categories is None else bool(hide_categories),
        )

        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE users
                SET default_repeat_every_day = ?, default_repeat_every_other_day = ?, hide_categories = ?
                WHERE id = ?
                """,
                (
                    int(settings.default_repeat_every_day),
                    int(settings.default_repeat_every_other_day),
                    int(settings.hide_categories),
                    int(user_id),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("User %s settings=%s", user_id, settings)
        return settings

    def set_timezone(self, user_id: int, timezone: str) -> None:
        if not is_valid_timezone(timezone):
            raise ValueError(f"unknown timezone: {timezone!r}")
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE users SET timezone = ? WHERE id = ?",
                (timezone.strip(), int(user_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def delete_user(self, user_id: int) -> None:
        """Delete the user together with everything they own."""
        conn = self._get_conn()
        try:
            with conn:
                conn.execute("DELETE FROM tasks WHERE owner_id = ?", (int(user_id),))
                conn.execute("DELETE FROM categories WHERE user_id = ?", (int(user_id),))
                conn.execute("DELETE FROM subscriptions WHERE user_id = ?", (int(user_id),))
                conn.execute("DELETE FROM users WHERE id = ?", (int(user_id),))
            logger.info("User %s deleted with tasks and subscriptions", user_id)
        finally:
            conn.close()

    # ---- categories ----

    def upsert_category(self, user_id: int, name: str, color: str) -> None:
        name = (name or "").strip()
        if not name:
            raise ValueError("category name is required")
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO categories(user_id, name, color) VALUES (?, ?, ?)
                ON CONFLICT(user_id, name) DO UPDATE SET color = excluded.color
                """,
                (int(user_id), name, color),
            )
            conn.commit()
        finally:
            conn.close()

    def list_categories(self, user_id: int) -> list[Category]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT name, color FROM categories WHERE user_id = ? ORDER BY id ASC",
                (int(user_id),),
            )
            return [Category(name=r["name"], color=r["color"]) for r in cur.fetchall()]
        finally:
            conn.close()

    def delete_category(self, user_id: int, name: str) -> None:
        """Tasks keep their category label; it just has no colour any more."""
        conn = self._get_conn()
        try:
            conn.execute(
                "DELETE FROM categories WHERE user_id = ? AND name = ?",
                (int(user_id), name),
            )
            conn.commit()
        finally:
            conn.close()

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        owner_id: int,
        text: str,
        recurring: bool = True,
        frequency: Frequency | str = Frequency.WEEKLY,
        days: Iterable[int] | None = None,
        start_date: str | None = None,
        date: str | None = None,
        priority: int = 0,
        category: str | None = None,
        alert_enabled: bool = False,
        alert_time: str | None = None,
        alert_mode: AlertMode | str = AlertMode.BOTH,
    ) -> int:
        if self.get_user(owner_id) is None:
            raise ValueError(f"unknown user: {owner_id}")

        now = time.time()
        task = _validate_task(
            Task(
                id=0,
                owner_id=int(owner_id),
                text=text,
                recurring=bool(recurring),
                frequency=Frequency.from_db(frequency),
                days=_clean_days(days),
                start_date=start_date,
                date=date,
                priority=int(priority),
                category=category,
                alert_enabled=bool(alert_enabled),
                alert_time=alert_time,
                alert_mode=AlertMode.from_db(alert_mode),
                created_at=now,
            )
        )

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO tasks(owner_id, text, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (task.owner_id, task.text, now, now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            self._write_task(conn, dataclasses.replace(task, id=task_id))
            conn.commit()
            logger.debug(
                "Task added id=%s owner=%s frequency=%s alert=%s",
                task_id,
                task.owner_id,
                task.frequency.value if task.recurring else "once",
                task.alert_time if task.alert_enabled else None,
            )
            return task_id
        finally:
            conn.close()

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def update_task(self, task_id: int, **fields: Any) -> Task:
        """
        Edit a task in place. Only the given fields change; the merged task
        is validated as a whole, so e.g. switching to everyOtherDay needs a
        start_date in the same call (or already stored).
        """
        unknown = set(fields) - _TASK_FIELDS
        if unknown:
            raise ValueError(f"unknown task fields: {sorted(unknown)}")

        current = self.get_task(task_id)
        if current is None:
            raise ValueError(f"unknown task: {task_id}")

        if "frequency" in fields:
            fields["frequency"] = Frequency.from_db(fields["frequency"])
        if "alert_mode" in fields:
            fields["alert_mode"] = AlertMode.from_db(fields["alert_mode"])
        if "days" in fields:
            fields["days"] = _clean_days(fields["days"])
        if "completed_dates" in fields:
            dates = frozenset(fields["completed_dates"])
            bad = [d for d in dates if parse_date(d) is None]
            if bad:
                raise ValueError(f"invalid completed dates: {bad}")
            fields["completed_dates"] = dates

        task = _validate_task(dataclasses.replace(current, **fields))

        conn = self._get_conn()
        try:
            self._write_task(conn, task)
            conn.commit()
        finally:
            conn.close()
        return task

    def delete_task(self, task_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
        finally:
            conn.close()

    def list_tasks_for_user(self, user_id: int) -> list[Task]:
        """All tasks of the user in insertion order (display order is applied by the caller)."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM tasks WHERE owner_id = ? ORDER BY created_at ASC, id ASC",
                (int(user_id),),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_alerting_tasks(self, user_id: int, alert_time: str) -> list[Task]:
        """Tasks with alerts on whose alert_time is exactly `alert_time` (HH:mm)."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT *
                FROM tasks
                WHERE owner_id = ?
                  AND alert_enabled = 1
                  AND alert_time = ?
                ORDER BY priority ASC, created_at ASC, id ASC
                """,
                (int(user_id), alert_time),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def set_completed(self, task_id: int, date: str, completed: bool) -> Task | None:
        """Add or remove `date` from the task's completed dates. Returns the updated task."""
        if parse_date(date) is None:
            raise ValueError(f"invalid date: {date!r}")

        conn = self._get_conn()
        try:
            with conn:
                cur = conn.cursor()
                # Read-modify-write: take the write lock before reading.
                cur.execute("BEGIN IMMEDIATE")
                cur.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),))
                row = cur.fetchone()
                if row is None:
                    return None
                task = self._row_to_task(row)
                dates = set(task.completed_dates)
                if completed:
                    dates.add(date)
                else:
                    dates.discard(date)
                task = dataclasses.replace(task, completed_dates=frozenset(dates))
                self._write_task(conn, task)
            logger.debug("Task %s completed=%s on %s", task_id, completed, date)
            return task
        finally:
            conn.close()

    def reorder_tasks(self, user_id: int, ordered_ids: Iterable[int]) -> None:
        """Assign priorities 0..n-1 following `ordered_ids`. Foreign ids are ignored."""
        now = time.time()
        conn = self._get_conn()
        try:
            with conn:
                for idx, task_id in enumerate(ordered_ids):
                    conn.execute(
                        "UPDATE tasks SET priority = ?, updated_at = ? WHERE id = ? AND owner_id = ?",
                        (idx, now, int(task_id), int(user_id)),
                    )
        finally:
            conn.close()

    # ---- push subscriptions ----

    def save_subscription(
        self,
        user_id: int,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: str | None = None,
    ) -> int:
        """Create a subscription, or refresh the keys if this endpoint is already known."""
        endpoint = (endpoint or "").strip()
        if not endpoint:
            raise ValueError("endpoint is required")
        if not p256dh or not auth:
            raise ValueError("subscription keys are required")

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO subscriptions(user_id, endpoint, p256dh, auth, user_agent, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, endpoint) DO UPDATE SET
                    p256dh = excluded.p256dh,
                    auth = excluded.auth,
                    user_agent = excluded.user_agent
                """,
                (int(user_id), endpoint, p256dh, auth, user_agent, time.time()),
            )
            cur.execute(
                "SELECT id FROM subscriptions WHERE user_id = ? AND endpoint = ?",
                (int(user_id), endpoint),
            )
            (sub_id,) = cur.fetchone()
            conn.commit()
            logger.info("Subscription saved id=%s user=%s", sub_id, user_id)
            return int(sub_id)
        finally:
            conn.close()

    def list_users_with_subscriptions(self) -> list[int]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT DISTINCT user_id FROM subscriptions ORDER BY user_id ASC")
            return [int(r["user_id"]) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_subscriptions(self, user_id: int) -> list[Subscription]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM subscriptions WHERE user_id = ? ORDER BY id ASC",
                (int(user_id),),
            )
            return [self._row_to_subscription(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def delete_subscription(self, sub_id: int) -> None:
        """Idempotent: deleting a missing subscription is a no-op."""
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM subscriptions WHERE id = ?", (int(sub_id),))
            conn.commit()
        finally:
            conn.close()

    def delete_subscription_by_endpoint(self, user_id: int, endpoint: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "DELETE FROM subscriptions WHERE user_id = ? AND endpoint = ?",
                (int(user_id), endpoint),
            )
            conn.commit()
        finally:
            conn.close()
