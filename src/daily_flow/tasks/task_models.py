# tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Frequency(StrEnum):
    """
    Recurrence cadence of a recurring task.

    Notes:
    - "weekly" is the stored default; unknown values resolve to it.
    - "daily" is kept for rows written by older clients.
    """

    DAILY = "daily"
    WEEKLY = "weekly"
    EVERY_OTHER_DAY = "everyOtherDay"

    @classmethod
    def from_db(cls, raw: str | None) -> Frequency:
        if not raw:
            return cls.WEEKLY
        try:
            return cls(raw)
        except ValueError:
            return cls.WEEKLY


class AlertMode(StrEnum):
    VIBRATION = "vibration"
    SOUND = "sound"
    BOTH = "both"

    @classmethod
    def from_db(cls, raw: str | None) -> AlertMode:
        if not raw:
            return cls.BOTH
        try:
            return cls(raw)
        except ValueError:
            return cls.BOTH


ALL_DAYS: frozenset[int] = frozenset(range(7))
# Display days that go with an everyOtherDay cadence (Sun, Tue, Thu, Sat).
EVERY_OTHER_DAYS: frozenset[int] = frozenset({0, 2, 4, 6})


@dataclass(slots=True, frozen=True)
class Task:
    id: int
    owner_id: int
    text: str

    recurring: bool = True
    frequency: Frequency = Frequency.WEEKLY
    # 0 = Sunday .. 6 = Saturday
    days: frozenset[int] = ALL_DAYS
    start_date: str | None = None
    date: str | None = None

    completed_dates: frozenset[str] = frozenset()
    priority: int = 0
    category: str | None = None

    alert_enabled: bool = False
    alert_time: str | None = None
    alert_mode: AlertMode = AlertMode.BOTH

    created_at: float = 0.0


@dataclass(slots=True, frozen=True)
class Category:
    name: str
    color: str


@dataclass(slots=True, frozen=True)
class UserSettings:
    """
    Per-user preferences for new tasks and the today view.

    The two repeat defaults are mutually exclusive; the store enforces it.
    """

    default_repeat_every_day: bool = False
    default_repeat_every_other_day: bool = False
    hide_categories: bool = False


@dataclass(slots=True, frozen=True)
class User:
    id: int
    email: str
    timezone: str = "UTC"
    categories: tuple[Category, ...] = field(default_factory=tuple)
    settings: UserSettings = field(default_factory=UserSettings)


@dataclass(slots=True, frozen=True)
class Subscription:
    """A Web Push endpoint registered by one of the user's browsers."""

    id: int
    user_id: int
    endpoint: str
    p256dh: str
    auth: str
    user_agent: str | None = None
    created_at: float = 0.0

    def subscription_info(self) -> dict[str, object]:
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }


@dataclass(slots=True, frozen=True)
class NotificationPayload:
    title: str
    body: str
    url: str = "/"

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "body": self.body, "url": self.url}
