# tasks/dates.py

from __future__ import annotations

"""
Calendar helpers.

Everything the rest of the app compares is a *local* calendar date string
(YYYY-MM-DD) or a local wall-clock minute (HH:mm) in the user's IANA zone.
The conversion happens once, here, from an aware instant.

Weekdays use 0 = Sunday .. 6 = Saturday, the same encoding as Task.days.
"""

import functools
import logging
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(slots=True, frozen=True)
class LocalNow:
    date: str
    weekday: int
    time: str


@functools.lru_cache(maxsize=256)
def resolve_timezone(name: str | None) -> ZoneInfo:
    """
    Return the zone for an IANA identifier, falling back to UTC.

    Cached per identifier, so a bad value is logged once, not every minute.
    Names of tzdata directories ("America") raise OSError, not ZoneInfoNotFoundError.
    """
    cleaned = (name or "").strip()
    if not cleaned:
        return ZoneInfo(DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.warning("Unknown timezone %r; falling back to %s", cleaned, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def is_valid_timezone(name: str | None) -> bool:
    cleaned = (name or "").strip()
    if not cleaned:
        return False
    try:
        ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def weekday_index(d: date) -> int:
    # isoweekday: Monday=1 .. Sunday=7
    return d.isoweekday() % 7


def local_now(timezone: str | None, now: datetime | None = None) -> LocalNow:
    """
    Wall-clock date, weekday and minute in `timezone` at instant `now`.

    `now` defaults to the system clock. A naive `now` is taken to be UTC.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    local = now.astimezone(resolve_timezone(timezone))
    return LocalNow(
        date=local.date().isoformat(),
        weekday=weekday_index(local.date()),
        time=f"{local.hour:02d}:{local.minute:02d}",
    )


def parse_date(value: str | None) -> date | None:
    """Strict YYYY-MM-DD parse; None for anything else."""
    if not value or not _DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def day_difference(start: str | None, end: str | None) -> int | None:
    """
    Whole calendar days from `start` to `end` (negative if end is earlier).

    Both sides are calendar dates with no time component, so the result is
    exact; this is the only day-difference routine in the codebase.
    """
    a = parse_date(start)
    b = parse_date(end)
    if a is None or b is None:
        return None
    return (b - a).days


def add_days(value: str, n: int) -> str:
    d = parse_date(value)
    if d is None:
        raise ValueError(f"invalid date: {value!r}")
    return (d + timedelta(days=n)).isoformat()


def normalize_alert_time(value: str | None) -> str | None:
    """'8:05' -> '08:05'. Returns None when the value is not a valid time of day."""
    if value is None:
        return None
    m = _TIME_RE.match(value.strip())
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"
