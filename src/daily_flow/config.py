# src/daily_flow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time: without VAPID keys push is simply off.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "DAILYFLOW"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Web Push (VAPID) ----
    vapid_private_key: str | None
    vapid_subject: str
    push_ttl_seconds: int
    push_timeout_seconds: float

    # ---- Notifications ----
    notification_title: str
    notification_url: str

    # ---- Scheduling ----
    scheduler_enabled: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "Daily Flow")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/daily_flow"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "daily_flow.sqlite3")

        # Unprefixed names are accepted too (common in Web Push setups).
        vapid_private_key = _first_env(_k("VAPID_PRIVATE_KEY"), "VAPID_PRIVATE_KEY", default=None)
        vapid_subject = (
            _first_env(_k("VAPID_SUBJECT"), "VAPID_SUBJECT", default="mailto:admin@example.com")
            or "mailto:admin@example.com"
        )
        push_ttl_seconds = _env_int(_k("PUSH_TTL_SECONDS"), 300)
        push_timeout_seconds = _env_float(_k("PUSH_TIMEOUT_SECONDS"), 10.0)

        notification_title = _env(_k("NOTIFICATION_TITLE"), app_name)
        notification_url = _env(_k("NOTIFICATION_URL"), "/")

        scheduler_enabled = _env_bool(_k("SCHEDULER_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            vapid_private_key=vapid_private_key,
            vapid_subject=vapid_subject,
            push_ttl_seconds=push_ttl_seconds,
            push_timeout_seconds=push_timeout_seconds,
            notification_title=notification_title,
            notification_url=notification_url,
            scheduler_enabled=scheduler_enabled,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
