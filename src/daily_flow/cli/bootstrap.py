# src/daily_flow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/push sender/scheduler).
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.state import AppState
from ..push.webpush_sender import WebPushSender
from ..tasks.alert_scheduler import AlertScheduler
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings: Settings | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = TaskStore(settings.db_path)
    sender = WebPushSender(
        settings.vapid_private_key,
        settings.vapid_subject,
        ttl=settings.push_ttl_seconds,
        timeout=settings.push_timeout_seconds,
    )
    if not sender.enabled:
        logger.warning("No VAPID private key configured; alerts will be matched but not delivered.")

    scheduler = AlertScheduler(
        store,
        sender,
        title=settings.notification_title,
        url=settings.notification_url,
    )

    return AppState(
        settings=settings,
        task_store=store,
        push_sender=sender,
        scheduler=scheduler,
    )
