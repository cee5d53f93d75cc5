# src/daily_flow/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..config import Settings
from ..push.webpush_sender import WebPushSender
from ..tasks.alert_scheduler import AlertScheduler
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Settings

    task_store: TaskStore
    push_sender: WebPushSender
    scheduler: AlertScheduler
