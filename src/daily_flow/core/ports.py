# src/daily_flow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The scheduler and read path depend on Protocols instead of concrete implementations.
This keeps storage and push transport swappable and makes testing easier.
"""

from typing import Awaitable, Protocol

from ..push.results import DeliveryResult
from ..tasks.task_models import NotificationPayload, Subscription, Task, User


class PushSender(Protocol):
    """
    Transport-side port: deliver one payload to one push endpoint.

    Implementations report the outcome instead of raising:
    - OK: accepted by the push service
    - EXPIRED: endpoint is gone for good (404/410); caller deletes it
    - FAILED: anything else; caller logs and moves on
    """

    def send(self, subscription: Subscription, payload: NotificationPayload) -> Awaitable[DeliveryResult]: ...


class TaskRepo(Protocol):
    # Read path
    def get_user(self, user_id: int) -> User | None: ...
    def list_tasks_for_user(self, user_id: int) -> list[Task]: ...

    # Alert matching
    def list_alerting_tasks(self, user_id: int, alert_time: str) -> list[Task]: ...


class SubscriptionRepo(Protocol):
    def list_users_with_subscriptions(self) -> list[int]: ...
    def list_subscriptions(self, user_id: int) -> list[Subscription]: ...
    def delete_subscription(self, sub_id: int) -> None: ...


class AlertRepo(TaskRepo, SubscriptionRepo, Protocol):
    """Everything the alert scheduler needs from storage."""

