# src/daily_flow/tasks/alert_scheduler.py

from __future__ import annotations

"""
Alert scheduler.

A once-per-minute loop that:
- finds users with at least one push subscription,
- computes each user's local date/weekday/minute,
- matches tasks whose alert_time is that minute and which are due today,
- fans the notification out to every subscription of the user,
- deletes subscriptions the push service reports as expired.

Sweeps are serialised by a lock. Dispatches are awaited inside the sweep, so a
sweep that overruns its minute makes the loop skip to the next boundary rather
than start a second sweep.

Running several processes with a scheduler each sends duplicate alerts; there
is no cross-process coordination.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from ..core.ports import AlertRepo, PushSender
from ..push.results import DeliveryResult
from .dates import LocalNow, local_now
from .task_index import group_by_owner, tasks_due_on
from .task_models import NotificationPayload, Subscription, Task

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class AlertBatch:
    """Due alerts of one user plus the subscriptions they go to (snapshot)."""

    user_id: int
    local: LocalNow
    tasks: tuple[Task, ...]
    subscriptions: tuple[Subscription, ...]


@dataclass(slots=True)
class SweepReport:
    users: int = 0
    alerts: int = 0
    sent: int = 0
    expired: int = 0
    failed: int = 0


def build_payload(task: Task, *, title: str, url: str = "/") -> NotificationPayload:
    return NotificationPayload(title=title, body=task.text, url=url)


def collect_alerts(store: AlertRepo, now: datetime) -> list[AlertBatch]:
    """
    Match phase of a sweep (no I/O besides the store).

    A failure for one user is logged and that user is skipped. Failing to
    list users at all propagates to the caller.
    """
    matched: list[Task] = []
    context: dict[int, tuple[LocalNow, tuple[Subscription, ...]]] = {}

    for user_id in store.list_users_with_subscriptions():
        try:
            user = store.get_user(user_id)
            if user is None:
                logger.debug("Subscriptions of unknown user %s; skipping", user_id)
                continue

            local = local_now(user.timezone, now)
            candidates = store.list_alerting_tasks(user_id, local.time)
            if not candidates:
                continue

            due = tasks_due_on(candidates, local.date, local.weekday)
            if not due:
                continue

            subs = store.list_subscriptions(user_id)
            if not subs:
                continue

            context[user_id] = (local, tuple(subs))
            matched.extend(due)
        except Exception:
            logger.exception("Alert matching failed user_id=%s", user_id)

    return [
        AlertBatch(
            user_id=owner_id,
            local=context[owner_id][0],
            tasks=tuple(tasks),
            subscriptions=context[owner_id][1],
        )
        for owner_id, tasks in group_by_owner(matched).items()
    ]


class AlertScheduler:
    """
    Owns the minute loop.

    start()/stop() manage the background asyncio task; run_sweep() performs a
    single sweep and can be awaited directly (tests, manual triggers).
    """

    def __init__(
        self,
        store: AlertRepo,
        sender: PushSender,
        *,
        title: str = "Daily Flow",
        url: str = "/",
        clock: Clock | None = None,
        tick_offset_seconds: float = 0.5,
    ) -> None:
        self._store = store
        self._sender = sender
        self._title = title
        self._url = url
        self._clock = clock or _utc_now
        self._tick_offset = max(0.0, float(tick_offset_seconds))
        self._lock = asyncio.Lock()
        self._runner: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def start(self) -> None:
        """Spawn the minute loop on the running event loop. No-op if already running."""
        if self.running:
            return
        self._runner = asyncio.create_task(self._run_forever(), name="alert-scheduler")

    async def stop(self) -> None:
        """Cancel the loop and wait for it. In-flight dispatches are abandoned."""
        runner, self._runner = self._runner, None
        if runner is None:
            return
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
        logger.info("Alert scheduler stopped")

    async def run_sweep(self, now: datetime | None = None) -> SweepReport:
        if now is None:
            now = self._clock()
        async with self._lock:
            return await self._sweep(now)

    async def _sweep(self, now: datetime) -> SweepReport:
        report = SweepReport()

        batches = collect_alerts(self._store, now)
        if not batches:
            return report

        jobs: list[tuple[Task, Subscription, NotificationPayload]] = []
        for batch in batches:
            report.users += 1
            report.alerts += len(batch.tasks)
            for task in batch.tasks:
                payload = build_payload(task, title=self._title, url=self._url)
                for sub in batch.subscriptions:
                    jobs.append((task, sub, payload))

        results = await asyncio.gather(
            *(self._sender.send(sub, payload) for _, sub, payload in jobs),
            return_exceptions=True,
        )

        expired: dict[int, Subscription] = {}
        for (task, sub, _), result in zip(jobs, results):
            if isinstance(result, BaseException):
                report.failed += 1
                logger.error(
                    "Alert dispatch raised task_id=%s sub=%s",
                    task.id,
                    sub.id,
                    exc_info=result,
                )
            elif result == DeliveryResult.OK:
                report.sent += 1
            elif result == DeliveryResult.EXPIRED:
                report.expired += 1
                expired[sub.id] = sub
            else:
                report.failed += 1
                logger.warning("Alert dispatch failed task_id=%s sub=%s", task.id, sub.id)

        for sub in expired.values():
            try:
                self._store.delete_subscription(sub.id)
                logger.info("Deleted expired subscription %s user=%s", sub.id, sub.user_id)
            except Exception:
                logger.exception("delete_subscription failed sub=%s", sub.id)

        logger.info(
            "Alert sweep users=%s alerts=%s sent=%s expired=%s failed=%s",
            report.users,
            report.alerts,
            report.sent,
            report.expired,
            report.failed,
        )
        return report

    def _seconds_until_next_minute(self) -> float:
        now = self._clock()
        into_minute = now.second + now.microsecond / 1_000_000
        return (60.0 - into_minute) + self._tick_offset

    async def _run_forever(self) -> None:
        logger.info("Alert scheduler started")
        last_minute: str | None = None
        while True:
            await asyncio.sleep(self._seconds_until_next_minute())

            now = self._clock()
            minute = now.astimezone(UTC).strftime("%Y-%m-%d %H:%M")
            if minute == last_minute:
                # Woke early (wall clock stepped back); this minute was already swept.
                logger.debug("Alert minute %s already swept; waiting", minute)
                continue
            last_minute = minute

            started = time.monotonic()
            try:
                await self.run_sweep(now)
            except Exception:
                logger.exception("Alert sweep failed")

            elapsed = time.monotonic() - started
            if elapsed >= 60.0:
                logger.warning("Alert sweep took %.1fs; skipped minute(s) are not replayed", elapsed)
