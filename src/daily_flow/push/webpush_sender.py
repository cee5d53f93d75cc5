# push/webpush_sender.py

from __future__ import annotations

import asyncio
import json
import logging

from pywebpush import WebPushException, webpush

from ..tasks.task_models import NotificationPayload, Subscription
from .results import DeliveryResult

logger = logging.getLogger(__name__)

# Push services answer 404/410 for endpoints that will never work again.
EXPIRED_STATUS_CODES = frozenset({404, 410})


class WebPushSender:
    """
    PushSender backed by pywebpush (VAPID).

    pywebpush is blocking (requests), so each send runs in a worker thread.
    Errors are mapped to DeliveryResult; nothing is raised to the caller.
    """

    def __init__(
        self,
        vapid_private_key: str | None,
        vapid_subject: str,
        *,
        ttl: int = 300,
        timeout: float = 10.0,
    ) -> None:
        self._private_key = (vapid_private_key or "").strip() or None
        self._subject = vapid_subject if vapid_subject.startswith(("mailto:", "https:")) else f"mailto:{vapid_subject}"
        self._ttl = max(0, int(ttl))
        self._timeout = float(timeout)
        self._warned_disabled = False

    @property
    def enabled(self) -> bool:
        return self._private_key is not None

    async def send(self, subscription: Subscription, payload: NotificationPayload) -> DeliveryResult:
        if not self.enabled:
            if not self._warned_disabled:
                logger.warning("VAPID private key not configured; push notifications are disabled.")
                self._warned_disabled = True
            return DeliveryResult.FAILED
        return await asyncio.to_thread(self._send_blocking, subscription, payload)

    def _send_blocking(self, subscription: Subscription, payload: NotificationPayload) -> DeliveryResult:
        try:
            webpush(
                subscription_info=subscription.subscription_info(),
                data=json.dumps(payload.to_dict(), ensure_ascii=False),
                vapid_private_key=self._private_key,
                # pywebpush adds "aud"/"exp" to the claims dict, so build a fresh one per call.
                vapid_claims={"sub": self._subject},
                ttl=self._ttl,
                timeout=self._timeout,
                headers={"Urgency": "high"},
            )
        except WebPushException as exc:
            status = exc.response.status_code if exc.response is not None else None
            if status in EXPIRED_STATUS_CODES:
                logger.info("Push endpoint expired sub=%s status=%s", subscription.id, status)
                return DeliveryResult.EXPIRED
            logger.warning("Push send failed sub=%s status=%s: %s", subscription.id, status, exc)
            return DeliveryResult.FAILED
        except Exception:
            logger.exception("Push send error sub=%s", subscription.id)
            return DeliveryResult.FAILED

        logger.debug("Push sent sub=%s", subscription.id)
        return DeliveryResult.OK
