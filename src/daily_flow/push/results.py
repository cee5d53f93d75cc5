# push/results.py

from __future__ import annotations

from enum import StrEnum


class DeliveryResult(StrEnum):
    OK = "ok"
    EXPIRED = "expired"
    FAILED = "failed"
