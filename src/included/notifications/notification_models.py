# src/included/notifications/notification_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

EMAIL_CHANNEL = "email"


class NotificationStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"

    @classmethod
    def from_db(cls, raw: str | None) -> NotificationStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    id: str
    tenant_id: str
    summary_id: str
    channel: str
    status: NotificationStatus
    created_at: float
    updated_at: float
    error: str | None = None
    delivery_id: str | None = None
