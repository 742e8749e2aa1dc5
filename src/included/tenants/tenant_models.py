# src/included/tenants/tenant_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ReportCadence(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"


@dataclass(frozen=True, slots=True)
class WorkflowSettings:
    """
    Per-tenant workflow preferences.

    notification_channels=None means "every configured channel".
    """

    report_cadence: ReportCadence = ReportCadence.DAILY
    notification_channels: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_cadence": self.report_cadence.value,
            "notification_channels": (
                list(self.notification_channels) if self.notification_channels is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> WorkflowSettings:
        if not raw:
            return cls()
        try:
            cadence = ReportCadence(str(raw.get("report_cadence") or "daily"))
        except ValueError:
            cadence = ReportCadence.DAILY
        channels_raw = raw.get("notification_channels")
        channels: tuple[str, ...] | None = None
        if isinstance(channels_raw, list):
            channels = tuple(str(c).strip().lower() for c in channels_raw if str(c).strip())
        return cls(report_cadence=cadence, notification_channels=channels)


@dataclass(frozen=True, slots=True)
class Tenant:
    id: str
    name: str
    email: str | None
    company: str | None
    phone: str | None
    inbound_email: str | None
    created_at: float
    updated_at: float
    workflow: WorkflowSettings = field(default_factory=WorkflowSettings)
