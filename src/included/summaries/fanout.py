# src/included/summaries/fanout.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.ports import NotificationRepo, SummaryRepo, TenantRepo
from .summary_models import Summary

logger = logging.getLogger(__name__)


class FanOut:
    """
    Summary persistence + notification scheduling for a completed task.

    The summary insert must succeed (its failure propagates to the engine).
    Notification events are secondary: if they cannot be created the failure
    is logged and the summary is still returned.
    """

    def __init__(
        self,
        summaries: SummaryRepo,
        notifications: NotificationRepo,
        tenants: TenantRepo,
        *,
        channels: Iterable[str] = ("email",),
    ) -> None:
        self._summaries = summaries
        self._notifications = notifications
        self._tenants = tenants
        self._channels = list(dict.fromkeys(c.strip().lower() for c in channels if c.strip()))

    @property
    def channels(self) -> list[str]:
        return list(self._channels)

    def enabled_channels(self, tenant_id: str) -> list[str]:
        """Configured channels, narrowed by the tenant's preference list if it has one."""
        tenant = self._tenants.get_tenant(tenant_id)
        prefs = tenant.workflow.notification_channels if tenant is not None else None
        if prefs is None:
            return list(self._channels)
        return [c for c in self._channels if c in prefs]

    def record_completion(self, task_id: str, tenant_id: str, summary_text: str) -> Summary:
        summary = self._summaries.add_summary(task_id=task_id, tenant_id=tenant_id, text=summary_text)

        try:
            channels = self.enabled_channels(tenant_id)
            self._notifications.add_events(
                tenant_id=tenant_id,
                summary_id=summary.id,
                channels=channels,
            )
        except Exception:
            logger.exception("Failed to create notification events for summary %s", summary.id)

        return summary
