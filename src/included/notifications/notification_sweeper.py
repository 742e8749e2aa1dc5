# src/included/notifications/notification_sweeper.py

from __future__ import annotations

"""
Pending-notification sweeper.

A small polling loop that:
- fetches the oldest pending notification events (all tenants),
- resolves recipient + summary text for each event within that event's tenant,
- delivers through the channel's sender with retry/backoff,
- marks each event sent or failed exactly once.

Only channels with a registered sender are fetched; events for other channels
stay pending until a sender exists for them.
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from ..config import clamp_batch_size
from ..core.errors import DeliveryError
from ..core.ports import NotificationRepo, NotificationSender, SummaryRepo, TenantRepo
from ..core.retry import RetryPolicy, SleepFn
from ..tenants.tenant_models import Tenant
from .dispatcher import render_summary_email, send_with_retry
from .notification_models import NotificationEvent, NotificationStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepStats:
    processed: int = 0
    successful: int = 0
    failed: int = 0


def recipient_for(channel: str, tenant: Tenant) -> str | None:
    """Tenant contact address for a channel (email address or phone number)."""
    if channel == "email":
        return tenant.email
    return tenant.phone


def _mark(
    notifications: NotificationRepo,
    event: NotificationEvent,
    status: NotificationStatus,
    *,
    error: str | None = None,
    delivery_id: str | None = None,
) -> None:
    if error:
        logger.warning("Notification %s -> %s: %s", event.id, status.value, error)
    try:
        updated = notifications.mark_event(
            event.id,
            tenant_id=event.tenant_id,
            status=status,
            error=error,
            delivery_id=delivery_id,
        )
    except Exception:
        logger.exception("mark_event(%s) failed event_id=%s", status.value, event.id)
        return
    if not updated:
        logger.warning("Notification %s was no longer pending; %s not recorded", event.id, status.value)
    else:
        logger.info("Notification %s -> %s", event.id, status.value)


async def _deliver_one(
    event: NotificationEvent,
    *,
    notifications: NotificationRepo,
    summaries: SummaryRepo,
    tenants: TenantRepo,
    sender: NotificationSender,
    policy: RetryPolicy,
    sleep: SleepFn,
) -> bool:
    try:
        summary = summaries.get_summary(event.summary_id, tenant_id=event.tenant_id)
    except Exception as e:
        logger.exception("Summary lookup failed event_id=%s", event.id)
        _mark(notifications, event, NotificationStatus.FAILED, error=f"Summary lookup failed: {e}")
        return False
    if summary is None or not summary.summary.strip():
        _mark(
            notifications,
            event,
            NotificationStatus.FAILED,
            error=f"Summary content not found (summary_id={event.summary_id})",
        )
        return False

    try:
        tenant = tenants.get_tenant(event.tenant_id)
    except Exception as e:
        logger.exception("Tenant lookup failed event_id=%s", event.id)
        _mark(notifications, event, NotificationStatus.FAILED, error=f"Tenant lookup failed: {e}")
        return False
    recipient = recipient_for(event.channel, tenant) if tenant is not None else None
    if not recipient:
        _mark(
            notifications,
            event,
            NotificationStatus.FAILED,
            error=f"Tenant {event.channel} address not found",
        )
        return False

    subject, body = render_summary_email(summary.summary, tenant_name=tenant.name if tenant else None)

    try:
        delivery_id = await send_with_retry(
            sender,
            to=recipient,
            subject=subject,
            body=body,
            policy=policy,
            sleep=sleep,
        )
    except DeliveryError as e:
        _mark(notifications, event, NotificationStatus.FAILED, error=str(e))
        return False

    _mark(notifications, event, NotificationStatus.SENT, delivery_id=delivery_id)
    return True


async def process_pending_notifications(
    notifications: NotificationRepo,
    summaries: SummaryRepo,
    tenants: TenantRepo,
    senders: Mapping[str, NotificationSender],
    *,
    batch_size: int = 10,
    send_delay_seconds: float = 0.5,
    policy: RetryPolicy | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> SweepStats:
    """Process one batch of pending events, sequentially, oldest first."""
    stats = SweepStats()
    if not senders:
        return stats

    policy = policy or RetryPolicy()
    limit = clamp_batch_size(int(batch_size))

    try:
        events = notifications.list_pending(limit=limit, channels=list(senders))
    except Exception:
        logger.exception("list_pending notifications failed")
        return stats

    if not events:
        return stats

    logger.info("Processing %d pending notification(s)", len(events))

    for i, event in enumerate(events):
        stats.processed += 1
        try:
            ok = await _deliver_one(
                event,
                notifications=notifications,
                summaries=summaries,
                tenants=tenants,
                sender=senders[event.channel],
                policy=policy,
                sleep=sleep,
            )
        except Exception:
            logger.exception("Error processing notification %s", event.id)
            ok = False

        if ok:
            stats.successful += 1
        else:
            stats.failed += 1

        # Space out provider calls within a batch.
        if i < len(events) - 1 and send_delay_seconds > 0:
            await sleep(send_delay_seconds)

    logger.info("Notifications done: %d sent, %d failed", stats.successful, stats.failed)
    return stats


async def run_notification_sweeper(
    notifications: NotificationRepo,
    summaries: SummaryRepo,
    tenants: TenantRepo,
    senders: Mapping[str, NotificationSender],
    *,
    interval_seconds: float = 10.0,
    batch_size: int = 10,
    send_delay_seconds: float = 0.5,
    policy: RetryPolicy | None = None,
) -> None:
    """
    Every interval_seconds: process_pending_notifications(...).

    To stop the sweeper, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    logger.info(
        "Notification sweeper started (interval=%.1fs batch=%d channels=%s)",
        sleep_s,
        clamp_batch_size(int(batch_size)),
        ",".join(senders) or "-",
    )

    while True:
        await process_pending_notifications(
            notifications,
            summaries,
            tenants,
            senders,
            batch_size=batch_size,
            send_delay_seconds=send_delay_seconds,
            policy=policy,
        )
        await asyncio.sleep(sleep_s)
