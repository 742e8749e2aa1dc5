# tests/test_notification_sweeper.py

from __future__ import annotations

import asyncio

import pytest

from included.core.retry import RetryPolicy
from included.notifications.dispatcher import SUMMARY_EMAIL_SUBJECT
from included.notifications.notification_models import NotificationStatus
from included.notifications.notification_sweeper import (
    process_pending_notifications,
    run_notification_sweeper,
)

from .fakes import FlakySender, RecordingSender, RecordingSleep, no_sleep


def _sweep(notification_store, summary_store, tenant_store, senders, **kw):
    kw.setdefault("send_delay_seconds", 0.0)
    kw.setdefault("policy", RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0))
    kw.setdefault("sleep", no_sleep)
    return process_pending_notifications(notification_store, summary_store, tenant_store, senders, **kw)


@pytest.mark.asyncio
async def test_pending_email_is_sent_and_marked(
    notification_store, summary_store, tenant_store, tenant
) -> None:
    summary = summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="Numbers <up>")
    (event,) = notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email"])
    sender = RecordingSender()

    stats = await _sweep(notification_store, summary_store, tenant_store, {"email": sender})

    assert (stats.processed, stats.successful, stats.failed) == (1, 1, 0)
    to, subject, body = sender.sent[0]
    assert to == "owner@acme.test"
    assert subject == SUMMARY_EMAIL_SUBJECT
    assert "Numbers &lt;up&gt;" in body

    stored = notification_store.get_event(event.id, tenant_id=tenant.id)
    assert stored.status == NotificationStatus.SENT
    assert stored.delivery_id == "msg-1"


@pytest.mark.asyncio
async def test_missing_summary_marks_event_failed_without_sending(
    notification_store, summary_store, tenant_store, tenant
) -> None:
    (event,) = notification_store.add_events(
        tenant_id=tenant.id, summary_id="missing-summary", channels=["email"]
    )
    sender = RecordingSender()

    stats = await _sweep(notification_store, summary_store, tenant_store, {"email": sender})

    assert stats.failed == 1
    assert sender.sent == []
    stored = notification_store.get_event(event.id, tenant_id=tenant.id)
    assert stored.status == NotificationStatus.FAILED
    assert "Summary content not found" in (stored.error or "")


@pytest.mark.asyncio
async def test_failed_event_does_not_stop_the_batch(
    notification_store, summary_store, tenant_store, tenant
) -> None:
    (broken,) = notification_store.add_events(
        tenant_id=tenant.id, summary_id="missing-summary", channels=["email"]
    )
    summary = summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="hello")
    (good,) = notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email"])
    sender = RecordingSender()

    stats = await _sweep(notification_store, summary_store, tenant_store, {"email": sender})

    assert (stats.processed, stats.successful, stats.failed) == (2, 1, 1)
    assert notification_store.get_event(broken.id, tenant_id=tenant.id).status == NotificationStatus.FAILED
    assert notification_store.get_event(good.id, tenant_id=tenant.id).status == NotificationStatus.SENT
    assert len(sender.sent) == 1


@pytest.mark.asyncio
async def test_summary_of_another_tenant_is_not_used(
    notification_store, summary_store, tenant_store, tenant, other_tenant
) -> None:
    foreign = summary_store.add_summary(task_id="t1", tenant_id=other_tenant.id, text="secret")
    (event,) = notification_store.add_events(tenant_id=tenant.id, summary_id=foreign.id, channels=["email"])
    sender = RecordingSender()

    await _sweep(notification_store, summary_store, tenant_store, {"email": sender})

    assert sender.sent == []
    assert notification_store.get_event(event.id, tenant_id=tenant.id).status == NotificationStatus.FAILED


@pytest.mark.asyncio
async def test_tenant_without_email_marks_event_failed(notification_store, summary_store, tenant_store) -> None:
    tenant = tenant_store.create_tenant(name="No Mail", inbound_domain="in.example.test")
    summary = summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="hello")
    (event,) = notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email"])

    stats = await _sweep(notification_store, summary_store, tenant_store, {"email": RecordingSender()})

    assert stats.failed == 1
    stored = notification_store.get_event(event.id, tenant_id=tenant.id)
    assert stored.status == NotificationStatus.FAILED
    assert "address not found" in (stored.error or "")


@pytest.mark.asyncio
async def test_transient_delivery_failures_are_retried(
    notification_store, summary_store, tenant_store, tenant
) -> None:
    summary = summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="hello")
    (event,) = notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email"])
    sender = FlakySender(failures=2)

    stats = await _sweep(notification_store, summary_store, tenant_store, {"email": sender})

    assert stats.successful == 1
    assert sender.calls == 3
    assert notification_store.get_event(event.id, tenant_id=tenant.id).status == NotificationStatus.SENT


@pytest.mark.asyncio
async def test_exhausted_delivery_retries_mark_failed_once(
    notification_store, summary_store, tenant_store, tenant
) -> None:
    summary = summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="hello")
    (event,) = notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email"])
    sender = FlakySender(failures=10)

    stats = await _sweep(notification_store, summary_store, tenant_store, {"email": sender})
    again = await _sweep(notification_store, summary_store, tenant_store, {"email": sender})

    assert stats.failed == 1
    assert sender.calls == 3
    assert again.processed == 0
    stored = notification_store.get_event(event.id, tenant_id=tenant.id)
    assert stored.status == NotificationStatus.FAILED
    assert "provider unavailable" in (stored.error or "")


@pytest.mark.asyncio
async def test_channels_without_sender_stay_pending(
    notification_store, summary_store, tenant_store, tenant
) -> None:
    summary = summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="hello")
    notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email", "whatsapp"])

    stats = await _sweep(notification_store, summary_store, tenant_store, {"email": RecordingSender()})

    assert stats.processed == 1
    pending = notification_store.list_events(tenant.id, status=NotificationStatus.PENDING)
    assert [e.channel for e in pending] == ["whatsapp"]


@pytest.mark.asyncio
async def test_batch_is_oldest_first_and_spaced(notification_store, summary_store, tenant_store, tenant) -> None:
    for i in range(3):
        summary = summary_store.add_summary(task_id=f"t{i}", tenant_id=tenant.id, text=f"summary {i}")
        notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email"])
    sender = RecordingSender()
    sleep = RecordingSleep()

    stats = await _sweep(
        notification_store,
        summary_store,
        tenant_store,
        {"email": sender},
        batch_size=2,
        send_delay_seconds=0.5,
        sleep=sleep,
    )

    assert stats.processed == 2
    assert "summary 0" in sender.sent[0][2]
    assert "summary 1" in sender.sent[1][2]
    # one pause between two sends
    assert sleep.delays == [0.5]


@pytest.mark.asyncio
async def test_out_of_range_batch_size_falls_back_to_default(
    notification_store, summary_store, tenant_store, tenant
) -> None:
    for i in range(12):
        summary = summary_store.add_summary(task_id=f"t{i}", tenant_id=tenant.id, text=f"s{i}")
        notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email"])

    stats = await _sweep(
        notification_store, summary_store, tenant_store, {"email": RecordingSender()}, batch_size=500
    )

    assert stats.processed == 10


@pytest.mark.asyncio
async def test_sweeper_loop_runs_until_cancelled(notification_store, summary_store, tenant_store, tenant) -> None:
    summary = summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="hello")
    notification_store.add_events(tenant_id=tenant.id, summary_id=summary.id, channels=["email"])
    sender = RecordingSender()

    runner = asyncio.create_task(
        run_notification_sweeper(
            notification_store,
            summary_store,
            tenant_store,
            {"email": sender},
            interval_seconds=0.01,
            send_delay_seconds=0.0,
            policy=RetryPolicy(max_attempts=1, base_delay=0.0, max_delay=0.0),
        )
    )

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert len(sender.sent) == 1
