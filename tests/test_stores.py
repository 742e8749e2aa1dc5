# tests/test_stores.py

from __future__ import annotations

import sqlite3

import pytest

from included.core.errors import StoreError, ValidationError
from included.inbound.inbound_models import InboundStatus
from included.notifications.notification_models import NotificationStatus
from included.tasks.task_models import TaskStatus
from included.tasks.task_store import TaskStore
from included.tenants.tenant_models import ReportCadence, WorkflowSettings

from .conftest import INBOUND_DOMAIN


def test_tenant_gets_inbound_address_and_workflow(tenant_store, tenant) -> None:
    assert tenant.inbound_email == f"client_{tenant.id}@{INBOUND_DOMAIN}"
    assert tenant.workflow == WorkflowSettings()

    updated = tenant_store.update_workflow_settings(
        tenant.id, WorkflowSettings(report_cadence=ReportCadence.WEEKLY, notification_channels=("email",))
    )
    assert updated.workflow.report_cadence == ReportCadence.WEEKLY
    assert updated.workflow.notification_channels == ("email",)


def test_tenant_requires_name(tenant_store) -> None:
    with pytest.raises(ValidationError):
        tenant_store.create_tenant(name=" ", inbound_domain=INBOUND_DOMAIN)


def test_task_status_only_moves_forward(task_store, tenant) -> None:
    task = task_store.add_task(tenant_id=tenant.id, input_text="x")

    # cannot finish what was never claimed
    assert not task_store.finish_task(task.id, tenant_id=tenant.id, status=TaskStatus.COMPLETED, output="s")

    claimed = task_store.claim_task(task.id)
    assert claimed is not None and claimed.status == TaskStatus.PROCESSING
    assert task_store.claim_task(task.id) is None

    # wrong tenant cannot finish it
    assert not task_store.finish_task(task.id, tenant_id="other", status=TaskStatus.FAILED, output="x")
    assert task_store.finish_task(task.id, tenant_id=tenant.id, status=TaskStatus.COMPLETED, output="s")
    assert not task_store.finish_task(task.id, tenant_id=tenant.id, status=TaskStatus.FAILED, output="x")

    done = task_store.get_task(task.id, tenant_id=tenant.id)
    assert (done.status, done.output) == (TaskStatus.COMPLETED, "s")


def test_finish_task_requires_terminal_status(task_store, tenant) -> None:
    task = task_store.add_task(tenant_id=tenant.id, input_text="x")
    with pytest.raises(ValueError):
        task_store.finish_task(task.id, tenant_id=tenant.id, status=TaskStatus.PENDING, output="")


def test_one_summary_per_task(summary_store, tenant) -> None:
    summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="a")
    with pytest.raises(StoreError):
        summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="b")


def test_notification_events_are_marked_once(notification_store, tenant) -> None:
    (event,) = notification_store.add_events(tenant_id=tenant.id, summary_id="s1", channels=["email", "email"])

    assert notification_store.mark_event(event.id, tenant_id=tenant.id, status=NotificationStatus.SENT, delivery_id="d1")
    assert not notification_store.mark_event(
        event.id, tenant_id=tenant.id, status=NotificationStatus.FAILED, error="late"
    )
    stored = notification_store.get_event(event.id, tenant_id=tenant.id)
    assert (stored.status, stored.delivery_id, stored.error) == (NotificationStatus.SENT, "d1", None)


def test_list_pending_filters_channels(notification_store, tenant) -> None:
    notification_store.add_events(tenant_id=tenant.id, summary_id="s1", channels=["email", "whatsapp"])

    assert [e.channel for e in notification_store.list_pending(channels=["whatsapp"])] == ["whatsapp"]
    assert notification_store.list_pending(channels=[]) == []
    assert len(notification_store.list_pending()) == 2


def test_inbound_status_update_is_tenant_scoped(inbound_store, tenant, other_tenant) -> None:
    record = inbound_store.add_email(tenant_id=tenant.id, sender="a", subject="s", body="b")

    inbound_store.set_status(record.id, tenant_id=other_tenant.id, status=InboundStatus.FAILED)
    inbound_store.set_status(record.id, tenant_id=tenant.id, status=InboundStatus.TASK_CREATED, task_id="t1")

    (stored,) = inbound_store.list_emails(tenant.id)
    assert (stored.status, stored.task_id) == (InboundStatus.TASK_CREATED, "t1")
    assert inbound_store.list_emails(other_tenant.id) == []


def test_schema_migration_adds_missing_columns(tmp_path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        "CREATE TABLE tasks (id TEXT PRIMARY KEY, tenant_id TEXT NOT NULL, input TEXT NOT NULL, output TEXT,"
        " status TEXT NOT NULL, created_at REAL NOT NULL)"
    )
    conn.commit()
    conn.close()

    store = TaskStore(db)
    task = store.add_task(tenant_id="t", input_text="x")

    cols = {r[1] for r in sqlite3.connect(db).execute("PRAGMA table_info(tasks)")}
    assert "updated_at" in cols
    assert store.get_task(task.id, tenant_id="t").updated_at == task.updated_at
