# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from included.core.retry import RetryPolicy
from included.inbound.inbound_routing import InboundRouter
from included.inbound.inbound_store import InboundEmailStore
from included.llm.summarizer import SummarizationClient
from included.notifications.notification_store import NotificationStore
from included.summaries.fanout import FanOut
from included.summaries.summary_store import SummaryStore
from included.tasks.task_engine import TaskEngine
from included.tasks.task_store import TaskStore
from included.tenants.tenant_models import Tenant
from included.tenants.tenant_store import TenantStore

from .fakes import ScriptedBackend, no_sleep

INBOUND_DOMAIN = "in.example.test"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="included-test",
        log_level="INFO",
        environment="test",
        is_production=False,
        console_enabled=False,
        # Paths (tmp per test run)
        data_dir=tmp_path,
        db_path=tmp_path / "included.sqlite3",
        # No keys: offline summaries + log-only email
        openai_api_key=None,
        openai_base_url="https://llm.invalid/v1",
        llm_models=["test-model"],
        llm_connect_timeout=1.0,
        llm_read_timeout=1.0,
        summarization_max_attempts=3,
        summarization_base_delay=0.0,
        summarization_max_delay=0.0,
        resend_api_key=None,
        resend_base_url="https://mail.invalid",
        email_from="noreply@example.test",
        delivery_timeout=1.0,
        delivery_max_attempts=3,
        delivery_base_delay=0.0,
        delivery_max_delay=0.0,
        notification_batch_size=10,
        notification_poll_interval=0.01,
        notification_send_delay=0.0,
        recovery_batch_size=10,
        recovery_poll_interval=0.01,
        inbound_email_domain=INBOUND_DOMAIN,
        inbound_email_prefix="client_",
        notification_channels=["email", "whatsapp"],
        report_newest_first=True,
    )


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "included.sqlite3"


# NOTE: real SQLite stores everywhere; their conditional updates are part of
# what we want to test.


@pytest.fixture()
def tenant_store(db_path: Path) -> TenantStore:
    return TenantStore(db_path)


@pytest.fixture()
def task_store(db_path: Path) -> TaskStore:
    return TaskStore(db_path)


@pytest.fixture()
def summary_store(db_path: Path) -> SummaryStore:
    return SummaryStore(db_path)


@pytest.fixture()
def notification_store(db_path: Path) -> NotificationStore:
    return NotificationStore(db_path)


@pytest.fixture()
def inbound_store(db_path: Path) -> InboundEmailStore:
    return InboundEmailStore(db_path)


@pytest.fixture()
def tenant(tenant_store: TenantStore) -> Tenant:
    return tenant_store.create_tenant(
        name="Acme",
        email="owner@acme.test",
        inbound_domain=INBOUND_DOMAIN,
    )


@pytest.fixture()
def other_tenant(tenant_store: TenantStore) -> Tenant:
    return tenant_store.create_tenant(
        name="Globex",
        email="owner@globex.test",
        inbound_domain=INBOUND_DOMAIN,
    )


@pytest.fixture()
def backend() -> ScriptedBackend:
    return ScriptedBackend(["A short summary."])


@pytest.fixture()
def summarizer(backend: ScriptedBackend) -> SummarizationClient:
    return SummarizationClient(
        backend,
        policy=RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0),
        sleep=no_sleep,
    )


@pytest.fixture()
def fanout(
    summary_store: SummaryStore,
    notification_store: NotificationStore,
    tenant_store: TenantStore,
) -> FanOut:
    return FanOut(summary_store, notification_store, tenant_store, channels=("email", "whatsapp"))


@pytest.fixture()
def engine(
    task_store: TaskStore,
    tenant_store: TenantStore,
    summarizer: SummarizationClient,
    fanout: FanOut,
) -> TaskEngine:
    return TaskEngine(task_store, tenant_store, summarizer, fanout)


@pytest.fixture()
def router(
    tenant_store: TenantStore,
    inbound_store: InboundEmailStore,
    engine: TaskEngine,
) -> InboundRouter:
    return InboundRouter(tenant_store, inbound_store, engine, domain=INBOUND_DOMAIN)
