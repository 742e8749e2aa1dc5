# src/included/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine, fan-out and sweepers depend on Protocols instead of concrete stores
and clients. This keeps the LLM/email providers and storage swappable and
makes testing easier.
"""

from collections.abc import Iterable
from typing import Protocol

from ..notifications.notification_models import NotificationEvent, NotificationStatus
from ..summaries.summary_models import Summary
from ..tasks.task_models import Task, TaskStatus
from ..tenants.tenant_models import Tenant


class LLMBackend(Protocol):
    """One request/response call to a text model. May raise or time out."""

    async def complete(self, system_prompt: str, text: str) -> str: ...


class Summarizer(Protocol):
    """summarize(text) -> non-empty text, or SummarizationError."""

    async def summarize(self, text: str) -> str: ...


class NotificationSender(Protocol):
    """
    Delivery capability for one channel.

    Returns the provider's delivery id; raises DeliveryError on rejection
    or transport failure.
    """

    async def send(self, to: str, subject: str, body: str) -> str: ...


class TenantRepo(Protocol):
    def get_tenant(self, tenant_id: str) -> Tenant | None: ...


class TaskRepo(Protocol):
    def add_task(self, *, tenant_id: str, input_text: str) -> Task: ...
    def get_task(self, task_id: str, *, tenant_id: str) -> Task | None: ...
    def list_pending_tasks(self, *, limit: int = 10) -> list[Task]: ...
    def claim_task(self, task_id: str) -> Task | None: ...
    def finish_task(self, task_id: str, *, tenant_id: str, status: TaskStatus, output: str) -> bool: ...


class SummaryRepo(Protocol):
    def add_summary(self, *, task_id: str, tenant_id: str, text: str) -> Summary: ...
    def get_summary(self, summary_id: str, *, tenant_id: str) -> Summary | None: ...
    def list_summaries(
        self,
        tenant_id: str,
        *,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[Summary]: ...


class NotificationRepo(Protocol):
    def add_events(
        self,
        *,
        tenant_id: str,
        summary_id: str,
        channels: Iterable[str],
    ) -> list[NotificationEvent]: ...

    def list_pending(
        self,
        *,
        limit: int = 10,
        channels: Iterable[str] | None = None,
    ) -> list[NotificationEvent]: ...

    def mark_event(
        self,
        event_id: str,
        *,
        tenant_id: str,
        status: NotificationStatus,
        error: str | None = None,
        delivery_id: str | None = None,
    ) -> bool: ...


class CompletionRecorder(Protocol):
    """Persists the summary of a finished task and schedules its notifications."""

    def record_completion(self, task_id: str, tenant_id: str, summary_text: str) -> Summary: ...
