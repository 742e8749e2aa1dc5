# src/included/inbound/inbound_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class InboundStatus(StrEnum):
    RECEIVED = "received"
    TASK_CREATED = "task_created"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class InboundPayload:
    """What the email provider's inbound webhook hands us."""

    sender: str
    to: tuple[str, ...]
    subject: str
    text: str
    html: str | None = None


@dataclass(frozen=True, slots=True)
class EmailData:
    """An email pulled from a tenant's mailbox by a direct integration."""

    tenant_id: str
    sender: str
    subject: str
    body: str
    attachments: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class InboundEmail:
    id: str
    tenant_id: str
    sender: str
    subject: str
    body: str
    source: str
    status: InboundStatus
    created_at: float
    task_id: str | None = None
