# src/included/inbound/inbound_routing.py

from __future__ import annotations

"""
Inbound email routing.

Each tenant owns an address of the form <prefix><tenant uuid>@<domain>.
Every recipient of an inbound message is mapped back to its tenant; each
routed recipient gets an inbound record and a task whose input carries
sender, subject and body.
"""

import logging
import re
from collections.abc import Iterable
from email.utils import parseaddr

from ..core.errors import RoutingError
from ..core.ports import TenantRepo
from ..tasks.task_engine import TaskEngine
from .inbound_models import EmailData, InboundEmail, InboundPayload, InboundStatus
from .inbound_store import InboundEmailStore

logger = logging.getLogger(__name__)

_UUID_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


def extract_tenant_id(address: str, *, domain: str, prefix: str = "client_") -> str | None:
    """
    Tenant id from a routing address, or None.

    Accepts bare addresses and the `Name <addr>` form. Matching is
    case-insensitive; the id is returned lowercased.
    """
    if not address or not domain:
        return None
    _, addr = parseaddr(address.strip())
    if not addr:
        return None
    pattern = rf"^{re.escape(prefix)}({_UUID_RE})@{re.escape(domain)}$"
    m = re.match(pattern, addr.strip(), flags=re.IGNORECASE)
    if not m:
        return None
    return m.group(1).lower()


def build_task_input(
    sender: str,
    subject: str,
    body: str,
    attachments: Iterable[str] = (),
) -> str:
    text = f"Email from: {sender}\nSubject: {subject}\n\n{body}"
    names = [a for a in attachments if a]
    if names:
        text += f"\n\nAttachments: {', '.join(names)}"
    return text


class InboundRouter:
    def __init__(
        self,
        tenants: TenantRepo,
        inbound: InboundEmailStore,
        engine: TaskEngine,
        *,
        domain: str,
        prefix: str = "client_",
    ) -> None:
        self._tenants = tenants
        self._inbound = inbound
        self._engine = engine
        self._domain = domain
        self._prefix = prefix

    def _resolve(self, recipients: Iterable[str]) -> list[str]:
        tenant_ids: list[str] = []
        for address in recipients:
            tenant_id = extract_tenant_id(address, domain=self._domain, prefix=self._prefix)
            if tenant_id is None:
                logger.warning("Unroutable recipient %r", address)
                continue
            if self._tenants.get_tenant(tenant_id) is None:
                logger.warning("No tenant for recipient %r", address)
                continue
            if tenant_id not in tenant_ids:
                tenant_ids.append(tenant_id)
        return tenant_ids

    async def route(self, payload: InboundPayload) -> list[InboundEmail]:
        """
        Route one inbound message to every tenant it was addressed to.

        Raises RoutingError (and persists nothing) when no recipient maps to a
        known tenant. Task creation failures are logged; the inbound record is
        kept and marked failed.
        """
        tenant_ids = self._resolve(payload.to)
        if not tenant_ids:
            raise RoutingError(
                "No valid recipient found",
                address=", ".join(payload.to) or None,
            )

        body = payload.text or payload.html or ""
        records: list[InboundEmail] = []
        for tenant_id in tenant_ids:
            record = self._inbound.add_email(
                tenant_id=tenant_id,
                sender=payload.sender,
                subject=payload.subject,
                body=body,
            )
            task_id = await self._create_task(
                build_task_input(payload.sender, payload.subject, body),
                tenant_id,
            )
            status = InboundStatus.TASK_CREATED if task_id else InboundStatus.FAILED
            try:
                self._inbound.set_status(record.id, tenant_id=tenant_id, status=status, task_id=task_id)
            except Exception:
                logger.exception("Failed to update inbound record %s", record.id)
            records.append(
                InboundEmail(
                    id=record.id,
                    tenant_id=record.tenant_id,
                    sender=record.sender,
                    subject=record.subject,
                    body=record.body,
                    source=record.source,
                    status=status,
                    created_at=record.created_at,
                    task_id=task_id,
                )
            )
        return records

    async def ingest_email(self, data: EmailData) -> str | None:
        """
        Turn an email fetched by a mailbox integration into a task.

        Returns the task id, or None when the email is invalid or the task
        could not be created.
        """
        if not data.tenant_id or not data.sender or not data.subject or not data.body:
            logger.warning("Invalid email data for tenant %r; skipping", data.tenant_id)
            return None
        if self._tenants.get_tenant(data.tenant_id) is None:
            logger.warning("Email for unknown tenant %r; skipping", data.tenant_id)
            return None

        record = self._inbound.add_email(
            tenant_id=data.tenant_id,
            sender=data.sender,
            subject=data.subject,
            body=data.body,
            source="sync",
        )
        task_id = await self._create_task(
            build_task_input(data.sender, data.subject, data.body, data.attachments),
            data.tenant_id,
        )
        status = InboundStatus.TASK_CREATED if task_id else InboundStatus.FAILED
        try:
            self._inbound.set_status(record.id, tenant_id=data.tenant_id, status=status, task_id=task_id)
        except Exception:
            logger.exception("Failed to update inbound record %s", record.id)
        return task_id

    async def _create_task(self, text: str, tenant_id: str) -> str | None:
        try:
            task = await self._engine.create_task(text, tenant_id)
        except Exception:
            logger.exception("Task creation failed for tenant %s", tenant_id)
            return None
        return task.id
