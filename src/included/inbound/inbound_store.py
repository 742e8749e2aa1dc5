# src/included/inbound/inbound_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from ..core.sqlite_base import SQLiteStore, new_id
from .inbound_models import InboundEmail, InboundStatus

logger = logging.getLogger(__name__)


class InboundEmailStore(SQLiteStore):
    """Record of every inbound message accepted for a tenant."""

    def __init__(self, db_path: str | Path = "included.sqlite3") -> None:
        super().__init__(db_path)

    def _ensure_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS inbound_emails (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL,
                sender TEXT NOT NULL,
                subject TEXT NOT NULL DEFAULT '',
                body TEXT NOT NULL DEFAULT '',
                source TEXT NOT NULL DEFAULT 'inbound',
                status TEXT NOT NULL DEFAULT 'received',
                task_id TEXT,
                created_at REAL NOT NULL
            )
            """
        )
        self._add_missing_columns(cur, "inbound_emails", {"task_id": "TEXT"})
        cur.execute("CREATE INDEX IF NOT EXISTS idx_inbound_tenant ON inbound_emails(tenant_id, created_at)")

    @staticmethod
    def _row_to_email(row: sqlite3.Row) -> InboundEmail:
        try:
            status = InboundStatus(row["status"])
        except ValueError:
            status = InboundStatus.RECEIVED
        return InboundEmail(
            id=str(row["id"]),
            tenant_id=str(row["tenant_id"]),
            sender=str(row["sender"] or ""),
            subject=str(row["subject"] or ""),
            body=str(row["body"] or ""),
            source=str(row["source"] or "inbound"),
            status=status,
            created_at=float(row["created_at"] or 0.0),
            task_id=row["task_id"],
        )

    def count_emails(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM inbound_emails").fetchone()
            return int(n)

    def add_email(
        self,
        *,
        tenant_id: str,
        sender: str,
        subject: str,
        body: str,
        source: str = "inbound",
    ) -> InboundEmail:
        email = InboundEmail(
            id=new_id(),
            tenant_id=tenant_id,
            sender=sender,
            subject=subject,
            body=body,
            source=source,
            status=InboundStatus.RECEIVED,
            created_at=time.time(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO inbound_emails(id, tenant_id, sender, subject, body, source, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    email.id,
                    email.tenant_id,
                    email.sender,
                    email.subject,
                    email.body,
                    email.source,
                    email.status.value,
                    email.created_at,
                ),
            )
        logger.info("Inbound email record created id=%s tenant=%s", email.id, tenant_id)
        return email

    def set_status(
        self,
        email_id: str,
        *,
        tenant_id: str,
        status: InboundStatus,
        task_id: str | None = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE inbound_emails
                SET status = ?, task_id = COALESCE(?, task_id)
                WHERE id = ? AND tenant_id = ?
                """,
                (status.value, task_id, email_id, tenant_id),
            )

    def list_emails(self, tenant_id: str, *, limit: int = 50) -> list[InboundEmail]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM inbound_emails
                WHERE tenant_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (tenant_id, int(limit)),
            ).fetchall()
            return [self._row_to_email(r) for r in rows]
