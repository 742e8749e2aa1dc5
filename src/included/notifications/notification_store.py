# src/included/notifications/notification_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path

from ..core.sqlite_base import SQLiteStore, new_id
from .notification_models import NotificationEvent, NotificationStatus

logger = logging.getLogger(__name__)


class NotificationStore(SQLiteStore):
    """
    Notification events derived from summaries.

    pending -> sent | failed happens once, as a conditional update on 'pending'.
    """

    def __init__(self, db_path: str | Path = "included.sqlite3") -> None:
        super().__init__(db_path)

    def _ensure_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS notification_events (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL,
                summary_id TEXT NOT NULL,
                channel TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                error TEXT,
                delivery_id TEXT,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        self._add_missing_columns(
            cur,
            "notification_events",
            {"error": "TEXT", "delivery_id": "TEXT"},
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_notifications_status_created "
            "ON notification_events(status, created_at)"
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_notifications_tenant_summary "
            "ON notification_events(tenant_id, summary_id)"
        )

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> NotificationEvent:
        return NotificationEvent(
            id=str(row["id"]),
            tenant_id=str(row["tenant_id"]),
            summary_id=str(row["summary_id"]),
            channel=str(row["channel"]),
            status=NotificationStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            error=row["error"],
            delivery_id=row["delivery_id"],
        )

    def add_events(
        self,
        *,
        tenant_id: str,
        summary_id: str,
        channels: Iterable[str],
    ) -> list[NotificationEvent]:
        """Insert one pending event per channel in a single transaction."""
        now = time.time()
        events = [
            NotificationEvent(
                id=new_id(),
                tenant_id=tenant_id,
                summary_id=summary_id,
                channel=channel,
                status=NotificationStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            for channel in dict.fromkeys(channels)
        ]
        if not events:
            return []

        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO notification_events(
                    id, tenant_id, summary_id, channel, status, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (e.id, e.tenant_id, e.summary_id, e.channel, e.status.value, e.created_at, e.updated_at)
                    for e in events
                ],
            )
        logger.info("Created %d notification events for summary %s", len(events), summary_id)
        return events

    def list_pending(
        self,
        *,
        limit: int = 10,
        channels: Iterable[str] | None = None,
    ) -> list[NotificationEvent]:
        """Oldest pending events across all tenants (sweeper only)."""
        sql = "SELECT * FROM notification_events WHERE status = 'pending'"
        params: list[object] = []
        if channels is not None:
            chans = list(channels)
            if not chans:
                return []
            sql += f" AND channel IN ({','.join('?' for _ in chans)})"
            params.extend(chans)
        sql += " ORDER BY created_at ASC, rowid ASC LIMIT ?"
        params.append(int(limit))
        with self._connect() as conn:
            return [self._row_to_event(r) for r in conn.execute(sql, params).fetchall()]

    def mark_event(
        self,
        event_id: str,
        *,
        tenant_id: str,
        status: NotificationStatus,
        error: str | None = None,
        delivery_id: str | None = None,
    ) -> bool:
        """pending -> sent | failed. Returns False if the event was no longer pending."""
        if status == NotificationStatus.PENDING:
            raise ValueError("mark_event needs sent or failed")

        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE notification_events
                SET status = ?, error = ?, delivery_id = ?, updated_at = ?
                WHERE id = ? AND tenant_id = ? AND status = 'pending'
                """,
                (status.value, error, delivery_id, time.time(), event_id, tenant_id),
            )
            return cur.rowcount == 1

    def get_event(self, event_id: str, *, tenant_id: str) -> NotificationEvent | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM notification_events WHERE id = ? AND tenant_id = ?",
                (event_id, tenant_id),
            ).fetchone()
            return self._row_to_event(row) if row else None

    def list_events(
        self,
        tenant_id: str,
        *,
        summary_id: str | None = None,
        status: NotificationStatus | None = None,
        limit: int = 100,
    ) -> list[NotificationEvent]:
        sql = "SELECT * FROM notification_events WHERE tenant_id = ?"
        params: list[object] = [tenant_id]
        if summary_id is not None:
            sql += " AND summary_id = ?"
            params.append(summary_id)
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        sql += " ORDER BY created_at ASC, rowid ASC LIMIT ?"
        params.append(int(limit))
        with self._connect() as conn:
            return [self._row_to_event(r) for r in conn.execute(sql, params).fetchall()]
