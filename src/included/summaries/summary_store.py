# src/included/summaries/summary_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from ..core.errors import ValidationError
from ..core.sqlite_base import SQLiteStore, new_id
from .summary_models import Summary

logger = logging.getLogger(__name__)


class SummaryStore(SQLiteStore):
    """Summaries, one per completed task (task_id is UNIQUE). All reads are tenant-scoped."""

    def __init__(self, db_path: str | Path = "included.sqlite3") -> None:
        super().__init__(db_path)

    def _ensure_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS summaries (
                id TEXT PRIMARY KEY,
                task_id TEXT NOT NULL UNIQUE,
                tenant_id TEXT NOT NULL,
                summary TEXT NOT NULL,
                created_at REAL NOT NULL
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_summaries_tenant_created ON summaries(tenant_id, created_at)"
        )

    @staticmethod
    def _row_to_summary(row: sqlite3.Row) -> Summary:
        return Summary(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            tenant_id=str(row["tenant_id"]),
            summary=str(row["summary"] or ""),
            created_at=float(row["created_at"] or 0.0),
        )

    def add_summary(self, *, task_id: str, tenant_id: str, text: str) -> Summary:
        if not tenant_id:
            raise ValidationError("tenant_id is required")

        summary = Summary(
            id=new_id(),
            task_id=task_id,
            tenant_id=tenant_id,
            summary=text,
            created_at=time.time(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO summaries(id, task_id, tenant_id, summary, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (summary.id, summary.task_id, summary.tenant_id, summary.summary, summary.created_at),
            )
        logger.info("Summary created id=%s task=%s", summary.id, task_id)
        return summary

    def get_summary(self, summary_id: str, *, tenant_id: str) -> Summary | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM summaries WHERE id = ? AND tenant_id = ?",
                (summary_id, tenant_id),
            ).fetchone()
            return self._row_to_summary(row) if row else None

    def get_summary_for_task(self, task_id: str, *, tenant_id: str) -> Summary | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM summaries WHERE task_id = ? AND tenant_id = ?",
                (task_id, tenant_id),
            ).fetchone()
            return self._row_to_summary(row) if row else None

    def list_summaries(
        self,
        tenant_id: str,
        *,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[Summary]:
        order = "DESC" if newest_first else "ASC"
        sql = f"SELECT * FROM summaries WHERE tenant_id = ? ORDER BY created_at {order}, rowid {order}"
        params: list[object] = [tenant_id]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        with self._connect() as conn:
            return [self._row_to_summary(r) for r in conn.execute(sql, params).fetchall()]
