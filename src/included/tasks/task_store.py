# src/included/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from ..core.errors import ValidationError
from ..core.sqlite_base import SQLiteStore, new_id
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore(SQLiteStore):
    """
    SQLite task store.

    Every status change is a conditional UPDATE on the expected current status,
    so concurrent writers cannot move a task backwards or finish it twice.
    Reads and writes take a tenant_id, except the oldest-pending sweep query
    used by the recovery sweeper and the claim step that follows it.
    """

    def __init__(self, db_path: str | Path = "included.sqlite3") -> None:
        super().__init__(db_path)
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def _ensure_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL,
                input TEXT NOT NULL,
                output TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        self._add_missing_columns(cur, "tasks", {"updated_at": "REAL NOT NULL DEFAULT 0"})
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_tenant_status ON tasks(tenant_id, status)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status_created ON tasks(status, created_at)")

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            tenant_id=str(row["tenant_id"]),
            input=str(row["input"] or ""),
            output=row["output"],
            status=TaskStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def add_task(self, *, tenant_id: str, input_text: str) -> Task:
        if not tenant_id or not tenant_id.strip():
            raise ValidationError("tenant_id is required")
        if not input_text or not input_text.strip():
            raise ValidationError("text is required")

        task_id = new_id()
        now = time.time()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tasks(id, tenant_id, input, output, status, created_at, updated_at)
                VALUES (?, ?, ?, NULL, ?, ?, ?)
                """,
                (task_id, tenant_id, input_text, TaskStatus.PENDING.value, now, now),
            )
        logger.debug("Task added id=%s tenant=%s", task_id, tenant_id)
        return Task(
            id=task_id,
            tenant_id=tenant_id,
            input=input_text,
            output=None,
            status=TaskStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

    def get_task(self, task_id: str, *, tenant_id: str) -> Task | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND tenant_id = ?",
                (task_id, tenant_id),
            ).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks(
        self,
        tenant_id: str,
        *,
        status: TaskStatus | None = None,
        newest_first: bool = True,
        limit: int = 50,
    ) -> list[Task]:
        order = "DESC" if newest_first else "ASC"
        sql = "SELECT * FROM tasks WHERE tenant_id = ?"
        params: list[object] = [tenant_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        sql += f" ORDER BY created_at {order}, rowid {order} LIMIT ?"
        params.append(int(limit))
        with self._connect() as conn:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]

    def list_pending_tasks(self, *, limit: int = 10) -> list[Task]:
        """Oldest pending tasks across all tenants (recovery sweep only)."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE status = 'pending'
                ORDER BY created_at ASC, rowid ASC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def claim_task(self, task_id: str) -> Task | None:
        """
        Atomically transition pending -> processing.

        Returns the claimed task, or None if the row is missing or no longer pending
        (someone else already claimed it).
        """
        now = time.time()
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET status = 'processing', updated_at = ?
                WHERE id = ? AND status = 'pending'
                """,
                (now, task_id),
            )
            if cur.rowcount != 1:
                return None
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row else None

    def finish_task(self, task_id: str, *, tenant_id: str, status: TaskStatus, output: str) -> bool:
        """
        processing -> completed | failed, writing output in the same statement.

        Returns False if the task was not in processing for that tenant.
        """
        if not status.is_terminal:
            raise ValueError(f"finish_task needs a terminal status, got {status.value}")

        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET status = ?, output = ?, updated_at = ?
                WHERE id = ? AND tenant_id = ? AND status = 'processing'
                """,
                (status.value, output, time.time(), task_id, tenant_id),
            )
            return cur.rowcount == 1

    def count_by_status(
        self,
        tenant_id: str,
        *,
        since: float | None = None,
        until: float | None = None,
    ) -> dict[TaskStatus, int]:
        sql = "SELECT status, COUNT(*) AS n FROM tasks WHERE tenant_id = ?"
        params: list[object] = [tenant_id]
        if since is not None:
            sql += " AND created_at >= ?"
            params.append(float(since))
        if until is not None:
            sql += " AND created_at < ?"
            params.append(float(until))
        sql += " GROUP BY status"

        out = {s: 0 for s in TaskStatus}
        with self._connect() as conn:
            for row in conn.execute(sql, params).fetchall():
                out[TaskStatus.from_db(row["status"])] += int(row["n"])
        return out
