# src/included/tenants/tenant_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from ..core.errors import ValidationError
from ..core.sqlite_base import SQLiteStore, dumps_json, loads_json, new_id
from .tenant_models import Tenant, WorkflowSettings

logger = logging.getLogger(__name__)


def inbound_address_for(tenant_id: str, *, domain: str, prefix: str = "client_") -> str:
    """Deterministic routing address for a tenant: <prefix><id>@<domain>."""
    return f"{prefix}{tenant_id}@{domain}"


class TenantStore(SQLiteStore):
    """Tenant (client) records: onboarding, lookup and workflow preferences."""

    def __init__(self, db_path: str | Path = "included.sqlite3") -> None:
        super().__init__(db_path)
        logger.info("TenantStore ready db=%s total=%s", self._db_path, self.count_tenants())

    def _ensure_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tenants (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT,
                company TEXT,
                phone TEXT,
                inbound_email TEXT UNIQUE,
                workflow_settings TEXT,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        self._add_missing_columns(
            cur,
            "tenants",
            {
                "company": "TEXT",
                "phone": "TEXT",
                "workflow_settings": "TEXT",
            },
        )

    @staticmethod
    def _row_to_tenant(row: sqlite3.Row) -> Tenant:
        return Tenant(
            id=str(row["id"]),
            name=str(row["name"] or ""),
            email=row["email"],
            company=row["company"],
            phone=row["phone"],
            inbound_email=row["inbound_email"],
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            workflow=WorkflowSettings.from_dict(loads_json(row["workflow_settings"])),
        )

    # ---- public API ----

    def count_tenants(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tenants").fetchone()
            return int(n)

    def create_tenant(
        self,
        *,
        name: str,
        inbound_domain: str,
        inbound_prefix: str = "client_",
        email: str | None = None,
        company: str | None = None,
        phone: str | None = None,
        workflow: WorkflowSettings | None = None,
    ) -> Tenant:
        if not name or not name.strip():
            raise ValidationError("name is required")

        tenant_id = new_id()
        now = time.time()
        workflow = workflow or WorkflowSettings()
        inbound = inbound_address_for(tenant_id, domain=inbound_domain, prefix=inbound_prefix)

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tenants(
                    id, name, email, company, phone,
                    inbound_email, workflow_settings, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tenant_id,
                    name.strip(),
                    (email or "").strip() or None,
                    (company or "").strip() or None,
                    (phone or "").strip() or None,
                    inbound,
                    dumps_json(workflow.to_dict()),
                    now,
                    now,
                ),
            )

        logger.info("Tenant created id=%s inbound=%s", tenant_id, inbound)
        tenant = self.get_tenant(tenant_id)
        assert tenant is not None
        return tenant

    def get_tenant(self, tenant_id: str) -> Tenant | None:
        if not tenant_id:
            return None
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tenants WHERE id = ?", (tenant_id,)).fetchone()
            return self._row_to_tenant(row) if row else None

    def list_tenants(self, limit: int = 100) -> list[Tenant]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM tenants ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
            return [self._row_to_tenant(r) for r in rows]

    def update_workflow_settings(self, tenant_id: str, workflow: WorkflowSettings) -> Tenant | None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE tenants SET workflow_settings = ?, updated_at = ? WHERE id = ?",
                (dumps_json(workflow.to_dict()), time.time(), tenant_id),
            )
        return self.get_tenant(tenant_id)
