# src/included/summaries/summary_models.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Summary:
    id: str
    task_id: str
    # Copied from the task so reports can filter without joining tasks.
    tenant_id: str
    summary: str
    created_at: float
