# src/included/summaries/report.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from ..core.ports import SummaryRepo
from ..tasks.task_models import TaskStatus
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)

REPORT_PREFIX = "📝 Daily Report:"


def generate_report(summaries: SummaryRepo, tenant_id: str, *, newest_first: bool = True) -> str:
    """
    Plain-text report of one tenant's summaries.

    Never raises: a store failure is reported inside the text.
    """
    try:
        items = summaries.list_summaries(tenant_id, newest_first=newest_first)
    except Exception as e:
        logger.exception("Error generating report for tenant %s", tenant_id)
        return f"{REPORT_PREFIX}\n- Error generating report: {str(e) or e.__class__.__name__}"

    lines = [f"- {s.summary.strip()}" for s in items if s.summary and s.summary.strip()]
    if not lines:
        return f"{REPORT_PREFIX}\n- No completed tasks found."
    return "\n".join([REPORT_PREFIX, *lines])


@dataclass(frozen=True, slots=True)
class ActivityReport:
    day: str
    total: int
    completed: int
    failed: int
    in_progress: int
    success_rate: float
    summary: str


def _activity_line(total: int, completed: int, failed: int, in_progress: int, rate: float) -> str:
    if total == 0:
        return "No tasks processed today."
    parts = [
        f"Daily Report: {total} total task{'s' if total != 1 else ''}.",
        f"{completed} completed ({rate:.1f}% success rate).",
    ]
    if failed:
        parts.append(f"{failed} failed.")
    if in_progress:
        parts.append(f"{in_progress} pending/processing.")
    return " ".join(parts)


def generate_activity_report(tasks: TaskStore, tenant_id: str, day: date | None = None) -> ActivityReport:
    """Task counts for one tenant over one UTC day (today by default)."""
    day = day or datetime.now(UTC).date()
    start = datetime(day.year, day.month, day.day, tzinfo=UTC)
    end = start + timedelta(days=1)

    try:
        counts = tasks.count_by_status(tenant_id, since=start.timestamp(), until=end.timestamp())
    except Exception as e:
        logger.exception("Error generating activity report for tenant %s", tenant_id)
        return ActivityReport(
            day=day.isoformat(),
            total=0,
            completed=0,
            failed=0,
            in_progress=0,
            success_rate=0.0,
            summary=f"Error generating report: {str(e) or e.__class__.__name__}",
        )

    completed = counts[TaskStatus.COMPLETED]
    failed = counts[TaskStatus.FAILED]
    in_progress = counts[TaskStatus.PENDING] + counts[TaskStatus.PROCESSING]
    total = completed + failed + in_progress
    rate = (completed / total) * 100 if total else 0.0

    return ActivityReport(
        day=day.isoformat(),
        total=total,
        completed=completed,
        failed=failed,
        in_progress=in_progress,
        success_rate=round(rate, 2),
        summary=_activity_line(total, completed, failed, in_progress, rate),
    )
