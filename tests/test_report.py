# tests/test_report.py

from __future__ import annotations

from datetime import UTC, datetime

from included.summaries.report import REPORT_PREFIX, generate_activity_report, generate_report
from included.tasks.task_models import TaskStatus


def test_empty_report(summary_store, tenant) -> None:
    assert generate_report(summary_store, tenant.id) == f"{REPORT_PREFIX}\n- No completed tasks found."


def test_report_lists_only_own_summaries_newest_first(summary_store, tenant, other_tenant) -> None:
    summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="first")
    summary_store.add_summary(task_id="t2", tenant_id=other_tenant.id, text="not mine")
    summary_store.add_summary(task_id="t3", tenant_id=tenant.id, text="second")

    report = generate_report(summary_store, tenant.id)

    assert report.splitlines() == [REPORT_PREFIX, "- second", "- first"]
    assert generate_report(summary_store, tenant.id, newest_first=False).splitlines()[1:] == [
        "- first",
        "- second",
    ]


def test_report_is_stable_for_unchanged_data(summary_store, tenant) -> None:
    summary_store.add_summary(task_id="t1", tenant_id=tenant.id, text="a")
    summary_store.add_summary(task_id="t2", tenant_id=tenant.id, text="b")

    assert generate_report(summary_store, tenant.id) == generate_report(summary_store, tenant.id)


class _BrokenSummaries:
    def list_summaries(self, tenant_id, *, newest_first=True, limit=None):
        raise RuntimeError("db locked")


def test_report_store_error_is_reported_inline() -> None:
    assert generate_report(_BrokenSummaries(), "t") == f"{REPORT_PREFIX}\n- Error generating report: db locked"


def test_activity_report_counts_today(task_store, tenant, other_tenant) -> None:
    done = task_store.add_task(tenant_id=tenant.id, input_text="a")
    task_store.claim_task(done.id)
    task_store.finish_task(done.id, tenant_id=tenant.id, status=TaskStatus.COMPLETED, output="ok")
    bad = task_store.add_task(tenant_id=tenant.id, input_text="b")
    task_store.claim_task(bad.id)
    task_store.finish_task(bad.id, tenant_id=tenant.id, status=TaskStatus.FAILED, output="x")
    task_store.add_task(tenant_id=tenant.id, input_text="c")
    task_store.add_task(tenant_id=other_tenant.id, input_text="d")

    report = generate_activity_report(task_store, tenant.id)

    assert (report.total, report.completed, report.failed, report.in_progress) == (3, 1, 1, 1)
    assert report.success_rate == 33.33
    assert report.day == datetime.now(UTC).date().isoformat()
    assert report.summary == (
        "Daily Report: 3 total tasks. 1 completed (33.3% success rate). 1 failed. 1 pending/processing."
    )


def test_activity_report_empty_day(task_store, tenant) -> None:
    report = generate_activity_report(task_store, tenant.id, datetime(2020, 1, 1, tzinfo=UTC).date())
    assert report.total == 0
    assert report.summary == "No tasks processed today."
