# src/included/tasks/task_engine.py

from __future__ import annotations

"""
Task lifecycle engine.

pending -> processing -> completed | failed

- create_task inserts a pending row and returns it at once; the lifecycle runs
  as a background asyncio task.
- run_lifecycle claims the row (pending -> processing, conditional update),
  summarizes, records the summary + notifications, then finishes the task.
- Every outcome is written as a durable status. If that write itself fails
  the error is logged and the row keeps its last durable state.
"""

import asyncio
import logging
from dataclasses import replace

from ..core.errors import SummarizationError, ValidationError
from ..core.ports import CompletionRecorder, Summarizer, TaskRepo, TenantRepo
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

FAILED_OUTPUT = "Error processing input."


class TaskEngine:
    def __init__(
        self,
        tasks: TaskRepo,
        tenants: TenantRepo,
        summarizer: Summarizer,
        recorder: CompletionRecorder,
        *,
        expose_errors: bool = False,
    ) -> None:
        self._tasks = tasks
        self._tenants = tenants
        self._summarizer = summarizer
        self._recorder = recorder
        self._expose_errors = expose_errors
        # Strong refs: the event loop only keeps weak references to tasks.
        self._inflight: set[asyncio.Task[Task | None]] = set()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def create_task(self, text: str, tenant_id: str) -> Task:
        """Validate, insert as pending, start the lifecycle in the background."""
        if not text or not text.strip():
            raise ValidationError('Request must contain a non-empty "text" field')
        if not tenant_id or not tenant_id.strip():
            raise ValidationError('Request must contain a non-empty "tenantId" field')

        tenant_id = tenant_id.strip()
        if self._tenants.get_tenant(tenant_id) is None:
            raise ValidationError(f"Unknown tenant: {tenant_id}")

        task = self._tasks.add_task(tenant_id=tenant_id, input_text=text)
        logger.info("Task created id=%s tenant=%s", task.id, tenant_id)

        self._spawn(task.id)
        return task

    def get_task(self, task_id: str, *, tenant_id: str) -> Task | None:
        return self._tasks.get_task(task_id, tenant_id=tenant_id)

    def _spawn(self, task_id: str) -> None:
        job = asyncio.create_task(self.run_lifecycle(task_id), name=f"lifecycle:{task_id}")
        self._inflight.add(job)
        job.add_done_callback(self._on_lifecycle_done)

    def _on_lifecycle_done(self, job: asyncio.Task[Task | None]) -> None:
        self._inflight.discard(job)
        if job.cancelled():
            logger.warning("%s cancelled; recovery sweep will pick it up if still pending", job.get_name())
            return
        exc = job.exception()
        if exc is not None:
            logger.error("%s crashed", job.get_name(), exc_info=exc)

    async def drain(self) -> None:
        """Wait for every background lifecycle started so far (shutdown, tests)."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def run_lifecycle(self, task_id: str) -> Task | None:
        """
        Drive one task to a terminal state.

        Returns the finished task, or None if the task could not be claimed
        (already claimed by someone else, missing) or its final write failed.
        """
        try:
            task = self._tasks.claim_task(task_id)
        except Exception:
            logger.exception("claim_task failed task_id=%s", task_id)
            return None

        if task is None:
            logger.debug("Task %s not claimable (missing or no longer pending)", task_id)
            return None

        logger.info("Processing task %s", task_id)

        try:
            summary_text = await self._summarizer.summarize(task.input)
        except SummarizationError as e:
            logger.error("Task %s failed: %s", task_id, e)
            return self._finish(task, TaskStatus.FAILED, FAILED_OUTPUT)
        except Exception as e:
            logger.exception("Unexpected error summarizing task %s", task_id)
            return self._finish(task, TaskStatus.FAILED, self._error_output(e))

        try:
            self._recorder.record_completion(task.id, task.tenant_id, summary_text)
        except Exception as e:
            logger.exception("Failed to persist summary for task %s", task_id)
            return self._finish(task, TaskStatus.FAILED, self._error_output(e))

        # The summary exists from here on, so this task must never end up failed.
        return self._finish(task, TaskStatus.COMPLETED, summary_text)

    def _error_output(self, exc: Exception) -> str:
        if self._expose_errors:
            return f"Error: {str(exc) or exc.__class__.__name__}"
        return FAILED_OUTPUT

    def _finish(self, task: Task, status: TaskStatus, output: str) -> Task | None:
        try:
            ok = self._tasks.finish_task(task.id, tenant_id=task.tenant_id, status=status, output=output)
        except Exception:
            logger.exception(
                "Failed to mark task %s %s; leaving last durable state", task.id, status.value
            )
            return None

        if not ok:
            logger.warning("Task %s was no longer processing; %s not recorded", task.id, status.value)
            return None

        logger.info("Task %s -> %s", task.id, status.value)
        return replace(task, status=status, output=output)
