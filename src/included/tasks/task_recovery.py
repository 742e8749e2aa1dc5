# src/included/tasks/task_recovery.py

from __future__ import annotations

"""
Recovery sweeper.

A small polling loop that re-drives tasks still in 'pending', e.g. when the
process stopped between the insert and the background lifecycle. Tasks are
driven one at a time; the claim inside run_lifecycle makes it safe to race
the normal path.
"""

import asyncio
import logging

from ..core.ports import TaskRepo
from .task_engine import TaskEngine

logger = logging.getLogger(__name__)


async def recover_pending_tasks(tasks: TaskRepo, engine: TaskEngine, *, batch_limit: int = 10) -> int:
    """One sweep. Returns how many tasks this sweep drove to a terminal state."""
    try:
        pending = tasks.list_pending_tasks(limit=int(batch_limit))
    except Exception:
        logger.exception("list_pending_tasks failed")
        return 0

    if not pending:
        return 0

    logger.info("Recovery: %d pending task(s) found", len(pending))

    driven = 0
    for task in pending:
        try:
            finished = await engine.run_lifecycle(task.id)
        except Exception:
            logger.exception("Recovery: lifecycle crashed task_id=%s", task.id)
            continue
        if finished is not None:
            driven += 1

    logger.info("Recovery: %d/%d task(s) driven", driven, len(pending))
    return driven


async def run_recovery_sweeper(
    tasks: TaskRepo,
    engine: TaskEngine,
    *,
    interval_seconds: float = 60.0,
    batch_limit: int = 10,
) -> None:
    """
    Every interval_seconds: recover_pending_tasks(...).

    To stop the sweeper, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    logger.info("Recovery sweeper started (interval=%.1fs batch=%d)", sleep_s, batch_limit)

    while True:
        await recover_pending_tasks(tasks, engine, batch_limit=batch_limit)
        await asyncio.sleep(sleep_s)
