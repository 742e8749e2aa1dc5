# src/included/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs on one event loop:
- notification sweeper and recovery sweeper as background tasks,
- console REPL (optional), otherwise waits for SIGINT/SIGTERM.

Shutdown cancels the sweepers, lets in-flight lifecycles finish and closes
HTTP clients.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import close_state, create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..notifications.notification_sweeper import run_notification_sweeper
from ..tasks.task_recovery import run_recovery_sweeper

logger = logging.getLogger(__name__)


def start_sweepers(state: AppState) -> list[asyncio.Task[None]]:
    settings = state.settings
    return [
        asyncio.create_task(
            run_notification_sweeper(
                state.notifications,
                state.summaries,
                state.tenants,
                state.senders,
                interval_seconds=settings.notification_poll_interval,
                batch_size=settings.notification_batch_size,
                send_delay_seconds=settings.notification_send_delay,
                policy=state.delivery_policy,
            ),
            name="notification-sweeper",
        ),
        asyncio.create_task(
            run_recovery_sweeper(
                state.tasks,
                state.engine,
                interval_seconds=settings.recovery_poll_interval,
                batch_limit=settings.recovery_batch_size,
            ),
            name="recovery-sweeper",
        ),
    ]


async def _shutdown(state: AppState, sweepers: list[asyncio.Task[None]]) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for t in sweepers:
        t.cancel()
    for t in sweepers:
        with contextlib.suppress(asyncio.CancelledError):
            try:
                await t
            except Exception:
                logger.exception("%s crashed.", t.get_name())

    try:
        await state.engine.drain()
    except Exception:
        logger.exception("Failed to drain in-flight tasks.")

    await close_state(state)


async def run(state: AppState) -> None:
    settings = state.settings
    sweepers = start_sweepers(state)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_main.set)
        except (NotImplementedError, RuntimeError):
            # Some platforms may not support signal handlers on the loop.
            pass

    try:
        if settings.console_enabled:
            console = asyncio.create_task(run_console_loop(state), name="console")
            stopper = asyncio.create_task(stop_main.wait(), name="stop")
            await asyncio.wait({console, stopper}, return_when=asyncio.FIRST_COMPLETED)
            stopper.cancel()
            if not console.done():
                # The input() thread stays blocked until the next line; do not wait on it.
                console.cancel()
        else:
            logger.info("Console disabled. Running sweepers only. Press Ctrl+C to stop.")
            await stop_main.wait()
    finally:
        await _shutdown(state, sweepers)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (%s)...", settings.app_name, settings.environment)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run(state))
    logger.info("Bye.")


if __name__ == "__main__":
    main()
