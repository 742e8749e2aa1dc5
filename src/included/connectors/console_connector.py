# src/included/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def _read_line(prompt: str) -> str:
    """
    input() on a daemon thread.

    A blocked read must not keep the process alive at shutdown, which rules
    out the default executor.
    """
    loop = asyncio.get_running_loop()
    fut: asyncio.Future[str] = loop.create_future()

    def _deliver(line: str | None, exc: Exception | None) -> None:
        if fut.done():
            return
        if exc is not None:
            fut.set_exception(exc)
        else:
            fut.set_result(line or "")

    def _reader() -> None:
        try:
            line = input(prompt)
        except Exception as e:
            loop.call_soon_threadsafe(_deliver, None, e)
        else:
            loop.call_soon_threadsafe(_deliver, line, None)

    threading.Thread(target=_reader, name="console-stdin", daemon=True).start()
    return await fut


async def run_console_loop(state: AppState) -> None:
    """
    Operator REPL. stdin is read on a daemon thread so the sweepers and
    background lifecycles keep running on the event loop meanwhile.

    Plain text (no leading slash) is submitted as a task for the tenant
    selected with /use <tenant_id>.
    """
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands, /use <tenant_id> to pick a tenant, /exit to quit.\n")

    current_tenant: str | None = None

    while True:
        try:
            line = (await _read_line(">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if line.lower().startswith("/use"):
            parts = line.split()
            if len(parts) != 2:
                _print_ts("Usage: /use <tenant_id>")
                continue
            if state.tenants.get_tenant(parts[1]) is None:
                _print_ts(f"No tenant with id={parts[1]}.")
                continue
            current_tenant = parts[1]
            _print_ts(f"Submitting plain text as tenant {current_tenant}.")
            continue

        try:
            reply = await command_registry.handle(state, line, emit=_print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply)
            continue

        if current_tenant is None:
            _print_ts("No tenant selected. Use /use <tenant_id> or /task <tenant_id> <text>.")
            continue

        try:
            task = await state.engine.create_task(line, current_tenant)
        except Exception as e:
            logger.info("Task submission rejected: %s", e)
            _print_ts(f"Error: {e}")
            continue
        _print_ts(f"Task queued: {task.id}")

    logger.info("Console connector finished.")
