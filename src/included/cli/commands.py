# src/included/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from ..core.errors import IncludedError
from ..core.state import AppState
from ..inbound.inbound_models import InboundPayload
from ..summaries.report import generate_activity_report, generate_report
from ..tasks.task_models import TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[
    [AppState, list[str], CommandEmitter | None], str | Awaitable[str]
]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /task, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            result = handler(state, args, emit)
            if inspect.isawaitable(result):
                result = await result
        except IncludedError as e:
            return f"Error: {e}"
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _ts_local(ts: float) -> str:
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _short(text: str | None, limit: int = 60) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    settings = state.settings
    models = ", ".join(list(getattr(settings, "llm_models", []) or []))
    channels = ", ".join(state.fanout.channels) or "-"
    senders = ", ".join(state.senders) or "-"
    return (
        "Status:\n"
        f"  Environment: {getattr(settings, 'environment', '?')}\n"
        f"  Models (priority -> fallback): {models}\n"
        f"  Notification channels: {channels} (senders: {senders})\n"
        f"  Tenants: {state.tenants.count_tenants()}  Tasks: {state.tasks.count_tasks()}\n"
        f"  Lifecycles in flight: {state.engine.inflight}"
    )


def cmd_tenant(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /tenant add <name> <email>  -> create a tenant
    /tenant <id>                -> show a tenant
    """
    if len(args) >= 3 and args[0].lower() == "add":
        email = args[-1]
        name = " ".join(args[1:-1])
        settings = state.settings
        tenant = state.tenants.create_tenant(
            name=name,
            email=email,
            inbound_domain=settings.inbound_email_domain,
            inbound_prefix=settings.inbound_email_prefix,
        )
        return (
            f"Tenant created: {tenant.name}\n"
            f"  id: {tenant.id}\n"
            f"  inbound: {tenant.inbound_email}"
        )

    if len(args) == 1 and args[0].lower() != "add":
        tenant = state.tenants.get_tenant(args[0])
        if tenant is None:
            return f"No tenant with id={args[0]}."
        return (
            f"Tenant {tenant.name}\n"
            f"  id: {tenant.id}\n"
            f"  email: {tenant.email or '-'}\n"
            f"  inbound: {tenant.inbound_email}\n"
            f"  report cadence: {tenant.workflow.report_cadence.value}"
        )

    return "Usage: /tenant add <name> <email> | /tenant <tenant_id>"


def cmd_tenants(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    tenants = state.tenants.list_tenants()
    if not tenants:
        return "No tenants yet. Use /tenant add <name> <email>."
    lines = ["Tenants:"]
    for t in tenants:
        lines.append(f"  {t.id}  {t.name}  <{t.email or '-'}>")
    return "\n".join(lines)


async def cmd_task(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/task <tenant_id> <text...>"""
    if len(args) < 2:
        return "Usage: /task <tenant_id> <text>"
    task = await state.engine.create_task(" ".join(args[1:]), args[0])
    return f"Task queued: {task.id} ({task.status.value})"


def cmd_tasks(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/tasks <tenant_id> [status]"""
    if not args:
        return "Usage: /tasks <tenant_id> [pending|processing|completed|failed]"

    status = None
    if len(args) > 1:
        try:
            status = TaskStatus(args[1].lower())
        except ValueError:
            return f"Unknown status: {args[1]}"

    tasks = state.tasks.list_tasks(args[0], status=status, limit=20)
    if not tasks:
        return f"No tasks for tenant {args[0]}."
    lines = [f"Tasks for tenant {args[0]}:"]
    for t in tasks:
        lines.append(f"  [{_ts_local(t.created_at)}] {t.id} {t.status.value:<10} {_short(t.output or t.input)}")
    return "\n".join(lines)


def cmd_report(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /report <tenant_id>"
    newest_first = bool(getattr(state.settings, "report_newest_first", True))
    return generate_report(state.summaries, args[0], newest_first=newest_first)


def cmd_stats(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /stats <tenant_id>"
    report = generate_activity_report(state.tasks, args[0])
    return f"[{report.day}] {report.summary}"


async def cmd_inbound(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/inbound <to> <from> <text...>: simulate the inbound email webhook."""
    if len(args) < 3:
        return "Usage: /inbound <to> <from> <text>"
    payload = InboundPayload(
        sender=args[1],
        to=tuple(a for a in args[0].split(",") if a),
        subject="(console)",
        text=" ".join(args[2:]),
    )
    records = await state.router.route(payload)
    lines = [f"Routed to {len(records)} tenant(s):"]
    for r in records:
        lines.append(f"  {r.tenant_id}: {r.status.value} task={r.task_id or '-'}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show models, channels and counts.")
registry.register("tenant", cmd_tenant, help_text="Tenants: /tenant add <name> <email> | /tenant <id>.")
registry.register("tenants", cmd_tenants, help_text="List tenants.")
registry.register("task", cmd_task, help_text="Submit text for summarization: /task <tenant_id> <text>.")
registry.register("tasks", cmd_tasks, help_text="List a tenant's tasks: /tasks <tenant_id> [status].")
registry.register("report", cmd_report, help_text="Summary report: /report <tenant_id>.")
registry.register("stats", cmd_stats, help_text="Today's task counts: /stats <tenant_id>.")
registry.register("inbound", cmd_inbound, help_text="Simulate inbound email: /inbound <to> <from> <text>.")
