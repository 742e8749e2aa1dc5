# tests/test_commands.py

from __future__ import annotations

import pytest

from included.cli.bootstrap import close_state, create_initial_state
from included.cli.commands import CommandRegistry, registry
from included.llm.offline import OfflineSummaryBackend
from included.notifications.dispatcher import LogOnlyEmailSender
from included.notifications.notification_sweeper import process_pending_notifications
from included.tasks.task_models import TaskStatus


@pytest.fixture()
def state(settings):
    return create_initial_state(settings=settings)


@pytest.mark.asyncio
async def test_command_registry_routes_sync_and_async_handlers(state) -> None:
    reg = CommandRegistry()
    notes: list[str] = []

    def sync_handler(state, args, emit):
        return f"sync {args}"

    async def async_handler(state, args, emit):
        if emit is not None:
            emit("note")
        return "async"

    reg.register("a", sync_handler, "a", aliases=["aa"])
    reg.register("b", async_handler, "b")

    assert await reg.handle(state, "/a x") == "sync ['x']"
    assert await reg.handle(state, "/AA") == "sync []"
    assert await reg.handle(state, "/b", emit=notes.append) == "async"
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


def test_bootstrap_falls_back_without_keys(state) -> None:
    assert isinstance(state.summarizer._backend, OfflineSummaryBackend)
    assert isinstance(state.senders["email"], LogOnlyEmailSender)
    assert state.closers == []


@pytest.mark.asyncio
async def test_console_flow_end_to_end(state) -> None:
    created = await registry.handle(state, "/tenant add Acme Corp owner@acme.test")
    assert "Tenant created: Acme Corp" in created
    (tenant,) = state.tenants.list_tenants()

    queued = await registry.handle(state, f"/task {tenant.id} The board met. Budget approved. Hiring paused.")
    assert queued.startswith("Task queued:")
    await state.engine.drain()

    (task,) = state.tasks.list_tasks(tenant.id)
    assert task.status == TaskStatus.COMPLETED
    assert task.output == "The board met. Budget approved."

    listing = await registry.handle(state, f"/tasks {tenant.id} completed")
    assert task.id in listing

    report = await registry.handle(state, f"/report {tenant.id}")
    assert report.splitlines() == ["📝 Daily Report:", "- The board met. Budget approved."]

    stats = await registry.handle(state, f"/stats {tenant.id}")
    assert "1 completed (100.0% success rate)" in stats

    sweep = await process_pending_notifications(
        state.notifications, state.summaries, state.tenants, state.senders, send_delay_seconds=0.0
    )
    assert sweep.successful == 1

    await close_state(state)


@pytest.mark.asyncio
async def test_inbound_and_error_replies(state) -> None:
    tenant = state.tenants.create_tenant(
        name="Acme", email="o@acme.test", inbound_domain=state.settings.inbound_email_domain
    )

    routed = await registry.handle(state, f"/inbound {tenant.inbound_email} boss@acme.test Please review.")
    assert "task_created" in routed
    await state.engine.drain()

    rejected = await registry.handle(state, "/inbound nobody@x.test boss@acme.test hi")
    assert rejected.startswith("Error:")

    unknown_tenant = await registry.handle(state, "/task nope some text")
    assert unknown_tenant.startswith("Error: Unknown tenant")

    assert "Usage" in await registry.handle(state, "/report")
    assert "/task" in await registry.handle(state, "/help")
