# src/included/core/state.py

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ..inbound.inbound_routing import InboundRouter
from ..inbound.inbound_store import InboundEmailStore
from ..notifications.notification_store import NotificationStore
from ..summaries.fanout import FanOut
from ..summaries.summary_store import SummaryStore
from ..tasks.task_engine import TaskEngine
from ..tasks.task_store import TaskStore
from ..tenants.tenant_store import TenantStore
from .ports import NotificationSender, Summarizer
from .retry import RetryPolicy


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    tenants: TenantStore
    tasks: TaskStore
    summaries: SummaryStore
    notifications: NotificationStore
    inbound: InboundEmailStore

    summarizer: Summarizer
    engine: TaskEngine
    fanout: FanOut
    router: InboundRouter

    # channel -> sender; channels missing here are never fetched by the sweeper
    senders: dict[str, NotificationSender] = field(default_factory=dict)
    delivery_policy: RetryPolicy = field(default_factory=RetryPolicy)

    # async close hooks for HTTP clients (run at shutdown)
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)
