# src/included/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (stores/LLM/senders/engine),
- closes HTTP clients on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from ..config import get_settings
from ..core.ports import LLMBackend, NotificationSender
from ..core.retry import RetryPolicy
from ..core.state import AppState
from ..inbound.inbound_routing import InboundRouter
from ..inbound.inbound_store import InboundEmailStore
from ..llm.client import OpenAIChatBackend
from ..llm.offline import OfflineSummaryBackend
from ..llm.summarizer import SummarizationClient
from ..notifications.dispatcher import LogOnlyEmailSender, ResendEmailSender
from ..notifications.notification_models import EMAIL_CHANNEL
from ..notifications.notification_store import NotificationStore
from ..summaries.fanout import FanOut
from ..summaries.summary_store import SummaryStore
from ..tasks.task_engine import TaskEngine
from ..tasks.task_store import TaskStore
from ..tenants.tenant_store import TenantStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(). Missing API keys are not
    fatal: summaries come from the offline backend and email is only logged.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    closers: list[Callable[[], Awaitable[None]]] = []

    backend: LLMBackend
    try:
        llm = OpenAIChatBackend(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            models=list(settings.llm_models),
            connect_timeout=settings.llm_connect_timeout,
            read_timeout=settings.llm_read_timeout,
        )
    except RuntimeError as e:
        # Fallback for demos / local runs without external services.
        logger.warning("%s Using offline summaries.", e)
        backend = OfflineSummaryBackend()
    else:
        backend = llm
        closers.append(llm.aclose)

    email_sender: NotificationSender
    try:
        resend = ResendEmailSender(
            api_key=settings.resend_api_key,
            from_email=settings.email_from,
            base_url=settings.resend_base_url,
            timeout=settings.delivery_timeout,
        )
    except RuntimeError as e:
        logger.warning("%s Emails will only be logged.", e)
        email_sender = LogOnlyEmailSender()
    else:
        email_sender = resend
        closers.append(resend.aclose)

    db_path = settings.db_path
    tenants = TenantStore(db_path)
    tasks = TaskStore(db_path)
    summaries = SummaryStore(db_path)
    notifications = NotificationStore(db_path)
    inbound = InboundEmailStore(db_path)

    summarizer = SummarizationClient(
        backend,
        policy=RetryPolicy(
            max_attempts=settings.summarization_max_attempts,
            base_delay=settings.summarization_base_delay,
            max_delay=settings.summarization_max_delay,
        ),
    )
    fanout = FanOut(summaries, notifications, tenants, channels=settings.notification_channels)
    engine = TaskEngine(
        tasks,
        tenants,
        summarizer,
        fanout,
        expose_errors=not settings.is_production,
    )
    router = InboundRouter(
        tenants,
        inbound,
        engine,
        domain=settings.inbound_email_domain,
        prefix=settings.inbound_email_prefix,
    )

    return AppState(
        settings=settings,
        tenants=tenants,
        tasks=tasks,
        summaries=summaries,
        notifications=notifications,
        inbound=inbound,
        summarizer=summarizer,
        engine=engine,
        fanout=fanout,
        router=router,
        senders={EMAIL_CHANNEL: email_sender},
        delivery_policy=RetryPolicy(
            max_attempts=settings.delivery_max_attempts,
            base_delay=settings.delivery_base_delay,
            max_delay=settings.delivery_max_delay,
        ),
        closers=closers,
    )


async def close_state(state: AppState) -> None:
    """Close HTTP clients. Never raises."""
    for close in state.closers:
        try:
            await close()
        except Exception:
            logger.debug("Client close failed.", exc_info=True)
    state.closers.clear()
