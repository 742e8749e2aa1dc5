# src/included/core/retry.py

"""
Exponential backoff shared by the summarization client and the notification sweeper.

Delay before attempt n+1 is base_delay * 2^(n-1), capped at max_delay.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


def _log_before_sleep(label: str, max_attempts: int) -> Callable[[RetryCallState], None]:
    def _log(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome is not None else None
        delay = state.next_action.sleep if state.next_action is not None else 0.0
        logger.warning(
            "%s: attempt %d/%d failed (%s); retrying in %.1fs",
            label,
            state.attempt_number,
            max_attempts,
            exc,
            delay,
        )

    return _log


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: type[BaseException] | tuple[type[BaseException], ...] = Exception,
    label: str = "call",
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """
    Await fn() up to policy.max_attempts times.

    The last exception is re-raised unchanged once attempts are exhausted;
    exceptions outside retry_on propagate immediately.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, int(policy.max_attempts))),
        wait=wait_exponential(multiplier=policy.base_delay, max=policy.max_delay),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_before_sleep(label, policy.max_attempts),
        sleep=sleep,
        reraise=True,
    )
    return await retrying(fn)
