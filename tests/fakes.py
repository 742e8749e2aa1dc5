# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable

from included.core.errors import DeliveryError


async def no_sleep(seconds: float) -> None:
    """Backoff sleep replacement: returns at once."""
    return None


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedBackend:
    """
    Deterministic LLMBackend for unit tests.

    Each call consumes the next scripted item: a string is returned, an
    exception is raised. The last item repeats once the script runs out.
    """

    def __init__(self, script: Iterable[str | Exception]) -> None:
        self.script = list(script)
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, text: str) -> str:
        self.calls.append((system_prompt, text))
        idx = min(len(self.calls), len(self.script)) - 1
        item = self.script[idx]
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSender:
    """NotificationSender that records every message and always succeeds."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, body: str) -> str:
        self.sent.append((to, subject, body))
        return f"msg-{len(self.sent)}"


class FlakySender:
    """Fails the first `failures` calls with DeliveryError, then succeeds."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def send(self, to: str, subject: str, body: str) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise DeliveryError("provider unavailable", status_code=503)
        return f"msg-{self.calls}"
