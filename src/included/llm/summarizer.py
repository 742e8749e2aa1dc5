# src/included/llm/summarizer.py

from __future__ import annotations

import asyncio
import logging

from ..core.errors import SummarizationError
from ..core.ports import LLMBackend
from ..core.retry import RetryPolicy, SleepFn, call_with_retry

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """
You are a professional SMB operations summarization engine.

Your ONLY job is to summarize business communications.

Rules:
- Output ONLY the summary.
- Maximum 2 sentences.
- Professional, factual tone.
- No advice, no templates, no explanations.
- No assistant-style responses, no questions, no extra text.

Good output:
"Client received the Q1 report and was asked to provide feedback."

Bad output:
"I can summarize this..."
"Please provide..."
""".strip()


class BlankSummaryError(Exception):
    """The model answered with nothing but whitespace."""


class SummarizationClient:
    """
    Summarizer port over an LLMBackend.

    summarize(text):
    - strips the model output; "" and "   " count as a failed attempt
    - retries up to policy.max_attempts with capped exponential backoff
    - raises SummarizationError once attempts are exhausted
    """

    def __init__(
        self,
        backend: LLMBackend,
        *,
        policy: RetryPolicy | None = None,
        system_prompt: str = SUMMARY_SYSTEM_PROMPT,
        max_input_chars: int = 20000,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self._policy = policy or RetryPolicy()
        self._system_prompt = system_prompt
        self._max_input_chars = max_input_chars
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def summarize(self, text: str) -> str:
        if not text or not text.strip():
            raise SummarizationError("Nothing to summarize.")

        if len(text) > self._max_input_chars:
            logger.warning(
                "Input truncated from %d to %d chars before summarizing",
                len(text),
                self._max_input_chars,
            )
            text = text[: self._max_input_chars] + "…"

        async def _attempt() -> str:
            raw = await self._backend.complete(self._system_prompt, text)
            summary = (raw or "").strip()
            if not summary:
                raise BlankSummaryError("Model returned an empty summary.")
            return summary

        try:
            summary = await call_with_retry(
                _attempt,
                self._policy,
                label="summarize",
                sleep=self._sleep,
            )
        except Exception as e:
            logger.warning(
                "Summarization failed after %d attempts: %s", self._policy.max_attempts, e
            )
            raise SummarizationError(str(e) or e.__class__.__name__) from e

        logger.debug("Summary produced len=%d", len(summary))
        return summary
