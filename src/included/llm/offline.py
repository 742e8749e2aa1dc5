# src/included/llm/offline.py

from __future__ import annotations

import re

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


class OfflineSummaryBackend:
    """
    Offline deterministic LLMBackend used for demos when no external API is configured.

    Returns the first two sentences of the input (whitespace collapsed), so the
    pipeline can run end to end without network access.
    """

    def __init__(self, max_chars: int = 280) -> None:
        self._max_chars = max_chars

    async def complete(self, system_prompt: str, text: str) -> str:
        flat = " ".join((text or "").split())
        if not flat:
            return ""
        sentences = _SENTENCE_END.split(flat)
        out = " ".join(sentences[:2])
        if len(out) > self._max_chars:
            out = out[: self._max_chars].rstrip() + "…"
        return out
