# src/included/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

# How long a model that answered 404 is skipped before we try it again.
_BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _first_content(response: Any) -> str:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return ""
    return content or ""


class OpenAIChatBackend:
    """
    OpenAI-compatible chat completion backend (LLMBackend port).

    Behavior:
    - Tries models in the configured order within one call.
    - 404 (model not available) -> park the model for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no fallback across models).

    SDK-level retries are disabled: backoff belongs to SummarizationClient.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        models: list[str],
        connect_timeout: float = 5.0,
        read_timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set INCLUDED_OPENAI_API_KEY in your .env.")

        self._models = [m.strip() for m in models if m and m.strip()]
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set INCLUDED_LLM_MODELS in your .env.")

        if client is None:
            client = AsyncOpenAI(
                base_url=base_url,
                api_key=str(api_key),
                timeout=httpx.Timeout(
                    connect=connect_timeout,
                    read=read_timeout,
                    write=10.0,
                    pool=connect_timeout,
                ),
                max_retries=0,
            )
        self._client = client
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    async def aclose(self) -> None:
        await self._client.close()

    async def complete(self, system_prompt: str, text: str) -> str:
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            t0 = time.monotonic()
            try:
                response = await self._client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": text},
                    ],
                )
            except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
                raise RuntimeError(
                    "LLM authentication failed. Check your API key (INCLUDED_OPENAI_API_KEY)."
                ) from e
            except openai.NotFoundError as e:
                last_error = e
                self._bad_models[model] = time.monotonic() + _BAD_MODEL_COOLDOWN_SECONDS
                logger.info("LLM: model not available (404): %s", model)
                continue
            except openai.RateLimitError as e:
                last_error = e
                logger.info("LLM: rate-limited on model=%s, trying next", model)
                continue
            except openai.APIConnectionError as e:
                last_error = e
                logger.info("LLM: network/timeout error on model=%s, trying next", model)
                continue
            except openai.APIError as e:
                last_error = e
                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            content = _first_content(response)
            if content.strip():
                logger.debug("LLM: completed with model=%s in %.2fs", model, time.monotonic() - t0)
                return content

            last_error = RuntimeError(f"Model returned no content: {model}")
            logger.info("LLM: empty response from model=%s, trying next", model)

        if last_error is not None:
            if isinstance(last_error, openai.RateLimitError):
                raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
            if isinstance(last_error, openai.APIConnectionError):
                raise RuntimeError("LLM network/timeout error.") from last_error
            raise RuntimeError("All LLM models failed.") from last_error

        raise RuntimeError("All LLM models failed.")
