# src/included/notifications/dispatcher.py

"""
Notification delivery.

Senders implement the NotificationSender port for one channel. They hold no
state beyond their HTTP client; send_with_retry wraps a sender in the shared
backoff policy and is what the sweeper calls.
"""

from __future__ import annotations

import asyncio
import html
import logging
import uuid

import httpx

from ..core.errors import DeliveryError
from ..core.ports import NotificationSender
from ..core.retry import RetryPolicy, SleepFn, call_with_retry

logger = logging.getLogger(__name__)

SUMMARY_EMAIL_SUBJECT = "Included: New Summary Ready"


def render_summary_email(summary_text: str, *, tenant_name: str | None = None) -> tuple[str, str]:
    """Return (subject, html_body) for a summary notification."""
    greeting = f"Hello {html.escape(tenant_name)}," if tenant_name else "Hello,"
    body = f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>{SUMMARY_EMAIL_SUBJECT}</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <p>{greeting}</p>
  <p>Here is your latest summary:</p>
  <div style="background-color: #f9f9f9; border-left: 4px solid #2c3e50; padding: 15px; margin: 20px 0;">
    <p style="margin: 0; font-size: 16px; line-height: 1.6;">{html.escape(summary_text)}</p>
  </div>
  <p style="margin-top: 30px;">Included AI Assistant</p>
</body>
</html>"""
    return SUMMARY_EMAIL_SUBJECT, body


def _provider_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return resp.reason_phrase


class ResendEmailSender:
    """Email channel over the Resend HTTP API."""

    def __init__(
        self,
        *,
        api_key: str | None,
        from_email: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise RuntimeError("Email provider key is not set. Set INCLUDED_RESEND_API_KEY in your .env.")
        self._api_key = api_key.strip()
        self._from_email = from_email
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(self, to: str, subject: str, body: str) -> str:
        logger.info("Sending email to %s subject=%r", to, subject)
        try:
            resp = await self._client.post(
                "/emails",
                json={
                    "from": self._from_email,
                    "to": [to],
                    "subject": subject,
                    "html": body,
                },
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as e:
            raise DeliveryError(f"Email transport error: {e}") from e

        if resp.status_code >= 400:
            raise DeliveryError(
                f"Email provider rejected message ({resp.status_code}): {_provider_message(resp)}",
                status_code=resp.status_code,
            )

        # Accepted by the provider: nothing below may raise, or the message is re-sent.
        try:
            data = resp.json()
        except ValueError:
            data = None
        raw_id = data.get("id") if isinstance(data, dict) else None
        delivery_id = str(raw_id or "unknown")
        logger.info("Email sent to %s id=%s", to, delivery_id)
        return delivery_id


class LogOnlyEmailSender:
    """
    NotificationSender that logs instead of sending email.

    Used when no provider key is configured.
    """

    async def send(self, to: str, subject: str, body: str) -> str:
        delivery_id = f"log-{uuid.uuid4()}"
        logger.info("Notify: would send to %s (subject=%r) id=%s", to, subject[:80], delivery_id)
        logger.debug("Notify body (first 500 chars): %s", body[:500])
        return delivery_id


async def send_with_retry(
    sender: NotificationSender,
    *,
    to: str,
    subject: str,
    body: str,
    policy: RetryPolicy,
    sleep: SleepFn = asyncio.sleep,
) -> str:
    """Deliver with capped exponential backoff; DeliveryError once attempts run out."""

    async def _attempt() -> str:
        return await sender.send(to, subject, body)

    try:
        return await call_with_retry(_attempt, policy, label=f"deliver to {to}", sleep=sleep)
    except DeliveryError:
        raise
    except Exception as e:
        raise DeliveryError(str(e) or e.__class__.__name__) from e
