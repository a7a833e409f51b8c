"""
Outbound notification helper.

Messages are delivered as JSON to a mail relay / webhook:
- POST $NOTIFY_WEBHOOK_URL  {"to": "...", "subject": "...", "body": "..."}

With no URL configured, notifications are logged and dropped so local
development needs no mail infrastructure.
"""

from __future__ import annotations

import logging

import httpx

from . import settings

logger = logging.getLogger(__name__)


class NotifierError(RuntimeError):
    pass


def webhook_url() -> str:
    return settings.env_str("NOTIFY_WEBHOOK_URL")


async def send(to: str, subject: str, body: str, *, timeout_s: float = 10.0) -> bool:
    """
    Deliver one message. Returns False when delivery is disabled.
    """
    recipient = (to or "").strip()
    if not recipient:
        raise NotifierError("Notification recipient is empty.")

    url = webhook_url()
    if not url:
        logger.info("notification_skipped to=%s subject=%r reason=no_webhook", recipient, subject)
        return False

    async with httpx.AsyncClient(timeout=timeout_s) as client:
        try:
            resp = await client.post(url, json={"to": recipient, "subject": subject, "body": body})
        except httpx.HTTPError as exc:
            raise NotifierError(f"Notification request failed: {exc}") from exc

    if resp.status_code >= 300:
        # Avoid dumping huge bodies; include a small snippet.
        raise NotifierError(f"Notification webhook returned {resp.status_code} {resp.text[:500]}")

    logger.info("notification_sent to=%s subject=%r", recipient, subject)
    return True


async def send_background(to: str, subject: str, body: str) -> None:
    """
    BackgroundTasks entrypoint. Never raises to the request path; failures are logged.
    """
    try:
        await send(to, subject, body)
    except Exception:
        logger.exception("notification_failed to=%s subject=%r", to, subject)
