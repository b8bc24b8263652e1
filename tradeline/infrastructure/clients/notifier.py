"""Notification webhook client with exponential backoff retry logic"""

import asyncio
import logging

import httpx

from tradeline.config import settings
from tradeline.domain.exceptions import NotifierError
from tradeline.domain.models import Notification
from tradeline.infrastructure.observability.metrics import webhook_failure_counter, webhook_latency_histogram

logger = logging.getLogger(__name__)


def notification_payload(notification: Notification) -> dict:
    """Wire shape of the (recipient, event type, entity, relationship, message) tuple"""
    return {
        "notification_id": notification.id,
        "recipient_business_id": notification.recipient_business_id,
        "event_type": notification.event_type.value,
        "related_entity_id": notification.related_entity_id,
        "relationship_id": notification.relationship_id,
        "message": notification.message,
        "created_at": notification.created_at.isoformat(),
    }


class NotifierClient:
    """Client for delivering domain notifications to the external notifier"""

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.notifier_webhook_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_notification(self, notification: Notification) -> None:
        """
        Deliver one notification with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx errors and network failures

        Raises:
            NotifierError: After the final failed attempt
        """
        if not self.enabled:
            return

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=notification_payload(notification))
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        logger.error(
                            "Notification delivery failed",
                            extra={"notification_id": notification.id, "attempts": attempt},
                        )
                        raise NotifierError(f"Notifier unavailable after {attempt} attempts: {e}") from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
