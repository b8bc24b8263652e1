"""Unit tests for the notification webhook client"""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from tradeline.domain.exceptions import NotifierError
from tradeline.domain.models import Notification, NotificationType
from tradeline.infrastructure.clients.notifier import NotifierClient


@pytest.fixture
def notification() -> Notification:
    return Notification(
        id="n-1",
        recipient_business_id="biz_supplier",
        event_type=NotificationType.ORDER_PLACED,
        related_entity_id="order-1",
        relationship_id="rel-1",
        message="New order received: Rice",
        created_at=datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc),
    )


def make_client(handler) -> NotifierClient:
    client = NotifierClient(webhook_url="http://notifier.test/events", transport=httpx.MockTransport(handler))
    client.backoff_base = 0
    return client


def test_posts_notification_payload(notification: Notification):
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(202)

    asyncio.run(make_client(handler).send_notification(notification))

    assert len(received) == 1
    body = received[0].read()
    assert b'"event_type":"OrderPlaced"' in body.replace(b" ", b"")
    assert b'"recipient_business_id":"biz_supplier"' in body.replace(b" ", b"")


def test_retries_server_errors(notification: Notification):
    responses = iter([httpx.Response(503), httpx.Response(500), httpx.Response(200)])

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    asyncio.run(make_client(handler).send_notification(notification))


def test_gives_up_after_max_retries(notification: Notification):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    client = make_client(handler)
    with pytest.raises(NotifierError):
        asyncio.run(client.send_notification(notification))
    assert len(calls) == client.max_retries


def test_disabled_without_webhook_url(notification: Notification, monkeypatch):
    monkeypatch.setattr("tradeline.infrastructure.clients.notifier.settings.notifier_webhook_url", None)
    client = NotifierClient()

    assert client.enabled is False
    asyncio.run(client.send_notification(notification))
