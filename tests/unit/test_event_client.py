"""Unit tests for the domain event webhook client"""

import asyncio
import httpx
from unittest.mock import AsyncMock, patch
from local_yield.infrastructure.clients.events import EventWebhookClient

WEBHOOK_URL = "http://notifications.test/events"


def response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", WEBHOOK_URL))


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_publish_without_url_is_noop(mock_post: AsyncMock):
    client = EventWebhookClient()
    client.webhook_url = None

    asyncio.run(client.publish("order.created", {"order_id": "o1"}))

    mock_post.assert_not_called()


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_publish_sends_event_name_with_payload(mock_post: AsyncMock):
    mock_post.return_value = response(202)
    client = EventWebhookClient(webhook_url=WEBHOOK_URL)

    asyncio.run(client.publish("order.created", {"order_id": "o1"}))

    mock_post.assert_called_once()
    assert mock_post.call_args.kwargs["json"] == {"event": "order.created", "order_id": "o1"}


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_publish_retries_server_errors_then_gives_up(mock_post: AsyncMock):
    """Error responses are retried up to max_retries; the failure is logged, not raised"""
    mock_post.return_value = response(503)
    client = EventWebhookClient(webhook_url=WEBHOOK_URL)
    client.max_retries = 3
    client.backoff_base = 0

    asyncio.run(client.publish("booking.requested", {"booking_id": "b1"}))

    assert mock_post.call_count == 3


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_publish_recovers_after_transient_failure(mock_post: AsyncMock):
    mock_post.side_effect = [httpx.ConnectError("connection refused"), response(200)]
    client = EventWebhookClient(webhook_url=WEBHOOK_URL)
    client.backoff_base = 0

    asyncio.run(client.publish("credit.issued", {"entry_id": "e1"}))

    assert mock_post.call_count == 2
