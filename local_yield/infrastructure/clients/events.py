"""Domain event webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from local_yield.config import settings
from local_yield.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)


class EventWebhookClient:
    """Publishes committed domain events (order.created, booking.*, credit.issued) to the notification service"""

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url or settings.event_webhook_url
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        """
        Send one event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on error responses and network failures
        - Gives up after max_retries and logs; the committed write is unaffected

        Args:
            event: Event name, e.g. "order.created"
            payload: Event data
        """
        if not self.webhook_url:
            logger.debug("Event webhook not configured, dropping event", extra={"event": event})
            return

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json={"event": event, **payload},
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        logger.error(
                            f"Event delivery failed after {attempt} attempts: {e}",
                            extra={"event": event},
                        )
                        return

                    # Exponential backoff: 1s, 2s, 4s, 8s, 16s
                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
