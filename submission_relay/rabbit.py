"""
RabbitMQ publisher for events the relay emits (operator fault alerts).
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse, urlunparse

import aio_pika
import orjson

logger = logging.getLogger(__name__)


def _redacted_url(url: str) -> str:
    """Redact credentials from URL for safe logging."""
    parsed = urlparse(url)
    if not parsed.netloc:
        return url
    host = parsed.hostname or ""
    port = f":{parsed.port}" if parsed.port else ""
    new_netloc = host + port
    redacted = parsed._replace(netloc=new_netloc)
    return urlunparse(redacted)


class Publisher:
    """
    Publishes JSON bodies to a durable topic exchange.

    Usage:
        publisher = Publisher(settings.rabbit_url, settings.exchange_name)
        await publisher.start()
        await publisher.publish("submission.relay.faulted", envelope.model_dump(mode="json"))
        await publisher.close()
    """

    def __init__(self, rabbit_url: str, exchange_name: str):
        self.rabbit_url = rabbit_url
        self.exchange_name = exchange_name
        self._conn = None
        self._channel = None
        self._exchange = None
        self._lock = asyncio.Lock()
        self._started = False

    async def start(self):
        """Connect to RabbitMQ and declare the exchange."""
        if self._started:
            return

        async with self._lock:
            if self._started:
                return

            if not self.rabbit_url:
                raise RuntimeError(
                    "RABBIT_URL is not configured; set the environment variable."
                )

            try:
                self._conn = await asyncio.wait_for(
                    aio_pika.connect_robust(self.rabbit_url), timeout=10
                )
                self._channel = await self._conn.channel(publisher_confirms=True)
                self._exchange = await self._channel.declare_exchange(
                    self.exchange_name, aio_pika.ExchangeType.TOPIC, durable=True
                )
                logger.info(
                    f"Publisher: Connected to RabbitMQ exchange '{self.exchange_name}'"
                )
            except Exception as exc:
                safe_url = _redacted_url(self.rabbit_url)
                raise RuntimeError(
                    f"Failed to connect to RabbitMQ at '{safe_url}': {exc}"
                ) from exc

            self._started = True

    async def publish(
        self,
        routing_key: str,
        body: Dict[str, Any],
        message_id: Optional[str] = None,
    ):
        """Publish a persistent JSON message; message_id defaults to body['event_id']."""
        if not self._exchange:
            await self.start()

        payload = orjson.dumps(body)
        msg = aio_pika.Message(
            payload,
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            message_id=message_id or body.get("event_id"),
            content_type="application/json",
            content_encoding="utf-8",
        )

        await self._exchange.publish(msg, routing_key=routing_key)
        logger.debug(f"Published message to {routing_key}: {msg.message_id}")

    async def close(self):
        """Close connections gracefully."""
        async with self._lock:
            if self._channel and not self._channel.is_closed:
                await self._channel.close()
            if self._conn:
                await self._conn.close()

            self._conn = None
            self._channel = None
            self._exchange = None
            self._started = False
            logger.info("Publisher: Closed all connections")
