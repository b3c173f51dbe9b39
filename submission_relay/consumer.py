"""
Queue intake for trigger envelopes.

The relay owns one durable queue, ``<exchange>.<service>``, bound to the
submission routing key on the topic exchange. Deliveries are handed to the
relay one at a time (prefetch 1).
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

import aio_pika
import orjson
from aio_pika.abc import AbstractIncomingMessage, AbstractQueue, AbstractRobustConnection

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Awaitable[Any]]


def binding_matches(binding: str, routing_key: str) -> bool:
    """Topic-exchange match: ``*`` is exactly one word, ``#`` is zero or more."""
    return _match_words(binding.split("."), routing_key.split("."))


def _match_words(pattern: list[str], words: list[str]) -> bool:
    if not pattern:
        return not words
    head, rest = pattern[0], pattern[1:]
    if head == "#":
        return any(_match_words(rest, words[i:]) for i in range(len(words) + 1))
    if not words:
        return False
    return (head == "*" or head == words[0]) and _match_words(rest, words[1:])


class Consumer:
    """
    Delivers decoded message bodies to a handler.

    A handler exception rejects the message without requeue, so a poison
    envelope goes to the queue's dead-letter exchange instead of looping.
    """

    def __init__(self, service_name: str, rabbit_url: str, exchange_name: str, prefetch_count: int = 1):
        self.service_name = service_name
        self.rabbit_url = rabbit_url
        self.exchange_name = exchange_name
        self.queue_name = f"{exchange_name}.{service_name}"
        self.prefetch_count = prefetch_count
        self._conn: Optional[AbstractRobustConnection] = None
        self._queue: Optional[AbstractQueue] = None
        self._callback: Optional[MessageHandler] = None

    async def start(self, callback: MessageHandler, routing_keys: Iterable[str], connect_timeout: float = 10.0):
        """Connect, bind the queue to ``routing_keys`` and begin consuming."""
        self._callback = callback
        try:
            self._conn = await asyncio.wait_for(aio_pika.connect_robust(self.rabbit_url), timeout=connect_timeout)
            channel = await self._conn.channel()
            await channel.set_qos(prefetch_count=self.prefetch_count)
            exchange = await channel.declare_exchange(self.exchange_name, aio_pika.ExchangeType.TOPIC, durable=True)
            self._queue = await channel.declare_queue(self.queue_name, durable=True)
            for key in routing_keys:
                await self._queue.bind(exchange, routing_key=key)
                logger.info("Bound %s to %s", self.queue_name, key)
            await self._queue.consume(self._on_message)
        except Exception as exc:
            logger.error("Consumer %s could not start: %s", self.queue_name, exc)
            await self.close()
            raise
        logger.info("Consuming %s for %s", self.queue_name, self.service_name)

    async def _on_message(self, message: AbstractIncomingMessage):
        # process() acks on clean exit, rejects without requeue on exception
        async with message.process():
            try:
                await self._callback(orjson.loads(message.body))
            except Exception as exc:
                logger.error("Rejected message %s from %s: %s", message.message_id, self.queue_name, exc)
                raise

    async def close(self):
        conn, self._conn, self._queue = self._conn, None, None
        if conn is not None:
            await conn.close()
