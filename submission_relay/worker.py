"""Submission relay process entry points.

- ``main()``: long-running worker consuming trigger envelopes from RabbitMQ
  (routing key ``SUBMISSION_ROUTING_KEY``, default
  ``submission.assignment.submitted``).
- ``handler(event, context)``: function-style entry for one envelope, for
  hosts that invoke a handler per notification.

Configuration is read from the environment; see submission_relay.config.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncIterator, Optional

import httpx

from submission_relay.alerts import FaultAlerter
from submission_relay.config import Settings, get_settings
from submission_relay.consumer import Consumer, binding_matches
from submission_relay.events import ROUTING_KEYS
from submission_relay.notify import StatusNotifier
from submission_relay.rabbit import Publisher
from submission_relay.relay import SubmissionRelay
from submission_relay.storage import ArtifactStore
from submission_relay.tracking import OutcomeLogger

logger = logging.getLogger(__name__)


def build_relay(
    settings: Settings,
    http_client: httpx.AsyncClient,
    alerter: Optional[FaultAlerter] = None,
) -> SubmissionRelay:
    return SubmissionRelay(
        http_client,
        ArtifactStore.from_settings(settings),
        StatusNotifier.from_settings(settings),
        OutcomeLogger.from_settings(settings),
        staging_dir=settings.staging_dir,
        fetch_deadline=settings.fetch_deadline,
        fetch_max_bytes=settings.fetch_max_bytes,
        sdk_timeout=settings.sdk_timeout,
        on_fault=alerter,
    )


@asynccontextmanager
async def relay_session(settings: Settings) -> AsyncIterator[SubmissionRelay]:
    """Construct collaborators once and release them on exit."""
    publisher = None
    alerter = None
    if settings.alerts_enabled:
        publisher = Publisher(settings.rabbit_url, settings.exchange_name)
        alerter = FaultAlerter(publisher, settings.service_name, settings.rabbit_publish_timeout)

    async with httpx.AsyncClient(
        timeout=settings.fetch_timeout, follow_redirects=True
    ) as client:
        try:
            yield build_relay(settings, client, alerter)
        finally:
            if publisher:
                await publisher.close()


async def run_worker(settings: Settings) -> None:
    alert_key = ROUTING_KEYS["RelayFaultedPayload"]
    if settings.alerts_enabled and binding_matches(settings.submission_routing_key, alert_key):
        raise ValueError(
            f"SUBMISSION_ROUTING_KEY {settings.submission_routing_key!r} also matches fault alerts ({alert_key})"
        )

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _stop() -> None:
        if not stop_event.is_set():
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _stop)

    async with relay_session(settings) as relay:
        consumer = Consumer(settings.service_name, settings.rabbit_url, settings.exchange_name)
        logger.info(
            "Starting submission relay (bucket=%s, table=%s, routing_key=%s)",
            settings.bucket_name,
            settings.dynamodb_table,
            settings.submission_routing_key,
        )
        await consumer.start(relay.handle, routing_keys=[settings.submission_routing_key])
        try:
            await stop_event.wait()
        finally:
            with suppress(Exception):
                await consumer.close()
    logger.info("Submission relay stopped")


async def handle_once(settings: Settings, event: Any) -> dict[str, Any]:
    async with relay_session(settings) as relay:
        result = await relay.handle(event)
    return {
        "outcome": result.outcome.value,
        "artifactName": result.artifact_name,
        "storedLocation": result.stored_location,
        "recordId": result.record.id if result.record else None,
    }


def handler(event: Any, context: Any = None) -> dict[str, Any]:
    """Relay one trigger envelope. Faults and MalformedEvent propagate to the host."""
    return asyncio.run(handle_once(get_settings(), event))


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    asyncio.run(run_worker(settings))


if __name__ == "__main__":
    main()
