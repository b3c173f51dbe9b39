"""Operator alerts for relay runs that fault after the error boundary."""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Optional

from submission_relay.events import (
    ROUTING_KEYS,
    RelayFaultedPayload,
    Source,
    TriggerType,
    create_envelope,
)
from submission_relay.intake import SubmissionEvent
from submission_relay.errors import RelayError
from submission_relay.rabbit import Publisher

logger = logging.getLogger(__name__)


def build_fault_payload(
    event: SubmissionEvent,
    exc: BaseException,
    stored_location: Optional[str] = None,
) -> RelayFaultedPayload:
    kind = exc.kind.value if isinstance(exc, RelayError) else type(exc).__name__
    return RelayFaultedPayload(
        submitter=event.submitter_identity,
        assignment_id=event.assignment_id,
        artifact_name=event.artifact_name,
        error_kind=kind,
        error_message=str(exc),
        stored_location=stored_location,
    )


class FaultAlerter:
    """Publishes submission.relay.faulted envelopes; usable as SubmissionRelay.on_fault."""

    def __init__(self, publisher: Publisher, service_name: str, timeout: float = 30.0):
        self.publisher = publisher
        self.source = Source(host=socket.gethostname(), type=TriggerType.QUEUE, app=service_name)
        self.timeout = timeout

    async def __call__(
        self,
        event: SubmissionEvent,
        exc: BaseException,
        stored_location: Optional[str] = None,
    ) -> None:
        routing_key = ROUTING_KEYS["RelayFaultedPayload"]
        envelope = create_envelope(
            routing_key,
            build_fault_payload(event, exc, stored_location),
            self.source,
        )
        await asyncio.wait_for(
            self.publisher.publish(routing_key, envelope.model_dump(mode="json")),
            timeout=self.timeout,
        )
        logger.info("Published %s for %s", routing_key, event.artifact_name)
