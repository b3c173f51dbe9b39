"""
Core event envelope types for events the relay publishes to the bus.

- EventEnvelope: Generic wrapper for all event payloads
- TriggerType, Source: Event origin metadata
"""

from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Generic, TypeVar
from uuid import UUID, uuid4
from enum import Enum


class TriggerType(str, Enum):
    """How was this event triggered?"""

    MANUAL = "manual"  # Human-initiated
    SCHEDULED = "scheduled"  # Cron/timer triggered
    QUEUE = "queue"  # Queued message delivery
    HOOK = "hook"  # External webhook


class Source(BaseModel):
    """Identifies WHO or WHAT triggered the event."""

    host: str  # Machine that generated event
    type: TriggerType  # How was this triggered?
    app: Optional[str] = None  # Application name
    meta: Optional[Dict[str, Any]] = None  # Additional context


T = TypeVar("T")


class EventEnvelope(BaseModel, Generic[T]):
    """
    Generic event envelope that wraps all events.

    Bump 'version' for breaking changes to the envelope structure; payload
    schemas evolve independently.
    """

    event_id: UUID = Field(default_factory=uuid4)
    event_type: str  # Routing key (e.g., "submission.relay.faulted")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "1.0.0"
    source: Source
    correlation_ids: List[UUID] = Field(default_factory=list)  # Parent event IDs
    payload: T

    model_config = ConfigDict()


def create_envelope(
    event_type: str,
    payload: Any,
    source: Source,
    correlation_ids: Optional[List[UUID]] = None,
    event_id: Optional[UUID] = None,
) -> EventEnvelope:
    """
    Helper to create properly-formed event envelope.

    Example:
        >>> source = Source(host="localhost", type=TriggerType.QUEUE)
        >>> envelope = create_envelope("test.event", {"data": "test"}, source)
        >>> envelope.event_type
        'test.event'
    """
    return EventEnvelope(
        event_id=event_id or uuid4(),
        event_type=event_type,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        source=source,
        correlation_ids=correlation_ids or [],
        payload=payload,
    )
