"""
Submission relay event definitions.
"""

from .base import EventEnvelope, Source, TriggerType, create_envelope
from .submission import (
    ROUTING_KEYS,
    RelayFaultedPayload,
    SubmissionDetails,
    SubmissionMessage,
    TriggerEnvelope,
)

__all__ = [
    # Envelope
    "EventEnvelope",
    "Source",
    "TriggerType",
    "create_envelope",
    # Submission events
    "SubmissionDetails",
    "SubmissionMessage",
    "TriggerEnvelope",
    "RelayFaultedPayload",
    "ROUTING_KEYS",
]
