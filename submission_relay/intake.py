"""Trigger envelope parsing.

Turns the queued envelope into a SubmissionEvent. Anything unusable raises
MalformedEvent, which the relay does not catch: without a trusted submitter
there is nobody to notify.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import orjson
from pydantic import ValidationError

from submission_relay.errors import MalformedEvent
from submission_relay.events.submission import SubmissionDetails, SubmissionMessage, TriggerEnvelope

logger = logging.getLogger(__name__)


def artifact_name(assignment_id: str, prior_submission_count: int) -> str:
    """Staging filename and object name for a submission (without extension)."""
    if prior_submission_count > 0:
        return f"{assignment_id}_{prior_submission_count}"
    return assignment_id


@dataclass(frozen=True, slots=True)
class SubmissionEvent:
    submitter_identity: str
    assignment_id: str
    submission_date: str
    source_url: str
    prior_submission_count: int = 0

    @property
    def artifact_name(self) -> str:
        return artifact_name(self.assignment_id, self.prior_submission_count)

    @property
    def details(self) -> SubmissionDetails:
        return SubmissionDetails(
            assignment_id=self.assignment_id,
            submission_date=self.submission_date,
            submission_url=self.source_url,
        )

    @classmethod
    def from_message(cls, message: SubmissionMessage) -> "SubmissionEvent":
        details = message.submissionDetails
        return cls(
            submitter_identity=message.userId,
            assignment_id=details.assignment_id,
            submission_date=details.submission_date,
            source_url=details.submission_url,
            prior_submission_count=message.noOfSubmissions,
        )


def _decode(raw: bytes | str | dict[str, Any], what: str) -> Any:
    if isinstance(raw, dict):
        return raw
    try:
        return orjson.loads(raw)
    except (orjson.JSONDecodeError, TypeError) as exc:
        raise MalformedEvent(f"{what} is not valid JSON: {exc}") from exc


def parse_event(raw: bytes | str | dict[str, Any]) -> SubmissionEvent:
    """Parse a trigger envelope into a SubmissionEvent.

    Raises:
        MalformedEvent: envelope or embedded message is not JSON, or a
            required field (userId, submissionDetails.assignment_id,
            submissionDetails.submission_url) is missing.
    """
    try:
        envelope = TriggerEnvelope.model_validate(_decode(raw, "envelope"))
    except ValidationError as exc:
        raise MalformedEvent(f"invalid trigger envelope: {exc}") from exc

    body = _decode(envelope.Records[0].Sns.Message, "embedded message")
    try:
        message = SubmissionMessage.model_validate(body)
    except ValidationError as exc:
        raise MalformedEvent(f"invalid submission message: {exc}") from exc

    event = SubmissionEvent.from_message(message)
    logger.info(
        "Received submission %s from %s (artifact %s)",
        event.assignment_id,
        event.submitter_identity,
        event.artifact_name,
    )
    return event
