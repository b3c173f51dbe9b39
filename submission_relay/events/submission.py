"""
Submission event payload definitions.

Inbound: the trigger envelope carries one JSON string (SNS-style
``Records[0].Sns.Message``) which decodes to a SubmissionMessage.
Outbound: RelayFaultedPayload is published when a relay run faults after
the error boundary.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional


def _path_segment(value: str) -> str:
    """Reject values that cannot be used as one staging-path and object-key segment."""
    if not value.strip():
        raise ValueError("must not be empty")
    if "/" in value or "\\" in value or "\x00" in value:
        raise ValueError("must not contain path separators")
    if ".." in value:
        raise ValueError("must not contain '..'")
    return value


class SubmissionDetails(BaseModel):
    """Assignment submission as entered by the student."""

    model_config = ConfigDict(extra="ignore")

    assignment_id: str
    submission_date: str = ""
    submission_url: str

    @field_validator("assignment_id")
    @classmethod
    def check_assignment_id(cls, value: str) -> str:
        return _path_segment(value)


class SubmissionMessage(BaseModel):
    """
    Embedded JSON payload of the trigger.

    Published when: a student submits an assignment
    Consumed by: submission relay
    """

    model_config = ConfigDict(extra="ignore")

    userId: str
    noOfSubmissions: int = Field(default=0, ge=0)
    submissionDetails: SubmissionDetails

    @field_validator("userId")
    @classmethod
    def check_user_id(cls, value: str) -> str:
        return _path_segment(value)


class SnsMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    Message: str


class TriggerRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    Sns: SnsMessage


class TriggerEnvelope(BaseModel):
    """Outer envelope delivered by the queue; only the first record is relayed."""

    model_config = ConfigDict(extra="ignore")

    Records: List[TriggerRecord] = Field(min_length=1)


class RelayFaultedPayload(BaseModel):
    """
    Relay run faulted in the notify or log step.

    Published when: NotifyFailed or LogFailed escapes a relay run
    Consumed by: operator alerting
    Routing Key: submission.relay.faulted
    """

    submitter: str
    assignment_id: str
    artifact_name: str
    error_kind: str
    error_message: str
    stored_location: Optional[str] = None


ROUTING_KEYS = {
    "SubmissionMessage": "submission.assignment.submitted",
    "RelayFaultedPayload": "submission.relay.faulted",
}
