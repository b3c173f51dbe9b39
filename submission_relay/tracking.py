"""Outcome records in the DynamoDB tracking table."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, Field

from submission_relay.config import Settings
from submission_relay.errors import LogFailed

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "Upload successful"
STATUS_FAILED = "Upload Failed"


class OutcomeRecord(BaseModel):
    """One row per relay run. Aliases are the table's attribute names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_email: str = Field(alias="userEmail")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    status: str
    # Holds the artifact name, not the stored location.
    submission_url: str = Field(alias="submissionURL")
    assignment_id: str = Field(alias="assignmentId")

    def to_item(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class OutcomeLogger:
    """Appends OutcomeRecords; never updates or deletes."""

    def __init__(self, table: Any):
        self._table = table

    @classmethod
    def from_settings(cls, settings: Settings) -> "OutcomeLogger":
        dynamodb = boto3.resource("dynamodb", region_name=settings.region)
        return cls(dynamodb.Table(settings.dynamodb_table))

    async def record(
        self,
        submitter: str,
        status: str,
        artifact_name: str,
        assignment_id: str,
    ) -> OutcomeRecord:
        record = OutcomeRecord(
            user_email=submitter,
            status=status,
            submission_url=artifact_name,
            assignment_id=assignment_id,
        )
        try:
            await asyncio.to_thread(self._table.put_item, Item=record.to_item())
        except (BotoCoreError, ClientError) as exc:
            raise LogFailed(f"error writing outcome record {record.id}: {exc}") from exc

        logger.info("Recorded outcome %s for %s: %s", record.id, submitter, status)
        return record
