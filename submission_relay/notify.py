"""
Status emails sent to the submitter through Amazon SES.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from submission_relay.config import Settings
from submission_relay.errors import NotifyFailed
from submission_relay.events.submission import SubmissionDetails

logger = logging.getLogger(__name__)

SUBJECT = "Assignment Upload Status"

SUCCESS_TEMPLATE = """\
Dear {recipient},

We are pleased to inform you that your recent assignment submission has been successfully uploaded to Google Cloud Storage bucket.

Status: Uploaded Successfully
Assignment ID: {assignment_id}
Submission Date: {submission_date}
Location: {location}

Please review your submission and confirm that everything is in order.

Best regards,
{sender_name}

Unsubscribe: If you wish to opt-out of receiving further notifications, you can unsubscribe [here].
"""

FAILURE_TEMPLATE = """\
Dear {recipient},

We regret to inform you that there was an issue with the recent assignment submission. The upload to our Google Cloud Storage bucket was unsuccessful.

Status: Upload Failed
Assignment ID: {assignment_id}
Submission Date: {submission_date}
Reason: {reason}

Please attempt to submit your assignment again.

Best regards,
{sender_name}

Unsubscribe: If you wish to opt-out of receiving further notifications, you can unsubscribe [here].
"""


class NotificationStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


def compose_body(
    recipient: str,
    status: NotificationStatus,
    details: SubmissionDetails,
    *,
    sender_name: str,
    location: Optional[str] = None,
    reason: Optional[str] = None,
) -> str:
    """Fill the success or failure template for one submission."""
    fields = {
        "recipient": recipient,
        "assignment_id": details.assignment_id,
        "submission_date": details.submission_date,
        "sender_name": sender_name,
    }
    if status is NotificationStatus.SUCCESS:
        return SUCCESS_TEMPLATE.format(location=location or "", **fields)
    return FAILURE_TEMPLATE.format(reason=reason or "", **fields)


class StatusNotifier:
    """Sends one plain-text status email per call; never retries."""

    def __init__(self, ses_client: Any, sender_address: str, sender_name: str):
        self._ses = ses_client
        self.sender_address = sender_address
        self.sender_name = sender_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "StatusNotifier":
        ses_client = boto3.client("ses", region_name=settings.region)
        return cls(ses_client, settings.sender_address, settings.sender_name)

    def build_params(self, recipient: str, body: str) -> dict[str, Any]:
        return {
            "Destination": {"ToAddresses": [recipient]},
            "Message": {
                "Body": {"Text": {"Data": body}},
                "Subject": {"Data": SUBJECT},
            },
            "Source": self.sender_address,
        }

    async def send(
        self,
        recipient: str,
        status: NotificationStatus,
        details: SubmissionDetails,
        *,
        location: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> str:
        """
        Send the status email and return the SES message id.

        Raises:
            NotifyFailed: SES rejected the message or could not be reached.
        """
        body = compose_body(
            recipient,
            status,
            details,
            sender_name=self.sender_name,
            location=location,
            reason=reason,
        )
        params = self.build_params(recipient, body)
        try:
            response = await asyncio.to_thread(self._ses.send_email, **params)
        except (BotoCoreError, ClientError) as exc:
            raise NotifyFailed(f"error sending status email to {recipient}: {exc}") from exc

        message_id = response.get("MessageId", "")
        logger.info("Sent %s email to %s (%s)", status.value, recipient, message_id)
        return message_id
