"""
Submission relay orchestration.

One run per trigger event, strictly sequential:

    fetch -> store -> notify(success) -> record("Upload successful")

Failure handling is decided once, at the boundary around fetch and store:

- FETCH_FAILED / STORE_FAILED: notify(failed) with a reason, record("Upload Failed")
- anything else: operator log line only; no email and no record (silent drop)

Errors from notify or record are not handled. They are reported to the
optional fault hook and re-raised so the run ends faulted.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from submission_relay.errors import ErrorKind, FetchFailed, LogFailed, NotifyFailed, RelayError
from submission_relay.fetch import fetch_artifact, staging_area
from submission_relay.intake import SubmissionEvent, parse_event
from submission_relay.notify import NotificationStatus, StatusNotifier
from submission_relay.storage import ArtifactStore
from submission_relay.tracking import STATUS_FAILED, STATUS_SUCCESS, OutcomeLogger, OutcomeRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILURE_REASONS = {
    ErrorKind.FETCH_FAILED: "invalid submission url",
    ErrorKind.STORE_FAILED: "store upload failed",
}

FaultHook = Callable[[SubmissionEvent, BaseException, Optional[str]], Awaitable[None]]


class RelayOutcome(str, Enum):
    UPLOADED = "uploaded"  # success email sent, success recorded
    REJECTED = "rejected"  # failure email sent, failure recorded
    DROPPED = "dropped"  # unrecognized error; nothing sent or recorded


@dataclass
class RelayResult:
    outcome: RelayOutcome
    artifact_name: str
    stored_location: Optional[str] = None
    record: Optional[OutcomeRecord] = None
    error_kind: Optional[ErrorKind] = None


async def _bounded(
    awaitable: Awaitable[T],
    timeout: float,
    error_cls: type[RelayError],
    message: str,
) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise error_cls(f"{message} timed out after {timeout} seconds") from exc


class SubmissionRelay:
    """Runs the relay pipeline against injected collaborators."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        store: ArtifactStore,
        notifier: StatusNotifier,
        outcome_logger: OutcomeLogger,
        *,
        staging_dir: str | Path = "/tmp",
        fetch_deadline: float = 300.0,
        fetch_max_bytes: int = 512 * 1024 * 1024,
        sdk_timeout: float = 120.0,
        on_fault: Optional[FaultHook] = None,
    ):
        self.http_client = http_client
        self.store = store
        self.notifier = notifier
        self.outcome_logger = outcome_logger
        self.staging_dir = Path(staging_dir)
        self.fetch_deadline = fetch_deadline
        self.fetch_max_bytes = fetch_max_bytes
        self.sdk_timeout = sdk_timeout
        self.on_fault = on_fault

    async def handle(self, raw: Any) -> RelayResult:
        """Parse a trigger envelope and run it. MalformedEvent propagates."""
        event = parse_event(raw)
        return await self.run(event)

    async def run(self, event: SubmissionEvent) -> RelayResult:
        try:
            location = await self._transfer(event)
        except Exception as exc:
            kind = exc.kind if isinstance(exc, RelayError) else None
            if kind not in FAILURE_REASONS:
                return self._drop(event, exc)
            logger.warning(
                "Relay of %s for %s failed (%s): %s",
                event.artifact_name,
                event.submitter_identity,
                kind.value,
                exc,
            )
            record = await self._report(
                event,
                NotificationStatus.FAILED,
                STATUS_FAILED,
                reason=FAILURE_REASONS[kind],
            )
            return RelayResult(
                RelayOutcome.REJECTED,
                event.artifact_name,
                record=record,
                error_kind=kind,
            )

        record = await self._report(
            event,
            NotificationStatus.SUCCESS,
            STATUS_SUCCESS,
            location=location,
        )
        return RelayResult(
            RelayOutcome.UPLOADED,
            event.artifact_name,
            stored_location=location,
            record=record,
        )

    async def _transfer(self, event: SubmissionEvent) -> str:
        with staging_area(self.staging_dir, event.artifact_name) as staged:
            await _bounded(
                fetch_artifact(
                    self.http_client,
                    event.source_url,
                    staged,
                    max_bytes=self.fetch_max_bytes,
                ),
                self.fetch_deadline,
                FetchFailed,
                f"download of {event.source_url}",
            )
            # No deadline here: the upload thread always runs to completion,
            # bounded by the store's request timeout.
            return await self.store.upload(
                staged,
                event.submitter_identity,
                event.assignment_id,
                event.artifact_name,
            )

    def _drop(self, event: SubmissionEvent, exc: BaseException) -> RelayResult:
        logger.error(
            "Unrecognized error relaying %s for %s; dropped without notification",
            event.artifact_name,
            event.submitter_identity,
            exc_info=exc,
        )
        return RelayResult(RelayOutcome.DROPPED, event.artifact_name)

    async def _report(
        self,
        event: SubmissionEvent,
        status: NotificationStatus,
        record_status: str,
        *,
        location: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> OutcomeRecord:
        try:
            await _bounded(
                self.notifier.send(
                    event.submitter_identity,
                    status,
                    event.details,
                    location=location,
                    reason=reason,
                ),
                self.sdk_timeout,
                NotifyFailed,
                "status email",
            )
            return await _bounded(
                self.outcome_logger.record(
                    event.submitter_identity,
                    record_status,
                    event.artifact_name,
                    event.assignment_id,
                ),
                self.sdk_timeout,
                LogFailed,
                "outcome record",
            )
        except Exception as exc:
            logger.critical(
                "Relay of %s for %s faulted after the error boundary: %s",
                event.artifact_name,
                event.submitter_identity,
                exc,
            )
            await self._alert(event, exc, location)
            raise

    async def _alert(self, event: SubmissionEvent, exc: BaseException, location: Optional[str]) -> None:
        if self.on_fault is None:
            return
        try:
            await self.on_fault(event, exc, location)
        except Exception as alert_exc:
            logger.error("Fault alert for %s could not be delivered: %s", event.artifact_name, alert_exc)
