"""
Error taxonomy for the submission relay.

Every pipeline failure carries an ErrorKind so the orchestrator can branch on
the kind of failure rather than on message text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Which relay step failed."""

    MALFORMED_EVENT = "malformed_event"
    FETCH_FAILED = "fetch_failed"
    STORE_FAILED = "store_failed"
    NOTIFY_FAILED = "notify_failed"
    LOG_FAILED = "log_failed"


class RelayError(Exception):
    """Base class for classified relay failures."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedEvent(RelayError):
    """Trigger envelope or embedded payload is unusable."""

    kind = ErrorKind.MALFORMED_EVENT


class FetchFailed(RelayError):
    """Artifact could not be downloaded from the submission URL."""

    kind = ErrorKind.FETCH_FAILED


class StoreFailed(RelayError):
    """Artifact could not be uploaded to object storage."""

    kind = ErrorKind.STORE_FAILED


class NotifyFailed(RelayError):
    """Status email could not be sent."""

    kind = ErrorKind.NOTIFY_FAILED


class LogFailed(RelayError):
    """Outcome record could not be written."""

    kind = ErrorKind.LOG_FAILED


class CredentialsError(RuntimeError):
    """Service account key material could not be decoded.

    Not a RelayError: the orchestrator treats it as an unrecognized failure.
    """
