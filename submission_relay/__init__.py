"""submission_relay package.

Relays queued assignment submissions: downloads the artifact, stores it in
object storage, emails the submitter and records the outcome.

Keep top-level import lightweight; cloud SDK clients are only built by
submission_relay.worker.
"""

from .errors import (
    CredentialsError,
    ErrorKind,
    FetchFailed,
    LogFailed,
    MalformedEvent,
    NotifyFailed,
    RelayError,
    StoreFailed,
)

__all__ = [
    "ErrorKind",
    "RelayError",
    "MalformedEvent",
    "FetchFailed",
    "StoreFailed",
    "NotifyFailed",
    "LogFailed",
    "CredentialsError",
]
