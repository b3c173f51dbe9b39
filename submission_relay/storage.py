"""
Object storage for relayed artifacts (Google Cloud Storage).

Objects are keyed ``assignments/{assignment_id}/{submitter}/{artifact_name}.zip``.
The storage client is built lazily from the base64 service account key, so a
broken key surfaces as CredentialsError on the first upload rather than as an
upload failure.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Optional

from google.cloud import storage
from google.oauth2 import service_account

from submission_relay.config import Settings
from submission_relay.errors import CredentialsError, StoreFailed
from submission_relay.fetch import ARTIFACT_SUFFIX

logger = logging.getLogger(__name__)

DESTINATION_FOLDER = "assignments"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


def object_key(assignment_id: str, submitter: str, artifact_name: str) -> str:
    return f"{DESTINATION_FOLDER}/{assignment_id}/{submitter}/{artifact_name}{ARTIFACT_SUFFIX}"


def decode_service_account(access_key: str, service_email: str) -> dict[str, Any]:
    """
    Decode the base64 key blob into service account info.

    The configured service email wins over any client_email in the blob.

    Raises:
        CredentialsError: blob is not base64 JSON or has no private_key.
    """
    try:
        info = json.loads(base64.b64decode(access_key, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CredentialsError(f"ACCESS_KEY is not a base64-encoded JSON key: {exc}") from exc
    if not isinstance(info, dict) or not info.get("private_key"):
        raise CredentialsError("ACCESS_KEY does not contain a private_key")

    info["client_email"] = service_email
    info.setdefault("token_uri", DEFAULT_TOKEN_URI)
    return info


class ArtifactStore:
    """Uploads staged artifacts to a GCS bucket."""

    def __init__(
        self,
        bucket_name: str,
        *,
        project_id: str,
        service_email: str,
        access_key: str,
        timeout: float = 120.0,
        client: Optional[storage.Client] = None,
    ):
        self.bucket_name = bucket_name
        self.project_id = project_id
        self._service_email = service_email
        self._access_key = access_key
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArtifactStore":
        return cls(
            settings.bucket_name,
            project_id=settings.gcp_project_id,
            service_email=settings.service_email,
            access_key=settings.access_key,
            timeout=settings.sdk_timeout,
        )

    def _get_client(self) -> storage.Client:
        if self._client is None:
            info = decode_service_account(self._access_key, self._service_email)
            try:
                credentials = service_account.Credentials.from_service_account_info(info)
            except ValueError as exc:
                raise CredentialsError(f"invalid service account key: {exc}") from exc
            self._client = storage.Client(project=self.project_id, credentials=credentials)
        return self._client

    def location(self, assignment_id: str, submitter: str, artifact_name: str) -> str:
        return f"{self.bucket_name}/{object_key(assignment_id, submitter, artifact_name)}"

    def _upload_blocking(self, client: storage.Client, path: Path, key: str) -> None:
        blob = client.bucket(self.bucket_name).blob(key)
        blob.upload_from_filename(str(path), timeout=self._timeout)

    async def upload(
        self,
        path: Path,
        submitter: str,
        assignment_id: str,
        artifact_name: str,
    ) -> str:
        """
        Upload the staged artifact and return its StoredLocation.

        Raises:
            CredentialsError: key material is unusable (not a StoreFailed).
            StoreFailed: any error from the upload itself.
        """
        client = self._get_client()
        key = object_key(assignment_id, submitter, artifact_name)
        try:
            await asyncio.to_thread(self._upload_blocking, client, path, key)
        except Exception as exc:
            logger.error("Error uploading %s to gs://%s/%s: %s", path.name, self.bucket_name, key, exc)
            raise StoreFailed(f"error uploading to bucket {self.bucket_name}") from exc

        logger.info("File uploaded to gs://%s/%s", self.bucket_name, key)
        return self.location(assignment_id, submitter, artifact_name)
