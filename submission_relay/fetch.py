"""Artifact download into a per-invocation staging directory."""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import httpx

from submission_relay.errors import FetchFailed

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".zip"


@contextmanager
def staging_area(root: str | Path, artifact_name: str) -> Iterator[Path]:
    """Yield ``<fresh dir>/<artifact_name>.zip`` and remove the directory on exit.

    Each invocation gets its own directory, so concurrent runs for the same
    artifact name never share a staging file. Raises ValueError if the name
    would place the file anywhere but directly inside that directory.
    """
    base = Path(root)
    base.mkdir(parents=True, exist_ok=True)
    workdir = Path(tempfile.mkdtemp(prefix="relay-", dir=base))
    try:
        staged = workdir / f"{artifact_name}{ARTIFACT_SUFFIX}"
        if staged.resolve().parent != workdir.resolve():
            raise ValueError(f"artifact name {artifact_name!r} escapes the staging directory")
        yield staged
    finally:
        shutil.rmtree(workdir, ignore_errors=True)


async def fetch_artifact(
    client: httpx.AsyncClient,
    url: str,
    destination: Path,
    *,
    max_bytes: int,
) -> int:
    """Stream ``url`` into ``destination`` and return the number of bytes written.

    Raises:
        FetchFailed: transport error, non-2xx status, body larger than
            ``max_bytes`` or local write failure. A partial file is removed.
    """
    written = 0
    try:
        async with client.stream("GET", url) as response:
            if not response.is_success:
                raise FetchFailed(f"upstream status {response.status_code} for {url}")
            with destination.open("wb") as fh:
                async for chunk in response.aiter_bytes():
                    written += len(chunk)
                    if written > max_bytes:
                        raise FetchFailed(f"artifact exceeds {max_bytes} bytes")
                    fh.write(chunk)
    except FetchFailed:
        destination.unlink(missing_ok=True)
        raise
    except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
        destination.unlink(missing_ok=True)
        logger.error("Error downloading %s: %s", url, exc)
        raise FetchFailed(f"error downloading submission file from {url}") from exc

    logger.info("Artifact downloaded from %s (%d bytes) to %s", url, written, destination)
    return written
