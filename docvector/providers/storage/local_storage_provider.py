"""Filesystem-backed object storage.

Writes each upload to ``upload_dir`` under a collision-free name and
returns either ``<base_url>/<name>`` (when a public base URL is configured,
e.g. a static file server in front of the directory) or a ``file://`` URI.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from pathlib import Path

import structlog

from docvector.interfaces.object_storage_provider import IObjectStorageProvider
from docvector.utils.errors import ObjectStorageError

logger = structlog.get_logger(logger_name=__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalObjectStorageProvider(IObjectStorageProvider):
    """Stores uploads in a local directory."""

    def __init__(self, directory: str | Path, base_url: str = "") -> None:
        self._directory = Path(directory)
        self._base_url = base_url.rstrip("/")

    async def upload(self, data: bytes, name: str) -> str:
        safe_name = _UNSAFE_CHARS.sub("_", Path(name).name).strip("._") or "upload"
        stored_name = f"{uuid.uuid4().hex}-{safe_name}"
        target = self._directory / stored_name
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise ObjectStorageError(
                message=f"Could not write {target}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        url = f"{self._base_url}/{stored_name}" if self._base_url else target.resolve().as_uri()
        logger.info("upload_stored", path=str(target), bytes=len(data))
        return url

    async def delete(self, url: str) -> bool:
        # Stored names never contain a slash, so the last URL segment is the file.
        target = self._directory / url.rsplit("/", 1)[-1]
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("upload_delete_failed", path=str(target), error=str(exc))
            return False
        logger.info("upload_deleted", path=str(target))
        return True

    def get_provider_name(self) -> str:
        return "local_storage"

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
