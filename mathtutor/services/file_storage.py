"""Durable storage backends for files produced by the agent sandbox.

Sandbox containers are ephemeral, so every generated file the tutor links
to is copied into one of these backends and served back through
``/api/files/serve``. Storage paths are relative keys of the form
``{user_id}/{conversation_id}/{file_name}``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Protocol

from mathtutor.errors import StoragePathError
from mathtutor.utils.paths import get_files_dir

logger = logging.getLogger(__name__)

DEFAULT_S3_BUCKET = "agent-files"


class FileStorage(Protocol):
    """Storage contract used by the file bridge and the serve route."""

    def save(self, path: str, data: bytes, content_type: str) -> str:
        """Persist ``data`` at ``path`` (overwriting) and return the path."""

    def read(self, path: str) -> bytes | None:
        """Return stored bytes, or None when the path does not exist."""

    def exists(self, path: str) -> bool:
        """Return True when ``path`` is stored."""


def build_storage_path(user_id: str, conversation_id: str | None, file_name: str) -> str:
    """Build the storage key for a generated file."""
    safe_name = PurePosixPath(file_name).name or "file"
    return f"{user_id}/{conversation_id or 'default'}/{safe_name}"


def normalize_storage_path(path: str) -> str:
    """Normalize a client-supplied storage key.

    Raises:
        StoragePathError: If the path is empty or escapes the storage root.
    """
    parts = [p for p in path.replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        raise StoragePathError(path)
    return "/".join(parts)


class LocalFileStorage:
    """Filesystem-backed storage rooted at ``base_dir``."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def _resolve(self, path: str) -> Path:
        return self.base_dir / normalize_storage_path(path)

    def save(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Stored %d bytes at %s (%s)", len(data), target, content_type)
        return normalize_storage_path(path)

    def read(self, path: str) -> bytes | None:
        target = self._resolve(path)
        if not target.is_file():
            return None
        return target.read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()


class S3FileStorage:
    """S3-backed storage; works with S3-compatible endpoints via ``endpoint_url``."""

    def __init__(
        self,
        bucket: str = DEFAULT_S3_BUCKET,
        prefix: str = "",
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self._client = None

    def _get_client(self):
        if self._client is not None:
            return self._client
        import boto3

        self._client = boto3.client(
            "s3",
            region_name=self.region_name,
            endpoint_url=self.endpoint_url,
        )
        return self._client

    def _key(self, path: str) -> str:
        normalized = normalize_storage_path(path)
        if self.prefix:
            return f"{self.prefix}/{normalized}"
        return normalized

    def save(self, path: str, data: bytes, content_type: str) -> str:
        self._get_client().put_object(
            Bucket=self.bucket,
            Key=self._key(path),
            Body=data,
            ContentType=content_type,
        )
        return normalize_storage_path(path)

    def read(self, path: str) -> bytes | None:
        from botocore.exceptions import ClientError

        try:
            response = self._get_client().get_object(
                Bucket=self.bucket, Key=self._key(path)
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in {"NoSuchKey", "404", "NotFound"}:
                return None
            raise
        return response["Body"].read()

    def exists(self, path: str) -> bool:
        from botocore.exceptions import ClientError

        try:
            self._get_client().head_object(Bucket=self.bucket, Key=self._key(path))
            return True
        except ClientError:
            return False


def build_file_storage() -> FileStorage:
    """Build the storage backend from environment configuration."""
    backend = os.environ.get("FILE_STORAGE_BACKEND", "local").strip().lower()
    if backend in {"", "local"}:
        local_dir = os.environ.get("FILE_STORAGE_LOCAL_DIR", "").strip()
        return LocalFileStorage(local_dir or get_files_dir())
    if backend == "s3":
        bucket = os.environ.get("FILE_STORAGE_S3_BUCKET", "").strip() or DEFAULT_S3_BUCKET
        prefix = os.environ.get("FILE_STORAGE_S3_PREFIX", "")
        region = os.environ.get("FILE_STORAGE_S3_REGION", "").strip() or None
        endpoint = os.environ.get("FILE_STORAGE_S3_ENDPOINT", "").strip() or None
        return S3FileStorage(
            bucket=bucket,
            prefix=prefix,
            region_name=region,
            endpoint_url=endpoint,
        )
    raise RuntimeError(
        f"Unsupported FILE_STORAGE_BACKEND={backend!r}. Use 'local' or 's3'."
    )


_storage: FileStorage | None = None


def get_file_storage() -> FileStorage:
    """Return the process-wide storage backend (FastAPI dependency)."""
    global _storage
    if _storage is None:
        _storage = build_file_storage()
    return _storage
