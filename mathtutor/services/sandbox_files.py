"""Bridge to the agent runtime's file APIs.

Wraps the OpenAI client for the three file operations the tutor needs:
uploading user attachments to the runtime file store, listing the files a
code-interpreter container produced, and downloading one of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath

from openai import AsyncOpenAI

from mathtutor.errors import MathTutorError

logger = logging.getLogger(__name__)

UPLOAD_PURPOSE = "assistants"


@dataclass(frozen=True)
class UploadedFile:
    """A user attachment stored in the runtime file store."""

    file_id: str
    filename: str
    bytes: int


@dataclass(frozen=True)
class ContainerFile:
    """A file inside a sandbox container."""

    id: str
    path: str

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name


class SandboxFileClient:
    """Thin async wrapper over the runtime's file and container endpoints.

    Args:
        client: Optional preconfigured AsyncOpenAI client. Defaults to one
            built from ``OPENAI_API_KEY``.
    """

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI()
        return self._client

    async def upload_file(
        self, filename: str, data: bytes, content_type: str
    ) -> UploadedFile:
        """Upload a user attachment for use by the code interpreter."""
        try:
            created = await self.client.files.create(
                file=(filename, data, content_type),
                purpose=UPLOAD_PURPOSE,
            )
        except Exception as e:
            logger.error("Upload of %s to agent runtime failed: %s", filename, e)
            raise MathTutorError.from_code(
                "E-2003", file_name=filename, reason=str(e)
            ) from e
        logger.info("Uploaded %s (%d bytes) as %s", filename, len(data), created.id)
        return UploadedFile(
            file_id=created.id,
            filename=getattr(created, "filename", None) or filename,
            bytes=getattr(created, "bytes", None) or len(data),
        )

    async def list_container_files(self, container_id: str) -> list[ContainerFile]:
        """List every file in a sandbox container."""
        files: list[ContainerFile] = []
        try:
            async for item in self.client.containers.files.list(container_id):
                files.append(ContainerFile(id=item.id, path=item.path))
        except Exception as e:
            raise MathTutorError.from_code(
                "E-3004", container_id=container_id, reason=str(e)
            ) from e
        logger.debug(
            "Container %s holds %d file(s): %s",
            container_id,
            len(files),
            [f.path for f in files],
        )
        return files

    async def download_container_file(self, container_id: str, file_id: str) -> bytes:
        """Download the bytes of one container file."""
        response = await self.client.containers.files.content.retrieve(
            file_id, container_id=container_id
        )
        return response.content


_default_client = SandboxFileClient()


def get_sandbox_client() -> SandboxFileClient:
    """Return the process-wide sandbox client (FastAPI dependency)."""
    return _default_client
