"""Durable file routes.

- ``POST /api/files/download`` copies one sandbox container file into
  durable storage and returns its serve URL.
- ``GET /api/files/serve`` returns stored bytes. Images are served inline
  unless ``download=true``; everything else is an attachment.
"""

import logging
from pathlib import PurePosixPath
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from mathtutor.api.schemas import DownloadFileRequest, DownloadFileResponse
from mathtutor.errors import MathTutorError
from mathtutor.services.attachments import get_content_type, is_image_file
from mathtutor.services.file_reconciliation import transfer_container_file
from mathtutor.services.file_storage import (
    FileStorage,
    get_file_storage,
    normalize_storage_path,
)
from mathtutor.services.sandbox_files import SandboxFileClient, get_sandbox_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])

SERVE_CACHE_CONTROL = "private, max-age=300"


@router.post("/download", response_model=DownloadFileResponse)
async def download_file(
    payload: DownloadFileRequest,
    storage: FileStorage = Depends(get_file_storage),
    sandbox: SandboxFileClient = Depends(get_sandbox_client),
) -> DownloadFileResponse:
    """Copy a sandbox file to durable storage.

    Raises:
        MathTutorError: E-1001 (HTTP 400) for a missing parameter, E-3003
            if the transfer fails.
    """
    for field_name, value in (
        ("fileId", payload.file_id),
        ("containerId", payload.container_id),
        ("fileName", payload.file_name),
        ("userId", payload.user_id),
    ):
        if not value:
            raise MathTutorError.from_code("E-1001", field=field_name)

    stored = await transfer_container_file(
        sandbox,
        storage,
        payload.container_id,
        payload.file_id,
        payload.file_name,
        payload.user_id,
        payload.conversation_id,
    )
    return DownloadFileResponse(url=stored.url, path=stored.path, file_name=stored.file_name)


def _content_disposition(kind: str, filename: str) -> str:
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace('"', "")
    return f"{kind}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.get("/serve")
def serve_file(
    path: str | None = Query(default=None),
    filename: str | None = Query(default=None),
    download: bool = Query(default=False),
    storage: FileStorage = Depends(get_file_storage),
) -> Response:
    """Serve a stored file.

    Raises:
        StoragePathError: If the path escapes the storage root (HTTP 400).
        HTTPException: 404 if the file is not stored.
    """
    if not path:
        raise MathTutorError.from_code("E-1001", field="path")
    storage_path = normalize_storage_path(path)

    data = storage.read(storage_path)
    if data is None:
        logger.warning("Stored file not found: %s", storage_path)
        raise HTTPException(status_code=404, detail="File not found")

    name = filename or PurePosixPath(storage_path).name
    kind = "inline" if is_image_file(name) and not download else "attachment"
    return Response(
        content=data,
        media_type=get_content_type(name),
        headers={
            "Content-Disposition": _content_disposition(kind, name),
            "Cache-Control": SERVE_CACHE_CONTROL,
        },
    )
