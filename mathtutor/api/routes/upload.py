"""Attachment upload route.

Files are forwarded to the agent runtime's file store so that the next
chat turn can mount them in the code interpreter by id.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from mathtutor.api.schemas import UploadResponse
from mathtutor.errors import MathTutorError
from mathtutor.services.attachments import (
    ACCEPTED_FILE_TYPES,
    file_extension,
    get_content_type,
    is_accepted_upload,
)
from mathtutor.services.sandbox_files import SandboxFileClient, get_sandbox_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])

MAX_UPLOAD_MB = 20
_MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile | None = File(default=None),
    sandbox: SandboxFileClient = Depends(get_sandbox_client),
) -> UploadResponse:
    """Upload one attachment.

    Raises:
        MathTutorError: E-1001/E-1002/E-1003 (HTTP 400) for a missing,
            unsupported or oversized file; E-2003 if the runtime rejects it.
    """
    if file is None:
        raise MathTutorError.from_code("E-1001", field="file")

    file_name = file.filename or "upload"
    if not is_accepted_upload(file_name):
        raise MathTutorError.from_code(
            "E-1002",
            extension=file_extension(file_name) or "(none)",
            allowed=ACCEPTED_FILE_TYPES,
        )

    data = await file.read()
    if len(data) > _MAX_UPLOAD_BYTES:
        raise MathTutorError.from_code("E-1003", limit_mb=MAX_UPLOAD_MB, size=len(data))

    content_type = file.content_type or get_content_type(file_name)
    uploaded = await sandbox.upload_file(file_name, data, content_type)
    return UploadResponse(
        file_id=uploaded.file_id,
        filename=uploaded.filename,
        bytes=uploaded.bytes,
    )
