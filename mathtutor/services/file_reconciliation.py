"""Reconciliation of sandbox file links with durable storage.

After a turn finishes, the files the agent wrote inside its ephemeral
sandbox container are matched against the container listing, copied into
durable storage and the assistant message is rewritten to point at
``/api/files/serve`` URLs. Every step degrades gracefully: a file that
cannot be resolved keeps its original sandbox link and the turn completes.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from urllib.parse import quote

from mathtutor.errors import MathTutorError
from mathtutor.orchestrator.agent.sandbox_links import (
    is_valid_container_id,
    replace_sandbox_links,
    unique_sandbox_paths,
)
from mathtutor.orchestrator.models.events import FileReference
from mathtutor.services.attachments import (
    format_attachment_markdown,
    get_content_type,
    image_preview_markdown,
    is_image_file,
)
from mathtutor.services.file_storage import FileStorage, build_storage_path
from mathtutor.services.sandbox_files import ContainerFile, SandboxFileClient

logger = logging.getLogger(__name__)

SERVE_ROUTE = "/api/files/serve"


@dataclass(frozen=True)
class StoredFile:
    """A sandbox file copied to durable storage."""

    url: str
    path: str
    file_name: str


@dataclass(frozen=True)
class ResolvedFile:
    """A file reference paired with its durable copy."""

    reference: FileReference
    stored: StoredFile

    @property
    def is_image(self) -> bool:
        return is_image_file(self.stored.file_name)


def get_public_url() -> str:
    return os.environ.get("MATHTUTOR_PUBLIC_URL", "").strip().rstrip("/")


def build_serve_url(storage_path: str, file_name: str, public_url: str | None = None) -> str:
    """URL of the serve route for a stored file."""
    base = get_public_url() if public_url is None else public_url.rstrip("/")
    return (
        f"{base}{SERVE_ROUTE}?path={quote(storage_path, safe='')}"
        f"&filename={quote(file_name, safe='')}"
    )


def match_container_file(
    ref: FileReference, files: list[ContainerFile]
) -> ContainerFile | None:
    """Find the container file for ``ref``.

    Tried in order: exact path, path with or without the leading slash,
    file name, then a suffix match on the declared file name.
    """
    for f in files:
        if f.path == ref.path:
            return f
    stripped = ref.path.lstrip("/")
    for f in files:
        if f.path.lstrip("/") == stripped:
            return f
    for f in files:
        if f.name == ref.file_name:
            return f
    for f in files:
        if ref.file_name and f.path.endswith(ref.file_name):
            return f
    return None


async def transfer_container_file(
    sandbox: SandboxFileClient,
    storage: FileStorage,
    container_id: str,
    file_id: str,
    file_name: str,
    user_id: str,
    conversation_id: str | None,
) -> StoredFile:
    """Download one container file and store it durably.

    Raises:
        MathTutorError: E-3003 if the download or upload fails.
    """
    storage_path = build_storage_path(user_id, conversation_id, file_name)
    try:
        data = await sandbox.download_container_file(container_id, file_id)
        stored_path = storage.save(storage_path, data, get_content_type(file_name))
    except Exception as e:
        raise MathTutorError.from_code(
            "E-3003",
            file_name=file_name,
            reason=str(e),
            details={"container_id": container_id, "file_id": file_id},
        ) from e
    logger.info("Stored %s from %s at %s (%d bytes)", file_name, container_id, stored_path, len(data))
    return StoredFile(
        url=build_serve_url(stored_path, file_name),
        path=stored_path,
        file_name=file_name,
    )


async def resolve_files(
    files: list[FileReference],
    container_id: str | None,
    user_id: str,
    conversation_id: str | None,
    sandbox: SandboxFileClient,
    storage: FileStorage,
) -> list[ResolvedFile]:
    """Copy every resolvable reference into durable storage.

    Files are processed one at a time; a failure on one is logged and the
    rest continue.
    """
    if not files:
        return []
    if not is_valid_container_id(container_id):
        error = MathTutorError.from_code("E-3001", container_id=container_id)
        logger.warning("Skipping %d sandbox file(s). %s", len(files), error)
        return []

    try:
        listing = await sandbox.list_container_files(container_id)
    except MathTutorError as e:
        logger.error("%s", e)
        return []

    resolved: list[ResolvedFile] = []
    for ref in files:
        match = match_container_file(ref, listing)
        if match is None:
            error = MathTutorError.from_code(
                "E-3002", path=ref.path, container_id=container_id
            )
            logger.warning("%s Available: %s", error, [f.path for f in listing])
            continue
        ref.id = match.id
        ref.container_id = container_id
        try:
            stored = await transfer_container_file(
                sandbox,
                storage,
                container_id,
                match.id,
                match.name or ref.file_name,
                user_id,
                conversation_id,
            )
        except MathTutorError as e:
            logger.error("%s", e)
            continue
        resolved.append(ResolvedFile(reference=ref, stored=stored))
    return resolved


def _has_inline_preview(message: str, url: str) -> bool:
    return re.search(r"!\[[^\]]*\]\(" + re.escape(url) + r"\)", message) is not None


def rewrite_message(message: str, resolved: list[ResolvedFile]) -> str:
    """Point sandbox links at durable URLs.

    Links are replaced in place. A file whose link is absent from the
    message is appended as an attachment unless its URL is already there.
    Images always end up with an inline preview. Running this twice with
    the same files leaves the message unchanged.
    """
    for item in resolved:
        url = item.stored.url
        name = item.stored.file_name
        message, count = replace_sandbox_links(message, item.reference.path, url)
        if count == 0 and url not in message:
            logger.info("No link to %s in message; appending attachment", item.reference.path)
            message += format_attachment_markdown(name, url)
        elif item.is_image and not _has_inline_preview(message, url):
            message += image_preview_markdown(name, url)
    return message


def rewrite_segments(segments: list[str], resolved: list[ResolvedFile]) -> list[str]:
    """Rewrite each visible segment of a multi-agent turn.

    A file is rewritten in every segment that links it. Files linked
    nowhere are appended to the last segment only.
    """
    if not segments:
        return []
    linked = [set(unique_sandbox_paths(segment)) for segment in segments]
    linked_anywhere = set().union(*linked)
    rewritten = []
    for index, segment in enumerate(segments):
        is_last = index == len(segments) - 1
        applicable = [
            item
            for item in resolved
            if item.reference.path in linked[index]
            or (is_last and item.reference.path not in linked_anywhere)
        ]
        rewritten.append(rewrite_message(segment, applicable))
    return rewritten
