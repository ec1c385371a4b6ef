"""Attachment helpers: content types and Markdown snippets for stored files."""

from pathlib import PurePosixPath

ACCEPTED_FILE_TYPES = ".pdf,.doc,.docx,.txt,.png,.jpg,.jpeg"

MAX_TITLE_LENGTH = 60

DEFAULT_CONVERSATION_TITLE = "New Conversation"

_MIME_TYPES: dict[str, str] = {
    # Images
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    # Documents
    "pdf": "application/pdf",
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "json": "application/json",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Code
    "py": "text/x-python",
    "js": "text/javascript",
    "ts": "text/typescript",
    "html": "text/html",
    "css": "text/css",
}


def file_extension(filename: str) -> str:
    """Return the lowercase extension without the dot ('' if none)."""
    suffix = PurePosixPath(filename).suffix
    return suffix[1:].lower() if suffix else ""


def get_content_type(filename: str) -> str:
    """Map a filename to its MIME type, defaulting to octet-stream."""
    return _MIME_TYPES.get(file_extension(filename), "application/octet-stream")


def is_image_file(filename: str) -> bool:
    """Return True when the filename's content type is an image type."""
    return get_content_type(filename).startswith("image/")


def is_accepted_upload(filename: str) -> bool:
    """Return True when the extension is in ACCEPTED_FILE_TYPES."""
    ext = file_extension(filename)
    return bool(ext) and f".{ext}" in ACCEPTED_FILE_TYPES.split(",")


def download_url(url: str) -> str:
    """Append ``download=true`` to a serve URL."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}download=true"


def image_preview_markdown(filename: str, url: str) -> str:
    """Inline image preview snippet."""
    return f"\n\n![{filename}]({url})\n"


def format_attachment_markdown(filename: str, url: str) -> str:
    """Format Markdown for a stored file link.

    Images render inline and get a separate download link; every other
    file type gets a single link.
    """
    if is_image_file(filename):
        return (
            f"\n\n![{filename}]({url})\n\n"
            f"[Download {filename}]({download_url(url)})\n"
        )
    return f"\n\n[📄 {filename}]({url})\n"


def title_from_message(message: str) -> str:
    """Derive a conversation title from the first user message."""
    text = " ".join(message.split())
    if not text:
        return DEFAULT_CONVERSATION_TITLE
    if len(text) <= MAX_TITLE_LENGTH:
        return text
    return text[: MAX_TITLE_LENGTH - 3].rstrip() + "..."
