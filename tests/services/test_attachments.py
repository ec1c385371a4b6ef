"""Tests for attachment helpers."""

import pytest

from mathtutor.services.attachments import (
    DEFAULT_CONVERSATION_TITLE,
    MAX_TITLE_LENGTH,
    download_url,
    format_attachment_markdown,
    get_content_type,
    is_accepted_upload,
    is_image_file,
    title_from_message,
)


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("tree.png", "image/png"),
        ("PHOTO.JPG", "image/jpeg"),
        ("notes.txt", "text/plain"),
        ("report.pdf", "application/pdf"),
        ("sheet.xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
        ("archive.tar.gz", "application/octet-stream"),
        ("README", "application/octet-stream"),
    ],
)
def test_get_content_type(filename, expected):
    assert get_content_type(filename) == expected


def test_is_image_file():
    assert is_image_file("plot.svg")
    assert is_image_file("tree.jpeg")
    assert not is_image_file("data.csv")


@pytest.mark.parametrize(
    "filename,accepted",
    [
        ("hw.pdf", True),
        ("hw.DOCX", True),
        ("scan.jpeg", True),
        ("data.csv", False),
        ("noext", False),
    ],
)
def test_is_accepted_upload(filename, accepted):
    assert is_accepted_upload(filename) is accepted


def test_download_url_appends_query_flag():
    assert download_url("/api/files/serve?path=a") == "/api/files/serve?path=a&download=true"
    assert download_url("/files/a.png") == "/files/a.png?download=true"


class TestFormatAttachmentMarkdown:

    def test_image_gets_preview_and_download_link(self):
        md = format_attachment_markdown("tree.png", "/api/files/serve?path=p")

        assert md == (
            "\n\n![tree.png](/api/files/serve?path=p)\n\n"
            "[Download tree.png](/api/files/serve?path=p&download=true)\n"
        )

    def test_document_gets_single_link(self):
        md = format_attachment_markdown("sol.pdf", "/u")

        assert md == "\n\n[📄 sol.pdf](/u)\n"


class TestTitleFromMessage:

    def test_short_message_used_verbatim(self):
        assert title_from_message("What is 2+2?") == "What is 2+2?"

    def test_whitespace_collapsed(self):
        assert title_from_message("  Solve\n  x^2 = 4 ") == "Solve x^2 = 4"

    def test_long_message_truncated(self):
        title = title_from_message("a" * 200)

        assert len(title) == MAX_TITLE_LENGTH
        assert title.endswith("...")

    def test_blank_message_gives_default(self):
        assert title_from_message("   ") == DEFAULT_CONVERSATION_TITLE
