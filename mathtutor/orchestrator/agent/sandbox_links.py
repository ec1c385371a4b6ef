"""Parsing and rewriting of sandbox file links in agent output.

The code interpreter refers to the files it writes with several link
conventions that changed over time::

    [tree.png](sandbox://mnt/data/tree.png)
    [tree.png](sandbox:/mnt/data/tree.png)
    ![tree](sandbox:/mnt/data/tree.png)
    [tree.png](/mnt/data/tree.png)
    sandbox:/mnt/data/tree.png

Every form is parsed into one ``SandboxLink`` whose ``path`` is normalized
to a single leading slash. Detection and rewriting both work on that
representation.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import unquote

CONTAINER_ID_PREFIX = "cntr_"

SANDBOX_SCHEME = "sandbox:"
SANDBOX_DATA_DIR = "/mnt/data/"

_MARKDOWN_LINK_RE = re.compile(
    r"(?P<bang>!?)\[(?P<label>[^\]\n]*)\]\(\s*<?"
    r"(?P<target>(?:sandbox:/{0,2}|/mnt/data/)[^)\s>]+)"
    r">?(?:\s+\"[^\"]*\")?\s*\)"
)

_BARE_URL_RE = re.compile(r"sandbox:/{0,2}[^\s()\[\]<>\"'`]+")

_TRAILING_PUNCTUATION = ".,;:!?"


def is_valid_container_id(value: object) -> bool:
    """Return True for a non-empty string carrying the container prefix."""
    return isinstance(value, str) and value.startswith(CONTAINER_ID_PREFIX)


def normalize_sandbox_path(target: str) -> str:
    """Normalize a sandbox URL or bare path to ``/single/leading/slash`` form."""
    path = target
    if path.startswith(SANDBOX_SCHEME):
        path = path[len(SANDBOX_SCHEME):]
    return "/" + unquote(path).lstrip("/")


def _scheme_of(target: str) -> str:
    if target.startswith("sandbox://"):
        return "sandbox://"
    if target.startswith("sandbox:/"):
        return "sandbox:/"
    if target.startswith(SANDBOX_SCHEME):
        return SANDBOX_SCHEME
    return "path"


@dataclass(frozen=True)
class SandboxLink:
    """One occurrence of a sandbox file reference in a message.

    Attributes:
        scheme: 'sandbox://', 'sandbox:/', 'sandbox:' or 'path' (bare /mnt/data target).
        path: Normalized sandbox path.
        raw: The URL or path exactly as written.
        markdown: Full Markdown link text, or None for a bare URL.
        label: Link label, or None for a bare URL.
        is_image: True for ``![...](...)`` links.
    """

    scheme: str
    path: str
    raw: str
    markdown: str | None = None
    label: str | None = None
    is_image: bool = False

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.path).name


def parse_sandbox_links(text: str) -> list[SandboxLink]:
    """Return every sandbox link in ``text`` in order of appearance."""
    if not text:
        return []

    found: list[tuple[int, SandboxLink]] = []
    covered: list[tuple[int, int]] = []

    for match in _MARKDOWN_LINK_RE.finditer(text):
        target = match.group("target")
        found.append((
            match.start(),
            SandboxLink(
                scheme=_scheme_of(target),
                path=normalize_sandbox_path(target),
                raw=target,
                markdown=match.group(0),
                label=match.group("label"),
                is_image=bool(match.group("bang")),
            ),
        ))
        covered.append(match.span())

    for match in _BARE_URL_RE.finditer(text):
        start = match.start()
        if any(lo <= start < hi for lo, hi in covered):
            continue
        raw = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        if len(raw) <= len(SANDBOX_SCHEME):
            continue
        found.append((
            start,
            SandboxLink(
                scheme=_scheme_of(raw),
                path=normalize_sandbox_path(raw),
                raw=raw,
            ),
        ))

    found.sort(key=lambda item: item[0])
    return [link for _, link in found]


def unique_sandbox_paths(text: str) -> list[str]:
    """Return the distinct normalized paths referenced in ``text``."""
    seen: dict[str, None] = {}
    for link in parse_sandbox_links(text):
        seen.setdefault(link.path, None)
    return list(seen)


def replace_sandbox_links(text: str, path: str, url: str) -> tuple[str, int]:
    """Point every link to ``path`` at ``url``.

    Markdown links keep their label and image marker (an empty label becomes
    the file name). Bare URLs are replaced in place.

    Returns:
        The rewritten text and the number of replacements made.
    """
    path = normalize_sandbox_path(path)
    count = 0

    def _markdown(match: re.Match) -> str:
        nonlocal count
        if normalize_sandbox_path(match.group("target")) != path:
            return match.group(0)
        count += 1
        label = match.group("label") or PurePosixPath(path).name
        return f"{match.group('bang')}[{label}]({url})"

    text = _MARKDOWN_LINK_RE.sub(_markdown, text)

    def _bare(match: re.Match) -> str:
        nonlocal count
        raw = match.group(0)
        stripped = raw.rstrip(_TRAILING_PUNCTUATION)
        if len(stripped) <= len(SANDBOX_SCHEME) or normalize_sandbox_path(stripped) != path:
            return raw
        count += 1
        return url + raw[len(stripped):]

    text = _BARE_URL_RE.sub(_bare, text)
    return text, count
