"""Adapter from agent runtime stream events to MathTutor stream events.

The agents runtime emits a loosely typed event stream whose shapes changed
across SDK versions. This module classifies each raw event at the boundary
into one of three kinds (text delta, message item created, unrecognized),
rebuilds the visible message, mines the run for sandbox file references and
the sandbox container id, and terminates with exactly one ``DoneEvent`` or
``ErrorEvent``.

Example:
    result = Runner.run_streamed(agent, history)
    async for event in adapt_agent_stream(result, extract_tutor_message):
        ...
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from mathtutor.orchestrator.agent.sandbox_links import (
    SANDBOX_SCHEME,
    is_valid_container_id,
    parse_sandbox_links,
)
from mathtutor.orchestrator.models.events import (
    DoneEvent,
    ErrorEvent,
    FileReference,
    StreamEvent,
    TextEvent,
)

logger = logging.getLogger(__name__)

RAW_EVENT_TYPES = frozenset({"raw_response_event", "raw_model_stream_event"})
TEXT_DELTA_TYPES = frozenset({
    "response.output_text.delta",
    "output_text_delta",
    "text_stream",
})
TEXT_FIELDS = ("delta", "text", "output")
OUTPUT_ITEM_TYPES = frozenset({"response.output_item.added", "response.output_item.done"})
TEXT_BLOCK_TYPES = frozenset({"output_text", "text"})
CODE_INTERPRETER_CALL = "code_interpreter_call"
FILE_CITATION = "container_file_citation"


def _field(obj: Any, *names: str) -> Any:
    """Return the first present attribute or mapping key of ``obj``."""
    if obj is None:
        return None
    for name in names:
        if isinstance(obj, dict):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Boundary classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawTextDelta:
    """An incremental text fragment."""

    text: str
    kind: Literal["text_delta"] = "text_delta"


@dataclass(frozen=True)
class RawItemCreated:
    """A finalized message item with its text blocks."""

    item: Any
    texts: list[str] = field(default_factory=list)
    kind: Literal["item_created"] = "item_created"


@dataclass(frozen=True)
class Unrecognized:
    """Any other runtime event; ignored by the adapter."""

    event_type: str = ""
    kind: Literal["unrecognized"] = "unrecognized"


RawEvent = Union[RawTextDelta, RawItemCreated, Unrecognized]


def message_item_texts(item: Any) -> list[str]:
    """Extract text blocks from a message output item."""
    raw_item = _field(item, "raw_item", "rawItem") or item
    content = _field(raw_item, "content")
    if not isinstance(content, (list, tuple)):
        return []
    texts = []
    for block in content:
        if _field(block, "type") in TEXT_BLOCK_TYPES:
            text = _field(block, "text")
            if isinstance(text, str) and text:
                texts.append(text)
    return texts


def classify_event(event: Any) -> RawEvent:
    """Classify one raw runtime event."""
    event_type = _field(event, "type") or ""

    if event_type in RAW_EVENT_TYPES:
        data = _field(event, "data")
        if _field(data, "type") in TEXT_DELTA_TYPES:
            for name in TEXT_FIELDS:
                text = _field(data, name)
                if isinstance(text, str) and text:
                    return RawTextDelta(text=text)
        return Unrecognized(event_type=event_type)

    if event_type == "run_item_stream_event":
        item = _field(event, "item")
        if _field(event, "name") == "message_output_created" and item is not None:
            return RawItemCreated(item=item, texts=message_item_texts(item))

    return Unrecognized(event_type=event_type)


def observed_items(event: Any) -> list[Any]:
    """Return run items carried by ``event`` that may hold container metadata."""
    event_type = _field(event, "type")
    if event_type == "run_item_stream_event":
        item = _field(event, "item")
        return [item] if item is not None else []
    if event_type in RAW_EVENT_TYPES:
        data = _field(event, "data")
        if _field(data, "type") in OUTPUT_ITEM_TYPES:
            item = _field(data, "item")
            return [item] if item is not None else []
    return []


# ---------------------------------------------------------------------------
# Structured-output unwrapping
# ---------------------------------------------------------------------------


class StructuredTextBuffer:
    """Hide the JSON envelope of structured output from the text channel.

    With a structured output type the runtime streams the raw JSON object
    (``{"message": "...", ...}``). Fragments that begin a JSON object are
    buffered until the buffer parses; then only the ``message`` value is
    released. Other fragments pass straight through.
    """

    def __init__(self, field_name: str = "message") -> None:
        self._field = field_name
        self._buffer = ""

    @property
    def pending(self) -> bool:
        return bool(self._buffer)

    def feed(self, fragment: str) -> str:
        """Consume a fragment and return the text that may be shown now."""
        if not self._buffer and not fragment.lstrip().startswith("{"):
            return fragment

        self._buffer += fragment
        try:
            parsed = json.loads(self._buffer)
        except ValueError:
            return ""

        raw, self._buffer = self._buffer, ""
        if isinstance(parsed, dict):
            value = parsed.get(self._field)
            if isinstance(value, str):
                return value
        return raw

    def flush(self) -> str:
        """Release whatever never became parseable."""
        raw, self._buffer = self._buffer, ""
        return raw


def unwrap_structured_text(text: str, field_name: str = "message") -> str:
    """Unwrap a complete text block the same way streamed fragments are."""
    buffer = StructuredTextBuffer(field_name)
    return buffer.feed(text) + buffer.flush()


# ---------------------------------------------------------------------------
# Container id discovery
# ---------------------------------------------------------------------------


@dataclass
class ContainerSearch:
    """Everything the container id extractors may look at."""

    result: Any
    items: list[Any] = field(default_factory=list)


def _from_top_level(search: ContainerSearch) -> Any:
    return _field(search.result, "container_id", "containerId")


def _from_state(search: ContainerSearch) -> Any:
    state = _field(search.result, "state", "_state")
    return _field(state, "container_id", "containerId")


def _from_current_turn(search: ContainerSearch) -> Any:
    state = _field(search.result, "state", "_state")
    turn = _field(state, "current_turn", "currentTurn", "_current_turn")
    return _field(turn, "container_id", "containerId")


def _raw_items(search: ContainerSearch) -> Iterable[Any]:
    for item in search.items:
        yield _field(item, "raw_item", "rawItem") or item


def _from_code_interpreter_calls(search: ContainerSearch) -> Any:
    for raw in _raw_items(search):
        if _field(raw, "type") == CODE_INTERPRETER_CALL:
            value = _field(raw, "container_id", "containerId")
            if is_valid_container_id(value):
                return value
    return None


def _from_provider_data(search: ContainerSearch) -> Any:
    for raw in _raw_items(search):
        provider = _field(raw, "provider_data", "providerData")
        value = _field(provider, "container_id", "containerId")
        if is_valid_container_id(value):
            return value
    return None


def _from_file_citations(search: ContainerSearch) -> Any:
    for raw in _raw_items(search):
        for block in _field(raw, "content") or []:
            for annotation in _field(block, "annotations") or []:
                if _field(annotation, "type") == FILE_CITATION:
                    value = _field(annotation, "container_id", "containerId")
                    if is_valid_container_id(value):
                        return value
    return None


CONTAINER_ID_EXTRACTORS: tuple[Callable[[ContainerSearch], Any], ...] = (
    _from_top_level,
    _from_state,
    _from_current_turn,
    _from_code_interpreter_calls,
    _from_provider_data,
    _from_file_citations,
)


def find_container_id(result: Any, items: list[Any]) -> str | None:
    """Try each extractor in priority order; first valid id wins."""
    search = ContainerSearch(result=result, items=items)
    for extractor in CONTAINER_ID_EXTRACTORS:
        value = extractor(search)
        if is_valid_container_id(value):
            logger.debug("Container id %s found by %s", value, extractor.__name__)
            return value
    return None


# ---------------------------------------------------------------------------
# File reference discovery
# ---------------------------------------------------------------------------


def collect_file_references(
    texts: Iterable[str], container_id: str | None
) -> list[FileReference]:
    """Build one FileReference per distinct sandbox path found in ``texts``."""
    refs: list[FileReference] = []
    seen: set[str] = set()
    for text in texts:
        for link in parse_sandbox_links(text):
            if link.path in seen:
                continue
            seen.add(link.path)
            refs.append(FileReference(path=link.path, container_id=container_id or ""))
    return refs


def _message_items(items: Iterable[Any]) -> list[Any]:
    messages = []
    for item in items:
        raw = _field(item, "raw_item", "rawItem") or item
        if _field(item, "type") == "message_output_item" or _field(raw, "type") == "message":
            messages.append(item)
    return messages


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


def _display_message(
    output: Any,
    accumulated: str,
    extract_message: Callable[[Any], str] | None,
) -> str:
    if output is not None and extract_message is not None:
        message = extract_message(output)
        if isinstance(message, str) and message:
            return message
    if isinstance(output, str) and output:
        return unwrap_structured_text(output)
    message = _field(output, "message")
    if isinstance(message, str) and message:
        return message
    return accumulated


def _event_source(streamed_result: Any) -> AsyncIterable[Any]:
    stream_events = getattr(streamed_result, "stream_events", None)
    if callable(stream_events):
        return stream_events()
    return streamed_result


async def adapt_agent_stream(
    streamed_result: Any,
    extract_message: Callable[[Any], str] | None = None,
) -> AsyncIterator[StreamEvent]:
    """Convert a streamed agent run into MathTutor stream events.

    Args:
        streamed_result: The runtime's streamed run result. Its events are
            read from ``stream_events()`` when present, else by iterating
            the object itself.
        extract_message: Optional function mapping the final structured
            output to the display message.

    Yields:
        TextEvent chunks, then exactly one DoneEvent or ErrorEvent.
    """
    try:
        accumulated = ""
        streamed_any = False
        buffer = StructuredTextBuffer()
        seen_items: list[Any] = []

        async for event in _event_source(streamed_result):
            seen_items.extend(observed_items(event))
            raw = classify_event(event)

            if isinstance(raw, RawTextDelta):
                streamed_any = True
                visible = buffer.feed(raw.text)
                if visible:
                    accumulated += visible
                    yield TextEvent(content=visible)

            elif isinstance(raw, RawItemCreated):
                if streamed_any or accumulated:
                    continue
                for text in raw.texts:
                    visible = unwrap_structured_text(text)
                    if visible:
                        accumulated += visible
                        yield TextEvent(content=visible)
                # Later message items of the same run stay silent.
                streamed_any = True

        leftover = buffer.flush()
        if leftover:
            logger.warning("Structured text never parsed; emitting raw buffer")
            accumulated += leftover
            yield TextEvent(content=leftover)

        output = getattr(streamed_result, "final_output", None)
        message = _display_message(output, accumulated, extract_message)

        new_items = list(getattr(streamed_result, "new_items", None) or [])
        items = new_items + [i for i in seen_items if i not in new_items]
        container_id = find_container_id(streamed_result, items)

        item_texts = [
            text for item in _message_items(items) for text in message_item_texts(item)
        ]
        files = collect_file_references(item_texts, container_id)
        if not files:
            fallback = [t for t in (accumulated, message) if SANDBOX_SCHEME in t]
            files = collect_file_references(fallback, container_id)

        if files:
            logger.info(
                "Detected %d sandbox file(s) (container=%s): %s",
                len(files),
                container_id,
                [f.path for f in files],
            )

        yield DoneEvent(
            message=message,
            output=output,
            files=files,
            container_id=container_id,
        )

    except Exception as e:
        logger.exception("Stream adapter error")
        yield ErrorEvent(message=str(e) or "Unknown streaming error")
