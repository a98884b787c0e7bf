"""Server-sent event framing for generation streams.

Server side: ``sse_event`` frames one JSON object per event and the
constructors below build the event payloads every stage shares.
Client side: ``SSEDecoder`` turns arbitrarily chunked response text back into
event dicts.
"""

import json
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

from fastapi.responses import StreamingResponse

from article_engine.core.logging import get_logger

logger = get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


class EventType(str, Enum):
    """Event types emitted by generation streams."""

    OUTLINE_CREATED = "outline_created"
    ARTICLE_CREATED = "article_created"
    EDIT_STARTED = "edit_started"
    PROGRESS = "progress"
    TOKEN = "token"
    WARNING = "warning"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_EVENTS = {EventType.COMPLETE.value, EventType.ERROR.value}


def sse_event(data: dict) -> str:
    """Format a dict as an SSE data line."""
    return f"data: {json.dumps(data, default=str)}\n\n"


def event_stream_response(events: AsyncIterator[str]) -> StreamingResponse:
    """Wrap an SSE string generator in a streaming response."""
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


# ──────────────────────────────────────────────────────────────────────
# Event constructors
# ──────────────────────────────────────────────────────────────────────


def created_event(kind: str, artifact_id: str) -> dict[str, Any]:
    """Placeholder-created event: ``kind`` is "outline" or "article"."""
    return {"type": f"{kind}_created", f"{kind}Id": str(artifact_id)}


def progress_event(stage: str, message: str, progress: int, **fields: Any) -> dict[str, Any]:
    return {
        "type": EventType.PROGRESS.value,
        "stage": stage,
        "message": message,
        "progress": progress,
        **fields,
    }


def token_event(content: str, stage: str, section_index: int | None = None) -> dict[str, Any]:
    event: dict[str, Any] = {"type": EventType.TOKEN.value, "content": content, "stage": stage}
    if section_index is not None:
        event["sectionIndex"] = section_index
    return event


def warning_event(message: str) -> dict[str, Any]:
    return {"type": EventType.WARNING.value, "message": message}


def complete_event(**payload: Any) -> dict[str, Any]:
    return {"type": EventType.COMPLETE.value, **payload, "progress": 100}


def error_event(message: str, details: str | None = None) -> dict[str, Any]:
    event: dict[str, Any] = {"type": EventType.ERROR.value, "message": message}
    if details:
        event["details"] = details
    return event


def milestone(base: int, span: int, index: int, total: int) -> int:
    """Progress for step ``index`` of ``total`` within [base, base + span], rounded half up."""
    if total <= 0:
        return base
    return base + int(index / total * span + 0.5)


# ──────────────────────────────────────────────────────────────────────
# Client-side decoding
# ──────────────────────────────────────────────────────────────────────


class SSEDecoder:
    """
    Incremental decoder for ``data: <json>`` framed streams.

    Network chunks can split an event anywhere, so incomplete trailing text is
    buffered until the next ``feed``.
    """

    def __init__(self):
        self._buffer = ""

    def feed(self, chunk: str) -> list[dict[str, Any]]:
        """Add text and return every complete event it finishes."""
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._parse_lines(lines)

    def flush(self) -> list[dict[str, Any]]:
        """Parse whatever remains once the stream has closed."""
        remaining, self._buffer = self._buffer, ""
        return self._parse_lines([remaining])

    def _parse_lines(self, lines: list[str]) -> list[dict[str, Any]]:
        events = []
        for line in lines:
            line = line.strip()
            if not line.startswith("data: "):
                continue
            try:
                event = json.loads(line[6:])
            except json.JSONDecodeError:
                logger.warning(f"Skipping malformed SSE line: {line[:80]}")
                continue
            if isinstance(event, dict):
                events.append(event)
        return events
