"""Shared request handling for generation stream endpoints."""

from typing import Any

from fastapi import HTTPException
from fastapi.responses import StreamingResponse

from article_engine.core.errors import NotFoundError
from article_engine.core.logging import get_logger
from article_engine.core.sse import EventType, event_stream_response
from article_engine.services.generation_stream import GenerationStream

logger = get_logger(__name__)


async def _start(stream: GenerationStream) -> None:
    """Start a stream, mapping setup failures to HTTP errors."""
    try:
        await stream.start()
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to set up {stream.stage} stream: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to start {stream.stage}: {e}") from e


async def open_stream(stream: GenerationStream) -> StreamingResponse:
    """
    Validate and create the placeholder, then hand the events to an SSE response.

    Raises:
        HTTPException 404: If a referenced record is missing
        HTTPException 400: If the request cannot be served
        HTTPException 500: If the placeholder cannot be created
    """
    await _start(stream)
    return event_stream_response(stream.sse())


async def run_stream(stream: GenerationStream) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """
    Run a stream to completion for a non-streaming endpoint.

    Returns:
        (complete event, warning events)

    Raises:
        HTTPException: On setup failure (as ``open_stream``) or a terminal error (500)
    """
    await _start(stream)
    terminal: dict[str, Any] = {}
    warnings: list[dict[str, Any]] = []
    async for event in stream.events():
        if event.get("type") == EventType.WARNING.value:
            warnings.append(event)
        elif event.get("type") in (EventType.COMPLETE.value, EventType.ERROR.value):
            terminal = event

    if terminal.get("type") != EventType.COMPLETE.value:
        message = terminal.get("message", f"{stream.stage} failed")
        details = terminal.get("details")
        raise HTTPException(status_code=500, detail=f"{message}: {details}" if details else message)

    return terminal, warnings
