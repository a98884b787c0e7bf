"""Shared lifecycle for streamed generation stages.

Each stage subclass creates a durable placeholder in ``start()`` and then
produces its events from ``generate()``. ``events()`` wraps that with the
protocol every stage shares: the created event first, every generated event in
order, and exactly one terminal ``complete`` or ``error`` event last.
"""

from collections.abc import AsyncIterator
from typing import Any
from uuid import UUID

from article_engine.core.config import get_settings
from article_engine.core.errors import UpstreamError, UpstreamTimeoutError
from article_engine.core.logging import get_logger
from article_engine.core.sse import TERMINAL_EVENTS, EventType, error_event, sse_event
from article_engine.core.write_throttle import WriteThrottle
from article_engine.services.job_tracking import track_job_end, track_job_progress, track_job_start

logger = get_logger(__name__)


class GenerationStream:
    """
    Base class for outline, writer and editor streams.

    Subclasses set ``stage`` and ``job_type`` and implement
    ``_create_placeholder``, ``created_event`` and ``generate``.
    """

    stage: str = "generation"
    job_type: str = "generation"

    def __init__(self, user_id: str | None = None):
        self.user_id = user_id
        self.artifact_id: str | None = None
        self.job_id: UUID | None = None
        self.throttle = WriteThrottle(get_settings().STREAM_SAVE_INTERVAL_MS)

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    async def _create_placeholder(self) -> str:
        """Validate inputs and persist the placeholder; returns its id."""
        raise NotImplementedError

    def created_event(self) -> dict[str, Any]:
        raise NotImplementedError

    def job_input(self) -> dict[str, Any]:
        return {}

    def generate(self) -> AsyncIterator[dict[str, Any]]:
        """Yield progress/token/warning events, then one ``complete`` event."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> str:
        """
        Create the placeholder before any stream is opened.

        Raises:
            NotFoundError: If a referenced record does not exist
            ValueError: If the request cannot be served (e.g. unapproved outline)
            Exception: If the placeholder cannot be persisted
        """
        self.artifact_id = await self._create_placeholder()
        await self._track_job_start()
        logger.info(
            f"Started {self.stage} stream",
            extra={"artifact_id": self.artifact_id, "job_id": str(self.job_id) if self.job_id else None},
        )
        return self.artifact_id

    async def events(self) -> AsyncIterator[dict[str, Any]]:
        """Protocol-ordered events for a started stream."""
        if self.artifact_id is None:
            raise RuntimeError("start() must be called before events()")

        terminal: dict[str, Any] | None = None
        yield self.created_event()

        generated = self.generate()
        try:
            async for event in generated:
                if event.get("type") in TERMINAL_EVENTS:
                    terminal = event
                yield event
                if terminal is not None:
                    break
                if event.get("type") == EventType.PROGRESS.value:
                    await self._track_job_progress(event)

            if terminal is None:
                raise UpstreamError(f"{self.stage} stream ended without a result")

        except Exception as e:
            logger.exception(
                f"{self.stage} stream failed: {e}",
                extra={"artifact_id": self.artifact_id},
            )
            terminal = error_event(_error_message(self.stage, e), details=str(e))
            yield terminal
            await self._track_job_end(error=str(e))
            return

        finally:
            await generated.aclose()
            if terminal is None:
                logger.info(
                    f"{self.stage} stream closed before completion (client disconnected)",
                    extra={"artifact_id": self.artifact_id},
                )
                await self._track_job_end(error="client disconnected")

        logger.info(f"Completed {self.stage} stream", extra={"artifact_id": self.artifact_id})
        await self._track_job_end(output=_job_output(terminal))

    async def sse(self) -> AsyncIterator[str]:
        """``events()`` framed as SSE text."""
        async for event in self.events():
            yield sse_event(event)

    # ------------------------------------------------------------------
    # Job bookkeeping (never fails the stream)
    # ------------------------------------------------------------------

    async def _track_job_start(self) -> None:
        self.job_id = await track_job_start(
            self.job_type, {**self.job_input(), "artifact_id": self.artifact_id}, self.user_id
        )

    async def _track_job_progress(self, event: dict[str, Any]) -> None:
        await track_job_progress(
            self.job_id,
            {"stage": event.get("stage"), "progress": event.get("progress"), "message": event.get("message")},
        )

    async def _track_job_end(self, output: dict[str, Any] | None = None, error: str | None = None) -> None:
        await track_job_end(self.job_id, output=output, error=error)


def _error_message(stage: str, error: Exception) -> str:
    if isinstance(error, UpstreamTimeoutError):
        return f"{stage.capitalize()} generation timed out"
    return f"{stage.capitalize()} generation failed"


def _job_output(terminal: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in terminal.items() if key in ("metadata", "progress")}
