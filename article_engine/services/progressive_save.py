"""Throttled write-back of partially generated content."""

import asyncio
from collections.abc import Callable
from typing import Any

from article_engine.core.logging import get_logger
from article_engine.core.write_throttle import WriteThrottle

logger = get_logger(__name__)


class ProgressiveSaver:
    """
    Persists the full accumulated content of a stream as it grows.

    ``maybe_save`` writes only when the throttle allows; ``save_now`` always
    writes. Both go through ``write`` (a blocking store call run in a worker
    thread), and both reset the throttle window.
    """

    def __init__(
        self,
        write: Callable[[str], Any],
        throttle: WriteThrottle,
        artifact_id: str | None = None,
    ):
        self._write = write
        self.throttle = throttle
        self.artifact_id = artifact_id
        self.writes = 0
        self.failed_writes = 0

    async def maybe_save(self, content: str) -> bool:
        """
        Write ``content`` if the interval has elapsed since the last write.

        A failed partial write is logged and generation continues; the final
        write carries the full content anyway.

        Returns:
            True if a write was attempted
        """
        now = self.throttle.now()
        if not self.throttle.should_write(now):
            return False

        self.throttle.record_write(now)
        try:
            await asyncio.to_thread(self._write, content)
            self.writes += 1
        except Exception as e:
            self.failed_writes += 1
            logger.warning(
                f"Partial save failed: {e}",
                extra={"artifact_id": self.artifact_id, "content_length": len(content)},
            )
        return True

    async def save_now(self, content: str) -> None:
        """
        Write unconditionally.

        Raises:
            Exception: If the store write fails
        """
        await asyncio.to_thread(self._write, content)
        self.throttle.record_write()
        self.writes += 1

    async def checkpoint(self, content: str) -> bool:
        """
        Write unconditionally at a stage boundary, logging failures.

        Returns:
            True if the write succeeded
        """
        try:
            await self.save_now(content)
            return True
        except Exception as e:
            self.failed_writes += 1
            logger.warning(f"Checkpoint save failed: {e}", extra={"artifact_id": self.artifact_id})
            return False
