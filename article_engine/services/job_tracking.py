"""Job bookkeeping for generation requests.

Every helper runs the job store call in a worker thread and logs failures
instead of raising: a job store outage never fails the generation it tracks.
"""

import asyncio
from typing import Any
from uuid import UUID

from article_engine.core.logging import get_logger
from article_engine.db.jobs import complete_job, create_job, fail_job, start_job, update_job_progress

logger = get_logger(__name__)


async def track_job_start(job_type: str, input_json: dict[str, Any], user_id: str | None = None) -> UUID | None:
    """Create and start a job; returns None when the job store is unavailable."""
    try:
        job_id = await asyncio.to_thread(create_job, job_type, input_json, user_id)
        await asyncio.to_thread(start_job, job_id)
        return job_id
    except Exception as e:
        logger.warning(f"Job tracking unavailable for {job_type}: {e}")
        return None


async def track_job_progress(job_id: UUID | None, progress: dict[str, Any]) -> None:
    if not job_id:
        return
    try:
        await asyncio.to_thread(update_job_progress, job_id, progress)
    except Exception as e:
        logger.warning(f"Failed to record job progress: {e}", extra={"job_id": str(job_id)})


async def track_job_end(
    job_id: UUID | None,
    output: dict[str, Any] | None = None,
    error: str | None = None,
) -> None:
    """Mark a job failed when ``error`` is given, completed otherwise."""
    if not job_id:
        return
    try:
        if error is not None:
            await asyncio.to_thread(fail_job, job_id, error)
        else:
            await asyncio.to_thread(complete_job, job_id, output or {})
    except Exception as e:
        logger.warning(f"Failed to close job: {e}", extra={"job_id": str(job_id)})
