"""Job lifecycle database operations."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from article_engine.core.logging import get_logger
from article_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def create_job(job_type: str, input_json: dict[str, Any], user_id: str | None = None) -> UUID:
    """
    Create a new pending job record.

    Args:
        job_type: Type of job (e.g., "research", "outline", "write_article")
        input_json: Input parameters for the job
        user_id: Owner of the job

    Returns:
        Job UUID

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("jobs")
            .insert(
                {
                    "type": job_type,
                    "status": "pending",
                    "input": input_json,
                    "output": None,
                    "user_id": user_id,
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_job")

        job_id = UUID(response.data[0]["id"])
        logger.info(f"Created job {job_id} of type {job_type}", extra={"job_id": str(job_id)})
        return job_id

    except Exception as e:
        logger.error(f"Failed to create job: {e}", extra={"job_type": job_type})
        raise


def start_job(job_id: UUID) -> None:
    """
    Mark a job as running.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        supabase.table("jobs").update(
            {
                "status": "running",
                "started_at": _utc_now_iso(),
            }
        ).eq("id", str(job_id)).execute()

        logger.info(f"Started job {job_id}", extra={"job_id": str(job_id)})

    except Exception as e:
        logger.error(f"Failed to start job: {e}", extra={"job_id": str(job_id)})
        raise


def update_job_progress(job_id: UUID, progress: dict[str, Any]) -> None:
    """
    Record a progress milestone on a running job.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        supabase.table("jobs").update({"progress": progress}).eq("id", str(job_id)).execute()

    except Exception as e:
        logger.error(f"Failed to update job progress: {e}", extra={"job_id": str(job_id)})
        raise


def complete_job(job_id: UUID, output_json: dict[str, Any]) -> None:
    """
    Mark a job as completed with output.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        supabase.table("jobs").update(
            {
                "status": "completed",
                "output": output_json,
                "completed_at": _utc_now_iso(),
            }
        ).eq("id", str(job_id)).execute()

        logger.info(f"Completed job {job_id}", extra={"job_id": str(job_id)})

    except Exception as e:
        logger.error(f"Failed to complete job: {e}", extra={"job_id": str(job_id)})
        raise


def fail_job(job_id: UUID, error_message: str) -> None:
    """
    Mark a job as failed with error message.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        supabase.table("jobs").update(
            {
                "status": "failed",
                "error": {"message": error_message},
                "completed_at": _utc_now_iso(),
            }
        ).eq("id", str(job_id)).execute()

        logger.info(f"Failed job {job_id}: {error_message}", extra={"job_id": str(job_id)})

    except Exception as e:
        logger.error(f"Failed to mark job as failed: {e}", extra={"job_id": str(job_id)})
        raise


def get_job(job_id: UUID) -> dict[str, Any] | None:
    """
    Get job by ID.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table("jobs").select("*").eq("id", str(job_id)).limit(1).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get job: {e}", extra={"job_id": str(job_id)})
        raise
