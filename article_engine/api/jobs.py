"""API endpoints for job status."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from article_engine.core.auth import AuthContext, require_auth
from article_engine.core.logging import get_logger
from article_engine.db.jobs import get_job

logger = get_logger(__name__)

router = APIRouter()


@router.get("/{job_id}")
async def get_job_status(job_id: UUID, auth: AuthContext = Depends(require_auth)) -> dict:
    """
    Get job status and details by job ID.

    Raises:
        HTTPException 404: If job not found
        HTTPException 500: If database error
    """
    try:
        job = get_job(job_id)

        if not job:
            raise HTTPException(status_code=404, detail="Job not found")

        return job

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to get job {job_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve job status") from e
