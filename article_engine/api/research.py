"""Topic research endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from article_engine.core.auth import AuthContext, require_auth
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import (
    ResearchRequest,
    ResearchResponse,
    SaveTopicsRequest,
    SaveTopicsResponse,
)
from article_engine.services.job_tracking import track_job_end, track_job_start
from article_engine.services.topic_research import InvalidTopicSelectionError, research_topics, save_topics

logger = get_logger(__name__)

router = APIRouter()


@router.post("/research", response_model=ResearchResponse, response_model_by_alias=True)
async def run_research(
    request: ResearchRequest,
    auth: AuthContext = Depends(require_auth),
) -> ResearchResponse:
    """
    Discover topic candidates.

    Topics come back with temporary ids and are not persisted; call
    ``/research/save`` to promote the ones the user keeps.
    """
    job_id = await track_job_start("research", request.model_dump(mode="json"), auth.user_id)

    try:
        logger.info(
            f"Starting {request.mode} research",
            extra={"job_id": str(job_id), "industry": request.industry},
        )

        response = await research_topics(request)
        response.job_id = job_id

        await track_job_end(
            job_id,
            output={
                "topics": len(response.topics),
                "duplicates_filtered": response.metadata.duplicates_filtered,
            },
        )
        return response

    except HTTPException:
        await track_job_end(job_id, error="Client error")
        raise
    except Exception as e:
        logger.exception(f"Research failed: {e}", extra={"job_id": str(job_id) if job_id else None})
        await track_job_end(job_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Research failed: {e}") from e


@router.post("/research/save", response_model=SaveTopicsResponse, response_model_by_alias=True)
async def save_research_topics(
    request: SaveTopicsRequest,
    auth: AuthContext = Depends(require_auth),
) -> SaveTopicsResponse:
    """Persist selected topics and return them with durable ids."""
    try:
        saved = await save_topics(request)
    except InvalidTopicSelectionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to save topics: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save topics: {e}") from e

    return SaveTopicsResponse(topics=saved, message=f"Saved {len(saved)} topics")
