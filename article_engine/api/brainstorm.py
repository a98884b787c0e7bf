"""Topic brainstorming endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from article_engine.core.auth import AuthContext, require_auth
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import BrainstormRequest, BrainstormResponse
from article_engine.services.brainstorm import brainstorm_topics
from article_engine.services.job_tracking import track_job_end, track_job_start

logger = get_logger(__name__)

router = APIRouter()

BRAINSTORM_OPTIONS = {
    "articleTypes": [
        "blog", "technical", "how-to", "listicle", "case-study",
        "opinion", "comparison", "analysis", "tutorial", "news",
    ],
    "contentGoals": ["educate", "engage", "convert", "inspire", "entertain", "inform", "persuade"],
    "targetAudiences": [
        "general audience", "beginners", "intermediate", "advanced",
        "professionals", "executives", "technical readers", "decision makers",
    ],
    "countRange": {"min": 1, "max": 10, "default": 5},
}


@router.post("/brainstorm", response_model=BrainstormResponse, response_model_by_alias=True)
async def run_brainstorm(
    request: BrainstormRequest,
    auth: AuthContext = Depends(require_auth),
) -> BrainstormResponse:
    """
    Generate topic ideas without web search.

    Ideas are saved as pending topics; a failed save still returns 200 with
    temporary ids and ``saved: false``.
    """
    job_id = await track_job_start("brainstorm", request.model_dump(mode="json"), auth.user_id)

    try:
        response = await brainstorm_topics(request)
    except Exception as e:
        logger.exception(f"Brainstorm failed: {e}", extra={"job_id": str(job_id) if job_id else None})
        await track_job_end(job_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to generate topic ideas: {e}") from e

    await track_job_end(job_id, output={"topics": len(response.topics), "saved": response.saved})
    return response


@router.get("/brainstorm")
async def brainstorm_options(auth: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    return {"success": True, "options": BRAINSTORM_OPTIONS}
