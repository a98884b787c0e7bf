"""Intelligent linking and similarity endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from article_engine.core.auth import AuthContext, require_auth
from article_engine.core.errors import NotFoundError
from article_engine.core.logging import get_logger
from article_engine.core.schemas_articles import (
    LinkApplyRequest,
    LinkApplyResponse,
    LinkSuggestRequest,
    LinkSuggestResponse,
)
from article_engine.services.linking import (
    NoPendingSuggestionsError,
    apply_links,
    similar_articles,
    suggest_links,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post("/intelligent-links", response_model=LinkSuggestResponse, response_model_by_alias=True)
async def suggest_internal_links(
    request: LinkSuggestRequest,
    auth: AuthContext = Depends(require_auth),
) -> LinkSuggestResponse:
    """
    Propose internal links to published articles on a site.

    With no similar published content the response is empty with a message.
    """
    try:
        return await suggest_links(request)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Link suggestion failed for article {request.article_id}")
        raise HTTPException(status_code=500, detail=f"Link suggestion failed: {e}") from e


@router.put("/intelligent-links", response_model=LinkApplyResponse, response_model_by_alias=True)
async def apply_internal_links(
    request: LinkApplyRequest,
    auth: AuthContext = Depends(require_auth),
) -> LinkApplyResponse:
    """Insert the selected suggestions into the article."""
    try:
        return await apply_links(request)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except NoPendingSuggestionsError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Applying links failed for article {request.article_id}")
        raise HTTPException(status_code=500, detail=f"Applying links failed: {e}") from e


@router.get("/{article_id}/similar")
async def get_similar_articles(
    article_id: UUID,
    limit: int = Query(5, description="Maximum matches", ge=1, le=50),
    threshold: float | None = Query(None, description="Minimum similarity", ge=0.0, le=1.0),
    auth: AuthContext = Depends(require_auth),
) -> dict:
    try:
        matches = await similar_articles(article_id, limit=limit, threshold=threshold)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Similar article lookup failed for {article_id}")
        raise HTTPException(status_code=500, detail="Failed to find similar articles") from e

    return {"success": True, "articles": matches}
