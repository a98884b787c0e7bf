"""Editing pass endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from article_engine.api.streams import open_stream, run_stream
from article_engine.core.auth import AuthContext, require_auth
from article_engine.core.errors import NotFoundError
from article_engine.core.logging import get_logger
from article_engine.core.schemas_articles import EditorRequest, RollbackRequest
from article_engine.services.editor_stream import EditorStream, rollback_edit

logger = get_logger(__name__)

router = APIRouter()


@router.post("/editor")
async def edit_article(request: EditorRequest, auth: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    complete, warnings = await run_stream(EditorStream(request, user_id=auth.user_id))
    metadata = complete.get("metadata", {})
    response: dict[str, Any] = {
        "success": True,
        "article": complete["article"],
        "metadata": metadata,
        "saved": metadata.get("saved", True),
    }
    if metadata.get("error"):
        response["error"] = metadata["error"]
    if warnings:
        response["warnings"] = [w["message"] for w in warnings]
    return response


@router.put("/editor")
async def stream_edit(request: EditorRequest, auth: AuthContext = Depends(require_auth)):
    """
    Edit an article as an SSE stream.

    A pre-edit snapshot is stored before the stream opens; if it cannot be
    stored the request fails with 500 and nothing is edited.
    """
    return await open_stream(EditorStream(request, user_id=auth.user_id))


@router.post("/editor/rollback")
async def rollback(request: RollbackRequest, auth: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    """Restore the article content saved before the last AI edit."""
    try:
        article = await rollback_edit(request.article_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Rollback failed for article {request.article_id}")
        raise HTTPException(status_code=500, detail=f"Rollback failed: {e}") from e

    return {"success": True, "article": article}
