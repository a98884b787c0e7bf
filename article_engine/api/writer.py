"""Article drafting endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from article_engine.api.streams import open_stream, run_stream
from article_engine.core.auth import AuthContext, require_auth
from article_engine.core.schemas_articles import WriterRequest
from article_engine.services.writer_stream import WriterStream

router = APIRouter()


@router.post("/writer")
async def write_article(request: WriterRequest, auth: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    """
    Draft an article from an approved outline.

    Returns 200 even when the final save fails: the content is returned with
    ``saved: false`` and the error so the caller can retry the save.
    """
    complete, warnings = await run_stream(WriterStream(request, user_id=auth.user_id))
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


@router.put("/writer")
async def stream_article(request: WriterRequest, auth: AuthContext = Depends(require_auth)):
    """
    Draft an article as an SSE stream.

    Raises:
        HTTPException 400: If the outline is not approved
        HTTPException 404: If the outline does not exist
    """
    return await open_stream(WriterStream(request, user_id=auth.user_id))
