"""Outline generation and approval endpoints."""

import asyncio
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from article_engine.api.streams import open_stream, run_stream
from article_engine.chains.edit_outline_section import rewrite_section
from article_engine.core.auth import AuthContext, require_auth
from article_engine.core.logging import get_logger
from article_engine.core.schemas_outline import (
    OutlinePatchRequest,
    OutlineRequest,
    OutlineSection,
    SectionEditRequest,
)
from article_engine.db.outlines import get_outline, update_outline
from article_engine.services.outline_stream import OutlineStream

logger = get_logger(__name__)

router = APIRouter()


@router.post("/outline")
async def generate_outline(request: OutlineRequest, auth: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    """
    Generate an outline and return it once saved.

    Returns 200 with ``saved: false`` and the error when the final save fails.
    """
    complete, warnings = await run_stream(OutlineStream(request, user_id=auth.user_id))
    metadata = complete.get("metadata", {})
    response: dict[str, Any] = {
        "success": True,
        "outline": complete["outline"],
        "metadata": metadata,
        "saved": metadata.get("saved", True),
    }
    if metadata.get("error"):
        response["error"] = metadata["error"]
    if warnings:
        response["warnings"] = [w["message"] for w in warnings]
    return response


@router.put("/outline")
async def stream_outline(request: OutlineRequest, auth: AuthContext = Depends(require_auth)):
    """
    Generate an outline as an SSE stream.

    Events: outline_created, progress (context, generating, structuring,
    section with the partial outline, saving), token, then complete or error.

    Raises:
        HTTPException 404: If the topic does not exist
    """
    return await open_stream(OutlineStream(request, user_id=auth.user_id))


@router.get("/outline/{outline_id}")
async def fetch_outline(outline_id: UUID, auth: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    try:
        outline = await asyncio.to_thread(get_outline, outline_id)
    except Exception as e:
        logger.exception(f"Failed to get outline {outline_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve outline") from e

    if not outline:
        raise HTTPException(status_code=404, detail="Outline not found")
    return {"success": True, "outline": outline}


@router.patch("/outline")
async def patch_outline(request: OutlinePatchRequest, auth: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    """
    Approve an outline or replace its structure.

    Raises:
        HTTPException 400: If nothing to change, or the structure of an approved outline is edited
        HTTPException 404: If the outline does not exist
    """
    if request.approved is None and request.structure is None:
        raise HTTPException(status_code=400, detail="Provide approved or structure")

    try:
        outline = await asyncio.to_thread(get_outline, request.outline_id)
    except Exception as e:
        logger.exception(f"Failed to get outline {request.outline_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve outline") from e

    if not outline:
        raise HTTPException(status_code=404, detail="Outline not found")

    if request.structure is not None and outline.get("approved"):
        raise HTTPException(status_code=400, detail="Approved outlines cannot be edited")

    fields: dict[str, Any] = {}
    if request.structure is not None:
        fields["structure"] = request.structure.to_json()
    if request.approved is not None:
        fields["approved"] = request.approved

    try:
        updated = await asyncio.to_thread(update_outline, request.outline_id, fields)
    except Exception as e:
        logger.exception(f"Failed to update outline {request.outline_id}")
        raise HTTPException(status_code=500, detail=f"Failed to update outline: {e}") from e

    logger.info(
        f"Outline {request.outline_id} updated",
        extra={"outline_id": str(request.outline_id), "fields": sorted(fields)},
    )
    return {"success": True, "outline": updated or {**outline, **fields}}


@router.post("/outline/edit-section")
async def edit_outline_section(
    request: SectionEditRequest,
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """
    Rewrite one section of an outline and save the updated structure.

    The section's word target is kept.

    Raises:
        HTTPException 400: If the index is out of range or the outline is approved
        HTTPException 404: If the outline does not exist
        HTTPException 500: If the rewrite or the save fails
    """
    try:
        outline = await asyncio.to_thread(get_outline, request.outline_id)
    except Exception as e:
        logger.exception(f"Failed to get outline {request.outline_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve outline") from e

    if not outline:
        raise HTTPException(status_code=404, detail="Outline not found")
    if outline.get("approved"):
        raise HTTPException(status_code=400, detail="Approved outlines cannot be edited")

    structure = dict(outline.get("structure") or {})
    sections = list(structure.get("sections") or [])
    if request.section_index >= len(sections):
        raise HTTPException(
            status_code=400,
            detail=f"Section index {request.section_index} out of range ({len(sections)} sections)",
        )

    current = request.current_section or OutlineSection.model_validate(sections[request.section_index])

    try:
        updated_section = await rewrite_section(outline, request.section_index, current, request.instruction)
        sections[request.section_index] = updated_section.model_dump(mode="json", by_alias=True)
        structure["sections"] = sections
        updated = await asyncio.to_thread(update_outline, request.outline_id, {"structure": structure})
    except Exception as e:
        logger.exception(f"Failed to rewrite section {request.section_index} of outline {request.outline_id}")
        raise HTTPException(status_code=500, detail=f"Failed to rewrite section: {e}") from e

    logger.info(
        f"Rewrote section {request.section_index} of outline {request.outline_id}",
        extra={"outline_id": str(request.outline_id), "section_index": request.section_index},
    )
    return {
        "success": True,
        "updatedSection": sections[request.section_index],
        "outline": updated or {**outline, "structure": structure},
    }
