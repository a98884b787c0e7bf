"""Outline database operations."""

from typing import Any
from uuid import UUID

from article_engine.core.logging import get_logger
from article_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)

# Outline row plus the parent topic needed by the writer
OUTLINE_WITH_TOPIC = "*, topics(id, title, summary, sources, metadata, industry_id, status)"


def create_outline(
    topic_id: UUID,
    structure: dict[str, Any],
    article_type: str,
    target_length: str,
    tone: str,
) -> dict[str, Any]:
    """
    Insert an unapproved outline row.

    Returns:
        The stored outline row

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("outlines")
            .insert(
                {
                    "topic_id": str(topic_id),
                    "structure": structure,
                    "article_type": article_type,
                    "target_length": target_length,
                    "tone": tone,
                    "approved": False,
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_outline")

        outline = response.data[0]
        logger.info(
            f"Created outline {outline['id']} for topic {topic_id}",
            extra={"outline_id": outline["id"], "topic_id": str(topic_id)},
        )
        return outline

    except Exception as e:
        logger.error(f"Failed to create outline: {e}", extra={"topic_id": str(topic_id)})
        raise


def get_outline(outline_id: UUID) -> dict[str, Any] | None:
    """
    Get an outline with its topic.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("outlines")
            .select(OUTLINE_WITH_TOPIC)
            .eq("id", str(outline_id))
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get outline {outline_id}: {e}", extra={"outline_id": str(outline_id)})
        raise


def update_outline(outline_id: UUID, fields: dict[str, Any]) -> dict[str, Any] | None:
    """
    Update outline columns (full replace of the given fields).

    Returns:
        Updated row, or None if no row matched

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table("outlines").update(fields).eq("id", str(outline_id)).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to update outline: {e}", extra={"outline_id": str(outline_id)})
        raise
