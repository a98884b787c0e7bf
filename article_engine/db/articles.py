"""Article database operations."""

from typing import Any
from uuid import UUID

from article_engine.core.logging import get_logger
from article_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def create_article(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Insert an article row.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table("articles").insert(payload).execute()

        if not response.data:
            raise ValueError("No data returned from create_article")

        article = response.data[0]
        logger.info(f"Created article {article['id']}", extra={"article_id": article["id"]})
        return article

    except Exception as e:
        logger.error(f"Failed to create article: {e}", extra={"outline_id": payload.get("outline_id")})
        raise


def get_article(article_id: UUID) -> dict[str, Any] | None:
    """
    Get an article by ID.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table("articles").select("*").eq("id", str(article_id)).limit(1).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get article {article_id}: {e}", extra={"article_id": str(article_id)})
        raise


def update_article(article_id: UUID, fields: dict[str, Any]) -> dict[str, Any] | None:
    """
    Update article columns. Content writes are full replaces.

    Returns:
        Updated row, or None if no row matched

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table("articles").update(fields).eq("id", str(article_id)).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to update article: {e}", extra={"article_id": str(article_id)})
        raise


def list_published_articles(industry_id: str | None, limit: int = 15) -> list[dict[str, Any]]:
    """
    Published articles in an industry, used as the internal link allow-list.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        query = supabase.table("articles").select("id, title, slug, excerpt").eq("status", "published")
        if industry_id:
            query = query.eq("industry_id", str(industry_id))
        response = query.limit(limit).execute()
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list published articles: {e}", extra={"industry_id": industry_id})
        raise


# ============================================================================
# Version history
# ============================================================================


def insert_version(
    article_id: UUID,
    content: str,
    edited_by: str,
    change_summary: str,
) -> dict[str, Any]:
    """
    Record a revision of article content.

    Args:
        article_id: Article UUID
        content: Full content at this revision
        edited_by: "ai" or "user"
        change_summary: Human readable description

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("article_versions")
            .insert(
                {
                    "article_id": str(article_id),
                    "content": content,
                    "edited_by": edited_by,
                    "change_summary": change_summary,
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from insert_version")

        version = response.data[0]
        logger.info(
            f"Saved {edited_by} version for article {article_id}",
            extra={"article_id": str(article_id), "version_id": version.get("id")},
        )
        return version

    except Exception as e:
        logger.error(f"Failed to save article version: {e}", extra={"article_id": str(article_id)})
        raise


def get_latest_version(article_id: UUID, change_summary_prefix: str | None = None) -> dict[str, Any] | None:
    """
    Most recent version row for an article, optionally filtered by summary prefix.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        query = supabase.table("article_versions").select("*").eq("article_id", str(article_id))
        if change_summary_prefix:
            query = query.like("change_summary", f"{change_summary_prefix}%")
        response = query.order("created_at", desc=True).limit(1).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get article version: {e}", extra={"article_id": str(article_id)})
        raise
