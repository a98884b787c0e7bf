"""Topic database operations."""

from typing import Any
from uuid import UUID

from article_engine.core.logging import get_logger
from article_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_topic(topic_id: UUID) -> dict[str, Any] | None:
    """
    Get a topic by ID.

    Args:
        topic_id: Topic UUID

    Returns:
        Topic dict or None if not found

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table("topics").select("*").eq("id", str(topic_id)).limit(1).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get topic {topic_id}: {e}", extra={"topic_id": str(topic_id)})
        raise


def insert_topics(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Insert topics and return the stored rows with durable ids.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table("topics").insert(rows).execute()
        saved = response.data or []
        logger.info(f"Saved {len(saved)} topics", extra={"count": len(saved)})
        return saved

    except Exception as e:
        logger.error(f"Failed to insert topics: {e}", extra={"count": len(rows)})
        raise


def update_topic_status(topic_id: UUID, status: str) -> None:
    """
    Set topic status (pending, approved, rejected, used).

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        supabase.table("topics").update({"status": status}).eq("id", str(topic_id)).execute()
        logger.info(f"Topic {topic_id} marked {status}", extra={"topic_id": str(topic_id)})

    except Exception as e:
        logger.error(f"Failed to update topic status: {e}", extra={"topic_id": str(topic_id)})
        raise


def get_or_create_industry(slug: str, name: str, keywords: list[str]) -> str:
    """
    Get the industry id for a slug, creating the row when missing.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        existing = supabase.table("industries").select("id").eq("slug", slug).limit(1).execute()
        if existing.data:
            return str(existing.data[0]["id"])

        created = (
            supabase.table("industries")
            .insert({"name": name, "slug": slug, "keywords": keywords})
            .execute()
        )
        if not created.data:
            raise ValueError("No data returned from industry insert")

        logger.info(f"Created industry {slug}", extra={"industry": slug})
        return str(created.data[0]["id"])

    except Exception as e:
        logger.error(f"Failed to resolve industry {slug}: {e}", extra={"industry": slug})
        raise


def list_topic_titles(
    statuses: list[str],
    industry_id: str | None = None,
    limit: int = 50,
) -> list[str]:
    """
    Titles of topics in the given statuses, optionally scoped to one industry.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        query = supabase.table("topics").select("title").in_("status", statuses)
        if industry_id:
            query = query.eq("industry_id", industry_id)
        response = query.limit(limit).execute()
        return [row["title"] for row in response.data or [] if row.get("title")]

    except Exception as e:
        logger.error(f"Failed to list topic titles: {e}", extra={"industry_id": industry_id})
        raise
