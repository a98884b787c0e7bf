"""Internal link and publication lookups."""

from typing import Any
from uuid import UUID

from article_engine.core.logging import get_logger
from article_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def upsert_article_links(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Record inserted links, one row per (source, target, anchor).

    Raises:
        Exception: If database operation fails
    """
    if not rows:
        return []

    supabase = get_supabase()

    try:
        response = (
            supabase.table("article_links")
            .upsert(rows, on_conflict="source_article_id,target_article_id,anchor_text")
            .execute()
        )
        logger.info(f"Saved {len(rows)} article links", extra={"count": len(rows)})
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to save article links: {e}", extra={"count": len(rows)})
        raise


def get_publishing_site(site_id: UUID) -> dict[str, Any] | None:
    """
    Get a publishing site (id, name, base_path).

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("publishing_sites")
            .select("id, name, base_path")
            .eq("id", str(site_id))
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get publishing site: {e}", extra={"site_id": str(site_id)})
        raise


def list_site_publications(site_id: UUID, article_ids: list[str]) -> list[dict[str, Any]]:
    """
    Publications of the given articles on a site (article_id, slug).

    Raises:
        Exception: If database operation fails
    """
    if not article_ids:
        return []

    supabase = get_supabase()

    try:
        response = (
            supabase.table("article_publications")
            .select("article_id, slug")
            .eq("publishing_site_id", str(site_id))
            .in_("article_id", article_ids)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list publications: {e}", extra={"site_id": str(site_id)})
        raise
