"""Vector similarity queries backed by pgvector match functions."""

from uuid import UUID

from article_engine.core.logging import get_logger
from article_engine.core.similarity import SimilarMatch, rank_matches
from article_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def find_similar_topics(
    embedding: list[float],
    threshold: float,
    limit: int,
) -> list[SimilarMatch]:
    """
    Saved topics similar to an embedding.

    Args:
        embedding: Query vector
        threshold: Minimum similarity
        limit: Max matches

    Returns:
        Matches at or above threshold, most similar first

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.rpc(
            "find_similar_topics",
            {
                "query_embedding": embedding,
                "similarity_threshold": threshold,
                "match_count": limit,
            },
        ).execute()

        matches = [SimilarMatch.from_row(row) for row in response.data or []]
        return rank_matches(matches, threshold, limit)

    except Exception as e:
        logger.error(f"Failed to find similar topics: {e}")
        raise


def find_similar_published_articles(
    embedding: list[float],
    threshold: float,
    limit: int,
    exclude_article_id: UUID | None = None,
) -> list[SimilarMatch]:
    """
    Published articles similar to an embedding.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.rpc(
            "find_similar_published_articles",
            {
                "query_embedding": embedding,
                "similarity_threshold": threshold,
                "match_count": limit,
                "exclude_article_id": str(exclude_article_id) if exclude_article_id else None,
            },
        ).execute()

        matches = [
            SimilarMatch.from_row(row)
            for row in response.data or []
            if not exclude_article_id or str(row.get("id")) != str(exclude_article_id)
        ]
        return rank_matches(matches, threshold, limit)

    except Exception as e:
        logger.error(
            f"Failed to find similar articles: {e}",
            extra={"exclude_article_id": str(exclude_article_id) if exclude_article_id else None},
        )
        raise
