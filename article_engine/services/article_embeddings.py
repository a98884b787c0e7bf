"""Article embedding maintenance."""

import asyncio
from uuid import UUID

from article_engine.core.embeddings import article_embedding_text, embed_text_async
from article_engine.core.logging import get_logger
from article_engine.db.articles import update_article

logger = get_logger(__name__)


async def refresh_article_embedding(
    article_id: UUID | str,
    title: str,
    excerpt: str | None,
    content: str | None,
) -> list[float]:
    """
    Regenerate and store an article's embedding from its current text.

    Raises:
        UpstreamError: If the embedding provider fails
        Exception: If the store write fails
    """
    embedding = await embed_text_async(article_embedding_text(title, excerpt, content))
    await asyncio.to_thread(update_article, UUID(str(article_id)), {"embedding": embedding})
    logger.info(f"Refreshed embedding for article {article_id}", extra={"article_id": str(article_id)})
    return embedding
