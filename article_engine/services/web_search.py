"""Tavily web search for topic research."""

import asyncio
from typing import Any
from urllib.parse import urlparse

from tavily import AsyncTavilyClient

from article_engine.core.config import get_settings
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import Source

logger = get_logger(__name__)


def _to_source(item: dict[str, Any]) -> Source | None:
    url = item.get("url")
    if not url:
        return None
    return Source(
        url=url,
        title=item.get("title"),
        snippet=(item.get("content") or "")[:500] or None,
        date=item.get("published_date"),
        domain=urlparse(url).netloc or None,
    )


def _client(api_key: str) -> AsyncTavilyClient:
    return AsyncTavilyClient(api_key=api_key)


async def search(query: str, client: AsyncTavilyClient | None = None) -> list[Source]:
    """
    Run one Tavily search.

    Args:
        query: Search query
        client: Optional shared client (one is created from settings otherwise)

    Returns:
        Sources for the query

    Raises:
        ValueError: If TAVILY_API_KEY not configured
        Exception: If the Tavily request fails
    """
    settings = get_settings()

    if not settings.TAVILY_API_KEY:
        raise ValueError("TAVILY_API_KEY not configured")

    client = client or _client(settings.TAVILY_API_KEY)
    response = await client.search(
        query,
        search_depth="basic",
        max_results=settings.SEARCH_MAX_RESULTS,
        include_answer=False,
        include_raw_content=False,
        timeout=settings.SEARCH_TIMEOUT_S,
    )

    results = response.get("results", [])
    sources = [s for s in (_to_source(item) for item in results) if s]
    logger.info(f"Search '{query}' returned {len(sources)} sources")
    return sources


async def search_safe(query: str, client: AsyncTavilyClient | None = None) -> list[Source]:
    """
    Search with error handling - returns [] on failure.

    Use this when search is optional and failure should not break research.
    """
    try:
        return await search(query, client)
    except ValueError as e:
        logger.warning(f"Search not configured: {e}")
        return []
    except Exception as e:
        logger.warning(f"Search failed for '{query}': {e}")
        return []


async def search_many(queries: list[str]) -> list[Source]:
    """Run queries concurrently and merge results, dropping duplicate URLs."""
    settings = get_settings()
    if not queries or not settings.TAVILY_API_KEY:
        if queries:
            logger.info("TAVILY_API_KEY not set, researching without web sources")
        return []

    client = _client(settings.TAVILY_API_KEY)
    batches = await asyncio.gather(*(search_safe(q, client) for q in queries))

    seen: set[str] = set()
    merged: list[Source] = []
    for batch in batches:
        for source in batch:
            if source.url in seen:
                continue
            seen.add(source.url)
            merged.append(source)
    return merged
