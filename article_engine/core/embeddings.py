"""OpenAI embeddings generation with validation."""

import asyncio
import re

from openai import OpenAI

from article_engine.core.config import get_settings
from article_engine.core.errors import UpstreamError
from article_engine.core.logging import get_logger

logger = get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def _get_client() -> OpenAI:
    """Get OpenAI client instance."""
    settings = get_settings()
    return OpenAI(api_key=settings.OPENAI_API_KEY)


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def _request_embeddings(client: OpenAI, model: str, batch: list[str]) -> list[list[float]]:
    settings = get_settings()
    try:
        response = client.embeddings.create(model=model, input=batch)
    except Exception as e:
        logger.error(f"Failed to generate embeddings: {e}", extra={"count": len(batch)})
        raise UpstreamError(f"Embedding request failed: {e}") from e

    embeddings = []
    for i, embedding_obj in enumerate(response.data):
        embedding = embedding_obj.embedding

        # Validate dimension
        if len(embedding) != settings.EMBEDDING_DIM:
            raise ValueError(
                f"Embedding dimension mismatch for text {i}: "
                f"expected {settings.EMBEDDING_DIM}, got {len(embedding)}"
            )

        embeddings.append(embedding)
    return embeddings


def embed_text(text: str) -> list[float]:
    """
    Generate a single embedding.

    Args:
        text: Text to embed; whitespace is normalized first

    Returns:
        Embedding vector of EMBEDDING_DIM floats

    Raises:
        ValueError: If text is empty after normalization or dimension mismatches
        UpstreamError: If the OpenAI call fails
    """
    cleaned = normalize_text(text or "")
    if not cleaned:
        raise ValueError("Cannot generate embedding for empty text")

    settings = get_settings()
    return _request_embeddings(_get_client(), settings.EMBEDDING_MODEL, [cleaned])[0]


def embed_texts(texts: list[str]) -> list[list[float]]:
    """
    Generate embeddings for a list of texts using OpenAI.

    Empty strings are dropped before the request, so the result can be
    shorter than the input.

    Args:
        texts: List of text strings to embed

    Returns:
        List of embedding vectors (each vector is list of floats)

    Raises:
        ValueError: If embedding dimension doesn't match expected EMBEDDING_DIM
        UpstreamError: If OpenAI API call fails
    """
    cleaned = [normalize_text(t) for t in texts if t and t.strip()]
    if not cleaned:
        return []

    settings = get_settings()
    client = _get_client()
    batch_size = settings.EMBEDDING_BATCH_SIZE

    embeddings: list[list[float]] = []
    for start in range(0, len(cleaned), batch_size):
        batch = cleaned[start : start + batch_size]
        embeddings.extend(_request_embeddings(client, settings.EMBEDDING_MODEL, batch))

    logger.info(
        f"Generated {len(embeddings)} embeddings using {settings.EMBEDDING_MODEL}",
        extra={"model": settings.EMBEDDING_MODEL, "count": len(embeddings)},
    )

    return embeddings


async def embed_text_async(text: str) -> list[float]:
    """Async wrapper around embed_text using thread pool."""
    return await asyncio.to_thread(embed_text, text)


async def embed_texts_async(texts: list[str]) -> list[list[float]]:
    """Async wrapper around embed_texts using thread pool."""
    return await asyncio.to_thread(embed_texts, texts)


def article_embedding_text(title: str, excerpt: str | None, content: str | None) -> str:
    """Build the text used to embed an article: title, excerpt and the first 2000 chars."""
    parts = [title or "", excerpt or "", (content or "")[:2000]]
    return "\n\n".join(p for p in parts if p)
