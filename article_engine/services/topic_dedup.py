"""Embedding-based duplicate detection for researched topics."""

import asyncio
from dataclasses import dataclass, field

from article_engine.core.config import get_settings
from article_engine.core.embeddings import embed_texts_async
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import DuplicateInfo, TopicCandidate
from article_engine.core.similarity import DedupResult, DedupThresholds, DedupVerdict, classify_candidate
from article_engine.db.similarity import find_similar_topics

logger = get_logger(__name__)


def topic_embedding_text(topic: TopicCandidate) -> str:
    return f"{topic.title}. {topic.summary}"


async def embed_topics(topics: list[TopicCandidate]) -> list[TopicCandidate]:
    """
    Attach embeddings to topics in one batch.

    If embedding fails, topics are returned without embeddings.
    """
    if not topics:
        return topics
    try:
        vectors = await embed_texts_async([topic_embedding_text(t) for t in topics])
    except Exception as e:
        logger.warning(f"Topic embedding failed, skipping dedup: {e}", extra={"count": len(topics)})
        return topics

    if len(vectors) != len(topics):
        logger.warning(f"Embedded {len(vectors)} of {len(topics)} topics, skipping dedup")
        return topics

    for topic, vector in zip(topics, vectors):
        topic.embedding = vector
    return topics


@dataclass
class ScreenedTopic:
    topic: TopicCandidate
    result: DedupResult


@dataclass
class DedupOutcome:
    kept: list[ScreenedTopic] = field(default_factory=list)
    duplicates: list[DuplicateInfo] = field(default_factory=list)


async def screen_topic(topic: TopicCandidate, thresholds: DedupThresholds, match_count: int) -> DedupResult:
    """Classify one topic against saved topics. Lookup failures pass it through."""
    if not topic.embedding:
        return classify_candidate(has_embedding=False, matches=[], thresholds=thresholds)
    try:
        matches = await asyncio.to_thread(find_similar_topics, topic.embedding, thresholds.surface, match_count)
    except Exception as e:
        logger.warning(f"Similar topic lookup failed for '{topic.title}': {e}")
        return DedupResult(verdict=DedupVerdict.UNIQUE, matches=[])
    return classify_candidate(has_embedding=True, matches=matches, thresholds=thresholds)


async def dedup_topics(topics: list[TopicCandidate]) -> DedupOutcome:
    """Drop definite duplicates of saved topics; keep and annotate near duplicates."""
    settings = get_settings()
    thresholds = DedupThresholds(
        surface=settings.DEDUP_SURFACE_THRESHOLD,
        exclude=settings.DEDUP_EXCLUDE_THRESHOLD,
    )
    results = await asyncio.gather(
        *(screen_topic(t, thresholds, settings.DEDUP_MATCH_COUNT) for t in topics)
    )

    outcome = DedupOutcome()
    for topic, result in zip(topics, results):
        if result.is_duplicate:
            nearest = result.nearest
            outcome.duplicates.append(
                DuplicateInfo(
                    title=topic.title,
                    similar_to=nearest.title if nearest else None,
                    similarity=nearest.similarity if nearest else None,
                )
            )
            logger.info(
                f"Filtered duplicate topic '{topic.title}'",
                extra={"similarity": nearest.similarity if nearest else None},
            )
        else:
            outcome.kept.append(ScreenedTopic(topic=topic, result=result))

    return outcome
