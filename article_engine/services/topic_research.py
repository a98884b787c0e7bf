"""Research responses and promotion of unsaved topics to durable records."""

import asyncio
import time
from typing import Any

from article_engine.core.industries import DEFAULT_INDUSTRY, INDUSTRY_KEYWORDS, INDUSTRY_NAMES
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import (
    ResearchMetadata,
    ResearchRequest,
    ResearchResponse,
    SavedTopicRef,
    SaveTopicsRequest,
    make_temp_key,
    parse_topic_ref,
)
from article_engine.db.topics import get_or_create_industry, insert_topics
from article_engine.graphs.research_graph import run_research_graph
from article_engine.services.topic_dedup import ScreenedTopic

logger = get_logger(__name__)


class InvalidTopicSelectionError(ValueError):
    """Raised when a save request references topics it does not include."""


async def resolve_industry(slug: str | None) -> tuple[str, str]:
    """
    Industry (slug, id) for a request, created on first use.

    Raises:
        Exception: If database operation fails
    """
    slug = (slug or DEFAULT_INDUSTRY).strip().lower()
    industry_id = await asyncio.to_thread(
        get_or_create_industry,
        slug,
        INDUSTRY_NAMES.get(slug, slug.title()),
        INDUSTRY_KEYWORDS.get(slug, []),
    )
    return slug, industry_id


def _topic_payload(
    screened: ScreenedTopic,
    temp_key: str,
    *,
    mode: str,
    industry: str,
    search_keywords: list[str],
    article_type: str | None,
) -> dict[str, Any]:
    topic = screened.topic
    similar = [m.to_dict() for m in screened.result.matches]
    discovery = {
        "angle": topic.angle,
        "hook": topic.hook,
        "category": topic.category,
        "rationale": topic.rationale,
        "searchKeywords": search_keywords,
        "similarTopics": similar,
        "articleType": article_type,
        "industry": industry,
        "mode": mode,
    }
    sources = [s.model_dump(exclude_none=True) for s in topic.sources]

    return {
        "id": temp_key,
        "title": topic.title,
        "summary": topic.summary,
        "sources": sources,
        "relevanceScore": topic.relevance_score,
        "status": "pending",
        "metadata": {
            **discovery,
            "temporary": True,
            "_topicData": {
                "title": topic.title,
                "summary": topic.summary,
                "sources": sources,
                "relevance_score": topic.relevance_score,
                "embedding": topic.embedding,
                "metadata": discovery,
            },
        },
    }


async def research_topics(request: ResearchRequest) -> ResearchResponse:
    """
    Discover, embed and dedup topics. Nothing is persisted except the industry.

    Raises:
        Exception: If search planning, the model call or industry lookup fails
    """
    industry, _ = await resolve_industry(request.industry)
    state = await run_research_graph(request)

    batch = str(int(time.time() * 1000))
    article_type = request.article_type.value if request.article_type else None
    kept: list[ScreenedTopic] = state.get("kept", [])
    topics = [
        _topic_payload(
            screened,
            make_temp_key(batch, i),
            mode=request.mode,
            industry=industry,
            search_keywords=state.get("search_keywords", []),
            article_type=article_type,
        )
        for i, screened in enumerate(kept)
    ]
    duplicates = state.get("duplicates", [])

    return ResearchResponse(
        topics=topics,
        metadata=ResearchMetadata(
            industry=industry,
            mode=request.mode,
            keywords_used=state.get("search_keywords", []),
            topics_discovered=len(state.get("topics", [])),
            duplicates_filtered=len(duplicates),
            duplicates=duplicates,
        ),
    )


def _row_for_topic(topic: dict[str, Any], industry_id: str) -> dict[str, Any]:
    metadata = dict(topic.get("metadata") or {})
    data = metadata.get("_topicData") or {}
    discovery = data.get("metadata") or {k: v for k, v in metadata.items() if not k.startswith("_")}
    discovery.pop("temporary", None)

    return {
        "title": data.get("title") or topic.get("title"),
        "summary": data.get("summary") or topic.get("summary") or "",
        "sources": data.get("sources") or topic.get("sources") or [],
        "relevance_score": data.get("relevance_score", topic.get("relevanceScore", 0.0)),
        "embedding": data.get("embedding"),
        "industry_id": industry_id,
        "status": "pending",
        "metadata": discovery,
    }


async def save_topics(request: SaveTopicsRequest) -> list[dict[str, Any]]:
    """
    Persist the selected unsaved topics and return them with durable ids.

    Already-saved ids are skipped.

    Raises:
        InvalidTopicSelectionError: If an id is malformed or missing from ``topics``
        Exception: If database operation fails
    """
    by_id = {str(t.get("id")): t for t in request.topics}
    selected: list[dict[str, Any]] = []

    for raw_id in request.topic_ids:
        try:
            ref = parse_topic_ref(raw_id)
        except ValueError as e:
            raise InvalidTopicSelectionError(f"Invalid topic id: {raw_id}") from e
        if isinstance(ref, SavedTopicRef):
            logger.debug(f"Topic {ref} already saved, skipping")
            continue
        topic = by_id.get(raw_id)
        if topic is None:
            raise InvalidTopicSelectionError(f"Topic {raw_id} not included in request")
        selected.append(topic)

    if not selected:
        return []

    industry_slug = (selected[0].get("metadata") or {}).get("industry")
    _, industry_id = await resolve_industry(industry_slug)
    rows = [_row_for_topic(t, industry_id) for t in selected]
    saved = await asyncio.to_thread(insert_topics, rows)

    return [
        {
            "id": str(row["id"]),
            "ref": SavedTopicRef(id=row["id"]).model_dump(mode="json"),
            "title": row.get("title"),
            "summary": row.get("summary"),
            "sources": row.get("sources") or [],
            "relevanceScore": row.get("relevance_score"),
            "status": row.get("status", "pending"),
            "metadata": row.get("metadata") or {},
        }
        for row in saved
    ]

