"""Search-free topic brainstorming."""

import asyncio
import time

from article_engine.chains.brainstorm_topics import brainstorm_ideas, idea_to_topic_row
from article_engine.core.industries import INDUSTRY_KEYWORDS
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import (
    BrainstormMetadata,
    BrainstormRequest,
    BrainstormResponse,
    make_temp_key,
)
from article_engine.db.topics import insert_topics, list_topic_titles
from article_engine.services.topic_research import resolve_industry

logger = get_logger(__name__)

COVERED_STATUSES = ["approved", "used"]
AVOID_LIMIT_INDUSTRY = 50
AVOID_LIMIT_ALL = 100


async def _covered_titles(industry_id: str | None) -> list[str]:
    limit = AVOID_LIMIT_INDUSTRY if industry_id else AVOID_LIMIT_ALL
    try:
        return await asyncio.to_thread(list_topic_titles, COVERED_STATUSES, industry_id, limit)
    except Exception as e:
        logger.warning(f"Could not load covered topics, brainstorming without them: {e}")
        return []


async def brainstorm_topics(request: BrainstormRequest) -> BrainstormResponse:
    """
    Generate topic ideas from model reasoning and save them as pending topics.

    Titles already approved or used are passed to the model as topics to
    avoid: scoped to the industry when one is given, across all industries
    otherwise. When the save fails the ideas are returned with temporary ids
    and ``saved`` false.

    Raises:
        Exception: If industry lookup or the model call fails
    """
    industry, industry_id = await resolve_industry(request.industry)
    if request.industry:
        keywords = list(dict.fromkeys([*INDUSTRY_KEYWORDS.get(industry, []), *request.keywords]))
        avoid = await _covered_titles(industry_id)
    else:
        keywords = list(request.keywords)
        avoid = await _covered_titles(None)

    ideas = await brainstorm_ideas(
        industry=industry,
        keywords=keywords,
        article_type=request.article_type,
        target_audience=request.target_audience,
        content_goals=request.content_goals,
        avoid_titles=avoid,
        count=request.count,
    )
    rows = [idea_to_topic_row(idea, industry_id) for idea in ideas]
    metadata = BrainstormMetadata(
        industry=industry,
        topics_generated=len(ideas),
        avoided_topics_count=len(avoid),
        keywords_used=keywords,
    )

    try:
        saved = await asyncio.to_thread(insert_topics, rows)
    except Exception as e:
        logger.error(f"Failed to save brainstormed topics: {e}", extra={"count": len(rows)})
        batch = str(int(time.time() * 1000))
        topics = [{**row, "id": make_temp_key(batch, i)} for i, row in enumerate(rows)]
        return BrainstormResponse(topics=topics, saved=False, error=str(e), metadata=metadata)

    logger.info(f"Brainstormed {len(saved)} topics", extra={"industry": industry})
    return BrainstormResponse(topics=saved, metadata=metadata)
