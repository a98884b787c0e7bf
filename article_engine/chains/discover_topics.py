"""LLM chain for discovering article topics from search results."""

import json
from datetime import date
from typing import Any

from pydantic import ValidationError

from article_engine.core.config import get_settings
from article_engine.core.llm import get_llm, parse_llm_json_any
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import Source, TopicCandidate

logger = get_logger(__name__)

# ruff: noqa: E501
TYPE_TITLE_GUIDELINES = {
    "blog": "Title format: Engaging, conversational, often question-based or benefit-focused. Examples: 'Why [Topic] Is Changing Everything', '[Topic] Trends to Watch'",
    "listicle": "Title format: MUST start with a number followed by the topic. Examples: '7 [Topic] Trends to Watch', '10 Ways [Topic] Will Transform Business'",
    "technical": "Title format: Specific and technical, names technologies or methods. Examples: 'Building [System] with [Technology]: A Complete Guide'",
    "news": "Title format: Timely and factual. Examples: '[Company] Announces [News] in Major Industry Shift', 'Latest [Topic] Developments: What to Expect'",
    "opinion": "Title format: Takes a stance, often 'why' or 'how'. Examples: 'Why [Topic] Is Overhyped (And What Actually Matters)'",
    "tutorial": "Title format: Action-oriented 'how to' language. Examples: 'How to [Achieve Goal]: A Step-by-Step Guide'",
    "affiliate": "Title format: Comparison or recommendation. Examples: '[Product A] vs [Product B]: Which Is Better?', 'The Best [Category] Tools: Our Top 5 Picks'",
    "personal": "Title format: First-person experience with concrete takeaways. Examples: 'My Journey with [Topic]: What I Learned'",
}

DISCOVER_PROMPT = """You are a research agent specialized in discovering DIVERSE, engaging article topics that read as genuinely human-written.

{industry_section}
Keywords: {keywords}

{type_guidelines}

Spread topics across categories: future-forward, evergreen, creative, practical, business.

Return a JSON object {{"topics": [...]}} with exactly {topic_count} items. Each item:
{{
  "title": "SEO-friendly title",
  "summary": "2-3 sentence summary",
  "angle": "the unique perspective",
  "hook": "a compelling opening hook for the article",
  "relevanceScore": 0.0-1.0,
  "category": "future-forward|evergreen|creative|practical|business"
}}"""

DIRECT_PROMPT = """You are a research agent specialized in discovering trending and newsworthy topics.

{industry_section}
Keywords: {keywords}

{type_guidelines}

Identify the single most relevant, timely topic. Return a JSON object {{"topics": [ONE item]}} where the item has: title, summary, angle, hook, relevanceScore (0.0-1.0)."""

PROMPT_MODE_PROMPT = """You are a content strategist. The user described what they want to write about:

"{prompt_input}"

{type_guidelines}

Propose {topic_count} distinct article options that satisfy the request. Return a JSON object {{"topics": [...]}}; each item has: title, summary, angle, hook, relevanceScore (0.0-1.0), rationale (why this would make a good article)."""


def _type_guidelines(article_type: str | None) -> str:
    today = date.today().strftime("%B %d, %Y")
    base = f"CURRENT DATE: {today}. Focus on recent developments, emerging trends and what is coming next."
    if not article_type:
        return f"{base}\nGenerate compelling, SEO-optimized titles."
    guideline = TYPE_TITLE_GUIDELINES.get(article_type, TYPE_TITLE_GUIDELINES["blog"])
    return f"{base}\nArticle Type: {article_type}\n{guideline}"


def build_messages(
    *,
    mode: str,
    industry: str | None,
    keywords: list[str],
    article_type: str | None,
    sources: list[Source],
    topic_count: int,
    prompt_input: str | None = None,
) -> list[dict[str, str]]:
    """Build the chat messages for a research mode."""
    industry_section = (
        f"Industry: {industry}" if industry else "Industry: Not specified (searching based on keywords only)"
    )
    guidelines = _type_guidelines(article_type)
    source_json = json.dumps([s.model_dump(exclude_none=True) for s in sources[:20]], indent=2)

    if mode == "prompt":
        system = PROMPT_MODE_PROMPT.format(
            prompt_input=prompt_input or "",
            type_guidelines=guidelines,
            topic_count=topic_count,
        )
        user = (
            f"Based on the request and these sources, generate {topic_count} article options:\n\n{source_json}"
            if sources
            else f"Generate {topic_count} article options with a rationale for each."
        )
    elif mode == "direct":
        system = DIRECT_PROMPT.format(
            industry_section=industry_section,
            keywords=", ".join(keywords),
            type_guidelines=guidelines,
        )
        user = f"Based on these sources, identify 1 highly relevant topic:\n\n{source_json}"
    else:
        system = DISCOVER_PROMPT.format(
            industry_section=industry_section,
            keywords=", ".join(keywords),
            type_guidelines=guidelines,
            topic_count=topic_count,
        )
        user = f"Based on these sources, identify {topic_count} DIVERSE topics:\n\n{source_json}"

    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


def parse_topics(raw_output: str) -> list[TopicCandidate]:
    """Parse a topics payload (bare list or {"topics": [...]}), dropping invalid items."""
    try:
        parsed: Any = parse_llm_json_any(raw_output)
    except json.JSONDecodeError as e:
        logger.warning(f"Research output was not JSON: {e}")
        return []

    if isinstance(parsed, dict):
        parsed = parsed.get("topics", [])
    if not isinstance(parsed, list):
        return []

    topics = []
    for item in parsed:
        if not isinstance(item, dict):
            continue
        try:
            topics.append(TopicCandidate.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Dropping malformed topic: {e.errors()[0].get('msg')}")
    return topics


def match_sources_to_topic(topic: TopicCandidate, sources: list[Source], limit: int = 5) -> list[Source]:
    """Sources whose title/snippet share keywords with the topic title; first three as fallback."""
    keywords = [w for w in topic.title.lower().split() if len(w) > 3]
    matched: list[Source] = []

    for source in sources:
        text = f"{source.title or ''} {source.snippet or ''}".lower()
        hits = sum(1 for kw in keywords if kw in text)
        if hits >= 2 or (hits == 1 and len(keywords) <= 2):
            matched.append(source)
            if len(matched) >= limit:
                break

    return matched or sources[:3]


async def discover_topics(
    *,
    mode: str,
    industry: str | None,
    keywords: list[str],
    article_type: str | None,
    sources: list[Source],
    topic_count: int,
    prompt_input: str | None = None,
) -> list[TopicCandidate]:
    """
    Ask the research model for topic candidates.

    Returns:
        Parsed candidates with sources attached

    Raises:
        Exception: If the model call fails
    """
    settings = get_settings()
    llm = get_llm(model=settings.RESEARCH_MODEL, temperature=settings.RESEARCH_TEMPERATURE)
    messages = build_messages(
        mode=mode,
        industry=industry,
        keywords=keywords,
        article_type=article_type,
        sources=sources,
        topic_count=topic_count,
        prompt_input=prompt_input,
    )

    logger.info(
        f"Calling {settings.RESEARCH_MODEL} for {mode} research",
        extra={"source_count": len(sources), "topic_count": topic_count},
    )

    response = await llm.ainvoke(messages)
    content = response.content if isinstance(response.content, str) else json.dumps(response.content)
    topics = parse_topics(content)

    if sources:
        for topic in topics:
            if not topic.sources:
                topic.sources = match_sources_to_topic(topic, sources)

    logger.info(f"Research model proposed {len(topics)} topics", extra={"mode": mode})
    return topics
