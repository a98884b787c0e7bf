"""LLM chain for brainstorming topic ideas without web search."""

import json
import re
from typing import Any

from article_engine.core.config import get_settings
from article_engine.core.industries import keywords_from_prompt
from article_engine.core.llm import get_llm, parse_llm_json_any
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import BrainstormIdea

logger = get_logger(__name__)

BRAINSTORM_SOURCE_PREFIX = "brainstorm://hook-"
MAX_TARGET_KEYWORDS = 5
MAX_HOOKS = 3
MAX_AVOID_TITLES = 50

# ruff: noqa: E501
BRAINSTORM_PROMPT = """You are an expert content strategist and SEO specialist. Generate {count} unique, compelling article topic ideas for the {industry} industry.

Requirements:
- Article Type: {article_type}
- Target Audience: {target_audience}
{optional_lines}
For each topic provide:
1. title: compelling, SEO-friendly (60-70 characters)
2. angle: the unique perspective that sets it apart
3. summary: 2-3 sentences on the article's value
4. seoValue: 1-10, search potential against competition
5. uniquenessScore: 1-10, how fresh the angle is
6. targetKeywords: 3-5 primary keywords
7. estimatedSearchVolume: low, medium or high
8. contentType: listicle, how-to, analysis, case-study, opinion, comparison, ...
9. hooks: 3 opening hooks

Prioritise ideas that score high on BOTH seoValue and uniquenessScore. Prefer evergreen, actionable topics and gaps in existing coverage over purely reactive trends.

Return ONLY a JSON array of {count} objects with the keys above."""


def build_brainstorm_messages(
    *,
    industry: str,
    keywords: list[str],
    article_type: str | None,
    target_audience: str | None,
    content_goals: list[str],
    avoid_titles: list[str],
    count: int,
) -> list[dict[str, str]]:
    optional = []
    if content_goals:
        optional.append(f"- Content Goals: {', '.join(content_goals)}")
    if keywords:
        optional.append(f"- Focus Keywords: {', '.join(keywords)}")
    if avoid_titles:
        optional.append(f"- AVOID these topics (already covered): {'; '.join(avoid_titles[:MAX_AVOID_TITLES])}")

    system = BRAINSTORM_PROMPT.format(
        count=count,
        industry=industry,
        article_type=article_type or "blog",
        target_audience=target_audience or "general audience",
        optional_lines="\n".join(optional) + ("\n" if optional else ""),
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": f"Generate {count} diverse, high-quality topic ideas now."},
    ]


def _score(value: Any) -> int:
    try:
        score = round(float(value))
    except (TypeError, ValueError):
        return 5
    return min(10, max(1, score or 5))


def _strings(value: Any, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()][:limit]


def _idea_from_item(item: dict[str, Any]) -> BrainstormIdea:
    volume = item.get("estimatedSearchVolume")
    return BrainstormIdea(
        title=str(item.get("title") or "Untitled").strip(),
        angle=str(item.get("angle") or ""),
        summary=str(item.get("summary") or ""),
        seo_value=_score(item.get("seoValue")),
        uniqueness_score=_score(item.get("uniquenessScore")),
        target_keywords=_strings(item.get("targetKeywords"), MAX_TARGET_KEYWORDS),
        estimated_search_volume=volume if volume in ("low", "medium", "high") else "medium",
        content_type=str(item.get("contentType") or "blog"),
        hooks=_strings(item.get("hooks"), MAX_HOOKS),
    )


_TITLE_LINE_RE = re.compile(r"(?:title|topic)\s*[:\-]\s*[\"']?([^\"'\n]+)", re.IGNORECASE)


def extract_ideas_from_text(content: str, industry: str) -> list[BrainstormIdea]:
    """Recover ideas from prose output by scanning for ``Title:`` lines; never empty."""
    ideas = []
    for match in _TITLE_LINE_RE.finditer(content):
        title = match.group(1).strip().rstrip(",")
        if not title:
            continue
        lowered = title.lower()
        ideas.append(
            BrainstormIdea(
                title=title,
                angle="Fresh perspective",
                summary=f"Exploring {lowered} in the context of {industry}",
                seo_value=7,
                uniqueness_score=8,
                target_keywords=keywords_from_prompt(title, limit=MAX_TARGET_KEYWORDS),
                hooks=[f"What you need to know about {lowered}"],
            )
        )

    if not ideas:
        name = industry.title()
        ideas.append(
            BrainstormIdea(
                title=f"Innovative Strategies for {name}",
                angle="Fresh perspective on industry best practices",
                summary=f"A practical guide to modern approaches in {industry}",
                seo_value=7,
                uniqueness_score=7,
                target_keywords=[industry, "strategies", "guide"],
                content_type="guide",
                hooks=[f"Are you keeping up with the latest in {industry}?"],
            )
        )
    return ideas


def parse_ideas(raw_output: str, industry: str) -> list[BrainstormIdea]:
    """
    Parse brainstorm output (bare list or {"topics": [...]}).

    Scores are clamped to 1-10 and lists are capped; prose output falls back
    to :func:`extract_ideas_from_text`.
    """
    try:
        parsed: Any = parse_llm_json_any(raw_output)
    except json.JSONDecodeError as e:
        logger.warning(f"Brainstorm output was not JSON, extracting titles: {e}")
        return extract_ideas_from_text(raw_output, industry)

    if isinstance(parsed, dict):
        parsed = parsed.get("topics", parsed.get("ideas", []))
    if not isinstance(parsed, list):
        return extract_ideas_from_text(raw_output, industry)

    return [_idea_from_item(item) for item in parsed if isinstance(item, dict)]


def idea_to_topic_row(idea: BrainstormIdea, industry_id: str) -> dict[str, Any]:
    """Topic row for an idea; hooks become ``brainstorm://hook-N`` sources."""
    return {
        "title": idea.title,
        "summary": idea.summary,
        "industry_id": industry_id,
        "sources": [
            {"url": f"{BRAINSTORM_SOURCE_PREFIX}{i}", "title": hook, "snippet": idea.angle}
            for i, hook in enumerate(idea.hooks)
        ],
        "relevance_score": idea.relevance_score,
        "status": "pending",
        "metadata": {
            "angle": idea.angle,
            "seoValue": idea.seo_value,
            "uniquenessScore": idea.uniqueness_score,
            "targetKeywords": idea.target_keywords,
            "estimatedSearchVolume": idea.estimated_search_volume,
            "contentType": idea.content_type,
            "hooks": idea.hooks,
            "generatedBy": "brainstorm",
        },
    }


async def brainstorm_ideas(
    *,
    industry: str,
    keywords: list[str],
    article_type: str | None,
    target_audience: str | None,
    content_goals: list[str],
    avoid_titles: list[str],
    count: int,
) -> list[BrainstormIdea]:
    """
    Ask the brainstorm model for at most ``count`` ideas.

    Raises:
        Exception: If the model call fails
    """
    settings = get_settings()
    llm = get_llm(model=settings.BRAINSTORM_MODEL, temperature=settings.BRAINSTORM_TEMPERATURE)
    messages = build_brainstorm_messages(
        industry=industry,
        keywords=keywords,
        article_type=article_type,
        target_audience=target_audience,
        content_goals=content_goals,
        avoid_titles=avoid_titles,
        count=count,
    )

    logger.info(
        f"Calling {settings.BRAINSTORM_MODEL} for brainstorm",
        extra={"industry": industry, "count": count, "avoided": len(avoid_titles)},
    )

    response = await llm.ainvoke(messages)
    content = response.content if isinstance(response.content, str) else json.dumps(response.content)
    return parse_ideas(content, industry)[:count]
