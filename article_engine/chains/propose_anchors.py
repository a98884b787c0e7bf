"""LLM chain proposing anchor text for internal links."""

import json
from typing import Any

from article_engine.core.config import get_settings
from article_engine.core.llm import parse_llm_json_any
from article_engine.core.logging import get_logger
from article_engine.core.schemas_articles import LinkCandidate
from article_engine.core.streaming_llm import complete_chat

logger = get_logger(__name__)

# ruff: noqa: E501
ANCHOR_SYSTEM_PROMPT = """You are an SEO editor adding internal links to an article.

Rules for each link:
1. anchorText MUST appear VERBATIM in the article (exact words, any case)
2. The anchor reads naturally in its sentence
3. Anchors are 3-6 words long
4. Never place an anchor inside a heading
5. Spread links across the article, not clustered in one paragraph
6. Each link adds value for the reader
7. The surrounding context matches the target article's subject

Return JSON: {"suggestions": [{"anchorText": "...", "targetArticleId": "...", "relevanceScore": 0.0-1.0, "reason": "..."}]}"""


def build_messages(
    *,
    title: str,
    content: str,
    candidates: list[LinkCandidate],
    min_links: int,
    max_links: int,
    max_chars: int,
) -> list[dict[str, str]]:
    numbered = "\n".join(
        f"{i + 1}. id={c.id} | {c.title} | {c.url}" + (f" | {c.excerpt}" if c.excerpt else "")
        for i, c in enumerate(candidates)
    )
    user = (
        f"Suggest between {min_links} and {max_links} internal links for this article.\n\n"
        f"Candidate target articles:\n{numbered}\n\n"
        f"Article title: {title}\n\n"
        f"Article content:\n{content[:max_chars]}"
    )
    return [
        {"role": "system", "content": ANCHOR_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def parse_suggestions(raw_output: str) -> list[dict[str, Any]]:
    """
    Parse ``{"suggestions": [...]}`` or a bare list into normalized dicts.

    Items without anchor text or target id are dropped; relevance and reason
    fall back to defaults.
    """
    try:
        parsed: Any = parse_llm_json_any(raw_output)
    except json.JSONDecodeError as e:
        logger.warning(f"Anchor output was not JSON: {e}")
        return []

    if isinstance(parsed, dict):
        parsed = parsed.get("suggestions", [])
    if not isinstance(parsed, list):
        return []

    suggestions = []
    for item in parsed:
        if not isinstance(item, dict):
            continue
        anchor = (item.get("anchorText") or item.get("anchor_text") or "").strip()
        target = item.get("targetArticleId") or item.get("target_article_id")
        if not anchor or not target:
            continue
        try:
            score = float(item.get("relevanceScore", 0.8))
        except (TypeError, ValueError):
            score = 0.8
        suggestions.append(
            {
                "anchor_text": anchor,
                "target_article_id": str(target),
                "relevance_score": max(0.0, min(1.0, score)),
                "reason": item.get("reason") or "Contextually relevant",
            }
        )
    return suggestions


async def propose_anchors(
    *,
    title: str,
    content: str,
    candidates: list[LinkCandidate],
    min_links: int,
    max_links: int,
) -> list[dict[str, Any]]:
    """
    Ask the linking model for anchor placements against ``candidates``.

    Raises:
        UpstreamError: If the model call fails
    """
    settings = get_settings()
    messages = build_messages(
        title=title,
        content=content,
        candidates=candidates,
        min_links=min_links,
        max_links=max_links,
        max_chars=settings.LINK_ARTICLE_CHARS,
    )
    raw = await complete_chat(
        messages,
        model=settings.LINKING_MODEL,
        temperature=0.3,
        json_mode=True,
    )
    suggestions = parse_suggestions(raw)
    logger.info(
        f"Linking model proposed {len(suggestions)} anchors",
        extra={"candidate_count": len(candidates)},
    )
    return suggestions[:max_links]
