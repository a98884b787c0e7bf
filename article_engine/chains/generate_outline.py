"""Prompt construction and parsing for outline generation."""

import json
from typing import Any

from pydantic import ValidationError

from article_engine.core.llm import parse_llm_json_any
from article_engine.core.logging import get_logger
from article_engine.core.outline_budget import (
    ARTICLE_TYPE_CONFIG,
    ArticleType,
    TargetLength,
    allocate_word_targets,
    section_count,
    total_word_target,
)
from article_engine.core.schemas_outline import OutlineSection, OutlineStructure

logger = get_logger(__name__)

# ruff: noqa: E501
SYSTEM_PROMPT = """You are an expert content strategist who creates detailed article outlines.

Rules:
- Every section needs a clear, specific heading and 3-5 concrete key points
- The hook must make a reader want to continue past the first paragraph
- Only suggest internal links to articles from the provided list, using their exact ids
- Avoid generic filler headings such as "Introduction" or "Overview"
- Match the requested tone throughout

Return ONLY valid JSON with this structure:
{
  "title": "Final article title",
  "hook": "Opening hook paragraph idea",
  "sections": [
    {
      "heading": "Section heading",
      "keyPoints": ["point 1", "point 2", "point 3"],
      "wordTarget": 250,
      "suggestedLinks": [{"articleId": "id", "anchorText": "anchor"}]
    }
  ],
  "conclusion": {"summary": "Key takeaway", "callToAction": "What the reader should do next"},
  "seoKeywords": ["keyword 1", "keyword 2"]
}"""


def build_messages(
    *,
    topic: dict[str, Any],
    article_type: ArticleType,
    target_length: TargetLength,
    tone: str,
    related_articles: list[dict[str, Any]] | None = None,
) -> list[dict[str, str]]:
    """Build outline messages for a topic row."""
    total = total_word_target(target_length)
    sections = section_count(article_type, target_length)
    profile = ARTICLE_TYPE_CONFIG[article_type]
    metadata = topic.get("metadata") or {}

    lines = [
        f"Topic: {topic.get('title', '')}",
        f"Summary: {topic.get('summary') or ''}",
    ]
    if metadata.get("angle"):
        lines.append(f"Angle: {metadata['angle']}")
    if metadata.get("hook"):
        lines.append(f"Suggested hook: {metadata['hook']}")

    lines += [
        "",
        f"Article type: {article_type.value} ({profile.description})",
        f"Tone: {tone}",
        f"Total length: about {total} words across exactly {sections} sections",
    ]

    sources = topic.get("sources") or []
    if sources:
        lines += ["", "Sources:"]
        lines += [f"- {s.get('title') or s.get('url')}: {s.get('url')}" for s in sources[:8]]

    if related_articles:
        lines += ["", "Published articles available for internal links:"]
        lines += [f"- id={a['id']} title={a.get('title', '')}" for a in related_articles]

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(lines)},
    ]


def parse_outline(raw_output: str) -> OutlineStructure:
    """
    Parse the model's outline JSON, keeping whatever sections validate.

    A missing or non-JSON payload yields an "Untitled" outline with no sections.
    """
    try:
        parsed = parse_llm_json_any(raw_output)
    except json.JSONDecodeError as e:
        logger.warning(f"Outline output was not JSON: {e}")
        return OutlineStructure()

    if not isinstance(parsed, dict):
        return OutlineStructure()

    sections = []
    for item in parsed.get("sections") or []:
        if not isinstance(item, dict):
            continue
        try:
            sections.append(OutlineSection.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Dropping malformed outline section: {e.errors()[0].get('msg')}")

    try:
        structure = OutlineStructure.model_validate(
            {
                "title": parsed.get("title") or "Untitled",
                "hook": parsed.get("hook") or "",
                "sections": [],
                "conclusion": parsed.get("conclusion") or {},
                "seoKeywords": parsed.get("seoKeywords") or parsed.get("seo_keywords") or [],
            }
        )
    except ValidationError as e:
        logger.warning(f"Outline envelope invalid, keeping sections only: {e.errors()[0].get('msg')}")
        return OutlineStructure(title=parsed.get("title") or "Untitled", sections=sections)

    structure.sections = sections
    return structure


def apply_word_targets(structure: OutlineStructure, target_length: TargetLength) -> OutlineStructure:
    """Overwrite section word targets with the deterministic allocation."""
    targets = allocate_word_targets(total_word_target(target_length), len(structure.sections))
    for section, target in zip(structure.sections, targets):
        section.word_target = target
    return structure


def filter_suggested_links(structure: OutlineStructure, allowed_ids: set[str]) -> OutlineStructure:
    """Drop suggested links that point at articles outside ``allowed_ids``."""
    for section in structure.sections:
        section.suggested_links = [link for link in section.suggested_links if link.article_id in allowed_ids]
    return structure
