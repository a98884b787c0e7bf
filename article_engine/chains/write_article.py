"""Prompt construction for drafting an article section by section."""

import re
from dataclasses import dataclass
from typing import Any

from article_engine.core.logging import get_logger
from article_engine.core.outline_budget import recommended_structure, section_word_band
from article_engine.core.schemas_outline import OutlineSection, OutlineStructure

logger = get_logger(__name__)

_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")

# ruff: noqa: E501
WRITER_SYSTEM_PROMPT = """You are an expert writer producing one part of a longer article.

Writing rules:
- Sound like a knowledgeable human, not an AI: vary sentence length, use concrete examples
- Never use em dashes
- Avoid filler phrases such as "In today's fast-paced world" or "It's important to note"
- Only link to URLs you are explicitly given. Do not invent any URLs.
- Use markdown formatting"""


@dataclass(frozen=True)
class AllowedLink:
    """An internal article the writer may link to."""

    article_id: str
    title: str
    url: str
    anchor_text: str | None = None


def build_allowed_links(
    structure: OutlineStructure,
    related_articles: list[dict[str, Any]],
) -> list[AllowedLink]:
    """
    Internal links the outline suggested that point at published articles.

    Suggestions whose target is not among ``related_articles`` are dropped.
    """
    by_id = {str(a["id"]): a for a in related_articles}
    allowed: dict[str, AllowedLink] = {}

    for section in structure.sections:
        for link in section.suggested_links:
            article = by_id.get(link.article_id)
            if not article or link.article_id in allowed:
                continue
            allowed[link.article_id] = AllowedLink(
                article_id=link.article_id,
                title=article.get("title", ""),
                url=f"/articles/{article.get('slug')}",
                anchor_text=link.anchor_text,
            )

    return list(allowed.values())


def strip_unlisted_links(text: str, allowed_urls: set[str]) -> tuple[str, list[str]]:
    """
    Unlink markdown links whose URL is not allowed, keeping the anchor text.

    Returns:
        (cleaned text, removed URLs)
    """
    removed: list[str] = []

    def _replace(match: re.Match) -> str:
        url = match.group(2)
        if url in allowed_urls:
            return match.group(0)
        removed.append(url)
        return match.group(1)

    cleaned = _MARKDOWN_LINK_RE.sub(_replace, text)
    if removed:
        logger.warning(f"Removed {len(removed)} unlisted links from draft", extra={"urls": removed[:5]})
    return cleaned, removed


def _sources_block(sources: list[dict[str, Any]]) -> str:
    if not sources:
        return "No external sources provided. Do not add external links."
    lines = ["External sources you may cite (link only to these exact URLs):"]
    lines += [f"- {s.get('title') or s.get('url')}: {s.get('url')}" for s in sources[:8]]
    return "\n".join(lines)


def _internal_links_block(links: list[AllowedLink]) -> str:
    if not links:
        return "No internal links available. Do not add internal links."
    lines = ["Internal articles you may link to (use only these, do not invent any):"]
    lines += [f'- "{link.title}": {link.url}' for link in links]
    return "\n".join(lines)


def hook_messages(structure: OutlineStructure, tone: str) -> list[dict[str, str]]:
    user = (
        f"Write the opening hook for the article \"{structure.title}\".\n\n"
        f"Hook idea: {structure.hook}\n"
        f"Tone: {tone}\n\n"
        "Length: 50-100 words, one or two paragraphs. No heading. Return only the hook text."
    )
    return [
        {"role": "system", "content": WRITER_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def section_messages(
    *,
    structure: OutlineStructure,
    section: OutlineSection,
    index: int,
    previous_sections: list[str],
    tone: str,
    sources: list[dict[str, Any]],
    internal_links: list[AllowedLink],
    custom_instructions: str | None = None,
) -> list[dict[str, str]]:
    """Messages for section ``index`` with the last two written sections as context."""
    low, high = section_word_band(section.word_target)
    key_points = "\n".join(f"- {p}" for p in section.key_points)

    parts = [
        f"Article: {structure.title}",
        f"Section {index + 1} of {len(structure.sections)}: {section.heading}",
        "",
        "Key points to cover:",
        key_points or "- Use your judgement",
        "",
        f"Word count: between {low} and {high} words (target {section.word_target}).",
        f"Suggested structure: {recommended_structure(section.word_target)}",
        f"Tone: {tone}",
        "",
        _sources_block(sources),
        "",
        _internal_links_block(internal_links),
    ]

    context = previous_sections[-2:]
    if context:
        parts += ["", "Previous sections (for continuity, do not repeat them):", "\n\n".join(context)]

    if custom_instructions:
        parts += ["", f"Additional instructions: {custom_instructions}"]

    parts += ["", f"Start with the heading \"## {section.heading}\" and return only the section markdown."]

    return [
        {"role": "system", "content": WRITER_SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(parts)},
    ]


def conclusion_messages(structure: OutlineStructure, full_article: str, tone: str) -> list[dict[str, str]]:
    user = (
        f"Write the conclusion for \"{structure.title}\".\n\n"
        f"Key takeaway: {structure.conclusion.summary}\n"
        f"Call to action: {structure.conclusion.call_to_action}\n"
        f"Tone: {tone}\n\n"
        f"Article so far (beginning):\n{full_article[:1000]}\n\n"
        "Length: 100-150 words. Start with \"## Conclusion\". Return only the conclusion markdown."
    )
    return [
        {"role": "system", "content": WRITER_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def assemble_article(title: str, hook: str, sections: list[str], conclusion: str = "") -> str:
    """Join drafted parts into the stored markdown."""
    body = f"# {title}\n\n{hook}\n\n" + "\n\n".join(sections)
    if sections:
        body += "\n\n"
    return body + conclusion
