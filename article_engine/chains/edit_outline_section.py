"""LLM chain for rewriting a single outline section."""

import json
from typing import Any

from article_engine.core.config import get_settings
from article_engine.core.llm import parse_llm_json_any
from article_engine.core.logging import get_logger
from article_engine.core.schemas_outline import OutlineSection, SuggestedLink
from article_engine.core.streaming_llm import complete_chat

logger = get_logger(__name__)

SECTION_EDIT_TEMPERATURE = 0.7

# ruff: noqa: E501
SECTION_EDIT_PROMPT = """You are an expert content strategist. Rewrite one section of an article outline following the user's instruction.

Article Context:
- Title: {title}
- Hook: {hook}
- Type: {article_type}
- Target Length: {target_length}
- Tone: {tone}
- Other sections: {other_headings}

Current Section to Rewrite:
- Heading: {heading}
- Key Points: {key_points}
- Word Target: {word_target}

User Instruction: {instruction}

Return a JSON object with this exact structure:
{{
  "heading": "Updated section heading",
  "keyPoints": ["point 1", "point 2", "point 3"],
  "wordTarget": {word_target},
  "suggestedLinks": {suggested_links}
}}

Keep the same wordTarget, match the article's tone, and make the section flow with its neighbours. Return ONLY valid JSON."""


def section_edit_messages(
    outline: dict[str, Any],
    section_index: int,
    current: OutlineSection,
    instruction: str,
) -> list[dict[str, str]]:
    structure = outline.get("structure") or {}
    others = [
        s.get("heading", "")
        for i, s in enumerate(structure.get("sections") or [])
        if i != section_index and isinstance(s, dict)
    ]
    links = [link.model_dump(by_alias=True) for link in current.suggested_links]
    system = SECTION_EDIT_PROMPT.format(
        title=structure.get("title", ""),
        hook=structure.get("hook", ""),
        article_type=outline.get("article_type", "blog"),
        target_length=outline.get("target_length", "medium"),
        tone=outline.get("tone", "professional"),
        other_headings=", ".join(others) or "none",
        heading=current.heading,
        key_points=", ".join(current.key_points),
        word_target=current.word_target,
        instruction=instruction,
        suggested_links=json.dumps(links),
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": f'Rewrite this section according to the instruction: "{instruction}"'},
    ]


def parse_section_edit(raw_output: str, current: OutlineSection) -> OutlineSection:
    """
    Merge the model's section over ``current``; missing or invalid fields keep their current value.

    The word target is never changed by an edit.

    Raises:
        ValueError: If the output is not a JSON object
    """
    try:
        parsed = parse_llm_json_any(raw_output)
    except json.JSONDecodeError as e:
        raise ValueError(f"Section rewrite was not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError("Section rewrite was not a JSON object")

    heading = parsed.get("heading")
    key_points = parsed.get("keyPoints")
    if isinstance(key_points, list):
        key_points = [str(p) for p in key_points if str(p).strip()]
    else:
        key_points = None

    links = current.suggested_links
    raw_links = parsed.get("suggestedLinks")
    if isinstance(raw_links, list):
        # Only links the section already had; the model cannot invent targets
        known = {link.article_id for link in current.suggested_links}
        links = [
            SuggestedLink(article_id=str(item["articleId"]), anchor_text=str(item["anchorText"]))
            for item in raw_links
            if isinstance(item, dict)
            and item.get("articleId") in known
            and item.get("anchorText")
        ]

    return OutlineSection(
        heading=heading.strip() if isinstance(heading, str) and heading.strip() else current.heading,
        key_points=key_points or current.key_points,
        word_target=current.word_target,
        suggested_links=links,
    )


async def rewrite_section(
    outline: dict[str, Any],
    section_index: int,
    current: OutlineSection,
    instruction: str,
) -> OutlineSection:
    """
    Ask the model to rewrite one section.

    Raises:
        UpstreamError: If the model call fails
        ValueError: If the model output cannot be parsed
    """
    settings = get_settings()
    messages = section_edit_messages(outline, section_index, current, instruction)

    logger.info(
        f"Rewriting section {section_index} of outline {outline.get('id')}",
        extra={"outline_id": outline.get("id"), "section_index": section_index},
    )
    raw = await complete_chat(
        messages,
        model=settings.OUTLINE_MODEL,
        temperature=SECTION_EDIT_TEMPERATURE,
        json_mode=True,
    )
    return parse_section_edit(raw, current)
