"""Prompt for the single-pass editor rewrite."""

from article_engine.core.text_metrics import extract_link_urls

# ruff: noqa: E501
EDITOR_SYSTEM_PROMPT = """You are a senior editor polishing an article so it reads as written by an experienced human writer.

Make these changes:
1. Remove every em dash (—). Rewrite the sentence with commas, periods or parentheses instead.
2. Remove AI writing patterns: "delve", "in today's fast-paced world", "it's important to note", "navigate the landscape", "game-changer", stacked adjectives, and formulaic three-item lists.
3. Remove duplicated sentences and paragraphs that repeat an earlier point.
4. Improve flow between paragraphs and sections with natural transitions.
5. Vary sentence length and structure.

You must preserve:
- Every markdown link exactly as written, both the anchor text and the URL
- All headings and their levels
- Markdown formatting (lists, bold, code blocks)
- All facts, figures, names and claims. Do not add new information.

Return ONLY the edited article markdown, with no commentary before or after."""


def editor_messages(content: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": EDITOR_SYSTEM_PROMPT},
        {"role": "user", "content": f"Edit this article:\n\n{content}"},
    ]


def lost_links(original: str, edited: str) -> list[str]:
    """URLs linked in ``original`` that no longer appear as links in ``edited``."""
    kept = set(extract_link_urls(edited))
    return [url for url in dict.fromkeys(extract_link_urls(original)) if url not in kept]
