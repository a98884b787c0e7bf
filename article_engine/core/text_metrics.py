"""Derived article fields: word count, reading time, slug, excerpt, HTML."""

import math
import re
from dataclasses import dataclass

import markdown

_MARKDOWN_CHARS_RE = re.compile(r"[#*_\[\]()]")
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_INTERNAL_LINK_RE = re.compile(r"\[([^\]]+)\]\(/articles/([^)]+)\)")
_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_EM_DASH_RE = re.compile(r"\s*—\s*")

SLUG_MAX_LENGTH = 100
MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]


def count_words(text: str) -> int:
    """Count words after stripping markdown punctuation."""
    if not text:
        return 0
    return len(_MARKDOWN_CHARS_RE.sub("", text).split())


def reading_time(word_count: int, words_per_minute: int = 200) -> int:
    """Minutes to read, rounded up."""
    return math.ceil(word_count / words_per_minute)


@dataclass
class ArticleMetrics:
    word_count: int
    reading_time: int


def article_metrics(content: str, words_per_minute: int = 200) -> ArticleMetrics:
    """Word count and reading time for a content write.

    Every write of article content goes through here so the two fields never
    drift from the content.
    """
    words = count_words(content)
    return ArticleMetrics(word_count=words, reading_time=reading_time(words, words_per_minute))


def slugify(title: str) -> str:
    """Lowercase, runs of non-alphanumerics to '-', trimmed, capped at 100 chars."""
    slug = _SLUG_RE.sub("-", (title or "").lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH]


def make_excerpt(content: str, max_length: int = 160) -> str:
    """Plain-text excerpt cut at a word boundary."""
    plain = _MARKDOWN_CHARS_RE.sub("", content or "")
    plain = re.sub(r"\n+", " ", plain).strip()

    if len(plain) <= max_length:
        return plain

    truncated = plain[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated + "..."


def markdown_to_html(content: str) -> str:
    """Render the stored ``content_html`` column."""
    return markdown.markdown(content or "", extensions=MARKDOWN_EXTENSIONS)


def strip_em_dashes(text: str) -> str:
    """Replace em dashes with commas."""
    return _EM_DASH_RE.sub(", ", text)


def extract_link_urls(text: str) -> list[str]:
    """All markdown link URLs in document order."""
    return [m.group(2) for m in _MARKDOWN_LINK_RE.finditer(text or "")]


def extract_internal_links(
    content: str,
    related_articles: list[dict],
) -> list[dict]:
    """
    Find ``[text](/articles/slug)`` links that point at known articles.

    Returns:
        Dicts with target_id, anchor_text and 50 chars of context on each side
    """
    by_slug = {a.get("slug"): a for a in related_articles}
    links = []

    for match in _INTERNAL_LINK_RE.finditer(content or ""):
        article = by_slug.get(match.group(2))
        if not article:
            continue
        start = max(0, match.start() - 50)
        end = min(len(content), match.end() + 50)
        links.append(
            {
                "target_id": str(article["id"]),
                "anchor_text": match.group(1),
                "context": content[start:end].replace("\n", " "),
            }
        )

    return links


def content_fields(content: str, words_per_minute: int = 200) -> dict:
    """Columns written with every article content update."""
    metrics = article_metrics(content, words_per_minute)
    return {
        "content": content,
        "content_html": markdown_to_html(content),
        "word_count": metrics.word_count,
        "reading_time": metrics.reading_time,
    }
