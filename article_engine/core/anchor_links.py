"""Anchor validation and link insertion for markdown article bodies."""

import re
from dataclasses import dataclass, field

CONTEXT_CHARS = 50

# Whole markdown link: [text](url), optionally an image
_MARKDOWN_LINK_RE = re.compile(r"!?\[[^\]\n]*\]\([^)\n]*\)")


def validate_anchor_text(content: str, anchor_text: str) -> bool:
    """True if anchor_text occurs in content, ignoring case."""
    if not anchor_text or not anchor_text.strip():
        return False
    return anchor_text.lower() in (content or "").lower()


def find_occurrences(content: str, anchor_text: str) -> list[int]:
    """Start offsets of every case-insensitive occurrence, in document order."""
    haystack = content.lower()
    needle = anchor_text.lower()
    positions = []
    start = haystack.find(needle)
    while start != -1 and needle:
        positions.append(start)
        start = haystack.find(needle, start + 1)
    return positions


def _line_bounds(content: str, pos: int) -> tuple[int, int]:
    line_start = content.rfind("\n", 0, pos) + 1
    line_end = content.find("\n", pos)
    return line_start, len(content) if line_end == -1 else line_end


def is_in_heading(content: str, pos: int) -> bool:
    line_start, _ = _line_bounds(content, pos)
    return content[line_start:].lstrip().startswith("#")


def link_spans(content: str) -> list[tuple[int, int]]:
    """Offsets of every existing markdown link, text and URL included."""
    return [m.span() for m in _MARKDOWN_LINK_RE.finditer(content)]


def is_inside_link(content: str, start: int, end: int, spans: list[tuple[int, int]] | None = None) -> bool:
    """True if [start, end) overlaps an existing markdown link's text or URL."""
    if spans is None:
        spans = link_spans(content)
    return any(start < s_end and s_start < end for s_start, s_end in spans)


def anchor_only_in_headings(content: str, anchor_text: str) -> bool:
    """True if the anchor occurs but every occurrence is inside a heading line."""
    positions = find_occurrences(content, anchor_text)
    return bool(positions) and all(is_in_heading(content, p) for p in positions)


@dataclass
class LinkPlacement:
    """A link to insert: which phrase, and where it points."""

    opportunity_id: str
    anchor_text: str
    target_article_id: str
    url: str


@dataclass
class InsertedLink:
    opportunity_id: str
    anchor_text: str
    target_article_id: str
    url: str
    position: int
    context: str


@dataclass
class LinkInsertionResult:
    content: str
    inserted: list[InsertedLink] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)


def _locate(
    content: str,
    anchor_text: str,
    claimed: list[tuple[int, int]],
) -> tuple[int | None, str | None]:
    """First occurrence that is outside links and headings and not overlapping a claimed span."""
    length = len(anchor_text)
    spans = link_spans(content)
    reason = "not_found"
    for pos in find_occurrences(content, anchor_text):
        end = pos + length
        if is_inside_link(content, pos, end, spans):
            reason = "inside_existing_link"
            continue
        if is_in_heading(content, pos):
            reason = "in_heading"
            continue
        if any(pos < c_end and c_start < end for c_start, c_end in claimed):
            reason = "overlaps_other_link"
            continue
        return pos, None
    return None, reason


def insert_links(content: str, placements: list[LinkPlacement]) -> LinkInsertionResult:
    """
    Rewrite content with one markdown link per placement.

    Every offset is computed against the original content, then links are
    applied from the last position to the first so earlier offsets stay valid.
    The original casing of the matched phrase is kept as the link text.
    """
    located: list[tuple[int, LinkPlacement]] = []
    skipped: list[dict] = []
    claimed: list[tuple[int, int]] = []

    for placement in placements:
        pos, reason = _locate(content, placement.anchor_text, claimed)
        if pos is None:
            skipped.append(
                {
                    "opportunity_id": placement.opportunity_id,
                    "anchor_text": placement.anchor_text,
                    "reason": reason,
                }
            )
            continue
        claimed.append((pos, pos + len(placement.anchor_text)))
        located.append((pos, placement))

    located.sort(key=lambda item: item[0], reverse=True)

    modified = content
    inserted: list[InsertedLink] = []
    for pos, placement in located:
        end = pos + len(placement.anchor_text)
        actual = content[pos:end]
        modified = f"{modified[:pos]}[{actual}]({placement.url}){modified[end:]}"
        inserted.append(
            InsertedLink(
                opportunity_id=placement.opportunity_id,
                anchor_text=actual,
                target_article_id=placement.target_article_id,
                url=placement.url,
                position=pos,
                context=content[max(0, pos - CONTEXT_CHARS) : end + CONTEXT_CHARS],
            )
        )

    inserted.reverse()
    return LinkInsertionResult(content=modified, inserted=inserted, skipped=skipped)
