"""Word budgets for outlines and drafted sections."""

import math
from dataclasses import dataclass
from enum import Enum


class ArticleType(str, Enum):
    BLOG = "blog"
    TECHNICAL = "technical"
    NEWS = "news"
    OPINION = "opinion"
    TUTORIAL = "tutorial"
    LISTICLE = "listicle"
    AFFILIATE = "affiliate"
    PERSONAL = "personal"


class TargetLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


@dataclass(frozen=True)
class LengthRange:
    min: int
    target: int
    max: int


LENGTH_CONFIG: dict[TargetLength, LengthRange] = {
    TargetLength.SHORT: LengthRange(min=400, target=500, max=700),
    TargetLength.MEDIUM: LengthRange(min=800, target=1000, max=1300),
    TargetLength.LONG: LengthRange(min=1800, target=2000, max=3000),
}


@dataclass(frozen=True)
class ArticleTypeProfile:
    description: str
    section_count: dict[TargetLength, int]


_DEFAULT_COUNTS = {TargetLength.SHORT: 3, TargetLength.MEDIUM: 5, TargetLength.LONG: 7}

ARTICLE_TYPE_CONFIG: dict[ArticleType, ArticleTypeProfile] = {
    ArticleType.BLOG: ArticleTypeProfile(
        "Conversational, engaging, personal insights", _DEFAULT_COUNTS
    ),
    ArticleType.TECHNICAL: ArticleTypeProfile(
        "In-depth, code examples, precise terminology",
        {TargetLength.SHORT: 4, TargetLength.MEDIUM: 6, TargetLength.LONG: 10},
    ),
    ArticleType.NEWS: ArticleTypeProfile("Factual, timely, objective reporting", _DEFAULT_COUNTS),
    ArticleType.OPINION: ArticleTypeProfile(
        "Persuasive, well-argued, clear stance",
        {TargetLength.SHORT: 4, TargetLength.MEDIUM: 6, TargetLength.LONG: 8},
    ),
    ArticleType.TUTORIAL: ArticleTypeProfile(
        "Step-by-step, actionable, beginner-friendly",
        {TargetLength.SHORT: 5, TargetLength.MEDIUM: 8, TargetLength.LONG: 12},
    ),
    ArticleType.LISTICLE: ArticleTypeProfile(
        "Numbered items, scannable, one idea per item",
        {TargetLength.SHORT: 5, TargetLength.MEDIUM: 7, TargetLength.LONG: 10},
    ),
    ArticleType.AFFILIATE: ArticleTypeProfile(
        "Comparisons and recommendations with clear verdicts", _DEFAULT_COUNTS
    ),
    ArticleType.PERSONAL: ArticleTypeProfile(
        "First-person experience with concrete takeaways", _DEFAULT_COUNTS
    ),
}


def total_word_target(target_length: TargetLength) -> int:
    return LENGTH_CONFIG[TargetLength(target_length)].target


def section_count(article_type: ArticleType, target_length: TargetLength) -> int:
    """Recommended number of sections for a type and length."""
    profile = ARTICLE_TYPE_CONFIG.get(ArticleType(article_type), ARTICLE_TYPE_CONFIG[ArticleType.BLOG])
    return profile.section_count[TargetLength(target_length)]


def allocate_word_targets(total: int, sections: int) -> list[int]:
    """
    Split a total word target across sections.

    The first and last sections each get floor(10%) of the total; every body
    section gets floor(80% / body_count). One section takes the whole total;
    two sections split it evenly with any remainder on the last.
    """
    if sections <= 0:
        return []
    if sections == 1:
        return [total]
    if sections == 2:
        first = total // 2
        return [first, total - first]

    edge = math.floor(total * 0.1)
    body = math.floor(total * 0.8 / (sections - 2))
    return [edge] + [body] * (sections - 2) + [edge]


def section_word_band(word_target: int) -> tuple[int, int]:
    """Acceptable [min, max] words for a section: target ±10%."""
    return word_target * 9 // 10, -(-word_target * 11 // 10)


def recommended_structure(word_target: int) -> str:
    """Paragraph plan that lands a section inside its band."""
    if word_target <= 150:
        return "2 paragraphs x ~75 words each"
    if word_target <= 250:
        return "3 paragraphs x ~65-70 words each"
    if word_target <= 350:
        return "4 paragraphs x ~75-80 words each"
    if word_target <= 450:
        return "5 paragraphs x ~80-90 words each"
    paragraphs = math.ceil(word_target / 90)
    return f"{paragraphs} paragraphs x ~{word_target // paragraphs} words each"
