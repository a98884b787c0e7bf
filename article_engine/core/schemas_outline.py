"""Pydantic schemas for outlines."""

from typing import Any
from uuid import UUID

from pydantic import Field

from article_engine.core.outline_budget import ArticleType, TargetLength
from article_engine.core.schemas_topics import CamelModel


class SuggestedLink(CamelModel):
    article_id: str
    anchor_text: str


class OutlineSection(CamelModel):
    heading: str
    key_points: list[str] = Field(default_factory=list)
    word_target: int = 0
    suggested_links: list[SuggestedLink] = Field(default_factory=list)


class OutlineConclusion(CamelModel):
    summary: str = ""
    call_to_action: str = ""


class OutlineStructure(CamelModel):
    """Article plan stored in ``outlines.structure``."""

    title: str = "Untitled"
    hook: str = ""
    sections: list[OutlineSection] = Field(default_factory=list)
    conclusion: OutlineConclusion = Field(default_factory=OutlineConclusion)
    seo_keywords: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


PLACEHOLDER_TITLE = "Generating..."


def placeholder_structure() -> OutlineStructure:
    return OutlineStructure(title=PLACEHOLDER_TITLE)


class OutlineRequest(CamelModel):
    topic_id: UUID
    article_type: ArticleType = ArticleType.BLOG
    target_length: TargetLength = TargetLength.MEDIUM
    tone: str = "professional"


class OutlinePatchRequest(CamelModel):
    outline_id: UUID
    approved: bool | None = None
    structure: OutlineStructure | None = None


class SectionEditRequest(CamelModel):
    """Rewrite one outline section from a free-text instruction."""

    outline_id: UUID
    section_index: int = Field(..., ge=0)
    instruction: str = Field(..., min_length=1)
    current_section: OutlineSection | None = None
