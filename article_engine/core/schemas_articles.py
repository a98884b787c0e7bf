"""Pydantic schemas for drafting, editing and linking."""

from typing import Any
from uuid import UUID

from pydantic import Field

from article_engine.core.schemas_topics import CamelModel


class WriterRequest(CamelModel):
    outline_id: UUID
    custom_instructions: str | None = None


class EditorRequest(CamelModel):
    article_id: UUID
    content: str | None = None


class RollbackRequest(CamelModel):
    article_id: UUID


class LinkSuggestRequest(CamelModel):
    article_id: UUID
    site_id: UUID
    min_links: int | None = Field(default=None, ge=0)
    max_links: int | None = Field(default=None, ge=1)
    similarity_threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class LinkApplyRequest(CamelModel):
    article_id: UUID
    opportunity_ids: list[str] = Field(..., min_length=1)


class LinkOpportunity(CamelModel):
    """Proposed internal link."""

    id: str
    anchor_text: str
    target_article_id: str
    target_title: str
    target_url: str
    relevance_score: float = 0.8
    reason: str = "Contextually relevant"
    status: str = "pending"


class LinkCandidate(CamelModel):
    """Published article on the target site that may be linked to."""

    id: str
    title: str
    slug: str
    url: str
    excerpt: str | None = None
    similarity: float


class LinkSuggestResponse(CamelModel):
    success: bool = True
    suggestions: list[LinkOpportunity] = Field(default_factory=list)
    candidates: list[LinkCandidate] = Field(default_factory=list)
    validation_errors: list[dict[str, Any]] = Field(default_factory=list)
    message: str | None = None


class LinkApplyResponse(CamelModel):
    success: bool = True
    article: dict[str, Any] | None = None
    inserted_links: list[dict[str, Any]] = Field(default_factory=list)
    skipped: list[dict[str, Any]] = Field(default_factory=list)
    saved: bool = True
    error: str | None = None
