"""Pydantic schemas for topic research and topic references."""

from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from article_engine.core.outline_budget import ArticleType

TEMP_ID_PREFIX = "temp-"


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Source(BaseModel):
    """External source attached to a topic."""

    url: str
    title: str | None = None
    snippet: str | None = None
    date: str | None = None
    domain: str | None = None


# ============================================================================
# Topic references
# ============================================================================


class SavedTopicRef(BaseModel):
    """A topic persisted with a durable id; safe to key downstream stages."""

    kind: Literal["saved"] = "saved"
    id: UUID

    def __str__(self) -> str:
        return str(self.id)


class UnsavedTopicRef(BaseModel):
    """A topic that only exists in a research response."""

    kind: Literal["unsaved"] = "unsaved"
    temp_key: str

    def __str__(self) -> str:
        return self.temp_key


TopicRef = Annotated[SavedTopicRef | UnsavedTopicRef, Field(discriminator="kind")]


def parse_topic_ref(raw_id: str | UUID) -> SavedTopicRef | UnsavedTopicRef:
    """
    Interpret a wire topic id.

    Raises:
        ValueError: If the id is neither a temporary key nor a UUID
    """
    if isinstance(raw_id, UUID):
        return SavedTopicRef(id=raw_id)
    if raw_id.startswith(TEMP_ID_PREFIX):
        return UnsavedTopicRef(temp_key=raw_id)
    return SavedTopicRef(id=UUID(raw_id))


def make_temp_key(batch: str, index: int) -> str:
    return f"{TEMP_ID_PREFIX}{batch}-{index}"


# ============================================================================
# Research
# ============================================================================


class TopicCandidate(CamelModel):
    """Topic proposed by the research model."""

    title: str
    summary: str = ""
    angle: str | None = None
    hook: str | None = None
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    category: str | None = None
    rationale: str | None = None
    sources: list[Source] = Field(default_factory=list)
    embedding: list[float] | None = None


class ResearchRequest(CamelModel):
    """Request body for topic discovery."""

    industry: str | None = None
    keywords: list[str] = Field(default_factory=list)
    article_type: ArticleType | None = None
    max_topics: int | None = Field(default=None, ge=1, le=20)
    mode: Literal["discover", "direct", "prompt"] = "discover"
    prompt_input: str | None = None
    use_search_in_prompt: bool = False

    @model_validator(mode="after")
    def _check_mode_inputs(self) -> "ResearchRequest":
        if self.mode == "prompt":
            if not (self.prompt_input and self.prompt_input.strip()):
                raise ValueError("Prompt mode requires promptInput")
        elif not (self.industry or self.keywords):
            raise ValueError("Provide an industry or keywords for discover/direct mode")
        return self


class DuplicateInfo(CamelModel):
    title: str
    similar_to: str | None = None
    similarity: float | None = None


class ResearchMetadata(CamelModel):
    industry: str
    mode: str
    keywords_used: list[str] = Field(default_factory=list)
    topics_discovered: int = 0
    duplicates_filtered: int = 0
    duplicates: list[DuplicateInfo] = Field(default_factory=list)


class ResearchResponse(CamelModel):
    success: bool = True
    topics: list[dict[str, Any]]
    saved: bool = False
    job_id: UUID | None = None
    metadata: ResearchMetadata


class SaveTopicsRequest(CamelModel):
    """Promote selected unsaved topics to durable records."""

    topic_ids: list[str] = Field(..., min_length=1)
    topics: list[dict[str, Any]] = Field(..., min_length=1)


class SaveTopicsResponse(CamelModel):
    success: bool = True
    topics: list[dict[str, Any]]
    saved: bool = True
    message: str


# ============================================================================
# Brainstorm
# ============================================================================

SearchVolume = Literal["low", "medium", "high"]


class BrainstormIdea(CamelModel):
    """Topic idea produced by model reasoning alone, with no web search."""

    title: str
    angle: str = ""
    summary: str = ""
    seo_value: int = Field(default=5, ge=1, le=10)
    uniqueness_score: int = Field(default=5, ge=1, le=10)
    target_keywords: list[str] = Field(default_factory=list)
    estimated_search_volume: SearchVolume = "medium"
    content_type: str = "blog"
    hooks: list[str] = Field(default_factory=list)

    @property
    def relevance_score(self) -> float:
        return (self.seo_value * 0.6 + self.uniqueness_score * 0.4) / 10


class BrainstormRequest(CamelModel):
    industry: str | None = None
    keywords: list[str] = Field(default_factory=list)
    article_type: str | None = None
    target_audience: str | None = None
    content_goals: list[str] = Field(default_factory=list)
    count: int = Field(default=5, ge=1, le=10)

    @model_validator(mode="after")
    def _check_inputs(self) -> "BrainstormRequest":
        if not (self.industry or self.keywords):
            raise ValueError("Either industry or keywords must be provided")
        return self


class BrainstormMetadata(CamelModel):
    industry: str
    method: Literal["brainstorm"] = "brainstorm"
    topics_generated: int = 0
    avoided_topics_count: int = 0
    keywords_used: list[str] = Field(default_factory=list)


class BrainstormResponse(CamelModel):
    success: bool = True
    topics: list[dict[str, Any]]
    saved: bool = True
    error: str | None = None
    metadata: BrainstormMetadata
