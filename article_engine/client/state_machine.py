"""Generation workflow state and its pure transition function.

The orchestrator performs the I/O and turns results into the events below;
``transition`` is the only place state changes.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class GenerationStage(str, Enum):
    CONFIG = "config"
    TOPICS = "topics"
    OUTLINE = "outline"
    CONTENT = "content"
    LINKING = "linking"
    DONE = "done"


@dataclass(frozen=True)
class GenerationState:
    """Snapshot of a generation session."""

    stage: GenerationStage = GenerationStage.CONFIG
    config: dict[str, Any] | None = None
    topics: list[dict[str, Any]] = field(default_factory=list)
    selected_topic: dict[str, Any] | None = None
    outline: dict[str, Any] | None = None
    article: dict[str, Any] | None = None
    link_suggestions: list[dict[str, Any]] = field(default_factory=list)
    is_generating: bool = False
    progress: int = 0
    progress_message: str | None = None
    stream_text: str = ""
    error: str | None = None
    warning: str | None = None


# ============================================================================
# Events
# ============================================================================


@dataclass(frozen=True)
class ResearchStarted:
    config: dict[str, Any]


@dataclass(frozen=True)
class ResearchCompleted:
    topics: list[dict[str, Any]]


@dataclass(frozen=True)
class TopicSelected:
    topic: dict[str, Any]


@dataclass(frozen=True)
class TopicRejected:
    topic_id: str


@dataclass(frozen=True)
class OutlineCreated:
    """A durable outline id exists; ``outline`` is the fetched row when available."""

    outline_id: str
    outline: dict[str, Any] | None = None


@dataclass(frozen=True)
class StreamProgress:
    progress: int
    message: str | None = None
    structure: dict[str, Any] | None = None


@dataclass(frozen=True)
class StreamToken:
    content: str


@dataclass(frozen=True)
class OutlineCompleted:
    outline: dict[str, Any]


@dataclass(frozen=True)
class OutlineEdited:
    structure: dict[str, Any]


@dataclass(frozen=True)
class OutlineApproved:
    pass


@dataclass(frozen=True)
class DraftCompleted:
    article: dict[str, Any]
    saved: bool = True
    warning: str | None = None


@dataclass(frozen=True)
class DraftFailed:
    error: str


@dataclass(frozen=True)
class LinksSuggested:
    suggestions: list[dict[str, Any]]
    message: str | None = None


@dataclass(frozen=True)
class LinksApplied:
    article: dict[str, Any]


@dataclass(frozen=True)
class StageFailed:
    """Any failed operation; the stage and its data are kept."""

    error: str


@dataclass(frozen=True)
class StageSelected:
    target: GenerationStage


@dataclass(frozen=True)
class SessionReset:
    pass


# ============================================================================
# Transition
# ============================================================================


def _start_work(state: GenerationState, **changes: Any) -> GenerationState:
    return replace(
        state,
        is_generating=True,
        progress=0,
        progress_message=None,
        stream_text="",
        error=None,
        warning=None,
        **changes,
    )


def _finish_work(state: GenerationState, **changes: Any) -> GenerationState:
    return replace(state, is_generating=False, progress=100, progress_message=None, **changes)


def go_to_stage(state: GenerationState, target: GenerationStage) -> GenerationState:
    """
    Jump to any stage, discarding work that depends on what is left behind.

    Going back to topics drops the selected topic, outline and article; going
    back to the outline drops the article.
    """
    target = GenerationStage(target)
    changes: dict[str, Any] = {"stage": target, "is_generating": False, "error": None}
    if target in (GenerationStage.CONFIG, GenerationStage.TOPICS):
        changes.update(selected_topic=None, outline=None, article=None, link_suggestions=[])
    elif target == GenerationStage.OUTLINE:
        changes.update(article=None, link_suggestions=[])
    return replace(state, **changes)


def transition(state: GenerationState, event: Any) -> GenerationState:
    """Apply one event and return the next state."""
    if isinstance(event, SessionReset):
        return GenerationState()

    if isinstance(event, StageSelected):
        return go_to_stage(state, event.target)

    if isinstance(event, StageFailed):
        return replace(state, is_generating=False, progress_message=None, error=event.error)

    if isinstance(event, ResearchStarted):
        return _start_work(state, config=event.config)

    if isinstance(event, ResearchCompleted):
        return _finish_work(
            state,
            stage=GenerationStage.TOPICS,
            topics=list(event.topics),
            selected_topic=None,
            outline=None,
            article=None,
            link_suggestions=[],
        )

    if isinstance(event, TopicRejected):
        return replace(state, topics=[t for t in state.topics if str(t.get("id")) != event.topic_id])

    if isinstance(event, TopicSelected):
        return _start_work(state, selected_topic=event.topic, outline=None, article=None, link_suggestions=[])

    if isinstance(event, OutlineCreated):
        outline = dict(event.outline or {})
        outline.setdefault("id", event.outline_id)
        outline.setdefault("approved", False)
        return replace(state, stage=GenerationStage.OUTLINE, outline=outline)

    if isinstance(event, StreamProgress):
        changes: dict[str, Any] = {"progress": event.progress, "progress_message": event.message}
        if event.structure is not None and state.outline is not None:
            changes["outline"] = {**state.outline, "structure": event.structure}
        return replace(state, **changes)

    if isinstance(event, StreamToken):
        return replace(state, stream_text=state.stream_text + event.content)

    if isinstance(event, OutlineCompleted):
        return _finish_work(state, stage=GenerationStage.OUTLINE, outline=event.outline)

    if isinstance(event, OutlineEdited):
        if state.outline is None:
            return replace(state, error="No outline to edit")
        if state.outline.get("approved"):
            return replace(state, error="Approved outlines cannot be edited")
        return replace(state, outline={**state.outline, "structure": event.structure}, error=None)

    if isinstance(event, OutlineApproved):
        outline = {**(state.outline or {}), "approved": True}
        return _start_work(state, stage=GenerationStage.CONTENT, outline=outline, article=None)

    if isinstance(event, DraftCompleted):
        article = {**event.article, "saved": event.saved}
        return _finish_work(state, stage=GenerationStage.CONTENT, article=article, warning=event.warning)

    if isinstance(event, DraftFailed):
        return replace(
            state,
            stage=GenerationStage.OUTLINE,
            article=None,
            is_generating=False,
            progress_message=None,
            error=event.error,
        )

    if isinstance(event, LinksSuggested):
        return _finish_work(
            state,
            stage=GenerationStage.LINKING,
            link_suggestions=list(event.suggestions),
            warning=event.message,
        )

    if isinstance(event, LinksApplied):
        return _finish_work(state, stage=GenerationStage.DONE, article=event.article, link_suggestions=[])

    raise ValueError(f"Unknown event: {type(event).__name__}")
