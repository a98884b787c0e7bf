"""Client that drives a generation session through the HTTP API."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from article_engine.client.state_machine import (
    DraftCompleted,
    DraftFailed,
    GenerationStage,
    GenerationState,
    LinksApplied,
    LinksSuggested,
    OutlineApproved,
    OutlineCompleted,
    OutlineCreated,
    OutlineEdited,
    ResearchCompleted,
    ResearchStarted,
    SessionReset,
    StageFailed,
    StageSelected,
    StreamProgress,
    StreamToken,
    TopicRejected,
    TopicSelected,
    transition,
)
from article_engine.core.errors import ArticleEngineError, UnsavedTopicError
from article_engine.core.logging import get_logger
from article_engine.core.schemas_topics import ResearchRequest, UnsavedTopicRef, parse_topic_ref
from article_engine.core.sse import TERMINAL_EVENTS, EventType, SSEDecoder

logger = get_logger(__name__)

DEFAULT_STREAM_TIMEOUT_S = 300.0


class StageRequestError(ArticleEngineError):
    """Raised when an API call made for a stage fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)


class StageOrchestrator:
    """
    Sequences research, outline, draft and linking for one session.

    Every result is fed through ``transition`` so ``state`` is always a
    consistent snapshot; ``on_change`` is called after each transition.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        stream_timeout_s: float = DEFAULT_STREAM_TIMEOUT_S,
        on_change: Callable[[GenerationState], None] | None = None,
    ):
        """
        Args:
            client: Client with base_url (".../v1") and auth headers configured
            stream_timeout_s: Max seconds for one generation request
            on_change: Called with each new state
        """
        self._client = client
        self._stream_timeout_s = stream_timeout_s
        self._on_change = on_change
        self._state = GenerationState()

    @property
    def state(self) -> GenerationState:
        return self._state

    def _dispatch(self, event: Any) -> GenerationState:
        self._state = transition(self._state, event)
        if self._on_change:
            self._on_change(self._state)
        return self._state

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=payload, timeout=self._stream_timeout_s)
        except httpx.HTTPError as e:
            raise StageRequestError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise StageRequestError(_error_detail(response), status_code=response.status_code)
        return response.json()

    async def _stream(
        self,
        method: str,
        path: str,
        payload: dict[str, Any],
        on_event: Callable[[dict[str, Any]], Awaitable[None]],
    ) -> dict[str, Any]:
        """
        Consume an SSE endpoint until its terminal event.

        Returns:
            The ``complete`` event

        Raises:
            StageRequestError: On HTTP error, ``error`` event, timeout or a stream
                that closes without a terminal event
        """
        try:
            return await asyncio.wait_for(self._consume(method, path, payload, on_event), self._stream_timeout_s)
        except asyncio.TimeoutError as e:
            raise StageRequestError(f"{path} timed out after {self._stream_timeout_s}s") from e
        except httpx.HTTPError as e:
            raise StageRequestError(f"{method} {path} failed: {e}") from e

    async def _consume(
        self,
        method: str,
        path: str,
        payload: dict[str, Any],
        on_event: Callable[[dict[str, Any]], Awaitable[None]],
    ) -> dict[str, Any]:
        decoder = SSEDecoder()
        async with self._client.stream(method, path, json=payload) as response:
            if response.status_code >= 400:
                await response.aread()
                raise StageRequestError(_error_detail(response), status_code=response.status_code)

            async for chunk in response.aiter_text():
                for event in decoder.feed(chunk):
                    terminal = await self._handle_stream_event(event, on_event)
                    if terminal is not None:
                        return terminal

            for event in decoder.flush():
                terminal = await self._handle_stream_event(event, on_event)
                if terminal is not None:
                    return terminal

        raise StageRequestError(f"{path} stream ended without completing")

    async def _handle_stream_event(
        self,
        event: dict[str, Any],
        on_event: Callable[[dict[str, Any]], Awaitable[None]],
    ) -> dict[str, Any] | None:
        event_type = event.get("type")
        if event_type == EventType.ERROR.value:
            message = event.get("message", "Generation failed")
            details = event.get("details")
            raise StageRequestError(f"{message}: {details}" if details else message)

        await on_event(event)
        return event if event_type in TERMINAL_EVENTS else None

    # ------------------------------------------------------------------
    # Stage operations
    # ------------------------------------------------------------------

    async def start_research(self, config: ResearchRequest) -> list[dict[str, Any]]:
        """
        Run research and move to the topics stage.

        Raises:
            StageRequestError: If research fails (no topics are kept)
        """
        payload = config.model_dump(mode="json", by_alias=True, exclude_none=True)
        self._dispatch(ResearchStarted(config=payload))
        try:
            result = await self._request("POST", "/agents/research", payload)
        except StageRequestError as e:
            self._dispatch(StageFailed(error=str(e)))
            raise

        topics = result.get("topics", [])
        self._dispatch(ResearchCompleted(topics=topics))
        return topics

    async def select_topic(
        self,
        topic: dict[str, Any],
        *,
        target_length: str = "medium",
        tone: str = "professional",
    ) -> dict[str, Any]:
        """
        Generate an outline for a saved topic.

        Raises:
            UnsavedTopicError: If the topic has no durable id (no request is made)
            StageRequestError: If outline generation fails
        """
        raw_id = str(topic.get("id") or "")
        try:
            ref = parse_topic_ref(raw_id)
        except ValueError as e:
            raise UnsavedTopicError(f"Topic id {raw_id!r} is not a saved topic id") from e
        if isinstance(ref, UnsavedTopicRef):
            raise UnsavedTopicError(f"Topic {ref.temp_key} has not been saved; save it before outlining")

        self._dispatch(TopicSelected(topic=topic))
        config = self._state.config or {}
        article_type = (topic.get("metadata") or {}).get("articleType") or config.get("articleType") or "blog"
        payload = {
            "topicId": str(ref.id),
            "articleType": article_type,
            "targetLength": target_length,
            "tone": tone,
        }

        async def on_event(event: dict[str, Any]) -> None:
            event_type = event.get("type")
            if event_type == EventType.OUTLINE_CREATED.value:
                outline_id = event["outlineId"]
                self._dispatch(OutlineCreated(outline_id=outline_id, outline=await self._fetch_outline(outline_id)))
            elif event_type == EventType.PROGRESS.value:
                self._dispatch(
                    StreamProgress(
                        progress=event.get("progress", 0),
                        message=event.get("message"),
                        structure=event.get("outline"),
                    )
                )
            elif event_type == EventType.TOKEN.value:
                self._dispatch(StreamToken(content=event.get("content", "")))

        try:
            complete = await self._stream("PUT", "/agents/outline", payload, on_event)
        except StageRequestError as e:
            self._dispatch(StageFailed(error=str(e)))
            raise

        outline = complete.get("outline") or {}
        self._dispatch(OutlineCompleted(outline=outline))
        return outline

    async def _fetch_outline(self, outline_id: str) -> dict[str, Any] | None:
        try:
            result = await self._request("GET", f"/agents/outline/{outline_id}")
        except StageRequestError as e:
            logger.warning(f"Could not fetch outline {outline_id}: {e}")
            return None
        return result.get("outline")

    async def approve_outline(self) -> dict[str, Any]:
        """
        Approve the current outline, then draft the article.

        A drafting failure returns to the outline stage with the outline still approved.

        Raises:
            StageRequestError: If approval or drafting fails
        """
        outline = self._state.outline
        if not outline or not outline.get("id"):
            raise StageRequestError("No outline to approve")

        try:
            await self._request("PATCH", "/agents/outline", {"outlineId": outline["id"], "approved": True})
        except StageRequestError as e:
            self._dispatch(StageFailed(error=str(e)))
            raise

        self._dispatch(OutlineApproved())

        try:
            result = await self._request("POST", "/agents/writer", {"outlineId": outline["id"]})
        except StageRequestError as e:
            self._dispatch(DraftFailed(error=str(e)))
            raise

        saved = bool(result.get("saved", True))
        article = result.get("article") or {}
        self._dispatch(
            DraftCompleted(
                article=article,
                saved=saved,
                warning=None if saved else f"Draft not saved: {result.get('error', 'unknown error')}",
            )
        )
        return article

    async def suggest_links(self, site_id: str) -> list[dict[str, Any]]:
        """Request link suggestions for the drafted article and move to linking."""
        article = self._state.article
        if not article or not article.get("id"):
            raise StageRequestError("No article to link")

        try:
            result = await self._request(
                "POST", "/articles/intelligent-links", {"articleId": article["id"], "siteId": site_id}
            )
        except StageRequestError as e:
            self._dispatch(StageFailed(error=str(e)))
            raise

        suggestions = result.get("suggestions", [])
        self._dispatch(LinksSuggested(suggestions=suggestions, message=result.get("message")))
        return suggestions

    async def apply_links(self, opportunity_ids: list[str]) -> dict[str, Any]:
        """Insert the chosen links and finish the session."""
        article = self._state.article
        if not article or not article.get("id"):
            raise StageRequestError("No article to link")

        try:
            result = await self._request(
                "PUT",
                "/articles/intelligent-links",
                {"articleId": article["id"], "opportunityIds": opportunity_ids},
            )
        except StageRequestError as e:
            self._dispatch(StageFailed(error=str(e)))
            raise

        linked = {**article, **(result.get("article") or {})}
        self._dispatch(LinksApplied(article=linked))
        return linked

    # ------------------------------------------------------------------
    # Local-only operations
    # ------------------------------------------------------------------

    def go_to_stage(self, target: GenerationStage) -> GenerationState:
        return self._dispatch(StageSelected(target=GenerationStage(target)))

    def select_different_topic(self) -> GenerationState:
        return self.go_to_stage(GenerationStage.TOPICS)

    def edit_outline(self, structure: dict[str, Any]) -> GenerationState:
        """Replace the unapproved outline structure locally."""
        return self._dispatch(OutlineEdited(structure=structure))

    def reject_topic(self, topic_id: str) -> GenerationState:
        return self._dispatch(TopicRejected(topic_id=str(topic_id)))

    def reset(self) -> GenerationState:
        return self._dispatch(SessionReset())
