"""Streamed editing pass with a restorable pre-edit snapshot."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any
from uuid import UUID

from article_engine.chains.edit_article import editor_messages, lost_links
from article_engine.core.config import get_settings
from article_engine.core.errors import NotFoundError, PersistenceError
from article_engine.core.logging import get_logger
from article_engine.core.schemas_articles import EditorRequest
from article_engine.core.sse import EventType, complete_event, progress_event, token_event, warning_event
from article_engine.core.streaming_llm import stream_chat
from article_engine.core.text_metrics import content_fields, count_words, strip_em_dashes
from article_engine.db.articles import get_article, get_latest_version, insert_version, update_article
from article_engine.services.article_embeddings import refresh_article_embedding
from article_engine.services.generation_stream import GenerationStream
from article_engine.services.progressive_save import ProgressiveSaver

logger = get_logger(__name__)

PRE_EDIT_SUMMARY = "Pre-editor snapshot (before AI editor agent)"
AI_EDIT_SUMMARY = "AI editor pass"
ROLLBACK_SUMMARY = "Rolled back AI editor changes"


class EmptyArticleError(ValueError):
    """Raised when there is no content to edit."""


class EditorStream(GenerationStream):
    """Rewrites an article in one pass after snapshotting it."""

    stage = "editor"
    job_type = "edit_article"

    def __init__(self, request: EditorRequest, user_id: str | None = None):
        super().__init__(user_id=user_id)
        self.request = request
        self.article: dict[str, Any] = {}
        self.original = ""
        self.snapshot_id: str | None = None

    def job_input(self) -> dict[str, Any]:
        return {"article_id": str(self.request.article_id)}

    async def _create_placeholder(self) -> str:
        article = await asyncio.to_thread(get_article, self.request.article_id)
        if not article:
            raise NotFoundError("article", self.request.article_id)

        content = self.request.content or article.get("content") or ""
        if not content.strip():
            raise EmptyArticleError("Article has no content to edit")

        self.article = article
        self.original = content

        try:
            version = await asyncio.to_thread(
                insert_version, self.request.article_id, content, "user", PRE_EDIT_SUMMARY
            )
        except Exception as e:
            raise PersistenceError(f"Could not snapshot article before editing: {e}") from e

        self.snapshot_id = str(version.get("id")) if version.get("id") else None
        return str(self.request.article_id)

    def created_event(self) -> dict[str, Any]:
        return {
            "type": EventType.EDIT_STARTED.value,
            "articleId": self.artifact_id,
            "snapshotId": self.snapshot_id,
        }

    def _write_content(self, content: str) -> None:
        update_article(UUID(self.artifact_id), content_fields(content, get_settings().WORDS_PER_MINUTE))

    async def generate(self) -> AsyncIterator[dict[str, Any]]:
        settings = get_settings()
        saver = ProgressiveSaver(self._write_content, self.throttle, self.artifact_id)

        yield progress_event("editing", "Editing article...", 10)
        parts: list[str] = []
        async for token in stream_chat(
            editor_messages(self.original),
            model=settings.EDITOR_MODEL,
            temperature=settings.EDITOR_TEMPERATURE,
        ):
            parts.append(token)
            yield token_event(token, "editing")
            await saver.maybe_save("".join(parts))

        edited = strip_em_dashes("".join(parts).strip())
        missing = lost_links(self.original, edited)
        if missing:
            logger.warning(
                f"Editor dropped {len(missing)} links",
                extra={"article_id": self.artifact_id, "urls": missing[:5]},
            )
            yield warning_event(f"The edit removed {len(missing)} link(s): {', '.join(missing[:5])}")

        fields = content_fields(edited, settings.WORDS_PER_MINUTE)

        yield progress_event("saving", "Saving edited article...", 95)
        saved = True
        save_error: str | None = None
        try:
            await asyncio.to_thread(update_article, UUID(self.artifact_id), fields)
            self.throttle.record_write()
        except Exception as e:
            saved = False
            save_error = str(e)
            logger.error(f"Edited article save failed: {e}", extra={"article_id": self.artifact_id})
            yield warning_event(f"Article edited but could not be saved: {e}")

        if saved:
            try:
                await asyncio.to_thread(insert_version, UUID(self.artifact_id), edited, "ai", AI_EDIT_SUMMARY)
            except Exception as e:
                logger.warning(f"Failed to save edit version: {e}", extra={"article_id": self.artifact_id})
            try:
                await refresh_article_embedding(
                    self.artifact_id, self.article.get("title", ""), self.article.get("excerpt"), edited
                )
            except Exception as e:
                logger.warning(f"Failed to re-embed article: {e}", extra={"article_id": self.artifact_id})

        metadata: dict[str, Any] = {
            "wordCount": fields["word_count"],
            "readingTime": fields["reading_time"],
            "originalWordCount": count_words(self.original),
            "saved": saved,
        }
        if save_error:
            metadata["error"] = save_error

        yield complete_event(
            article={
                "id": self.artifact_id,
                "title": self.article.get("title"),
                "content": edited,
                "wordCount": fields["word_count"],
                "readingTime": fields["reading_time"],
            },
            metadata=metadata,
        )


async def rollback_edit(article_id: UUID) -> dict[str, Any]:
    """
    Restore the most recent pre-edit snapshot.

    Returns:
        The updated article row

    Raises:
        NotFoundError: If the article or its snapshot does not exist
    """
    article = await asyncio.to_thread(get_article, article_id)
    if not article:
        raise NotFoundError("article", article_id)

    snapshot = await asyncio.to_thread(get_latest_version, article_id, PRE_EDIT_SUMMARY)
    if not snapshot:
        raise NotFoundError("pre-edit snapshot", article_id)

    content = snapshot.get("content") or ""
    updated = await asyncio.to_thread(
        update_article, article_id, content_fields(content, get_settings().WORDS_PER_MINUTE)
    )
    await asyncio.to_thread(insert_version, article_id, content, "user", ROLLBACK_SUMMARY)

    logger.info(
        f"Rolled back article {article_id} to snapshot {snapshot.get('id')}",
        extra={"article_id": str(article_id)},
    )
    return updated or {**article, "content": content}
