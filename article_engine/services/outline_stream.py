"""Streamed outline generation."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any
from uuid import UUID

from article_engine.chains.generate_outline import (
    apply_word_targets,
    build_messages,
    filter_suggested_links,
    parse_outline,
)
from article_engine.core.config import get_settings
from article_engine.core.errors import NotFoundError
from article_engine.core.logging import get_logger
from article_engine.core.outline_budget import total_word_target
from article_engine.core.schemas_outline import OutlineRequest, OutlineStructure, placeholder_structure
from article_engine.core.sse import (
    complete_event,
    created_event,
    milestone,
    progress_event,
    token_event,
    warning_event,
)
from article_engine.core.streaming_llm import stream_chat
from article_engine.db.articles import list_published_articles
from article_engine.db.outlines import create_outline, update_outline
from article_engine.db.topics import get_topic, update_topic_status
from article_engine.services.generation_stream import GenerationStream
from article_engine.services.progressive_save import ProgressiveSaver

logger = get_logger(__name__)


class OutlineStream(GenerationStream):
    """Outline for a saved topic, streamed as it is generated."""

    stage = "outline"
    job_type = "outline"

    def __init__(self, request: OutlineRequest, user_id: str | None = None):
        super().__init__(user_id=user_id)
        self.request = request
        self.topic: dict[str, Any] = {}

    def job_input(self) -> dict[str, Any]:
        return self.request.model_dump(mode="json")

    async def _create_placeholder(self) -> str:
        topic = await asyncio.to_thread(get_topic, self.request.topic_id)
        if not topic:
            raise NotFoundError("topic", self.request.topic_id)
        self.topic = topic

        outline = await asyncio.to_thread(
            create_outline,
            self.request.topic_id,
            placeholder_structure().to_json(),
            self.request.article_type.value,
            self.request.target_length.value,
            self.request.tone,
        )
        self.throttle.record_write()
        return str(outline["id"])

    def created_event(self) -> dict[str, Any]:
        return created_event("outline", self.artifact_id)

    def _write_partial(self, raw: str) -> None:
        structure = placeholder_structure().to_json()
        structure["metadata"] = {"streaming": True, "rawContent": raw}
        update_outline(UUID(self.artifact_id), {"structure": structure})

    async def _related_articles(self) -> list[dict[str, Any]]:
        try:
            return await asyncio.to_thread(list_published_articles, self.topic.get("industry_id"))
        except Exception as e:
            logger.warning(f"Related articles unavailable, outlining without links: {e}")
            return []

    async def generate(self) -> AsyncIterator[dict[str, Any]]:
        settings = get_settings()

        yield progress_event("context", "Loading topic context...", 10)
        related = await self._related_articles()
        messages = build_messages(
            topic=self.topic,
            article_type=self.request.article_type,
            target_length=self.request.target_length,
            tone=self.request.tone,
            related_articles=related,
        )

        yield progress_event("generating", "Generating outline...", 20)
        saver = ProgressiveSaver(self._write_partial, self.throttle, self.artifact_id)
        parts: list[str] = []
        async for token in stream_chat(
            messages,
            model=settings.OUTLINE_MODEL,
            temperature=settings.OUTLINE_TEMPERATURE,
        ):
            parts.append(token)
            yield token_event(token, "generating")
            await saver.maybe_save("".join(parts))

        yield progress_event("structuring", "Structuring outline...", 60)
        structure = parse_outline("".join(parts))
        structure = filter_suggested_links(structure, {str(a["id"]) for a in related})
        structure = apply_word_targets(structure, self.request.target_length)

        total = len(structure.sections)
        for i, section in enumerate(structure.sections, start=1):
            partial = structure.model_copy(update={"sections": structure.sections[:i]})
            yield progress_event(
                "section",
                f"Section {i}/{total}: {section.heading}",
                milestone(60, 30, i, total),
                outline=partial.to_json(),
                section=i,
                total=total,
                sectionTitle=section.heading,
            )

        yield progress_event("saving", "Saving outline...", 95)
        outline_row: dict[str, Any] | None = None
        save_error: str | None = None
        try:
            outline_row = await asyncio.to_thread(
                update_outline, UUID(self.artifact_id), {"structure": structure.to_json()}
            )
            self.throttle.record_write()
        except Exception as e:
            save_error = str(e)
            logger.error(f"Final outline save failed: {e}", extra={"outline_id": self.artifact_id})
            yield warning_event(f"Outline generated but could not be saved: {e}")

        if save_error is None:
            await self._mark_topic_approved()

        logger.info(
            f"Outline {self.artifact_id} generated with {total} sections",
            extra={"outline_id": self.artifact_id, "topic_id": str(self.request.topic_id)},
        )

        metadata: dict[str, Any] = {
            "sectionCount": total,
            "totalWords": total_word_target(self.request.target_length),
            "saved": save_error is None,
        }
        if save_error:
            metadata["error"] = save_error

        yield complete_event(
            outline=self._outline_payload(structure, outline_row),
            metadata=metadata,
        )

    async def _mark_topic_approved(self) -> None:
        try:
            await asyncio.to_thread(update_topic_status, self.request.topic_id, "approved")
        except Exception as e:
            logger.warning(f"Failed to mark topic approved: {e}", extra={"topic_id": str(self.request.topic_id)})

    def _outline_payload(self, structure: OutlineStructure, row: dict[str, Any] | None) -> dict[str, Any]:
        row = row or {}
        return {
            "id": self.artifact_id,
            "topicId": str(self.request.topic_id),
            "structure": structure.to_json(),
            "approved": bool(row.get("approved", False)),
            "articleType": self.request.article_type.value,
            "targetLength": self.request.target_length.value,
            "tone": self.request.tone,
        }
