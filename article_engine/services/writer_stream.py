"""Streamed article drafting from an approved outline."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any
from uuid import UUID

from article_engine.chains.write_article import (
    AllowedLink,
    assemble_article,
    build_allowed_links,
    conclusion_messages,
    hook_messages,
    section_messages,
    strip_unlisted_links,
)
from article_engine.core.config import get_settings
from article_engine.core.errors import NotFoundError
from article_engine.core.logging import get_logger
from article_engine.core.schemas_articles import WriterRequest
from article_engine.core.schemas_outline import OutlineStructure
from article_engine.core.sse import (
    complete_event,
    created_event,
    milestone,
    progress_event,
    token_event,
    warning_event,
)
from article_engine.core.streaming_llm import stream_chat
from article_engine.core.text_metrics import (
    content_fields,
    extract_internal_links,
    make_excerpt,
    slugify,
)
from article_engine.db.articles import (
    create_article,
    insert_version,
    list_published_articles,
    update_article,
)
from article_engine.db.links import upsert_article_links
from article_engine.db.outlines import get_outline
from article_engine.db.topics import update_topic_status
from article_engine.services.article_embeddings import refresh_article_embedding
from article_engine.services.generation_stream import GenerationStream
from article_engine.services.progressive_save import ProgressiveSaver

logger = get_logger(__name__)

INITIAL_DRAFT_SUMMARY = "Initial draft generated by AI writer agent"


class OutlineNotApprovedError(ValueError):
    """Raised when drafting is requested for an outline that was not approved."""


class WriterStream(GenerationStream):
    """Drafts hook, sections and conclusion, persisting as it goes."""

    stage = "writer"
    job_type = "write_article"

    def __init__(self, request: WriterRequest, user_id: str | None = None):
        super().__init__(user_id=user_id)
        self.request = request
        self.outline: dict[str, Any] = {}
        self.topic: dict[str, Any] = {}
        self.structure = OutlineStructure()

    def job_input(self) -> dict[str, Any]:
        return self.request.model_dump(mode="json")

    async def _create_placeholder(self) -> str:
        outline = await asyncio.to_thread(get_outline, self.request.outline_id)
        if not outline:
            raise NotFoundError("outline", self.request.outline_id)
        if not outline.get("approved"):
            raise OutlineNotApprovedError("Outline must be approved before writing")

        self.outline = outline
        self.topic = outline.get("topics") or {}
        self.structure = OutlineStructure.model_validate(outline.get("structure") or {})

        article = await asyncio.to_thread(
            create_article,
            {
                "outline_id": str(self.request.outline_id),
                "topic_id": outline.get("topic_id"),
                "industry_id": self.topic.get("industry_id"),
                "title": self.structure.title,
                "slug": slugify(self.structure.title),
                "content": "",
                "status": "draft",
                "seo_keywords": self.structure.seo_keywords,
                "author_id": self.user_id,
            },
        )
        self.throttle.record_write()
        return str(article["id"])

    def created_event(self) -> dict[str, Any]:
        return created_event("article", self.artifact_id)

    def _write_content(self, content: str) -> None:
        update_article(UUID(self.artifact_id), content_fields(content, get_settings().WORDS_PER_MINUTE))

    async def _related_articles(self) -> list[dict[str, Any]]:
        try:
            return await asyncio.to_thread(list_published_articles, self.topic.get("industry_id"), 15)
        except Exception as e:
            logger.warning(f"Related articles unavailable, drafting without internal links: {e}")
            return []

    async def generate(self) -> AsyncIterator[dict[str, Any]]:
        settings = get_settings()
        tone = self.outline.get("tone") or "professional"
        title = self.structure.title
        sections = self.structure.sections
        total = len(sections)

        related = await self._related_articles()
        internal_links: list[AllowedLink] = build_allowed_links(self.structure, related)
        sources = self.topic.get("sources") or []
        allowed_urls = {s.get("url") for s in sources if s.get("url")} | {link.url for link in internal_links}

        saver = ProgressiveSaver(self._write_content, self.throttle, self.artifact_id)

        # Hook
        yield progress_event("hook", "Writing introduction...", 5)
        hook_parts: list[str] = []
        async for token in stream_chat(
            hook_messages(self.structure, tone),
            model=settings.WRITER_MODEL,
            temperature=settings.WRITER_TEMPERATURE,
        ):
            hook_parts.append(token)
            yield token_event(token, "hook")
            await saver.maybe_save(assemble_article(title, "".join(hook_parts), []))
        hook, _ = strip_unlisted_links("".join(hook_parts).strip(), allowed_urls)

        # Sections
        written: list[str] = []
        for i, section in enumerate(sections):
            yield progress_event(
                "section",
                f"Writing section {i + 1}/{total}: {section.heading}",
                milestone(10, 80, i, total),
                section=i + 1,
                total=total,
                sectionTitle=section.heading,
            )
            messages = section_messages(
                structure=self.structure,
                section=section,
                index=i,
                previous_sections=written,
                tone=tone,
                sources=sources,
                internal_links=internal_links,
                custom_instructions=self.request.custom_instructions,
            )
            section_parts: list[str] = []
            async for token in stream_chat(
                messages,
                model=settings.WRITER_MODEL,
                temperature=settings.WRITER_TEMPERATURE,
            ):
                section_parts.append(token)
                yield token_event(token, "section", section_index=i)
                await saver.maybe_save(assemble_article(title, hook, [*written, "".join(section_parts)]))

            cleaned, _ = strip_unlisted_links("".join(section_parts).strip(), allowed_urls)
            written.append(cleaned)
            await saver.checkpoint(assemble_article(title, hook, written))

        # Conclusion
        yield progress_event("conclusion", "Writing conclusion...", 90)
        draft_so_far = assemble_article(title, hook, written)
        conclusion_parts: list[str] = []
        async for token in stream_chat(
            conclusion_messages(self.structure, draft_so_far, tone),
            model=settings.WRITER_MODEL,
            temperature=settings.WRITER_TEMPERATURE,
        ):
            conclusion_parts.append(token)
            yield token_event(token, "conclusion")
            await saver.maybe_save(draft_so_far + "".join(conclusion_parts))
        conclusion, _ = strip_unlisted_links("".join(conclusion_parts).strip(), allowed_urls)

        content = assemble_article(title, hook, written, conclusion)
        fields = content_fields(content, settings.WORDS_PER_MINUTE)
        fields["excerpt"] = make_excerpt(content, settings.EXCERPT_LENGTH)

        yield progress_event("saving", "Saving article...", 95)
        saved = True
        save_error: str | None = None
        try:
            await asyncio.to_thread(update_article, UUID(self.artifact_id), fields)
            self.throttle.record_write()
        except Exception as e:
            saved = False
            save_error = str(e)
            logger.error(f"Final article save failed: {e}", extra={"article_id": self.artifact_id})
            yield warning_event(f"Article generated but could not be saved: {e}")

        if saved:
            await self._after_save(content, fields["excerpt"], related)

        metadata: dict[str, Any] = {
            "wordCount": fields["word_count"],
            "readingTime": fields["reading_time"],
            "sectionsWritten": len(written),
            "saved": saved,
        }
        if save_error:
            metadata["error"] = save_error

        logger.info(
            f"Article {self.artifact_id} drafted: {fields['word_count']} words",
            extra={"article_id": self.artifact_id, "saved": saved},
        )

        yield complete_event(
            article={
                "id": self.artifact_id,
                "outlineId": str(self.request.outline_id),
                "title": title,
                "slug": slugify(title),
                "content": content,
                "excerpt": fields["excerpt"],
                "wordCount": fields["word_count"],
                "readingTime": fields["reading_time"],
                "status": "draft",
            },
            metadata=metadata,
        )

    async def _after_save(self, content: str, excerpt: str, related: list[dict[str, Any]]) -> None:
        """Follow-up writes once the draft is stored. Failures are logged only."""
        article_id = UUID(self.artifact_id)

        topic_id = self.outline.get("topic_id")
        if topic_id:
            try:
                await asyncio.to_thread(update_topic_status, UUID(str(topic_id)), "used")
            except Exception as e:
                logger.warning(f"Failed to mark topic used: {e}", extra={"topic_id": str(topic_id)})

        try:
            await asyncio.to_thread(insert_version, article_id, content, "ai", INITIAL_DRAFT_SUMMARY)
        except Exception as e:
            logger.warning(f"Failed to save initial version: {e}", extra={"article_id": self.artifact_id})

        links = extract_internal_links(content, related)
        if links:
            rows = [
                {
                    "source_article_id": self.artifact_id,
                    "target_article_id": link["target_id"],
                    "anchor_text": link["anchor_text"],
                    "context": link["context"],
                }
                for link in links
            ]
            try:
                await asyncio.to_thread(upsert_article_links, rows)
            except Exception as e:
                logger.warning(f"Failed to record internal links: {e}", extra={"article_id": self.artifact_id})

        try:
            await refresh_article_embedding(article_id, self.structure.title, excerpt, content)
        except Exception as e:
            logger.warning(f"Failed to embed article: {e}", extra={"article_id": self.artifact_id})
