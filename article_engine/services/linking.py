"""Intelligent internal linking: discover targets, propose anchors, apply links."""

import asyncio
import uuid
from dataclasses import asdict
from typing import Any
from uuid import UUID

from article_engine.chains.propose_anchors import propose_anchors
from article_engine.core.anchor_links import (
    LinkPlacement,
    anchor_only_in_headings,
    insert_links,
    validate_anchor_text,
)
from article_engine.core.config import get_settings
from article_engine.core.embeddings import article_embedding_text, embed_text_async
from article_engine.core.errors import NotFoundError
from article_engine.core.logging import get_logger
from article_engine.core.schemas_articles import (
    LinkApplyRequest,
    LinkApplyResponse,
    LinkCandidate,
    LinkOpportunity,
    LinkSuggestRequest,
    LinkSuggestResponse,
)
from article_engine.core.similarity import SimilarMatch
from article_engine.core.text_metrics import content_fields
from article_engine.db.articles import get_article, insert_version, update_article
from article_engine.db.links import get_publishing_site, list_site_publications, upsert_article_links
from article_engine.db.similarity import find_similar_published_articles

logger = get_logger(__name__)

NO_CANDIDATES_MESSAGE = (
    "No similar content yet. Publish more related articles on this site to enable internal linking."
)


class NoPendingSuggestionsError(ValueError):
    """Raised when none of the selected opportunities are stored for the article."""


async def _load_article(article_id: UUID) -> dict[str, Any]:
    article = await asyncio.to_thread(get_article, article_id)
    if not article:
        raise NotFoundError("article", article_id)
    return article


async def _similar_published(
    article: dict[str, Any],
    threshold: float,
    limit: int,
) -> list[SimilarMatch]:
    embedding = await embed_text_async(
        article_embedding_text(article.get("title", ""), article.get("excerpt"), article.get("content"))
    )
    return await asyncio.to_thread(
        find_similar_published_articles,
        embedding,
        threshold,
        limit,
        UUID(str(article["id"])),
    )


async def find_link_candidates(
    article: dict[str, Any],
    site: dict[str, Any],
    threshold: float,
) -> list[LinkCandidate]:
    """
    Published articles on ``site`` that are semantically close to ``article``.

    Returns:
        At most LINK_CANDIDATE_LIMIT candidates, most similar first
    """
    settings = get_settings()
    matches = await _similar_published(article, threshold, settings.LINK_CANDIDATE_POOL)
    if not matches:
        return []

    publications = await asyncio.to_thread(list_site_publications, UUID(str(site["id"])), [m.id for m in matches])
    by_article = {str(p["article_id"]): p for p in publications}
    base_path = (site.get("base_path") or "").rstrip("/")

    candidates = []
    for match in matches:
        publication = by_article.get(match.id)
        if publication is None:
            continue
        slug = publication.get("slug") or match.extra.get("slug") or ""
        candidates.append(
            LinkCandidate(
                id=match.id,
                title=match.title,
                slug=slug,
                url=f"{base_path}/{slug}",
                excerpt=match.extra.get("excerpt"),
                similarity=match.similarity,
            )
        )
        if len(candidates) >= settings.LINK_CANDIDATE_LIMIT:
            break

    logger.info(
        f"Found {len(candidates)} link candidates from {len(matches)} similar articles",
        extra={"article_id": str(article["id"]), "site_id": str(site["id"])},
    )
    return candidates


def validate_suggestions(
    content: str,
    suggestions: list[dict[str, Any]],
    candidates: list[LinkCandidate],
) -> tuple[list[LinkOpportunity], list[dict[str, Any]]]:
    """
    Keep proposals whose anchor exists verbatim outside headings and whose target is a candidate.

    Returns:
        (opportunities, validation errors)
    """
    by_id = {c.id: c for c in candidates}
    opportunities: list[LinkOpportunity] = []
    errors: list[dict[str, Any]] = []
    used_anchors: set[str] = set()

    for suggestion in suggestions:
        anchor = suggestion["anchor_text"]
        target = by_id.get(suggestion["target_article_id"])
        reason = None
        if target is None:
            reason = "unknown_target"
        elif not validate_anchor_text(content, anchor):
            reason = "anchor_not_found"
        elif anchor_only_in_headings(content, anchor):
            reason = "anchor_in_heading"
        elif anchor.lower() in used_anchors:
            reason = "duplicate_anchor"

        if reason:
            logger.warning(f"Rejected link anchor '{anchor}': {reason}")
            errors.append({"anchorText": anchor, "targetArticleId": suggestion["target_article_id"], "reason": reason})
            continue

        used_anchors.add(anchor.lower())
        opportunities.append(
            LinkOpportunity(
                id=str(uuid.uuid4()),
                anchor_text=anchor,
                target_article_id=target.id,
                target_title=target.title,
                target_url=target.url,
                relevance_score=suggestion["relevance_score"],
                reason=suggestion["reason"],
            )
        )

    return opportunities, errors


async def suggest_links(request: LinkSuggestRequest) -> LinkSuggestResponse:
    """
    Propose internal links for an article against a publishing site.

    Raises:
        NotFoundError: If the article or site does not exist
        UpstreamError: If embedding or anchor proposal fails
    """
    settings = get_settings()
    article = await _load_article(request.article_id)
    site = await asyncio.to_thread(get_publishing_site, request.site_id)
    if not site:
        raise NotFoundError("publishing site", request.site_id)

    threshold = (
        request.similarity_threshold
        if request.similarity_threshold is not None
        else settings.LINK_SIMILARITY_THRESHOLD
    )
    min_links = request.min_links if request.min_links is not None else settings.LINK_MIN_LINKS
    max_links = request.max_links if request.max_links is not None else settings.LINK_MAX_LINKS

    candidates = await find_link_candidates(article, site, threshold)
    if not candidates:
        return LinkSuggestResponse(message=NO_CANDIDATES_MESSAGE)

    content = article.get("content") or ""
    proposals = await propose_anchors(
        title=article.get("title", ""),
        content=content,
        candidates=candidates,
        min_links=min_links,
        max_links=max_links,
    )
    opportunities, errors = validate_suggestions(content, proposals, candidates)

    metadata = dict(article.get("metadata") or {})
    metadata["linkSuggestions"] = [o.model_dump(mode="json", by_alias=True) for o in opportunities]
    metadata["linkSiteId"] = str(request.site_id)
    try:
        await asyncio.to_thread(update_article, request.article_id, {"metadata": metadata})
    except Exception as e:
        logger.warning(f"Failed to store link suggestions: {e}", extra={"article_id": str(request.article_id)})

    message = None
    if len(opportunities) < min_links:
        message = f"Only {len(opportunities)} valid link(s) found (wanted at least {min_links})"

    logger.info(
        f"Suggested {len(opportunities)} links ({len(errors)} rejected)",
        extra={"article_id": str(request.article_id)},
    )
    return LinkSuggestResponse(
        suggestions=opportunities,
        candidates=candidates,
        validation_errors=errors,
        message=message,
    )


async def apply_links(request: LinkApplyRequest) -> LinkApplyResponse:
    """
    Insert the selected stored suggestions into the article.

    Raises:
        NotFoundError: If the article does not exist
        NoPendingSuggestionsError: If no selected id matches a stored suggestion
    """
    settings = get_settings()
    article = await _load_article(request.article_id)
    metadata = dict(article.get("metadata") or {})
    stored = [LinkOpportunity.model_validate(s) for s in metadata.get("linkSuggestions") or []]

    wanted = set(request.opportunity_ids)
    selected = [o for o in stored if o.id in wanted]
    if not selected:
        raise NoPendingSuggestionsError("None of the selected link suggestions are pending for this article")

    content = article.get("content") or ""
    result = insert_links(
        content,
        [
            LinkPlacement(
                opportunity_id=o.id,
                anchor_text=o.anchor_text,
                target_article_id=o.target_article_id,
                url=o.target_url,
            )
            for o in selected
        ],
    )

    metadata.pop("linkSuggestions", None)
    metadata.pop("linkSiteId", None)
    fields = content_fields(result.content, settings.WORDS_PER_MINUTE)
    fields["metadata"] = metadata

    inserted = [asdict(link) for link in result.inserted]
    article_payload = {
        "id": str(article["id"]),
        "title": article.get("title"),
        "content": result.content,
        "wordCount": fields["word_count"],
        "readingTime": fields["reading_time"],
    }

    try:
        await asyncio.to_thread(update_article, request.article_id, fields)
    except Exception as e:
        logger.error(f"Failed to save linked article: {e}", extra={"article_id": str(request.article_id)})
        return LinkApplyResponse(
            article=article_payload,
            inserted_links=inserted,
            skipped=result.skipped,
            saved=False,
            error=str(e),
        )

    rows = [
        {
            "source_article_id": str(article["id"]),
            "target_article_id": link.target_article_id,
            "anchor_text": link.anchor_text,
            "context": link.context,
        }
        for link in result.inserted
    ]
    try:
        await asyncio.to_thread(upsert_article_links, rows)
        if result.inserted:
            await asyncio.to_thread(
                insert_version,
                request.article_id,
                result.content,
                "ai",
                f"Added {len(result.inserted)} internal links",
            )
    except Exception as e:
        logger.warning(f"Link bookkeeping failed: {e}", extra={"article_id": str(request.article_id)})

    logger.info(
        f"Applied {len(result.inserted)} links, skipped {len(result.skipped)}",
        extra={"article_id": str(request.article_id)},
    )
    return LinkApplyResponse(article=article_payload, inserted_links=inserted, skipped=result.skipped)


async def similar_articles(
    article_id: UUID,
    limit: int = 5,
    threshold: float | None = None,
) -> list[dict[str, Any]]:
    """
    Published articles similar to an article, most similar first.

    Raises:
        NotFoundError: If the article does not exist
    """
    article = await _load_article(article_id)
    floor = threshold if threshold is not None else get_settings().LINK_SIMILARITY_THRESHOLD
    matches = await _similar_published(article, floor, limit)
    return [m.to_dict() for m in matches]
