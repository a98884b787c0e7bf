"""
Embedding similarity and duplicate classification.

Used in two places:
1. Research: freshly discovered topics are compared against saved topics and
   definite duplicates are dropped.
2. Linking: published articles close to the source article become link
   candidates.

Usage:
    from article_engine.core.similarity import DedupThresholds, classify_candidate

    verdict = classify_candidate(has_embedding=True, matches=matches)
    if verdict.is_duplicate:
        ...
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from article_engine.core.logging import get_logger

logger = get_logger(__name__)


def cosine_similarity(
    a: list[float] | np.ndarray,
    b: list[float] | np.ndarray,
) -> float:
    """
    Cosine similarity: dot(a, b) / (|a| * |b|).

    Raises:
        ValueError: If the vectors differ in dimension or either has zero norm
    """
    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)

    if vec_a.shape != vec_b.shape:
        raise ValueError(
            f"Vectors must have the same dimensions: {vec_a.shape[0]} != {vec_b.shape[0]}"
        )

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        raise ValueError("Cosine similarity is undefined for zero vectors")

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


@dataclass
class SimilarMatch:
    """One stored item close to a query vector."""

    id: str
    title: str
    similarity: float
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SimilarMatch":
        known = {"id", "title", "similarity"}
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            similarity=float(row.get("similarity") or 0.0),
            extra={k: v for k, v in row.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "similarity": self.similarity}


def rank_matches(
    matches: list[SimilarMatch],
    threshold: float,
    limit: int,
) -> list[SimilarMatch]:
    """Keep matches at or above threshold, most similar first, capped at limit."""
    kept = [m for m in matches if m.similarity >= threshold]
    kept.sort(key=lambda m: m.similarity, reverse=True)
    return kept[: max(limit, 0)]


class DedupVerdict(Enum):
    """Outcome of comparing a candidate against existing items."""

    UNIQUE = "unique"
    NEAR_DUPLICATE = "near_duplicate"
    DUPLICATE = "duplicate"
    NO_EMBEDDING = "no_embedding"


@dataclass
class DedupThresholds:
    """Similarity thresholds for topic deduplication."""

    # Matches at or above this are surfaced to the caller
    surface: float = 0.85
    # Nearest match strictly above this excludes the candidate
    exclude: float = 0.90


@dataclass
class DedupResult:
    """Classification of a single candidate."""

    verdict: DedupVerdict
    matches: list[SimilarMatch] = field(default_factory=list)

    @property
    def is_duplicate(self) -> bool:
        return self.verdict == DedupVerdict.DUPLICATE

    @property
    def nearest(self) -> SimilarMatch | None:
        return self.matches[0] if self.matches else None


def classify_candidate(
    *,
    has_embedding: bool,
    matches: list[SimilarMatch],
    thresholds: DedupThresholds | None = None,
) -> DedupResult:
    """
    Classify a candidate from its similar-item matches.

    A candidate without an embedding is never a duplicate. Otherwise the
    nearest match decides: strictly above ``exclude`` is a duplicate, anything
    surfaced below that is a near duplicate kept for the caller to judge.
    """
    thresholds = thresholds or DedupThresholds()

    if not has_embedding:
        return DedupResult(verdict=DedupVerdict.NO_EMBEDDING)

    surfaced = rank_matches(matches, thresholds.surface, len(matches))
    if not surfaced:
        return DedupResult(verdict=DedupVerdict.UNIQUE)

    if surfaced[0].similarity > thresholds.exclude:
        return DedupResult(verdict=DedupVerdict.DUPLICATE, matches=surfaced)

    return DedupResult(verdict=DedupVerdict.NEAR_DUPLICATE, matches=surfaced)
