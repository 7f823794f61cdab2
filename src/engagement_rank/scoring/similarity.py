"""Nearest-neighbour ranking of candidate vectors against a query.

Compares one query vector (e.g. a user's interests) against a batch of
candidate vectors (e.g. posts) and keeps the closest ones.  Ordering is
descending by similarity; candidates with equal similarity keep their
input order because :func:`sorted` is stable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

from engagement_rank.scoring.vector_math import cosine_similarity

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_THRESHOLD = 0.0


class Candidate(NamedTuple):
    """An identified vector to compare against the query."""

    id: str
    vector: Sequence[float]


@dataclass(frozen=True)
class SimilarityResult:
    """Similarity of one candidate to the query, in ``[-1.0, 1.0]``."""

    source_id: str
    similarity: float


def find_most_similar(
    query: Sequence[float],
    candidates: Iterable[Candidate | tuple[str, Sequence[float]]],
    limit: int = DEFAULT_LIMIT,
    threshold: float = DEFAULT_THRESHOLD,
) -> list[SimilarityResult]:
    """Return the *limit* candidates most similar to *query*.

    Every candidate is scored, including ones that end up below
    *threshold*, so a dimension mismatch anywhere in the batch surfaces
    as an error instead of being filtered away.

    Args:
        query: The vector to compare against.
        candidates: ``(id, vector)`` pairs in caller order.
        limit: Maximum results to return.  ``<= 0`` yields ``[]``.
        threshold: Minimum similarity to keep (inclusive).

    Returns:
        Results sorted descending by similarity; ties keep input order.
    """
    scored = [
        SimilarityResult(source_id=cand_id, similarity=cosine_similarity(query, vector))
        for cand_id, vector in candidates
    ]
    if limit <= 0:
        return []

    kept = [r for r in scored if r.similarity >= threshold]
    # reverse=True keeps sorted() stable for equal keys
    kept = sorted(kept, key=lambda r: r.similarity, reverse=True)

    logger.debug(
        "find_most_similar: %d candidates, %d at or above %.2f, returning %d",
        len(scored),
        len(kept),
        threshold,
        min(len(kept), limit),
    )
    return kept[:limit]


def batch_cosine_similarity(
    query: Sequence[float],
    targets: Iterable[Sequence[float]],
) -> list[float]:
    """One similarity per target, in target order.  No filtering or sorting."""
    return [cosine_similarity(query, target) for target in targets]


def average_similarity(scores: Sequence[float]) -> float:
    """Arithmetic mean of *scores*; ``0.0`` when there are none."""
    if not scores:
        return 0.0
    return sum(scores) / len(scores)
