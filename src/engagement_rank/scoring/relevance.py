"""Topical relevance: cosine similarity → curved 0-100 score.

The curve ``score = round(similarity ** 0.8 * 100)`` is sub-linear, so
mid-range similarities get a proportionally larger lift than high ones::

    0.8 → 84    0.5 → 57    0.2 → 28

That lift is what separates "somewhat relevant" from "very relevant"
posts in the final ranking; the exponent must stay exactly 0.8 for
scores to be comparable across runs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from engagement_rank.scoring.vector_math import cosine_similarity, require_finite

if TYPE_CHECKING:
    from collections.abc import Sequence

CURVE_EXPONENT = 0.8

# (lower bound inclusive, label) — checked top-down
RELEVANCE_BANDS: tuple[tuple[int, str], ...] = (
    (85, "Highly relevant"),
    (70, "Very relevant"),
    (55, "Moderately relevant"),
    (40, "Somewhat relevant"),
    (25, "Loosely relevant"),
    (0, "Not relevant"),
)


def topical_similarity(similarity: float) -> int:
    """Convert a cosine similarity to a 0-100 relevance score.

    Input outside ``[0.0, 1.0]`` is clamped, never rejected — small
    excursions are floating-point noise from the embedding provider.
    NaN and infinity raise VALIDATION.
    """
    clamped = max(0.0, min(1.0, require_finite(similarity, "similarity")))
    return round(clamped**CURVE_EXPONENT * 100)


def topical_similarity_from_embeddings(
    interests_embedding: Sequence[float],
    post_embedding: Sequence[float],
) -> int:
    """Cosine similarity of the two embeddings, passed through the curve."""
    return topical_similarity(cosine_similarity(interests_embedding, post_embedding))


def average_topical_similarity(
    interests_embedding: Sequence[float],
    post_embeddings: Sequence[Sequence[float]],
) -> int:
    """Mean of the per-post curved scores, rounded to an integer.

    Each pair is curved first and the curved scores are averaged.  Curving
    the mean similarity instead gives a different number.
    """
    if not post_embeddings:
        return 0
    scores = [
        topical_similarity_from_embeddings(interests_embedding, post)
        for post in post_embeddings
    ]
    return round(sum(scores) / len(scores))


def interpret(score: float) -> str:
    """Human-readable band for a relevance score.

    >>> interpret(84)
    'Very relevant'
    >>> interpret(85)
    'Highly relevant'
    """
    for lower, label in RELEVANCE_BANDS:
        if score >= lower:
            return label
    return RELEVANCE_BANDS[-1][1]
