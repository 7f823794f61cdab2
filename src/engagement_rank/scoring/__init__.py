"""Scoring core — vector math, similarity ranking, relevance, engagement.

Pure and synchronous: nothing in this package performs I/O.
"""

from engagement_rank.scoring.engagement import (
    EngagementScorer,
    EngagementSignals,
    NormalizationCaps,
    RankedPost,
    ScoringWeights,
    follower_ratio,
    rank_posts,
)
from engagement_rank.scoring.relevance import (
    interpret,
    topical_similarity,
    topical_similarity_from_embeddings,
)
from engagement_rank.scoring.similarity import (
    Candidate,
    SimilarityResult,
    average_similarity,
    batch_cosine_similarity,
    find_most_similar,
)
from engagement_rank.scoring.vector_math import cosine_similarity

__all__ = [
    "Candidate",
    "EngagementScorer",
    "EngagementSignals",
    "NormalizationCaps",
    "RankedPost",
    "ScoringWeights",
    "SimilarityResult",
    "average_similarity",
    "batch_cosine_similarity",
    "cosine_similarity",
    "find_most_similar",
    "follower_ratio",
    "interpret",
    "rank_posts",
    "topical_similarity",
    "topical_similarity_from_embeddings",
]
