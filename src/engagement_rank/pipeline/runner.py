"""Discovery runner — orchestrates embed → relevance → signals → rank.

The DiscoveryRunner ties the glue to the scoring core:

1. Embed the user's interests (through the embedding cache)
2. Embed every post that has text and no precomputed vector, in one batch
3. Curve each post's cosine similarity into a 0-100 relevance score
4. Resolve behavioral signals, substituting configured defaults
5. Rank by composite engagement score and cut to the session size

The runner owns the control flow and all I/O.  Every scoring decision is
delegated to :mod:`engagement_rank.scoring`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from engagement_rank.errors import ActionableError
from engagement_rank.pipeline.posts import build_signals
from engagement_rank.rag.embedder import Embedder
from engagement_rank.scoring.engagement import EngagementScorer, RankedPost
from engagement_rank.scoring.relevance import topical_similarity
from engagement_rank.scoring.similarity import (
    Candidate,
    SimilarityResult,
    find_most_similar,
)
from engagement_rank.scoring.vector_math import cosine_similarity

if TYPE_CHECKING:
    from engagement_rank.config import Settings
    from engagement_rank.pipeline.posts import Post
    from engagement_rank.rag.store import EmbeddingCache

logger = logging.getLogger(__name__)


@dataclass
class DiscoverySummary:
    """Counters from one discovery run, shown by the CLI and exporters."""

    total_candidates: int = 0
    precomputed: int = 0
    cache_hits: int = 0
    embedded: int = 0
    missing_text: int = 0
    returned: int = 0


@dataclass
class DiscoveryResult:
    """Ranked posts plus the summary of how they were produced."""

    ranked_posts: list[RankedPost[Post]] = field(default_factory=list)
    summary: DiscoverySummary = field(default_factory=DiscoverySummary)


class DiscoveryRunner:
    """Top-level orchestrator: embeds interests and posts, feeds the
    scoring core, and returns the session's ranked shortlist.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        embedder: Embedder | None = None,
        cache: EmbeddingCache | None = None,
    ) -> None:
        self._settings = settings
        self._embedder = embedder or Embedder(
            base_url=settings.ollama.base_url,
            embed_model=settings.ollama.embed_model,
            dimensions=settings.ollama.dimensions,
        )
        self._cache = cache
        self._scorer = EngagementScorer(
            settings.scoring.weights,
            caps=settings.normalization,
            max_candidates=settings.scoring.max_candidates,
        )

    async def run(
        self,
        interests: str,
        posts: list[Post],
        *,
        user_id: str = "default",
        top_n: int | None = None,
    ) -> DiscoveryResult:
        """Rank *posts* by engagement likelihood for a user with *interests*.

        Args:
            interests: Free-text description of what the user cares about.
            posts: Candidate posts, in the order they were fetched.
            user_id: Key for caching the interests embedding.
            top_n: Session size.  ``None`` uses ``discovery.posts_per_session``.

        Returns:
            A :class:`DiscoveryResult` holding at most *top_n* ranked posts.
        """
        discovery = self._settings.discovery
        session_size = discovery.posts_per_session if top_n is None else top_n
        if not 1 <= session_size <= discovery.max_posts_per_session:
            raise ActionableError.validation(
                field_name="top_n",
                reason=(
                    f"is {session_size} — must be between 1 and "
                    f"{discovery.max_posts_per_session}"
                ),
            )
        if len(posts) > self._settings.scoring.max_candidates:
            raise ActionableError.validation(
                field_name="posts",
                reason=(
                    f"{len(posts)} candidates exceeds "
                    f"max_candidates={self._settings.scoring.max_candidates}"
                ),
                suggestion="Pre-filter candidates or raise [scoring].max_candidates",
            )

        summary = DiscoverySummary(total_candidates=len(posts))

        interests_vector = await self._embed_interests(user_id, interests)
        post_vectors = await self._embed_posts(posts, summary)

        signals = []
        for post, vector in zip(posts, post_vectors, strict=True):
            relevance = None
            if vector is not None:
                relevance = topical_similarity(cosine_similarity(interests_vector, vector))
            signals.append(build_signals(post, relevance, self._settings.defaults))

        ranked = self._scorer.rank(posts, signals)[:session_size]
        summary.returned = len(ranked)

        logger.info(
            "Discovery: %d candidates, %d embedded, %d cache hits, "
            "%d without text, returning top %d",
            summary.total_candidates,
            summary.embedded,
            summary.cache_hits,
            summary.missing_text,
            summary.returned,
        )
        return DiscoveryResult(ranked_posts=ranked, summary=summary)

    async def similar(
        self,
        interests: str,
        posts: list[Post],
        *,
        user_id: str = "default",
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[SimilarityResult]:
        """Posts most semantically similar to *interests*, ignoring behavior.

        Posts without text or embedding cannot be compared and are skipped.
        """
        discovery = self._settings.discovery
        interests_vector = await self._embed_interests(user_id, interests)
        post_vectors = await self._embed_posts(posts, DiscoverySummary())
        candidates = [
            Candidate(post.id, vector)
            for post, vector in zip(posts, post_vectors, strict=True)
            if vector is not None
        ]
        return find_most_similar(
            interests_vector,
            candidates,
            limit=discovery.similarity_limit if limit is None else limit,
            threshold=discovery.similarity_threshold if threshold is None else threshold,
        )

    # ------------------------------------------------------------------
    # Embedding internals
    # ------------------------------------------------------------------

    async def _embed_interests(self, user_id: str, interests: str) -> list[float]:
        if self._cache is not None:
            cached = self._cache.get("user_interests", user_id, interests)
            if cached is not None:
                return cached

        vector = await self._embedder.embed(interests)
        if self._cache is not None:
            self._cache.put("user_interests", user_id, interests, vector)
        return vector

    async def _embed_posts(
        self,
        posts: list[Post],
        summary: DiscoverySummary,
    ) -> list[list[float] | None]:
        """One vector per post, or ``None`` where the post has no text."""
        vectors: list[list[float] | None] = [None] * len(posts)
        pending: list[int] = []

        for i, post in enumerate(posts):
            if post.embedding is not None:
                vectors[i] = post.embedding
                summary.precomputed += 1
            elif post.has_text:
                pending.append(i)
            else:
                summary.missing_text += 1
                logger.debug("Post %s has no text — relevance defaults apply", post.id)

        if pending and self._cache is not None:
            hits = self._cache.get_many(
                "post", [(posts[i].id, posts[i].text) for i in pending]
            )
            still_pending: list[int] = []
            for i in pending:
                hit = hits.get(posts[i].id)
                if hit is None:
                    still_pending.append(i)
                else:
                    vectors[i] = hit
                    summary.cache_hits += 1
            pending = still_pending

        if pending:
            embedded = await self._embedder.embed_batch([posts[i].text for i in pending])
            for i, vector in zip(pending, embedded, strict=True):
                vectors[i] = vector
            summary.embedded += len(pending)
            if self._cache is not None:
                self._cache.put_many(
                    "post",
                    [(posts[i].id, posts[i].text, vectors[i]) for i in pending],  # type: ignore[misc]
                )

        return vectors
