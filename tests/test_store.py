"""Embedding cache tests — ChromaDB-backed, keyed by source id with a TTL.

ChromaDB runs for real against ``tmp_path``; only the clock is faked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from engagement_rank.errors import ActionableError, ErrorType
from engagement_rank.rag.store import EmbeddingCache, content_hash

if TYPE_CHECKING:
    from pathlib import Path

VEC_A = [0.1, 0.2, 0.3]
VEC_B = [0.9, 0.8, 0.7]


class FakeClock:
    """Controllable stand-in for ``time.time``."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path: Path, clock: FakeClock) -> EmbeddingCache:
    return EmbeddingCache(persist_dir=str(tmp_path / "chroma"), ttl_seconds=3600, clock=clock)


class TestCacheHits:
    """REQUIREMENT: An unchanged text within the TTL is served from cache.

    WHO: The discovery runner avoiding repeat Ollama calls
    WHAT: put() then get() with the same text returns the vector; an
          unknown id misses; source types are isolated from each other;
          get_many() returns only the hits
    WHY: Re-embedding the same feed on every run makes ranking slow enough
         that users stop running it
    """

    def test_put_then_get_returns_vector(self, cache: EmbeddingCache) -> None:
        cache.put("post", "p1", "shipping my first SaaS", VEC_A)
        assert cache.get("post", "p1", "shipping my first SaaS") == pytest.approx(VEC_A)

    def test_unknown_id_misses(self, cache: EmbeddingCache) -> None:
        assert cache.get("post", "nope", "anything") is None

    def test_source_types_are_isolated(self, cache: EmbeddingCache) -> None:
        cache.put("post", "u1", "same text", VEC_A)
        assert cache.get("user_interests", "u1", "same text") is None

    def test_get_many_returns_only_hits(self, cache: EmbeddingCache) -> None:
        cache.put_many("post", [("p1", "one", VEC_A), ("p2", "two", VEC_B)])
        hits = cache.get_many("post", [("p1", "one"), ("p2", "two"), ("p3", "three")])
        assert set(hits) == {"p1", "p2"}
        assert hits["p2"] == pytest.approx(VEC_B)

    def test_get_many_with_no_items_is_empty(self, cache: EmbeddingCache) -> None:
        assert cache.get_many("post", []) == {}

    def test_surrounding_whitespace_does_not_change_hash(self, cache: EmbeddingCache) -> None:
        cache.put("post", "p1", "hello", VEC_A)
        assert cache.get("post", "p1", "  hello\n") == pytest.approx(VEC_A)


class TestCacheInvalidation:
    """REQUIREMENT: Stale or edited entries are treated as misses.

    WHO: Users whose feed changes between runs
    WHAT: Edited text misses (content hash differs); entries at or past
          ttl_seconds miss; ttl_seconds=0 never expires; put() replaces
          an existing entry; repeated ids in one put_many() keep the last
    WHY: A stale embedding would score an edited post on its old text
    """

    def test_edited_text_misses(self, cache: EmbeddingCache) -> None:
        cache.put("post", "p1", "original text", VEC_A)
        assert cache.get("post", "p1", "edited text") is None

    def test_entry_expires_after_ttl(self, cache: EmbeddingCache, clock: FakeClock) -> None:
        cache.put("post", "p1", "text", VEC_A)
        clock.now += 3599
        assert cache.get("post", "p1", "text") is not None
        clock.now += 1
        assert cache.get("post", "p1", "text") is None

    def test_zero_ttl_never_expires(self, tmp_path: Path, clock: FakeClock) -> None:
        cache = EmbeddingCache(persist_dir=str(tmp_path / "c"), ttl_seconds=0, clock=clock)
        cache.put("post", "p1", "text", VEC_A)
        clock.now += 10 * 365 * 24 * 3600
        assert cache.get("post", "p1", "text") == pytest.approx(VEC_A)

    def test_put_replaces_existing_entry(self, cache: EmbeddingCache) -> None:
        cache.put("post", "p1", "text", VEC_A)
        cache.put("post", "p1", "text", VEC_B)
        assert cache.get("post", "p1", "text") == pytest.approx(VEC_B)
        assert cache.count("post") == 1

    def test_repeated_ids_in_one_batch_keep_last(self, cache: EmbeddingCache) -> None:
        cache.put_many("post", [("p1", "text", VEC_A), ("p1", "text", VEC_B)])
        assert cache.get("post", "p1", "text") == pytest.approx(VEC_B)

    def test_entries_survive_reopen(self, tmp_path: Path, clock: FakeClock) -> None:
        """The cache persists to disk between runs."""
        path = str(tmp_path / "persisted")
        EmbeddingCache(persist_dir=path, clock=clock).put("post", "p1", "text", VEC_A)
        reopened = EmbeddingCache(persist_dir=path, clock=clock)
        assert reopened.get("post", "p1", "text") == pytest.approx(VEC_A)


class TestCacheMaintenance:
    """REQUIREMENT: Cached embeddings can be counted and cleared per source type.

    WHO: Operators switching embedding models (`cache-clear`)
    WHAT: count() reports stored entries; clear() removes them all and
          returns how many; an unknown source type raises VALIDATION
    WHY: Vectors from an old model must be purged or every comparison
         raises DIMENSION_MISMATCH
    """

    def test_count_and_clear(self, cache: EmbeddingCache) -> None:
        cache.put_many("post", [("p1", "a", VEC_A), ("p2", "b", VEC_B)])
        cache.put("user_interests", "u1", "c", VEC_A)
        assert cache.count("post") == 2

        assert cache.clear("post") == 2
        assert cache.count("post") == 0
        assert cache.count("user_interests") == 1

    def test_clear_empty_collection_returns_zero(self, cache: EmbeddingCache) -> None:
        assert cache.clear("user_interests") == 0

    def test_unknown_source_type_raises_validation(self, cache: EmbeddingCache) -> None:
        with pytest.raises(ActionableError) as exc_info:
            cache.get("comment", "c1", "text")
        assert exc_info.value.error_type == ErrorType.VALIDATION


class TestContentHash:
    """REQUIREMENT: The content hash ignores surrounding whitespace only."""

    def test_hash_is_stable_and_whitespace_insensitive(self) -> None:
        assert content_hash("  abc ") == content_hash("abc")

    def test_different_text_different_hash(self) -> None:
        assert content_hash("abc") != content_hash("abd")
