"""ChromaDB-backed embedding cache.

Embedding the same post or interest text twice costs a model call for
nothing, so embeddings are stored in an embedded ChromaDB instance keyed
by source id.  One collection per source type:

  - ``post_embeddings``            — post text vectors
  - ``user_interests_embeddings``  — a user's stated interests

Each entry carries a content hash and a creation timestamp.  A lookup is
a hit only when the text is unchanged **and** the entry is younger than
``ttl_seconds``; anything else is a miss and the caller re-embeds.

The cache is glue around the scoring core, never consulted by it.
"""

from __future__ import annotations

import hashlib
import time
from typing import TYPE_CHECKING, Any

import chromadb

from engagement_rank.errors import ActionableError
from engagement_rank.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

SOURCE_TYPES = ("post", "user_interests")

DEFAULT_TTL_SECONDS = 3600


def content_hash(text: str) -> str:
    """Stable fingerprint of *text* used to detect edited posts."""
    return hashlib.sha256(text.strip().encode("utf-8")).hexdigest()


class EmbeddingCache:
    """Caches embeddings by ``(source_type, source_id)`` with a TTL.

    Usage::

        cache = EmbeddingCache(persist_dir="./data/chroma_db", ttl_seconds=3600)
        vec = cache.get("post", "1789", text)
        if vec is None:
            vec = await embedder.embed(text)
            cache.put("post", "1789", text, vec)

    ``ttl_seconds=0`` keeps entries until the text changes or the cache
    is cleared.
    """

    def __init__(
        self,
        persist_dir: str,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.persist_dir = persist_dir
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._client = chromadb.PersistentClient(path=persist_dir)
        logger.debug("ChromaDB embedding cache initialized at %s", persist_dir)

    # -- Lookups -------------------------------------------------------------

    def get(self, source_type: str, source_id: str, text: str) -> list[float] | None:
        """Return the cached vector for *source_id*, or ``None`` on a miss."""
        return self.get_many(source_type, [(source_id, text)]).get(source_id)

    def get_many(
        self,
        source_type: str,
        items: Sequence[tuple[str, str]],
    ) -> dict[str, list[float]]:
        """Look up several ``(source_id, text)`` pairs in one query.

        Returns a dict containing only the fresh hits.
        """
        if not items:
            return {}
        collection = self._collection(source_type)
        wanted = {source_id: content_hash(text) for source_id, text in items}

        result = collection.get(
            ids=list(wanted),
            include=["embeddings", "metadatas"],  # type: ignore[list-item]
        )
        ids: list[str] = list(result.get("ids") or [])
        embeddings = result.get("embeddings")
        metadatas = result.get("metadatas") or []
        if not ids or embeddings is None:
            return {}

        now = self._clock()
        hits: dict[str, list[float]] = {}
        for source_id, embedding, meta in zip(ids, embeddings, metadatas, strict=False):
            if not self._is_fresh(meta, wanted.get(source_id), now):
                continue
            hits[source_id] = [float(v) for v in embedding]

        logger.debug(
            "Embedding cache '%s': %d/%d hits",
            source_type,
            len(hits),
            len(wanted),
        )
        return hits

    # -- Writes --------------------------------------------------------------

    def put(self, source_type: str, source_id: str, text: str, embedding: list[float]) -> None:
        """Store one embedding, replacing any previous entry for the id."""
        self.put_many(source_type, [(source_id, text, embedding)])

    def put_many(
        self,
        source_type: str,
        entries: Sequence[tuple[str, str, list[float]]],
    ) -> None:
        """Upsert ``(source_id, text, embedding)`` triples.

        ChromaDB rejects repeated ids in one upsert; the last entry per id wins.
        """
        if not entries:
            return
        entries = list({source_id: (source_id, text, emb) for source_id, text, emb in entries}.values())
        collection = self._collection(source_type)
        now = self._clock()
        collection.upsert(
            ids=[source_id for source_id, _, _ in entries],
            documents=[text for _, text, _ in entries],
            embeddings=[embedding for _, _, embedding in entries],  # type: ignore[arg-type]
            metadatas=[
                {
                    "source_type": source_type,
                    "content_hash": content_hash(text),
                    "created_at": now,
                }
                for _, text, _ in entries
            ],
        )
        logger.debug("Cached %d '%s' embeddings", len(entries), source_type)

    # -- Maintenance ---------------------------------------------------------

    def count(self, source_type: str) -> int:
        """Number of cached entries for *source_type*, fresh or stale."""
        return self._collection(source_type).count()

    def clear(self, source_type: str) -> int:
        """Delete every entry for *source_type*.  Returns how many were removed."""
        collection = self._collection(source_type)
        ids = list(collection.get(include=[]).get("ids") or [])  # type: ignore[arg-type]
        if ids:
            collection.delete(ids=ids)
        logger.info("Cleared %d cached '%s' embeddings", len(ids), source_type)
        return len(ids)

    # -- Internal helpers ----------------------------------------------------

    def _collection(self, source_type: str) -> chromadb.Collection:
        if source_type not in SOURCE_TYPES:
            raise ActionableError.validation(
                field_name="source_type",
                reason=f"'{source_type}' is not one of {', '.join(SOURCE_TYPES)}",
            )
        return self._client.get_or_create_collection(
            name=f"{source_type}_embeddings",
            metadata={"hnsw:space": "cosine"},
        )

    def _is_fresh(self, meta: dict[str, Any] | None, expected_hash: str | None, now: float) -> bool:
        if not meta or meta.get("content_hash") != expected_hash:
            return False
        if self.ttl_seconds <= 0:
            return True
        created_at = float(meta.get("created_at", 0.0))
        return now - created_at < self.ttl_seconds
