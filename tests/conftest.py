"""Global test configuration — shared fixtures.

This conftest provides:

1. **I/O-boundary fixtures** — ``mock_embedder`` (Embedder with stubbed
   Ollama methods) and ``embedding_cache`` (real ChromaDB backed by
   ``tmp_path``).  Individual test files may shadow these with local
   fixtures that use different return values.

2. **Factories** — ``make_settings`` and ``make_post`` build valid
   configuration and post records with overridable fields.

Only Ollama network I/O is mocked; ChromaDB and the JSONL engagement log
run for real against per-test temp directories.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest

from engagement_rank.config import (
    ChromaConfig,
    DiscoveryConfig,
    EngagementLogConfig,
    OllamaConfig,
    OutputConfig,
    ScoringConfig,
    Settings,
)
from engagement_rank.pipeline.posts import Post
from engagement_rank.rag.embedder import Embedder
from engagement_rank.rag.store import EmbeddingCache

if TYPE_CHECKING:
    from pathlib import Path

# Canonical fake embedding used across test files.  Individual tests that
# need a different vector can define their own constant.
EMBED_FAKE: list[float] = [0.1, 0.2, 0.3, 0.4, 0.5]


@pytest.fixture
def mock_embedder() -> Embedder:
    """Embedder with stubbed I/O methods — no Ollama connection needed.

    Uses ``Embedder.__new__`` to create a real instance without calling
    ``__init__`` (which would create an ``ollama.AsyncClient``).
    ``embed_batch`` returns one copy of ``EMBED_FAKE`` per input text.
    """
    embedder = Embedder.__new__(Embedder)
    embedder.base_url = "http://localhost:11434"
    embedder.embed_model = "nomic-embed-text"
    embedder.dimensions = None
    embedder.max_retries = 3
    embedder.base_delay = 0.0
    embedder.embed = AsyncMock(return_value=EMBED_FAKE)  # type: ignore[method-assign]
    embedder.embed_batch = AsyncMock(  # type: ignore[method-assign]
        side_effect=lambda texts: [list(EMBED_FAKE) for _ in texts],
    )
    embedder.health_check = AsyncMock()  # type: ignore[method-assign]
    return embedder


@pytest.fixture
def embedding_cache(tmp_path: Path) -> EmbeddingCache:
    """Real ChromaDB embedding cache backed by a per-test temp directory."""
    return EmbeddingCache(persist_dir=str(tmp_path / "chroma"), ttl_seconds=3600)


@pytest.fixture
def make_settings(tmp_path: Path):
    """Factory fixture — returns a callable that produces a Settings instance.

    All on-disk paths are rooted under ``tmp_path`` so each test gets an
    isolated cache, output directory and engagement log.  Keyword
    arguments replace whole sections.
    """

    def _factory(**overrides: Any) -> Settings:
        sections: dict[str, Any] = {
            "scoring": ScoringConfig(),
            "discovery": DiscoveryConfig(),
            "ollama": OllamaConfig(),
            "chroma": ChromaConfig(persist_dir=str(tmp_path / "chroma")),
            "output": OutputConfig(output_dir=str(tmp_path / "output")),
            "engagements": EngagementLogConfig(log_dir=str(tmp_path / "engagements")),
        }
        sections.update(overrides)
        return Settings(**sections)

    return _factory


def make_post(post_id: str = "p1", **fields: Any) -> Post:
    """Build a realistic Post; any field can be overridden."""
    defaults: dict[str, Any] = {
        "author_id": f"author-{post_id}",
        "author_handle": f"maker_{post_id}",
        "text": "Just shipped the MVP of my SaaS for indie hackers — feedback welcome!",
        "url": f"https://x.com/maker_{post_id}/status/{post_id}",
        "posts_per_day": 4.0,
        "followers_count": 1_000,
        "following_count": 800,
        "recent_post_count": 10,
    }
    defaults.update(fields)
    return Post(id=post_id, **defaults)
