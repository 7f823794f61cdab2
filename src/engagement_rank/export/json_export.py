"""JSON export for downstream tools."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING

from engagement_rank.scoring.relevance import interpret

if TYPE_CHECKING:
    from engagement_rank.pipeline.posts import Post
    from engagement_rank.pipeline.runner import DiscoverySummary
    from engagement_rank.scoring.engagement import RankedPost

logger = logging.getLogger(__name__)


class JSONExporter:
    """Writes ranked posts and the run summary as one JSON document.

    Embeddings are left out; they are large and can be recomputed.
    """

    def export(
        self,
        ranked: list[RankedPost[Post]],
        output_path: str,
        *,
        summary: DiscoverySummary | None = None,
    ) -> None:
        document = {
            "summary": asdict(summary) if summary is not None else None,
            "posts": [
                {
                    "rank": position,
                    "id": r.post.id,
                    "author_id": r.post.author_id,
                    "author_handle": r.post.author_handle,
                    "text": r.post.text,
                    "url": r.post.url,
                    "composite_score": r.composite_score,
                    "relevance": interpret(r.signals.relevance_score),
                    "signals": asdict(r.signals),
                    "normalized": asdict(r.normalized),
                }
                for position, r in enumerate(ranked, start=1)
            ],
        }
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)
        logger.debug("Wrote %d ranked posts to %s", len(ranked), output_path)
