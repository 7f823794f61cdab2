"""CSV export."""

from __future__ import annotations

import csv
import logging
from typing import TYPE_CHECKING

from engagement_rank.scoring.relevance import interpret

if TYPE_CHECKING:
    from engagement_rank.pipeline.posts import Post
    from engagement_rank.pipeline.runner import DiscoverySummary
    from engagement_rank.scoring.engagement import RankedPost

logger = logging.getLogger(__name__)

# Post text is excluded; it is noisy in spreadsheet cells.
_COLUMNS = [
    "rank",
    "post_id",
    "author_id",
    "author_handle",
    "composite_score",
    "relevance_score",
    "relevance",
    "posting_frequency",
    "follower_ratio",
    "recent_activity",
    "url",
]


class CSVExporter:
    """Renders ranked posts as a CSV file suitable for spreadsheet import."""

    def export(
        self,
        ranked: list[RankedPost[Post]],
        output_path: str,
        *,
        summary: DiscoverySummary | None = None,
    ) -> None:
        """Write a CSV with header row, one line per post in ranked order."""
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(_COLUMNS)

            for position, r in enumerate(ranked, start=1):
                writer.writerow([
                    position,
                    r.post.id,
                    r.post.author_id,
                    r.post.author_handle,
                    f"{r.composite_score:.4f}",
                    f"{r.signals.relevance_score:.0f}",
                    interpret(r.signals.relevance_score),
                    f"{r.signals.posting_frequency:.4f}",
                    f"{r.signals.follower_ratio:.4f}",
                    r.signals.recent_activity,
                    r.post.url,
                ])

        logger.debug("Wrote %d ranked posts to %s", len(ranked), output_path)
