"""Markdown table export."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from engagement_rank.scoring.relevance import interpret

if TYPE_CHECKING:
    from engagement_rank.pipeline.posts import Post
    from engagement_rank.pipeline.runner import DiscoverySummary
    from engagement_rank.scoring.engagement import RankedPost

logger = logging.getLogger(__name__)

_EXCERPT_LEN = 80


def _excerpt(text: str) -> str:
    flat = " ".join(text.split()).replace("|", "\\|")
    if len(flat) <= _EXCERPT_LEN:
        return flat
    return flat[: _EXCERPT_LEN - 1] + "…"


class MarkdownExporter:
    """Renders ranked posts as a human-readable Markdown report."""

    def export(
        self,
        ranked: list[RankedPost[Post]],
        output_path: str,
        *,
        summary: DiscoverySummary | None = None,
    ) -> None:
        """Write a Markdown file with run summary and ranked post table."""
        lines: list[str] = []

        lines.append("# Discovery Summary\n")
        if summary is not None:
            lines.append(f"- **Candidates:** {summary.total_candidates}")
            lines.append(f"- **Embedded:** {summary.embedded}")
            lines.append(f"- **Cache hits:** {summary.cache_hits}")
            lines.append(f"- **Without text:** {summary.missing_text}")
            lines.append(f"- **Returned:** {summary.returned}")
        lines.append("")

        if not ranked:
            lines.append("No posts to display.\n")
            with open(output_path, "w", encoding="utf-8") as f:
                f.write("\n".join(lines))
            return

        lines.append("## Ranked Posts\n")
        lines.append("| # | Author | Post | Score | Relevance | Breakdown | URL |")
        lines.append("|---|--------|------|-------|-----------|-----------|-----|")

        for position, r in enumerate(ranked, start=1):
            author = f"@{r.post.author_handle}" if r.post.author_handle else r.post.author_id
            lines.append(
                f"| {position} "
                f"| {author} "
                f"| {_excerpt(r.post.text)} "
                f"| {r.composite_score:.2f} "
                f"| {interpret(r.signals.relevance_score)} "
                f"| {r.score_explanation()} "
                f"| {r.post.url} |"
            )

        lines.append("")

        with open(output_path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines))
