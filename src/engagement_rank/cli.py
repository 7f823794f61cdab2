"""CLI command handlers for engagement-rank.

Each public function corresponds to a CLI subcommand and encapsulates
the wiring, orchestration, and output for that command.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from engagement_rank.config import OUTPUT_FORMATS, load_settings
from engagement_rank.errors import ActionableError
from engagement_rank.export import CSVExporter, JSONExporter, MarkdownExporter
from engagement_rank.logging import LOG_LEVELS
from engagement_rank.pipeline.posts import load_posts
from engagement_rank.pipeline.runner import DiscoveryRunner
from engagement_rank.rag.embedder import Embedder
from engagement_rank.rag.engagements import DEFAULT_HISTORY_LIMIT, EngagementLog
from engagement_rank.rag.store import SOURCE_TYPES, EmbeddingCache
from engagement_rank.scoring.relevance import interpret, topical_similarity

_EXPORTERS = {
    "markdown": (MarkdownExporter, "results.md"),
    "csv": (CSVExporter, "results.csv"),
    "json": (JSONExporter, "results.json"),
}


def _read_interests(args: argparse.Namespace) -> str:
    if args.interests_file:
        path = Path(args.interests_file)
        if not path.is_file():
            raise ActionableError.config(
                field_name="interests_file",
                reason=f"Interests file not found: {path}",
                suggestion="Pass --interests-file with the path to a text file, or use --interests",
            )
        return path.read_text(encoding="utf-8")
    return args.interests or ""


def handle_rank(args: argparse.Namespace) -> None:
    """Rank posts by engagement likelihood and export the shortlist."""
    settings = load_settings()
    posts = load_posts(args.posts)
    interests = _read_interests(args)
    cache = EmbeddingCache(
        persist_dir=settings.chroma.persist_dir,
        ttl_seconds=settings.chroma.cache_ttl_seconds,
    )
    runner = DiscoveryRunner(settings, cache=cache)

    result = asyncio.run(
        runner.run(interests, posts, user_id=args.user, top_n=args.top)
    )

    print(f"\n{'=' * 60}")
    print(" Engagement Ranking Summary")
    print(f"{'=' * 60}")
    print(f" Candidates:      {result.summary.total_candidates}")
    print(f" Embedded:        {result.summary.embedded}")
    print(f" Cache hits:      {result.summary.cache_hits}")
    print(f" Without text:    {result.summary.missing_text}")
    print(f" Returned:        {result.summary.returned}")
    print(f"{'=' * 60}\n")

    for i, ranked in enumerate(result.ranked_posts, 1):
        post = ranked.post
        author = f"@{post.author_handle}" if post.author_handle else post.author_id
        print(f"{i}. [{ranked.composite_score:.2f}] {author} — {post.id}")
        print(f"   {interpret(ranked.signals.relevance_score)} | {ranked.score_explanation()}")
        if post.url:
            print(f"   {post.url}")
        print()

    fmt = args.format or settings.output.default_format
    exporter_cls, filename = _EXPORTERS[fmt]
    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        out_dir = Path(settings.output.output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        out_path = out_dir / filename
    exporter_cls().export(result.ranked_posts, str(out_path), summary=result.summary)
    print(f"Exported {fmt} → {out_path}")


def handle_similar(args: argparse.Namespace) -> None:
    """List posts most semantically similar to the interests text."""
    settings = load_settings()
    posts = load_posts(args.posts)
    interests = _read_interests(args)
    cache = EmbeddingCache(
        persist_dir=settings.chroma.persist_dir,
        ttl_seconds=settings.chroma.cache_ttl_seconds,
    )
    runner = DiscoveryRunner(settings, cache=cache)

    results = asyncio.run(
        runner.similar(
            interests,
            posts,
            user_id=args.user,
            limit=args.limit,
            threshold=args.threshold,
        )
    )
    if not results:
        print("No posts met the similarity threshold.")
        return
    for i, r in enumerate(results, 1):
        score = topical_similarity(r.similarity)
        print(f"{i}. {r.source_id}  similarity={r.similarity:.4f}  relevance={score} ({interpret(score)})")


def handle_interpret(args: argparse.Namespace) -> None:
    """Show the relevance score and band for a raw cosine similarity."""
    score = topical_similarity(args.similarity)
    print(f"Similarity: {args.similarity:.4f}")
    print(f"Relevance:  {score}/100")
    print(f"Band:       {interpret(score)}")


def handle_log(args: argparse.Namespace) -> None:
    """Record a reply in the engagement log."""
    settings = load_settings()
    log = EngagementLog(log_dir=settings.engagements.log_dir)
    log.record(
        user_id=args.user_id,
        post_id=args.post_id,
        post_author_id=args.author,
        post_content=args.post_content,
        reply_id=args.reply_id,
        reply_text=args.reply_text,
        engagement_score=args.score,
    )
    print(f"Logged engagement on {args.post_id} for {args.user_id}")
    print(f"  Total engagements: {log.count(args.user_id)}")


def handle_history(args: argparse.Namespace) -> None:
    """Print a user's recent engagements and their average score."""
    settings = load_settings()
    log = EngagementLog(log_dir=settings.engagements.log_dir)
    records = log.history(args.user_id, limit=args.limit)
    if not records:
        print(f"No engagements recorded for {args.user_id}.")
        return

    print(f"Engagements for {args.user_id} (newest first):")
    for record in records:
        score = "-" if record.engagement_score is None else f"{record.engagement_score:.2f}"
        print(f"  {record.created_at}  post={record.post_id}  author={record.post_author_id}  score={score}")
    print(f"\nTotal: {log.count(args.user_id)}  Average score: {log.average_score(args.user_id):.2f}")


def handle_health() -> None:
    """Verify Ollama is reachable and the embedding model is pulled."""
    settings = load_settings()
    embedder = Embedder(
        base_url=settings.ollama.base_url,
        embed_model=settings.ollama.embed_model,
        dimensions=settings.ollama.dimensions,
    )
    asyncio.run(embedder.health_check())
    print(f"Ollama OK at {settings.ollama.base_url} — model '{settings.ollama.embed_model}' available")


def handle_cache_clear(args: argparse.Namespace) -> None:
    """Delete cached embeddings."""
    settings = load_settings()
    cache = EmbeddingCache(
        persist_dir=settings.chroma.persist_dir,
        ttl_seconds=settings.chroma.cache_ttl_seconds,
    )
    source_types = [args.source_type] if args.source_type else list(SOURCE_TYPES)
    for source_type in source_types:
        removed = cache.clear(source_type)
        print(f"  Cleared {removed} '{source_type}' embeddings")


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="engagement-rank",
        description="Rank social posts by how likely a reply is to get a response",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Also write a timestamped log file to this directory",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="INFO",
        help="Minimum level written to stderr and the log file (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # -- rank ----------------------------------------------------------------
    rank_p = sub.add_parser("rank", help="Rank posts by engagement likelihood")
    _add_post_source_args(rank_p)
    rank_p.add_argument(
        "--top",
        type=int,
        default=None,
        metavar="N",
        help="Posts to return (default: [discovery].posts_per_session)",
    )
    rank_p.add_argument(
        "--format",
        choices=list(OUTPUT_FORMATS),
        default=None,
        help="Export format (default: [output].default_format)",
    )
    rank_p.add_argument("--output", type=str, default=None, help="Export file path")

    # -- similar -------------------------------------------------------------
    similar_p = sub.add_parser("similar", help="List posts most similar to your interests")
    _add_post_source_args(similar_p)
    similar_p.add_argument("--limit", type=int, default=None, help="Maximum results")
    similar_p.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum cosine similarity (inclusive)",
    )

    # -- interpret -----------------------------------------------------------
    interpret_p = sub.add_parser("interpret", help="Explain a raw cosine similarity")
    interpret_p.add_argument("similarity", type=float, help="Cosine similarity, typically 0-1")

    # -- log -----------------------------------------------------------------
    log_p = sub.add_parser("log", help="Record a reply you sent")
    log_p.add_argument("user_id", type=str)
    log_p.add_argument("post_id", type=str)
    log_p.add_argument("--author", type=str, required=True, help="Post author id")
    log_p.add_argument("--post-content", type=str, default=None)
    log_p.add_argument("--reply-id", type=str, default=None)
    log_p.add_argument("--reply-text", type=str, default=None)
    log_p.add_argument("--score", type=float, default=None, help="Composite score at reply time")

    # -- history -------------------------------------------------------------
    history_p = sub.add_parser("history", help="Show recent engagements")
    history_p.add_argument("user_id", type=str)
    history_p.add_argument("--limit", type=int, default=DEFAULT_HISTORY_LIMIT)

    # -- health --------------------------------------------------------------
    sub.add_parser("health", help="Check Ollama and the embedding model")

    # -- cache-clear ---------------------------------------------------------
    cache_p = sub.add_parser("cache-clear", help="Delete cached embeddings")
    cache_p.add_argument(
        "--source-type",
        choices=list(SOURCE_TYPES),
        default=None,
        help="Clear one source type only (default: all)",
    )

    return parser


def _add_post_source_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--posts", type=str, required=True, help="JSON file with a list of posts")
    interests = p.add_mutually_exclusive_group(required=True)
    interests.add_argument("--interests", type=str, help="Your interests as free text")
    interests.add_argument("--interests-file", type=str, help="File containing your interests")
    p.add_argument("--user", type=str, default="default", help="User id for caching")
