"""CLI entry point for engagement-rank."""

from __future__ import annotations

import sys

from engagement_rank import cli
from engagement_rank.errors import ActionableError
from engagement_rank.logging import configure_logging


def main(argv: list[str] | None = None) -> None:
    parser = cli.build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level, args.log_dir)
        if args.command == "rank":
            cli.handle_rank(args)
        elif args.command == "similar":
            cli.handle_similar(args)
        elif args.command == "interpret":
            cli.handle_interpret(args)
        elif args.command == "log":
            cli.handle_log(args)
        elif args.command == "history":
            cli.handle_history(args)
        elif args.command == "health":
            cli.handle_health()
        elif args.command == "cache-clear":
            cli.handle_cache_clear(args)
    except ActionableError as exc:
        print(f"Error: {exc.error}", file=sys.stderr)
        if exc.suggestion:
            print(f"  Suggestion: {exc.suggestion}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
