"""Engagement log — replies the user actually sent.

Every reply is appended as one JSON line to ``engagements.jsonl`` under
the configured log directory.  The file is append-only; queries read it
back and filter in memory, which is fine at the scale of one user's
reply history.

Each record keeps the composite engagement score the post had when the
user replied, so ``average_score`` shows how well the ranking predicted
where the user chose to engage.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

from engagement_rank.errors import ActionableError

logger = logging.getLogger(__name__)

_LOG_DIR = Path("data/engagements")
_LOG_FILENAME = "engagements.jsonl"

DEFAULT_HISTORY_LIMIT = 50


@dataclass
class EngagementRecord:
    """One logged reply."""

    user_id: str
    post_id: str
    post_author_id: str
    post_content: str | None = None
    reply_id: str | None = None
    reply_text: str | None = None
    engagement_score: float | None = None
    created_at: str = ""


class EngagementLog:
    """Appends and queries engagement records.

    Usage::

        log = EngagementLog(log_dir="data/engagements")
        log.record(user_id="u1", post_id="p9", post_author_id="a3",
                   engagement_score=0.72)
        log.history("u1", limit=10)
    """

    def __init__(self, log_dir: str | Path = _LOG_DIR) -> None:
        self._log_dir = Path(log_dir)

    @property
    def path(self) -> Path:
        return self._log_dir / _LOG_FILENAME

    def record(
        self,
        *,
        user_id: str,
        post_id: str,
        post_author_id: str,
        post_content: str | None = None,
        reply_id: str | None = None,
        reply_text: str | None = None,
        engagement_score: float | None = None,
    ) -> EngagementRecord:
        """Append one engagement and return the stored record.

        Raises:
            ActionableError (VALIDATION): if an id is blank or the score
            is negative.
        """
        for name, value in (
            ("user_id", user_id),
            ("post_id", post_id),
            ("post_author_id", post_author_id),
        ):
            if not value.strip():
                raise ActionableError.validation(
                    field_name=name,
                    reason="must be a non-empty identifier",
                )
        if engagement_score is not None and engagement_score < 0:
            raise ActionableError.validation(
                field_name="engagement_score",
                reason=f"is {engagement_score} — must be >= 0",
            )

        entry = EngagementRecord(
            user_id=user_id,
            post_id=post_id,
            post_author_id=post_author_id,
            post_content=post_content or None,
            reply_id=reply_id or None,
            reply_text=reply_text or None,
            engagement_score=engagement_score,
            created_at=datetime.now(UTC).isoformat(),
        )

        self._log_dir.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(entry)) + "\n")

        logger.info("Logged engagement by %s on post %s", user_id, post_id)
        return entry

    def history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[EngagementRecord]:
        """Most recent engagements for *user_id*, newest first."""
        if limit <= 0:
            return []
        return self._for_user(user_id)[:limit]

    def post_engagements(self, user_id: str, post_id: str) -> list[EngagementRecord]:
        """Engagements by *user_id* on one post, newest first."""
        return [r for r in self._for_user(user_id) if r.post_id == post_id]

    def count(self, user_id: str) -> int:
        return len(self._for_user(user_id))

    def average_score(self, user_id: str) -> float:
        """Mean ``engagement_score`` over records that have one; 0.0 if none do."""
        scores = [
            r.engagement_score
            for r in self._for_user(user_id)
            if r.engagement_score is not None
        ]
        if not scores:
            return 0.0
        return sum(scores) / len(scores)

    # -- Internals -----------------------------------------------------------

    def _for_user(self, user_id: str) -> list[EngagementRecord]:
        # File order is append order, so reversing gives newest first
        return [r for r in reversed(self._read_all()) if r.user_id == user_id]

    def _read_all(self) -> list[EngagementRecord]:
        if not self.path.exists():
            return []
        records: list[EngagementRecord] = []
        with self.path.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    records.append(EngagementRecord(**json.loads(line)))
                except (json.JSONDecodeError, TypeError) as exc:
                    raise ActionableError.parse(
                        source=str(self.path),
                        location=f"line {lineno}",
                        raw_error=str(exc),
                        suggestion=f"Remove or repair line {lineno} of {self.path}",
                    ) from None
        return records
