"""Post records and behavioral signal resolution.

A :class:`Post` is the board-agnostic shape handed to the ranking
pipeline by whatever fetched it (social-graph API, export file, test
fixture).  Social-graph counts are optional on the record because
upstream data is often partial.

:func:`build_signals` is the single place where missing data is turned
into configured defaults.  The scoring core only ever sees a complete
:class:`~engagement_rank.scoring.engagement.EngagementSignals`.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from engagement_rank.errors import ActionableError
from engagement_rank.scoring.engagement import EngagementSignals, follower_ratio

if TYPE_CHECKING:
    from engagement_rank.config import SignalDefaults


@dataclass
class Post:
    """One candidate post plus its author's social-graph counts."""

    id: str
    author_id: str
    text: str = ""
    author_handle: str = ""
    url: str = ""
    posts_per_day: float | None = None
    followers_count: int | None = None
    following_count: int | None = None
    recent_post_count: int | None = None
    embedding: list[float] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


def build_signals(
    post: Post,
    relevance_score: int | None,
    defaults: SignalDefaults,
) -> EngagementSignals:
    """Resolve every signal for *post*, substituting defaults for gaps.

    The follower ratio falls back to the default when either count is
    missing or the author has no followers (ratio undefined).
    """
    if post.followers_count is None or post.following_count is None:
        ratio = defaults.follower_ratio
    else:
        ratio = follower_ratio(
            post.following_count,
            post.followers_count,
            default=defaults.follower_ratio,
        )

    return EngagementSignals(
        posting_frequency=(
            defaults.posting_frequency if post.posts_per_day is None else post.posts_per_day
        ),
        follower_ratio=ratio,
        recent_activity=(
            defaults.recent_activity if post.recent_post_count is None else post.recent_post_count
        ),
        relevance_score=defaults.relevance_score if relevance_score is None else relevance_score,
    )


# ---------------------------------------------------------------------------
# JSON loading
# ---------------------------------------------------------------------------

_REQUIRED_KEYS = ("id", "author_id")
_KNOWN_KEYS = frozenset(Post.__dataclass_fields__) - {"metadata"}
_COUNT_KEYS = ("followers_count", "following_count", "recent_post_count")


def load_posts(path: str | Path) -> list[Post]:
    """Load posts from a JSON file holding a list of post objects.

    Unknown keys are kept in ``Post.metadata``.

    Raises :class:`~engagement_rank.errors.ActionableError`:
      - CONFIG if the file does not exist
      - PARSE if the JSON is malformed or not a list of objects
      - VALIDATION if a post lacks ``id`` or ``author_id``, a text field is
        not a string, a count or ``posts_per_day`` is not a finite number
        >= 0, or ``embedding`` is not a list of finite numbers
    """
    filepath = Path(path)
    if not filepath.exists():
        raise ActionableError.config(
            field_name="posts",
            reason=f"Posts file not found: {filepath}",
            suggestion="Pass --posts with the path to a JSON list of posts",
        )

    try:
        data = json.loads(filepath.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ActionableError.parse(
            source=str(filepath),
            location=f"line {exc.lineno}",
            raw_error=exc.msg,
        ) from None

    if not isinstance(data, list):
        raise ActionableError.parse(
            source=str(filepath),
            location="top level",
            raw_error=f"expected a JSON list of posts, got {type(data).__name__}",
        )

    posts: list[Post] = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise ActionableError.parse(
                source=str(filepath),
                location=f"item {index}",
                raw_error=f"expected an object, got {type(raw).__name__}",
            )
        posts.append(_post_from_dict(raw, index))
    return posts


def _post_from_dict(raw: dict[str, Any], index: int) -> Post:
    for key in _REQUIRED_KEYS:
        if not raw.get(key):
            raise ActionableError.validation(
                field_name=f"posts[{index}].{key}",
                reason=f"required field '{key}' is missing or empty",
            )

    known = {k: v for k, v in raw.items() if k in _KNOWN_KEYS}
    extra = {k: v for k, v in raw.items() if k not in _KNOWN_KEYS}
    known["id"] = str(known["id"])
    known["author_id"] = str(known["author_id"])
    for key in ("text", "author_handle", "url"):
        if key in known:
            known[key] = known[key] or ""
            if not isinstance(known[key], str):
                raise ActionableError.validation(
                    field_name=f"posts[{index}].{key}",
                    reason=f"is {type(known[key]).__name__} — expected a string",
                )
    if known.get("posts_per_day") is not None:
        known["posts_per_day"] = float(
            _number(known["posts_per_day"], f"posts[{index}].posts_per_day")
        )
    for key in _COUNT_KEYS:
        if known.get(key) is not None:
            known[key] = _count(known[key], f"posts[{index}].{key}")
    if known.get("embedding") is not None:
        known["embedding"] = _embedding(known["embedding"], f"posts[{index}].embedding")
    return Post(**known, metadata=extra)


def _number(value: object, field_name: str) -> int | float:
    """Return *value* if it is a finite, non-negative JSON number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ActionableError.validation(
            field_name=field_name,
            reason=f"is {value!r} — expected a number",
        )
    if not math.isfinite(value) or value < 0:
        raise ActionableError.validation(
            field_name=field_name,
            reason=f"is {value} — must be a finite number >= 0",
        )
    return value


def _count(value: object, field_name: str) -> int:
    number = _number(value, field_name)
    if isinstance(number, float):
        if not number.is_integer():
            raise ActionableError.validation(
                field_name=field_name,
                reason=f"is {number} — expected a whole number",
            )
        return int(number)
    return number


def _embedding(value: object, field_name: str) -> list[float]:
    if not isinstance(value, list):
        raise ActionableError.validation(
            field_name=field_name,
            reason=f"is {type(value).__name__} — expected a list of numbers",
        )
    vector: list[float] = []
    for i, component in enumerate(value):
        if isinstance(component, bool) or not isinstance(component, (int, float)):
            raise ActionableError.validation(
                field_name=f"{field_name}[{i}]",
                reason=f"is {component!r} — expected a number",
            )
        if not math.isfinite(component):
            raise ActionableError.validation(
                field_name=f"{field_name}[{i}]",
                reason=f"is {component} — must be a finite number",
            )
        vector.append(float(component))
    return vector
