"""Engagement-likelihood scoring and final ranking.

Four signals feed one composite score per post:

=====================  ==========================================
Signal                 Raw measurement
=====================  ==========================================
activity frequency     author posts per day
follower ratio         following / followers of the author
recent post count      author posts in the recent window
topical similarity     relevance score (0-100) from the curve
=====================  ==========================================

Each signal is normalized to ``[0.0, 1.0]`` and the composite is a fixed
weighted sum::

    composite = Σ weight_i * normalized_i

Behavioral signals use a **saturating cap**: ``min(value / cap, 1.0)``.
Anything at or above the cap counts as fully engaged, so one hyperactive
account cannot dwarf every other post.  Relevance normalizes as
``score / 100``.

Weights are validated when :class:`ScoringWeights` is built.  The scorer
never renormalizes them at call time.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Generic, TypeVar

from engagement_rank.errors import ActionableError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

_P = TypeVar("_P")

_WEIGHT_SUM_TOLERANCE = 1e-6

# Upper bound on posts scored in one pass
DEFAULT_MAX_CANDIDATES = 500


# ---------------------------------------------------------------------------
# Configuration records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScoringWeights:
    """One non-negative coefficient per signal; must sum to 1.0."""

    activity_frequency: float = 0.30
    follower_ratio: float = 0.25
    recent_post_count: float = 0.20
    topical_similarity: float = 0.25

    def __post_init__(self) -> None:
        weights = self.as_dict()
        for name, value in weights.items():
            if not math.isfinite(value) or value < 0.0:
                raise ActionableError.invalid_weights(
                    weights, f"{name} is {value} — must be a finite number >= 0.0"
                )
        total = math.fsum(weights.values())
        if abs(total - 1.0) > _WEIGHT_SUM_TOLERANCE:
            raise ActionableError.invalid_weights(
                weights, f"weights sum to {total:.6f} — must sum to 1.0"
            )

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class NormalizationCaps:
    """Raw value at which each behavioral signal saturates to 1.0."""

    posting_frequency: float = 10.0
    follower_ratio: float = 2.0
    recent_activity: float = 20.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not math.isfinite(value) or value <= 0:
                raise ActionableError.validation(
                    field_name=f"normalization.{f.name}_cap",
                    reason=f"is {value} — must be a finite number > 0",
                )


# ---------------------------------------------------------------------------
# Per-post signal records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngagementSignals:
    """Raw behavioral measurements plus relevance for one post.

    All four values are required.  Callers resolve missing data (no post
    text, author with zero followers) to a default before building this.
    """

    posting_frequency: float
    follower_ratio: float
    recent_activity: int
    relevance_score: float

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ActionableError.validation(
                    field_name=f.name,
                    reason=f"is {value!r} — engagement signals must be numbers",
                )
            if not math.isfinite(value) or value < 0:
                raise ActionableError.validation(
                    field_name=f.name,
                    reason=f"is {value} — engagement signals must be finite and >= 0",
                )


@dataclass(frozen=True)
class NormalizedSignals:
    """Signals mapped onto ``[0.0, 1.0]``, ready for weighting."""

    activity_frequency: float
    follower_ratio: float
    recent_post_count: float
    topical_similarity: float


def _saturate(value: float, cap: float) -> float:
    return min(value / cap, 1.0)


def normalize_signals(
    signals: EngagementSignals,
    caps: NormalizationCaps | None = None,
) -> NormalizedSignals:
    """Normalize each raw signal onto ``[0.0, 1.0]``.

    Monotonic: a higher raw value never produces a lower normalized one.
    """
    caps = caps or NormalizationCaps()
    return NormalizedSignals(
        activity_frequency=_saturate(signals.posting_frequency, caps.posting_frequency),
        follower_ratio=_saturate(signals.follower_ratio, caps.follower_ratio),
        recent_post_count=_saturate(signals.recent_activity, caps.recent_activity),
        topical_similarity=max(0.0, min(1.0, signals.relevance_score / 100)),
    )


def follower_ratio(following: int, followers: int, *, default: float = 0.0) -> float:
    """Return ``following / followers``, or *default* when followers is 0."""
    if followers <= 0:
        return default
    return following / followers


# ---------------------------------------------------------------------------
# Scorer
# ---------------------------------------------------------------------------


@dataclass
class RankedPost(Generic[_P]):
    """A post enriched with its signals and composite score."""

    post: _P
    signals: EngagementSignals
    normalized: NormalizedSignals
    composite_score: float

    def score_explanation(self) -> str:
        """Human-readable score breakdown for export output."""
        return " | ".join([
            f"Frequency: {self.normalized.activity_frequency:.2f}",
            f"Ratio: {self.normalized.follower_ratio:.2f}",
            f"Recent: {self.normalized.recent_post_count:.2f}",
            f"Relevance: {self.signals.relevance_score:.0f}",
        ])


class EngagementScorer:
    """Combines normalized signals into a composite and ranks posts by it.

    Parameters
    ----------
    weights:
        Validated :class:`ScoringWeights`.  Construction already rejected
        weights that do not sum to 1.0.
    caps:
        Saturation caps for the behavioral signals.
    max_candidates:
        Upper bound on posts per :meth:`rank` call.
    """

    def __init__(
        self,
        weights: ScoringWeights | None = None,
        *,
        caps: NormalizationCaps | None = None,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
    ) -> None:
        self.weights = weights or ScoringWeights()
        self.caps = caps or NormalizationCaps()
        self.max_candidates = max_candidates

    def score(self, signals: EngagementSignals) -> float:
        """Weighted sum of the four normalized signals."""
        return self._composite(normalize_signals(signals, self.caps))

    def rank(
        self,
        posts: Sequence[_P],
        signals: Sequence[EngagementSignals],
    ) -> list[RankedPost[_P]]:
        """Score every post and sort descending by composite score.

        ``signals[i]`` belongs to ``posts[i]``.  Posts with equal scores
        keep their input order.  No post is ever dropped.

        Raises ``ActionableError`` (VALIDATION) when the two sequences
        differ in length or exceed ``max_candidates``.
        """
        if len(posts) != len(signals):
            raise ActionableError.validation(
                field_name="signals",
                reason=f"got {len(signals)} signal records for {len(posts)} posts",
                suggestion="Build exactly one EngagementSignals per post, in post order",
            )
        if len(posts) > self.max_candidates:
            raise ActionableError.validation(
                field_name="posts",
                reason=f"{len(posts)} candidates exceeds max_candidates={self.max_candidates}",
                suggestion="Pre-filter candidates or raise [scoring].max_candidates",
            )

        ranked: list[RankedPost[_P]] = []
        for post, post_signals in zip(posts, signals, strict=True):
            normalized = normalize_signals(post_signals, self.caps)
            ranked.append(RankedPost(
                post=post,
                signals=post_signals,
                normalized=normalized,
                composite_score=self._composite(normalized),
            ))

        ranked.sort(key=lambda r: r.composite_score, reverse=True)

        logger.debug("Ranked %d posts by engagement likelihood", len(ranked))
        return ranked

    def _composite(self, normalized: NormalizedSignals) -> float:
        w = self.weights
        return (
            w.activity_frequency * normalized.activity_frequency
            + w.follower_ratio * normalized.follower_ratio
            + w.recent_post_count * normalized.recent_post_count
            + w.topical_similarity * normalized.topical_similarity
        )


def rank_posts(
    posts: Sequence[_P],
    signals: Sequence[EngagementSignals],
    weights: ScoringWeights,
    caps: NormalizationCaps | None = None,
) -> list[_P]:
    """Return *posts* reordered by engagement likelihood, best first."""
    scorer = EngagementScorer(weights, caps=caps, max_candidates=max(len(posts), 1))
    return [r.post for r in scorer.rank(posts, signals)]
