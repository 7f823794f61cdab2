"""Vector arithmetic over embedding vectors.

Cosine similarity measures the angle between two vectors:

- ``1.0``  — identical direction (very similar)
- ``0.0``  — orthogonal (unrelated)
- ``-1.0`` — opposite direction

Text embeddings almost always land in ``[0.0, 1.0]``.

Every function here is pure and holds no state, so the module is safe to
call from any number of threads or tasks at once.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from engagement_rank.errors import ActionableError

if TYPE_CHECKING:
    from collections.abc import Sequence


def require_finite(value: float, field_name: str) -> float:
    """Return *value*, raising VALIDATION if it is NaN or infinite.

    NaN compares false against everything, so it would slip through
    ``min``/``max`` clamps and ``sort`` without an error.
    """
    if not math.isfinite(value):
        raise ActionableError.validation(
            field_name=field_name,
            reason=f"is {value} — must be a finite number",
        )
    return value


def _check_finite(vector: Sequence[float], name: str) -> None:
    for i, x in enumerate(vector):
        require_finite(x, f"{name}[{i}]")


def _check_pair(a: Sequence[float], b: Sequence[float]) -> None:
    """Raise if *a* and *b* cannot be compared element-wise."""
    if len(a) != len(b):
        raise ActionableError.dimension_mismatch(len(a), len(b))
    if not a:
        raise ActionableError.empty_vector("a")
    _check_finite(a, "a")
    _check_finite(b, "b")


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``sum(a[i] * b[i])`` over the full length of both vectors."""
    _check_pair(a, b)
    return math.fsum(x * y for x, y in zip(a, b, strict=True))


def magnitude(a: Sequence[float]) -> float:
    """Euclidean norm ``sqrt(sum(a[i]**2))``."""
    if not a:
        raise ActionableError.empty_vector("a")
    _check_finite(a, "a")
    return math.sqrt(math.fsum(x * x for x in a))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity ``(a · b) / (‖a‖ × ‖b‖)``.

    Raises :class:`~engagement_rank.errors.ActionableError`:
      - DIMENSION_MISMATCH if the vectors differ in length
      - EMPTY_VECTOR if the vectors have length 0
      - VALIDATION if any component is NaN or infinite

    A zero vector on either side yields ``0.0`` — zero vectors are treated
    as unrelated to everything rather than as an error.  The result is
    clamped to ``[-1.0, 1.0]`` so floating-point overshoot on near-parallel
    vectors never escapes the valid range.
    """
    dot = dot_product(a, b)
    mag_a = magnitude(a)
    mag_b = magnitude(b)

    if mag_a == 0.0 or mag_b == 0.0:
        return 0.0

    # inf / inf when components are large enough to overflow the squares
    result = dot / (mag_a * mag_b)
    require_finite(result, "cosine_similarity")
    return max(-1.0, min(1.0, result))


def normalize_to_percent(similarity: float) -> int:
    """Map a similarity to a linear 0-100 percentage.

    Values are clamped to ``[0.0, 1.0]`` first, so negative similarities
    read as 0.  Unlike :func:`~engagement_rank.scoring.relevance.topical_similarity`
    no curve is applied.

    >>> normalize_to_percent(0.85)
    85
    """
    clamped = max(0.0, min(1.0, require_finite(similarity, "similarity")))
    return round(clamped * 100)
