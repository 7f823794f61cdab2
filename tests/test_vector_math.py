"""Vector math tests — dot product, magnitude, cosine similarity.

Covers: TestCosineSimilarity, TestVectorContractErrors, TestNormalizeToPercent
"""

from __future__ import annotations

import math

import pytest

from engagement_rank.errors import ActionableError, ErrorType
from engagement_rank.scoring.vector_math import (
    cosine_similarity,
    dot_product,
    magnitude,
    normalize_to_percent,
)


class TestCosineSimilarity:
    """REQUIREMENT: Cosine similarity follows the Euclidean definition exactly.

    WHO: The similarity ranker and relevance scorer comparing interests to posts
    WHAT: Identical non-zero vectors score 1.0; the function is symmetric;
          orthogonal vectors score 0.0; opposite vectors score -1.0; zero
          vectors score 0.0 instead of raising
    WHY: Every relevance score is derived from this number — a wrong value
         reorders the whole ranking with no visible symptom
    """

    def test_identical_vector_scores_one(self) -> None:
        """A non-zero vector compared with itself has similarity 1.0."""
        vec = [0.23, -0.15, 0.87, 0.4]
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)

    def test_similarity_is_symmetric(self) -> None:
        """Swapping the arguments never changes the result."""
        a = [0.1, 0.5, 0.3]
        b = [0.2, 0.4, 0.4]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_orthogonal_vectors_score_zero(self) -> None:
        """[1,0] and [0,1] are unrelated."""
        assert cosine_similarity([1, 0], [0, 1]) == 0.0

    def test_opposite_vectors_score_minus_one(self) -> None:
        """[1,1] and [-1,-1] point in opposite directions."""
        assert cosine_similarity([1, 1], [-1, -1]) == pytest.approx(-1.0)

    def test_zero_vector_on_left_scores_zero(self) -> None:
        """A zero vector is unrelated to everything — no ZeroDivisionError."""
        assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0

    def test_zero_vector_on_right_scores_zero(self) -> None:
        """The zero-vector policy applies on either side."""
        assert cosine_similarity([1.0, 2.0, 3.0], [0.0, 0.0, 0.0]) == 0.0

    def test_known_value_matches_formula(self) -> None:
        """[0.1,0.5,0.3]·[0.2,0.4,0.4] / (|a||b|) ≈ 0.9562."""
        a = [0.1, 0.5, 0.3]
        b = [0.2, 0.4, 0.4]
        expected = 0.34 / (math.sqrt(0.35) * math.sqrt(0.36))
        assert cosine_similarity(a, b) == pytest.approx(expected)

    def test_scale_does_not_change_similarity(self) -> None:
        """Cosine depends on direction only."""
        a = [1.0, 2.0, 3.0]
        assert cosine_similarity(a, [10.0, 20.0, 30.0]) == pytest.approx(1.0)

    def test_result_stays_within_unit_range(self) -> None:
        """Near-parallel vectors never overshoot 1.0 due to rounding."""
        a = [0.1] * 1536
        assert -1.0 <= cosine_similarity(a, a) <= 1.0

    def test_dot_product_and_magnitude_use_full_vector(self) -> None:
        """Helpers sum over every element."""
        assert dot_product([1, 2, 3], [4, 5, 6]) == 32
        assert magnitude([3, 4]) == 5.0


class TestVectorContractErrors:
    """REQUIREMENT: Malformed vectors fail fast with typed errors.

    WHO: Callers passing embeddings from different models or empty payloads
    WHAT: Different lengths raise DIMENSION_MISMATCH; empty vectors raise
          EMPTY_VECTOR; a NaN or infinite component raises VALIDATION
          naming its position; nothing is padded or truncated
    WHY: Silently comparing mismatched vectors would return a plausible but
         meaningless score
    """

    def test_mismatched_lengths_raise_dimension_mismatch(self) -> None:
        """Lengths 2 and 3 cannot be compared."""
        with pytest.raises(ActionableError) as exc_info:
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
        assert exc_info.value.error_type == ErrorType.DIMENSION_MISMATCH
        assert "2 vs 3" in exc_info.value.error

    def test_empty_vectors_raise_empty_vector(self) -> None:
        """Two empty vectors have equal length but are still invalid."""
        with pytest.raises(ActionableError) as exc_info:
            cosine_similarity([], [])
        assert exc_info.value.error_type == ErrorType.EMPTY_VECTOR

    def test_empty_against_non_empty_is_dimension_mismatch(self) -> None:
        """Length is checked before emptiness."""
        with pytest.raises(ActionableError) as exc_info:
            cosine_similarity([], [1.0])
        assert exc_info.value.error_type == ErrorType.DIMENSION_MISMATCH

    def test_magnitude_of_empty_vector_raises(self) -> None:
        """The norm of nothing is undefined here."""
        with pytest.raises(ActionableError) as exc_info:
            magnitude([])
        assert exc_info.value.error_type == ErrorType.EMPTY_VECTOR

    @pytest.mark.parametrize(
        ("a", "b", "position"),
        [
            ([math.nan, 1.0], [1.0, 1.0], "a[0]"),
            ([1.0, 1.0], [1.0, math.inf], "b[1]"),
            ([1.0, -math.inf], [1.0, 1.0], "a[1]"),
        ],
    )
    def test_non_finite_component_raises_validation(
        self, a: list[float], b: list[float], position: str
    ) -> None:
        """NaN must not clamp to 1.0 and pass as a perfect match."""
        with pytest.raises(ActionableError) as exc_info:
            cosine_similarity(a, b)
        assert exc_info.value.error_type == ErrorType.VALIDATION
        assert position in exc_info.value.error

    def test_magnitude_rejects_nan(self) -> None:
        with pytest.raises(ActionableError) as exc_info:
            magnitude([0.0, math.nan])
        assert exc_info.value.error_type == ErrorType.VALIDATION

    def test_overflowing_components_raise_instead_of_returning_nan(self) -> None:
        """Squares of 1e200 overflow to inf, and inf / inf is NaN."""
        with pytest.raises(ActionableError) as exc_info:
            cosine_similarity([1e200, 0.0], [1e200, 0.0])
        assert exc_info.value.error_type == ErrorType.VALIDATION


class TestNormalizeToPercent:
    """REQUIREMENT: A linear percentage view of similarity is available.

    WHO: Exporters and debugging output that show raw similarity as a percent
    WHAT: Similarity is clamped to [0, 1] and scaled to 0-100 without a curve
    WHY: The curved relevance score and the raw percentage answer different
         questions and must not be confused
    """

    def test_scales_linearly(self) -> None:
        assert normalize_to_percent(0.85) == 85

    def test_negative_clamps_to_zero(self) -> None:
        assert normalize_to_percent(-0.3) == 0

    def test_above_one_clamps_to_hundred(self) -> None:
        assert normalize_to_percent(1.0000001) == 100

    def test_nan_raises_validation(self) -> None:
        with pytest.raises(ActionableError) as exc_info:
            normalize_to_percent(math.nan)
        assert exc_info.value.error_type == ErrorType.VALIDATION
