"""Post loading and signal resolution tests.

Covers: TestLoadPosts, TestPostFieldTypes, TestBuildSignals
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from conftest import make_post

from engagement_rank.config import SignalDefaults
from engagement_rank.errors import ActionableError, ErrorType
from engagement_rank.pipeline.posts import Post, build_signals, load_posts

if TYPE_CHECKING:
    from pathlib import Path


def _write_posts(tmp_path: Path, data: object) -> Path:
    path = tmp_path / "posts.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadPosts:
    """REQUIREMENT: Posts load from a JSON list with clear failures.

    WHO: Users passing --posts exported from their social client
    WHAT: Each object becomes a Post; ids are coerced to strings; unknown
          keys land in metadata; null strings become ""; a missing file
          raises CONFIG; malformed JSON or a non-list raises PARSE; an
          object without id or author_id raises VALIDATION naming its index
    WHY: Export formats drift — an unexpected field should survive and a
         missing id should point at the exact record
    """

    def test_loads_posts_with_optional_fields(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [
            {"id": 101, "author_id": "a1", "text": "Launched!", "posts_per_day": 3.5,
             "followers_count": 200, "following_count": 150, "recent_post_count": 12},
            {"id": "p2", "author_id": "a2"},
        ])
        posts = load_posts(path)
        assert [p.id for p in posts] == ["101", "p2"]
        assert posts[0].posts_per_day == 3.5
        assert posts[1].followers_count is None

    def test_unknown_keys_go_to_metadata(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1", "likes": 42}])
        assert load_posts(path)[0].metadata == {"likes": 42}

    def test_null_text_becomes_empty_string(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1", "text": None}])
        post = load_posts(path)[0]
        assert post.text == ""
        assert post.has_text is False

    def test_precomputed_embedding_is_kept(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1", "embedding": [1, 0, 0]}])
        assert load_posts(path)[0].embedding == [1.0, 0.0, 0.0]

    def test_missing_file_raises_config_error(self, tmp_path: Path) -> None:
        with pytest.raises(ActionableError) as exc_info:
            load_posts(tmp_path / "missing.json")
        assert exc_info.value.error_type == ErrorType.CONFIG

    def test_malformed_json_raises_parse_error(self, tmp_path: Path) -> None:
        path = tmp_path / "posts.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(ActionableError) as exc_info:
            load_posts(path)
        assert exc_info.value.error_type == ErrorType.PARSE

    def test_non_list_raises_parse_error(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, {"posts": []})
        with pytest.raises(ActionableError) as exc_info:
            load_posts(path)
        assert exc_info.value.error_type == ErrorType.PARSE
        assert "dict" in exc_info.value.error

    def test_missing_author_raises_validation_naming_index(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1"}, {"id": "p2"}])
        with pytest.raises(ActionableError) as exc_info:
            load_posts(path)
        assert exc_info.value.error_type == ErrorType.VALIDATION
        assert "posts[1].author_id" in exc_info.value.error


class TestPostFieldTypes:
    """REQUIREMENT: Numeric post fields are checked when the file loads.

    WHO: Users whose export tool writes counts as strings or NaN
    WHAT: A count or posts_per_day that is a string, a boolean, NaN,
          infinite or negative raises VALIDATION naming posts[i].field; a
          whole-number float count becomes an int; null counts stay
          missing; an embedding must be a list of finite numbers; a
          non-string text raises VALIDATION
    WHY: A string count crashes ranking with a bare TypeError, and a NaN
         signal sorts unpredictably and puts the wrong post first
    """

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("followers_count", "100"),
            ("following_count", True),
            ("recent_post_count", 2.5),
            ("recent_post_count", -3),
            ("posts_per_day", "often"),
            ("posts_per_day", float("nan")),
            ("posts_per_day", float("inf")),
        ],
    )
    def test_bad_numeric_field_raises_validation_naming_it(
        self, tmp_path: Path, key: str, value: object
    ) -> None:
        path = _write_posts(tmp_path, [
            {"id": "p1", "author_id": "a1"},
            {"id": "p2", "author_id": "a2", key: value},
        ])
        with pytest.raises(ActionableError) as exc_info:
            load_posts(path)
        assert exc_info.value.error_type == ErrorType.VALIDATION
        assert f"posts[1].{key}" in exc_info.value.error

    def test_whole_float_count_becomes_int(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1", "followers_count": 300.0}])
        post = load_posts(path)[0]
        assert post.followers_count == 300
        assert isinstance(post.followers_count, int)

    def test_null_count_stays_missing(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1", "followers_count": None}])
        signals = build_signals(load_posts(path)[0], None, SignalDefaults(follower_ratio=0.4))
        assert signals.follower_ratio == 0.4

    @pytest.mark.parametrize(
        "embedding",
        [[0.1, float("nan"), 0.3], [0.1, "0.2", 0.3], "0.1,0.2"],
    )
    def test_bad_embedding_raises_validation(self, tmp_path: Path, embedding: object) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1", "embedding": embedding}])
        with pytest.raises(ActionableError) as exc_info:
            load_posts(path)
        assert exc_info.value.error_type == ErrorType.VALIDATION
        assert "posts[0].embedding" in exc_info.value.error

    def test_negative_embedding_components_are_allowed(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1", "embedding": [-0.5, 0.5]}])
        assert load_posts(path)[0].embedding == [-0.5, 0.5]

    def test_non_string_text_raises_validation(self, tmp_path: Path) -> None:
        path = _write_posts(tmp_path, [{"id": "p1", "author_id": "a1", "text": 42}])
        with pytest.raises(ActionableError) as exc_info:
            load_posts(path)
        assert "posts[0].text" in exc_info.value.error


class TestBuildSignals:
    """REQUIREMENT: Missing social-graph data resolves to configured defaults.

    WHO: The discovery runner assembling signals for the scorer
    WHAT: Present counts pass through; a missing count or zero followers
          uses the default ratio; a missing relevance uses the default
          relevance score
    WHY: The scorer requires all four signals — partial upstream data must
         not crash ranking or silently count as maximal
    """

    def test_complete_post_passes_counts_through(self) -> None:
        signals = build_signals(make_post(), 57, SignalDefaults())
        assert signals.posting_frequency == 4.0
        assert signals.follower_ratio == pytest.approx(0.8)
        assert signals.recent_activity == 10
        assert signals.relevance_score == 57

    def test_missing_counts_use_defaults(self) -> None:
        defaults = SignalDefaults(posting_frequency=1.0, follower_ratio=0.5, recent_activity=2)
        post = Post(id="p1", author_id="a1")
        signals = build_signals(post, 30, defaults)
        assert signals.posting_frequency == 1.0
        assert signals.follower_ratio == 0.5
        assert signals.recent_activity == 2

    def test_zero_followers_uses_default_ratio(self) -> None:
        defaults = SignalDefaults(follower_ratio=0.25)
        signals = build_signals(make_post(followers_count=0), 0, defaults)
        assert signals.follower_ratio == 0.25

    def test_missing_relevance_uses_default(self) -> None:
        signals = build_signals(make_post(), None, SignalDefaults(relevance_score=10))
        assert signals.relevance_score == 10
