"""Configuration loading and validation.

Loads ``settings.toml`` and validates all fields at startup, before any
embedding calls or ranking work begins.  Scoring weights that do not sum
to 1.0 are rejected here, so a ranking pass never runs on a distorted
score scale.

The validated config is exposed as a :class:`Settings` dataclass with
typed fields for each section: ``scoring``, ``normalization``,
``defaults``, ``discovery``, ``ollama``, ``chroma``, ``output`` and
``engagements``.  Build it once at process start and pass it down.
"""

from __future__ import annotations

import math
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from engagement_rank.errors import ActionableError
from engagement_rank.scoring.engagement import (
    DEFAULT_MAX_CANDIDATES,
    NormalizationCaps,
    ScoringWeights,
)

# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ScoringConfig:
    """Signal weights and batch bound from ``[scoring]``."""

    weights: ScoringWeights = field(default_factory=ScoringWeights)
    max_candidates: int = DEFAULT_MAX_CANDIDATES


@dataclass
class SignalDefaults:
    """Values substituted for missing social-graph data, from ``[defaults]``."""

    posting_frequency: float = 0.0
    follower_ratio: float = 0.0
    recent_activity: int = 0
    relevance_score: int = 0


@dataclass
class DiscoveryConfig:
    """Session sizing and similarity filtering from ``[discovery]``."""

    posts_per_session: int = 5
    max_posts_per_session: int = 20
    similarity_limit: int = 10
    similarity_threshold: float = 0.7


@dataclass
class OllamaConfig:
    """Ollama connection settings from ``[ollama]``."""

    base_url: str = "http://localhost:11434"
    embed_model: str = "nomic-embed-text"
    dimensions: int | None = None


@dataclass
class ChromaConfig:
    """ChromaDB embedding cache settings from ``[chroma]``."""

    persist_dir: str = "./data/chroma_db"
    cache_ttl_seconds: int = 3600


@dataclass
class OutputConfig:
    """Output settings from ``[output]``."""

    default_format: str = "markdown"
    output_dir: str = "./output"


@dataclass
class EngagementLogConfig:
    """Engagement log location from ``[engagements]``."""

    log_dir: str = "./data/engagements"


@dataclass
class Settings:
    """Top-level validated configuration."""

    scoring: ScoringConfig
    normalization: NormalizationCaps = field(default_factory=NormalizationCaps)
    defaults: SignalDefaults = field(default_factory=SignalDefaults)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    chroma: ChromaConfig = field(default_factory=ChromaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    engagements: EngagementLogConfig = field(default_factory=EngagementLogConfig)


# ---------------------------------------------------------------------------
# Default settings path
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")

OUTPUT_FORMATS = ("markdown", "csv", "json")

_WEIGHT_KEYS = {
    "activity_frequency": "activity_frequency_weight",
    "follower_ratio": "follower_ratio_weight",
    "recent_post_count": "recent_post_count_weight",
    "topical_similarity": "topical_similarity_weight",
}


# ---------------------------------------------------------------------------
# Loading and validation
# ---------------------------------------------------------------------------


def load_settings(path: str | Path = DEFAULT_SETTINGS_PATH) -> Settings:
    """Load and validate settings from a TOML file.

    Raises :class:`~engagement_rank.errors.ActionableError`:
      - CONFIG if the file is missing or a required section is absent
      - VALIDATION if field values are out of range
      - INVALID_WEIGHTS if the scoring weights do not sum to 1.0
      - PARSE if the TOML is malformed

    Returns a fully validated :class:`Settings` instance.
    """
    filepath = Path(path)
    if not filepath.exists():
        raise ActionableError.config(
            field_name="settings_path",
            reason=f"Settings file not found: {filepath}",
            suggestion=f"Create {filepath} or copy from config/settings.toml",
        )

    raw_text = filepath.read_text(encoding="utf-8")
    try:
        data = tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as exc:
        raise ActionableError.parse(
            source=str(filepath),
            location="TOML syntax",
            raw_error=str(exc),
            suggestion=f"Fix TOML syntax in {filepath}",
        ) from None

    return _validate(data, filepath)


def _validate(data: dict[str, object], filepath: Path) -> Settings:
    """Validate raw TOML data and return a Settings instance."""

    # -- scoring section -----------------------------------------------------
    scoring_data = _require_section(data, "scoring", filepath)

    raw_weights: dict[str, float] = {}
    for attr, key in _WEIGHT_KEYS.items():
        value = float(_require_field(scoring_data, key, "scoring", filepath))  # type: ignore[arg-type]
        if not 0.0 <= value <= 1.0:
            raise ActionableError.validation(
                field_name=f"scoring.{key}",
                reason=f"is {value} — must be between 0.0 and 1.0",
                suggestion=f"Set [scoring].{key} to a value between 0.0 and 1.0",
            )
        raw_weights[attr] = value

    # Raises INVALID_WEIGHTS when the sum is off
    weights = ScoringWeights(**raw_weights)

    max_candidates = int(scoring_data.get("max_candidates", DEFAULT_MAX_CANDIDATES))  # type: ignore[call-overload]
    if max_candidates < 1:
        raise ActionableError.validation(
            field_name="scoring.max_candidates",
            reason=f"is {max_candidates} — must be >= 1",
        )

    scoring = ScoringConfig(weights=weights, max_candidates=max_candidates)

    # -- normalization section -----------------------------------------------
    norm_data = _optional_section(data, "normalization")
    normalization = NormalizationCaps(
        posting_frequency=float(norm_data.get("posting_frequency_cap", 10.0)),
        follower_ratio=float(norm_data.get("follower_ratio_cap", 2.0)),
        recent_activity=float(norm_data.get("recent_activity_cap", 20)),
    )

    # -- defaults section ----------------------------------------------------
    defaults_data = _optional_section(data, "defaults")
    defaults = SignalDefaults(
        posting_frequency=float(defaults_data.get("posting_frequency", 0.0)),
        follower_ratio=float(defaults_data.get("follower_ratio", 0.0)),
        recent_activity=int(defaults_data.get("recent_activity", 0)),
        relevance_score=int(defaults_data.get("relevance_score", 0)),
    )
    for name in ("posting_frequency", "follower_ratio", "recent_activity"):
        value = getattr(defaults, name)
        if not math.isfinite(value) or value < 0:
            raise ActionableError.validation(
                field_name=f"defaults.{name}",
                reason=f"is {value} — must be a finite number >= 0",
            )
    if not 0 <= defaults.relevance_score <= 100:
        raise ActionableError.validation(
            field_name="defaults.relevance_score",
            reason=f"is {defaults.relevance_score} — must be between 0 and 100",
        )

    # -- discovery section ---------------------------------------------------
    discovery_data = _optional_section(data, "discovery")
    discovery = DiscoveryConfig(
        posts_per_session=int(discovery_data.get("posts_per_session", 5)),
        max_posts_per_session=int(discovery_data.get("max_posts_per_session", 20)),
        similarity_limit=int(discovery_data.get("similarity_limit", 10)),
        similarity_threshold=float(discovery_data.get("similarity_threshold", 0.7)),
    )
    if not 1 <= discovery.posts_per_session <= discovery.max_posts_per_session:
        raise ActionableError.validation(
            field_name="discovery.posts_per_session",
            reason=(
                f"is {discovery.posts_per_session} — must be between 1 and "
                f"max_posts_per_session ({discovery.max_posts_per_session})"
            ),
        )
    if not -1.0 <= discovery.similarity_threshold <= 1.0:
        raise ActionableError.validation(
            field_name="discovery.similarity_threshold",
            reason=f"is {discovery.similarity_threshold} — must be between -1.0 and 1.0",
        )

    # -- ollama section ------------------------------------------------------
    ollama_data = _optional_section(data, "ollama")

    base_url = str(ollama_data.get("base_url", "http://localhost:11434"))
    if not base_url.startswith(("http://", "https://")):
        raise ActionableError.validation(
            field_name="ollama.base_url",
            reason=f"'{base_url}' is missing a scheme (http:// or https://)",
            suggestion="Set [ollama].base_url to a URL starting with http:// or https://",
        )

    dimensions = ollama_data.get("dimensions")
    if dimensions is not None:
        dimensions = int(dimensions)  # type: ignore[call-overload]
        if dimensions < 1:
            raise ActionableError.validation(
                field_name="ollama.dimensions",
                reason=f"is {dimensions} — must be >= 1",
            )

    ollama = OllamaConfig(
        base_url=base_url,
        embed_model=str(ollama_data.get("embed_model", "nomic-embed-text")),
        dimensions=dimensions,
    )

    # -- chroma section ------------------------------------------------------
    chroma_data = _optional_section(data, "chroma")
    chroma = ChromaConfig(
        persist_dir=str(chroma_data.get("persist_dir", "./data/chroma_db")),
        cache_ttl_seconds=int(chroma_data.get("cache_ttl_seconds", 3600)),
    )
    if chroma.cache_ttl_seconds < 0:
        raise ActionableError.validation(
            field_name="chroma.cache_ttl_seconds",
            reason=f"is {chroma.cache_ttl_seconds} — must be >= 0",
        )

    # -- output section ------------------------------------------------------
    output_data = _optional_section(data, "output")
    output = OutputConfig(
        default_format=str(output_data.get("default_format", "markdown")),
        output_dir=str(output_data.get("output_dir", "./output")),
    )
    if output.default_format not in OUTPUT_FORMATS:
        raise ActionableError.validation(
            field_name="output.default_format",
            reason=f"'{output.default_format}' is not one of {', '.join(OUTPUT_FORMATS)}",
        )

    # -- engagements section -------------------------------------------------
    engagements_data = _optional_section(data, "engagements")
    engagements = EngagementLogConfig(
        log_dir=str(engagements_data.get("log_dir", "./data/engagements")),
    )

    return Settings(
        scoring=scoring,
        normalization=normalization,
        defaults=defaults,
        discovery=discovery,
        ollama=ollama,
        chroma=chroma,
        output=output,
        engagements=engagements,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _require_section(data: dict[str, object], name: str, filepath: Path) -> dict[str, object]:
    """Return a required top-level section, or raise CONFIG error."""
    section = data.get(name)
    if section is None or not isinstance(section, dict):
        raise ActionableError.config(
            field_name=name,
            reason=f"Required section [{name}] is missing from {filepath}",
            suggestion=f"Add a [{name}] section to {filepath}",
        )
    return section


def _optional_section(data: dict[str, object], name: str) -> dict[str, object]:
    """Return a top-level section, or an empty dict when absent or malformed."""
    section = data.get(name, {})
    if not isinstance(section, dict):
        return {}
    return section


def _require_field(
    section: dict[str, object], field_name: str, section_name: str, filepath: Path
) -> object:
    """Return a required field within a section, or raise CONFIG error."""
    value = section.get(field_name)
    if value is None:
        raise ActionableError.config(
            field_name=f"{section_name}.{field_name}",
            reason=f"Required field '{field_name}' is missing from [{section_name}] in {filepath}",
            suggestion=f"Add '{field_name}' to the [{section_name}] section in {filepath}",
        )
    return value
