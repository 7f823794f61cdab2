"""Actionable error hierarchy for engagement-rank.

Errors are classified by **recovery path**, not by origin.
Each error type carries structured guidance for three audiences:
  - The calling code (typed ``error_type`` for routing)
  - The human operator (``suggestion`` + ``troubleshooting`` steps)
  - An AI agent (``ai_guidance`` with concrete next actions)

The scoring core raises only three of these: ``DIMENSION_MISMATCH``,
``EMPTY_VECTOR`` and ``INVALID_WEIGHTS``.  They are input-contract
violations — retrying the same call can never succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class ErrorType(StrEnum):
    """Recovery-path categories — what to *do*, not where it came from."""

    CONFIG = "config"
    CONNECTION = "connection"
    EMBEDDING = "embedding"
    PARSE = "parse"
    VALIDATION = "validation"
    DIMENSION_MISMATCH = "dimension_mismatch"
    EMPTY_VECTOR = "empty_vector"
    INVALID_WEIGHTS = "invalid_weights"


# ---------------------------------------------------------------------------
# Guidance dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AIGuidance:
    """Machine-readable guidance for an AI agent consuming this error."""

    action_required: str
    command: str | None = None
    discovery_tool: str | None = None
    checks: list[str] | None = None
    steps: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"action_required": self.action_required}
        if self.command is not None:
            result["command"] = self.command
        if self.discovery_tool is not None:
            result["discovery_tool"] = self.discovery_tool
        if self.checks is not None:
            result["checks"] = self.checks
        if self.steps is not None:
            result["steps"] = self.steps
        return result


@dataclass(frozen=True)
class Troubleshooting:
    """Sequential, human-readable recovery steps for the operator."""

    steps: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"steps": self.steps}


# ---------------------------------------------------------------------------
# Base actionable error
# ---------------------------------------------------------------------------


@dataclass
class ActionableError(Exception):
    """Structured error with embedded recovery guidance.

    Use the factory classmethods rather than constructing directly —
    they encode domain knowledge so callers don't have to.
    """

    error: str
    error_type: ErrorType
    service: str

    success: bool = field(default=False, init=False)
    suggestion: str | None = None
    ai_guidance: AIGuidance | None = None
    troubleshooting: Troubleshooting | None = None
    context: dict[str, Any] | None = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    # Make it work as a real exception
    def __post_init__(self) -> None:
        super().__init__(self.error)

    # -- serialisation -------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Compact JSON-ready dict — ``None`` values are excluded."""
        result: dict[str, Any] = {
            "success": self.success,
            "error": self.error,
            "error_type": self.error_type.value,
            "service": self.service,
            "timestamp": self.timestamp,
        }
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        if self.ai_guidance is not None:
            result["ai_guidance"] = self.ai_guidance.to_dict()
        if self.troubleshooting is not None:
            result["troubleshooting"] = self.troubleshooting.to_dict()
        if self.context is not None:
            result["context"] = self.context
        return result

    # -- scoring core --------------------------------------------------------

    @classmethod
    def dimension_mismatch(
        cls,
        len_a: int,
        len_b: int,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Two vectors compared in one call have different lengths."""
        return cls(
            error=f"Vector dimensions must match: {len_a} vs {len_b}",
            error_type=ErrorType.DIMENSION_MISMATCH,
            service="vector_math",
            suggestion=suggestion
            or "Embed every text with the same model so all vectors share one dimensionality",
            ai_guidance=AIGuidance(
                action_required="Re-embed the mismatched texts with the configured embedding model",
                checks=[
                    "Was any cached embedding produced by a different model?",
                    "Does [ollama].dimensions match the model's output size?",
                ],
            ),
            context={"len_a": len_a, "len_b": len_b},
        )

    @classmethod
    def empty_vector(
        cls,
        name: str = "vector",
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """A zero-length vector was supplied where a non-empty one is required."""
        return cls(
            error=f"Vectors cannot be empty ({name} has length 0)",
            error_type=ErrorType.EMPTY_VECTOR,
            service="vector_math",
            suggestion=suggestion or f"Supply a non-empty embedding for {name}",
            ai_guidance=AIGuidance(
                action_required=f"Check where '{name}' was produced and why it is empty",
            ),
        )

    @classmethod
    def invalid_weights(
        cls,
        weights: dict[str, float],
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Scoring weights are negative or do not sum to 1.0."""
        return cls(
            error=f"Invalid scoring weights — {reason}",
            error_type=ErrorType.INVALID_WEIGHTS,
            service="settings.toml",
            suggestion=suggestion
            or "Adjust the [scoring] weights so each is >= 0.0 and they sum to 1.0",
            ai_guidance=AIGuidance(
                action_required="Rebalance the four [scoring] weights in config/settings.toml",
                checks=[f"{name} = {value}" for name, value in weights.items()],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Open config/settings.toml",
                    "2. Locate the [scoring] section",
                    f"3. Fix the issue: {reason}",
                    "4. Save and re-run",
                ]
            ),
            context={"weights": dict(weights)},
        )

    # -- glue layers ---------------------------------------------------------

    @classmethod
    def config(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Missing or invalid configuration in settings.toml."""
        return cls(
            error=f"Configuration error — {field_name}: {reason}",
            error_type=ErrorType.CONFIG,
            service="settings.toml",
            suggestion=suggestion or f"Fix '{field_name}' in config/settings.toml",
            ai_guidance=AIGuidance(
                action_required=f"Correct the '{field_name}' value in config/settings.toml",
                checks=[
                    "Verify config/settings.toml exists",
                    f"Verify '{field_name}' is present and valid",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Open config/settings.toml",
                    f"2. Locate the '{field_name}' setting",
                    f"3. Fix the issue: {reason}",
                    "4. Save and re-run",
                ]
            ),
        )

    @classmethod
    def connection(
        cls,
        service: str,
        url: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Service unreachable (Ollama, ChromaDB)."""
        return cls(
            error=f"Cannot connect to {service} at {url}: {raw_error}",
            error_type=ErrorType.CONNECTION,
            service=service,
            suggestion=suggestion or f"Verify {service} is running at {url}",
            ai_guidance=AIGuidance(
                action_required=f"Verify {service} is reachable",
                command=f"curl -s {url}",
                checks=[
                    f"Is {service} running?",
                    f"Is the URL {url} correct in settings.toml?",
                    "Is a VPN or firewall blocking the connection?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Verify {service} is running",
                    f"2. Test connectivity: curl -s {url}",
                    "3. Check the URL in config/settings.toml matches the running service",
                    "4. Re-run the command",
                ]
            ),
        )

    @classmethod
    def embedding(
        cls,
        model: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Ollama embedding call failure after retries."""
        return cls(
            error=f"Embedding call failed for model '{model}': {raw_error}",
            error_type=ErrorType.EMBEDDING,
            service="Ollama",
            suggestion=suggestion or f"Verify model '{model}' is pulled and Ollama is responsive",
            ai_guidance=AIGuidance(
                action_required="Verify Ollama model availability",
                command=f"ollama list | grep {model}",
                checks=[
                    "Is Ollama running?",
                    f"Is model '{model}' pulled? Run: ollama pull {model}",
                    "Is the system under memory pressure?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Check Ollama is running: ollama list",
                    f"2. If model missing: ollama pull {model}",
                    "3. If OOM: close other applications and retry",
                    "4. Re-run the command",
                ]
            ),
        )

    @classmethod
    def parse(
        cls,
        source: str,
        location: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Input file could not be parsed (TOML settings, posts JSON)."""
        return cls(
            error=f"Parse failure in {source} at {location}: {raw_error}",
            error_type=ErrorType.PARSE,
            service=source,
            suggestion=suggestion or f"Fix the syntax of {source}",
            ai_guidance=AIGuidance(
                action_required=f"Inspect {source} near {location} and correct the syntax",
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Open {source}",
                    f"2. Go to {location}",
                    f"3. Fix the issue: {raw_error}",
                    "4. Re-run the command",
                ]
            ),
        )

    @classmethod
    def validation(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Input validation failure (TOML, CLI args, signal values, etc.)."""
        return cls(
            error=f"Validation error — {field_name}: {reason}",
            error_type=ErrorType.VALIDATION,
            service="validation",
            suggestion=suggestion or f"Fix '{field_name}': {reason}",
            ai_guidance=AIGuidance(
                action_required=f"Correct the value for '{field_name}'",
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Check the value of '{field_name}'",
                    f"2. Issue: {reason}",
                    "3. Correct and retry",
                ]
            ),
        )
