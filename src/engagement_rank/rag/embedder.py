"""Ollama embedding wrapper with retry logic.

Wraps the ``ollama`` Python SDK's :class:`AsyncClient` to provide:

- **Embedding**: text → float vector via ``nomic-embed-text``
- **Batch embedding**: many post texts in one request, order preserved
- **Health check**: verify Ollama + the embed model are available at startup
- **Retry with backoff**: transient 5xx errors are retried up to
  ``max_retries`` times with exponential backoff before giving up

When ``dimensions`` is set, every returned vector is checked against it so
a model swap shows up as DIMENSION_MISMATCH at the boundary rather than as
a silently wrong similarity later.

All errors are converted to :class:`~engagement_rank.errors.ActionableError`
with operator-friendly guidance.
"""

from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

import ollama as ollama_sdk

from engagement_rank.errors import ActionableError, ErrorType
from engagement_rank.logging import logger

_T = TypeVar("_T")

# Status codes that warrant a retry (server overloaded / temporary failure)
_RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

# Posts are short; this only guards against pasted essays blowing the
# model's context window.
_MAX_EMBED_CHARS = 8_000


class Embedder:
    """Wraps Ollama embedding calls with backoff and error handling.

    Usage::

        embedder = Embedder(
            base_url="http://localhost:11434",
            embed_model="nomic-embed-text",
        )
        await embedder.health_check()                 # fail fast if Ollama is down
        vec = await embedder.embed("indie hacking")   # → list[float]
        vecs = await embedder.embed_batch(["a", "b"]) # → list[list[float]]
    """

    MAX_EMBED_CHARS = _MAX_EMBED_CHARS

    def __init__(
        self,
        base_url: str,
        embed_model: str,
        *,
        dimensions: int | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        self.base_url = base_url
        self.embed_model = embed_model
        self.dimensions = dimensions
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._client = ollama_sdk.AsyncClient(host=base_url)

    # -- Public API ----------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for *text*.

        Strips whitespace before embedding. Raises VALIDATION for empty
        input; retries transient Ollama errors with exponential backoff.
        """
        cleaned = self._prepare(text)

        async def _call() -> list[float]:
            response = await self._client.embed(model=self.embed_model, input=cleaned)
            return [float(v) for v in response.embeddings[0]]

        vector = await self._with_retry(_call, operation="embed")
        self._check_dimensions(vector)
        return vector

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one request.

        Returns one vector per input text, in input order.  An empty input
        list returns ``[]`` without calling Ollama.
        """
        if not texts:
            return []
        cleaned = [self._prepare(t) for t in texts]

        async def _call() -> list[list[float]]:
            response = await self._client.embed(model=self.embed_model, input=cleaned)
            return [[float(v) for v in emb] for emb in response.embeddings]

        vectors = await self._with_retry(_call, operation="embed_batch")
        if len(vectors) != len(cleaned):
            raise ActionableError.embedding(
                model=self.embed_model,
                raw_error=f"Expected {len(cleaned)} embeddings, got {len(vectors)}",
            )
        for vector in vectors:
            self._check_dimensions(vector)
        logger.debug("Embedded batch of %d texts with %s", len(vectors), self.embed_model)
        return vectors

    async def health_check(self) -> None:
        """Verify Ollama is reachable and the embed model is available.

        Raises :class:`~engagement_rank.errors.ActionableError`:
          - CONNECTION if Ollama is unreachable
          - EMBEDDING if the model is not pulled
        """
        try:
            response = await self._client.list()
        except (ConnectionError, OSError) as exc:
            raise ActionableError.connection(
                service="Ollama",
                url=self.base_url,
                raw_error=str(exc),
            ) from None

        available = {m.model for m in response.models if m.model}
        # Ollama model names may include :latest suffix — normalise
        available_base = {name.split(":")[0] for name in available}
        available_all = available | available_base

        model_base = self.embed_model.split(":")[0]
        if self.embed_model not in available_all and model_base not in available_all:
            raise ActionableError.embedding(
                model=self.embed_model,
                raw_error=f"Model '{self.embed_model}' is not pulled in Ollama",
                suggestion=f"Run: ollama pull {self.embed_model}",
            )

        logger.info("Ollama health check passed — %s available", self.embed_model)

    # -- Internals -----------------------------------------------------------

    def _prepare(self, text: str) -> str:
        cleaned = text.strip()
        if not cleaned:
            raise ActionableError(
                error="Cannot embed empty text",
                error_type=ErrorType.VALIDATION,
                service="Ollama",
                suggestion="Provide non-empty text to embed",
            )
        if len(cleaned) > _MAX_EMBED_CHARS:
            logger.debug(
                "Truncating embed input from %d to %d chars",
                len(cleaned),
                _MAX_EMBED_CHARS,
            )
            cleaned = cleaned[:_MAX_EMBED_CHARS]
        return cleaned

    def _check_dimensions(self, vector: list[float]) -> None:
        if not vector:
            raise ActionableError.empty_vector(
                "embedding",
                suggestion=f"Model '{self.embed_model}' returned an empty vector — check the model",
            )
        if not all(math.isfinite(x) for x in vector):
            raise ActionableError.embedding(
                self.embed_model,
                "returned a vector with NaN or infinite components",
            )
        if self.dimensions is not None and len(vector) != self.dimensions:
            raise ActionableError.dimension_mismatch(
                len(vector),
                self.dimensions,
                suggestion=(
                    f"Model '{self.embed_model}' returned {len(vector)} dimensions; "
                    f"set [ollama].dimensions = {len(vector)} or switch models"
                ),
            )

    async def _with_retry(
        self,
        fn: Callable[[], Awaitable[_T]],
        *,
        operation: str,
    ) -> _T:
        """Call *fn* with exponential backoff on retryable errors.

        Non-retryable errors (e.g. 404 model not found) fail immediately.
        After ``max_retries`` attempts, raises an EMBEDDING error.
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await fn()
            except ollama_sdk.ResponseError as exc:
                last_error = exc
                if exc.status_code not in _RETRYABLE_STATUS_CODES:
                    raise ActionableError.embedding(
                        model=self.embed_model,
                        raw_error=str(exc),
                    ) from None

                delay = self.base_delay * (2 ** (attempt - 1))
                logger.warning(
                    "Ollama %s attempt %d/%d failed (status %d), retrying in %.1fs: %s",
                    operation,
                    attempt,
                    self.max_retries,
                    exc.status_code,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)
            except (ConnectionError, OSError) as exc:
                last_error = exc
                delay = self.base_delay * (2 ** (attempt - 1))
                logger.warning(
                    "Ollama %s attempt %d/%d connection failed, retrying in %.1fs: %s",
                    operation,
                    attempt,
                    self.max_retries,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)

        raise ActionableError.embedding(
            model=self.embed_model,
            raw_error=f"Failed after {self.max_retries} attempts: {last_error}",
            suggestion="Ollama may be overloaded — check resources and retry",
        )
