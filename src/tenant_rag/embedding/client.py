"""Embedding client — retries, error classification and dimension checks.

Usage::

    from tenant_rag.embedding import EmbeddingClient

    client = EmbeddingClient.from_settings()
    vector = client.embed("What is the refund policy?")
    vectors = client.embed_batch(["chunk one", "chunk two"])
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Sequence
from typing import TypeVar

import openai
from langchain_core.embeddings import Embeddings
from tenacity import Retrying, before_sleep_log, retry_if_exception, stop_after_attempt, wait_exponential

from tenant_rag.config import Settings, settings as default_settings
from tenant_rag.embedding.providers import build_embeddings
from tenant_rag.errors import (
    EmbeddingDimensionError,
    EmbeddingError,
    InvalidCredentialsError,
    QuotaExceededError,
    RateLimitedError,
    UnknownEmbeddingError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_WHITESPACE_RE = re.compile(r"\s+")

# Error codes reported by OpenAI and OpenAI-compatible providers.
_CODE_TO_ERROR: dict[str, type[EmbeddingError]] = {
    "insufficient_quota": QuotaExceededError,
    "invalid_api_key": InvalidCredentialsError,
    "rate_limit_exceeded": RateLimitedError,
}


def classify_provider_error(exc: BaseException) -> EmbeddingError:
    """Map a raw provider exception onto the :class:`EmbeddingError` taxonomy."""
    if isinstance(exc, EmbeddingError):
        return exc

    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in _CODE_TO_ERROR:
        return _CODE_TO_ERROR[code](str(exc))

    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return InvalidCredentialsError(str(exc))
    if isinstance(exc, openai.RateLimitError):
        return RateLimitedError(str(exc))
    return UnknownEmbeddingError(f"Failed to generate embeddings: {exc}")


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, EmbeddingError) and exc.retryable


class EmbeddingClient:
    """Converts text into vectors through a pluggable provider.

    Transient failures (rate limiting, timeouts, unknown errors) are
    retried up to *max_attempts* times with exponential backoff
    (``backoff_base * 2 ** (attempt - 1)`` seconds, capped at
    *backoff_max*).  Quota, credential and dimension errors are raised
    on the first occurrence.

    Parameters
    ----------
    embeddings:
        Any LangChain ``Embeddings`` implementation.
    dimension:
        Expected vector length.  A provider response of any other length
        raises :class:`~tenant_rag.errors.EmbeddingDimensionError`.
    max_attempts:
        Total attempts per call, including the first.
    backoff_base / backoff_max:
        Backoff parameters in seconds.
    sleep:
        Function used to wait between attempts (override in tests).
    """

    def __init__(
        self,
        embeddings: Embeddings,
        *,
        dimension: int,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        backoff_max: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._embeddings = embeddings
        self.dimension = dimension
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._sleep = sleep

    @classmethod
    def from_settings(cls, config: Settings | None = None, **overrides) -> EmbeddingClient:
        config = config or default_settings
        kwargs = {
            "dimension": config.embedding_dimension,
            "max_attempts": config.embedding_max_attempts,
            "backoff_base": config.embedding_backoff_base,
            "backoff_max": config.embedding_backoff_max,
        }
        kwargs.update(overrides)
        return cls(build_embeddings(config), **kwargs)

    # -- public API -----------------------------------------------------------

    def embed(self, text: str) -> list[float]:
        """Embed a single text."""
        clean = _clean(text)
        if not clean:
            raise ValueError("Text cannot be empty")
        return self._with_retry(lambda: self._embed_one(clean), what="embedding")

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts in one provider call; output order matches input."""
        if not texts:
            raise ValueError("Texts input must be a non-empty sequence")
        cleaned = [_clean(t) for t in texts]
        if not all(cleaned):
            raise ValueError("Texts cannot be empty")
        return self._with_retry(lambda: self._embed_many(cleaned), what="batch embedding")

    # -- internals ------------------------------------------------------------

    def _with_retry(self, call: Callable[[], T], *, what: str) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base, max=self.backoff_max),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return retrying(call)
        except EmbeddingError as exc:
            logger.error("%s failed (%s): %s", what.capitalize(), exc.kind.value, exc)
            raise

    def _embed_one(self, text: str) -> list[float]:
        try:
            vector = self._embeddings.embed_query(text)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise classify_provider_error(exc) from exc
        return self._checked(vector)

    def _embed_many(self, texts: list[str]) -> list[list[float]]:
        try:
            vectors = self._embeddings.embed_documents(texts)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise classify_provider_error(exc) from exc
        if len(vectors) != len(texts):
            raise UnknownEmbeddingError(
                f"Provider returned {len(vectors)} embeddings for {len(texts)} texts"
            )
        return [self._checked(v) for v in vectors]

    def _checked(self, vector: Sequence[float]) -> list[float]:
        if len(vector) != self.dimension:
            raise EmbeddingDimensionError(
                f"Expected embedding of dimension {self.dimension}, got {len(vector)}"
            )
        return [float(x) for x in vector]


def _clean(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()
