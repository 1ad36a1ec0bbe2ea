"""Exception taxonomy shared by every layer of the engine."""

from __future__ import annotations

from enum import Enum


class TenantRagError(Exception):
    """Base class for all errors raised by ``tenant_rag``."""


# ── Embedding provider errors ──────────────────────────────────────────


class EmbeddingErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    DIMENSION_MISMATCH = "dimension_mismatch"
    UNKNOWN = "unknown"


class EmbeddingError(TenantRagError):
    """A provider call failed.

    ``retryable`` tells callers whether another attempt can help.  Quota
    and credential problems never go away by retrying, so callers should
    stop early on them instead of burning their retry budget.
    """

    kind: EmbeddingErrorKind = EmbeddingErrorKind.UNKNOWN
    retryable: bool = True

    @property
    def permanent(self) -> bool:
        return not self.retryable


class QuotaExceededError(EmbeddingError):
    kind = EmbeddingErrorKind.QUOTA_EXCEEDED
    retryable = False


class InvalidCredentialsError(EmbeddingError):
    kind = EmbeddingErrorKind.INVALID_CREDENTIALS
    retryable = False


class RateLimitedError(EmbeddingError):
    kind = EmbeddingErrorKind.RATE_LIMITED
    retryable = True


class UnknownEmbeddingError(EmbeddingError):
    kind = EmbeddingErrorKind.UNKNOWN
    retryable = True


class EmbeddingDimensionError(EmbeddingError):
    """The provider returned a vector whose length is not the configured one."""

    kind = EmbeddingErrorKind.DIMENSION_MISMATCH
    retryable = False


# ── Retrieval ──────────────────────────────────────────────────────────


class VectorDimensionError(TenantRagError, ValueError):
    """Two vectors compared for similarity have different lengths."""


# ── Ingestion ──────────────────────────────────────────────────────────


class IngestionError(TenantRagError):
    """Processing a document could not produce a single embedding."""


class EmptyDocumentError(IngestionError):
    """Chunking produced zero chunks."""


class DocumentAlreadyProcessedError(TenantRagError):
    """A document in a terminal state was submitted again."""


class DocumentNotFoundError(TenantRagError, LookupError):
    pass


# ── Tenants ────────────────────────────────────────────────────────────


class TenantNotFoundError(TenantRagError, LookupError):
    pass


class TenantQuotaError(TenantRagError):
    """The tenant's document or query quota refuses the operation."""
