"""Abstract base class for vector-store backends.

Adding a new backend (an ANN index, a hosted vector database …) only
requires subclassing :class:`VectorStoreBase`.  Every method is scoped
to one tenant; no method may return another tenant's records.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from tenant_rag.retrieval.models import EmbeddingRecord, EmbeddingStats, RetrievalMatch, SearchOptions


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def add(self, records: Sequence[EmbeddingRecord]) -> None:
        """Persist *records*; they become searchable immediately."""
        ...

    @abstractmethod
    def search(
        self,
        tenant_id: str,
        query_vector: Sequence[float],
        options: SearchOptions | None = None,
    ) -> list[RetrievalMatch]:
        """Return the active embeddings of *tenant_id* most similar to *query_vector*.

        Results are sorted by descending similarity, all at or above
        ``options.min_similarity`` and at most ``options.limit`` long.
        """
        ...

    @abstractmethod
    def deactivate_document(self, tenant_id: str, document_id: str) -> int:
        """Soft-delete every embedding of a document; return how many changed."""
        ...

    @abstractmethod
    def stats(self, tenant_id: str) -> EmbeddingStats:
        """Return aggregate statistics over the tenant's active embeddings."""
        ...

    # -- optional overrides ---------------------------------------------------

    def count(self, tenant_id: str) -> int:
        return self.stats(tenant_id).total_embeddings
