"""Domain models for stored embeddings and retrieval results."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class ChunkMetadata(BaseModel):
    """Metadata stored alongside each embedded chunk.

    Attributes
    ----------
    chunk_index:
        Ordinal position of the chunk within its source document.
    token_count:
        Approximate token count (whitespace-separated words).
    category / tags:
        Inherited from the parent document, used for filtering.
    """

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0)
    token_count: int = Field(default=0, ge=0)
    category: str | None = None
    tags: tuple[str, ...] = ()


class EmbeddingRecord(BaseModel):
    """One embedded chunk, owned by exactly one tenant and one document."""

    model_config = ConfigDict(frozen=True)

    embedding_id: str = Field(default_factory=lambda: uuid4().hex)
    tenant_id: str
    document_id: str
    text: str
    vector: tuple[float, ...]
    metadata: ChunkMetadata
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dimension(self) -> int:
        return len(self.vector)


class RetrievalMatch(BaseModel):
    """A stored embedding paired with its similarity to a query (never persisted)."""

    model_config = ConfigDict(frozen=True)

    record: EmbeddingRecord
    similarity: float = Field(ge=-1.0 - 1e-9, le=1.0 + 1e-9)

    @property
    def text(self) -> str:
        return self.record.text

    @property
    def document_id(self) -> str:
        return self.record.document_id

    @property
    def chunk_index(self) -> int:
        return self.record.metadata.chunk_index

    def __str__(self) -> str:  # noqa: D105
        return f"[{self.document_id}§{self.chunk_index} {self.similarity:.3f}] {self.text[:120]}…"


class SearchOptions(BaseModel):
    """Filters and limits for a similarity search.

    Attributes
    ----------
    limit:
        Maximum number of matches returned, applied after filtering.
    min_similarity:
        Matches scoring below this are dropped before ranking.
    exclude_document_ids:
        Documents whose chunks must not be returned.
    category:
        When set, only chunks whose metadata category equals it qualify.
    """

    limit: int = Field(default=5, gt=0)
    min_similarity: float = Field(default=0.7, ge=-1.0, le=1.0)
    exclude_document_ids: frozenset[str] = frozenset()
    category: str | None = None


class EmbeddingStats(BaseModel):
    """Aggregate statistics over a tenant's active embeddings."""

    total_embeddings: int = 0
    unique_document_count: int = 0
    avg_token_count: float = 0.0
