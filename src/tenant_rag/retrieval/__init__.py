"""
Retrieval — per-tenant vector storage and similarity search.

This module wraps the vector store behind a clean interface so that
callers never need to know how candidates are scanned or indexed.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend.
- :class:`InMemoryVectorStore` — default brute-force backend.
- :func:`cosine_similarity`, :func:`rank` — similarity ranking.
- :class:`EmbeddingRecord`, :class:`RetrievalMatch`, :class:`SearchOptions` — data models.
"""

from tenant_rag.retrieval.base import VectorStoreBase
from tenant_rag.retrieval.memory_store import InMemoryVectorStore
from tenant_rag.retrieval.models import (
    ChunkMetadata,
    EmbeddingRecord,
    EmbeddingStats,
    RetrievalMatch,
    SearchOptions,
)
from tenant_rag.retrieval.similarity import cosine_similarities, cosine_similarity, rank

__all__ = [
    "ChunkMetadata",
    "EmbeddingRecord",
    "EmbeddingStats",
    "InMemoryVectorStore",
    "RetrievalMatch",
    "SearchOptions",
    "VectorStoreBase",
    "cosine_similarities",
    "cosine_similarity",
    "rank",
]
