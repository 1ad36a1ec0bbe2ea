"""Similarity ranking — cosine similarity, threshold filtering, top-k.

Ranking is a brute-force scan over every candidate.  Nothing outside
this module and :mod:`tenant_rag.retrieval.memory_store` depends on
that, so an indexed backend can replace it behind
:class:`~tenant_rag.retrieval.base.VectorStoreBase`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from tenant_rag.errors import VectorDimensionError
from tenant_rag.retrieval.models import EmbeddingRecord, RetrievalMatch


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``, or ``0.0`` when either norm is zero.

    Raises
    ------
    VectorDimensionError
        If *a* and *b* differ in length.
    """
    if len(a) != len(b):
        raise VectorDimensionError(f"Embeddings must have the same dimension ({len(a)} != {len(b)})")
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / (norm_a * norm_b), -1.0, 1.0))


def cosine_similarities(query: Sequence[float], vectors: Sequence[Sequence[float]]) -> list[float]:
    """Vectorised :func:`cosine_similarity` of *query* against every row of *vectors*."""
    if not vectors:
        return []
    dim = len(query)
    for vector in vectors:
        if len(vector) != dim:
            raise VectorDimensionError(f"Embeddings must have the same dimension ({dim} != {len(vector)})")

    q = np.asarray(query, dtype=np.float64)
    matrix = np.asarray(vectors, dtype=np.float64)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(matrix, axis=1)
    if q_norm == 0:
        return [0.0] * len(vectors)

    denom = row_norms * q_norm
    dots = matrix @ q
    scores = np.divide(dots, denom, out=np.zeros_like(dots), where=denom != 0)
    return np.clip(scores, -1.0, 1.0).tolist()


def rank(
    query: Sequence[float],
    candidates: Iterable[EmbeddingRecord],
    *,
    min_similarity: float,
    limit: int,
) -> list[RetrievalMatch]:
    """Score *candidates*, drop those under *min_similarity*, return the top *limit*.

    Ordering is descending by similarity; equal scores keep candidate
    order.
    """
    records = list(candidates)
    scores = cosine_similarities(query, [r.vector for r in records])
    kept = [
        RetrievalMatch(record=record, similarity=score)
        for record, score in zip(records, scores)
        if score >= min_similarity
    ]
    kept.sort(key=lambda m: m.similarity, reverse=True)
    return kept[:limit]
