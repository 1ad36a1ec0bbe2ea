"""In-process vector store with brute-force similarity search."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Sequence

from tenant_rag.retrieval.base import VectorStoreBase
from tenant_rag.retrieval.models import EmbeddingRecord, EmbeddingStats, RetrievalMatch, SearchOptions
from tenant_rag.retrieval.similarity import rank

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStoreBase):
    """Keeps every tenant's embeddings in insertion order.

    Writes hold a lock only long enough to append or swap records;
    searches copy the tenant's record list under the lock and score it
    outside, so ingestion and queries contend only for that copy.
    """

    def __init__(self) -> None:
        self._records: dict[str, list[EmbeddingRecord]] = defaultdict(list)
        self._lock = threading.Lock()

    # -- VectorStoreBase overrides --------------------------------------------

    def add(self, records: Sequence[EmbeddingRecord]) -> None:
        if not records:
            return
        with self._lock:
            for record in records:
                self._records[record.tenant_id].append(record)

    def search(
        self,
        tenant_id: str,
        query_vector: Sequence[float],
        options: SearchOptions | None = None,
    ) -> list[RetrievalMatch]:
        options = options or SearchOptions()
        candidates = [
            r
            for r in self._snapshot(tenant_id)
            if r.is_active
            and r.document_id not in options.exclude_document_ids
            and (options.category is None or r.metadata.category == options.category)
        ]
        if not candidates:
            return []
        matches = rank(
            query_vector,
            candidates,
            min_similarity=options.min_similarity,
            limit=options.limit,
        )
        logger.debug(
            "Tenant %s: %d candidate(s), %d match(es) >= %.2f",
            tenant_id, len(candidates), len(matches), options.min_similarity,
        )
        return matches

    def deactivate_document(self, tenant_id: str, document_id: str) -> int:
        changed = 0
        with self._lock:
            records = self._records.get(tenant_id, [])
            for i, record in enumerate(records):
                if record.document_id == document_id and record.is_active:
                    records[i] = record.model_copy(update={"is_active": False})
                    changed += 1
        return changed

    def stats(self, tenant_id: str) -> EmbeddingStats:
        active = [r for r in self._snapshot(tenant_id) if r.is_active]
        if not active:
            return EmbeddingStats()
        return EmbeddingStats(
            total_embeddings=len(active),
            unique_document_count=len({r.document_id for r in active}),
            avg_token_count=round(sum(r.metadata.token_count for r in active) / len(active), 2),
        )

    # -- internals ------------------------------------------------------------

    def _snapshot(self, tenant_id: str) -> list[EmbeddingRecord]:
        with self._lock:
            return list(self._records.get(tenant_id, ()))
