"""Unit tests for the retrieval layer — similarity, ranking and the in-memory store."""

from __future__ import annotations

import math

import pytest

from tenant_rag.errors import VectorDimensionError
from tenant_rag.retrieval.memory_store import InMemoryVectorStore
from tenant_rag.retrieval.models import ChunkMetadata, EmbeddingRecord, SearchOptions
from tenant_rag.retrieval.similarity import cosine_similarities, cosine_similarity, rank


def _record(
    vector: list[float],
    *,
    tenant_id: str = "t1",
    document_id: str = "doc-1",
    chunk_index: int = 0,
    text: str = "",
    category: str | None = None,
    token_count: int = 10,
) -> EmbeddingRecord:
    return EmbeddingRecord(
        tenant_id=tenant_id,
        document_id=document_id,
        text=text or f"chunk {chunk_index} of {document_id}",
        vector=tuple(vector),
        metadata=ChunkMetadata(chunk_index=chunk_index, token_count=token_count, category=category),
    )


# ── cosine similarity ───────────────────────────────────────────────────


class TestCosineSimilarity:
    def test_identical_vectors(self) -> None:
        assert math.isclose(cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]), 1.0)

    def test_orthogonal_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite_vectors(self) -> None:
        assert math.isclose(cosine_similarity([1.0, 2.0], [-1.0, -2.0]), -1.0)

    def test_symmetric(self) -> None:
        a, b = [0.1, 0.7, -0.2], [0.5, -0.3, 0.9]
        assert math.isclose(cosine_similarity(a, b), cosine_similarity(b, a))

    def test_zero_norm_is_zero(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_dimension_mismatch_raises(self) -> None:
        with pytest.raises(VectorDimensionError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_vectorised_matches_scalar(self) -> None:
        query = [0.2, 0.9, 0.1]
        rows = [[0.2, 0.9, 0.1], [1.0, 0.0, 0.0], [0.0, 0.0, 0.0]]
        expected = [cosine_similarity(query, row) for row in rows]
        assert cosine_similarities(query, rows) == pytest.approx(expected)

    def test_vectorised_dimension_mismatch_raises(self) -> None:
        with pytest.raises(VectorDimensionError):
            cosine_similarities([1.0, 0.0], [[1.0, 0.0], [1.0]])


# ── ranking ─────────────────────────────────────────────────────────────


class TestRank:
    def test_sorted_descending(self) -> None:
        candidates = [
            _record([1.0, 1.0], chunk_index=0),
            _record([1.0, 0.0], chunk_index=1),
            _record([0.9, 0.1], chunk_index=2),
        ]
        matches = rank([1.0, 0.0], candidates, min_similarity=-1.0, limit=10)
        sims = [m.similarity for m in matches]
        assert sims == sorted(sims, reverse=True)
        assert matches[0].chunk_index == 1

    def test_threshold_filter(self) -> None:
        candidates = [_record([1.0, 0.0], chunk_index=0), _record([0.0, 1.0], chunk_index=1)]
        matches = rank([1.0, 0.0], candidates, min_similarity=0.5, limit=10)
        assert [m.chunk_index for m in matches] == [0]
        assert all(m.similarity >= 0.5 for m in matches)

    def test_limit_applies_after_filter(self) -> None:
        """Low scorers are dropped before the top-k cut, not after."""
        candidates = [_record([0.0, 1.0], chunk_index=i) for i in range(5)]
        candidates += [_record([1.0, 0.0], chunk_index=10 + i) for i in range(3)]
        matches = rank([1.0, 0.0], candidates, min_similarity=0.5, limit=2)
        assert [m.chunk_index for m in matches] == [10, 11]

    def test_ties_keep_candidate_order(self) -> None:
        candidates = [_record([2.0, 0.0], chunk_index=i) for i in range(4)]
        matches = rank([1.0, 0.0], candidates, min_similarity=0.0, limit=4)
        assert [m.chunk_index for m in matches] == [0, 1, 2, 3]

    def test_no_candidates(self) -> None:
        assert rank([1.0, 0.0], [], min_similarity=0.0, limit=5) == []


# ── in-memory store ─────────────────────────────────────────────────────


@pytest.fixture()
def populated() -> InMemoryVectorStore:
    store = InMemoryVectorStore()
    store.add(
        [
            _record([1.0, 0.0, 0.0], document_id="doc-a", chunk_index=0, category="billing", token_count=100),
            _record([0.9, 0.1, 0.0], document_id="doc-a", chunk_index=1, category="billing", token_count=50),
            _record([0.0, 1.0, 0.0], document_id="doc-b", chunk_index=0, category="shipping", token_count=30),
            _record([1.0, 0.0, 0.0], tenant_id="t2", document_id="doc-x", chunk_index=0),
        ]
    )
    return store


class TestInMemoryVectorStore:
    def test_tenant_isolation(self, populated: InMemoryVectorStore) -> None:
        matches = populated.search("t1", [1.0, 0.0, 0.0], SearchOptions(min_similarity=0.0))
        assert matches
        assert all(m.record.tenant_id == "t1" for m in matches)
        assert "doc-x" not in {m.document_id for m in matches}

    def test_unknown_tenant_returns_nothing(self, populated: InMemoryVectorStore) -> None:
        assert populated.search("nobody", [1.0, 0.0, 0.0]) == []

    def test_search_applies_threshold_and_limit(self, populated: InMemoryVectorStore) -> None:
        matches = populated.search("t1", [1.0, 0.0, 0.0], SearchOptions(min_similarity=0.5, limit=1))
        assert len(matches) == 1
        assert matches[0].document_id == "doc-a"
        assert matches[0].chunk_index == 0

    def test_exclude_documents(self, populated: InMemoryVectorStore) -> None:
        options = SearchOptions(min_similarity=-1.0, exclude_document_ids=frozenset({"doc-a"}))
        matches = populated.search("t1", [1.0, 0.0, 0.0], options)
        assert {m.document_id for m in matches} == {"doc-b"}

    def test_category_filter(self, populated: InMemoryVectorStore) -> None:
        options = SearchOptions(min_similarity=-1.0, category="shipping")
        matches = populated.search("t1", [1.0, 0.0, 0.0], options)
        assert [m.document_id for m in matches] == ["doc-b"]

    def test_deactivated_records_are_not_searchable(self, populated: InMemoryVectorStore) -> None:
        assert populated.deactivate_document("t1", "doc-a") == 2
        matches = populated.search("t1", [1.0, 0.0, 0.0], SearchOptions(min_similarity=-1.0))
        assert {m.document_id for m in matches} == {"doc-b"}
        assert populated.deactivate_document("t1", "doc-a") == 0

    def test_deactivate_is_tenant_scoped(self, populated: InMemoryVectorStore) -> None:
        assert populated.deactivate_document("t2", "doc-a") == 0
        assert populated.count("t1") == 3

    def test_stats(self, populated: InMemoryVectorStore) -> None:
        stats = populated.stats("t1")
        assert stats.total_embeddings == 3
        assert stats.unique_document_count == 2
        assert stats.avg_token_count == 60.0

    def test_stats_for_empty_tenant(self) -> None:
        stats = InMemoryVectorStore().stats("t1")
        assert stats.total_embeddings == 0
        assert stats.avg_token_count == 0.0

    def test_query_dimension_mismatch_raises(self, populated: InMemoryVectorStore) -> None:
        with pytest.raises(VectorDimensionError):
            populated.search("t1", [1.0, 0.0])
