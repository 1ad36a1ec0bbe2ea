"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from langchain_core.embeddings import Embeddings

from tenant_rag.embedding.client import EmbeddingClient
from tenant_rag.ingestion.jobs import IngestionJobManager
from tenant_rag.ingestion.repository import DocumentRepository
from tenant_rag.retrieval.memory_store import InMemoryVectorStore
from tenant_rag.tenants.models import Tenant
from tenant_rag.tenants.registry import TenantRegistry


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fake embedding providers ────────────────────────────────────────────

VOCABULARY: tuple[str, ...] = (
    "refund", "policy", "pricing", "support", "shipping", "password", "hours", "warranty",
)


class KeywordEmbeddings(Embeddings):
    """One dimension per vocabulary word, counting its occurrences.

    Texts sharing the same vocabulary words are exactly similar, texts
    sharing none are orthogonal.
    """

    def __init__(self, vocabulary: tuple[str, ...] = VOCABULARY) -> None:
        self.vocabulary = vocabulary
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    @property
    def dimension(self) -> int:
        return len(self.vocabulary)

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [self.vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self.vector(text)

    def vector(self, text: str) -> list[float]:
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.vocabulary]


class FailingEmbeddings(KeywordEmbeddings):
    """Keyword embeddings that raise for selected texts.

    Parameters
    ----------
    fail_texts:
        Texts whose embedding always fails; a batch containing any of
        them fails as a whole.
    error_factory:
        Builds the exception raised for a failing text.
    fail_batches:
        When true every ``embed_documents`` call fails.
    """

    def __init__(
        self,
        fail_texts: set[str] | None = None,
        error_factory=lambda: RuntimeError("provider timeout"),
        fail_batches: bool = False,
    ) -> None:
        super().__init__()
        self.fail_texts = fail_texts or set()
        self.error_factory = error_factory
        self.fail_batches = fail_batches

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        if self.fail_batches or any(t in self.fail_texts for t in texts):
            raise self.error_factory()
        return [self.vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        if text in self.fail_texts:
            raise self.error_factory()
        return self.vector(text)


class QuotaError(Exception):
    """Mimics a provider error carrying an OpenAI-style error code."""

    def __init__(self, message: str = "You exceeded your current quota", code: str = "insufficient_quota") -> None:
        super().__init__(message)
        self.code = code


def make_client(embeddings: Embeddings, **kwargs) -> EmbeddingClient:
    """Client over *embeddings* that never really sleeps."""
    kwargs.setdefault("dimension", len(VOCABULARY))
    kwargs.setdefault("backoff_base", 0.0)
    kwargs.setdefault("sleep", lambda seconds: None)
    return EmbeddingClient(embeddings, **kwargs)


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture()
def client(embeddings: KeywordEmbeddings) -> EmbeddingClient:
    return make_client(embeddings)


@pytest.fixture()
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture()
def documents() -> DocumentRepository:
    return DocumentRepository()


@pytest.fixture()
def tenants() -> TenantRegistry:
    return TenantRegistry()


@pytest.fixture()
def tenant(tenants: TenantRegistry) -> Tenant:
    return tenants.register(Tenant(name="Acme", max_documents=5, max_queries_per_period=10))


@pytest.fixture()
def manager(
    client: EmbeddingClient,
    store: InMemoryVectorStore,
    documents: DocumentRepository,
    tenants: TenantRegistry,
) -> Iterator[IngestionJobManager]:
    with IngestionJobManager(
        client, store, documents, tenants, max_words=10, batch_size=4, batch_pause=0.0, max_workers=2
    ) as jobs:
        yield jobs
