"""Knowledge-base facade — the upload path and the query path in one place.

Usage::

    from tenant_rag.service import KnowledgeBase

    kb = KnowledgeBase.from_settings()
    tenant = kb.register_tenant("Acme")
    receipt = kb.upload_document(tenant.tenant_id, text, filename="faq.txt")
    kb.upload_status(tenant.tenant_id, receipt.document_id)
    answer = kb.query(tenant.tenant_id, "What is your refund policy?")
"""

from __future__ import annotations

import logging
import re
from typing import Literal

from pydantic import BaseModel

from tenant_rag.config import Settings, settings as default_settings
from tenant_rag.embedding.client import EmbeddingClient
from tenant_rag.errors import EmbeddingError, TenantQuotaError, VectorDimensionError
from tenant_rag.grounding.engine import GroundingEngine
from tenant_rag.grounding.models import Answer
from tenant_rag.ingestion.jobs import IngestionJobManager
from tenant_rag.ingestion.models import Document, DocumentMetadata, JobStatus, ProcessingState
from tenant_rag.ingestion.repository import DocumentRepository
from tenant_rag.retrieval.base import VectorStoreBase
from tenant_rag.retrieval.memory_store import InMemoryVectorStore
from tenant_rag.retrieval.models import EmbeddingStats, SearchOptions
from tenant_rag.tenants.models import SubscriptionPlan, Tenant, TenantUsage
from tenant_rag.tenants.registry import TenantRegistry

logger = logging.getLogger(__name__)

_HARMFUL_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
)


class UploadReceipt(BaseModel):
    document_id: str
    filename: str
    size: int
    status: str = "received"


class TenantAnalytics(BaseModel):
    """Per-tenant counters for an admin dashboard."""

    tenant_id: str
    documents_by_state: dict[str, int]
    embeddings: EmbeddingStats
    usage: TenantUsage


class KnowledgeBase:
    """Wires tenants, documents, ingestion, retrieval and grounding together.

    Every method takes the caller's ``tenant_id`` and only ever touches
    that tenant's data.
    """

    def __init__(
        self,
        client: EmbeddingClient,
        *,
        store: VectorStoreBase | None = None,
        documents: DocumentRepository | None = None,
        tenants: TenantRegistry | None = None,
        grounding: GroundingEngine | None = None,
        jobs: IngestionJobManager | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or default_settings
        self.client = client
        self.store = store or InMemoryVectorStore()
        self.documents = documents or DocumentRepository()
        self.tenants = tenants or TenantRegistry()
        self.grounding = grounding or GroundingEngine.from_settings(self.config)
        self.jobs = jobs or IngestionJobManager.from_settings(
            client, self.store, self.documents, self.tenants, self.config
        )

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> KnowledgeBase:
        config = config or default_settings
        return cls(EmbeddingClient.from_settings(config), config=config)

    def close(self) -> None:
        self.jobs.shutdown(wait=True)

    def register_tenant(
        self,
        name: str,
        *,
        plan: SubscriptionPlan = SubscriptionPlan.FREE,
        max_documents: int | None = None,
        max_queries_per_period: int | None = None,
    ) -> Tenant:
        """Create a tenant, filling unset limits from configuration."""
        tenant = Tenant(
            name=name,
            plan=plan,
            max_documents=self.config.default_max_documents if max_documents is None else max_documents,
            max_queries_per_period=(
                self.config.default_max_queries if max_queries_per_period is None else max_queries_per_period
            ),
            quota_period_days=self.config.quota_period_days,
        )
        return self.tenants.register(tenant)

    # -- upload path ----------------------------------------------------------

    def upload_document(
        self,
        tenant_id: str,
        content: str,
        *,
        filename: str,
        file_type: Literal["txt", "csv", "pdf"] = "txt",
        file_size: int | None = None,
        metadata: DocumentMetadata | None = None,
    ) -> UploadReceipt:
        """Persist parsed document text and queue it for ingestion.

        Raises
        ------
        TenantQuotaError
            If the tenant's document limit has been reached.
        """
        if not self.tenants.can_upload_document(tenant_id):
            raise TenantQuotaError("Document limit reached. Please upgrade your plan.")

        size = file_size if file_size is not None else len(content.encode("utf-8"))
        document = self.documents.add(
            Document(
                tenant_id=tenant_id,
                filename=filename,
                file_type=file_type,
                file_size=size,
                content=content,
                metadata=metadata or DocumentMetadata(),
            )
        )
        try:
            self.jobs.submit(document)
        except TenantQuotaError:
            # Lost the race for the last slot after the early gate passed.
            self.documents.deactivate(document.document_id)
            raise
        return UploadReceipt(document_id=document.document_id, filename=filename, size=size)

    def upload_status(self, tenant_id: str, document_id: str) -> JobStatus:
        self.documents.get(document_id, tenant_id=tenant_id)
        return self.jobs.status(document_id)

    def list_documents(
        self,
        tenant_id: str,
        *,
        state: ProcessingState | None = None,
        category: str | None = None,
    ) -> list[Document]:
        self.tenants.get(tenant_id)
        return self.documents.find(tenant_id, state=state, category=category)

    def delete_document(self, tenant_id: str, document_id: str) -> None:
        """Soft-delete a document and its embeddings."""
        if not self.documents.deactivate(document_id, tenant_id=tenant_id):
            return
        self.tenants.decrement_documents(tenant_id)
        removed = self.store.deactivate_document(tenant_id, document_id)
        logger.info("Deleted document %s of tenant %s (%d embedding(s) deactivated)", document_id, tenant_id, removed)

    # -- query path -----------------------------------------------------------

    def query(self, tenant_id: str, message: str) -> Answer:
        """Answer *message* from the tenant's documents.

        Provider and store failures degrade to the not-found answer.

        Raises
        ------
        ValueError
            If *message* is empty, too long or looks like script injection.
        TenantQuotaError
            If the tenant's query quota is exhausted.
        """
        message = self._validate_message(message)
        if not self.tenants.can_make_query(tenant_id):
            raise TenantQuotaError("Query limit reached. Please upgrade your plan.")

        try:
            query_vector = self.client.embed(message)
            matches = self.store.search(
                tenant_id,
                query_vector,
                SearchOptions(limit=self.config.search_limit, min_similarity=self.config.search_min_similarity),
            )
        except (EmbeddingError, VectorDimensionError):
            logger.exception("Query retrieval failed for tenant %s", tenant_id)
            answer = self.grounding.not_found()
        else:
            logger.info("Query %r: %d similar chunk(s)", message[:50], len(matches))
            answer = self.grounding.answer(message, matches)

        self.tenants.increment_queries(tenant_id)
        return answer

    def analytics(self, tenant_id: str) -> TenantAnalytics:
        usage = self.tenants.usage(tenant_id)
        counts = self.documents.count_by_state(tenant_id)
        return TenantAnalytics(
            tenant_id=tenant_id,
            documents_by_state={state.value: n for state, n in counts.items()},
            embeddings=self.store.stats(tenant_id),
            usage=usage,
        )

    # -- internals ------------------------------------------------------------

    def _validate_message(self, message: str) -> str:
        if not isinstance(message, str) or not message.strip():
            raise ValueError("Input cannot be empty")
        message = message.strip()
        if len(message) > self.config.max_query_length:
            raise ValueError(f"Input is too long (maximum {self.config.max_query_length} characters)")
        if any(p.search(message) for p in _HARMFUL_PATTERNS):
            raise ValueError("Input contains potentially harmful content")
        return message
