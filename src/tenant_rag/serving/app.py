"""FastAPI application exposing the tenant knowledge base as a REST API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tenant_rag import __version__
from tenant_rag.config import settings
from tenant_rag.errors import DocumentAlreadyProcessedError, TenantQuotaError
from tenant_rag.grounding.models import Answer
from tenant_rag.ingestion.models import DocumentMetadata, JobStatus, ProcessingState
from tenant_rag.service import KnowledgeBase, TenantAnalytics, UploadReceipt
from tenant_rag.tenants.models import SubscriptionPlan

logger = logging.getLogger(__name__)


# ── Request / Response schemas ────────────────────────────────────────
class TenantRequest(BaseModel):
    """New tenant account."""

    name: str
    plan: SubscriptionPlan = SubscriptionPlan.FREE
    max_documents: int | None = None
    max_queries_per_period: int | None = None


class TenantResponse(BaseModel):
    tenant_id: str
    name: str
    plan: SubscriptionPlan
    max_documents: int
    max_queries_per_period: int


class UploadRequest(BaseModel):
    """Parsed text of an uploaded file."""

    filename: str
    content: str
    file_type: str = "txt"
    file_size: int | None = None
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)


class StatusResponse(BaseModel):
    document_id: str
    status: ProcessingState
    progress: int
    chunk_count: int
    embedding_count: int
    message: str
    error: str | None = None


class DocumentSummary(BaseModel):
    document_id: str
    filename: str
    file_type: str
    file_size: int
    status: ProcessingState
    chunk_count: int
    embedding_count: int
    category: str | None = None


class QueryRequest(BaseModel):
    """Incoming question from an end user."""

    message: str


def _status_response(status: JobStatus) -> StatusResponse:
    return StatusResponse(
        document_id=status.document_id,
        status=status.state,
        progress=status.progress_percent,
        chunk_count=status.chunk_count,
        embedding_count=status.embedding_count,
        message=status.message,
        error=status.error,
    )


def create_app(kb: KnowledgeBase | None = None) -> FastAPI:
    """Build the API around *kb* (a settings-configured knowledge base by default)."""
    logging.basicConfig(level=settings.log_level)
    kb = kb or KnowledgeBase.from_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        kb.close()

    app = FastAPI(
        lifespan=lifespan,
        title="Tenant RAG API",
        version=__version__,
        description="Multi-tenant document ingestion and grounded question answering.",
    )
    app.state.kb = kb

    # ── Error mapping ─────────────────────────────────────────────────
    @app.exception_handler(LookupError)
    async def _not_found(request: Request, exc: LookupError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(TenantQuotaError)
    async def _quota(request: Request, exc: TenantQuotaError) -> JSONResponse:
        return JSONResponse(status_code=429, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def _invalid(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(DocumentAlreadyProcessedError)
    async def _conflict(request: Request, exc: DocumentAlreadyProcessedError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.post("/tenants", response_model=TenantResponse, status_code=201)
    def create_tenant(request: TenantRequest) -> TenantResponse:
        tenant = kb.register_tenant(
            request.name,
            plan=request.plan,
            max_documents=request.max_documents,
            max_queries_per_period=request.max_queries_per_period,
        )
        return TenantResponse(**tenant.model_dump(include=set(TenantResponse.model_fields)))

    @app.post("/tenants/{tenant_id}/documents", response_model=UploadReceipt, status_code=202)
    def upload_document(tenant_id: str, request: UploadRequest) -> UploadReceipt:
        """Accept a document and process it in the background."""
        if request.file_type not in ("txt", "csv", "pdf"):
            raise ValueError("Invalid file type. Only PDF, TXT, and CSV files are allowed.")
        return kb.upload_document(
            tenant_id,
            request.content,
            filename=request.filename,
            file_type=request.file_type,
            file_size=request.file_size,
            metadata=request.metadata,
        )

    @app.get("/tenants/{tenant_id}/documents", response_model=list[DocumentSummary])
    def list_documents(
        tenant_id: str,
        status: ProcessingState | None = None,
        category: str | None = None,
    ) -> list[DocumentSummary]:
        return [
            DocumentSummary(
                document_id=doc.document_id,
                filename=doc.filename,
                file_type=doc.file_type,
                file_size=doc.file_size,
                status=doc.state,
                chunk_count=doc.chunk_count,
                embedding_count=doc.embedding_count,
                category=doc.metadata.category,
            )
            for doc in kb.list_documents(tenant_id, state=status, category=category)
        ]

    @app.get("/tenants/{tenant_id}/documents/{document_id}/status", response_model=StatusResponse)
    def document_status(tenant_id: str, document_id: str) -> StatusResponse:
        """Poll ingestion progress."""
        return _status_response(kb.upload_status(tenant_id, document_id))

    @app.delete("/tenants/{tenant_id}/documents/{document_id}", status_code=204, response_class=Response)
    def delete_document(tenant_id: str, document_id: str) -> Response:
        kb.delete_document(tenant_id, document_id)
        return Response(status_code=204)

    @app.post("/tenants/{tenant_id}/query", response_model=Answer)
    def query(tenant_id: str, request: QueryRequest) -> Answer:
        """Answer a question from the tenant's documents."""
        return kb.query(tenant_id, request.message)

    @app.get("/tenants/{tenant_id}/analytics", response_model=TenantAnalytics)
    def analytics(tenant_id: str) -> TenantAnalytics:
        return kb.analytics(tenant_id)

    return app


app = create_app()
