"""Ingestion job manager — drives documents from upload to a terminal state.

Each submitted document gets one background job on a thread pool.  The
job chunks the text, embeds the chunks in sequential batches, stores
the vectors and publishes progress after every batch, so pollers see a
monotonically growing ``embedding_count``.

State machine::

    pending ──► processing ──► completed   (at least one chunk embedded)
                          └──► failed      (no chunks, or nothing embedded)

Usage::

    manager = IngestionJobManager(client, store, documents, tenants)
    handle = manager.submit(document)
    manager.status(document.document_id)   # poll at any time
    handle.result(timeout=60)               # or block for the final status
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from uuid import uuid4

from tenant_rag.config import Settings, settings as default_settings
from tenant_rag.embedding.client import EmbeddingClient
from tenant_rag.errors import (
    DocumentAlreadyProcessedError,
    EmbeddingError,
    EmptyDocumentError,
    IngestionError,
    TenantQuotaError,
)
from tenant_rag.ingestion.chunker import chunk_text
from tenant_rag.ingestion.models import Chunk, Document, JobStatus, ProcessingState
from tenant_rag.ingestion.repository import DocumentRepository
from tenant_rag.retrieval.base import VectorStoreBase
from tenant_rag.retrieval.models import ChunkMetadata, EmbeddingRecord
from tenant_rag.tenants.registry import TenantRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobHandle:
    """Identity of a submitted job plus the channel its final status arrives on."""

    job_id: str
    document_id: str
    future: Future

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: float | None = None) -> JobStatus:
        """Block until the job reaches a terminal state and return its status."""
        return self.future.result(timeout=timeout)


class IngestionJobManager:
    """Runs at most one processing job per document.

    Parameters
    ----------
    client:
        Embedding client used for batch and per-chunk calls.
    store:
        Vector store receiving the embedded chunks.
    documents:
        Repository the documents were persisted to before submission.
    tenants:
        Registry a document slot is reserved in on acceptance.
    max_words:
        Chunk size in words.
    batch_size:
        Chunks per embedding batch.
    batch_pause:
        Seconds to wait between batches to smooth provider load.
    max_workers:
        Documents processed concurrently.
    sleep:
        Function used for the between-batch pause (override in tests).
    """

    def __init__(
        self,
        client: EmbeddingClient,
        store: VectorStoreBase,
        documents: DocumentRepository,
        tenants: TenantRegistry,
        *,
        max_words: int = 800,
        batch_size: int = 50,
        batch_pause: float = 0.1,
        max_workers: int = 4,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._client = client
        self._store = store
        self._documents = documents
        self._tenants = tenants
        self.max_words = max_words
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ingestion")
        self._in_flight: dict[str, JobHandle] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        client: EmbeddingClient,
        store: VectorStoreBase,
        documents: DocumentRepository,
        tenants: TenantRegistry,
        config: Settings | None = None,
    ) -> IngestionJobManager:
        config = config or default_settings
        return cls(
            client,
            store,
            documents,
            tenants,
            max_words=config.chunk_max_words,
            batch_size=config.ingestion_batch_size,
            batch_pause=config.ingestion_batch_pause,
            max_workers=config.ingestion_max_workers,
        )

    # -- public API -----------------------------------------------------------

    def submit(self, document: Document) -> JobHandle:
        """Queue *document* for background processing and return immediately.

        Submitting a document whose job is still in flight returns the
        existing handle instead of starting a second job.

        Raises
        ------
        DocumentNotFoundError
            If the document was not persisted to the repository first.
        DocumentAlreadyProcessedError
            If the document already reached ``completed`` or ``failed``.
        TenantQuotaError
            If the owning tenant has no document slot left.
        """
        document_id = document.document_id
        with self._lock:
            active = self._in_flight.get(document_id)
            if active is not None:
                logger.info("Document %s already has job %s in flight", document_id, active.job_id)
                return active

            current = self._documents.get(document_id)
            if current.state.is_terminal:
                raise DocumentAlreadyProcessedError(
                    f"Document {document_id!r} is already {current.state.value}; upload it again to reprocess"
                )

            if not self._tenants.try_reserve_document(current.tenant_id):
                raise TenantQuotaError("Document limit reached. Please upgrade your plan.")
            job_id = uuid4().hex[:12]
            future = self._executor.submit(self._run, document_id, job_id)
            handle = JobHandle(job_id=job_id, document_id=document_id, future=future)
            self._in_flight[document_id] = handle

        logger.info("Upload received: document %s (%s) queued as job %s", document_id, current.filename, job_id)
        return handle

    def status(self, document_id: str) -> JobStatus:
        """Return a consistent snapshot of the document's progress; never blocks."""
        return JobStatus.from_document(self._documents.get(document_id))

    def is_in_flight(self, document_id: str) -> bool:
        return document_id in self._in_flight

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> IngestionJobManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown(wait=True)

    # -- worker ---------------------------------------------------------------

    def _run(self, document_id: str, job_id: str) -> JobStatus:
        try:
            self._process(document_id)
        except Exception as exc:
            # Job boundary: every job must end in a terminal state.
            logger.exception("Upload failed: document %s (job %s)", document_id, job_id)
            failed = self._documents.update(
                document_id,
                state=ProcessingState.FAILED,
                error=str(exc) or type(exc).__name__,
            )
            # A failed document never serves search results.
            self._store.deactivate_document(failed.tenant_id, document_id)
        finally:
            with self._lock:
                handle = self._in_flight.get(document_id)
                if handle is not None and handle.job_id == job_id:
                    del self._in_flight[document_id]
        return self.status(document_id)

    def _process(self, document_id: str) -> None:
        document = self._documents.update(document_id, state=ProcessingState.PROCESSING)

        chunks = chunk_text(document.content, max_words=self.max_words)
        if not chunks:
            raise EmptyDocumentError("No content chunks generated from document")
        self._documents.update(document_id, chunk_count=len(chunks))
        logger.info("Parsing: document %s produced %d chunk(s)", document_id, len(chunks))

        total_batches = math.ceil(len(chunks) / self.batch_size)
        embedded = 0
        abort_error: EmbeddingError | None = None

        for batch_no, start in enumerate(range(0, len(chunks), self.batch_size), 1):
            batch = chunks[start : start + self.batch_size]
            logger.info("Embedding batch %d/%d for document %s", batch_no, total_batches, document_id)
            try:
                embedded = self._embed_batch(document, batch, embedded)
            except EmbeddingError as exc:
                # Only permanent errors escape the batch. The per-chunk fallback may have
                # stored some chunks before failing; the repository holds their count.
                abort_error = exc
                embedded = self._documents.get(document_id).embedding_count
                logger.error(
                    "Aborting document %s after batch %d/%d: %s (%s)",
                    document_id, batch_no, total_batches, exc, exc.kind.value,
                )
                break

            logger.info(
                "Embedded %d/%d chunks for document %s (%d%%)",
                embedded, len(chunks), document_id, round(embedded / len(chunks) * 100),
            )
            if batch_no < total_batches and self.batch_pause > 0:
                self._sleep(self.batch_pause)

        if embedded == 0:
            if abort_error is not None:
                raise IngestionError(f"Failed to create any embeddings: {abort_error}") from abort_error
            raise IngestionError("Failed to create any embeddings")

        if not self._documents.get(document_id).is_active:
            # Deleted while processing; keep whatever was stored out of search.
            self._store.deactivate_document(document.tenant_id, document_id)

        self._documents.update(document_id, state=ProcessingState.COMPLETED, error=None)
        if embedded < len(chunks):
            logger.warning(
                "Indexed document %s partially: %d of %d chunk(s) embedded",
                document_id, embedded, len(chunks),
            )
        else:
            logger.info("Indexed document %s with %d embedding(s)", document_id, embedded)

    def _embed_batch(self, document: Document, batch: Sequence[Chunk], embedded: int) -> int:
        """Embed one batch, falling back to per-chunk calls; return the new embedded total."""
        try:
            vectors = self._client.embed_batch([c.text for c in batch])
        except EmbeddingError as exc:
            if exc.permanent:
                raise
            logger.warning(
                "Batch embedding failed for document %s (%s); retrying %d chunk(s) individually",
                document.document_id, exc, len(batch),
            )
            return self._embed_individually(document, batch, embedded)

        self._store.add([self._record(document, chunk, vector) for chunk, vector in zip(batch, vectors)])
        embedded += len(batch)
        self._documents.update(document.document_id, embedding_count=embedded)
        return embedded

    def _embed_individually(self, document: Document, batch: Sequence[Chunk], embedded: int) -> int:
        for chunk in batch:
            try:
                vector = self._client.embed(chunk.text)
            except EmbeddingError as exc:
                if exc.permanent:
                    raise
                logger.error(
                    "Embedding failed for chunk %d of document %s: %s",
                    chunk.chunk_index, document.document_id, exc,
                )
                continue
            self._store.add([self._record(document, chunk, vector)])
            embedded += 1
            self._documents.update(document.document_id, embedding_count=embedded)
        return embedded

    @staticmethod
    def _record(document: Document, chunk: Chunk, vector: Sequence[float]) -> EmbeddingRecord:
        return EmbeddingRecord(
            tenant_id=document.tenant_id,
            document_id=document.document_id,
            text=chunk.text,
            vector=tuple(vector),
            metadata=ChunkMetadata(
                chunk_index=chunk.chunk_index,
                token_count=chunk.word_count,
                category=document.metadata.category,
                tags=document.metadata.tags,
            ),
        )
