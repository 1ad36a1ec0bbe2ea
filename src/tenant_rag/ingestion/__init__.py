"""
Ingestion — chunking uploaded text and embedding it in the background.

Public surface
--------------
- :func:`chunk_text` / :class:`WordTextSplitter` — deterministic word chunker.
- :class:`IngestionJobManager` — per-document processing state machine.
- :class:`DocumentRepository` — snapshot-publishing document store.
- :class:`Document`, :class:`JobStatus`, :class:`ProcessingState` — data models.
"""

from tenant_rag.ingestion.chunker import WordTextSplitter, chunk_text
from tenant_rag.ingestion.jobs import IngestionJobManager, JobHandle
from tenant_rag.ingestion.models import Chunk, Document, DocumentMetadata, JobStatus, ProcessingState
from tenant_rag.ingestion.repository import DocumentRepository

__all__ = [
    "Chunk",
    "Document",
    "DocumentMetadata",
    "DocumentRepository",
    "IngestionJobManager",
    "JobHandle",
    "JobStatus",
    "ProcessingState",
    "WordTextSplitter",
    "chunk_text",
]
