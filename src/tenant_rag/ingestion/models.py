"""Domain models for documents, chunks and ingestion progress."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class ProcessingState(str, Enum):
    """Lifecycle of a document: ``pending → processing → completed | failed``."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingState.COMPLETED, ProcessingState.FAILED)


class DocumentMetadata(BaseModel):
    """Optional descriptive metadata supplied at upload time."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    description: str | None = None
    tags: tuple[str, ...] = ()
    category: str | None = None
    author: str | None = None


class Document(BaseModel):
    """An uploaded document and its processing counters.

    Instances are immutable; the repository publishes a new copy on every
    change so a reader always holds a self-consistent snapshot.

    Attributes
    ----------
    content:
        Flat text already extracted from the uploaded file.
    chunk_count:
        Number of chunks produced, ``0`` until chunking has run.
    embedding_count:
        Number of chunks embedded and stored so far
        (``0 <= embedding_count <= chunk_count``).
    is_active:
        ``False`` once soft-deleted; inactive documents are never searched.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(default_factory=lambda: uuid4().hex)
    tenant_id: str
    filename: str
    file_type: Literal["txt", "csv", "pdf"] = "txt"
    file_size: int = Field(default=0, ge=0)
    content: str = ""
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    state: ProcessingState = ProcessingState.PENDING
    chunk_count: int = Field(default=0, ge=0)
    embedding_count: int = Field(default=0, ge=0)
    error: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def progress_percent(self) -> int:
        if self.chunk_count == 0:
            return 0
        return round(self.embedding_count / self.chunk_count * 100)

    @property
    def is_fully_processed(self) -> bool:
        return (
            self.state is ProcessingState.COMPLETED
            and self.chunk_count > 0
            and self.embedding_count == self.chunk_count
        )


class Chunk(BaseModel):
    """A contiguous passage of a document, the unit of embedding."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0)
    text: str
    word_count: int = Field(ge=0)


_STATUS_MESSAGES = {
    ProcessingState.PENDING: "Upload received, waiting to process...",
    ProcessingState.PROCESSING: "Processing document... {progress}% complete",
    ProcessingState.COMPLETED: "Document indexed successfully",
    ProcessingState.FAILED: "Processing failed",
}


class JobStatus(BaseModel):
    """Pollable view of a document's ingestion progress."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    state: ProcessingState
    progress_percent: int = Field(ge=0, le=100)
    chunk_count: int
    embedding_count: int
    error: str | None = None

    @property
    def message(self) -> str:
        return _STATUS_MESSAGES[self.state].format(progress=self.progress_percent)

    @classmethod
    def from_document(cls, document: Document) -> JobStatus:
        return cls(
            document_id=document.document_id,
            state=document.state,
            progress_percent=document.progress_percent,
            chunk_count=document.chunk_count,
            embedding_count=document.embedding_count,
            error=document.error,
        )
