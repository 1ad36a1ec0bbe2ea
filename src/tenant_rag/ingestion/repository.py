"""In-memory document store that publishes immutable snapshots.

Writers serialise on a lock and replace the stored :class:`Document`
with an updated copy.  Readers never take the lock: they read whatever
snapshot is currently published, so a status poll cannot block on, or
observe half of, an in-flight update.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any

from tenant_rag.errors import DocumentNotFoundError
from tenant_rag.ingestion.models import Document, ProcessingState

logger = logging.getLogger(__name__)


class DocumentRepository:
    """Holds every tenant's documents, keyed by ``document_id``."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._write_lock = threading.Lock()

    def add(self, document: Document) -> Document:
        with self._write_lock:
            if document.document_id in self._documents:
                raise ValueError(f"Document {document.document_id!r} already exists")
            self._documents[document.document_id] = document
        return document

    def get(self, document_id: str, *, tenant_id: str | None = None) -> Document:
        """Return the current snapshot of a document.

        When *tenant_id* is given, a document owned by another tenant is
        reported as missing.
        """
        document = self._documents.get(document_id)
        if document is None or (tenant_id is not None and document.tenant_id != tenant_id):
            raise DocumentNotFoundError(f"Document {document_id!r} not found")
        return document

    def update(self, document_id: str, **changes: Any) -> Document:
        """Publish a copy of the document with *changes* applied."""
        with self._write_lock:
            current = self._documents.get(document_id)
            if current is None:
                raise DocumentNotFoundError(f"Document {document_id!r} not found")
            changes["updated_at"] = datetime.now(timezone.utc)
            updated = current.model_copy(update=changes)
            self._documents[document_id] = updated
        return updated

    def deactivate(self, document_id: str, *, tenant_id: str | None = None) -> bool:
        """Mark a document inactive.

        Returns ``True`` only for the call that performed the transition;
        a document that is already inactive yields ``False``.
        """
        with self._write_lock:
            current = self._documents.get(document_id)
            if current is None or (tenant_id is not None and current.tenant_id != tenant_id):
                raise DocumentNotFoundError(f"Document {document_id!r} not found")
            if not current.is_active:
                return False
            self._documents[document_id] = current.model_copy(
                update={"is_active": False, "updated_at": datetime.now(timezone.utc)}
            )
        return True

    def find(
        self,
        tenant_id: str,
        *,
        state: ProcessingState | None = None,
        category: str | None = None,
        include_inactive: bool = False,
    ) -> list[Document]:
        """Return a tenant's documents, newest first."""
        docs = [
            doc
            for doc in list(self._documents.values())
            if doc.tenant_id == tenant_id
            and (include_inactive or doc.is_active)
            and (state is None or doc.state is state)
            and (category is None or doc.metadata.category == category)
        ]
        return sorted(docs, key=lambda d: d.created_at, reverse=True)

    def count_by_state(self, tenant_id: str) -> dict[ProcessingState, int]:
        counts = {state: 0 for state in ProcessingState}
        for doc in self.find(tenant_id):
            counts[doc.state] += 1
        return counts
