"""Answer models returned by the grounding engine."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SourceSnippet(BaseModel):
    """A retrieved passage surfaced alongside an answer for transparency."""

    text: str
    similarity: float
    document_id: str | None = None
    chunk_index: int | None = None


class Answer(BaseModel):
    """Final response to a query.

    Attributes
    ----------
    message:
        The text shown to the end user.
    confidence:
        Fixed policy constant for the branch that produced the answer
        (grounded, conversational default, not found).  It is not a
        calibrated probability.
    source:
        ``"pdf"`` when the message was derived from document text,
        ``"default"`` when it is a canned response.
    sources:
        Retrieved passages considered, best first.
    message_type:
        ``"pdf_content"`` for grounded answers, otherwise the
        :class:`~tenant_rag.grounding.defaults.MessageType` value used.
    """

    message: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: Literal["pdf", "default"]
    sources: list[SourceSnippet] = Field(default_factory=list)
    message_type: str
