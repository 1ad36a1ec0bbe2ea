"""Grounding engine — decides whether retrieved text may answer a query.

Policy (a pure function of the query and the matches):

1. No matches at all → the "not found" answer.
2. Matches at or above the high-quality threshold → their texts become
   the context for the answer generator.  If it produces an answer, it
   is returned with ``source="pdf"``.
3. Otherwise a conversational query (greeting, thanks, goodbye) gets its
   canned reply; anything else gets "not found".  Weak matches are still
   listed as sources but never used to build the message.

Confidence values are fixed per branch; they are policy constants, not
calibrated scores.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from tenant_rag.config import Settings, settings as default_settings
from tenant_rag.grounding.defaults import DEFAULT_ANSWERS, DefaultAnswers, MessageType, detect_message_type
from tenant_rag.grounding.generators import AnswerGenerator, ExtractiveAnswerGenerator, build_answer_generator
from tenant_rag.grounding.models import Answer, SourceSnippet
from tenant_rag.retrieval.models import RetrievalMatch

logger = logging.getLogger(__name__)

PDF_CONTENT = "pdf_content"

_HIGH_QUALITY_EXCERPT = 300
_LOW_QUALITY_EXCERPT = 200
_LOW_QUALITY_SOURCES = 3


class GroundingEngine:
    """Turns ranked retrieval matches into an :class:`Answer`.

    Parameters
    ----------
    generator:
        Answer-generation capability; extractive by default.
    high_quality_threshold:
        Minimum similarity for a match to be trusted as context.
    confidence_grounded / confidence_conversational / confidence_not_found:
        Confidence reported for each branch of the policy.
    answers:
        Canned response catalogue.
    """

    def __init__(
        self,
        generator: AnswerGenerator | None = None,
        *,
        high_quality_threshold: float = 0.5,
        confidence_grounded: float = 0.9,
        confidence_conversational: float = 0.8,
        confidence_not_found: float = 0.3,
        answers: DefaultAnswers = DEFAULT_ANSWERS,
    ) -> None:
        self.generator = generator or ExtractiveAnswerGenerator()
        self.high_quality_threshold = high_quality_threshold
        self.confidence_grounded = confidence_grounded
        self.confidence_conversational = confidence_conversational
        self.confidence_not_found = confidence_not_found
        self.answers = answers

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> GroundingEngine:
        config = config or default_settings
        return cls(
            build_answer_generator(config),
            high_quality_threshold=config.high_quality_threshold,
            confidence_grounded=config.confidence_grounded,
            confidence_conversational=config.confidence_conversational,
            confidence_not_found=config.confidence_not_found,
        )

    def answer(self, query: str, matches: Sequence[RetrievalMatch] | None = None) -> Answer:
        """Answer *query* from *matches*; never raises for missing context."""
        matches = list(matches or [])
        if not matches:
            logger.info("No matches for query; using not-found answer")
            return self.not_found()

        message_type = detect_message_type(query)
        high_quality = [m for m in matches if m.similarity >= self.high_quality_threshold]

        if high_quality:
            sources = _snippets(high_quality, _HIGH_QUALITY_EXCERPT)
            context = "\n\n".join(m.text for m in high_quality)
            logger.info(
                "%d high-quality match(es) (>= %.2f), top similarity %.4f",
                len(high_quality), self.high_quality_threshold, high_quality[0].similarity,
            )
            message = self.generator.generate(query, context)
            if message:
                return Answer(
                    message=message,
                    confidence=self.confidence_grounded,
                    source="pdf",
                    sources=sources,
                    message_type=PDF_CONTENT,
                )
            logger.info("High-quality context held nothing relevant to the query")
        else:
            logger.info("No high-quality matches (>= %.2f) among %d", self.high_quality_threshold, len(matches))
            sources = _snippets(matches[:_LOW_QUALITY_SOURCES], _LOW_QUALITY_EXCERPT)

        if message_type.is_conversational:
            return Answer(
                message=self.answers.for_type(message_type),
                confidence=self.confidence_conversational,
                source="default",
                sources=sources,
                message_type=message_type.value,
            )
        return self.not_found(sources)

    def not_found(self, sources: list[SourceSnippet] | None = None) -> Answer:
        """The canned answer used whenever nothing trustworthy was retrieved."""
        return Answer(
            message=self.answers.not_found,
            confidence=self.confidence_not_found,
            source="default",
            sources=sources or [],
            message_type=MessageType.NOT_FOUND.value,
        )


def _snippets(matches: Sequence[RetrievalMatch], excerpt: int) -> list[SourceSnippet]:
    return [
        SourceSnippet(
            text=m.text if len(m.text) <= excerpt else m.text[:excerpt] + "...",
            similarity=round(m.similarity, 2),
            document_id=m.document_id,
            chunk_index=m.chunk_index,
        )
        for m in matches
    ]
