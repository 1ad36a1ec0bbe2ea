"""
Grounding — deciding whether retrieved text is trustworthy enough to answer with.

Public surface
--------------
- :class:`GroundingEngine` — policy entry point (``answer(query, matches)``).
- :class:`AnswerGenerator` and its extractive / LLM implementations.
- :func:`detect_message_type`, :class:`DefaultAnswers` — canned responses.
- :class:`Answer`, :class:`SourceSnippet` — result models.
"""

from tenant_rag.grounding.defaults import DEFAULT_ANSWERS, DefaultAnswers, MessageType, detect_message_type
from tenant_rag.grounding.engine import GroundingEngine
from tenant_rag.grounding.generators import (
    AnswerGenerator,
    ExtractiveAnswerGenerator,
    LLMAnswerGenerator,
    build_answer_generator,
)
from tenant_rag.grounding.models import Answer, SourceSnippet

__all__ = [
    "DEFAULT_ANSWERS",
    "Answer",
    "AnswerGenerator",
    "DefaultAnswers",
    "ExtractiveAnswerGenerator",
    "GroundingEngine",
    "LLMAnswerGenerator",
    "MessageType",
    "SourceSnippet",
    "build_answer_generator",
    "detect_message_type",
]
