"""Answer-generation capability: turn a query plus trusted context into text.

Two implementations, selected by ``settings.answer_generator``:

- :class:`ExtractiveAnswerGenerator` — deterministic sentence extraction.
- :class:`LLMAnswerGenerator` — asks a chat model to answer from the
  context only.

A generator returns ``None`` when the context does not answer the
query; the grounding engine then falls back to a canned response.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from langchain_openai import ChatOpenAI

from tenant_rag.config import Settings, settings as default_settings
from tenant_rag.grounding.extraction import DEFAULT_WEIGHTS, ScoringWeights, extract_answer, strip_markers
from tenant_rag.grounding.prompts import NOT_FOUND_SENTINEL, build_grounded_answer_prompt

logger = logging.getLogger(__name__)


class AnswerGenerator(ABC):
    """Produces an answer grounded in *context*, or ``None``."""

    name: str = "base"

    @abstractmethod
    def generate(self, query: str, context: str) -> str | None:
        ...


class ExtractiveAnswerGenerator(AnswerGenerator):
    """Picks the most relevant sentence(s) of the context verbatim."""

    name = "extractive"

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS) -> None:
        self.weights = weights

    def generate(self, query: str, context: str) -> str | None:
        return extract_answer(query, context, self.weights)


class LLMAnswerGenerator(AnswerGenerator):
    """Answers with a chat model restricted to the supplied context.

    Parameters
    ----------
    llm:
        A LangChain chat model.  When *None*, the configured
        ``ChatOpenAI`` model is created on first use.
    """

    name = "llm"

    def __init__(self, llm: Any = None, config: Settings | None = None) -> None:
        self._llm = llm
        self._config = config or default_settings

    @property
    def llm(self) -> Any:
        if self._llm is None:
            self._llm = _chat_model(self._config)
        return self._llm

    def generate(self, query: str, context: str) -> str | None:
        if not context.strip():
            return None
        try:
            response = self.llm.invoke(build_grounded_answer_prompt(query, context))
        except Exception:
            logger.warning("LLM answer generation failed; falling back to default answer", exc_info=True)
            return None

        text = str(getattr(response, "content", response) or "").strip()
        if not text or NOT_FOUND_SENTINEL in text:
            return None
        return strip_markers(text) or None


def _chat_model(config: Settings, temperature: float = 0.0) -> ChatOpenAI:
    """Build the configured chat model.

    With ``llm_base_url`` set, the model talks to that OpenAI-compatible
    endpoint (vLLM and friends) instead of the OpenAI cloud API.
    """
    kwargs: dict = {"model": config.llm_model_name, "temperature": temperature}
    if config.llm_base_url:
        logger.info("Using OpenAI-compatible chat endpoint: %s", config.llm_base_url)
        kwargs["base_url"] = config.llm_base_url
        # Self-hosted servers ignore the key but the client insists on one.
        kwargs["api_key"] = config.openai_api_key or "EMPTY"
    elif config.openai_api_key:
        kwargs["api_key"] = config.openai_api_key
    return ChatOpenAI(**kwargs)


def build_answer_generator(config: Settings | None = None) -> AnswerGenerator:
    """Return the answer generator selected by *config*."""
    config = config or default_settings
    if config.answer_generator == "extractive":
        return ExtractiveAnswerGenerator()
    if config.answer_generator == "llm":
        return LLMAnswerGenerator(config=config)
    raise ValueError(f"Unsupported answer generator: {config.answer_generator!r}")
