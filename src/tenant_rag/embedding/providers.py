"""Embedding providers — single place to swap backends.

Supports three modes, selected by ``settings.embedding_provider``:

1. **hash** (default) — deterministic, offline bag-of-words hashing.
   Related texts land close together, which is enough for tests and
   local demos; no network access or credentials are needed.
2. **openai** — ``OpenAIEmbeddings`` against OpenAI cloud or any
   OpenAI-compatible endpoint (``LLM_BASE_URL``).
3. **huggingface** — local sentence-transformer model.
"""

from __future__ import annotations

import hashlib
import logging
import re

import numpy as np
from langchain_core.embeddings import Embeddings

from tenant_rag.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")


class HashEmbeddings(Embeddings):
    """Deterministic embeddings derived from hashed words.

    Each word longer than two characters is hashed onto *spread*
    dimensions of the output vector; the vector is then L2-normalised.
    The same text always produces the same vector, across processes.

    Parameters
    ----------
    dimension:
        Length of the produced vectors.
    spread:
        Number of dimensions each word contributes to.
    """

    def __init__(self, dimension: int = 1536, spread: int = 10) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension = dimension
        self.spread = spread

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    def _embed(self, text: str) -> list[float]:
        vector = np.zeros(self.dimension, dtype=np.float64)
        for word in _TOKEN_RE.findall(text.lower()):
            if len(word) <= 2:
                continue
            seed = int.from_bytes(hashlib.blake2b(word.encode("utf-8"), digest_size=8).digest(), "big")
            for offset in range(self.spread):
                vector[(seed + offset) % self.dimension] += 1.0
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()


def build_embeddings(config: Settings | None = None) -> Embeddings:
    """Return the embedding provider selected by *config*."""
    config = config or default_settings
    provider = config.embedding_provider

    if provider == "hash":
        return HashEmbeddings(dimension=config.embedding_dimension)

    if provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        kwargs: dict = {
            "model": config.embedding_model,
            "api_key": config.openai_api_key or "EMPTY",
            # EmbeddingClient owns the retry policy.
            "max_retries": 0,
        }
        if config.embedding_model.startswith("text-embedding-3"):
            kwargs["dimensions"] = config.embedding_dimension
        if config.llm_base_url:
            logger.info("Using OpenAI-compatible embedding endpoint: %s", config.llm_base_url)
            kwargs["base_url"] = config.llm_base_url
        return OpenAIEmbeddings(**kwargs)

    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(model_name=config.embedding_model)

    raise ValueError(f"Unsupported embedding provider: {provider!r}")
