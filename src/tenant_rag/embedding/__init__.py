"""
Embedding — turning text into fixed-length vectors.

Providers are LangChain :class:`~langchain_core.embeddings.Embeddings`
implementations chosen by configuration; :class:`EmbeddingClient` wraps
whichever one is configured with retries, error classification and
dimension checks so the rest of the engine never sees raw provider
failures.
"""

from tenant_rag.embedding.client import EmbeddingClient, classify_provider_error
from tenant_rag.embedding.providers import HashEmbeddings, build_embeddings

__all__ = [
    "EmbeddingClient",
    "HashEmbeddings",
    "build_embeddings",
    "classify_provider_error",
]
