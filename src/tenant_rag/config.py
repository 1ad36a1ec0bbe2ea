"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Embedding provider
    embedding_provider: Literal["hash", "openai", "huggingface"] = Field(
        default="hash",
        description=(
            "Which embedding backend to use. 'hash' is deterministic and "
            "offline (tests, local runs); 'openai' and 'huggingface' call real models."
        ),
    )
    embedding_model: str = Field(default="text-embedding-3-small", description="Embedding model identifier")
    embedding_dimension: int = Field(default=1536, gt=0, description="Vector length every provider must return")
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for local vLLM)")

    # Retry policy
    embedding_max_attempts: int = Field(default=3, ge=1)
    embedding_backoff_base: float = Field(default=1.0, ge=0.0, description="Seconds before the first retry")
    embedding_backoff_max: float = Field(default=5.0, ge=0.0, description="Upper bound on a single backoff")

    # Ingestion
    chunk_max_words: int = Field(default=800, gt=0)
    ingestion_batch_size: int = Field(default=50, gt=0)
    ingestion_batch_pause: float = Field(default=0.1, ge=0.0, description="Pause between batches, in seconds")
    ingestion_max_workers: int = Field(default=4, gt=0)

    # Retrieval
    search_limit: int = Field(default=5, gt=0)
    search_min_similarity: float = Field(default=0.1, ge=-1.0, le=1.0)
    high_quality_threshold: float = Field(default=0.5, ge=-1.0, le=1.0)

    # Grounding
    answer_generator: Literal["extractive", "llm"] = "extractive"
    llm_model_name: str = Field(default="gpt-4o-mini", description="Chat model used by the 'llm' answer generator")
    llm_base_url: str = Field(
        default="",
        description="OpenAI-compatible base URL. Leave empty to use OpenAI cloud.",
    )
    confidence_grounded: float = Field(default=0.9, ge=0.0, le=1.0)
    confidence_conversational: float = Field(default=0.8, ge=0.0, le=1.0)
    confidence_not_found: float = Field(default=0.3, ge=0.0, le=1.0)
    max_query_length: int = Field(default=1000, gt=0)

    # Tenant quotas
    default_max_documents: int = Field(default=10, ge=0)
    default_max_queries: int = Field(default=1000, ge=0)
    quota_period_days: int = Field(default=30, gt=0)

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton: import `settings` wherever needed.
settings = Settings()
