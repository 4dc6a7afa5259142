"""
Embedding batcher configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Batch size, retry and concurrency limits for embedding calls
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class EmbeddingSettings(BaseSettings):
    """Embedding batching and retry configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EMBEDDING_",
        case_sensitive=False,
        extra="ignore",
    )

    batch_size: int = Field(default=100, ge=1, description="Texts per upstream embedding call")
    max_retries: int = Field(default=3, ge=0, description="Retries for transient failures per batch")
    base_delay_seconds: float = Field(default=0.5, ge=0, description="First backoff delay, doubled per retry")
    max_concurrency: int = Field(default=4, ge=1, description="Batches in flight at once")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout per upstream embedding call")
    dimensions: int = Field(default=768, ge=1, description="Output embedding dimensionality")
