"""
Vector index configuration settings.

Memory backend for local development and tests, S3 Vectors for production.

Dependencies: pydantic, pydantic_settings
System role: Vector index configuration for the write and read paths
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class VectorIndexSettings(BaseSettings):
    """Vector index configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VECTOR_INDEX_",
        case_sensitive=False,
        extra="ignore",
    )

    backend: Literal["memory", "s3vectors"] = Field(
        default="memory",
        description="Index backend: 'memory' for local dev, 's3vectors' for production",
    )
    bucket_name: str = Field(default="answer-engine-vectors", description="S3 Vectors bucket name")
    index_name: str = Field(default="chunks", description="S3 Vectors index name")
    aws_region: str = Field(default="us-east-1", description="AWS region for S3 Vectors")
    upsert_batch_size: int = Field(default=100, ge=1, description="Vectors per upsert request")
    excerpt_max_chars: int = Field(default=1000, ge=1, description="Excerpt length stored as metadata")
    max_attempts: int = Field(default=3, ge=1, description="Attempts for throttled index calls")
