"""
Retrieval engine configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Default retrieval options and relaxed-threshold tuning
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class RetrievalSettings(BaseSettings):
    """Default options for hybrid retrieval."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RETRIEVAL_",
        case_sensitive=False,
        extra="ignore",
    )

    max_doc_chunks: int = Field(default=5, ge=1, description="Document results returned")
    min_score: float = Field(default=0.5, ge=0.0, le=1.0, description="Minimum similarity for document hits")
    relax_step: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Amount subtracted from min_score for the single relaxed retry",
    )
    max_web_results: int = Field(default=5, ge=0, description="Web results returned")
    timeout_seconds: float = Field(default=20.0, gt=0, description="Timeout per retrieval source")
