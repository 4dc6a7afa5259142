"""
Chunking configuration settings.

Sizes are expressed in estimated tokens (see core.token_count).

Dependencies: pydantic, pydantic_settings
System role: Chunker defaults for the document pipeline
"""

from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class ChunkingSettings(BaseSettings):
    """Chunk size and overlap defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHUNKING_",
        case_sensitive=False,
        extra="ignore",
    )

    max_size: int = Field(default=800, ge=1, description="Maximum estimated tokens per chunk")
    overlap_size: int = Field(
        default=100,
        ge=0,
        description="Trailing tokens of the previous chunk repeated at the start of the next",
    )

    @model_validator(mode="after")
    def _overlap_below_max(self) -> "ChunkingSettings":
        if self.overlap_size >= self.max_size:
            raise ValueError("overlap_size must be strictly smaller than max_size")
        return self
