"""
Document pipeline configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Processing-run lock lifetime for the document state machine
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class PipelineSettings(BaseSettings):
    """Document processing run configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PIPELINE_",
        case_sensitive=False,
        extra="ignore",
    )

    lock_timeout_seconds: int = Field(
        default=900,
        ge=1,
        description="A run holding a document longer than this without progress may be taken over",
    )
