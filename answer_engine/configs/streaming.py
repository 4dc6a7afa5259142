"""
Streaming answer configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Answer controller retry budget, input limits and session lifetime
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class StreamingSettings(BaseSettings):
    """Answer streaming configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STREAMING_",
        case_sensitive=False,
        extra="ignore",
    )

    max_retries: int = Field(default=3, ge=0, description="Streaming retries for transient failures")
    base_delay_seconds: float = Field(default=0.5, ge=0, description="First retry delay, doubled per retry")
    idle_timeout_seconds: float = Field(default=300.0, gt=0, description="Idle sessions are cancelled after this")
    max_question_length: int = Field(default=2000, ge=1, description="Maximum question length in characters")
    max_history_messages: int = Field(default=10, ge=0, description="Conversation turns included in the prompt")
    max_context_tokens: int = Field(default=6000, ge=1, description="Estimated token budget for grounding excerpts")
    follow_ups_enabled: bool = Field(default=True, description="Generate follow-up questions after an answer")
    max_follow_ups: int = Field(default=4, ge=0, description="Maximum follow-up questions returned")
