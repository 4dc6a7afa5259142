"""
LLM provider configuration settings.

Selects the completion/embedding backend once at construction time.

Dependencies: pydantic, pydantic_settings
System role: Provider selection and model parameters
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class LLMSettings(BaseSettings):
    """Completion and embedding provider configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LLM_",
        case_sensitive=False,
        extra="ignore",
    )

    provider: Literal["google", "openai"] = Field(
        default="google",
        description="Backend for completions and embeddings: 'google' (Gemini) or 'openai'",
    )
    model: str = Field(default="gemini-2.5-flash", description="Chat completion model id")
    embedding_model: str = Field(
        default="models/gemini-embedding-001",
        description="Embedding model id",
    )
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="Completion temperature")
    timeout_seconds: float = Field(default=60.0, gt=0, description="Timeout per completion call")
    google_api_key: str | None = Field(default=None, description="Google AI Studio API key")
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
