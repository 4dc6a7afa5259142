"""
Observability configuration settings.

Settings for Langfuse tracing.

Dependencies: pydantic_settings
System role: Observability configuration for tracing and logging
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class ObservabilitySettings(BaseSettings):
    """Observability configuration for Langfuse."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LANGFUSE_",
        case_sensitive=False,
        extra="ignore",
    )

    public_key: str | None = Field(default=None, description="Langfuse public key for tracing")
    secret_key: str | None = Field(default=None, description="Langfuse secret key for tracing")
    host: str = Field(default="https://cloud.langfuse.com", description="Langfuse server host URL")
    enable_tracing: bool = Field(default=True, description="Enable Langfuse tracing when keys are set")

    @property
    def tracing_active(self) -> bool:
        """Tracing runs only when enabled and both keys are configured."""
        return bool(self.enable_tracing and self.public_key and self.secret_key)
