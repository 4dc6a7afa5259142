"""
Web search configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Web search provider connection and result cache
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from answer_engine.configs.base import BaseSettings


class WebSearchSettings(BaseSettings):
    """Tavily web search configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WEB_SEARCH_",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="Tavily API key")
    base_url: str = Field(default="https://api.tavily.com", description="Tavily API base URL")
    timeout_seconds: float = Field(default=15.0, gt=0, description="HTTP timeout per search")
    max_attempts: int = Field(default=3, ge=1, description="Attempts for transient search failures")
    cache_ttl_seconds: int = Field(default=3600, ge=0, description="Search result cache lifetime")
    cache_max_entries: int = Field(default=1000, ge=1, description="Maximum cached queries")
    max_query_length: int = Field(default=500, ge=1, description="Queries are truncated to this length")
