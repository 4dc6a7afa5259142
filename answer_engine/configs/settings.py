"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from answer_engine.configs.base import BaseSettings
from answer_engine.configs.chunking import ChunkingSettings
from answer_engine.configs.database import DatabaseSettings
from answer_engine.configs.embedding import EmbeddingSettings
from answer_engine.configs.llm import LLMSettings
from answer_engine.configs.observability import ObservabilitySettings
from answer_engine.configs.pipeline import PipelineSettings
from answer_engine.configs.retrieval import RetrievalSettings
from answer_engine.configs.streaming import StreamingSettings
from answer_engine.configs.vector_store import VectorIndexSettings
from answer_engine.configs.web_search import WebSearchSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    vector_index: VectorIndexSettings = Field(default_factory=VectorIndexSettings)
    web_search: WebSearchSettings = Field(default_factory=WebSearchSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    streaming: StreamingSettings = Field(default_factory=StreamingSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from answer_engine.configs import get_settings
        settings = get_settings()
    """
    return Settings()
