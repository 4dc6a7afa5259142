"""
Dependency injection container.

Factory functions for FastAPI dependencies. Long-lived clients (provider,
vector index, web search, answer controller) are built once and shared.

Dependencies: answer_engine.configs, answer_engine.application, answer_engine.boundary
System role: DI container for service injection
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from answer_engine.application.services import AnswerService, DocumentService
from answer_engine.boundary.db import get_async_db
from answer_engine.configs import Settings, get_settings


class ServiceCache:
    """Container for cached service instances."""

    def __init__(self):
        self._provider = None
        self._vector_index = None
        self._web_search = None
        self._embedding_batcher = None
        self._tracer = None
        self._answer_controller = None

    @property
    def provider(self):
        """Get cached LLM provider."""
        if self._provider is None:
            from answer_engine.boundary.llm import get_llm_provider
            self._provider = get_llm_provider()
        return self._provider

    @property
    def vector_index(self):
        """Get cached vector index."""
        if self._vector_index is None:
            from answer_engine.boundary.vdb import get_vector_index
            self._vector_index = get_vector_index()
        return self._vector_index

    @property
    def web_search(self):
        """Get cached web search client."""
        if self._web_search is None:
            from answer_engine.boundary.web import get_web_search_client
            self._web_search = get_web_search_client()
        return self._web_search

    @property
    def tracer(self):
        """Get Langfuse tracer singleton."""
        if self._tracer is None:
            from answer_engine.observability.langfuse_tracer import LangfuseTracer
            self._tracer = LangfuseTracer()
        return self._tracer

    @property
    def embedding_batcher(self):
        """Get cached embedding batcher."""
        if self._embedding_batcher is None:
            from answer_engine.core.document_processing.tasks import EmbeddingBatcher
            self._embedding_batcher = EmbeddingBatcher.from_settings(self.provider, get_settings().embedding)
        return self._embedding_batcher

    @property
    def answer_controller(self):
        """Get cached answer controller (owns the live session registry)."""
        if self._answer_controller is None:
            from answer_engine.core.answering import AnswerController
            from answer_engine.core.retrieval import RetrievalEngine

            settings = get_settings()
            retrieval_engine = RetrievalEngine.from_settings(
                self.embedding_batcher,
                self.vector_index,
                self.web_search,
                settings.retrieval,
                tracer=self.tracer,
            )
            self._answer_controller = AnswerController.from_settings(
                self.provider,
                retrieval_engine,
                settings.streaming,
                tracer=self.tracer,
            )
        return self._answer_controller

    def clear(self) -> None:
        """Clear all cached instances."""
        self._provider = None
        self._vector_index = None
        self._web_search = None
        self._embedding_batcher = None
        self._tracer = None
        self._answer_controller = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_document_service(db: AsyncSession = Depends(get_async_db)) -> DocumentService:
    """
    Get document service instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        DocumentService: Document service bound to the request session
    """
    from answer_engine.core.document_processing.tasks import ChunkingTask

    settings = get_settings()
    cache = get_service_cache()
    return DocumentService(
        db=db,
        chunking_task=ChunkingTask(settings.chunking.max_size, settings.chunking.overlap_size),
        embedding_batcher=cache.embedding_batcher,
        vector_index=cache.vector_index,
        excerpt_max_chars=settings.vector_index.excerpt_max_chars,
        lock_timeout_seconds=settings.pipeline.lock_timeout_seconds,
        tracer=cache.tracer,
    )


def get_answer_service() -> AnswerService:
    """
    Get answer service instance.

    Returns:
        AnswerService: Service over the shared answer controller
    """
    return AnswerService(get_service_cache().answer_controller)
