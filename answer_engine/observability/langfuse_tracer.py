"""
Langfuse tracing integration.

Singleton tracer for Langfuse observability operations. Inactive unless
both Langfuse keys are configured; every trace call is then a no-op.

Dependencies: langfuse, answer_engine.configs, answer_engine.observability.correlation
System role: Distributed tracing for ingestion, retrieval and answers
"""

import logging
from typing import Any

from langfuse import Langfuse
from langfuse.callback import CallbackHandler

from answer_engine.configs import get_settings
from answer_engine.observability.correlation import get_correlation_id

logger = logging.getLogger(__name__)


class LangfuseTracer:
    """Langfuse tracer singleton."""

    _instance: "LangfuseTracer | None" = None
    _client: Langfuse | None = None

    def __new__(cls) -> "LangfuseTracer":
        """Singleton pattern for tracer instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self) -> None:
        """Initialize Langfuse client with configuration."""
        obs_settings = get_settings().observability
        if not obs_settings.tracing_active:
            logger.info("Langfuse keys not configured, tracing inactive")
            self._client = None
            return

        self._client = Langfuse(
            public_key=obs_settings.public_key,
            secret_key=obs_settings.secret_key,
            host=obs_settings.host,
        )
        logger.info("Langfuse tracing active", extra={"host": obs_settings.host})

    @property
    def enabled(self) -> bool:
        """Whether traces are sent."""
        return self._client is not None

    def _trace(self, name: str, **kwargs: Any) -> None:
        if self._client is None:
            return
        metadata = kwargs.pop("metadata", {}) or {}
        metadata["correlation_id"] = get_correlation_id()
        try:
            self._client.trace(name=name, metadata=metadata, **kwargs)
        except Exception as e:
            logger.warning(
                f"{__name__}:_trace - Langfuse trace failed",
                extra={"trace_name": name, "error_type": type(e).__name__, "error_msg": str(e)},
            )

    def trace_ingestion(self, document_id: str, owner_id: str, chunks: int, duration: float) -> None:
        """
        Trace document ingestion.

        Args:
            document_id: Document ID
            owner_id: Owning user
            chunks: Number of chunks processed
            duration: Processing duration in seconds
        """
        self._trace(
            "document-ingestion",
            user_id=owner_id,
            input={"document_id": document_id},
            output={"chunks": chunks},
            metadata={"duration_s": round(duration, 3)},
        )

    def trace_retrieval(
        self,
        query: str,
        owner_id: str,
        document_results: int,
        web_results: int,
        latency: float,
    ) -> None:
        """
        Trace retrieval operation.

        Args:
            query: Query text
            owner_id: Requesting user
            document_results: Number of document results
            web_results: Number of web results
            latency: Retrieval latency in milliseconds
        """
        self._trace(
            "retrieval",
            user_id=owner_id,
            input={"query": query},
            output={"document_results": document_results, "web_results": web_results},
            metadata={"latency_ms": round(latency, 2)},
        )

    def trace_answer(
        self,
        session_id: str,
        owner_id: str,
        question: str,
        answer: str,
        state: str,
        retry_count: int,
    ) -> None:
        """
        Trace a finished answer session.

        Args:
            session_id: Stream session ID
            owner_id: Requesting user
            question: User question
            answer: Accumulated answer text
            state: Terminal session state
            retry_count: Upstream retries spent
        """
        self._trace(
            "answer",
            session_id=session_id,
            user_id=owner_id,
            input={"question": question},
            output={"answer": answer},
            metadata={"state": state, "retry_count": retry_count},
        )


def get_langchain_callbacks() -> list:
    """
    LangChain callback handlers for completion tracing.

    Returns:
        list: A Langfuse CallbackHandler when tracing is active, else empty
    """
    obs_settings = get_settings().observability
    if not obs_settings.tracing_active:
        return []
    return [
        CallbackHandler(
            public_key=obs_settings.public_key,
            secret_key=obs_settings.secret_key,
            host=obs_settings.host,
        )
    ]
