"""
Core business logic module.

Contains the exception hierarchy, token estimation, the document
processing pipeline, retrieval, and the streaming answer controller.
"""

from answer_engine.core.exceptions import (
    AnswerEngineException,
    DocumentBusyError,
    DocumentNotFoundError,
    DocumentProcessingError,
    EmbeddingError,
    ExtractionError,
    IndexUnavailableError,
    InvalidInputError,
    InvalidSessionStateError,
    InvalidTransitionError,
    ScopeViolationError,
    SessionNotFoundError,
    UpstreamError,
    UpstreamPermanentError,
    UpstreamTransientError,
    UpstreamUnavailableError,
    VectorStoreError,
)

__all__ = [
    "AnswerEngineException",
    "InvalidInputError",
    "UpstreamError",
    "UpstreamTransientError",
    "UpstreamPermanentError",
    "UpstreamUnavailableError",
    "VectorStoreError",
    "IndexUnavailableError",
    "ScopeViolationError",
    "DocumentProcessingError",
    "ExtractionError",
    "EmbeddingError",
    "DocumentNotFoundError",
    "DocumentBusyError",
    "InvalidTransitionError",
    "SessionNotFoundError",
    "InvalidSessionStateError",
]
