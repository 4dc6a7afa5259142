"""
Shared pydantic schemas.

Chunks, retrieval results, citations, streaming events and API payloads.
"""

from answer_engine.models.chunk import Chunk
from answer_engine.models.citation import Citation
from answer_engine.models.retrieval import (
    MergedResults,
    RetrievalOptions,
    RetrievalResult,
    RetrievalScope,
    SourceType,
)
from answer_engine.models.streaming import StreamEvent, StreamEventType

__all__ = [
    "Chunk",
    "Citation",
    "MergedResults",
    "RetrievalOptions",
    "RetrievalResult",
    "RetrievalScope",
    "SourceType",
    "StreamEvent",
    "StreamEventType",
]
