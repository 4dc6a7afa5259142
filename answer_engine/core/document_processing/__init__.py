"""
Document processing pipeline for ingestion.

Extraction, chunking, embedding and indexing behind a compare-and-swap
state machine.

Dependencies: sqlalchemy, tenacity, langchain providers (via boundary.llm)
System role: Document ingestion pipeline entrypoint
"""

from .entrypoint import DocumentPipeline
from .models import PipelineResult
from .state_machine import ALLOWED_TRANSITIONS, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "DocumentPipeline",
    "PipelineResult",
    "can_transition",
]
