"""
Task modules for document processing pipeline.

Exports: ExtractionTask, ChunkingTask, EmbeddingBatcher
"""

from .chunking_task import ChunkingTask, split_text
from .embedding_task import EmbeddingBatcher, EmbeddingBatchResult
from .extraction_task import ExtractionTask, StoredTextSource, TextSource

__all__ = [
    "ChunkingTask",
    "EmbeddingBatcher",
    "EmbeddingBatchResult",
    "ExtractionTask",
    "StoredTextSource",
    "TextSource",
    "split_text",
]
