"""
Vector index factory for selecting between memory (dev) and S3 Vectors (prod).

Depends on VECTOR_INDEX_BACKEND environment variable.
Provides consistent interface regardless of underlying implementation.

Dependencies: answer_engine.boundary.vdb, answer_engine.configs
System role: Vector index instantiation and selection
"""

import logging
from functools import lru_cache

from answer_engine.boundary.vdb.memory_index import InMemoryVectorIndex
from answer_engine.boundary.vdb.s3_vectors_index import S3VectorsIndex
from answer_engine.boundary.vdb.vector_index_client import VectorIndexClient
from answer_engine.configs import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_vector_index() -> VectorIndexClient:
    """
    Get the process-wide vector index selected by configuration.

    Returns:
        VectorIndexClient: Memory or S3 Vectors index

    Raises:
        ValueError: If VECTOR_INDEX_BACKEND is invalid
    """
    config = get_settings().vector_index
    backend = config.backend.lower()

    if backend == "memory":
        logger.info(f"{__name__}:get_vector_index - Creating in-memory index (local dev mode)")
        return InMemoryVectorIndex()

    if backend == "s3vectors":
        logger.info(f"{__name__}:get_vector_index - Creating S3 Vectors index (production mode)")
        return S3VectorsIndex(
            bucket_name=config.bucket_name,
            index_name=config.index_name,
            region=config.aws_region,
            batch_size=config.upsert_batch_size,
            max_attempts=config.max_attempts,
        )

    raise ValueError(
        f"Invalid VECTOR_INDEX_BACKEND: {backend}. Must be 'memory' (dev) or 's3vectors' (production)."
    )
