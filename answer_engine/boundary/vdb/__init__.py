"""
Vector index boundary.

Exports: VectorIndexClient, InMemoryVectorIndex, S3VectorsIndex, get_vector_index
"""

from answer_engine.boundary.vdb.memory_index import InMemoryVectorIndex
from answer_engine.boundary.vdb.s3_vectors_index import S3VectorsIndex
from answer_engine.boundary.vdb.vector_index_client import VectorIndexClient
from answer_engine.boundary.vdb.vector_index_factory import get_vector_index
from answer_engine.boundary.vdb.vector_schemas import VectorFilter, VectorMetadata, VectorRecord

__all__ = [
    "VectorIndexClient",
    "InMemoryVectorIndex",
    "S3VectorsIndex",
    "get_vector_index",
    "VectorFilter",
    "VectorMetadata",
    "VectorRecord",
]
