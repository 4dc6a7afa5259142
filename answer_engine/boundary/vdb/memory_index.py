"""
In-memory vector index for local development and tests.

Cosine similarity over numpy arrays with the same filter semantics as the
production backend.

Dependencies: numpy
System role: Development vector index
"""

import asyncio
import itertools
from collections.abc import Sequence

import numpy as np

from answer_engine.boundary.vdb.vector_index_client import VectorIndexClient
from answer_engine.boundary.vdb.vector_schemas import VectorFilter, VectorMetadata, VectorRecord


class InMemoryVectorIndex(VectorIndexClient):
    """Process-local vector index."""

    def __init__(self) -> None:
        self._vectors: dict[str, tuple[np.ndarray, VectorMetadata]] = {}
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._vectors)

    async def _upsert(self, records: Sequence[VectorRecord]) -> None:
        async with self._lock:
            for record in records:
                metadata = record.metadata.model_copy(update={"upserted_at": float(next(self._sequence))})
                self._vectors[record.vector_id] = (np.asarray(record.values, dtype=np.float32), metadata)

    async def _query(
        self,
        query_vector: list[float],
        vector_filter: VectorFilter,
        top_k: int,
    ) -> list[tuple[VectorMetadata, float]]:
        query = np.asarray(query_vector, dtype=np.float32)
        query_norm = float(np.linalg.norm(query))
        scored = []
        for values, metadata in self._vectors.values():
            if not vector_filter.matches(metadata):
                continue
            norm = float(np.linalg.norm(values)) * query_norm
            score = float(np.dot(values, query) / norm) if norm else 0.0
            scored.append((metadata, score))
        scored.sort(key=lambda item: (-item[1], -item[0].upserted_at))
        return scored[:top_k]

    async def _delete(self, vector_ids: Sequence[str]) -> None:
        async with self._lock:
            for vector_id in vector_ids:
                self._vectors.pop(vector_id, None)
