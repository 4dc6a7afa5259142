"""
Vector index client interface.

Shared upsert/search/delete contract. Search always carries the owner
filter, re-checks every returned vector against it, and orders results
by score with newer vectors first on ties.

Dependencies: answer_engine.boundary.vdb.vector_schemas, answer_engine.models.retrieval
System role: Contract-critical seam between the pipeline and any vector backend
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from answer_engine.boundary.vdb.vector_schemas import VectorFilter, VectorMetadata, VectorRecord
from answer_engine.core.exceptions import InvalidInputError, ScopeViolationError
from answer_engine.models.retrieval import RetrievalResult, SourceType

logger = logging.getLogger(__name__)


def document_citation_ref(document_id: str, chunk_id: str) -> str:
    """Normalized citation reference of a document chunk."""
    return f"doc:{document_id}:{chunk_id}"


class VectorIndexClient(ABC):
    """Base class for vector index backends."""

    @abstractmethod
    async def _upsert(self, records: Sequence[VectorRecord]) -> None:
        """Write records, replacing any with the same vector id."""

    @abstractmethod
    async def _query(
        self,
        query_vector: list[float],
        vector_filter: VectorFilter,
        top_k: int,
    ) -> list[tuple[VectorMetadata, float]]:
        """Return up to top_k (metadata, similarity) pairs under the filter."""

    @abstractmethod
    async def _delete(self, vector_ids: Sequence[str]) -> None:
        """Remove vectors by id; unknown ids are ignored."""

    async def upsert(self, records: Sequence[VectorRecord]) -> int:
        """
        Idempotently write vectors keyed by chunk identity.

        Args:
            records: Vector records built from chunks

        Returns:
            int: Number of records written

        Raises:
            InvalidInputError: A record without owner scope
            IndexUnavailableError: Backend unreachable
        """
        if not records:
            return 0
        for record in records:
            if not record.metadata.owner_id:
                raise InvalidInputError("Vector metadata requires owner_id", field="owner_id")
        await self._upsert(records)
        logger.info(
            f"{__name__}:upsert - Upserted {len(records)} vectors",
            extra={"document_id": records[0].metadata.document_id},
        )
        return len(records)

    async def search(
        self,
        query_vector: list[float],
        vector_filter: VectorFilter,
        top_k: int = 5,
        min_score: float = 0.0,
    ) -> list[RetrievalResult]:
        """
        Filtered similarity search.

        Args:
            query_vector: Query embedding
            vector_filter: Scope; owner_id is mandatory
            top_k: Maximum results
            min_score: Minimum similarity

        Returns:
            list[RetrievalResult]: Score-descending, newer first on ties; empty when nothing matches

        Raises:
            InvalidInputError: Missing owner_id or empty query vector
            IndexUnavailableError: Backend unreachable
        """
        if not vector_filter.owner_id:
            raise InvalidInputError("Vector search requires owner_id", field="owner_id")
        if not query_vector:
            raise InvalidInputError("Query vector is empty", field="query_vector")
        if top_k <= 0 or vector_filter.document_ids == []:
            return []

        matches = await self._query(query_vector, vector_filter, top_k)

        kept: list[tuple[VectorMetadata, float]] = []
        for metadata, score in matches:
            if metadata.owner_id != vector_filter.owner_id:
                violation = ScopeViolationError(
                    requested_owner_id=vector_filter.owner_id,
                    result_owner_id=metadata.owner_id,
                    details={"document_id": metadata.document_id, "chunk_id": metadata.chunk_id},
                )
                logger.error(
                    f"{__name__}:search - Dropped result outside owner scope",
                    extra={"violation": str(violation)},
                )
                continue
            if not vector_filter.matches(metadata) or score < min_score:
                continue
            kept.append((metadata, score))

        kept.sort(key=lambda item: (-item[1], -item[0].upserted_at))
        return [
            RetrievalResult(
                source_type=SourceType.DOCUMENT,
                score=score,
                excerpt=metadata.excerpt,
                citation_ref=document_citation_ref(metadata.document_id, metadata.chunk_id),
                owner_scope_ok=True,
                owner_id=metadata.owner_id,
                document_id=metadata.document_id,
                chunk_id=metadata.chunk_id,
                chunk_index=metadata.chunk_index,
                topic_id=metadata.topic_id,
                upserted_at=metadata.upserted_at,
            )
            for metadata, score in kept[:top_k]
        ]

    async def delete(self, vector_ids: Sequence[str]) -> None:
        """
        Delete vectors by id.

        Args:
            vector_ids: Vector ids to remove

        Raises:
            IndexUnavailableError: Backend unreachable
        """
        if not vector_ids:
            return
        await self._delete(vector_ids)
        logger.info(f"{__name__}:delete - Deleted {len(vector_ids)} vectors")
