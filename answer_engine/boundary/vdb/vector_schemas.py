"""
Vector index schemas.

Pydantic models for vector records, their metadata and search filters.
Metadata is copied from the source chunk, never supplied by callers.

Dependencies: pydantic, answer_engine.models.chunk
System role: Type definitions for vector operations
"""

from typing import Any

from pydantic import BaseModel, Field

from answer_engine.models.chunk import Chunk


class VectorMetadata(BaseModel):
    """
    Metadata attached to each vector.

    owner_id, document_id and topic_id are filterable; excerpt is only
    returned for previews.
    """

    owner_id: str = Field(description="Owning user, mandatory search filter")
    document_id: str = Field(description="Source document")
    chunk_id: str = Field(description="Deterministic chunk identifier")
    chunk_index: int = Field(description="Chunk position in the document")
    topic_id: str | None = Field(default=None, description="Optional topic partition")
    excerpt: str = Field(default="", description="Leading chunk text for previews")
    upserted_at: float = Field(default=0.0, description="Insertion time (epoch ms) for tie-breaking")

    def to_index_metadata(self) -> dict[str, Any]:
        """Metadata dict without null fields (index backends reject nulls)."""
        return self.model_dump(mode="json", exclude_none=True)


class VectorRecord(BaseModel):
    """One vector with identity and metadata."""

    vector_id: str
    values: list[float]
    metadata: VectorMetadata

    @classmethod
    def from_chunk(
        cls,
        chunk: Chunk,
        values: list[float],
        excerpt_max_chars: int = 1000,
        upserted_at: float = 0.0,
    ) -> "VectorRecord":
        """
        Build a record whose scope tags are exactly the chunk's.

        Args:
            chunk: Source chunk
            values: Embedding vector
            excerpt_max_chars: Excerpt length stored as metadata
            upserted_at: Insertion timestamp

        Returns:
            VectorRecord: Record keyed by the chunk's vector id
        """
        return cls(
            vector_id=chunk.vector_id,
            values=values,
            metadata=VectorMetadata(
                owner_id=chunk.owner_id,
                document_id=chunk.document_id,
                chunk_id=chunk.id,
                chunk_index=chunk.index,
                topic_id=chunk.topic_id,
                excerpt=chunk.text[:excerpt_max_chars],
                upserted_at=upserted_at,
            ),
        )


class VectorFilter(BaseModel):
    """Search scope. ``owner_id`` is always applied."""

    owner_id: str
    topic_id: str | None = None
    document_ids: list[str] | None = None

    def matches(self, metadata: VectorMetadata) -> bool:
        if metadata.owner_id != self.owner_id:
            return False
        if self.topic_id is not None and metadata.topic_id != self.topic_id:
            return False
        if self.document_ids is not None and metadata.document_id not in self.document_ids:
            return False
        return True

    def to_s3_filter(self) -> dict[str, Any]:
        """S3 Vectors metadata filter expression."""
        clauses: list[dict[str, Any]] = [{"owner_id": {"$eq": self.owner_id}}]
        if self.topic_id is not None:
            clauses.append({"topic_id": {"$eq": self.topic_id}})
        if self.document_ids is not None:
            clauses.append({"document_id": {"$in": list(self.document_ids)}})
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
