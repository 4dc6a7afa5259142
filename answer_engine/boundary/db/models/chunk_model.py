"""
Chunk ORM model.

Persisted chunks of a document, in text order. Deleted with the document
and replaced wholesale on re-chunk.

Dependencies: sqlalchemy, answer_engine.boundary.db.base
System role: Chunk persistence for resumable embedding
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from answer_engine.boundary.db.base import Base, TimestampMixin
from answer_engine.models.chunk import Chunk


class ChunkModel(Base, TimestampMixin):
    """
    Chunk ORM model.

    Attributes:
        id: Deterministic chunk id
        document_id: Parent document (cascade delete)
        owner_id: Owning user
        topic_id: Optional topic
        chunk_index: Zero-based position within the document
        text: Chunk text
        start_offset: Inclusive offset into the extracted text
        end_offset: Exclusive offset into the extracted text
        approx_token_count: Heuristic token estimate
        embedded: Whether the chunk's vector is indexed
    """

    __tablename__ = "document_chunks"
    __table_args__ = (UniqueConstraint("document_id", "chunk_index", name="uq_chunk_document_index"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    document_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    topic_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    start_offset: Mapped[int] = mapped_column(Integer, nullable=False)
    end_offset: Mapped[int] = mapped_column(Integer, nullable=False)
    approx_token_count: Mapped[int] = mapped_column(Integer, nullable=False)
    embedded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    document = relationship("DocumentModel", back_populates="chunks")

    def to_chunk(self) -> Chunk:
        """Convert to the immutable domain chunk."""
        return Chunk(
            id=self.id,
            document_id=self.document_id,
            owner_id=self.owner_id,
            topic_id=self.topic_id,
            index=self.chunk_index,
            text=self.text,
            start_offset=self.start_offset,
            end_offset=self.end_offset,
            approx_token_count=self.approx_token_count,
        )

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> "ChunkModel":
        return cls(
            id=chunk.id,
            document_id=chunk.document_id,
            owner_id=chunk.owner_id,
            topic_id=chunk.topic_id,
            chunk_index=chunk.index,
            text=chunk.text,
            start_offset=chunk.start_offset,
            end_offset=chunk.end_offset,
            approx_token_count=chunk.approx_token_count,
            embedded=False,
        )
