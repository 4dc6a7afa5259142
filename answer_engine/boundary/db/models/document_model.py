"""
Document ORM model.

Holds the single authoritative processing state of a document plus the
extracted text supplied by the external document store.

Dependencies: sqlalchemy, answer_engine.boundary.db.base
System role: Document processing state persistence
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from answer_engine.boundary.db.base import Base, TimestampMixin


class DocumentStatus(str, enum.Enum):
    """
    Document processing lifecycle states.

    STORED: Raw document stored, nothing processed yet
    EXTRACTING: Plain text is being obtained
    EXTRACTED: Text available, awaiting chunking
    EXTRACTION_FAILED: Text could not be obtained; error_message has details
    CHUNKING: Text is being split into chunks
    EMBEDDING: Chunks are being embedded and indexed
    EMBEDDED: Every chunk is searchable
    EMBEDDING_FAILED: Chunking, embedding or indexing failed; error_message has details
    """

    STORED = "stored"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    EXTRACTION_FAILED = "extraction_failed"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    EMBEDDED = "embedded"
    EMBEDDING_FAILED = "embedding_failed"


class DocumentModel(Base, TimestampMixin):
    """
    Document ORM model tracking the processing pipeline.

    Attributes:
        id: Document ID assigned by the document store
        owner_id: Owning user
        topic_id: Optional topic partition
        name: Original filename
        status: Current processing state
        extracted_text: Plain text supplied by the document store
        error_message: Failure reason when in a failed state (2048 char limit)
        total_chunks: Chunks produced by the last chunking run
        embedded_chunks: Chunks whose vectors are indexed
        processing_run_id: Run currently holding the document, None when idle
        processing_started_at: When the current run claimed the document
    """

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    topic_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Original filename",
    )

    status: Mapped[DocumentStatus] = mapped_column(
        Enum(
            DocumentStatus,
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=DocumentStatus.STORED,
    )

    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    error_message: Mapped[str | None] = mapped_column(
        String(2048),
        nullable=True,
        doc="Error details if processing failed",
    )

    total_chunks: Mapped[int | None] = mapped_column(Integer, nullable=True)

    embedded_chunks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    processing_run_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    processing_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    chunks = relationship(
        "ChunkModel",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
