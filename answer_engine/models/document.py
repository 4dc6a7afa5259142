"""
Document API schemas.

Dependencies: pydantic
System role: Request/response payloads for document processing routes
"""

from datetime import datetime

from pydantic import BaseModel


class DocumentStatusResponse(BaseModel):
    """Current processing state of a document."""

    document_id: str
    owner_id: str
    status: str
    total_chunks: int | None = None
    embedded_chunks: int | None = None
    error_message: str | None = None
    updated_at: datetime | None = None


class ProcessDocumentResponse(BaseModel):
    """Outcome of a processing run."""

    document_id: str
    status: str
    chunk_count: int
    embedded_count: int = 0
    processing_time_ms: float
    error_message: str | None = None
