"""
Pipeline result model for document processing.

Represents the outcome of processing a document through the pipeline.

Dependencies: pydantic
System role: Return type for DocumentPipeline.process()
"""

from pydantic import BaseModel, Field


class PipelineResult(BaseModel):
    """Result of document processing pipeline execution."""

    document_id: str = Field(description="Unique document identifier")
    status: str = Field(description="Status the run left the document in")
    chunk_count: int = Field(description="Number of chunks for the document")
    embedded_count: int = Field(default=0, description="Chunks whose vectors are indexed")
    processing_time_ms: float = Field(description="Total processing time in milliseconds")
    error_message: str | None = Field(default=None, description="Failure reason for failed runs")
