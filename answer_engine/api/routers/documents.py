"""
Document processing API endpoints.

Routes: POST /documents/{id}/process, POST /documents/{id}/rechunk, GET /documents/{id}/status

Dependencies: answer_engine.application.services.document_service, answer_engine.models
System role: Document HTTP API
"""

import logging

from fastapi import APIRouter, Depends

from answer_engine.api.deps import get_document_service
from answer_engine.application.services.document_service import DocumentService
from answer_engine.core.document_processing import PipelineResult
from answer_engine.models.document import DocumentStatusResponse, ProcessDocumentResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _to_response(result: PipelineResult) -> ProcessDocumentResponse:
    return ProcessDocumentResponse(
        document_id=result.document_id,
        status=result.status,
        chunk_count=result.chunk_count,
        embedded_count=result.embedded_count,
        processing_time_ms=result.processing_time_ms,
        error_message=result.error_message,
    )


@router.post("/{document_id}/process", response_model=ProcessDocumentResponse)
async def process_document(
    document_id: str,
    document_service: DocumentService = Depends(get_document_service),
) -> ProcessDocumentResponse:
    """
    Run the processing pipeline for a stored document.

    Failed runs are reported in the response body with the failed status
    and the persisted error message.
    """
    result = await document_service.process_document(document_id)
    return _to_response(result)


@router.post("/{document_id}/rechunk", response_model=ProcessDocumentResponse)
async def rechunk_document(
    document_id: str,
    document_service: DocumentService = Depends(get_document_service),
) -> ProcessDocumentResponse:
    """Replace a document's chunks and vectors."""
    result = await document_service.rechunk_document(document_id)
    return _to_response(result)


@router.get("/{document_id}/status", response_model=DocumentStatusResponse)
async def get_document_status(
    document_id: str,
    document_service: DocumentService = Depends(get_document_service),
) -> DocumentStatusResponse:
    """Current processing state and progress of a document."""
    return await document_service.get_status(document_id)
