"""
Document service.

Runs the processing pipeline for a document and reports its state.

Dependencies: answer_engine.core.document_processing, answer_engine.boundary.db
System role: Document processing orchestration layer
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from answer_engine.boundary.db.CRUD.document_crud import document_crud
from answer_engine.boundary.vdb.vector_index_client import VectorIndexClient
from answer_engine.core.document_processing import DocumentPipeline, PipelineResult
from answer_engine.core.document_processing.tasks import ChunkingTask, EmbeddingBatcher, ExtractionTask
from answer_engine.core.exceptions import DocumentNotFoundError
from answer_engine.models.document import DocumentStatusResponse

logger = logging.getLogger(__name__)


class DocumentService:
    """Document processing entry points."""

    def __init__(
        self,
        db: AsyncSession,
        chunking_task: ChunkingTask,
        embedding_batcher: EmbeddingBatcher,
        vector_index: VectorIndexClient,
        extraction_task: ExtractionTask | None = None,
        excerpt_max_chars: int = 1000,
        lock_timeout_seconds: int = 900,
        tracer=None,
    ) -> None:
        """
        Initialize document service.

        Args:
            db: AsyncSession for database operations
            chunking_task: Text splitter
            embedding_batcher: Batched embedding client
            vector_index: Vector index backend
            extraction_task: Plain-text supplier
            excerpt_max_chars: Chunk text stored with each vector
            lock_timeout_seconds: Age after which a held run is taken over
            tracer: Optional LangfuseTracer
        """
        self.db = db
        self.pipeline = DocumentPipeline(
            session=db,
            chunking_task=chunking_task,
            embedding_batcher=embedding_batcher,
            vector_index=vector_index,
            extraction_task=extraction_task,
            excerpt_max_chars=excerpt_max_chars,
            lock_timeout_seconds=lock_timeout_seconds,
            tracer=tracer,
        )

    async def process_document(self, document_id: str) -> PipelineResult:
        """
        Process a document to the embedded state.

        Starts from any resting state and resumes interrupted runs; failed
        documents are retried from where they failed.

        Args:
            document_id: Document to process

        Returns:
            PipelineResult: Outcome of the run

        Raises:
            DocumentNotFoundError: Unknown document
            DocumentBusyError: A run is already in flight
            InvalidTransitionError: Document already embedded
        """
        logger.info(f"{__name__}:process_document - Processing document", extra={"document_id": document_id})
        return await self.pipeline.process(document_id)

    async def rechunk_document(self, document_id: str) -> PipelineResult:
        """
        Replace a document's chunks and vectors.

        Args:
            document_id: Document to re-chunk

        Returns:
            PipelineResult: Outcome of the run

        Raises:
            DocumentNotFoundError: Unknown document
            DocumentBusyError: A run is already in flight
        """
        logger.info(f"{__name__}:rechunk_document - Re-chunking document", extra={"document_id": document_id})
        return await self.pipeline.process(document_id, rechunk=True)

    async def get_status(self, document_id: str) -> DocumentStatusResponse:
        """
        Current processing state of a document.

        Raises:
            DocumentNotFoundError: Unknown document
        """
        document = await document_crud.get_by_id(self.db, document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return DocumentStatusResponse(
            document_id=document.id,
            owner_id=document.owner_id,
            status=document.status.value,
            total_chunks=document.total_chunks,
            embedded_chunks=document.embedded_chunks,
            error_message=document.error_message,
            updated_at=document.updated_at,
        )
