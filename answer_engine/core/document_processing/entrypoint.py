"""
Document pipeline orchestrator.

Drives one document through extraction, chunking and embedding. A run
first claims the document with a compare-and-swap update, so at most one
run works on a document at a time; every status change afterwards is a
compare-and-swap keyed on that run and is committed before the next stage
starts. A run that stops mid-way leaves enough state behind (persisted
chunks and their embedded flags) for the next run to resume.

Dependencies: answer_engine.boundary.db, answer_engine.boundary.vdb, task modules
System role: Pipeline orchestration (coordinates only)
"""

import logging
import time
import uuid
from collections.abc import Callable
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from answer_engine.boundary.db.base import utcnow
from answer_engine.boundary.db.CRUD.chunk_crud import chunk_crud
from answer_engine.boundary.db.CRUD.document_crud import document_crud
from answer_engine.boundary.db.models.document_model import DocumentModel, DocumentStatus
from answer_engine.boundary.vdb.vector_index_client import VectorIndexClient
from answer_engine.boundary.vdb.vector_schemas import VectorRecord
from answer_engine.core.document_processing.models import PipelineResult
from answer_engine.core.document_processing.state_machine import (
    IN_PROGRESS_STATUSES,
    STARTABLE_STATUSES,
    can_transition,
    ensure_transition,
)
from answer_engine.core.document_processing.tasks import ChunkingTask, EmbeddingBatcher, ExtractionTask
from answer_engine.core.exceptions import (
    AnswerEngineException,
    DocumentBusyError,
    DocumentNotFoundError,
    EmbeddingError,
    ExtractionError,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

EXTRACTION_ENTRY = frozenset(
    {DocumentStatus.STORED, DocumentStatus.EXTRACTION_FAILED, DocumentStatus.EXTRACTING}
)


class DocumentPipeline:
    """Orchestrate document ingestion: extract -> chunk -> embed+index."""

    def __init__(
        self,
        session: AsyncSession,
        chunking_task: ChunkingTask,
        embedding_batcher: EmbeddingBatcher,
        vector_index: VectorIndexClient,
        extraction_task: ExtractionTask | None = None,
        excerpt_max_chars: int = 1000,
        lock_timeout_seconds: int = 900,
        tracer=None,
    ) -> None:
        """
        Initialize pipeline with its collaborators.

        Args:
            session: Async database session owned by the caller
            chunking_task: Text splitter
            embedding_batcher: Batched embedding client
            vector_index: Vector index the chunks are written to
            extraction_task: Plain-text supplier (reads the stored text by default)
            excerpt_max_chars: Chunk text stored with each vector for previews
            lock_timeout_seconds: Age after which a held claim counts as abandoned
            tracer: Optional LangfuseTracer
        """
        self._session = session
        self._chunking_task = chunking_task
        self._embedding_batcher = embedding_batcher
        self._vector_index = vector_index
        self._extraction_task = extraction_task or ExtractionTask()
        self._excerpt_max_chars = excerpt_max_chars
        self._lock_timeout = timedelta(seconds=lock_timeout_seconds)
        self._tracer = tracer
        self._status: DocumentStatus | None = None

    async def process(
        self,
        document_id: str,
        rechunk: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> PipelineResult:
        """
        Process a document up to the embedded state.

        Resumes from whatever stage the document is in: a document whose
        chunks exist but are not all indexed only embeds the missing ones.
        Expected failures (no text, upstream or index errors) are written to
        the document and returned as a failed result; anything else is
        written and then re-raised.

        Args:
            document_id: Document to process
            rechunk: Discard existing chunks and vectors and chunk again
            on_progress: Called as ``(embedded_chunks, total_chunks)`` after each window

        Returns:
            PipelineResult: Final status of this run

        Raises:
            DocumentNotFoundError: Unknown document
            DocumentBusyError: Another run holds the document
            InvalidTransitionError: Document already embedded and rechunk not requested
        """
        start_time = time.perf_counter()
        document = await self._claim(document_id, rechunk)
        run_id = document.processing_run_id
        status = self._status = document.status

        logger.info(
            f"{__name__}:process - Run claimed document",
            extra={"document_id": document_id, "run_id": run_id, "status": status.value, "rechunk": rechunk},
        )

        text: str | None = None
        if status in EXTRACTION_ENTRY:
            status = await self._move(document_id, run_id, status, DocumentStatus.EXTRACTING)
            try:
                text = await self._extraction_task.extract(document)
            except ExtractionError as e:
                return await self._fail(document_id, run_id, DocumentStatus.EXTRACTION_FAILED, e, start_time)
            except Exception as e:
                await self._fail(document_id, run_id, DocumentStatus.EXTRACTION_FAILED, e, start_time)
                raise
            status = await self._move(document_id, run_id, status, DocumentStatus.EXTRACTED)

        try:
            if await self._needs_chunking(document_id, status, rechunk):
                status = await self._chunk(document, run_id, status, text)
            status, embedded, total = await self._embed(document_id, run_id, status, on_progress)
        except DocumentBusyError:
            raise
        except AnswerEngineException as e:
            return await self._fail(document_id, run_id, DocumentStatus.EMBEDDING_FAILED, e, start_time)
        except Exception as e:
            await self._fail(document_id, run_id, DocumentStatus.EMBEDDING_FAILED, e, start_time)
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if self._tracer is not None:
            self._tracer.trace_ingestion(document_id, document.owner_id, total, elapsed_ms / 1000)

        logger.info(
            f"{__name__}:process - Document embedded",
            extra={"document_id": document_id, "chunks": total, "processing_time_ms": round(elapsed_ms, 2)},
        )
        return PipelineResult(
            document_id=document_id,
            status=status.value,
            chunk_count=total,
            embedded_count=embedded,
            processing_time_ms=elapsed_ms,
        )

    async def _claim(self, document_id: str, rechunk: bool) -> DocumentModel:
        document = await document_crud.get_by_id(self._session, document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        if document.status == DocumentStatus.EMBEDDED and not rechunk:
            raise InvalidTransitionError(document_id, DocumentStatus.EMBEDDED.value, DocumentStatus.CHUNKING.value)

        expected = set(STARTABLE_STATUSES | IN_PROGRESS_STATUSES)
        if rechunk:
            expected.add(DocumentStatus.EMBEDDED)

        claimed = await document_crud.claim(
            self._session,
            document_id,
            expected,
            run_id=str(uuid.uuid4()),
            stale_before=utcnow() - self._lock_timeout,
        )
        await self._session.commit()
        if claimed is None:
            current = await document_crud.get_by_id(self._session, document_id)
            raise DocumentBusyError(document_id, current.status.value if current else None)
        return claimed

    async def _move(
        self,
        document_id: str,
        run_id: str,
        from_status: DocumentStatus,
        to_status: DocumentStatus,
        release: bool = False,
        **values,
    ) -> DocumentStatus:
        """Validated compare-and-swap transition, committed immediately."""
        if from_status == to_status and not values and not release:
            # resuming a stage a previous run was in the middle of
            return from_status
        if from_status != to_status:
            ensure_transition(document_id, from_status, to_status)
        updated = await document_crud.transition(
            self._session, document_id, run_id, from_status, to_status, release=release, **values
        )
        await self._session.commit()
        if updated is None:
            logger.warning(
                f"{__name__}:_move - Lost claim on document",
                extra={"document_id": document_id, "run_id": run_id, "to_status": to_status.value},
            )
            raise DocumentBusyError(document_id, from_status.value)
        self._status = to_status
        logger.info(
            f"{__name__}:_move - {from_status.value} -> {to_status.value}",
            extra={"document_id": document_id, "run_id": run_id},
        )
        return to_status

    async def _needs_chunking(self, document_id: str, status: DocumentStatus, rechunk: bool) -> bool:
        if status in (DocumentStatus.EXTRACTED, DocumentStatus.CHUNKING, DocumentStatus.EMBEDDED):
            return True
        if status == DocumentStatus.EMBEDDING_FAILED:
            return rechunk or await chunk_crud.count_by_document(self._session, document_id) == 0
        return rechunk

    async def _chunk(
        self,
        document: DocumentModel,
        run_id: str,
        status: DocumentStatus,
        text: str | None,
    ) -> DocumentStatus:
        """Replace all chunks and vectors of the document."""
        status = await self._move(document.id, run_id, status, DocumentStatus.CHUNKING)
        if text is None:
            text = await self._extraction_task.extract(document)

        existing = await chunk_crud.get_by_document(self._session, document.id)
        if existing:
            await self._vector_index.delete([f"{c.document_id}:{c.id}" for c in existing])
            await chunk_crud.delete_by_document(self._session, document.id)

        chunks = self._chunking_task.chunk(text, document.id, document.owner_id, document.topic_id)
        await chunk_crud.add_chunks(self._session, chunks)

        return await self._move(
            document.id,
            run_id,
            status,
            DocumentStatus.EMBEDDING,
            total_chunks=len(chunks),
            embedded_chunks=0,
            error_message=None,
        )

    async def _embed(
        self,
        document_id: str,
        run_id: str,
        status: DocumentStatus,
        on_progress: ProgressCallback | None,
    ) -> tuple[DocumentStatus, int, int]:
        """Embed and index every chunk not yet indexed, one window at a time."""
        status = await self._move(document_id, run_id, status, DocumentStatus.EMBEDDING)

        total = await chunk_crud.count_by_document(self._session, document_id)
        pending = await chunk_crud.get_by_document(self._session, document_id, embedded=False)
        embedded = total - len(pending)
        window_size = self._embedding_batcher.batch_size * self._embedding_batcher.max_concurrency

        failures: list[AnswerEngineException] = []
        failed_count = 0
        for offset in range(0, len(pending), window_size):
            window = [row.to_chunk() for row in pending[offset:offset + window_size]]
            base = embedded

            def report(done: int, _window_total: int, base: int = base) -> None:
                if on_progress is not None:
                    on_progress(base + done, total)

            result = await self._embedding_batcher.embed([c.text for c in window], on_progress=report)
            upserted_at = time.time() * 1000
            records = [
                VectorRecord.from_chunk(chunk, vector, self._excerpt_max_chars, upserted_at)
                for chunk, vector in zip(window, result.vectors)
                if vector is not None
            ]
            await self._vector_index.upsert(records)
            await chunk_crud.mark_embedded(self._session, [r.metadata.chunk_id for r in records])

            embedded += len(records)
            failed_count += len(result.errors)
            failures.extend(result.errors.values())

            if await document_crud.update_progress(self._session, document_id, run_id, embedded) is None:
                await self._session.rollback()
                raise DocumentBusyError(document_id, status.value)
            await self._session.commit()

        if failed_count:
            raise EmbeddingError(
                f"{failed_count} of {total} chunks failed to embed: {failures[0]}",
                document_id=document_id,
                failed_chunks=failed_count,
            )

        status = await self._move(
            document_id,
            run_id,
            status,
            DocumentStatus.EMBEDDED,
            release=True,
            embedded_chunks=embedded,
            error_message=None,
        )
        return status, embedded, total

    async def _fail(
        self,
        document_id: str,
        run_id: str,
        failed_status: DocumentStatus,
        error: Exception,
        start_time: float,
    ) -> PipelineResult:
        """Record a failure on the document and release the claim."""
        await self._session.rollback()
        status = self._status
        message = str(error) or type(error).__name__
        logger.error(
            f"{__name__}:_fail - Processing failed in {status.value}",
            extra={"document_id": document_id, "error_type": type(error).__name__, "error_msg": message},
        )
        if status == failed_status or can_transition(status, failed_status):
            await self._move(document_id, run_id, status, failed_status, release=True, error_message=message)
        else:
            # failed before leaving a resting state; keep it and drop the claim
            await document_crud.release(self._session, document_id, run_id)
            await self._session.commit()
            failed_status = status
        current = await document_crud.get_by_id(self._session, document_id)
        return PipelineResult(
            document_id=document_id,
            status=failed_status.value,
            chunk_count=(current.total_chunks or 0) if current else 0,
            embedded_count=current.embedded_chunks if current else 0,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
            error_message=message,
        )
