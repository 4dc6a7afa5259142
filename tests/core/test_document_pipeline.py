"""
Test suite for the document processing pipeline.

Runs the full extract -> chunk -> embed flow against an in-memory SQLite
database and the in-memory vector index.

System role: Verification of pipeline orchestration and resumability
"""

from collections.abc import Sequence
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from answer_engine.boundary.db.base import utcnow
from answer_engine.boundary.db.CRUD.chunk_crud import chunk_crud
from answer_engine.boundary.db.CRUD.document_crud import document_crud
from answer_engine.boundary.db.models.document_model import DocumentModel, DocumentStatus
from answer_engine.boundary.vdb.memory_index import InMemoryVectorIndex
from answer_engine.boundary.vdb.vector_schemas import VectorRecord
from answer_engine.core.document_processing.entrypoint import DocumentPipeline
from answer_engine.core.document_processing.state_machine import can_transition
from answer_engine.core.document_processing.tasks import ChunkingTask, EmbeddingBatcher
from answer_engine.core.exceptions import (
    DocumentBusyError,
    DocumentNotFoundError,
    IndexUnavailableError,
    InvalidTransitionError,
)
from conftest import FakeHTTPError, FakeProvider, RecordingSleep


class UnavailableIndex(InMemoryVectorIndex):
    """Index whose writes always fail."""

    async def _upsert(self, records: Sequence[VectorRecord]) -> None:
        raise IndexUnavailableError("Vector index put_vectors failed", operation="put_vectors")


async def _add_document(session: AsyncSession, text: str | None, document_id: str = "doc-1") -> DocumentModel:
    document = await document_crud.create(
        session,
        id=document_id,
        owner_id="user-1",
        topic_id="bio",
        status=DocumentStatus.STORED,
        extracted_text=text,
    )
    await session.commit()
    return document


def _pipeline(
    session: AsyncSession,
    provider: FakeProvider,
    index: InMemoryVectorIndex,
    sleep: RecordingSleep,
    max_size: int = 100,
) -> DocumentPipeline:
    return DocumentPipeline(
        session=session,
        chunking_task=ChunkingTask(max_size=max_size, overlap_size=10),
        embedding_batcher=EmbeddingBatcher(provider, batch_size=2, max_concurrency=1, max_retries=0, sleep=sleep),
        vector_index=index,
    )


class TestDocumentPipelineHappyPath:
    """Test suite for a full processing run."""

    @pytest.mark.asyncio
    async def test_process_should_embed_every_chunk(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test a stored document ends embedded with every chunk indexed."""
        # Arrange
        await _add_document(test_async_db, sample_text)
        index = InMemoryVectorIndex()
        pipeline = _pipeline(test_async_db, fake_provider, index, recording_sleep)

        # Act
        result = await pipeline.process("doc-1")

        # Assert
        document = await document_crud.get_by_id(test_async_db, "doc-1")
        chunks = await chunk_crud.get_by_document(test_async_db, "doc-1")
        assert result.status == DocumentStatus.EMBEDDED.value
        assert result.chunk_count == len(chunks) > 1
        assert result.embedded_count == len(chunks)
        assert document.status == DocumentStatus.EMBEDDED
        assert document.total_chunks == document.embedded_chunks == len(chunks)
        assert document.processing_run_id is None
        assert all(chunk.embedded for chunk in chunks)
        assert len(index) == len(chunks)

    @pytest.mark.asyncio
    async def test_process_should_report_progress_per_window(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test progress is reported as (embedded, total) ending at the total."""
        # Arrange
        await _add_document(test_async_db, sample_text)
        pipeline = _pipeline(test_async_db, fake_provider, InMemoryVectorIndex(), recording_sleep)
        progress: list[tuple[int, int]] = []

        # Act
        result = await pipeline.process("doc-1", on_progress=lambda done, total: progress.append((done, total)))

        # Assert
        total = result.chunk_count
        assert progress[-1] == (total, total)
        assert [done for done, _ in progress] == sorted(done for done, _ in progress)
        assert all(t == total for _, t in progress)

    @pytest.mark.asyncio
    async def test_process_should_only_take_allowed_transitions(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test every persisted status change is an edge of the lifecycle graph."""
        # Arrange
        await _add_document(test_async_db, sample_text)
        pipeline = _pipeline(test_async_db, fake_provider, InMemoryVectorIndex(), recording_sleep)

        # Act
        with patch.object(document_crud, "transition", wraps=document_crud.transition) as spy:
            await pipeline.process("doc-1")

        # Assert
        moves = [(call.args[3], call.args[4]) for call in spy.call_args_list]
        assert moves[0] == (DocumentStatus.STORED, DocumentStatus.EXTRACTING)
        assert moves[-1] == (DocumentStatus.EMBEDDING, DocumentStatus.EMBEDDED)
        assert all(a == b or can_transition(a, b) for a, b in moves)

    @pytest.mark.asyncio
    async def test_vectors_should_carry_document_scope(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test indexed vectors are tagged with the document's owner and topic."""
        # Arrange
        await _add_document(test_async_db, sample_text)
        index = InMemoryVectorIndex()
        pipeline = _pipeline(test_async_db, fake_provider, index, recording_sleep)

        # Act
        await pipeline.process("doc-1")

        # Assert
        metadata = [meta for _, meta in index._vectors.values()]
        assert {meta.owner_id for meta in metadata} == {"user-1"}
        assert {meta.topic_id for meta in metadata} == {"bio"}
        assert {meta.document_id for meta in metadata} == {"doc-1"}


class TestDocumentPipelineFailures:
    """Test suite for failed and resumed runs."""

    @pytest.mark.asyncio
    async def test_missing_text_should_fail_extraction(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
    ) -> None:
        """Test a document without text ends extraction_failed with a message."""
        # Arrange
        await _add_document(test_async_db, None)
        pipeline = _pipeline(test_async_db, fake_provider, InMemoryVectorIndex(), recording_sleep)

        # Act
        result = await pipeline.process("doc-1")

        # Assert
        document = await document_crud.get_by_id(test_async_db, "doc-1")
        assert result.status == DocumentStatus.EXTRACTION_FAILED.value
        assert document.status == DocumentStatus.EXTRACTION_FAILED
        assert "no extractable text" in document.error_message
        assert document.processing_run_id is None
        assert fake_provider.embed_calls == []

    @pytest.mark.asyncio
    async def test_extraction_failure_should_be_retryable(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test a failed extraction succeeds once text is available."""
        # Arrange
        document = await _add_document(test_async_db, None)
        pipeline = _pipeline(test_async_db, fake_provider, InMemoryVectorIndex(), recording_sleep)
        await pipeline.process("doc-1")
        document.extracted_text = sample_text
        await test_async_db.commit()

        # Act
        result = await pipeline.process("doc-1")

        # Assert
        assert result.status == DocumentStatus.EMBEDDED.value

    @pytest.mark.asyncio
    async def test_partial_embedding_failure_should_resume_missing_chunks(
        self,
        test_async_db: AsyncSession,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test a rerun after embedding_failed only embeds chunks that were not indexed."""
        # Arrange
        provider = FakeProvider(embed_failures={2: FakeHTTPError(401)})
        await _add_document(test_async_db, sample_text)
        index = InMemoryVectorIndex()
        pipeline = _pipeline(test_async_db, provider, index, recording_sleep)

        # Act
        failed = await pipeline.process("doc-1")
        failed_texts = provider.embed_calls[1]
        provider.embed_calls.clear()
        resumed = await pipeline.process("doc-1")

        # Assert
        assert failed.status == DocumentStatus.EMBEDDING_FAILED.value
        assert failed.embedded_count == failed.chunk_count - len(failed_texts)
        assert "failed to embed" in failed.error_message
        assert resumed.status == DocumentStatus.EMBEDDED.value
        assert provider.embed_calls == [failed_texts]
        assert len(index) == resumed.chunk_count

    @pytest.mark.asyncio
    async def test_index_failure_should_mark_embedding_failed(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test an unavailable index is recorded as embedding_failed."""
        # Arrange
        await _add_document(test_async_db, sample_text)
        pipeline = _pipeline(test_async_db, fake_provider, UnavailableIndex(), recording_sleep)

        # Act
        result = await pipeline.process("doc-1")

        # Assert
        document = await document_crud.get_by_id(test_async_db, "doc-1")
        assert result.status == DocumentStatus.EMBEDDING_FAILED.value
        assert document.status == DocumentStatus.EMBEDDING_FAILED
        assert "put_vectors" in document.error_message
        assert document.processing_run_id is None

    @pytest.mark.asyncio
    async def test_unknown_document_should_raise(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
    ) -> None:
        """Test processing a missing document raises DocumentNotFoundError."""
        # Arrange
        pipeline = _pipeline(test_async_db, fake_provider, InMemoryVectorIndex(), recording_sleep)

        # Act & Assert
        with pytest.raises(DocumentNotFoundError):
            await pipeline.process("missing")


class TestDocumentPipelineConcurrency:
    """Test suite for single-writer claims."""

    @pytest.mark.asyncio
    async def test_held_document_should_raise_busy(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test a document held by a live run cannot be processed."""
        # Arrange
        document = await _add_document(test_async_db, sample_text)
        document.processing_run_id = "other-run"
        document.processing_started_at = utcnow()
        await test_async_db.commit()
        pipeline = _pipeline(test_async_db, fake_provider, InMemoryVectorIndex(), recording_sleep)

        # Act & Assert
        with pytest.raises(DocumentBusyError):
            await pipeline.process("doc-1")
        assert fake_provider.embed_calls == []

    @pytest.mark.asyncio
    async def test_abandoned_run_should_be_resumed(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test a claim older than the lock timeout is taken over and finished."""
        # Arrange
        document = await _add_document(test_async_db, sample_text)
        document.status = DocumentStatus.EXTRACTING
        document.processing_run_id = "crashed-run"
        document.processing_started_at = utcnow() - timedelta(hours=1)
        await test_async_db.commit()
        pipeline = _pipeline(test_async_db, fake_provider, InMemoryVectorIndex(), recording_sleep)

        # Act
        result = await pipeline.process("doc-1")

        # Assert
        assert result.status == DocumentStatus.EMBEDDED.value


class TestDocumentPipelineRechunk:
    """Test suite for re-chunking embedded documents."""

    @pytest.mark.asyncio
    async def test_embedded_document_should_require_rechunk(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test processing an embedded document again is an invalid transition."""
        # Arrange
        await _add_document(test_async_db, sample_text)
        pipeline = _pipeline(test_async_db, fake_provider, InMemoryVectorIndex(), recording_sleep)
        await pipeline.process("doc-1")

        # Act & Assert
        with pytest.raises(InvalidTransitionError):
            await pipeline.process("doc-1")

    @pytest.mark.asyncio
    async def test_rechunk_should_replace_chunks_and_vectors(
        self,
        test_async_db: AsyncSession,
        fake_provider: FakeProvider,
        recording_sleep: RecordingSleep,
        sample_text: str,
    ) -> None:
        """Test re-chunking with a new size leaves only the new chunks indexed."""
        # Arrange
        await _add_document(test_async_db, sample_text)
        index = InMemoryVectorIndex()
        await _pipeline(test_async_db, fake_provider, index, recording_sleep, max_size=100).process("doc-1")
        first_count = len(index)

        # Act
        result = await _pipeline(test_async_db, fake_provider, index, recording_sleep, max_size=300).process(
            "doc-1", rechunk=True
        )

        # Assert
        chunks = await chunk_crud.get_by_document(test_async_db, "doc-1")
        assert result.status == DocumentStatus.EMBEDDED.value
        assert len(chunks) == result.chunk_count < first_count
        assert len(index) == len(chunks)
        assert set(index._vectors) == {f"doc-1:{chunk.id}" for chunk in chunks}
