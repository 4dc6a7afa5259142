"""
Document CRUD operations.

Status changes are compare-and-swap updates: a row only changes when it
is still in the expected state and held by the expected processing run.
A None return means another writer got there first.

Dependencies: sqlalchemy, answer_engine.boundary.db.models.document_model
System role: Single-writer persistence of document processing state
"""

from collections.abc import Collection
from datetime import datetime

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from answer_engine.boundary.db.base import utcnow
from answer_engine.boundary.db.CRUD.base_crud import BaseCRUD
from answer_engine.boundary.db.models.document_model import DocumentModel, DocumentStatus

ERROR_MESSAGE_MAX_LENGTH = 2000


class DocumentCRUD(BaseCRUD[DocumentModel]):
    """CRUD operations for DocumentModel with compare-and-swap transitions."""

    def __init__(self) -> None:
        """Initialize DocumentCRUD with DocumentModel."""
        super().__init__(DocumentModel)

    async def _cas(self, session: AsyncSession, stmt) -> DocumentModel | None:
        result = await session.execute(
            stmt.returning(DocumentModel).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def claim(
        self,
        session: AsyncSession,
        document_id: str,
        expected: Collection[DocumentStatus],
        run_id: str,
        stale_before: datetime,
    ) -> DocumentModel | None:
        """
        Take ownership of a document for one processing run.

        Succeeds only when the document is in one of ``expected`` and no
        other run holds it (or the holding run started before
        ``stale_before`` and is presumed crashed).

        Args:
            session: Async database session
            document_id: Document to claim
            expected: Statuses from which a run may start
            run_id: New run identifier
            stale_before: Claims older than this are considered abandoned

        Returns:
            Claimed document, or None when the swap lost
        """
        stmt = (
            update(DocumentModel)
            .where(
                DocumentModel.id == document_id,
                DocumentModel.status.in_(list(expected)),
                or_(
                    DocumentModel.processing_run_id.is_(None),
                    DocumentModel.processing_started_at < stale_before,
                ),
            )
            .values(processing_run_id=run_id, processing_started_at=utcnow())
        )
        return await self._cas(session, stmt)

    async def transition(
        self,
        session: AsyncSession,
        document_id: str,
        run_id: str,
        from_status: DocumentStatus,
        to_status: DocumentStatus,
        release: bool = False,
        **values,
    ) -> DocumentModel | None:
        """
        Move a held document from one status to the next.

        Args:
            session: Async database session
            document_id: Document to update
            run_id: Run that must currently hold the document
            from_status: Expected current status
            to_status: New status
            release: Clear the run claim in the same update
            **values: Extra columns to set (error_message, total_chunks, ...)

        Returns:
            Updated document, or None when the expected state did not match
        """
        if "error_message" in values and values["error_message"]:
            values["error_message"] = values["error_message"][:ERROR_MESSAGE_MAX_LENGTH]
        if release:
            values.update(processing_run_id=None, processing_started_at=None)
        stmt = (
            update(DocumentModel)
            .where(
                DocumentModel.id == document_id,
                DocumentModel.status == from_status,
                DocumentModel.processing_run_id == run_id,
            )
            .values(status=to_status, **values)
        )
        return await self._cas(session, stmt)

    async def update_progress(
        self,
        session: AsyncSession,
        document_id: str,
        run_id: str,
        embedded_chunks: int,
    ) -> DocumentModel | None:
        """
        Persist embedding progress for the holding run.

        Args:
            session: Async database session
            document_id: Document being embedded
            run_id: Run that must currently hold the document
            embedded_chunks: Chunks indexed so far

        Returns:
            Updated document, or None when the run no longer holds it
        """
        stmt = (
            update(DocumentModel)
            .where(
                DocumentModel.id == document_id,
                DocumentModel.status == DocumentStatus.EMBEDDING,
                DocumentModel.processing_run_id == run_id,
            )
            .values(embedded_chunks=embedded_chunks, processing_started_at=utcnow())
        )
        return await self._cas(session, stmt)

    async def release(self, session: AsyncSession, document_id: str, run_id: str) -> DocumentModel | None:
        """
        Drop a run's claim without changing status.

        Args:
            session: Async database session
            document_id: Held document
            run_id: Run releasing its claim

        Returns:
            Updated document, or None when the run did not hold it
        """
        stmt = (
            update(DocumentModel)
            .where(DocumentModel.id == document_id, DocumentModel.processing_run_id == run_id)
            .values(processing_run_id=None, processing_started_at=None)
        )
        return await self._cas(session, stmt)


document_crud = DocumentCRUD()
