"""
Chunk CRUD operations.

Dependencies: sqlalchemy, answer_engine.boundary.db.models.chunk_model
System role: Persistence of document chunks and their embedding flags
"""

from collections.abc import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from answer_engine.boundary.db.CRUD.base_crud import BaseCRUD
from answer_engine.boundary.db.models.chunk_model import ChunkModel
from answer_engine.models.chunk import Chunk


class ChunkCRUD(BaseCRUD[ChunkModel]):
    """CRUD operations for ChunkModel."""

    def __init__(self) -> None:
        super().__init__(ChunkModel)

    async def add_chunks(self, session: AsyncSession, chunks: Sequence[Chunk]) -> int:
        """
        Insert chunks for a document.

        Args:
            session: Async database session
            chunks: Domain chunks in index order

        Returns:
            int: Number of rows added
        """
        session.add_all([ChunkModel.from_chunk(chunk) for chunk in chunks])
        await session.flush()
        return len(chunks)

    async def get_by_document(
        self,
        session: AsyncSession,
        document_id: str,
        embedded: bool | None = None,
    ) -> Sequence[ChunkModel]:
        """
        Chunks of a document in index order.

        Args:
            session: Async database session
            document_id: Parent document
            embedded: Filter on the embedded flag when given

        Returns:
            Sequence of ChunkModels ordered by chunk_index
        """
        stmt = select(ChunkModel).where(ChunkModel.document_id == document_id)
        if embedded is not None:
            stmt = stmt.where(ChunkModel.embedded == embedded)
        stmt = stmt.order_by(ChunkModel.chunk_index)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_by_document(self, session: AsyncSession, document_id: str) -> int:
        stmt = select(func.count()).select_from(ChunkModel).where(ChunkModel.document_id == document_id)
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def mark_embedded(self, session: AsyncSession, chunk_ids: Sequence[str]) -> None:
        """Flag chunks whose vectors were indexed."""
        if not chunk_ids:
            return
        await session.execute(
            update(ChunkModel).where(ChunkModel.id.in_(list(chunk_ids))).values(embedded=True)
        )

    async def delete_by_document(self, session: AsyncSession, document_id: str) -> int:
        """
        Remove every chunk of a document.

        Returns:
            int: Rows deleted
        """
        result = await session.execute(delete(ChunkModel).where(ChunkModel.document_id == document_id))
        return result.rowcount or 0


chunk_crud = ChunkCRUD()
