"""
Database boundary.

Exports: Base, DocumentModel, DocumentStatus, ChunkModel, CRUD singletons, session helpers
"""

from answer_engine.boundary.db.base import Base
from answer_engine.boundary.db.connection import (
    create_tables,
    get_async_db,
    get_async_session_factory,
)
from answer_engine.boundary.db.CRUD.chunk_crud import chunk_crud
from answer_engine.boundary.db.CRUD.document_crud import document_crud
from answer_engine.boundary.db.models.chunk_model import ChunkModel
from answer_engine.boundary.db.models.document_model import DocumentModel, DocumentStatus

__all__ = [
    "Base",
    "ChunkModel",
    "DocumentModel",
    "DocumentStatus",
    "chunk_crud",
    "document_crud",
    "create_tables",
    "get_async_db",
    "get_async_session_factory",
]
