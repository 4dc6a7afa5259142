"""CRUD operations for ORM models."""

from answer_engine.boundary.db.CRUD.base_crud import BaseCRUD
from answer_engine.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud
from answer_engine.boundary.db.CRUD.document_crud import DocumentCRUD, document_crud

__all__ = ["BaseCRUD", "ChunkCRUD", "DocumentCRUD", "chunk_crud", "document_crud"]
