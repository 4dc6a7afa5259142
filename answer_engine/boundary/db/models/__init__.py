"""ORM models."""

from answer_engine.boundary.db.models.chunk_model import ChunkModel
from answer_engine.boundary.db.models.document_model import DocumentModel, DocumentStatus

__all__ = ["ChunkModel", "DocumentModel", "DocumentStatus"]
