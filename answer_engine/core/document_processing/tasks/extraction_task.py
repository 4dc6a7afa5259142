"""
Text extraction task.

Format-specific parsing happens outside this service; the document store
hands over plain text. This task fetches that text for a document and
rejects documents that have none.

Dependencies: answer_engine.boundary.db
System role: Extraction stage of the document processing pipeline
"""

import logging
from typing import Protocol

from answer_engine.boundary.db.models.document_model import DocumentModel
from answer_engine.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)


class TextSource(Protocol):
    """Supplier of a document's extracted plain text."""

    async def get_text(self, document: DocumentModel) -> str | None: ...


class StoredTextSource:
    """Reads the text persisted on the document row."""

    async def get_text(self, document: DocumentModel) -> str | None:
        return document.extracted_text


class ExtractionTask:
    """Obtain plain text for a document from a TextSource."""

    def __init__(self, source: TextSource | None = None) -> None:
        self._source = source or StoredTextSource()

    async def extract(self, document: DocumentModel) -> str:
        """
        Fetch extracted text.

        Args:
            document: Document row

        Returns:
            str: Non-empty plain text

        Raises:
            ExtractionError: No text is available
        """
        text = await self._source.get_text(document)
        if not text or not text.strip():
            raise ExtractionError("Document has no extractable text", document_id=document.id)

        logger.info(
            f"{__name__}:extract - Text obtained",
            extra={"document_id": document.id, "text_length": len(text)},
        )
        return text
