"""
Text chunking task using RecursiveCharacterTextSplitter.

Splits extracted document text into overlapping, sentence-respecting chunks.
Separators are tried in order: sentence ends, blank-line paragraphs,
whitespace, and finally single characters, so a sentence longer than the
chunk size is split at whitespace (or cut exactly when it has none).
Consecutive chunks share up to ``overlap_size`` tokens of trailing text.

Dependencies: langchain_text_splitters, answer_engine.core.token_count
System role: Chunking stage of the document processing pipeline
"""

import hashlib
import logging

from langchain_text_splitters import RecursiveCharacterTextSplitter

from answer_engine.core.exceptions import InvalidInputError
from answer_engine.core.token_count import estimate_tokens, tokens_to_chars
from answer_engine.models.chunk import Chunk

logger = logging.getLogger(__name__)

SEPARATORS = [
    r"(?<=[.!?])\s+",
    r"\n\s*\n",
    r"\s+",
    "",
]

Span = tuple[int, int]


def validate_sizes(max_size: int, overlap_size: int) -> None:
    """
    Check chunk size configuration.

    Raises:
        InvalidInputError: max_size below 1, or overlap_size outside [0, max_size)
    """
    if max_size < 1:
        raise InvalidInputError(
            "max_size must be at least 1",
            field="max_size",
            details={"max_size": max_size},
        )
    if overlap_size < 0 or overlap_size >= max_size:
        raise InvalidInputError(
            "overlap_size must be >= 0 and strictly smaller than max_size",
            field="overlap_size",
            details={"max_size": max_size, "overlap_size": overlap_size},
        )


def build_splitter(max_size: int, overlap_size: int) -> RecursiveCharacterTextSplitter:
    """
    Splitter whose chunks stay within ``max_size`` estimated tokens.

    Sizes are converted to characters: ``add_start_index`` subtracts the
    overlap from character offsets, and ``estimate_tokens(t) <= n`` holds
    exactly when ``len(t) <= tokens_to_chars(n)``.
    """
    validate_sizes(max_size, overlap_size)
    return RecursiveCharacterTextSplitter(
        separators=SEPARATORS,
        is_separator_regex=True,
        keep_separator="end",
        chunk_size=tokens_to_chars(max_size),
        chunk_overlap=tokens_to_chars(overlap_size),
        length_function=len,
        add_start_index=True,
    )


def _bounds(splitter: RecursiveCharacterTextSplitter, text: str) -> list[Span]:
    if not text or not text.strip():
        raise InvalidInputError("Cannot chunk empty text", field="text")
    bounds = []
    for document in splitter.create_documents([text]):
        start = document.metadata["start_index"]
        bounds.append((start, start + len(document.page_content)))
    return bounds


def split_text(text: str, max_size: int, overlap_size: int) -> list[Span]:
    """
    Compute chunk bounds over ``text``.

    Args:
        text: Extracted document text
        max_size: Maximum estimated tokens per chunk
        overlap_size: Estimated tokens shared with the previous chunk

    Returns:
        list[tuple[int, int]]: Ordered ``[start, end)`` offsets, starts strictly increasing

    Raises:
        InvalidInputError: Empty text or invalid sizes
    """
    return _bounds(build_splitter(max_size, overlap_size), text)


class ChunkingTask:
    """Split extracted text into immutable, offset-tracked chunks."""

    def __init__(self, max_size: int = 800, overlap_size: int = 100) -> None:
        """
        Initialize chunking task with splitter configuration.

        Args:
            max_size: Maximum estimated tokens per chunk
            overlap_size: Overlap tokens, strictly smaller than max_size

        Raises:
            InvalidInputError: When sizes are invalid
        """
        self._splitter = build_splitter(max_size, overlap_size)
        self.max_size = max_size
        self.overlap_size = overlap_size

    @staticmethod
    def chunk_id(document_id: str, index: int, start: int, end: int) -> str:
        """Deterministic chunk id from its document position."""
        digest = hashlib.sha256(f"{document_id}:{index}:{start}:{end}".encode()).hexdigest()
        return digest[:16]

    def chunk(
        self,
        text: str,
        document_id: str,
        owner_id: str,
        topic_id: str | None = None,
    ) -> list[Chunk]:
        """
        Split text into chunks for one document.

        Args:
            text: Extracted plain text
            document_id: Parent document ID
            owner_id: Owning user, copied onto every chunk
            topic_id: Optional topic, copied onto every chunk

        Returns:
            list[Chunk]: At least one chunk, indexed 0..n-1 in text order

        Raises:
            InvalidInputError: Empty text or missing owner/document
        """
        if not owner_id:
            raise InvalidInputError("owner_id is required", field="owner_id")
        if not document_id:
            raise InvalidInputError("document_id is required", field="document_id")

        chunks = []
        for index, (start, end) in enumerate(_bounds(self._splitter, text)):
            chunk_text = text[start:end]
            chunks.append(
                Chunk(
                    id=self.chunk_id(document_id, index, start, end),
                    document_id=document_id,
                    owner_id=owner_id,
                    topic_id=topic_id,
                    index=index,
                    text=chunk_text,
                    start_offset=start,
                    end_offset=end,
                    approx_token_count=estimate_tokens(chunk_text),
                )
            )

        logger.info(
            f"{__name__}:chunk - Created {len(chunks)} chunks",
            extra={
                "document_id": document_id,
                "text_length": len(text),
                "max_size": self.max_size,
                "overlap_size": self.overlap_size,
            },
        )
        return chunks
