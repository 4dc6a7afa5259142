"""
Chunk schema.

Immutable, offset-tracked slice of a document's extracted text. The unit
of embedding and retrieval.

Dependencies: pydantic
System role: Data contract between chunker, embedding batcher and index
"""

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """
    Document chunk.

    Attributes:
        id: Deterministic chunk id (stable across identical re-chunks)
        document_id: Parent document
        owner_id: Owning user, copied verbatim into vector metadata
        topic_id: Optional topic partition within the owner's data
        index: Zero-based, contiguous position within the document
        text: Chunk text
        start_offset: Inclusive character offset into the extracted text
        end_offset: Exclusive character offset into the extracted text
        approx_token_count: Heuristic token estimate of ``text``
    """

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    owner_id: str
    topic_id: str | None = None
    index: int = Field(ge=0)
    text: str
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    approx_token_count: int = Field(ge=0)

    @property
    def vector_id(self) -> str:
        """Identity of this chunk's vector in the index."""
        return f"{self.document_id}:{self.id}"
