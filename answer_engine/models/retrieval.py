"""
Retrieval schemas.

Normalized results from the document and web paths, the request scope and
options, and the merged two-group outcome handed to the answer controller.

Dependencies: pydantic
System role: Retrieval data contracts
"""

from enum import Enum

from pydantic import BaseModel, Field


class SourceType(str, Enum):
    """Origin of a retrieval result."""

    DOCUMENT = "document"
    WEB = "web"


class RetrievalResult(BaseModel):
    """
    Normalized retrieval unit.

    Attributes:
        source_type: document or web
        score: Similarity (documents) or provider relevance (web)
        excerpt: Text shown to the model and used for previews
        citation_ref: Normalized reference used for deduplication
        owner_scope_ok: False only for results detected outside the owner scope
        owner_id: Owner tag of a document result
        document_id: Source document of a document result
        chunk_id: Source chunk of a document result
        chunk_index: Chunk position of a document result
        topic_id: Topic tag of a document result
        title: Title of a web result
        url: URL of a web result
        upserted_at: Index insertion time (epoch ms) used for tie-breaking
    """

    source_type: SourceType
    score: float
    excerpt: str
    citation_ref: str
    owner_scope_ok: bool = True
    owner_id: str | None = None
    document_id: str | None = None
    chunk_id: str | None = None
    chunk_index: int | None = None
    topic_id: str | None = None
    title: str | None = None
    url: str | None = None
    upserted_at: float | None = None


class RetrievalScope(BaseModel):
    """Optional narrowing of a request inside the owner's data."""

    topic_id: str | None = None
    topic_name: str | None = Field(
        default=None,
        description="Human-readable topic phrase used to bias and filter web search",
    )
    document_ids: list[str] | None = None


class RetrievalOptions(BaseModel):
    """Per-request retrieval knobs."""

    max_doc_chunks: int = Field(default=5, ge=0)
    min_score: float = Field(default=0.5, ge=0.0, le=1.0)
    max_web_results: int = Field(default=5, ge=0)
    enable_docs: bool = True
    enable_web: bool = True
    relax_step: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Overrides the configured relaxed-retry step",
    )


class MergedResults(BaseModel):
    """
    Outcome of hybrid retrieval.

    Document and web results are kept in separate groups, each in its own
    relevance order. ``no_context`` is a valid outcome, not an error.
    """

    documents: list[RetrievalResult] = Field(default_factory=list)
    web: list[RetrievalResult] = Field(default_factory=list)
    relaxed_threshold_used: bool = False
    document_path_degraded: bool = False
    web_path_degraded: bool = False

    @property
    def no_context(self) -> bool:
        return not self.documents and not self.web

    def to_dict(self) -> dict:
        """Serialize including the no-context flag."""
        payload = self.model_dump(mode="json")
        payload["no_context"] = self.no_context
        return payload
