"""
Citation schema.

Structured citation extracted from answer text and resolved against the
retrieved sources.

Dependencies: pydantic
System role: Citation metadata attached to the final stream events
"""

from pydantic import BaseModel

from answer_engine.models.retrieval import SourceType


class Citation(BaseModel):
    """
    Resolved citation marker.

    Attributes:
        marker: Marker text as written by the model, e.g. "[Document 2]"
        source_type: document or web
        index: 1-based number inside its group
        citation_ref: Normalized reference of the cited result
        document_id: Cited document (document citations)
        chunk_id: Cited chunk (document citations)
        title: Web page title (web citations)
        url: Web page URL (web citations)
        excerpt: Preview of the cited source
    """

    marker: str
    source_type: SourceType
    index: int
    citation_ref: str
    document_id: str | None = None
    chunk_id: str | None = None
    title: str | None = None
    url: str | None = None
    excerpt: str | None = None
