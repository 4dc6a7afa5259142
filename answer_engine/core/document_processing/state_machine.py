"""
Document processing lifecycle.

The allowed status graph of a document. Every status change goes through
``ensure_transition`` before it is written with a compare-and-swap update.

    stored -> extracting -> extracted -> chunking -> embedding -> embedded
                 |                           |           |
                 v                           v           v
         extraction_failed            embedding_failed <-+

Failed states may be retried. An embedded document only moves again
through an explicit re-chunk.

Dependencies: answer_engine.boundary.db.models.document_model
System role: Single source of truth for lifecycle rules
"""

from answer_engine.boundary.db.models.document_model import DocumentStatus
from answer_engine.core.exceptions import InvalidTransitionError

ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.STORED: frozenset({DocumentStatus.EXTRACTING}),
    DocumentStatus.EXTRACTING: frozenset({DocumentStatus.EXTRACTED, DocumentStatus.EXTRACTION_FAILED}),
    DocumentStatus.EXTRACTION_FAILED: frozenset({DocumentStatus.EXTRACTING}),
    DocumentStatus.EXTRACTED: frozenset({DocumentStatus.CHUNKING}),
    DocumentStatus.CHUNKING: frozenset({DocumentStatus.EMBEDDING, DocumentStatus.EMBEDDING_FAILED}),
    DocumentStatus.EMBEDDING: frozenset({DocumentStatus.EMBEDDED, DocumentStatus.EMBEDDING_FAILED}),
    DocumentStatus.EMBEDDING_FAILED: frozenset({DocumentStatus.EMBEDDING, DocumentStatus.CHUNKING}),
    DocumentStatus.EMBEDDED: frozenset({DocumentStatus.CHUNKING}),
}

# statuses a new processing run may claim a document from
STARTABLE_STATUSES = frozenset(
    {
        DocumentStatus.STORED,
        DocumentStatus.EXTRACTION_FAILED,
        DocumentStatus.EXTRACTED,
        DocumentStatus.EMBEDDING_FAILED,
    }
)

# in-progress statuses a crashed run may have left behind
IN_PROGRESS_STATUSES = frozenset(
    {
        DocumentStatus.EXTRACTING,
        DocumentStatus.CHUNKING,
        DocumentStatus.EMBEDDING,
    }
)

TERMINAL_STATUSES = frozenset(
    {
        DocumentStatus.EMBEDDED,
        DocumentStatus.EXTRACTION_FAILED,
        DocumentStatus.EMBEDDING_FAILED,
    }
)


def can_transition(from_status: DocumentStatus, to_status: DocumentStatus) -> bool:
    """Whether ``from_status -> to_status`` is an edge of the lifecycle graph."""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def ensure_transition(document_id: str, from_status: DocumentStatus, to_status: DocumentStatus) -> None:
    """
    Validate a transition.

    Args:
        document_id: Document being moved
        from_status: Current status
        to_status: Requested status

    Raises:
        InvalidTransitionError: When the edge is not allowed
    """
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(document_id, from_status.value, to_status.value)
