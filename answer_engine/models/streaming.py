"""
Streaming event schemas for answer sessions.

Defines event types and payloads for real-time answer streaming.

Dependencies: pydantic
System role: Streaming protocol schemas
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class StreamEventType(str, Enum):
    """Server-to-client event types for streaming answers."""

    CONNECTED = "connected"
    CHUNK = "chunk"
    CITATIONS = "citations"
    DONE = "done"
    ERROR = "error"
    STATE = "state"
    PONG = "pong"


class ClientEventType(str, Enum):
    """Client-to-server event types."""

    ASK = "ask"
    PAUSE = "pause"
    RESUME = "resume"
    CANCEL = "cancel"
    PING = "ping"


class StreamEvent(BaseModel):
    """
    Base streaming event model.

    Attributes:
        event: Event type identifier
        data: Event-specific payload
    """

    event: StreamEventType
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {"event": self.event.value, "data": self.data}


class HistoryMessage(BaseModel):
    """Prior conversation turn supplied with a question."""

    role: str
    content: str


class ClientAskEvent(BaseModel):
    """
    Client question payload.

    Attributes:
        question: Natural-language question
        owner_id: Requesting user
        topic_id: Optional topic scope for document search
        topic_name: Optional topic phrase for web search
        document_ids: Optional document restriction
        enable_docs: Search the owner's documents
        enable_web: Search the web
        max_doc_chunks: Document results to ground on
        max_web_results: Web results to ground on
        min_score: Minimum document similarity
        history: Prior conversation turns
    """

    question: str
    owner_id: str
    topic_id: str | None = None
    topic_name: str | None = None
    document_ids: list[str] | None = None
    enable_docs: bool = True
    enable_web: bool = True
    max_doc_chunks: int | None = None
    max_web_results: int | None = None
    min_score: float | None = None
    history: list[HistoryMessage] | None = None
