"""
Streaming answer generation.

Exports: AnswerController, SessionRegistry, StreamSession, SessionState, extract_citations
"""

from answer_engine.core.answering.answer_controller import AnswerController
from answer_engine.core.answering.citation_extractor import extract_citations
from answer_engine.core.answering.session_registry import SessionRegistry
from answer_engine.core.answering.stream_session import SessionState, StreamSession

__all__ = [
    "AnswerController",
    "SessionRegistry",
    "SessionState",
    "StreamSession",
    "extract_citations",
]
