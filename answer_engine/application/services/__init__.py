"""
Application services.

Exports: DocumentService, AnswerService
"""

from answer_engine.application.services.answer_service import AnswerService
from answer_engine.application.services.document_service import DocumentService

__all__ = ["AnswerService", "DocumentService"]
