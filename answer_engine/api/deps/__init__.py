"""API-specific dependencies."""

from .dependencies import (
    get_answer_service,
    get_document_service,
    get_service_cache,
    get_settings_dependency,
)

__all__ = [
    "get_answer_service",
    "get_document_service",
    "get_service_cache",
    "get_settings_dependency",
]
