"""API routers."""

from .answer_stream import router as answer_stream_router
from .documents import router as documents_router
from .health import router as health_router

__all__ = [
    "answer_stream_router",
    "documents_router",
    "health_router",
]
