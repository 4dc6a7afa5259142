"""
Observability module.

Logging configuration, correlation ids, HTTP middleware and optional
Langfuse tracing.
"""

from answer_engine.observability.correlation import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from answer_engine.observability.logger import configure_logging

__all__ = [
    "configure_logging",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
]
