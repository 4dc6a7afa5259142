"""
Upstream error classification.

Maps provider and transport exceptions onto the transient / permanent
taxonomy using HTTP-style status semantics: 408, 425, 429 and 5xx plus
network failures are transient; 401/403 are permanent auth failures; any
other 4xx is a permanent malformed request.

Dependencies: httpx
System role: Shared retry eligibility decisions for every upstream call
"""

import httpx

from answer_engine.core.exceptions import (
    UpstreamError,
    UpstreamPermanentError,
    UpstreamTransientError,
)

TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})
AUTH_STATUS_CODES = frozenset({401, 403})

# SDK exception class names that carry no status code
TRANSIENT_NAME_HINTS = (
    "ratelimit",
    "resourceexhausted",
    "serviceunavailable",
    "deadlineexceeded",
    "internalservererror",
    "apiconnection",
    "timeout",
    "throttl",
)
AUTH_NAME_HINTS = ("authentication", "permissiondenied", "unauthenticated", "unauthorized")

_STATUS_ATTRIBUTES = ("status_code", "http_status", "status", "code")


def extract_status_code(exc: BaseException) -> int | None:
    """
    Find an HTTP-style status code on an exception or its response.

    Args:
        exc: Any exception raised by an SDK or transport

    Returns:
        int | None: Status code in 100..599 when one is present
    """
    for attr in _STATUS_ATTRIBUTES:
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool) and 100 <= value < 600:
            return value
    response = getattr(exc, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value < 600:
            return value
    return None


def _classify_single(exc: BaseException, service: str | None) -> UpstreamError | None:
    status = extract_status_code(exc)
    message = f"{type(exc).__name__}: {exc}"

    if status is not None:
        if status in TRANSIENT_STATUS_CODES or status >= 500:
            return UpstreamTransientError(message, service=service, status_code=status)
        if status in AUTH_STATUS_CODES:
            return UpstreamPermanentError(message, service=service, status_code=status, auth=True)
        if 400 <= status < 500:
            return UpstreamPermanentError(message, service=service, status_code=status)

    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, TimeoutError, ConnectionError)):
        return UpstreamTransientError(message, service=service)

    name = type(exc).__name__.lower()
    if any(hint in name for hint in AUTH_NAME_HINTS):
        return UpstreamPermanentError(message, service=service, auth=True)
    if any(hint in name for hint in TRANSIENT_NAME_HINTS):
        return UpstreamTransientError(message, service=service)
    return None


def classify_exception(exc: BaseException, service: str | None = None) -> UpstreamError:
    """
    Translate an exception into the upstream error taxonomy.

    Walks the ``__cause__`` chain so wrapped SDK errors keep their status.
    Unrecognized failures are permanent.

    Args:
        exc: Exception raised by an upstream call
        service: Upstream service name for error context

    Returns:
        UpstreamError: Transient or permanent classification
    """
    if isinstance(exc, UpstreamError):
        return exc

    current: BaseException | None = exc
    seen = 0
    while current is not None and seen < 5:
        classified = _classify_single(current, service)
        if classified is not None:
            return classified
        current = current.__cause__
        seen += 1

    return UpstreamPermanentError(f"{type(exc).__name__}: {exc}", service=service)


def is_fallback_eligible(error: UpstreamError) -> bool:
    """Auth and malformed-request failures never reach the non-streaming fallback."""
    return not isinstance(error, UpstreamPermanentError)
