"""
Bounded exponential retry for upstream calls.

Dependencies: tenacity, answer_engine.core.error_classification
System role: Single retry policy shared by embedding, completion, web search and index calls
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from answer_engine.core.error_classification import classify_exception
from answer_engine.core.exceptions import (
    UpstreamError,
    UpstreamTransientError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]


def build_retrying(
    service: str,
    max_retries: int,
    base_delay: float,
    sleep: SleepFn = asyncio.sleep,
) -> AsyncRetrying:
    """
    Build the tenacity policy: ``max_retries`` retries after the first call,
    delays of base, 2*base, 4*base... and only for transient failures.

    Args:
        service: Upstream service name for log context
        max_retries: Retries after the initial attempt
        base_delay: First backoff delay in seconds
        sleep: Awaitable sleep used between attempts

    Returns:
        AsyncRetrying: Configured retry controller
    """
    return AsyncRetrying(
        retry=retry_if_exception_type(UpstreamTransientError),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, exp_base=2),
        sleep=sleep,
        before_sleep=lambda rs: logger.warning(
            f"Retrying {service} after transient failure",
            extra={
                "service": service,
                "attempt": rs.attempt_number,
                "error": str(rs.outcome.exception()) if rs.outcome else None,
            },
        ),
        reraise=True,
    )


async def call_with_retries(
    call: Callable[[], Awaitable[T]],
    service: str,
    max_retries: int,
    base_delay: float,
    timeout: float | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """
    Run an upstream call under the shared retry policy.

    Args:
        call: Zero-argument coroutine factory issuing the upstream request
        service: Upstream service name
        max_retries: Retries for transient failures
        base_delay: First backoff delay in seconds
        timeout: Per-attempt timeout in seconds
        sleep: Awaitable sleep used between attempts

    Returns:
        Result of the first successful attempt

    Raises:
        UpstreamPermanentError: Non-retryable failure, raised on first occurrence
        UpstreamUnavailableError: Transient failures outlasted the retry budget
    """
    retrying = build_retrying(service, max_retries, base_delay, sleep)
    try:
        async for attempt in retrying:
            with attempt:
                try:
                    if timeout is not None:
                        return await asyncio.wait_for(call(), timeout)
                    return await call()
                except UpstreamError:
                    raise
                except Exception as e:
                    raise classify_exception(e, service) from e
    except UpstreamTransientError as e:
        attempts = retrying.statistics.get("attempt_number", max_retries + 1)
        raise UpstreamUnavailableError(
            f"{service} unavailable after {attempts} attempts",
            service=service,
            attempts=attempts,
            details={"last_error": str(e)},
        ) from e
    raise UpstreamUnavailableError(f"{service} returned no result", service=service)
