"""
Batched embedding generation with retry and progress reporting.

Groups texts into fixed-size batches, runs up to ``max_concurrency``
batches at once, and retries transient upstream failures with exponential
backoff. Non-retryable failures are isolated per item so one bad input
does not sink the unrelated texts in its batch.

Dependencies: tenacity (via core.retry_policy), answer_engine.boundary.llm
System role: Embedding stage of ingestion and query embedding for retrieval
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from answer_engine.boundary.llm.base import LLMProvider
from answer_engine.configs.embedding import EmbeddingSettings
from answer_engine.core.exceptions import (
    AnswerEngineException,
    InvalidInputError,
    UpstreamPermanentError,
)
from answer_engine.core.retry_policy import SleepFn, call_with_retries

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class EmbeddingBatchResult:
    """
    Per-item outcome of a batch embedding run.

    Attributes:
        vectors: One entry per input text, None where embedding failed
        errors: Failure per input index
    """

    vectors: list[list[float] | None]
    errors: dict[int, AnswerEngineException] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def failed_indices(self) -> list[int]:
        return sorted(self.errors)


class EmbeddingBatcher:
    """Turn texts into vectors through bounded, batched provider calls."""

    def __init__(
        self,
        provider: LLMProvider,
        batch_size: int = 100,
        max_retries: int = 3,
        base_delay: float = 0.5,
        max_concurrency: int = 4,
        timeout: float | None = 30.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """
        Initialize batcher.

        Args:
            provider: Embedding-capable provider
            batch_size: Maximum texts per upstream call
            max_retries: Retries per call for transient failures
            base_delay: First backoff delay in seconds, doubled per retry
            max_concurrency: Upstream calls in flight at once
            timeout: Per-call timeout in seconds
            sleep: Awaitable sleep used between retries
        """
        if batch_size < 1:
            raise InvalidInputError("batch_size must be at least 1", field="batch_size")
        self._provider = provider
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_concurrency = max(1, max_concurrency)
        self.timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_settings(cls, provider: LLMProvider, settings: EmbeddingSettings) -> "EmbeddingBatcher":
        """Build a batcher from EmbeddingSettings."""
        return cls(
            provider,
            batch_size=settings.batch_size,
            max_retries=settings.max_retries,
            base_delay=settings.base_delay_seconds,
            max_concurrency=settings.max_concurrency,
            timeout=settings.timeout_seconds,
        )

    async def _call(self, texts: list[str]) -> list[list[float]]:
        return await call_with_retries(
            lambda: self._provider.embed(texts),
            service="embedding",
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            timeout=self.timeout,
            sleep=self._sleep,
        )

    async def embed_one(self, text: str) -> list[float]:
        """
        Embed a single query text.

        Args:
            text: Query text

        Returns:
            list[float]: Embedding vector

        Raises:
            InvalidInputError: Empty text
            UpstreamPermanentError: Non-retryable provider failure
            UpstreamUnavailableError: Transient failures outlasted retries
        """
        if not text or not text.strip():
            raise InvalidInputError("Cannot embed empty text", field="text")
        vectors = await self._call([text.strip()])
        return vectors[0]

    async def _embed_batch(
        self,
        indices: list[int],
        texts: Sequence[str],
        result: EmbeddingBatchResult,
    ) -> None:
        batch = [texts[i].strip() for i in indices]
        try:
            vectors = await self._call(batch)
        except UpstreamPermanentError as e:
            if e.auth or len(indices) == 1:
                for i in indices:
                    result.errors[i] = e
                return
            logger.warning(
                f"{__name__}:_embed_batch - Batch rejected, isolating items",
                extra={"batch_start": indices[0], "batch_size": len(indices), "error_msg": str(e)},
            )
            for i in indices:
                try:
                    result.vectors[i] = (await self._call([texts[i].strip()]))[0]
                except AnswerEngineException as item_error:
                    result.errors[i] = item_error
            return
        except AnswerEngineException as e:
            for i in indices:
                result.errors[i] = e
            return

        for i, vector in zip(indices, vectors):
            result.vectors[i] = vector

    async def embed(
        self,
        texts: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> EmbeddingBatchResult:
        """
        Embed many texts, preserving input order.

        Args:
            texts: Texts to embed
            on_progress: Called synchronously as ``(completed, total)`` after each batch

        Returns:
            EmbeddingBatchResult: Vector or error per input index
        """
        total = len(texts)
        result = EmbeddingBatchResult(vectors=[None] * total)
        if total == 0:
            return result

        valid: list[int] = []
        for i, text in enumerate(texts):
            if text and text.strip():
                valid.append(i)
            else:
                result.errors[i] = InvalidInputError("Cannot embed empty text", field="text", details={"index": i})

        batches = [valid[i:i + self.batch_size] for i in range(0, len(valid), self.batch_size)]
        logger.info(
            f"{__name__}:embed - Starting batch embedding",
            extra={"total": total, "batches": len(batches), "batch_size": self.batch_size},
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)
        completed = total - len(valid)

        async def run(indices: list[int]) -> None:
            nonlocal completed
            async with semaphore:
                await self._embed_batch(indices, texts, result)
            completed += len(indices)
            if on_progress is not None:
                on_progress(completed, total)

        await asyncio.gather(*(run(indices) for indices in batches))

        logger.info(
            f"{__name__}:embed - Batch embedding finished",
            extra={"total": total, "failed": len(result.errors)},
        )
        return result
