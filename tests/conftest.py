"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory async database, scriptable LLM provider, recording sleep
Dependencies: pytest, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

import asyncio
from collections.abc import AsyncIterator, Sequence

import pytest
from langchain_core.messages import BaseMessage

from answer_engine.boundary.llm.base import LLMProvider

VOCABULARY = (
    "photosynthesis",
    "chlorophyll",
    "light",
    "cell",
    "mitochondria",
    "energy",
    "history",
    "war",
)


class FakeHTTPError(Exception):
    """SDK-style error carrying an HTTP status code."""

    def __init__(self, status_code: int, message: str = "upstream error") -> None:
        super().__init__(message)
        self.status_code = status_code


def keyword_vector(text: str) -> list[float]:
    """Deterministic bag-of-words embedding over a tiny vocabulary."""
    lowered = text.lower()
    return [float(lowered.count(word)) for word in VOCABULARY] + [0.01]


class FakeProvider(LLMProvider):
    """
    Scriptable provider.

    embed_failures: call number (1-based) -> exception raised by that embed call
    reject_text: embed calls containing this text fail with a 400
    stream_failures: one entry per stream call, ``(pieces_before_failure, exception)``
        or None for a clean stream
    """

    name = "fake"

    def __init__(
        self,
        answer_pieces: Sequence[str] = ("Plants use ", "light [Document 1]."),
        complete_text: str = "Fallback answer [Document 1].",
        follow_up_text: str = "- What is chlorophyll?\n- Why are leaves green?",
        embed_failures: dict[int, Exception] | None = None,
        reject_text: str | None = None,
        stream_failures: list | None = None,
        complete_error: Exception | None = None,
        follow_up_error: Exception | None = None,
    ) -> None:
        self.answer_pieces = list(answer_pieces)
        self.complete_text = complete_text
        self.follow_up_text = follow_up_text
        self.embed_failures = dict(embed_failures or {})
        self.reject_text = reject_text
        self.stream_failures = list(stream_failures or [])
        self.complete_error = complete_error
        self.follow_up_error = follow_up_error

        self.embed_calls: list[list[str]] = []
        self.stream_messages: list[list[BaseMessage]] = []
        self.complete_calls = 0
        self.follow_up_calls = 0

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        failure = self.embed_failures.pop(len(self.embed_calls), None)
        if failure is not None:
            raise failure
        if self.reject_text is not None and self.reject_text in texts:
            raise FakeHTTPError(400, "invalid input text")
        return [keyword_vector(text) for text in texts]

    @staticmethod
    def _is_follow_up(messages: Sequence[BaseMessage]) -> bool:
        return bool(messages) and str(messages[0].content).startswith("Suggest short follow-up")

    async def complete(self, messages: Sequence[BaseMessage]) -> str:
        if self._is_follow_up(messages):
            self.follow_up_calls += 1
            if self.follow_up_error is not None:
                raise self.follow_up_error
            return self.follow_up_text
        self.complete_calls += 1
        if self.complete_error is not None:
            raise self.complete_error
        return self.complete_text

    async def stream(self, messages: Sequence[BaseMessage]) -> AsyncIterator[str]:
        self.stream_messages.append(list(messages))
        failure = self.stream_failures.pop(0) if self.stream_failures else None
        for position, piece in enumerate(self.answer_pieces):
            if failure is not None and position == failure[0]:
                raise failure[1]
            await asyncio.sleep(0)
            yield piece
        if failure is not None:
            raise failure[1]

    @property
    def stream_calls(self) -> int:
        return len(self.stream_messages)


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


async def wait_until(condition, attempts: int = 200) -> None:
    """Yield to the event loop until ``condition()`` holds."""
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provide a provider with default scripted answers."""
    return FakeProvider()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Provide a sleep that returns immediately and records its delays."""
    return RecordingSleep()


@pytest.fixture
def sample_text() -> str:
    """Fifty short sentences, about 2400 characters."""
    return " ".join(f"This is sentence number {i:03d} of the sample text." for i in range(50))


@pytest.fixture
async def test_async_db():
    """
    Create in-memory SQLite async database for testing.

    Yields:
        AsyncSession: Test database session with cleanup
    """
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from answer_engine.boundary.db.base import Base
    from answer_engine.boundary.db.models import chunk_model, document_model  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
