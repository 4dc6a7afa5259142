"""
Test suite for AnswerService.

System role: Verification of the answer event stream and session control
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FakeProvider, RecordingSleep, wait_until

from answer_engine.application.services.answer_service import AnswerService
from answer_engine.core.answering.answer_controller import AnswerController
from answer_engine.core.exceptions import InvalidInputError, SessionNotFoundError
from answer_engine.models.retrieval import MergedResults


class SlowProvider(FakeProvider):
    """Provider whose stream waits until released."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def stream(self, messages):
        self.stream_messages.append(list(messages))
        await self.release.wait()
        yield "done"


def _service(provider: FakeProvider, sleep: RecordingSleep) -> AnswerService:
    engine = MagicMock()
    engine.retrieve = AsyncMock(return_value=MergedResults())
    return AnswerService(AnswerController(provider, engine, sleep=sleep))


class TestAnswerService:
    """Test suite for AnswerService."""

    @pytest.mark.asyncio
    async def test_answer_question_should_stream_to_done(
        self, fake_provider: FakeProvider, recording_sleep: RecordingSleep
    ) -> None:
        """Test the stream starts with a state event and ends after done."""
        # Arrange
        service = _service(fake_provider, recording_sleep)

        # Act
        events = [event async for event in service.answer_question("How?", "user-1", session_id="s-1")]

        # Assert
        assert events[0].event.value == "state"
        assert events[0].data["session_id"] == "s-1"
        assert [e.event.value for e in events][-2:] == ["done", "state"]

    @pytest.mark.asyncio
    async def test_invalid_question_should_raise_on_first_iteration(
        self, fake_provider: FakeProvider, recording_sleep: RecordingSleep
    ) -> None:
        """Test rejected input raises before any event is produced."""
        # Arrange
        service = _service(fake_provider, recording_sleep)

        # Act & Assert
        with pytest.raises(InvalidInputError):
            async for _ in service.answer_question("", "user-1"):
                pass

    @pytest.mark.asyncio
    async def test_control_calls_should_report_state(self, recording_sleep: RecordingSleep) -> None:
        """Test pause, resume and cancel return the resulting session state."""
        # Arrange
        provider = SlowProvider()
        service = _service(provider, recording_sleep)
        stream = service.answer_question("How?", "user-1", session_id="s-1")
        await stream.__anext__()
        await wait_until(lambda: provider.stream_calls == 1)

        # Act
        paused = service.pause_session("s-1")
        resumed = service.resume_session("s-1")
        cancelled = service.cancel_session("s-1")
        await stream.aclose()
        await asyncio.sleep(0)

        # Assert
        assert (paused, resumed, cancelled) == ("paused", "streaming", "cancelled")
        with pytest.raises(SessionNotFoundError):
            service.pause_session("s-1")
