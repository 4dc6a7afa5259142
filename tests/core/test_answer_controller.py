"""
Test suite for the streaming answer controller.

Covers event ordering, pause/resume buffering, cancellation, the retry
and fallback ladder, synchronous validation and best-effort follow-ups.

System role: Verification of answer sessions
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FakeHTTPError, FakeProvider, wait_until

from answer_engine.core.answering.answer_controller import AnswerController, error_code
from answer_engine.core.answering.stream_session import SessionState
from answer_engine.core.exceptions import (
    InvalidInputError,
    SessionNotFoundError,
    UpstreamPermanentError,
    UpstreamUnavailableError,
)
from answer_engine.models.retrieval import MergedResults, RetrievalOptions, RetrievalResult, SourceType
from answer_engine.models.streaming import StreamEventType


class GatedProvider(FakeProvider):
    """Provider whose stream yields whatever the test pushes, until None."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.gate: asyncio.Queue = asyncio.Queue()
        self.cancelled = False

    async def stream(self, messages):
        self.stream_messages.append(list(messages))
        try:
            while True:
                piece = await self.gate.get()
                if piece is None:
                    return
                yield piece
        except asyncio.CancelledError:
            self.cancelled = True
            raise


def _results() -> MergedResults:
    return MergedResults(
        documents=[
            RetrievalResult(
                source_type=SourceType.DOCUMENT,
                score=0.9,
                excerpt="Plants convert light into chemical energy.",
                citation_ref="doc:doc-1:c1",
                owner_id="user-1",
                document_id="doc-1",
                chunk_id="c1",
                chunk_index=0,
            )
        ]
    )


def _engine(results: MergedResults | None = None, error: Exception | None = None) -> MagicMock:
    engine = MagicMock()
    if error is not None:
        engine.retrieve = AsyncMock(side_effect=error)
    else:
        engine.retrieve = AsyncMock(return_value=results if results is not None else _results())
    return engine


def _controller(provider, sleep, engine=None, **kwargs) -> AnswerController:
    return AnswerController(provider, engine or _engine(), sleep=sleep, **kwargs)


async def _run_to_end(controller: AnswerController, session) -> list:
    return [event async for event in controller.events(session)]


def _types(events) -> list[str]:
    return [event.event.value for event in events]


def _states(events) -> list[str]:
    return [event.data["state"] for event in events if event.event == StreamEventType.STATE]


def _chunks(events) -> list[str]:
    return [event.data["text"] for event in events if event.event == StreamEventType.CHUNK]


def _done(events) -> dict:
    return next(event.data for event in events if event.event == StreamEventType.DONE)


class TestAnswerControllerHappyPath:
    """Test suite for completed sessions."""

    @pytest.mark.asyncio
    async def test_completed_session_should_emit_events_in_order(self, fake_provider, recording_sleep) -> None:
        """Test state, chunks, citations, done and the final state arrive in order."""
        # Arrange
        controller = _controller(fake_provider, recording_sleep)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        assert _types(events) == ["state", "chunk", "chunk", "citations", "done", "state"]
        assert _states(events) == ["streaming", "completed"]
        assert [event.data["index"] for event in events if event.event == StreamEventType.CHUNK] == [0, 1]
        assert all(event.data["session_id"] == session.session_id for event in events)
        assert session.state == SessionState.COMPLETED
        assert session.session_id not in controller.registry

    @pytest.mark.asyncio
    async def test_done_should_carry_answer_citations_and_follow_ups(self, fake_provider, recording_sleep) -> None:
        """Test the final payload holds the full answer, resolved citations and suggestions."""
        # Arrange
        controller = _controller(fake_provider, recording_sleep)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        citations = next(e.data["citations"] for e in events if e.event == StreamEventType.CITATIONS)
        assert [c["citation_ref"] for c in citations] == ["doc:doc-1:c1"]
        done = _done(events)
        assert done["answer"] == "Plants use light [Document 1]."
        assert done["follow_ups"] == ["What is chlorophyll?", "Why are leaves green?"]
        assert done["no_context"] is False
        assert done["retry_count"] == 0
        assert done["fallback_used"] is False
        assert done["sources"]["documents"][0]["chunk_id"] == "c1"

    @pytest.mark.asyncio
    async def test_retrieval_should_receive_question_owner_and_options(self, fake_provider, recording_sleep) -> None:
        """Test the trimmed question and request options are passed to retrieval."""
        # Arrange
        engine = _engine()
        controller = _controller(fake_provider, recording_sleep, engine=engine)
        options = RetrievalOptions(enable_web=False, max_doc_chunks=3)

        # Act
        session = controller.start("  How do plants make food?  ", "user-1", options=options)
        await _run_to_end(controller, session)

        # Assert
        engine.retrieve.assert_awaited_once_with("How do plants make food?", "user-1", None, options)

    @pytest.mark.asyncio
    async def test_no_context_should_answer_without_citations(self, recording_sleep) -> None:
        """Test an empty retrieval uses the ungrounded prompt and flags no_context."""
        # Arrange
        provider = FakeProvider(answer_pieces=("I could not find this in your sources.",))
        controller = _controller(provider, recording_sleep, engine=_engine(MergedResults()))

        # Act
        session = controller.start("Who won the war?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        assert "No document excerpts" in provider.stream_messages[0][0].content
        assert next(e.data["citations"] for e in events if e.event == StreamEventType.CITATIONS) == []
        assert _done(events)["no_context"] is True

    @pytest.mark.asyncio
    async def test_follow_up_failure_should_not_fail_session(self, recording_sleep) -> None:
        """Test a failing follow-up call yields an empty list and a completed session."""
        # Arrange
        provider = FakeProvider(follow_up_error=RuntimeError("follow-up model down"))
        controller = _controller(provider, recording_sleep)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        assert _done(events)["follow_ups"] == []
        assert _states(events)[-1] == "completed"
        assert "error" not in _types(events)

    @pytest.mark.asyncio
    async def test_disabled_follow_ups_should_skip_call(self, fake_provider, recording_sleep) -> None:
        """Test no follow-up request is made when suggestions are disabled."""
        # Arrange
        controller = _controller(fake_provider, recording_sleep, follow_ups_enabled=False)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        assert fake_provider.follow_up_calls == 0
        assert _done(events)["follow_ups"] == []


class TestAnswerControllerPauseResume:
    """Test suite for the client-facing pause gate."""

    @pytest.mark.asyncio
    async def test_pause_should_buffer_and_resume_should_flush_in_order(self, recording_sleep) -> None:
        """Test chunks produced while paused are withheld and delivered in arrival order on resume."""
        # Arrange
        provider = GatedProvider()
        controller = _controller(provider, recording_sleep)
        session = controller.start("How do plants make food?", "user-1")
        await provider.gate.put("a")
        await wait_until(lambda: session.answer == "a")

        # Act
        controller.pause(session.session_id)
        await provider.gate.put("b")
        await provider.gate.put("c")
        await wait_until(lambda: session.answer == "abc")
        buffered_while_paused = session.buffered
        state_while_paused = session.state
        controller.resume(session.session_id)
        await provider.gate.put(None)
        events = await _run_to_end(controller, session)

        # Assert
        assert buffered_while_paused == 2
        assert state_while_paused == SessionState.PAUSED
        assert _chunks(events) == ["a", "b", "c"]
        assert [e.data["index"] for e in events if e.event == StreamEventType.CHUNK] == [0, 1, 2]
        assert _types(events)[:6] == ["state", "chunk", "state", "chunk", "chunk", "state"]
        assert _states(events) == ["streaming", "paused", "streaming", "completed"]

    @pytest.mark.asyncio
    async def test_pause_should_hold_completion_until_resume(self, recording_sleep) -> None:
        """Test an upstream that finishes while paused does not complete the session."""
        # Arrange
        provider = GatedProvider()
        controller = _controller(provider, recording_sleep)
        session = controller.start("How do plants make food?", "user-1")
        await wait_until(lambda: provider.stream_calls == 1)

        # Act
        controller.pause(session.session_id)
        await provider.gate.put("all of it")
        await provider.gate.put(None)
        for _ in range(20):
            await asyncio.sleep(0)

        # Assert
        assert session.state == SessionState.PAUSED
        assert not session.is_terminal
        controller.resume(session.session_id)
        events = await _run_to_end(controller, session)
        assert _done(events)["answer"] == "all of it"

    @pytest.mark.asyncio
    async def test_pause_unknown_session_should_raise(self, fake_provider, recording_sleep) -> None:
        """Test control calls for unknown sessions are rejected."""
        # Arrange
        controller = _controller(fake_provider, recording_sleep)

        # Act & Assert
        with pytest.raises(SessionNotFoundError):
            controller.pause("missing")
        with pytest.raises(SessionNotFoundError):
            controller.resume("missing")
        with pytest.raises(SessionNotFoundError):
            controller.cancel("missing")

    @pytest.mark.asyncio
    async def test_control_by_other_owner_should_raise_not_found(self, recording_sleep) -> None:
        """Test another owner cannot pause or cancel a session and it keeps streaming."""
        # Arrange
        provider = GatedProvider()
        controller = _controller(provider, recording_sleep)
        session = controller.start("How do plants make food?", "alice", session_id="s-A")
        await wait_until(lambda: provider.stream_calls == 1)

        # Act & Assert
        with pytest.raises(SessionNotFoundError):
            controller.pause("s-A", owner_id="bob")
        with pytest.raises(SessionNotFoundError):
            controller.cancel("s-A", owner_id="bob")
        assert session.state == SessionState.STREAMING
        assert controller.pause("s-A", owner_id="alice") is session

        controller.cancel("s-A", owner_id="alice")
        await asyncio.gather(session.task, return_exceptions=True)


class TestAnswerControllerCancel:
    """Test suite for cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_should_stop_upstream_and_not_error(self, recording_sleep) -> None:
        """Test cancel aborts the provider stream and ends with a cancelled state, not an error."""
        # Arrange
        provider = GatedProvider()
        controller = _controller(provider, recording_sleep)
        session = controller.start("How do plants make food?", "user-1")
        await provider.gate.put("partial")
        await wait_until(lambda: session.answer == "partial")

        # Act
        controller.cancel(session.session_id)
        await asyncio.gather(session.task, return_exceptions=True)
        events = await _run_to_end(controller, session)

        # Assert
        assert provider.cancelled is True
        assert session.state == SessionState.CANCELLED
        assert "error" not in _types(events)
        assert "done" not in _types(events)
        assert _states(events)[-1] == "cancelled"
        assert session.session_id not in controller.registry

    @pytest.mark.asyncio
    async def test_cancel_while_paused_should_drop_buffer(self, recording_sleep) -> None:
        """Test buffered chunks are never delivered after a cancel."""
        # Arrange
        provider = GatedProvider()
        controller = _controller(provider, recording_sleep)
        session = controller.start("How do plants make food?", "user-1")
        await wait_until(lambda: provider.stream_calls == 1)
        controller.pause(session.session_id)
        await provider.gate.put("hidden")
        await wait_until(lambda: session.buffered == 1)

        # Act
        controller.cancel(session.session_id)
        await asyncio.gather(session.task, return_exceptions=True)
        events = await _run_to_end(controller, session)

        # Assert
        assert _chunks(events) == []
        assert session.buffered == 0

    @pytest.mark.asyncio
    async def test_closing_event_stream_should_cancel_session(self, recording_sleep) -> None:
        """Test a client that stops reading cancels the in-flight session."""
        # Arrange
        provider = GatedProvider()
        controller = _controller(provider, recording_sleep)
        session = controller.start("How do plants make food?", "user-1")
        stream = controller.events(session)
        first = await stream.__anext__()

        # Act
        await stream.aclose()
        await asyncio.gather(session.task, return_exceptions=True)

        # Assert
        assert first.data["state"] == "streaming"
        assert session.state == SessionState.CANCELLED
        assert session.session_id not in controller.registry


class TestAnswerControllerFailures:
    """Test suite for the retry and fallback ladder."""

    @pytest.mark.asyncio
    async def test_auth_error_should_fail_without_retry_or_fallback(self, recording_sleep) -> None:
        """Test a 401 surfaces immediately as an error event."""
        # Arrange
        provider = FakeProvider(stream_failures=[(0, FakeHTTPError(401))])
        controller = _controller(provider, recording_sleep)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        assert provider.stream_calls == 1
        assert provider.complete_calls == 0
        assert recording_sleep.delays == []
        error = next(e.data for e in events if e.event == StreamEventType.ERROR)
        assert error["code"] == "UPSTREAM_AUTH"
        assert error["retryable"] is False
        assert session.state == SessionState.ERRORED

    @pytest.mark.asyncio
    async def test_transient_error_should_retry_and_reset_partial_answer(self, recording_sleep) -> None:
        """Test a mid-stream 503 is retried once and the partial output is discarded."""
        # Arrange
        provider = FakeProvider(stream_failures=[(1, FakeHTTPError(503)), None])
        controller = _controller(provider, recording_sleep)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        assert provider.stream_calls == 2
        assert recording_sleep.delays == [0.5]
        assert _states(events) == ["streaming", "errored", "streaming", "completed"]
        assert any(e.data.get("reset") for e in events if e.event == StreamEventType.STATE)
        done = _done(events)
        assert done["answer"] == "Plants use light [Document 1]."
        assert done["retry_count"] == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_should_use_fallback(self, recording_sleep) -> None:
        """Test persistent transient failures end in one non-streaming completion."""
        # Arrange
        failure = (0, FakeHTTPError(429))
        provider = FakeProvider(stream_failures=[failure, failure, failure])
        controller = _controller(provider, recording_sleep, max_retries=2)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        assert provider.stream_calls == 3
        assert recording_sleep.delays == [0.5, 1.0]
        assert provider.complete_calls == 1
        assert any(e.data.get("fallback") for e in events if e.event == StreamEventType.STATE)
        done = _done(events)
        assert done["answer"] == "Fallback answer [Document 1]."
        assert done["fallback_used"] is True
        assert done["retry_count"] == 2

    @pytest.mark.asyncio
    async def test_failed_fallback_should_report_unavailable(self, recording_sleep) -> None:
        """Test a failing fallback ends the session with UPSTREAM_UNAVAILABLE."""
        # Arrange
        failure = (0, FakeHTTPError(503))
        provider = FakeProvider(stream_failures=[failure, failure], complete_error=FakeHTTPError(503))
        controller = _controller(provider, recording_sleep, max_retries=1)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        error = next(e.data for e in events if e.event == StreamEventType.ERROR)
        assert error["code"] == "UPSTREAM_UNAVAILABLE"
        assert error["retryable"] is True
        assert "done" not in _types(events)

    @pytest.mark.asyncio
    async def test_retrieval_failure_should_emit_error(self, fake_provider, recording_sleep) -> None:
        """Test a failed retrieval ends the session before any generation."""
        # Arrange
        engine = _engine(error=UpstreamUnavailableError("all sources down"))
        controller = _controller(fake_provider, recording_sleep, engine=engine)

        # Act
        session = controller.start("How do plants make food?", "user-1")
        events = await _run_to_end(controller, session)

        # Assert
        assert fake_provider.stream_calls == 0
        assert next(e.data for e in events if e.event == StreamEventType.ERROR)["code"] == "UPSTREAM_UNAVAILABLE"


class TestAnswerControllerValidation:
    """Test suite for synchronous input validation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "question,owner,options",
        [
            ("", "user-1", None),
            ("   ", "user-1", None),
            ("x" * 2001, "user-1", None),
            ("How?", "", None),
            ("How?", "user-1", RetrievalOptions(enable_docs=False, enable_web=False)),
        ],
    )
    async def test_invalid_input_should_raise_before_upstream(
        self, fake_provider, recording_sleep, question, owner, options
    ) -> None:
        """Test rejected questions raise synchronously and start nothing."""
        # Arrange
        engine = _engine()
        controller = _controller(fake_provider, recording_sleep, engine=engine)

        # Act & Assert
        with pytest.raises(InvalidInputError):
            controller.start(question, owner, options=options)
        assert len(controller.registry) == 0
        engine.retrieve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_session_id_should_raise(self, recording_sleep) -> None:
        """Test a client-chosen id already in use is rejected."""
        # Arrange
        provider = GatedProvider()
        controller = _controller(provider, recording_sleep)
        session = controller.start("First?", "user-1", session_id="s-1")

        # Act & Assert
        with pytest.raises(InvalidInputError):
            controller.start("Second?", "user-1", session_id="s-1")
        controller.cancel(session.session_id)
        await asyncio.gather(session.task, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_same_session_id_for_other_owner_should_start(self, recording_sleep) -> None:
        """Test session ids are scoped per owner, so another owner's id is not reported as taken."""
        # Arrange
        provider = GatedProvider()
        controller = _controller(provider, recording_sleep)
        first = controller.start("First?", "alice", session_id="s-1")

        # Act
        second = controller.start("Second?", "bob", session_id="s-1")

        # Assert
        assert second is not first
        assert controller.registry.get("s-1", "alice") is first
        assert controller.registry.get("s-1", "bob") is second
        controller.cancel("s-1", owner_id="alice")
        controller.cancel("s-1", owner_id="bob")
        await asyncio.gather(first.task, second.task, return_exceptions=True)


class TestErrorCode:
    """Test suite for client-facing error codes."""

    def test_error_code_should_map_taxonomy(self) -> None:
        """Test each error family has a stable code."""
        # Assert
        assert error_code(InvalidInputError("bad")) == "INVALID_INPUT"
        assert error_code(UpstreamPermanentError("denied", auth=True)) == "UPSTREAM_AUTH"
        assert error_code(UpstreamPermanentError("malformed")) == "UPSTREAM_REJECTED"
        assert error_code(UpstreamUnavailableError("down")) == "UPSTREAM_UNAVAILABLE"
        assert error_code(RuntimeError("bug")) == "INTERNAL_ERROR"
