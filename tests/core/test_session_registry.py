"""
Test suite for the stream session and its registry.

Tests lookup, cancellation, idle sweeping and the pause gate of a single
session without a running controller.

System role: Verification of session bookkeeping
"""

import asyncio

import pytest

from answer_engine.core.answering.session_registry import SessionRegistry
from answer_engine.core.answering.stream_session import SessionState, StreamSession
from answer_engine.core.exceptions import InvalidSessionStateError, SessionNotFoundError
from answer_engine.models.streaming import StreamEventType


def _drain(session: StreamSession) -> list:
    events = []
    while not session._queue.empty():
        event = session._queue.get_nowait()
        if event is None:
            break
        events.append(event)
    return events


class TestStreamSession:
    """Test suite for StreamSession."""

    def test_deliver_while_paused_should_buffer(self) -> None:
        """Test paused chunks are kept in the answer but not forwarded."""
        # Arrange
        session = StreamSession("q", "user-1")
        session.set_active()

        # Act
        session.pause()
        session.deliver("one ")
        session.deliver("two")

        # Assert
        assert session.answer == "one two"
        assert session.buffered == 2
        assert [e.event for e in _drain(session)] == [StreamEventType.STATE, StreamEventType.STATE]

    def test_resume_should_flush_before_state_event(self) -> None:
        """Test resume forwards buffered chunks in order, then reports streaming."""
        # Arrange
        session = StreamSession("q", "user-1")
        session.set_active()
        session.pause()
        session.deliver("one ")
        session.deliver("two")
        _drain(session)

        # Act
        session.resume()
        events = _drain(session)

        # Assert
        assert [e.data.get("text") for e in events[:2]] == ["one ", "two"]
        assert events[2].data["state"] == "streaming"
        assert session.buffered == 0
        assert session.paused is False

    def test_pause_before_streaming_should_start_paused(self) -> None:
        """Test a pause requested before generation starts is honored."""
        # Arrange
        session = StreamSession("q", "user-1")

        # Act
        session.pause()
        session.set_active()

        # Assert
        assert session.state == SessionState.PAUSED

    def test_pause_twice_should_be_idempotent(self) -> None:
        """Test a repeated pause emits no extra state event."""
        # Arrange
        session = StreamSession("q", "user-1")
        session.set_active()
        _drain(session)

        # Act
        session.pause()
        session.pause()

        # Assert
        assert len(_drain(session)) == 1

    def test_control_after_close_should_raise(self) -> None:
        """Test pause and resume are rejected once the session is finished."""
        # Arrange
        session = StreamSession("q", "user-1")
        session.close(SessionState.COMPLETED)

        # Act & Assert
        with pytest.raises(InvalidSessionStateError):
            session.pause()
        with pytest.raises(InvalidSessionStateError):
            session.resume()

    def test_close_should_end_stream_once(self) -> None:
        """Test events after close are dropped and the end marker is queued once."""
        # Arrange
        session = StreamSession("q", "user-1")

        # Act
        session.close(SessionState.CANCELLED)
        session.close(SessionState.ERRORED)
        session.deliver("late")

        # Assert
        assert session.state == SessionState.CANCELLED
        assert session.answer == ""
        assert session._queue.qsize() == 2

    def test_reset_answer_should_drop_partial_output(self) -> None:
        """Test partial text and buffer are cleared before a retry."""
        # Arrange
        session = StreamSession("q", "user-1")
        session.pause()
        session.deliver("partial")

        # Act
        session.reset_answer()

        # Assert
        assert session.answer == ""
        assert session.buffered == 0


class TestSessionRegistry:
    """Test suite for SessionRegistry."""

    def test_get_unknown_should_raise(self) -> None:
        """Test lookups of unknown ids raise SessionNotFoundError."""
        # Arrange
        registry = SessionRegistry()

        # Act & Assert
        with pytest.raises(SessionNotFoundError):
            registry.get("missing")

    def test_get_with_other_owner_should_raise(self) -> None:
        """Test a session is only visible to its owner when an owner is given."""
        # Arrange
        registry = SessionRegistry()
        session = StreamSession("q", "alice", session_id="s-1")
        registry.register(session)

        # Act & Assert
        assert registry.get("s-1", "alice") is session
        assert registry.get("s-1") is session
        assert registry.has("s-1", "alice")
        assert not registry.has("s-1", "bob")
        with pytest.raises(SessionNotFoundError):
            registry.get("s-1", "bob")

    def test_cancel_should_close_and_remove(self) -> None:
        """Test cancel ends the session in the cancelled state and forgets it."""
        # Arrange
        registry = SessionRegistry()
        session = StreamSession("q", "user-1", session_id="s-1")
        registry.register(session)

        # Act
        registry.cancel(session)

        # Assert
        assert session.state == SessionState.CANCELLED
        assert "s-1" not in registry

    def test_sweep_idle_should_cancel_only_stale_sessions(self) -> None:
        """Test sessions idle beyond the timeout are cancelled."""
        # Arrange
        registry = SessionRegistry(idle_timeout_seconds=60)
        stale = StreamSession("q", "user-1", session_id="stale")
        fresh = StreamSession("q", "user-1", session_id="fresh")
        stale.last_activity = 0.0
        fresh.last_activity = 100.0
        registry.register(stale)
        registry.register(fresh)

        # Act
        cancelled = registry.sweep_idle(now=120.0)

        # Assert
        assert cancelled == 1
        assert stale.state == SessionState.CANCELLED
        assert "fresh" in registry
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_shutdown_should_cancel_running_tasks(self) -> None:
        """Test shutdown cancels live session tasks and stops the sweeper."""
        # Arrange
        registry = SessionRegistry()
        session = StreamSession("q", "user-1")
        session.task = asyncio.create_task(asyncio.sleep(60))
        registry.register(session)
        registry.start_sweeper(interval=60)

        # Act
        await registry.shutdown()
        await asyncio.gather(session.task, return_exceptions=True)

        # Assert
        assert session.task.cancelled()
        assert session.state == SessionState.CANCELLED
        assert len(registry) == 0
