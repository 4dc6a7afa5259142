"""
Streaming answer session.

Per-question state: lifecycle status, accumulated answer, the pause gate
and its buffer, and the outbound event queue the client reads from.

Pause is purely client-facing. The upstream call keeps running; chunks
that arrive while the gate is closed are buffered and flushed, in arrival
order, on resume.

Dependencies: asyncio, answer_engine.models.streaming
System role: Session state owned by the answer controller
"""

import asyncio
import time
import uuid
from enum import Enum
from typing import Any

from answer_engine.core.exceptions import InvalidSessionStateError
from answer_engine.models.retrieval import MergedResults
from answer_engine.models.streaming import StreamEvent, StreamEventType


class SessionState(str, Enum):
    """Lifecycle of an answer session."""

    IDLE = "idle"
    STREAMING = "streaming"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    ERRORED = "errored"
    COMPLETED = "completed"


class StreamSession:
    """One in-flight answer."""

    def __init__(
        self,
        question: str,
        owner_id: str,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or str(uuid.uuid4())
        self.question = question
        self.owner_id = owner_id
        self.state = SessionState.IDLE
        self.retry_count = 0
        self.fallback_used = False
        self.results: MergedResults | None = None
        self.closed = False
        self.task: asyncio.Task | None = None
        self.last_activity = time.monotonic()

        self._parts: list[str] = []
        self._buffer: list[str] = []
        self._chunk_index = 0
        self._unpaused = asyncio.Event()
        self._unpaused.set()
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()

    @property
    def answer(self) -> str:
        return "".join(self._parts)

    @property
    def paused(self) -> bool:
        return not self._unpaused.is_set()

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    @property
    def is_terminal(self) -> bool:
        return self.closed or self.state in (SessionState.CANCELLED, SessionState.COMPLETED)

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def emit(self, event_type: StreamEventType, **data: Any) -> None:
        """Queue an event for the client."""
        if self.closed:
            return
        self._queue.put_nowait(StreamEvent(event=event_type, data={"session_id": self.session_id, **data}))

    def emit_state(self, **data: Any) -> None:
        self.emit(StreamEventType.STATE, state=self.state.value, retry_count=self.retry_count, **data)

    def set_active(self, **data: Any) -> None:
        """Enter the streaming phase, honoring a pause requested earlier."""
        self.state = SessionState.PAUSED if self.paused else SessionState.STREAMING
        self.emit_state(**data)

    def deliver(self, text: str) -> None:
        """
        Accept one upstream chunk.

        Appended to the answer immediately; forwarded to the client now or,
        while paused, on resume.
        """
        if self.is_terminal or not text:
            return
        self._parts.append(text)
        self.touch()
        if self.paused:
            self._buffer.append(text)
        else:
            self._forward(text)

    def _forward(self, text: str) -> None:
        self.emit(StreamEventType.CHUNK, text=text, index=self._chunk_index)
        self._chunk_index += 1

    def reset_answer(self) -> None:
        """Drop partial output before a retry or the fallback call."""
        self._parts.clear()
        self._buffer.clear()

    def pause(self) -> None:
        """
        Close the delivery gate.

        Raises:
            InvalidSessionStateError: Session already finished
        """
        if self.is_terminal:
            raise InvalidSessionStateError(self.session_id, self.state.value, "pause")
        self.touch()
        if self.paused:
            return
        self._unpaused.clear()
        if self.state == SessionState.STREAMING:
            self.state = SessionState.PAUSED
            self.emit_state()

    def resume(self) -> None:
        """
        Flush buffered chunks in arrival order, then reopen the gate.

        Raises:
            InvalidSessionStateError: Session already finished
        """
        if self.is_terminal:
            raise InvalidSessionStateError(self.session_id, self.state.value, "resume")
        self.touch()
        if not self.paused:
            return
        buffered, self._buffer = self._buffer, []
        for text in buffered:
            self._forward(text)
        self._unpaused.set()
        if self.state == SessionState.PAUSED:
            self.state = SessionState.STREAMING
            self.emit_state()

    async def wait_unpaused(self) -> None:
        await self._unpaused.wait()

    def close(self, state: SessionState) -> None:
        """Enter a terminal state and end the event stream."""
        if self.closed:
            return
        self.state = state
        if state == SessionState.CANCELLED:
            self._buffer.clear()
        self.emit_state()
        self.closed = True
        self._unpaused.set()
        self._queue.put_nowait(None)

    async def next_event(self) -> StreamEvent | None:
        """Next event for the client, None once the stream has ended."""
        return await self._queue.get()
