"""
In-process registry of live answer sessions.

Maps session ids to sessions so pause/resume/cancel calls can reach a
running answer, and cancels sessions that have been idle too long. Sessions
are keyed per owner: one owner can neither reach nor detect another
owner's session ids.

Dependencies: asyncio
System role: Session lookup for control calls
"""

import asyncio
import logging
import time

from answer_engine.core.answering.stream_session import SessionState, StreamSession
from answer_engine.core.exceptions import SessionNotFoundError

logger = logging.getLogger(__name__)

SessionKey = tuple[str, str]


class SessionRegistry:
    """Live sessions keyed by ``(owner_id, session_id)``."""

    def __init__(self, idle_timeout_seconds: float = 300.0) -> None:
        self.idle_timeout_seconds = idle_timeout_seconds
        self._sessions: dict[SessionKey, StreamSession] = {}
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return any(key[1] == session_id for key in self._sessions)

    def has(self, session_id: str, owner_id: str) -> bool:
        return (owner_id, session_id) in self._sessions

    def register(self, session: StreamSession) -> None:
        self._sessions[(session.owner_id, session.session_id)] = session

    def get(self, session_id: str, owner_id: str | None = None) -> StreamSession:
        """
        Look up a live session.

        Args:
            session_id: Session to look up
            owner_id: Requesting owner; sessions of other owners are
                reported as not found. None for in-process callers that
                already hold the session id.

        Raises:
            SessionNotFoundError: Unknown, finished or foreign session
        """
        if owner_id is not None:
            session = self._sessions.get((owner_id, session_id))
        else:
            matches = [s for key, s in self._sessions.items() if key[1] == session_id]
            session = matches[0] if len(matches) == 1 else None
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def remove(self, session: StreamSession) -> None:
        key = (session.owner_id, session.session_id)
        if self._sessions.get(key) is session:
            del self._sessions[key]

    def cancel(self, session: StreamSession) -> None:
        """Abort the upstream work of a session and end its stream without an error."""
        if session.is_terminal:
            return
        if session.task is not None and not session.task.done():
            session.task.cancel()
        session.close(SessionState.CANCELLED)
        self.remove(session)
        logger.info(f"{__name__}:cancel - Session cancelled", extra={"session_id": session.session_id})

    def sweep_idle(self, now: float | None = None) -> int:
        """
        Cancel sessions without activity for longer than the idle timeout.

        Returns:
            int: Sessions cancelled
        """
        now = time.monotonic() if now is None else now
        stale = [
            session
            for session in self._sessions.values()
            if now - session.last_activity > self.idle_timeout_seconds
        ]
        for session in stale:
            logger.info(
                f"{__name__}:sweep_idle - Cancelling idle session",
                extra={"session_id": session.session_id, "state": session.state.value},
            )
            self.cancel(session)
            self.remove(session)
        return len(stale)

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep_idle()

    def start_sweeper(self, interval: float = 30.0) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop(interval))

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def shutdown(self) -> None:
        """Stop the sweeper and cancel every live session."""
        await self.stop_sweeper()
        for session in list(self._sessions.values()):
            self.cancel(session)
        self._sessions.clear()
