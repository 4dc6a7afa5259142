"""
Answer service.

Question answering as an event stream plus session control.

Dependencies: answer_engine.core.answering
System role: Answer orchestration layer for the streaming API
"""

import logging
from collections.abc import AsyncGenerator

from answer_engine.core.answering.answer_controller import AnswerController
from answer_engine.models.retrieval import RetrievalOptions, RetrievalScope
from answer_engine.models.streaming import HistoryMessage, StreamEvent

logger = logging.getLogger(__name__)


class AnswerService:
    """Streaming question answering over the owner's documents and the web."""

    def __init__(self, controller: AnswerController) -> None:
        self.controller = controller

    async def answer_question(
        self,
        query: str,
        owner_id: str,
        scope: RetrievalScope | None = None,
        options: RetrievalOptions | None = None,
        history: list[HistoryMessage] | None = None,
        session_id: str | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """
        Answer a question as a stream of events.

        Yields a ``state`` event carrying the session id first, then
        ``chunk`` events in upstream order, and finally ``citations`` and
        ``done``, or a single ``error``. A cancelled session ends with a
        ``state`` event and no error.

        Args:
            query: User question
            owner_id: Requesting user
            scope: Optional topic/document restriction
            options: Retrieval options
            history: Prior conversation turns
            session_id: Client-chosen session id

        Yields:
            StreamEvent: Session events

        Raises:
            InvalidInputError: Rejected before any upstream call
        """
        session = self.controller.start(query, owner_id, scope, options, history, session_id)
        logger.info(
            f"{__name__}:answer_question - Streaming answer",
            extra={"session_id": session.session_id, "owner_id": owner_id},
        )
        event_count = 0
        async for event in self.controller.events(session):
            event_count += 1
            yield event
        logger.info(
            f"{__name__}:answer_question - Stream finished",
            extra={"session_id": session.session_id, "state": session.state.value, "total_events": event_count},
        )

    def cancel_session(self, session_id: str, owner_id: str | None = None) -> str:
        """
        Cancel a running session, optionally restricted to ``owner_id``.

        Returns:
            str: Resulting session state

        Raises:
            SessionNotFoundError: Unknown, finished or another owner's session
        """
        return self.controller.cancel(session_id, owner_id).state.value

    def pause_session(self, session_id: str, owner_id: str | None = None) -> str:
        """
        Stop forwarding chunks to the client; the upstream call keeps running.

        Raises:
            SessionNotFoundError: Unknown, finished or another owner's session
            InvalidSessionStateError: Session already finished
        """
        return self.controller.pause(session_id, owner_id).state.value

    def resume_session(self, session_id: str, owner_id: str | None = None) -> str:
        """
        Flush buffered chunks in order and continue live delivery.

        Raises:
            SessionNotFoundError: Unknown, finished or another owner's session
            InvalidSessionStateError: Session already finished
        """
        return self.controller.resume(session_id, owner_id).state.value
