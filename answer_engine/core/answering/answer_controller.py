"""
Streaming answer controller.

Drives one question from retrieval to a completed, cited answer:

    idle -> streaming <-> paused -> completed | cancelled | errored

Each session runs as an asyncio task that pumps the upstream stream into
the session. Transient upstream failures move the session to errored and
back to streaming for a retry (bounded, exponential backoff); partial
output is reset before each retry and the client is told so with a state
event. When retries are exhausted a single non-streaming completion is
tried. Auth and malformed-request failures end the session immediately.

Dependencies: tenacity, answer_engine.boundary.llm, answer_engine.core.retrieval
System role: Answer generation for the streaming API
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from langchain_core.messages import BaseMessage
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_exponential

from answer_engine.boundary.llm.base import LLMProvider
from answer_engine.configs.streaming import StreamingSettings
from answer_engine.core.answering.answer_prompt import build_answer_messages
from answer_engine.core.answering.citation_extractor import extract_citations
from answer_engine.core.answering.follow_ups import generate_follow_ups
from answer_engine.core.answering.session_registry import SessionRegistry
from answer_engine.core.answering.stream_session import SessionState, StreamSession
from answer_engine.core.error_classification import classify_exception, is_fallback_eligible
from answer_engine.core.exceptions import (
    AnswerEngineException,
    InvalidInputError,
    UpstreamError,
    UpstreamPermanentError,
    UpstreamTransientError,
    UpstreamUnavailableError,
)
from answer_engine.core.retrieval.retrieval_engine import RetrievalEngine
from answer_engine.core.retry_policy import SleepFn
from answer_engine.models.retrieval import RetrievalOptions, RetrievalScope
from answer_engine.models.streaming import HistoryMessage, StreamEventType

logger = logging.getLogger(__name__)


def error_code(error: BaseException) -> str:
    """Stable client-facing code for an error event."""
    if isinstance(error, InvalidInputError):
        return "INVALID_INPUT"
    if isinstance(error, UpstreamPermanentError):
        return "UPSTREAM_AUTH" if error.auth else "UPSTREAM_REJECTED"
    if isinstance(error, UpstreamUnavailableError):
        return "UPSTREAM_UNAVAILABLE"
    if isinstance(error, UpstreamError):
        return "UPSTREAM_ERROR"
    if isinstance(error, AnswerEngineException):
        return "PROCESSING_ERROR"
    return "INTERNAL_ERROR"


class AnswerController:
    """Run streaming answer sessions."""

    def __init__(
        self,
        provider: LLMProvider,
        retrieval_engine: RetrievalEngine,
        registry: SessionRegistry | None = None,
        max_retries: int = 3,
        base_delay: float = 0.5,
        max_question_length: int = 2000,
        max_history_messages: int = 10,
        max_context_tokens: int = 6000,
        follow_ups_enabled: bool = True,
        max_follow_ups: int = 4,
        sleep: SleepFn = asyncio.sleep,
        tracer=None,
    ) -> None:
        """
        Initialize controller.

        Args:
            provider: Completion provider (stream and complete)
            retrieval_engine: Grounding source
            registry: Live session registry
            max_retries: Streaming retries for transient failures
            base_delay: First retry delay in seconds, doubled per retry
            max_question_length: Longest accepted question in characters
            max_history_messages: History turns included in the prompt
            max_context_tokens: Token budget for grounding excerpts
            follow_ups_enabled: Generate follow-up questions on completion
            max_follow_ups: Maximum follow-up questions
            sleep: Awaitable sleep used between retries
            tracer: Optional LangfuseTracer
        """
        self._provider = provider
        self._retrieval_engine = retrieval_engine
        self.registry = registry or SessionRegistry()
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_question_length = max_question_length
        self.max_history_messages = max_history_messages
        self.max_context_tokens = max_context_tokens
        self.follow_ups_enabled = follow_ups_enabled
        self.max_follow_ups = max_follow_ups
        self._sleep = sleep
        self._tracer = tracer

    @classmethod
    def from_settings(
        cls,
        provider: LLMProvider,
        retrieval_engine: RetrievalEngine,
        settings: StreamingSettings,
        registry: SessionRegistry | None = None,
        tracer=None,
    ) -> "AnswerController":
        return cls(
            provider,
            retrieval_engine,
            registry=registry or SessionRegistry(settings.idle_timeout_seconds),
            max_retries=settings.max_retries,
            base_delay=settings.base_delay_seconds,
            max_question_length=settings.max_question_length,
            max_history_messages=settings.max_history_messages,
            max_context_tokens=settings.max_context_tokens,
            follow_ups_enabled=settings.follow_ups_enabled,
            max_follow_ups=settings.max_follow_ups,
            tracer=tracer,
        )

    def start(
        self,
        question: str,
        owner_id: str,
        scope: RetrievalScope | None = None,
        options: RetrievalOptions | None = None,
        history: list[HistoryMessage] | None = None,
        session_id: str | None = None,
    ) -> StreamSession:
        """
        Validate a question and start its session.

        Validation happens before any upstream call.

        Args:
            question: User question
            owner_id: Requesting user
            scope: Optional topic/document restriction
            options: Retrieval options
            history: Prior conversation turns
            session_id: Client-chosen session id

        Returns:
            StreamSession: Registered session whose task is running

        Raises:
            InvalidInputError: Empty or over-long question, missing owner,
                both sources disabled, or a session id this owner already uses
        """
        options = options or RetrievalOptions()
        question = (question or "").strip()
        if not question:
            raise InvalidInputError("Question is required", field="question")
        if len(question) > self.max_question_length:
            raise InvalidInputError(
                f"Question is too long (max {self.max_question_length} characters)",
                field="question",
                details={"length": len(question)},
            )
        if not owner_id:
            raise InvalidInputError("owner_id is required", field="owner_id")
        if not options.enable_docs and not options.enable_web:
            raise InvalidInputError("At least one of enable_docs or enable_web must be set", field="options")
        if session_id is not None and self.registry.has(session_id, owner_id):
            raise InvalidInputError("Session id already in use", field="session_id")

        session = StreamSession(question=question, owner_id=owner_id, session_id=session_id)
        self.registry.register(session)
        session.task = asyncio.create_task(self._run(session, scope, options, history))
        logger.info(
            f"{__name__}:start - Session started",
            extra={"session_id": session.session_id, "owner_id": owner_id, "question_length": len(question)},
        )
        return session

    async def events(self, session: StreamSession) -> AsyncIterator:
        """
        Client event stream of a session.

        Closing the iterator early (client disconnect) cancels the session.

        Yields:
            StreamEvent: chunk, state, citations, done and error events
        """
        try:
            while True:
                event = await session.next_event()
                if event is None:
                    return
                yield event
        finally:
            if not session.is_terminal:
                self.registry.cancel(session)

    def pause(self, session_id: str, owner_id: str | None = None) -> StreamSession:
        session = self.registry.get(session_id, owner_id)
        session.pause()
        return session

    def resume(self, session_id: str, owner_id: str | None = None) -> StreamSession:
        session = self.registry.get(session_id, owner_id)
        session.resume()
        return session

    def cancel(self, session_id: str, owner_id: str | None = None) -> StreamSession:
        session = self.registry.get(session_id, owner_id)
        self.registry.cancel(session)
        return session

    async def _run(
        self,
        session: StreamSession,
        scope: RetrievalScope | None,
        options: RetrievalOptions,
        history: list[HistoryMessage] | None,
    ) -> None:
        try:
            session.set_active()
            logger.info(f"{__name__}:_run - Step 1: Retrieving context", extra={"session_id": session.session_id})
            session.results = await self._retrieval_engine.retrieve(session.question, session.owner_id, scope, options)

            messages = build_answer_messages(
                session.question,
                session.results,
                history=history,
                max_history_messages=self.max_history_messages,
                max_context_tokens=self.max_context_tokens,
            )

            logger.info(f"{__name__}:_run - Step 2: Streaming answer", extra={"session_id": session.session_id})
            await self._generate(session, messages)

            # buffered chunks go out before the final events
            await session.wait_unpaused()
            if session.is_terminal:
                return
            await self._complete(session)
        except asyncio.CancelledError:
            session.close(SessionState.CANCELLED)
            raise
        except AnswerEngineException as e:
            self._fail(session, e)
        except Exception as e:
            logger.exception(
                f"{__name__}:_run - Unexpected failure",
                extra={"session_id": session.session_id, "error_type": type(e).__name__},
            )
            self._fail(session, e)
        finally:
            self.registry.remove(session)
            if self._tracer is not None:
                self._tracer.trace_answer(
                    session.session_id,
                    session.owner_id,
                    session.question,
                    session.answer,
                    session.state.value,
                    session.retry_count,
                )

    def _before_retry(self, session: StreamSession):
        def hook(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            session.retry_count += 1
            session.state = SessionState.ERRORED
            session.emit_state(error=str(error) if error else None)
            logger.warning(
                f"{__name__}:_generate - Transient upstream failure, retrying",
                extra={
                    "session_id": session.session_id,
                    "retry": session.retry_count,
                    "error_msg": str(error) if error else None,
                },
            )

        return hook

    async def _stream_once(self, session: StreamSession, messages: list[BaseMessage]) -> None:
        try:
            async for piece in self._provider.stream(messages):
                session.deliver(piece)
        except UpstreamError:
            raise
        except Exception as e:
            raise classify_exception(e, "completion") from e

    async def _generate(self, session: StreamSession, messages: list[BaseMessage]) -> None:
        """Stream the answer with retries, then fall back to one non-streaming call."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(UpstreamTransientError),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            sleep=self._sleep,
            before_sleep=self._before_retry(session),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        session.reset_answer()
                        session.set_active(reset=True)
                    await self._stream_once(session, messages)
            return
        except UpstreamError as e:
            if not is_fallback_eligible(e):
                raise
            last_error = e

        logger.warning(
            f"{__name__}:_generate - Streaming retries exhausted, using non-streaming fallback",
            extra={"session_id": session.session_id, "retries": session.retry_count, "error_msg": str(last_error)},
        )
        session.reset_answer()
        session.set_active(reset=True, fallback=True)
        try:
            text = await self._provider.complete(messages)
        except Exception as e:
            raise UpstreamUnavailableError(
                "Completion unavailable after retries and fallback",
                service="completion",
                attempts=session.retry_count + 2,
                details={"last_error": str(e)},
            ) from e
        session.fallback_used = True
        session.deliver(text)

    async def _complete(self, session: StreamSession) -> None:
        """Attach citations and follow-ups, then finish the session."""
        answer = session.answer
        session.state = SessionState.COMPLETED
        citations = extract_citations(answer, session.results)
        session.emit(StreamEventType.CITATIONS, citations=[c.model_dump(mode="json") for c in citations])

        follow_ups: list[str] = []
        if self.follow_ups_enabled:
            follow_ups = await generate_follow_ups(self._provider, session.question, answer, self.max_follow_ups)

        session.emit(
            StreamEventType.DONE,
            answer=answer,
            follow_ups=follow_ups,
            sources=session.results.to_dict() if session.results else None,
            no_context=session.results.no_context if session.results else True,
            retry_count=session.retry_count,
            fallback_used=session.fallback_used,
        )
        session.close(SessionState.COMPLETED)
        logger.info(
            f"{__name__}:_complete - Session completed",
            extra={
                "session_id": session.session_id,
                "answer_length": len(answer),
                "citations": len(citations),
                "retries": session.retry_count,
            },
        )

    def _fail(self, session: StreamSession, error: BaseException) -> None:
        if session.is_terminal:
            return
        logger.error(
            f"{__name__}:_run - Session errored",
            extra={"session_id": session.session_id, "error_type": type(error).__name__, "error_msg": str(error)},
        )
        session.state = SessionState.ERRORED
        session.emit(
            StreamEventType.ERROR,
            code=error_code(error),
            message=str(error),
            retryable=isinstance(error, UpstreamError) and is_fallback_eligible(error),
        )
        session.close(SessionState.ERRORED)
