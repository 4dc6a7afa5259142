"""
WebSocket streaming answer endpoint.

Provides real-time answer streaming with pause, resume and cancel control
over the same connection.

Routes: WS /ws/answer

Dependencies: answer_engine.application.services.answer_service
System role: WebSocket streaming HTTP API
"""

import asyncio
import json
import logging
import uuid
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from answer_engine.api.deps import get_answer_service
from answer_engine.application.services.answer_service import AnswerService
from answer_engine.core.answering.answer_controller import error_code
from answer_engine.core.exceptions import AnswerEngineException, InvalidInputError, SessionNotFoundError
from answer_engine.models.retrieval import RetrievalOptions, RetrievalScope
from answer_engine.models.streaming import ClientAskEvent, ClientEventType, StreamEventType

logger = logging.getLogger(__name__)
router = APIRouter(tags=["streaming"])


class AnswerConnection:
    """One WebSocket connection and the answer sessions it started."""

    def __init__(self, websocket: WebSocket, answer_service: AnswerService) -> None:
        self.websocket = websocket
        self.answer_service = answer_service
        self.connection_id = str(uuid.uuid4())
        self.current_session_id: str | None = None
        self._tasks: dict[str, asyncio.Task] = {}
        self._owners: dict[str, str] = {}
        self._send_lock = asyncio.Lock()

    async def send(self, event: StreamEventType, data: dict[str, Any]) -> None:
        async with self._send_lock:
            await self.websocket.send_json({"event": event.value, "data": data})

    async def send_error(self, code: str, message: str, session_id: str | None = None) -> None:
        data: dict[str, Any] = {"code": code, "message": message}
        if session_id:
            data["session_id"] = session_id
        await self.send(StreamEventType.ERROR, data)

    def ask(self, payload: dict[str, Any], session_id: str | None) -> str:
        """
        Start streaming an answer in the background.

        Raises:
            ValidationError: Malformed ask payload
            InvalidInputError: Session id still streaming on this connection
        """
        ask = ClientAskEvent.model_validate(payload)
        if session_id is not None and session_id in self._tasks:
            raise InvalidInputError("Session id already in use", field="session_id")
        options = RetrievalOptions(
            **ask.model_dump(
                include={"enable_docs", "enable_web", "max_doc_chunks", "max_web_results", "min_score"},
                exclude_none=True,
            )
        )
        scope = RetrievalScope(topic_id=ask.topic_id, topic_name=ask.topic_name, document_ids=ask.document_ids)
        session_id = session_id or str(uuid.uuid4())
        self.current_session_id = session_id
        self._owners[session_id] = ask.owner_id
        self._tasks[session_id] = asyncio.create_task(self._forward(ask, scope, options, session_id))
        return session_id

    async def _forward(
        self,
        ask: ClientAskEvent,
        scope: RetrievalScope,
        options: RetrievalOptions,
        session_id: str,
    ) -> None:
        event_count = 0
        try:
            async for event in self.answer_service.answer_question(
                ask.question,
                ask.owner_id,
                scope=scope,
                options=options,
                history=ask.history,
                session_id=session_id,
            ):
                event_count += 1
                async with self._send_lock:
                    await self.websocket.send_json(event.to_dict())
        except AnswerEngineException as e:
            logger.warning(
                f"{__name__}:_forward - Question rejected",
                extra={"session_id": session_id, "error_type": type(e).__name__, "error_msg": str(e)},
            )
            await self.send_error(error_code(e), e.message, session_id)
        except WebSocketDisconnect:
            logger.info(f"{__name__}:_forward - Client gone while streaming", extra={"session_id": session_id})
        finally:
            self._tasks.pop(session_id, None)
            self._owners.pop(session_id, None)
            logger.debug(
                f"{__name__}:_forward - Forwarding finished",
                extra={"session_id": session_id, "total_events": event_count},
            )

    async def control(self, event_type: str, session_id: str | None) -> None:
        """Apply pause, resume or cancel to a session of this connection."""
        session_id = session_id or self.current_session_id
        if not session_id:
            await self.send_error("NO_SESSION", "No active session")
            return
        if session_id not in self._tasks:
            await self.send_error("SESSION_NOT_FOUND", SessionNotFoundError(session_id).message, session_id)
            return
        owner_id = self._owners[session_id]
        try:
            if event_type == ClientEventType.PAUSE.value:
                state = self.answer_service.pause_session(session_id, owner_id)
            elif event_type == ClientEventType.RESUME.value:
                state = self.answer_service.resume_session(session_id, owner_id)
            else:
                state = self.answer_service.cancel_session(session_id, owner_id)
        except AnswerEngineException as e:
            code = "SESSION_NOT_FOUND" if isinstance(e, SessionNotFoundError) else "INVALID_SESSION_STATE"
            await self.send_error(code, e.message, session_id)
            return
        logger.info(
            f"{__name__}:control - Session control applied",
            extra={"session_id": session_id, "action": event_type, "state": state},
        )

    async def close(self) -> None:
        """Cancel forwarding tasks; closing their streams cancels the sessions."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._owners.clear()


@router.websocket("/ws/answer")
async def websocket_answer(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for streaming answers.

    Client sends:
        {"event": "ask", "data": {"question": "...", "owner_id": "...", ...}, "session_id": "optional"}
        {"event": "pause" | "resume" | "cancel", "session_id": "optional, defaults to last ask"}
        {"event": "ping"}

    Server sends:
        {"event": "connected", "data": {"connection_id": "..."}}
        {"event": "state", "data": {"session_id": "...", "state": "streaming", ...}}
        {"event": "chunk", "data": {"session_id": "...", "text": "...", "index": 0}}
        {"event": "citations", "data": {"session_id": "...", "citations": [...]}}
        {"event": "done", "data": {"session_id": "...", "answer": "...", "follow_ups": [...], ...}}
        {"event": "error", "data": {"code": "...", "message": "..."}}

    Args:
        websocket: WebSocket connection
    """
    await websocket.accept()
    connection = AnswerConnection(websocket, get_answer_service())
    logger.info(
        "WebSocket connection established",
        extra={"connection_id": connection.connection_id, "client_host": websocket.client},
    )
    await connection.send(StreamEventType.CONNECTED, {"connection_id": connection.connection_id})

    try:
        while True:
            raw_data = await websocket.receive_text()

            try:
                message = json.loads(raw_data)
            except json.JSONDecodeError as e:
                logger.warning(
                    "Failed to parse JSON",
                    extra={"connection_id": connection.connection_id, "error_msg": str(e), "raw_data_preview": raw_data[:50]},
                )
                await connection.send_error("INVALID_JSON", "Invalid JSON format")
                continue
            if not isinstance(message, dict):
                await connection.send_error("INVALID_JSON", "Expected a JSON object")
                continue

            event_type = message.get("event")
            session_id = message.get("session_id")

            if event_type == ClientEventType.PING.value:
                await connection.send(StreamEventType.PONG, {})
                continue

            if event_type == ClientEventType.ASK.value:
                try:
                    started = connection.ask(message.get("data") or {}, session_id)
                except ValidationError as e:
                    await connection.send_error("INVALID_INPUT", f"Invalid ask payload: {e.error_count()} error(s)")
                    continue
                except InvalidInputError as e:
                    await connection.send_error(error_code(e), e.message, session_id)
                    continue
                logger.info(
                    "Ask event received",
                    extra={"connection_id": connection.connection_id, "session_id": started},
                )
                continue

            if event_type in (
                ClientEventType.PAUSE.value,
                ClientEventType.RESUME.value,
                ClientEventType.CANCEL.value,
            ):
                await connection.control(event_type, session_id)
                continue

            logger.warning(
                "Unknown event type",
                extra={"connection_id": connection.connection_id, "event_type": str(event_type)},
            )
            await connection.send_error("UNKNOWN_EVENT", f"Unknown event: {event_type}")

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected", extra={"connection_id": connection.connection_id})
    finally:
        await connection.close()
