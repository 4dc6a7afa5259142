"""
Provider capability interface.

A provider exposes three capabilities: batch embedding, single-shot
completion and streamed completion. Concrete variants are chosen once at
construction time; callers never branch on the backend.

Dependencies: langchain_core
System role: Seam between the core and any embedding/completion backend
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

from answer_engine.core.error_classification import classify_exception

logger = logging.getLogger(__name__)


def message_text(content: Any) -> str:
    """Flatten LangChain message content, which may be a list of parts."""
    if isinstance(content, list):
        return "".join(
            item if isinstance(item, str) else (item.get("text", "") if isinstance(item, dict) else str(item))
            for item in content
        )
    return str(content) if content else ""


class LLMProvider(ABC):
    """Embedding and completion capability set."""

    name: str = "abstract"

    @abstractmethod
    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts, one vector per input in input order."""

    @abstractmethod
    async def complete(self, messages: Sequence[BaseMessage]) -> str:
        """Single-shot completion returning the full text."""

    @abstractmethod
    def stream(self, messages: Sequence[BaseMessage]) -> AsyncIterator[str]:
        """Incremental completion; cancelling the consumer aborts the request."""


class LangChainProvider(LLMProvider):
    """
    Provider backed by a LangChain chat model and embeddings client.

    Exceptions raised by the underlying SDKs are translated into the
    upstream error taxonomy before leaving this class.
    """

    name = "langchain"

    def __init__(
        self,
        chat_model: BaseChatModel,
        embeddings: Embeddings,
        callbacks: list | None = None,
    ) -> None:
        """
        Initialize provider with LangChain clients.

        Args:
            chat_model: Chat model supporting ainvoke and astream
            embeddings: Embeddings client supporting aembed_documents
            callbacks: Optional LangChain callback handlers (tracing)
        """
        self._chat_model = chat_model
        self._embeddings = embeddings
        self._callbacks = callbacks or []

    def _config(self) -> dict[str, Any]:
        return {"callbacks": self._callbacks} if self._callbacks else {}

    async def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        return await self._embeddings.aembed_documents(texts)

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        try:
            vectors = await self._embed_documents(list(texts))
        except Exception as e:
            raise classify_exception(e, "embedding") from e
        if len(vectors) != len(texts):
            raise classify_exception(
                ValueError(f"Expected {len(texts)} vectors, received {len(vectors)}"),
                "embedding",
            )
        return vectors

    async def complete(self, messages: Sequence[BaseMessage]) -> str:
        try:
            response = await self._chat_model.ainvoke(list(messages), config=self._config())
        except Exception as e:
            raise classify_exception(e, "completion") from e
        return message_text(response.content)

    async def stream(self, messages: Sequence[BaseMessage]) -> AsyncIterator[str]:
        try:
            async for chunk in self._chat_model.astream(list(messages), config=self._config()):
                text = message_text(chunk.content)
                if text:
                    yield text
        except Exception as e:
            raise classify_exception(e, "completion") from e
