"""
LLM provider variants and factory.

Google Gemini via langchain_google_genai and OpenAI via langchain_openai,
selected by LLMSettings.provider.

Dependencies: langchain_google_genai, langchain_openai, answer_engine.configs
System role: Construction-time provider selection
"""

import logging
from functools import lru_cache

from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings
from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from answer_engine.boundary.llm.base import LangChainProvider, LLMProvider
from answer_engine.configs import get_settings
from answer_engine.configs.embedding import EmbeddingSettings
from answer_engine.configs.llm import LLMSettings
from answer_engine.observability.langfuse_tracer import get_langchain_callbacks

logger = logging.getLogger(__name__)


class GoogleGenAIProvider(LangChainProvider):
    """Gemini chat and embeddings with a fixed output dimensionality."""

    name = "google"

    def __init__(self, chat_model, embeddings, output_dimensionality: int, callbacks: list | None = None) -> None:
        super().__init__(chat_model, embeddings, callbacks)
        self._output_dimensionality = output_dimensionality

    async def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        # constructor-level dimensionality is ignored by the client, pass per call
        return await self._embeddings.aembed_documents(
            texts,
            output_dimensionality=self._output_dimensionality,
        )


class OpenAIProvider(LangChainProvider):
    """OpenAI chat and embeddings."""

    name = "openai"


def build_llm_provider(
    llm_settings: LLMSettings,
    embedding_settings: EmbeddingSettings,
    callbacks: list | None = None,
) -> LLMProvider:
    """
    Construct the configured provider variant.

    Args:
        llm_settings: Provider selection and model parameters
        embedding_settings: Embedding dimensionality
        callbacks: Optional LangChain callbacks attached to completions

    Returns:
        LLMProvider: Ready-to-use provider

    Raises:
        ValueError: Unknown provider name
    """
    logger.info(
        f"{__name__}:build_llm_provider - Selecting provider",
        extra={"provider": llm_settings.provider, "model": llm_settings.model},
    )

    if llm_settings.provider == "google":
        chat_model = ChatGoogleGenerativeAI(
            model=llm_settings.model,
            temperature=llm_settings.temperature,
            google_api_key=llm_settings.google_api_key,
            timeout=llm_settings.timeout_seconds,
            max_retries=1,
        )
        embeddings = GoogleGenerativeAIEmbeddings(
            model=llm_settings.embedding_model,
            google_api_key=llm_settings.google_api_key,
        )
        return GoogleGenAIProvider(
            chat_model,
            embeddings,
            output_dimensionality=embedding_settings.dimensions,
            callbacks=callbacks,
        )

    if llm_settings.provider == "openai":
        chat_model = ChatOpenAI(
            model=llm_settings.model,
            temperature=llm_settings.temperature,
            api_key=llm_settings.openai_api_key,
            timeout=llm_settings.timeout_seconds,
            max_retries=1,
        )
        embeddings = OpenAIEmbeddings(
            model=llm_settings.embedding_model,
            api_key=llm_settings.openai_api_key,
            dimensions=embedding_settings.dimensions,
        )
        return OpenAIProvider(chat_model, embeddings, callbacks=callbacks)

    raise ValueError(f"Unknown LLM provider: {llm_settings.provider}")


@lru_cache
def get_llm_provider() -> LLMProvider:
    """
    Get the process-wide provider built from settings.

    Returns:
        LLMProvider: Cached provider instance
    """
    settings = get_settings()
    return build_llm_provider(settings.llm, settings.embedding, callbacks=get_langchain_callbacks())
