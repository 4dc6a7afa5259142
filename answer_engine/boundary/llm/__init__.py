"""
LLM provider adapters.

Exports: LLMProvider, LangChainProvider, GoogleGenAIProvider, OpenAIProvider, get_llm_provider
"""

from answer_engine.boundary.llm.base import LangChainProvider, LLMProvider, message_text
from answer_engine.boundary.llm.provider_factory import (
    GoogleGenAIProvider,
    OpenAIProvider,
    build_llm_provider,
    get_llm_provider,
)

__all__ = [
    "LLMProvider",
    "LangChainProvider",
    "GoogleGenAIProvider",
    "OpenAIProvider",
    "build_llm_provider",
    "get_llm_provider",
    "message_text",
]
