"""
Tavily web search client.

Async HTTP client for the Tavily search API with the shared retry policy
and a bounded in-process result cache.

Dependencies: httpx, answer_engine.core.retry_policy
System role: Web path of hybrid retrieval
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from functools import lru_cache
from typing import Any

import httpx
from pydantic import BaseModel

from answer_engine.configs import get_settings
from answer_engine.configs.web_search import WebSearchSettings
from answer_engine.core.error_classification import classify_exception
from answer_engine.core.exceptions import InvalidInputError
from answer_engine.core.retry_policy import SleepFn, call_with_retries

logger = logging.getLogger(__name__)


class WebSearchHit(BaseModel):
    """One web search result as returned by the provider."""

    title: str
    url: str
    snippet: str
    score: float = 0.0
    published_date: str | None = None


class WebSearchClient(ABC):
    """Web search provider interface."""

    @abstractmethod
    async def search(
        self,
        query: str,
        max_results: int = 5,
        include_domains: list[str] | None = None,
        exclude_domains: list[str] | None = None,
    ) -> list[WebSearchHit]:
        """Return up to ``max_results`` hits in provider relevance order."""


class TavilySearchClient(WebSearchClient):
    """Tavily search over httpx with retries and a TTL cache."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.tavily.com",
        timeout: float = 15.0,
        max_attempts: int = 3,
        cache_ttl_seconds: int = 3600,
        cache_max_entries: int = 1000,
        max_query_length: int = 500,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """
        Initialize client.

        Args:
            api_key: Tavily API key; searches return nothing when unset
            base_url: API base URL
            timeout: HTTP timeout per request in seconds
            max_attempts: Total attempts for transient failures
            cache_ttl_seconds: Lifetime of cached results (0 disables the cache)
            cache_max_entries: Cache capacity, oldest entries evicted first
            max_query_length: Queries are truncated to this many characters
            http_client: Preconfigured client (tests inject a MockTransport)
            sleep: Awaitable sleep used between retries
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._cache_ttl = cache_ttl_seconds
        self._cache_max_entries = cache_max_entries
        self._max_query_length = max_query_length
        self._http_client = http_client
        self._sleep = sleep
        self._cache: OrderedDict[tuple, tuple[float, list[WebSearchHit]]] = OrderedDict()

    @classmethod
    def from_settings(cls, settings: WebSearchSettings) -> "TavilySearchClient":
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            max_attempts=settings.max_attempts,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            cache_max_entries=settings.cache_max_entries,
            max_query_length=settings.max_query_length,
        )

    def _cache_get(self, key: tuple) -> list[WebSearchHit] | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, hits = entry
        if expires_at < time.monotonic():
            del self._cache[key]
            return None
        return hits

    def _cache_put(self, key: tuple, hits: list[WebSearchHit]) -> None:
        if self._cache_ttl <= 0:
            return
        self._cache[key] = (time.monotonic() + self._cache_ttl, hits)
        self._cache.move_to_end(key)
        while len(self._cache) > self._cache_max_entries:
            self._cache.popitem(last=False)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            if self._http_client is not None:
                response = await self._http_client.post(f"{self._base_url}/search", json=payload)
                response.raise_for_status()
                return response.json()
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(f"{self._base_url}/search", json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            raise classify_exception(e, "web_search") from e

    async def search(
        self,
        query: str,
        max_results: int = 5,
        include_domains: list[str] | None = None,
        exclude_domains: list[str] | None = None,
    ) -> list[WebSearchHit]:
        """
        Search the web.

        Args:
            query: Search query, truncated to the configured maximum
            max_results: Maximum hits
            include_domains: Restrict results to these domains
            exclude_domains: Drop results from these domains

        Returns:
            list[WebSearchHit]: Provider-ordered hits (empty when unconfigured)

        Raises:
            InvalidInputError: Empty query
            UpstreamPermanentError: Rejected request (bad key, malformed query)
            UpstreamUnavailableError: Transient failures outlasted retries
        """
        query = (query or "").strip()
        if not query:
            raise InvalidInputError("Search query is required", field="query")
        if max_results <= 0:
            return []
        query = query[: self._max_query_length]

        key = (
            query.lower(),
            max_results,
            tuple(sorted(include_domains or ())),
            tuple(sorted(exclude_domains or ())),
        )
        cached = self._cache_get(key)
        if cached is not None:
            logger.info(f"{__name__}:search - Cache hit", extra={"query": query})
            return list(cached)

        if not self._api_key:
            logger.warning(f"{__name__}:search - Tavily API key not configured, returning no results")
            return []

        payload: dict[str, Any] = {
            "api_key": self._api_key,
            "query": query,
            "max_results": max_results,
            "search_depth": "basic",
            "include_raw_content": False,
        }
        if include_domains:
            payload["include_domains"] = include_domains
        if exclude_domains:
            payload["exclude_domains"] = exclude_domains

        logger.info(f"{__name__}:search - Performing Tavily search", extra={"query": query, "max_results": max_results})
        data = await call_with_retries(
            lambda: self._post(payload),
            service="web_search",
            max_retries=self._max_attempts - 1,
            base_delay=0.5,
            timeout=self._timeout,
            sleep=self._sleep,
        )

        hits = [
            WebSearchHit(
                title=item.get("title") or "",
                url=item["url"],
                snippet=item.get("content") or "",
                score=float(item.get("score") or 0.0),
                published_date=item.get("published_date"),
            )
            for item in data.get("results", [])
            if item.get("url")
        ][:max_results]
        self._cache_put(key, hits)
        return list(hits)


@lru_cache
def get_web_search_client() -> WebSearchClient:
    """Get the configured web search client singleton."""
    return TavilySearchClient.from_settings(get_settings().web_search)
