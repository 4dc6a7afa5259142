"""
Web search boundary.

Exports: WebSearchClient, WebSearchHit, TavilySearchClient, get_web_search_client
"""

from answer_engine.boundary.web.tavily_client import (
    TavilySearchClient,
    WebSearchClient,
    WebSearchHit,
    get_web_search_client,
)

__all__ = ["TavilySearchClient", "WebSearchClient", "WebSearchHit", "get_web_search_client"]
