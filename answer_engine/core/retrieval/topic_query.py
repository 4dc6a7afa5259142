"""
Topic-scoped web query helpers.

Web providers do not reliably honor phrase bias, so the topic is both
prepended to the query and enforced on the returned hits.

Dependencies: None
System role: Web path query shaping and client-side topic filter
"""

from answer_engine.boundary.web.tavily_client import WebSearchHit


def quote_topic(topic: str) -> str:
    """Quote multi-word topics so they are searched as a phrase."""
    topic = " ".join(topic.split())
    if " " in topic:
        return f'"{topic}"'
    return topic


def build_topic_query(query: str, topic: str | None) -> str:
    """
    Prefix the query with the topic phrase.

    Args:
        query: User query
        topic: Optional topic phrase

    Returns:
        str: ``"<topic>" <query>`` when a topic is set, else the trimmed query
    """
    query = query.strip()
    if not topic or not topic.strip():
        return query
    return f"{quote_topic(topic)} {query}"


def matches_topic(hit: WebSearchHit, topic: str | None) -> bool:
    """Whether the topic phrase appears in the hit's title or body (case-insensitive)."""
    if not topic or not topic.strip():
        return True
    needle = " ".join(topic.split()).lower()
    haystack = " ".join(f"{hit.title} {hit.snippet}".split()).lower()
    return needle in haystack
