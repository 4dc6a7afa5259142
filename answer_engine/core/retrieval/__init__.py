"""
Hybrid retrieval over owner documents and the web.

Exports: RetrievalEngine, build_topic_query, matches_topic
"""

from answer_engine.core.retrieval.retrieval_engine import RetrievalEngine
from answer_engine.core.retrieval.topic_query import build_topic_query, matches_topic

__all__ = ["RetrievalEngine", "build_topic_query", "matches_topic"]
