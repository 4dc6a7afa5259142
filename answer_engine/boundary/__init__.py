"""
Boundary layer.

Adapters to external collaborators: the document state database, the
vector index, LLM/embedding providers and web search.
"""
