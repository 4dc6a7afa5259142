"""
Answer engine package.

Retrieval-and-answer pipeline: document chunking and embedding, hybrid
document/web retrieval scoped per owner, and streamed cited answers.
"""
