"""
Citation extraction.

Finds ``[Document N]`` and ``[Web Source N]`` markers (the latter
optionally followed by ``(url)``) in answer text and resolves them against
the numbered retrieval groups used to build the prompt.

Dependencies: answer_engine.models
System role: Structured citation metadata for the final stream events
"""

import re

from answer_engine.models.citation import Citation
from answer_engine.models.retrieval import MergedResults, SourceType

CITATION_PATTERN = re.compile(
    r"\[(?P<kind>Document|Web Source)\s+(?P<index>\d+)\](?:\((?P<url>[^)\s]+)\))?",
    re.IGNORECASE,
)


def extract_citations(text: str, results: MergedResults) -> list[Citation]:
    """
    Extract citations in order of first appearance.

    Markers whose number has no matching source are dropped; repeated
    markers for the same source are reported once.

    Args:
        text: Full answer text
        results: Retrieval outcome the prompt was built from

    Returns:
        list[Citation]: Resolved, de-duplicated citations
    """
    citations: list[Citation] = []
    seen: set[str] = set()

    for match in CITATION_PATTERN.finditer(text or ""):
        index = int(match.group("index"))
        is_document = match.group("kind").lower() == "document"
        group = results.documents if is_document else results.web
        if index < 1 or index > len(group):
            continue
        source = group[index - 1]
        if source.citation_ref in seen:
            continue
        seen.add(source.citation_ref)

        citations.append(
            Citation(
                marker=f"[Document {index}]" if is_document else f"[Web Source {index}]",
                source_type=SourceType.DOCUMENT if is_document else SourceType.WEB,
                index=index,
                citation_ref=source.citation_ref,
                document_id=source.document_id,
                chunk_id=source.chunk_id,
                title=source.title,
                url=source.url,
                excerpt=source.excerpt[:200] if source.excerpt else None,
            )
        )
    return citations
