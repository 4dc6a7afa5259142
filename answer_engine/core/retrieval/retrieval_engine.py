"""
Hybrid retrieval engine.

Runs the document path (query embedding + owner-scoped vector search with
one relaxed-threshold retry) and the web path (topic-biased query +
client-side topic filter) concurrently, then deduplicates each group by
citation reference and caps it. Document and web results stay in separate
groups because their scores are not comparable.

Dependencies: answer_engine.boundary.vdb, answer_engine.boundary.web, embedding batcher
System role: Grounding source for the answer controller
"""

import asyncio
import logging
import time
from urllib.parse import urlsplit, urlunsplit

from answer_engine.boundary.vdb.vector_index_client import VectorIndexClient
from answer_engine.boundary.vdb.vector_schemas import VectorFilter
from answer_engine.boundary.web.tavily_client import WebSearchClient, WebSearchHit
from answer_engine.configs.retrieval import RetrievalSettings
from answer_engine.core.document_processing.tasks.embedding_task import EmbeddingBatcher
from answer_engine.core.exceptions import (
    InvalidInputError,
    UpstreamError,
    UpstreamUnavailableError,
    VectorStoreError,
)
from answer_engine.core.retrieval.topic_query import build_topic_query, matches_topic
from answer_engine.models.retrieval import (
    MergedResults,
    RetrievalOptions,
    RetrievalResult,
    RetrievalScope,
    SourceType,
)

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Lowercase scheme and host, drop fragment and trailing slash."""
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def web_citation_ref(url: str) -> str:
    """Normalized citation reference of a web result."""
    return f"web:{normalize_url(url)}"


def dedupe(results: list[RetrievalResult]) -> list[RetrievalResult]:
    """Keep the first result per citation reference, preserving order."""
    seen: set[str] = set()
    unique = []
    for result in results:
        if result.citation_ref in seen:
            continue
        seen.add(result.citation_ref)
        unique.append(result)
    return unique


class RetrievalEngine:
    """Retrieve grounding for a question from the owner's documents and the web."""

    def __init__(
        self,
        embedding_batcher: EmbeddingBatcher,
        vector_index: VectorIndexClient,
        web_search: WebSearchClient,
        relax_step: float = 0.2,
        timeout: float | None = 20.0,
        default_options: RetrievalOptions | None = None,
        tracer=None,
    ) -> None:
        """
        Initialize engine.

        Args:
            embedding_batcher: Embeds the query
            vector_index: Owner-scoped vector search
            web_search: Web search provider
            relax_step: Amount subtracted from min_score for the relaxed retry
            timeout: Timeout per source in seconds
            default_options: Options used for fields a request leaves unset
            tracer: Optional LangfuseTracer
        """
        self._embedding_batcher = embedding_batcher
        self._vector_index = vector_index
        self._web_search = web_search
        self.relax_step = relax_step
        self._timeout = timeout
        self.default_options = default_options or RetrievalOptions()
        self._tracer = tracer

    @classmethod
    def from_settings(
        cls,
        embedding_batcher: EmbeddingBatcher,
        vector_index: VectorIndexClient,
        web_search: WebSearchClient,
        settings: RetrievalSettings,
        tracer=None,
    ) -> "RetrievalEngine":
        return cls(
            embedding_batcher,
            vector_index,
            web_search,
            relax_step=settings.relax_step,
            timeout=settings.timeout_seconds,
            default_options=RetrievalOptions(
                max_doc_chunks=settings.max_doc_chunks,
                min_score=settings.min_score,
                max_web_results=settings.max_web_results,
            ),
            tracer=tracer,
        )

    async def retrieve(
        self,
        query: str,
        owner_id: str,
        scope: RetrievalScope | None = None,
        options: RetrievalOptions | None = None,
    ) -> MergedResults:
        """
        Retrieve document and web grounding.

        Args:
            query: User question
            owner_id: Requesting user; every document result is scoped to it
            scope: Optional topic and document restriction
            options: Per-request limits and source switches

        Returns:
            MergedResults: Two labeled groups; ``no_context`` when both are empty

        Raises:
            InvalidInputError: Empty query, missing owner, or both sources disabled
            UpstreamError / VectorStoreError: Every enabled source failed
        """
        scope = scope or RetrievalScope()
        options = self.resolve_options(options)

        if not options.enable_docs and not options.enable_web:
            raise InvalidInputError(
                "At least one of enable_docs or enable_web must be set",
                field="options",
            )
        if not query or not query.strip():
            raise InvalidInputError("Query is required", field="query")
        if not owner_id:
            raise InvalidInputError("owner_id is required", field="owner_id")

        start_time = time.perf_counter()
        merged = MergedResults()

        tasks = []
        if options.enable_docs:
            tasks.append(self._with_timeout(self._search_documents(query, owner_id, scope, options, merged)))
        if options.enable_web:
            tasks.append(self._with_timeout(self._search_web(query, scope, options)))
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        doc_outcome = outcomes.pop(0) if options.enable_docs else []
        web_outcome = outcomes.pop(0) if options.enable_web else []
        failures: list[BaseException] = []

        if isinstance(doc_outcome, BaseException):
            self._check_degradable(doc_outcome)
            logger.warning(
                f"{__name__}:retrieve - Document path unavailable, continuing without documents",
                extra={"owner_id": owner_id, "error_type": type(doc_outcome).__name__, "error_msg": str(doc_outcome)},
            )
            merged.document_path_degraded = True
            failures.append(doc_outcome)
        else:
            merged.documents = dedupe(doc_outcome)[: options.max_doc_chunks]

        if isinstance(web_outcome, BaseException):
            self._check_degradable(web_outcome)
            logger.warning(
                f"{__name__}:retrieve - Web path unavailable, continuing without web results",
                extra={"error_type": type(web_outcome).__name__, "error_msg": str(web_outcome)},
            )
            merged.web_path_degraded = True
            failures.append(web_outcome)
        else:
            merged.web = dedupe(web_outcome)[: options.max_web_results]

        if failures and len(failures) == len(tasks):
            raise failures[0]

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{__name__}:retrieve - Retrieval complete",
            extra={
                "owner_id": owner_id,
                "documents": len(merged.documents),
                "web": len(merged.web),
                "relaxed": merged.relaxed_threshold_used,
                "no_context": merged.no_context,
                "latency_ms": round(latency_ms, 2),
            },
        )
        if self._tracer is not None:
            self._tracer.trace_retrieval(query, owner_id, len(merged.documents), len(merged.web), latency_ms)
        return merged

    def resolve_options(self, options: RetrievalOptions | None) -> RetrievalOptions:
        """Overlay the fields a request set explicitly on the configured defaults."""
        if options is None:
            return self.default_options
        return self.default_options.model_copy(update=options.model_dump(exclude_unset=True))

    @staticmethod
    def _check_degradable(error: BaseException) -> None:
        # only upstream and index failures degrade a path; anything else propagates
        if not isinstance(error, (UpstreamError, VectorStoreError)):
            raise error

    async def _with_timeout(self, coro):
        if self._timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, self._timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamUnavailableError("Retrieval source timed out", details={"timeout_s": self._timeout}) from e

    async def _search_documents(
        self,
        query: str,
        owner_id: str,
        scope: RetrievalScope,
        options: RetrievalOptions,
        merged: MergedResults,
    ) -> list[RetrievalResult]:
        """Owner-scoped vector search with a single relaxed-threshold retry."""
        if options.max_doc_chunks <= 0 or scope.document_ids == []:
            return []

        query_vector = await self._embedding_batcher.embed_one(query)
        vector_filter = VectorFilter(
            owner_id=owner_id,
            topic_id=scope.topic_id,
            document_ids=scope.document_ids,
        )

        results = await self._vector_index.search(
            query_vector, vector_filter, top_k=options.max_doc_chunks, min_score=options.min_score
        )
        if results:
            return results

        step = options.relax_step if options.relax_step is not None else self.relax_step
        relaxed = max(0.0, options.min_score - step)
        if relaxed >= options.min_score:
            return []

        logger.info(
            f"{__name__}:_search_documents - No matches, retrying with relaxed threshold",
            extra={"owner_id": owner_id, "min_score": options.min_score, "relaxed_min_score": relaxed},
        )
        results = await self._vector_index.search(
            query_vector, vector_filter, top_k=options.max_doc_chunks, min_score=relaxed
        )
        if results:
            merged.relaxed_threshold_used = True
        return results

    async def _search_web(
        self,
        query: str,
        scope: RetrievalScope,
        options: RetrievalOptions,
    ) -> list[RetrievalResult]:
        """Topic-biased web search with a mandatory client-side topic filter."""
        if options.max_web_results <= 0:
            return []

        topic = scope.topic_name
        hits = await self._web_search.search(build_topic_query(query, topic), max_results=options.max_web_results)
        kept = [hit for hit in hits if matches_topic(hit, topic)]
        if len(kept) < len(hits):
            logger.info(
                f"{__name__}:_search_web - Dropped off-topic web results",
                extra={"topic": topic, "returned": len(hits), "kept": len(kept)},
            )
        return [self._web_result(hit) for hit in kept]

    @staticmethod
    def _web_result(hit: WebSearchHit) -> RetrievalResult:
        return RetrievalResult(
            source_type=SourceType.WEB,
            score=hit.score,
            excerpt=hit.snippet,
            citation_ref=web_citation_ref(hit.url),
            title=hit.title,
            url=hit.url,
        )

