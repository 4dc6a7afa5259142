"""
S3 Vectors index for production retrieval.

Stores chunk vectors in an Amazon S3 Vectors index with filterable
owner/document/topic metadata. Similarity is reported as 1 - cosine
distance. Throttling and 5xx responses are retried a bounded number of
times, then surfaced as IndexUnavailableError.

Dependencies: boto3, tenacity (via core.retry_policy), fastapi.concurrency
System role: Production vector index
"""

import logging
import time
from collections.abc import Sequence
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from answer_engine.boundary.vdb.vector_index_client import VectorIndexClient
from answer_engine.boundary.vdb.vector_schemas import VectorFilter, VectorMetadata, VectorRecord
from answer_engine.core.exceptions import (
    IndexUnavailableError,
    UpstreamError,
    UpstreamPermanentError,
    UpstreamTransientError,
)
from answer_engine.core.retry_policy import call_with_retries

logger = logging.getLogger(__name__)

THROTTLING_CODES = frozenset({
    "ThrottlingException",
    "TooManyRequestsException",
    "ServiceUnavailableException",
    "InternalServerException",
    "RequestTimeout",
})


class S3VectorsIndex(VectorIndexClient):
    """S3 Vectors backed index."""

    def __init__(
        self,
        bucket_name: str,
        index_name: str,
        region: str = "us-east-1",
        batch_size: int = 100,
        max_attempts: int = 3,
        client: Any | None = None,
    ) -> None:
        """
        Initialize S3 Vectors index.

        Args:
            bucket_name: S3 Vectors bucket name
            index_name: Index name within the bucket
            region: AWS region
            batch_size: Vectors per put/delete request
            max_attempts: Attempts per request for throttled calls
            client: Optional pre-built boto3 s3vectors client
        """
        self._bucket_name = bucket_name
        self._index_name = index_name
        self._batch_size = batch_size
        self._max_attempts = max_attempts
        self._client = client or boto3.client("s3vectors", region_name=region)

    @staticmethod
    def _translate(error: ClientError) -> UpstreamError:
        code = error.response.get("Error", {}).get("Code", "")
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        message = f"{code}: {error}"
        if code in THROTTLING_CODES or (isinstance(status, int) and (status == 429 or status >= 500)):
            return UpstreamTransientError(message, service="vector_index", status_code=status)
        auth = code in {"AccessDeniedException", "UnrecognizedClientException"}
        return UpstreamPermanentError(message, service="vector_index", status_code=status, auth=auth)

    async def _invoke(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        method = getattr(self._client, operation)

        async def call() -> dict[str, Any]:
            try:
                return await run_in_threadpool(
                    method,
                    vectorBucketName=self._bucket_name,
                    indexName=self._index_name,
                    **kwargs,
                )
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") == "NotFoundException" and operation == "query_vectors":
                    return {"vectors": []}
                raise self._translate(e) from e
            except BotoCoreError as e:
                raise UpstreamTransientError(str(e), service="vector_index") from e

        try:
            return await call_with_retries(
                call,
                service="vector_index",
                max_retries=self._max_attempts - 1,
                base_delay=0.5,
            )
        except UpstreamError as e:
            logger.error(
                f"{__name__}:_invoke - {operation} failed",
                extra={"operation": operation, "error_msg": str(e)},
            )
            raise IndexUnavailableError(
                f"Vector index {operation} failed",
                operation=operation,
                details={"error": str(e)},
            ) from e

    async def _upsert(self, records: Sequence[VectorRecord]) -> None:
        now_ms = time.time() * 1000
        for start in range(0, len(records), self._batch_size):
            batch = records[start:start + self._batch_size]
            vectors = []
            for record in batch:
                metadata = record.metadata.model_copy(update={"upserted_at": now_ms})
                vectors.append({
                    "key": record.vector_id,
                    "data": {"float32": [float(v) for v in record.values]},
                    "metadata": metadata.to_index_metadata(),
                })
            await self._invoke("put_vectors", vectors=vectors)

    async def _query(
        self,
        query_vector: list[float],
        vector_filter: VectorFilter,
        top_k: int,
    ) -> list[tuple[VectorMetadata, float]]:
        response = await self._invoke(
            "query_vectors",
            queryVector={"float32": [float(v) for v in query_vector]},
            topK=top_k,
            filter=vector_filter.to_s3_filter(),
            returnMetadata=True,
            returnDistance=True,
        )

        matches = []
        for item in response.get("vectors", []):
            raw = item.get("metadata") or {}
            try:
                metadata = VectorMetadata(**raw)
            except ValueError:
                logger.warning(
                    f"{__name__}:_query - Skipping vector with incomplete metadata",
                    extra={"key": item.get("key")},
                )
                continue
            matches.append((metadata, 1.0 - float(item.get("distance", 1.0))))
        return matches

    async def _delete(self, vector_ids: Sequence[str]) -> None:
        ids = list(vector_ids)
        for start in range(0, len(ids), self._batch_size):
            await self._invoke("delete_vectors", keys=ids[start:start + self._batch_size])
