"""
Exception hierarchy for the answer engine.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class AnswerEngineException(Exception):
    """Base exception for all answer engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging

        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidInputError(AnswerEngineException):
    """Raised synchronously when caller input is rejected. Never retried."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize invalid input error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class UpstreamError(AnswerEngineException):
    """Base exception for failures of an external service call."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        service: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize upstream error.

        Args:
            message: Error message
            service: Upstream service name (embedding, completion, web_search, vector_index)
            status_code: HTTP-style status code when the upstream reported one
            details: Additional context
        """
        details = details or {}
        if service:
            details["service"] = service
        if status_code is not None:
            details["status_code"] = status_code
        self.service = service
        self.status_code = status_code
        super().__init__(message, details)


class UpstreamTransientError(UpstreamError):
    """Rate limit, timeout or connection reset. Retried with bounded backoff."""

    retryable = True


class UpstreamPermanentError(UpstreamError):
    """Auth failure or malformed request. Surfaced immediately, never retried."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        status_code: int | None = None,
        auth: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize permanent upstream error.

        Args:
            message: Error message
            service: Upstream service name
            status_code: HTTP-style status code
            auth: True when the failure is an authentication/authorization rejection
            details: Additional context
        """
        details = details or {}
        details["auth"] = auth
        self.auth = auth
        super().__init__(message, service, status_code, details)


class UpstreamUnavailableError(UpstreamError):
    """Transient failures persisted after the retry budget was spent."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        attempts: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize upstream unavailable error.

        Args:
            message: Error message
            service: Upstream service name
            attempts: Number of calls issued before giving up
            details: Additional context
        """
        details = details or {}
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(message, service, None, details)


class VectorStoreError(AnswerEngineException):
    """Raised when vector index operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize vector store error.

        Args:
            message: Error message
            operation: Operation that failed (upsert, query, delete)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class IndexUnavailableError(VectorStoreError):
    """Vector index could not be reached. Retrieval falls back to web-only."""

    pass


class ScopeViolationError(AnswerEngineException):
    """A result outside the requesting owner's scope was detected and dropped."""

    def __init__(
        self,
        requested_owner_id: str,
        result_owner_id: str | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize scope violation.

        Args:
            requested_owner_id: Owner the search was scoped to
            result_owner_id: Owner found on the offending result
            details: Additional context
        """
        details = details or {}
        details["requested_owner_id"] = requested_owner_id
        details["result_owner_id"] = result_owner_id
        super().__init__("Result outside owner scope", details)


class DocumentProcessingError(AnswerEngineException):
    """Base exception for document processing errors."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize document processing error.

        Args:
            message: Error message
            document_id: ID of the document that failed
            details: Additional context
        """
        details = details or {}
        if document_id:
            details["document_id"] = document_id
        self.document_id = document_id
        super().__init__(message, details)


class ExtractionError(DocumentProcessingError):
    """Raised when extracted text cannot be obtained for a document."""

    pass


class EmbeddingError(DocumentProcessingError):
    """Raised when embedding generation fails for one or more chunks."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        failed_chunks: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize embedding error.

        Args:
            message: Error message
            document_id: ID of the document
            failed_chunks: Number of chunks without a vector
            details: Additional context
        """
        details = details or {}
        if failed_chunks is not None:
            details["failed_chunks"] = failed_chunks
        super().__init__(message, document_id, details)


class DocumentNotFoundError(DocumentProcessingError):
    """Raised when a document record does not exist."""

    def __init__(self, document_id: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Document not found: {document_id}", document_id, details)


class DocumentBusyError(DocumentProcessingError):
    """Raised when a processing run is already in flight for the document."""

    def __init__(
        self,
        document_id: str,
        status: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if status:
            details["status"] = status
        super().__init__(f"Document is already being processed: {document_id}", document_id, details)


class InvalidTransitionError(DocumentProcessingError):
    """Raised when a requested lifecycle transition is not allowed."""

    def __init__(
        self,
        document_id: str,
        from_status: str,
        to_status: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["from_status"] = from_status
        details["to_status"] = to_status
        super().__init__(
            f"Cannot move document from {from_status} to {to_status}",
            document_id,
            details,
        )


class SessionNotFoundError(AnswerEngineException):
    """Raised when a stream session cannot be found."""

    def __init__(self, session_id: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize session not found error.

        Args:
            session_id: ID of the missing session
            details: Additional context
        """
        details = details or {}
        details["session_id"] = session_id
        super().__init__(f"Session not found: {session_id}", details)


class InvalidSessionStateError(AnswerEngineException):
    """Raised when a session control call does not fit the current state."""

    def __init__(
        self,
        session_id: str,
        state: str,
        action: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details.update({"session_id": session_id, "state": state, "action": action})
        super().__init__(f"Cannot {action} session in state {state}", details)
