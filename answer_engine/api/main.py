"""
FastAPI application with assembled routers.

Initializes FastAPI app with all API routers, maps domain errors to HTTP
responses and configures uvicorn server.

Dependencies: fastapi, answer_engine.api.routers, uvicorn
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from answer_engine.api.deps.dependencies import get_service_cache
from answer_engine.boundary.db import create_tables
from answer_engine.configs import get_settings
from answer_engine.core.exceptions import (
    AnswerEngineException,
    DocumentBusyError,
    DocumentNotFoundError,
    IndexUnavailableError,
    InvalidInputError,
    InvalidSessionStateError,
    InvalidTransitionError,
    ScopeViolationError,
    SessionNotFoundError,
    UpstreamPermanentError,
    UpstreamUnavailableError,
)
from answer_engine.observability import configure_logging
from answer_engine.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

from .routers import answer_stream_router, documents_router, health_router

# Most specific first
ERROR_STATUS_CODES: list[tuple[type[AnswerEngineException], int]] = [
    (InvalidInputError, 400),
    (DocumentNotFoundError, 404),
    (SessionNotFoundError, 404),
    (DocumentBusyError, 409),
    (InvalidTransitionError, 409),
    (InvalidSessionStateError, 409),
    (UpstreamPermanentError, 502),
    (UpstreamUnavailableError, 503),
    (IndexUnavailableError, 503),
    (ScopeViolationError, 500),
]


def status_code_for(error: AnswerEngineException) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


async def answer_engine_exception_handler(request: Request, exc: AnswerEngineException) -> JSONResponse:
    status_code = status_code_for(exc)
    logger = logging.getLogger(__name__)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"{request.method} {request.url.path} failed",
        extra={"error_type": type(exc).__name__, "error_msg": exc.message, "status_code": status_code},
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": exc.message, "details": exc.details},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = logging.getLogger("uvicorn")

    # Startup
    logger.info(f"Starting Answer Engine API ({settings.environment})")
    await create_tables()
    logger.info("Pre-warming service cache...")
    cache = get_service_cache()
    # Trigger property access to load instances
    _ = cache.vector_index
    _ = cache.web_search
    controller = cache.answer_controller
    controller.registry.start_sweeper()
    logger.info("Service cache pre-warmed")

    yield

    # Shutdown
    await controller.registry.shutdown()
    cache.clear()
    logger.info("Service cache cleared")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    app = FastAPI(
        title="Answer Engine API",
        description="Document ingestion and streamed, cited answers over documents and the web",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(AnswerEngineException, answer_engine_exception_handler)

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(documents_router, prefix="/api/v1")
    app.include_router(answer_stream_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "answer_engine.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
