"""
FastAPI application for the library mirror.

Creates the FastAPI app, registers routes and maps mirror errors onto
HTTP statuses with a consistent JSON error body:

    {"success": false, "error_code": "NETWORK_ERROR", "message": "..."}
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shamela_mirror import __version__
from shamela_mirror.core.api.routes import content, library, sync
from shamela_mirror.core.config import MirrorConfig, load_config
from shamela_mirror.core.exceptions import (
    ExtractionError,
    MalformedOutlineError,
    MirrorError,
    NetworkError,
    PersistenceError,
)
from shamela_mirror.core.service import MirrorService

logger = logging.getLogger(__name__)

API_NAME = "Shamela Mirror API"


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Server errors (5xx)
    NETWORK_ERROR = "NETWORK_ERROR"
    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    MALFORMED_OUTLINE = "MALFORMED_OUTLINE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Mirror errors by (status, code); first matching class wins
MIRROR_ERROR_STATUS: list[tuple[type[MirrorError], int, ErrorCode]] = [
    (NetworkError, status.HTTP_502_BAD_GATEWAY, ErrorCode.NETWORK_ERROR),
    (ExtractionError, status.HTTP_502_BAD_GATEWAY, ErrorCode.EXTRACTION_ERROR),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.PERSISTENCE_ERROR),
    (MalformedOutlineError, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.MALFORMED_OUTLINE),
]


def error_body(code: ErrorCode, message: str) -> dict[str, Any]:
    return {"success": False, "error_code": code.value, "message": message}


def _status_for(exc: MirrorError) -> tuple[int, ErrorCode]:
    for error_type, http_status, code in MIRROR_ERROR_STATUS:
        if isinstance(exc, error_type):
            return http_status, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR


async def mirror_error_handler(request: Request, exc: MirrorError) -> JSONResponse:
    """Map mirror errors onto 502 (remote side) or 500 (local side)."""
    http_status, code = _status_for(exc)
    logger.error(
        "HTTP %d on %s %s: %s %s",
        http_status,
        request.method,
        request.url.path,
        exc,
        exc.context,
    )
    return JSONResponse(status_code=http_status, content=error_body(code, exc.message))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException with the standard error body."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        code = ErrorCode.NOT_FOUND
    elif exc.status_code < 500:
        code = ErrorCode.INVALID_REQUEST
    else:
        code = ErrorCode.INTERNAL_ERROR

    logger.info("HTTP %d on %s %s: %s", exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(code, str(exc.detail)))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle query/path validation errors with a readable message."""
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())

    first_error = exc.errors()[0] if exc.errors() else {}
    field = " -> ".join(str(loc) for loc in first_error.get("loc", []))
    error_msg = first_error.get("msg", "Invalid input")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(ErrorCode.VALIDATION_ERROR, f"{field}: {error_msg}" if field else error_msg),
    )


def create_app(
    config: MirrorConfig | None = None,
    service: MirrorService | None = None,
) -> FastAPI:
    """
    Create the API application.

    Args:
        config: Configuration used to build the service (default: load_config())
        service: Pre-built service; when given the caller owns its lifecycle

    Returns:
        Configured FastAPI app
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if service is not None:
            app.state.mirror = service
            yield
            return
        async with MirrorService.from_config(config) as owned:
            app.state.mirror = owned
            yield

    app = FastAPI(
        title=API_NAME,
        description="Read and sync API for a local mirror of the Shamela library",
        version=__version__,
        lifespan=lifespan,
    )
    if service is not None:
        app.state.mirror = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(library.router, prefix="/api", tags=["library"])
    app.include_router(content.router, prefix="/api", tags=["content"])
    app.include_router(sync.router, prefix="/api", tags=["sync"])

    app.exception_handler(MirrorError)(mirror_error_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """API name, version and endpoint index."""
        return {
            "name": API_NAME,
            "version": __version__,
            "endpoints": {
                "categories": "/api/categories",
                "authors": "/api/authors",
                "books": "/api/books",
                "bookDetails": "/api/books/{id}",
                "bookContent": "/api/books/{id}/content",
                "search": "/api/search?q=...",
                "syncMaster": "/api/sync/master",
                "syncBook": "/api/sync/book/{id}",
                "stats": "/api/stats",
            },
        }

    return app


__all__ = ["create_app", "ErrorCode", "error_body"]
