"""
FastAPI application factory for the ledger Query API.

This module creates the app with:
- CORS headers on every response, OPTIONS answered directly
- Mapping of ledger errors onto HTTP status codes
- Discovery and resource routes

Invariants:
    - Error bodies are always {"code", "error", "debug"}
    - 400 for invalid identifiers and validation errors, 404 for unknown
      records and paths, 501 for subscriptions, 500 for anything else
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional, Type

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .._version import __version__
from ..errors import (
    InvalidIdentifierError,
    LedgerError,
    NotFoundError,
    NotImplementedCapabilityError,
    ValidationError,
)
from ..store.ram_store import RegistryStore
from .config import Settings
from .routes import root_router, router

logger = logging.getLogger(__name__)

ERROR_STATUS: Dict[Type[LedgerError], int] = {
    InvalidIdentifierError: 400,
    ValidationError: 400,
    NotFoundError: 404,
    NotImplementedCapabilityError: 501,
}


def error_response(status: int, message: str, debug: str) -> JSONResponse:
    return JSONResponse(
        {"code": status, "error": message, "debug": debug},
        status_code=status,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log service start and stop."""
    settings = app.state.settings
    logger.info(
        f"NMOS ledger query service running at http://{settings.host}:{settings.port}"
        f"{settings.base_path}/"
    )
    yield
    logger.info("NMOS ledger query service stopped")


def create_app(
    store: Optional[RegistryStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Registry store to serve (a new empty one if not provided)
        settings: API settings (loaded from environment if not provided)

    Returns:
        FastAPI application
    """
    settings = settings or Settings()

    app = FastAPI(
        title="NMOS Ledger Query API",
        description="Read-only query interface over the ledger registry.",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.store = store if store is not None else RegistryStore()
    app.state.settings = settings

    app.include_router(root_router)
    app.include_router(router, prefix=settings.base_path)

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        status = next(
            (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
            500,
        )
        return error_response(status, exc.message, f"{exc.code}: {exc.details}")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        path = request.url.path
        if exc.status_code == 404:
            message = f"Could not find the requested resource '{path}'."
        else:
            message = str(exc.detail)
        return error_response(exc.status_code, message, path)

    # Add error middleware
    @app.middleware("http")
    async def error_middleware(request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"HTTP handler error: {e}", exc_info=True)
            return error_response(
                500,
                str(e) or "Internal server error. No message available.",
                type(e).__name__,
            )

    # Add CORS middleware
    @app.middleware("http")
    async def cors_middleware(request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = (
            "GET, PUT, POST, HEAD, OPTIONS, DELETE"
        )
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Accept"
        response.headers["Access-Control-Max-Age"] = str(settings.cors_max_age)
        return response

    return app
