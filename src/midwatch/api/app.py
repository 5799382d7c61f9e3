"""FastAPI application factory with CORS, request logging and error recovery."""

from __future__ import annotations

import time
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from midwatch.api.routes import router

log = structlog.get_logger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Origin", "Content-Type", "Accept"]


async def _log_and_recover(request: Request, call_next: Any) -> Any:
    """Log every request and turn uncaught handler errors into a generic 500."""
    structlog.contextvars.bind_contextvars(
        method=request.method,
        path=request.url.path,
    )
    started = time.perf_counter()
    try:
        try:
            response = await call_next(request)
        except Exception:
            log.error("unhandled_request_error", exc_info=True)
            response = JSONResponse(
                status_code=500, content={"error": "internal server error"}
            )
        log.info(
            "http_request",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
    finally:
        structlog.contextvars.unbind_contextvars("method", "path")


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start and stop the background workers.

    Returns:
        Configured FastAPI application. Route handlers expect
        ``app.state.query_service`` to be set before requests arrive.
    """
    app = FastAPI(title="midwatch", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )
    app.middleware("http")(_log_and_recover)

    app.include_router(router, prefix="/api")

    return app
