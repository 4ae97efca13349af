"""Ledgerlink - FastAPI Application."""

import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from ledgerlink.config import settings
from ledgerlink.logger import configure_logging, get_logger
from ledgerlink.routers import reconciliation, records
from ledgerlink.services.reconciliation import load_reconciliation_config

# Initialize logging early
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - validate reconciliation config on startup."""
    config = load_reconciliation_config()
    enabled = settings.enabled_pattern_types
    logger.info(
        "Application started",
        version="0.1.0",
        environment=settings.environment,
        pattern_types=[pattern_type.value for pattern_type in config.pattern_tables],
        enabled_pattern_types=[pattern_type.value for pattern_type in enabled],
    )
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="Ledgerlink API",
    description="Transaction reconciliation across bank, marketplace and payment records",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next: Any) -> Response:
    """Middleware to inject Request-ID and log request details."""
    request_id = request.headers.get("X-Request-ID", str(uuid4()))

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.info(
            "HTTP Request",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as exc:
        duration = time.perf_counter() - start_time
        logger.exception(
            "HTTP Request Failed",
            duration_ms=round(duration * 1000, 2),
            error=str(exc),
        )
        raise


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler to ensure JSON response."""
    if settings.debug:
        detail = str(exc)
        trace = traceback.format_exc()
    else:
        detail = "An internal server error occurred. Please try again later."
        trace = None

    return JSONResponse(
        status_code=500,
        content={
            "detail": detail,
            "trace": trace,
            "request_id": structlog.contextvars.get_contextvars().get("request_id"),
        },
    )


app.include_router(records.router)
app.include_router(reconciliation.router)


@app.get("/health")
async def health_check() -> Response:
    """Report liveness and whether the reconciliation settings are usable."""
    checks: dict[str, bool] = {}
    try:
        load_reconciliation_config()
        checks["reconciliation_config"] = True
    except Exception as e:
        logger.error(
            "Health check: reconciliation config failed to load",
            error=str(e),
            error_type=type(e).__name__,
        )
        checks["reconciliation_config"] = False

    try:
        checks["pattern_types"] = bool(settings.enabled_pattern_types)
    except ValueError as e:
        logger.error("Health check: enabled pattern types are invalid", error=str(e))
        checks["pattern_types"] = False

    healthy = all(checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
            "version": settings.git_commit_sha,
        },
    )
