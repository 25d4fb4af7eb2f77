"""
api/main.py -- FastAPI application entry point for TaskTracker.

Run with:      python main.py
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- lets the configured browser origin call the API
                          with credentials (the session cookie)
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan opens the user and task stores on startup and disposes them on
shutdown. Settings are read once here and published as app.state.settings;
nothing downstream reads the environment.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse, MessageResponse
from api.routes.auth import router as auth_router
from api.routes.tasks import router as tasks_router
from auth.store import UserStore
from core.config import get_settings
from tasks.store import TaskStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tasktracker.api")

settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open both stores on startup, dispose them on shutdown.

    Users and tasks share one database (settings.database_url); each store
    owns its own engine and table metadata.
    """
    logger.info("TaskTracker API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.task_store = TaskStore(settings.database_url)
    logger.info("Stores initialized")

    yield

    app.state.task_store.close()
    app.state.user_store.close()
    logger.info("TaskTracker API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TaskTracker API",
    description="Personal task lists behind cookie-based sessions.",
    version=VERSION,
    lifespan=lifespan,
)
app.state.settings = settings

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.allowed_origin],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix=settings.api_prefix, tags=["Auth"])
app.include_router(tasks_router, prefix=settings.api_prefix, tags=["Tasks"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error leaves the API as {"error": {"code", "message", "detail"}}.
# ---------------------------------------------------------------------------


def _error_response(
    status_code: int,
    code: str,
    message: str,
    detail: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 for repeated signup/login attempts from one address."""
    logger.warning("Rate limit hit on %s from %s", request.url.path, request.client.host if request.client else "?")
    retry_after = int(getattr(exc, "retry_after", 60))
    return _error_response(
        429, "rate_limited", "Too many requests.", str(exc), headers={"Retry-After": str(retry_after)}
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures are client errors: unknown fields, wrong JSON types, non-numeric ids -> 400."""
    # Only type/loc/msg go back to the client; "input" would echo submitted
    # values, passwords included.
    errors = [{key: err[key] for key in ("type", "loc", "msg") if key in err} for err in exc.errors()]
    message = errors[0].get("msg", "Request validation failed.") if errors else "Request validation failed."
    return _error_response(400, "validation_error", message, str(errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routes raise HTTPException(detail={"code", "message"[, "detail"]}); pass that through as-is.

    Framework-raised exceptions (404 for an unknown path, 405) carry a plain
    string detail and get a generated code.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unhandled is logged with its traceback; the client only sees a generic 500."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Liveness endpoints
#
# Defined directly in main.py (not in a router) so they are reachable
# regardless of router registration and the configured prefix. No rate limit.
# ---------------------------------------------------------------------------


@app.get("/", response_model=MessageResponse, include_in_schema=False)
async def root() -> MessageResponse:
    return MessageResponse(message="API Working")


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and whether the database answers."""
    try:
        database = "ok" if request.app.state.user_store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
