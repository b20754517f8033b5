"""
api/main.py -- FastAPI application entry point for the SSO auth service.

Run with:  uvicorn api.main:app --reload

This is the transport adapter: it decodes HTTP requests into AuthService
calls and maps the auth error taxonomy onto HTTP status codes. It holds no
decision logic of its own.

Lifespan builds the object graph once at startup (settings -> store ->
hasher/issuer -> service) and disposes the store's connection pool on
shutdown. Everything after startup is read-only.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AppNotFound, AuthError, InvalidCredentials, UserAlreadyExists, UserNotFound
from auth.service import build_auth_service
from auth.store import CredentialStore
from core.config import get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ssoauth.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the store and service on startup; dispose the pool on shutdown."""
    settings = get_settings()
    logger.info("SSO auth API starting up")
    app.state.store = CredentialStore(settings.database_url)
    app.state.auth_service = build_auth_service(
        app.state.store,
        token_ttl_seconds=settings.token_ttl_seconds,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    logger.info(
        "Auth initialized (token_ttl=%ds, bcrypt_rounds=%d)",
        settings.token_ttl_seconds,
        settings.bcrypt_rounds,
    )

    yield

    app.state.store.close()
    logger.info("SSO auth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SSO Auth API",
    description="Credential verification, user registration and app-scoped token issuance.",
    version=VERSION,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time around call_next gives per-response latency.
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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

# Client-facing kinds: (status, code, message). Messages reveal nothing a
# caller does not already know. Everything else is a 500 with a generic body.
_CLIENT_ERRORS: list[tuple[type[AuthError], int, str, str]] = [
    (InvalidCredentials, 401, "invalid_credentials", "Invalid credentials."),
    (AppNotFound, 404, "app_not_found", "App not found."),
    (UserNotFound, 404, "not_found", "User not found."),
    (UserAlreadyExists, 409, "user_exists", "User already exists."),
]


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map an auth error kind to its HTTP status.

    InternalError and any component fault that escaped classification get a
    generic 500. The op and cause are logged server-side only.
    """
    for kind, status_code, code, message in _CLIENT_ERRORS:
        if isinstance(exc, kind):
            return _error_response(status_code, code, message)
    logger.error("Internal error on %s %s: %s (cause: %r)", request.method, request.url.path, exc, exc.cause)
    return _error_response(500, "internal_error", "Internal server error.")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or path params fail validation."""
    return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 route, 405 method)."""
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "Internal server error.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
