"""
api/main.py -- FastAPI application entry point for YAccounting.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware   -- adds CORS headers for allowed browser origins
  2. log_requests     -- one log line per request with latency

Lifespan handles startup and shutdown symmetrically:
  startup:  load Settings (fails fast on missing secrets), derive the AES key,
            open both stores, build AuthCore and attach everything to app.state
  shutdown: close both stores

Error mapping: every core.errors.AppError subclass is rendered by one handler
using _ERROR_STATUS. Routes never translate core errors themselves.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.entries import router as entries_router
from auth.service import AuthCore
from auth.store import UserStore
from core.config import get_settings
from core.crypto import SymmetricCipher
from core.errors import (
    AppError,
    DecryptionFailedError,
    InvalidCredentialsError,
    MalformedEnvelopeError,
    StoreUnavailableError,
    TokenError,
    UserExistsError,
    UserNotFoundError,
    ValidationError,
    WeakPasswordError,
)
from ledger.store import EntryStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("yaccounting.api")

# ---------------------------------------------------------------------------
# Error class -> HTTP status. Checked in order, so subclasses come first.
# ---------------------------------------------------------------------------

_ERROR_STATUS: tuple[tuple[type[AppError], int], ...] = (
    (ValidationError, 400),
    (WeakPasswordError, 400),
    (UserExistsError, 409),
    (UserNotFoundError, 401),
    (InvalidCredentialsError, 401),
    (TokenError, 401),
    (MalformedEnvelopeError, 500),
    (DecryptionFailedError, 500),
    (StoreUnavailableError, 503),
)


def status_for(exc: AppError) -> int:
    for error_cls, status in _ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status
    return 500


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Settings first -- a missing secret aborts startup before any store
         is opened.
      2. Cipher second -- the entry store needs it.
      3. Stores, then AuthCore, which is handed the user store explicitly.
    """
    settings = get_settings()
    logging.getLogger("yaccounting").setLevel(settings.log_level.upper())
    logger.info("YAccounting API starting up")

    cipher = SymmetricCipher.from_secret(settings.encryption_key)
    app.state.user_store = UserStore(settings.database_url).open()
    app.state.entry_store = EntryStore(settings.database_url, cipher).open()
    app.state.auth = AuthCore.from_settings(settings, app.state.user_store)
    logger.info("Stores opened, auth initialized (bcrypt_rounds=%d)", settings.bcrypt_rounds)

    yield

    app.state.entry_store.close()
    app.state.user_store.close()
    logger.info("YAccounting API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="YAccounting API",
    description="Personal accounting entries behind username/password authentication.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


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
app.include_router(entries_router, prefix="/api/v1", tags=["Entries"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a core error with the status mapped for its class.

    Only the error's code and fixed message are sent; they never contain
    secrets. 5xx errors are also logged server-side.
    """
    status = status_for(exc)
    if status >= 500:
        logger.error("%s on %s %s", exc.__class__.__name__, request.method, request.url.path)
    response = JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
    )
    if isinstance(exc, TokenError):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with detail={"code": ..., "message": ...}.
    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the server log only; the client receives a generic
    message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    try:
        request.app.state.user_store.count_users()
        database = "ok"
    except StoreUnavailableError:
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
