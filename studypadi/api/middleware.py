"""API middleware: CORS, request logging, and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), and automatic
conversion of ``StudyPadiError`` subclasses into JSON ``ErrorResponse``
bodies with a status code chosen by the error's ``kind``.

# ─── MIDDLEWARE EXECUTION ORDER ───────────────────────────────────────
#
# Starlette middleware is a stack (last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)   # added 1st → inner
#     app.add_middleware(RequestLoggingMiddleware)  # added 2nd → outer
#
#   Request flow:
#     Client → RequestLogging → ErrorHandling → route handler
#
# So RequestLoggingMiddleware sees the final status code, including the
# one ErrorHandling picked for a typed error.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from studypadi.api.schemas import ErrorResponse
from studypadi.utils.errors import StudyPadiError
from studypadi.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# HTTP status per error kind.  Unlisted kinds map to 500.
_STATUS_BY_KIND: dict[str, int] = {
    "UnsupportedFormat": 415,
    "FileTooLarge": 413,
    "EmptyExtraction": 422,
    "CorruptFile": 422,
    "ExtractionFailed": 422,
    "TooLittleContent": 422,
    "RateLimited": 429,
    "QuotaExhausted": 402,
    "MalformedResponse": 502,
    "ServiceUnavailable": 503,
    "ConfigurationError": 503,
    "NotFound": 404,
    "PersistenceFailed": 500,
    "PipelineFailed": 500,
}


def status_for_error(exc: StudyPadiError) -> int:
    """Return the HTTP status code for a typed application error."""
    return _STATUS_BY_KIND.get(exc.kind, 500)


def error_response(exc: StudyPadiError) -> JSONResponse:
    """Build the sanitized JSON response for a typed application error."""
    body = ErrorResponse(
        error=type(exc).__name__,
        kind=exc.kind,
        title=exc.title,
        detail=exc.message,
    )
    return JSONResponse(status_code=status_for_error(exc), content=body.model_dump())


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; override with specific origins in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``StudyPadiError`` subclasses and return structured JSON errors.

    The client sees the error class, ``kind``, ``title`` and message.
    Stack traces and provider details stay in the server log.  Generic
    Python exceptions fall through to FastAPI's default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except StudyPadiError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                kind=exc.kind,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            return error_response(exc)
