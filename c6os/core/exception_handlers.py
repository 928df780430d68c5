"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(gate, domain and unexpected) and return consistent JSON responses.

Design:
- Authentication/authorization failures -> 401/403 with a flat body
  ``{error, code, message}``
- Quota exhaustion -> 429 with ``{error: {code, message, status, retryAfter,
  limit, windowMs}}`` plus Retry-After and X-RateLimit-* headers
- Other AppError subclasses -> their status with ``{error: {code, message,
  status, timestamp, request_id}}``
- Unknown routes -> 404 listing the public entry points
- Unexpected Exception -> generic 500 (safety net)
- Errors raised after the rate limiter admitted the request keep its
  X-RateLimit-* headers
- Details and stack traces are only exposed outside production
"""

from __future__ import annotations

import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from c6os.core.config import settings as default_settings
from c6os.core.errors import (
    AppError,
    AuthenticationRequiredError,
    InsufficientPermissionsError,
    InvalidTokenError,
    RateLimitExceededError,
)
from c6os.core.logging import get_request_id
from c6os.core.rate_limit import format_reset, gate_rate_limit_headers

logger = logging.getLogger(__name__)

PUBLIC_ENDPOINTS = ["/health", "/api"]


def _is_production(request: Request) -> bool:
    app_settings = getattr(request.app.state, "settings", None) or default_settings
    return app_settings.is_production


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_envelope(
    request: Request,
    *,
    code: str,
    message: str,
    status_code: int,
    details: Any = None,
    exc: BaseException | None = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "status": status_code,
        "timestamp": _timestamp(),
        "request_id": get_request_id(),
    }
    if not _is_production(request):
        if details:
            error["details"] = details
        if exc is not None:
            error["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return {"error": error}


async def auth_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render 401/403 gate failures.

    Body: ``{"error": <title>, "code", "message", "request_id"}``. 401
    responses carry ``WWW-Authenticate: Bearer``.
    """
    status_code = type(exc).status_code
    title = getattr(type(exc), "title", exc.code)

    logger.info(
        "auth_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    content: dict[str, Any] = {
        "error": title,
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details and not _is_production(request):
        content["details"] = exc.details

    headers = gate_rate_limit_headers(request)
    if status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def rate_limit_error_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Render quota exhaustion with client backoff guidance."""
    headers = {
        "Retry-After": str(exc.retry_after),
        "X-RateLimit-Limit": str(exc.limit),
        "X-RateLimit-Remaining": "0",
    }
    if exc.reset_at is not None:
        headers["X-RateLimit-Reset"] = format_reset(exc.reset_at)

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "status": 429,
                "retryAfter": exc.retry_after,
                "limit": exc.limit,
                "windowMs": exc.window_ms,
                "request_id": get_request_id(),
            }
        },
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    The HTTP status comes from the error class (``status_code``):
    ValidationAppError -> 400, NotFoundAppError -> 404, AppError -> 500.
    """
    status_code = type(exc).status_code

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=_error_envelope(
            request,
            code=exc.code,
            message=exc.message,
            status_code=status_code,
            details=exc.details,
        ),
        headers=gate_rate_limit_headers(request),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request validation failures to 400 VALIDATION_ERROR."""
    logger.info(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(exc.errors())},
    )
    return JSONResponse(
        status_code=400,
        content=_error_envelope(
            request,
            code="VALIDATION_ERROR",
            message="Validation failed",
            status_code=400,
            details=jsonable_encoder({"errors": exc.errors()}),
        ),
        headers=gate_rate_limit_headers(request),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors; unknown routes list the public entry points."""
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse(
            status_code=404,
            content={
                "error": "Endpoint not found",
                "message": f"Cannot {request.method} {request.url.path}",
                "availableEndpoints": PUBLIC_ENDPOINTS,
            },
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_envelope(
            request,
            code="HTTP_ERROR",
            message=str(exc.detail),
            status_code=exc.status_code,
        ),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs full detail server-side; the client gets a generic message, plus the
    stack trace outside production.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content=_error_envelope(
            request,
            code="INTERNAL_ERROR",
            message="An unexpected error occurred. Please try again later.",
            status_code=500,
            exc=exc,
        ),
        headers=gate_rate_limit_headers(request),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Starlette resolves handlers by walking the exception's MRO, so the
    specific gate errors win over the AppError fallback.
    """
    app.exception_handler(AuthenticationRequiredError)(auth_error_handler)
    app.exception_handler(InvalidTokenError)(auth_error_handler)
    app.exception_handler(InsufficientPermissionsError)(auth_error_handler)
    app.exception_handler(RateLimitExceededError)(rate_limit_error_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
