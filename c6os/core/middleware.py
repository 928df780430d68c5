"""HTTP middleware for request ID propagation, access logging and security headers.

The middleware:
- Accepts an incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars for log correlation during the request
- Injects request_id and the request duration into response headers
- Emits one ``request.completed`` log line per request
- Adds browser hardening headers (CSP, HSTS, nosniff) to every response
- Clears context after request completion to prevent context leaks

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from c6os.core.config import settings as default_settings
from c6os.core.logging import clear_request_id, set_request_id

logger = logging.getLogger("c6os.access")


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id to the request/response pair.

    If the client provides the configured request id header (default
    ``X-Request-ID``) that value is reused, otherwise a UUID4 is generated.

    Example:
        >>> # Request arrives with header {"X-Request-ID": "req-abc-123"}
        >>> # Response includes:
        >>> # {"X-Request-ID": "req-abc-123", "X-Request-Duration-ms": "4.67"}
    """

    app_settings = getattr(request.app.state, "settings", None) or default_settings
    header_name = app_settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        principal = getattr(request.state, "principal", None)
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "principal_id": principal.id if principal is not None else None,
                "client_host": request.client.host if request.client else None,
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


def build_security_headers(connect_origins: list[str]) -> dict[str, str]:
    """Browser hardening headers applied to every response.

    ``connect_origins`` are the dashboard origins allowed to call the API from
    scripts (the CORS allow-list).
    """

    csp_directives = [
        "default-src 'self'",
        "style-src 'self' 'unsafe-inline' fonts.googleapis.com",
        "font-src 'self' fonts.gstatic.com",
        "img-src 'self' data: https:",
        "script-src 'self'",
        "connect-src " + " ".join(["'self'", *connect_origins]),
        "frame-ancestors 'self'",
        "object-src 'none'",
        "base-uri 'self'",
    ]
    return {
        "Content-Security-Policy": "; ".join(csp_directives),
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "Referrer-Policy": "no-referrer",
        "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
        "X-Content-Type-Options": "nosniff",
        "X-DNS-Prefetch-Control": "off",
        "X-Frame-Options": "SAMEORIGIN",
        "X-Permitted-Cross-Domain-Policies": "none",
        "X-XSS-Protection": "0",
    }


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Attach security headers without overriding ones a route already set."""

    app_settings = getattr(request.app.state, "settings", None) or default_settings
    response: Response = await call_next(request)
    for name, value in build_security_headers(app_settings.app.cors_origins).items():
        response.headers.setdefault(name, value)
    return response
