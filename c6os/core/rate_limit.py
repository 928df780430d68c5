"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limiting adapters into the HTTP layer.

Strategy:
- One rolling window per principal (``user:{id}``); requests without a
  principal fall back to the client address (``ip:{host}``).
- Two independent limiters: the default one guards every /api route, the
  strict one guards sensitive endpoints. Strict keys are namespaced
  ``strict:`` so the two tables never share a key.
- Limiters are built once by the app factory and live on ``app.state``.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import Request, Response

from c6os.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from c6os.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from c6os.core.config import RateLimitSettings
from c6os.core.errors import RateLimitExceededError
from c6os.schemas.principal import Principal

logger = logging.getLogger(__name__)

STRICT_NAMESPACE = "strict"


@dataclass
class RateLimiters:
    """Limiter instances owned by one application."""

    default: AbstractRateLimiter
    strict: AbstractRateLimiter
    enabled: bool = True


def build_rate_limiters(rate_limit_settings: RateLimitSettings) -> RateLimiters:
    """Create the default and strict limiters from configuration."""

    return RateLimiters(
        default=InMemorySlidingWindowRateLimiter(
            limit=rate_limit_settings.max_requests,
            window_seconds=rate_limit_settings.window_ms / 1000,
        ),
        strict=InMemorySlidingWindowRateLimiter(
            limit=rate_limit_settings.strict_max_requests,
            window_seconds=rate_limit_settings.strict_window_ms / 1000,
        ),
        enabled=rate_limit_settings.enabled,
    )


def build_rate_limit_key(request: Request, *, namespace: str | None = None) -> str | None:
    """Build the limiter key for the current request.

    Returns:
        Namespaced key, or None when neither a principal nor a client address
        is available (the request is then not limited).
    """

    principal: Principal | None = getattr(request.state, "principal", None)
    if principal is not None:
        key = f"user:{principal.id}"
    elif request.client and request.client.host:
        key = f"ip:{request.client.host}"
    else:
        return None

    return f"{namespace}:{key}" if namespace else key


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing identities."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def format_reset(reset_at: float) -> str:
    """Render an epoch timestamp as ISO-8601 UTC with millisecond precision."""
    moment = datetime.fromtimestamp(reset_at, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Quota headers attached to every gated response."""
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": format_reset(result.reset_at),
    }


def gate_rate_limit_headers(request: Request) -> dict[str, str]:
    """Quota headers for the last limiter this request passed, if any."""
    result: RateLimitResult | None = getattr(request.state, "rate_limit", None)
    return rate_limit_headers(result) if result is not None else {}


def _enforce(
    request: Request,
    response: Response,
    limiter: AbstractRateLimiter,
    *,
    namespace: str | None,
    code: str,
    message: str,
) -> RateLimitResult | None:
    key = build_rate_limit_key(request, namespace=namespace)
    if key is None:
        logger.debug("rate_limit.skipped", extra={"reason": "no_key", "namespace": namespace})
        return None

    result = limiter.consume(key)
    response.headers.update(rate_limit_headers(result))
    # Read back by the error handlers when a later dependency or the route raises.
    request.state.rate_limit = result

    log_extra = {
        "namespace": namespace or "default",
        "key_hash": _hash_limiter_key(key),
        "limit": result.limit,
        "remaining": result.remaining,
        "window_ms": result.window_ms,
    }

    if result.allowed:
        logger.debug("rate_limit.allowed", extra=log_extra)
        return result

    retry_after = result.retry_after_seconds or 0
    logger.warning("rate_limit.exceeded", extra={**log_extra, "retry_after_s": retry_after})
    raise RateLimitExceededError(
        code=code,
        message=message,
        retry_after=retry_after,
        limit=result.limit,
        window_ms=result.window_ms,
        reset_at=result.reset_at,
    )


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing the default rate limit.

    Must run after authentication so the principal keys the window.

    Raises:
        RateLimitExceededError: 429 when the window's quota is exhausted.
    """

    limiters: RateLimiters = request.app.state.rate_limiters
    if not limiters.enabled:
        return

    _enforce(
        request,
        response,
        limiters.default,
        namespace=None,
        code="RATE_LIMIT_EXCEEDED",
        message="Too many requests",
    )


async def enforce_strict_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing the strict limit for sensitive endpoints.

    Raises:
        RateLimitExceededError: 429 when the strict quota is exhausted.
    """

    limiters: RateLimiters = request.app.state.rate_limiters
    if not limiters.enabled:
        return

    _enforce(
        request,
        response,
        limiters.strict,
        namespace=STRICT_NAMESPACE,
        code="STRICT_RATE_LIMIT_EXCEEDED",
        message="Too many requests to sensitive endpoint",
    )
