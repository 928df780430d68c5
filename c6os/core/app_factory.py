"""Application factory for the FastAPI app.

Centralizes app construction (settings, gate objects, middleware, handlers,
routers) so tests can build isolated apps with their own configuration and
their own rate-limit tables.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from c6os.adapters.identity.base import AbstractTokenVerifier
from c6os.adapters.identity.factory import create_token_verifiers
from c6os.api.routes import agents_router, health_router, index_router, system_router
from c6os.core.auth import Authenticator, authenticate_request
from c6os.core.config import Settings, settings as default_settings
from c6os.core.exception_handlers import setup_exception_handlers
from c6os.core.logging import configure_logging
from c6os.core.middleware import request_id_middleware, security_headers_middleware
from c6os.core.openapi import apply_openapi_customizations
from c6os.core.rate_limit import RateLimiters, build_rate_limiters, enforce_rate_limit
from c6os.services.agent_registry import AgentRegistry

logger = logging.getLogger(__name__)


def build_api_router() -> APIRouter:
    """Routes under /api that pass through the full access gate.

    Authentication runs before rate limiting so the window is keyed by
    principal rather than by client address.
    """
    api_router = APIRouter(
        prefix="/api",
        dependencies=[Depends(authenticate_request), Depends(enforce_rate_limit)],
    )
    api_router.include_router(agents_router)
    api_router.include_router(system_router)
    return api_router


def create_app(
    app_settings: Settings | None = None,
    *,
    verifiers: Sequence[AbstractTokenVerifier] | None = None,
    rate_limiters: RateLimiters | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the environment-derived ones.
        verifiers: Override the verifier chain (tests inject fakes here).
        rate_limiters: Override the limiters (tests inject fake clocks here).
        configure_logs: Install the root log handler.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log, debug=cfg.app.debug)

    authenticator = Authenticator(
        verifiers if verifiers is not None else create_token_verifiers(cfg.auth),
        production=cfg.is_production,
        timeout_seconds=cfg.auth.verification_timeout_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "app.startup",
            extra={
                "app_env": cfg.app_env,
                "verifiers": [verifier.name for verifier in authenticator.verifiers],
                "rate_limit_enabled": cfg.rate_limit.enabled,
            },
        )
        if not cfg.is_production:
            logger.warning("auth.development_bypass_enabled", extra={"app_env": cfg.app_env})
        yield
        await authenticator.aclose()

    app = FastAPI(
        title="C6Group.AI OS API",
        description=(
            "Backend API for the C6Group.AI OS dashboard: status and control of "
            "the Architect, Executor and Observer agents. Every /api route "
            "requires a Bearer token in production and is rate limited per principal."
        ),
        version=cfg.app.version,
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.authenticator = authenticator
    app.state.rate_limiters = rate_limiters or build_rate_limiters(cfg.rate_limit)
    app.state.agent_registry = AgentRegistry()

    # Middleware
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(security_headers_middleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.app.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", cfg.log.request_id_header],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
            cfg.log.request_id_header,
        ],
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(index_router)
    app.include_router(build_api_router())

    # OpenAPI customizations (bearer scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
