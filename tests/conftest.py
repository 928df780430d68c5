"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any application import so the global
settings object never picks up credentials from the developer's shell.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
for _name in ("AUTH_COGNITO_USER_POOL_ID", "AUTH_COGNITO_CLIENT_ID", "AUTH_JWT_SECRET"):
    os.environ.pop(_name, None)

import time
from typing import Any, Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from c6os.core.app_factory import create_app
from c6os.core.config import AuthSettings, RateLimitSettings, Settings

TEST_SECRET = "test-shared-secret"


class FakeClock:
    """Deterministic clock used to drive rate-limit windows."""

    def __init__(self, start: float = 0.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


def make_token(secret: str = TEST_SECRET, *, expires_in: int = 3600, **claims: Any) -> str:
    """Sign an HS256 token with sensible default claims."""
    payload: dict[str, Any] = {"sub": "user-1", "exp": int(time.time()) + expires_in}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(start=1_000.0)


@pytest.fixture
def make_app() -> Callable[..., FastAPI]:
    """Build an isolated app: own settings, own limiter tables."""

    def _make_app(
        *,
        app_env: str = "production",
        jwt_secret: str | None = TEST_SECRET,
        max_requests: int = 100,
        window_ms: int = 900_000,
        strict_max_requests: int = 5,
        strict_window_ms: int = 60_000,
        rate_limit_enabled: bool = True,
        **kwargs: Any,
    ) -> FastAPI:
        app_settings = Settings(
            app_env=app_env,
            auth=AuthSettings(jwt_secret=jwt_secret, cognito_user_pool_id=None),
            rate_limit=RateLimitSettings(
                enabled=rate_limit_enabled,
                max_requests=max_requests,
                window_ms=window_ms,
                strict_max_requests=strict_max_requests,
                strict_window_ms=strict_window_ms,
            ),
        )
        return create_app(app_settings, configure_logs=False, **kwargs)

    return _make_app


@pytest.fixture
def client(make_app) -> TestClient:
    """Production-mode client with shared-secret verification enabled."""
    return TestClient(make_app(), raise_server_exceptions=False)
