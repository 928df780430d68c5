"""Application-level exception types.

This module defines the error taxonomy used by the access gate and the API
routes, enabling consistent error handling, logging, and API responses.
Each error carries a stable, machine-readable ``code`` and an HTTP status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes flexible while encouraging
    consistent keys across the codebase.
    """

    hint: str
    reason: str
    verifier: str
    agent_id: str
    command: str
    required_role: str
    actual_role: str
    errors: list[dict[str, Any]]
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    status_code: ClassVar[int] = 500

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input or configuration validation fails."""

    status_code: ClassVar[int] = 400


class NotFoundAppError(AppError):
    """Raised when a referenced resource does not exist."""

    status_code: ClassVar[int] = 404


@dataclass
class AuthenticationRequiredError(AppError):
    """No usable credential was presented (or no principal is attached)."""

    code: str = "AUTHENTICATION_REQUIRED"
    message: str = "Please provide a valid authorization token"

    status_code: ClassVar[int] = 401
    title: ClassVar[str] = "Authentication required"


@dataclass
class InvalidTokenError(AppError):
    """The bearer token could not be verified by any configured verifier."""

    code: str = "INVALID_TOKEN"
    message: str = "The provided authentication token is invalid or expired"

    status_code: ClassVar[int] = 401
    title: ClassVar[str] = "Invalid token"


@dataclass
class InsufficientPermissionsError(AppError):
    """The principal's role is below the level an endpoint requires."""

    code: str = "INSUFFICIENT_PERMISSIONS"
    message: str = "Insufficient permissions"

    status_code: ClassVar[int] = 403
    title: ClassVar[str] = "Insufficient permissions"


@dataclass
class RateLimitExceededError(AppError):
    """The requester exhausted its quota for the current window.

    Attributes:
        retry_after: Seconds until the window resets.
        limit: Maximum requests per window.
        window_ms: Window duration in milliseconds.
        reset_at: UNIX epoch seconds when the window resets.
    """

    code: str = "RATE_LIMIT_EXCEEDED"
    message: str = "Too many requests"
    retry_after: int = 0
    limit: int = 0
    window_ms: int = 0
    reset_at: float | None = None

    status_code: ClassVar[int] = 429


@dataclass
class TokenVerificationError(AppError):
    """A single verifier rejected a token.

    Raised by verifier strategies and absorbed by the authenticator, which
    turns the exhausted chain into ``InvalidTokenError``.
    """

    code: str = "TOKEN_VERIFICATION_FAILED"
    message: str = "Token verification failed"

    status_code: ClassVar[int] = 401
