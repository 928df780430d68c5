"""Token verifier interfaces.

The authenticator depends on this abstraction so verification sources
(managed identity provider, shared secret) are interchangeable strategies
tried in order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from c6os.core.errors import TokenVerificationError
from c6os.schemas.principal import Principal, Role


class AbstractTokenVerifier(ABC):
    """Interface for bearer token verifiers."""

    name: str = "abstract"

    @abstractmethod
    async def verify(self, token: str) -> Principal:
        """Verify a raw bearer token and build a principal from its claims.

        Args:
            token: Token string with the ``Bearer `` prefix already removed.

        Returns:
            Principal: Identity derived from verified claims.

        Raises:
            TokenVerificationError: If the token is rejected for any reason,
                including library or network failures.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release resources held by the verifier (HTTP clients, caches)."""
        return None


def parse_role(value: Any, *, verifier: str) -> Role:
    """Map a role claim onto the closed ``Role`` enumeration.

    Missing claims default to ``Role.USER``; unrecognized values reject the
    token instead of being silently downgraded or ignored.
    """
    if value is None or value == "":
        return Role.USER
    try:
        return Role(str(value).strip().lower())
    except ValueError as exc:
        raise TokenVerificationError(
            message="Token carries an unrecognized role claim",
            details={"reason": "unknown_role", "verifier": verifier},
        ) from exc


def require_subject(claims: dict[str, Any], *keys: str, verifier: str) -> str:
    """Return the first non-empty string claim among ``keys``."""
    for key in keys:
        value = claims.get(key)
        if value is not None and str(value).strip():
            return str(value)
    raise TokenVerificationError(
        message="Token is missing a subject claim",
        details={"reason": "missing_subject", "verifier": verifier},
    )


def build_principal(*, verifier: str, **fields: Any) -> Principal:
    """Construct a principal, rejecting claims of the wrong shape."""
    try:
        return Principal(**fields)
    except ValidationError as exc:
        raise TokenVerificationError(
            message="Token claims do not describe a valid principal",
            details={"reason": "malformed_claims", "verifier": verifier},
        ) from exc
