"""Verifier for tokens signed locally with a shared secret."""

from __future__ import annotations

from typing import Any, Sequence

from jose import JWTError, jwt

from c6os.adapters.identity.base import (
    AbstractTokenVerifier,
    build_principal,
    parse_role,
    require_subject,
)
from c6os.core.errors import TokenVerificationError
from c6os.schemas.principal import AuthSource, Principal


class SharedSecretTokenVerifier(AbstractTokenVerifier):
    """Validate HMAC-signed JWTs issued by this deployment.

    Signature and expiry are always checked. Audience and issuer are checked
    only when configured.
    """

    name = "shared_secret"

    def __init__(
        self,
        *,
        secret: str,
        algorithms: Sequence[str] = ("HS256",),
        audience: str | None = None,
        issuer: str | None = None,
    ) -> None:
        if not secret:
            raise ValueError("secret must be a non-empty string")
        if not algorithms:
            raise ValueError("at least one algorithm is required")

        self._secret = secret
        self._algorithms = list(algorithms)
        self._audience = audience
        self._issuer = issuer

    async def verify(self, token: str) -> Principal:
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=self._algorithms,
                audience=self._audience,
                issuer=self._issuer,
                options={"verify_aud": self._audience is not None, "verify_sub": False},
            )
        except JWTError as exc:
            raise TokenVerificationError(
                message=f"Shared-secret verification failed: {exc}",
                details={"reason": type(exc).__name__, "verifier": self.name},
            ) from exc

        return principal_from_local_claims(claims)


def principal_from_local_claims(claims: dict[str, Any]) -> Principal:
    """Map locally issued token claims onto a principal.

    ``sub`` takes precedence over the legacy ``userId`` claim.
    """
    verifier = SharedSecretTokenVerifier.name
    return build_principal(
        verifier=verifier,
        id=require_subject(claims, "sub", "userId", verifier=verifier),
        email=claims.get("email"),
        name=claims.get("name"),
        username=claims.get("username"),
        role=parse_role(claims.get("role"), verifier=verifier),
        auth_source=AuthSource.SHARED_SECRET,
    )
