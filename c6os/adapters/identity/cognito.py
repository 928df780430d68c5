"""Verifier for AWS Cognito user pool access tokens.

Signing keys come from the pool's JWKS endpoint, fetched with httpx and
cached in-process. The cache is refreshed when its TTL lapses or when a token
names a key id that is not in the cached set (key rotation).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

import httpx
from jose import JWTError, jwt
from jose.exceptions import JWKError

from c6os.adapters.identity.base import (
    AbstractTokenVerifier,
    build_principal,
    parse_role,
    require_subject,
)
from c6os.core.errors import TokenVerificationError
from c6os.schemas.principal import AuthSource, Principal

logger = logging.getLogger(__name__)


def region_from_pool_id(user_pool_id: str) -> str:
    """Extract the AWS region from a pool id such as ``us-east-1_AbC123``."""
    region, sep, suffix = user_pool_id.partition("_")
    if not sep or not region or not suffix:
        raise ValueError(f"cannot derive region from user pool id '{user_pool_id}'")
    return region


class CognitoTokenVerifier(AbstractTokenVerifier):
    """Validate Cognito JWTs: signature, issuer, token use and app client."""

    name = "cognito"

    def __init__(
        self,
        *,
        user_pool_id: str,
        client_id: str | None,
        region: str | None = None,
        token_use: str = "access",
        jwks_cache_ttl_seconds: int = 3600,
        http_timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not user_pool_id:
            raise ValueError("user_pool_id must be a non-empty string")

        self.user_pool_id = user_pool_id
        self.client_id = client_id
        self.region = region or region_from_pool_id(user_pool_id)
        self.token_use = token_use
        self.issuer = f"https://cognito-idp.{self.region}.amazonaws.com/{user_pool_id}"
        self.jwks_url = f"{self.issuer}/.well-known/jwks.json"

        self._cache_ttl = jwks_cache_ttl_seconds
        self._clock = clock
        self._keys: list[dict[str, Any]] | None = None
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=http_timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def verify(self, token: str) -> Principal:
        if not self.client_id:
            # A pool without a configured app client accepts nothing.
            raise TokenVerificationError(
                message="Cognito client id is not configured",
                details={"reason": "client_id_not_configured", "verifier": self.name},
            )

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise self._failure("malformed_token", exc) from exc

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise self._failure("missing_kid")

        key = await self._get_key(kid)
        if key is None:
            raise self._failure("unknown_kid")

        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                key,
                algorithms=[key.get("alg", "RS256")],
                issuer=self.issuer,
                # Access tokens carry client_id instead of aud.
                options={"verify_aud": False, "verify_at_hash": False},
            )
        except JWTError as exc:
            raise self._failure(type(exc).__name__, exc) from exc
        except (JWKError, ValueError, KeyError, TypeError) as exc:
            # The published key could not be turned into a verification key.
            raise self._failure("jwks_malformed", exc) from exc

        if claims.get("token_use") != self.token_use:
            raise self._failure("token_use_mismatch")

        audience = claims.get("client_id") if self.token_use == "access" else claims.get("aud")
        if audience != self.client_id:
            raise self._failure("client_id_mismatch")

        return principal_from_cognito_claims(claims)

    async def _get_key(self, kid: str) -> dict[str, Any] | None:
        """Return the JWK matching ``kid``, refreshing once on a miss."""
        await self._refresh_keys(force=False)
        key = self._find_key(kid)
        if key is not None:
            return key

        await self._refresh_keys(force=True)
        return self._find_key(kid)

    def _find_key(self, kid: str) -> dict[str, Any] | None:
        for key in self._keys or []:
            if key.get("kid") == kid:
                return key
        return None

    def _is_fresh(self) -> bool:
        return self._keys is not None and (self._clock() - self._fetched_at) < self._cache_ttl

    async def _refresh_keys(self, *, force: bool) -> None:
        if not force and self._is_fresh():
            return

        async with self._lock:
            if not force and self._is_fresh():
                return

            try:
                response = await self._client.get(self.jwks_url)
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise self._failure("jwks_unavailable", exc) from exc

            keys = payload.get("keys") if isinstance(payload, dict) else None
            if not isinstance(keys, list):
                raise self._failure("jwks_malformed")

            self._keys = [key for key in keys if isinstance(key, dict)]
            self._fetched_at = self._clock()
            logger.info(
                "auth.jwks_refreshed",
                extra={"verifier": self.name, "key_count": len(self._keys), "forced": force},
            )

    def _failure(self, reason: str, exc: Exception | None = None) -> TokenVerificationError:
        message = f"Cognito verification failed: {reason}"
        if exc is not None:
            message = f"{message} ({exc})"
        return TokenVerificationError(
            message=message,
            details={"reason": reason, "verifier": self.name},
        )


def principal_from_cognito_claims(claims: dict[str, Any]) -> Principal:
    """Map Cognito claims onto a principal (``custom:role`` defaults to user)."""
    verifier = CognitoTokenVerifier.name
    return build_principal(
        verifier=verifier,
        id=require_subject(claims, "sub", verifier=verifier),
        email=claims.get("email"),
        name=claims.get("name"),
        username=claims.get("username") or claims.get("cognito:username"),
        role=parse_role(claims.get("custom:role"), verifier=verifier),
        groups=_groups(claims.get("cognito:groups")),
        token_use=claims.get("token_use"),
        auth_source=AuthSource.COGNITO,
    )


def _groups(value: Any) -> frozenset[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(str(group) for group in value)
    return frozenset()
