"""Bearer token authentication and role authorization.

This module turns an ``Authorization`` header into a ``Principal``.

Design principles:
- Ordered strategies: verifiers are tried in sequence, first success wins
- Fail closed: an exhausted chain is ``InvalidTokenError``, never admission
- Dependency Injection: the ``Authenticator`` is built once by the app
  factory, stored on ``app.state`` and reached through FastAPI dependencies
- The only unauthenticated path is the development bypass, which is disabled
  in production
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Annotated, Awaitable, Callable, Sequence

from fastapi import Header, Request

from c6os.adapters.identity.base import AbstractTokenVerifier
from c6os.core.errors import (
    AuthenticationRequiredError,
    InsufficientPermissionsError,
    InvalidTokenError,
    TokenVerificationError,
)
from c6os.core.logging import set_principal_id
from c6os.schemas.principal import DEV_PRINCIPAL, Principal, Role

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token after the ``Bearer `` prefix, or None when malformed.

    Examples:
        >>> extract_bearer_token("Bearer abc.def.ghi")
        'abc.def.ghi'
        >>> extract_bearer_token("Basic dXNlcjpwYXNz") is None
        True
        >>> extract_bearer_token(None) is None
        True
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):]


def _token_fingerprint(token: str) -> str:
    """Hash the token for logging without exposing it."""
    return hashlib.sha256(token.encode()).hexdigest()[:16]


class Authenticator:
    """Resolve principals from bearer credentials.

    Args:
        verifiers: Strategies tried in order; the first success wins.
        production: Whether the deployment mode is production. Outside
            production a request without a bearer credential is admitted as
            the development principal.
        timeout_seconds: Upper bound for each verifier attempt. A timeout
            counts as that verifier rejecting the token.
    """

    def __init__(
        self,
        verifiers: Sequence[AbstractTokenVerifier],
        *,
        production: bool,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._verifiers = list(verifiers)
        self.production = production
        self.timeout_seconds = timeout_seconds

    @property
    def verifiers(self) -> list[AbstractTokenVerifier]:
        return list(self._verifiers)

    async def authenticate(self, authorization: str | None) -> Principal:
        """Authenticate an ``Authorization`` header value.

        Raises:
            AuthenticationRequiredError: No bearer credential in production mode.
            InvalidTokenError: Every configured verifier rejected the token,
                or no verifier is configured.
        """
        token = extract_bearer_token(authorization)

        if token is None:
            if not self.production:
                logger.debug("auth.development_bypass", extra={"principal_id": DEV_PRINCIPAL.id})
                return DEV_PRINCIPAL
            logger.warning(
                "auth.missing_credentials",
                extra={"authorization_present": authorization is not None},
            )
            raise AuthenticationRequiredError()

        principal = await self._verify(token)
        if principal is None:
            logger.warning(
                "auth.invalid_token",
                extra={
                    "token_hash": _token_fingerprint(token),
                    "verifiers": [verifier.name for verifier in self._verifiers],
                },
            )
            raise InvalidTokenError()

        logger.info(
            "auth.success",
            extra={
                "principal_id": principal.id,
                "auth_source": principal.auth_source.value,
                "role": principal.role.value,
            },
        )
        return principal

    async def identify(self, authorization: str | None) -> Principal | None:
        """Best-effort authentication that never fails and never bypasses.

        Returns:
            The principal for a valid bearer token, otherwise None.
        """
        token = extract_bearer_token(authorization)
        if token is None:
            return None
        return await self._verify(token)

    async def _verify(self, token: str) -> Principal | None:
        for verifier in self._verifiers:
            try:
                return await asyncio.wait_for(verifier.verify(token), timeout=self.timeout_seconds)
            except TokenVerificationError as exc:
                logger.info(
                    "auth.verifier_rejected",
                    extra={
                        "verifier": verifier.name,
                        "reason": (exc.details or {}).get("reason"),
                        "error_msg": exc.message,
                    },
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "auth.verifier_timeout",
                    extra={"verifier": verifier.name, "timeout_s": self.timeout_seconds},
                )
            except Exception as exc:
                # An unexpected verifier fault rejects the token; it never admits it.
                logger.error(
                    "auth.verifier_error",
                    extra={"verifier": verifier.name, "error_type": type(exc).__name__},
                    exc_info=exc,
                )
        return None

    async def aclose(self) -> None:
        for verifier in self._verifiers:
            await verifier.aclose()


def check_role(principal: Principal | None, required: Role) -> Principal:
    """Pure role check against the ordered hierarchy.

    Raises:
        AuthenticationRequiredError: No principal is attached.
        InsufficientPermissionsError: Principal's level is below ``required``.
    """
    if principal is None:
        raise AuthenticationRequiredError(message="Please authenticate first")

    if not principal.role.satisfies(required):
        logger.warning(
            "auth.insufficient_role",
            extra={
                "principal_id": principal.id,
                "role": principal.role.value,
                "required_role": required.value,
            },
        )
        raise InsufficientPermissionsError(
            message=f"This endpoint requires {required.value} role or higher",
            details={"required_role": required.value, "actual_role": principal.role.value},
        )
    return principal


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_current_principal(request: Request) -> Principal | None:
    """Principal attached to this request by an earlier dependency, if any."""
    return getattr(request.state, "principal", None)


async def authenticate_request(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """FastAPI dependency enforcing authentication.

    Usage:
        router = APIRouter(dependencies=[Depends(authenticate_request)])

    Raises:
        AuthenticationRequiredError: 401 when no credential is presented in production.
        InvalidTokenError: 401 when the credential cannot be verified.
    """
    principal = await get_authenticator(request).authenticate(authorization)
    request.state.principal = principal
    set_principal_id(principal.id)
    return principal


async def optional_principal(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Principal | None:
    """FastAPI dependency attaching a principal when a valid token is present.

    Never rejects the request; anonymous callers get None.
    """
    principal = await get_authenticator(request).identify(authorization)
    if principal is not None:
        request.state.principal = principal
        set_principal_id(principal.id)
    return principal


def require_role(required: Role) -> Callable[[Request], Awaitable[Principal]]:
    """Build a dependency that requires ``required`` role or higher.

    Must run after ``authenticate_request`` (router-level dependencies run
    before route-level ones).

    Usage:
        @router.put("/config", dependencies=[Depends(require_role(Role.ADMIN))])
    """

    async def _require_role(request: Request) -> Principal:
        return check_role(get_current_principal(request), required)

    _require_role.__name__ = f"require_{required.value}"
    return _require_role
