"""Factory for the ordered token verifier chain."""

from __future__ import annotations

import logging

from c6os.adapters.identity.base import AbstractTokenVerifier
from c6os.adapters.identity.cognito import CognitoTokenVerifier
from c6os.adapters.identity.shared_secret import SharedSecretTokenVerifier
from c6os.core.config import AuthSettings

logger = logging.getLogger(__name__)


def create_token_verifiers(auth_settings: AuthSettings) -> list[AbstractTokenVerifier]:
    """Build the verifier chain from configuration.

    The managed identity provider always precedes the shared secret so tokens
    issued by Cognito never depend on a local secret being configured. A
    verifier is included only when its settings are present; an empty list
    means every bearer token is rejected.

    Args:
        auth_settings: Resolved authentication settings.

    Returns:
        list[AbstractTokenVerifier]: Verifiers in the order they are tried.
    """
    verifiers: list[AbstractTokenVerifier] = []

    if auth_settings.cognito_user_pool_id:
        if not auth_settings.cognito_client_id:
            logger.error(
                "auth.cognito_client_id_missing",
                extra={"user_pool_id": auth_settings.cognito_user_pool_id},
            )
        verifiers.append(
            CognitoTokenVerifier(
                user_pool_id=auth_settings.cognito_user_pool_id,
                client_id=auth_settings.cognito_client_id,
                region=auth_settings.cognito_region,
                token_use=auth_settings.cognito_token_use,
                jwks_cache_ttl_seconds=auth_settings.jwks_cache_ttl_seconds,
                http_timeout=auth_settings.verification_timeout_seconds,
            )
        )

    if auth_settings.jwt_secret:
        verifiers.append(
            SharedSecretTokenVerifier(
                secret=auth_settings.jwt_secret,
                algorithms=auth_settings.jwt_algorithms,
                audience=auth_settings.jwt_audience,
                issuer=auth_settings.jwt_issuer,
            )
        )

    logger.info(
        "auth.verifiers_configured",
        extra={"verifiers": [verifier.name for verifier in verifiers]},
    )
    return verifiers
