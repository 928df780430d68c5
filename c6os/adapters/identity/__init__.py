"""Identity adapters - bearer token verification strategies."""

from c6os.adapters.identity.base import AbstractTokenVerifier
from c6os.adapters.identity.cognito import CognitoTokenVerifier
from c6os.adapters.identity.factory import create_token_verifiers
from c6os.adapters.identity.shared_secret import SharedSecretTokenVerifier

__all__ = [
    "AbstractTokenVerifier",
    "CognitoTokenVerifier",
    "SharedSecretTokenVerifier",
    "create_token_verifiers",
]
