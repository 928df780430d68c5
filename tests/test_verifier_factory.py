"""Tests for building the verifier chain from settings."""

import logging

from c6os.adapters.identity import CognitoTokenVerifier, SharedSecretTokenVerifier
from c6os.adapters.identity.factory import create_token_verifiers
from c6os.core.config import AuthSettings


def test_no_settings_yields_empty_chain():
    assert create_token_verifiers(AuthSettings()) == []


def test_shared_secret_only():
    verifiers = create_token_verifiers(AuthSettings(jwt_secret="s3cret"))

    assert [v.name for v in verifiers] == ["shared_secret"]
    assert isinstance(verifiers[0], SharedSecretTokenVerifier)


def test_cognito_precedes_shared_secret():
    verifiers = create_token_verifiers(
        AuthSettings(
            cognito_user_pool_id="us-east-1_Pool",
            cognito_client_id="client-abc",
            jwt_secret="s3cret",
        )
    )

    assert [v.name for v in verifiers] == ["cognito", "shared_secret"]
    cognito = verifiers[0]
    assert isinstance(cognito, CognitoTokenVerifier)
    assert cognito.region == "us-east-1"
    assert cognito.client_id == "client-abc"


def test_missing_client_id_is_logged(caplog):
    with caplog.at_level(logging.ERROR, logger="c6os.adapters.identity.factory"):
        verifiers = create_token_verifiers(AuthSettings(cognito_user_pool_id="eu-west-1_Pool"))

    assert [v.name for v in verifiers] == ["cognito"]
    assert any(r.getMessage() == "auth.cognito_client_id_missing" for r in caplog.records)
