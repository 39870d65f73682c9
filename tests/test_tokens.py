"""
Tests for session token issuance and validation
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.auth import (
    ALGORITHM,
    SECRET_KEY,
    SESSION_TOKEN_EXPIRE_HOURS,
    create_session_token,
    validate_session_token,
)
from app.errors import ExpiredTokenError, InvalidTokenError, TokenError


def test_token_round_trip_yields_identity():
    """A fresh token validates to the identity it was issued for."""
    token = create_session_token("A")
    token_data = validate_session_token(token)

    assert token_data.device_id == "A"
    assert token_data.jti


def test_token_lifetime_is_one_hour():
    assert SESSION_TOKEN_EXPIRE_HOURS == 1

    token_data = validate_session_token(create_session_token("A"))
    lifetime = token_data.expires_at - token_data.issued_at
    assert lifetime == timedelta(hours=1)


def test_token_carries_client_id_claim():
    """Device firmware reads the clientId claim."""
    claims = jwt.get_unverified_claims(create_session_token("B"))
    assert claims["clientId"] == "B"


def test_expired_token_is_rejected():
    token = create_session_token("A", expires_delta=timedelta(seconds=-10))

    with pytest.raises(ExpiredTokenError):
        validate_session_token(token)


def test_token_signed_with_other_key_is_rejected():
    token = create_session_token("A", secret_key="some-other-key")

    with pytest.raises(InvalidTokenError):
        validate_session_token(token)


def test_tampered_token_is_rejected():
    token = create_session_token("A")
    header, payload, signature = token.split(".")
    flipped = "A" if signature[0] != "A" else "B"
    tampered = f"{header}.{payload}.{flipped}{signature[1:]}"

    with pytest.raises(InvalidTokenError):
        validate_session_token(tampered)


def test_expired_token_fails_regardless_of_signature():
    """After expiry validation fails whether or not the signature is good."""
    good = create_session_token("A", expires_delta=timedelta(seconds=-10))
    forged = create_session_token(
        "A", expires_delta=timedelta(seconds=-10), secret_key="forged"
    )

    for token in (good, forged):
        with pytest.raises(TokenError):
            validate_session_token(token)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_tokens_are_rejected(token):
    with pytest.raises(InvalidTokenError):
        validate_session_token(token)


def test_token_without_identity_is_rejected():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"exp": now + timedelta(minutes=5), "iat": now}, SECRET_KEY, algorithm=ALGORITHM
    )

    with pytest.raises(InvalidTokenError):
        validate_session_token(token)
