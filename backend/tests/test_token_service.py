"""Tests for session and pending-2FA tokens."""

from datetime import timedelta

import jwt
import pytest

from certauth.config import settings
from certauth.errors import InvalidTokenError, TokenExpiredError
from certauth.services.token_service import (
    SESSION_EXPIRED_MESSAGE,
    WRONG_TOKEN_TYPE,
    TokenService,
    TokenType,
)


def test_session_token_round_trip():
    token = TokenService.create_session_token("account-123", "a@x.com", role="admin")

    claims = TokenService.decode_session_token(token)
    assert claims["sub"] == "account-123"
    assert claims["email"] == "a@x.com"
    assert claims["role"] == "admin"
    assert claims["type"] == TokenType.SESSION


def test_session_token_lifetime_defaults_to_seven_days():
    token = TokenService.create_session_token("account-123", "a@x.com")

    claims = TokenService.decode_session_token(token)
    assert claims["exp"] - claims["iat"] == settings.session_token_expire_days * 86400
    assert "role" not in claims


def test_temp_token_carries_second_factor_marker():
    token = TokenService.create_temp_token("account-123", "a@x.com")

    claims = TokenService.decode_temp_token(token)
    assert claims["requires_2fa"] is True
    assert claims["type"] == TokenType.TWO_FACTOR_PENDING
    assert claims["exp"] - claims["iat"] == settings.temp_token_expire_minutes * 60


def test_temp_token_rejected_as_session():
    token = TokenService.create_temp_token("account-123", "a@x.com")

    with pytest.raises(InvalidTokenError) as exc_info:
        TokenService.decode_session_token(token)
    assert exc_info.value.code == WRONG_TOKEN_TYPE
    assert exc_info.value.message == "Invalid token type."


def test_session_token_rejected_as_temp():
    token = TokenService.create_session_token("account-123", "a@x.com")

    with pytest.raises(InvalidTokenError) as exc_info:
        TokenService.decode_temp_token(token)
    assert exc_info.value.code == WRONG_TOKEN_TYPE


def test_expired_token_reports_session_expired():
    token = TokenService.create_session_token(
        "account-123", "a@x.com", expires_delta=timedelta(seconds=-1)
    )

    with pytest.raises(TokenExpiredError) as exc_info:
        TokenService.decode_session_token(token)
    assert exc_info.value.message == SESSION_EXPIRED_MESSAGE
    assert exc_info.value.status_code == 401


def test_malformed_token_is_invalid_not_expired():
    with pytest.raises(InvalidTokenError) as exc_info:
        TokenService.decode_session_token("not-a-jwt")
    assert not isinstance(exc_info.value, TokenExpiredError)
    assert exc_info.value.message == "Invalid token."


def test_tampered_token_fails_verification():
    token = TokenService.create_session_token("account-123", "a@x.com")
    header, payload, signature = token.split(".")
    forged = jwt.encode(
        {"sub": "someone-else", "type": "session", "exp": 9999999999},
        "a-different-secret-of-sufficient-length",
        algorithm="HS256",
    )

    with pytest.raises(InvalidTokenError):
        TokenService.decode_session_token(forged)
    with pytest.raises(InvalidTokenError):
        TokenService.decode_session_token(f"{header}.{payload}.{signature[::-1]}")


def test_token_without_subject_is_invalid():
    token = jwt.encode(
        {"type": "session", "exp": 9999999999},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(InvalidTokenError):
        TokenService.decode_session_token(token)
