"""Signed session and pending-2FA tokens."""

import logging
from datetime import UTC, datetime, timedelta

import jwt

from certauth.config import settings
from certauth.errors import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)


class TokenType:
    SESSION = "session"
    TWO_FACTOR_PENDING = "2fa_pending"


SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."
WRONG_TOKEN_TYPE = "INVALID_TOKEN_TYPE"


class TokenService:
    """Issues and validates JWTs (HS256).

    A session token grants access to the API. A temp token only proves the
    password step of a login and is accepted solely by 2FA validation.
    """

    @staticmethod
    def _encode(payload: dict, expires_delta: timedelta) -> str:
        now = datetime.now(UTC)
        payload = {**payload, "iat": now, "exp": now + expires_delta}
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    @staticmethod
    def create_session_token(
        account_id: str,
        email: str,
        role: str | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create a full session token."""
        if expires_delta is None:
            expires_delta = timedelta(days=settings.session_token_expire_days)

        payload = {"sub": account_id, "email": email, "type": TokenType.SESSION}
        if role:
            payload["role"] = role
        return TokenService._encode(payload, expires_delta)

    @staticmethod
    def create_temp_token(
        account_id: str,
        email: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create a short-lived token that can only be exchanged at 2FA validation."""
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.temp_token_expire_minutes)

        payload = {
            "sub": account_id,
            "email": email,
            "requires_2fa": True,
            "type": TokenType.TWO_FACTOR_PENDING,
        }
        return TokenService._encode(payload, expires_delta)

    @staticmethod
    def _decode(token: str, expected_type: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Token expired")
            raise TokenExpiredError(SESSION_EXPIRED_MESSAGE) from None
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid token: {e}")
            raise InvalidTokenError("Invalid token.") from None

        if payload.get("type") != expected_type:
            raise InvalidTokenError("Invalid token type.", code=WRONG_TOKEN_TYPE)
        return payload

    @staticmethod
    def decode_session_token(token: str) -> dict:
        """Validate a session token and return its claims.

        Raises:
            TokenExpiredError: token is past its expiry
            InvalidTokenError: malformed, tampered or a temp token
        """
        return TokenService._decode(token, TokenType.SESSION)

    @staticmethod
    def decode_temp_token(token: str) -> dict:
        """Validate a pending-2FA token and return its claims."""
        payload = TokenService._decode(token, TokenType.TWO_FACTOR_PENDING)
        if payload.get("requires_2fa") is not True:
            raise InvalidTokenError("Invalid token type.", code=WRONG_TOKEN_TYPE)
        return payload
