"""Authentication service for password hashing and token digests."""

import functools
import hashlib
import logging
import secrets

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


class AuthService:
    """Service for credential hashing operations."""

    @staticmethod
    @functools.cache
    def get_dummy_hash() -> str:
        """Bcrypt hash compared against when the email is unknown.

        Keeps response timing the same whether or not an account exists.
        """
        return bcrypt.hashpw(secrets.token_bytes(16), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    @staticmethod
    def verify_password(password: str, hashed: str) -> bool:
        """Verify a password against its hash.

        Passwords longer than bcrypt accepts can never have been stored, so
        they are compared against the dummy hash and rejected.
        """
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            bcrypt.checkpw(encoded[:BCRYPT_MAX_BYTES], AuthService.get_dummy_hash().encode("utf-8"))
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except ValueError as e:
            logger.error(f"Password verification error: {e}")
            return False

    @staticmethod
    def generate_token() -> str:
        """Random URL-safe token for email verification and password reset links."""
        return secrets.token_urlsafe(32)

    @staticmethod
    def hash_token(token: str) -> str:
        """Hash a token using SHA-256 so only the digest is ever stored."""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()
