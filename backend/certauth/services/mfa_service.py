"""TOTP enrollment helpers and recovery code handling.

TOTP secrets are stored Fernet-encrypted under ``settings.mfa_encryption_key``.
Recovery codes are shown to the user once and only their SHA-256 digest is
persisted.
"""

import base64
import hashlib
import hmac
import secrets
import time
from functools import lru_cache
from io import BytesIO

import pyotp
import qrcode
from cryptography.fernet import Fernet

from certauth.config import settings

# XXXX-XXXX-XXXX, upper-case hex
RECOVERY_CODE_GROUPS = 3
RECOVERY_CODE_GROUP_BYTES = 2
TOTP_DIGITS = 6


@lru_cache(maxsize=4)
def _cipher(key: str) -> Fernet:
    return Fernet(key.encode())


def _secret_cipher() -> Fernet:
    if not settings.mfa_encryption_key:
        raise ValueError("MFA encryption key not configured")
    return _cipher(settings.mfa_encryption_key)


class MfaService:
    """Stateless TOTP and recovery code operations."""

    @staticmethod
    def generate_totp_secret() -> str:
        return pyotp.random_base32()

    @staticmethod
    def get_totp_uri(secret: str, email: str) -> str:
        """otpauth:// URI labelled with the account email and configured issuer."""
        return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=settings.totp_issuer)

    @staticmethod
    def generate_qr_code_data_url(uri: str) -> str:
        """PNG QR code of ``uri`` as a ``data:`` URL the frontend can put in an <img>."""
        image = qrcode.make(uri)
        png = BytesIO()
        image.save(png, format="PNG")
        encoded = base64.b64encode(png.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    @staticmethod
    def match_totp_step(secret: str, code: str, for_time: float | None = None) -> int | None:
        """Time step the code belongs to, allowing one step of clock drift either way.

        Callers that log someone in store the returned step so the same code
        cannot be accepted twice.
        """
        totp = pyotp.TOTP(secret)
        code = code.strip().encode()
        current = int((time.time() if for_time is None else for_time) // totp.interval)
        for step in (current - 1, current, current + 1):
            if hmac.compare_digest(totp.generate_otp(step).encode(), code):
                return step
        return None

    @staticmethod
    def verify_totp(secret: str, code: str) -> bool:
        return MfaService.match_totp_step(secret, code) is not None

    @staticmethod
    def looks_like_totp(code: str) -> bool:
        code = code.strip()
        return len(code) == TOTP_DIGITS and code.isdigit()

    @staticmethod
    def encrypt_secret(secret: str) -> str:
        """Encrypt a TOTP secret for the accounts table.

        Raises:
            ValueError: no encryption key is configured
        """
        return _secret_cipher().encrypt(secret.encode()).decode()

    @staticmethod
    def decrypt_secret(encrypted: str) -> str:
        return _secret_cipher().decrypt(encrypted.encode()).decode()

    # Recovery codes

    @staticmethod
    def generate_recovery_codes(count: int | None = None) -> list[str]:
        """A batch of distinct single-use codes, ``settings.recovery_code_count`` by default."""
        wanted = count or settings.recovery_code_count
        batch: dict[str, None] = {}
        while len(batch) < wanted:
            groups = (
                secrets.token_hex(RECOVERY_CODE_GROUP_BYTES).upper()
                for _ in range(RECOVERY_CODE_GROUPS)
            )
            batch["-".join(groups)] = None
        return list(batch)

    @staticmethod
    def normalize_recovery_code(code: str) -> str:
        return code.strip().upper()

    @staticmethod
    def hash_recovery_code(code: str) -> str:
        """Digest under which a recovery code is stored and looked up."""
        return hashlib.sha256(MfaService.normalize_recovery_code(code).encode("utf-8")).hexdigest()
