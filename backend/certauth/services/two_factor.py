"""TOTP two-factor authentication: setup, login-time validation, disable."""

import logging
from dataclasses import dataclass

from cryptography.fernet import InvalidToken
from sqlalchemy.orm import Session

from certauth.errors import (
    AuthenticationError,
    ConflictError,
    DependencyError,
    InvalidTokenError,
    TokenExpiredError,
    ValidationError,
)
from certauth.models import Account
from certauth.services.activity_logger import ActivityAction, ActivityLogger, RequestContext
from certauth.services.auth_service import AuthService
from certauth.services.email_service import EmailService
from certauth.services.lockout_service import LockoutTracker
from certauth.services.mfa_service import MfaService
from certauth.services.repositories import (
    AccountRepository,
    PasskeyRepository,
    RecoveryCodeRepository,
)
from certauth.services.session_service import LoginOutcome, ensure_can_log_in
from certauth.services.token_service import SESSION_EXPIRED_MESSAGE, WRONG_TOKEN_TYPE, TokenService

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid verification code."


@dataclass(frozen=True)
class TotpSetup:
    secret: str
    otpauth_url: str
    qr_code: str  # PNG data URL


class TwoFactorFlow:
    """Disabled -> Setup-Pending -> Enabled -> Disabled."""

    def __init__(
        self,
        db: Session,
        activity: ActivityLogger,
        lockout: LockoutTracker,
        emails: type[EmailService] = EmailService,
    ) -> None:
        self._db = db
        self._accounts = AccountRepository(db)
        self._passkeys = PasskeyRepository(db)
        self._recovery = RecoveryCodeRepository(db)
        self._activity = activity
        self._lockout = lockout
        self._emails = emails

    @staticmethod
    def _secret(account: Account) -> str:
        try:
            return MfaService.decrypt_secret(account.totp_secret_encrypted)
        except (InvalidToken, ValueError) as e:
            logger.error(f"Cannot decrypt TOTP secret for {account.id}: {e}")
            raise DependencyError("Two-factor authentication is unavailable.") from e

    def setup(self, account: Account, context: RequestContext) -> TotpSetup:
        """Generate and store a secret without enabling 2FA yet."""
        if account.totp_enabled:
            raise ConflictError(
                "Two-factor authentication is already enabled.", code="2FA_ALREADY_ENABLED"
            )

        secret = MfaService.generate_totp_secret()
        try:
            account.totp_secret_encrypted = MfaService.encrypt_secret(secret)
        except ValueError as e:
            logger.error(f"TOTP setup unavailable: {e}")
            raise DependencyError("Two-factor authentication is not configured.") from e
        self._db.commit()

        uri = MfaService.get_totp_uri(secret, account.email)
        self._activity.log(
            ActivityAction.TWO_FACTOR_SETUP,
            user_id=account.id,
            details="2FA setup initiated",
            context=context,
        )
        return TotpSetup(secret=secret, otpauth_url=uri, qr_code=MfaService.generate_qr_code_data_url(uri))

    def verify_setup(self, account: Account, code: str, context: RequestContext) -> list[str]:
        """Confirm the authenticator app and return recovery codes (shown once)."""
        if account.totp_enabled:
            raise ConflictError(
                "Two-factor authentication is already enabled.", code="2FA_ALREADY_ENABLED"
            )
        if not account.totp_secret_encrypted:
            raise ValidationError(
                "Start two-factor setup before verifying.", code="2FA_SETUP_REQUIRED"
            )
        if not MfaService.verify_totp(self._secret(account), code):
            raise AuthenticationError(INVALID_CODE_MESSAGE, code="INVALID_2FA_CODE")

        codes = MfaService.generate_recovery_codes()
        account.totp_enabled = True
        self._recovery.replace_all(account.id, [MfaService.hash_recovery_code(c) for c in codes])
        self._db.commit()

        self._emails.send_security_alert(
            account.email, "Two-factor authentication was enabled on your account.", account.full_name
        )
        self._activity.log(
            ActivityAction.TWO_FACTOR_ENABLED,
            user_id=account.id,
            details="2FA enabled",
            context=context,
        )
        return codes

    def validate(self, temp_token: str, code: str, context: RequestContext) -> LoginOutcome:
        """Exchange a temp token plus a TOTP or recovery code for a session."""
        try:
            claims = TokenService.decode_temp_token(temp_token)
        except InvalidTokenError as e:
            if e.code == WRONG_TOKEN_TYPE:
                raise
            raise TokenExpiredError(SESSION_EXPIRED_MESSAGE) from e

        account = self._accounts.find_by_id(claims["sub"])
        if account is None or not account.totp_enabled or not account.totp_secret_encrypted:
            raise TokenExpiredError(SESSION_EXPIRED_MESSAGE)
        ensure_can_log_in(account)

        method = self._check_second_factor(account, code)
        if method is None:
            self._activity.log(
                ActivityAction.TWO_FACTOR_FAILED,
                user_id=account.id,
                details="Invalid 2FA code at login",
                context=context,
            )
            raise AuthenticationError(INVALID_CODE_MESSAGE, code="INVALID_2FA_CODE")

        self._lockout.reset_attempts(account.email)
        if method == "recovery":
            remaining = self._recovery.count_remaining(account.id)
            self._activity.log(
                ActivityAction.RECOVERY_CODE_USED,
                user_id=account.id,
                details=f"Recovery code used ({remaining} remaining)",
                context=context,
            )
        self._activity.log(
            ActivityAction.LOGIN,
            user_id=account.id,
            details=f"2FA login ({method})",
            context=context,
        )
        return LoginOutcome(
            message="Login successful.",
            account=account,
            token=TokenService.create_session_token(account.id, account.email, role=account.role),
            has_passkeys=self._passkeys.has_any(account.id),
        )

    def _check_second_factor(self, account: Account, code: str) -> str | None:
        if MfaService.looks_like_totp(code):
            step = MfaService.match_totp_step(self._secret(account), code)
            if step is not None:
                if not self._accounts.claim_totp_step(account.id, step):
                    logger.warning(f"Reused TOTP code rejected for account {account.id}")
                    return None
                self._db.commit()
                return "totp"
        if self._recovery.consume(account.id, MfaService.hash_recovery_code(code)):
            self._db.commit()
            return "recovery"
        return None

    def disable(self, account: Account, password: str, context: RequestContext) -> None:
        """Turn 2FA off after re-checking the password."""
        if not AuthService.verify_password(password, account.password_hash):
            raise AuthenticationError("Incorrect password.", code="INVALID_PASSWORD")
        if not account.totp_enabled:
            raise ValidationError(
                "Two-factor authentication is not enabled.", code="2FA_NOT_ENABLED"
            )

        account.totp_enabled = False
        account.totp_secret_encrypted = None
        account.totp_last_step = None
        self._recovery.delete_all(account.id)
        self._db.commit()

        self._emails.send_security_alert(
            account.email, "Two-factor authentication was disabled on your account.", account.full_name
        )
        self._activity.log(
            ActivityAction.TWO_FACTOR_DISABLED,
            user_id=account.id,
            details="2FA disabled",
            context=context,
        )

    def status(self, account: Account) -> tuple[bool, int]:
        """(enabled, recovery codes remaining)."""
        if not account.totp_enabled:
            return False, 0
        return True, self._recovery.count_remaining(account.id)

    def regenerate_recovery_codes(
        self, account: Account, code: str, context: RequestContext
    ) -> list[str]:
        """Replace the recovery codes after a valid TOTP code."""
        if not account.totp_enabled:
            raise ValidationError(
                "Two-factor authentication is not enabled.", code="2FA_NOT_ENABLED"
            )
        if not MfaService.verify_totp(self._secret(account), code):
            raise AuthenticationError(INVALID_CODE_MESSAGE, code="INVALID_2FA_CODE")

        codes = MfaService.generate_recovery_codes()
        self._recovery.replace_all(account.id, [MfaService.hash_recovery_code(c) for c in codes])
        self._db.commit()

        self._activity.log(
            ActivityAction.RECOVERY_CODES_REGENERATED,
            user_id=account.id,
            details="Recovery codes regenerated",
            context=context,
        )
        return codes
