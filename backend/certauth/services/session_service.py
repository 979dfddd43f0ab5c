"""Turns a proven identity into either a session or a pending-2FA token."""

from dataclasses import dataclass

from certauth.errors import AccountStatusError
from certauth.models import Account, AccountStatus
from certauth.services.token_service import TokenService


@dataclass(frozen=True)
class LoginOutcome:
    """Result of a successful first factor (password or passkey)."""

    message: str
    account: Account | None = None
    token: str | None = None
    temp_token: str | None = None
    has_passkeys: bool = False
    user: dict | None = None  # set only for sessions without an account record

    @property
    def requires_2fa(self) -> bool:
        return self.temp_token is not None


_STATUS_ERRORS = {
    AccountStatus.PENDING_EMAIL: (
        "Email not verified.",
        "EMAIL_NOT_VERIFIED",
        "Please check your email and click the verification link to proceed.",
    ),
    AccountStatus.PENDING_APPROVAL: (
        "Account pending approval.",
        "PENDING_APPROVAL",
        "Your registration is being reviewed. You will receive an email once activated.",
    ),
    AccountStatus.REJECTED: (
        "Account rejected.",
        "ACCOUNT_REJECTED",
        "Your registration application was declined by the administration.",
    ),
}


def ensure_can_log_in(account: Account) -> None:
    """Raise a status-specific error unless the account is active."""
    if account.status == AccountStatus.ACTIVE:
        return
    message, code, hint = _STATUS_ERRORS[account.status]
    raise AccountStatusError(message, code=code, hint=hint)


def start_session(account: Account, has_passkeys: bool, method: str = "Login") -> LoginOutcome:
    """Full session, or a temp token when TOTP is enabled."""
    if account.totp_enabled:
        return LoginOutcome(
            message=f"{method} verified. Please enter your 2FA code.",
            account=account,
            temp_token=TokenService.create_temp_token(account.id, account.email),
        )

    return LoginOutcome(
        message="Login successful.",
        account=account,
        token=TokenService.create_session_token(account.id, account.email, role=account.role),
        has_passkeys=has_passkeys,
    )
