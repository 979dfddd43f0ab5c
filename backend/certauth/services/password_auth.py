"""Password login with per-email lockout."""

import logging
from typing import NoReturn

from sqlalchemy.orm import Session

from certauth.config import settings
from certauth.errors import AuthenticationError, RateLimitedError
from certauth.models import AccountRole
from certauth.services.activity_logger import ActivityAction, ActivityLogger, RequestContext
from certauth.services.auth_service import AuthService
from certauth.services.lockout_service import LockoutTracker
from certauth.services.repositories import AccountRepository, PasskeyRepository
from certauth.services.session_service import LoginOutcome, ensure_can_log_in, start_session
from certauth.services.token_service import TokenService

logger = logging.getLogger(__name__)

BREAK_GLASS_SUBJECT = "break-glass"


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


class PasswordAuthFlow:
    """Validates email and password and decides what the caller gets back."""

    def __init__(
        self,
        db: Session,
        lockout: LockoutTracker,
        activity: ActivityLogger,
    ) -> None:
        self._accounts = AccountRepository(db)
        self._passkeys = PasskeyRepository(db)
        self._lockout = lockout
        self._activity = activity

    def login(self, email: str, password: str, context: RequestContext) -> LoginOutcome:
        """Authenticate by password.

        Raises:
            RateLimitedError: identifier locked, or this failure locked it
            AuthenticationError: unknown email or wrong password (same message)
            AccountStatusError: correct password but account not active
        """
        email = email.strip().lower()

        if self._is_break_glass(email, password):
            return self._break_glass_login(email, context)

        status = self._lockout.check_lockout(email)
        if status.locked:
            minutes = status.remaining_minutes
            self._activity.log(
                ActivityAction.ACCOUNT_LOCKED,
                details=f"Login blocked, account locked ({minutes} min remaining)",
                context=context,
            )
            raise RateLimitedError(
                "Account locked due to too many failed attempts. "
                f"Try again in {_plural(minutes, 'minute')}.",
                retry_after_seconds=status.remaining_seconds,
            )

        account = self._accounts.find_by_email(email)
        if account is None:
            # Same bcrypt cost as a real comparison
            AuthService.verify_password(password, AuthService.get_dummy_hash())
            self._fail(email, None, context)

        if not AuthService.verify_password(password, account.password_hash):
            self._fail(email, account.id, context)

        self._lockout.reset_attempts(email)
        ensure_can_log_in(account)

        outcome = start_session(account, self._passkeys.has_any(account.id), method="Password")
        self._activity.log(
            ActivityAction.LOGIN,
            user_id=account.id,
            details="Password verified, awaiting 2FA" if outcome.requires_2fa else "Password login",
            context=context,
        )
        return outcome

    def _fail(self, email: str, account_id: str | None, context: RequestContext) -> NoReturn:
        result = self._lockout.record_failed_attempt(email)
        self._activity.log(
            ActivityAction.LOGIN_FAILED,
            user_id=account_id,
            details=f"Failed login ({result.attempts_remaining} attempts left)",
            context=context,
        )
        if result.locked:
            raise RateLimitedError(
                f"Account locked after {self._lockout.max_attempts} failed attempts. "
                f"Try again in {_plural(result.lockout_minutes, 'minute')}.",
                retry_after_seconds=result.lockout_minutes * 60,
            )
        raise AuthenticationError(
            "Invalid credentials.",
            code="INVALID_CREDENTIALS",
            attemptsRemaining=result.attempts_remaining,
        )

    @staticmethod
    def _is_break_glass(email: str, password: str) -> bool:
        if not (
            settings.break_glass_enabled
            and settings.break_glass_email
            and settings.break_glass_password_hash
        ):
            return False
        if email != settings.break_glass_email.strip().lower():
            return False
        return AuthService.verify_password(password, settings.break_glass_password_hash)

    def _break_glass_login(self, email: str, context: RequestContext) -> LoginOutcome:
        logger.warning(f"Break-glass login used from {context.ip_address}")
        self._activity.log(
            ActivityAction.BREAK_GLASS_LOGIN,
            admin_id=BREAK_GLASS_SUBJECT,
            details=f"Break-glass operator login as {email}",
            context=context,
        )
        token = TokenService.create_session_token(BREAK_GLASS_SUBJECT, email, role=AccountRole.ADMIN)
        return LoginOutcome(
            message="Break-glass login successful.",
            token=token,
            user={
                "id": BREAK_GLASS_SUBJECT,
                "email": email,
                "fullName": "Break-glass Operator",
                "role": AccountRole.ADMIN,
            },
        )
