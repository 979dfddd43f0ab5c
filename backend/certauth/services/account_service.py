"""Registration, email verification, password management and approval."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from certauth.config import settings
from certauth.errors import (
    AuthenticationError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from certauth.models import Account, AccountStatus
from certauth.services.activity_logger import ActivityAction, ActivityLogger, RequestContext
from certauth.services.auth_service import AuthService
from certauth.services.email_service import EmailService, NotificationResult
from certauth.services.lockout_service import LockoutTracker
from certauth.services.repositories import AccountRepository, DuplicateError
from certauth.services.reset_token_store import ResetTokenStore

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a reset link has been sent."
RESEND_VERIFICATION_MESSAGE = (
    "If that email is awaiting verification, a new verification link has been sent."
)


@dataclass(frozen=True)
class Registration:
    email: str
    password: str
    full_name: str | None = None
    student_id_number: str | None = None
    course_name: str | None = None
    year: str | None = None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class AccountService:
    """Account lifecycle outside of login itself."""

    def __init__(
        self,
        db: Session,
        activity: ActivityLogger,
        lockout: LockoutTracker,
        resets: ResetTokenStore,
        emails: type[EmailService] = EmailService,
    ) -> None:
        self._db = db
        self._accounts = AccountRepository(db)
        self._activity = activity
        self._lockout = lockout
        self._resets = resets
        self._emails = emails

    # Registration

    def register(self, data: Registration, context: RequestContext) -> Account:
        """Create a PENDING_EMAIL account and send its verification link.

        Raises:
            ConflictError: email or student id already registered
            DependencyError: account store failed mid-registration
        """
        email = data.email.strip().lower()
        if self._accounts.find_by_email(email):
            raise ConflictError("An account with this email already exists.", code="EMAIL_TAKEN")
        if data.student_id_number and self._accounts.find_by_student_id(data.student_id_number):
            raise ConflictError(
                "This student ID number is already registered.", code="STUDENT_ID_TAKEN"
            )

        account = Account(
            email=email,
            password_hash=AuthService.hash_password(data.password),
            full_name=data.full_name,
            student_id_number=data.student_id_number,
            course_name=data.course_name,
            year=data.year,
            status=AccountStatus.PENDING_EMAIL,
        )
        try:
            self._accounts.insert(account)
            self._db.commit()
        except DuplicateError as e:
            # Lost a race with a concurrent registration
            if e.field == "student_id_number":
                raise ConflictError(
                    "This student ID number is already registered.", code="STUDENT_ID_TAKEN"
                ) from e
            raise ConflictError("An account with this email already exists.", code="EMAIL_TAKEN") from e
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.exception("Failed to create account")
            raise DependencyError("Registration failed. Please try again.") from e

        token = self._issue_verification_token(account)
        result = self._emails.send_verification_email(account.email, token, account.full_name)
        if not result.success:
            logger.warning(f"Verification email not sent to {account.email}: {result.error}")

        self._activity.log(
            ActivityAction.REGISTER,
            user_id=account.id,
            details="Student registered",
            context=context,
        )
        return account

    def _issue_verification_token(self, account: Account) -> str:
        """Store a verification token, deleting the new account if that fails."""
        token = AuthService.generate_token()
        expires_at = datetime.now(UTC) + timedelta(hours=settings.email_verification_expire_hours)
        try:
            self._accounts.add_verification_token(account.id, AuthService.hash_token(token), expires_at)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.exception(f"Failed to store verification token for {account.id}")
            self._delete_partial_account(account)
            raise DependencyError("Registration failed. Please try again.") from e
        return token

    def _delete_partial_account(self, account: Account) -> None:
        try:
            self._accounts.delete(account)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.exception(f"Cleanup of partially registered account {account.id} failed")
            raise DependencyError(
                "Registration could not be completed and cleanup failed. Contact support."
            ) from e

    def verify_email(self, token: str, context: RequestContext) -> Account:
        """Redeem an email token: PENDING_EMAIL -> PENDING_APPROVAL."""
        if not token:
            raise ValidationError("Verification token is required.")

        record = self._accounts.find_verification_token(AuthService.hash_token(token))
        if record is None or _as_utc(record.expires_at) < datetime.now(UTC):
            raise ValidationError("Invalid or expired verification link.", code="INVALID_TOKEN")

        account = record.account
        if account.status != AccountStatus.PENDING_EMAIL:
            raise ValidationError("Email is already verified.", code="ALREADY_VERIFIED")

        record.used_at = datetime.now(UTC)
        account.status = AccountStatus.PENDING_APPROVAL
        self._db.commit()

        self._activity.log(
            ActivityAction.EMAIL_VERIFIED,
            user_id=account.id,
            details="Student verified their email address",
            context=context,
        )
        return account

    def resend_verification(
        self, email: str, background_tasks: BackgroundTasks | None = None
    ) -> str:
        """Send a fresh link if the account is still unverified. Same answer either way."""
        account = self._accounts.find_by_email(email)
        if account is None or account.status != AccountStatus.PENDING_EMAIL:
            return RESEND_VERIFICATION_MESSAGE

        self._accounts.invalidate_verification_tokens(account.id)
        token = AuthService.generate_token()
        expires_at = datetime.now(UTC) + timedelta(hours=settings.email_verification_expire_hours)
        self._accounts.add_verification_token(account.id, AuthService.hash_token(token), expires_at)
        self._db.commit()

        self._notify(
            background_tasks,
            self._emails.send_verification_email,
            account.email,
            token,
            account.full_name,
        )
        return RESEND_VERIFICATION_MESSAGE

    @staticmethod
    def _notify(
        background_tasks: BackgroundTasks | None,
        send: Callable[..., NotificationResult],
        email: str,
        *args,
    ) -> None:
        """Queue a notification after the response when a task queue is given."""
        if background_tasks is not None:
            background_tasks.add_task(AccountService._deliver, send, email, *args)
        else:
            AccountService._deliver(send, email, *args)

    @staticmethod
    def _deliver(send: Callable[..., NotificationResult], email: str, *args) -> None:
        result = send(email, *args)
        if not result.success:
            logger.warning(f"Notification to {email} failed: {result.error}")

    # Password management

    def change_password(
        self, account: Account, old_password: str, new_password: str, context: RequestContext
    ) -> None:
        if not AuthService.verify_password(old_password, account.password_hash):
            raise AuthenticationError("Current password is incorrect.", code="INVALID_PASSWORD")
        if old_password == new_password:
            raise ValidationError("New password must be different from the current password.")

        account.password_hash = AuthService.hash_password(new_password)
        self._db.commit()

        self._emails.send_security_alert(
            account.email, "Your password was changed.", account.full_name
        )
        self._activity.log(
            ActivityAction.PASSWORD_CHANGED,
            user_id=account.id,
            details="Password changed",
            context=context,
        )

    def forgot_password(
        self,
        email: str,
        context: RequestContext,
        background_tasks: BackgroundTasks | None = None,
    ) -> str:
        """Start a reset if the email is known. The reply never reveals which."""
        account = self._accounts.find_by_email(email)
        if account is None:
            return FORGOT_PASSWORD_MESSAGE

        token = self._resets.issue(account.id, account.email, account.full_name)
        reset_url = f"{settings.frontend_url}/reset-password/{token}"
        self._notify(
            background_tasks,
            self._emails.send_password_reset_email,
            account.email,
            reset_url,
            account.full_name,
        )

        self._activity.log(
            ActivityAction.PASSWORD_RESET_REQUESTED,
            user_id=account.id,
            details="Password reset requested",
            context=context,
        )
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, token: str, new_password: str, context: RequestContext) -> None:
        """Consume a reset grant and set the new password."""
        grant = self._resets.redeem(token)
        account = self._accounts.find_by_id(grant.account_id) if grant else None
        if account is None:
            raise ValidationError("Invalid or expired reset token.", code="INVALID_RESET_TOKEN")

        account.password_hash = AuthService.hash_password(new_password)
        self._db.commit()
        self._lockout.reset_attempts(grant.email)

        self._emails.send_security_alert(
            account.email, "Your password was reset.", account.full_name
        )
        self._activity.log(
            ActivityAction.PASSWORD_RESET,
            user_id=account.id,
            details="Password reset completed",
            context=context,
        )

    # Administrative approval

    def list_pending(self) -> list[Account]:
        return list(self._accounts.find_by_status(AccountStatus.PENDING_APPROVAL))

    def approve(self, account_id: str, admin_id: str, context: RequestContext) -> Account:
        """PENDING_APPROVAL -> ACTIVE."""
        account = self._accounts.find_by_id(account_id)
        if account is None:
            raise NotFoundError("Account not found.")
        if account.status != AccountStatus.PENDING_APPROVAL:
            raise ConflictError("Account is not awaiting approval.", code="INVALID_STATUS")

        account.status = AccountStatus.ACTIVE
        self._db.commit()

        self._emails.send_account_activated(account.email, account.full_name)
        self._activity.log(
            ActivityAction.ACCOUNT_APPROVED,
            user_id=account.id,
            admin_id=admin_id,
            details=f"Approved {account.email}",
            context=context,
        )
        return account

    def reject(
        self, account_id: str, admin_id: str, reason: str | None, context: RequestContext
    ) -> Account:
        """Move a pending account to REJECTED. The record is kept."""
        account = self._accounts.find_by_id(account_id)
        if account is None:
            raise NotFoundError("Account not found.")
        if account.status not in (AccountStatus.PENDING_EMAIL, AccountStatus.PENDING_APPROVAL):
            raise ConflictError("Only pending accounts can be rejected.", code="INVALID_STATUS")

        account.status = AccountStatus.REJECTED
        self._accounts.invalidate_verification_tokens(account.id)
        self._db.commit()

        self._emails.send_account_rejected(account.email, reason, account.full_name)
        self._activity.log(
            ActivityAction.ACCOUNT_REJECTED,
            user_id=account.id,
            admin_id=admin_id,
            details={"email": account.email, "reason": reason},
            context=context,
        )
        return account
