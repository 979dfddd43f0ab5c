"""SQLAlchemy ORM models."""

from certauth.models.account import Account, AccountRole, AccountStatus
from certauth.models.activity_log import ActivityLog
from certauth.models.email_verification_token import EmailVerificationToken
from certauth.models.passkey_credential import PasskeyCredential
from certauth.models.recovery_code import RecoveryCode

__all__ = [
    "Account",
    "AccountRole",
    "AccountStatus",
    "ActivityLog",
    "EmailVerificationToken",
    "PasskeyCredential",
    "RecoveryCode",
]
