"""Account data access layer."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from certauth.models import Account, AccountStatus, EmailVerificationToken

from .exceptions import DuplicateError, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence


class AccountRepository:
    """Centralized account data access.

    Naming conventions:
    - find_* : Query that may return None or empty list
    - get_* : Query that raises exception if missing
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_id(self, account_id: str) -> Account | None:
        """Find account by primary key."""
        return self._db.query(Account).filter(Account.id == account_id).first()

    def get_by_id(self, account_id: str) -> Account:
        """Get account by primary key, raising NotFoundError if missing."""
        account = self.find_by_id(account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        return account

    def find_by_email(self, email: str) -> Account | None:
        """Find account by email (stored lower-case)."""
        return self._db.query(Account).filter(Account.email == email.strip().lower()).first()

    def find_by_student_id(self, student_id_number: str) -> Account | None:
        """Find account by student id number."""
        return (
            self._db.query(Account)
            .filter(Account.student_id_number == student_id_number)
            .first()
        )

    def find_by_status(self, status: AccountStatus) -> "Sequence[Account]":
        """Find accounts in a given status, oldest first."""
        return (
            self._db.query(Account)
            .filter(Account.status == status)
            .order_by(Account.created_at.asc())
            .all()
        )

    def insert(self, account: Account) -> Account:
        """Insert a new account.

        Raises:
            DuplicateError: email or student id already taken
        """
        self._db.add(account)
        try:
            self._db.flush()
        except IntegrityError as e:
            self._db.rollback()
            field = "student_id_number" if "student_id_number" in str(e.orig) else "email"
            raise DuplicateError("Account", field) from e
        return account

    def claim_totp_step(self, account_id: str, step: int) -> bool:
        """Record a TOTP time step as used if it is newer than the last one.

        Returns False when that step (or a later one) was already accepted.
        """
        result = self._db.execute(
            update(Account)
            .where(
                Account.id == account_id,
                or_(Account.totp_last_step.is_(None), Account.totp_last_step < step),
            )
            .values(totp_last_step=step)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def delete(self, account: Account) -> None:
        """Delete an account and everything it owns."""
        self._db.delete(account)
        self._db.flush()

    # Email verification tokens

    def add_verification_token(
        self, account_id: str, token_hash: str, expires_at: datetime
    ) -> EmailVerificationToken:
        """Store a hashed email verification token."""
        record = EmailVerificationToken(
            account_id=account_id, token_hash=token_hash, expires_at=expires_at
        )
        self._db.add(record)
        self._db.flush()
        return record

    def find_verification_token(self, token_hash: str) -> EmailVerificationToken | None:
        """Find an unused verification token by hash."""
        return (
            self._db.query(EmailVerificationToken)
            .filter(
                EmailVerificationToken.token_hash == token_hash,
                EmailVerificationToken.used_at.is_(None),
            )
            .first()
        )

    def invalidate_verification_tokens(self, account_id: str) -> int:
        """Mark every outstanding verification token for an account as used."""
        return (
            self._db.query(EmailVerificationToken)
            .filter(
                EmailVerificationToken.account_id == account_id,
                EmailVerificationToken.used_at.is_(None),
            )
            .update({EmailVerificationToken.used_at: datetime.now(UTC)})
        )
