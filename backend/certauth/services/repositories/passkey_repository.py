"""Passkey credential data access layer."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from certauth.models import PasskeyCredential

from .exceptions import DuplicateError

if TYPE_CHECKING:
    from collections.abc import Sequence


class PasskeyRepository:
    """Centralized passkey credential data access."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_id(self, credential_id: str) -> PasskeyCredential | None:
        """Find credential by its (base64url) credential id."""
        return self._db.get(PasskeyCredential, credential_id)

    def find_by_account(self, account_id: str) -> "Sequence[PasskeyCredential]":
        """Find all credentials registered to an account, oldest first."""
        return (
            self._db.query(PasskeyCredential)
            .filter(PasskeyCredential.account_id == account_id)
            .order_by(PasskeyCredential.created_at.asc())
            .all()
        )

    def has_any(self, account_id: str) -> bool:
        return (
            self._db.query(PasskeyCredential.id)
            .filter(PasskeyCredential.account_id == account_id)
            .first()
            is not None
        )

    def insert(self, credential: PasskeyCredential) -> PasskeyCredential:
        """Insert a new credential.

        Raises:
            DuplicateError: credential id already registered
        """
        self._db.add(credential)
        try:
            self._db.flush()
        except IntegrityError as e:
            self._db.rollback()
            raise DuplicateError("PasskeyCredential", "id") from e
        return credential

    def advance_counter(self, credential_id: str, expected: int, new_counter: int) -> bool:
        """Compare-and-set the signature counter.

        Returns False when another request already moved the counter.
        """
        result = self._db.execute(
            update(PasskeyCredential)
            .where(PasskeyCredential.id == credential_id, PasskeyCredential.counter == expected)
            .values(counter=new_counter, last_used_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def delete_owned(self, credential_id: str, account_id: str) -> bool:
        """Delete a credential only if it belongs to the account."""
        result = self._db.execute(
            delete(PasskeyCredential).where(
                PasskeyCredential.id == credential_id,
                PasskeyCredential.account_id == account_id,
            )
        )
        return result.rowcount == 1
